"""
Adaptation schemas: observed behavior in, a recommended adjustment out.
"""

from enum import Enum
from typing import List, Literal

from pydantic import BaseModel, Field


class AdjustmentType(str, Enum):
    DIFFICULTY = "difficulty"
    PACING = "pacing"
    CONTENT_TYPE = "content_type"
    ENGAGEMENT = "engagement"
    NONE = "none"


class StepInteraction(BaseModel):
    """How the user interacted with one step."""

    step_id: str
    time_spent: float = Field(default=0, ge=0)  # seconds
    attempts: int = Field(default=0, ge=0)
    completion_rate: float = Field(default=0, ge=0, le=1)
    skip_rate: float = Field(default=0, ge=0, le=1)
    error_rate: float = Field(default=0, ge=0, le=1)


class UserBehavior(BaseModel):
    """Aggregated behavioral signals for one session."""

    step_interactions: List[StepInteraction] = Field(default_factory=list)
    learning_style: Literal["visual", "auditory", "kinesthetic", "reading", "mixed"] = "mixed"
    pace_preference: Literal["fast", "medium", "slow"] = "medium"
    engagement_level: Literal["high", "medium", "low"] = "medium"
    struggling_areas: List[str] = Field(default_factory=list)
    preferred_content_types: List[str] = Field(default_factory=list)


class AdaptationDecision(BaseModel):
    """
    The adjustment recommended for a session.

    ``reason`` for a pacing adjustment always contains "fast" or "slow";
    recommendation templates are selected on that substring.
    """

    session_id: str
    adjustment_type: AdjustmentType
    reason: str
    recommended_actions: List[str]
