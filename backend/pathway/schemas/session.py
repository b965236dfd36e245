"""
Session schemas.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .catalog import PathRecord


class LearningPreferences(BaseModel):
    """Preferences a caller may pass with an onboarding context."""
    model_config = ConfigDict(extra="allow")

    learning_style: Optional[str] = None  # visual, auditory, kinesthetic, reading, mixed
    pace_preference: Optional[str] = None  # fast, medium, slow
    preferred_content_types: List[str] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)  # step ids
    struggling_areas: List[str] = Field(default_factory=list)  # step ids

    @property
    def has_profile(self) -> bool:
        return bool(
            self.learning_style or self.pace_preference
            or self.strengths or self.struggling_areas
        )


class OnboardingContext(BaseModel):
    """Who is being onboarded and into what."""

    organization_id: Optional[str] = None
    user_role: str
    subscription_tier: Optional[str] = None
    preferences: LearningPreferences = Field(default_factory=LearningPreferences)


class SessionRecord(BaseModel):
    """One user's traversal of a path."""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    user_id: str
    organization_id: Optional[str] = None
    path_id: str
    session_type: str
    status: str
    current_step_index: int = 0
    progress_percentage: float = 0.0
    time_spent: int = 0
    started_at: Optional[datetime] = None
    last_active_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    paused_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("session_metadata", "metadata"),
    )
    preferences: Dict[str, Any] = Field(default_factory=dict)
    path: Optional[PathRecord] = None
