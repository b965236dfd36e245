"""
Milestone schemas.

Milestone criteria are a tagged union discriminated on ``type``; each
variant knows how to test itself against a progress roll-up.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, Iterable, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class ProgressPercentageCriteria(BaseModel):
    """Awarded once overall progress reaches a threshold."""

    type: Literal["progress_percentage"] = "progress_percentage"
    progress_percentage: float = Field(ge=0, le=100)

    def is_met(self, overall_progress: float, completed_steps: Iterable[str], time_spent: int) -> bool:
        return overall_progress >= self.progress_percentage


class RequiredStepsCriteria(BaseModel):
    """Awarded once every listed step is completed."""

    type: Literal["required_steps"] = "required_steps"
    required_steps: List[str] = Field(min_length=1)

    def is_met(self, overall_progress: float, completed_steps: Iterable[str], time_spent: int) -> bool:
        return set(self.required_steps).issubset(set(completed_steps))


class MaxTimeCriteria(BaseModel):
    """Awarded while total time spent stays within a budget."""

    type: Literal["max_time_minutes"] = "max_time_minutes"
    max_time_minutes: int = Field(gt=0)

    def is_met(self, overall_progress: float, completed_steps: Iterable[str], time_spent: int) -> bool:
        return time_spent <= self.max_time_minutes


MilestoneCriteria = Annotated[
    Union[ProgressPercentageCriteria, RequiredStepsCriteria, MaxTimeCriteria],
    Field(discriminator="type"),
]

criteria_adapter = TypeAdapter(MilestoneCriteria)


class MilestoneRecord(BaseModel):
    """An authored award rule."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: Optional[str] = None
    criteria: MilestoneCriteria
    reward_data: Dict[str, Any] = Field(default_factory=dict)
    points: int = 0
    is_active: bool = True


class MilestoneDefinition(BaseModel):
    """Authoring payload for a milestone."""

    id: Optional[str] = None
    name: str
    description: Optional[str] = None
    criteria: MilestoneCriteria
    reward_data: Dict[str, Any] = Field(default_factory=dict)
    points: int = 0
    is_active: bool = True


class AchievementRecord(BaseModel):
    """A milestone earned within a session. Append-only."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    session_id: str
    milestone_id: str
    achievement_data: Dict[str, Any] = Field(default_factory=dict)
    earned_at: Optional[datetime] = None
