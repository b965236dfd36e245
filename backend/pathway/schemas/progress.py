"""
Progress schemas: per-step records, deltas, roll-ups and blocker reports.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .milestone import AchievementRecord


ProgressStatusLiteral = Literal["not_started", "in_progress", "completed", "skipped", "failed"]

# Fields a delta may set but never clear
NOT_NULL_DELTA_FIELDS = frozenset({
    "status", "time_spent", "attempts",
    "feedback", "user_actions", "step_result", "errors", "achievements",
})


class ProgressRecord(BaseModel):
    """Status and telemetry of one step within a session."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    session_id: str
    step_id: str
    user_id: str
    status: ProgressStatusLiteral
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    time_spent: int = 0
    attempts: int = 0
    score: Optional[float] = None
    feedback: Dict[str, Any] = Field(default_factory=dict)
    user_actions: Dict[str, Any] = Field(default_factory=dict)
    step_result: Dict[str, Any] = Field(default_factory=dict)
    errors: Dict[str, Any] = Field(default_factory=dict)
    achievements: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProgressDelta(BaseModel):
    """
    A partial progress update. Only the fields a caller sets are written.
    """
    model_config = ConfigDict(extra="forbid")

    status: Optional[ProgressStatusLiteral] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    time_spent: Optional[int] = Field(default=None, ge=0)
    attempts: Optional[int] = Field(default=None, ge=0)
    score: Optional[float] = Field(default=None, ge=0, le=100)
    feedback: Optional[Dict[str, Any]] = None
    user_actions: Optional[Dict[str, Any]] = None
    step_result: Optional[Dict[str, Any]] = None
    errors: Optional[Dict[str, Any]] = None
    achievements: Optional[Dict[str, Any]] = None

    @model_validator(mode="after")
    def reject_explicit_nulls(self) -> "ProgressDelta":
        nulls = sorted(
            name for name in self.model_fields_set
            if name in NOT_NULL_DELTA_FIELDS and getattr(self, name) is None
        )
        if nulls:
            raise ValueError(f"may not be null: {', '.join(nulls)}")
        return self

    def to_fields(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class StepResult(BaseModel):
    """Outcome a caller reports when a step finishes."""

    status: Literal["completed", "skipped", "failed"] = "completed"
    time_spent: int = Field(default=0, ge=0)  # minutes
    score: Optional[float] = Field(default=None, ge=0, le=100)
    user_actions: Dict[str, Any] = Field(default_factory=dict)
    feedback: Dict[str, Any] = Field(default_factory=dict)
    result: Dict[str, Any] = Field(default_factory=dict)  # e.g. {"error_rate": 0.1}
    errors: Dict[str, Any] = Field(default_factory=dict)
    achievements: Dict[str, Any] = Field(default_factory=dict)


class OverallProgress(BaseModel):
    """Session-wide progress roll-up."""

    session_id: str
    current_step_index: int
    completed_steps: List[str]
    skipped_steps: List[str]
    milestones: List[AchievementRecord]
    overall_progress: int = Field(ge=0, le=100)
    time_spent: int
    last_updated: Optional[datetime] = None


class Blocker(BaseModel):
    """A step (or session-wide pattern) that keeps tripping the user up."""

    step_id: str
    step_title: str
    blocker_type: Literal[
        "technical", "content", "user_understanding", "system", "engagement"
    ]
    description: str
    frequency: int
    suggested_resolution: str
    severity: Literal["low", "medium", "high"] = "medium"
    patterns: List[str] = Field(default_factory=list)


class ProgressAnalytics(BaseModel):
    total_time_spent: int
    average_time_per_step: float
    completion_rate: float
    skip_rate: float
    failure_rate: float
    engagement_score: float
    difficulty_score: float
    recommendations: List[str]


class ProgressReport(BaseModel):
    """Overall progress, blockers and derived rates for one session."""

    session_id: str
    overall_progress: OverallProgress
    blockers: List[Blocker]
    achievements: List[AchievementRecord]
    analytics: ProgressAnalytics
