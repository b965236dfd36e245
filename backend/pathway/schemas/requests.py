"""
Request bodies for the HTTP layer.

Identity is resolved outside this service, so callers pass ``user_id``
explicitly.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from .progress import ProgressDelta, StepResult
from .session import OnboardingContext


class StartSessionRequest(BaseModel):
    user_id: str = Field(min_length=1)
    context: OnboardingContext


class PersonalizedPathRequest(BaseModel):
    user_id: str = Field(min_length=1)
    context: OnboardingContext


class SwitchValidationRequest(BaseModel):
    current_path_id: str
    new_path_id: Optional[str] = None
    reason: Optional[str] = None
    user_role: Optional[str] = None


class AbandonRequest(BaseModel):
    reason: Optional[str] = None


class TrackProgressRequest(BaseModel):
    user_id: str = Field(min_length=1)
    delta: ProgressDelta = Field(default_factory=ProgressDelta)


class StepActionRequest(BaseModel):
    user_id: str = Field(min_length=1)


class SkipStepRequest(StepActionRequest):
    reason: str = "user_choice"


class FailStepRequest(StepActionRequest):
    errors: Dict[str, Any] = Field(default_factory=dict)
    attempts: int = Field(default=1, ge=0)


class CompleteStepRequest(StepActionRequest):
    result: StepResult = Field(default_factory=StepResult)


class AwardMilestoneRequest(StepActionRequest):
    data: Dict[str, Any] = Field(default_factory=dict)
