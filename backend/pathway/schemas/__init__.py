"""
Pydantic schemas exchanged with the storage port and the HTTP layer.
"""

from .catalog import PathRecord, StepRecord, PathFilter, PathDefinition, StepDefinition
from .session import SessionRecord, OnboardingContext, LearningPreferences
from .milestone import (
    MilestoneCriteria,
    ProgressPercentageCriteria,
    RequiredStepsCriteria,
    MaxTimeCriteria,
    MilestoneRecord,
    MilestoneDefinition,
    AchievementRecord,
)
from .progress import (
    ProgressRecord,
    ProgressDelta,
    StepResult,
    OverallProgress,
    Blocker,
    ProgressAnalytics,
    ProgressReport,
)
from .adaptation import AdjustmentType, StepInteraction, UserBehavior, AdaptationDecision
from .validation import SwitchReason, PathSwitchRequest, PathSwitchValidation, CompletionValidation
from .alternatives import ReportedIssue, AlternativePath
from .events import AnalyticsEvent, AuditEntry
from .requests import (
    StartSessionRequest,
    PersonalizedPathRequest,
    SwitchValidationRequest,
    AbandonRequest,
    TrackProgressRequest,
    StepActionRequest,
    SkipStepRequest,
    FailStepRequest,
    CompleteStepRequest,
    AwardMilestoneRequest,
)

__all__ = [
    "PathRecord",
    "StepRecord",
    "PathFilter",
    "PathDefinition",
    "StepDefinition",
    "SessionRecord",
    "OnboardingContext",
    "LearningPreferences",
    "MilestoneCriteria",
    "ProgressPercentageCriteria",
    "RequiredStepsCriteria",
    "MaxTimeCriteria",
    "MilestoneRecord",
    "MilestoneDefinition",
    "AchievementRecord",
    "ProgressRecord",
    "ProgressDelta",
    "StepResult",
    "OverallProgress",
    "Blocker",
    "ProgressAnalytics",
    "ProgressReport",
    "AdjustmentType",
    "StepInteraction",
    "UserBehavior",
    "AdaptationDecision",
    "SwitchReason",
    "PathSwitchRequest",
    "PathSwitchValidation",
    "CompletionValidation",
    "ReportedIssue",
    "AlternativePath",
    "AnalyticsEvent",
    "AuditEntry",
    "StartSessionRequest",
    "PersonalizedPathRequest",
    "SwitchValidationRequest",
    "AbandonRequest",
    "TrackProgressRequest",
    "StepActionRequest",
    "SkipStepRequest",
    "FailStepRequest",
    "CompleteStepRequest",
    "AwardMilestoneRequest",
]
