"""
Database models for the onboarding engine.

This module contains all SQLAlchemy models for the application:
- Catalog models for authored paths and steps
- Session models for onboarding attempts
- Progress models for per-step tracking
- Milestone and achievement models
- Analytics and audit models
"""

from pathway.core.database import Base

# Import all models to ensure they're registered with SQLAlchemy
from .path import OnboardingPath, OnboardingStep, StepType, DifficultyLevel
from .session import OnboardingSession, SessionStatus, SessionType
from .progress import UserProgress, ProgressStatus
from .achievement import OnboardingMilestone, UserAchievement, MilestoneCriteriaType
from .analytics import OnboardingAnalytics, AuditLog

# Export all models
__all__ = [
    "Base",
    "OnboardingPath",
    "OnboardingStep",
    "StepType",
    "DifficultyLevel",
    "OnboardingSession",
    "SessionStatus",
    "SessionType",
    "UserProgress",
    "ProgressStatus",
    "OnboardingMilestone",
    "UserAchievement",
    "MilestoneCriteriaType",
    "OnboardingAnalytics",
    "AuditLog"
]
