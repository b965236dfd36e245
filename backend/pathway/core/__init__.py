"""
Core module for the Pathway onboarding engine.

This module contains core functionality including:
- Configuration management
- Database connections
- Error taxonomy
"""

from .config import settings
from .database import get_db, get_engine, create_db_engine, SessionLocal, Base
from .exceptions import (
    OnboardingError,
    NotFound,
    ValidationError,
    InvalidTransition,
    StorageError
)

__all__ = [
    "settings",
    "get_db",
    "get_engine",
    "create_db_engine",
    "SessionLocal",
    "Base",
    "OnboardingError",
    "NotFound",
    "ValidationError",
    "InvalidTransition",
    "StorageError"
]
