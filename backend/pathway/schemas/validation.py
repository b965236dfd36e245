"""
Schemas for structured validation results.

These are returned, never raised, so a UI can render them directly.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class SwitchReason(str, Enum):
    """Why a user wants to change paths."""
    DIFFICULTY = "difficulty"
    TOO_EASY = "too_easy"
    CONTENT_TYPE = "content_type"
    PACING = "pacing"
    PREFERENCE = "preference"
    TECHNICAL = "technical"


class PathSwitchRequest(BaseModel):
    new_path_id: str
    reason: Optional[str] = None
    note: Optional[str] = None


class PathSwitchValidation(BaseModel):
    is_valid: bool
    issues: List[str] = Field(default_factory=list)


class CompletionValidation(BaseModel):
    is_valid: bool
    completion_percentage: int = 0
    missing_steps: List[str] = Field(default_factory=list)
    issues: List[str] = Field(default_factory=list)
