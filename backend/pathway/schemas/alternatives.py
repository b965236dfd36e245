"""
Schemas for alternative path suggestions.
"""

from typing import List, Literal

from pydantic import BaseModel, Field


class ReportedIssue(BaseModel):
    type: Literal["difficulty", "content_type", "pacing", "engagement"]
    description: str = ""
    severity: Literal["low", "medium", "high"] = "medium"


class AlternativePath(BaseModel):
    path_id: str
    name: str
    reason: str
    estimated_duration: int
    difficulty_level: str = "beginner"
    focus_areas: List[str] = Field(default_factory=list)
