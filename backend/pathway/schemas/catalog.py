"""
Catalog schemas: read-only views of authored paths and steps.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class StepRecord(BaseModel):
    """An onboarding step as seen by the engine."""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    path_id: str
    title: str
    description: Optional[str] = None
    step_type: str = "tutorial"
    step_order: int
    is_required: bool = True
    dependencies: List[str] = Field(default_factory=list)
    estimated_time: int = 0  # minutes
    content: Dict[str, Any] = Field(default_factory=dict)
    validation_rules: Dict[str, Any] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("step_metadata", "metadata"),
    )

    @property
    def content_type(self) -> Optional[str]:
        """Authored content type, if the content declares one."""
        return self.content.get("content_type") or self.content.get("contentType")


class PathRecord(BaseModel):
    """An onboarding path with its ordered steps."""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    name: str
    description: Optional[str] = None
    target_role: str
    subscription_tier: Optional[str] = None
    difficulty_level: str = "beginner"
    estimated_duration: int = 0  # minutes
    is_active: bool = True
    prerequisites: List[str] = Field(default_factory=list)
    learning_objectives: List[str] = Field(default_factory=list)
    success_criteria: Dict[str, Any] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("path_metadata", "metadata"),
    )
    steps: List[StepRecord] = Field(default_factory=list)
    updated_at: Optional[datetime] = None

    def ordered_steps(self) -> List[StepRecord]:
        return sorted(self.steps, key=lambda s: s.step_order)

    @property
    def required_steps(self) -> List[StepRecord]:
        return [s for s in self.ordered_steps() if s.is_required]

    def step(self, step_id: str) -> Optional[StepRecord]:
        return next((s for s in self.steps if s.id == step_id), None)


class PathFilter(BaseModel):
    """Catalog query used by path matching and alternative suggestions."""
    model_config = ConfigDict(frozen=True)

    target_role: Optional[str] = None
    subscription_tier: Optional[str] = None  # paths with no tier always match
    active_only: bool = True
    exclude_path_ids: Tuple[str, ...] = ()
    min_duration: Optional[int] = None
    max_duration: Optional[int] = None
    difficulty_levels: Tuple[str, ...] = ()

    def cache_key(self) -> str:
        return self.model_dump_json()


class StepDefinition(BaseModel):
    """Authoring payload for one step; ``id`` is optional for new steps."""

    id: Optional[str] = None
    title: str
    description: Optional[str] = None
    step_type: str = "tutorial"
    step_order: int
    is_required: bool = True
    dependencies: List[str] = Field(default_factory=list)
    estimated_time: int = Field(default=0, ge=0)
    content: Dict[str, Any] = Field(default_factory=dict)
    validation_rules: Dict[str, Any] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class PathDefinition(BaseModel):
    """Authoring payload for a path and its steps."""

    id: Optional[str] = None
    name: str
    description: Optional[str] = None
    target_role: str
    subscription_tier: Optional[str] = None
    difficulty_level: str = "beginner"
    estimated_duration: int = Field(default=0, ge=0)
    is_active: bool = True
    prerequisites: List[str] = Field(default_factory=list)
    learning_objectives: List[str] = Field(default_factory=list)
    success_criteria: Dict[str, Any] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    steps: List[StepDefinition] = Field(default_factory=list)
