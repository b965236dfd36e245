"""
Catalog models for the onboarding engine.

Defines OnboardingPath and OnboardingStep, the authored content that
sessions traverse. Both are read-only to the orchestration services.
"""

from datetime import datetime
from typing import Optional, List, Dict, Any
from enum import Enum
from sqlalchemy import (
    Boolean, Integer, String, DateTime, Text,
    ForeignKey, UniqueConstraint, Index, CheckConstraint, JSON
)
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy.sql import func
import uuid

from pathway.core.database import Base


def new_id() -> str:
    return str(uuid.uuid4())


class StepType(str, Enum):
    """Kinds of onboarding steps."""
    TUTORIAL = "tutorial"
    EXERCISE = "exercise"
    SETUP = "setup"
    VALIDATION = "validation"
    MILESTONE = "milestone"


class DifficultyLevel(str, Enum):
    """Difficulty levels used when suggesting alternative paths."""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


DIFFICULTY_RANK = {
    DifficultyLevel.BEGINNER.value: 0,
    DifficultyLevel.INTERMEDIATE.value: 1,
    DifficultyLevel.ADVANCED.value: 2,
}


class OnboardingPath(Base):
    """
    A templated sequence of onboarding steps for a role and tier.
    """
    __tablename__ = "onboarding_paths"
    
    # Primary key
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    
    # Basic information
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    
    # Targeting
    target_role: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    subscription_tier: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)  # NULL matches any tier
    difficulty_level: Mapped[str] = mapped_column(
        String(20),
        default=DifficultyLevel.BEGINNER.value,
        nullable=False
    )
    
    # Path metadata
    estimated_duration: Mapped[int] = mapped_column(Integer, default=0, nullable=False)  # in minutes
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    prerequisites: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    learning_objectives: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    success_criteria: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    path_metadata: Mapped[Dict[str, Any]] = mapped_column("metadata", JSON, default=dict, nullable=False)
    
    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )
    
    # Relationships
    steps = relationship(
        "OnboardingStep",
        back_populates="path",
        cascade="all, delete-orphan",
        order_by="OnboardingStep.step_order"
    )
    
    # Table constraints
    __table_args__ = (
        CheckConstraint("estimated_duration >= 0", name="check_path_duration_positive"),
        Index("idx_path_role_tier_active", "target_role", "subscription_tier", "is_active"),
    )
    
    def __repr__(self) -> str:
        return f"<OnboardingPath(id={self.id}, name='{self.name}', role='{self.target_role}')>"
    
    @property
    def required_steps(self) -> List["OnboardingStep"]:
        """Required steps in authored order."""
        return [step for step in self.steps if step.is_required]


class OnboardingStep(Base):
    """
    An atomic onboarding unit with an order and dependency constraints.
    """
    __tablename__ = "onboarding_steps"
    
    # Primary key
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    
    # Path relationship
    path_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("onboarding_paths.id", ondelete="CASCADE"),
        nullable=False
    )
    
    # Basic information
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    step_type: Mapped[str] = mapped_column(
        String(20),
        default=StepType.TUTORIAL.value,
        nullable=False
    )
    
    # Ordering and gating
    step_order: Mapped[int] = mapped_column(Integer, nullable=False)
    is_required: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    dependencies: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)  # step ids within the same path
    estimated_time: Mapped[int] = mapped_column(Integer, default=0, nullable=False)  # in minutes
    
    # Content (opaque to the engine apart from its content type)
    content: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    validation_rules: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    step_metadata: Mapped[Dict[str, Any]] = mapped_column("metadata", JSON, default=dict, nullable=False)
    
    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )
    
    # Relationships
    path = relationship("OnboardingPath", back_populates="steps")
    
    # Table constraints
    __table_args__ = (
        UniqueConstraint("path_id", "step_order", name="uq_path_step_order"),
        CheckConstraint("estimated_time >= 0", name="check_step_time_positive"),
        Index("idx_step_path_order", "path_id", "step_order"),
    )
    
    def __repr__(self) -> str:
        return f"<OnboardingStep(id={self.id}, path_id={self.path_id}, order={self.step_order})>"
