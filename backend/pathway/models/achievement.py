"""
Milestone and achievement models for the onboarding engine.

Milestones are authored award rules; UserAchievement rows are
append-only records of a milestone earned within a session.
"""

from datetime import datetime
from typing import Optional, Dict, Any
from enum import Enum
from sqlalchemy import (
    Boolean, Integer, String, DateTime, Text,
    ForeignKey, UniqueConstraint, Index, JSON
)
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy.sql import func

from pathway.core.database import Base
from pathway.models.path import new_id


class MilestoneCriteriaType(str, Enum):
    """Kinds of milestone award rules."""
    PROGRESS_PERCENTAGE = "progress_percentage"
    REQUIRED_STEPS = "required_steps"
    MAX_TIME_MINUTES = "max_time_minutes"


class OnboardingMilestone(Base):
    """
    An award rule evaluated whenever a step is completed.
    """
    __tablename__ = "onboarding_milestones"
    
    # Primary key
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    
    # Basic information
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    
    # Award rule, stored as the JSON form of a MilestoneCriteria schema
    criteria: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)
    reward_data: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    
    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    
    def __repr__(self) -> str:
        return f"<OnboardingMilestone(id={self.id}, name='{self.name}')>"


class UserAchievement(Base):
    """
    A milestone earned by a user within a session.
    """
    __tablename__ = "user_achievements"
    
    # Primary key
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    
    # Relationships
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    session_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("onboarding_sessions.id", ondelete="CASCADE"),
        nullable=False
    )
    milestone_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("onboarding_milestones.id", ondelete="CASCADE"),
        nullable=False
    )
    
    # Award details
    achievement_data: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    earned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    
    milestone = relationship("OnboardingMilestone")
    
    # Table constraints
    __table_args__ = (
        UniqueConstraint("user_id", "milestone_id", "session_id", name="uq_user_milestone_session"),
        Index("idx_achievement_session_earned", "session_id", "earned_at"),
    )
    
    def __repr__(self) -> str:
        return f"<UserAchievement(user_id={self.user_id}, milestone_id={self.milestone_id})>"
