"""
Session model for the onboarding engine.

An OnboardingSession is one user's traversal of a path. Its status
follows an explicit state machine; every status change goes through
``transition_to``.
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from enum import Enum
from sqlalchemy import (
    Integer, String, DateTime, Float,
    ForeignKey, Index, CheckConstraint, JSON
)
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy.sql import func

from pathway.core.database import Base
from pathway.core.exceptions import InvalidTransition
from pathway.models.path import new_id


class SessionStatus(str, Enum):
    """Lifecycle status of an onboarding session."""
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class SessionType(str, Enum):
    """Who the session is for."""
    INDIVIDUAL = "individual"
    TEAM_ADMIN = "team_admin"
    TEAM_MEMBER = "team_member"


# active <-> paused, active -> completed, active|paused -> abandoned
ALLOWED_TRANSITIONS = {
    SessionStatus.ACTIVE.value: {
        SessionStatus.PAUSED.value,
        SessionStatus.COMPLETED.value,
        SessionStatus.ABANDONED.value,
    },
    SessionStatus.PAUSED.value: {
        SessionStatus.ACTIVE.value,
        SessionStatus.ABANDONED.value,
    },
    SessionStatus.COMPLETED.value: set(),
    SessionStatus.ABANDONED.value: set(),
}


class OnboardingSession(Base):
    """
    Tracks one onboarding attempt by a user.
    """
    __tablename__ = "onboarding_sessions"
    
    # Primary key
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    
    # Ownership (identity lives outside this engine)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    organization_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    
    # Path relationship
    path_id: Mapped[str] = mapped_column(String(36), ForeignKey("onboarding_paths.id"), nullable=False)
    
    # Session state
    session_type: Mapped[str] = mapped_column(
        String(20),
        default=SessionType.INDIVIDUAL.value,
        nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=SessionStatus.ACTIVE.value,
        nullable=False
    )
    current_step_index: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    progress_percentage: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    time_spent: Mapped[int] = mapped_column(Integer, default=0, nullable=False)  # in minutes
    
    # Timestamps
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    last_active_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    paused_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )
    
    # Free-form context
    session_metadata: Mapped[Dict[str, Any]] = mapped_column("metadata", JSON, default=dict, nullable=False)
    preferences: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    
    # Relationships
    path = relationship("OnboardingPath")
    progress_records = relationship("UserProgress", back_populates="session", cascade="all, delete-orphan")
    
    # Table constraints
    __table_args__ = (
        CheckConstraint("progress_percentage >= 0 AND progress_percentage <= 100", name="check_session_progress"),
        CheckConstraint("time_spent >= 0", name="check_session_time_positive"),
        Index("idx_session_user_status", "user_id", "status"),
    )
    
    def __repr__(self) -> str:
        return f"<OnboardingSession(id={self.id}, user_id={self.user_id}, status='{self.status}')>"
    
    def transition_to(self, status: str, now: Optional[datetime] = None) -> None:
        """Move to ``status`` or raise InvalidTransition."""
        if status not in ALLOWED_TRANSITIONS.get(self.status, set()):
            raise InvalidTransition(self.status, status)
        
        now = now or datetime.now(timezone.utc)
        if status == SessionStatus.PAUSED.value:
            self.paused_at = now
        elif status == SessionStatus.ACTIVE.value:
            self.paused_at = None
        elif status == SessionStatus.COMPLETED.value:
            self.completed_at = now
            self.progress_percentage = 100.0
        
        self.status = status
        self.last_active_at = now
