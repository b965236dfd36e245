"""
Progress tracking models for the onboarding engine.

Defines UserProgress, one row per (session, step), and the status
rules every write to it must respect.
"""

from datetime import datetime
from typing import Optional, Dict, Any
from enum import Enum
from sqlalchemy import (
    Integer, String, DateTime, Float,
    ForeignKey, UniqueConstraint, Index, CheckConstraint, JSON
)
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy.sql import func

from pathway.core.database import Base
from pathway.core.exceptions import InvalidTransition, ValidationError
from pathway.models.path import new_id


class ProgressStatus(str, Enum):
    """Status of a single step within a session."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({
    ProgressStatus.COMPLETED.value,
    ProgressStatus.SKIPPED.value,
    ProgressStatus.FAILED.value,
})

OPEN_STATUSES = frozenset({
    ProgressStatus.NOT_STARTED.value,
    ProgressStatus.IN_PROGRESS.value,
})

# Fields a progress delta may carry
SCALAR_FIELDS = frozenset({
    "status", "started_at", "completed_at", "time_spent", "attempts", "score",
})
JSON_FIELDS = frozenset({
    "feedback", "user_actions", "step_result", "errors", "achievements",
})
UPDATABLE_FIELDS = SCALAR_FIELDS | JSON_FIELDS
# Backed by NOT NULL columns
NON_NULLABLE_FIELDS = frozenset({"status", "time_spent", "attempts"}) | JSON_FIELDS


class UserProgress(Base):
    """
    Tracks one user's progress through one step of a session.
    """
    __tablename__ = "user_progress"
    
    # Primary key
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    
    # Session and step relationship
    session_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("onboarding_sessions.id", ondelete="CASCADE"),
        nullable=False
    )
    step_id: Mapped[str] = mapped_column(String(36), nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    
    # Progress tracking
    status: Mapped[str] = mapped_column(
        String(20),
        default=ProgressStatus.IN_PROGRESS.value,
        nullable=False
    )
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    time_spent: Mapped[int] = mapped_column(Integer, default=0, nullable=False)  # in minutes
    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    
    # Telemetry
    feedback: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    user_actions: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    step_result: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    errors: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    achievements: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    
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
    session = relationship("OnboardingSession", back_populates="progress_records")
    
    # Table constraints
    __table_args__ = (
        UniqueConstraint("session_id", "step_id", name="uq_session_step_progress"),
        CheckConstraint("score IS NULL OR (score >= 0 AND score <= 100)", name="check_progress_score"),
        CheckConstraint("time_spent >= 0", name="check_progress_time_positive"),
        CheckConstraint("attempts >= 0", name="check_progress_attempts_positive"),
        Index("idx_progress_session_status", "session_id", "status"),
    )
    
    def __repr__(self) -> str:
        return f"<UserProgress(session_id={self.session_id}, step_id={self.step_id}, status='{self.status}')>"
    
    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
    
    def apply_update(self, fields: Dict[str, Any]) -> None:
        """
        Merge a progress delta into this row.
        
        JSON fields are merged key by key; scalar fields are overwritten.
        A terminal status never moves back to not_started or in_progress.
        
        Raises:
            InvalidTransition: if the delta would reopen a terminal step
            ValidationError: if the delta names an unknown field
        """
        check_progress_fields(fields)
        
        new_status = fields.get("status")
        if new_status and self.is_terminal and new_status in OPEN_STATUSES:
            raise InvalidTransition(self.status, new_status, entity="progress")
        
        for key, value in fields.items():
            if key in JSON_FIELDS:
                # Reassign so the JSON column is flagged dirty
                setattr(self, key, {**(getattr(self, key) or {}), **(value or {})})
            else:
                setattr(self, key, value)


def check_progress_fields(fields: Dict[str, Any]) -> None:
    """Reject unknown fields, nulls in required fields and unknown status values."""
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValidationError(
            f"Unknown progress fields: {', '.join(sorted(unknown))}",
            {"fields": sorted(unknown)}
        )
    nulls = sorted(key for key in NON_NULLABLE_FIELDS if key in fields and fields[key] is None)
    if nulls:
        raise ValidationError(
            f"Progress fields may not be null: {', '.join(nulls)}",
            {"fields": nulls}
        )
    status = fields.get("status")
    if status is not None and status not in {s.value for s in ProgressStatus}:
        raise ValidationError(f"Unknown progress status: {status}", {"status": status})
