"""
Analytics and audit models for the onboarding engine.

Both tables only receive best-effort writes; nothing in the engine
reads them back to make a decision.
"""

from datetime import datetime
from typing import Optional, Dict, Any
from sqlalchemy import (
    Boolean, Integer, String, DateTime, Text, Index, JSON
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from pathway.core.database import Base


class OnboardingAnalytics(Base):
    """
    One analytics event emitted by the engine.
    """
    __tablename__ = "onboarding_analytics"
    
    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    
    # Event context
    event_type: Mapped[str] = mapped_column(String(50), nullable=False)
    user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    organization_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    session_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    path_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    step_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    
    # Payload
    event_data: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    
    # Timestamp
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    
    # Table constraints
    __table_args__ = (
        Index("idx_analytics_session_type", "session_id", "event_type"),
        Index("idx_analytics_timestamp", "timestamp"),
    )
    
    def __repr__(self) -> str:
        return f"<OnboardingAnalytics(id={self.id}, event_type='{self.event_type}')>"


class AuditLog(Base):
    """
    Audit trail for engine decisions such as path adaptations.
    """
    __tablename__ = "audit_logs"
    
    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    
    # Actor and subject
    user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)  # session, path, progress
    entity_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    
    # Action metadata
    details: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    
    # Results
    success: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    
    # Timestamp
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    
    # Table constraints
    __table_args__ = (
        Index("idx_audit_entity", "entity_type", "entity_id"),
        Index("idx_audit_created", "created_at"),
    )
    
    def __repr__(self) -> str:
        return f"<AuditLog(id={self.id}, action='{self.action}', entity='{self.entity_type}')>"
