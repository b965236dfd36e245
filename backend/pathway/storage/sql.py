"""
SQLAlchemy implementation of the onboarding storage port.

Every public call runs in its own short transaction. Transient
OperationalErrors are retried at most once; anything else the driver
raises is re-raised as StorageError carrying the operation name.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple
import functools
import logging

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload, sessionmaker

from pathway.core.config import settings
from pathway.core.exceptions import OnboardingError, NotFound, StorageError, ValidationError
from pathway.models import (
    AuditLog,
    OnboardingAnalytics,
    OnboardingMilestone,
    OnboardingPath,
    OnboardingSession,
    OnboardingStep,
    ProgressStatus,
    UserAchievement,
    UserProgress,
)
from pathway.models.path import new_id
from pathway.models.progress import check_progress_fields
from pathway.schemas import (
    AchievementRecord,
    AnalyticsEvent,
    AuditEntry,
    MilestoneDefinition,
    MilestoneRecord,
    PathDefinition,
    PathFilter,
    PathRecord,
    ProgressRecord,
    SessionRecord,
)


# Configure logging
logger = logging.getLogger(__name__)


SESSION_UPDATABLE_FIELDS = frozenset({
    "path_id",
    "current_step_index",
    "progress_percentage",
    "time_spent",
    "last_active_at",
    "metadata",
    "preferences",
})


def storage_call(description: str) -> Callable:
    """
    Wrap a store method with the bounded retry and StorageError mapping.
    
    Args:
        description: Human readable operation, used as "Failed to <description>"
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(self: "SqlAlchemyStore", *args, **kwargs):
            attempt = 0
            while True:
                try:
                    return func(self, *args, **kwargs)
                except OnboardingError:
                    raise
                except OperationalError as exc:
                    if attempt < self.max_retries:
                        attempt += 1
                        logger.warning(f"Transient storage failure in {func.__name__}, retrying: {exc}")
                        continue
                    logger.error(f"Storage call {func.__name__} failed after {attempt + 1} attempts: {exc}")
                    raise StorageError(
                        f"Failed to {description}",
                        operation=func.__name__,
                        details={"error": str(exc)}
                    ) from exc
                except SQLAlchemyError as exc:
                    logger.error(f"Storage call {func.__name__} failed: {exc}")
                    raise StorageError(
                        f"Failed to {description}",
                        operation=func.__name__,
                        details={"error": str(exc)}
                    ) from exc
        return wrapper
    return decorator


class SqlAlchemyStore:
    """
    Storage port backed by PostgreSQL (production) or SQLite (tests).
    """
    
    def __init__(self, session_factory: sessionmaker, max_retries: Optional[int] = None):
        self.session_factory = session_factory
        self.max_retries = settings.STORAGE_MAX_RETRIES if max_retries is None else min(max_retries, 1)
    
    def _session(self) -> Session:
        return self.session_factory()
    
    @staticmethod
    def _insert(db: Session, model):
        """Dialect-specific INSERT supporting ON CONFLICT DO NOTHING."""
        dialect = db.get_bind().dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            raise StorageError(f"Unsupported database dialect: {dialect}", operation="insert")
        return insert(model)
    
    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------
    
    @storage_call("fetch matching paths")
    def find_matching_paths(self, path_filter: PathFilter) -> List[PathRecord]:
        with self._session() as db:
            query = select(OnboardingPath).options(selectinload(OnboardingPath.steps))
            
            if path_filter.active_only:
                query = query.where(OnboardingPath.is_active.is_(True))
            if path_filter.target_role:
                query = query.where(OnboardingPath.target_role == path_filter.target_role)
            if path_filter.subscription_tier:
                query = query.where(or_(
                    OnboardingPath.subscription_tier.is_(None),
                    OnboardingPath.subscription_tier == path_filter.subscription_tier
                ))
            if path_filter.exclude_path_ids:
                query = query.where(OnboardingPath.id.not_in(path_filter.exclude_path_ids))
            if path_filter.min_duration is not None:
                query = query.where(OnboardingPath.estimated_duration >= path_filter.min_duration)
            if path_filter.max_duration is not None:
                query = query.where(OnboardingPath.estimated_duration <= path_filter.max_duration)
            if path_filter.difficulty_levels:
                query = query.where(OnboardingPath.difficulty_level.in_(path_filter.difficulty_levels))
            
            paths = db.execute(query.order_by(OnboardingPath.name)).scalars().all()
            return [PathRecord.model_validate(path) for path in paths]
    
    @storage_call("fetch path")
    def get_path_with_steps(self, path_id: str) -> Optional[PathRecord]:
        with self._session() as db:
            path = db.execute(
                select(OnboardingPath)
                .options(selectinload(OnboardingPath.steps))
                .where(OnboardingPath.id == path_id)
            ).scalar_one_or_none()
            return PathRecord.model_validate(path) if path else None
    
    @storage_call("save path")
    def save_path(self, definition: PathDefinition) -> PathRecord:
        """Create or replace a path and all of its steps."""
        with self._session() as db:
            path = db.get(OnboardingPath, definition.id) if definition.id else None
            if path is None:
                path = OnboardingPath(id=definition.id or new_id())
                db.add(path)
            else:
                db.execute(delete(OnboardingStep).where(OnboardingStep.path_id == path.id))
                db.expire(path, ["steps"])
            
            path.name = definition.name
            path.description = definition.description
            path.target_role = definition.target_role
            path.subscription_tier = definition.subscription_tier
            path.difficulty_level = definition.difficulty_level
            path.estimated_duration = definition.estimated_duration
            path.is_active = definition.is_active
            path.prerequisites = list(definition.prerequisites)
            path.learning_objectives = list(definition.learning_objectives)
            path.success_criteria = dict(definition.success_criteria)
            path.path_metadata = dict(definition.metadata)
            db.flush()
            
            for step in definition.steps:
                db.add(OnboardingStep(
                    id=step.id or new_id(),
                    path_id=path.id,
                    title=step.title,
                    description=step.description,
                    step_type=step.step_type,
                    step_order=step.step_order,
                    is_required=step.is_required,
                    dependencies=list(step.dependencies),
                    estimated_time=step.estimated_time,
                    content=dict(step.content),
                    validation_rules=dict(step.validation_rules),
                    step_metadata=dict(step.metadata),
                ))
            db.commit()
            db.expire(path)
            logger.info(f"Saved onboarding path {path.id} with {len(definition.steps)} steps")
            return PathRecord.model_validate(path)
    
    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------
    
    @storage_call("fetch session with path")
    def get_session_with_path(self, session_id: str) -> Optional[SessionRecord]:
        with self._session() as db:
            session = db.execute(
                select(OnboardingSession)
                .options(selectinload(OnboardingSession.path).selectinload(OnboardingPath.steps))
                .where(OnboardingSession.id == session_id)
            ).scalar_one_or_none()
            return SessionRecord.model_validate(session) if session else None
    
    @storage_call("create onboarding session")
    def create_session(
        self,
        user_id: str,
        path_id: str,
        session_type: str,
        organization_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        preferences: Optional[Dict[str, Any]] = None,
    ) -> SessionRecord:
        now = datetime.now(timezone.utc)
        with self._session() as db:
            session = OnboardingSession(
                id=new_id(),
                user_id=user_id,
                organization_id=organization_id,
                path_id=path_id,
                session_type=session_type,
                started_at=now,
                last_active_at=now,
                session_metadata=metadata or {},
                preferences=preferences or {},
            )
            db.add(session)
            db.commit()
            return SessionRecord.model_validate(session)
    
    def _load_session(self, db: Session, session_id: str) -> OnboardingSession:
        session = db.execute(
            select(OnboardingSession)
            .where(OnboardingSession.id == session_id)
            .with_for_update()
        ).scalar_one_or_none()
        if session is None:
            raise NotFound("Onboarding session not found", {"session_id": session_id})
        return session
    
    @storage_call("update onboarding session")
    def update_session(self, session_id: str, fields: Dict[str, Any]) -> SessionRecord:
        unknown = set(fields) - SESSION_UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(
                f"Cannot update session fields: {', '.join(sorted(unknown))}",
                {"fields": sorted(unknown)}
            )
        with self._session() as db:
            session = self._load_session(db, session_id)
            for key, value in fields.items():
                if key == "metadata":
                    session.session_metadata = {**(session.session_metadata or {}), **value}
                else:
                    setattr(session, key, value)
            db.commit()
            return SessionRecord.model_validate(session)
    
    @storage_call("change session status")
    def transition_session(
        self, session_id: str, status: str, metadata: Optional[Dict[str, Any]] = None
    ) -> SessionRecord:
        with self._session() as db:
            session = self._load_session(db, session_id)
            session.transition_to(status)
            if metadata:
                session.session_metadata = {**(session.session_metadata or {}), **metadata}
            db.commit()
            return SessionRecord.model_validate(session)
    
    @storage_call("list user sessions")
    def list_user_sessions(self, user_id: str, status: Optional[str] = None) -> List[SessionRecord]:
        with self._session() as db:
            query = select(OnboardingSession).where(OnboardingSession.user_id == user_id)
            if status:
                query = query.where(OnboardingSession.status == status)
            sessions = db.execute(query.order_by(OnboardingSession.started_at)).scalars().all()
            return [SessionRecord.model_validate(s) for s in sessions]
    
    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------
    
    @storage_call("upsert step progress")
    def upsert_progress(
        self, session_id: str, step_id: str, user_id: str, fields: Dict[str, Any]
    ) -> ProgressRecord:
        """
        Insert or merge the progress row for (session_id, step_id).
        
        The insert is ON CONFLICT DO NOTHING, so concurrent duplicates
        converge on one row; the merge then runs against the row locked
        in the same transaction.
        """
        check_progress_fields(fields)
        
        with self._session() as db:
            values = {
                "id": new_id(),
                "session_id": session_id,
                "step_id": step_id,
                "user_id": user_id,
                **fields,
            }
            values.setdefault("status", ProgressStatus.IN_PROGRESS.value)
            stmt = self._insert(db, UserProgress).values(**values).on_conflict_do_nothing(
                index_elements=["session_id", "step_id"]
            )
            inserted = db.execute(stmt).rowcount == 1
            
            row = db.execute(
                select(UserProgress)
                .where(UserProgress.session_id == session_id, UserProgress.step_id == step_id)
                .with_for_update()
            ).scalar_one()
            
            if not inserted:
                row.apply_update(fields)
            
            db.commit()
            db.refresh(row)
            return ProgressRecord.model_validate(row)
    
    @storage_call("fetch progress records")
    def list_progress(self, session_id: str) -> List[ProgressRecord]:
        with self._session() as db:
            rows = db.execute(
                select(UserProgress)
                .where(UserProgress.session_id == session_id)
                .order_by(UserProgress.created_at, UserProgress.id)
            ).scalars().all()
            return [ProgressRecord.model_validate(row) for row in rows]
    
    # ------------------------------------------------------------------
    # Milestones
    # ------------------------------------------------------------------
    
    @storage_call("fetch milestones")
    def list_active_milestones(self) -> List[MilestoneRecord]:
        with self._session() as db:
            rows = db.execute(
                select(OnboardingMilestone)
                .where(OnboardingMilestone.is_active.is_(True))
                .order_by(OnboardingMilestone.points.desc(), OnboardingMilestone.name)
            ).scalars().all()
            return [MilestoneRecord.model_validate(row) for row in rows]
    
    @storage_call("save milestone")
    def save_milestone(self, definition: MilestoneDefinition) -> MilestoneRecord:
        with self._session() as db:
            milestone = db.get(OnboardingMilestone, definition.id) if definition.id else None
            if milestone is None:
                milestone = OnboardingMilestone(id=definition.id or new_id())
                db.add(milestone)
            milestone.name = definition.name
            milestone.description = definition.description
            milestone.criteria = definition.criteria.model_dump()
            milestone.reward_data = dict(definition.reward_data)
            milestone.points = definition.points
            milestone.is_active = definition.is_active
            db.commit()
            return MilestoneRecord.model_validate(milestone)
    
    @storage_call("award milestone")
    def insert_achievement(
        self, user_id: str, session_id: str, milestone_id: str, data: Dict[str, Any]
    ) -> Tuple[AchievementRecord, bool]:
        with self._session() as db:
            if db.get(OnboardingSession, session_id) is None:
                raise NotFound("Onboarding session not found", {"session_id": session_id})
            if db.get(OnboardingMilestone, milestone_id) is None:
                raise NotFound("Milestone not found", {"milestone_id": milestone_id})
            
            stmt = self._insert(db, UserAchievement).values(
                id=new_id(),
                user_id=user_id,
                session_id=session_id,
                milestone_id=milestone_id,
                achievement_data=data,
                earned_at=datetime.now(timezone.utc),
            ).on_conflict_do_nothing(index_elements=["user_id", "milestone_id", "session_id"])
            created = db.execute(stmt).rowcount == 1
            
            row = db.execute(
                select(UserAchievement).where(
                    UserAchievement.user_id == user_id,
                    UserAchievement.session_id == session_id,
                    UserAchievement.milestone_id == milestone_id,
                )
            ).scalar_one()
            db.commit()
            return AchievementRecord.model_validate(row), created
    
    @storage_call("fetch user achievements")
    def list_achievements(self, session_id: str) -> List[AchievementRecord]:
        with self._session() as db:
            rows = db.execute(
                select(UserAchievement)
                .where(UserAchievement.session_id == session_id)
                .order_by(UserAchievement.earned_at.desc(), UserAchievement.id)
            ).scalars().all()
            return [AchievementRecord.model_validate(row) for row in rows]
    
    # ------------------------------------------------------------------
    # Side effects
    # ------------------------------------------------------------------
    
    @storage_call("record analytics event")
    def insert_analytics_event(self, event: AnalyticsEvent) -> None:
        with self._session() as db:
            db.add(OnboardingAnalytics(**event.model_dump()))
            db.commit()
    
    @storage_call("write audit log")
    def create_audit_log(self, entry: AuditEntry) -> None:
        with self._session() as db:
            db.add(AuditLog(**entry.model_dump()))
            db.commit()
