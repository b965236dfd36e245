"""
Session lifecycle for the onboarding engine.

Every status change goes through the session state machine
(active <-> paused, active -> completed, active|paused -> abandoned).
Pausing is a state change only; progress writes already accepted for
the session are kept.
"""

from datetime import datetime, timezone
from typing import Optional, Union
import logging

from pathway.core.exceptions import NotFound, ValidationError
from pathway.models.progress import ProgressStatus
from pathway.models.session import SessionStatus, SessionType
from pathway.schemas import OnboardingContext, ProgressDelta, SessionRecord, SwitchReason
from pathway.storage import OnboardingStore

from .events import EventRecorder
from .path_matcher import generate_personalized_path
from .progress_tracker import ProgressTracker, as_utc
from .validators import normalize_switch_reason, validate_path_switch


# Configure logging
logger = logging.getLogger(__name__)


def determine_session_type(context: OnboardingContext) -> SessionType:
    """Individual without an organization; admins and owners lead teams."""
    if not context.organization_id:
        return SessionType.INDIVIDUAL
    role = (context.user_role or "").lower()
    if "admin" in role or "owner" in role:
        return SessionType.TEAM_ADMIN
    return SessionType.TEAM_MEMBER


class SessionService:
    """
    Creates sessions and moves them through their lifecycle.
    """

    def __init__(
        self,
        store: OnboardingStore,
        events: Optional[EventRecorder] = None,
        tracker: Optional[ProgressTracker] = None
    ):
        self.store = store
        self.events = events or EventRecorder(store)
        self.tracker = tracker or ProgressTracker(store, self.events)

    def get_session(self, session_id: str) -> SessionRecord:
        session = self.store.get_session_with_path(session_id)
        if session is None:
            raise NotFound("Onboarding session not found", {"session_id": session_id})
        return session

    def start_session(self, user_id: str, context: OnboardingContext) -> SessionRecord:
        """
        Start onboarding for a user on the best matching path.

        Args:
            user_id: User being onboarded
            context: Role, tier, organization and learning preferences

        Returns:
            SessionRecord: The new active session, with its path

        Raises:
            NotFound: If no path matches the context
            StorageError: If the session cannot be created
        """
        path = generate_personalized_path(self.store, user_id, context, self.events)
        session_type = determine_session_type(context)
        first_step = next(iter(path.ordered_steps()), None)

        session = self.store.create_session(
            user_id=user_id,
            path_id=path.id,
            session_type=session_type.value,
            organization_id=context.organization_id,
            metadata={
                "path_generated": True,
                "generation_timestamp": datetime.now(timezone.utc).isoformat(),
                "user_role": context.user_role,
                "subscription_tier": context.subscription_tier,
            },
            preferences=context.preferences.model_dump(),
        )
        logger.info(f"Started onboarding session {session.id} for user {user_id} on path {path.id}")

        if first_step is not None:
            self.tracker.track_step_progress(
                session.id, first_step.id, user_id,
                ProgressDelta(status=ProgressStatus.NOT_STARTED.value)
            )

        self.events.track(
            "session_start",
            user_id=user_id,
            organization_id=context.organization_id,
            session_id=session.id,
            path_id=path.id,
            step_id=first_step.id if first_step else None,
            event_data={
                "path_id": path.id,
                "session_type": session_type.value,
                "personalized": True,
                "first_step_id": first_step.id if first_step else None,
            },
        )
        return session.model_copy(update={"path": path})

    def pause_session(self, session_id: str) -> SessionRecord:
        session = self.store.transition_session(session_id, SessionStatus.PAUSED.value)
        logger.info(f"Paused onboarding session {session_id}")
        self._track_status("session_paused", session)
        return session

    def resume_session(self, session_id: str) -> SessionRecord:
        """Resume a paused session, recording how long it was paused."""
        current = self.get_session(session_id)
        if current.status != SessionStatus.PAUSED.value:
            raise ValidationError(
                "Session is not in paused state",
                {"session_id": session_id, "status": current.status}
            )

        now = datetime.now(timezone.utc)
        pause_seconds = (now - as_utc(current.paused_at)).total_seconds() if current.paused_at else 0
        session = self.store.transition_session(session_id, SessionStatus.ACTIVE.value, metadata={
            "resumed_at": now.isoformat(),
            "pause_duration_seconds": round(pause_seconds),
        })
        logger.info(f"Resumed onboarding session {session_id} after {pause_seconds:.0f}s")
        self._track_status("session_resumed", session, {"pause_duration_seconds": round(pause_seconds)})
        return session

    def complete_session(self, session_id: str) -> SessionRecord:
        session = self.store.transition_session(session_id, SessionStatus.COMPLETED.value)
        logger.info(f"Completed onboarding session {session_id}")
        self._track_status("session_complete", session, {
            "total_time_spent": session.time_spent,
            "completion_date": session.completed_at.isoformat() if session.completed_at else None,
        })
        return session

    def abandon_session(self, session_id: str, reason: Optional[str] = None) -> SessionRecord:
        metadata = {"abandon_reason": reason} if reason else None
        session = self.store.transition_session(session_id, SessionStatus.ABANDONED.value, metadata=metadata)
        logger.info(f"Abandoned onboarding session {session_id}")
        self._track_status("session_abandoned", session, {"reason": reason})
        return session

    def switch_to_alternative_path(
        self,
        session_id: str,
        new_path_id: str,
        reason: Union[SwitchReason, str, None],
        note: Optional[str] = None
    ) -> SessionRecord:
        """
        Move a session onto another path.

        Raises:
            NotFound: If the session or the new path does not exist
            ValidationError: If the switch request breaks a switch rule or
                the session is already finished
        """
        session = self.get_session(session_id)
        if session.status not in (SessionStatus.ACTIVE.value, SessionStatus.PAUSED.value):
            raise ValidationError(
                f"Cannot switch path of a {session.status} session",
                {"session_id": session_id, "status": session.status}
            )

        validation = validate_path_switch(
            session.path_id, new_path_id, reason, session.metadata.get("user_role")
        )
        if not validation.is_valid:
            raise ValidationError(
                f"Invalid path switch: {'; '.join(validation.issues)}",
                {"issues": validation.issues}
            )

        new_path = self.store.get_path_with_steps(new_path_id)
        if new_path is None:
            raise NotFound("Alternative path not found", {"path_id": new_path_id})

        switch_reason = normalize_switch_reason(reason)
        now = datetime.now(timezone.utc)
        updated = self.store.update_session(session_id, {
            "path_id": new_path.id,
            "current_step_index": 0,
            "last_active_at": now,
            "metadata": {
                "path_switched": True,
                "switch_timestamp": now.isoformat(),
                "switch_reason": switch_reason.value,
                "switch_note": note,
                "previous_path_id": session.path_id,
            },
        })
        logger.info(f"Switched session {session_id} from path {session.path_id} to {new_path.id}")

        first_step = next(iter(new_path.ordered_steps()), None)
        self.events.track(
            "path_switched",
            user_id=session.user_id,
            organization_id=session.organization_id,
            session_id=session_id,
            path_id=new_path.id,
            step_id=first_step.id if first_step else None,
            event_data={
                "previous_path_id": session.path_id,
                "new_path_id": new_path.id,
                "switch_reason": switch_reason.value,
                "note": note,
            },
        )
        self.events.audit(
            "path_switched",
            "session",
            entity_id=session_id,
            user_id=session.user_id,
            details={"previous_path_id": session.path_id, "new_path_id": new_path.id},
        )
        return updated.model_copy(update={"path": new_path})

    def _track_status(self, event_type: str, session: SessionRecord, data: Optional[dict] = None) -> None:
        self.events.track(
            event_type,
            user_id=session.user_id,
            organization_id=session.organization_id,
            session_id=session.id,
            path_id=session.path_id,
            event_data={"status": session.status, **(data or {})},
        )
