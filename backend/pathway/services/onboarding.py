"""
Facade over the onboarding services.

The HTTP layer and other callers use this one object; it wires the
services to a shared store and event recorder.
"""

from typing import Any, Dict, List, Optional, Union

from pathway.core.exceptions import NotFound
from pathway.schemas import (
    AchievementRecord,
    AdaptationDecision,
    AlternativePath,
    Blocker,
    CompletionValidation,
    OnboardingContext,
    OverallProgress,
    PathDefinition,
    PathRecord,
    PathSwitchValidation,
    ProgressDelta,
    ProgressRecord,
    ProgressReport,
    ReportedIssue,
    SessionRecord,
    StepRecord,
    StepResult,
    SwitchReason,
    UserBehavior,
)
from pathway.storage import OnboardingStore

from .adaptation import AdaptationEngine
from .alternatives import suggest_alternative_paths
from .catalog import import_path
from .events import EventRecorder
from .next_step import get_next_step
from .path_matcher import generate_personalized_path
from .progress_tracker import ProgressTracker
from .sessions import SessionService
from .validators import validate_path_completion, validate_path_switch


class OnboardingService:
    """Single entry point to path matching, progress, adaptation and validation."""

    def __init__(self, store: OnboardingStore, events: Optional[EventRecorder] = None):
        self.store = store
        self.events = events or EventRecorder(store)
        self.tracker = ProgressTracker(store, self.events)
        self.adaptation = AdaptationEngine(store, self.events)
        self.sessions = SessionService(store, self.events, self.tracker)

    # Catalog
    def import_path(self, definition: PathDefinition) -> PathRecord:
        return import_path(self.store, definition)

    def get_path(self, path_id: str) -> PathRecord:
        path = self.store.get_path_with_steps(path_id)
        if path is None:
            raise NotFound("Onboarding path not found", {"path_id": path_id})
        return path

    def generate_personalized_path(self, user_id: str, context: OnboardingContext) -> PathRecord:
        return generate_personalized_path(self.store, user_id, context, self.events)

    # Sessions
    def start_session(self, user_id: str, context: OnboardingContext) -> SessionRecord:
        return self.sessions.start_session(user_id, context)

    def get_session(self, session_id: str) -> SessionRecord:
        return self.sessions.get_session(session_id)

    def list_user_sessions(self, user_id: str, status: Optional[str] = None) -> List[SessionRecord]:
        return self.store.list_user_sessions(user_id, status)

    def get_next_step(self, session_id: str) -> Optional[StepRecord]:
        session = self.store.get_session_with_path(session_id)
        if session is None or session.path is None:
            raise NotFound("Session or path not found", {"session_id": session_id})
        return get_next_step(session.path, self.store.list_progress(session_id))

    # Progress
    def track_step_progress(
        self, session_id: str, step_id: str, user_id: str, delta: Union[ProgressDelta, Dict[str, Any]]
    ) -> ProgressRecord:
        return self.tracker.track_step_progress(session_id, step_id, user_id, delta)

    def record_step_completion(
        self, session_id: str, step_id: str, user_id: str, result: StepResult
    ) -> ProgressRecord:
        return self.tracker.record_step_completion(session_id, step_id, user_id, result)

    def get_overall_progress(self, session_id: str) -> OverallProgress:
        return self.tracker.get_overall_progress(session_id)

    def identify_blockers(self, session_id: str) -> List[Blocker]:
        return self.tracker.identify_blockers(session_id)

    def generate_progress_report(self, session_id: str) -> ProgressReport:
        return self.tracker.generate_progress_report(session_id)

    def award_milestone(
        self, user_id: str, session_id: str, milestone_id: str, data: Optional[Dict[str, Any]] = None
    ) -> AchievementRecord:
        return self.tracker.award_milestone(user_id, session_id, milestone_id, data)

    def get_user_achievements(self, session_id: str) -> List[AchievementRecord]:
        return self.tracker.get_user_achievements(session_id)

    # Adaptation and validation
    def adapt_path(self, session_id: str, behavior: UserBehavior) -> AdaptationDecision:
        return self.adaptation.adapt_path(session_id, behavior)

    def suggest_alternative_paths(self, session_id: str, issues: List[ReportedIssue]) -> List[AlternativePath]:
        return suggest_alternative_paths(self.store, session_id, issues)

    def validate_path_switch(
        self,
        current_path_id: str,
        new_path_id: Optional[str],
        reason: Union[SwitchReason, str, None],
        user_role: Optional[str] = None
    ) -> PathSwitchValidation:
        return validate_path_switch(current_path_id, new_path_id, reason, user_role)

    def validate_path_completion(self, session_id: str) -> CompletionValidation:
        return validate_path_completion(self.store, session_id)
