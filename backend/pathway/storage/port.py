"""
The storage port consumed by the onboarding services.

Any implementation must make ``upsert_progress`` and
``insert_achievement`` atomic on their uniqueness keys and must raise
StorageError (never a driver exception) when a call fails.
"""

from typing import Any, Dict, List, Optional, Protocol, Tuple, runtime_checkable

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


@runtime_checkable
class OnboardingStore(Protocol):
    # Catalog
    def find_matching_paths(self, path_filter: PathFilter) -> List[PathRecord]: ...

    def get_path_with_steps(self, path_id: str) -> Optional[PathRecord]: ...

    def save_path(self, definition: PathDefinition) -> PathRecord: ...

    # Sessions
    def get_session_with_path(self, session_id: str) -> Optional[SessionRecord]: ...

    def create_session(
        self,
        user_id: str,
        path_id: str,
        session_type: str,
        organization_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        preferences: Optional[Dict[str, Any]] = None,
    ) -> SessionRecord: ...

    def update_session(self, session_id: str, fields: Dict[str, Any]) -> SessionRecord: ...

    def transition_session(
        self, session_id: str, status: str, metadata: Optional[Dict[str, Any]] = None
    ) -> SessionRecord: ...

    def list_user_sessions(self, user_id: str, status: Optional[str] = None) -> List[SessionRecord]: ...

    # Progress
    def upsert_progress(
        self, session_id: str, step_id: str, user_id: str, fields: Dict[str, Any]
    ) -> ProgressRecord: ...

    def list_progress(self, session_id: str) -> List[ProgressRecord]: ...

    # Milestones
    def list_active_milestones(self) -> List[MilestoneRecord]: ...

    def save_milestone(self, definition: MilestoneDefinition) -> MilestoneRecord: ...

    def insert_achievement(
        self, user_id: str, session_id: str, milestone_id: str, data: Dict[str, Any]
    ) -> Tuple[AchievementRecord, bool]: ...

    def list_achievements(self, session_id: str) -> List[AchievementRecord]: ...

    # Side effects
    def insert_analytics_event(self, event: AnalyticsEvent) -> None: ...

    def create_audit_log(self, entry: AuditEntry) -> None: ...
