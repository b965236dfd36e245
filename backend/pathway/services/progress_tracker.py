"""
Progress tracking for onboarding sessions.

Records per-step outcomes, rolls them up into session progress, awards
milestones and reports the steps that keep tripping a user up.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union
import logging

from pydantic import ValidationError as SchemaValidationError

from pathway.core.config import settings
from pathway.core.exceptions import NotFound, StorageError, ValidationError
from pathway.models.progress import ProgressStatus
from pathway.models.session import SessionStatus
from pathway.schemas import (
    AchievementRecord,
    Blocker,
    OverallProgress,
    ProgressAnalytics,
    ProgressDelta,
    ProgressRecord,
    ProgressReport,
    SessionRecord,
    StepResult,
)
from pathway.storage import OnboardingStore

from .events import EventRecorder, best_effort
from .next_step import completed_step_ids, next_step_index, percentage


# Configure logging
logger = logging.getLogger(__name__)


# blocker_type -> (description, suggested resolution)
BLOCKER_TEMPLATES = {
    "user_understanding": (
        "User input validation failures suggest understanding issues",
        "Provide clearer instructions and input examples",
    ),
    "technical": (
        "Technical errors are preventing step completion",
        "Check system functionality and provide technical support",
    ),
    "system": (
        "System performance issues are affecting user experience",
        "Optimize system performance and check network connectivity",
    ),
    "content": (
        "User encountered difficulties with this step",
        "Review step content and provide additional guidance",
    ),
    "engagement": (
        "Low user engagement detected",
        "Add interactive elements or gamification",
    ),
}

PATTERN_STEP_ID = "pattern_based"

FINISHED_SESSION_STATUSES = frozenset({
    SessionStatus.COMPLETED.value,
    SessionStatus.ABANDONED.value,
})


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _error_rate(record: ProgressRecord) -> float:
    result = record.step_result or {}
    value = result.get("error_rate", result.get("errorRate", 0))
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def classify_errors(errors: Dict[str, Any]) -> Optional[str]:
    """Map the keys of a progress record's ``errors`` to a blocker type."""
    keys = set(errors or {})
    if keys & {"validation", "input"}:
        return "user_understanding"
    if keys & {"technical", "system"}:
        return "technical"
    if keys & {"timeout", "network"}:
        return "system"
    return None


class ProgressTracker:
    """
    Progress tracking service.

    Every primary write goes through ``store.upsert_progress``; analytics,
    milestone checks and the session roll-up are best-effort.
    """

    def __init__(self, store: OnboardingStore, events: Optional[EventRecorder] = None):
        self.store = store
        self.events = events or EventRecorder(store)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def track_step_progress(
        self,
        session_id: str,
        step_id: str,
        user_id: str,
        delta: Union[ProgressDelta, Dict[str, Any]]
    ) -> ProgressRecord:
        """
        Create or update the progress record for one step.

        Args:
            session_id: Session the step belongs to
            step_id: Step being tracked
            user_id: Acting user
            delta: Fields to write; a new record defaults to in_progress

        Returns:
            ProgressRecord: The record after the write

        Raises:
            NotFound: If the session, its path or the step does not exist
            ValidationError: If the delta is malformed or would reopen a finished step
            StorageError: If the write fails
        """
        if not isinstance(delta, ProgressDelta):
            try:
                delta = ProgressDelta.model_validate(delta)
            except SchemaValidationError as e:
                raise ValidationError(
                    "Invalid progress delta",
                    {"errors": [
                        {"loc": [str(part) for part in err["loc"]], "msg": err["msg"]}
                        for err in e.errors()
                    ]}
                ) from e
        fields = delta.to_fields()

        session = self._load_session(session_id)
        if session.path.step(step_id) is None:
            raise NotFound(
                "Step not found on the session's path",
                {"session_id": session_id, "path_id": session.path_id, "step_id": step_id}
            )

        try:
            record = self.store.upsert_progress(session_id, step_id, user_id, fields)
        except StorageError as e:
            logger.error(f"Failed to track progress of step {step_id} in session {session_id}: {e}")
            raise StorageError(
                "Failed to track step progress",
                operation="track_step_progress",
                details={"cause": e.message, "storage_operation": e.operation}
            ) from e

        self.events.track(
            "step_progress",
            user_id=user_id,
            session_id=session_id,
            step_id=step_id,
            event_data=delta.model_dump(mode="json", exclude_unset=True),
        )
        return record

    def start_step(self, session_id: str, step_id: str, user_id: str) -> ProgressRecord:
        return self.track_step_progress(session_id, step_id, user_id, ProgressDelta(
            status=ProgressStatus.IN_PROGRESS.value,
            started_at=datetime.now(timezone.utc),
            attempts=1,
        ))

    def skip_step(
        self, session_id: str, step_id: str, user_id: str, reason: str = "user_choice"
    ) -> ProgressRecord:
        return self.track_step_progress(session_id, step_id, user_id, ProgressDelta(
            status=ProgressStatus.SKIPPED.value,
            completed_at=datetime.now(timezone.utc),
            step_result={"skip_reason": reason},
        ))

    def fail_step(
        self,
        session_id: str,
        step_id: str,
        user_id: str,
        errors: Dict[str, Any],
        attempts: int = 1
    ) -> ProgressRecord:
        return self.track_step_progress(session_id, step_id, user_id, ProgressDelta(
            status=ProgressStatus.FAILED.value,
            errors=errors,
            attempts=attempts,
            completed_at=datetime.now(timezone.utc),
        ))

    def record_step_completion(
        self, session_id: str, step_id: str, user_id: str, result: StepResult
    ) -> ProgressRecord:
        """
        Record the outcome of a finished step.

        A completed step triggers a milestone check. The session roll-up
        is refreshed whatever the outcome. Neither can fail the call.
        """
        fields = {
            "status": result.status,
            "completed_at": datetime.now(timezone.utc),
            "time_spent": result.time_spent,
            "user_actions": result.user_actions,
            "feedback": result.feedback,
            "step_result": result.result,
            "errors": result.errors,
            "achievements": result.achievements,
        }
        if result.score is not None:
            fields["score"] = result.score
        delta = ProgressDelta(**fields)

        record = self.track_step_progress(session_id, step_id, user_id, delta)

        if result.status == ProgressStatus.COMPLETED.value:
            best_effort("check milestones", self.check_and_award_milestones, session_id, step_id, user_id)
            self.events.track(
                "step_complete",
                user_id=user_id,
                session_id=session_id,
                step_id=step_id,
                event_data={"time_spent": result.time_spent, "score": result.score},
            )

        best_effort("update session progress", self.refresh_session_progress, session_id)
        return record

    def refresh_session_progress(self, session_id: str) -> Optional[SessionRecord]:
        """
        Copy the live progress roll-up onto the session row.

        Completed and abandoned sessions keep their final figures.
        """
        session = self._load_session(session_id)
        if session.status in FINISHED_SESSION_STATUSES:
            return None
        progress = self.get_overall_progress(session_id)
        return self.store.update_session(session_id, {
            "progress_percentage": float(progress.overall_progress),
            "time_spent": progress.time_spent,
            "current_step_index": progress.current_step_index,
            "last_active_at": datetime.now(timezone.utc),
        })

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _load_session(self, session_id: str) -> SessionRecord:
        session = self.store.get_session_with_path(session_id)
        if session is None or session.path is None:
            raise NotFound("Session or path not found", {"session_id": session_id})
        return session

    def get_overall_progress(self, session_id: str) -> OverallProgress:
        """
        Roll up a session's progress records.

        ``overall_progress`` counts required steps only and is 0 for a
        path without required steps.

        Raises:
            NotFound: If the session or its path does not exist
        """
        session = self._load_session(session_id)
        records = self.store.list_progress(session_id)
        achievements = self.store.list_achievements(session_id)

        completed = completed_step_ids(records)
        required = session.path.required_steps
        done = sum(1 for step in required if step.id in completed)

        timestamps = [r.updated_at for r in records if r.updated_at] + [
            t for t in (session.updated_at, session.last_active_at) if t
        ]

        return OverallProgress(
            session_id=session_id,
            current_step_index=next_step_index(session.path, records),
            completed_steps=[r.step_id for r in records if r.status == ProgressStatus.COMPLETED.value],
            skipped_steps=[r.step_id for r in records if r.status == ProgressStatus.SKIPPED.value],
            milestones=achievements,
            overall_progress=percentage(done, len(required)),
            time_spent=sum(r.time_spent for r in records),
            last_updated=max(timestamps, key=as_utc) if timestamps else None,
        )

    def identify_blockers(self, session_id: str) -> List[Blocker]:
        """
        Find steps the user keeps struggling with, plus session-wide patterns.

        A step is a candidate when it failed, carries errors, was attempted
        more than BLOCKER_ATTEMPT_THRESHOLD times or reports an error rate
        above BLOCKER_ERROR_RATE_THRESHOLD.
        """
        session = self._load_session(session_id)
        records = self.store.list_progress(session_id)

        blockers = []
        for record in records:
            blocker = self._analyze_step(record, session)
            if blocker is not None:
                blockers.append(blocker)

        blockers.extend(self._pattern_blockers(records))
        logger.debug(f"Identified {len(blockers)} blockers in session {session_id}")
        return blockers

    def _analyze_step(self, record: ProgressRecord, session: SessionRecord) -> Optional[Blocker]:
        error_rate = _error_rate(record)
        failed = record.status == ProgressStatus.FAILED.value
        many_attempts = record.attempts > settings.BLOCKER_ATTEMPT_THRESHOLD
        high_error_rate = error_rate > settings.BLOCKER_ERROR_RATE_THRESHOLD

        if not (failed or record.errors or many_attempts or high_error_rate):
            return None

        patterns = []
        severity = "medium" if failed else "low"
        blocker_type = classify_errors(record.errors)

        if blocker_type == "user_understanding":
            patterns.append("validation_failures")
            severity = "medium"
        elif blocker_type == "technical":
            patterns.append("technical_errors")
            severity = "high"
        elif blocker_type == "system":
            patterns.append("system_performance")
            severity = "high"

        if high_error_rate:
            patterns.append("high_error_rate")
            if blocker_type is None:
                blocker_type = "content"
                severity = "medium"

        if record.attempts > 5:
            patterns.append("multiple_attempts")
            severity = "high"
            if blocker_type is None:
                blocker_type = "user_understanding"
        elif many_attempts:
            patterns.append("repeated_attempts")

        blocker_type = blocker_type or "content"
        description, resolution = BLOCKER_TEMPLATES[blocker_type]
        if "multiple_attempts" in patterns and blocker_type == "user_understanding" and not record.errors:
            description = "Multiple failed attempts indicate comprehension issues"
            resolution = "Provide alternative learning materials or one-on-one support"

        step = session.path.step(record.step_id)
        return Blocker(
            step_id=record.step_id,
            step_title=step.title if step else "Unknown Step",
            blocker_type=blocker_type,
            description=description,
            frequency=record.attempts or 1,
            suggested_resolution=resolution,
            severity=severity,
            patterns=patterns,
        )

    @staticmethod
    def _pattern_blockers(records: List[ProgressRecord]) -> List[Blocker]:
        blockers = []
        failed = [r for r in records if r.status == ProgressStatus.FAILED.value]
        skipped = [r for r in records if r.status == ProgressStatus.SKIPPED.value]

        if len(failed) >= settings.BLOCKER_CONSISTENT_FAILURES:
            blockers.append(Blocker(
                step_id=PATTERN_STEP_ID,
                step_title="Overall Progress Pattern",
                blocker_type="user_understanding",
                description="User is consistently failing multiple steps",
                frequency=len(failed),
                suggested_resolution="Consider switching to an easier onboarding path or providing additional support",
                severity="high",
                patterns=["consistent_failures"],
            ))

        if len(skipped) >= settings.BLOCKER_EXCESSIVE_SKIPS:
            blockers.append(Blocker(
                step_id=PATTERN_STEP_ID,
                step_title="Overall Progress Pattern",
                blocker_type="engagement",
                description="User is skipping many steps, indicating low engagement",
                frequency=len(skipped),
                suggested_resolution="Review content relevance and add more engaging elements",
                severity="medium",
                patterns=["excessive_skipping"],
            ))

        return blockers

    # ------------------------------------------------------------------
    # Milestones
    # ------------------------------------------------------------------

    def check_and_award_milestones(self, session_id: str, step_id: str, user_id: str) -> List[AchievementRecord]:
        """Award every active milestone whose criteria the session now meets."""
        milestones = self.store.list_active_milestones()
        if not milestones:
            return []

        progress = self.get_overall_progress(session_id)
        awarded = []
        for milestone in milestones:
            if milestone.criteria.is_met(progress.overall_progress, progress.completed_steps, progress.time_spent):
                awarded.append(self.award_milestone(user_id, session_id, milestone.id, {
                    "trigger_step": step_id,
                    "progress_at_award": progress.overall_progress,
                }))
        return awarded

    def award_milestone(
        self,
        user_id: str,
        session_id: str,
        milestone_id: str,
        data: Optional[Dict[str, Any]] = None
    ) -> AchievementRecord:
        """
        Award a milestone once per session.

        Returns the existing achievement when it was already earned.
        """
        achievement, created = self.store.insert_achievement(user_id, session_id, milestone_id, data or {})
        if created:
            logger.info(f"User {user_id} earned milestone {milestone_id} in session {session_id}")
            self.events.track(
                "milestone_reached",
                user_id=user_id,
                session_id=session_id,
                event_data={"milestone_id": milestone_id, **(data or {})},
            )
        return achievement

    def get_user_achievements(self, session_id: str) -> List[AchievementRecord]:
        """Achievements earned in a session, newest first."""
        return self.store.list_achievements(session_id)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def generate_progress_report(self, session_id: str) -> ProgressReport:
        overall = self.get_overall_progress(session_id)
        blockers = self.identify_blockers(session_id)
        achievements = self.get_user_achievements(session_id)
        records = self.store.list_progress(session_id)

        total = len(records)
        completed = sum(1 for r in records if r.status == ProgressStatus.COMPLETED.value)
        skipped = sum(1 for r in records if r.status == ProgressStatus.SKIPPED.value)
        failed = sum(1 for r in records if r.status == ProgressStatus.FAILED.value)

        completion_rate = completed / total * 100 if total else 0.0
        skip_rate = skipped / total * 100 if total else 0.0
        failure_rate = failed / total * 100 if total else 0.0
        average_time = overall.time_spent / completed if completed else 0.0
        engagement_score = max(0.0, 100 - skip_rate * 2 - failure_rate * 3)
        difficulty_score = failure_rate * 2 + average_time / 10 + len(blockers) * 10

        analytics = ProgressAnalytics(
            total_time_spent=overall.time_spent,
            average_time_per_step=round(average_time, 2),
            completion_rate=round(completion_rate, 2),
            skip_rate=round(skip_rate, 2),
            failure_rate=round(failure_rate, 2),
            engagement_score=round(engagement_score, 2),
            difficulty_score=round(difficulty_score, 2),
            recommendations=report_recommendations(
                completion_rate, skip_rate, failure_rate, engagement_score,
                difficulty_score, average_time, len(blockers)
            ),
        )

        return ProgressReport(
            session_id=session_id,
            overall_progress=overall,
            blockers=blockers,
            achievements=achievements,
            analytics=analytics,
        )


def report_recommendations(
    completion_rate: float,
    skip_rate: float,
    failure_rate: float,
    engagement_score: float,
    difficulty_score: float,
    average_time: float,
    blocker_count: int
) -> List[str]:
    recommendations = []
    if completion_rate < 50:
        recommendations.append("Consider providing additional support or switching to an easier path")
    if skip_rate > 30:
        recommendations.append("Review content relevance and add more engaging elements")
    if failure_rate > 20:
        recommendations.append("Simplify step instructions and provide better examples")
    if engagement_score < 40:
        recommendations.append("Add interactive elements and gamification to increase engagement")
    if difficulty_score > 60:
        recommendations.append("Consider breaking down complex steps into smaller, manageable tasks")
    if average_time > 20:
        recommendations.append("Optimize step content for better time efficiency")
    if blocker_count > 3:
        recommendations.append("Address identified blockers with targeted interventions")
    if not recommendations:
        recommendations.append("Progress is on track, continue with current approach")
    return recommendations
