"""
Adaptation engine: turn observed behavior into a recommended adjustment.

Rules are evaluated in a fixed order and the first match wins:
difficulty, engagement, pacing, content type, then no adjustment.
"""

from datetime import datetime, timezone
from typing import List, Optional
import logging

from pathway.core.config import settings
from pathway.core.exceptions import NotFound
from pathway.schemas import AdaptationDecision, AdjustmentType, PathRecord, SessionRecord, UserBehavior
from pathway.storage import OnboardingStore

from .events import EventRecorder, best_effort
from .next_step import get_next_step


# Configure logging
logger = logging.getLogger(__name__)


NO_ADJUSTMENT_REASON = "No adjustments needed — user behavior indicates good progress"

DIFFICULTY_ACTIONS = [
    "Consider providing additional support resources",
    "Offer one-on-one guidance sessions",
    "Break down complex steps into smaller tasks",
]
FAST_PACING_ACTIONS = [
    "Provide advanced or accelerated content",
    "Offer optional deep-dive materials",
]
SLOW_PACING_ACTIONS = [
    "Allow more time for each step",
    "Provide additional practice exercises",
]
CONTENT_TYPE_ACTIONS = [
    "Increase interactive elements",
    "Add multimedia content (videos, animations)",
    "Include hands-on exercises",
]
ENGAGEMENT_ACTIONS = [
    "Add gamification elements",
    "Provide more frequent feedback",
    "Include social learning opportunities",
]
DEFAULT_ACTIONS = [
    "Monitor user progress closely",
    "Be ready to provide additional support",
]


def recommended_actions(adjustment_type: AdjustmentType, reason: str) -> List[str]:
    """
    Canned suggestions for an adjustment.

    Pacing branches on whether ``reason`` contains "fast" or "slow".
    """
    adjustment_type = AdjustmentType(adjustment_type)
    if adjustment_type == AdjustmentType.DIFFICULTY:
        return list(DIFFICULTY_ACTIONS)
    if adjustment_type == AdjustmentType.PACING:
        if "fast" in reason:
            return list(FAST_PACING_ACTIONS)
        if "slow" in reason:
            return list(SLOW_PACING_ACTIONS)
        return list(DEFAULT_ACTIONS)
    if adjustment_type == AdjustmentType.CONTENT_TYPE:
        return list(CONTENT_TYPE_ACTIONS)
    if adjustment_type == AdjustmentType.ENGAGEMENT:
        return list(ENGAGEMENT_ACTIONS)
    return list(DEFAULT_ACTIONS)


def _mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def pace_direction(behavior: UserBehavior, path: PathRecord) -> Optional[str]:
    """
    Compare observed time against authored estimates.

    Interaction time is in seconds, step estimates in minutes. When none
    of the interacted steps carries an estimate, fall back to absolute
    seconds-per-step thresholds.

    Returns:
        "fast", "slow" or None
    """
    interactions = behavior.step_interactions
    if not interactions:
        return None

    observed_minutes = 0.0
    estimated_minutes = 0
    for interaction in interactions:
        step = path.step(interaction.step_id)
        if step is not None and step.estimated_time > 0:
            observed_minutes += interaction.time_spent / 60
            estimated_minutes += step.estimated_time

    if estimated_minutes > 0:
        ratio = observed_minutes / estimated_minutes
        if ratio < settings.ADAPT_FAST_PACE_RATIO:
            return "fast"
        if ratio > settings.ADAPT_SLOW_PACE_RATIO:
            return "slow"
        return None

    average_seconds = _mean([i.time_spent for i in interactions])
    if average_seconds < settings.ADAPT_FAST_SECONDS_PER_STEP:
        return "fast"
    if average_seconds > settings.ADAPT_SLOW_SECONDS_PER_STEP:
        return "slow"
    return None


class AdaptationEngine:
    """
    Recommends how a session's path should be adjusted.
    """

    def __init__(self, store: OnboardingStore, events: Optional[EventRecorder] = None):
        self.store = store
        self.events = events or EventRecorder(store)

    def decide(self, session: SessionRecord, behavior: UserBehavior) -> AdaptationDecision:
        """Apply the ordered rules to one session and return the first match."""
        path = session.path
        interactions = behavior.step_interactions

        mean_error_rate = _mean([i.error_rate for i in interactions])
        if behavior.struggling_areas or mean_error_rate > settings.ADAPT_ERROR_RATE_THRESHOLD:
            if behavior.struggling_areas:
                reason = f"User is struggling with {len(behavior.struggling_areas)} step(s)"
            else:
                reason = f"User is struggling: average error rate {mean_error_rate:.0%}"
            return self._decision(session, AdjustmentType.DIFFICULTY, reason)

        mean_skip_rate = _mean([i.skip_rate for i in interactions])
        if behavior.engagement_level == "low" and mean_skip_rate > settings.ADAPT_SKIP_RATE_THRESHOLD:
            reason = f"Low engagement with a skip rate of {mean_skip_rate:.0%}"
            return self._decision(session, AdjustmentType.ENGAGEMENT, reason)

        direction = pace_direction(behavior, path)
        if direction == "fast":
            return self._decision(
                session, AdjustmentType.PACING, "User is completing steps faster than estimated"
            )
        if direction == "slow":
            return self._decision(
                session, AdjustmentType.PACING, "User is progressing more slowly than estimated"
            )

        if behavior.preferred_content_types:
            step = get_next_step(path, self.store.list_progress(session.id))
            content_type = step.content_type if step else None
            if content_type and content_type not in behavior.preferred_content_types:
                reason = (
                    f"Next step content type '{content_type}' does not match preferred types: "
                    f"{', '.join(behavior.preferred_content_types)}"
                )
                return self._decision(session, AdjustmentType.CONTENT_TYPE, reason)

        return self._decision(session, AdjustmentType.NONE, NO_ADJUSTMENT_REASON)

    @staticmethod
    def _decision(session: SessionRecord, adjustment_type: AdjustmentType, reason: str) -> AdaptationDecision:
        return AdaptationDecision(
            session_id=session.id,
            adjustment_type=adjustment_type,
            reason=reason,
            recommended_actions=recommended_actions(adjustment_type, reason),
        )

    def adapt_path(self, session_id: str, behavior: UserBehavior) -> AdaptationDecision:
        """
        Recommend an adjustment for a session based on observed behavior.

        Args:
            session_id: Session to adapt
            behavior: Aggregated behavioral signals

        Returns:
            AdaptationDecision: The chosen adjustment; ``none`` is a normal result

        Raises:
            NotFound: If the session or its path cannot be resolved
            StorageError: If the session cannot be read
        """
        session = self.store.get_session_with_path(session_id)
        if session is None or session.path is None:
            raise NotFound("Session or path not found", {"session_id": session_id})

        decision = self.decide(session, behavior)
        logger.debug(
            f"Adaptation for session {session_id}: {decision.adjustment_type.value} ({decision.reason})"
        )

        if decision.adjustment_type != AdjustmentType.NONE:
            best_effort("record adaptation on session", self.store.update_session, session_id, {
                "metadata": {
                    "path_adapted": True,
                    "adaptation_timestamp": datetime.now(timezone.utc).isoformat(),
                    "adaptation_reason": decision.reason,
                    "adaptation_type": decision.adjustment_type.value,
                },
            })

        self.events.audit(
            "path_adapted",
            "session",
            entity_id=session_id,
            user_id=session.user_id,
            details=decision.model_dump(mode="json"),
        )
        self.events.track(
            "path_adapted",
            user_id=session.user_id,
            organization_id=session.organization_id,
            session_id=session_id,
            path_id=session.path_id,
            event_data={
                "adjustment_type": decision.adjustment_type.value,
                "adjustment_reason": decision.reason,
                "recommended_actions": decision.recommended_actions,
                "user_behavior": behavior.model_dump(mode="json"),
            },
        )
        return decision
