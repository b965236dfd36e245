"""
Path matching: choose the onboarding path that best fits a user.
"""

from typing import List, Optional, Tuple
import logging

from pathway.core.exceptions import NotFound
from pathway.schemas import LearningPreferences, OnboardingContext, PathFilter, PathRecord
from pathway.storage import OnboardingStore

from .events import EventRecorder


# Configure logging
logger = logging.getLogger(__name__)


def score_duration_for_pace(duration: int, pace: str) -> int:
    """Score a path's estimated duration (minutes) against a pace preference."""
    if pace == "fast":
        if duration < 30:
            return 10
        if duration < 60:
            return 5
        return -5
    if pace == "slow":
        if duration > 90:
            return 10
        if duration > 60:
            return 5
        return -5
    return 10 if 30 <= duration <= 90 else 0


def score_path(path: PathRecord, context: OnboardingContext) -> int:
    """
    Rank a candidate path for a context.
    
    Role and tier fit always count; learning-profile signals count only
    when the caller supplied a profile.
    """
    profile = context.preferences
    score = 10
    
    if path.target_role == context.user_role:
        score += 20
    if path.subscription_tier is None or path.subscription_tier == context.subscription_tier:
        score += 15
    
    if not profile.has_profile:
        return score
    
    step_ids = {step.id for step in path.steps}
    score -= 5 * len(step_ids.intersection(profile.struggling_areas))
    score += 3 * len(step_ids.intersection(profile.strengths))
    score += score_duration_for_pace(path.estimated_duration, profile.pace_preference or "medium")
    
    styles = path.metadata.get("learning_styles") or path.metadata.get("learningStyles") or []
    if profile.learning_style and profile.learning_style in styles:
        score += 10
    
    return score


def rank_paths(paths: List[PathRecord], context: OnboardingContext) -> List[Tuple[int, PathRecord]]:
    """Highest score first, ties broken by name."""
    scored = [(score_path(path, context), path) for path in paths]
    return sorted(scored, key=lambda item: (-item[0], item[1].name))


def customize_path(path: PathRecord, profile: LearningPreferences) -> PathRecord:
    """Return a copy of ``path`` with step content hints for the user's profile."""
    steps = []
    for step in path.ordered_steps():
        content = dict(step.content)
        if profile.learning_style == "visual" and content:
            content.update({"emphasizeVisuals": True, "includeImages": True, "includeDiagrams": True})
        if "interactive" in profile.preferred_content_types and "interactive_elements" in content:
            content["interactive_elements"] = {
                **content["interactive_elements"],
                "enableInteractivity": True,
                "includeHandsOn": True,
            }
        steps.append(step.model_copy(update={"content": content}))
    return path.model_copy(update={"steps": steps})


def generate_personalized_path(
    store: OnboardingStore,
    user_id: str,
    context: OnboardingContext,
    events: Optional[EventRecorder] = None
) -> PathRecord:
    """
    Select the best active path for a user's role, tier and preferences.
    
    Args:
        store: Storage port
        user_id: User being onboarded
        context: Role, tier, organization and learning preferences
        events: Recorder for the ``path_generated`` analytics event
        
    Returns:
        PathRecord: The top-ranked path, customized for the user
        
    Raises:
        NotFound: If no active path matches the role and tier
        StorageError: If the catalog cannot be read
    """
    candidates = store.find_matching_paths(PathFilter(
        target_role=context.user_role,
        subscription_tier=context.subscription_tier,
        active_only=True,
    ))
    if not candidates:
        raise NotFound(
            "No suitable onboarding paths found for user context",
            {"user_role": context.user_role, "subscription_tier": context.subscription_tier}
        )
    
    ranked = rank_paths(candidates, context)
    score, selected = ranked[0]
    logger.debug(
        f"Ranked {len(ranked)} paths for user {user_id}: "
        f"selected {selected.id} with score {score}"
    )
    
    personalized = customize_path(selected, context.preferences)
    
    if events is not None:
        events.track(
            "path_generated",
            user_id=user_id,
            organization_id=context.organization_id,
            path_id=selected.id,
            event_data={
                "user_role": context.user_role,
                "subscription_tier": context.subscription_tier,
                "score": score,
                "candidates": len(candidates),
                "step_count": len(personalized.steps),
            },
        )
    
    return personalized
