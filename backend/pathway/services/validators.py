"""
Business-rule checks over sessions and paths.

Both validators return structured results instead of raising, so a
caller can render the outcome directly.
"""

from typing import Optional, Union
import logging

from pathway.schemas import CompletionValidation, PathSwitchValidation, SwitchReason
from pathway.storage import OnboardingStore

from .next_step import completed_step_ids, percentage


# Configure logging
logger = logging.getLogger(__name__)


def normalize_switch_reason(reason: Union[SwitchReason, str, None]) -> Optional[SwitchReason]:
    """Map "too-easy", "Too Easy" and "too_easy" alike onto SwitchReason.TOO_EASY."""
    if reason is None:
        return None
    if isinstance(reason, SwitchReason):
        return reason
    key = reason.strip().lower().replace("-", "_").replace(" ", "_")
    try:
        return SwitchReason(key)
    except ValueError:
        return None


def validate_path_switch(
    current_path_id: str,
    new_path_id: Optional[str],
    reason: Union[SwitchReason, str, None],
    user_role: Optional[str] = None
) -> PathSwitchValidation:
    """
    Check a path switch request, collecting every violation.
    
    Args:
        current_path_id: Path the session is on
        new_path_id: Requested path
        reason: Switch reason category
        user_role: Role of the requesting user
        
    Returns:
        PathSwitchValidation: ``is_valid`` is True only when ``issues`` is empty
    """
    issues = []
    
    if new_path_id and current_path_id == new_path_id:
        issues.append("Cannot switch to the same path")
    
    raw_reason = reason.value if isinstance(reason, SwitchReason) else (reason or "")
    if not raw_reason.strip():
        issues.append("Switch reason is required")
    elif normalize_switch_reason(reason) is None:
        issues.append(
            "Switch reason should be one of: "
            + ", ".join(r.value for r in SwitchReason)
        )
    
    if not new_path_id:
        issues.append("New path ID is required")
    
    logger.debug(
        f"Path switch {current_path_id} -> {new_path_id} for role {user_role}: "
        f"{len(issues)} issue(s)"
    )
    return PathSwitchValidation(is_valid=not issues, issues=issues)


def validate_path_completion(store: OnboardingStore, session_id: str) -> CompletionValidation:
    """
    Check whether every required step of a session's path is completed.
    
    An unknown session or path yields an invalid result, not an error.
    Storage failures still raise StorageError.
    """
    session = store.get_session_with_path(session_id)
    if session is None or session.path is None:
        return CompletionValidation(is_valid=False, issues=["Session or path not found"])
    
    steps = session.path.ordered_steps()
    required = session.path.required_steps
    completed = completed_step_ids(store.list_progress(session_id))
    
    missing = [step.id for step in required if step.id not in completed]
    issues = []
    if not steps:
        issues.append("Path has no steps defined")
    if missing:
        issues.append(f"Missing {len(missing)} required steps")
    
    required_ids = {step.id for step in required}
    for step in steps:
        if step.id not in completed:
            continue
        unmet = [dep for dep in step.dependencies if dep in required_ids and dep not in completed]
        if unmet:
            issues.append(f'Step "{step.title}" completed without meeting dependencies')
    
    return CompletionValidation(
        is_valid=not missing,
        completion_percentage=percentage(len(required) - len(missing), len(required)),
        missing_steps=missing,
        issues=issues,
    )
