"""
Alternative path suggestions for users who report problems with their path.
"""

from typing import Callable, Dict, List, Tuple
import logging

from pathway.core.exceptions import NotFound
from pathway.models.path import DIFFICULTY_RANK
from pathway.schemas import AlternativePath, PathFilter, PathRecord, ReportedIssue
from pathway.storage import OnboardingStore


# Configure logging
logger = logging.getLogger(__name__)


SEVERITY_RANK = {"high": 3, "medium": 2, "low": 1}


def _rank(level: str) -> int:
    return DIFFICULTY_RANK.get(level, 0)


def _easier(current: PathRecord) -> Callable[[PathRecord], bool]:
    def accept(candidate: PathRecord) -> bool:
        if _rank(candidate.difficulty_level) < _rank(current.difficulty_level):
            return True
        return (
            _rank(candidate.difficulty_level) == _rank(current.difficulty_level)
            and candidate.estimated_duration > current.estimated_duration
        )
    return accept


# issue type -> (candidate filter factory, reason template)
ISSUE_RULES: Dict[str, Tuple[Callable[[PathRecord], Callable[[PathRecord], bool]], str]] = {
    "difficulty": (_easier, "Gentler difficulty or more time per topic to address difficulty issues"),
    "pacing": (
        lambda current: lambda c: c.estimated_duration != current.estimated_duration,
        "Different overall length to address pacing issues",
    ),
    "engagement": (
        lambda current: lambda c: c.estimated_duration < current.estimated_duration,
        "Shorter path to address engagement issues",
    ),
    "content_type": (
        lambda current: lambda c: True,
        "Different content mix to address content_type issues",
    ),
}


def suggest_alternative_paths(
    store: OnboardingStore, session_id: str, issues: List[ReportedIssue]
) -> List[AlternativePath]:
    """
    Suggest replacement paths for the role of a session's current path.
    
    Candidates are filtered per reported issue, deduplicated, and ranked by
    issue severity, then closeness in duration, then name. The current path
    is never suggested.
    
    Raises:
        NotFound: If the session or its path does not exist
    """
    session = store.get_session_with_path(session_id)
    if session is None or session.path is None:
        raise NotFound("Session or path not found", {"session_id": session_id})
    current = session.path
    
    if not issues:
        return []
    
    candidates = store.find_matching_paths(PathFilter(
        target_role=current.target_role,
        subscription_tier=session.metadata.get("subscription_tier"),
        exclude_path_ids=(current.id,),
    ))
    
    ranked: Dict[str, Tuple[int, AlternativePath]] = {}
    for issue in sorted(issues, key=lambda i: -SEVERITY_RANK[i.severity]):
        make_filter, reason = ISSUE_RULES[issue.type]
        accept = make_filter(current)
        for candidate in candidates:
            if candidate.id == current.id or candidate.id in ranked or not accept(candidate):
                continue
            ranked[candidate.id] = (SEVERITY_RANK[issue.severity], AlternativePath(
                path_id=candidate.id,
                name=candidate.name,
                reason=reason,
                estimated_duration=candidate.estimated_duration,
                difficulty_level=candidate.difficulty_level,
                focus_areas=[issue.type],
            ))
    
    suggestions = sorted(
        ranked.values(),
        key=lambda item: (
            -item[0],
            abs(item[1].estimated_duration - current.estimated_duration),
            item[1].name,
        ),
    )
    logger.debug(f"Suggested {len(suggestions)} alternative paths for session {session_id}")
    return [alternative for _, alternative in suggestions]
