"""
Onboarding services: path matching, traversal, progress tracking,
adaptation, validation and alternative suggestions.
"""

from .adaptation import AdaptationEngine, recommended_actions
from .alternatives import suggest_alternative_paths
from .catalog import import_milestone, import_path, validate_step_graph
from .events import EventRecorder, best_effort
from .next_step import get_next_step, percentage
from .onboarding import OnboardingService
from .path_matcher import generate_personalized_path
from .progress_tracker import ProgressTracker
from .sessions import SessionService, determine_session_type
from .validators import validate_path_completion, validate_path_switch

__all__ = [
    "AdaptationEngine",
    "recommended_actions",
    "suggest_alternative_paths",
    "import_milestone",
    "import_path",
    "validate_step_graph",
    "EventRecorder",
    "best_effort",
    "get_next_step",
    "percentage",
    "OnboardingService",
    "generate_personalized_path",
    "ProgressTracker",
    "SessionService",
    "determine_session_type",
    "validate_path_completion",
    "validate_path_switch",
]
