"""
Catalog authoring for the onboarding engine.

Paths are authored outside the engine; this module is the import gate
that keeps their step graphs well formed before they reach storage.
"""

from collections import deque
from typing import Dict, List, Sequence
import logging

from pathway.core.exceptions import ValidationError
from pathway.models.path import new_id
from pathway.schemas import MilestoneDefinition, MilestoneRecord, PathDefinition, PathRecord, StepDefinition
from pathway.storage import OnboardingStore


# Configure logging
logger = logging.getLogger(__name__)


def validate_step_graph(steps: Sequence[StepDefinition]) -> List[str]:
    """
    Check that a path's steps form a dependency DAG.
    
    Args:
        steps: Steps of one path, each with an id
        
    Returns:
        List[str]: Step ids in a valid topological order
        
    Raises:
        ValidationError: listing every problem found
    """
    issues: List[str] = []
    ids = [step.id for step in steps]
    known = set(ids)
    
    if any(step_id is None for step_id in ids):
        issues.append("Every step needs an id before its graph can be checked")
    if len(known) != len(ids):
        issues.append("Duplicate step ids")
    
    orders = [step.step_order for step in steps]
    duplicates = sorted({order for order in orders if orders.count(order) > 1})
    for order in duplicates:
        issues.append(f"Duplicate step_order {order}")
    
    for step in steps:
        for dep in step.dependencies:
            if dep not in known:
                issues.append(f"Step {step.id} depends on {dep}, which is not a step of this path")
    
    if issues:
        raise ValidationError("Invalid step graph", {"issues": issues})
    
    # Kahn's algorithm
    in_degree: Dict[str, int] = {step.id: len(set(step.dependencies)) for step in steps}
    dependents: Dict[str, List[str]] = {step.id: [] for step in steps}
    for step in steps:
        for dep in set(step.dependencies):
            dependents[dep].append(step.id)
    
    ordered_steps = sorted(steps, key=lambda s: s.step_order)
    queue = deque(step.id for step in ordered_steps if in_degree[step.id] == 0)
    order: List[str] = []
    while queue:
        step_id = queue.popleft()
        order.append(step_id)
        for dependent in dependents[step_id]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                queue.append(dependent)
    
    if len(order) != len(steps):
        cyclic = sorted(step_id for step_id, degree in in_degree.items() if degree > 0)
        raise ValidationError(
            "Invalid step graph",
            {"issues": [f"Dependency cycle among steps: {', '.join(cyclic)}"]}
        )
    
    return order


def import_path(store: OnboardingStore, definition: PathDefinition) -> PathRecord:
    """Validate a path's step graph and save it, replacing any existing steps."""
    steps = [
        step if step.id else step.model_copy(update={"id": new_id()})
        for step in definition.steps
    ]
    definition = definition.model_copy(update={"steps": steps})
    validate_step_graph(steps)
    
    path = store.save_path(definition)
    logger.info(f"Imported onboarding path '{path.name}' ({path.id})")
    return path


def import_milestone(store: OnboardingStore, definition: MilestoneDefinition) -> MilestoneRecord:
    milestone = store.save_milestone(definition)
    logger.info(f"Imported milestone '{milestone.name}' ({milestone.id})")
    return milestone
