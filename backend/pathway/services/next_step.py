"""
Dependency-gated traversal over a path's steps.
"""

from typing import Iterable, List, Optional, Set

from pathway.models.progress import ProgressStatus
from pathway.schemas import PathRecord, ProgressRecord, StepRecord


def completed_step_ids(progress_records: Iterable[ProgressRecord]) -> Set[str]:
    return {
        record.step_id for record in progress_records
        if record.status == ProgressStatus.COMPLETED.value
    }


def get_next_step(path: PathRecord, progress_records: Iterable[ProgressRecord]) -> Optional[StepRecord]:
    """
    Return the first step, in step order, that is not completed and whose
    dependencies are all completed.
    
    Steps are assumed to be a DAG already (checked on import), so this is
    a single linear scan. Returns None when nothing is eligible, which
    includes the case where every step is completed.
    """
    completed = completed_step_ids(progress_records)
    for step in path.ordered_steps():
        if step.id in completed:
            continue
        if all(dep in completed for dep in step.dependencies):
            return step
    return None


def next_step_index(path: PathRecord, progress_records: Iterable[ProgressRecord]) -> int:
    """Index of the next step within the ordered steps, or len(steps) when done."""
    steps: List[StepRecord] = path.ordered_steps()
    step = get_next_step(path, progress_records)
    if step is None:
        return len(steps)
    return next(i for i, s in enumerate(steps) if s.id == step.id)


def percentage(done: int, total: int) -> int:
    """Whole percentage rounded half up; 0 when there is nothing to do."""
    if total <= 0:
        return 0
    return int(100 * done / total + 0.5)
