"""Task state machine.

Tasks move forward along a single line of phases. ``failed`` can be
entered from any phase that is not terminal, and no phase is entered
twice.
"""

from reelsmith.domain.enums import TaskStatus
from reelsmith.exceptions import InvalidTransitionError

# Ordered happy path
TASK_SEQUENCE: tuple[TaskStatus, ...] = (
    TaskStatus.PENDING,
    TaskStatus.GENERATING_SCRIPT,
    TaskStatus.GENERATING_VIDEOS,
    TaskStatus.COMPOSITING,
    TaskStatus.UPLOADING,
    TaskStatus.COMPLETED,
)

STEP_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PENDING: frozenset({TaskStatus.GENERATING_SCRIPT, TaskStatus.FAILED}),
    TaskStatus.GENERATING_SCRIPT: frozenset({TaskStatus.GENERATING_VIDEOS, TaskStatus.FAILED}),
    TaskStatus.GENERATING_VIDEOS: frozenset({TaskStatus.COMPOSITING, TaskStatus.FAILED}),
    TaskStatus.COMPOSITING: frozenset({TaskStatus.UPLOADING, TaskStatus.FAILED}),
    TaskStatus.UPLOADING: frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED}),
    TaskStatus.COMPLETED: frozenset(),
    TaskStatus.FAILED: frozenset(),
}


def can_transition(current: TaskStatus, target: TaskStatus) -> bool:
    """Return True if a task in ``current`` may move to ``target``."""
    return target in STEP_TRANSITIONS[current]


def validate_transition(
    current: TaskStatus,
    target: TaskStatus,
    current_progress: int,
    target_progress: int,
) -> None:
    """Check a status/progress update against the state machine.

    Progress-only updates within the same non-terminal phase are allowed
    (the scene loop ramps progress inside ``generating_videos``), but
    progress may never go backwards except on the move into ``failed``.

    Raises:
        InvalidTransitionError: If the update is not allowed.
    """
    if current == target:
        if current.is_terminal:
            raise InvalidTransitionError(f"Task already {current}, cannot update")
    elif not can_transition(current, target):
        raise InvalidTransitionError(f"Cannot move task from {current} to {target}")

    if target == TaskStatus.FAILED:
        return

    if target_progress < current_progress:
        raise InvalidTransitionError(
            f"Progress cannot decrease ({current_progress} -> {target_progress})"
        )
