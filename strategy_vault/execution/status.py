"""
Task status state machine.

Four states, two of them terminal:

    pending -> running -> completed
       |          |
       +----------+----> failed

No transition leaves a terminal state. The helpers here map executor
observations (elapsed time or remote status codes) onto these states and
normalize what callers receive.
"""

import time
from typing import Callable, Optional

import structlog

from ..errors import InvalidInputError
from .models import TERMINAL_STATUSES, StatusResult, TaskSnapshot, TaskStatus

logger = structlog.get_logger(__name__)

ALLOWED_TRANSITIONS: dict[TaskStatus, frozenset] = {
    TaskStatus.PENDING: frozenset({TaskStatus.RUNNING, TaskStatus.COMPLETED, TaskStatus.FAILED}),
    TaskStatus.RUNNING: frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED}),
    TaskStatus.COMPLETED: frozenset(),
    TaskStatus.FAILED: frozenset(),
}

# Remote executor status codes
REMOTE_STATUS_CODES: dict[int, TaskStatus] = {
    0: TaskStatus.PENDING,      # UNSET: waiting for a worker
    1: TaskStatus.RUNNING,      # ACTIVE
    2: TaskStatus.RUNNING,      # REVEALING
    3: TaskStatus.COMPLETED,    # COMPLETED
    4: TaskStatus.FAILED,       # FAILED
    5: TaskStatus.FAILED,       # TIMEOUT
}


def can_transition(current: TaskStatus, new: TaskStatus) -> bool:
    """True if ``new`` may follow ``current`` (staying put is always allowed)."""
    return current == new or new in ALLOWED_TRANSITIONS[current]


def status_for_elapsed(elapsed_seconds: float, pending_seconds: float = 10.0,
                       running_seconds: float = 30.0) -> TaskStatus:
    """
    Clock-driven lifecycle: pending below ``pending_seconds``, running below
    ``running_seconds``, completed after. A submission instant in the future
    reads as pending.
    """
    if elapsed_seconds < pending_seconds:
        return TaskStatus.PENDING
    if elapsed_seconds < running_seconds:
        return TaskStatus.RUNNING
    return TaskStatus.COMPLETED


def status_from_remote_code(code: int) -> TaskStatus:
    """
    Map a remote executor status code.

    Raises:
        InvalidInputError: Unknown status code
    """
    try:
        return REMOTE_STATUS_CODES[code]
    except (KeyError, TypeError) as e:
        raise InvalidInputError(f"Unknown remote task status: {code}", field="status", value=code) from e


def build_status_result(task_id: str, snapshot: TaskSnapshot) -> StatusResult:
    """
    Normalize an executor snapshot: a result only accompanies ``completed``
    and an error only accompanies ``failed``.
    """
    if snapshot.status == TaskStatus.COMPLETED:
        if snapshot.result is None:
            return StatusResult(
                status=TaskStatus.FAILED,
                task_id=task_id,
                error="Execution completed but no result is available",
            )
        return StatusResult(status=TaskStatus.COMPLETED, task_id=task_id, result=snapshot.result)

    if snapshot.status == TaskStatus.FAILED:
        return StatusResult(
            status=TaskStatus.FAILED,
            task_id=task_id,
            error=snapshot.error or "Task execution failed",
        )

    return StatusResult(status=snapshot.status, task_id=task_id)


class StatusWatcher:
    """
    Client-side poller for one task.

    Remembers the furthest state observed so a caller never sees the task
    move backwards, even if a remote lookup briefly reports an older state.
    """

    def __init__(self, fetch_status: Callable[[str], StatusResult], task_id: str):
        self._fetch_status = fetch_status
        self.task_id = task_id
        self.last: Optional[StatusResult] = None

    def poll(self) -> StatusResult:
        """Fetch the current status, holding the last state on a backward report."""
        if self.last is not None and self.last.is_terminal:
            return self.last

        current = self._fetch_status(self.task_id)

        if self.last is not None and not can_transition(self.last.status, current.status):
            logger.warning(
                "Ignoring backward status report",
                task_id=self.task_id,
                previous=self.last.status.value,
                reported=current.status.value,
            )
            return self.last

        self.last = current
        return current

    def wait(self, interval_seconds: float = 2.0, max_polls: int = 150,
             sleep: Callable[[float], None] = time.sleep) -> StatusResult:
        """
        Poll until a terminal state or ``max_polls`` lookups, whichever is first.

        Returns:
            The last observed status (terminal unless polls ran out)
        """
        result = self.poll()
        polls = 1
        while result.status not in TERMINAL_STATUSES and polls < max_polls:
            sleep(interval_seconds)
            result = self.poll()
            polls += 1
        return result
