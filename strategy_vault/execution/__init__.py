"""
Strategy execution: task submission, task ids and the status state machine.
"""
from .executors import HttpTaskExecutor, RemoteExecutor, SimulatedExecutor
from .models import (
    ExecuteResult,
    ExecutionMetrics,
    ExecutionResult,
    PositionDetails,
    SpotTradeDetails,
    StatusResult,
    TaskSnapshot,
    TaskStatus,
    TaskSubmission,
    TERMINAL_STATUSES,
)
from .orchestrator import ExecutionOrchestrator
from .status import (
    ALLOWED_TRANSITIONS,
    REMOTE_STATUS_CODES,
    StatusWatcher,
    build_status_result,
    can_transition,
    status_for_elapsed,
    status_from_remote_code,
)
from .task_id import decode_task_id, encode_task_id, is_valid_task_id

__all__ = [
    "ALLOWED_TRANSITIONS",
    "REMOTE_STATUS_CODES",
    "TERMINAL_STATUSES",
    "ExecuteResult",
    "ExecutionMetrics",
    "ExecutionOrchestrator",
    "ExecutionResult",
    "HttpTaskExecutor",
    "PositionDetails",
    "RemoteExecutor",
    "SimulatedExecutor",
    "SpotTradeDetails",
    "StatusResult",
    "StatusWatcher",
    "TaskSnapshot",
    "TaskStatus",
    "TaskSubmission",
    "build_status_result",
    "can_transition",
    "decode_task_id",
    "encode_task_id",
    "is_valid_task_id",
    "status_for_elapsed",
    "status_from_remote_code",
]
