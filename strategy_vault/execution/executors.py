"""
Remote executor boundary.

The orchestrator submits tasks and looks up their state through
``RemoteExecutor``. ``SimulatedExecutor`` stands in for the trusted
execution environment with a clock-driven lifecycle; ``HttpTaskExecutor``
talks to a real task service over HTTP.
"""

import hashlib
import json
import socket
import threading
from collections import OrderedDict
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import urlparse
from urllib.request import Request, urlopen

import structlog

from ..access.protector import DataProtector
from ..errors import ConfigError, ExecutorError, InvalidInputError
from ..strategies.models import OperationType
from ..utils.time import Clock, time_elapsed_seconds, utc_now
from .models import (
    ExecutionMetrics,
    ExecutionResult,
    PositionDetails,
    SpotTradeDetails,
    TaskSnapshot,
    TaskStatus,
    TaskSubmission,
)
from .status import status_for_elapsed, status_from_remote_code
from .task_id import decode_task_id, encode_task_id

logger = structlog.get_logger(__name__)


class RemoteExecutor(ABC):
    """Submits tasks to, and reads task state from, the executor."""

    @abstractmethod
    def submit(self, submission: TaskSubmission) -> str:
        """
        Submit a task.

        Returns:
            Task id encoding the submission instant

        Raises:
            ExecutorError: Submission rejected or transport failure
        """

    @abstractmethod
    def lookup(self, task_id: str, submitted_at: datetime) -> TaskSnapshot:
        """
        Report the current state of a task.

        Raises:
            ExecutorError: Lookup failed
        """


@dataclass(frozen=True)
class _SimulatedStep:
    type: str
    order: Any
    ticker: str
    leverage: Any = 1


@dataclass(frozen=True)
class _SimulatedTask:
    submitted_at: datetime
    operation_count: int
    steps: tuple[_SimulatedStep, ...]


_REPORTED_TYPES = frozenset({
    OperationType.CHECK_FUNDING_RATE.value,
    OperationType.OPEN_SHORT.value,
    OperationType.OPEN_LONG.value,
    OperationType.SPOT_BUY.value,
    OperationType.SPOT_SELL.value,
})

_DEFAULT_STEPS = (
    _SimulatedStep(OperationType.CHECK_FUNDING_RATE.value, 1, "BTC/USDC"),
    _SimulatedStep(OperationType.OPEN_SHORT.value, 2, "BTC/USDC"),
    _SimulatedStep(OperationType.SPOT_BUY.value, 3, "BTC/USDC"),
)


class SimulatedExecutor(RemoteExecutor):
    """
    Clock-driven stand-in for the trusted executor.

    Submission reads the protected payload with the executor identity, which
    only works if the purchase granted the executor access. Status is a pure
    function of the time elapsed since the instant encoded in the task id.

    Only a summary of each task is kept, at most ``max_tasks`` of them and
    none older than ``retention_seconds``. A task that has been dropped
    reports the reference three-step result once completed.
    """

    DEFAULT_OPERATION_COUNT = 3
    MAX_TASKS = 10_000
    RETENTION_SECONDS = 3600.0

    def __init__(
        self,
        protector: DataProtector,
        executor_address: str,
        pending_seconds: float = 10.0,
        running_seconds: float = 30.0,
        clock: Clock = utc_now,
        max_tasks: int = MAX_TASKS,
        retention_seconds: float = RETENTION_SECONDS
    ) -> None:
        self._protector = protector
        self._executor_address = executor_address
        self._pending_seconds = pending_seconds
        self._running_seconds = running_seconds
        self._clock = clock
        self._max_tasks = max_tasks
        self._retention_seconds = retention_seconds
        # Insertion order is submission order; oldest entries are evicted first
        self._tasks: OrderedDict[str, _SimulatedTask] = OrderedDict()
        self._lock = threading.Lock()

    def submit(self, submission: TaskSubmission) -> str:
        payload = self._protector.fetch_protected_data(
            submission.protected_data_reference, requester=self._executor_address
        )
        try:
            operations = json.loads(payload)["operations"]
            steps = tuple(_summarize(op) for op in operations if op.get("type") in _REPORTED_TYPES)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise ExecutorError(f"Protected payload is not a strategy: {e}") from e

        now = self._clock()
        task_id = encode_task_id(now)
        with self._lock:
            self._prune(now)
            self._tasks[task_id] = _SimulatedTask(
                submitted_at=now, operation_count=len(operations), steps=steps
            )
            while len(self._tasks) > self._max_tasks:
                self._tasks.popitem(last=False)

        logger.info(
            "Simulated task created",
            task_id=task_id,
            strategy_id=submission.strategy_id,
            operations=len(operations),
            input_bytes=len(json.dumps(submission.to_input())),
        )
        return task_id

    def lookup(self, task_id: str, submitted_at: datetime) -> TaskSnapshot:
        elapsed = time_elapsed_seconds(submitted_at, self._clock())
        status = status_for_elapsed(elapsed, self._pending_seconds, self._running_seconds)

        if status != TaskStatus.COMPLETED:
            return TaskSnapshot(status=status)

        with self._lock:
            task = self._tasks.get(task_id)
        return TaskSnapshot(status=status, result=self._build_result(task_id, task))

    def tracked_tasks(self) -> int:
        with self._lock:
            return len(self._tasks)

    def _prune(self, now: datetime) -> None:
        while self._tasks:
            oldest = next(iter(self._tasks.values()))
            if time_elapsed_seconds(oldest.submitted_at, now) <= self._retention_seconds:
                break
            self._tasks.popitem(last=False)

    def _build_result(self, task_id: str, task: Optional[_SimulatedTask]) -> ExecutionResult:
        if task is None:
            # Task submitted elsewhere or already dropped
            steps = _DEFAULT_STEPS[:self.DEFAULT_OPERATION_COUNT]
            operation_count = len(steps)
        else:
            steps = task.steps
            operation_count = task.operation_count

        funding_rates: dict[str, float] = {}
        positions: list[PositionDetails] = []
        spot_trades: list[SpotTradeDetails] = []

        for step in steps:
            tx_hash = _simulated_tx_hash(task_id, step.order)

            if step.type == OperationType.CHECK_FUNDING_RATE.value:
                funding_rates[step.ticker] = 0.0001
            elif step.type in (OperationType.OPEN_SHORT.value, OperationType.OPEN_LONG.value):
                positions.append(PositionDetails(
                    type="short" if step.type == OperationType.OPEN_SHORT.value else "long",
                    ticker=step.ticker,
                    entry_price="45000",
                    size="0.1",
                    leverage=step.leverage,
                    transaction_hash=tx_hash,
                ))
            else:
                spot_trades.append(SpotTradeDetails(
                    type="buy" if step.type == OperationType.SPOT_BUY.value else "sell",
                    ticker=step.ticker,
                    asset=step.ticker.split("/")[0],
                    amount="0.1",
                    execution_price="45000",
                    transaction_hash=tx_hash,
                ))

        return ExecutionResult(
            success=True,
            executed_operations=operation_count,
            metrics=ExecutionMetrics(
                gas_used="0.0025",
                profit_estimate=125.50,
                funding_rates=funding_rates,
                positions=positions,
                spot_trades=spot_trades,
            ),
        )


def _summarize(op: dict) -> _SimulatedStep:
    params = op.get("params") or {}
    return _SimulatedStep(
        type=op["type"],
        order=op.get("order"),
        ticker=str(params.get("ticker", "BTC/USDC")),
        leverage=params.get("leverage", 1),
    )


def _simulated_tx_hash(task_id: str, order: Any) -> str:
    return "0x" + hashlib.sha256(f"{task_id}:{order}".encode()).hexdigest()


class HttpTaskExecutor(RemoteExecutor):
    """
    Task service client over HTTP.

    The remote task id is carried in the opaque suffix of the task id, so a
    lookup needs nothing beyond the id itself.
    """

    def __init__(
        self,
        base_url: str,
        app_address: str,
        timeout_seconds: int = 30,
        headers: Optional[dict[str, str]] = None,
        clock: Clock = utc_now
    ) -> None:
        parsed = urlparse(base_url or "")
        if not parsed.scheme or not parsed.netloc:
            raise ConfigError(f"Invalid executor URL: {base_url}", setting="execution.executor_url")

        self.base_url = base_url.rstrip("/")
        self.app_address = app_address
        self.timeout_seconds = timeout_seconds
        self.headers = headers or {}
        self._clock = clock

    def submit(self, submission: TaskSubmission) -> str:
        response = self._request("POST", f"{self.base_url}/tasks", {
            "app": self.app_address,
            "input": submission.to_input(),
            "tag": ["tee", "scone"],
            "trust": 1,
        })

        remote_id = response.get("taskId") if isinstance(response, dict) else None
        if not isinstance(remote_id, str):
            raise ExecutorError("Executor response missing taskId")

        suffix = remote_id[2:] if remote_id.lower().startswith("0x") else remote_id
        try:
            task_id = encode_task_id(self._clock(), suffix)
        except InvalidInputError as e:
            raise ExecutorError(f"Executor returned an unusable task id: {remote_id}") from e

        logger.info("Remote task created", task_id=task_id, strategy_id=submission.strategy_id)
        return task_id

    def lookup(self, task_id: str, submitted_at: datetime) -> TaskSnapshot:
        remote_id = "0x" + decode_task_id(task_id).suffix
        task = self._request("GET", f"{self.base_url}/tasks/{remote_id}")

        if not isinstance(task, dict):
            raise ExecutorError("Executor returned a malformed task document", task_id=task_id)

        try:
            status = status_from_remote_code(task.get("status"))
        except InvalidInputError as e:
            raise ExecutorError(e.message, task_id=task_id) from e

        if status == TaskStatus.FAILED:
            return TaskSnapshot(status=status, error=task.get("statusName") or "Task execution failed")

        if status != TaskStatus.COMPLETED:
            return TaskSnapshot(status=status)

        try:
            result_doc = task.get("result")
            if result_doc is None:
                result_url = (task.get("results") or {}).get("storage")
                if not result_url:
                    raise ExecutorError("No result URL available", task_id=task_id)
                result_doc = self._request("GET", result_url)
            result = ExecutionResult.from_dict(result_doc)
        except (ExecutorError, ValueError, TypeError, AttributeError) as e:
            logger.warning("Failed to retrieve task result", task_id=task_id, error=str(e))
            return TaskSnapshot(
                status=TaskStatus.FAILED,
                error=f"Execution completed but failed to retrieve results: {e}",
            )

        return TaskSnapshot(status=status, result=result)

    def _request(self, method: str, url: str, body: Optional[dict[str, Any]] = None) -> Any:
        data = json.dumps(body).encode("utf-8") if body is not None else None
        headers = {
            "Accept": "application/json",
            "User-Agent": "strategy-vault/1.0",
        }
        if data is not None:
            headers["Content-Type"] = "application/json"
        headers.update(self.headers)

        req = Request(url, data=data, headers=headers, method=method)

        try:
            with urlopen(req, timeout=self.timeout_seconds) as response:
                response_code = response.getcode()
                response_data = response.read().decode("utf-8")
        except HTTPError as e:
            logger.warning("Executor HTTP error", url=url, error_code=e.code, error_reason=e.reason)
            raise ExecutorError(f"HTTP {e.code}: {e.reason}", status_code=e.code) from e
        except (OSError, URLError, socket.timeout) as e:
            logger.warning("Executor network error", url=url, error=str(e))
            raise ExecutorError(f"Network error: {e}") from e

        if not 200 <= response_code < 300:
            raise ExecutorError(f"HTTP {response_code}: {response_data[:200]}", status_code=response_code)

        try:
            return json.loads(response_data)
        except ValueError as e:
            raise ExecutorError(f"Executor returned invalid JSON: {e}") from e
