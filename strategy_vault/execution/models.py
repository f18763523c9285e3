"""
Execution data models.

Task status, the executor's result document and the structured results the
orchestrator hands back to callers.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional

from ..config.defaults import NetworkParams
from ..strategies.models import StrategyConfig


class TaskStatus(str, Enum):
    """Task lifecycle: pending -> running -> completed | failed."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED})


@dataclass(frozen=True)
class PositionDetails:
    """A perpetual position opened by the executor."""
    type: str                    # "long" | "short"
    ticker: str
    entry_price: str
    size: str
    leverage: float
    transaction_hash: str
    stop_loss: Optional[str] = None
    take_profit: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PositionDetails":
        return cls(
            type=data["type"],
            ticker=data["ticker"],
            entry_price=str(data.get("entryPrice", data.get("entry_price", ""))),
            size=str(data.get("size", "")),
            leverage=data.get("leverage", 1),
            transaction_hash=data.get("transactionHash", data.get("transaction_hash", "")),
            stop_loss=data.get("stopLoss", data.get("stop_loss")),
            take_profit=data.get("takeProfit", data.get("take_profit")),
        )


@dataclass(frozen=True)
class SpotTradeDetails:
    """A spot trade placed by the executor."""
    type: str                    # "buy" | "sell"
    ticker: str
    asset: str
    amount: str
    execution_price: str
    transaction_hash: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SpotTradeDetails":
        return cls(
            type=data["type"],
            ticker=data["ticker"],
            asset=data.get("asset", ""),
            amount=str(data.get("amount", "")),
            execution_price=str(data.get("executionPrice", data.get("execution_price", ""))),
            transaction_hash=data.get("transactionHash", data.get("transaction_hash", "")),
        )


@dataclass(frozen=True)
class ExecutionMetrics:
    """Sanitized metrics reported by the executor."""
    gas_used: Optional[str] = None
    profit_estimate: Optional[float] = None
    funding_rates: dict[str, float] = field(default_factory=dict)
    prices: dict[str, str] = field(default_factory=dict)
    positions: list[PositionDetails] = field(default_factory=list)
    spot_trades: list[SpotTradeDetails] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExecutionMetrics":
        return cls(
            gas_used=data.get("gasUsed", data.get("gas_used")),
            profit_estimate=data.get("profitEstimate", data.get("profit_estimate")),
            funding_rates=dict(data.get("fundingRates", data.get("funding_rates")) or {}),
            prices=dict(data.get("prices") or {}),
            positions=[PositionDetails.from_dict(p) for p in data.get("positions") or []],
            spot_trades=[SpotTradeDetails.from_dict(t)
                         for t in data.get("spotTrades", data.get("spot_trades")) or []],
        )


@dataclass(frozen=True)
class ExecutionResult:
    """Result document of a completed task."""
    success: bool
    executed_operations: int
    error: Optional[str] = None
    metrics: Optional[ExecutionMetrics] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExecutionResult":
        """
        Parse an executor result document (camelCase or snake_case keys).

        Raises:
            ValueError: If ``success`` is not a boolean
        """
        if not isinstance(data.get("success"), bool):
            raise ValueError("Invalid result format: 'success' must be a boolean")

        metrics = data.get("metrics")
        return cls(
            success=data["success"],
            executed_operations=int(data.get("executedOperations", data.get("executed_operations", 0))),
            error=data.get("error"),
            metrics=ExecutionMetrics.from_dict(metrics) if metrics else None,
        )

    def to_dict(self) -> dict[str, Any]:
        metrics = None
        if self.metrics is not None:
            metrics = {
                "gas_used": self.metrics.gas_used,
                "profit_estimate": self.metrics.profit_estimate,
                "funding_rates": dict(self.metrics.funding_rates),
                "prices": dict(self.metrics.prices),
                "positions": [asdict(p) for p in self.metrics.positions],
                "spot_trades": [asdict(t) for t in self.metrics.spot_trades],
            }
        return {
            "success": self.success,
            "executed_operations": self.executed_operations,
            "error": self.error,
            "metrics": metrics,
        }


@dataclass(frozen=True)
class TaskSubmission:
    """Everything the executor needs to run a purchased strategy."""
    strategy_id: str
    owner_address: str
    protected_data_reference: str
    config: StrategyConfig
    network: NetworkParams
    execution_timeout: int = 300
    max_gas_price: Optional[str] = None

    def to_input(self) -> dict[str, Any]:
        """Input document passed to the executor."""
        return {
            "protectedDataAddress": self.protected_data_reference,
            "strategyId": self.strategy_id,
            "config": self.config.to_dict(),
            "wallet": {"address": self.owner_address},
            "network": {
                "chainId": self.network.chain_id,
                "rpcUrl": self.network.rpc_url,
                "contracts": dict(self.network.contracts),
            },
            "executionTimeout": self.execution_timeout,
            "maxGasPrice": self.max_gas_price,
        }


@dataclass(frozen=True)
class TaskSnapshot:
    """A remote executor's view of one task."""
    status: TaskStatus
    result: Optional[ExecutionResult] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class ExecuteResult:
    """Outcome of an execution request; failures are reported, not raised."""
    success: bool
    task_id: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "task_id": self.task_id, "error": self.error}


@dataclass(frozen=True)
class StatusResult:
    """Status of a task as reported to callers."""
    status: TaskStatus
    task_id: str
    result: Optional[ExecutionResult] = None
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "task_id": self.task_id,
            "result": self.result.to_dict() if self.result else None,
            "error": self.error,
        }
