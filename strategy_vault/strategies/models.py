"""
Strategy data models.

This module defines immutable value objects for strategy operations, user
execution configuration and validation results.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

from ..errors import InvalidInputError

Scalar = Union[str, int, float, bool, None]


class RiskLevel(str, Enum):
    """Risk classification shown to buyers."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ExecutionMode(str, Enum):
    """How the executor places orders."""
    INSTANT = "instant"            # Market orders
    OPTIMIZED = "optimized"        # Limit orders at a configured spread


class OperationType(str, Enum):
    """Operation types understood by the remote executor."""
    # Testing
    MOCK_OPERATION = "mock_operation"

    # Spot trading
    SPOT_BUY = "spot_buy"
    SPOT_SELL = "spot_sell"

    # Perpetual positions
    OPEN_LONG = "open_long"
    CLOSE_LONG = "close_long"
    OPEN_SHORT = "open_short"
    CLOSE_SHORT = "close_short"

    # Market analysis (read-only)
    CHECK_FUNDING_RATE = "check_funding_rate"
    CHECK_PRICE = "check_price"
    CHECK_LIQUIDITY = "check_liquidity"

    # Control flow
    CONDITIONAL = "conditional"
    WAIT = "wait"


@dataclass(frozen=True)
class StrategyOperation:
    """A single ordered step of a strategy."""

    type: OperationType
    order: int
    params: Mapping[str, Scalar] = field(default_factory=dict)
    label: Optional[str] = None
    optional: bool = False

    def __post_init__(self) -> None:
        try:
            op_type = OperationType(self.type)
        except ValueError as e:
            raise InvalidInputError(
                f"Unknown operation type: {self.type}", field="type", value=self.type
            ) from e

        if isinstance(self.order, bool) or not isinstance(self.order, int) or self.order < 1:
            raise InvalidInputError(
                "Operation order must be a positive integer", field="order", value=self.order
            )

        for key, value in self.params.items():
            if not isinstance(key, str):
                raise InvalidInputError("Operation param names must be strings", field="params", value=key)
            if value is not None and not isinstance(value, (str, int, float, bool)):
                raise InvalidInputError(
                    f"Operation param '{key}' must be a scalar", field="params", value=value
                )
            if isinstance(value, float) and not math.isfinite(value):
                raise InvalidInputError(
                    f"Operation param '{key}' must be a finite number", field="params", value=value
                )

        # Read-only view over a private copy so callers cannot mutate params
        object.__setattr__(self, "type", op_type)
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))

    def to_dict(self) -> dict[str, Any]:
        """Wire form used inside the encrypted payload."""
        return {
            "type": self.type.value,
            "order": self.order,
            "params": dict(self.params),
        }


@dataclass(frozen=True)
class StrategyConfig:
    """User configuration for one execution of a strategy."""

    execution_mode: str = ExecutionMode.INSTANT.value
    slippage_tolerance: Any = 1.0
    spread_percentage: Any = None
    capital_allocation: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StrategyConfig":
        """Build a config from snake_case or camelCase keys."""
        def pick(snake: str, camel: str, default: Any = None) -> Any:
            if snake in data:
                return data[snake]
            return data.get(camel, default)

        return cls(
            execution_mode=pick("execution_mode", "executionMode", ExecutionMode.INSTANT.value),
            slippage_tolerance=pick("slippage_tolerance", "slippageTolerance", 1.0),
            spread_percentage=pick("spread_percentage", "spreadPercentage"),
            capital_allocation=pick("capital_allocation", "capitalAllocation"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Wire form passed to the executor."""
        mode = self.execution_mode
        return {
            "executionMode": mode.value if isinstance(mode, ExecutionMode) else mode,
            "slippageTolerance": self.slippage_tolerance,
            "spreadPercentage": self.spread_percentage,
            "capitalAllocation": self.capital_allocation,
        }


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a StrategyConfig against a strategy."""
    is_valid: bool
    errors: list[str] = field(default_factory=list)
