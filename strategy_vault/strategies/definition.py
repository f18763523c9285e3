"""
Immutable strategy definitions.

A StrategyDefinition carries the public metadata buyers see, the ordered
operations that get encrypted on purchase, and the validation rules applied to
a user's execution config. Serialization is a pure function of this state.
"""

import json
import math
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Optional, Union

from ..errors import InvalidInputError
from .models import (
    ExecutionMode,
    RiskLevel,
    StrategyConfig,
    StrategyOperation,
    ValidationResult,
)

PAYLOAD_VERSION = "1.0.0"

_KNOWN_MODES = frozenset(mode.value for mode in ExecutionMode)


@dataclass(frozen=True)
class ValidationRules:
    """Per-strategy limits applied by ``StrategyDefinition.validate``."""

    # Slippage bounds (percent)
    min_slippage: float = 0.0
    max_slippage: float = 100.0

    # Capital allocation (quote currency)
    capital_required: bool = True
    min_capital: Optional[Decimal] = None
    max_capital: Optional[Decimal] = None

    # Execution modes this strategy accepts
    allowed_modes: frozenset = _KNOWN_MODES


@dataclass(frozen=True)
class StrategyDefinition:
    """A named, priced, ordered list of trading operations."""

    id: str
    name: str
    description: str
    risk: RiskLevel
    apr_range: tuple[float, float]
    price: str
    operations: tuple[StrategyOperation, ...]
    rules: ValidationRules = field(default_factory=ValidationRules)
    is_demo: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id.strip():
            raise InvalidInputError("Strategy id is required", field="id", value=self.id)

        try:
            risk = RiskLevel(self.risk)
        except ValueError as e:
            raise InvalidInputError(f"Unknown risk level: {self.risk}", field="risk", value=self.risk) from e

        apr_min, apr_max = self.apr_range
        if apr_min > apr_max:
            raise InvalidInputError(
                "APR range minimum must not exceed maximum", field="apr_range", value=self.apr_range
            )

        if _parse_decimal(self.price) is None or Decimal(str(self.price)) < 0:
            raise InvalidInputError("Price must be a non-negative decimal string", field="price", value=self.price)

        operations = tuple(sorted(self.operations, key=lambda op: op.order))
        orders = [op.order for op in operations]
        if len(set(orders)) != len(orders):
            raise InvalidInputError(
                "Operation orders must be unique within a strategy", field="operations", value=orders
            )

        object.__setattr__(self, "risk", risk)
        object.__setattr__(self, "apr_range", (apr_min, apr_max))
        object.__setattr__(self, "price", str(self.price))
        object.__setattr__(self, "operations", operations)

    def get_operations(self) -> list[StrategyOperation]:
        """Return a copy of the operations; mutating it never affects the strategy."""
        return list(self.operations)

    def get_operation_count(self) -> int:
        return len(self.operations)

    def to_payload(self) -> dict[str, Any]:
        """Build the dictionary that ``serialize`` encodes."""
        payload: dict[str, Any] = {
            "strategyId": self.id,
            "strategyName": self.name,
            "version": PAYLOAD_VERSION,
        }
        if self.is_demo:
            payload["isDemo"] = True
        payload["operations"] = [op.to_dict() for op in self.operations]
        return payload

    def serialize(self) -> str:
        """Deterministic JSON encoding of the operations, in stored order."""
        return json.dumps(self.to_payload(), allow_nan=False)

    def to_metadata(self) -> dict[str, Any]:
        """Publicly readable metadata (never includes operations)."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "risk": self.risk.value,
            "aprMin": self.apr_range[0],
            "aprMax": self.apr_range[1],
            "price": self.price,
        }

    def validate(self, config: Union[StrategyConfig, Mapping[str, Any]]) -> ValidationResult:
        """Validate a user's execution config against this strategy's rules."""
        return validate_config(config, self.rules, self.name)


def validate_config(
    config: Union[StrategyConfig, Mapping[str, Any]],
    rules: ValidationRules,
    name: str
) -> ValidationResult:
    """
    Validate an execution config against a set of rules.

    Every violated rule is reported; validation never stops at the first
    error.

    Args:
        config: StrategyConfig or a mapping accepted by StrategyConfig.from_dict
        rules: Limits to check against
        name: Strategy name used in error messages

    Returns:
        ValidationResult with all error messages
    """
    if not isinstance(config, StrategyConfig):
        config = StrategyConfig.from_dict(config)

    errors: list[str] = []

    # Slippage tolerance
    slippage = _parse_number(config.slippage_tolerance)
    if slippage is None:
        errors.append("Slippage tolerance must be a number")
    elif slippage < rules.min_slippage or slippage > rules.max_slippage:
        errors.append(
            f"Slippage tolerance must be between {_fmt(rules.min_slippage)} "
            f"and {_fmt(rules.max_slippage)}"
        )

    # Execution mode
    mode = config.execution_mode
    mode = mode.value if isinstance(mode, ExecutionMode) else mode
    if not isinstance(mode, str) or mode not in _KNOWN_MODES:
        errors.append('Execution mode must be either "instant" or "optimized"')
    elif mode not in rules.allowed_modes:
        allowed = ", ".join(sorted(rules.allowed_modes))
        errors.append(f"{name} only supports {allowed} execution mode")

    # Spread percentage
    if config.spread_percentage is None:
        if mode == ExecutionMode.OPTIMIZED.value:
            errors.append("Spread percentage is required for optimized execution mode")
    else:
        spread = _parse_number(config.spread_percentage)
        if spread is None or spread < 0 or spread > 100:
            errors.append("Spread percentage must be between 0 and 100")

    # Capital allocation
    errors.extend(_validate_capital(config.capital_allocation, rules, name))

    return ValidationResult(is_valid=not errors, errors=errors)


def _validate_capital(capital_allocation: Any, rules: ValidationRules, name: str) -> Iterable[str]:
    if capital_allocation is None or (
        isinstance(capital_allocation, str) and not capital_allocation.strip()
    ):
        if rules.capital_required:
            return [f"Capital allocation is required for {name}"]
        return []

    capital = _parse_decimal(capital_allocation)
    if capital is None:
        return ["Capital allocation must be a valid number"]
    if capital <= 0:
        return ["Capital allocation must be a positive number"]

    errors = []
    if rules.min_capital is not None and capital < rules.min_capital:
        errors.append(f"Capital allocation must be at least ${rules.min_capital}")
    if rules.max_capital is not None and capital > rules.max_capital:
        errors.append(f"Capital allocation must not exceed ${rules.max_capital}")
    return errors


def _parse_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _parse_decimal(value: Any) -> Optional[Decimal]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return number


def _fmt(value: float) -> str:
    return f"{value:g}"
