"""
Strategy registry and the built-in strategy catalog.

Strategies are looked up by id through a registry of factories instead of a
conditional on the id string. New variants register themselves with
``register_strategy``.
"""

import threading
from decimal import Decimal
from typing import Callable, Optional

from ..errors import InvalidInputError, NotFoundError
from .builder import StrategyBuilder
from .definition import StrategyDefinition, ValidationRules
from .models import ExecutionMode, OperationType, RiskLevel, StrategyOperation

StrategyFactory = Callable[[], StrategyDefinition]


class StrategyRegistry:
    """Maps strategy ids to factories producing StrategyDefinition instances."""

    def __init__(self) -> None:
        self._factories: dict[str, StrategyFactory] = {}
        self._lock = threading.Lock()

    def register(self, strategy_id: str, factory: StrategyFactory) -> None:
        with self._lock:
            if strategy_id in self._factories:
                raise InvalidInputError(
                    f"Strategy already registered: {strategy_id}", field="strategy_id", value=strategy_id
                )
            self._factories[strategy_id] = factory

    def create(self, strategy_id: str) -> StrategyDefinition:
        """
        Build the strategy registered under ``strategy_id``.

        Raises:
            NotFoundError: If no factory is registered for the id
        """
        factory = self._factories.get(strategy_id)
        if factory is None:
            raise NotFoundError(f"Unknown strategy: {strategy_id}", reference=strategy_id)
        return factory()

    def get(self, strategy_id: str) -> Optional[StrategyDefinition]:
        factory = self._factories.get(strategy_id)
        return factory() if factory else None

    def ids(self) -> list[str]:
        return list(self._factories)

    def all(self) -> list[StrategyDefinition]:
        return [factory() for factory in self._factories.values()]

    def __contains__(self, strategy_id: object) -> bool:
        return strategy_id in self._factories

    def __len__(self) -> int:
        return len(self._factories)


default_registry = StrategyRegistry()


def register_strategy(strategy_id: str, registry: Optional[StrategyRegistry] = None):
    """Decorator registering a strategy factory under ``strategy_id``."""
    def decorator(factory: StrategyFactory) -> StrategyFactory:
        (registry or default_registry).register(strategy_id, factory)
        return factory
    return decorator


@register_strategy("mock-strategy-001")
def mock_strategy() -> StrategyDefinition:
    """Pipeline check: three mock operations, no real trades."""
    return StrategyDefinition(
        id="mock-strategy-001",
        name="Mock Test Strategy",
        description=(
            "A simple test strategy that executes mock operations to validate "
            "the execution pipeline. No real trades are executed."
        ),
        risk=RiskLevel.LOW,
        apr_range=(0, 0),
        price="0.01",
        operations=(
            StrategyOperation(OperationType.MOCK_OPERATION, 1,
                              {"message": "Mock operation 1: Initializing strategy", "delay": 1000}),
            StrategyOperation(OperationType.MOCK_OPERATION, 2,
                              {"message": "Mock operation 2: Validating parameters", "delay": 500}),
            StrategyOperation(OperationType.MOCK_OPERATION, 3,
                              {"message": "Mock operation 3: Completing execution", "delay": 1000}),
        ),
        rules=ValidationRules(capital_required=False),
    )


@register_strategy("demo-real-strategy-001")
def demo_real_strategy() -> StrategyDefinition:
    """Tiny live BTC delta-neutral position, capped at $10."""
    return StrategyDefinition(
        id="demo-real-strategy-001",
        name="Demo: Real Execution Test",
        description=(
            "Real execution demo using $1-$10 USDC. Opens a tiny BTC delta neutral "
            "position: short on Avantis plus spot buy on 1inch."
        ),
        risk=RiskLevel.LOW,
        apr_range=(5, 15),
        price="0.001",
        operations=(
            StrategyOperation(OperationType.CHECK_FUNDING_RATE, 1,
                              {"ticker": "BTC/USDC", "exchange": "avantis", "minRate": 0.0001}),
            StrategyOperation(OperationType.OPEN_SHORT, 2,
                              {"ticker": "BTC/USDC", "exchange": "avantis", "size": 50, "leverage": 1}),
            StrategyOperation(OperationType.SPOT_BUY, 3,
                              {"ticker": "BTC/USDC", "exchange": "1inch-fusion", "amount": 50}),
        ),
        rules=ValidationRules(
            min_slippage=0.5,
            max_slippage=5.0,
            min_capital=Decimal("1"),
            max_capital=Decimal("10"),
            allowed_modes=frozenset({ExecutionMode.INSTANT.value}),
        ),
        is_demo=True,
    )


def _delta_neutral(strategy_id: str, asset: str, perp_exchange: str) -> StrategyDefinition:
    operations = (
        StrategyBuilder()
        .check_funding_rate(f"{asset}/USDC", min_rate=0.01, exchange=perp_exchange,
                            label="fundingCheck")
        .open_short(f"{asset}/USDC", "50", 1, is_percentage=True, exchange=perp_exchange,
                    label="shortPosition")
        .spot_buy(f"{asset}/USDC", "50", is_percentage=True, exchange="1inch-fusion",
                  label="spotHedge")
        .build()
    )
    return StrategyDefinition(
        id=strategy_id,
        name=f"{asset} Delta Neutral Funding",
        description=(
            f"Captures {asset} funding rate profits while maintaining delta neutral "
            "exposure. Low risk market-neutral strategy on Base."
        ),
        risk=RiskLevel.LOW,
        apr_range=(15, 45),
        price="50",
        operations=tuple(operations),
    )


@register_strategy("btc-delta-neutral-001")
def btc_delta_neutral_strategy() -> StrategyDefinition:
    return _delta_neutral("btc-delta-neutral-001", "BTC", "avantis")


@register_strategy("eth-delta-neutral-001")
def eth_delta_neutral_strategy() -> StrategyDefinition:
    return _delta_neutral("eth-delta-neutral-001", "ETH", "synthetix-v3")


@register_strategy("funding-rates-strategy-001")
def funding_rates_strategy() -> StrategyDefinition:
    """BTC funding arbitrage; needs at least $100 to cover gas and fees."""
    return StrategyDefinition(
        id="funding-rates-strategy-001",
        name="BTC Funding Rate Arbitrage",
        description=(
            "Captures funding rate profits on BTC/USDC by maintaining a delta-neutral "
            "position: a perpetual short hedged with a spot buy."
        ),
        risk=RiskLevel.MEDIUM,
        apr_range=(15, 45),
        price="0.05",
        operations=(
            StrategyOperation(OperationType.CHECK_FUNDING_RATE, 1,
                              {"ticker": "BTC/USDC", "minRate": 0.01, "exchange": "avantis"}),
            StrategyOperation(OperationType.OPEN_SHORT, 2,
                              {"ticker": "BTC/USDC", "size": "50", "isPercentage": True,
                               "leverage": 1, "exchange": "avantis"}),
            StrategyOperation(OperationType.SPOT_BUY, 3,
                              {"ticker": "BTC/USDC", "amount": "50", "isPercentage": True,
                               "exchange": "1inch-fusion"}),
        ),
        rules=ValidationRules(min_capital=Decimal("100")),
    )
