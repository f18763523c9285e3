"""Tests for the strategy registry and built-in catalog."""

import pytest

from strategy_vault.errors import InvalidInputError, NotFoundError
from strategy_vault.strategies import (
    OperationType,
    RiskLevel,
    StrategyDefinition,
    StrategyOperation,
    StrategyRegistry,
    default_registry,
    register_strategy,
)

BUILT_IN_IDS = [
    "mock-strategy-001",
    "demo-real-strategy-001",
    "btc-delta-neutral-001",
    "eth-delta-neutral-001",
    "funding-rates-strategy-001",
]


def _tiny(strategy_id: str) -> StrategyDefinition:
    return StrategyDefinition(
        id=strategy_id,
        name="Tiny",
        description="",
        risk=RiskLevel.LOW,
        apr_range=(0, 0),
        price="0",
        operations=(StrategyOperation(OperationType.WAIT, 1, {"duration": 1}),),
    )


class TestDefaultRegistry:
    """Test the built-in catalog."""

    @pytest.mark.parametrize("strategy_id", BUILT_IN_IDS)
    def test_built_in_strategies_registered(self, strategy_id):
        """Every built-in strategy can be created by id."""
        strategy = default_registry.create(strategy_id)

        assert strategy.id == strategy_id
        assert strategy.get_operation_count() == 3
        assert strategy_id in default_registry

    def test_create_returns_fresh_instances(self):
        """Factories build a new definition each time."""
        first = default_registry.create("btc-delta-neutral-001")
        second = default_registry.create("btc-delta-neutral-001")

        assert first == second
        assert first is not second

    def test_delta_neutral_variants_differ_by_asset(self):
        """BTC and ETH variants trade their own asset."""
        btc = default_registry.create("btc-delta-neutral-001")
        eth = default_registry.create("eth-delta-neutral-001")

        assert btc.operations[0].params["ticker"] == "BTC/USDC"
        assert eth.operations[0].params["ticker"] == "ETH/USDC"
        assert eth.operations[1].params["exchange"] == "synthetix-v3"

    def test_unknown_strategy(self):
        """Unknown ids raise on create and return None on get."""
        with pytest.raises(NotFoundError):
            default_registry.create("does-not-exist")
        assert default_registry.get("does-not-exist") is None


class TestStrategyRegistry:
    """Test registering new variants."""

    def test_register_via_decorator(self):
        """The decorator registers without touching the default registry."""
        registry = StrategyRegistry()

        @register_strategy("tiny-001", registry=registry)
        def tiny():
            return _tiny("tiny-001")

        assert registry.ids() == ["tiny-001"]
        assert len(registry) == 1
        assert registry.create("tiny-001").name == "Tiny"
        assert "tiny-001" not in default_registry

    def test_duplicate_registration_rejected(self):
        """An id can only be registered once."""
        registry = StrategyRegistry()
        registry.register("tiny-001", lambda: _tiny("tiny-001"))

        with pytest.raises(InvalidInputError):
            registry.register("tiny-001", lambda: _tiny("tiny-001"))

    def test_all(self):
        """``all`` builds every registered strategy."""
        registry = StrategyRegistry()
        registry.register("a", lambda: _tiny("a"))
        registry.register("b", lambda: _tiny("b"))

        assert [s.id for s in registry.all()] == ["a", "b"]
