"""Pytest configuration and shared fixtures."""

import pytest
from datetime import datetime, timedelta, timezone

from strategy_vault.access import AccessControlService, LocalDataProtector
from strategy_vault.config.defaults import AccessParams, ExecutionParams
from strategy_vault.execution import ExecutionOrchestrator, SimulatedExecutor
from strategy_vault.persistence import OwnershipStore
from strategy_vault.strategies import default_registry

EXECUTOR_ADDRESS = "0x1111111111111111111111111111111111111111"
SIGNER_ADDRESS = "0xAbCdEf0123456789aBcDeF0123456789AbCdEf01"
BUYER_ADDRESS = "0x9F8e7D6c5B4a39281706F5e4D3c2B1a098765432"
OTHER_ADDRESS = "0x2222222222222222222222222222222222222222"


class FakeClock:
    """Manually advanced clock for elapsed-time tests."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    """Clock starting at 2024-01-01 12:00 UTC."""
    return FakeClock()


@pytest.fixture
def store():
    """In-memory ownership store."""
    store = OwnershipStore(":memory:")
    yield store
    store.close()


@pytest.fixture
def protector(clock) -> LocalDataProtector:
    """Local protector with a freshly generated key."""
    return LocalDataProtector(clock=clock)


@pytest.fixture
def access_control(store, protector, clock) -> AccessControlService:
    """Initialized access-control service."""
    service = AccessControlService(
        store=store,
        protector=protector,
        config=AccessParams(executor_address=EXECUTOR_ADDRESS),
        clock=clock,
    )
    service.initialize(SIGNER_ADDRESS)
    return service


@pytest.fixture
def executor(protector, clock) -> SimulatedExecutor:
    """Simulated executor with the default 10s/30s thresholds."""
    return SimulatedExecutor(protector, EXECUTOR_ADDRESS, clock=clock)


@pytest.fixture
def orchestrator(executor, access_control, clock) -> ExecutionOrchestrator:
    """Initialized orchestrator on the simulated executor."""
    orchestrator = ExecutionOrchestrator(
        executor,
        config=ExecutionParams(executor_address=EXECUTOR_ADDRESS),
        clock=clock,
    )
    orchestrator.initialize(access_control)
    return orchestrator


@pytest.fixture
def mock_strategy():
    """Three-operation mock strategy."""
    return default_registry.create("mock-strategy-001")


@pytest.fixture
def btc_strategy():
    """BTC delta-neutral strategy."""
    return default_registry.create("btc-delta-neutral-001")
