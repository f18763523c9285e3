#!/usr/bin/env python3
"""
Basic Usage Example - Strategy Vault

This script walks a buyer through the whole lifecycle with the simulated
executor. It shows how to:
- Wire the access-control service and the execution orchestrator
- Purchase a strategy and check ownership
- Execute it and poll the task until it completes

Time is driven by a fake clock so the example finishes instantly.

Run: python examples/basic_usage.py
"""

import json
from datetime import datetime, timedelta, timezone

from strategy_vault.access import AccessControlService, LocalDataProtector
from strategy_vault.config.defaults import AccessParams, ExecutionParams
from strategy_vault.execution import ExecutionOrchestrator, SimulatedExecutor, StatusWatcher
from strategy_vault.logging import configure_logging
from strategy_vault.persistence import OwnershipStore
from strategy_vault.strategies import default_registry

EXECUTOR_ADDRESS = "0x1111111111111111111111111111111111111111"
WALLET_ADDRESS = "0xAbCdEf0123456789aBcDeF0123456789AbCdEf01"


class ExampleClock:
    """Clock advanced by the polling loop instead of real sleeps."""

    def __init__(self):
        self.now = datetime.now(timezone.utc)

    def __call__(self):
        return self.now

    def sleep(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def main():
    """Run the purchase, execute and poll flow."""
    configure_logging(level="WARNING")
    clock = ExampleClock()

    print("🚀 Strategy Vault - Basic Usage Example")
    print("=" * 50)

    print("\n📚 Available strategies:")
    for strategy in default_registry.all():
        metadata = strategy.to_metadata()
        print(f"  • {metadata['id']}: {metadata['name']} "
              f"(risk {metadata['risk']}, APR {metadata['aprMin']}-{metadata['aprMax']}%, "
              f"price {metadata['price']})")

    protector = LocalDataProtector(clock=clock)
    access = AccessControlService(
        store=OwnershipStore(":memory:"),
        protector=protector,
        config=AccessParams(executor_address=EXECUTOR_ADDRESS),
        clock=clock,
    )
    access.initialize(WALLET_ADDRESS)

    orchestrator = ExecutionOrchestrator(
        SimulatedExecutor(protector, EXECUTOR_ADDRESS, clock=clock),
        config=ExecutionParams(executor_address=EXECUTOR_ADDRESS),
        clock=clock,
    )
    orchestrator.initialize(access)

    strategy = default_registry.create("btc-delta-neutral-001")

    print(f"\n🛒 Purchasing {strategy.name}...")
    purchase = access.purchase_strategy(strategy, WALLET_ADDRESS)
    print(f"  Result: {json.dumps(purchase.to_dict())}")

    ownership = access.check_strategy_ownership(strategy.id, WALLET_ADDRESS.lower())
    print(f"  Owned (lower-case lookup): {ownership.is_owner}")

    print("\n⚙️  Executing with an invalid config first...")
    rejected = orchestrator.execute_strategy(strategy.id, WALLET_ADDRESS, {"slippageTolerance": -1})
    print(f"  Rejected: {rejected.error}")

    print("\n⚙️  Executing with a valid config...")
    execution = orchestrator.execute_strategy(strategy.id, WALLET_ADDRESS, {
        "executionMode": "instant",
        "slippageTolerance": 1.0,
        "capitalAllocation": "100",
    })
    print(f"  Task id: {execution.task_id}")

    print("\n⏳ Polling task status...")
    started = clock()

    def fetch(task_id):
        status = orchestrator.get_execution_status(task_id)
        print(f"  t+{(clock() - started).total_seconds():>4.0f}s  {status.status.value}")
        return status

    watcher = StatusWatcher(fetch, execution.task_id)
    final = watcher.wait(interval_seconds=5, sleep=clock.sleep)

    print(f"\n✅ Final status: {final.status.value}")
    print(json.dumps(final.to_dict(), indent=2))


if __name__ == "__main__":
    main()
