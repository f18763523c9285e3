"""End-to-end purchase, execute and poll flow on the simulated executor."""

import base64
import json
import tempfile
import os
import threading

import pytest

from strategy_vault.access import AccessControlService, LocalDataProtector
from strategy_vault.config import ConfigLoader
from strategy_vault.errors import ConfigError
from strategy_vault.execution import ExecutionOrchestrator, StatusWatcher, TaskStatus
from strategy_vault.strategies import default_registry

EXECUTOR = "0x1111111111111111111111111111111111111111"
SIGNER = "0xAbCdEf0123456789aBcDeF0123456789AbCdEf01"
BUYER = "0x9F8e7D6c5B4a39281706F5e4D3c2B1a098765432"
KEY = base64.b64encode(b"v" * 32).decode()


class TestPurchaseExecuteFlow:
    """Test the full flow."""

    def test_completed_after_35_seconds(self, orchestrator, access_control, protector, clock):
        """A 35-second-old task completes with one executed step per operation."""
        strategy = default_registry.create("mock-strategy-001")
        purchase = access_control.purchase_strategy(strategy, BUYER)
        assert purchase.success

        decoded = json.loads(protector.fetch_protected_data(purchase.protected_data_reference, BUYER))
        assert len(decoded["operations"]) == strategy.get_operation_count()

        execution = orchestrator.execute_strategy(strategy.id, BUYER, {"slippageTolerance": 1})
        assert execution.success

        clock.advance(35)
        status = orchestrator.get_execution_status(execution.task_id)

        assert status.status == TaskStatus.COMPLETED
        assert status.error is None
        assert status.result.success
        assert status.result.executed_operations == strategy.get_operation_count()

    def test_status_monotonic_while_polling(self, orchestrator, access_control, btc_strategy, clock):
        """Polling through the lifecycle never moves backwards."""
        access_control.purchase_strategy(btc_strategy, BUYER)
        task_id = orchestrator.execute_strategy(
            btc_strategy.id, BUYER, {"capitalAllocation": "100"}
        ).task_id

        seen = []

        def fetch(task_id):
            result = orchestrator.get_execution_status(task_id)
            seen.append(result.status)
            return result

        result = StatusWatcher(fetch, task_id).wait(interval_seconds=4, sleep=clock.advance)

        order = [TaskStatus.PENDING, TaskStatus.RUNNING, TaskStatus.COMPLETED]
        positions = [order.index(status) for status in seen]
        assert result.status == TaskStatus.COMPLETED
        assert positions == sorted(positions)
        assert set(seen) == set(order)
        assert orchestrator.get_execution_status(task_id).status == TaskStatus.COMPLETED

    def test_concurrent_purchases_then_execute(self, orchestrator, access_control, btc_strategy):
        """Parallel purchases settle on one record the orchestrator can run."""
        results = []
        threads = [
            threading.Thread(target=lambda: results.append(
                access_control.purchase_strategy(btc_strategy, BUYER)
            ))
            for _ in range(5)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len({r.protected_data_reference for r in results}) == 1
        assert orchestrator.execute_strategy(
            btc_strategy.id, BUYER, {"capitalAllocation": "100"}
        ).success


class TestWiringFromConfig:
    """Test building services from configuration."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()

    def teardown_method(self):
        import shutil
        shutil.rmtree(self.temp_dir)

    def load_config(self, **extra_env):
        environ = {
            "STRATEGY_VAULT_EXECUTOR_ADDRESS": EXECUTOR,
            "STRATEGY_VAULT_DB_PATH": os.path.join(self.temp_dir, "ownership.db"),
        }
        environ.update(extra_env)
        return ConfigLoader.create(self.temp_dir).load(environ=environ)

    def test_config_wired_services(self, clock):
        """Services built from configuration run the full flow and persist it across restarts."""
        config = self.load_config(STRATEGY_VAULT_ENCRYPTION_KEY=KEY)

        access = AccessControlService.from_config(config, clock=clock)
        access.initialize(SIGNER)
        orchestrator = ExecutionOrchestrator.from_config(config, access, clock=clock)
        orchestrator.initialize(access)

        strategy = default_registry.create("eth-delta-neutral-001")
        assert access.purchase_strategy(strategy, BUYER).success
        task_id = orchestrator.execute_strategy(strategy.id, BUYER, {"capitalAllocation": "250"}).task_id

        clock.advance(30)
        assert orchestrator.get_execution_status(task_id).status == TaskStatus.COMPLETED

        reopened = AccessControlService.from_config(config, clock=clock)
        reopened.initialize(SIGNER)
        assert reopened.get_user_owned_strategies(BUYER) == ["eth-delta-neutral-001"]
        assert isinstance(reopened.protector, LocalDataProtector)

        restarted = ExecutionOrchestrator.from_config(config, reopened, clock=clock)
        restarted.initialize(reopened)
        execution = restarted.execute_strategy(strategy.id, BUYER, {"capitalAllocation": "250"})
        assert execution.success

        clock.advance(35)
        status = restarted.get_execution_status(execution.task_id)
        assert status.status == TaskStatus.COMPLETED
        assert status.result.executed_operations == strategy.get_operation_count()

    def test_file_store_requires_key(self, clock):
        """Without a key a file-backed store could never be read back."""
        config = self.load_config()

        with pytest.raises(ConfigError) as exc_info:
            AccessControlService.from_config(config, clock=clock)

        assert exc_info.value.setting == "protector.encryption_key"
