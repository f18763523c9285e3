"""
Execution orchestrator.

Accepts execution requests for purchased strategies, submits them to the
remote executor and reports task status. Ownership is checked through the
access-control service on every request; nothing is cached here.
"""

import dataclasses
from typing import Any, Mapping, Optional, Union

from ..access.service import AccessControlService
from ..config.defaults import ExecutionParams, VaultConfig
from ..errors import (
    AccessDeniedError,
    ConfigError,
    DependencyNotReadyError,
    ImmutableConfigError,
    InvalidInputError,
    NotInitializedError,
    sanitize_error_message,
    wrap_unexpected,
)
from ..logging.config import get_execution_logger, log_task_status
from ..strategies.catalog import StrategyRegistry, default_registry
from ..strategies.definition import ValidationRules, validate_config
from ..strategies.models import StrategyConfig
from ..utils.addresses import normalize_address, validate_address
from ..utils.time import Clock, time_elapsed_seconds, utc_now
from .executors import HttpTaskExecutor, RemoteExecutor, SimulatedExecutor
from .models import ExecuteResult, StatusResult, TaskStatus, TaskSubmission
from .status import build_status_result
from .task_id import decode_task_id

logger = get_execution_logger(__name__)

NOT_OWNER_ERROR = "caller must own this strategy; purchase it first"
MISSING_REFERENCE_ERROR = "protected data reference not found"

# Applied to purchased strategies the registry does not know
BASELINE_RULES = ValidationRules(capital_required=False)


class ExecutionOrchestrator:
    """
    Run purchased strategies on the remote executor.

    Lifecycle: construct with an executor, then ``initialize`` with an
    initialized AccessControlService.
    """

    def __init__(
        self,
        executor: RemoteExecutor,
        config: Optional[ExecutionParams] = None,
        registry: StrategyRegistry = default_registry,
        clock: Clock = utc_now
    ) -> None:
        self._executor = executor
        self._config = config or ExecutionParams()
        self._registry = registry
        self._clock = clock

        self._access_control: Optional[AccessControlService] = None
        self._initialized = False

        self.logger = logger

    @classmethod
    def from_config(
        cls,
        config: VaultConfig,
        access_control: AccessControlService,
        registry: StrategyRegistry = default_registry,
        clock: Clock = utc_now
    ) -> "ExecutionOrchestrator":
        """
        Wire an orchestrator from configuration.

        Uses the HTTP executor when ``execution.executor_url`` is set and the
        simulated executor otherwise.
        """
        params = config.execution
        executor: RemoteExecutor
        if params.executor_url:
            executor = HttpTaskExecutor(
                base_url=params.executor_url,
                app_address=params.executor_address,
                timeout_seconds=params.http_timeout_seconds,
                clock=clock,
            )
        else:
            executor = SimulatedExecutor(
                protector=access_control.protector,
                executor_address=params.executor_address,
                pending_seconds=params.pending_seconds,
                running_seconds=params.running_seconds,
                clock=clock,
            )
        return cls(executor, config=params, registry=registry, clock=clock)

    def initialize(self, access_control: AccessControlService) -> None:
        """
        Attach the access-control service.

        Calling this again once initialized is a no-op.

        Raises:
            ConfigError: Executor address unset
            DependencyNotReadyError: Access control not initialized
        """
        if self._initialized:
            self.logger.debug("Execution orchestrator already initialized")
            return

        if not self._config.executor_address:
            raise ConfigError(
                "Executor address not configured. Set STRATEGY_VAULT_EXECUTOR_ADDRESS.",
                setting="execution.executor_address",
            )

        if access_control is None or not access_control.is_ready():
            raise DependencyNotReadyError(
                "AccessControlService must be initialized first",
                dependency="access_control",
            )

        self._access_control = access_control
        self._initialized = True

        self.logger.info(
            "Execution orchestrator initialized",
            executor=type(self._executor).__name__,
            executor_address=normalize_address(self._config.executor_address),
            chain_id=self._config.network.chain_id,
        )

    def is_ready(self) -> bool:
        return self._initialized

    def execute_strategy(
        self,
        strategy_id: str,
        owner_address: str,
        config: Union[StrategyConfig, Mapping[str, Any]]
    ) -> ExecuteResult:
        """
        Submit a purchased strategy for execution.

        Ownership is verified before anything is sent to the executor. All
        failures past initialization are reported in the result.

        Raises:
            NotInitializedError: If ``initialize`` has not been called
        """
        if not self._initialized:
            raise NotInitializedError(
                "ExecutionOrchestrator not initialized. Call initialize() first.",
                service="execution",
            )

        try:
            self._access_control.verify_strategy_access(strategy_id, owner_address)
        except AccessDeniedError:
            return ExecuteResult(success=False, error=NOT_OWNER_ERROR)

        ownership = self._access_control.check_strategy_ownership(strategy_id, owner_address)
        if not ownership.protected_data_reference:
            return ExecuteResult(success=False, error=MISSING_REFERENCE_ERROR)

        try:
            strategy_config = _coerce_config(config)
        except (TypeError, ValueError, InvalidInputError) as e:
            return ExecuteResult(success=False, error=sanitize_error_message(f"Invalid configuration: {e}"))

        strategy = self._registry.get(strategy_id)
        if strategy is not None:
            validation = strategy.validate(strategy_config)
        else:
            validation = validate_config(strategy_config, BASELINE_RULES, strategy_id)
        if not validation.is_valid:
            self.logger.info("Execution rejected by validation", strategy_id=strategy_id,
                             errors=validation.errors)
            return ExecuteResult(
                success=False,
                error=sanitize_error_message("Invalid configuration: " + "; ".join(validation.errors)),
            )

        submission = TaskSubmission(
            strategy_id=strategy_id,
            owner_address=validate_address(owner_address),
            protected_data_reference=ownership.protected_data_reference,
            config=strategy_config,
            network=self._config.network,
            execution_timeout=self._config.execution_timeout,
            max_gas_price=self._config.max_gas_price,
        )

        try:
            task_id = self._executor.submit(submission)
        except Exception as e:
            error = wrap_unexpected(e, "Task submission failed")
            self.logger.error("Task submission failed", strategy_id=strategy_id,
                              error=str(error), error_type=type(error).__name__)
            return ExecuteResult(success=False, error=sanitize_error_message(error))

        self.logger.info("Task submitted", strategy_id=strategy_id, task_id=task_id,
                         mode=strategy_config.execution_mode)
        return ExecuteResult(success=True, task_id=task_id)

    def get_execution_status(self, task_id: str) -> StatusResult:
        """
        Report the status of a task. Never raises.

        Malformed ids and lookup failures report ``failed`` with an error.
        """
        try:
            decoded = decode_task_id(task_id)
        except InvalidInputError as e:
            return StatusResult(status=TaskStatus.FAILED, task_id=str(task_id),
                                error=sanitize_error_message(e))

        if not self._initialized:
            return StatusResult(
                status=TaskStatus.FAILED,
                task_id=task_id,
                error="Execution orchestrator not initialized",
            )

        try:
            snapshot = self._executor.lookup(task_id, decoded.submitted_at)
            result = build_status_result(task_id, snapshot)
        except Exception as e:
            error = wrap_unexpected(e, "Status lookup failed")
            self.logger.error("Status lookup failed", task_id=task_id, error=str(error),
                              error_type=type(error).__name__)
            return StatusResult(
                status=TaskStatus.FAILED,
                task_id=task_id,
                error=sanitize_error_message(error),
            )

        if result.error:
            result = dataclasses.replace(result, error=sanitize_error_message(result.error))

        log_task_status(
            self.logger,
            task_id,
            result.status.value,
            elapsed_seconds=time_elapsed_seconds(decoded.submitted_at, self._clock()),
        )
        return result

    def get_config(self) -> ExecutionParams:
        return self._config

    def update_config(self, **changes) -> None:
        """
        Change configuration before initialization.

        Raises:
            ImmutableConfigError: If the orchestrator is already initialized
            ConfigError: If a field name is unknown
        """
        if self._initialized:
            raise ImmutableConfigError(
                "Cannot update execution config after initialization", fields=list(changes)
            )
        try:
            self._config = dataclasses.replace(self._config, **changes)
        except TypeError as e:
            raise ConfigError(f"Unknown execution setting: {e}") from e


def _coerce_config(config: Union[StrategyConfig, Mapping[str, Any], None]) -> StrategyConfig:
    if isinstance(config, StrategyConfig):
        return config
    if config is None:
        return StrategyConfig()
    if isinstance(config, Mapping):
        return StrategyConfig.from_dict(config)
    raise TypeError(f"Unsupported config type: {type(config).__name__}")
