"""
Purchase and ownership access control.

The service encrypts a strategy's operations on purchase, grants read access
to the buyer and to the executor identity, and records ownership in the
append-only ownership store. The store is the single source of truth; the
in-process cache only projects records already read from it.
"""

import dataclasses
import threading
from typing import Optional, Union

from ..config.defaults import AccessParams, VaultConfig
from ..errors import (
    AccessDeniedError,
    ConfigError,
    ImmutableConfigError,
    InvalidInputError,
    NotInitializedError,
    ServiceNotReadyError,
    VaultError,
    sanitize_error_message,
    wrap_unexpected,
)
from ..logging.config import get_access_logger, log_access_decision
from ..persistence.ownership_store import MEMORY_DB, OwnershipRecord, OwnershipStore
from ..persistence.protected_data_store import ProtectedDataStore
from ..strategies.definition import StrategyDefinition
from ..utils.addresses import normalize_address, validate_address
from ..utils.locks import KeyedLock
from ..utils.time import Clock, utc_now
from .models import OwnershipResult, PurchaseResult
from .protector import DataProtector, LocalDataProtector, SigningContext

logger = get_access_logger(__name__)


class AccessControlService:
    """
    Gate strategy content behind a purchase and answer ownership queries.

    Lifecycle: construct, then ``initialize`` with the caller's signing
    context. Purchases before that raise ServiceNotReadyError; ownership
    queries before that simply report no ownership.
    """

    def __init__(
        self,
        store: OwnershipStore,
        protector: DataProtector,
        config: Optional[AccessParams] = None,
        clock: Clock = utc_now
    ) -> None:
        self._store = store
        self._protector = protector
        self._config = config or AccessParams()
        self._clock = clock

        self._initialized = False
        self._signing_context: Optional[SigningContext] = None
        self._purchase_locks = KeyedLock()

        self._cache: dict[tuple[str, str], OwnershipRecord] = {}
        self._cache_lock = threading.Lock()

        self.logger = logger

    @classmethod
    def from_config(cls, config: VaultConfig, clock: Clock = utc_now) -> "AccessControlService":
        """
        Wire a service with SQLite ownership and protected-data stores and a
        local protector from configuration.

        Raises:
            ConfigError: A file-backed store is configured without an encryption key
        """
        db_path = config.store.db_path
        if config.protector.encryption_key is None and db_path != MEMORY_DB:
            raise ConfigError(
                "An encryption key is required for a file-backed store. Set STRATEGY_VAULT_ENCRYPTION_KEY.",
                setting="protector.encryption_key",
            )

        return cls(
            store=OwnershipStore(db_path),
            protector=LocalDataProtector.from_base64_key(
                config.protector.encryption_key, clock=clock, store=ProtectedDataStore(db_path)
            ),
            config=config.access,
            clock=clock,
        )

    @property
    def executor_address(self) -> str:
        return self._config.executor_address

    @property
    def protector(self) -> DataProtector:
        return self._protector

    def initialize(self, signing_context: Union[SigningContext, str, None]) -> None:
        """
        Bind the service to a caller-held credential.

        Calling this again once initialized is a no-op.

        Raises:
            ConfigError: Executor address unset, or signing context missing/blank
        """
        if self._initialized:
            self.logger.debug("Access control already initialized")
            return

        if not self._config.executor_address:
            raise ConfigError(
                "Executor address not configured. Set STRATEGY_VAULT_EXECUTOR_ADDRESS.",
                setting="access.executor_address",
            )

        if isinstance(signing_context, str):
            signing_context = SigningContext(address=signing_context)
        if signing_context is None:
            raise ConfigError("A signing context is required", setting="signing_context")

        try:
            signer = normalize_address(signing_context.address)
        except InvalidInputError as e:
            raise ConfigError("Signing context has no address", setting="signing_context") from e

        self._protector.bind(signing_context)
        self._signing_context = signing_context
        self._initialized = True

        self.logger.info(
            "Access control initialized",
            signer=signer,
            executor_address=normalize_address(self._config.executor_address),
            max_access_count=self._config.max_access_count or "unlimited",
        )

    def is_ready(self) -> bool:
        return self._initialized

    def purchase_strategy(self, strategy: StrategyDefinition, buyer_address: str) -> PurchaseResult:
        """
        Purchase a strategy for ``buyer_address``.

        Idempotent per (strategy, buyer): an existing purchase is returned as
        is, without encrypting again. Otherwise the serialized strategy is
        encrypted, access is granted to the buyer and the executor, and the
        ownership record is written. Nothing is recorded if any step fails.

        Raises:
            ServiceNotReadyError: If ``initialize`` has not been called
        """
        if not self._initialized:
            raise ServiceNotReadyError(
                "AccessControlService not initialized. Call initialize() first.",
                service="access_control",
            )

        try:
            buyer = validate_address(buyer_address)
        except InvalidInputError as e:
            return PurchaseResult(success=False, error=e.message)

        key = (strategy.id, buyer)
        with self._purchase_locks.hold(key):
            try:
                existing = self._lookup(strategy.id, buyer)
            except VaultError as e:
                self.logger.error("Ownership lookup failed during purchase",
                                  strategy_id=strategy.id, buyer=buyer, error=str(e))
                return PurchaseResult(success=False, error=_purchase_error_message(e))

            if existing is not None:
                self.logger.info("Strategy already owned, purchase skipped",
                                 strategy_id=strategy.id, buyer=buyer)
                return PurchaseResult(
                    success=True,
                    protected_data_reference=existing.protected_data_reference,
                    already_owned=True,
                )

            return self._purchase_new(strategy, buyer, key)

    def _purchase_new(self, strategy: StrategyDefinition, buyer: str,
                      key: tuple[str, str]) -> PurchaseResult:
        self.logger.info("Starting purchase", strategy_id=strategy.id, buyer=buyer)

        protected = None
        try:
            protected = self._protector.protect_data(strategy.serialize(), name=f"Strategy: {strategy.id}")
            self._protector.grant_access(
                protected.address,
                authorized_app=self._config.executor_address,
                authorized_user=buyer,
                number_of_access=self._config.max_access_count,
            )
            record = self._store.add(OwnershipRecord(
                strategy_id=strategy.id,
                owner_address=buyer,
                protected_data_reference=protected.address,
                purchased_at=self._clock(),
            ))
        except Exception as e:
            if protected is not None:
                self._protector.discard(protected.address)
            error = wrap_unexpected(e, "Purchase failed")
            self.logger.error("Purchase failed", strategy_id=strategy.id, buyer=buyer,
                              error=str(error), error_type=type(error).__name__)
            return PurchaseResult(success=False, error=_purchase_error_message(error))
        finally:
            self._invalidate(key)

        if record.protected_data_reference != protected.address:
            # Another writer on the same store won the insert
            self._protector.discard(protected.address)
            return PurchaseResult(
                success=True,
                protected_data_reference=record.protected_data_reference,
                already_owned=True,
            )

        self.logger.info("Purchase completed", strategy_id=strategy.id, buyer=buyer,
                         protected_data=record.protected_data_reference)
        return PurchaseResult(success=True, protected_data_reference=record.protected_data_reference)

    def check_strategy_ownership(self, strategy_id: str, user_address: str) -> OwnershipResult:
        """
        Report whether ``user_address`` owns ``strategy_id``.

        Never raises: an uninitialized service, a malformed address or a
        storage failure all report ``is_owner=False``.
        """
        if not self._initialized:
            return OwnershipResult(is_owner=False)

        try:
            record = self._lookup(strategy_id, validate_address(user_address))
        except VaultError as e:
            self.logger.warning("Ownership check failed", strategy_id=strategy_id, error=str(e))
            return OwnershipResult(is_owner=False)

        if record is None:
            return OwnershipResult(is_owner=False)

        return OwnershipResult(
            is_owner=True,
            protected_data_reference=record.protected_data_reference,
            purchased_at=record.purchased_at,
        )

    def get_user_owned_strategies(self, user_address: str) -> list[str]:
        """Strategy ids owned by ``user_address``, in purchase order."""
        if not self._initialized:
            return []

        try:
            records = self._store.list_by_owner(validate_address(user_address))
        except VaultError as e:
            self.logger.warning("Failed to list owned strategies", error=str(e))
            return []

        return [record.strategy_id for record in records]

    def verify_strategy_access(self, strategy_id: str, user_address: str) -> OwnershipResult:
        """
        Gate used before execution.

        Raises:
            NotInitializedError: If ``initialize`` has not been called
            AccessDeniedError: If the user does not own the strategy
        """
        if not self._initialized:
            raise NotInitializedError(
                "AccessControlService not initialized. Call initialize() first.",
                service="access_control",
            )

        ownership = self.check_strategy_ownership(strategy_id, user_address)
        address = _fold_for_log(user_address)

        if not ownership.is_owner:
            log_access_decision(self.logger, strategy_id, address, False, "no ownership record")
            raise AccessDeniedError(
                f"User {address} does not own strategy {strategy_id}",
                strategy_id=strategy_id,
                address=address,
            )

        log_access_decision(self.logger, strategy_id, address, True, "ownership record found")
        return ownership

    def get_config(self) -> AccessParams:
        return self._config

    def update_config(self, **changes) -> None:
        """
        Change configuration before initialization.

        Raises:
            ImmutableConfigError: If the service is already initialized
            ConfigError: If a field name is unknown
        """
        if self._initialized:
            raise ImmutableConfigError(
                "Cannot update access config after initialization", fields=list(changes)
            )
        try:
            self._config = dataclasses.replace(self._config, **changes)
        except TypeError as e:
            raise ConfigError(f"Unknown access setting: {e}") from e

    def _lookup(self, strategy_id: str, owner: str) -> Optional[OwnershipRecord]:
        key = (strategy_id, owner)
        with self._cache_lock:
            cached = self._cache.get(key)
        if cached is not None:
            return cached

        record = self._store.get(strategy_id, owner)
        if record is not None:
            with self._cache_lock:
                self._cache[key] = record
        return record

    def _invalidate(self, key: tuple[str, str]) -> None:
        with self._cache_lock:
            self._cache.pop(key, None)


def _purchase_error_message(error: Exception) -> str:
    message = str(error) or "Purchase failed. Please try again."
    lowered = message.lower()
    if "insufficient funds" in lowered:
        return "Insufficient balance for purchase"
    if "user rejected" in lowered:
        return "Transaction rejected by user"
    return sanitize_error_message(message)


def _fold_for_log(address: str) -> str:
    return address.strip().casefold() if isinstance(address, str) else repr(address)
