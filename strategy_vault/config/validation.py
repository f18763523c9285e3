"""Configuration validation utilities."""

import base64
import binascii
import re
from dataclasses import dataclass
from typing import Any

from ..persistence.ownership_store import MEMORY_DB
from .defaults import VaultConfig

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


class ConfigValidator:
    """Validates resolved configuration."""

    @staticmethod
    def validate_executor_address(field: str, value: Any) -> list[ValidationError]:
        """Executor address must be set and look like a wallet address."""
        if not value:
            return [ValidationError(field=field, message="Executor address is required", value=value)]
        if not isinstance(value, str) or not _ADDRESS_RE.match(value.strip()):
            return [ValidationError(
                field=field,
                message="Must be 0x followed by 40 hex characters",
                value=value
            )]
        return []

    @staticmethod
    def validate_access_params(config: VaultConfig) -> list[ValidationError]:
        """Validate access parameters."""
        errors = ConfigValidator.validate_executor_address(
            "access.executor_address", config.access.executor_address
        )

        count = config.access.max_access_count
        if count is not None and (not isinstance(count, int) or isinstance(count, bool) or count <= 0):
            errors.append(ValidationError(
                field="access.max_access_count",
                message="Must be a positive integer or unset",
                value=count
            ))

        return errors

    @staticmethod
    def validate_execution_params(config: VaultConfig) -> list[ValidationError]:
        """Validate execution parameters."""
        execution = config.execution
        errors = ConfigValidator.validate_executor_address(
            "execution.executor_address", execution.executor_address
        )

        if (execution.executor_address and config.access.executor_address
                and execution.executor_address.casefold() != config.access.executor_address.casefold()):
            errors.append(ValidationError(
                field="execution.executor_address",
                message="Must match access.executor_address",
                value=execution.executor_address
            ))

        if not isinstance(execution.execution_timeout, int) or execution.execution_timeout <= 0:
            errors.append(ValidationError(
                field="execution.execution_timeout",
                message="Must be a positive integer",
                value=execution.execution_timeout
            ))

        if not isinstance(execution.pending_seconds, (int, float)) or execution.pending_seconds < 0:
            errors.append(ValidationError(
                field="execution.pending_seconds",
                message="Must be a non-negative number",
                value=execution.pending_seconds
            ))
        elif (not isinstance(execution.running_seconds, (int, float))
              or execution.running_seconds < execution.pending_seconds):
            errors.append(ValidationError(
                field="execution.running_seconds",
                message="Must be a number not less than pending_seconds",
                value=execution.running_seconds
            ))

        if not isinstance(execution.http_timeout_seconds, int) or execution.http_timeout_seconds <= 0:
            errors.append(ValidationError(
                field="execution.http_timeout_seconds",
                message="Must be a positive integer",
                value=execution.http_timeout_seconds
            ))

        if not isinstance(execution.network.chain_id, int) or execution.network.chain_id <= 0:
            errors.append(ValidationError(
                field="execution.network.chain_id",
                message="Must be a positive integer",
                value=execution.network.chain_id
            ))

        return errors

    @staticmethod
    def validate_protector_params(config: VaultConfig) -> list[ValidationError]:
        """Validate the encryption key; a file-backed store needs one to reopen its payloads."""
        key_b64 = config.protector.encryption_key
        if key_b64 is None:
            if config.store.db_path and config.store.db_path != MEMORY_DB:
                return [ValidationError(
                    field="protector.encryption_key",
                    message="Required when store.db_path is a file",
                    value=None
                )]
            return []

        try:
            key = base64.b64decode(key_b64, validate=True)
        except (binascii.Error, ValueError, TypeError):
            return [ValidationError(
                field="protector.encryption_key",
                message="Must be valid base64",
                value="<redacted>"
            )]

        if len(key) != 32:
            return [ValidationError(
                field="protector.encryption_key",
                message="Must decode to 32 bytes",
                value="<redacted>"
            )]
        return []

    @staticmethod
    def validate_config(config: VaultConfig) -> list[ValidationError]:
        """Validate complete configuration."""
        errors = []
        errors.extend(ConfigValidator.validate_access_params(config))
        errors.extend(ConfigValidator.validate_execution_params(config))
        errors.extend(ConfigValidator.validate_protector_params(config))

        if not config.store.db_path:
            errors.append(ValidationError(
                field="store.db_path",
                message="Must not be empty",
                value=config.store.db_path
            ))

        return errors
