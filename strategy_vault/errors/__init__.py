"""
Error classification for the strategy vault.

Lifecycle and configuration errors are raised synchronously to the caller.
Access and input errors describe why a request was refused. System failures
wrap problems in the collaborators this core talks to (encryption, storage,
remote executor).
"""

from .base import VaultError
from .lifecycle import (
    ConfigError,
    NotInitializedError,
    ServiceNotReadyError,
    DependencyNotReadyError,
    ImmutableConfigError,
)
from .access import (
    AccessDeniedError,
    NotFoundError,
    InvalidInputError,
)
from .system_failures import (
    SystemFailureError,
    ProtectionError,
    PersistenceError,
    ExecutorError,
    UnknownError,
    wrap_unexpected,
)
from .sanitize import sanitize_error_message

__all__ = [
    "VaultError",
    # Lifecycle
    "ConfigError",
    "NotInitializedError",
    "ServiceNotReadyError",
    "DependencyNotReadyError",
    "ImmutableConfigError",
    # Access / input
    "AccessDeniedError",
    "NotFoundError",
    "InvalidInputError",
    # System failures
    "SystemFailureError",
    "ProtectionError",
    "PersistenceError",
    "ExecutorError",
    "UnknownError",
    "wrap_unexpected",
    "sanitize_error_message",
]
