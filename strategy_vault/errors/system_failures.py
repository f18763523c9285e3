"""
System failure classifications.

These wrap failures in the collaborators the core depends on. They are
converted to structured ``success=False`` results at the service boundary.
"""

from typing import Optional

from .base import VaultError


class SystemFailureError(VaultError):
    """Base class for failures in encryption, storage or transport."""


class ProtectionError(SystemFailureError):
    """Encrypting a payload or granting access to it failed."""

    def __init__(self, message: str, operation: Optional[str] = None,
                 reference: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.operation = operation
        self.reference = reference


class PersistenceError(SystemFailureError):
    """Database or file system persistence failures."""

    def __init__(self, message: str, operation: Optional[str] = None,
                 target: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.operation = operation
        self.target = target


class ExecutorError(SystemFailureError):
    """The remote executor rejected or failed a submission or lookup."""

    def __init__(self, message: str, task_id: Optional[str] = None,
                 status_code: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.task_id = task_id
        self.status_code = status_code
        self.recoverable = True


class UnknownError(SystemFailureError):
    """An unexpected underlying failure, wrapped with its original cause."""

    def __init__(self, message: str, cause: Optional[BaseException] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.cause = cause


def wrap_unexpected(error: BaseException, message: str) -> VaultError:
    """
    Classify a failure caught at a service boundary.

    Vault errors pass through unchanged; anything else becomes an
    UnknownError that keeps the original exception as its cause.
    """
    if isinstance(error, VaultError):
        return error
    detail = str(error)
    return UnknownError(f"{message}: {detail}" if detail else message, cause=error)
