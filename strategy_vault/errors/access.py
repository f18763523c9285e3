"""Access-control and input errors."""

from typing import Any, Optional

from .base import VaultError


class AccessDeniedError(VaultError):
    """The caller does not own the strategy it tried to use."""

    def __init__(self, message: str, strategy_id: Optional[str] = None,
                 address: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.strategy_id = strategy_id
        self.address = address


class NotFoundError(VaultError):
    """A referenced strategy or protected-data reference does not exist."""

    def __init__(self, message: str, reference: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.reference = reference


class InvalidInputError(VaultError):
    """Malformed input such as a bad task id or out-of-range value."""

    def __init__(self, message: str, field: Optional[str] = None,
                 value: Any = None, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value
        self.recoverable = True
