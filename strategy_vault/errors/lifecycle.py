"""
Lifecycle and configuration errors.

These are raised synchronously and never retried: they signal that a service
was used out of order or without the configuration it needs.
"""

from typing import Optional

from .base import VaultError


class ConfigError(VaultError):
    """Required configuration (e.g. the executor address) is missing or invalid."""

    def __init__(self, message: str, setting: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.setting = setting


class NotInitializedError(VaultError):
    """A service operation was invoked before ``initialize``."""

    def __init__(self, message: str, service: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.service = service


class ServiceNotReadyError(NotInitializedError):
    """A purchase was attempted on an access-control service that is not bound."""


class DependencyNotReadyError(VaultError):
    """A collaborator handed to ``initialize`` is not itself initialized."""

    def __init__(self, message: str, dependency: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.dependency = dependency


class ImmutableConfigError(VaultError):
    """Configuration was changed after the owning service was initialized."""

    def __init__(self, message: str, fields: Optional[list] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.fields = fields or []
