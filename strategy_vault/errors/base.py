"""Root of the strategy vault exception hierarchy."""

from typing import Any, Dict, Optional


class VaultError(Exception):
    """Base class for every error raised by the strategy vault."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.recoverable = False
