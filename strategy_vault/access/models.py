"""Structured results returned by the access-control service."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from ..utils.time import format_timestamp


@dataclass(frozen=True)
class PurchaseResult:
    """Outcome of a purchase attempt; failures are reported, not raised."""
    success: bool
    protected_data_reference: Optional[str] = None
    error: Optional[str] = None
    already_owned: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "protected_data_reference": self.protected_data_reference,
            "error": self.error,
            "already_owned": self.already_owned,
        }


@dataclass(frozen=True)
class OwnershipResult:
    """Outcome of an ownership lookup."""
    is_owner: bool
    protected_data_reference: Optional[str] = None
    purchased_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_owner": self.is_owner,
            "protected_data_reference": self.protected_data_reference,
            "purchased_at": format_timestamp(self.purchased_at) if self.purchased_at else None,
        }
