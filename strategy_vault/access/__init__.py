"""
Purchase, encryption and ownership access control.
"""
from .models import OwnershipResult, PurchaseResult
from .protector import AccessGrant, DataProtector, LocalDataProtector, ProtectedData, SigningContext
from .service import AccessControlService

__all__ = [
    "AccessControlService",
    "AccessGrant",
    "DataProtector",
    "LocalDataProtector",
    "OwnershipResult",
    "ProtectedData",
    "PurchaseResult",
    "SigningContext",
]
