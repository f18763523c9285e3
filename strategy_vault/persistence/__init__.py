"""
Durable storage for ownership records and protected payloads.
"""
from .ownership_store import OwnershipRecord, OwnershipStore
from .protected_data_store import GrantRow, ProtectedDataStore, ProtectedEntry

__all__ = ["OwnershipRecord", "OwnershipStore", "GrantRow", "ProtectedDataStore", "ProtectedEntry"]
