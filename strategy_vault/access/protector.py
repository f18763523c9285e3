"""
Data protection: encrypt strategy payloads and manage who may read them.

``DataProtector`` is the boundary the access-control service talks to.
``LocalDataProtector`` keeps ciphertext and grants in SQLite and encrypts
with AES-256-GCM; a networked protector implements the same interface.
"""

import base64
import hashlib
import os
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

import structlog
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..errors import AccessDeniedError, ConfigError, NotFoundError, ProtectionError
from ..persistence.ownership_store import MEMORY_DB
from ..persistence.protected_data_store import GrantRow, ProtectedDataStore, ProtectedEntry
from ..utils.addresses import addresses_equal, normalize_address
from ..utils.time import Clock, utc_now

NONCE_SIZE = 12

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SigningContext:
    """Caller-held credential the protector acts on behalf of (e.g. a wallet signer)."""
    address: str
    label: Optional[str] = None


@dataclass(frozen=True)
class ProtectedData:
    """Handle to an encrypted payload."""
    address: str
    name: str
    owner: str
    created_at: datetime


@dataclass
class AccessGrant:
    """Authorization for an app and a user to read a protected payload."""
    protected_data: str
    authorized_app: str
    authorized_user: str
    remaining_access: Optional[int] = None       # None = unlimited


class DataProtector(ABC):
    """Encryption and access-grant collaborator."""

    @abstractmethod
    def bind(self, signing_context: SigningContext) -> None:
        """Act on behalf of the given credential from now on."""

    @abstractmethod
    def protect_data(self, payload: str, name: str) -> ProtectedData:
        """Encrypt ``payload`` and return a handle to it."""

    @abstractmethod
    def grant_access(
        self,
        protected_data: str,
        authorized_app: str,
        authorized_user: str,
        number_of_access: Optional[int] = None
    ) -> AccessGrant:
        """Authorize an app and a user to read the payload."""

    @abstractmethod
    def fetch_protected_data(self, protected_data: str, requester: str) -> str:
        """Decrypt the payload for an authorized requester."""

    @abstractmethod
    def discard(self, protected_data: str) -> None:
        """Drop a payload that never became part of a completed purchase."""


class LocalDataProtector(DataProtector):
    """
    Protector using AES-256-GCM, with ciphertext and grants kept in a
    ``ProtectedDataStore``.

    Payloads survive a restart only when the store is file-backed and the
    same key is supplied again.
    """

    def __init__(self, key: Optional[bytes] = None, clock: Clock = utc_now,
                 store: Optional[ProtectedDataStore] = None):
        if key is None:
            key = AESGCM.generate_key(bit_length=256)
        if len(key) != 32:
            raise ConfigError("Encryption key must be 32 bytes", setting="protector.encryption_key")

        self._cipher = AESGCM(key)
        self._clock = clock
        self._store = store if store is not None else ProtectedDataStore(MEMORY_DB)
        self._fetch_lock = threading.Lock()
        self._signer: Optional[SigningContext] = None

    @classmethod
    def from_base64_key(cls, key_b64: Optional[str], clock: Clock = utc_now,
                        store: Optional[ProtectedDataStore] = None) -> "LocalDataProtector":
        """Build from a base64 key as stored in configuration; None generates a key."""
        if key_b64 is None:
            return cls(clock=clock, store=store)
        try:
            key = base64.b64decode(key_b64, validate=True)
        except ValueError as e:
            raise ConfigError("Encryption key is not valid base64", setting="protector.encryption_key") from e
        return cls(key, clock=clock, store=store)

    @property
    def store(self) -> ProtectedDataStore:
        return self._store

    def bind(self, signing_context: SigningContext) -> None:
        normalize_address(signing_context.address)
        self._signer = signing_context

    def protect_data(self, payload: str, name: str) -> ProtectedData:
        signer = self._require_signer()

        try:
            nonce = os.urandom(NONCE_SIZE)
            ciphertext = self._cipher.encrypt(nonce, payload.encode("utf-8"), None)
        except (TypeError, ValueError) as e:
            raise ProtectionError(f"Failed to encrypt payload: {e}", operation="protect") from e

        blob = nonce + ciphertext
        address = "0x" + hashlib.sha256(blob).hexdigest()[:40]
        data = ProtectedData(
            address=address,
            name=name,
            owner=normalize_address(signer.address),
            created_at=self._clock(),
        )

        self._store.add_entry(ProtectedEntry(
            reference=address,
            name=name,
            owner=data.owner,
            created_at=data.created_at,
            ciphertext=base64.b64encode(blob).decode(),
        ))

        logger.info("Payload protected", protected_data=address, payload_bytes=len(payload))
        return data

    def grant_access(
        self,
        protected_data: str,
        authorized_app: str,
        authorized_user: str,
        number_of_access: Optional[int] = None
    ) -> AccessGrant:
        self._require_signer()

        if number_of_access is not None and number_of_access <= 0:
            raise ProtectionError("number_of_access must be positive", operation="grant", reference=protected_data)

        if self._store.get_entry(protected_data) is None:
            raise NotFoundError(f"Protected data not found: {protected_data}", reference=protected_data)

        row = self._store.add_grant(
            protected_data,
            authorized_app=normalize_address(authorized_app),
            authorized_user=normalize_address(authorized_user),
            remaining_access=number_of_access,
        )

        logger.info(
            "Access granted",
            protected_data=protected_data,
            authorized_app=row.authorized_app,
            authorized_user=row.authorized_user,
            number_of_access=number_of_access,
        )
        return _to_grant(row)

    def fetch_protected_data(self, protected_data: str, requester: str) -> str:
        """
        Decrypt a payload for its owner, a granted user or a granted app.

        Each read by a grantee consumes one access when the grant is bounded.

        Raises:
            NotFoundError: Unknown reference
            AccessDeniedError: Requester holds no usable grant
            ProtectionError: Ciphertext failed authentication
        """
        entry = self._store.get_entry(protected_data)
        if entry is None:
            raise NotFoundError(f"Protected data not found: {protected_data}", reference=protected_data)

        if not addresses_equal(entry.owner, requester):
            with self._fetch_lock:
                if not self._consume_grant(protected_data, requester):
                    raise AccessDeniedError(
                        "Requester is not authorized for this protected data",
                        address=requester,
                    )

        blob = base64.b64decode(entry.ciphertext)
        try:
            plaintext = self._cipher.decrypt(blob[:NONCE_SIZE], blob[NONCE_SIZE:], None)
        except InvalidTag as e:
            raise ProtectionError("Protected data failed authentication", operation="fetch",
                                  reference=protected_data) from e
        return plaintext.decode("utf-8")

    def discard(self, protected_data: str) -> None:
        self._store.delete(protected_data)

    def list_grants(self, protected_data: str) -> list[AccessGrant]:
        return [_to_grant(row) for row in self._store.list_grants(protected_data)]

    def stats(self) -> dict[str, Any]:
        return self._store.get_stats()

    def _consume_grant(self, protected_data: str, requester: str) -> bool:
        for row in self._store.list_grants(protected_data):
            if not (addresses_equal(row.authorized_user, requester)
                    or addresses_equal(row.authorized_app, requester)):
                continue
            if row.remaining_access is None:
                return True
            if row.remaining_access > 0 and self._store.consume_grant(row.id):
                return True
        return False

    def _require_signer(self) -> SigningContext:
        if self._signer is None:
            raise ProtectionError("Data protector is not bound to a signing context", operation="bind")
        return self._signer


def _to_grant(row: GrantRow) -> AccessGrant:
    return AccessGrant(
        protected_data=row.reference,
        authorized_app=row.authorized_app,
        authorized_user=row.authorized_user,
        remaining_access=row.remaining_access,
    )
