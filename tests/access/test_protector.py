"""Tests for the local AES-GCM data protector."""

import base64
import sqlite3

import pytest

from strategy_vault.access import LocalDataProtector, SigningContext
from strategy_vault.errors import AccessDeniedError, ConfigError, NotFoundError, ProtectionError
from strategy_vault.persistence import ProtectedDataStore

OWNER = "0xAbCdEf0123456789aBcDeF0123456789AbCdEf01"
APP = "0x1111111111111111111111111111111111111111"
USER = "0x9F8e7D6c5B4a39281706F5e4D3c2B1a098765432"


@pytest.fixture
def bound(protector):
    protector.bind(SigningContext(address=OWNER))
    return protector


class TestLocalDataProtector:
    """Test LocalDataProtector."""

    def test_requires_signer(self, protector):
        """Protecting before bind fails."""
        with pytest.raises(ProtectionError):
            protector.protect_data("{}", name="x")

    def test_protect_and_fetch_as_owner(self, bound, clock):
        """The protecting owner can always read the payload."""
        data = bound.protect_data('{"a": 1}', name="Strategy: x")

        assert data.address.startswith("0x") and len(data.address) == 42
        assert data.owner == OWNER.lower()
        assert data.created_at == clock()
        assert bound.fetch_protected_data(data.address, OWNER.upper().replace("0X", "0x")) == '{"a": 1}'

    def test_same_payload_gets_distinct_references(self, bound):
        """A fresh nonce per encryption yields distinct references."""
        first = bound.protect_data("payload", name="a")
        second = bound.protect_data("payload", name="a")
        assert first.address != second.address

    def test_grant_allows_app_and_user(self, bound):
        """Granted app and user can read; anyone else is denied."""
        data = bound.protect_data("secret", name="x")
        bound.grant_access(data.address, authorized_app=APP, authorized_user=USER)

        assert bound.fetch_protected_data(data.address, APP) == "secret"
        assert bound.fetch_protected_data(data.address, USER.lower()) == "secret"
        with pytest.raises(AccessDeniedError):
            bound.fetch_protected_data(data.address, "0x3333333333333333333333333333333333333333")

    def test_bounded_grant_consumed(self, bound):
        """Bounded grants decrement on each read."""
        data = bound.protect_data("secret", name="x")
        bound.grant_access(data.address, authorized_app=APP, authorized_user=USER, number_of_access=2)

        bound.fetch_protected_data(data.address, APP)
        assert bound.list_grants(data.address)[0].remaining_access == 1
        bound.fetch_protected_data(data.address, APP)

        with pytest.raises(AccessDeniedError):
            bound.fetch_protected_data(data.address, APP)

    def test_non_positive_access_count_rejected(self, bound):
        """Access counts must be positive."""
        data = bound.protect_data("secret", name="x")
        with pytest.raises(ProtectionError):
            bound.grant_access(data.address, APP, USER, number_of_access=0)

    def test_unknown_reference(self, bound):
        """Unknown references raise NotFoundError."""
        with pytest.raises(NotFoundError):
            bound.fetch_protected_data("0x" + "0" * 40, OWNER)
        with pytest.raises(NotFoundError):
            bound.grant_access("0x" + "0" * 40, APP, USER)

    def test_tampered_ciphertext(self, tmp_path, clock):
        """Ciphertext that fails authentication raises ProtectionError."""
        db_path = str(tmp_path / "vault.db")
        protector = LocalDataProtector(clock=clock, store=ProtectedDataStore(db_path))
        protector.bind(SigningContext(address=OWNER))
        data = protector.protect_data("secret", name="x")

        entry = protector.store.get_entry(data.address)
        blob = bytearray(base64.b64decode(entry.ciphertext))
        blob[-1] ^= 0x01
        with sqlite3.connect(db_path) as conn:
            conn.execute("UPDATE protected_data SET ciphertext = ? WHERE reference = ?",
                         (base64.b64encode(bytes(blob)).decode(), data.address))

        with pytest.raises(ProtectionError):
            protector.fetch_protected_data(data.address, OWNER)

    def test_discard(self, bound):
        """Discarded payloads are gone."""
        data = bound.protect_data("secret", name="x")
        bound.discard(data.address)

        assert bound.stats() == {"protected_payloads": 0, "grants": 0}
        with pytest.raises(NotFoundError):
            bound.fetch_protected_data(data.address, OWNER)

    def test_key_from_base64(self, clock):
        """A configured key decrypts what the same key encrypted."""
        key = base64.b64encode(b"k" * 32).decode()
        protector = LocalDataProtector.from_base64_key(key, clock=clock)
        protector.bind(SigningContext(address=OWNER))

        data = protector.protect_data("secret", name="x")
        assert protector.fetch_protected_data(data.address, OWNER) == "secret"

    @pytest.mark.parametrize("key", ["not base64!", base64.b64encode(b"short").decode()])
    def test_invalid_key_rejected(self, key):
        """Keys must be base64 and 32 bytes."""
        with pytest.raises(ConfigError):
            LocalDataProtector.from_base64_key(key)


class TestProtectorPersistence:
    """Test payloads and grants kept in a file-backed store."""

    KEY = base64.b64encode(b"k" * 32).decode()

    def open(self, db_path, clock, key=None):
        protector = LocalDataProtector.from_base64_key(
            key or self.KEY, clock=clock, store=ProtectedDataStore(db_path)
        )
        protector.bind(SigningContext(address=OWNER))
        return protector

    def test_reopened_protector_reads_payload(self, tmp_path, clock):
        """A new protector on the same file and key decrypts for a grantee."""
        db_path = str(tmp_path / "vault.db")
        data = self.open(db_path, clock).protect_data("secret", name="x")
        first = self.open(db_path, clock)
        first.grant_access(data.address, authorized_app=APP, authorized_user=USER)

        reopened = self.open(db_path, clock)

        assert reopened.fetch_protected_data(data.address, APP) == "secret"
        assert reopened.list_grants(data.address)[0].authorized_user == USER.lower()

    def test_bounded_grant_survives_reopen(self, tmp_path, clock):
        """Consumed accesses stay consumed across processes."""
        db_path = str(tmp_path / "vault.db")
        first = self.open(db_path, clock)
        data = first.protect_data("secret", name="x")
        first.grant_access(data.address, APP, USER, number_of_access=1)
        first.fetch_protected_data(data.address, APP)

        with pytest.raises(AccessDeniedError):
            self.open(db_path, clock).fetch_protected_data(data.address, APP)

    def test_wrong_key_cannot_decrypt(self, tmp_path, clock):
        """Reopening with another key fails authentication."""
        db_path = str(tmp_path / "vault.db")
        data = self.open(db_path, clock).protect_data("secret", name="x")
        other_key = base64.b64encode(b"q" * 32).decode()

        with pytest.raises(ProtectionError):
            self.open(db_path, clock, key=other_key).fetch_protected_data(data.address, OWNER)
