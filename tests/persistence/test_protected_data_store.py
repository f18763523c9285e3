"""Tests for protected payload persistence."""

import os
import tempfile
from datetime import datetime, timezone

from strategy_vault.persistence import OwnershipStore, ProtectedDataStore, ProtectedEntry

CREATED_AT = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
REFERENCE = "0x" + "b" * 40


def make_entry(reference=REFERENCE):
    return ProtectedEntry(
        reference=reference,
        name="Strategy: mock-strategy-001",
        owner="0xowner",
        created_at=CREATED_AT,
        ciphertext="Y2lwaGVydGV4dA==",
    )


class TestProtectedDataStore:
    """Test ProtectedDataStore on a file database."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.db_path = os.path.join(self.temp_dir, "vault.db")
        self.store = ProtectedDataStore(self.db_path)

    def teardown_method(self):
        import shutil
        shutil.rmtree(self.temp_dir)

    def test_entry_round_trip_across_instances(self):
        """Entries written by one instance are read by another."""
        self.store.add_entry(make_entry())

        entry = ProtectedDataStore(self.db_path).get_entry(REFERENCE)

        assert entry == make_entry()
        assert ProtectedDataStore(self.db_path).get_entry("0x" + "0" * 40) is None

    def test_shares_file_with_ownership_store(self):
        """Both stores can live in one database file."""
        OwnershipStore(self.db_path)
        self.store.add_entry(make_entry())

        assert OwnershipStore(self.db_path).count() == 0
        assert self.store.get_stats() == {"protected_payloads": 1, "grants": 0}

    def test_consume_grant_stops_at_zero(self):
        """Bounded grants never go below zero."""
        self.store.add_entry(make_entry())
        grant = self.store.add_grant(REFERENCE, "0xapp", "0xuser", remaining_access=1)

        assert self.store.consume_grant(grant.id) is True
        assert self.store.consume_grant(grant.id) is False
        assert self.store.list_grants(REFERENCE)[0].remaining_access == 0

    def test_unbounded_grant_not_consumed(self):
        """Unlimited grants have no counter to decrement."""
        self.store.add_entry(make_entry())
        grant = self.store.add_grant(REFERENCE, "0xapp", "0xuser", remaining_access=None)

        assert self.store.consume_grant(grant.id) is False
        assert self.store.list_grants(REFERENCE)[0].remaining_access is None

    def test_delete_removes_grants(self):
        """Deleting a payload drops its grants too."""
        self.store.add_entry(make_entry())
        self.store.add_grant(REFERENCE, "0xapp", "0xuser", remaining_access=3)

        self.store.delete(REFERENCE)

        assert self.store.get_entry(REFERENCE) is None
        assert self.store.list_grants(REFERENCE) == []
        assert self.store.get_stats() == {"protected_payloads": 0, "grants": 0}


def test_memory_store_is_private():
    """Each in-memory store is its own database."""
    first = ProtectedDataStore(":memory:")
    first.add_entry(make_entry())

    assert ProtectedDataStore(":memory:").get_entry(REFERENCE) is None
    assert first.get_entry(REFERENCE) is not None
