"""Append-only ownership persistence."""

import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator, Optional

import structlog

from ..errors import PersistenceError
from ..utils.time import format_timestamp, parse_timestamp

MEMORY_DB = ":memory:"


@dataclass(frozen=True)
class OwnershipRecord:
    """Durable proof that an address purchased a strategy."""
    strategy_id: str
    owner_address: str
    protected_data_reference: str
    purchased_at: datetime


class OwnershipStore:
    """
    SQLite-backed ownership store.

    Records are only ever inserted: there is no update or delete path, which
    keeps purchase idempotence intact for every holder of the store. The
    UNIQUE(strategy_id, owner_address) constraint backs the service's
    per-key purchase lock.
    """

    def __init__(self, db_path: str = "ownership.db"):
        self.db_path = db_path
        self.logger = structlog.get_logger("ownership.store")
        self._lock = threading.Lock()
        self._shared_conn: Optional[sqlite3.Connection] = None

        if db_path == MEMORY_DB:
            # A private in-memory database lives only as long as its connection
            self._shared_conn = sqlite3.connect(MEMORY_DB, check_same_thread=False)
            self._shared_conn.row_factory = sqlite3.Row
        else:
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self._init_database()

    def _init_database(self) -> None:
        """Initialize database schema."""
        with self._lock, self._get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS ownership_records (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    strategy_id TEXT NOT NULL,
                    owner_address TEXT NOT NULL,
                    protected_data_reference TEXT NOT NULL,
                    purchased_at TEXT NOT NULL,
                    UNIQUE(strategy_id, owner_address)
                )
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_ownership_owner ON ownership_records(owner_address)
            """)

            conn.commit()

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Get database connection, translating sqlite failures."""
        if self._shared_conn is not None:
            try:
                yield self._shared_conn
            except sqlite3.Error as e:
                self._shared_conn.rollback()
                self.logger.error("Database error", error=str(e))
                raise PersistenceError(str(e), target=self.db_path) from e
            return

        conn = None
        try:
            conn = sqlite3.connect(self.db_path, timeout=30.0)
            conn.row_factory = sqlite3.Row
            yield conn
        except sqlite3.Error as e:
            if conn:
                conn.rollback()
            self.logger.error("Database error", error=str(e), db_path=self.db_path)
            raise PersistenceError(str(e), target=self.db_path) from e
        finally:
            if conn:
                conn.close()

    def add(self, record: OwnershipRecord) -> OwnershipRecord:
        """
        Insert a record unless one exists for the same (strategy, owner).

        Args:
            record: Record to store; ``owner_address`` must already be case-folded

        Returns:
            The stored record: the new one, or the existing one on conflict

        Raises:
            PersistenceError: If the database operation fails
        """
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute("""
                    INSERT OR IGNORE INTO ownership_records (
                        strategy_id, owner_address, protected_data_reference, purchased_at
                    ) VALUES (?, ?, ?, ?)
                """, (
                    record.strategy_id,
                    record.owner_address,
                    record.protected_data_reference,
                    format_timestamp(record.purchased_at),
                ))
                conn.commit()
                inserted = cursor.rowcount == 1

            stored = self._fetch_one(record.strategy_id, record.owner_address)

        if stored is None:
            raise PersistenceError(
                "Ownership record missing after insert",
                operation="add",
                target=self.db_path,
            )

        self.logger.info(
            "Ownership record stored" if inserted else "Ownership record already present",
            strategy_id=record.strategy_id,
            owner_address=record.owner_address,
        )
        return stored

    def get(self, strategy_id: str, owner_address: str) -> Optional[OwnershipRecord]:
        """Look up the record for a (strategy, case-folded owner) pair."""
        with self._lock:
            return self._fetch_one(strategy_id, owner_address)

    def _fetch_one(self, strategy_id: str, owner_address: str) -> Optional[OwnershipRecord]:
        with self._get_connection() as conn:
            row = conn.execute("""
                SELECT * FROM ownership_records
                WHERE strategy_id = ? AND owner_address = ?
            """, (strategy_id, owner_address)).fetchone()

        return self._row_to_record(row) if row else None

    def list_by_owner(self, owner_address: str) -> list[OwnershipRecord]:
        """All records for a case-folded owner, in purchase order."""
        with self._lock, self._get_connection() as conn:
            rows = conn.execute("""
                SELECT * FROM ownership_records WHERE owner_address = ? ORDER BY id
            """, (owner_address,)).fetchall()

        return [self._row_to_record(row) for row in rows]

    def count(self) -> int:
        with self._lock, self._get_connection() as conn:
            return conn.execute("SELECT COUNT(*) FROM ownership_records").fetchone()[0]

    def get_stats(self) -> dict[str, Any]:
        """Get database statistics."""
        with self._lock, self._get_connection() as conn:
            total_count = conn.execute("SELECT COUNT(*) FROM ownership_records").fetchone()[0]

            by_strategy = {}
            for row in conn.execute("""
                SELECT strategy_id, COUNT(*) AS count FROM ownership_records GROUP BY strategy_id
            """):
                by_strategy[row[0]] = row[1]

            owners = conn.execute(
                "SELECT COUNT(DISTINCT owner_address) FROM ownership_records"
            ).fetchone()[0]

        return {
            "total_records": total_count,
            "records_by_strategy": by_strategy,
            "distinct_owners": owners,
        }

    def close(self) -> None:
        if self._shared_conn is not None:
            self._shared_conn.close()
            self._shared_conn = None

    def _row_to_record(self, row: sqlite3.Row) -> OwnershipRecord:
        """Convert database row to OwnershipRecord."""
        return OwnershipRecord(
            strategy_id=row["strategy_id"],
            owner_address=row["owner_address"],
            protected_data_reference=row["protected_data_reference"],
            purchased_at=parse_timestamp(row["purchased_at"]),
        )
