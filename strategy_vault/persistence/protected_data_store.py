"""Durable ciphertext and access-grant persistence for the local protector."""

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
from .ownership_store import MEMORY_DB


@dataclass(frozen=True)
class ProtectedEntry:
    """An encrypted payload as stored: base64 of nonce + ciphertext."""
    reference: str
    name: str
    owner: str
    created_at: datetime
    ciphertext: str


@dataclass(frozen=True)
class GrantRow:
    id: int
    reference: str
    authorized_app: str
    authorized_user: str
    remaining_access: Optional[int]


class ProtectedDataStore:
    """
    SQLite-backed store for protected payloads and their grants.

    Sharing a database file with the ownership store lets a reopened process
    read back every payload its ownership records point at.
    """

    def __init__(self, db_path: str = "ownership.db"):
        self.db_path = db_path
        self.logger = structlog.get_logger("protected_data.store")
        self._lock = threading.Lock()
        self._shared_conn: Optional[sqlite3.Connection] = None

        if db_path == MEMORY_DB:
            self._shared_conn = sqlite3.connect(MEMORY_DB, check_same_thread=False)
            self._shared_conn.row_factory = sqlite3.Row
        else:
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self._init_database()

    def _init_database(self) -> None:
        """Initialize database schema."""
        with self._lock, self._get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS protected_data (
                    reference TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    owner TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    ciphertext TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS access_grants (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    reference TEXT NOT NULL,
                    authorized_app TEXT NOT NULL,
                    authorized_user TEXT NOT NULL,
                    remaining_access INTEGER
                )
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_grants_reference ON access_grants(reference)
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

    def add_entry(self, entry: ProtectedEntry) -> None:
        with self._lock, self._get_connection() as conn:
            conn.execute("""
                INSERT OR IGNORE INTO protected_data (reference, name, owner, created_at, ciphertext)
                VALUES (?, ?, ?, ?, ?)
            """, (
                entry.reference,
                entry.name,
                entry.owner,
                format_timestamp(entry.created_at),
                entry.ciphertext,
            ))
            conn.commit()

    def get_entry(self, reference: str) -> Optional[ProtectedEntry]:
        with self._lock, self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM protected_data WHERE reference = ?", (reference,)
            ).fetchone()

        if row is None:
            return None
        return ProtectedEntry(
            reference=row["reference"],
            name=row["name"],
            owner=row["owner"],
            created_at=parse_timestamp(row["created_at"]),
            ciphertext=row["ciphertext"],
        )

    def add_grant(self, reference: str, authorized_app: str, authorized_user: str,
                  remaining_access: Optional[int]) -> GrantRow:
        with self._lock, self._get_connection() as conn:
            cursor = conn.execute("""
                INSERT INTO access_grants (reference, authorized_app, authorized_user, remaining_access)
                VALUES (?, ?, ?, ?)
            """, (reference, authorized_app, authorized_user, remaining_access))
            conn.commit()
            grant_id = cursor.lastrowid

        return GrantRow(grant_id, reference, authorized_app, authorized_user, remaining_access)

    def list_grants(self, reference: str) -> list[GrantRow]:
        """Grants on a payload, oldest first."""
        with self._lock, self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM access_grants WHERE reference = ? ORDER BY id", (reference,)
            ).fetchall()

        return [
            GrantRow(
                id=row["id"],
                reference=row["reference"],
                authorized_app=row["authorized_app"],
                authorized_user=row["authorized_user"],
                remaining_access=row["remaining_access"],
            )
            for row in rows
        ]

    def consume_grant(self, grant_id: int) -> bool:
        """
        Use up one access on a bounded grant.

        Returns:
            False if the grant was already exhausted
        """
        with self._lock, self._get_connection() as conn:
            cursor = conn.execute("""
                UPDATE access_grants SET remaining_access = remaining_access - 1
                WHERE id = ? AND remaining_access > 0
            """, (grant_id,))
            conn.commit()
            return cursor.rowcount == 1

    def delete(self, reference: str) -> None:
        """Remove a payload and its grants."""
        with self._lock, self._get_connection() as conn:
            conn.execute("DELETE FROM access_grants WHERE reference = ?", (reference,))
            conn.execute("DELETE FROM protected_data WHERE reference = ?", (reference,))
            conn.commit()

    def get_stats(self) -> dict[str, Any]:
        with self._lock, self._get_connection() as conn:
            payloads = conn.execute("SELECT COUNT(*) FROM protected_data").fetchone()[0]
            grants = conn.execute("SELECT COUNT(*) FROM access_grants").fetchone()[0]
        return {"protected_payloads": payloads, "grants": grants}

    def close(self) -> None:
        if self._shared_conn is not None:
            self._shared_conn.close()
            self._shared_conn = None
