"""SQLite offline store.

Schema (``PRAGMA user_version`` = :data:`~ticketdesk.storage.base.SCHEMA_VERSION`)::

    tickets     (id TEXT PRIMARY KEY, data TEXT)            -- wire JSON
    sync_queue  (id INTEGER PRIMARY KEY AUTOINCREMENT,
                 ticket_id, patch, original_updated_at, timestamp)
    INDEX sync_queue_by_timestamp ON sync_queue(timestamp)

The connection is opened lazily before every operation, so a store created
while the disk is unavailable recovers once it becomes available. A version
mismatch drops and recreates both tables. Blocking sqlite calls run in a
worker thread via ``asyncio.to_thread``.
"""

from __future__ import annotations

import asyncio
import json
import sqlite3
import threading
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import TypeVar

from ticketdesk.core.errors import StorageError
from ticketdesk.core.logging import get_logger
from ticketdesk.core.models import PendingChange, Ticket

from .base import SCHEMA_VERSION

logger = get_logger(__name__)

R = TypeVar("R")

_DDL = (
    """
    CREATE TABLE IF NOT EXISTS tickets (
        id   TEXT PRIMARY KEY,
        data TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sync_queue (
        id                  INTEGER PRIMARY KEY AUTOINCREMENT,
        ticket_id           TEXT NOT NULL,
        patch               TEXT NOT NULL,
        original_updated_at TEXT NOT NULL,
        timestamp           REAL NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS sync_queue_by_timestamp ON sync_queue(timestamp)",
)


class SQLiteOfflineStore:
    """File-backed :class:`~ticketdesk.storage.base.OfflineStore`.

    Example:
        store = SQLiteOfflineStore(Path.home() / ".ticketdesk" / "offline.db")
        await store.replace_all(tickets)
        cached = await store.read_all()
    """

    def __init__(self, path: str | Path = ":memory:", *, timeout: float = 5.0):
        self._path = str(path)
        self._timeout = timeout
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    @property
    def path(self) -> str:
        return self._path

    # ── Ticket mirror ────────────────────────────────────────────

    async def replace_all(self, tickets: Sequence[Ticket]) -> None:
        rows = [(t.id, json.dumps(t.to_dict())) for t in tickets]

        def op(conn: sqlite3.Connection) -> None:
            with conn:
                conn.execute("DELETE FROM tickets")
                conn.executemany("INSERT OR REPLACE INTO tickets (id, data) VALUES (?, ?)", rows)

        await self._run("replace_all", op)

    async def read_all(self) -> list[Ticket]:
        def op(conn: sqlite3.Connection) -> list[Ticket]:
            rows = conn.execute("SELECT data FROM tickets ORDER BY rowid").fetchall()
            return [Ticket.from_dict(json.loads(row[0])) for row in rows]

        return await self._run("read_all", op)

    async def upsert_one(self, ticket: Ticket) -> None:
        data = json.dumps(ticket.to_dict())

        def op(conn: sqlite3.Connection) -> None:
            with conn:
                conn.execute(
                    "INSERT INTO tickets (id, data) VALUES (?, ?) "
                    "ON CONFLICT(id) DO UPDATE SET data = excluded.data",
                    (ticket.id, data),
                )

        await self._run("upsert_one", op)

    # ── Pending queue ────────────────────────────────────────────

    async def append(self, change: PendingChange) -> int:
        params = (
            change.ticket_id,
            json.dumps(change.patch),
            change.original_updated_at,
            change.timestamp,
        )

        def op(conn: sqlite3.Connection) -> int:
            with conn:
                cursor = conn.execute(
                    "INSERT INTO sync_queue (ticket_id, patch, original_updated_at, timestamp) "
                    "VALUES (?, ?, ?, ?)",
                    params,
                )
            return int(cursor.lastrowid)

        return await self._run("append", op)

    async def read_pending(self) -> list[PendingChange]:
        def op(conn: sqlite3.Connection) -> list[PendingChange]:
            rows = conn.execute(
                "SELECT id, ticket_id, patch, original_updated_at, timestamp "
                "FROM sync_queue ORDER BY timestamp, id"
            ).fetchall()
            return [
                PendingChange(
                    key=row[0],
                    ticket_id=row[1],
                    patch=json.loads(row[2]),
                    original_updated_at=row[3],
                    timestamp=row[4],
                )
                for row in rows
            ]

        return await self._run("read_pending", op)

    async def remove(self, key: int) -> None:
        def op(conn: sqlite3.Connection) -> None:
            with conn:
                conn.execute("DELETE FROM sync_queue WHERE id = ?", (key,))

        await self._run("remove", op)

    async def count(self) -> int:
        def op(conn: sqlite3.Connection) -> int:
            return int(conn.execute("SELECT COUNT(*) FROM sync_queue").fetchone()[0])

        return await self._run("count", op)

    async def clear_pending(self) -> None:
        def op(conn: sqlite3.Connection) -> None:
            with conn:
                conn.execute("DELETE FROM sync_queue")

        await self._run("clear_pending", op)

    async def close(self) -> None:
        await asyncio.to_thread(self._disconnect)

    # ── Connection management ────────────────────────────────────

    async def _run(self, operation: str, op: Callable[[sqlite3.Connection], R]) -> R:
        return await asyncio.to_thread(self._call, operation, op)

    def _call(self, operation: str, op: Callable[[sqlite3.Connection], R]) -> R:
        with self._lock:
            try:
                return op(self._ensure_db())
            except (sqlite3.Error, ValueError, KeyError, TypeError) as e:
                raise StorageError(
                    f"Offline store {operation} failed: {e}",
                    cause=e,
                ).with_context(operation=operation, path=self._path) from e

    def _ensure_db(self) -> sqlite3.Connection:
        if self._conn is not None:
            return self._conn

        if self._path != ":memory:" and not self._path.startswith("file:"):
            try:
                Path(self._path).parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StorageError(
                    f"Cannot create offline store directory: {e}", cause=e
                ).with_context(path=self._path) from e

        conn = sqlite3.connect(
            self._path,
            timeout=self._timeout,
            check_same_thread=False,
            uri=self._path.startswith("file:"),
        )
        try:
            self._migrate(conn)
        except sqlite3.Error:
            conn.close()
            raise
        self._conn = conn
        return conn

    def _migrate(self, conn: sqlite3.Connection) -> None:
        version = conn.execute("PRAGMA user_version").fetchone()[0]
        with conn:
            if version != SCHEMA_VERSION:
                if version:
                    logger.warning(
                        "offline_store_version_mismatch",
                        found=version,
                        expected=SCHEMA_VERSION,
                        path=self._path,
                    )
                conn.execute("DROP TABLE IF EXISTS tickets")
                conn.execute("DROP TABLE IF EXISTS sync_queue")
            for statement in _DDL:
                conn.execute(statement)
            conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")

    def _disconnect(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None


__all__ = ["SQLiteOfflineStore"]
