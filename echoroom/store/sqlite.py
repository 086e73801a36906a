"""SQLite record store.

Durable storage for the ``sessions``, ``messages`` and ``participants``
tables. Blocking sqlite calls run in worker threads so a slow write in
one room never stalls another room's timer.
"""

from __future__ import annotations

import asyncio
import re
import sqlite3
import threading
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from loguru import logger

from echoroom.store.base import Record, RecordStore, StoreError

SCHEMA_VERSION = 1

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS sessions (
    id              TEXT PRIMARY KEY,
    title           TEXT DEFAULT '',
    category        TEXT DEFAULT 'General',
    created_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS messages (
    id              TEXT PRIMARY KEY,
    session_id      TEXT NOT NULL,
    sender          TEXT NOT NULL,
    user_id         TEXT,
    text            TEXT NOT NULL,
    timestamp       TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS participants (
    id              TEXT PRIMARY KEY,
    user_id         TEXT NOT NULL,
    session_id      TEXT NOT NULL,
    user_name       TEXT NOT NULL,
    mood            TEXT DEFAULT 'calm',
    avatar          TEXT DEFAULT '',
    is_speaking     INTEGER NOT NULL DEFAULT 0,
    is_muted        INTEGER NOT NULL DEFAULT 0,
    joined_at       TEXT,
    UNIQUE (user_id, session_id)
);

CREATE TABLE IF NOT EXISTS schema_meta (
    key   TEXT PRIMARY KEY,
    value TEXT
);

CREATE INDEX IF NOT EXISTS idx_messages_session_ts ON messages(session_id, timestamp);
CREATE INDEX IF NOT EXISTS idx_participants_session ON participants(session_id);
"""

BOOLEAN_COLUMNS: dict[str, set[str]] = {
    "participants": {"is_speaking", "is_muted"},
}

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SQLiteStore(RecordStore):
    """SQLite-backed record store.

    Uses a connection per thread with WAL mode for
    concurrent read/write without blocking.
    """

    def __init__(self, db_path: Path | str):
        self._db_path = str(db_path)
        Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._local = threading.local()
        self._conns: list[sqlite3.Connection] = []
        self._conns_lock = threading.Lock()
        self._columns: dict[str, set[str]] = {}
        self._init_db()

    def _get_conn(self) -> sqlite3.Connection:
        """Get a thread-local connection."""
        if not hasattr(self._local, "conn") or self._local.conn is None:
            conn = sqlite3.connect(self._db_path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA busy_timeout=5000")
            self._local.conn = conn
            with self._conns_lock:
                self._conns.append(conn)
        return self._local.conn

    @contextmanager
    def _cursor(self) -> Iterator[sqlite3.Cursor]:
        """Context manager for a cursor with auto-commit."""
        conn = self._get_conn()
        cursor = conn.cursor()
        try:
            yield cursor
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def _init_db(self) -> None:
        """Create tables and record the schema version."""
        with self._cursor() as cur:
            cur.executescript(SCHEMA_SQL)
            cur.execute(
                "INSERT OR REPLACE INTO schema_meta (key, value) VALUES (?, ?)",
                ("schema_version", str(SCHEMA_VERSION)),
            )
            for table in ("sessions", "messages", "participants"):
                cur.execute(f"PRAGMA table_info({table})")
                self._columns[table] = {row["name"] for row in cur.fetchall()}
        logger.debug(f"Store: SQLite initialized at {self._db_path}")

    async def close(self) -> None:
        """Close every per-thread connection."""
        with self._conns_lock:
            conns, self._conns = self._conns, []
        for conn in conns:
            conn.close()
        self._local = threading.local()

    # ── Helpers ──────────────────────────────────────────────

    def _check(self, table: str, columns: list[str]) -> None:
        known = self._columns.get(table)
        if known is None:
            raise StoreError(f"Unknown table: {table}")
        for col in columns:
            if not _IDENTIFIER.match(col) or col not in known:
                raise StoreError(f"Unknown column {col!r} for table {table}")

    def _to_record(self, table: str, row: sqlite3.Row) -> Record:
        record = dict(row)
        for col in BOOLEAN_COLUMNS.get(table, ()):
            if col in record and record[col] is not None:
                record[col] = bool(record[col])
        return record

    @staticmethod
    def _where(filters: Record | None) -> tuple[str, list[Any]]:
        if not filters:
            return "", []
        clause = " AND ".join(f"{col} = ?" for col in filters)
        return f" WHERE {clause}", list(filters.values())

    async def _run(self, fn, *args):
        try:
            return await asyncio.to_thread(fn, *args)
        except StoreError:
            raise
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e

    # ── Sync implementations ─────────────────────────────────

    def _insert_sync(self, table: str, record: Record) -> Record:
        stored = dict(record)
        stored.setdefault("id", uuid.uuid4().hex)
        cols = list(stored)
        self._check(table, cols)
        placeholders = ", ".join("?" for _ in cols)
        with self._cursor() as cur:
            cur.execute(
                f"INSERT INTO {table} ({', '.join(cols)}) VALUES ({placeholders})",
                [stored[c] for c in cols],
            )
            cur.execute(f"SELECT * FROM {table} WHERE id = ?", (stored["id"],))
            row = cur.fetchone()
        return self._to_record(table, row)

    def _select_sync(
        self,
        table: str,
        filters: Record | None,
        order_by: str | None,
        descending: bool,
        limit: int | None,
    ) -> list[Record]:
        self._check(table, list(filters or {}) + ([order_by] if order_by else []))
        where, params = self._where(filters)
        sql = f"SELECT * FROM {table}{where}"
        if order_by:
            sql += f" ORDER BY {order_by} {'DESC' if descending else 'ASC'}"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(max(0, limit))
        with self._cursor() as cur:
            cur.execute(sql, params)
            return [self._to_record(table, r) for r in cur.fetchall()]

    def _update_sync(self, table: str, filters: Record, values: Record) -> list[Record]:
        if not values:
            return self._select_sync(table, filters, None, False, None)
        self._check(table, list(filters) + list(values))
        where, params = self._where(filters)
        assignments = ", ".join(f"{col} = ?" for col in values)
        with self._cursor() as cur:
            cur.execute(f"UPDATE {table} SET {assignments}{where}", list(values.values()) + params)
        # Re-read with the new values applied to the filter columns
        refreshed = {k: values.get(k, v) for k, v in filters.items()}
        return self._select_sync(table, refreshed, None, False, None)

    def _delete_sync(self, table: str, filters: Record) -> int:
        self._check(table, list(filters))
        where, params = self._where(filters)
        with self._cursor() as cur:
            cur.execute(f"DELETE FROM {table}{where}", params)
            return cur.rowcount

    # ── RecordStore API ──────────────────────────────────────

    async def insert(self, table: str, record: Record) -> Record:
        return await self._run(self._insert_sync, table, record)

    async def select(
        self,
        table: str,
        filters: Record | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Record]:
        return await self._run(self._select_sync, table, filters, order_by, descending, limit)

    async def update(self, table: str, filters: Record, values: Record) -> list[Record]:
        return await self._run(self._update_sync, table, filters, values)

    async def delete(self, table: str, filters: Record) -> int:
        return await self._run(self._delete_sync, table, filters)
