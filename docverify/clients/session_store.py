"""
Single-use, TTL-bound session stores persisted in the shared SQLite database.

The authorize and callback legs of the DigiLocker flow may be served by
different process instances, so pending state lives in the database file
rather than in process memory. ``get_and_delete`` holds a write lock for the
whole read-then-delete so a record is handed out at most once.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import time
from pathlib import Path
from typing import Callable, Generic, Optional, Type, TypeVar

from pydantic import BaseModel

from docverify.clients.sqlite_store import connect
from docverify.schemas import AuthSession, ResultSession

logger = logging.getLogger(__name__)

SessionT = TypeVar("SessionT", bound=BaseModel)


class SingleUseSessionStore(Generic[SessionT]):
    """Key/value table whose entries expire and can be consumed only once."""

    table_name: str = ""
    model: Type[BaseModel] = BaseModel

    def __init__(
        self,
        db_path: str,
        *,
        ttl_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not self.table_name:
            raise TypeError("Subclasses must define table_name.")
        self._db_path = Path(db_path)
        self._ttl = ttl_seconds
        self._clock = clock
        self._ensure_schema()

    @property
    def ttl_seconds(self) -> int:
        return self._ttl

    def _connect(self) -> sqlite3.Connection:
        conn = connect(self._db_path)
        # Transactions are managed explicitly below.
        conn.isolation_level = None
        return conn

    def _ensure_schema(self) -> None:
        conn = self._connect()
        try:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self.table_name} (
                    session_key TEXT PRIMARY KEY,
                    data TEXT NOT NULL,
                    created_at REAL NOT NULL,
                    expires_at REAL NOT NULL
                )
                """
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS {self.table_name}_expiry "
                f"ON {self.table_name} (expires_at)"
            )
        finally:
            conn.close()

    def put(self, key: str, session: SessionT, ttl: Optional[int] = None) -> None:
        """Store ``session`` under ``key`` for ``ttl`` seconds (store default if omitted)."""
        if not key:
            raise ValueError("Session key must be provided.")
        now = self._clock()
        lifetime = self._ttl if ttl is None else ttl
        conn = self._connect()
        try:
            conn.execute(
                f"""
                INSERT INTO {self.table_name} (session_key, data, created_at, expires_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(session_key) DO UPDATE SET
                    data = excluded.data,
                    created_at = excluded.created_at,
                    expires_at = excluded.expires_at
                """,
                (key, session.model_dump_json(), now, now + lifetime),
            )
        finally:
            conn.close()

    def get_and_delete(self, key: str) -> Optional[SessionT]:
        """Atomically fetch and remove ``key``; expired entries count as absent."""
        if not key:
            return None
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute(
                f"SELECT data, expires_at FROM {self.table_name} WHERE session_key = ?",
                (key,),
            ).fetchone()
            if row is not None:
                conn.execute(
                    f"DELETE FROM {self.table_name} WHERE session_key = ?", (key,)
                )
            conn.execute("COMMIT")
        except sqlite3.Error:
            conn.rollback()
            raise
        finally:
            conn.close()

        if row is None:
            return None
        if row["expires_at"] <= self._clock():
            logger.info("Discarded expired entry from %s", self.table_name)
            return None
        return self.model.model_validate_json(row["data"])  # type: ignore[return-value]

    def sweep(self) -> int:
        """Delete every expired entry, read or not. Returns the number removed."""
        conn = self._connect()
        try:
            cursor = conn.execute(
                f"DELETE FROM {self.table_name} WHERE expires_at <= ?",
                (self._clock(),),
            )
            removed = cursor.rowcount
        finally:
            conn.close()
        if removed:
            logger.debug("Swept %d expired entries from %s", removed, self.table_name)
        return removed


class AuthSessionStore(SingleUseSessionStore[AuthSession]):
    """Pending authorizations keyed by their state token."""

    table_name = "auth_sessions"
    model = AuthSession


class ResultSessionStore(SingleUseSessionStore[ResultSession]):
    """Completed locker fetches keyed by their delivery session id."""

    table_name = "result_sessions"
    model = ResultSession


class ResultSessionSweeper:
    """Periodically purge result sessions that were never collected."""

    def __init__(self, store: SingleUseSessionStore, *, interval_seconds: float) -> None:
        self._store = store
        self._interval = interval_seconds
        self._task: asyncio.Task[None] | None = None

    async def run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await asyncio.to_thread(self._store.sweep)
            except sqlite3.Error:
                logger.exception("Result session sweep failed")

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None


__all__ = [
    "AuthSessionStore",
    "ResultSessionStore",
    "ResultSessionSweeper",
    "SingleUseSessionStore",
]
