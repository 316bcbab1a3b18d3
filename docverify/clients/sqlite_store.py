"""SQLite-backed key-value storage shared by every process instance."""

from __future__ import annotations

import json
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Any, Dict, Optional

_RECORDS_DDL = """
CREATE TABLE IF NOT EXISTS kv_records (
    pk TEXT NOT NULL,
    sk TEXT NOT NULL,
    data TEXT NOT NULL,
    PRIMARY KEY (pk, sk)
)
"""

_UPSERT = """
INSERT INTO kv_records (pk, sk, data) VALUES (?, ?, ?)
ON CONFLICT(pk, sk) DO UPDATE SET data = excluded.data
"""


def connect(db_path: Path) -> sqlite3.Connection:
    """Open a connection suitable for concurrent use by several processes."""
    if db_path.parent and not db_path.parent.exists():
        db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path, timeout=10.0, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    return conn


class SQLiteStore:
    """JSON documents addressed by a partition key and a sort key."""

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        with closing(connect(self._db_path)) as conn, conn:
            conn.execute(_RECORDS_DDL)

    def put_item(self, item: Dict[str, Any]) -> None:
        """Insert or replace the document stored under ``item['pk']`` / ``item['sk']``."""
        pk, sk = item.get("pk"), item.get("sk")
        if not pk or not sk:
            raise ValueError("Item must include 'pk' and 'sk' keys")
        with closing(connect(self._db_path)) as conn, conn:
            conn.execute(_UPSERT, (pk, sk, json.dumps(item)))

    def get_item(self, *, partition_key: str, sort_key: str) -> Optional[Dict[str, Any]]:
        with closing(connect(self._db_path)) as conn:
            row = conn.execute(
                "SELECT data FROM kv_records WHERE pk = ? AND sk = ?",
                (partition_key, sort_key),
            ).fetchone()
        return json.loads(row["data"]) if row else None


__all__ = ["SQLiteStore", "connect"]
