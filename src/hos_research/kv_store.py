from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

HEALTH_CHECK_KEY = "health-check-test"


class KVStore:
    """JSON values keyed by string, stored in one SQLite table."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )

    def set(self, key: str, value: Any) -> None:
        self.mset({key: value})

    def get(self, key: str) -> Optional[Any]:
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        return json.loads(row["value"]) if row else None

    def delete(self, key: str) -> None:
        self.mdel([key])

    def mset(self, items: Dict[str, Any]) -> None:
        rows = [(key, json.dumps(value, ensure_ascii=False)) for key, value in items.items()]
        with self._connect() as conn:
            conn.executemany(
                """
                INSERT INTO kv_store (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value=excluded.value
                """,
                rows,
            )
        logger.debug("kv set %d key(s)", len(rows))

    def mget(self, keys: Sequence[str]) -> List[Optional[Any]]:
        if not keys:
            return []
        placeholders = ",".join("?" for _ in keys)
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT key, value FROM kv_store WHERE key IN ({placeholders})",
                tuple(keys),
            ).fetchall()
        found = {row["key"]: json.loads(row["value"]) for row in rows}
        return [found.get(key) for key in keys]

    def mdel(self, keys: Sequence[str]) -> None:
        with self._connect() as conn:
            conn.executemany("DELETE FROM kv_store WHERE key = ?", [(key,) for key in keys])

    def get_by_prefix(self, prefix: str) -> List[Tuple[str, Any]]:
        # substr keeps the match case-sensitive, unlike LIKE.
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT key, value FROM kv_store WHERE substr(key, 1, ?) = ? ORDER BY key",
                (len(prefix), prefix),
            ).fetchall()
        return [(row["key"], json.loads(row["value"])) for row in rows]

    def health_check(self) -> None:
        """Round-trip a throwaway key. Raises whatever the database raises."""
        self.set(HEALTH_CHECK_KEY, {"timestamp": datetime.now(timezone.utc).isoformat()})
        if self.get(HEALTH_CHECK_KEY) is None:
            raise RuntimeError("health check value was not persisted")
        self.delete(HEALTH_CHECK_KEY)
