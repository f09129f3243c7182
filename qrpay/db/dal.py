"""Data Access Layer over the SQLite metadata key/value table."""

from __future__ import annotations

from pathlib import Path
import sqlite3
from typing import Dict, Iterable, Mapping

UTC_NOW_SQL = "strftime('%Y-%m-%dT%H:%M:%fZ','now')"


class Database:
    def __init__(self, db_path: Path):
        self.db_path = db_path

    # ------------------------------------------------------------------
    # Connection helpers
    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    # ------------------------------------------------------------------
    # Metadata key/value access
    def get_meta_many(self, keys: Iterable[str]) -> Dict[str, str]:
        keys = list(keys)
        if not keys:
            return {}
        placeholders = ",".join("?" for _ in keys)
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                f"SELECT key, value FROM metadata WHERE key IN ({placeholders})",
                keys,
            )
            return {r[0]: r[1] for r in cur.fetchall()}

    def set_meta_many(self, values: Mapping[str, str]) -> None:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.executemany(
                f"""
                INSERT INTO metadata (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = ({UTC_NOW_SQL})
                """,
                list(values.items()),
            )
