"""
Noor Companion — Local State Database.

The Memory pillar: every named state entry (profile, schedule, backlog,
preferences) is a JSON string stored under (user_id, key) in SQLite,
surviving bot restarts. One row per entry, rewritten whenever its owning
state changes.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class StateDB:
    """SQLite-backed key-value storage for per-user state entries."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from src.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        """Create the state table if it doesn't exist."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS app_state (
                    user_id     INTEGER NOT NULL,
                    key         TEXT    NOT NULL,
                    value       TEXT    NOT NULL,
                    updated_at  TEXT    NOT NULL,
                    PRIMARY KEY (user_id, key)
                )
            """)
        logger.debug("State table initialized at %s", self._db_path)

    def get_raw(self, user_id: int, key: str) -> str | None:
        """Return the stored string for an entry, or None if absent."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT value FROM app_state WHERE user_id = ? AND key = ?",
                (user_id, key),
            ).fetchone()
        if row is None:
            return None
        return row["value"]

    def get(self, user_id: int, key: str) -> Any | None:
        """Return the decoded JSON value for an entry, or None if absent."""
        raw = self.get_raw(user_id, key)
        if raw is None:
            return None
        return json.loads(raw)

    def set(self, user_id: int, key: str, value: Any) -> None:
        """Serialize a value to JSON and upsert it under (user_id, key)."""
        raw = json.dumps(value, ensure_ascii=False)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO app_state (user_id, key, value, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(user_id, key) DO UPDATE
                    SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (user_id, key, raw, datetime.now().isoformat()),
            )
        logger.debug("State written: user=%d key=%s (%d bytes)", user_id, key, len(raw))

    def delete(self, user_id: int, key: str) -> bool:
        """Remove an entry. Returns True if a row was deleted."""
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM app_state WHERE user_id = ? AND key = ?",
                (user_id, key),
            )
        return cursor.rowcount > 0

    def keys(self, user_id: int) -> list[str]:
        """List the entry names stored for a user."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT key FROM app_state WHERE user_id = ? ORDER BY key",
                (user_id,),
            ).fetchall()
        return [r["key"] for r in rows]

    def list_user_ids(self) -> list[int]:
        """Return every user id that has at least one stored entry."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT DISTINCT user_id FROM app_state ORDER BY user_id"
            ).fetchall()
        return [r["user_id"] for r in rows]
