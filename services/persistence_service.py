from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class UnmarkedReply:
    message_id: str
    label_id: str
    sent_at: datetime


class UnmarkedReplyStore:
    """SQLite journal of messages whose reply went out but whose label change failed."""

    def __init__(self, db_path: Path):
        self._db_path = db_path
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self._db_path)

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS unmarked_replies (
                    message_id TEXT PRIMARY KEY,
                    label_id TEXT NOT NULL,
                    sent_at TEXT NOT NULL
                )
                """
            )

    def record(self, message_id: str, label_id: str) -> None:
        timestamp = datetime.now(timezone.utc).isoformat()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO unmarked_replies(message_id, label_id, sent_at)
                VALUES (?, ?, ?)
                """,
                (message_id, label_id, timestamp),
            )
        LOGGER.debug("Journaled unmarked reply for %s", message_id)

    def contains(self, message_id: str) -> bool:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM unmarked_replies WHERE message_id=?",
                (message_id,),
            ).fetchone()
        return row is not None

    def pending(self) -> list[UnmarkedReply]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT message_id, label_id, sent_at FROM unmarked_replies ORDER BY sent_at"
            ).fetchall()
        return [UnmarkedReply(row[0], row[1], datetime.fromisoformat(row[2])) for row in rows]

    def clear(self, message_id: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM unmarked_replies WHERE message_id=?", (message_id,))
        LOGGER.debug("Cleared journal entry for %s", message_id)
