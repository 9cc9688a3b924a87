"""SQLite persistence for recommendation action events."""

import sqlite3
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

import structlog

from db import wal_connect
from shared_types import FeedbackAction

logger = structlog.get_logger()

_ACTIONS = ",".join(f"'{a.value}'" for a in FeedbackAction)


@dataclass
class FeedbackRecord:
    task_id: str
    action: str
    user_id: str = ""
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())


class FeedbackStore:
    """Append-only log of accept/skip/feedback events."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path).expanduser()
        self._init_tables()

    def _init_tables(self):
        with wal_connect(self.db_path) as conn:
            conn.execute(f"""
                CREATE TABLE IF NOT EXISTS feedback_events (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL DEFAULT '',
                    task_id TEXT NOT NULL,
                    action TEXT NOT NULL CHECK(action IN ({_ACTIONS})),
                    created_at TIMESTAMP NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_feedback_created ON feedback_events(created_at)"
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_feedback_user ON feedback_events(user_id)")

    def save(self, record: FeedbackRecord) -> Optional[str]:
        """Insert event, return its id (None if the write failed)."""
        try:
            with wal_connect(self.db_path) as conn:
                conn.execute(
                    """INSERT INTO feedback_events (id, user_id, task_id, action, created_at)
                    VALUES (?, ?, ?, ?, ?)""",
                    (record.id, record.user_id, record.task_id, record.action, record.created_at),
                )
                return record.id
        except sqlite3.Error as e:
            logger.error("feedback_save_error", task_id=record.task_id, error=str(e))
            return None

    def get_recent(self, user_id: Optional[str] = None, limit: int = 20) -> list[dict]:
        """Newest events first, optionally for one user."""
        with wal_connect(self.db_path, row_factory=True) as conn:
            query = "SELECT * FROM feedback_events"
            params: list = []
            if user_id is not None:
                query += " WHERE user_id = ?"
                params.append(user_id)
            query += " ORDER BY created_at DESC, rowid DESC LIMIT ?"
            params.append(limit)
            return [dict(r) for r in conn.execute(query, params).fetchall()]

    def counts_by_action(self, user_id: Optional[str] = None) -> dict[str, int]:
        with wal_connect(self.db_path) as conn:
            query = "SELECT action, COUNT(*) FROM feedback_events"
            params: list = []
            if user_id is not None:
                query += " WHERE user_id = ?"
                params.append(user_id)
            query += " GROUP BY action"
            rows = conn.execute(query, params).fetchall()
        counts = {a.value: 0 for a in FeedbackAction}
        counts.update({action: n for action, n in rows})
        return counts
