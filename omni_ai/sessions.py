"""
Session store.

Maps a local conversation (thread id + resource/user id) to the upstream
agent session id so a thread can be resumed or forked. The agent runtime keeps
the conversation history itself; only the mapping lives here.
"""

from __future__ import annotations

import logging
from pathlib import Path
import sqlite3

from ._types import SessionMapping

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS session_mappings (
    threadId TEXT NOT NULL,
    resourceId TEXT NOT NULL,
    sessionId TEXT NOT NULL,
    createdAt TEXT DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now')),
    updatedAt TEXT DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now')),
    PRIMARY KEY (threadId, resourceId)
);

CREATE INDEX IF NOT EXISTS idx_session_resource
ON session_mappings(resourceId, updatedAt DESC);
"""

_COLUMNS = "threadId, resourceId, sessionId, createdAt, updatedAt"


class SessionStore:
    """SQLite-backed (thread_id, resource_id) -> session_id mapping."""

    def __init__(self, db_path: str | Path = Path(".omni-ai") / "sessions.db"):
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None

    def _connect(self) -> sqlite3.Connection:
        """Open the database and create the schema on first use."""
        if self._conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.db_path)
            conn.row_factory = sqlite3.Row
            conn.executescript(_SCHEMA)
            self._conn = conn
            logger.debug("Opened session store at %s", self.db_path)
        return self._conn

    def save_session_id(self, thread_id: str, resource_id: str, session_id: str) -> None:
        """Save or update the session for a thread."""
        conn = self._connect()
        with conn:
            conn.execute(
                """
                INSERT INTO session_mappings (threadId, resourceId, sessionId, updatedAt)
                VALUES (?, ?, ?, strftime('%Y-%m-%d %H:%M:%f', 'now'))
                ON CONFLICT (threadId, resourceId)
                DO UPDATE SET
                    sessionId = excluded.sessionId,
                    updatedAt = strftime('%Y-%m-%d %H:%M:%f', 'now')
                """,
                (thread_id, resource_id, session_id),
            )
        logger.info("Saved session mapping %s (%s) -> %s", thread_id, resource_id, session_id)

    def get_session_id(self, thread_id: str, resource_id: str) -> str | None:
        """Get the session for a thread, or None if it was never saved."""
        row = (
            self._connect()
            .execute(
                "SELECT sessionId FROM session_mappings WHERE threadId = ? AND resourceId = ?",
                (thread_id, resource_id),
            )
            .fetchone()
        )
        return row["sessionId"] if row else None

    def delete_session(self, thread_id: str, resource_id: str) -> None:
        """Delete a session mapping (no-op if absent)."""
        conn = self._connect()
        with conn:
            conn.execute(
                "DELETE FROM session_mappings WHERE threadId = ? AND resourceId = ?",
                (thread_id, resource_id),
            )
        logger.info("Deleted session mapping %s (%s)", thread_id, resource_id)

    def list_sessions(self, resource_id: str) -> list[SessionMapping]:
        """List all sessions for a resource, most recently updated first."""
        rows = (
            self._connect()
            .execute(
                f"SELECT {_COLUMNS} FROM session_mappings "
                "WHERE resourceId = ? ORDER BY updatedAt DESC, rowid DESC",
                (resource_id,),
            )
            .fetchall()
        )
        return [SessionMapping.from_row(row) for row in rows]

    def get_session_metadata(self, thread_id: str, resource_id: str) -> SessionMapping | None:
        """Get the full mapping record for a thread."""
        row = (
            self._connect()
            .execute(
                f"SELECT {_COLUMNS} FROM session_mappings WHERE threadId = ? AND resourceId = ?",
                (thread_id, resource_id),
            )
            .fetchone()
        )
        return SessionMapping.from_row(row) if row else None

    def close(self) -> None:
        """Close the database connection (idempotent)."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> SessionStore:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()


_store: SessionStore | None = None


def get_session_store(db_path: str | Path | None = None) -> SessionStore:
    """Get or create the process-wide session store."""
    global _store
    if _store is None:
        if db_path is None:
            from .config import Settings

            db_path = Settings.from_env().session_db
        _store = SessionStore(db_path)
    return _store
