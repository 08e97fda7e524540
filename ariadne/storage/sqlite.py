"""SQLite-backed storage for conversations, memories and stored content."""

from __future__ import annotations

import os
import sqlite3
import threading
import time
from typing import Any, Optional, Sequence

from ariadne.storage.models import (
    ChatMessage,
    ContentResult,
    MemoryEntry,
    MemoryType,
    parse_memory_type,
)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS sessions (
    session_id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS messages (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id TEXT NOT NULL,
    message_index INTEGER NOT NULL,
    role TEXT NOT NULL,
    content TEXT NOT NULL,
    FOREIGN KEY (session_id) REFERENCES sessions(session_id) ON DELETE CASCADE,
    UNIQUE(session_id, message_index)
);

CREATE INDEX IF NOT EXISTS idx_messages_session
ON messages(session_id, message_index);

CREATE TABLE IF NOT EXISTS memories (
    id TEXT PRIMARY KEY,
    session_id TEXT NOT NULL,
    agent_id TEXT,
    memory_type TEXT NOT NULL,
    content TEXT NOT NULL,
    created_at INTEGER NOT NULL,
    accessed_at INTEGER NOT NULL,
    access_count INTEGER DEFAULT 1,
    metadata TEXT,
    FOREIGN KEY (session_id) REFERENCES sessions(session_id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_memories_session_type
ON memories(session_id, memory_type, created_at DESC);

CREATE TABLE IF NOT EXISTS results (
    session_id TEXT NOT NULL,
    key TEXT NOT NULL,
    content_hash TEXT NOT NULL,
    content TEXT NOT NULL,
    summary TEXT NOT NULL,
    line_count INTEGER NOT NULL,
    byte_size INTEGER NOT NULL,
    created_at INTEGER NOT NULL,
    accessed_at INTEGER NOT NULL,
    access_count INTEGER DEFAULT 1,
    PRIMARY KEY (session_id, key)
);

CREATE INDEX IF NOT EXISTS idx_results_session
ON results(session_id);

CREATE INDEX IF NOT EXISTS idx_results_hash
ON results(content_hash);
"""

_MEMORY_COLUMNS = (
    "id, session_id, agent_id, memory_type, content, "
    "created_at, accessed_at, access_count, metadata"
)
_RESULT_COLUMNS = (
    "session_id, key, content_hash, content, summary, line_count, "
    "byte_size, created_at, accessed_at, access_count"
)


class StorageError(Exception):
    """Raised when the database cannot complete an operation."""


def _memory_from_row(row: Sequence[Any]) -> MemoryEntry:
    (memory_id, session_id, agent_id, type_name, content,
     created_at, accessed_at, access_count, metadata) = row
    try:
        memory_type = parse_memory_type(type_name)
    except ValueError as exc:
        raise StorageError(f"invalid memory type {type_name!r} in database: {exc}") from exc
    return MemoryEntry(
        id=memory_id,
        session_id=session_id,
        memory_type=memory_type,
        content=content,
        created_at=created_at,
        accessed_at=accessed_at,
        agent_id=agent_id or "",
        access_count=access_count,
        metadata=metadata or "",
    )


class SqliteStorage:
    """Conversation, memory and content storage in one SQLite database."""

    def __init__(self, path: str = ":memory:") -> None:
        try:
            self._conn = sqlite3.connect(path, check_same_thread=False, isolation_level=None)
        except sqlite3.Error as exc:
            raise StorageError(f"failed to open SQLite database: {exc}") from exc
        self._lock = threading.RLock()
        try:
            self._conn.executescript(_SCHEMA)
        except sqlite3.Error as exc:
            self._conn.close()
            raise StorageError(f"failed to initialize schema: {exc}") from exc

    @classmethod
    def in_memory(cls) -> SqliteStorage:
        """Create a storage backed by a private in-memory database."""
        return cls(":memory:")

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

    def __enter__(self) -> SqliteStorage:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def _execute(self, what: str, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        with self._lock:
            try:
                return self._conn.execute(sql, params)
            except sqlite3.Error as exc:
                raise StorageError(f"failed to {what}: {exc}") from exc

    def _fetch_all(self, what: str, sql: str, params: Sequence[Any] = ()) -> list[tuple]:
        with self._lock:
            try:
                return self._conn.execute(sql, params).fetchall()
            except sqlite3.Error as exc:
                raise StorageError(f"failed to {what}: {exc}") from exc

    def _ensure_session(self, session_id: str) -> None:
        self._execute(
            "ensure session",
            "INSERT OR IGNORE INTO sessions (session_id) VALUES (?)",
            (session_id,),
        )

    # Conversation storage

    def save(self, session_id: str, history: Sequence[ChatMessage]) -> None:
        """Replace the stored history of a session."""
        with self._lock:
            self._ensure_session(session_id)
            try:
                self._conn.execute("BEGIN")
                try:
                    self._conn.execute("DELETE FROM messages WHERE session_id = ?", (session_id,))
                    self._conn.executemany(
                        "INSERT INTO messages (session_id, message_index, role, content) "
                        "VALUES (?, ?, ?, ?)",
                        [
                            (session_id, index, message.role, message.content)
                            for index, message in enumerate(history)
                        ],
                    )
                    self._conn.execute(
                        "UPDATE sessions SET updated_at = datetime('now') WHERE session_id = ?",
                        (session_id,),
                    )
                except BaseException:
                    self._conn.execute("ROLLBACK")
                    raise
                self._conn.execute("COMMIT")
            except sqlite3.Error as exc:
                raise StorageError(f"failed to save conversation: {exc}") from exc

    def load(self, session_id: str) -> list[ChatMessage]:
        """Return a session's history in order, or an empty list."""
        rows = self._fetch_all(
            "query messages",
            "SELECT role, content FROM messages WHERE session_id = ? ORDER BY message_index ASC",
            (session_id,),
        )
        return [ChatMessage(role=role, content=content) for role, content in rows]

    def delete(self, session_id: str) -> None:
        """Delete a session."""
        self._execute("delete session", "DELETE FROM sessions WHERE session_id = ?", (session_id,))

    def list_sessions(self) -> list[str]:
        """Return all session ids, most recently updated first."""
        rows = self._fetch_all(
            "query sessions", "SELECT session_id FROM sessions ORDER BY updated_at DESC"
        )
        return [session_id for (session_id,) in rows]

    def exists(self, session_id: str) -> bool:
        """Tell whether a session exists."""
        rows = self._fetch_all(
            "check session existence",
            "SELECT COUNT(*) FROM sessions WHERE session_id = ?",
            (session_id,),
        )
        return rows[0][0] > 0

    # Memory storage

    def store_memory(self, entry: MemoryEntry) -> None:
        """Insert or replace a memory entry."""
        with self._lock:
            self._ensure_session(entry.session_id)
            self._execute(
                "store memory",
                f"INSERT OR REPLACE INTO memories ({_MEMORY_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    entry.id,
                    entry.session_id,
                    entry.agent_id or None,
                    str(entry.memory_type),
                    entry.content,
                    entry.created_at,
                    entry.accessed_at,
                    entry.access_count,
                    entry.metadata or None,
                ),
            )

    def query_memories(
        self, session_id: str, memory_type: Optional[MemoryType], limit: int
    ) -> list[MemoryEntry]:
        """Return a session's newest memories, optionally of one type."""
        if memory_type is not None:
            rows = self._fetch_all(
                "query memories",
                f"SELECT {_MEMORY_COLUMNS} FROM memories "
                "WHERE session_id = ? AND memory_type = ? "
                "ORDER BY created_at DESC LIMIT ?",
                (session_id, str(memory_type), limit),
            )
        else:
            rows = self._fetch_all(
                "query memories",
                f"SELECT {_MEMORY_COLUMNS} FROM memories "
                "WHERE session_id = ? ORDER BY created_at DESC LIMIT ?",
                (session_id, limit),
            )
        return [_memory_from_row(row) for row in rows]

    def get_recent_memories(self, session_id: str, limit: int) -> list[MemoryEntry]:
        """Return a session's newest memories of any type."""
        return self.query_memories(session_id, None, limit)

    def get_memory(self, memory_id: str) -> Optional[MemoryEntry]:
        """Fetch a memory and record the access; None when it does not exist."""
        with self._lock:
            rows = self._fetch_all(
                "get memory",
                f"SELECT {_MEMORY_COLUMNS} FROM memories WHERE id = ?",
                (memory_id,),
            )
            if not rows:
                return None
            now = int(time.time())
            self._execute(
                "update access tracking",
                "UPDATE memories SET accessed_at = ?, access_count = access_count + 1 WHERE id = ?",
                (now, memory_id),
            )
        entry = _memory_from_row(rows[0])
        entry.accessed_at = now
        entry.access_count += 1
        return entry

    def delete_memory(self, memory_id: str) -> None:
        """Delete one memory."""
        self._execute("delete memory", "DELETE FROM memories WHERE id = ?", (memory_id,))

    def delete_session_memories(self, session_id: str) -> None:
        """Delete every memory of a session."""
        self._execute(
            "delete session memories",
            "DELETE FROM memories WHERE session_id = ?",
            (session_id,),
        )

    # Content storage

    def store_result(self, result: ContentResult) -> None:
        """Insert or replace stored content."""
        self._execute(
            "store result",
            f"INSERT OR REPLACE INTO results ({_RESULT_COLUMNS}) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                result.session_id,
                result.key,
                result.content_hash,
                result.content,
                result.summary,
                result.line_count,
                result.byte_size,
                result.created_at,
                result.accessed_at,
                result.access_count,
            ),
        )

    def _query_results(self, sql: str, params: Sequence[Any] = ()) -> list[ContentResult]:
        rows = self._fetch_all("query results", sql, params)
        return [ContentResult(*row) for row in rows]

    def load_all_results(self) -> list[ContentResult]:
        """Return all stored content, most recently accessed first."""
        return self._query_results(
            f"SELECT {_RESULT_COLUMNS} FROM results ORDER BY accessed_at DESC"
        )

    def load_results_by_session(self, session_id: str) -> list[ContentResult]:
        """Return a session's stored content, most recently accessed first."""
        return self._query_results(
            f"SELECT {_RESULT_COLUMNS} FROM results WHERE session_id = ? "
            "ORDER BY accessed_at DESC",
            (session_id,),
        )

    def update_result_access(self, session_id: str, key: str) -> None:
        """Record an access to stored content."""
        self._execute(
            "update access",
            "UPDATE results SET accessed_at = ?, access_count = access_count + 1 "
            "WHERE session_id = ? AND key = ?",
            (int(time.time()), session_id, key),
        )

    def delete_result(self, session_id: str, key: str) -> None:
        """Delete one piece of stored content."""
        self._execute(
            "delete result",
            "DELETE FROM results WHERE session_id = ? AND key = ?",
            (session_id, key),
        )

    def delete_session_results(self, session_id: str) -> None:
        """Delete all stored content of a session."""
        self._execute(
            "delete session results",
            "DELETE FROM results WHERE session_id = ?",
            (session_id,),
        )


def open_sqlite(path: str) -> SqliteStorage:
    """Open or create a database file, creating parent directories as needed."""
    directory = os.path.dirname(path)
    if directory and directory != ".":
        try:
            os.makedirs(directory, mode=0o755, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"failed to create database directory: {exc}") from exc
    return SqliteStorage(path)