"""Conversation storage kept in process memory."""

from __future__ import annotations

import copy
import threading

from ariadne.storage.models import ChatMessage


class InMemoryStorage:
    """Thread-safe conversation storage in a dict; data is lost on exit."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._sessions: dict[str, list[ChatMessage]] = {}

    def save(self, session_id: str, history: list[ChatMessage]) -> None:
        """Store a copy of the history for a session."""
        copied = copy.deepcopy(list(history))
        with self._lock:
            self._sessions[session_id] = copied

    def load(self, session_id: str) -> list[ChatMessage]:
        """Return a copy of the session's history, or an empty list."""
        with self._lock:
            history = self._sessions.get(session_id, [])
            return copy.deepcopy(history)

    def delete(self, session_id: str) -> None:
        """Forget a session's history."""
        with self._lock:
            self._sessions.pop(session_id, None)

    def list_sessions(self) -> list[str]:
        """Return all session ids."""
        with self._lock:
            return list(self._sessions)

    def exists(self, session_id: str) -> bool:
        """Tell whether a session has stored history."""
        with self._lock:
            return session_id in self._sessions