"""Data types and storage interfaces shared by the storage backends."""

from __future__ import annotations

import dataclasses
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Protocol, runtime_checkable


@dataclass
class ChatMessage:
    """One message of a conversation."""

    role: str
    content: str
    tool_call_id: str = ""
    tool_calls: list[Any] = field(default_factory=list)


class MemoryType(str, Enum):
    """Kinds of memory an agent can keep."""

    EPISODIC = "episodic"
    ORCHESTRATION = "orchestration"
    CONVERSATION = "conversation"

    def __str__(self) -> str:
        return self.value


def parse_memory_type(s: str) -> MemoryType:
    """Parse a memory type name, ignoring case."""
    try:
        return MemoryType(s.lower())
    except ValueError:
        raise ValueError(f"unknown memory type: {s}") from None


@dataclass
class MemoryEntry:
    """A memory with access tracking and optional agent and metadata."""

    id: str
    session_id: str
    memory_type: MemoryType
    content: str
    created_at: int
    accessed_at: int
    agent_id: str = ""
    access_count: int = 0
    metadata: str = ""

    def with_agent(self, agent_id: str) -> MemoryEntry:
        """Return a copy with the agent set."""
        return dataclasses.replace(self, agent_id=agent_id)

    def with_metadata(self, metadata: str) -> MemoryEntry:
        """Return a copy with the JSON metadata set."""
        return dataclasses.replace(self, metadata=metadata)


def new_memory_entry(session_id: str, memory_type: MemoryType, content: str) -> MemoryEntry:
    """Create a fresh, never accessed memory entry with a random id."""
    now = int(time.time())
    return MemoryEntry(
        id=str(uuid.uuid4()),
        session_id=session_id,
        memory_type=memory_type,
        content=content,
        created_at=now,
        accessed_at=now,
    )


@dataclass
class ContentResult:
    """Persisted content together with its metadata and access tracking."""

    session_id: str
    key: str
    content_hash: str
    content: str = ""
    summary: str = ""
    line_count: int = 0
    byte_size: int = 0
    created_at: int = 0
    accessed_at: int = 0
    access_count: int = 0


@dataclass(frozen=True)
class ResultKey:
    """Identifies a stored result within a session."""

    session_id: str
    key: str


@dataclass
class ResultMetadata:
    """Summary information about stored content."""

    key: ResultKey
    content_hash: str
    summary: str
    line_count: int
    byte_size: int
    created_at: datetime
    accessed_at: datetime
    access_count: int


@dataclass
class Result:
    """Full stored content with its metadata."""

    metadata: ResultMetadata
    content: str


@dataclass
class SearchMatch:
    """A pattern match inside a stored result."""

    key: ResultKey
    position: int
    line: int
    context: str


@dataclass
class StoreOptions:
    """How content is summarised when stored."""

    summary_length: int = 200
    summary_lines: int = 5
    force_store: bool = False


@dataclass
class QueryOptions:
    """Pagination for listing results."""

    limit: int = 0
    offset: int = 0


@dataclass
class LineRange:
    """An inclusive, 1-indexed range of lines."""

    start: int
    end: int


@dataclass(frozen=True)
class ContentKey:
    """Identifies content handed to a content store."""

    content_type: str
    path: str

    @classmethod
    def file(cls, path: str) -> ContentKey:
        """Key for the content of a file."""
        return cls("file", path)


@dataclass
class StoredContent:
    """Reference to content kept in a content store."""

    reference: str
    lines: int
    bytes: int
    preview: str


@runtime_checkable
class ConversationStorage(Protocol):
    """Storage for conversation history."""

    def save(self, session_id: str, history: list[ChatMessage]) -> None: ...

    def load(self, session_id: str) -> list[ChatMessage]: ...

    def delete(self, session_id: str) -> None: ...

    def list_sessions(self) -> list[str]: ...

    def exists(self, session_id: str) -> bool: ...


@runtime_checkable
class MemoryStorage(Protocol):
    """Storage for structured memories."""

    def store_memory(self, entry: MemoryEntry) -> None: ...

    def query_memories(
        self, session_id: str, memory_type: Optional[MemoryType], limit: int
    ) -> list[MemoryEntry]: ...

    def get_recent_memories(self, session_id: str, limit: int) -> list[MemoryEntry]: ...

    def get_memory(self, memory_id: str) -> Optional[MemoryEntry]: ...

    def delete_memory(self, memory_id: str) -> None: ...

    def delete_session_memories(self, session_id: str) -> None: ...


@runtime_checkable
class ContentStorage(Protocol):
    """Persistence for stored content and its access tracking."""

    def store_result(self, result: ContentResult) -> None: ...

    def load_all_results(self) -> list[ContentResult]: ...

    def load_results_by_session(self, session_id: str) -> list[ContentResult]: ...

    def update_result_access(self, session_id: str, key: str) -> None: ...

    def delete_result(self, session_id: str, key: str) -> None: ...

    def delete_session_results(self, session_id: str) -> None: ...