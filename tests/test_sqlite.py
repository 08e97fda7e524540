import sqlite3
import time

import pytest

from ariadne.storage.models import (
    ChatMessage,
    ContentResult,
    MemoryType,
    new_memory_entry,
)
from ariadne.storage.sqlite import SqliteStorage, StorageError, open_sqlite


@pytest.fixture
def storage():
    db = SqliteStorage.in_memory()
    yield db
    db.close()


def _result(session_id, key, content_hash, summary="Test summary", line_count=10, byte_size=100):
    now = int(time.time())
    return ContentResult(
        session_id=session_id,
        key=key,
        content_hash=content_hash,
        summary=summary,
        line_count=line_count,
        byte_size=byte_size,
        created_at=now,
        accessed_at=now,
        access_count=1,
    )


def test_save_and_load(storage):
    storage.save("test-session", [
        ChatMessage(role="user", content="Hello"),
        ChatMessage(role="assistant", content="Hi there"),
    ])
    loaded = storage.load("test-session")
    assert len(loaded) == 2
    assert loaded[0].content == "Hello"
    assert loaded[1].content == "Hi there"
    assert [m.role for m in loaded] == ["user", "assistant"]


def test_load_nonexistent_session(storage):
    assert storage.load("nonexistent") == []


def test_delete_session(storage):
    storage.save("test-session", [ChatMessage(role="user", content="Test")])
    assert storage.exists("test-session") is True
    storage.delete("test-session")
    assert storage.exists("test-session") is False


def test_list_sessions(storage):
    msg = [ChatMessage(role="user", content="Test")]
    storage.save("session-1", msg)
    storage.save("session-2", msg)
    sessions = storage.list_sessions()
    assert len(sessions) == 2
    assert sorted(sessions) == ["session-1", "session-2"]


def test_overwrite_session(storage):
    storage.save("test-session", [ChatMessage(role="user", content="First")])
    storage.save("test-session", [
        ChatMessage(role="user", content="Second"),
        ChatMessage(role="assistant", content="Response"),
    ])
    loaded = storage.load("test-session")
    assert len(loaded) == 2
    assert loaded[0].content == "Second"


def test_store_and_query_memory(storage):
    entry = new_memory_entry("test-session", MemoryType.EPISODIC, "Test memory content").with_agent(
        "test-agent"
    )
    storage.store_memory(entry)
    memories = storage.query_memories("test-session", MemoryType.EPISODIC, 10)
    assert len(memories) == 1
    assert memories[0].content == "Test memory content"
    assert memories[0].agent_id == "test-agent"
    assert memories[0].id == entry.id


def test_query_memories_by_type(storage):
    storage.store_memory(new_memory_entry("test-session", MemoryType.EPISODIC, "Episodic memory"))
    storage.store_memory(
        new_memory_entry("test-session", MemoryType.ORCHESTRATION, "Orchestration memory")
    )
    storage.store_memory(
        new_memory_entry("test-session", MemoryType.CONVERSATION, "Conversation memory")
    )

    episodic = storage.query_memories("test-session", MemoryType.EPISODIC, 10)
    assert len(episodic) == 1
    assert episodic[0].content == "Episodic memory"
    assert episodic[0].memory_type is MemoryType.EPISODIC

    assert len(storage.get_recent_memories("test-session", 10)) == 3


def test_query_memories_respects_limit(storage):
    for index in range(3):
        storage.store_memory(new_memory_entry("s", MemoryType.EPISODIC, f"m{index}"))
    assert len(storage.get_recent_memories("s", 2)) == 2


def test_get_memory_updates_access(storage):
    entry = new_memory_entry("test-session", MemoryType.EPISODIC, "Test content")
    storage.store_memory(entry)

    memory = storage.get_memory(entry.id)
    assert memory is not None
    assert memory.access_count == 1

    memory = storage.get_memory(entry.id)
    assert memory.access_count == 2


def test_get_memory_missing_returns_none(storage):
    assert storage.get_memory("missing-id") is None


def test_optional_fields_round_trip(storage):
    plain = new_memory_entry("s", MemoryType.EPISODIC, "plain")
    storage.store_memory(plain)
    loaded = storage.get_memory(plain.id)
    assert loaded.agent_id == ""
    assert loaded.metadata == ""

    rich = new_memory_entry("s", MemoryType.EPISODIC, "rich").with_metadata('{"k": 1}')
    storage.store_memory(rich)
    assert storage.get_memory(rich.id).metadata == '{"k": 1}'


def test_delete_memory(storage):
    entry = new_memory_entry("test-session", MemoryType.EPISODIC, "Test content")
    storage.store_memory(entry)
    assert storage.get_memory(entry.id) is not None
    storage.delete_memory(entry.id)
    assert storage.get_memory(entry.id) is None


def test_delete_session_memories(storage):
    storage.store_memory(new_memory_entry("session-1", MemoryType.EPISODIC, "Memory 1"))
    storage.store_memory(new_memory_entry("session-1", MemoryType.ORCHESTRATION, "Memory 2"))
    storage.store_memory(new_memory_entry("session-2", MemoryType.EPISODIC, "Memory 3"))

    storage.delete_session_memories("session-1")

    assert len(storage.get_recent_memories("session-1", 10)) == 0
    assert len(storage.get_recent_memories("session-2", 10)) == 1


def test_store_and_load_result(storage):
    storage.store_result(_result("test-session", "file.txt", "abc123"))
    results = storage.load_results_by_session("test-session")
    assert len(results) == 1
    assert results[0].key == "file.txt"
    assert results[0].content_hash == "abc123"
    assert results[0].summary == "Test summary"


def test_load_all_results(storage):
    storage.store_result(_result("session-1", "file1.txt", "hash1", "Summary 1", 5, 50))
    storage.store_result(_result("session-2", "file2.txt", "hash2", "Summary 2", 10, 100))
    assert len(storage.load_all_results()) == 2


def test_update_result_access(storage):
    storage.store_result(_result("test-session", "file.txt", "abc123"))
    storage.update_result_access("test-session", "file.txt")
    results = storage.load_results_by_session("test-session")
    assert len(results) == 1
    assert results[0].access_count == 2


def test_delete_result(storage):
    storage.store_result(_result("test-session", "file.txt", "abc123"))
    assert len(storage.load_results_by_session("test-session")) == 1
    storage.delete_result("test-session", "file.txt")
    assert len(storage.load_results_by_session("test-session")) == 0


def test_delete_session_results(storage):
    for index, session_id in enumerate(["session-1", "session-1", "session-2"]):
        letter = chr(ord("a") + index)
        storage.store_result(
            _result(session_id, f"file{letter}.txt", f"hash{letter}", "Summary", 5, 50)
        )
    storage.delete_session_results("session-1")
    assert len(storage.load_results_by_session("session-1")) == 0
    assert len(storage.load_results_by_session("session-2")) == 1


def test_open_sqlite_creates_directories_and_persists(tmp_path):
    db_path = tmp_path / "nested" / "dir" / "data.db"
    with open_sqlite(str(db_path)) as db:
        db.save("s", [ChatMessage(role="user", content="kept")])
    assert db_path.exists()
    with open_sqlite(str(db_path)) as db:
        assert [m.content for m in db.load("s")] == ["kept"]


def test_invalid_memory_type_in_database_raises(tmp_path):
    db_path = str(tmp_path / "data.db")
    with open_sqlite(db_path) as db:
        entry = new_memory_entry("s", MemoryType.EPISODIC, "x")
        db.store_memory(entry)
    raw = sqlite3.connect(db_path)
    raw.execute("UPDATE memories SET memory_type = 'bogus'")
    raw.commit()
    raw.close()
    with open_sqlite(db_path) as db:
        with pytest.raises(StorageError, match="invalid memory type"):
            db.get_recent_memories("s", 10)


def test_use_after_close_raises():
    db = SqliteStorage.in_memory()
    db.close()
    with pytest.raises(StorageError):
        db.load("s")