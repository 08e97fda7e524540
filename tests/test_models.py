import uuid

import pytest

from ariadne.storage.models import (
    ContentKey,
    MemoryType,
    ResultKey,
    StoreOptions,
    QueryOptions,
    new_memory_entry,
    parse_memory_type,
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("episodic", MemoryType.EPISODIC),
        ("orchestration", MemoryType.ORCHESTRATION),
        ("conversation", MemoryType.CONVERSATION),
        ("EPISODIC", MemoryType.EPISODIC),
        ("Conversation", MemoryType.CONVERSATION),
    ],
)
def test_parse_memory_type(text, expected):
    assert parse_memory_type(text) is expected


def test_parse_memory_type_unknown():
    with pytest.raises(ValueError, match="unknown memory type: bogus"):
        parse_memory_type("bogus")


def test_memory_type_str_round_trip():
    for member in MemoryType:
        assert parse_memory_type(str(member)) is member
    assert str(MemoryType.ORCHESTRATION) == "orchestration"


def test_new_memory_entry_defaults():
    entry = new_memory_entry("session", MemoryType.EPISODIC, "content")
    assert str(uuid.UUID(entry.id)) == entry.id
    assert entry.session_id == "session"
    assert entry.memory_type is MemoryType.EPISODIC
    assert entry.content == "content"
    assert entry.created_at == entry.accessed_at
    assert entry.access_count == 0
    assert entry.agent_id == ""
    assert entry.metadata == ""


def test_new_memory_entries_have_distinct_ids():
    a = new_memory_entry("s", MemoryType.EPISODIC, "x")
    b = new_memory_entry("s", MemoryType.EPISODIC, "x")
    assert a.id != b.id
    assert a.content == b.content


def test_with_agent_and_metadata_return_copies():
    entry = new_memory_entry("s", MemoryType.CONVERSATION, "c")
    tagged = entry.with_agent("agent-1").with_metadata('{"k": 1}')
    assert tagged.agent_id == "agent-1"
    assert tagged.metadata == '{"k": 1}'
    assert tagged.id == entry.id
    assert entry.agent_id == ""
    assert entry.metadata == ""


def test_store_options_defaults():
    opts = StoreOptions()
    assert opts.summary_length == 200
    assert opts.summary_lines == 5
    assert opts.force_store is False


def test_query_options_default_to_no_pagination():
    opts = QueryOptions()
    assert (opts.limit, opts.offset) == (0, 0)


def test_result_key_equality_and_hashing():
    keys = {ResultKey("s", "a"), ResultKey("s", "a"), ResultKey("s", "b")}
    assert len(keys) == 2
    assert ResultKey("s", "a") == ResultKey("s", "a")


def test_content_key_file_keeps_path():
    key = ContentKey.file("src/main.go")
    assert key.path == "src/main.go"
    assert key == ContentKey.file("src/main.go")