import pytest

from ariadne.storage.models import (
    ContentKey,
    LineRange,
    QueryOptions,
    ResultKey,
    StoreOptions,
)
from ariadne.storage.resultstore import (
    ResultStore,
    compose_result_key,
    compute_content_hash,
    count_result_lines,
    generate_result_summary,
)
from ariadne.storage.sqlite import open_sqlite


@pytest.fixture
def store():
    s = ResultStore()
    yield s
    s.close()


def test_store_get_and_metadata(store):
    key = ResultKey("test-session", "file.txt")
    content = "Hello, World!\nThis is a test.\nLine three."

    meta = store.store(key, content, StoreOptions())
    assert meta.line_count == 3
    assert meta.byte_size == len(content)
    assert len(meta.content_hash) == 16

    result = store.get(key)
    assert result is not None
    assert result.content == content

    got = store.get_metadata(key)
    assert got is not None
    assert got.line_count == 3


def test_get_lines(store):
    key = ResultKey("test-session", "file.txt")
    store.store(key, "Line 1\nLine 2\nLine 3\nLine 4\nLine 5", StoreOptions())
    assert store.get_lines(key, LineRange(2, 4)) == "Line 2\nLine 3\nLine 4"


def test_get_lines_clamps_and_handles_missing(store):
    key = ResultKey("s", "f")
    store.store(key, "a\nb\nc")
    assert store.get_lines(key, LineRange(0, 10)) == "a\nb\nc"
    assert store.get_lines(key, LineRange(5, 6)) == ""
    assert store.get_lines(ResultKey("s", "missing"), LineRange(1, 2)) == ""


def test_search_across_results(store):
    store.store(ResultKey("test-session", "file1.txt"),
                "Hello World\nThis contains pattern here\nEnd")
    store.store(ResultKey("test-session", "file2.txt"),
                "Another file\nNo match\nMore content")
    store.store(ResultKey("test-session", "file3.txt"),
                "Third file\nThe pattern appears again\nDone")

    matches = store.search("test-session", "pattern", 10)
    assert len(matches) == 2
    assert {m.key.key for m in matches} == {"file1.txt", "file3.txt"}


def test_search_match_details(store):
    store.store(ResultKey("s", "one.txt"), "Hello World\nThis contains pattern here\nEnd")
    matches = store.search("s", "pattern", 0)
    assert len(matches) == 1
    match = matches[0]
    assert match.line == 2
    assert match.position == 26
    assert match.context == "This contains pattern here"


def test_search_respects_limit(store):
    store.store(ResultKey("s", "f"), "ab ab ab ab")
    assert len(store.search("s", "ab", 2)) == 2
    assert len(store.search("s", "ab", 0)) == 4


def test_search_no_content(store):
    assert store.search("empty", "x", 5) == []


def test_get_by_prefix(store):
    store.store(ResultKey("test", "src/main.go"), "content1")
    store.store(ResultKey("test", "src/util.go"), "content2")
    store.store(ResultKey("test", "test/main_test.go"), "content3")

    results = store.get_by_prefix("test", "src/")
    assert len(results) == 2
    assert sorted(r.key.key for r in results) == ["src/main.go", "src/util.go"]


def test_content_deduplication(store):
    content = "Same content for both"
    meta1 = store.store(ResultKey("test", "file1.txt"), content)
    meta2 = store.store(ResultKey("test", "file2.txt"), content)
    assert meta1.content_hash == meta2.content_hash
    assert meta2.key.key == "file2.txt"
    assert meta2.access_count == 2


def test_delete(store):
    key = ResultKey("test", "file.txt")
    store.store(key, "content")
    assert store.get(key) is not None
    store.delete(key)
    assert store.get(key) is None


def test_delete_session(store):
    store.store(ResultKey("session1", "file1.txt"), "content1")
    store.store(ResultKey("session1", "file2.txt"), "content2")
    store.store(ResultKey("session2", "file3.txt"), "content3")

    store.delete_session("session1")

    assert len(store.list("session1", QueryOptions())) == 0
    assert len(store.list("session2", QueryOptions())) == 1


def test_persistence(tmp_path):
    db_path = str(tmp_path / "results.db")
    key = ResultKey("test", "large.txt")
    content = "This is a line of content for testing.\n" * 500

    first = ResultStore(open_sqlite(db_path))
    first.store(key, content, StoreOptions())
    assert first.get(key).content == content
    first.close()

    with ResultStore(open_sqlite(db_path)) as second:
        result = second.get(key)
        assert result is not None
        assert result.content == content
        assert result.metadata.line_count == 501


def test_summary_generation(store):
    lines = [f"This is line number {chr(ord('A') + i)}" for i in range(20)]
    meta = store.store(ResultKey("test", "file.txt"), "\n".join(lines),
                       StoreOptions(summary_lines=3, summary_length=100))
    assert meta.summary.count("\n") + 1 <= 3
    assert meta.summary == "\n".join(lines[:3])


def test_list_pagination(store):
    for name in ("a.txt", "b.txt", "c.txt"):
        store.store(ResultKey("test", name), f"content {name[0]}")

    assert len(store.list("test", QueryOptions())) == 3
    assert len(store.list("test", QueryOptions(limit=2))) == 2
    assert len(store.list("test", QueryOptions(offset=1, limit=2))) == 2
    assert store.list("test", QueryOptions(offset=3)) == []


def test_missing_key_returns_none(store):
    assert store.get(ResultKey("s", "nope")) is None
    assert store.get_metadata(ResultKey("s", "nope")) is None


def test_store_content_returns_reference(store):
    stored = store.store_content(ContentKey.file("docs/readme.md"), "one\ntwo")
    assert stored.reference == "docs/readme.md"
    assert stored.lines == 2
    assert stored.bytes == 7
    assert stored.preview == "one\ntwo"
    assert store.get(ResultKey("file", "docs/readme.md")).content == "one\ntwo"


def test_compute_content_hash_empty():
    assert compute_content_hash("") == "ef46db3751d8e999"


def test_compute_content_hash_distinguishes_content():
    long_a = "x" * 100
    long_b = "x" * 99 + "y"
    assert compute_content_hash(long_a) == compute_content_hash("x" * 100)
    assert compute_content_hash(long_a) != compute_content_hash(long_b)


def test_count_result_lines():
    assert count_result_lines("") == 0
    assert count_result_lines("one") == 1
    assert count_result_lines("a\nb\n") == 3


def test_generate_summary_truncates_long_text():
    assert generate_result_summary("x" * 300, StoreOptions()) == "x" * 200 + "..."


def test_generate_summary_zero_options_use_defaults():
    text = "\n".join(str(i) for i in range(10))
    assert generate_result_summary(text, StoreOptions(summary_length=0, summary_lines=0)) == (
        "0\n1\n2\n3\n4"
    )


def test_compose_result_key():
    assert compose_result_key(ResultKey("sess", "a/b.txt")) == "sess:a/b.txt"