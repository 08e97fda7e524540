import json

import pytest

from ariadne.storage.models import ContentKey, LineRange, ResultKey
from ariadne.storage.resultstore import ResultStore
from ariadne.tools.filesystem import (
    AppendFileTool,
    EditFileTool,
    ReadFileTool,
    WriteFileTool,
    parent_dir,
)
from ariadne.tools.resultstore_tools import StoredFileContext

MAX = 1024 * 1024


def args(**kwargs):
    return json.dumps(kwargs)


@pytest.mark.parametrize(
    "path,expected",
    [("a/b/c.txt", "a/b"), ("/file", "/"), ("file.txt", "."), ("/x/y", "/x")],
)
def test_parent_dir(path, expected):
    assert parent_dir(path) == expected


def test_write_then_read(tmp_path):
    path = str(tmp_path / "sub" / "out.txt")
    result = WriteFileTool(MAX).execute(args(path=path, content="hello"))
    assert result.success()
    assert result.output == f"Successfully wrote 5 bytes to {path}"
    read = ReadFileTool(MAX).execute(args(path=path))
    assert read.success()
    assert read.output == "hello"


def test_write_too_large(tmp_path):
    path = str(tmp_path / "out.txt")
    result = WriteFileTool(3).execute(args(path=path, content="hello"))
    assert not result.success()
    assert "content too large" in str(result.error)
    assert not (tmp_path / "out.txt").exists()


def test_write_outside_allowed(tmp_path):
    allowed = tmp_path / "allowed"
    allowed.mkdir()
    other = tmp_path / "other" / "x.txt"
    tool = WriteFileTool(MAX, allowed_paths=[str(allowed)])
    result = tool.execute(args(path=str(other), content="x"))
    assert not result.success()
    assert "is not allowed" in str(result.error)
    ok = tool.execute(args(path=str(allowed / "x.txt"), content="x"))
    assert ok.success()


def test_read_missing_file(tmp_path):
    path = str(tmp_path / "missing.txt")
    result = ReadFileTool(MAX).execute(args(path=path))
    assert not result.success()
    assert str(result.error) == f"file does not exist: {path}"


def test_read_too_large(tmp_path):
    target = tmp_path / "big.txt"
    target.write_text("0123456789")
    result = ReadFileTool(4).execute(args(path=str(target)))
    assert not result.success()
    assert "file too large" in str(result.error)


def test_read_validate_empty_path():
    with pytest.raises(ValueError):
        ReadFileTool(MAX).validate(args(path=""))
    with pytest.raises(ValueError):
        ReadFileTool(MAX).validate("{bad")


def test_read_with_content_store(tmp_path):
    target = tmp_path / "data.txt"
    target.write_text("one\ntwo\nthree")
    store = ResultStore()
    context = StoredFileContext()
    tool = ReadFileTool(MAX, content_store=store, file_context=context)
    result = tool.execute(args(path=str(target)))
    assert result.success()
    assert result.output.startswith("[File stored: 13 bytes, 3 lines]")
    assert context.last() == str(target)
    key = ContentKey.file(str(target))
    lines = store.get_lines(ResultKey(key.content_type, key.path), LineRange(start=2, end=3))
    assert lines == "two\nthree"


def test_append_creates_and_appends(tmp_path):
    path = tmp_path / "log.txt"
    tool = AppendFileTool(MAX)
    first = tool.execute(args(path=str(path), content="a\n"))
    second = tool.execute(args(path=str(path), content="b\n"))
    assert first.success() and second.success()
    assert path.read_text() == "a\nb\n"
    assert second.output == f"Successfully appended 2 bytes to {path}"


def test_edit_single_occurrence(tmp_path):
    path = tmp_path / "f.txt"
    path.write_text("foo bar")
    result = EditFileTool(MAX).execute(args(path=str(path), search="foo", replace="baz"))
    assert result.success()
    assert path.read_text() == "baz bar"
    assert result.output == f"Replaced 1 occurrence(s) in {path}"


def test_edit_multiple_requires_replace_all(tmp_path):
    path = tmp_path / "f.txt"
    path.write_text("x x x")
    tool = EditFileTool(MAX)
    refused = tool.execute(args(path=str(path), search="x", replace="y"))
    assert not refused.success()
    assert "set replace_all=true" in str(refused.error)
    assert path.read_text() == "x x x"
    done = tool.execute(args(path=str(path), search="x", replace="y", replace_all=True))
    assert done.success()
    assert path.read_text() == "y y y"
    assert done.output == f"Replaced 3 occurrence(s) in {path}"


def test_edit_not_found_and_missing(tmp_path):
    path = tmp_path / "f.txt"
    path.write_text("abc")
    tool = EditFileTool(MAX)
    missing = tool.execute(args(path=str(path), search="zzz", replace="y"))
    assert str(missing.error) == "search string not found"
    gone = tool.execute(args(path=str(tmp_path / "none"), search="a", replace="b"))
    assert "file does not exist" in str(gone.error)


def test_edit_validate_empty_search():
    with pytest.raises(ValueError):
        EditFileTool(MAX).validate(args(path="a.txt", search=""))


def test_metadata_names():
    names = [t.metadata().name for t in (
        ReadFileTool(MAX), WriteFileTool(MAX), AppendFileTool(MAX), EditFileTool(MAX)
    )]
    assert names == ["read_file", "write_file", "append_file", "edit_file"]