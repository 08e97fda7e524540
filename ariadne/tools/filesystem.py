"""Tools that read, write, append to and edit files."""

from __future__ import annotations

import json
import os
from typing import Any, Optional, Protocol, Sequence

from ariadne.storage.models import ContentKey, StoredContent
from ariadne.tools.resultstore_tools import StoredFileContext
from ariadne.tools.tool import (
    Tool,
    ToolArgs,
    ToolMetadata,
    ToolParameter,
    ToolResult,
    failure_result,
    path_allowed,
    path_allowed_for_write,
    success_result,
)


class _ContentStore(Protocol):
    def store_content(self, key: ContentKey, content: str) -> StoredContent: ...


def _load_args(args: ToolArgs, strings: Sequence[str]) -> dict[str, Any]:
    try:
        data = json.loads(args)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"invalid arguments: {exc}") from None
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("invalid arguments: expected a JSON object")
    for name in strings:
        value = data.get(name)
        if value is not None and not isinstance(value, str):
            raise ValueError(f"invalid arguments: {name} must be a string")
    return data


def parent_dir(path: str) -> str:
    """The part of a path before its last '/', '/' for root, '.' if there is none."""
    index = path.rfind("/")
    if index == -1:
        return "."
    if index == 0:
        return "/"
    return path[:index]


def _prepare_parent(path: str) -> Optional[ToolResult]:
    try:
        os.makedirs(parent_dir(path), exist_ok=True)
    except OSError as exc:
        return failure_result(f"failed to create directory: {exc}")
    return None


class ReadFileTool(Tool):
    """Reads a file; with a content store it stores the file and returns a reference."""

    def __init__(
        self,
        max_size_bytes: int,
        allowed_paths: Optional[Sequence[str]] = None,
        content_store: Optional[_ContentStore] = None,
        file_context: Optional[StoredFileContext] = None,
    ) -> None:
        self.max_size_bytes = max_size_bytes
        self.allowed_paths = list(allowed_paths or [])
        self.content_store = content_store
        self.file_context = file_context

    def metadata(self) -> ToolMetadata:
        return ToolMetadata(
            name="read_file",
            description="Read the contents of a file from the filesystem",
            parameters=[
                ToolParameter("path", "string", "Path to the file to read", required=True),
            ],
        )

    def validate(self, args: ToolArgs) -> None:
        """Raise ValueError when no path is given."""
        if not _load_args(args, ("path",)).get("path"):
            raise ValueError("path cannot be empty")

    def execute(self, args: ToolArgs) -> ToolResult:
        try:
            data = _load_args(args, ("path",))
        except ValueError as exc:
            return failure_result(exc)
        path = data.get("path") or ""
        if not path:
            return failure_result("path cannot be empty")
        if not path_allowed(path, self.allowed_paths):
            return failure_result(f"access to path '{path}' is not allowed")

        try:
            size = os.stat(path).st_size
        except FileNotFoundError:
            return failure_result(f"file does not exist: {path}")
        except OSError as exc:
            return failure_result(f"failed to read file metadata: {exc}")
        if size > self.max_size_bytes:
            return failure_result(
                f"file too large: {size} bytes (max: {self.max_size_bytes} bytes)"
            )

        try:
            with open(path, "rb") as handle:
                raw = handle.read()
        except OSError as exc:
            return failure_result(f"failed to read file: {exc}")
        content = raw.decode("utf-8", errors="replace")

        if self.content_store is not None:
            try:
                stored = self.content_store.store_content(ContentKey.file(path), content)
            except Exception:
                return success_result(content)
            if self.file_context is not None:
                self.file_context.add(path)
            return success_result(
                f"[File stored: {stored.bytes} bytes, {stored.lines} lines]\n"
                "Use get_lines to retrieve content (key is automatic)."
            )
        return success_result(content)


class WriteFileTool(Tool):
    """Writes content to a file, creating parent directories."""

    def __init__(self, max_size_bytes: int, allowed_paths: Optional[Sequence[str]] = None) -> None:
        self.max_size_bytes = max_size_bytes
        self.allowed_paths = list(allowed_paths or [])

    def metadata(self) -> ToolMetadata:
        return ToolMetadata(
            name="write_file",
            description="Write content to a file on the filesystem",
            parameters=[
                ToolParameter("path", "string", "Path to the file to write", required=True),
                ToolParameter("content", "string", "Content to write", required=True),
            ],
        )

    def validate(self, args: ToolArgs) -> None:
        """Raise ValueError when no path is given."""
        if not _load_args(args, ("path", "content")).get("path"):
            raise ValueError("path cannot be empty")

    def execute(self, args: ToolArgs) -> ToolResult:
        try:
            data = _load_args(args, ("path", "content"))
        except ValueError as exc:
            return failure_result(exc)
        path = data.get("path") or ""
        if not path:
            return failure_result("path cannot be empty")
        raw = (data.get("content") or "").encode("utf-8")
        if len(raw) > self.max_size_bytes:
            return failure_result(
                f"content too large: {len(raw)} bytes (max: {self.max_size_bytes} bytes)"
            )
        if not path_allowed_for_write(path, self.allowed_paths):
            return failure_result(f"access to path '{path}' is not allowed")

        problem = _prepare_parent(path)
        if problem is not None:
            return problem
        try:
            with open(path, "wb") as handle:
                handle.write(raw)
        except OSError as exc:
            return failure_result(f"failed to write file: {exc}")
        return success_result(f"Successfully wrote {len(raw)} bytes to {path}")


class AppendFileTool(Tool):
    """Appends content to a file, creating it if needed."""

    def __init__(self, max_size_bytes: int, allowed_paths: Optional[Sequence[str]] = None) -> None:
        self.max_size_bytes = max_size_bytes
        self.allowed_paths = list(allowed_paths or [])

    def metadata(self) -> ToolMetadata:
        return ToolMetadata(
            name="append_file",
            description=(
                "Append content to an existing file on the filesystem. "
                "Creates the file if it doesn't exist."
            ),
            parameters=[
                ToolParameter("path", "string", "Path to the file to append to", required=True),
                ToolParameter("content", "string", "Content to append", required=True),
            ],
        )

    def validate(self, args: ToolArgs) -> None:
        """Raise ValueError when no path is given."""
        if not _load_args(args, ("path", "content")).get("path"):
            raise ValueError("path cannot be empty")

    def execute(self, args: ToolArgs) -> ToolResult:
        try:
            data = _load_args(args, ("path", "content"))
        except ValueError as exc:
            return failure_result(exc)
        path = data.get("path") or ""
        if not path:
            return failure_result("path cannot be empty")
        raw = (data.get("content") or "").encode("utf-8")
        if len(raw) > self.max_size_bytes:
            return failure_result(
                f"content too large: {len(raw)} bytes (max: {self.max_size_bytes} bytes)"
            )
        if not path_allowed_for_write(path, self.allowed_paths):
            return failure_result(f"access to path '{path}' is not allowed")

        problem = _prepare_parent(path)
        if problem is not None:
            return problem
        try:
            handle = open(path, "ab")
        except OSError as exc:
            return failure_result(f"failed to open file: {exc}")
        with handle:
            try:
                handle.write(raw)
            except OSError as exc:
                return failure_result(f"failed to write to file: {exc}")
        return success_result(f"Successfully appended {len(raw)} bytes to {path}")


class EditFileTool(Tool):
    """Replaces a search string in a file with new content."""

    def __init__(self, max_size_bytes: int, allowed_paths: Optional[Sequence[str]] = None) -> None:
        self.max_size_bytes = max_size_bytes
        self.allowed_paths = list(allowed_paths or [])

    def metadata(self) -> ToolMetadata:
        return ToolMetadata(
            name="edit_file",
            description="Edit a file by replacing a target string with new content",
            parameters=[
                ToolParameter("path", "string", "Path to the file to edit", required=True),
                ToolParameter("search", "string", "String to search for", required=True),
                ToolParameter("replace", "string", "Replacement string", required=True),
                ToolParameter(
                    "replace_all", "boolean", "Replace all occurrences (default: false)"
                ),
            ],
        )

    @staticmethod
    def _parse(args: ToolArgs) -> dict[str, Any]:
        data = _load_args(args, ("path", "search", "replace"))
        flag = data.get("replace_all")
        if flag is not None and not isinstance(flag, bool):
            raise ValueError("invalid arguments: replace_all must be a boolean")
        return data

    def validate(self, args: ToolArgs) -> None:
        """Raise ValueError when the path or search string is empty."""
        data = self._parse(args)
        if not data.get("path"):
            raise ValueError("path cannot be empty")
        if not data.get("search"):
            raise ValueError("search string cannot be empty")

    def execute(self, args: ToolArgs) -> ToolResult:
        try:
            data = self._parse(args)
        except ValueError as exc:
            return failure_result(exc)
        path = data.get("path") or ""
        search = data.get("search") or ""
        replace = data.get("replace") or ""
        if not path:
            return failure_result("path cannot be empty")
        if not search:
            return failure_result("search string cannot be empty")
        if not path_allowed_for_write(path, self.allowed_paths):
            return failure_result(f"access to path '{path}' is not allowed")
        if not os.path.exists(path):
            return failure_result(f"file does not exist: {path}")

        try:
            with open(path, "rb") as handle:
                raw = handle.read()
        except OSError as exc:
            return failure_result(f"failed to read file: {exc}")
        if len(raw) > self.max_size_bytes:
            return failure_result(
                f"file too large: {len(raw)} bytes (max: {self.max_size_bytes} bytes)"
            )

        content = raw.decode("utf-8", errors="replace")
        occurrences = content.count(search)
        if occurrences == 0:
            return failure_result("search string not found")
        replace_all = data.get("replace_all") is True
        if not replace_all and occurrences > 1:
            return failure_result(
                f"search string occurs {occurrences} times; "
                "set replace_all=true to replace all"
            )

        updated = content.replace(search, replace, -1 if replace_all else 1).encode("utf-8")
        if len(updated) > self.max_size_bytes:
            return failure_result(
                f"updated content too large: {len(updated)} bytes "
                f"(max: {self.max_size_bytes} bytes)"
            )
        try:
            with open(path, "wb") as handle:
                handle.write(updated)
        except OSError as exc:
            return failure_result(f"failed to write file: {exc}")

        replaced = occurrences if replace_all else 1
        return success_result(f"Replaced {replaced} occurrence(s) in {path}")