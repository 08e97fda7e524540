"""Tools that let agents search, read and list content in a ResultStore."""

from __future__ import annotations

import json
import threading
from typing import Any, Optional

from ariadne.storage.models import LineRange, QueryOptions, ResultKey
from ariadne.storage.resultstore import ResultStore
from ariadne.storage.sqlite import StorageError
from ariadne.tools.tool import (
    Tool,
    ToolArgs,
    ToolMetadata,
    ToolParameter,
    ToolResult,
    failure_result,
    success_result,
)

_MAX_TRACKED_FILES = 10
_DEFAULT_SEARCH_LIMIT = 20
_LIST_LIMIT = 100
_PREVIEW_WIDTH = 60


def _load_args(args: ToolArgs) -> dict[str, Any]:
    try:
        data = json.loads(args)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"invalid arguments: {exc}") from None
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("invalid arguments: expected a JSON object")
    return data


def _get(data: dict[str, Any], name: str, kind: type, default: Any) -> Any:
    value = data.get(name)
    if value is None:
        return default
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise ValueError(f"invalid arguments: {name} has the wrong type")
    return value


class StoredFileContext:
    """Remembers the most recently stored file keys, newest first."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._files: list[str] = []

    def add(self, key: str) -> None:
        """Record a newly stored file, keeping only the last ten."""
        with self._lock:
            self._files = [key, *self._files][:_MAX_TRACKED_FILES]

    def last(self) -> str:
        """The most recently stored key, or an empty string."""
        with self._lock:
            return self._files[0] if self._files else ""

    def list(self) -> list[str]:
        """All tracked keys, newest first."""
        with self._lock:
            return list(self._files)


class _StoreTool(Tool):
    def __init__(
        self,
        store: Optional[ResultStore],
        session_id: str,
        file_context: Optional[StoredFileContext] = None,
    ) -> None:
        self.store = store
        self.session_id = session_id
        self.file_context = file_context


class SearchStoredTool(_StoreTool):
    """Searches a pattern across all content stored in the session."""

    def metadata(self) -> ToolMetadata:
        return ToolMetadata(
            name="search_stored",
            description=(
                "Search pattern across ALL stored content in this session. Uses SuffixArray "
                "for O(m log n) search. Returns matching lines with context."
            ),
            parameters=[
                ToolParameter("pattern", "string", "The search pattern", required=True),
                ToolParameter("limit", "integer", "Maximum results (default: 20)"),
            ],
        )

    @staticmethod
    def _parse(args: ToolArgs) -> tuple[str, Optional[int]]:
        data = _load_args(args)
        return _get(data, "pattern", str, ""), _get(data, "limit", int, None)

    def validate(self, args: ToolArgs) -> None:
        """Raise ValueError when the pattern is empty."""
        pattern, _ = self._parse(args)
        if not pattern.strip():
            raise ValueError("pattern cannot be empty")

    def execute(self, args: ToolArgs) -> ToolResult:
        if self.store is None:
            return failure_result("no result store available")
        try:
            pattern, limit = self._parse(args)
        except ValueError as exc:
            return failure_result(exc)
        if not pattern.strip():
            return failure_result("pattern cannot be empty")
        if limit is None or limit <= 0:
            limit = _DEFAULT_SEARCH_LIMIT

        try:
            matches = self.store.search(self.session_id, pattern, limit)
        except StorageError as exc:
            return failure_result(f"search failed: {exc}")

        if not matches:
            return success_result(f"No matches found for pattern: {pattern}")

        parts = [f"Found {len(matches)} matches for '{pattern}':\n\n"]
        parts.extend(
            f"[{number}] {m.key.key} (line {m.line}):\n  {m.context}\n\n"
            for number, m in enumerate(matches, start=1)
        )
        return success_result("".join(parts))


class GetLinesTool(_StoreTool):
    """Returns a line range of stored content, defaulting to the last stored file."""

    def metadata(self) -> ToolMetadata:
        return ToolMetadata(
            name="get_lines",
            description=(
                "Get specific line range from stored content. If key is omitted, "
                "uses the most recently stored file."
            ),
            parameters=[
                ToolParameter(
                    "key",
                    "string",
                    "The storage key (optional - defaults to last stored file)",
                ),
                ToolParameter("start", "integer", "Start line (1-indexed, inclusive)", required=True),
                ToolParameter("end", "integer", "End line (1-indexed, inclusive)", required=True),
            ],
        )

    @staticmethod
    def _parse(args: ToolArgs) -> tuple[str, int, int]:
        data = _load_args(args)
        return _get(data, "key", str, ""), _get(data, "start", int, 0), _get(data, "end", int, 0)

    def validate(self, args: ToolArgs) -> None:
        """Raise ValueError for a start below 1 or an end before the start."""
        _, start, end = self._parse(args)
        if start < 1:
            raise ValueError("start must be >= 1")
        if end < start:
            raise ValueError("end must be >= start")

    def execute(self, args: ToolArgs) -> ToolResult:
        if self.store is None:
            return failure_result("no result store available")
        try:
            file_key, start, end = self._parse(args)
        except ValueError as exc:
            return failure_result(exc)

        if not file_key and self.file_context is not None:
            file_key = self.file_context.last()
        if not file_key:
            return failure_result("no key provided and no files have been stored yet")

        try:
            lines = self.store.get_lines(
                ResultKey(self.session_id, file_key), LineRange(start=start, end=end)
            )
        except StorageError as exc:
            return failure_result(f"failed to get lines: {exc}")

        if not lines:
            return success_result(
                f"No content found for key: {file_key} (lines {start}-{end})"
            )
        return success_result(f"Lines {start}-{end} of {file_key}:\n\n{lines}")


class ListStoredTool(_StoreTool):
    """Lists stored content in the session, optionally by key prefix."""

    def metadata(self) -> ToolMetadata:
        return ToolMetadata(
            name="list_stored",
            description=(
                "List all stored content in this session. Use prefix to filter (e.g., 'src/' "
                "for all files in src). Uses Trie for O(m+k) prefix lookup."
            ),
            parameters=[
                ToolParameter(
                    "prefix", "string", "Optional prefix filter (e.g., 'src/', 'file:')"
                ),
            ],
        )

    @staticmethod
    def _parse(args: ToolArgs) -> str:
        return _get(_load_args(args), "prefix", str, "")

    def validate(self, args: ToolArgs) -> None:
        """Raise ValueError when the arguments are malformed."""
        self._parse(args)

    def execute(self, args: ToolArgs) -> ToolResult:
        if self.store is None:
            return failure_result("no result store available")
        try:
            prefix = self._parse(args)
        except ValueError as exc:
            return failure_result(exc)

        try:
            if prefix:
                results = self.store.get_by_prefix(self.session_id, prefix)
            else:
                results = self.store.list(self.session_id, QueryOptions(limit=_LIST_LIMIT))
        except StorageError as exc:
            return failure_result(f"failed to list stored content: {exc}")

        if not results:
            if prefix:
                return success_result(f"No stored content found with prefix: {prefix}")
            return success_result("No stored content in this session")

        if prefix:
            parts = [f"Stored content with prefix '{prefix}' ({len(results)} items):\n\n"]
        else:
            parts = [f"All stored content ({len(results)} items):\n\n"]
        for meta in results:
            parts.append(f"- {meta.key.key} ({meta.line_count} lines, {meta.byte_size} bytes)\n")
            if meta.summary:
                first_line = meta.summary.split("\n", 1)[0]
                if len(first_line) > _PREVIEW_WIDTH:
                    first_line = first_line[:_PREVIEW_WIDTH] + "..."
                parts.append(f"  Preview: {first_line}\n")
        return success_result("".join(parts))