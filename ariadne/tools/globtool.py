"""A tool that finds files by glob pattern without reading them."""

from __future__ import annotations

import functools
import json
import os
import posixpath
import re
from typing import Any, Optional

from ariadne.tools.tool import (
    Tool,
    ToolArgs,
    ToolMetadata,
    ToolParameter,
    ToolResult,
    failure_result,
    success_result,
)

DEFAULT_GLOB_MAX_RESULTS = 100
ABSOLUTE_GLOB_MAX_RESULTS = 1000

_BAD_PATTERN = "syntax error in pattern"


def _read_class_char(pattern: str, i: int) -> tuple[str, int]:
    n = len(pattern)
    if i >= n or pattern[i] in "-]":
        raise ValueError(_BAD_PATTERN)
    if pattern[i] == "\\":
        i += 1
        if i >= n:
            raise ValueError(_BAD_PATTERN)
    ch = pattern[i]
    i += 1
    if i >= n:
        raise ValueError(_BAD_PATTERN)
    return ch, i


@functools.lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern:
    """Translate a shell pattern ('*' and '?' never match '/') to a regex."""
    out = []
    i, n = 0, len(pattern)
    while i < n:
        c = pattern[i]
        if c == "*":
            out.append("[^/]*")
            i += 1
        elif c == "?":
            out.append("[^/]")
            i += 1
        elif c == "\\":
            if i + 1 >= n:
                raise ValueError(_BAD_PATTERN)
            out.append(re.escape(pattern[i + 1]))
            i += 2
        elif c == "[":
            i += 1
            negate = i < n and pattern[i] == "^"
            if negate:
                i += 1
            parts = []
            count = 0
            while True:
                if i < n and pattern[i] == "]" and count > 0:
                    i += 1
                    break
                lo, i = _read_class_char(pattern, i)
                hi = lo
                if pattern[i] == "-":
                    hi, i = _read_class_char(pattern, i + 1)
                count += 1
                if lo <= hi:
                    parts.append(re.escape(lo) if lo == hi else f"{re.escape(lo)}-{re.escape(hi)}")
            if parts:
                out.append("[" + ("^" if negate else "") + "".join(parts) + "]")
            else:
                out.append("." if negate else "(?!)")
        else:
            out.append(re.escape(c))
            i += 1
    return re.compile("".join(out) + r"\Z", re.DOTALL)


def _match(pattern: str, name: str) -> bool:
    return _compile(pattern).match(name) is not None


def _match_pattern(pattern: str, name: str) -> bool:
    try:
        return _match(pattern, name)
    except ValueError:
        return False


def _has_meta(text: str) -> bool:
    return any(c in text for c in "*?[\\")


def _glob_dir(directory: str, pattern: str) -> list[str]:
    if not os.path.isdir(directory):
        return []
    try:
        names = sorted(os.listdir(directory))
    except OSError:
        return []
    regex = _compile(pattern)
    return [os.path.join(directory, name) for name in names if regex.match(name)]


def _glob(pattern: str) -> list[str]:
    _compile(pattern)
    if not _has_meta(pattern):
        return [pattern] if os.path.lexists(pattern) else []
    directory, file = os.path.split(pattern)
    directory = directory or "."
    if not _has_meta(directory):
        return _glob_dir(directory, file)
    if directory == pattern:
        raise ValueError(_BAD_PATTERN)
    matches: list[str] = []
    for sub in _glob(directory):
        matches.extend(_glob_dir(sub, file))
    return matches


def match_glob_pattern(path: str, pattern: str) -> bool:
    """Match a relative path against a glob pattern that may contain '**'."""
    path = path.replace(os.sep, "/")
    pattern = pattern.replace(os.sep, "/")
    parts = pattern.split("**")
    if len(parts) == 1:
        return _match_pattern(pattern, path)

    prefix = parts[0].removesuffix("/") if hasattr(str, "removesuffix") else parts[0]
    if prefix and not path.startswith(prefix):
        return False

    suffix = parts[-1].removeprefix("/")
    if suffix:
        if "/" in suffix:
            if not path.endswith(suffix) and not _match_pattern("*/" + suffix, "/" + path):
                return False
        elif not _match_pattern(suffix, posixpath.basename(path)):
            return False
    return True


def _load_args(args: ToolArgs) -> dict[str, Any]:
    try:
        data = json.loads(args)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"invalid arguments: {exc}") from None
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("invalid arguments: expected a JSON object")
    for name in ("pattern", "path"):
        value = data.get(name)
        if value is not None and not isinstance(value, str):
            raise ValueError(f"invalid arguments: {name} must be a string")
    limit = data.get("max_results")
    if limit is not None and (not isinstance(limit, int) or isinstance(limit, bool)):
        raise ValueError("invalid arguments: max_results must be an integer")
    return data


class GlobTool(Tool):
    """Lists files matching a glob pattern; hidden directories are skipped."""

    def __init__(self, max_results: int = 0) -> None:
        self.max_results = max_results if max_results > 0 else ABSOLUTE_GLOB_MAX_RESULTS

    def metadata(self) -> ToolMetadata:
        return ToolMetadata(
            name="glob",
            description=(
                "Find files matching a glob pattern. Returns file paths only (no content). "
                "Hidden directories (starting with .) are skipped. Use for discovery, "
                "then read_file to load content."
            ),
            parameters=[
                ToolParameter(
                    "pattern",
                    "string",
                    "Glob pattern (e.g., '**/*.go', 'src/**/*.ts', '*.yaml')",
                    required=True,
                ),
                ToolParameter(
                    "path", "string", "Base directory to search from (default: current directory)"
                ),
                ToolParameter(
                    "max_results",
                    "integer",
                    f"Maximum files to return (default: {DEFAULT_GLOB_MAX_RESULTS})",
                ),
            ],
        )

    def validate(self, args: ToolArgs) -> None:
        """Raise ValueError when no pattern is given."""
        if not (_load_args(args).get("pattern") or "").strip():
            raise ValueError("pattern is required")

    def execute(self, args: ToolArgs) -> ToolResult:
        try:
            data = _load_args(args)
        except ValueError as exc:
            return failure_result(exc)

        pattern = data.get("pattern") or ""
        base_path = data.get("path") or "."
        requested: Optional[int] = data.get("max_results")
        max_results = requested if requested is not None and requested > 0 else DEFAULT_GLOB_MAX_RESULTS
        max_results = min(max_results, self.max_results)

        try:
            matches = self._find_matches(base_path, pattern, max_results)
        except ValueError as exc:
            return failure_result(exc)
        return self._format_result(pattern, base_path, matches, max_results)

    def _find_matches(self, base_path: str, pattern: str, max_results: int) -> list[str]:
        abs_base = os.path.abspath(base_path)
        if not os.path.exists(abs_base):
            raise ValueError(f"path not found: {base_path}")
        if not os.path.isdir(abs_base):
            raise ValueError(f"path is not a directory: {base_path}")

        pattern = pattern.removeprefix("./")
        if "**" in pattern:
            return self._find_recursive(abs_base, pattern, max_results)
        return self._find_simple(abs_base, pattern, max_results)

    @staticmethod
    def _find_recursive(abs_base: str, pattern: str, max_results: int) -> list[str]:
        matches: list[str] = []
        if os.path.basename(abs_base).startswith("."):
            return matches

        def visit(directory: str) -> bool:
            try:
                with os.scandir(directory) as it:
                    entries = sorted(it, key=lambda e: e.name)
            except OSError:
                return True
            for entry in entries:
                try:
                    is_dir = entry.is_dir(follow_symlinks=False)
                except OSError:
                    is_dir = False
                if is_dir:
                    if entry.name.startswith("."):
                        continue
                    if not visit(entry.path):
                        return False
                    continue
                rel = os.path.relpath(entry.path, abs_base)
                if match_glob_pattern(rel, pattern):
                    matches.append(rel)
                    if len(matches) >= max_results:
                        return False
            return True

        visit(abs_base)
        return sorted(matches)

    @staticmethod
    def _find_simple(abs_base: str, pattern: str, max_results: int) -> list[str]:
        full_pattern = os.path.normpath(abs_base + "/" + pattern) if pattern else abs_base
        try:
            found = _glob(full_pattern)
        except ValueError as exc:
            raise ValueError(f"invalid glob pattern: {exc}") from None

        matches: list[str] = []
        for candidate in found:
            try:
                if os.path.isdir(candidate) or not os.path.exists(candidate):
                    continue
            except OSError:
                continue
            matches.append(os.path.relpath(candidate, abs_base))
            if len(matches) >= max_results:
                break
        return sorted(matches)

    @staticmethod
    def _format_result(
        pattern: str, base_path: str, matches: list[str], max_results: int
    ) -> ToolResult:
        if not matches:
            return success_result(f"No files found matching pattern '{pattern}' in {base_path}")
        lines = [f"Found {len(matches)} files matching '{pattern}':\n"]
        lines.extend(f"{m}\n" for m in matches)
        if len(matches) >= max_results:
            lines.append(f"\n(limited to {max_results} results)")
        return success_result("".join(lines))