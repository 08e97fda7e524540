"""A tool that searches files with ripgrep (``rg``)."""

from __future__ import annotations

import json
import subprocess
from dataclasses import dataclass, field
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


@dataclass
class _RipgrepArgs:
    pattern: str = ""
    path: str = ""
    glob: list[str] = field(default_factory=list)
    case_sensitive: Optional[bool] = None
    fixed_strings: Optional[bool] = None
    max_results: Optional[int] = None
    passthru: bool = False
    context: Optional[int] = None


def _parse_args(args: ToolArgs) -> _RipgrepArgs:
    try:
        data: Any = json.loads(args)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"invalid arguments: {exc}") from None
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError("invalid arguments: expected a JSON object")

    def get(name: str, kind: type) -> Any:
        value = data.get(name)
        if value is None:
            return None
        if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
            raise ValueError(f"invalid arguments: {name} has the wrong type")
        return value

    globs = get("glob", list) or []
    if not all(isinstance(g, str) for g in globs):
        raise ValueError("invalid arguments: glob must be a list of strings")
    return _RipgrepArgs(
        pattern=get("pattern", str) or "",
        path=get("path", str) or "",
        glob=globs,
        case_sensitive=get("case_sensitive", bool),
        fixed_strings=get("fixed_strings", bool),
        max_results=get("max_results", int),
        passthru=bool(get("passthru", bool)),
        context=get("context", int),
    )


class RipgrepTool(Tool):
    """Searches files by running ripgrep."""

    def __init__(self, timeout_secs: int, max_results: int = 200) -> None:
        self.timeout_secs = timeout_secs
        self.default_max_results = max_results

    def metadata(self) -> ToolMetadata:
        return ToolMetadata(
            name="ripgrep",
            description=(
                "Search files using ripgrep (rg). Use passthru=true with empty pattern "
                "to read file content."
            ),
            parameters=[
                ToolParameter(
                    "pattern",
                    "string",
                    "The search pattern (use empty string with passthru to get all lines)",
                    required=True,
                ),
                ToolParameter("path", "string", "Path to search in (default: current directory)"),
                ToolParameter(
                    "glob", "array", "Glob patterns to filter files", items={"type": "string"}
                ),
                ToolParameter("case_sensitive", "boolean", "Case sensitive search (default: true)"),
                ToolParameter("fixed_strings", "boolean", "Treat pattern as literal string"),
                ToolParameter("max_results", "integer", "Maximum number of matching lines"),
                ToolParameter(
                    "passthru",
                    "boolean",
                    "Print all lines (matching and non-matching). "
                    "Use with empty pattern to read file content.",
                ),
                ToolParameter("context", "integer", "Lines of context around matches (-C flag)"),
            ],
        )

    def validate(self, args: ToolArgs) -> None:
        """Raise ValueError for an empty pattern outside passthru mode."""
        a = _parse_args(args)
        if not a.pattern.strip() and not a.passthru:
            raise ValueError(
                "pattern cannot be empty "
                "(use passthru=true with empty pattern to read file content)"
            )

    def _command(self, a: _RipgrepArgs) -> tuple[list[str], str]:
        argv = ["rg", "--no-messages", "--color=never"]
        if a.passthru:
            argv.append("--passthru")
        if a.context is not None and a.context > 0:
            argv += ["-C", str(a.context)]
        max_count = self.default_max_results
        if a.max_results is not None and a.max_results > 0:
            max_count = a.max_results
        if max_count > 0:
            argv += ["--max-count", str(max_count)]
        if a.case_sensitive is False:
            argv.append("-i")
        if a.fixed_strings:
            argv.append("-F")
        for pattern in a.glob:
            if pattern.strip():
                argv += ["-g", pattern]
        search_path = a.path or "."
        pattern = a.pattern
        if a.passthru and not pattern.strip():
            pattern = "."
        argv += ["--", pattern, search_path]
        return argv, search_path

    def execute(self, args: ToolArgs) -> ToolResult:
        try:
            a = _parse_args(args)
        except ValueError as exc:
            return failure_result(exc)
        if not a.pattern.strip() and not a.passthru:
            return failure_result(
                "pattern cannot be empty (use passthru=true to read file content)"
            )

        argv, search_path = self._command(a)
        try:
            proc = subprocess.run(
                argv,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                timeout=self.timeout_secs,
                check=False,
            )
        except subprocess.TimeoutExpired:
            return failure_result(f"rg timed out after {self.timeout_secs} seconds")
        except OSError as exc:
            return failure_result(f"failed to execute rg: {exc}")

        output = (proc.stdout or b"").decode("utf-8", errors="replace")
        if proc.returncode != 0:
            if proc.returncode == 1:
                return success_result("")
            if proc.returncode == 2 and "reagent-logs.txt" in search_path:
                return success_result("")
            return failure_result(
                f"rg failed with exit code {proc.returncode}\noutput: {output}"
            )
        return success_result(output)