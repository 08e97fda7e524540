"""A registry of the tools available to agents."""

from __future__ import annotations

import threading
from typing import Optional

from ariadne.tools.bash import BashTool
from ariadne.tools.filesystem import AppendFileTool, EditFileTool, ReadFileTool, WriteFileTool
from ariadne.tools.http import HttpTool
from ariadne.tools.ripgrep import RipgrepTool
from ariadne.tools.shell import ShellTool
from ariadne.tools.tool import Tool, ToolMetadata

DEFAULT_TOOL_TIMEOUT = 30
DEFAULT_MAX_FILE_SIZE = 1024 * 1024


class Registry:
    """Tools keyed by name, safe to use from several threads."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        """Add a tool; raise ValueError if its name is taken."""
        name = tool.metadata().name
        with self._lock:
            if name in self._tools:
                raise ValueError(f"tool '{name}' already registered")
            self._tools[name] = tool

    def get(self, name: str) -> Optional[Tool]:
        """The tool with that name, or None."""
        with self._lock:
            return self._tools.get(name)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._tools

    def names(self) -> list[str]:
        """All tool names, sorted."""
        with self._lock:
            return sorted(self._tools)

    def list(self) -> list[ToolMetadata]:
        """Metadata of every registered tool."""
        with self._lock:
            return [tool.metadata() for tool in self._tools.values()]

    def description(self) -> str:
        """A text description of all tools for prompts."""
        with self._lock:
            tools = list(self._tools.values())
        blocks = []
        for tool in tools:
            meta = tool.metadata()
            params = "\n".join(
                f"  - {p.name} ({p.param_type}): {p.description} "
                f"[{'required' if p.required else 'optional'}]"
                for p in meta.parameters
            )
            blocks.append(
                f"Tool: {meta.name}\nDescription: {meta.description}\nParameters:\n{params}"
            )
        return "\n\n".join(blocks)


def with_defaults() -> Registry:
    """A registry holding the common default tools."""
    registry = Registry()
    defaults: list[Tool] = [
        BashTool(DEFAULT_TOOL_TIMEOUT),
        ShellTool(DEFAULT_TOOL_TIMEOUT),
        ReadFileTool(DEFAULT_MAX_FILE_SIZE),
        WriteFileTool(DEFAULT_MAX_FILE_SIZE),
        EditFileTool(DEFAULT_MAX_FILE_SIZE),
        AppendFileTool(DEFAULT_MAX_FILE_SIZE),
        HttpTool(DEFAULT_TOOL_TIMEOUT),
        RipgrepTool(DEFAULT_TOOL_TIMEOUT),
    ]
    for tool in defaults:
        try:
            registry.register(tool)
        except ValueError as exc:
            raise ValueError(f"failed to register default tools: {exc}") from exc
    return registry