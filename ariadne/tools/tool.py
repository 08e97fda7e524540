"""Core tool types: metadata, results, configuration and path checks."""

from __future__ import annotations

import json
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence, Union

ToolArgs = Union[str, bytes]


@dataclass
class ToolParameter:
    """Schema of one tool parameter."""

    name: str
    param_type: str
    description: str
    required: bool = False
    items: Optional[dict[str, Any]] = None


@dataclass
class ToolMetadata:
    """What a tool does and how to call it."""

    name: str
    description: str
    parameters: list[ToolParameter] = field(default_factory=list)

    def __str__(self) -> str:
        return f"{self.name}: {self.description}"


@dataclass(frozen=True)
class ToolResult:
    """Outcome of a tool run; it succeeded when there is no error."""

    output: str = ""
    error: Optional[str] = None

    def success(self) -> bool:
        """True when the run succeeded."""
        return self.error is None

    def to_json(self) -> str:
        """Serialise to compact JSON with a success flag."""
        if self.error is not None:
            payload: dict[str, Any] = {
                "success": False,
                "output": self.output,
                "error": self.error,
            }
        else:
            payload = {"success": True, "output": self.output}
        return json.dumps(payload, separators=(",", ":"))


def success_result(output: str) -> ToolResult:
    """A successful result carrying output."""
    return ToolResult(output=output)


def failure_result(error: Union[BaseException, str]) -> ToolResult:
    """A failed result carrying an error message."""
    return ToolResult(error=str(error))


class Tool(ABC):
    """Something an agent can call with JSON arguments."""

    @abstractmethod
    def metadata(self) -> ToolMetadata:
        """Name, description and parameters of the tool."""

    @abstractmethod
    def execute(self, args: ToolArgs) -> ToolResult:
        """Run the tool with JSON-encoded arguments."""

    def validate(self, args: ToolArgs) -> None:
        """Check arguments before running; raise ValueError when invalid."""
        return None


@dataclass
class ToolConfig:
    """Execution settings; zero values fall back to safe defaults."""

    timeout_secs: int = 0
    max_retries: int = 0
    no_sandbox: bool = False

    def timeout(self) -> int:
        """Timeout in seconds, 30 when unset."""
        return self.timeout_secs or 30

    def retries(self) -> int:
        """Maximum attempts, 3 when unset."""
        return self.max_retries or 3

    def sandboxed(self) -> bool:
        """True unless sandboxing was turned off."""
        return not self.no_sandbox


def default_tool_config() -> ToolConfig:
    """The default tool configuration."""
    return ToolConfig(timeout_secs=30, max_retries=3, no_sandbox=False)


def _under_any(abs_path: str, allowed_paths: Sequence[str]) -> bool:
    return any(abs_path.startswith(os.path.abspath(allowed)) for allowed in allowed_paths)


def path_allowed(path: str, allowed_paths: Sequence[str]) -> bool:
    """Tell whether a path lies under one of the allowed prefixes (all if none)."""
    if not allowed_paths:
        return True
    return _under_any(os.path.abspath(path), allowed_paths)


def path_allowed_for_write(path: str, allowed_paths: Sequence[str]) -> bool:
    """Tell whether a path's parent directory lies under an allowed prefix."""
    if not allowed_paths:
        return True
    parent = os.path.dirname(path) or "."
    return _under_any(os.path.abspath(parent), allowed_paths)