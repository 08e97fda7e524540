"""A tool that runs shell commands through ``sh -c``."""

from __future__ import annotations

import json
import os
import signal
import subprocess
from typing import Optional, Sequence

from ariadne.tools.tool import (
    Tool,
    ToolArgs,
    ToolMetadata,
    ToolParameter,
    ToolResult,
    failure_result,
    success_result,
)


def _parse_command(args: ToolArgs) -> str:
    try:
        data = json.loads(args)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"invalid arguments: {exc}") from None
    if not isinstance(data, dict):
        raise ValueError("invalid arguments: expected a JSON object")
    command = data.get("command")
    if command is None:
        return ""
    if not isinstance(command, str):
        raise ValueError("invalid arguments: command must be a string")
    return command


class ShellTool(Tool):
    """Runs a shell command, optionally limited to an allowlist of base commands."""

    def __init__(self, timeout_secs: int, allowed_commands: Optional[Sequence[str]] = None) -> None:
        self.timeout_secs = timeout_secs
        self.allowed_commands = list(allowed_commands or [])

    def metadata(self) -> ToolMetadata:
        return ToolMetadata(
            name="execute_shell",
            description="Execute a shell command and return its output",
            parameters=[
                ToolParameter(
                    name="command",
                    param_type="string",
                    description="The shell command to execute",
                    required=True,
                )
            ],
        )

    def validate(self, args: ToolArgs) -> None:
        """Raise ValueError when the arguments lack a command."""
        if _parse_command(args) == "":
            raise ValueError("command cannot be empty")

    def execute(self, args: ToolArgs) -> ToolResult:
        try:
            command = _parse_command(args)
        except ValueError as exc:
            return failure_result(exc)
        if command == "":
            return failure_result("command cannot be empty")
        if not self.is_command_allowed(command):
            return failure_result(f"command '{command}' is not in the allowed list")

        try:
            proc = subprocess.Popen(
                ["sh", "-c", command],
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                start_new_session=True,
            )
        except OSError as exc:
            return failure_result(f"failed to execute command: {exc}")

        try:
            raw, _ = proc.communicate(timeout=self.timeout_secs)
        except subprocess.TimeoutExpired:
            self._kill(proc)
            return failure_result(f"command timed out after {self.timeout_secs} seconds")

        output = raw.decode("utf-8", errors="replace")
        if proc.returncode != 0:
            return failure_result(
                f"command failed with exit code {proc.returncode}\noutput: {output}"
            )
        return success_result(output)

    @staticmethod
    def _kill(proc: subprocess.Popen) -> None:
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except (OSError, AttributeError):
            proc.kill()
        proc.communicate()

    def is_command_allowed(self, command: str) -> bool:
        """Tell whether the command's first word is on the allowlist (all if empty)."""
        if not self.allowed_commands:
            return True
        words = command.split()
        if not words:
            return False
        return words[0] in self.allowed_commands