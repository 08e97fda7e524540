"""A tool that runs allowlisted commands with structured arguments."""

from __future__ import annotations

import json
import os
import re
import signal
import subprocess
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

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
class BashPolicy:
    """Security constraints for command execution; empty lists allow everything."""

    allowed_commands: list[str] = field(default_factory=list)
    allowed_subcommands: list[str] = field(default_factory=list)
    allowed_resources: list[str] = field(default_factory=list)
    resource_check_subcommands: list[str] = field(default_factory=list)
    allowed_flags: list[str] = field(default_factory=list)
    flags_with_values: list[str] = field(default_factory=list)
    allowed_env: list[str] = field(default_factory=list)
    arg_pattern: Optional[re.Pattern] = None
    allowed_cwd: list[str] = field(default_factory=list)


@dataclass
class _BashArgs:
    command: str = ""
    argv: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    cwd: str = ""
    stdout_path: str = ""
    stderr_path: str = ""


def _parse_args(args: ToolArgs) -> _BashArgs:
    try:
        data: Any = json.loads(args)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"invalid arguments: {exc}") from None
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError("invalid arguments: expected a JSON object")

    def text(name: str) -> str:
        value = data.get(name)
        if value is None:
            return ""
        if not isinstance(value, str):
            raise ValueError(f"invalid arguments: {name} must be a string")
        return value

    argv = data.get("argv") or []
    if not isinstance(argv, list) or not all(isinstance(a, str) for a in argv):
        raise ValueError("invalid arguments: argv must be a list of strings")
    env = data.get("env") or {}
    if not isinstance(env, dict) or not all(isinstance(v, str) for v in env.values()):
        raise ValueError("invalid arguments: env must map names to strings")
    return _BashArgs(
        command=text("command"),
        argv=list(argv),
        env=dict(env),
        cwd=text("cwd"),
        stdout_path=text("stdout_path"),
        stderr_path=text("stderr_path"),
    )


def normalize_flag(arg: str) -> str:
    """Strip an inline ``=value`` from a flag."""
    return arg.split("=", 1)[0]


def _allowed(value: str, allowlist: Sequence[str]) -> bool:
    return not allowlist or value in allowlist


class BashTool(Tool):
    """Executes allowlisted commands after checking them against a policy."""

    def __init__(self, timeout_secs: int, policy: Optional[BashPolicy] = None) -> None:
        self.timeout_secs = timeout_secs
        self.policy = policy if policy is not None else BashPolicy()

    def metadata(self) -> ToolMetadata:
        return ToolMetadata(
            name="execute_bash",
            description=(
                "Execute an allowlisted command with structured arguments "
                "and optional environment"
            ),
            parameters=[
                ToolParameter("command", "string", "The command to execute", required=True),
                ToolParameter("argv", "array", "Command arguments", items={"type": "string"}),
                ToolParameter("env", "object", "Environment variables"),
                ToolParameter("cwd", "string", "Working directory"),
                ToolParameter("stdout_path", "string", "Path to write stdout"),
                ToolParameter("stderr_path", "string", "Path to write stderr"),
            ],
        )

    def validate(self, args: ToolArgs) -> None:
        """Raise ValueError when the arguments are malformed or lack a command."""
        if not _parse_args(args).command.strip():
            raise ValueError("command cannot be empty")

    def _check(self, a: _BashArgs) -> Optional[str]:
        """Return the reason the request breaks the policy, or None."""
        policy = self.policy
        if not _allowed(a.command, policy.allowed_commands):
            return f"command '{a.command}' is not allowed"

        if policy.allowed_subcommands:
            subcommand = self.extract_subcommand(a.argv)
            if not subcommand:
                return "subcommand required but not provided"
            if subcommand not in policy.allowed_subcommands:
                return f"subcommand '{subcommand}' is not allowed"

        if policy.allowed_resources:
            subcommand = self.extract_subcommand(a.argv)
            if _allowed(subcommand, policy.resource_check_subcommands):
                resource = self.extract_resource(a.argv)
                if not resource:
                    return "resource type required but not provided"
                if resource not in policy.allowed_resources:
                    return f"resource type '{resource}' is not allowed"

        end_of_flags = False
        for arg in a.argv:
            if arg == "":
                return "arguments cannot be empty"
            if arg == "--":
                end_of_flags = True
                continue
            if not end_of_flags and arg.startswith("-"):
                flag = normalize_flag(arg)
                if not _allowed(flag, policy.allowed_flags):
                    return f"flag '{flag}' is not allowed"
                continue
            if policy.arg_pattern is not None and not policy.arg_pattern.search(arg):
                return f"argument '{arg}' is not allowed"

        for name in a.env:
            if not _allowed(name, policy.allowed_env):
                return f"environment variable '{name}' is not allowed"

        if a.cwd:
            if not os.path.exists(a.cwd):
                return f"working directory does not exist: {a.cwd}"
            if not os.path.isdir(a.cwd):
                return f"working directory is not a directory: {a.cwd}"
            if not self._is_cwd_allowed(a.cwd):
                return f"working directory '{a.cwd}' is not allowed"

        for path in (a.stdout_path, a.stderr_path):
            if path:
                reason = self._check_output_path(path)
                if reason:
                    return reason
        return None

    def execute(self, args: ToolArgs) -> ToolResult:
        try:
            a = _parse_args(args)
        except ValueError as exc:
            return failure_result(exc)
        if not a.command.strip():
            return failure_result("command cannot be empty")

        reason = self._check(a)
        if reason is not None:
            return failure_result(reason)

        env = {**os.environ, **a.env} if a.env else None
        try:
            proc = subprocess.Popen(
                [a.command, *a.argv],
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                env=env,
                cwd=a.cwd or None,
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

        if a.stdout_path:
            try:
                with open(a.stdout_path, "wb") as handle:
                    handle.write(raw)
            except OSError as exc:
                return failure_result(f"failed to write stdout to {a.stdout_path}: {exc}")
            return success_result(f"stdout saved to {a.stdout_path}")
        return success_result(output)

    @staticmethod
    def _kill(proc: subprocess.Popen) -> None:
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except (OSError, AttributeError):
            proc.kill()
        proc.communicate()

    def _is_cwd_allowed(self, cwd: str) -> bool:
        if not self.policy.allowed_cwd:
            return True
        abs_path = os.path.abspath(cwd)
        return any(abs_path.startswith(os.path.abspath(a)) for a in self.policy.allowed_cwd)

    def _check_output_path(self, path: str) -> Optional[str]:
        directory = os.path.dirname(path) or "."
        if not os.path.exists(directory):
            return f"output path directory does not exist: {directory}"
        if not self._is_path_allowed(path):
            return f"output path '{path}' is not allowed"
        return None

    def _is_path_allowed(self, path: str) -> bool:
        if not os.path.isabs(path) or path.startswith("/tmp"):
            return True
        if not self.policy.allowed_cwd:
            return True
        return any(path.startswith(os.path.abspath(a)) for a in self.policy.allowed_cwd)

    def _positionals(self, argv: Sequence[str]):
        """Yield arguments that are neither flags nor values of flags."""
        end_of_flags = False
        skip_next = False
        for arg in argv:
            if skip_next:
                skip_next = False
                continue
            if arg == "--":
                end_of_flags = True
                continue
            if not end_of_flags and arg.startswith("-"):
                if normalize_flag(arg) in self.policy.flags_with_values and "=" not in arg:
                    skip_next = True
                continue
            yield arg

    def extract_subcommand(self, argv: Sequence[str]) -> str:
        """The first positional argument, or an empty string."""
        return next(self._positionals(argv), "")

    def extract_resource(self, argv: Sequence[str]) -> str:
        """The positional argument after the subcommand, or an empty string."""
        positionals = self._positionals(argv)
        next(positionals, None)
        return next(positionals, "")