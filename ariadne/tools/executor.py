"""Running tools with retries and exponential backoff."""

from __future__ import annotations

import time
from typing import Callable, Optional

from ariadne.tools.tool import (
    Tool,
    ToolArgs,
    ToolConfig,
    ToolResult,
    default_tool_config,
    failure_result,
)

_BASE_DELAY = 0.1
_MAX_DELAY = 5.0

_NON_RETRYABLE = ("validation", "not allowed", "permission", "empty")
_RETRYABLE = ("timeout", "connection", "network")


def calculate_backoff(attempt: int) -> float:
    """Delay in seconds before the given attempt, doubling up to a cap."""
    return min(_BASE_DELAY * (1 << attempt), _MAX_DELAY)


def should_retry(result: ToolResult) -> bool:
    """Tell whether a failed result is worth another attempt."""
    if result.error is None:
        return True
    message = result.error.lower()
    if any(marker in message for marker in _NON_RETRYABLE):
        return False
    if any(marker in message for marker in _RETRYABLE):
        return True
    return True


class Executor:
    """Runs tools, retrying retryable failures with backoff."""

    def __init__(
        self,
        config: Optional[ToolConfig] = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config if config is not None else default_tool_config()
        self._sleep = sleep

    def execute(self, tool: Tool, args: ToolArgs) -> ToolResult:
        """Run a tool, retrying up to the configured number of attempts."""
        return self._run(tool, args, deadline=None)

    def execute_with_timeout(self, tool: Tool, args: ToolArgs, timeout: float) -> ToolResult:
        """Run a tool with retries that stop once the timeout in seconds has passed.

        Raises TimeoutError if the deadline passes while waiting to retry.
        """
        return self._run(tool, args, deadline=time.monotonic() + timeout)

    def _wait(self, delay: float, deadline: Optional[float]) -> None:
        if deadline is None:
            self._sleep(delay)
            return
        remaining = deadline - time.monotonic()
        if remaining <= delay:
            if remaining > 0:
                self._sleep(remaining)
            raise TimeoutError("context deadline exceeded")
        self._sleep(delay)

    def _run(self, tool: Tool, args: ToolArgs, deadline: Optional[float]) -> ToolResult:
        tool_name = tool.metadata().name
        max_retries = self._config.retries()
        last_error: Optional[str] = None

        for attempt in range(max_retries):
            if attempt > 0:
                self._wait(calculate_backoff(attempt), deadline)

            try:
                result = tool.execute(args)
            except Exception as exc:  # a raised error counts as a failed attempt
                last_error = str(exc)
                continue

            if result.success():
                return result
            if not should_retry(result):
                return result
            last_error = result.error

        message = last_error if last_error is not None else "unknown error"
        return failure_result(f"tool '{tool_name}' failed after {max_retries} attempts: {message}")


def execute_once(tool: Tool, args: ToolArgs) -> ToolResult:
    """Validate and run a tool a single time."""
    try:
        tool.validate(args)
    except Exception as exc:
        return failure_result(f"validation failed: {exc}")
    return tool.execute(args)