"""A tool that makes HTTP GET and POST requests."""

from __future__ import annotations

import json
import socket
import urllib.error
import urllib.parse
import urllib.request
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


def _load_args(args: ToolArgs) -> dict[str, Any]:
    try:
        data = json.loads(args)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"invalid arguments: {exc}") from None
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("invalid arguments: expected a JSON object")
    for name in ("url", "method", "body"):
        value = data.get(name)
        if value is not None and not isinstance(value, str):
            raise ValueError(f"invalid arguments: {name} must be a string")
    return data


def _is_timeout(exc: BaseException) -> bool:
    if isinstance(exc, (socket.timeout, TimeoutError)):
        return True
    reason = getattr(exc, "reason", None)
    return isinstance(reason, (socket.timeout, TimeoutError))


class HttpTool(Tool):
    """Fetches URLs with GET or POST, optionally limited to allowed domains."""

    def __init__(self, timeout_secs: int, allowed_domains: Optional[Sequence[str]] = None) -> None:
        self.timeout_secs = timeout_secs
        self.allowed_domains = list(allowed_domains or [])

    def metadata(self) -> ToolMetadata:
        return ToolMetadata(
            name="http_request",
            description="Make HTTP GET or POST requests to fetch data from URLs",
            parameters=[
                ToolParameter("url", "string", "The URL to request", required=True),
                ToolParameter("method", "string", "HTTP method (GET or POST)"),
                ToolParameter("body", "string", "Request body for POST requests"),
            ],
        )

    def validate(self, args: ToolArgs) -> None:
        """Raise ValueError when the arguments lack a URL."""
        if not _load_args(args).get("url"):
            raise ValueError("URL cannot be empty")

    def execute(self, args: ToolArgs) -> ToolResult:
        try:
            data = _load_args(args)
        except ValueError as exc:
            return failure_result(exc)

        url = data.get("url") or ""
        if not url:
            return failure_result("URL cannot be empty")
        if not self.is_domain_allowed(url):
            return failure_result(f"access to domain in '{url}' is not allowed")

        method = (data.get("method") or "").upper() or "GET"
        if method not in ("GET", "POST"):
            return failure_result("only GET and POST methods are supported")

        body = (data.get("body") or "").encode("utf-8") if method == "POST" else None
        try:
            request = urllib.request.Request(url, data=body, method=method)
        except ValueError as exc:
            return failure_result(f"failed to create request: {exc}")

        kwargs: dict[str, Any] = {}
        if self.timeout_secs > 0:
            kwargs["timeout"] = self.timeout_secs

        try:
            with urllib.request.urlopen(request, **kwargs) as response:
                status = f"{response.status} {response.reason}"
                payload = response.read().decode("utf-8", errors="replace")
        except urllib.error.HTTPError as exc:
            try:
                payload = exc.read().decode("utf-8", errors="replace")
            finally:
                exc.close()
            return failure_result(f"HTTP error: {exc.code} {exc.reason}\n\n{payload}")
        except (OSError, ValueError) as exc:
            if _is_timeout(exc):
                return failure_result(f"request timed out after {self.timeout_secs} seconds")
            return failure_result(f"request failed: {exc}")

        return success_result(f"Status: {status}\n\n{payload}")

    def is_domain_allowed(self, url: str) -> bool:
        """Tell whether the URL's host is an allowed domain or a subdomain of one."""
        if not self.allowed_domains:
            return True
        try:
            host = urllib.parse.urlparse(url).hostname or ""
        except ValueError:
            return False
        return any(host == domain or host.endswith("." + domain) for domain in self.allowed_domains)