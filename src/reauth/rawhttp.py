"""Parse captured HTTP/1.x message text.

Operators paste login requests and responses as they appear in an
interception tool. This module turns that text into structured values and
:mod:`httpx` objects:

* :class:`RawRequest` / :func:`parse_request` -- request line, ordered
  headers (duplicates kept), body.
* :class:`RawResponse` / :func:`parse_response` -- status line, ordered
  headers, body.

Both accept ``\\r\\n`` or bare ``\\n`` line endings. Headers end at the
first blank line; everything after it is the body, returned with trailing
whitespace removed. Header lines without a colon are skipped.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

import httpx

_LINE_SPLIT = re.compile(r"\r?\n")


@dataclass
class RawRequest:
    """A request parsed from captured text.

    Attributes:
        method: Request method as written (e.g. ``"POST"``).
        target: Request target, usually an origin-form path such as ``/login``.
        http_version: Protocol token, ``HTTP/1.1`` when absent.
        headers: ``(name, value)`` pairs in their original order.
        body: Everything after the blank line.
    """

    method: str
    target: str
    http_version: str = "HTTP/1.1"
    headers: list[tuple[str, str]] = field(default_factory=list)
    body: str = ""

    def header(self, name: str) -> Optional[str]:
        """Return the first value of header *name* (case-insensitive)."""
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return None

    @property
    def host(self) -> Optional[str]:
        """The ``Host`` header value, port suffix included."""
        return self.header("Host")

    def origin(self) -> Optional[tuple[str, str, int]]:
        """Infer ``(scheme, host, port)`` from the ``Host`` header.

        Port 80 means plain HTTP; any other port, or none, means HTTPS with
        443 as the default. Returns ``None`` when there is no usable host.
        """
        host_value = (self.host or "").strip()
        if not host_value:
            return None
        host, port = host_value, 443
        if host_value.startswith("["):
            # bracketed IPv6 literal
            end = host_value.find("]")
            if end > 0:
                host = host_value[1:end]
                rest = host_value[end + 1:]
                if rest.startswith(":") and rest[1:].isdigit():
                    port = int(rest[1:])
        elif ":" in host_value:
            name, _, port_text = host_value.rpartition(":")
            if port_text.isdigit():
                host, port = name, int(port_text)
        scheme = "http" if port == 80 else "https"
        return scheme, host, port

    def url(self) -> Optional[httpx.URL]:
        """Build the absolute URL of the request, or ``None`` without a host."""
        if self.target.startswith(("http://", "https://")):
            return httpx.URL(self.target)
        origin = self.origin()
        if origin is None:
            return None
        scheme, host, port = origin
        target = self.target if self.target.startswith("/") else "/" + self.target
        base = httpx.URL(scheme=scheme, host=host, port=port)
        return base.join(target)

    def to_httpx(self, body: Optional[str] = None) -> httpx.Request:
        """Convert to an :class:`httpx.Request`.

        Every header is replayed in order except ``Content-Length``, which
        httpx recomputes from the (possibly substituted) *body*.

        Raises:
            ValueError: If the absolute URL cannot be determined.
        """
        url = self.url()
        if url is None:
            raise ValueError("Raw request has no Host header and no absolute target")
        headers = [
            (name, value)
            for name, value in self.headers
            if name.lower() != "content-length"
        ]
        content = self.body if body is None else body
        return httpx.Request(
            self.method,
            url,
            headers=headers,
            content=content.encode("utf-8") if content else None,
        )


@dataclass
class RawResponse:
    """A response parsed from captured text."""

    status_code: int
    reason: str = ""
    http_version: str = "HTTP/1.1"
    headers: list[tuple[str, str]] = field(default_factory=list)
    body: str = ""

    @property
    def set_cookies(self) -> list[str]:
        """All ``Set-Cookie`` header values, in order."""
        return [v for k, v in self.headers if k.lower() == "set-cookie"]

    def to_httpx(self, request: Optional[httpx.Request] = None) -> httpx.Response:
        """Convert to an :class:`httpx.Response` holding the body as content."""
        headers = [
            (name, value)
            for name, value in self.headers
            if name.lower() not in ("content-length", "content-encoding", "transfer-encoding")
        ]
        return httpx.Response(
            self.status_code,
            headers=headers,
            content=self.body.encode("utf-8"),
            request=request,
        )


def _split_message(raw: str) -> tuple[str, list[tuple[str, str]], str]:
    lines = _LINE_SPLIT.split(raw.lstrip("\r\n"))
    start_line = lines[0].strip()
    headers: list[tuple[str, str]] = []
    body_index: Optional[int] = None
    for index, line in enumerate(lines[1:], start=1):
        if not line.strip():
            body_index = index + 1
            break
        name, sep, value = line.partition(":")
        if sep and name.strip():
            headers.append((name.strip(), value.strip()))
    body = ""
    if body_index is not None and body_index < len(lines):
        body = "\n".join(lines[body_index:]).strip()
    return start_line, headers, body


def parse_request(raw: Optional[str]) -> Optional[RawRequest]:
    """Parse captured request text.

    Returns:
        The parsed request, or ``None`` if *raw* is empty or its request
        line has fewer than two parts.
    """
    if not raw or not raw.strip():
        return None
    start_line, headers, body = _split_message(raw)
    parts = start_line.split()
    if len(parts) < 2:
        return None
    return RawRequest(
        method=parts[0],
        target=parts[1],
        http_version=parts[2] if len(parts) > 2 else "HTTP/1.1",
        headers=headers,
        body=body,
    )


def parse_response(raw: Optional[str]) -> Optional[RawResponse]:
    """Parse captured response text.

    Returns:
        The parsed response, or ``None`` if *raw* is empty or the status
        line carries no numeric status code.
    """
    if not raw or not raw.strip():
        return None
    start_line, headers, body = _split_message(raw)
    parts = start_line.split(None, 2)
    if len(parts) < 2 or not parts[1].isdigit():
        return None
    return RawResponse(
        status_code=int(parts[1]),
        reason=parts[2] if len(parts) > 2 else "",
        http_version=parts[0],
        headers=headers,
        body=body,
    )
