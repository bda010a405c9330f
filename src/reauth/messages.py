"""Copy-on-write helpers for :mod:`httpx` messages.

The core never edits a request in place: the marker and the injector both
build a new :class:`httpx.Request` with the same method, URL, body and
extensions and a rewritten header list. Responses that cross the
interception transport twice are *detached* so they can be handed to a
second client without touching an exhausted stream.
"""

from __future__ import annotations

from typing import Iterable, Optional

import httpx

# Framing headers describe the bytes on the wire, not the decoded body.
_FRAMING_HEADERS = ("content-encoding", "content-length", "transfer-encoding")


def rebuild_request(
    request: httpx.Request,
    headers: Optional[httpx.Headers] = None,
) -> httpx.Request:
    """Return a copy of *request*, optionally with a replacement header list.

    The body is read (if it was streamed) so the copy can be sent again.
    """
    content = request.read()
    return httpx.Request(
        method=request.method,
        url=request.url,
        headers=headers if headers is not None else request.headers.copy(),
        content=content,
        extensions=dict(request.extensions),
    )


def with_header(request: httpx.Request, name: str, value: str) -> httpx.Request:
    """Return a copy of *request* where header *name* has exactly one entry, *value*."""
    headers = request.headers.copy()
    headers[name] = value
    return rebuild_request(request, headers)


def without_headers(request: httpx.Request, names: Iterable[str]) -> httpx.Request:
    """Return a copy of *request* with every entry of each header in *names* removed."""
    headers = request.headers.copy()
    for name in names:
        if name in headers:
            del headers[name]
    return rebuild_request(request, headers)


def detach_response(
    response: httpx.Response,
    request: Optional[httpx.Request] = None,
) -> httpx.Response:
    """Rebuild *response* from its already-read, already-decoded content.

    Framing headers are dropped so that the new response is not decoded a
    second time; ``Content-Length`` is recomputed by httpx.
    """
    content = response.read()
    headers = [
        (name, value)
        for name, value in response.headers.multi_items()
        if name.lower() not in _FRAMING_HEADERS
    ]
    if request is None:
        try:
            request = response.request
        except RuntimeError:
            request = None
    return httpx.Response(
        status_code=response.status_code,
        headers=headers,
        content=content,
        request=request,
        extensions={
            key: value
            for key, value in response.extensions.items()
            if key in ("http_version", "reason_phrase")
        },
    )
