"""Loop marker -- tags requests the orchestrator itself originates.

Login and retry requests carry the :data:`SKIP_HEADER` sentinel from the
moment they are built until the outbound hook strips it immediately before
transmission, so the sentinel never reaches the wire. The inbound hook
checks the *initiating* request for the sentinel and leaves responses to
system traffic alone, which is what stops an
unauthorized -> login -> unauthorized loop.
"""

from __future__ import annotations

import httpx

from reauth.messages import with_header, without_headers

SKIP_HEADER = "X-Reauth-Skip"
SKIP_VALUE = "true"


def mark(request: httpx.Request) -> httpx.Request:
    """Return a copy of *request* carrying the sentinel header (once)."""
    return with_header(request, SKIP_HEADER, SKIP_VALUE)


def is_marked(request: httpx.Request) -> bool:
    """Whether *request* carries the sentinel header."""
    return SKIP_HEADER in request.headers


def unmark(request: httpx.Request) -> httpx.Request:
    """Return a copy of *request* without the sentinel header."""
    return without_headers(request, [SKIP_HEADER])
