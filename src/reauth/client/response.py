"""Response formatting bridge -- maps :class:`httpx.Response` to the output system.

After ``reauth fetch`` completes, :func:`format_api_response` writes the
status line (and, with ``--verbose``, the headers) to stderr and routes the
body through :meth:`~reauth.output.OutputManager.format_response`.
"""

from __future__ import annotations

from typing import Any

import httpx

from reauth.output import get_output


def format_api_response(response: httpx.Response) -> None:
    """Format and print *response* using the global output system."""
    output = get_output()

    output.info(f"HTTP {response.status_code} {response.reason_phrase or ''}")
    for name, value in response.headers.multi_items():
        output.debug(f"{name}: {value}")

    content_type = response.headers.get("content-type", "application/json")
    data = extract_response_data(response)
    if data is not None:
        output.format_response(data, content_type)


def extract_response_data(response: httpx.Response) -> Any:
    """Return the body as decoded JSON, else as text, or ``None`` if empty."""
    if not response.content:
        return None

    try:
        return response.json()
    except ValueError:
        pass

    return response.text
