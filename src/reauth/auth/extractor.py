"""Extract a credential from a login response.

Two modes, selected by :attr:`~reauth.models.ExtractionSpec.auto_detect`:

**Auto-detect** tries, in this order, and returns the first non-empty hit:

1. Response headers :data:`TOKEN_HEADERS` (a leading ``Bearer `` is
   stripped, case-insensitively).
2. ``Set-Cookie`` headers whose cookie name contains one of
   :data:`TOKEN_COOKIE_HINTS` (case-insensitive substring).
3. The JSON body, at each of :data:`TOKEN_JSON_PATHS`.

**Manual** looks up exactly the configured header, cookie or JSON path. If
that finds nothing and the ExtractionSpec carries an ``example_value``, that value is
returned verbatim. The fallback never applies to auto-detect.

JSON bodies are parsed with :mod:`json` and walked one object level per
dot-separated segment; only string leaves qualify.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Optional

import httpx

from reauth.models import ExtractedToken, ExtractionSpec, SourceKind

logger = logging.getLogger(__name__)

TOKEN_HEADERS = ("Authorization", "X-Auth-Token", "X-Access-Token", "Token")
"""Response headers checked by auto-detect, highest priority first."""

TOKEN_COOKIE_HINTS = ("token", "session", "auth", "jwt", "access")
"""Substrings that mark a ``Set-Cookie`` name as a credential."""

TOKEN_JSON_PATHS = (
    "token",
    "access_token",
    "accessToken",
    "data.token",
    "data.access_token",
    "data.accessToken",
    "response.token",
    "response.access_token",
    "jwt",
    "id_token",
    "idToken",
)
"""JSON paths checked by auto-detect, highest priority first."""

MANUAL_SELECTION_NAME = "manual-selection"

_BEARER_PREFIX = "bearer "


def extract_token(
    response: httpx.Response, spec: ExtractionSpec
) -> Optional[ExtractedToken]:
    """Locate the credential in *response* according to *spec*.

    Args:
        response: A fully read login response.
        spec: The profile's extraction spec.

    Returns:
        The token with its provenance, or ``None`` when no source yields a
        non-empty value. Callers treat ``None`` as "the login worked but no
        credential was acquired" and must not retry.
    """
    if spec.auto_detect:
        return _auto_detect(response)
    return _manual_extract(response, spec)


def _auto_detect(response: httpx.Response) -> Optional[ExtractedToken]:
    token = from_headers(response, TOKEN_HEADERS)
    if token is not None:
        logger.debug("Auto-detected token in header: %s", token.source_name)
        return token

    token = from_cookie_hints(response, TOKEN_COOKIE_HINTS)
    if token is not None:
        logger.debug("Auto-detected token in cookie: %s", token.source_name)
        return token

    token = from_json_body(response.text, TOKEN_JSON_PATHS)
    if token is not None:
        logger.debug("Auto-detected token in JSON body: %s", token.source_name)
        return token

    logger.warning("Auto-detection found no token in login response")
    return None


def _manual_extract(
    response: httpx.Response, spec: ExtractionSpec
) -> Optional[ExtractedToken]:
    name = spec.name
    token: Optional[ExtractedToken] = None

    if spec.source is SourceKind.HEADER:
        if name:
            token = from_headers(response, [name])
    elif spec.source is SourceKind.COOKIE:
        if name:
            value = cookie_value(response, name)
            if value:
                token = ExtractedToken(
                    value=value, source_kind=SourceKind.COOKIE, source_name=name
                )
    elif spec.source is SourceKind.JSON_FIELD:
        if name:
            token = from_json_body(response.text, [name])
    else:  # pragma: no cover
        raise ValueError(f"Unknown source kind: {spec.source!r}")

    if token is None and spec.example_value:
        logger.debug("Path-based extraction failed, using stored example value")
        token = ExtractedToken(
            value=spec.example_value,
            source_kind=spec.source,
            source_name=name or MANUAL_SELECTION_NAME,
        )

    if token is None:
        logger.warning(
            "Manual extraction failed for %s: %s", spec.source.value, name or "(no name)"
        )
    return token


# --- Headers ---


def from_headers(
    response: httpx.Response, names: Iterable[str]
) -> Optional[ExtractedToken]:
    """Return the first non-empty header among *names*, ``Bearer`` stripped.

    ``source_name`` is the name as given in *names*, not as sent by the server.
    """
    for name in names:
        for value in response.headers.get_list(name):
            if value.lower().startswith(_BEARER_PREFIX):
                value = value[len(_BEARER_PREFIX):]
            value = value.strip()
            if value:
                return ExtractedToken(
                    value=value, source_kind=SourceKind.HEADER, source_name=name
                )
    return None


# --- Cookies ---


def parse_set_cookie(header_value: str) -> Optional[tuple[str, str]]:
    """Split a ``Set-Cookie`` value into ``(name, value)``; attributes are ignored."""
    pair = header_value.split(";", 1)[0]
    name, sep, value = pair.partition("=")
    name = name.strip()
    if not sep or not name:
        return None
    return name, value.strip()


def _set_cookies(response: httpx.Response) -> list[tuple[str, str]]:
    cookies = []
    for header_value in response.headers.get_list("set-cookie"):
        parsed = parse_set_cookie(header_value)
        if parsed is not None:
            cookies.append(parsed)
    return cookies


def from_cookie_hints(
    response: httpx.Response, hints: Iterable[str]
) -> Optional[ExtractedToken]:
    """Return the first ``Set-Cookie`` whose name contains any of *hints*."""
    hints = [hint.lower() for hint in hints]
    for name, value in _set_cookies(response):
        lowered = name.lower()
        if value and any(hint in lowered for hint in hints):
            return ExtractedToken(
                value=value, source_kind=SourceKind.COOKIE, source_name=name
            )
    return None


def cookie_value(response: httpx.Response, cookie_name: str) -> Optional[str]:
    """Return the value of the ``Set-Cookie`` named *cookie_name* (case-insensitive)."""
    for name, value in _set_cookies(response):
        if name.lower() == cookie_name.lower():
            return value
    return None


# --- JSON body ---


def parse_json(text: Optional[str]) -> Any:
    """Parse *text* as JSON, returning ``None`` for empty or invalid input."""
    if not text or not text.strip():
        return None
    try:
        return json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None


def _child(node: Any, key: str) -> Any:
    if not isinstance(node, dict):
        return None
    if key in node:
        return node[key]
    lowered = key.lower()
    for candidate, value in node.items():
        if candidate.lower() == lowered:
            return value
    return None


def json_path_value(document: Any, path: str) -> Optional[str]:
    """Walk *document* along the dot-separated *path* and return a string leaf.

    Each segment descends one object level; an exact key wins over a
    case-insensitive one. Non-string leaves and missing keys yield ``None``.
    """
    node = document
    for segment in path.split("."):
        node = _child(node, segment)
        if node is None:
            return None
    return node if isinstance(node, str) else None


def from_json_body(
    body: Optional[str], paths: Iterable[str]
) -> Optional[ExtractedToken]:
    """Return the first non-empty string found at any of *paths* in *body*."""
    document = parse_json(body)
    if document is None:
        return None
    for path in paths:
        value = json_path_value(document, path)
        if value:
            return ExtractedToken(
                value=value, source_kind=SourceKind.JSON_FIELD, source_name=path
            )
    return None
