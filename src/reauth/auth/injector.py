"""Place an extracted credential into an outgoing request.

:func:`inject_token` is a pure function: it returns a rebuilt
:class:`httpx.Request` and never touches the one it was given. Any existing
header (or cookie entry) of the target name is replaced, never duplicated.

Placement rules:

* **Auto-detect** mirrors the token's provenance. A cookie is re-sent as
  the same cookie, a header as the same header (``Bearer `` is re-added only
  when that header is ``Authorization``), and a JSON-body token becomes
  ``Authorization: Bearer <value>``.
* **Manual** follows :attr:`~reauth.models.InjectionSpec.target` and
  :attr:`~reauth.models.InjectionSpec.name`.

Cookie injection merges into the existing ``Cookie`` header; unrelated
entries keep their order.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from reauth.messages import rebuild_request
from reauth.models import ExtractedToken, InjectionSpec, SourceKind, TargetKind

logger = logging.getLogger(__name__)

AUTHORIZATION = "Authorization"


def inject_token(
    request: httpx.Request, token: ExtractedToken, spec: InjectionSpec
) -> httpx.Request:
    """Return a copy of *request* carrying *token* as *spec* prescribes."""
    if spec.auto_detect:
        return _auto_inject(request, token)
    return _manual_inject(request, token, spec)


def _auto_inject(request: httpx.Request, token: ExtractedToken) -> httpx.Request:
    kind = token.source_kind
    if kind is SourceKind.COOKIE:
        return set_cookie(request, token.source_name, token.value)
    if kind is SourceKind.HEADER:
        value = token.value
        if token.source_name.lower() == AUTHORIZATION.lower():
            value = "Bearer " + value
        return set_header(request, token.source_name, value)
    if kind is SourceKind.JSON_FIELD:
        return set_header(request, AUTHORIZATION, "Bearer " + token.value)
    raise ValueError(f"Unknown source kind: {kind!r}")  # pragma: no cover


def _manual_inject(
    request: httpx.Request, token: ExtractedToken, spec: InjectionSpec
) -> httpx.Request:
    target = spec.target
    if target is TargetKind.AUTHORIZATION_BEARER:
        return set_header(request, AUTHORIZATION, "Bearer " + token.value)
    if not spec.name:
        logger.warning("Injection target %s has no name; request left unchanged", target.value)
        return request
    if target is TargetKind.HEADER:
        return set_header(request, spec.name, token.value)
    if target is TargetKind.COOKIE:
        return set_cookie(request, spec.name, token.value)
    raise ValueError(f"Unknown target kind: {target!r}")  # pragma: no cover


# --- Headers ---


def set_header(request: httpx.Request, name: str, value: str) -> httpx.Request:
    """Return a copy of *request* with header *name* set to exactly *value*."""
    headers = request.headers.copy()
    headers[name] = value
    return rebuild_request(request, headers)


# --- Cookies ---


def merge_cookie(existing: Optional[str], name: str, value: str) -> str:
    """Merge ``name=value`` into a ``Cookie`` header value.

    The first entry named *name* (case-insensitive) is replaced in place and
    any later duplicates are dropped; otherwise the entry is appended.

    Example::

        >>> merge_cookie("a=1; session=old; b=2", "session", "new")
        'a=1; session=new; b=2'
    """
    entries: list[str] = []
    replaced = False
    lowered = name.lower()
    for part in (existing or "").split(";"):
        part = part.strip()
        if not part:
            continue
        entry_name = part.split("=", 1)[0].strip()
        if entry_name.lower() == lowered:
            if not replaced:
                entries.append(f"{name}={value}")
                replaced = True
            continue
        entries.append(part)
    if not replaced:
        entries.append(f"{name}={value}")
    return "; ".join(entries)


def set_cookie(request: httpx.Request, name: str, value: str) -> httpx.Request:
    """Return a copy of *request* whose single ``Cookie`` header carries *name*."""
    headers = request.headers.copy()
    existing = "; ".join(headers.get_list("cookie"))
    headers["Cookie"] = merge_cookie(existing, name, value)
    return rebuild_request(request, headers)
