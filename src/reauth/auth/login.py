"""Build the login request for a profile.

Two construction modes:

1. **Raw replay** -- when the profile carries a captured ``raw_request``,
   it is parsed with :func:`reauth.rawhttp.parse_request` and replayed with
   every header intact (``Host`` included). Scheme and port come from the
   ``Host`` value: port 80 means plain HTTP, anything else HTTPS, default
   port 443. Only the body is touched, by credential substitution. If the
   template cannot be parsed the synthesised form is used instead.
2. **Synthesis** -- from ``login_method``, ``login_url``, ``content_type``,
   ``login_body`` and ``extra_headers``. ``Content-Type`` is only sent when
   there is a body.

Credentials are resolved through :func:`reauth.config.resolve_secret`, so
``username``/``password`` may be ``env:`` or ``file:`` descriptors.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from reauth.config import resolve_secret
from reauth.exceptions import ConfigError, LoginTransportFailure
from reauth.matching import split_pattern
from reauth.models import AuthProfile
from reauth.rawhttp import parse_request

logger = logging.getLogger(__name__)

USERNAME_PLACEHOLDER = "${username}"
PASSWORD_PLACEHOLDER = "${password}"


def substitute_credentials(template: str, username: str, password: str) -> str:
    """Replace the literal ``${username}``/``${password}`` placeholders in *template*."""
    if not template:
        return ""
    return template.replace(USERNAME_PLACEHOLDER, username or "").replace(
        PASSWORD_PLACEHOLDER, password or ""
    )


def build_login_body(profile: AuthProfile) -> str:
    """Return the profile's body template with credentials substituted.

    Raises:
        ConfigError: If a credential source descriptor cannot be resolved.
    """
    return substitute_credentials(
        profile.login_body,
        resolve_secret(profile.username) if profile.username else "",
        resolve_secret(profile.password) if profile.password else "",
    )


def _from_raw(profile: AuthProfile) -> Optional[httpx.Request]:
    parsed = parse_request(profile.raw_request)
    if parsed is None:
        return None
    if not parsed.host:
        logger.warning("Raw login request for %s has no Host header", profile.url_pattern)
        return None
    body = parsed.body
    if body:
        body = substitute_credentials(
            body,
            resolve_secret(profile.username) if profile.username else "",
            resolve_secret(profile.password) if profile.password else "",
        )
    try:
        request = parsed.to_httpx(body=body)
    except (ValueError, httpx.InvalidURL) as exc:
        logger.warning("Raw login request for %s is unusable: %s", profile.url_pattern, exc)
        return None
    logger.info("Built login request from raw request to %s%s", request.url.host, request.url.path)
    return request


def _from_fields(profile: AuthProfile) -> httpx.Request:
    if not profile.login_url:
        raise LoginTransportFailure(
            f"Profile {profile.url_pattern} has neither a raw login request nor a login URL"
        )
    logger.info("Building login request from config to %s", profile.login_url)
    body = build_login_body(profile)
    headers: list[tuple[str, str]] = []
    if body:
        headers.append(("Content-Type", profile.content_type))
    headers.extend(profile.extra_headers.items())
    try:
        return httpx.Request(
            profile.login_method or "POST",
            profile.login_url,
            headers=headers,
            content=body.encode("utf-8") if body else None,
        )
    except httpx.InvalidURL as exc:
        raise LoginTransportFailure(f"Invalid login URL {profile.login_url!r}: {exc}") from exc


def build_login_request(profile: AuthProfile) -> httpx.Request:
    """Build the (unmarked) login request for *profile*.

    Raises:
        LoginTransportFailure: If no usable request can be built, including
            when a credential source cannot be resolved.
    """
    try:
        if profile.raw_request:
            request = _from_raw(profile)
            if request is not None:
                return request
            logger.warning("Failed to parse raw request, falling back to config-based request")
        return _from_fields(profile)
    except ConfigError as exc:
        raise LoginTransportFailure(f"Cannot build login request: {exc}") from exc


def login_target(profile: AuthProfile) -> str:
    """Return the host that keys the lock, rate limiter and cache for *profile*.

    The pattern's host is used when it is an exact host. For wildcard
    patterns the login URL's host is used, or failing that the ``Host`` of
    the raw template.
    """
    host_glob, _ = split_pattern(profile.url_pattern)
    if host_glob and "*" not in host_glob:
        return host_glob.lower()
    if profile.login_url:
        try:
            host = httpx.URL(profile.login_url).host
        except httpx.InvalidURL:
            host = ""
        if host:
            return host
    parsed = parse_request(profile.raw_request)
    if parsed is not None:
        origin = parsed.origin()
        if origin is not None:
            return origin[1].lower()
    return host_glob.lower()


def describe_request(request: httpx.Request) -> None:
    """Log *request* line by line at debug level."""
    if not logger.isEnabledFor(logging.DEBUG):
        return
    logger.debug("Login request: %s %s", request.method, request.url)
    for name, value in request.headers.multi_items():
        logger.debug("  Request Header: %s: %s", name, value)
    body = request.read()
    if body:
        logger.debug("  Request Body: %s", body.decode("utf-8", errors="replace"))


def describe_failed_response(response: httpx.Response) -> None:
    """Log a non-2xx login response in full at debug level."""
    if not logger.isEnabledFor(logging.DEBUG):
        return
    for name, value in response.headers.multi_items():
        logger.debug("  Response Header: %s: %s", name, value)
    if response.text:
        logger.debug("  Response Body: %s", response.text)
