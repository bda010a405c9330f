"""Re-authentication core for reauth.

This package holds the pieces that recover a request from an expired
credential and the state machine that drives them:

- :class:`AuthOrchestrator` -- matches a profile, serialises logins per
  host, retries with cached or fresh tokens.
- :func:`extract_token` -- finds a credential in a login response.
- :func:`inject_token` -- places a credential into an outgoing request.
- :func:`build_login_request` -- replays a raw template or synthesises the
  login request from profile fields.
- :class:`RateLimiter` and :class:`TokenCache` -- the per-host shared state.
- :mod:`reauth.auth.marker` -- tags system-generated traffic.

Typical usage::

    from reauth.auth import AuthOrchestrator

    orchestrator = AuthOrchestrator(settings, client)
    response = orchestrator.handle_unauthorized(request, response) or response
"""

from reauth.auth.extractor import extract_token
from reauth.auth.injector import inject_token
from reauth.auth.login import build_login_request, login_target
from reauth.auth.orchestrator import AuthOrchestrator
from reauth.auth.rate_limiter import RateLimiter
from reauth.auth.token_cache import TokenCache

__all__ = [
    "AuthOrchestrator",
    "RateLimiter",
    "TokenCache",
    "build_login_request",
    "extract_token",
    "inject_token",
    "login_target",
]
