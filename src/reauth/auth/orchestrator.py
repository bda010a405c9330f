"""Re-authentication state machine.

:class:`AuthOrchestrator` ties the matcher, rate limiter, extractor,
injector and loop marker together. For one unauthorized response the cycle
is::

    match profile -> lock host -> [cached token? retry -> done unless 401]
        -> rate-limit gate (attempt recorded) -> login -> extract -> cache
        -> inject -> retry -> unlock

Only the first of several concurrent callers for the same host logs in;
the rest wait on the per-host lock, find the fresh token in the cache and
retry with it. The rate-limit gate guards the login alone, so a cached
token can still rescue a caller inside the cooldown window. The flip side:
inside the window a stale cached token still costs one retry to the
backend before the cycle is abandoned as rate limited.

Every failure is raised internally as a :class:`~reauth.exceptions.ReauthError`
and converted to ``None`` at the public boundary: the original unauthorized
response then stands. There is no internal retry loop; a cycle makes at
most one login and one retry after the cached attempt.

All login and retry traffic leaves through ``client.send`` carrying the
loop marker, so it is never itself re-authenticated.

Example::

    orchestrator = AuthOrchestrator(settings, client)
    better = orchestrator.handle_unauthorized(request, response)
    if better is not None:
        response = better
"""

from __future__ import annotations

import logging
import threading
import time
from collections import Counter
from typing import Any, Callable, Optional

import httpx

from reauth.auth.extractor import extract_token
from reauth.auth.injector import inject_token
from reauth.auth.login import (
    build_login_request,
    describe_failed_response,
    describe_request,
    login_target,
)
from reauth.auth.marker import mark
from reauth.auth.rate_limiter import RateLimiter
from reauth.auth.token_cache import TokenCache
from reauth.exceptions import (
    ExtractionFailure,
    LoginStatusFailure,
    LoginTransportFailure,
    NoMatchingProfile,
    RateLimited,
    ReauthError,
    RetryTransportFailure,
)
from reauth.models import AuthProfile, ExtractedToken, ReauthSettings

logger = logging.getLogger(__name__)

UNAUTHORIZED = 401

# Outcome labels for successful cycles; failures use ReauthError.outcome.
CACHED_RETRY = "cached_retry"
LOGIN_RETRY = "login_retry"
LOGIN = "login"
PROACTIVE_INJECTION = "proactive_injection"
UNEXPECTED_ERROR = "error"


class AuthOrchestrator:
    """Owns the token cache, rate limiter and per-host locks for one client.

    Args:
        settings: Shared settings; edits take effect on the next cycle.
        client: The client used for login and retry requests. It should
            route through a :class:`~reauth.client.transport.ReauthTransport`
            so the loop marker is stripped before transmission.
        clock: Monotonic clock in seconds, passed to the rate limiter.
    """

    def __init__(
        self,
        settings: ReauthSettings,
        client: httpx.Client,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings
        self._client = client
        self._cache = TokenCache()
        self._rate_limiter = RateLimiter(settings.rate_limit_interval_ms, clock=clock)
        self._host_locks: dict[str, threading.Lock] = {}
        self._host_locks_guard = threading.Lock()
        self._outcomes: Counter[str] = Counter()
        self._outcomes_guard = threading.Lock()

    @property
    def settings(self) -> ReauthSettings:
        return self._settings

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    # ------------------------------------------------------------------ #
    # Reactive path
    # ------------------------------------------------------------------ #

    def handle_unauthorized(
        self,
        request: httpx.Request,
        response: Optional[httpx.Response] = None,
    ) -> Optional[httpx.Response]:
        """Recover from an unauthorized *response* to *request*.

        Args:
            request: The request that was answered with 401, unmarked.
            response: The unauthorized response. Only used for logging.

        Returns:
            The retry's response (whatever its status), or ``None`` when the
            cycle was abandoned and the original response should stand.
        """
        host = request.url.host
        path = request.url.path
        try:
            profile = self._settings.find_profile(host, path)
            if profile is None:
                raise NoMatchingProfile(f"No configuration found for URL: {host}{path}")
            if response is not None:
                logger.debug(
                    "Unauthorized (%d) from %s%s, profile %s",
                    response.status_code, host, path, profile.url_pattern,
                )
            with self._lock_for(host):
                return self._reauthenticate(request, profile, host)
        except ReauthError as exc:
            self._abandon(exc)
        except Exception:
            logger.exception("Unexpected error during re-authentication for %s", host)
            self._record(UNEXPECTED_ERROR)
        return None

    def _reauthenticate(
        self, request: httpx.Request, profile: AuthProfile, host: str
    ) -> httpx.Response:
        cached = self._cache.get(host)
        if cached is not None:
            logger.debug("Trying cached token for %s", host)
            try:
                retry = self._retry(request, cached, profile)
            except RetryTransportFailure as exc:
                logger.warning("Retry with cached token failed: %s", exc)
            else:
                if retry.status_code != UNAUTHORIZED:
                    logger.info("Retry with cached token succeeded: %d", retry.status_code)
                    self._record(CACHED_RETRY)
                    return retry
                retry.close()
            self._cache.evict(host)
            logger.debug("Cached token for %s rejected, performing login", host)

        token = self._login(profile, host)
        retry = self._retry(request, token, profile)
        logger.info("Retry with new token returned: %d", retry.status_code)
        self._record(LOGIN_RETRY)
        return retry

    def _retry(
        self, request: httpx.Request, token: ExtractedToken, profile: AuthProfile
    ) -> httpx.Response:
        retry_request = mark(inject_token(request, token, profile.injection))
        try:
            return self._client.send(retry_request)
        except httpx.HTTPError as exc:
            raise RetryTransportFailure(f"Retry request error: {exc}") from exc

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def _login(self, profile: AuthProfile, host: str) -> ExtractedToken:
        """Gate, send, check, extract and cache. Caller holds the host lock."""
        if not self._rate_limiter.try_acquire(host):
            raise RateLimited(host, self._rate_limiter.remaining_wait_ms(host))

        response = self._send_login(profile)
        if not 200 <= response.status_code < 300:
            describe_failed_response(response)
            raise LoginStatusFailure(host, response.status_code)

        token = extract_token(response, profile.extraction)
        if token is None:
            raise ExtractionFailure(
                f"Failed to extract token from login response for {host}"
            )

        self._cache.put(host, token)
        self._record(LOGIN)
        logger.info(
            "Token extracted: %s (%s)", token.source_kind.value, token.source_name
        )
        return token

    def _send_login(self, profile: AuthProfile) -> httpx.Response:
        login_request = mark(build_login_request(profile))
        describe_request(login_request)
        try:
            response = self._client.send(login_request)
        except httpx.HTTPError as exc:
            raise LoginTransportFailure(f"Login request error: {exc}") from exc
        logger.debug("Login response: %d", response.status_code)
        return response

    def login_and_get_token(self, profile: AuthProfile) -> Optional[ExtractedToken]:
        """Log in for *profile* without a prior unauthorized response.

        Takes the target's lock and passes the rate-limit gate like a
        reactive cycle; the cache is written but not consulted.

        Returns:
            The fresh token, or ``None`` if the login was refused or failed.
        """
        host = login_target(profile)
        try:
            with self._lock_for(host):
                token = self._login(profile, host)
            logger.info("Token extracted and cached for %s", host)
            return token
        except ReauthError as exc:
            self._abandon(exc)
        except Exception:
            logger.exception("Unexpected error during login for %s", host)
            self._record(UNEXPECTED_ERROR)
        return None

    def test_login(self, profile: AuthProfile) -> str:
        """Try *profile*'s login once and describe the result.

        Bypasses the lock, the rate limiter and the cache; nothing is stored.
        """
        try:
            response = self._send_login(profile)
            status = response.status_code
            if not 200 <= status < 300:
                describe_failed_response(response)
                return f"Login failed with status {status}"
            token = extract_token(response, profile.extraction)
            if token is None:
                return f"Login succeeded (HTTP {status}) but token extraction failed"
            return (
                f"Success! Token extracted from {token.source_kind.value} "
                f"({token.source_name}): {token.preview(30)}"
            )
        except ReauthError as exc:
            return f"Error: {exc}"
        except Exception as exc:
            logger.exception("Unexpected error while testing login")
            return f"Error: {exc}"

    # ------------------------------------------------------------------ #
    # Proactive path
    # ------------------------------------------------------------------ #

    def inject_cached_token(self, request: httpx.Request) -> Optional[httpx.Request]:
        """Return *request* carrying the cached token for its host, if any.

        Returns ``None`` when there is no matching profile or no cached token;
        the caller then forwards the request unchanged.
        """
        host = request.url.host
        try:
            token = self._cache.get(host)
            if token is None:
                return None
            profile = self._settings.find_profile(host, request.url.path)
            if profile is None:
                return None
            logger.info("Injecting cached token for %s", host)
            self._record(PROACTIVE_INJECTION)
            return inject_token(request, token, profile.injection)
        except Exception:
            logger.exception("Unexpected error injecting cached token for %s", host)
            self._record(UNEXPECTED_ERROR)
            return None

    # ------------------------------------------------------------------ #
    # Cache and limiter management
    # ------------------------------------------------------------------ #

    def cached_token(self, host: str) -> Optional[ExtractedToken]:
        return self._cache.get(host)

    def cached_hosts(self) -> list[str]:
        return self._cache.hosts()

    def clear_cache(self, host: Optional[str] = None) -> None:
        """Drop the cached token for *host*, or every token when *host* is ``None``."""
        if host is None:
            self._cache.clear()
            logger.info("Cleared all token cache")
        else:
            self._cache.evict(host)
            logger.debug("Cleared token cache for %s", host)

    def set_rate_limit_interval(self, interval_ms: int) -> None:
        """Change the login interval in the settings and the live limiter."""
        interval_ms = max(0, int(interval_ms))
        self._settings.rate_limit_interval_ms = interval_ms
        self._rate_limiter.interval_ms = interval_ms
        logger.debug("Rate limit interval set to %dms", interval_ms)

    def stats(self) -> dict[str, Any]:
        """Cycle outcome counts and cache state for status displays."""
        with self._outcomes_guard:
            outcomes = dict(self._outcomes)
        return {
            "enabled": self._settings.enabled,
            "rate_limit_interval_ms": self._rate_limiter.interval_ms,
            "cache": self._cache.stats(),
            "outcomes": outcomes,
        }

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _lock_for(self, host: str) -> threading.Lock:
        lock = self._host_locks.get(host)
        if lock is None:
            with self._host_locks_guard:
                lock = self._host_locks.setdefault(host, threading.Lock())
        return lock

    def _record(self, outcome: str) -> None:
        with self._outcomes_guard:
            self._outcomes[outcome] += 1

    def _abandon(self, exc: ReauthError) -> None:
        self._record(exc.outcome)
        if isinstance(exc, NoMatchingProfile):
            logger.debug("%s", exc)
        elif isinstance(exc, (RateLimited, ExtractionFailure)):
            logger.warning("%s", exc)
        else:
            logger.error("%s", exc)
