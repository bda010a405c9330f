"""Synchronous HTTP client with transparent re-authentication.

This module provides :class:`ReauthClient`, a blocking client that wraps
:class:`httpx.Client` and wires together:

- **Interception transport** -- :class:`~reauth.client.transport.ReauthTransport`
  runs the outbound and inbound hooks around every exchange.
- **Orchestrator** -- one :class:`~reauth.auth.orchestrator.AuthOrchestrator`
  per client, owning the token cache, rate limiter and per-host locks.
- **Proactive injection** -- requests to hosts with a cached token carry it
  from the start.

Unlike a retrying client there is no loop here: a ``401`` costs at most one
login and one retry, performed inside the transport, and whatever the retry
returns is what the caller sees.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Optional

import httpx

from reauth.auth.orchestrator import AuthOrchestrator
from reauth.client.handler import InterceptionHandler
from reauth.client.transport import ReauthTransport
from reauth.models import ReauthSettings


class ReauthClient:
    """Synchronous client that recovers from expired credentials.

    Must be used as a context manager so that the underlying transport is
    opened and closed properly.

    Args:
        settings: Profiles and global switches. Shared by reference.
        transport: Inner transport performing the I/O; defaults to
            :class:`httpx.HTTPTransport` honouring *verify*.
        timeout: Per-request timeout in seconds, also applied to logins
            and retries.
        verify: TLS verification, used only for the default transport.
        follow_redirects: Passed to :class:`httpx.Client`. Off by default so
            a login answering ``302`` with ``Set-Cookie`` is seen as sent.
        clock: Monotonic clock for the rate limiter.

    Example::

        with ReauthClient(settings) as client:
            response = client.get("https://api.example.com/v1/users")
    """

    def __init__(
        self,
        settings: ReauthSettings,
        *,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: float = 30.0,
        verify: bool = True,
        follow_redirects: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings
        self._inner_transport = transport
        self._timeout = timeout
        self._verify = verify
        self._follow_redirects = follow_redirects
        self._clock = clock
        self._client: Optional[httpx.Client] = None
        self._orchestrator: Optional[AuthOrchestrator] = None

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> ReauthClient:
        inner = self._inner_transport or httpx.HTTPTransport(verify=self._verify)
        transport = ReauthTransport(inner)
        self._client = httpx.Client(
            transport=transport,
            timeout=self._timeout,
            follow_redirects=self._follow_redirects,
        )
        self._orchestrator = AuthOrchestrator(
            self._settings, self._client, clock=self._clock
        )
        transport.handler = InterceptionHandler(self._settings, self._orchestrator)
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    @property
    def orchestrator(self) -> AuthOrchestrator:
        """The orchestrator; available once the client has been entered."""
        assert self._orchestrator is not None, "Client not initialised -- use as context manager"
        return self._orchestrator

    @property
    def settings(self) -> ReauthSettings:
        return self._settings

    # ------------------------------------------------------------------ #
    # Public request methods
    # ------------------------------------------------------------------ #

    def send(self, request: httpx.Request) -> httpx.Response:
        """Send a prepared request through the interception transport."""
        assert self._client is not None, "Client not initialised -- use as context manager"
        return self._client.send(request)

    def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request; keyword arguments are those of :meth:`httpx.Client.request`.

        Returns:
            The final response: the original one, or the retry's response
            when an unauthorized answer was recovered.
        """
        assert self._client is not None, "Client not initialised -- use as context manager"
        return self._client.request(method, url, **kwargs)

    def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("POST", url, **kwargs)

    def put(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("PUT", url, **kwargs)

    def patch(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("PATCH", url, **kwargs)

    def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("DELETE", url, **kwargs)
