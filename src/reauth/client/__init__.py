"""HTTP client module for reauth.

Connects the re-authentication core to :mod:`httpx`:

Classes:
    :class:`InterceptionHandler` -- the outbound/inbound hooks.
    :class:`ReauthTransport` -- an :class:`httpx.BaseTransport` that runs
        the hooks around an inner transport.
    :class:`ReauthClient` -- a context-managed client wired with transport,
        orchestrator and handler.

Example::

    from reauth.client import ReauthClient

    with ReauthClient(settings) as client:
        resp = client.get("https://api.example.com/v1/users")
"""

from reauth.client.handler import (
    InterceptionHandler,
    RequestToBeSentAction,
    ResponseReceivedAction,
)
from reauth.client.sync_client import ReauthClient
from reauth.client.transport import ReauthTransport

__all__ = [
    "InterceptionHandler",
    "ReauthClient",
    "ReauthTransport",
    "RequestToBeSentAction",
    "ResponseReceivedAction",
]
