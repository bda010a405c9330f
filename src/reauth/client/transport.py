"""httpx transport that runs the interception hooks around every exchange."""

from __future__ import annotations

from typing import Optional

import httpx

from reauth.client.handler import InterceptionHandler
from reauth.messages import detach_response


class ReauthTransport(httpx.BaseTransport):
    """Wrap *inner* and apply an :class:`InterceptionHandler`.

    The handler may be attached after construction, because the handler's
    orchestrator sends its own traffic through a client built on this very
    transport. Without a handler the transport is a pass-through.

    Args:
        inner: The transport that performs the I/O. Defaults to
            :class:`httpx.HTTPTransport`.
        handler: The hooks to apply.

    Example::

        transport = ReauthTransport(httpx.HTTPTransport(retries=1))
        client = httpx.Client(transport=transport)
        transport.handler = InterceptionHandler(settings, AuthOrchestrator(settings, client))
    """

    def __init__(
        self,
        inner: Optional[httpx.BaseTransport] = None,
        handler: Optional[InterceptionHandler] = None,
    ) -> None:
        self._inner = inner if inner is not None else httpx.HTTPTransport()
        self.handler = handler

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        handler = self.handler
        if handler is None:
            return self._inner.handle_request(request)

        outbound = handler.on_request_to_be_sent(request).request
        response = self._inner.handle_request(outbound)
        if response.status_code == 401:
            # the inbound hook may log or replace it
            response.read()

        result = handler.on_response_received(response, request).response
        if result is response:
            return response
        response.close()
        return detach_response(result, request)

    def close(self) -> None:
        self._inner.close()
