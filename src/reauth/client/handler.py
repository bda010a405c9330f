"""Interception hooks that connect a transport to the orchestrator.

An interception layer calls two hooks per exchange:

* :meth:`InterceptionHandler.on_request_to_be_sent` -- just before the
  request hits the wire. Strips the loop marker from system traffic,
  leaves manually replayed login requests alone and injects a cached token
  into everything else.
* :meth:`InterceptionHandler.on_response_received` -- when the response
  arrives. A ``401`` to ordinary traffic is handed to
  :meth:`~reauth.auth.orchestrator.AuthOrchestrator.handle_unauthorized`
  and the retry's response, if any, replaces it.

Each hook returns an action carrying the message to continue with, in the
manner of interception proxies' ``continue_with`` results.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from reauth.auth.marker import is_marked, mark, unmark
from reauth.auth.orchestrator import UNAUTHORIZED, AuthOrchestrator
from reauth.matching import same_url
from reauth.models import ReauthSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestToBeSentAction:
    """Outcome of the outbound hook: the request to transmit."""

    request: httpx.Request

    @classmethod
    def continue_with(cls, request: httpx.Request) -> RequestToBeSentAction:
        return cls(request)


@dataclass(frozen=True)
class ResponseReceivedAction:
    """Outcome of the inbound hook: the response to hand to the caller."""

    response: httpx.Response

    @classmethod
    def continue_with(cls, response: httpx.Response) -> ResponseReceivedAction:
        return cls(response)


class InterceptionHandler:
    """Outbound and inbound hooks for one orchestrator.

    Args:
        settings: Shared settings; ``enabled`` is read on every exchange.
        orchestrator: The state machine that performs re-authentication.
    """

    def __init__(self, settings: ReauthSettings, orchestrator: AuthOrchestrator) -> None:
        self._settings = settings
        self._orchestrator = orchestrator

    @property
    def orchestrator(self) -> AuthOrchestrator:
        return self._orchestrator

    def on_request_to_be_sent(self, request: httpx.Request) -> RequestToBeSentAction:
        # Login and retry requests carry the marker until this point.
        if is_marked(request):
            return RequestToBeSentAction.continue_with(unmark(request))

        url = str(request.url)
        if self._settings.is_login_url(url):
            logger.debug("Marking user's login request to prevent loop: %s", url)
            return RequestToBeSentAction.continue_with(unmark(mark(request)))

        if not self._settings.enabled:
            return RequestToBeSentAction.continue_with(request)

        injected = self._orchestrator.inject_cached_token(request)
        if injected is not None:
            logger.info(
                "Proactively injected cached token for %s%s",
                request.url.host, request.url.path,
            )
            return RequestToBeSentAction.continue_with(injected)

        return RequestToBeSentAction.continue_with(request)

    def on_response_received(
        self,
        response: httpx.Response,
        initiating_request: httpx.Request,
    ) -> ResponseReceivedAction:
        """Inbound hook.

        Args:
            response: The response as received, fully read.
            initiating_request: The request as handed to the transport,
                i.e. still carrying the marker for system traffic.
        """
        if not self._settings.enabled:
            return ResponseReceivedAction.continue_with(response)

        if response.status_code != UNAUTHORIZED:
            return ResponseReceivedAction.continue_with(response)

        host = initiating_request.url.host
        path = initiating_request.url.path

        if is_marked(initiating_request):
            logger.debug("Skipping marked request: %s", path)
            return ResponseReceivedAction.continue_with(response)

        profile = self._settings.find_profile(host, path)
        if profile is None:
            logger.debug("No config for URL: %s%s", host, path)
            return ResponseReceivedAction.continue_with(response)

        if profile.login_url and same_url(profile.login_url, initiating_request.url):
            logger.debug("Skipping login URL: %s", initiating_request.url)
            return ResponseReceivedAction.continue_with(response)

        logger.info("401 intercepted for %s%s", host, path)
        retry = self._orchestrator.handle_unauthorized(initiating_request, response)
        if retry is None:
            logger.warning("Re-authentication failed, returning original 401")
            return ResponseReceivedAction.continue_with(response)

        logger.info("Returning retry response: %d", retry.status_code)
        return ResponseReceivedAction.continue_with(retry)
