"""Tests for the outbound and inbound interception hooks."""

from __future__ import annotations

from typing import Any, Optional

import httpx
import pytest

from reauth.auth.marker import SKIP_HEADER, mark
from reauth.client.handler import (
    InterceptionHandler,
    RequestToBeSentAction,
    ResponseReceivedAction,
)
from reauth.models import AuthProfile, ExtractedToken, ReauthSettings, SourceKind


LOGIN_URL = "https://api.example.com/auth/login"


class StubOrchestrator:
    """Records calls and returns canned results."""

    def __init__(
        self,
        retry: Optional[httpx.Response] = None,
        injected: Optional[httpx.Request] = None,
    ) -> None:
        self.retry = retry
        self.injected = injected
        self.unauthorized_calls: list[tuple[httpx.Request, httpx.Response]] = []
        self.inject_calls: list[httpx.Request] = []

    def handle_unauthorized(self, request, response):
        self.unauthorized_calls.append((request, response))
        return self.retry

    def inject_cached_token(self, request):
        self.inject_calls.append(request)
        return self.injected


def _make_settings(**overrides: Any) -> ReauthSettings:
    settings = ReauthSettings(
        profiles=[AuthProfile(url_pattern="api.example.com/v1/**", login_url=LOGIN_URL)]
    )
    for key, value in overrides.items():
        setattr(settings, key, value)
    return settings


def _make_handler(orchestrator: StubOrchestrator, **overrides: Any) -> InterceptionHandler:
    return InterceptionHandler(_make_settings(**overrides), orchestrator)


def _request(url: str = "https://api.example.com/v1/data") -> httpx.Request:
    return httpx.Request("GET", url)


class TestActions:
    def test_continue_with(self) -> None:
        request = _request()
        assert RequestToBeSentAction.continue_with(request).request is request
        response = httpx.Response(200)
        assert ResponseReceivedAction.continue_with(response).response is response


class TestOnRequestToBeSent:
    def test_marked_request_is_unmarked(self) -> None:
        orchestrator = StubOrchestrator()
        action = _make_handler(orchestrator).on_request_to_be_sent(mark(_request()))
        assert SKIP_HEADER not in action.request.headers
        assert orchestrator.inject_calls == []

    def test_login_url_is_left_alone(self) -> None:
        orchestrator = StubOrchestrator(injected=_request())
        action = _make_handler(orchestrator).on_request_to_be_sent(
            httpx.Request("POST", LOGIN_URL)
        )
        assert SKIP_HEADER not in action.request.headers
        assert orchestrator.inject_calls == []

    def test_disabled_forwards_unchanged(self) -> None:
        orchestrator = StubOrchestrator()
        request = _request()
        action = _make_handler(orchestrator, enabled=False).on_request_to_be_sent(request)
        assert action.request is request
        assert orchestrator.inject_calls == []

    def test_proactive_injection(self) -> None:
        injected = _request()
        orchestrator = StubOrchestrator(injected=injected)
        action = _make_handler(orchestrator).on_request_to_be_sent(_request())
        assert action.request is injected

    def test_nothing_to_inject(self) -> None:
        orchestrator = StubOrchestrator()
        request = _request()
        assert _make_handler(orchestrator).on_request_to_be_sent(request).request is request


class TestOnResponseReceived:
    def test_non_401_passes_through(self) -> None:
        orchestrator = StubOrchestrator()
        response = httpx.Response(403)
        action = _make_handler(orchestrator).on_response_received(response, _request())
        assert action.response is response
        assert orchestrator.unauthorized_calls == []

    @pytest.mark.parametrize("status", [200, 302, 500])
    def test_other_statuses_ignored(self, status: int) -> None:
        orchestrator = StubOrchestrator()
        _make_handler(orchestrator).on_response_received(httpx.Response(status), _request())
        assert orchestrator.unauthorized_calls == []

    def test_disabled(self) -> None:
        orchestrator = StubOrchestrator()
        response = httpx.Response(401)
        action = _make_handler(orchestrator, enabled=False).on_response_received(
            response, _request()
        )
        assert action.response is response
        assert orchestrator.unauthorized_calls == []

    def test_marked_request_is_skipped(self) -> None:
        orchestrator = StubOrchestrator()
        response = httpx.Response(401)
        action = _make_handler(orchestrator).on_response_received(response, mark(_request()))
        assert action.response is response
        assert orchestrator.unauthorized_calls == []

    def test_unmatched_url_is_skipped(self) -> None:
        orchestrator = StubOrchestrator()
        _make_handler(orchestrator).on_response_received(
            httpx.Response(401), _request("https://other.example.com/v1/data")
        )
        assert orchestrator.unauthorized_calls == []

    def test_login_url_is_skipped(self) -> None:
        settings = ReauthSettings(
            profiles=[AuthProfile(url_pattern="api.example.com/**", login_url=LOGIN_URL)]
        )
        orchestrator = StubOrchestrator()
        handler = InterceptionHandler(settings, orchestrator)
        handler.on_response_received(httpx.Response(401), httpx.Request("POST", LOGIN_URL))
        assert orchestrator.unauthorized_calls == []

    def test_retry_replaces_response(self) -> None:
        retry = httpx.Response(200)
        orchestrator = StubOrchestrator(retry=retry)
        request = _request()
        response = httpx.Response(401)
        action = _make_handler(orchestrator).on_response_received(response, request)
        assert action.response is retry
        assert orchestrator.unauthorized_calls == [(request, response)]

    def test_failed_recovery_keeps_original(self) -> None:
        orchestrator = StubOrchestrator(retry=None)
        response = httpx.Response(401)
        action = _make_handler(orchestrator).on_response_received(response, _request())
        assert action.response is response

    def test_toggle_takes_effect_immediately(self) -> None:
        orchestrator = StubOrchestrator(retry=httpx.Response(200))
        handler = _make_handler(orchestrator)
        handler.on_response_received(httpx.Response(401), _request())
        handler._settings.enabled = False
        handler.on_response_received(httpx.Response(401), _request())
        assert len(orchestrator.unauthorized_calls) == 1
