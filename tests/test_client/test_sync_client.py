"""End-to-end tests for ReauthClient over the in-memory API."""

from __future__ import annotations

import threading
from typing import Any

import httpx
import pytest

from reauth.auth.marker import SKIP_HEADER
from reauth.auth.orchestrator import CACHED_RETRY, PROACTIVE_INJECTION
from reauth.client.sync_client import ReauthClient
from reauth.models import AuthProfile, InjectionSpec, ReauthSettings, TargetKind


API = "https://api.example.com"
RESOURCE = f"{API}/v1/data"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class FrozenClock:
    def __init__(self) -> None:
        self.now = 50.0

    def __call__(self) -> float:
        return self.now


def _make_settings(**overrides: Any) -> ReauthSettings:
    profile: dict[str, Any] = {
        "url_pattern": "api.example.com/v1/**",
        "login_url": f"{API}/auth/login",
        "login_body": '{"user":"${username}","pass":"${password}"}',
        "username": "alice",
        "password": "wonderland",
    }
    profile.update(overrides)
    return ReauthSettings(profiles=[AuthProfile(**profile)])


def _make_client(api, settings: ReauthSettings | None = None, **kwargs: Any) -> ReauthClient:
    return ReauthClient(
        settings or _make_settings(),
        transport=api.transport(),
        clock=kwargs.pop("clock", FrozenClock()),
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Transparent recovery
# ---------------------------------------------------------------------------


class TestTransparentRecovery:
    def test_unauthorized_is_recovered(self, fake_api) -> None:
        with _make_client(fake_api) as client:
            response = client.get(RESOURCE)

        assert response.status_code == 200
        assert response.json() == {"ok": True, "token": "token-1"}
        assert fake_api.login_calls == 1

    def test_marker_never_reaches_the_wire(self, fake_api) -> None:
        with _make_client(fake_api) as client:
            client.get(RESOURCE)
            fake_api.expire_tokens()
            client.orchestrator.set_rate_limit_interval(0)
            client.get(RESOURCE)

        assert fake_api.login_calls == 2
        assert all(SKIP_HEADER not in r.headers for r in fake_api.requests)

    def test_subsequent_requests_are_injected_proactively(self, fake_api) -> None:
        with _make_client(fake_api) as client:
            client.get(RESOURCE)
            sent_before = len(fake_api.requests)
            response = client.post(f"{API}/v1/items", json={"name": "x"})

            assert response.status_code == 200
            # one request, no 401 round trip
            assert len(fake_api.requests) == sent_before + 1
            assert fake_api.requests[-1].headers["authorization"] == "Bearer token-1"
            assert client.orchestrator.stats()["outcomes"][PROACTIVE_INJECTION] == 1

    def test_request_body_survives_retry(self, fake_api) -> None:
        with _make_client(fake_api) as client:
            client.put(f"{API}/v1/items/1", content=b"payload")

        retry = fake_api.requests[-1]
        assert retry.method == "PUT"
        assert retry.content == b"payload"

    def test_cookie_session(self, fake_api_factory) -> None:
        api = fake_api_factory(credential="cookie")
        with _make_client(api) as client:
            response = client.get(RESOURCE, headers={"Cookie": "theme=dark"})

        assert response.status_code == 200
        cookie = api.requests[-1].headers["cookie"]
        assert "theme=dark" in cookie
        assert "session=token-1" in cookie

    def test_manual_header_injection(self, fake_api) -> None:
        settings = _make_settings(
            injection=InjectionSpec(auto_detect=False, target=TargetKind.AUTHORIZATION_BEARER)
        )
        with _make_client(fake_api, settings) as client:
            assert client.get(RESOURCE).status_code == 200

    def test_unmatched_url_is_not_recovered(self, fake_api) -> None:
        with _make_client(fake_api) as client:
            response = client.get(f"{API}/public/x")

        assert response.status_code == 401
        assert fake_api.login_calls == 0

    def test_disabled_globally(self, fake_api) -> None:
        settings = _make_settings()
        settings.enabled = False
        with _make_client(fake_api, settings) as client:
            assert client.get(RESOURCE).status_code == 401
        assert fake_api.login_calls == 0

    def test_failed_login_returns_original_401(self, fake_api_factory) -> None:
        api = fake_api_factory(login_status=500)
        with _make_client(api) as client:
            response = client.get(RESOURCE)

        assert response.status_code == 401
        assert response.json() == {"error": "unauthorized"}

    def test_direct_login_request_is_not_recovered(self, fake_api_factory) -> None:
        api = fake_api_factory(login_status=401)
        settings = _make_settings(url_pattern="api.example.com/**")
        with _make_client(api, settings) as client:
            response = client.post(f"{API}/auth/login", json={"user": "x"})

        assert response.status_code == 401
        # only the caller's own login went out
        assert api.login_calls == 1

    def test_rate_limited_when_server_keeps_rejecting(self, fake_api_factory) -> None:
        api = fake_api_factory(reject_all=True)
        with _make_client(api) as client:
            first = client.get(RESOURCE)
            second = client.get(RESOURCE)

        assert first.status_code == 401
        assert second.status_code == 401
        assert api.login_calls == 1


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


class TestConcurrentClients:
    def test_at_most_one_login(self, fake_api_factory) -> None:
        workers = 5
        api = fake_api_factory(barrier=threading.Barrier(workers), login_delay=0.2)
        statuses: list[int] = []
        tokens: list[str] = []
        lock = threading.Lock()

        with _make_client(api) as client:

            def worker() -> None:
                response = client.get(RESOURCE)
                with lock:
                    statuses.append(response.status_code)
                    tokens.append(response.json().get("token", ""))

            threads = [threading.Thread(target=worker) for _ in range(workers)]
            for t in threads:
                t.start()
            for t in threads:
                t.join(timeout=10)

            outcomes = client.orchestrator.stats()["outcomes"]

        assert api.login_calls == 1
        assert statuses == [200] * workers
        assert set(tokens) == {"token-1"}
        assert outcomes[CACHED_RETRY] == workers - 1


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:
    def test_orchestrator_requires_context(self, fake_api) -> None:
        client = _make_client(fake_api)
        with pytest.raises(AssertionError):
            client.orchestrator

    def test_send_requires_context(self, fake_api) -> None:
        client = _make_client(fake_api)
        with pytest.raises(AssertionError):
            client.send(httpx.Request("GET", RESOURCE))

    def test_settings_shared_by_reference(self, fake_api) -> None:
        settings = _make_settings()
        client = _make_client(fake_api, settings)
        assert client.settings is settings

    def test_send_prepared_request(self, fake_api) -> None:
        with _make_client(fake_api) as client:
            response = client.send(httpx.Request("GET", RESOURCE))
        assert response.status_code == 200

    @pytest.mark.parametrize("method", ["get", "post", "put", "patch", "delete"])
    def test_verb_helpers(self, fake_api, method: str) -> None:
        with _make_client(fake_api) as client:
            response = getattr(client, method)(RESOURCE)
        assert response.status_code == 200
        assert fake_api.requests[-1].method == method.upper()
