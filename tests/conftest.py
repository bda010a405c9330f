"""Shared test fixtures for reauth.

Provides an isolated config environment, output-state management, a CLI
runner and :class:`FakeApi`, an in-memory HTTP service with a login
endpoint and a protected resource, served through
:class:`httpx.MockTransport`.
"""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Optional

import httpx
import pytest

from reauth.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager and the CLI log handler after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time; CliRunner swaps those streams per invocation.
    """
    yield
    reset_output()
    logger = logging.getLogger("reauth")
    for handler in list(logger.handlers):
        if handler.get_name() == "reauth-cli":
            logger.removeHandler(handler)


# ---------------------------------------------------------------------------
# Fake API
# ---------------------------------------------------------------------------


class FakeApi:
    """In-memory API: ``POST /auth/login`` issues tokens, everything else needs one.

    Args:
        credential: ``"bearer"`` returns ``{"data": {"access_token": ...}}``
            and expects ``Authorization: Bearer``; ``"cookie"`` returns
            ``Set-Cookie: session=...`` and expects that cookie.
        login_status: Status of the login endpoint.
        login_delay: Seconds the login endpoint sleeps before answering.
        reject_all: Protected resources answer 401 even with a valid token.
        barrier: Unauthenticated requests wait here before getting 401.
    """

    LOGIN_PATH = "/auth/login"

    def __init__(
        self,
        credential: str = "bearer",
        login_status: int = 200,
        login_delay: float = 0.0,
        reject_all: bool = False,
        barrier: Optional[threading.Barrier] = None,
    ) -> None:
        self.credential = credential
        self.login_status = login_status
        self.login_delay = login_delay
        self.reject_all = reject_all
        self.barrier = barrier
        self.login_calls = 0
        self.valid_tokens: set[str] = set()
        self.requests: list[httpx.Request] = []
        self._lock = threading.Lock()

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def expire_tokens(self) -> None:
        with self._lock:
            self.valid_tokens.clear()

    def login_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == self.LOGIN_PATH]

    def handler(self, request: httpx.Request) -> httpx.Response:
        request.read()
        with self._lock:
            self.requests.append(request)

        if request.url.path == self.LOGIN_PATH:
            return self._login()

        presented = self._presented_token(request)
        if presented is not None and not self.reject_all:
            with self._lock:
                valid = presented in self.valid_tokens
            if valid:
                return httpx.Response(200, json={"ok": True, "token": presented})

        if presented is None and self.barrier is not None:
            self.barrier.wait(timeout=5)
        return httpx.Response(401, json={"error": "unauthorized"})

    def _login(self) -> httpx.Response:
        with self._lock:
            self.login_calls += 1
            number = self.login_calls
        if self.login_delay:
            time.sleep(self.login_delay)
        if self.login_status != 200:
            return httpx.Response(self.login_status, text="invalid credentials")

        token = f"token-{number}"
        with self._lock:
            self.valid_tokens.add(token)
        if self.credential == "cookie":
            return httpx.Response(
                200,
                headers={"Set-Cookie": f"session={token}; Path=/; HttpOnly"},
                json={"ok": True},
            )
        return httpx.Response(200, json={"data": {"access_token": token}})

    def _presented_token(self, request: httpx.Request) -> Optional[str]:
        if self.credential == "cookie":
            for part in request.headers.get("cookie", "").split(";"):
                name, _, value = part.strip().partition("=")
                if name == "session":
                    return value
            return None
        auth = request.headers.get("authorization", "")
        if auth.startswith("Bearer "):
            return auth[len("Bearer "):]
        return None


@pytest.fixture
def fake_api() -> FakeApi:
    return FakeApi()


@pytest.fixture
def fake_api_factory():
    """Build a :class:`FakeApi` with custom options."""
    return FakeApi


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points the XDG directories at *tmp_path*, clears every ``REAUTH_*``
    variable and changes the working directory to *tmp_path*.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("reauth.config._is_xdg_platform", lambda: True)
    for var in ["REAUTH_CONFIG", "REAUTH_RATE_LIMIT_MS"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet PLAIN OutputManager for tests that ignore output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    from typer.testing import CliRunner

    return CliRunner()
