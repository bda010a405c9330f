"""Splice a token into raw request bytes on demand.

An operator editing a captured request selects a byte range (say, an old
bearer token) and a profile; :meth:`ManualInjectionService.inject_token`
replaces the range with the profile's current token, logging in first when
no token is cached. Every splice is kept as an
:class:`~reauth.models.InjectionRecord`, newest first.

The service shares the orchestrator's cache, lock and rate limiter, so a
manual login also serves proactive injection and vice versa.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from reauth.auth.login import login_target
from reauth.auth.orchestrator import AuthOrchestrator
from reauth.exceptions import InvalidUsageError
from reauth.models import AuthProfile, ExtractedToken, InjectionRecord, ReauthSettings

logger = logging.getLogger(__name__)

InjectionListener = Callable[[InjectionRecord], None]


@dataclass(frozen=True)
class ProfileStatus:
    """An enabled profile and whether a token is ready for it."""

    profile: AuthProfile
    has_cached_token: bool

    @property
    def display_name(self) -> str:
        suffix = "[cached]" if self.has_cached_token else "[will login]"
        return f"{self.profile.url_pattern} {suffix}"


class ManualInjectionService:
    """Manual token injection on top of an :class:`AuthOrchestrator`.

    Args:
        settings: Source of the profile list.
        orchestrator: Provides the token cache and on-demand login.
    """

    def __init__(self, settings: ReauthSettings, orchestrator: AuthOrchestrator) -> None:
        self._settings = settings
        self._orchestrator = orchestrator
        self._history: list[InjectionRecord] = []
        self._listeners: list[InjectionListener] = []
        self._lock = threading.Lock()

    # --- Profiles ---

    def cached_token_for(self, profile: AuthProfile) -> Optional[ExtractedToken]:
        return self._orchestrator.cached_token(login_target(profile))

    def available_profiles(self) -> list[ProfileStatus]:
        """Every enabled profile, in configured order, with its cache status."""
        return [
            ProfileStatus(profile, self.cached_token_for(profile) is not None)
            for profile in self._settings.profiles
            if profile.enabled
        ]

    def trigger_login(self, profile: AuthProfile) -> Optional[ExtractedToken]:
        """Log in for *profile* now and cache the token."""
        logger.info("Triggering manual login for: %s", profile.url_pattern)
        token = self._orchestrator.login_and_get_token(profile)
        if token is not None:
            logger.info("Token obtained and cached for: %s", profile.url_pattern)
        return token

    # --- Injection ---

    def inject_token(
        self,
        request_bytes: bytes,
        start: int,
        end: int,
        profile: AuthProfile,
        request_url: str = "",
    ) -> Optional[bytes]:
        """Replace ``request_bytes[start:end]`` with the profile's token.

        Args:
            request_bytes: The raw request being edited.
            start: Selection start offset (inclusive).
            end: Selection end offset (exclusive). ``start == end`` inserts.
            profile: Whose token to use.
            request_url: Recorded in the history for reference.

        Returns:
            The modified bytes, or ``None`` when no token could be obtained.

        Raises:
            InvalidUsageError: If the range does not lie within *request_bytes*.
        """
        if not 0 <= start <= end <= len(request_bytes):
            raise InvalidUsageError(
                f"Selection [{start}, {end}) is outside the request ({len(request_bytes)} bytes)"
            )

        token = self.cached_token_for(profile)
        if token is None:
            token = self.trigger_login(profile)
            if token is None:
                logger.error("Failed to obtain token for injection: %s", profile.url_pattern)
                return None

        token_bytes = token.value.encode("utf-8")
        result = request_bytes[:start] + token_bytes + request_bytes[end:]

        original_text = request_bytes[start:end].decode("utf-8", errors="replace")
        record = InjectionRecord(
            request_url=request_url,
            selection_start=start,
            selection_end=end,
            url_pattern=profile.url_pattern,
            original_text=original_text,
            injected_token=token.value,
            request_before=request_bytes.decode("utf-8", errors="replace"),
            request_after=result.decode("utf-8", errors="replace"),
        )
        with self._lock:
            self._history.insert(0, record)
            listeners = list(self._listeners)

        logger.info(
            "Token injected: replaced %d bytes with %d byte token",
            end - start, len(token_bytes),
        )
        for listener in listeners:
            try:
                listener(record)
            except Exception:
                logger.exception("Error notifying injection listener")
        return result

    # --- History ---

    def history(self) -> list[InjectionRecord]:
        """Injection records, newest first."""
        with self._lock:
            return list(self._history)

    def clear_history(self) -> None:
        with self._lock:
            self._history.clear()
        logger.info("Injection history cleared")

    def add_listener(self, listener: InjectionListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: InjectionListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)
