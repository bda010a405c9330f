"""Exception hierarchy for reauth.

All exceptions inherit from :class:`ReauthError`, which carries an
``exit_code`` (see :mod:`reauth.exit_codes`) for the command line and an
``outcome`` label for the orchestrator's statistics.

The orchestration taxonomy (everything except :class:`ConfigError` and
:class:`InvalidUsageError`) is raised *inside* a re-authentication cycle
and caught at the orchestrator's public boundary: the cycle is logged and
abandoned, and the original unauthorized response stands. None of these
ever escape :class:`~reauth.auth.orchestrator.AuthOrchestrator`.

Subclass hierarchy::

    ReauthError (exit 1)
    +-- InvalidUsageError       (exit 2)
    +-- ConfigError             (exit 1)
    +-- NoMatchingProfile       (exit 3)
    +-- RateLimited             (exit 4)
    +-- LoginTransportFailure   (exit 5)
    +-- LoginStatusFailure      (exit 5)
    +-- ExtractionFailure       (exit 6)
    +-- RetryTransportFailure   (exit 7)
"""

from __future__ import annotations

from reauth.exit_codes import (
    EXIT_CONNECTION_ERROR,
    EXIT_EXTRACTION_FAILURE,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_LOGIN_FAILURE,
    EXIT_NO_PROFILE,
    EXIT_RATE_LIMITED,
)


class ReauthError(Exception):
    """Base exception for all reauth errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE
    outcome: str = "error"

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(ReauthError):
    """Raised for invalid arguments, e.g. a selection range outside the request bytes."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(ReauthError):
    """Raised for configuration problems (invalid settings file, unresolvable secret source)."""

    exit_code = EXIT_GENERIC_FAILURE


class NoMatchingProfile(ReauthError):
    """Raised when no enabled profile governs the request's host and path."""

    exit_code = EXIT_NO_PROFILE
    outcome = "no_profile"


class RateLimited(ReauthError):
    """Raised when a login for the target was attempted less than one interval ago.

    Args:
        target: The host whose login was refused.
        wait_ms: Milliseconds until the next attempt is permitted.
    """

    exit_code = EXIT_RATE_LIMITED
    outcome = "rate_limited"

    def __init__(self, target: str, wait_ms: int):
        super().__init__(f"Rate limited for host {target}, wait {wait_ms}ms")
        self.target = target
        self.wait_ms = wait_ms


class LoginTransportFailure(ReauthError):
    """Raised when the login request could not be built or sent."""

    exit_code = EXIT_LOGIN_FAILURE
    outcome = "login_transport_failed"


class LoginStatusFailure(ReauthError):
    """Raised when the login endpoint answered with a status outside ``[200, 300)``."""

    exit_code = EXIT_LOGIN_FAILURE
    outcome = "login_status_failed"

    def __init__(self, target: str, status_code: int):
        super().__init__(f"Login failed with status {status_code} for {target}")
        self.target = target
        self.status_code = status_code


class ExtractionFailure(ReauthError):
    """Raised when the login response carried no credential the extraction spec could find."""

    exit_code = EXIT_EXTRACTION_FAILURE
    outcome = "extraction_failed"


class RetryTransportFailure(ReauthError):
    """Raised when the retry of the original request failed at the transport level."""

    exit_code = EXIT_CONNECTION_ERROR
    outcome = "retry_failed"
