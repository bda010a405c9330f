"""Canonical Pydantic models shared across all reauth modules.

This is the single source of truth for data shapes in the project. The
models fall into two groups:

**Configuration models** -- created and edited by the configuration layer,
persisted by :mod:`reauth.config`, and read-only to the orchestration core
during a request cycle:
    :class:`SourceKind`, :class:`TargetKind`, :class:`ExtractionSpec`,
    :class:`InjectionSpec`, :class:`AuthProfile` and :class:`ReauthSettings`.

**Runtime values** -- produced while handling traffic:
    :class:`ExtractedToken` and :class:`InjectionRecord`.

``SourceKind`` and ``TargetKind`` are closed enums; every consumer
(extractor, injector) branches over all of their members.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from reauth.matching import find_best_match, same_url

TOKEN_PREVIEW_LENGTH = 20
"""Number of token characters shown in logs before the value is elided."""


# --- Extraction / injection specs ---


class SourceKind(str, enum.Enum):
    """Where in a login response a credential was found."""

    HEADER = "header"
    COOKIE = "cookie"
    JSON_FIELD = "json_field"


class TargetKind(str, enum.Enum):
    """Where in an outgoing request a credential is placed."""

    HEADER = "header"
    COOKIE = "cookie"
    AUTHORIZATION_BEARER = "authorization_bearer"


class ExtractionSpec(BaseModel):
    """How to locate the credential in a login response.

    With ``auto_detect`` set (the default) the fixed priority heuristics of
    :func:`~reauth.auth.extractor.extract_token` are used and every other
    field is ignored. Otherwise ``source`` and ``name`` select exactly one
    header, ``Set-Cookie`` cookie, or dot-separated JSON path.

    ``example_value`` is a value the operator already confirmed once. It is
    used verbatim, in manual mode only, when the path-based lookup comes up
    empty.

    Example::

        ExtractionSpec(auto_detect=False, source=SourceKind.JSON_FIELD,
                       name="data.access_token")
    """

    auto_detect: bool = True
    source: SourceKind = SourceKind.JSON_FIELD
    name: str = Field(
        default="", description="Header name, cookie name, or JSON dot path"
    )
    example_value: Optional[str] = Field(
        default=None, description="Previously captured token used as last resort"
    )


class InjectionSpec(BaseModel):
    """How to place a credential into an outgoing request.

    With ``auto_detect`` set (the default) the injector mirrors the token's
    provenance. Otherwise ``target`` and ``name`` are used; ``name`` is
    ignored for :attr:`TargetKind.AUTHORIZATION_BEARER`.
    """

    auto_detect: bool = True
    target: TargetKind = TargetKind.AUTHORIZATION_BEARER
    name: str = Field(default="", description="Header or cookie name")


# --- Profiles and settings ---


class AuthProfile(BaseModel):
    """Per-target configuration binding a URL pattern to a login procedure.

    The identity of a profile is its ``url_pattern`` (``host-glob[/path-glob]``,
    see :mod:`reauth.matching`). Older settings files stored the same value
    under ``host_pattern``; it is accepted on load and written back as
    ``url_pattern``.

    The login request is either replayed from ``raw_request`` (a captured
    HTTP request template) or synthesised from ``login_method``,
    ``login_url``, ``content_type``, ``login_body`` and ``extra_headers``.
    The literal placeholders ``${username}`` and ``${password}`` in the body
    are replaced by ``username`` and ``password``, which may themselves be
    ``env:VAR`` or ``file:/path`` source descriptors.
    """

    model_config = ConfigDict(populate_by_name=True)

    url_pattern: str = Field(
        validation_alias=AliasChoices("url_pattern", "host_pattern"),
        description="host-glob[/path-glob], e.g. '*.example.com/api/**'",
    )
    enabled: bool = True
    login_url: str = ""
    login_method: str = "POST"
    content_type: str = "application/json"
    login_body: str = Field(
        default="", description="Body template with ${username}/${password}"
    )
    username: str = ""
    password: str = ""
    extra_headers: dict[str, str] = Field(default_factory=dict)
    extraction: ExtractionSpec = Field(default_factory=ExtractionSpec)
    injection: InjectionSpec = Field(default_factory=InjectionSpec)
    raw_request: str = Field(
        default="", description="Captured login request replayed verbatim"
    )
    raw_response: str = Field(
        default="", description="Captured login response for offline checks"
    )

    def __str__(self) -> str:
        return f"{self.url_pattern} -> {self.login_url or '(raw request)'}"


class ReauthSettings(BaseModel):
    """Process-wide configuration handed to the orchestrator at construction.

    The object is shared by reference: editing it (toggling ``enabled``,
    adding profiles) takes effect for the next request cycle. The rate-limit
    interval is mirrored into the live limiter by
    :meth:`~reauth.auth.orchestrator.AuthOrchestrator.set_rate_limit_interval`.
    """

    enabled: bool = True
    rate_limit_interval_ms: int = Field(
        default=5000, ge=0, description="Minimum gap between logins per host"
    )
    profiles: list[AuthProfile] = Field(default_factory=list)

    def find_profile(self, host: str, path: Optional[str]) -> Optional[AuthProfile]:
        """Return the enabled profile governing *host* and *path*, if any."""
        return find_best_match(self.profiles, host, path)

    def get_profile(self, url_pattern: str) -> Optional[AuthProfile]:
        """Return the profile whose pattern is exactly *url_pattern*."""
        for profile in self.profiles:
            if profile.url_pattern == url_pattern:
                return profile
        return None

    def add_profile(self, profile: AuthProfile) -> None:
        """Append *profile*, replacing any profile with the same pattern in place."""
        for i, existing in enumerate(self.profiles):
            if existing.url_pattern == profile.url_pattern:
                self.profiles[i] = profile
                return
        self.profiles.append(profile)

    def remove_profile(self, url_pattern: str) -> bool:
        """Remove the profile with *url_pattern*. Returns ``False`` if absent."""
        before = len(self.profiles)
        self.profiles = [p for p in self.profiles if p.url_pattern != url_pattern]
        return len(self.profiles) != before

    def is_login_url(self, url: str) -> bool:
        """Whether *url* is the configured login URL of any profile."""
        return any(
            p.login_url and same_url(p.login_url, url) for p in self.profiles
        )


# --- Runtime values ---


class ExtractedToken(BaseModel):
    """A credential pulled out of a login response, with its provenance.

    Immutable: produced once per successful login, cached per target host
    and consumed by the injector.

    Attributes:
        value: The raw credential text (``Bearer`` prefix already stripped).
        source_kind: Where it was found.
        source_name: Header name, cookie name or JSON path it came from.
    """

    model_config = ConfigDict(frozen=True)

    value: str
    source_kind: SourceKind
    source_name: str

    def preview(self, length: int = TOKEN_PREVIEW_LENGTH) -> str:
        """Return the value truncated to *length* characters for display."""
        if len(self.value) > length:
            return self.value[:length] + "..."
        return self.value

    def __str__(self) -> str:
        return f"Token from {self.source_kind.value} ({self.source_name}): {self.preview()}"


class InjectionRecord(BaseModel):
    """One manual splice of a token into raw request bytes.

    Kept newest-first by
    :class:`~reauth.services.manual_injection.ManualInjectionService` so
    callers can show a before/after diff.
    """

    timestamp: datetime = Field(default_factory=datetime.now)
    request_url: str = ""
    selection_start: int
    selection_end: int
    url_pattern: str
    original_text: str
    injected_token: str
    request_before: str
    request_after: str

    @property
    def token_preview(self) -> str:
        """The injected token, shortened to 30 characters for tables."""
        if len(self.injected_token) <= 30:
            return self.injected_token
        return self.injected_token[:27] + "..."
