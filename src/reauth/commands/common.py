"""Helpers shared by the command modules."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import httpx
import typer

from reauth.exceptions import ReauthError
from reauth.models import AuthProfile, ReauthSettings
from reauth.output import error, suggest


def ctx_value(ctx: typer.Context, key: str, default: Any = None) -> Any:
    """Read a root-callback option stored on ``ctx.obj``."""
    obj = ctx.obj if isinstance(ctx.obj, dict) else {}
    return obj.get(key, default)


def fail(exc: ReauthError) -> typer.Exit:
    """Report *exc* and return the matching :class:`typer.Exit` to raise."""
    error(str(exc))
    return typer.Exit(code=exc.exit_code)


def load_cli_settings(ctx: typer.Context) -> tuple[ReauthSettings, Path]:
    """Resolve settings from ``--config``, ``REAUTH_CONFIG`` or the default path."""
    from reauth.config import resolve_settings

    try:
        return resolve_settings(ctx_value(ctx, "config_path"))
    except ReauthError as exc:
        raise fail(exc) from None


def save_cli_settings(settings: ReauthSettings, path: Path) -> None:
    from reauth.config import save_settings

    save_settings(settings, path)


def require_profile(settings: ReauthSettings, pattern: str) -> AuthProfile:
    """Return the profile with exactly *pattern* or exit with code 3."""
    from reauth.exceptions import NoMatchingProfile

    profile = settings.get_profile(pattern)
    if profile is None:
        exc = NoMatchingProfile(f"No profile with pattern '{pattern}'")
        error(str(exc))
        suggest("List profiles: reauth profiles list")
        raise typer.Exit(code=exc.exit_code)
    return profile


def cli_transport(ctx: typer.Context) -> Optional[httpx.BaseTransport]:
    """Inner transport for command-built clients; tests pass one via ``obj``."""
    return ctx_value(ctx, "transport")
