"""Inject command -- splice a profile's token into a raw request file.

The selection is a byte range ``[start, end)`` of the file, typically the
stale token an operator wants replaced. When no token is cached the
profile's login runs first. The modified request is written to stdout (or
back to the file with ``--in-place``).
"""

from __future__ import annotations

import sys
from pathlib import Path

import typer

from reauth.commands.common import cli_transport, fail, load_cli_settings, require_profile
from reauth.exceptions import ReauthError
from reauth.exit_codes import EXIT_INVALID_USAGE, EXIT_LOGIN_FAILURE
from reauth.output import error, info, success


def inject_command(
    ctx: typer.Context,
    request_file: Path = typer.Argument(help="File holding the raw request."),
    start: int = typer.Option(..., "--start", help="Selection start byte offset."),
    end: int = typer.Option(..., "--end", help="Selection end byte offset (exclusive)."),
    pattern: str = typer.Option(..., "--profile", help="Exact URL pattern of the profile."),
    url: str = typer.Option("", "--url", help="Request URL, recorded for reference."),
    in_place: bool = typer.Option(False, "--in-place", "-i", help="Rewrite the file."),
) -> None:
    """Replace a byte range of a raw request with a fresh token.

    Example::

        reauth inject request.txt --start 120 --end 180 --profile api.example.com
    """
    from reauth.client import ReauthClient
    from reauth.services import ManualInjectionService

    settings, _ = load_cli_settings(ctx)
    profile = require_profile(settings, pattern)

    try:
        request_bytes = request_file.read_bytes()
    except OSError as exc:
        error(f"Cannot read {request_file}: {exc}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    with ReauthClient(settings, transport=cli_transport(ctx)) as client:
        service = ManualInjectionService(settings, client.orchestrator)
        try:
            result = service.inject_token(request_bytes, start, end, profile, url)
        except ReauthError as exc:
            raise fail(exc) from None
        history = service.history()

    if result is None:
        error(f"Could not obtain a token for '{pattern}'.")
        raise typer.Exit(code=EXIT_LOGIN_FAILURE)

    record = history[0]
    info(f"Replaced {end - start} bytes with token {record.token_preview}")

    if in_place:
        request_file.write_bytes(result)
        success(f"Updated {request_file}")
    else:
        sys.stdout.buffer.write(result)
        sys.stdout.buffer.flush()
