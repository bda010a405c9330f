"""Login commands -- check a profile before relying on it.

``reauth login test`` performs the profile's login once, outside the rate
limiter and the cache, and reports whether a token could be extracted.
``reauth login extract`` runs only the extraction step, offline, against a
captured login response.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from reauth.commands.common import cli_transport, load_cli_settings, require_profile
from reauth.output import error, format_response, info, success, suggest


login_app = typer.Typer(no_args_is_help=True)


@login_app.command("test")
def login_test(
    ctx: typer.Context,
    pattern: str = typer.Argument(help="Exact URL pattern of the profile."),
) -> None:
    """Perform the profile's login once and report the outcome.

    Exits with code 5 when the login or the extraction fails.

    Example::

        reauth login test 'api.example.com/v1/**'
    """
    from reauth.client import ReauthClient
    from reauth.exit_codes import EXIT_LOGIN_FAILURE

    settings, _ = load_cli_settings(ctx)
    profile = require_profile(settings, pattern)

    with ReauthClient(settings, transport=cli_transport(ctx)) as client:
        verdict = client.orchestrator.test_login(profile)

    if verdict.startswith("Success"):
        success(verdict)
        return
    error(verdict)
    suggest("Re-run with --verbose to see the login request and response.")
    raise typer.Exit(code=EXIT_LOGIN_FAILURE)


@login_app.command("extract")
def login_extract(
    ctx: typer.Context,
    pattern: str = typer.Argument(help="Exact URL pattern of the profile."),
    response_file: Optional[Path] = typer.Option(
        None,
        "--response",
        "-r",
        help="Captured login response; defaults to the profile's stored one.",
    ),
) -> None:
    """Run the profile's extraction rules against a captured login response.

    Prints the token's provenance and value to stdout.

    Example::

        reauth login extract api.example.com --response login-response.txt
    """
    from reauth.auth.extractor import extract_token
    from reauth.exit_codes import EXIT_EXTRACTION_FAILURE, EXIT_INVALID_USAGE
    from reauth.rawhttp import parse_response

    settings, _ = load_cli_settings(ctx)
    profile = require_profile(settings, pattern)

    if response_file is not None:
        try:
            raw = response_file.read_text(encoding="utf-8")
        except OSError as exc:
            error(f"Cannot read {response_file}: {exc}")
            raise typer.Exit(code=EXIT_INVALID_USAGE) from None
    else:
        raw = profile.raw_response

    parsed = parse_response(raw)
    if parsed is None:
        error("No parsable login response; pass --response FILE.")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    info(f"HTTP {parsed.status_code} {parsed.reason}".rstrip())
    token = extract_token(parsed.to_httpx(), profile.extraction)
    if token is None:
        error("No token found in the login response.")
        raise typer.Exit(code=EXIT_EXTRACTION_FAILURE)

    format_response(
        {
            "source_kind": token.source_kind.value,
            "source_name": token.source_name,
            "value": token.value,
        }
    )
