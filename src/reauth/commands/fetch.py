"""Fetch command -- send one request with transparent re-authentication.

A quick way to exercise a profile end to end: a ``401`` from a configured
URL triggers the profile's login and the request is retried once with the
fresh token. The final response body goes to stdout, the status line to
stderr.
"""

from __future__ import annotations

from typing import Optional

import typer

from reauth.commands.common import cli_transport, load_cli_settings
from reauth.exit_codes import EXIT_CONNECTION_ERROR, EXIT_INVALID_USAGE
from reauth.output import debug, error, info


def fetch_command(
    ctx: typer.Context,
    method: str = typer.Argument(help="HTTP method, e.g. GET."),
    url: str = typer.Argument(help="Absolute URL."),
    header: Optional[list[str]] = typer.Option(
        None, "--header", "-H", help="Request header 'Name: value' (repeatable)."
    ),
    data: str = typer.Option("", "--data", "-d", help="Request body."),
    timeout: float = typer.Option(30.0, "--timeout", help="Timeout in seconds."),
    fail_on_error: bool = typer.Option(
        False, "--fail", help="Exit non-zero when the final status is 4xx/5xx."
    ),
    activity: bool = typer.Option(
        False, "--activity", help="Print the re-authentication activity afterwards."
    ),
) -> None:
    """Send METHOD URL through the re-authenticating client.

    Example::

        reauth fetch GET https://api.example.com/v1/users
        reauth fetch POST https://api.example.com/v1/users -d '{"name":"x"}' \\
            -H 'Content-Type: application/json'
    """
    import logging

    import httpx

    from reauth.activity import install_activity_log
    from reauth.client import ReauthClient
    from reauth.client.response import format_api_response
    from reauth.commands.profiles import parse_header_options

    settings, _ = load_cli_settings(ctx)
    try:
        headers = parse_header_options(header or [])
    except ValueError as exc:
        error(str(exc))
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    activity_log = install_activity_log() if activity else None
    try:
        with ReauthClient(settings, transport=cli_transport(ctx), timeout=timeout) as client:
            try:
                response = client.request(
                    method.upper(),
                    url,
                    headers=headers,
                    content=data.encode("utf-8") if data else None,
                )
            except httpx.InvalidURL as exc:
                error(f"Invalid URL: {exc}")
                raise typer.Exit(code=EXIT_INVALID_USAGE) from None
            except httpx.HTTPError as exc:
                error(f"Request failed: {exc}")
                raise typer.Exit(code=EXIT_CONNECTION_ERROR) from None
            debug(f"Re-authentication stats: {client.orchestrator.stats()}")
    finally:
        if activity_log is not None:
            logging.getLogger("reauth").removeHandler(activity_log)

    if activity_log is not None:
        for entry in activity_log.entries(logging.INFO):
            info(str(entry))
    format_api_response(response)
    if fail_on_error and response.is_error:
        raise typer.Exit(code=1)
