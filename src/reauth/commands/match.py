"""Match command -- show which profile governs a URL and why."""

from __future__ import annotations

import typer

from reauth.commands.common import load_cli_settings
from reauth.exit_codes import EXIT_INVALID_USAGE, EXIT_NO_PROFILE
from reauth.output import error, get_output, info


def match_command(
    ctx: typer.Context,
    url: str = typer.Argument(help="Absolute URL, or host/path without a scheme."),
) -> None:
    """List every enabled profile matching URL, best first, with its score.

    Exits with code 3 when nothing matches.

    Example::

        reauth match https://api.example.com/v1/users
    """
    import httpx

    from reauth.matching import rank_matches

    settings, _ = load_cli_settings(ctx)
    target = url if "://" in url else f"https://{url}"
    try:
        parsed = httpx.URL(target)
    except httpx.InvalidURL as exc:
        error(f"Invalid URL: {exc}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    ranked = rank_matches(settings.profiles, parsed.host, parsed.path)
    if not ranked:
        info(f"No enabled profile matches {parsed.host}{parsed.path}")
        raise typer.Exit(code=EXIT_NO_PROFILE)

    rows = [
        [profile.url_pattern, str(score), "*" if index == 0 else ""]
        for index, (profile, score) in enumerate(ranked)
    ]
    get_output().print_table(["Pattern", "Score", "Selected"], rows, title="Matches")
