"""Typer application and CLI entry point for reauth.

This module builds the top-level Typer application and registers the
built-in sub-commands (``profiles``, ``config``, ``login``, ``match``,
``inject``, ``fetch``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs a SIGINT handler and invokes the app;
:class:`~reauth.exceptions.ReauthError` ends the process with the error's
exit code, and any other exception is written to a crash log under the
data directory.

See Also:
    :mod:`reauth.config`: Settings file resolution.
    :mod:`reauth.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from reauth import __version__
from reauth.commands.config import config_app
from reauth.commands.fetch import fetch_command
from reauth.commands.inject import inject_command
from reauth.commands.login import login_app
from reauth.commands.match import match_command
from reauth.commands.profiles import profiles_app
from reauth.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="reauth",
    help="Transparent re-authentication for HTTP traffic.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.add_typer(profiles_app, name="profiles", help="Manage re-authentication profiles.")
app.add_typer(config_app, name="config", help="Global settings.")
app.add_typer(login_app, name="login", help="Test profile logins and extraction.")
app.command("match")(match_command)
app.command("inject")(inject_command)
app.command("fetch")(fetch_command)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"reauth {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    config_path: Optional[str] = typer.Option(
        None, "--config", "-c", help="Settings file (overrides REAUTH_CONFIG)."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show debug output and the reauth log."
    ),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmations."),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~reauth.output.OutputManager` and the
    ``reauth`` log handler from the flags, and stores shared options on
    ``ctx.obj`` for the sub-commands. Keys already present on ``ctx.obj``
    (such as an injected ``transport``) are preserved.
    """
    from reauth.output import OutputFormat, OutputManager, configure_logging, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    output = OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    set_output(output)
    configure_logging(output)

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["force"] = force
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write the current traceback to the data directory and return its path."""
    from reauth.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``reauth`` console script.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from reauth.exceptions import ReauthError
        from reauth.output import error

        if isinstance(exc, ReauthError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
