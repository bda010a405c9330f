"""CLI output with strict stdout/stderr discipline.

* **stdout** -- data only: response bodies, profile tables, JSON. This is
  what scripts pipe and parse.
* **stderr** -- diagnostics: status lines, warnings, errors, suggestions
  and (with ``--verbose``) the ``reauth`` log stream.
* **TTY detection** -- Rich formatting when stdout is a terminal, plain
  text when piped.
* **Colour control** -- ``NO_COLOR``, ``TERM=dumb`` and ``--no-color``.

:class:`OutputManager` holds the preferences and the two Rich consoles. It
is created in :func:`~reauth.app.main_callback` and installed with
:func:`set_output`; the module-level helpers (:func:`info`, :func:`error`,
...) delegate to it. :func:`configure_logging` routes the core's
:mod:`logging` records to stderr through :class:`rich.logging.RichHandler`.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    """Supported output formats. ``AUTO`` picks ``RICH`` on a colour TTY, else ``PLAIN``."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Routes every CLI message to the right stream in the right format.

    Args:
        format: Desired output format; ``AUTO`` resolves by TTY detection.
        no_color: Disable colour and Rich markup.
        quiet: Suppress informational messages on stderr.
        verbose: Show debug messages on stderr.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose

        if format == OutputFormat.AUTO:
            self._format = (
                OutputFormat.RICH if _is_tty() and not self._no_color else OutputFormat.PLAIN
            )
        else:
            self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=(self._format == OutputFormat.RICH),
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    @property
    def stderr_console(self) -> Console:
        """The diagnostics console, shared with the log handler."""
        return self._stderr

    # ------------------------------------------------------------------ #
    # Data output (stdout)
    # ------------------------------------------------------------------ #

    def format_response(self, data: Any, content_type: str = "application/json") -> None:
        """Render a response body or a data structure to stdout.

        Args:
            data: A dict, list or string.
            content_type: Used by the Rich renderer to pick highlighting.
        """
        if self._format == OutputFormat.JSON:
            self._print_json(data)
        elif self._format == OutputFormat.PLAIN:
            self._print_plain(data)
        else:
            self._print_rich(data, content_type)

    def print_data(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print rows as a Rich table, a JSON array of objects, or TSV."""
        if self._format == OutputFormat.JSON:
            records = [dict(zip(headers, row)) for row in rows]
            self.print_data(json.dumps(records, indent=2, ensure_ascii=False))
        elif self._format == OutputFormat.PLAIN:
            self.print_data("\t".join(headers))
            for row in rows:
                self.print_data("\t".join(row))
        else:
            table = Table(title=title, show_header=True, header_style="bold cyan")
            for h in headers:
                table.add_column(h)
            for row in rows:
                table.add_row(*row)
            self._stdout.print(table)

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        """Informational message. Suppressed by ``--quiet``."""
        if not self._quiet:
            self._diag(message, message)

    def success(self, message: str) -> None:
        """Green success message. Suppressed by ``--quiet``."""
        if not self._quiet:
            self._diag(message, f"[green]{message}[/green]")

    def warning(self, message: str) -> None:
        """Yellow warning. Never suppressed."""
        self._diag(f"Warning: {message}", f"[yellow]Warning:[/yellow] {message}")

    def error(self, message: str) -> None:
        """Bold red error. Never suppressed."""
        self._diag(f"Error: {message}", f"[bold red]Error:[/bold red] {message}")

    def suggest(self, message: str) -> None:
        """Dimmed next-step hint. Suppressed by ``--quiet``."""
        if not self._quiet:
            formatted = f"→ {message}"
            self._diag(formatted, f"[dim]{formatted}[/dim]")

    def debug(self, message: str) -> None:
        """Debug message, only with ``--verbose``."""
        if self._verbose:
            self._diag(f"[debug] {message}", f"[dim]\\[debug] {message}[/dim]")

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _diag(self, plain: str, markup: str) -> None:
        if self._no_color:
            print(plain, file=sys.stderr, flush=True)
        else:
            self._stderr.print(markup)

    def _print_json(self, data: Any) -> None:
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except (json.JSONDecodeError, TypeError):
                self.print_data(data)
                return
        self.print_data(json.dumps(data, indent=2, ensure_ascii=False, default=str))

    def _print_plain(self, data: Any) -> None:
        if isinstance(data, dict):
            for key, value in data.items():
                self.print_data(f"{key}\t{value}")
        elif isinstance(data, list):
            for item in data:
                if isinstance(item, dict):
                    self.print_data("\t".join(str(v) for v in item.values()))
                else:
                    self.print_data(str(item))
        else:
            self.print_data(str(data))

    def _print_rich(self, data: Any, content_type: str) -> None:
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except (json.JSONDecodeError, TypeError):
                lexer = "html" if "html" in content_type else "text"
                if lexer == "text":
                    self._stdout.print(data, markup=False)
                else:
                    self._stdout.print(Syntax(data, lexer, word_wrap=True))
                return
        if isinstance(data, (dict, list)):
            json_str = json.dumps(data, indent=2, ensure_ascii=False, default=str)
            self._stdout.print(Syntax(json_str, "json", theme="monokai", word_wrap=True))
        else:
            self._stdout.print(str(data), markup=False)


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set (any value) or ``TERM=dumb``."""
    if os.environ.get("NO_COLOR") is not None:
        return True
    return os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Logging
# ------------------------------------------------------------------ #

_LOG_HANDLER_NAME = "reauth-cli"


def configure_logging(output: OutputManager) -> None:
    """Send ``reauth`` log records to stderr according to *output*'s verbosity.

    ``--verbose`` shows everything from DEBUG up, the default shows
    warnings and errors, and ``--quiet`` shows errors only. Calling this
    again replaces the previously installed handler.
    """
    if output.is_verbose:
        level = logging.DEBUG
    elif output.is_quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING

    root = logging.getLogger("reauth")
    for existing in list(root.handlers):
        if existing.get_name() == _LOG_HANDLER_NAME:
            root.removeHandler(existing)

    handler = RichHandler(
        console=output.stderr_console,
        show_path=output.is_verbose,
        markup=False,
        rich_tracebacks=output.is_verbose,
    )
    handler.set_name(_LOG_HANDLER_NAME)
    handler.setLevel(level)
    root.addHandler(handler)
    root.setLevel(min(level, root.level) if root.level != logging.NOTSET else level)


# ------------------------------------------------------------------ #
# Global output instance (set during app startup)
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global :class:`OutputManager`, creating a default one lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Drop the global manager. Used by tests for a clean state."""
    global _output
    _output = None


# ------------------------------------------------------------------ #
# Convenience functions that use the global instance
# ------------------------------------------------------------------ #


def format_response(data: Any, content_type: str = "application/json") -> None:
    get_output().format_response(data, content_type)


def print_data(text: str) -> None:
    get_output().print_data(text)


def print_table(
    headers: list[str],
    rows: list[list[str]],
    title: Optional[str] = None,
) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def error(message: str) -> None:
    get_output().error(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def debug(message: str) -> None:
    get_output().debug(message)
