"""Tests for the output formatting system.

Covers:
- OutputFormat resolution (auto -> rich/plain based on TTY)
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline
- Quiet and verbose modes
- JSON, plain and rich rendering of data and tables
- Routing of ``reauth`` log records to stderr
- Global instance management
"""

from __future__ import annotations

import json
import logging

import pytest

from reauth.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    configure_logging,
    get_output,
    reset_output,
    set_output,
)
from reauth import output as output_module


# ------------------------------------------------------------------ #
# Fixtures
# ------------------------------------------------------------------ #


@pytest.fixture()
def non_tty(monkeypatch):
    monkeypatch.setattr("reauth.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    monkeypatch.setattr("reauth.output._is_tty", lambda: True)


@pytest.fixture()
def clean_env(monkeypatch):
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.setenv("TERM", "xterm-256color")


# ------------------------------------------------------------------ #
# Format resolution and colour
# ------------------------------------------------------------------ #


class TestOutputFormatResolution:
    def test_auto_resolves_to_plain_when_not_tty(self, non_tty):
        assert OutputManager().format == OutputFormat.PLAIN

    def test_auto_resolves_to_rich_when_tty(self, tty, clean_env):
        assert OutputManager().format == OutputFormat.RICH

    def test_auto_plain_when_tty_but_no_color(self, tty, clean_env):
        assert OutputManager(no_color=True).format == OutputFormat.PLAIN

    def test_explicit_json_stays_json(self, tty):
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON


class TestColorDisabling:
    def test_no_color_env_any_value(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_normal_term(self, clean_env):
        assert _should_disable_color() is False


# ------------------------------------------------------------------ #
# Streams and verbosity
# ------------------------------------------------------------------ #


class TestStdoutStderrDiscipline:
    def test_print_data_goes_to_stdout(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).print_data("hello")
        captured = capfd.readouterr()
        assert captured.out == "hello\n"
        assert captured.err == ""

    @pytest.mark.parametrize("method", ["info", "success", "warning", "error", "suggest"])
    def test_diagnostics_go_to_stderr(self, capfd, non_tty, method):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        getattr(mgr, method)("message text")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert "message text" in captured.err

    def test_error_prefix(self, capfd, non_tty):
        OutputManager(no_color=True).error("broken")
        assert capfd.readouterr().err == "Error: broken\n"


class TestQuietAndVerbose:
    def test_quiet_suppresses_info_and_suggest(self, capfd, non_tty):
        mgr = OutputManager(no_color=True, quiet=True)
        mgr.info("i")
        mgr.success("s")
        mgr.suggest("g")
        assert capfd.readouterr().err == ""

    def test_quiet_keeps_errors_and_warnings(self, capfd, non_tty):
        mgr = OutputManager(no_color=True, quiet=True)
        mgr.warning("w")
        mgr.error("e")
        err = capfd.readouterr().err
        assert "Warning: w" in err
        assert "Error: e" in err

    def test_debug_only_when_verbose(self, capfd, non_tty):
        OutputManager(no_color=True).debug("hidden")
        OutputManager(no_color=True, verbose=True).debug("shown")
        err = capfd.readouterr().err
        assert "hidden" not in err
        assert "[debug] shown" in err


# ------------------------------------------------------------------ #
# Rendering
# ------------------------------------------------------------------ #


class TestJsonFormat:
    def test_dict(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).format_response({"a": 1})
        assert json.loads(capfd.readouterr().out) == {"a": 1}

    def test_json_string_is_reparsed(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).format_response('{"b": [1, 2]}')
        out = capfd.readouterr().out
        assert json.loads(out) == {"b": [1, 2]}
        assert "\n  " in out

    def test_plain_string(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).format_response("not json")
        assert capfd.readouterr().out == "not json\n"

    def test_table_as_records(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.JSON)
        mgr.print_table(["Pattern", "Enabled"], [["api.example.com", "yes"]])
        assert json.loads(capfd.readouterr().out) == [
            {"Pattern": "api.example.com", "Enabled": "yes"}
        ]


class TestPlainFormat:
    def test_dict_as_key_value(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN).format_response({"a": 1, "b": "x"})
        assert capfd.readouterr().out == "a\t1\nb\tx\n"

    def test_list_of_dicts(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN).format_response([{"a": 1, "b": 2}, "z"])
        assert capfd.readouterr().out == "1\t2\nz\n"

    def test_table_as_tsv(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN).print_table(["A", "B"], [["1", "2"]])
        assert capfd.readouterr().out == "A\tB\n1\t2\n"


class TestRichFormat:
    def test_dict_rendered(self, capfd, non_tty):
        OutputManager(format=OutputFormat.RICH, no_color=True).format_response({"key": "v"})
        out = capfd.readouterr().out
        assert '"key"' in out

    def test_table_rendered(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.RICH, no_color=True)
        mgr.print_table(["Pattern"], [["api.example.com"]], title="Profiles")
        out = capfd.readouterr().out
        assert "Profiles" in out
        assert "api.example.com" in out

    def test_plain_text(self, capfd, non_tty):
        OutputManager(format=OutputFormat.RICH, no_color=True).format_response("hello world")
        assert "hello world" in capfd.readouterr().out


# ------------------------------------------------------------------ #
# Logging
# ------------------------------------------------------------------ #


def _cli_handlers():
    return [h for h in logging.getLogger("reauth").handlers if h.get_name() == "reauth-cli"]


class TestConfigureLogging:
    @pytest.mark.parametrize(
        "kwargs, level",
        [({}, logging.WARNING), ({"quiet": True}, logging.ERROR), ({"verbose": True}, logging.DEBUG)],
    )
    def test_level_follows_flags(self, non_tty, kwargs, level):
        configure_logging(OutputManager(no_color=True, **kwargs))
        handlers = _cli_handlers()
        assert len(handlers) == 1
        assert handlers[0].level == level

    def test_reconfiguring_replaces_handler(self, non_tty):
        configure_logging(OutputManager(no_color=True))
        configure_logging(OutputManager(no_color=True, verbose=True))
        assert len(_cli_handlers()) == 1

    def test_warnings_reach_stderr(self, capfd, non_tty):
        configure_logging(OutputManager(no_color=True))
        logging.getLogger("reauth.auth.orchestrator").warning("Rate limited for host h")
        logging.getLogger("reauth.auth.orchestrator").info("not shown")
        err = capfd.readouterr().err
        assert "Rate limited for host h" in err
        assert "not shown" not in err


# ------------------------------------------------------------------ #
# Global instance
# ------------------------------------------------------------------ #


class TestGlobalInstance:
    def test_lazy_default(self, non_tty):
        reset_output()
        assert isinstance(get_output(), OutputManager)

    def test_set_and_reset(self, non_tty):
        mgr = OutputManager(format=OutputFormat.JSON)
        set_output(mgr)
        assert get_output() is mgr
        reset_output()
        assert get_output() is not mgr

    def test_convenience_functions_delegate(self, capfd, non_tty):
        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True))
        output_module.print_data("data")
        output_module.info("diag")
        captured = capfd.readouterr()
        assert captured.out == "data\n"
        assert "diag" in captured.err
