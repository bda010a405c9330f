"""Config commands -- view and modify global settings.

Provides the ``reauth config`` sub-command group for the settings that are
not per-profile: the global ``enabled`` switch and the minimum interval
between logins to the same host.
"""

from __future__ import annotations

import typer
from pydantic import ValidationError

from reauth.commands.common import ctx_value, load_cli_settings, save_cli_settings
from reauth.models import ReauthSettings
from reauth.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)

# Profiles are managed by ``reauth profiles``.
_SETTABLE_KEYS = ("enabled", "rate_limit_interval_ms")


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Show the settings file location and global settings.

    Example::

        reauth config show
        reauth config show --json
    """
    settings, path = load_cli_settings(ctx)
    info(f"Settings file: {path}")
    data = settings.model_dump(mode="json", exclude={"profiles"})
    data["profiles"] = len(settings.profiles)
    format_response(data)


@config_app.command("set")
def config_set(
    ctx: typer.Context,
    key: str = typer.Argument(help=f"One of: {', '.join(_SETTABLE_KEYS)}."),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a global setting.

    The value is validated against :class:`~reauth.models.ReauthSettings`
    before saving.

    Example::

        reauth config set rate_limit_interval_ms 10000
        reauth config set enabled false
    """
    if key not in _SETTABLE_KEYS:
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    settings, path = load_cli_settings(ctx)
    data = settings.model_dump(mode="json")
    data[key] = value

    try:
        updated = ReauthSettings.model_validate(data)
    except ValidationError as exc:
        error(f"Invalid value for {key}: {exc.errors()[0]['msg']}")
        raise typer.Exit(code=2) from None

    save_cli_settings(updated, path)
    success(f"Set {key} = {getattr(updated, key)}")


@config_app.command("reset")
def config_reset(ctx: typer.Context) -> None:
    """Reset global settings to defaults. Profiles are kept.

    Asks for confirmation unless ``--force`` is active.
    """
    if not ctx_value(ctx, "force", False):
        if not typer.confirm("Reset global settings to defaults?"):
            info("Cancelled.")
            raise typer.Exit()

    settings, path = load_cli_settings(ctx)
    save_cli_settings(ReauthSettings(profiles=settings.profiles), path)
    success("Global settings reset to defaults.")
