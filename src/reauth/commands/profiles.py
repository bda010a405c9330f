"""Profile commands -- manage the URL patterns reauth recovers.

Provides the ``reauth profiles`` sub-command group. A profile binds a
``host-glob[/path-glob]`` pattern to a login procedure and to the rules
for extracting and re-injecting the credential.

Typical workflow::

    reauth profiles add 'api.example.com/v1/**' \\
        --login-url https://api.example.com/auth/login \\
        --body '{"user":"${username}","pass":"${password}"}' \\
        --username alice --password env:API_PASSWORD
    reauth login test 'api.example.com/v1/**'
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from reauth.commands.common import (
    load_cli_settings,
    require_profile,
    save_cli_settings,
)
from reauth.models import (
    AuthProfile,
    ExtractionSpec,
    InjectionSpec,
    SourceKind,
    TargetKind,
)
from reauth.output import error, format_response, get_output, info, success, suggest


profiles_app = typer.Typer(no_args_is_help=True)

_SOURCE_PREFIXES = {
    "header": SourceKind.HEADER,
    "cookie": SourceKind.COOKIE,
    "json": SourceKind.JSON_FIELD,
}

_TARGET_PREFIXES = {
    "header": TargetKind.HEADER,
    "cookie": TargetKind.COOKIE,
}


def parse_extraction(text: str, example_value: Optional[str] = None) -> ExtractionSpec:
    """Parse ``auto`` or ``header:NAME`` / ``cookie:NAME`` / ``json:PATH``.

    Raises:
        ValueError: For any other form.
    """
    if text == "auto":
        return ExtractionSpec(example_value=example_value)
    kind, sep, name = text.partition(":")
    if not sep or kind not in _SOURCE_PREFIXES or not name:
        raise ValueError(
            f"Invalid extraction '{text}': use auto, header:NAME, cookie:NAME or json:PATH"
        )
    return ExtractionSpec(
        auto_detect=False,
        source=_SOURCE_PREFIXES[kind],
        name=name,
        example_value=example_value,
    )


def parse_injection(text: str) -> InjectionSpec:
    """Parse ``auto``, ``bearer``, ``header:NAME`` or ``cookie:NAME``.

    Raises:
        ValueError: For any other form.
    """
    if text == "auto":
        return InjectionSpec()
    if text == "bearer":
        return InjectionSpec(auto_detect=False, target=TargetKind.AUTHORIZATION_BEARER)
    kind, sep, name = text.partition(":")
    if not sep or kind not in _TARGET_PREFIXES or not name:
        raise ValueError(
            f"Invalid injection '{text}': use auto, bearer, header:NAME or cookie:NAME"
        )
    return InjectionSpec(auto_detect=False, target=_TARGET_PREFIXES[kind], name=name)


def parse_header_options(values: list[str]) -> dict[str, str]:
    """Turn repeated ``'Name: value'`` options into a dict."""
    headers: dict[str, str] = {}
    for item in values:
        name, sep, value = item.partition(":")
        if not sep or not name.strip():
            raise ValueError(f"Invalid header '{item}': expected 'Name: value'")
        headers[name.strip()] = value.strip()
    return headers


def _describe_extraction(spec: ExtractionSpec) -> str:
    if spec.auto_detect:
        return "auto"
    return f"{spec.source.value}:{spec.name}"


def _describe_injection(spec: InjectionSpec) -> str:
    if spec.auto_detect:
        return "auto"
    if spec.target is TargetKind.AUTHORIZATION_BEARER:
        return "bearer"
    return f"{spec.target.value}:{spec.name}"


def _masked(profile: AuthProfile) -> dict:
    data = profile.model_dump(mode="json")
    password = data.get("password") or ""
    if password and not password.startswith(("env:", "file:")):
        data["password"] = "********"
    return data


@profiles_app.command("list")
def profiles_list(ctx: typer.Context) -> None:
    """List configured profiles in match order.

    Example::

        reauth profiles list
        reauth --json profiles list
    """
    settings, path = load_cli_settings(ctx)
    if not settings.profiles:
        info(f"No profiles configured in {path}.")
        suggest("Add one: reauth profiles add PATTERN --login-url URL")
        return

    rows = [
        [
            p.url_pattern,
            "yes" if p.enabled else "no",
            p.login_url or "(raw request)",
            _describe_extraction(p.extraction),
            _describe_injection(p.injection),
        ]
        for p in settings.profiles
    ]
    get_output().print_table(
        ["Pattern", "Enabled", "Login", "Extract", "Inject"],
        rows,
        title="Profiles",
    )


@profiles_app.command("show")
def profiles_show(
    ctx: typer.Context,
    pattern: str = typer.Argument(help="Exact URL pattern of the profile."),
) -> None:
    """Show one profile. Literal passwords are masked."""
    settings, _ = load_cli_settings(ctx)
    profile = require_profile(settings, pattern)
    format_response(_masked(profile))


@profiles_app.command("add")
def profiles_add(
    ctx: typer.Context,
    pattern: str = typer.Argument(help="host-glob[/path-glob], e.g. '*.example.com/api/**'."),
    login_url: str = typer.Option("", "--login-url", help="Login endpoint URL."),
    method: str = typer.Option("POST", "--method", "-X", help="Login method."),
    content_type: str = typer.Option(
        "application/json", "--content-type", help="Login body content type."
    ),
    body: str = typer.Option(
        "", "--body", "-d", help="Login body with ${username}/${password} placeholders."
    ),
    username: str = typer.Option("", "--username", "-u", help="Username, env:VAR or file:/path."),
    password: str = typer.Option("", "--password", "-p", help="Password, env:VAR or file:/path."),
    header: Optional[list[str]] = typer.Option(
        None, "--header", "-H", help="Extra login header 'Name: value' (repeatable)."
    ),
    raw_request: Optional[Path] = typer.Option(
        None, "--raw-request", help="File with a captured login request to replay."
    ),
    raw_response: Optional[Path] = typer.Option(
        None, "--raw-response", help="File with a captured login response."
    ),
    extract: str = typer.Option(
        "auto", "--extract", help="auto, header:NAME, cookie:NAME or json:PATH."
    ),
    example_value: Optional[str] = typer.Option(
        None, "--example-value", help="Known token used when manual extraction finds nothing."
    ),
    inject: str = typer.Option(
        "auto", "--inject", help="auto, bearer, header:NAME or cookie:NAME."
    ),
    disabled: bool = typer.Option(False, "--disabled", help="Add the profile disabled."),
) -> None:
    """Add a profile, replacing any profile with the same pattern.

    Example::

        reauth profiles add api.example.com --login-url https://api.example.com/login \\
            --body 'user=${username}&pass=${password}' \\
            --content-type application/x-www-form-urlencoded --extract cookie:SESSIONID
    """
    settings, path = load_cli_settings(ctx)

    try:
        extraction = parse_extraction(extract, example_value)
        injection = parse_injection(inject)
        extra_headers = parse_header_options(header or [])
        raw_request_text = raw_request.read_text(encoding="utf-8") if raw_request else ""
        raw_response_text = raw_response.read_text(encoding="utf-8") if raw_response else ""
    except (ValueError, OSError) as exc:
        error(str(exc))
        raise typer.Exit(code=2) from None

    if not login_url and not raw_request_text:
        error("A profile needs --login-url or --raw-request.")
        raise typer.Exit(code=2)

    replaced = settings.get_profile(pattern) is not None
    settings.add_profile(
        AuthProfile(
            url_pattern=pattern,
            enabled=not disabled,
            login_url=login_url,
            login_method=method.upper(),
            content_type=content_type,
            login_body=body,
            username=username,
            password=password,
            extra_headers=extra_headers,
            extraction=extraction,
            injection=injection,
            raw_request=raw_request_text,
            raw_response=raw_response_text,
        )
    )
    save_cli_settings(settings, path)
    success(f"{'Updated' if replaced else 'Added'} profile '{pattern}'.")
    suggest(f"Test it: reauth login test '{pattern}'")


@profiles_app.command("remove")
def profiles_remove(
    ctx: typer.Context,
    pattern: str = typer.Argument(help="Exact URL pattern of the profile."),
) -> None:
    """Remove a profile."""
    settings, path = load_cli_settings(ctx)
    require_profile(settings, pattern)
    settings.remove_profile(pattern)
    save_cli_settings(settings, path)
    success(f"Removed profile '{pattern}'.")


def _set_enabled(ctx: typer.Context, pattern: str, enabled: bool) -> None:
    settings, path = load_cli_settings(ctx)
    profile = require_profile(settings, pattern)
    profile.enabled = enabled
    save_cli_settings(settings, path)
    success(f"Profile '{pattern}' {'enabled' if enabled else 'disabled'}.")


@profiles_app.command("enable")
def profiles_enable(
    ctx: typer.Context,
    pattern: str = typer.Argument(help="Exact URL pattern of the profile."),
) -> None:
    """Enable a profile."""
    _set_enabled(ctx, pattern, True)


@profiles_app.command("disable")
def profiles_disable(
    ctx: typer.Context,
    pattern: str = typer.Argument(help="Exact URL pattern of the profile."),
) -> None:
    """Disable a profile without deleting it."""
    _set_enabled(ctx, pattern, False)
