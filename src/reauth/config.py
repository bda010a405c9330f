"""Settings persistence with XDG paths, atomic writes, and precedence resolution.

This module handles everything reauth keeps on disk:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.reauth/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Settings file** -- a single :class:`~reauth.models.ReauthSettings`
  document (``settings.json``). JSON is written; JSON or YAML (by file
  suffix) is read. See :func:`load_settings` and :func:`save_settings`.
* **Precedence resolution** -- :func:`resolve_settings_path` and
  :func:`resolve_settings` pick the file from the ``--config`` flag, the
  ``REAUTH_CONFIG`` environment variable or the default location, and
  apply ``REAUTH_RATE_LIMIT_MS``.
* **Secret resolution** -- :func:`resolve_secret` turns ``env:VAR`` and
  ``file:/path`` descriptors in profile credentials into their values.

All writes go through :func:`_atomic_write` (temp file, fsync, rename) and
leave the file readable only by its owner, since profiles hold passwords.
"""

from __future__ import annotations

import json
import logging
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from reauth.exceptions import ConfigError
from reauth.models import ReauthSettings

logger = logging.getLogger(__name__)

_APP_NAME = "reauth"
_SETTINGS_FILENAME = "settings.json"
_YAML_SUFFIXES = (".yaml", ".yml")

CONFIG_ENV_VAR = "REAUTH_CONFIG"
RATE_LIMIT_ENV_VAR = "REAUTH_RATE_LIMIT_MS"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/reauth/`` (default ``~/.config/reauth/``).
    On macOS/Windows: ``~/.reauth/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/reauth/`` (default ``~/.local/share/reauth/``).
    On macOS/Windows: ``~/.reauth/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def default_settings_path() -> Path:
    """Path of the settings file in the configuration directory."""
    return get_config_dir() / _SETTINGS_FILENAME


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str, mode: int = 0o600) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. Its permissions are
    set to *mode* before the rename. On any failure the temp file is removed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Settings file ---


def _parse_document(path: Path, text: str) -> Any:
    if path.suffix.lower() in _YAML_SUFFIXES:
        return yaml.safe_load(text)
    return json.loads(text)


def load_settings(path: Optional[Path] = None) -> ReauthSettings:
    """Load settings from *path* (default: :func:`default_settings_path`).

    Returns:
        The deserialised :class:`~reauth.models.ReauthSettings`. A missing
        or empty file yields default settings.

    Raises:
        ConfigError: If the file exists but is not valid JSON/YAML or fails
            validation.
    """
    path = path or default_settings_path()
    if not path.is_file():
        logger.debug("No settings file at %s, using defaults", path)
        return ReauthSettings()
    try:
        text = path.read_text(encoding="utf-8")
        if not text.strip():
            logger.debug("Settings file %s is empty, using defaults", path)
            return ReauthSettings()
        data = _parse_document(path, text)
        if data is None:
            return ReauthSettings()
        settings = ReauthSettings.model_validate(data)
    except (json.JSONDecodeError, yaml.YAMLError, ValidationError, ValueError) as exc:
        raise ConfigError(f"Invalid settings at {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Cannot read settings at {path}: {exc}") from exc
    logger.debug("Loaded %d profile(s) from %s", len(settings.profiles), path)
    return settings


def save_settings(settings: ReauthSettings, path: Optional[Path] = None) -> Path:
    """Persist *settings* atomically as JSON.

    Legacy ``host_pattern`` keys are always written back as ``url_pattern``.

    Returns:
        The path that was written.
    """
    path = path or default_settings_path()
    data = settings.model_dump(mode="json")
    _atomic_write(path, json.dumps(data, indent=2) + "\n")
    logger.debug("Saved settings to %s", path)
    return path


# --- Precedence resolution ---


def resolve_settings_path(cli_path: Optional[str] = None) -> Path:
    """Pick the settings file.

    Precedence (high to low):
        1. ``--config`` CLI flag (*cli_path*)
        2. ``REAUTH_CONFIG`` environment variable
        3. :func:`default_settings_path`
    """
    if cli_path:
        return Path(cli_path).expanduser()
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return default_settings_path()


def resolve_settings(cli_path: Optional[str] = None) -> tuple[ReauthSettings, Path]:
    """Load settings through the precedence chain.

    ``REAUTH_RATE_LIMIT_MS``, when set, overrides the stored interval for
    this process only; it is not written back unless the caller saves.

    Returns:
        A tuple of ``(settings, path_they_were_loaded_from)``.

    Raises:
        ConfigError: If the file is invalid or the override is not a
            non-negative integer.
    """
    path = resolve_settings_path(cli_path)
    settings = load_settings(path)

    override = os.environ.get(RATE_LIMIT_ENV_VAR)
    if override:
        try:
            interval = int(override)
        except ValueError:
            raise ConfigError(
                f"{RATE_LIMIT_ENV_VAR} must be an integer, got {override!r}"
            ) from None
        if interval < 0:
            raise ConfigError(f"{RATE_LIMIT_ENV_VAR} must not be negative")
        settings.rate_limit_interval_ms = interval

    return settings, path


# --- Secret source resolution ---


def resolve_secret(value: str) -> str:
    """Resolve a profile credential that may be a source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - anything else -- returned unchanged (a literal value)

    Raises:
        ConfigError: If an ``env:`` variable is unset or a ``file:`` path
            cannot be read.
    """
    if value.startswith("env:"):
        var_name = value[4:]
        resolved = os.environ.get(var_name)
        if resolved is None:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {value})"
            )
        return resolved

    if value.startswith("file:"):
        path = Path(value[5:]).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {value})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    return value
