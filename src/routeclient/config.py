"""Client configuration with XDG paths, env precedence and credential sources.

Every client class belongs to an *application* (by default the top-level
package of the module that defines it). The application's settings live in
one file under the config directory:

* ``$XDG_CONFIG_HOME/routeclient/<app>.json`` on Linux/BSD
  (default ``~/.config/routeclient/``), ``~/.routeclient/<app>.json``
  elsewhere. ``.yaml`` and ``.yml`` files are accepted too.

The file is validated into a :class:`~routeclient.models.ClientConfig`.
Environment variables ``<APP>_URL``, ``<APP>_USERNAME`` and
``<APP>_PASSWORD`` take precedence over the file, and
``ROUTECLIENT_KEEP_ALIVE_TIMEOUT`` overrides the transport's idle timeout.

This module only reads configuration; it never writes it.
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import re
import sys
from pathlib import Path
from typing import Any, Optional

import yaml

from routeclient.exceptions import ConfigError
from routeclient.models import ClientConfig

_APP_NAME = "routeclient"
_CONFIG_SUFFIXES = (".json", ".yaml", ".yml")
KEEP_ALIVE_ENV = "ROUTECLIENT_KEEP_ALIVE_TIMEOUT"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
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
    """Return the configuration directory (not created if missing).

    On Linux/BSD: ``$XDG_CONFIG_HOME/routeclient/``.
    On macOS/Windows: ``~/.routeclient/``.
    """
    if _is_xdg_platform():
        return _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    return _fallback_base_dir()


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/routeclient/``.
    On macOS/Windows: ``~/.routeclient/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Client config ---


def config_path(app_name: str) -> Optional[Path]:
    """Return the first existing config file for *app_name*, or ``None``."""
    base = get_config_dir()
    for suffix in _CONFIG_SUFFIXES:
        candidate = base / f"{app_name}{suffix}"
        if candidate.is_file():
            return candidate
    return None


def _parse_config_file(path: Path) -> dict[str, Any]:
    """Parse a JSON or YAML config file into a dict."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read config {path}: {exc}") from exc

    if not text.strip():
        return {}

    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Config at {path} must be a mapping (got {type(data).__name__})"
        )
    return data


def _env_prefix(app_name: str) -> str:
    """``my-app.client`` -> ``MY_APP_CLIENT``."""
    return re.sub(r"[^A-Za-z0-9]+", "_", app_name).strip("_").upper()


def load_client_config(app_name: str) -> ClientConfig:
    """Load and validate the configuration for *app_name*.

    Precedence (high to low):
        1. Environment variables (``<APP>_URL``, ``<APP>_USERNAME``,
           ``<APP>_PASSWORD``, ``ROUTECLIENT_KEEP_ALIVE_TIMEOUT``)
        2. The config file (``<config dir>/<app>.json|.yaml|.yml``)
        3. Model defaults

    Args:
        app_name: Application name the client class belongs to.

    Returns:
        The effective :class:`~routeclient.models.ClientConfig`. A missing
        config file is not an error; defaults are returned.

    Raises:
        ConfigError: If the file exists but cannot be parsed or validated.
    """
    path = config_path(app_name)
    data: dict[str, Any] = _parse_config_file(path) if path is not None else {}

    prefix = _env_prefix(app_name)
    for key in ("url", "username", "password"):
        value = os.environ.get(f"{prefix}_{key.upper()}")
        if value:
            data[key] = value

    try:
        config = ClientConfig.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid config for '{app_name}' at {path}: {exc}") from exc

    keep_alive = os.environ.get(KEEP_ALIVE_ENV)
    if keep_alive:
        try:
            config.request.keep_alive_timeout = float(keep_alive)
        except ValueError as exc:
            raise ConfigError(
                f"{KEEP_ALIVE_ENV} must be a number (got {keep_alive!r})"
            ) from exc

    return config


def resolve_password(config: ClientConfig) -> Optional[str]:
    """Return the configured password, resolving ``password_source`` if set."""
    if config.password:
        return config.password
    if config.password_source:
        return resolve_credential(config.password_source)
    return None


# --- Credential source resolution ---


def resolve_credential(source: str) -> str:
    """Resolve a credential from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - ``"prompt"`` -- prompts user interactively (requires a TTY)

    Args:
        source: The source descriptor string.

    Returns:
        The resolved credential string.

    Raises:
        ConfigError: If the source can't be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError(
                "Cannot prompt for credentials: stdin is not a TTY (source: prompt)"
            )
        return getpass.getpass("Password: ")

    raise ConfigError(f"Unknown credential source format: {source}")
