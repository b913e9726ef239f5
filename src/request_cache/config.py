"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for request-cache:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.request-cache/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir`, :func:`get_data_dir`.
* **Global config** -- A single :class:`~request_cache.models.GlobalConfig`
  JSON file storing the database location, default TTL and transport
  settings.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, and the global config into the effective
  configuration.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`).
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from request_cache.exceptions import ConfigError
from request_cache.models import GlobalConfig

_APP_NAME = "request-cache"
_CONFIG_FILENAME = "config.json"
_DB_FILENAME = "requests.db"

ENV_DB_PATH = "REQUEST_CACHE_DB"
ENV_TTL = "REQUEST_CACHE_TTL"


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
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/request-cache/`` (default
    ``~/.config/request-cache/``). On macOS/Windows: ``~/.request-cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    Holds the default response database. Its contents can be safely deleted
    at any time.

    On Linux/BSD: ``$XDG_CACHE_HOME/request-cache/`` (default
    ``~/.cache/request-cache/``). On macOS/Windows: ``~/.request-cache/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/request-cache/`` (default
    ``~/.local/share/request-cache/``). On macOS/Windows: ``~/.request-cache/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is removed.
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


# --- Global config ---


def _global_config_path() -> Path:
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the config directory.

    Returns:
        The deserialised :class:`~request_cache.models.GlobalConfig`, or a
        default instance if the file does not exist.

    Raises:
        ConfigError: If the file contains invalid JSON or fails validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json")
    _atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def resolve_config(
    cli_db_path: Optional[str] = None,
    cli_ttl: Optional[int] = None,
) -> GlobalConfig:
    """Resolve config with full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_db_path``, ``cli_ttl``)
        2. Environment variables (``REQUEST_CACHE_DB``, ``REQUEST_CACHE_TTL``)
        3. User config (``~/.config/request-cache/config.json``)
        4. Defaults

    Raises:
        ConfigError: If ``REQUEST_CACHE_TTL`` is not a non-negative integer.
    """
    config = load_global_config()

    env_db = os.environ.get(ENV_DB_PATH)
    if env_db:
        config.cache.db_path = env_db
    if cli_db_path is not None:
        config.cache.db_path = cli_db_path

    env_ttl = os.environ.get(ENV_TTL)
    if env_ttl:
        try:
            ttl = int(env_ttl)
        except ValueError:
            raise ConfigError(
                f"{ENV_TTL} must be an integer number of seconds, got {env_ttl!r}"
            ) from None
        if ttl < 0:
            raise ConfigError(f"{ENV_TTL} must not be negative, got {ttl}")
        config.cache.ttl_seconds = ttl
    if cli_ttl is not None:
        config.cache.ttl_seconds = cli_ttl

    return config


def resolve_db_path(config: GlobalConfig) -> Path:
    """Return the database path: the configured one, or ``requests.db`` in the cache dir."""
    if config.cache.db_path:
        return Path(config.cache.db_path).expanduser()
    return get_cache_dir() / _DB_FILENAME
