"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for dsc:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.dsc/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Config file** -- a TOML file deserialised into
  :class:`~dsc.models.DscConfig`. A missing default file is not an error.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, the config file, and built-in defaults.

Writes use an atomic temp-file-then-rename strategy (:func:`atomic_write`) so
a crash never leaves a half-written session record behind.
"""

from __future__ import annotations

import os
import platform
import tempfile
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from dsc.exceptions import ConfigError
from dsc.models import DscConfig, Format

_APP_NAME = "dsc"
_CONFIG_FILENAME = "config.toml"

ENV_CONFIG = "DSC_CONFIG"
ENV_SESSION = "DSC_SESSION"
ENV_DOCSPELL_URL = "DSC_DOCSPELL_URL"
ENV_ADMIN_SECRET = "DSC_ADMIN_SECRET"
ENV_UNSAFE_DEBUG = "DSC_UNSAFE_DEBUG"


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

    On Linux/BSD: ``$XDG_CONFIG_HOME/dsc/`` (default ``~/.config/dsc/``).
    On macOS/Windows: ``~/.dsc/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir(create: bool = True) -> Path:
    """Return the data directory (sessions, crash logs), creating it unless *create* is false.

    On Linux/BSD: ``$XDG_DATA_HOME/dsc/`` (default ``~/.local/share/dsc/``).
    On macOS/Windows: ``~/.dsc/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    if create:
        path.mkdir(parents=True, exist_ok=True)
    return path


def default_config_path() -> Path:
    """Path of the config file used when neither ``--config`` nor ``DSC_CONFIG`` is set."""
    return get_config_dir() / _CONFIG_FILENAME


# --- Atomic file writes ---


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. When *mode* is given
    it is applied to the temp file before any content is written. On any
    failure the temp file is removed and *path* is left untouched.
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
        if mode is not None:
            os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
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


# --- Config file ---


def load_config_file(path: Path, required: bool = False) -> DscConfig:
    """Load and validate a TOML config file.

    Args:
        path: File to read.
        required: When true a missing file is an error; otherwise defaults
            are returned.

    Raises:
        ConfigError: If the file is required but missing, is not valid TOML,
            or fails validation.
    """
    if not path.is_file():
        if required:
            raise ConfigError(f"Config file not found: {path}")
        return DscConfig()
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
        return DscConfig.model_validate(data)
    except (tomllib.TOMLDecodeError, ValidationError, OSError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc


# --- Precedence resolution ---


def resolve_config(
    cli_config: Optional[Path] = None,
    cli_docspell_url: Optional[str] = None,
    cli_format: Optional[Format] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> DscConfig:
    """Resolve the effective configuration.

    Precedence (high to low):
        1. CLI flags (``--config``, ``--docspell-url``, ``--format``)
        2. Environment variables (``DSC_CONFIG``, ``DSC_DOCSPELL_URL``,
           ``DSC_ADMIN_SECRET``)
        3. Config file (``~/.config/dsc/config.toml``)
        4. Defaults

    An explicitly named config file (flag or env) must exist; the default
    location may be absent.
    """
    env = os.environ if environ is None else environ

    if cli_config is not None:
        config = load_config_file(cli_config, required=True)
    elif env.get(ENV_CONFIG):
        config = load_config_file(Path(env[ENV_CONFIG]).expanduser(), required=True)
    else:
        config = load_config_file(default_config_path())

    updates: dict[str, object] = {}
    if cli_docspell_url:
        updates["docspell_url"] = cli_docspell_url
    elif env.get(ENV_DOCSPELL_URL):
        updates["docspell_url"] = env[ENV_DOCSPELL_URL]

    if env.get(ENV_ADMIN_SECRET):
        updates["admin_secret"] = env[ENV_ADMIN_SECRET]

    if cli_format is not None:
        updates["default_format"] = cli_format

    if updates:
        config = config.model_copy(update=updates)
    return config


def sessions_dir(config: DscConfig) -> Path:
    """Directory holding session records, honouring ``session_path``.

    The directory is not created here; the session store creates it on the
    first save, so read-only commands never write to disk.
    """
    if config.session_path is not None:
        return config.session_path.expanduser()
    return get_data_dir(create=False) / "sessions"
