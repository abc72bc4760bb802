"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for actioncli:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.actioncli/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Global config** -- A single :class:`~actioncli.models.GlobalConfig`
  JSON file storing defaults (default specification, request timeout,
  build settings).
* **Project config** -- An optional ``./actioncli.json`` whose ``spec`` key
  pins the specification a repository uses.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, project-local config, and global config into the
  effective configuration.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from actioncli.exceptions import ConfigError
from actioncli.models import GlobalConfig

_APP_NAME = "actioncli"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "actioncli.json"

ENV_SPEC = "ACTIONCLI_SPEC"
ENV_TIMEOUT = "ACTIONCLI_TIMEOUT"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True on platforms following the XDG Base Directory spec (Linux/BSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from *env_var*, else segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/actioncli/`` (default ``~/.config/actioncli/``).
    On macOS/Windows: ``~/.actioncli/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/actioncli/`` (default ``~/.local/share/actioncli/``).
    On macOS/Windows: ``~/.actioncli/logs/``.
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


def global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration, or defaults when the file is absent.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically."""
    data = config.model_dump(mode="json")
    _atomic_write(global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load ``./actioncli.json``; ``None`` when there is none.

    Raises:
        ConfigError: If the file exists but is not a JSON object.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


# --- Precedence resolution ---


def resolve_config(
    cli_spec: Optional[str] = None,
    cli_timeout: Optional[float] = None,
) -> tuple[GlobalConfig, Optional[str]]:
    """Resolve config with the full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_spec``, ``cli_timeout``)
        2. Environment variables (``ACTIONCLI_SPEC``, ``ACTIONCLI_TIMEOUT``)
        3. Project config (``./actioncli.json``, key ``spec``)
        4. User config (``~/.config/actioncli/config.json``)
        5. Defaults

    Returns:
        A tuple of ``(global_config, spec_source_or_None)``.

    Raises:
        ConfigError: For unreadable config files or a non-numeric
            ``ACTIONCLI_TIMEOUT``.
    """
    global_cfg = load_global_config()

    spec_source: Optional[str] = global_cfg.default_spec
    project = load_project_config()
    if project is not None and project.get("spec"):
        spec_source = str(project["spec"])
    env_spec = os.environ.get(ENV_SPEC)
    if env_spec:
        spec_source = env_spec
    if cli_spec is not None:
        spec_source = cli_spec

    env_timeout = os.environ.get(ENV_TIMEOUT)
    if env_timeout:
        try:
            global_cfg.request.timeout = float(env_timeout)
        except ValueError:
            raise ConfigError(
                f"{ENV_TIMEOUT} must be a number of seconds, got {env_timeout!r}"
            ) from None
    if cli_timeout is not None:
        global_cfg.request.timeout = cli_timeout

    return global_cfg, spec_source
