"""Filesystem locations for configuration, data and state."""

from __future__ import annotations

import os
from pathlib import Path

APP_NAME = "niji"


def _env_path(name: str, fallback: Path) -> Path:
    value = os.environ.get(name, "").strip()
    return Path(value).expanduser() if value else fallback


def config_dir() -> Path:
    """Return the user configuration directory (config.yaml, themes/, modules/)."""
    override = os.environ.get("NIJI_CONFIG_DIR", "").strip()
    if override:
        return Path(override).expanduser()
    return _env_path("XDG_CONFIG_HOME", Path.home() / ".config") / APP_NAME


def data_dirs() -> list[Path]:
    """Return data directories in search order: user data first, then system."""
    dirs = [_env_path("XDG_DATA_HOME", Path.home() / ".local" / "share") / APP_NAME]
    system = os.environ.get("XDG_DATA_DIRS", "").strip() or "/usr/local/share:/usr/share"
    for entry in system.split(os.pathsep):
        if entry:
            dirs.append(Path(entry).expanduser() / APP_NAME)
    return dirs


def state_dir() -> Path:
    """Return the directory holding the current theme and logs."""
    return _env_path("XDG_STATE_HOME", Path.home() / ".local" / "state") / APP_NAME


def config_file() -> Path:
    return config_dir() / "config.yaml"


def state_file() -> Path:
    return state_dir() / "current_theme"


def log_dir() -> Path:
    return state_dir() / "logs"


def theme_roots() -> list[Path]:
    """Theme search roots: config dir, then each data dir."""
    return [root / "themes" for root in (config_dir(), *data_dirs())]


def module_roots() -> list[Path]:
    """Module search roots: config dir, then each data dir."""
    return [root / "modules" for root in (config_dir(), *data_dirs())]
