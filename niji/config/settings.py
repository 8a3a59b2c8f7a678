"""Application settings read from config.yaml."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

import yaml

from niji import runtime_paths
from niji.errors import ConfigError

_KNOWN_KEYS = {
    "modules",
    "disabled_modules",
    "reload_timeout",
    "max_workers",
    "theme_dirs",
    "module_dirs",
}


class AppSettings:
    """Wraps the optional YAML configuration file with typed accessors."""

    def __init__(self, path: Path | None = None, data: Mapping[str, Any] | None = None) -> None:
        self._path = path or runtime_paths.config_file()
        self._data: dict[str, Any] = dict(data) if data is not None else self._read()
        self._validate()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> AppSettings:
        return cls(path=Path("<memory>"), data=data)

    @property
    def path(self) -> Path:
        return self._path

    # -- modules --

    @property
    def modules(self) -> list[str] | None:
        raw = self._data.get("modules")
        if raw is None:
            return None
        return list(raw)

    @property
    def disabled_modules(self) -> list[str]:
        return list(self._data.get("disabled_modules") or [])

    # -- apply --

    @property
    def reload_timeout(self) -> float:
        return float(self._data.get("reload_timeout", 10))

    @property
    def max_workers(self) -> int:
        return int(self._data.get("max_workers", 1))

    # -- search roots --

    @property
    def theme_roots(self) -> list[Path]:
        extra = [Path(item).expanduser() for item in self._data.get("theme_dirs") or []]
        return [*runtime_paths.theme_roots(), *extra]

    @property
    def module_roots(self) -> list[Path]:
        extra = [Path(item).expanduser() for item in self._data.get("module_dirs") or []]
        return [*runtime_paths.module_roots(), *extra]

    @property
    def state_file(self) -> Path:
        return runtime_paths.state_file()

    @property
    def log_dir(self) -> Path:
        return runtime_paths.log_dir()

    # -- helpers --

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            content = self._path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigError(message=f"Unable to read configuration: {exc}", path=self._path) from exc
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as exc:
            raise ConfigError(message=f"Invalid YAML in configuration: {exc}", path=self._path) from exc
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(message="Expected a YAML mapping in configuration", path=self._path)
        return data

    def _validate(self) -> None:
        unknown = sorted(str(key) for key in self._data if key not in _KNOWN_KEYS)
        if unknown:
            self._invalid(f"unsupported keys found: {', '.join(unknown)}")

        modules = self._data.get("modules")
        if modules is not None and not _is_str_list(modules):
            self._invalid("'modules' must be a list of module names")
        for key in ("disabled_modules", "theme_dirs", "module_dirs"):
            value = self._data.get(key)
            if value is not None and not _is_str_list(value):
                self._invalid(f"{key!r} must be a list of strings")

        timeout = self._data.get("reload_timeout", 10)
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            self._invalid("'reload_timeout' must be a positive number of seconds")
        workers = self._data.get("max_workers", 1)
        if isinstance(workers, bool) or not isinstance(workers, int) or workers < 1:
            self._invalid("'max_workers' must be an integer >= 1")

    def _invalid(self, message: str) -> None:
        raise ConfigError(message=f"Invalid configuration: {message}", path=self._path)


def _is_str_list(value: object) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) and item.strip() for item in value)
