"""Theme file and module definition parsing and validation."""

from __future__ import annotations

import os
import re
import shlex
from pathlib import Path
from typing import Mapping

import yaml

from niji.core.models import ModuleDefinition, ReloadCommand, Scalar, TemplateTarget, Theme
from niji.errors import ModuleParseError, ParseError, ThemeParseError

NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")
_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")

THEME_SUFFIXES = (".yaml", ".yml")
MODULE_FILENAMES = ("module.yaml", "module.yml")

_MAX_THEME_BYTES = 256 * 1024
_MAX_MODULE_BYTES = 64 * 1024
_MAX_NAME_LEN = 64
_MAX_VARIABLES = 4096
_MAX_NESTING = 8
_MAX_TEMPLATES = 64


def load_theme_file(path: Path) -> Theme:
    """Load and validate a single theme file."""
    name = path.stem
    if not _is_valid_name(name):
        raise ThemeParseError(
            message=f"Theme name must match [A-Za-z0-9_.-] and start alphanumeric, got {name!r}",
            path=path,
        )
    data = _load_yaml(path, max_bytes=_MAX_THEME_BYTES, error=ThemeParseError)
    if not data:
        raise ThemeParseError(message="Theme defines no variables", path=path)

    variables: dict[str, Scalar] = {}
    _flatten(data, prefix="", out=variables, path=path, depth=0)
    if len(variables) > _MAX_VARIABLES:
        raise ThemeParseError(message=f"Theme defines more than {_MAX_VARIABLES} variables", path=path)
    return Theme(name=name, variables=variables, source=path)


def load_module_dir(module_dir: Path) -> ModuleDefinition:
    """Load and validate a module directory holding a module.yaml."""
    name = module_dir.name
    definition = find_module_file(module_dir)
    if definition is None:
        raise ModuleParseError(message="No module.yaml found", path=module_dir)
    if not _is_valid_name(name):
        raise ModuleParseError(
            message=f"Module name must match [A-Za-z0-9_.-] and start alphanumeric, got {name!r}",
            path=definition,
        )

    data = _load_yaml(definition, max_bytes=_MAX_MODULE_BYTES, error=ModuleParseError)
    _reject_unknown_keys(data, allowed={"templates", "reload"}, path=definition)

    templates = _parse_templates(data.get("templates"), module_dir, definition)
    reload_command = _parse_reload(data.get("reload"), definition)
    return ModuleDefinition(
        name=name,
        templates=templates,
        reload_command=reload_command,
        source=definition,
    )


def find_module_file(module_dir: Path) -> Path | None:
    for filename in MODULE_FILENAMES:
        candidate = module_dir / filename
        if candidate.is_file():
            return candidate
    return None


def _flatten(
    data: Mapping[object, object],
    *,
    prefix: str,
    out: dict[str, Scalar],
    path: Path,
    depth: int,
) -> None:
    if depth > _MAX_NESTING:
        raise ThemeParseError(message=f"Variables nested deeper than {_MAX_NESTING} levels", path=path)
    for key, value in data.items():
        if not isinstance(key, str) or not _KEY_RE.match(key):
            raise ThemeParseError(message=f"Invalid variable name {prefix}{key!r}", path=path)
        name = f"{prefix}{key}"
        if isinstance(value, dict):
            if not value:
                raise ThemeParseError(message=f"Variable group {name!r} is empty", path=path)
            _flatten(value, prefix=f"{name}.", out=out, path=path, depth=depth + 1)
        elif isinstance(value, str):
            try:
                value.encode("utf-8")
            except UnicodeEncodeError as exc:
                raise ThemeParseError(
                    message=f"Variable {name!r} is not valid UTF-8 text: {exc.reason}",
                    path=path,
                ) from exc
            out[name] = value
        elif isinstance(value, (int, float, bool)):
            out[name] = value
        elif value is None:
            raise ThemeParseError(message=f"Variable {name!r} has no value", path=path)
        else:
            raise ThemeParseError(
                message=f"Variable {name!r} must be a scalar, got {type(value).__name__}",
                path=path,
            )


def _parse_templates(raw: object, module_dir: Path, definition: Path) -> tuple[TemplateTarget, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise ModuleParseError(message="'templates' must be a list", path=definition)
    if len(raw) > _MAX_TEMPLATES:
        raise ModuleParseError(message=f"More than {_MAX_TEMPLATES} templates", path=definition)

    root = module_dir.resolve()
    targets: list[TemplateTarget] = []
    for index, entry in enumerate(raw):
        context = f"templates[{index}]"
        if not isinstance(entry, dict):
            raise ModuleParseError(message=f"{context} must be a mapping", path=definition)
        _reject_unknown_keys(entry, allowed={"template", "output"}, path=definition, context=context)
        template = _required_str(entry, "template", definition, context)
        output = _required_str(entry, "output", definition, context)

        template_path = (module_dir / template).resolve()
        if not template_path.is_relative_to(root):
            raise ModuleParseError(
                message=f"{context}: template {template!r} is outside the module directory",
                path=definition,
            )
        output_path = Path(os.path.expandvars(output)).expanduser()
        if not output_path.is_absolute():
            raise ModuleParseError(
                message=f"{context}: output {output!r} must be an absolute path",
                path=definition,
            )
        targets.append(TemplateTarget(template=template_path, output=output_path))
    return tuple(targets)


def _parse_reload(raw: object, definition: Path) -> ReloadCommand | None:
    if raw is None:
        return None
    if isinstance(raw, str):
        try:
            argv = shlex.split(raw)
        except ValueError as exc:
            raise ModuleParseError(message=f"Invalid reload command: {exc}", path=definition) from exc
    elif isinstance(raw, list) and all(isinstance(item, str) for item in raw):
        argv = list(raw)
    else:
        raise ModuleParseError(
            message="'reload' must be a string or a list of strings",
            path=definition,
        )
    if not argv or not argv[0].strip():
        raise ModuleParseError(message="'reload' must name a program", path=definition)
    argv = [os.path.expanduser(item) for item in argv]
    return ReloadCommand(program=argv[0], args=tuple(argv[1:]))


def _load_yaml(path: Path, *, max_bytes: int, error: type[ParseError]) -> dict:
    content = _read_text_limited(path, max_bytes=max_bytes, error=error)
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise error(message=f"Invalid YAML: {exc}", path=path) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise error(message="Expected a YAML mapping at the top level", path=path)
    return data


def _read_text_limited(path: Path, *, max_bytes: int, error: type[ParseError]) -> str:
    try:
        size = path.stat().st_size
    except OSError as exc:
        raise error(message=f"Unable to stat file: {exc}", path=path) from exc
    if size > max_bytes:
        raise error(message=f"File exceeds max size ({max_bytes} bytes)", path=path)
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise error(message=f"Unable to read file: {exc}", path=path) from exc


def _required_str(data: Mapping[str, object], key: str, definition: Path, context: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ModuleParseError(message=f"{context}: field {key!r} must be a non-empty string", path=definition)
    return value.strip()


def _reject_unknown_keys(
    data: Mapping[object, object],
    *,
    allowed: set[str],
    path: Path,
    context: str = "",
) -> None:
    unknown = sorted(str(key) for key in data.keys() if key not in allowed)
    if unknown:
        joined = ", ".join(unknown)
        prefix = f"{context}: " if context else ""
        raise ModuleParseError(message=f"{prefix}unsupported keys found: {joined}", path=path)


def _is_valid_name(name: str) -> bool:
    return len(name) <= _MAX_NAME_LEN and bool(NAME_RE.match(name))
