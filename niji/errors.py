"""Error codes and error handling utilities for niji."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import Any


class ErrorCode(Enum):
    """Standardized error codes for niji operations."""

    # Discovery errors
    DISCOVERY_FAILED = auto()
    DUPLICATE_THEME = auto()
    DUPLICATE_MODULE = auto()
    THEME_INVALID = auto()
    MODULE_INVALID = auto()

    # Lookup errors
    THEME_NOT_FOUND = auto()
    NO_CURRENT_THEME = auto()
    MODULE_NOT_FOUND = auto()

    # Apply errors
    TEMPLATE_UNREADABLE = auto()
    VARIABLE_UNDEFINED = auto()
    WRITE_FAILED = auto()
    RELOAD_FAILED = auto()

    # State and configuration errors
    STATE_PERSISTENCE_FAILED = auto()
    CONFIG_INVALID = auto()
    OPERATION_UNSUPPORTED = auto()


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.DISCOVERY_FAILED: "A theme or module directory could not be read.",
    ErrorCode.DUPLICATE_THEME: "Two theme files declare the same theme name.",
    ErrorCode.DUPLICATE_MODULE: "Two module directories declare the same module name.",
    ErrorCode.THEME_INVALID: "The theme file is malformed.",
    ErrorCode.MODULE_INVALID: "The module definition is malformed.",

    ErrorCode.THEME_NOT_FOUND: "The requested theme does not exist.",
    ErrorCode.NO_CURRENT_THEME: "No theme is currently set.",
    ErrorCode.MODULE_NOT_FOUND: "The requested module does not exist.",

    ErrorCode.TEMPLATE_UNREADABLE: "A module template could not be read.",
    ErrorCode.VARIABLE_UNDEFINED: "A template references a variable the theme does not define.",
    ErrorCode.WRITE_FAILED: "A rendered file could not be written.",
    ErrorCode.RELOAD_FAILED: "The module reload command failed.",

    ErrorCode.STATE_PERSISTENCE_FAILED: "The current theme could not be stored.",
    ErrorCode.CONFIG_INVALID: "The configuration file is invalid.",
    ErrorCode.OPERATION_UNSUPPORTED: "This operation is not supported in the current mode.",
}

ERROR_SUGGESTIONS: dict[ErrorCode, str] = {
    ErrorCode.DISCOVERY_FAILED: "Check the directory permissions.",
    ErrorCode.DUPLICATE_THEME: "Rename or remove one of the theme files.",
    ErrorCode.DUPLICATE_MODULE: "Rename or remove one of the module directories.",
    ErrorCode.THEME_NOT_FOUND: "Run `niji theme list` to see the available themes.",
    ErrorCode.NO_CURRENT_THEME: "Set one with `niji theme set <name>`.",
    ErrorCode.MODULE_NOT_FOUND: "Check the module name and your module directories.",
    ErrorCode.VARIABLE_UNDEFINED: "Add the variable to the theme or fix the template.",
    ErrorCode.STATE_PERSISTENCE_FAILED: "Check that the state directory is writable.",
    ErrorCode.CONFIG_INVALID: "Fix the reported key in config.yaml.",
}


@dataclass(eq=False)
class NijiError(Exception):
    """Base exception for niji with error code and context."""

    code: ErrorCode
    message: str = ""
    path: Path | None = None
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = ""

    def __post_init__(self) -> None:
        if not self.message:
            self.message = ERROR_MESSAGES.get(self.code, "An unexpected error occurred.")
        if not self.suggestion:
            self.suggestion = ERROR_SUGGESTIONS.get(self.code, "")

    def __str__(self) -> str:
        parts = [self.message]
        if self.path:
            parts.append(f" ({self.path})")
        return "".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "code": self.code.name,
            "message": self.message,
            "path": str(self.path) if self.path else None,
            "details": self.details,
            "suggestion": self.suggestion,
        }


# -- discovery --

@dataclass(eq=False)
class DiscoveryError(NijiError):
    code: ErrorCode = ErrorCode.DISCOVERY_FAILED


@dataclass(eq=False)
class DuplicateNameError(NijiError):
    """Two sources declare the same entity name."""

    code: ErrorCode = ErrorCode.DUPLICATE_THEME


@dataclass(eq=False)
class DuplicateThemeError(DuplicateNameError):
    code: ErrorCode = ErrorCode.DUPLICATE_THEME


@dataclass(eq=False)
class DuplicateModuleError(DuplicateNameError):
    code: ErrorCode = ErrorCode.DUPLICATE_MODULE


@dataclass(eq=False)
class ParseError(NijiError):
    """Malformed source content; excludes just that entity."""

    code: ErrorCode = ErrorCode.THEME_INVALID


@dataclass(eq=False)
class ThemeParseError(ParseError):
    code: ErrorCode = ErrorCode.THEME_INVALID


@dataclass(eq=False)
class ModuleParseError(ParseError):
    code: ErrorCode = ErrorCode.MODULE_INVALID


# -- lookup --

@dataclass(eq=False)
class NotFoundError(NijiError):
    code: ErrorCode = ErrorCode.THEME_NOT_FOUND


@dataclass(eq=False)
class ThemeNotFoundError(NotFoundError):
    code: ErrorCode = ErrorCode.THEME_NOT_FOUND


@dataclass(eq=False)
class NoCurrentThemeError(ThemeNotFoundError):
    code: ErrorCode = ErrorCode.NO_CURRENT_THEME


@dataclass(eq=False)
class UnknownModuleError(NotFoundError):
    code: ErrorCode = ErrorCode.MODULE_NOT_FOUND


# -- apply --

@dataclass(eq=False)
class RenderError(NijiError):
    code: ErrorCode = ErrorCode.VARIABLE_UNDEFINED


@dataclass(eq=False)
class UndefinedVariableError(RenderError):
    code: ErrorCode = ErrorCode.VARIABLE_UNDEFINED
    name: str = ""

    def __post_init__(self) -> None:
        if not self.message and self.name:
            self.message = f"Undefined variable {self.name!r}"
        super().__post_init__()


@dataclass(eq=False)
class TemplateReadError(RenderError):
    code: ErrorCode = ErrorCode.TEMPLATE_UNREADABLE


@dataclass(eq=False)
class WriteError(NijiError):
    code: ErrorCode = ErrorCode.WRITE_FAILED


@dataclass(eq=False)
class ReloadError(NijiError):
    code: ErrorCode = ErrorCode.RELOAD_FAILED


# -- state and configuration --

@dataclass(eq=False)
class PersistenceError(NijiError):
    code: ErrorCode = ErrorCode.STATE_PERSISTENCE_FAILED


@dataclass(eq=False)
class ConfigError(NijiError):
    code: ErrorCode = ErrorCode.CONFIG_INVALID


@dataclass(eq=False)
class UnsupportedOperationError(NijiError):
    code: ErrorCode = ErrorCode.OPERATION_UNSUPPORTED


def format_error_for_user(error: NijiError | Exception) -> str:
    """Format an error for display to the user with actionable suggestions."""
    if isinstance(error, NijiError):
        parts = [str(error)]
        if error.suggestion and error.suggestion != error.message:
            parts.append(f"\n  hint: {error.suggestion}")
        return "".join(parts)
    return f"{type(error).__name__}: {error}"
