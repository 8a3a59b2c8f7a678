"""Theme, module and apply-report models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Mapping

Scalar = str | int | float | bool


@dataclass(frozen=True, slots=True)
class Theme:
    """A named set of template variables parsed from one theme file."""

    name: str
    variables: Mapping[str, Scalar]
    source: Path


@dataclass(frozen=True, slots=True)
class ReloadCommand:
    """An external program invocation run after a module's files are written."""

    program: str
    args: tuple[str, ...] = ()

    @property
    def argv(self) -> list[str]:
        return [self.program, *self.args]

    def __str__(self) -> str:
        return " ".join(self.argv)


@dataclass(frozen=True, slots=True)
class TemplateTarget:
    """One template source and the file it renders to."""

    template: Path
    output: Path


@dataclass(frozen=True, slots=True)
class ModuleDefinition:
    """A desktop component that consumes rendered templates."""

    name: str
    templates: tuple[TemplateTarget, ...]
    reload_command: ReloadCommand | None
    source: Path


class OutcomeStatus(Enum):
    SUCCESS = "success"
    RENDER_FAILURE = "render_failure"
    WRITE_FAILURE = "write_failure"
    RELOAD_FAILURE = "reload_failure"


@dataclass
class ModuleOutcome:
    """Result of applying a theme to one module."""

    module: str
    status: OutcomeStatus = OutcomeStatus.SUCCESS
    reason: str = ""
    written: list[Path] = field(default_factory=list)
    reloaded: bool = False

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS


@dataclass
class ApplyReport:
    """Per-module outcomes of one apply pass, keyed by module name."""

    theme: str
    outcomes: dict[str, ModuleOutcome] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return all(outcome.ok for outcome in self.outcomes.values())

    @property
    def succeeded(self) -> list[ModuleOutcome]:
        return [outcome for outcome in self.outcomes.values() if outcome.ok]

    @property
    def failed(self) -> list[ModuleOutcome]:
        return [outcome for outcome in self.outcomes.values() if not outcome.ok]
