"""Theme application engine exports."""

from niji.core.engine import ApplyEngine
from niji.core.models import (
    ApplyReport,
    ModuleDefinition,
    ModuleOutcome,
    OutcomeStatus,
    ReloadCommand,
    TemplateTarget,
    Theme,
)
from niji.core.module_registry import ModuleRegistry
from niji.core.renderer import TemplateRenderer
from niji.core.state_store import StateStore
from niji.core.theme_store import ThemeStore

__all__ = [
    "ApplyEngine",
    "ApplyReport",
    "ModuleDefinition",
    "ModuleOutcome",
    "ModuleRegistry",
    "OutcomeStatus",
    "ReloadCommand",
    "StateStore",
    "TemplateRenderer",
    "TemplateTarget",
    "Theme",
    "ThemeStore",
]
