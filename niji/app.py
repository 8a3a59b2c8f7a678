"""Service wiring for one niji invocation."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from niji.config.settings import AppSettings
from niji.core.engine import ApplyEngine
from niji.core.models import ApplyReport, Theme
from niji.core.module_registry import ModuleRegistry
from niji.core.state_store import StateStore
from niji.core.theme_store import ThemeStore
from niji.errors import NoCurrentThemeError

logger = logging.getLogger(__name__)


class NijiApp:
    """Facade over the stores and the apply engine used by the CLI."""

    def __init__(
        self,
        themes: ThemeStore,
        modules: ModuleRegistry,
        state: StateStore,
        engine: ApplyEngine,
    ) -> None:
        self.themes = themes
        self.modules = modules
        self.state = state
        self.engine = engine

    @classmethod
    def from_settings(cls, settings: AppSettings) -> NijiApp:
        themes = ThemeStore(settings.theme_roots)
        modules = ModuleRegistry(
            settings.module_roots,
            enabled=settings.modules,
            disabled=settings.disabled_modules,
        )
        state = StateStore(settings.state_file)
        engine = ApplyEngine(
            themes,
            modules,
            state,
            reload_timeout=settings.reload_timeout,
            max_workers=settings.max_workers,
        )
        logger.debug(
            "configured from %s: theme roots=%s module roots=%s",
            settings.path,
            [str(root) for root in settings.theme_roots],
            [str(root) for root in settings.module_roots],
        )
        return cls(themes, modules, state, engine)

    def apply(self, reload: bool = True, modules: Iterable[str] | None = None) -> ApplyReport:
        return self.engine.apply(reload=reload, modules=modules)

    def current_theme(self) -> Theme:
        name = self.state.get()
        if name is None:
            raise NoCurrentThemeError()
        return self.themes.get(name)

    def get_theme(self, name: str) -> Theme:
        return self.themes.get(name)

    def set_theme(self, name: str) -> Theme:
        """Persist ``name`` as the current theme after checking it exists."""
        theme = self.themes.get(name)
        self.state.set(theme.name)
        logger.info("current theme is now %r", theme.name)
        return theme

    def unset_theme(self) -> None:
        self.state.unset()
        logger.info("current theme unset; rendered files were left as they are")

    def list_themes(self) -> Iterator[Theme]:
        themes = self.themes.iter_themes()
        for message in self.themes.load_errors():
            logger.warning("%s", message)
        return themes
