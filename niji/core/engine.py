"""Theme application: render, write and reload each target module."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Iterable

from niji.core.atomic import atomic_write_text
from niji.core.commands import DEFAULT_TIMEOUT, run_command
from niji.core.models import (
    ApplyReport,
    ModuleDefinition,
    ModuleOutcome,
    OutcomeStatus,
    ReloadCommand,
    Theme,
)
from niji.core.module_registry import ModuleRegistry
from niji.core.renderer import TemplateRenderer
from niji.core.state_store import StateStore
from niji.core.theme_store import ThemeStore
from niji.errors import NoCurrentThemeError, ReloadError, RenderError, WriteError

logger = logging.getLogger(__name__)

CommandRunner = Callable[[ReloadCommand, float], object]


class ApplyEngine:
    """Applies a theme to a set of modules.

    Theme and module resolution happen before any file is touched, and their
    errors propagate. Failures while rendering, writing or reloading a module
    are recorded in the returned report and never stop the other modules.
    """

    def __init__(
        self,
        themes: ThemeStore,
        modules: ModuleRegistry,
        state: StateStore,
        *,
        renderer: TemplateRenderer | None = None,
        reload_timeout: float = DEFAULT_TIMEOUT,
        max_workers: int = 1,
        command_runner: CommandRunner = run_command,
    ) -> None:
        self._themes = themes
        self._modules = modules
        self._state = state
        self._renderer = renderer or TemplateRenderer()
        self._reload_timeout = reload_timeout
        self._max_workers = max(1, max_workers)
        self._run_command = command_runner

    def apply(
        self,
        reload: bool = True,
        modules: Iterable[str] | None = None,
        *,
        theme: str | None = None,
    ) -> ApplyReport:
        resolved_theme = self.resolve_theme(theme)
        targets = self._modules.resolve(modules)
        logger.info(
            "applying theme %r to %d module(s)%s",
            resolved_theme.name,
            len(targets),
            "" if reload else " without reloading",
        )

        report = ApplyReport(theme=resolved_theme.name)
        if not targets:
            logger.warning("no active modules to apply")
            return report

        outcomes = self._process_all(resolved_theme, targets, reload)
        for outcome in outcomes:
            report.outcomes[outcome.module] = outcome
        return report

    def resolve_theme(self, name: str | None = None) -> Theme:
        if name is None:
            name = self._state.get()
        if name is None:
            raise NoCurrentThemeError(message="No theme is set and none was given")
        return self._themes.get(name)

    def _process_all(
        self,
        theme: Theme,
        targets: list[ModuleDefinition],
        reload: bool,
    ) -> list[ModuleOutcome]:
        if self._max_workers == 1 or len(targets) == 1:
            return [self._process_module(theme, module, reload) for module in targets]

        workers = min(self._max_workers, len(targets))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="niji-apply") as executor:
            # map() keeps submission order, so the report follows module order.
            return list(executor.map(lambda module: self._process_module(theme, module, reload), targets))

    def _process_module(self, theme: Theme, module: ModuleDefinition, reload: bool) -> ModuleOutcome:
        outcome = ModuleOutcome(module=module.name)
        if not module.templates:
            logger.debug("module %r has no templates; nothing to do", module.name)
            return outcome

        rendered: list[tuple[Path, str]] = []
        for target in module.templates:
            try:
                text = self._renderer.render_file(target.template, theme.variables)
            except RenderError as exc:
                return self._fail(outcome, OutcomeStatus.RENDER_FAILURE, f"{target.template.name}: {exc.message}")
            rendered.append((target.output, text))

        for output, text in rendered:
            try:
                _write_output(output, text)
            except WriteError as exc:
                return self._fail(outcome, OutcomeStatus.WRITE_FAILURE, str(exc))
            outcome.written.append(output)
            logger.debug("wrote %s", output)

        if reload and module.reload_command is not None:
            try:
                self._run_command(module.reload_command, self._reload_timeout)
            except ReloadError as exc:
                return self._fail(outcome, OutcomeStatus.RELOAD_FAILURE, exc.message)
            outcome.reloaded = True

        logger.info(
            "applied module %r (%d file(s)%s)",
            module.name,
            len(outcome.written),
            ", reloaded" if outcome.reloaded else "",
        )
        return outcome

    @staticmethod
    def _fail(outcome: ModuleOutcome, status: OutcomeStatus, reason: str) -> ModuleOutcome:
        outcome.status = status
        outcome.reason = reason
        logger.error("module %r failed (%s): %s", outcome.module, status.value, reason)
        return outcome


def _write_output(output: Path, text: str) -> None:
    try:
        atomic_write_text(output, text)
    except (OSError, UnicodeError) as exc:
        raise WriteError(message=f"Unable to write output: {exc}", path=output) from exc
