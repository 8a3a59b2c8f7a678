"""Module discovery, lookup and active-set resolution."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Sequence

from niji.core.loader import find_module_file, load_module_dir
from niji.core.models import ModuleDefinition
from niji.errors import DiscoveryError, DuplicateModuleError, ModuleParseError, UnknownModuleError

logger = logging.getLogger(__name__)

_MAX_MODULE_DIR_CANDIDATES = 512


class ModuleRegistry:
    """Loads module definitions from an ordered list of search roots."""

    def __init__(
        self,
        roots: Sequence[Path],
        *,
        enabled: Sequence[str] | None = None,
        disabled: Sequence[str] = (),
    ) -> None:
        self._roots = list(roots)
        self._enabled = list(enabled) if enabled is not None else None
        self._disabled = set(disabled)
        self._modules: dict[str, ModuleDefinition] | None = None
        self._load_errors: list[str] = []

    @property
    def roots(self) -> list[Path]:
        return list(self._roots)

    def load(self) -> dict[str, ModuleDefinition]:
        modules: dict[str, ModuleDefinition] = {}
        sources: dict[str, Path] = {}
        errors: list[str] = []
        for root in self._roots:
            for module_dir in self._candidates(root, errors):
                # Checked before parsing; a malformed module still claims its name.
                name = module_dir.name
                first = sources.get(name)
                if first is not None:
                    raise DuplicateModuleError(
                        message=f"Module {name!r} is defined twice: {first} and {module_dir}",
                        path=module_dir,
                        details={"module": name, "first": str(first)},
                    )
                sources[name] = module_dir

                try:
                    module = load_module_dir(module_dir)
                except ModuleParseError as exc:
                    logger.warning("skipping module: %s", exc)
                    errors.append(str(exc))
                    continue
                modules[module.name] = module
                logger.debug("loaded module %r from %s", module.name, module.source)

        self._modules = modules
        self._load_errors = errors
        return dict(modules)

    def get(self, name: str) -> ModuleDefinition:
        module = self._loaded().get(name)
        if module is None:
            raise UnknownModuleError(
                message=f"Module {name!r} not found",
                details={"module": name},
            )
        return module

    def list_modules(self) -> list[ModuleDefinition]:
        modules = self._loaded()
        return [modules[name] for name in sorted(modules)]

    def active_modules(self) -> list[ModuleDefinition]:
        """Return the modules applied when no explicit filter is given.

        Every discovered module is active unless configuration restricts the
        set with an explicit module list or disables it by name.
        """
        if self._enabled is None:
            candidates = self.list_modules()
        else:
            self._require_known(self._enabled, context="configured")
            candidates = [self.get(name) for name in sorted(set(self._enabled))]
        return [module for module in candidates if module.name not in self._disabled]

    def resolve(self, names: Iterable[str] | None = None) -> list[ModuleDefinition]:
        """Resolve the target module set for an apply pass.

        All requested names are checked before anything is returned; a single
        unknown name fails the whole resolution.
        """
        if names is None:
            return self.active_modules()
        requested = set(names)
        self._require_known(requested, context="requested")
        resolved = [module for module in self.active_modules() if module.name in requested]
        inactive = requested.difference(module.name for module in resolved)
        if inactive:
            logger.warning("ignoring inactive modules: %s", ", ".join(sorted(inactive)))
        return resolved

    def load_errors(self) -> list[str]:
        return list(self._load_errors)

    def _require_known(self, names: Iterable[str], *, context: str) -> None:
        modules = self._loaded()
        missing = sorted(name for name in set(names) if name not in modules)
        if missing:
            joined = ", ".join(repr(name) for name in missing)
            noun = "module" if len(missing) == 1 else "modules"
            raise UnknownModuleError(
                message=f"Unknown {context} {noun}: {joined}",
                details={"modules": missing},
            )

    def _loaded(self) -> dict[str, ModuleDefinition]:
        if self._modules is None:
            self.load()
        assert self._modules is not None
        return self._modules

    @staticmethod
    def _candidates(root: Path, errors: list[str]) -> list[Path]:
        if not root.exists():
            return []
        try:
            all_dirs = sorted(path for path in root.iterdir() if path.is_dir())
        except OSError as exc:
            raise DiscoveryError(
                message=f"Failed to list modules in {root}: {exc}",
                path=root,
            ) from exc

        candidates: list[Path] = []
        for path in all_dirs:
            if find_module_file(path) is None:
                continue
            if path.is_symlink():
                errors.append(f"Skipping symlink module directory: {path}")
                continue
            candidates.append(path)
        if len(candidates) > _MAX_MODULE_DIR_CANDIDATES:
            errors.append(
                f"Module directory limit exceeded in {root}; "
                f"only first {_MAX_MODULE_DIR_CANDIDATES} folders were scanned."
            )
            candidates = candidates[:_MAX_MODULE_DIR_CANDIDATES]
        return candidates
