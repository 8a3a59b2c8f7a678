"""Theme discovery and lookup."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, Sequence

from niji.core.loader import THEME_SUFFIXES, load_theme_file
from niji.core.models import Theme
from niji.errors import DiscoveryError, DuplicateThemeError, ThemeNotFoundError, ThemeParseError

logger = logging.getLogger(__name__)

_MAX_THEME_CANDIDATES = 2048


class ThemeStore:
    """Loads theme files from an ordered list of search roots.

    A malformed theme is recorded in ``load_errors()`` and left out of the
    usable set. Two files declaring the same name fail the whole load, no
    matter which roots they live in.
    """

    def __init__(self, roots: Sequence[Path]) -> None:
        self._roots = list(roots)
        self._themes: dict[str, Theme] | None = None
        self._load_errors: list[str] = []

    @property
    def roots(self) -> list[Path]:
        return list(self._roots)

    def load(self) -> dict[str, Theme]:
        themes: dict[str, Theme] = {}
        sources: dict[str, Path] = {}
        errors: list[str] = []
        for root in self._roots:
            for path in self._candidates(root, errors):
                # Names come from the file stem, so collisions are checked
                # before parsing; a broken copy still shadows a valid one.
                name = path.stem
                first = sources.get(name)
                if first is not None:
                    raise DuplicateThemeError(
                        message=f"Theme {name!r} is defined twice: {first} and {path}",
                        path=path,
                        details={"theme": name, "first": str(first)},
                    )
                sources[name] = path

                try:
                    theme = load_theme_file(path)
                except ThemeParseError as exc:
                    logger.warning("skipping theme: %s", exc)
                    errors.append(str(exc))
                    continue
                themes[theme.name] = theme
                logger.debug("loaded theme %r from %s", theme.name, path)

        self._themes = themes
        self._load_errors = errors
        return dict(themes)

    def get(self, name: str) -> Theme:
        theme = self._loaded().get(name)
        if theme is None:
            raise ThemeNotFoundError(
                message=f"Theme {name!r} not found",
                details={"theme": name},
            )
        return theme

    def iter_themes(self) -> Iterator[Theme]:
        """Yield usable themes sorted by name.

        Each call starts from the loaded snapshot, so iterating again yields
        the same sequence until ``load()`` runs again.
        """
        themes = self._loaded()
        return (themes[name] for name in sorted(themes))

    def names(self) -> list[str]:
        return sorted(self._loaded())

    def load_errors(self) -> list[str]:
        return list(self._load_errors)

    def _loaded(self) -> dict[str, Theme]:
        if self._themes is None:
            self.load()
        assert self._themes is not None
        return self._themes

    @staticmethod
    def _candidates(root: Path, errors: list[str]) -> list[Path]:
        if not root.exists():
            return []
        try:
            entries = sorted(root.iterdir())
        except OSError as exc:
            raise DiscoveryError(
                message=f"Failed to list themes in {root}: {exc}",
                path=root,
            ) from exc

        candidates = [
            path for path in entries
            if path.suffix in THEME_SUFFIXES and path.is_file()
        ]
        if len(candidates) > _MAX_THEME_CANDIDATES:
            errors.append(
                f"Theme file limit exceeded in {root}; "
                f"only the first {_MAX_THEME_CANDIDATES} files were scanned."
            )
            candidates = candidates[:_MAX_THEME_CANDIDATES]
        return candidates
