"""Persistence of the current theme name."""

from __future__ import annotations

import logging
from pathlib import Path

from niji.core.atomic import atomic_write_text
from niji.errors import PersistenceError

logger = logging.getLogger(__name__)


class StateStore:
    """Single reader and writer of the persisted current theme reference.

    The reference is one file holding the theme name. ``set`` replaces it
    atomically and ``unset`` removes it; neither touches rendered outputs.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def get(self) -> str | None:
        """Return the current theme name, or None when no theme is set."""
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            raise PersistenceError(
                message=f"Unable to read the current theme: {exc}",
                path=self._path,
            ) from exc
        name = raw.strip()
        return name or None

    def set(self, name: str) -> None:
        cleaned = (name or "").strip()
        if not cleaned or any(ch in cleaned for ch in ("\n", "\r")):
            raise ValueError(f"Invalid theme name: {name!r}")
        try:
            atomic_write_text(self._path, cleaned + "\n")
        except OSError as exc:
            raise PersistenceError(
                message=f"Unable to store the current theme: {exc}",
                path=self._path,
            ) from exc
        logger.debug("current theme set to %r in %s", cleaned, self._path)

    def unset(self) -> None:
        try:
            self._path.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise PersistenceError(
                message=f"Unable to clear the current theme: {exc}",
                path=self._path,
            ) from exc
        logger.debug("current theme cleared (%s)", self._path)
