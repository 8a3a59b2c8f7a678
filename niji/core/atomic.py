"""Atomic file replacement helpers."""

from __future__ import annotations

import os
import stat
import uuid
from pathlib import Path

_TEMP_FLAGS = os.O_WRONLY | os.O_CREAT | os.O_EXCL | getattr(os, "O_CLOEXEC", 0)


def atomic_write_text(path: str | Path, text: str) -> None:
    """Write ``text`` to ``path`` so readers see either the old or the new content.

    The data goes to a temporary file next to the real target, is flushed to
    disk, and then renamed over it. A symlinked ``path`` is followed, so the
    link stays in place and the file it points to is updated. Any failure
    removes the temporary file and re-raises; the existing file is left
    untouched.
    """
    target = Path(os.path.realpath(path))
    target.parent.mkdir(parents=True, exist_ok=True)

    tmp_path = target.parent / f".{target.name}.{uuid.uuid4().hex[:12]}.tmp"
    # 0o666 lets the process umask decide the mode of brand new outputs.
    fd = os.open(tmp_path, _TEMP_FLAGS, 0o666)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        _copy_mode(target, tmp_path)
        os.replace(tmp_path, target)
    except BaseException:
        try:
            tmp_path.unlink()
        except FileNotFoundError:
            pass
        raise


def _copy_mode(source: Path, dest: Path) -> None:
    try:
        mode = stat.S_IMODE(source.stat().st_mode)
    except FileNotFoundError:
        return
    os.chmod(dest, mode)
