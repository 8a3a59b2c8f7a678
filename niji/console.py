"""Console output, log setup and theme previews."""

from __future__ import annotations

import logging
import re
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TextIO

from niji.core.models import ApplyReport, Theme
from niji.core.renderer import format_value

# colors
BLUE = "\033[34m"
CYAN = "\033[36m"
GRAY = "\033[37m"
GREEN = "\033[32m"
MAGENTA = "\033[35m"
RED = "\033[31m"
YELLOW = "\033[33m"
END = "\033[0m"
# styles
BOLD = "\033[1m"
DIM = "\033[2m"

_LEVEL_STYLES = {
    logging.DEBUG: (DIM, GRAY),
    logging.INFO: (BOLD, BLUE),
    logging.WARNING: (BOLD, YELLOW),
    logging.ERROR: (BOLD, RED),
    logging.CRITICAL: (BOLD, MAGENTA),
}

_HEX_COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")
_RGB_COLOR_RE = re.compile(
    r"^rgba?\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*(?:,\s*[\d.]+%?\s*)?\)$",
    re.IGNORECASE,
)

_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def colorize(text: str, *styles: str) -> str:
    if not styles:
        return text
    return f"{''.join(styles)}{text}{END}"


class ConsoleFormatter(logging.Formatter):
    """Prefixes records with a short, optionally colored, level tag."""

    def __init__(self, color: bool) -> None:
        super().__init__("%(message)s")
        self._color = color

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        tag = record.levelname.lower()
        if self._color:
            tag = colorize(tag, *_LEVEL_STYLES.get(record.levelno, ()))
        return f"{tag}: {message}"


def configure_logging(
    *,
    quiet: bool = False,
    verbose: bool = False,
    color: bool = True,
    log_dir: Path | None = None,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Configure the ``niji`` logger for a CLI invocation.

    The console handler honours --quiet/--verbose; the rotating file handler
    always records debug output when ``log_dir`` is writable.
    """
    logger = logging.getLogger("niji")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    if quiet:
        console_level = logging.CRITICAL + 1
    elif verbose:
        console_level = logging.DEBUG
    else:
        console_level = logging.INFO
    target = stream or sys.stderr
    console = logging.StreamHandler(target)
    console.setLevel(console_level)
    console.setFormatter(ConsoleFormatter(color=color and _is_tty(target)))
    logger.addHandler(console)

    if log_dir is not None:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_dir / "niji.log",
                maxBytes=512_000,
                backupCount=3,
                encoding="utf-8",
            )
        except OSError as exc:
            logger.debug("file logging disabled: %s", exc)
        else:
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
            logger.addHandler(file_handler)
    return logger


def _is_tty(stream: TextIO) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def parse_color(value: object) -> tuple[int, int, int] | None:
    """Return the RGB triple for a color-looking value, else None."""
    if not isinstance(value, str):
        return None
    text = value.strip()
    if _HEX_COLOR_RE.match(text):
        digits = text[1:]
        if len(digits) == 3:
            digits = "".join(ch * 2 for ch in digits)
        return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)
    match = _RGB_COLOR_RE.match(text)
    if match:
        channels = tuple(int(part) for part in match.groups())
        if all(channel <= 255 for channel in channels):
            return channels  # type: ignore[return-value]
    return None


def swatch(rgb: tuple[int, int, int], width: int = 4) -> str:
    red, green, blue = rgb
    return f"\033[48;2;{red};{green};{blue}m{' ' * width}{END}"


def format_theme_preview(theme: Theme) -> str:
    """Render a colored table of a theme's variables."""
    lines = [f"Theme {colorize(repr(theme.name), BOLD)}:", ""]
    if not theme.variables:
        return "\n".join(lines)
    width = max(len(name) for name in theme.variables)
    for name in sorted(theme.variables):
        value = theme.variables[name]
        rgb = parse_color(value)
        marker = swatch(rgb) if rgb is not None else " " * 4
        lines.append(f"  {marker} {colorize(name.ljust(width), CYAN)}  {format_value(value)}")
    return "\n".join(lines)


def format_report(report: ApplyReport, color: bool = True) -> str:
    """Summarize an apply report, one line per module."""
    lines = []
    for outcome in report.outcomes.values():
        if outcome.ok:
            status = colorize("ok", GREEN) if color else "ok"
            detail = f"{len(outcome.written)} file(s)"
            if outcome.reloaded:
                detail += ", reloaded"
        else:
            label = outcome.status.value.replace("_", " ")
            status = colorize(label, RED) if color else label
            detail = outcome.reason
        lines.append(f"{outcome.module}: {status} ({detail})")
    return "\n".join(lines)
