"""Execution of module reload commands."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass

from niji.core.models import ReloadCommand
from niji.errors import ReloadError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
_STDERR_TAIL = 400


@dataclass(frozen=True, slots=True)
class CommandResult:
    returncode: int
    stdout: str
    stderr: str


def run_command(command: ReloadCommand, timeout: float = DEFAULT_TIMEOUT) -> CommandResult:
    """Run ``command`` and wait at most ``timeout`` seconds.

    Spawn failures, timeouts and non-zero exits all raise ReloadError, so
    callers see one failure type whatever went wrong.
    """
    logger.debug("running %s (timeout=%ss)", command, timeout)
    try:
        proc = subprocess.run(  # noqa: S603
            command.argv,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
            shell=False,
        )
    except subprocess.TimeoutExpired as exc:
        raise ReloadError(
            message=f"'{command.program}' timed out after {timeout:g}s",
            details={"argv": command.argv, "timeout": timeout},
        ) from exc
    except OSError as exc:
        raise ReloadError(
            message=f"'{command.program}' could not be started: {exc}",
            details={"argv": command.argv},
        ) from exc

    if proc.returncode != 0:
        stderr = (proc.stderr or "").strip()
        message = f"'{command.program}' exited with status {proc.returncode}"
        if stderr:
            message += f": {stderr[-_STDERR_TAIL:]}"
        raise ReloadError(
            message=message,
            details={"argv": command.argv, "returncode": proc.returncode},
        )
    return CommandResult(returncode=proc.returncode, stdout=proc.stdout or "", stderr=proc.stderr or "")
