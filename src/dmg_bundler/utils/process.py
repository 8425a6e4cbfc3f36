"""Blocking external command execution with captured output."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from dmg_bundler.errors import ExternalProcessError, ProcessTimeoutError

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Captured outcome of a finished command."""

    command: list[str]
    returncode: int
    stdout: str
    stderr: str


def _decode(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def run_captured(
    command: Sequence[str],
    *,
    step: str,
    cwd: Path | None = None,
    timeout: float | None = None,
    error_cls: type[ExternalProcessError] = ExternalProcessError,
    logger: logging.Logger | None = None,
) -> CommandResult:
    """Run a command to completion with piped stdout/stderr.

    The call blocks until the process exits and both pipes are drained. A launch
    failure or non-zero exit raises `error_cls`; an expired `timeout` kills the
    child and raises `ProcessTimeoutError`.
    """

    effective_logger = logger or LOGGER
    argv = [str(part) for part in command]
    effective_logger.debug("process.run step=%s cwd=%s argv=%s", step, cwd, argv)
    try:
        completed = subprocess.run(
            argv,
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        raise ProcessTimeoutError(
            f"{argv[0]} timed out after {timeout}s",
            step=step,
            command=argv,
            stdout=_decode(exc.stdout),
            stderr=_decode(exc.stderr),
            path=cwd,
        ) from exc
    except OSError as exc:
        raise error_cls(
            f"Failed to launch {argv[0]}: {exc}",
            step=step,
            command=argv,
            path=cwd,
        ) from exc

    result = CommandResult(
        command=argv,
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )
    if result.returncode != 0:
        raise error_cls(
            f"{argv[0]} exited with a failure status",
            step=step,
            command=argv,
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
            path=cwd,
        )
    return result
