"""Exception hierarchy for bundle pipeline failures."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence


class DmgBundleError(Exception):
    """Base error carrying the failed pipeline step and the path involved."""

    def __init__(self, message: str, *, step: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.step = step
        self.path = path

    def __str__(self) -> str:
        rendered = f"[{self.step}] {self.message}"
        if self.path is not None:
            rendered += f" (path={self.path})"
        return rendered


class PrerequisiteError(DmgBundleError):
    """The application bundle could not be produced."""


class FilesystemError(DmgBundleError):
    """Directory removal, creation, or copy failed."""


class ResourceWriteError(DmgBundleError):
    """An embedded or configured support resource could not be written."""


class RelocationError(DmgBundleError):
    """The compiled image could not be moved to its final path."""


class PipelineCancelledError(DmgBundleError):
    """Cancellation was requested before the named step started."""


class ExternalProcessError(DmgBundleError):
    """An external command could not be launched or exited non-zero."""

    def __init__(
        self,
        message: str,
        *,
        step: str,
        command: Sequence[str],
        returncode: int | None = None,
        stdout: str = "",
        stderr: str = "",
        path: Path | None = None,
    ) -> None:
        super().__init__(message, step=step, path=path)
        self.command = list(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr

    def __str__(self) -> str:
        rendered = super().__str__()
        if self.returncode is not None:
            rendered += f" exit_code={self.returncode}"
        detail = self.stderr.strip() or self.stdout.strip()
        if detail:
            rendered += f": {detail}"
        return rendered


class ProcessTimeoutError(ExternalProcessError):
    """An external command exceeded its configured timeout and was killed."""


class CompilerError(ExternalProcessError):
    """The disk-image compiler failed."""


class SigningError(ExternalProcessError):
    """The code signer failed."""
