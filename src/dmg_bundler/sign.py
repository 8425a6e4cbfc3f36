"""Code signing through `codesign`."""

from __future__ import annotations

import logging
from pathlib import Path

from dmg_bundler.config import AppSettings
from dmg_bundler.errors import SigningError
from dmg_bundler.utils.process import run_captured

LOGGER = logging.getLogger(__name__)


def build_codesign_command(
    path: Path,
    identity: str,
    settings: AppSettings,
    *,
    deep: bool = False,
    is_executable: bool = False,
) -> list[str]:
    """Return the `codesign` argv for one artifact."""

    command = [settings.macos.codesign_program, "--force", "-s", identity]
    if is_executable:
        if settings.macos.entitlements is not None:
            command.extend(["--entitlements", str(settings.macos.entitlements)])
        command.extend(["--options", "runtime"])
    if deep:
        command.append("--deep")
    command.append(str(path))
    return command


def sign(
    path: Path,
    identity: str,
    settings: AppSettings,
    *,
    deep: bool = False,
    is_executable: bool = False,
    logger: logging.Logger | None = None,
) -> None:
    """Sign `path` in place with `identity`. Raises `SigningError` on failure."""

    effective_logger = logger or LOGGER
    effective_logger.info("sign.start path=%s identity=%s deep=%s", path, identity, deep)
    run_captured(
        build_codesign_command(path, identity, settings, deep=deep, is_executable=is_executable),
        step="sign",
        error_cls=SigningError,
        logger=effective_logger,
    )
