"""Invocation of `hdiutil` to compile the staging tree into an image."""

from __future__ import annotations

import logging
from pathlib import Path

from dmg_bundler.config import AppSettings
from dmg_bundler.dmg.paths import DmgPaths
from dmg_bundler.errors import CompilerError, FilesystemError
from dmg_bundler.utils.process import run_captured

LOGGER = logging.getLogger(__name__)


def build_hdiutil_command(paths: DmgPaths, settings: AppSettings) -> list[str]:
    """Return the `hdiutil create` argv for the planned image.

    The output name is relative; `hdiutil` must run from the bundle directory.
    """

    dmg = settings.dmg
    command = [
        dmg.hdiutil_program,
        "create",
        paths.dmg_name,
        "-volname",
        settings.product.display_name,
        "-fs",
        dmg.filesystem,
        "-format",
        dmg.image_format,
        "-srcfolder",
        str(paths.staging_dir),
    ]
    if dmg.ci:
        command.extend(dmg.ci_extra_args)
    return command


def run_hdiutil(paths: DmgPaths, settings: AppSettings, logger: logging.Logger | None = None) -> Path:
    """Compile the staging tree and return the path of the produced image."""

    effective_logger = logger or LOGGER
    output = paths.intermediate_dmg_path
    if output.exists():
        try:
            output.unlink()
        except OSError as exc:
            raise FilesystemError(
                f"Failed to remove stale image {paths.dmg_name}: {exc}",
                step="invoke_compiler",
                path=output,
            ) from exc

    command = build_hdiutil_command(paths, settings)
    effective_logger.info("hdiutil.create name=%s cwd=%s ci=%s", paths.dmg_name, paths.bundle_dir, settings.dmg.ci)
    result = run_captured(
        command,
        step="invoke_compiler",
        cwd=paths.bundle_dir,
        timeout=settings.dmg.compiler_timeout_seconds,
        error_cls=CompilerError,
        logger=effective_logger,
    )
    if result.stdout.strip():
        effective_logger.debug("hdiutil.stdout %s", result.stdout.strip())

    if not output.is_file():
        raise CompilerError(
            f"{command[0]} reported success but produced no image",
            step="invoke_compiler",
            command=command,
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
            path=output,
        )
    return output
