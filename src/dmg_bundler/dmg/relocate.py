"""Move the compiled image to its public path."""

from __future__ import annotations

import errno
import logging
import os
import shutil
from pathlib import Path

from dmg_bundler.errors import RelocationError
from dmg_bundler.utils.fs import replacing

LOGGER = logging.getLogger(__name__)


def _copy_across_devices(source: Path, target: Path) -> None:
    """Copy next to `target`, swap it in, then drop `source`."""

    with replacing(target) as temp_path:
        shutil.copy2(source, temp_path)
    source.unlink()


def relocate_image(source: Path, target: Path, logger: logging.Logger | None = None) -> Path:
    """Rename `source` to `target`, copying then deleting across filesystems."""

    effective_logger = logger or LOGGER
    try:
        os.replace(source, target)
    except OSError as exc:
        if exc.errno != errno.EXDEV:
            raise RelocationError(
                f"Failed to move {source} to {target}: {exc}",
                step="relocate",
                path=target,
            ) from exc
        effective_logger.info("relocate.cross_device source=%s target=%s", source, target)
        try:
            _copy_across_devices(source, target)
        except OSError as copy_exc:
            raise RelocationError(
                f"Failed to copy {source} to {target}: {copy_exc}",
                step="relocate",
                path=target,
            ) from copy_exc
    return target
