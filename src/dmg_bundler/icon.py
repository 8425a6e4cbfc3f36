"""Multi-resolution `.icns` synthesis from configured icon files."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from PIL import Image

from dmg_bundler.config import AppSettings
from dmg_bundler.errors import FilesystemError

LOGGER = logging.getLogger(__name__)


def _load_square_pngs(icon_paths: list[Path], logger: logging.Logger) -> list[Image.Image]:
    images: list[Image.Image] = []
    for icon_path in icon_paths:
        try:
            with Image.open(icon_path) as opened:
                opened.load()
                image = opened.convert("RGBA")
        except OSError as exc:
            raise FilesystemError(
                f"Failed to read icon image: {exc}",
                step="synthesize_icon",
                path=icon_path,
            ) from exc
        if image.width != image.height:
            logger.warning("icon.skip_non_square path=%s size=%sx%s", icon_path, image.width, image.height)
            continue
        images.append(image)
    images.sort(key=lambda image: image.width, reverse=True)
    return images


def create_icns_file(
    out_dir: Path,
    settings: AppSettings,
    logger: logging.Logger | None = None,
) -> Path | None:
    """Write `{product}.icns` into `out_dir` and return its path.

    A configured `.icns` file is copied as-is; otherwise the square PNG icons are
    packed into one ICNS container, largest first. Returns None when no icon is
    configured or none of the PNGs is usable.
    """

    effective_logger = logger or LOGGER
    icon_paths = list(settings.bundle.icon)
    if not icon_paths:
        return None

    destination = out_dir / f"{settings.product.display_name}.icns"

    for icon_path in icon_paths:
        if icon_path.suffix.lower() == ".icns":
            try:
                shutil.copyfile(icon_path, destination)
            except OSError as exc:
                raise FilesystemError(
                    f"Failed to copy icon file: {exc}",
                    step="synthesize_icon",
                    path=icon_path,
                ) from exc
            effective_logger.info("icon.copied source=%s destination=%s", icon_path, destination)
            return destination

    png_paths = [path for path in icon_paths if path.suffix.lower() == ".png"]
    images = _load_square_pngs(png_paths, effective_logger)
    if not images:
        effective_logger.warning("icon.no_usable_png configured=%s", len(icon_paths))
        return None

    try:
        images[0].save(destination, format="ICNS", append_images=images[1:])
    except OSError as exc:
        raise FilesystemError(
            f"Failed to write icns file: {exc}",
            step="synthesize_icon",
            path=destination,
        ) from exc
    effective_logger.info(
        "icon.generated destination=%s sizes=%s",
        destination,
        [image.width for image in images],
    )
    return destination
