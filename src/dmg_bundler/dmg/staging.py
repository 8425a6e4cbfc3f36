"""Staging tree assembly for the disk-image compiler."""

from __future__ import annotations

import logging
import shutil
from importlib import resources
from pathlib import Path

from dmg_bundler.config import AppSettings
from dmg_bundler.dmg.paths import DmgPaths
from dmg_bundler.errors import FilesystemError, ResourceWriteError
from dmg_bundler.utils.fs import copy_dir, ensure_directories, remove_tree

LOGGER = logging.getLogger(__name__)

EULA_TEMPLATE_NAME = "eula-resources-template.xml"
LICENSE_FILE_NAME = "license.txt"


def load_eula_template() -> str:
    """Return the embedded license-resource template."""

    return resources.files("dmg_bundler.resources").joinpath(EULA_TEMPLATE_NAME).read_text(encoding="utf-8")


def clean_output_dir(paths: DmgPaths, logger: logging.Logger | None = None) -> bool:
    """Remove the image output directory left by a previous run."""

    effective_logger = logger or LOGGER
    try:
        removed = remove_tree(paths.output_dir)
    except OSError as exc:
        raise FilesystemError(
            f"Failed to remove old {paths.dmg_name}: {exc}",
            step="clean_old_output",
            path=paths.output_dir,
        ) from exc
    if removed:
        effective_logger.info("staging.cleaned_old_output path=%s", paths.output_dir)
    return removed


def create_staging_tree(paths: DmgPaths) -> None:
    """Create the staging directory and its support subdirectory."""

    for label, directory in (("temporary", paths.staging_dir), ("support", paths.support_dir)):
        try:
            ensure_directories([directory])
        except OSError as exc:
            raise FilesystemError(
                f"Failed to create {label} directory: {exc}",
                step="stage_tree",
                path=directory,
            ) from exc


def copy_app_bundle(paths: DmgPaths, logger: logging.Logger | None = None) -> Path:
    """Deep-copy the application bundle into the staging directory."""

    effective_logger = logger or LOGGER
    source = paths.app_bundle_path
    destination = paths.staged_app_path
    try:
        copy_dir(source, destination)
    except OSError as exc:
        raise FilesystemError(
            f"Failed to copy {source} to {destination} to create DMG: {exc}",
            step="copy_app_bundle",
            path=source,
        ) from exc
    effective_logger.info("staging.copied_app source=%s destination=%s", source, destination)
    return destination


def write_support_resources(paths: DmgPaths, settings: AppSettings) -> list[Path]:
    """Write the license-resource template and, when configured, the license file."""

    written: list[Path] = []
    template_path = paths.support_dir / EULA_TEMPLATE_NAME
    try:
        template_path.write_text(load_eula_template(), encoding="utf-8")
    except OSError as exc:
        raise ResourceWriteError(
            f"Failed to write {EULA_TEMPLATE_NAME}: {exc}",
            step="write_support_resources",
            path=template_path,
        ) from exc
    written.append(template_path)

    license_path = settings.macos.license
    if license_path is None:
        return written

    license_target = paths.support_dir / LICENSE_FILE_NAME
    try:
        shutil.copyfile(license_path, license_target)
    except OSError as exc:
        raise ResourceWriteError(
            f"Failed to copy license file: {exc}",
            step="write_support_resources",
            path=license_path,
        ) from exc
    written.append(license_target)
    return written


def install_volume_icon(paths: DmgPaths, icon_path: Path) -> Path:
    """Copy a generated icon to the hidden name used for the volume icon."""

    target = paths.volume_icon_path
    try:
        shutil.copyfile(icon_path, target)
        # Generated icons land in the staging root; keep only the volume icon there.
        if icon_path.parent.resolve() == paths.staging_dir.resolve() and icon_path.name != target.name:
            icon_path.unlink()
    except OSError as exc:
        raise FilesystemError(
            f"Failed to create the DMG volume icon: {exc}",
            step="synthesize_icon",
            path=icon_path,
        ) from exc
    return target


def remove_staging_dir(paths: DmgPaths) -> bool:
    """Delete the staging tree after a successful run."""

    try:
        return remove_tree(paths.staging_dir)
    except OSError as exc:
        raise FilesystemError(
            f"Failed to remove staging directory: {exc}",
            step="cleanup_staging",
            path=paths.staging_dir,
        ) from exc
