"""Descriptors for packaging artifacts already present in the output root."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Sequence

from dmg_bundler.config import AppSettings

LOGGER = logging.getLogger(__name__)


class PackageType(str, Enum):
    """Package-type tags for produced artifacts."""

    MACOS_BUNDLE = "macos"
    DMG = "dmg"


@dataclass(frozen=True, slots=True)
class Bundle:
    """A produced packaging artifact identified by its package type."""

    package_type: PackageType
    bundle_paths: tuple[Path, ...]


def bundle_root(settings: AppSettings) -> Path:
    return settings.paths.project_out_dir / "bundle"


def app_bundle_path(settings: AppSettings) -> Path:
    """Location of the `{product}.app` produced by the app-bundle step."""

    return bundle_root(settings) / "macos" / f"{settings.product.display_name}.app"


def discover_bundles(settings: AppSettings, logger: logging.Logger | None = None) -> list[Bundle]:
    """Return descriptors for the app bundle and images found for the configured product."""

    effective_logger = logger or LOGGER
    root = bundle_root(settings)
    bundles: list[Bundle] = []

    app_path = app_bundle_path(settings)
    if app_path.is_dir():
        bundles.append(Bundle(package_type=PackageType.MACOS_BUNDLE, bundle_paths=(app_path,)))

    dmg_dir = root / "dmg"
    if dmg_dir.is_dir():
        images = tuple(sorted(dmg_dir.glob("*.dmg")))
        if images:
            bundles.append(Bundle(package_type=PackageType.DMG, bundle_paths=images))

    effective_logger.debug(
        "discover_bundles.found root=%s types=%s",
        root,
        [bundle.package_type.value for bundle in bundles],
    )
    return bundles


def has_package_type(bundles: Sequence[Bundle], package_type: PackageType) -> bool:
    """Return whether any descriptor carries `package_type`."""

    return any(bundle.package_type == package_type for bundle in bundles)
