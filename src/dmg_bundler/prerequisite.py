"""Ensure an application bundle exists before the image is assembled."""

from __future__ import annotations

import logging
from functools import partial
from typing import Callable, Sequence

from dmg_bundler.bundles import Bundle, PackageType, app_bundle_path, has_package_type
from dmg_bundler.config import AppSettings
from dmg_bundler.errors import DmgBundleError, PrerequisiteError
from dmg_bundler.utils.process import run_captured

LOGGER = logging.getLogger(__name__)

AppBundleBuilder = Callable[[AppSettings], object]


def build_app_bundle(settings: AppSettings, logger: logging.Logger | None = None) -> None:
    """Run the configured app-bundle command and verify the `.app` appeared."""

    effective_logger = logger or LOGGER
    app_path = app_bundle_path(settings)
    command = settings.bundle.app_bundle_command
    if not command:
        raise PrerequisiteError(
            "Application bundle is missing and no app_bundle_command is configured",
            step="ensure_prerequisite",
            path=app_path,
        )

    effective_logger.info("prerequisite.build_app command=%s", list(command))
    result = run_captured(
        command,
        step="ensure_prerequisite",
        cwd=settings.paths.project_root,
        error_cls=PrerequisiteError,
        logger=effective_logger,
    )
    if result.stdout.strip():
        effective_logger.debug("prerequisite.stdout %s", result.stdout.strip())

    if not app_path.is_dir():
        raise PrerequisiteError(
            "App bundle command finished but the application bundle was not produced",
            step="ensure_prerequisite",
            path=app_path,
        )


def ensure_app_bundle(
    settings: AppSettings,
    bundles: Sequence[Bundle],
    builder: AppBundleBuilder | None = None,
    logger: logging.Logger | None = None,
) -> bool:
    """Invoke `builder` once when no macOS app bundle descriptor is present.

    Returns whether the builder ran.
    """

    effective_logger = logger or LOGGER
    if has_package_type(bundles, PackageType.MACOS_BUNDLE):
        return False

    effective_builder = builder or partial(build_app_bundle, logger=effective_logger)
    effective_logger.info("prerequisite.missing_app_bundle building=true")
    try:
        effective_builder(settings)
    except PrerequisiteError:
        raise
    except DmgBundleError as exc:
        raise PrerequisiteError(
            f"Application bundle build failed: {exc}",
            step="ensure_prerequisite",
            path=exc.path,
        ) from exc
    except Exception as exc:
        raise PrerequisiteError(
            f"Application bundle build failed: {exc}",
            step="ensure_prerequisite",
            path=app_bundle_path(settings),
        ) from exc
    return True
