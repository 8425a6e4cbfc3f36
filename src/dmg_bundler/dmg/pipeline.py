"""Disk-image pipeline orchestration."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Any, Callable, Sequence
from uuid import uuid4

from dmg_bundler.bundles import Bundle
from dmg_bundler.config import AppSettings
from dmg_bundler.dmg.compiler import run_hdiutil
from dmg_bundler.dmg.paths import DmgPaths, plan_dmg_paths
from dmg_bundler.dmg.relocate import relocate_image
from dmg_bundler.dmg.staging import (
    clean_output_dir,
    copy_app_bundle,
    create_staging_tree,
    install_volume_icon,
    remove_staging_dir,
    write_support_resources,
)
from dmg_bundler.errors import CompilerError, DmgBundleError, FilesystemError, PipelineCancelledError, SigningError
from dmg_bundler.icon import create_icns_file
from dmg_bundler.prerequisite import AppBundleBuilder, ensure_app_bundle
from dmg_bundler.sign import sign
from dmg_bundler.utils.fs import write_json_atomically
from dmg_bundler.utils.time_utils import now_utc

LOGGER = logging.getLogger(__name__)

IconBuilder = Callable[[Path, AppSettings], Path | None]
DmgCompiler = Callable[[DmgPaths, AppSettings], Path]
Signer = Callable[..., object]


@dataclass(frozen=True, slots=True)
class DmgRunOptions:
    """Runtime options for one disk-image run."""

    cancel_event: threading.Event | None = None


@dataclass(frozen=True, slots=True)
class DmgRunResult:
    """Return object for disk-image run outcomes."""

    run_id: str
    dmg_path: Path
    paths: DmgPaths
    app_bundle_built: bool
    icon_path: Path | None
    signed: bool
    staging_removed: bool
    elapsed_seconds: float

    def as_summary(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "dmg_path": str(self.dmg_path),
            "paths": self.paths.as_dict(),
            "app_bundle_built": self.app_bundle_built,
            "icon_path": str(self.icon_path) if self.icon_path is not None else None,
            "signed": self.signed,
            "staging_removed": self.staging_removed,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
            "finished_ts": now_utc().isoformat(),
        }


def _check_cancelled(options: DmgRunOptions, next_step: str) -> None:
    """Refuse to start `next_step` once cancellation has been requested."""

    if options.cancel_event is not None and options.cancel_event.is_set():
        raise PipelineCancelledError("Run cancelled", step=next_step)


def run_dmg_pipeline(
    settings: AppSettings,
    bundles: Sequence[Bundle] = (),
    *,
    options: DmgRunOptions | None = None,
    app_builder: AppBundleBuilder | None = None,
    icon_builder: IconBuilder | None = None,
    compiler: DmgCompiler | None = None,
    signer: Signer | None = None,
    logger: logging.Logger | None = None,
) -> DmgRunResult:
    """Build the disk image for the configured product and return where it landed.

    Steps run strictly in order and the first failure aborts the run with a
    `DmgBundleError` naming the step. Collaborators default to the real
    implementations and can be replaced for testing.
    """

    effective_logger = logger or LOGGER
    run_options = options or DmgRunOptions()
    effective_icon_builder = icon_builder or partial(create_icns_file, logger=effective_logger)
    effective_compiler = compiler or partial(run_hdiutil, logger=effective_logger)
    effective_signer = signer or partial(sign, logger=effective_logger)

    run_id = f"dmg-run-{uuid4().hex[:12]}"
    started_mono = time.monotonic()

    _check_cancelled(run_options, "ensure_prerequisite")
    app_bundle_built = ensure_app_bundle(settings, bundles, builder=app_builder, logger=effective_logger)

    paths = plan_dmg_paths(settings)
    effective_logger.info("dmg_bundle.start run_id=%s name=%s path=%s", run_id, paths.dmg_name, paths.dmg_path)

    _check_cancelled(run_options, "clean_old_output")
    clean_output_dir(paths, logger=effective_logger)

    _check_cancelled(run_options, "stage_tree")
    create_staging_tree(paths)

    _check_cancelled(run_options, "copy_app_bundle")
    copy_app_bundle(paths, logger=effective_logger)

    _check_cancelled(run_options, "write_support_resources")
    write_support_resources(paths, settings)

    _check_cancelled(run_options, "synthesize_icon")
    try:
        icon_path = effective_icon_builder(paths.staging_dir, settings)
    except DmgBundleError:
        raise
    except Exception as exc:
        raise FilesystemError(
            f"Failed to create volume icon: {exc}",
            step="synthesize_icon",
            path=paths.staging_dir,
        ) from exc
    volume_icon: Path | None = None
    if icon_path is not None:
        volume_icon = install_volume_icon(paths, icon_path)

    _check_cancelled(run_options, "invoke_compiler")
    try:
        compiled_path = effective_compiler(paths, settings)
    except DmgBundleError:
        raise
    except Exception as exc:
        raise CompilerError(
            f"Failed to compile {paths.dmg_name}: {exc}",
            step="invoke_compiler",
            command=[],
            path=paths.bundle_dir,
        ) from exc

    _check_cancelled(run_options, "relocate")
    dmg_path = relocate_image(compiled_path, paths.dmg_path, logger=effective_logger)

    signed = False
    identity = settings.macos.signing_identity
    if identity:
        _check_cancelled(run_options, "sign")
        try:
            effective_signer(dmg_path, identity, settings, deep=False)
        except DmgBundleError:
            raise
        except Exception as exc:
            raise SigningError(
                f"Failed to sign {dmg_path.name}: {exc}",
                step="sign",
                command=[],
                path=dmg_path,
            ) from exc
        signed = True

    staging_removed = False
    if settings.dmg.cleanup_staging:
        staging_removed = remove_staging_dir(paths)

    result = DmgRunResult(
        run_id=run_id,
        dmg_path=dmg_path,
        paths=paths,
        app_bundle_built=app_bundle_built,
        icon_path=volume_icon,
        signed=signed,
        staging_removed=staging_removed,
        elapsed_seconds=time.monotonic() - started_mono,
    )
    effective_logger.info(
        "dmg_bundle.summary run_id=%s dmg=%s signed=%s icon=%s staging_removed=%s elapsed_s=%.2f",
        run_id,
        dmg_path,
        signed,
        volume_icon is not None,
        staging_removed,
        result.elapsed_seconds,
    )
    return result


def write_run_summary(result: DmgRunResult, output_path: Path) -> Path:
    """Persist the run summary as JSON."""

    return write_json_atomically(result.as_summary(), output_path)
