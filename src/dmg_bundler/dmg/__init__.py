"""Disk-image stage helpers."""

from dmg_bundler.dmg.compiler import build_hdiutil_command, run_hdiutil
from dmg_bundler.dmg.paths import DmgPaths, package_arch, package_base_name, plan_dmg_paths
from dmg_bundler.dmg.pipeline import DmgRunOptions, DmgRunResult, run_dmg_pipeline, write_run_summary
from dmg_bundler.dmg.relocate import relocate_image

__all__ = [
    "DmgPaths",
    "package_arch",
    "package_base_name",
    "plan_dmg_paths",
    "build_hdiutil_command",
    "run_hdiutil",
    "relocate_image",
    "DmgRunOptions",
    "DmgRunResult",
    "run_dmg_pipeline",
    "write_run_summary",
]
