"""Deterministic output path planning for disk images."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from dmg_bundler.bundles import bundle_root as resolve_bundle_root
from dmg_bundler.config import AppSettings

ARCH_ALIASES: dict[str, str] = {"x86_64": "x64"}

STAGING_DIR_NAME = "temp"
SUPPORT_DIR_NAME = "support"
VOLUME_ICON_NAME = ".VolumeIcon.icns"


@dataclass(frozen=True, slots=True)
class DmgPaths:
    """All paths used by one disk-image run."""

    output_dir: Path
    staging_dir: Path
    support_dir: Path
    dmg_name: str
    dmg_path: Path
    bundle_dir: Path
    bundle_file_name: str

    @property
    def app_bundle_path(self) -> Path:
        return self.bundle_dir / self.bundle_file_name

    @property
    def staged_app_path(self) -> Path:
        return self.staging_dir / self.bundle_file_name

    @property
    def intermediate_dmg_path(self) -> Path:
        """Where the compiler leaves its output, relative to its working directory."""

        return self.bundle_dir / self.dmg_name

    @property
    def volume_icon_path(self) -> Path:
        return self.staging_dir / VOLUME_ICON_NAME

    def as_dict(self) -> dict[str, str]:
        return {
            "output_dir": str(self.output_dir),
            "staging_dir": str(self.staging_dir),
            "support_dir": str(self.support_dir),
            "dmg_name": self.dmg_name,
            "dmg_path": str(self.dmg_path),
            "bundle_dir": str(self.bundle_dir),
            "bundle_file_name": self.bundle_file_name,
            "app_bundle_path": str(self.app_bundle_path),
            "intermediate_dmg_path": str(self.intermediate_dmg_path),
        }


def package_arch(arch: str) -> str:
    """Map a target architecture to its package-name spelling.

    Only `x86_64` is aliased; unknown architectures pass through verbatim.
    """

    return ARCH_ALIASES.get(arch, arch)


def package_base_name(settings: AppSettings) -> str:
    """Return `{binary}_{version}_{arch}` for the configured product."""

    product = settings.product
    return f"{product.main_binary_name}_{product.version}_{package_arch(product.arch)}"


def plan_dmg_paths(settings: AppSettings) -> DmgPaths:
    """Derive every disk-image path from settings without touching the filesystem."""

    bundle_root = resolve_bundle_root(settings)
    output_dir = bundle_root / "dmg"
    staging_dir = output_dir / STAGING_DIR_NAME
    dmg_name = f"{package_base_name(settings)}.dmg"
    return DmgPaths(
        output_dir=output_dir,
        staging_dir=staging_dir,
        support_dir=staging_dir / SUPPORT_DIR_NAME,
        dmg_name=dmg_name,
        dmg_path=output_dir / dmg_name,
        bundle_dir=bundle_root / "macos",
        bundle_file_name=f"{settings.product.display_name}.app",
    )
