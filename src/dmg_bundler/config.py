"""Configuration models and loading logic."""

from __future__ import annotations

import os
import platform
from pathlib import Path
from typing import ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

DEFAULT_SETTINGS_FILE = Path("configs/settings.yaml")
SETTINGS_FILE_ENV = "DMG_BUNDLER_SETTINGS_FILE"


def _resolve(path: Path, project_root: Path) -> Path:
    return path if path.is_absolute() else (project_root / path).resolve()


class ProductConfig(BaseModel):
    """Product identity used to name bundles and images."""

    model_config = ConfigDict(frozen=True)

    main_binary_name: str = Field(default="app", min_length=1)
    product_name: str | None = None
    version: str = Field(default="0.1.0", min_length=1)
    arch: str = Field(default_factory=platform.machine, min_length=1)

    @property
    def display_name(self) -> str:
        """Product name, falling back to the main binary name."""

        return self.product_name or self.main_binary_name


class PathsConfig(BaseModel):
    """Project root plus the filesystem roots for bundle outputs and logs."""

    model_config = ConfigDict(frozen=True)

    project_root: Path = Path(".")
    project_out_dir: Path = Path("./target/release")
    logs_root: Path = Path("./logs")

    def resolved(self, project_root: Path) -> "PathsConfig":
        """Return a copy with project-relative paths resolved to absolute paths."""

        updates: dict[str, Path] = {}
        for field_name in type(self).model_fields:
            updates[field_name] = _resolve(getattr(self, field_name), project_root)
        return self.model_copy(update=updates)


class BundleConfig(BaseModel):
    """Inputs shared by every bundle type."""

    model_config = ConfigDict(frozen=True)

    icon: tuple[Path, ...] = ()
    app_bundle_command: tuple[str, ...] | None = None

    def resolved(self, project_root: Path) -> "BundleConfig":
        return self.model_copy(update={"icon": tuple(_resolve(path, project_root) for path in self.icon)})


class MacOSConfig(BaseModel):
    """macOS specific bundle settings."""

    model_config = ConfigDict(frozen=True)

    license: Path | None = None
    signing_identity: str | None = None
    entitlements: Path | None = None
    codesign_program: str = "codesign"

    def resolved(self, project_root: Path) -> "MacOSConfig":
        updates: dict[str, Path] = {}
        for field_name in ("license", "entitlements"):
            value = getattr(self, field_name)
            if value is not None:
                updates[field_name] = _resolve(value, project_root)
        return self.model_copy(update=updates)


class DmgConfig(BaseModel):
    """Disk-image compiler invocation settings."""

    model_config = ConfigDict(frozen=True)

    hdiutil_program: str = "hdiutil"
    filesystem: Literal["HFS+", "APFS"] = "HFS+"
    image_format: Literal["UDZO", "UDBZ", "ULFO", "ULMO"] = "UDZO"
    ci: bool = False
    ci_extra_args: tuple[str, ...] = ("-quiet",)
    compiler_timeout_seconds: float | None = Field(default=None, gt=0.0)
    cleanup_staging: bool = False


class AppSettings(BaseSettings):
    """Top-level application settings."""

    _yaml_file_override: ClassVar[Path | None] = None

    product: ProductConfig = Field(default_factory=ProductConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    bundle: BundleConfig = Field(default_factory=BundleConfig)
    macos: MacOSConfig = Field(default_factory=MacOSConfig)
    dmg: DmgConfig = Field(default_factory=DmgConfig)

    model_config = SettingsConfigDict(
        env_prefix="DMG_BUNDLER_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Use YAML defaults while allowing env vars to override values."""

        yaml_file = cls._yaml_file_override
        if yaml_file is None:
            return (init_settings, env_settings, dotenv_settings, file_secret_settings)
        yaml_settings = YamlConfigSettingsSource(settings_cls, yaml_file=yaml_file)
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            yaml_settings,
            file_secret_settings,
        )

    def as_dict(self) -> dict[str, object]:
        """Return settings as a standard nested dictionary."""

        return self.model_dump(mode="json")


def find_project_root(start: Path | None = None) -> Path:
    """Walk up from `start` (default: cwd) to the first directory holding the default settings file."""

    origin = (start or Path.cwd()).resolve()
    return next(
        (directory for directory in (origin, *origin.parents) if (directory / DEFAULT_SETTINGS_FILE).is_file()),
        origin,
    )


def resolve_settings_file(override: Path | None = None) -> Path:
    """Pick the settings file: explicit argument, then `DMG_BUNDLER_SETTINGS_FILE`, then the default.

    Relative choices are anchored at the project root.
    """

    chosen = override or Path(os.getenv(SETTINGS_FILE_ENV) or DEFAULT_SETTINGS_FILE)
    if chosen.is_absolute():
        return chosen
    return (find_project_root() / chosen).resolve()


def load_settings(config_file: Path | None = None) -> AppSettings:
    """Load YAML settings, apply environment overrides, and anchor relative paths.

    The project root is the parent of the settings file's directory. It is
    recorded as `paths.project_root`, and every relative path in the `paths`,
    `bundle` and `macos` sections is resolved against it.
    """

    settings_file = resolve_settings_file(config_file)
    project_root = settings_file.parent.parent.resolve()
    AppSettings._yaml_file_override = settings_file
    try:
        raw = AppSettings()
    finally:
        AppSettings._yaml_file_override = None
    anchored = {
        section: getattr(raw, section).resolved(project_root=project_root) for section in ("paths", "bundle", "macos")
    }
    return raw.model_copy(update=anchored)


def with_ci_mode(settings: AppSettings, ci: bool | None) -> AppSettings:
    """Return settings with the CI toggle overridden, or unchanged when `ci` is None."""

    if ci is None or ci == settings.dmg.ci:
        return settings
    return settings.model_copy(update={"dmg": settings.dmg.model_copy(update={"ci": ci})})
