"""Shared fixtures for bundle pipeline tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import pytest

from dmg_bundler.config import AppSettings, BundleConfig, DmgConfig, MacOSConfig, PathsConfig, ProductConfig
from dmg_bundler.dmg.paths import DmgPaths


def build_settings(
    out_dir: Path,
    *,
    binary: str = "app",
    version: str = "1.0.0",
    arch: str = "x86_64",
    bundle: dict[str, Any] | None = None,
    macos: dict[str, Any] | None = None,
    dmg: dict[str, Any] | None = None,
) -> AppSettings:
    return AppSettings(
        product=ProductConfig(main_binary_name=binary, version=version, arch=arch),
        paths=PathsConfig(project_root=out_dir.parent, project_out_dir=out_dir, logs_root=out_dir / "logs"),
        bundle=BundleConfig(**(bundle or {})),
        macos=MacOSConfig(**(macos or {})),
        dmg=DmgConfig(**(dmg or {})),
    )


def make_app_bundle(out_dir: Path, name: str = "app") -> Path:
    """Create a minimal `{name}.app` tree under `bundle/macos`."""

    app_dir = out_dir / "bundle" / "macos" / f"{name}.app"
    macos_dir = app_dir / "Contents" / "MacOS"
    macos_dir.mkdir(parents=True)
    (app_dir / "Contents" / "Info.plist").write_text("<plist><dict/></plist>\n", encoding="utf-8")
    (macos_dir / name).write_bytes(b"\xcf\xfa\xed\xfe binary")
    resources_dir = app_dir / "Contents" / "Resources"
    resources_dir.mkdir()
    (resources_dir / "data.txt").write_text("payload\n", encoding="utf-8")
    (resources_dir / "current").symlink_to("data.txt")
    return app_dir


class FakeCompiler:
    """Stands in for `run_hdiutil`: records calls and writes an image file."""

    def __init__(self) -> None:
        self.calls: list[DmgPaths] = []
        self.staged_entries: list[list[str]] = []

    def __call__(self, paths: DmgPaths, settings: AppSettings) -> Path:
        self.calls.append(paths)
        self.staged_entries.append(sorted(entry.name for entry in paths.staging_dir.iterdir()))
        output = paths.intermediate_dmg_path
        output.write_bytes(b"fake-dmg")
        return output


class FakeSigner:
    def __init__(self) -> None:
        self.calls: list[tuple[Path, str, bool]] = []

    def __call__(self, path: Path, identity: str, settings: AppSettings, *, deep: bool = False) -> None:
        self.calls.append((path, identity, deep))


@pytest.fixture
def out_dir(tmp_path: Path) -> Path:
    return tmp_path / "out"


@pytest.fixture
def settings_factory(out_dir: Path) -> Callable[..., AppSettings]:
    def factory(**kwargs: Any) -> AppSettings:
        return build_settings(out_dir, **kwargs)

    return factory


@pytest.fixture
def app_bundle(out_dir: Path) -> Path:
    return make_app_bundle(out_dir)


@pytest.fixture
def fake_compiler() -> FakeCompiler:
    return FakeCompiler()


@pytest.fixture
def fake_signer() -> FakeSigner:
    return FakeSigner()


@pytest.fixture
def app_bundle_factory(out_dir: Path) -> Callable[[], Path]:
    return lambda: make_app_bundle(out_dir)
