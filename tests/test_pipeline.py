from __future__ import annotations

import json
import logging
import subprocess
import threading
from pathlib import Path
from typing import Any

import pytest

from dmg_bundler.bundles import Bundle, PackageType
from dmg_bundler.config import AppSettings
from dmg_bundler.dmg.paths import VOLUME_ICON_NAME, DmgPaths, plan_dmg_paths
from dmg_bundler.dmg.pipeline import DmgRunOptions, run_dmg_pipeline, write_run_summary
from dmg_bundler.errors import (
    CompilerError,
    FilesystemError,
    PipelineCancelledError,
    PrerequisiteError,
    SigningError,
)


def _present(app_bundle: Path) -> list[Bundle]:
    return [Bundle(PackageType.MACOS_BUNDLE, (app_bundle,))]


def _no_icon(staging_dir: Path, settings: AppSettings) -> None:
    return None


def test_pipeline_produces_image_at_final_path(settings_factory, app_bundle, fake_compiler, fake_signer) -> None:
    settings = settings_factory()

    result = run_dmg_pipeline(
        settings,
        _present(app_bundle),
        compiler=fake_compiler,
        signer=fake_signer,
    )

    assert result.dmg_path == settings.paths.project_out_dir / "bundle" / "dmg" / "app_1.0.0_x64.dmg"
    assert result.dmg_path.read_bytes() == b"fake-dmg"
    assert not result.paths.intermediate_dmg_path.exists()
    assert result.signed is False
    assert fake_signer.calls == []
    assert result.icon_path is None
    assert result.app_bundle_built is False


def test_staging_tree_holds_app_and_support_only(settings_factory, app_bundle, fake_compiler) -> None:
    result = run_dmg_pipeline(settings_factory(), _present(app_bundle), compiler=fake_compiler)

    assert fake_compiler.staged_entries == [["app.app", "support"]]
    assert sorted(p.name for p in result.paths.support_dir.iterdir()) == ["eula-resources-template.xml"]


def test_generated_icon_becomes_volume_icon(settings_factory, app_bundle, fake_compiler) -> None:
    def icon_builder(staging_dir: Path, settings: AppSettings) -> Path:
        generated = staging_dir / "app.icns"
        generated.write_bytes(b"icns")
        return generated

    result = run_dmg_pipeline(
        settings_factory(),
        _present(app_bundle),
        icon_builder=icon_builder,
        compiler=fake_compiler,
    )

    assert fake_compiler.staged_entries == [sorted([VOLUME_ICON_NAME, "app.app", "support"])]
    assert result.icon_path == result.paths.volume_icon_path


def test_signer_receives_final_path(settings_factory, app_bundle, fake_compiler, fake_signer) -> None:
    settings = settings_factory(macos={"signing_identity": "Developer ID Application: Example"})

    result = run_dmg_pipeline(settings, _present(app_bundle), compiler=fake_compiler, signer=fake_signer)

    assert fake_signer.calls == [(result.dmg_path, "Developer ID Application: Example", False)]
    assert fake_signer.calls[0][0] != fake_compiler.calls[0].intermediate_dmg_path
    assert result.signed is True


def test_second_run_leaves_exactly_one_image(settings_factory, app_bundle, fake_compiler) -> None:
    settings = settings_factory()

    first = run_dmg_pipeline(settings, _present(app_bundle), compiler=fake_compiler)
    (first.paths.output_dir / "stray.dmg").write_bytes(b"old")
    second = run_dmg_pipeline(settings, _present(app_bundle), compiler=fake_compiler)

    assert first.dmg_path == second.dmg_path
    assert sorted(p.name for p in second.paths.output_dir.glob("*.dmg")) == ["app_1.0.0_x64.dmg"]


def test_missing_app_bundle_invokes_builder_once_before_staging(
    settings_factory, out_dir, app_bundle_factory, fake_compiler
) -> None:
    calls: list[bool] = []

    def builder(settings: AppSettings) -> None:
        calls.append((out_dir / "bundle" / "dmg").exists())
        app_bundle_factory()

    result = run_dmg_pipeline(settings_factory(), [], app_builder=builder, compiler=fake_compiler)

    assert calls == [False]
    assert result.app_bundle_built is True
    assert result.dmg_path.exists()


def test_missing_app_bundle_without_builder_command_fails(settings_factory, fake_compiler) -> None:
    with pytest.raises(PrerequisiteError):
        run_dmg_pipeline(settings_factory(), [], compiler=fake_compiler)

    assert fake_compiler.calls == []


def test_copy_failure_aborts_before_compiler(settings_factory, out_dir, fake_compiler, fake_signer) -> None:
    bundles = [Bundle(PackageType.MACOS_BUNDLE, (out_dir / "bundle" / "macos" / "app.app",))]

    with pytest.raises(FilesystemError) as excinfo:
        run_dmg_pipeline(
            settings_factory(macos={"signing_identity": "ID"}),
            bundles,
            compiler=fake_compiler,
            signer=fake_signer,
        )

    assert excinfo.value.step == "copy_app_bundle"
    assert fake_compiler.calls == []
    assert fake_signer.calls == []


def test_icon_builder_crash_is_reported_as_icon_step(settings_factory, app_bundle, fake_compiler) -> None:
    def icon_builder(staging_dir: Path, settings: AppSettings) -> Path:
        raise ValueError("truncated PNG header")

    with pytest.raises(FilesystemError) as excinfo:
        run_dmg_pipeline(settings_factory(), _present(app_bundle), icon_builder=icon_builder, compiler=fake_compiler)

    assert excinfo.value.step == "synthesize_icon"
    assert "truncated PNG header" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, ValueError)
    assert fake_compiler.calls == []


def test_compiler_crash_is_reported_as_compiler_error(settings_factory, app_bundle) -> None:
    def compiler(paths: DmgPaths, settings: AppSettings) -> Path:
        raise RuntimeError("disk arbitration unavailable")

    with pytest.raises(CompilerError) as excinfo:
        run_dmg_pipeline(settings_factory(), _present(app_bundle), icon_builder=_no_icon, compiler=compiler)

    assert excinfo.value.step == "invoke_compiler"
    assert "disk arbitration unavailable" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_signer_crash_is_reported_as_signing_error(settings_factory, app_bundle, fake_compiler) -> None:
    def signer(path: Path, identity: str, settings: AppSettings, *, deep: bool = False) -> None:
        raise KeyError(identity)

    with pytest.raises(SigningError) as excinfo:
        run_dmg_pipeline(
            settings_factory(macos={"signing_identity": "ID"}),
            _present(app_bundle),
            icon_builder=_no_icon,
            compiler=fake_compiler,
            signer=signer,
        )

    assert excinfo.value.step == "sign"
    assert excinfo.value.path is not None
    assert excinfo.value.path.name == "app_1.0.0_x64.dmg"
    assert isinstance(excinfo.value.__cause__, KeyError)


def test_collaborator_bundle_errors_pass_through(settings_factory, app_bundle) -> None:
    original = CompilerError("hdiutil: create failed", step="invoke_compiler", command=["hdiutil"], returncode=1)

    def compiler(paths: DmgPaths, settings: AppSettings) -> Path:
        raise original

    with pytest.raises(CompilerError) as excinfo:
        run_dmg_pipeline(settings_factory(), _present(app_bundle), icon_builder=_no_icon, compiler=compiler)

    assert excinfo.value is original


def test_default_compiler_logs_to_caller_logger(
    settings_factory, app_bundle, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    settings = settings_factory()
    intermediate = plan_dmg_paths(settings).intermediate_dmg_path

    def fake_run(argv: list[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
        intermediate.write_bytes(b"hdiutil-image")
        return subprocess.CompletedProcess(argv, 0, "created\n", "")

    monkeypatch.setattr("dmg_bundler.utils.process.subprocess.run", fake_run)
    caller_logger = logging.getLogger("release.dmg")

    with caplog.at_level(logging.INFO, logger="release.dmg"):
        result = run_dmg_pipeline(settings, _present(app_bundle), icon_builder=_no_icon, logger=caller_logger)

    assert result.dmg_path.read_bytes() == b"hdiutil-image"
    compiler_records = [record for record in caplog.records if "hdiutil.create" in record.getMessage()]
    assert [record.name for record in compiler_records] == ["release.dmg"]


def test_cancellation_stops_before_next_step(settings_factory, app_bundle, fake_compiler) -> None:
    cancel = threading.Event()

    def icon_builder(staging_dir: Path, settings: AppSettings) -> None:
        cancel.set()
        return None

    with pytest.raises(PipelineCancelledError) as excinfo:
        run_dmg_pipeline(
            settings_factory(),
            _present(app_bundle),
            options=DmgRunOptions(cancel_event=cancel),
            icon_builder=icon_builder,
            compiler=fake_compiler,
        )

    assert excinfo.value.step == "invoke_compiler"
    assert fake_compiler.calls == []


def test_cleanup_staging_removes_temp_tree(settings_factory, app_bundle, fake_compiler) -> None:
    result = run_dmg_pipeline(
        settings_factory(dmg={"cleanup_staging": True}),
        _present(app_bundle),
        icon_builder=_no_icon,
        compiler=fake_compiler,
    )

    assert result.staging_removed is True
    assert not result.paths.staging_dir.exists()
    assert result.dmg_path.exists()


def test_staging_is_kept_by_default(settings_factory, app_bundle, fake_compiler) -> None:
    result = run_dmg_pipeline(settings_factory(), _present(app_bundle), compiler=fake_compiler)

    assert result.staging_removed is False
    assert result.paths.staged_app_path.is_dir()


def test_write_run_summary(settings_factory, app_bundle, fake_compiler, tmp_path: Path) -> None:
    result = run_dmg_pipeline(settings_factory(), _present(app_bundle), compiler=fake_compiler)

    summary_path = write_run_summary(result, tmp_path / "logs" / "summary.json")

    payload = json.loads(summary_path.read_text(encoding="utf-8"))
    assert payload["run_id"] == result.run_id
    assert payload["dmg_path"] == str(result.dmg_path)
    assert payload["paths"]["dmg_name"] == "app_1.0.0_x64.dmg"
    assert payload["signed"] is False
