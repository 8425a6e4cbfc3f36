"""Typer CLI entrypoint for dmg_bundler."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import typer
import yaml

from dmg_bundler.bundles import discover_bundles
from dmg_bundler.config import AppSettings, load_settings, with_ci_mode
from dmg_bundler.dmg.paths import plan_dmg_paths
from dmg_bundler.dmg.pipeline import run_dmg_pipeline, write_run_summary
from dmg_bundler.errors import DmgBundleError
from dmg_bundler.logging_utils import configure_logging

RUN_SUMMARY_FILE = "dmg_last_run.json"

app = typer.Typer(
    add_completion=False,
    help="dmg_bundler command line interface.",
    no_args_is_help=True,
)


def _load_and_optionally_configure_logger(
    config_file: Path | None,
    configure: bool,
) -> tuple[AppSettings, logging.Logger]:
    settings = load_settings(config_file=config_file)
    if configure:
        logger = configure_logging(settings.paths.logs_root / "dmg_bundler.log")
    else:
        logger = logging.getLogger("dmg_bundler")
    return settings, logger


@app.command("show-config")
def show_config(
    config_file: Path | None = typer.Option(
        None,
        "--config-file",
        help="Optional settings YAML path.",
        exists=False,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
) -> None:
    """Print the effective configuration after env overrides."""

    settings, _ = _load_and_optionally_configure_logger(config_file, configure=False)
    rendered = yaml.safe_dump(settings.as_dict(), sort_keys=False)
    typer.echo(rendered)


@app.command("plan")
def plan(
    config_file: Path | None = typer.Option(
        None,
        "--config-file",
        help="Optional settings YAML path.",
        exists=False,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
) -> None:
    """Print the paths a bundle run would use, without touching the filesystem."""

    settings, _ = _load_and_optionally_configure_logger(config_file, configure=False)
    typer.echo(json.dumps(plan_dmg_paths(settings).as_dict(), indent=2))


@app.command("bundle")
def bundle(
    ci: bool | None = typer.Option(
        None,
        "--ci/--no-ci",
        help="Override the configured CI toggle for the disk-image compiler.",
    ),
    config_file: Path | None = typer.Option(
        None,
        "--config-file",
        help="Optional settings YAML path.",
        exists=False,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
) -> None:
    """Assemble the application bundle into a disk image."""

    settings, logger = _load_and_optionally_configure_logger(config_file, configure=True)
    settings = with_ci_mode(settings, ci)
    bundles = discover_bundles(settings, logger=logger)

    try:
        result = run_dmg_pipeline(settings, bundles, logger=logger)
    except DmgBundleError as exc:
        logger.error("bundle.failed step=%s error=%s", exc.step, exc)
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    summary_path = write_run_summary(result, settings.paths.logs_root / RUN_SUMMARY_FILE)
    logger.info("bundle.summary_written path=%s", summary_path)

    typer.echo(f"dmg_path: {result.dmg_path}")
    typer.echo(f"signed: {result.signed}")
    typer.echo(f"run_summary: {summary_path}")


if __name__ == "__main__":
    app()
