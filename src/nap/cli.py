"""CLI commands for fetching and applying Node.js Android build patches."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer

from .config import DEFAULT_CONFIG_NAME, Settings, default_config, load_settings, write_config
from .errors import ConfigError, NapError
from .patches.applier import PatchApplier, load_local_patches
from .patches.resolver import PatchResolver
from .patches.schema import ApplyOutcome, ApplyReport, PatchSet
from .pipeline import run_pipeline

APP_HELP = "Resolve Termux patches and apply them to a Node.js source tree."
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_OUTCOME_LABELS = {
    ApplyOutcome.APPLIED: "OK",
    ApplyOutcome.SKIPPED_DOES_NOT_APPLY: "SKIP (does not apply cleanly)",
    ApplyOutcome.DOWNLOAD_FAILED: "SKIP (download failed)",
}

app = typer.Typer(help=APP_HELP)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT, force=True)


def _load(config: str) -> Settings:
    try:
        return load_settings(Path(config))
    except ConfigError as error:
        typer.echo(str(error))
        raise typer.Exit(code=1) from error


def _resolve_tree(settings: Settings, tree: Optional[str]) -> Path:
    path = Path(tree).resolve() if tree else settings.paths.source_tree
    if not path.is_dir():
        typer.echo(f"Source tree not found: {path}")
        raise typer.Exit(code=1)
    return path


def _echo_report(report: ApplyReport, *, label: str = "") -> None:
    prefix = f"{label} " if label else ""
    for result in report.results:
        typer.echo(f"Applying {prefix}{result.name} ... {_OUTCOME_LABELS[result.outcome]}")


def _echo_downloads(patch_set: PatchSet) -> None:
    typer.echo("Patches downloaded:")
    if not patch_set.patches:
        typer.echo("(none)")
    for candidate in patch_set:
        typer.echo(f"- {candidate.local_name}")
    for source in patch_set.unreachable:
        typer.echo(f"Warning: source {source} is unreachable.")
    if patch_set.failed:
        typer.echo(f"Warning: {len(patch_set.failed)} patch(es) failed to download.")


@app.command()
def init(
    config: str = typer.Option(
        DEFAULT_CONFIG_NAME,
        "--config",
        "-c",
        help="Path to the configuration file to create.",
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing configuration."),
) -> None:
    """Write the default configuration."""
    config_path = Path(config)
    if config_path.exists() and not force:
        typer.echo(f"Configuration already exists at {config_path}; use --force to overwrite.")
        raise typer.Exit(code=1)
    write_config(config_path, default_config())
    typer.echo(f"Created configuration at {config_path}.")


@app.command()
def fetch(
    config: str = typer.Option(DEFAULT_CONFIG_NAME, "--config", "-c", help="Path to the configuration file."),
    ref: Optional[str] = typer.Option(None, "--ref", help="Branch, tag or commit to fetch patches from."),
    source: List[str] = typer.Option(None, "--source", "-s", help="Package to fetch patches for (repeatable)."),
) -> None:
    """Discover and download remote patches without applying them."""
    settings = _load(config)
    resolver = PatchResolver.from_settings(settings.patches, download_dir=settings.paths.download_dir)
    sources = list(source) if source else settings.patches.sources
    reference = ref or settings.patches.ref

    typer.echo(f"Fetching patches from {settings.patches.repository}@{reference}...")
    patch_set = resolver.resolve(sources, reference)
    _echo_downloads(patch_set)


@app.command()
def apply(
    patch_dir: List[Path] = typer.Argument(..., help="Directories of patch files, applied in the given order."),
    config: str = typer.Option(DEFAULT_CONFIG_NAME, "--config", "-c", help="Path to the configuration file."),
    tree: Optional[str] = typer.Option(None, "--tree", "-t", help="Source tree to patch."),
) -> None:
    """Apply already-downloaded patch directories to the source tree."""
    settings = _load(config)
    source_tree = _resolve_tree(settings, tree)
    for directory in patch_dir:
        if not directory.is_dir():
            typer.echo(f"Patch directory not found: {directory}")
            raise typer.Exit(code=1)
    applier = PatchApplier(strip=settings.patches.strip)

    reports: List[ApplyReport] = []
    try:
        for directory in patch_dir:
            report = applier.apply(source_tree, load_local_patches(directory, suffix=settings.patches.suffix))
            _echo_report(report)
            reports.append(report)
    except NapError as error:
        typer.echo(str(error))
        raise typer.Exit(code=1) from error

    typer.echo(ApplyReport.combine(reports).format_summary())


@app.command()
def run(
    config: str = typer.Option(DEFAULT_CONFIG_NAME, "--config", "-c", help="Path to the configuration file."),
    ref: Optional[str] = typer.Option(None, "--ref", help="Branch, tag or commit to fetch patches from."),
    tree: Optional[str] = typer.Option(None, "--tree", "-t", help="Source tree to patch."),
    remote: bool = typer.Option(True, "--remote/--no-remote", help="Resolve and apply remote patches."),
    local: bool = typer.Option(True, "--local/--no-local", help="Apply patches from the local patch directory."),
) -> None:
    """Resolve remote patches, then apply the remote and local sets."""
    settings = _load(config)
    source_tree = _resolve_tree(settings, tree)

    try:
        report = run_pipeline(
            settings,
            tree=source_tree,
            reference=ref,
            include_remote=remote,
            include_local=local,
        )
    except NapError as error:
        typer.echo(str(error))
        raise typer.Exit(code=1) from error

    if remote:
        _echo_downloads(report.patch_set)
        _echo_report(report.remote)
    if local:
        _echo_report(report.local, label="local")
    typer.echo(report.combined.format_summary())


if __name__ == "__main__":
    app()
