"""
abtool CLI.

Command-line interface for repackaging APKs and App Bundles.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .core.config import BuildConfig, Settings, get_settings, load_build_config
from .core.exceptions import ConfigurationError
from .core.logging import setup_logging
from .core.types import BuildKind, PipelineResult, StageStatus
from .orchestration import RepackagePipeline, run_pipeline

app = typer.Typer(
    name="abtool",
    help="Repackage Android APKs and App Bundles",
    add_completion=False,
)

console = Console()

EXIT_BUILD_FAILED = 1
EXIT_BAD_CONFIG = 2

_STATUS_STYLE = {
    StageStatus.COMPLETED: "[green]completed[/green]",
    StageStatus.FAILED: "[red]failed[/red]",
    StageStatus.SKIPPED: "[dim]skipped[/dim]",
    StageStatus.RUNNING: "[yellow]running[/yellow]",
    StageStatus.PENDING: "[dim]pending[/dim]",
}

ConfigOption = typer.Option(
    ...,
    "--config",
    "-c",
    help="Path to the TOML build configuration",
    exists=True,
    file_okay=True,
    dir_okay=False,
    resolve_path=True,
)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        from . import __version__
        console.print(f"abtool v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """abtool: decode, recompile, reassemble and sign Android packages."""
    pass


def _print_result(result: PipelineResult) -> None:
    table = Table(title=f"{result.build_kind.upper()} build {result.timestamp}")
    table.add_column("Stage", style="cyan")
    table.add_column("Status")
    table.add_column("Duration", justify="right")
    for stage in result.stages:
        duration = f"{stage.duration_seconds:.1f}s" if stage.status != StageStatus.SKIPPED else ""
        table.add_row(stage.stage_name, _STATUS_STYLE[stage.status], duration)
    console.print(table)

    if result.success:
        console.print(f"\n[bold green]✓ Build completed in {result.duration_seconds:.1f}s[/bold green]")
        console.print(f"[bold]Artifact:[/bold] {escape(result.artifact or '')}")
    else:
        console.print("\n[bold red]✗ Build failed![/bold red]")
        console.print(f"Failed at: {result.failed_stage}")
        console.print(f"Error: {escape(result.error or '')}")


def _settings() -> Settings:
    try:
        return get_settings()
    except ConfigurationError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(EXIT_BAD_CONFIG)


def _build(build_kind: BuildKind, config: Path, verbose: bool) -> None:
    settings = _settings()
    if verbose:
        settings = settings.model_copy(update={"log_level": "DEBUG"})
    setup_logging(settings)

    console.print(Panel.fit(
        f"[bold blue]abtool[/bold blue] {build_kind.upper()} build\n{config}",
        border_style="blue",
    ))

    try:
        result = asyncio.run(run_pipeline(build_kind, config))
    except ConfigurationError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(EXIT_BAD_CONFIG)

    _print_result(result)
    if not result.success:
        raise typer.Exit(EXIT_BUILD_FAILED)


@app.command()
def apk(
    config: Path = ConfigOption,
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose logging"),
) -> None:
    """Rebuild the source project into a zipaligned, signed APK."""
    _build("apk", config, verbose)


@app.command()
def aab(
    config: Path = ConfigOption,
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose logging"),
) -> None:
    """Recompile resources and assemble a signed App Bundle."""
    _build("aab", config, verbose)


def _load(config: Path) -> BuildConfig:
    try:
        return load_build_config(config)
    except ConfigurationError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(EXIT_BAD_CONFIG)


@app.command()
def plan(
    config: Path = ConfigOption,
    action: str = typer.Option("aab", "--action", "-a", help="Build kind: apk or aab"),
) -> None:
    """List the stages a build would run, in order."""
    if action not in ("apk", "aab"):
        console.print(f"[red]Unknown action: {action}[/red]")
        raise typer.Exit(EXIT_BAD_CONFIG)

    build_config = _load(config)
    pipeline = RepackagePipeline.create(action, build_config, timestamp="plan")  # type: ignore[arg-type]

    table = Table(title=f"{action.upper()} build plan")
    table.add_column("#", justify="right")
    table.add_column("Stage", style="cyan")
    table.add_column("Runs")
    for index, stage in enumerate(pipeline.stages, start=1):
        runs = "yes" if stage.applies(pipeline.context) else "[dim]skipped[/dim]"
        table.add_row(str(index), stage.name, runs)
    console.print(table)


@app.command("show-config")
def show_config(config: Path = ConfigOption) -> None:
    """Show the loaded build configuration (secrets masked)."""
    build_config = _load(config)

    table = Table(title="Build Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for key, value in build_config.summary().items():
        table.add_row(key, value)
    console.print(table)

    settings = _settings()
    console.print(f"\n[dim]Log level: {settings.log_level} | zip entries: {settings.zip_entry_separator}[/dim]")
    console.print("[dim]Configure via ABTOOL_LOG_LEVEL, ABTOOL_ZIP_SEPARATOR[/dim]")


def run() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    run()
