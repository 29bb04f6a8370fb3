"""decern-gate CLI."""

from __future__ import annotations

import logging
import os
from functools import partial
from pathlib import Path

import anyio
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from decern_gate import __version__
from decern_gate.config import GateConfig, load_config
from decern_gate.errors import ConfigError
from decern_gate.gate import run_gate
from decern_gate.git import ChangeSource, GitChangeSource
from decern_gate.patterns import path_matches_required
from decern_gate.references import extract_references
from decern_gate.reporting import write_gate_report

cli = typer.Typer(
    name="decern-gate",
    help="Require an approved Decern decision for high-impact changes.",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)


def _version_option_callback(value: bool) -> None:
    """Handle eager --version option."""
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@cli.callback()
def _cli_callback(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show decern-gate version and exit.",
        is_eager=True,
        callback=_version_option_callback,
    ),
) -> None:
    """Decern decision gate for CI pipelines."""


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _load_config_or_exit(config_file: Path | None) -> GateConfig:
    try:
        return load_config(os.environ, config_file)
    except ConfigError as exc:
        err_console.print(f"Configuration error: {exc}", style="bold red", markup=False)
        raise typer.Exit(code=1) from exc


def _build_source(config: GateConfig, repo_root: Path) -> ChangeSource:
    return GitChangeSource.from_config(config, repo_root)


@cli.command()
def run(
    config_file: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML config file (environment variables take precedence)",
    ),
    repo_root: Path = typer.Option(
        Path("."),
        "--repo-root",
        help="Git checkout to inspect",
    ),
    report_dir: Path | None = typer.Option(
        None,
        "--report-dir",
        help="Write DECISION_GATE_REPORT.json/.md into this directory",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log request diagnostics to stderr",
    ),
) -> None:
    """Run the decision gate against the current change.

    Exit codes:
      0 - Gate passed
      1 - Gate blocked (missing, unapproved or unverifiable decision)
    """
    _configure_logging(verbose)
    config = _load_config_or_exit(config_file)
    source = _build_source(config, repo_root.resolve())

    report = anyio.run(partial(run_gate, config, source, console=console))

    if report_dir is not None:
        json_path, _ = write_gate_report(report, report_dir)
        console.print(f"Report: {json_path}", markup=False, highlight=False)

    raise typer.Exit(code=report.exit_code)


@cli.command()
def classify(
    paths: list[str] = typer.Argument(..., help="Repository-relative paths to classify"),
    config_file: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML config file providing extra patterns",
    ),
) -> None:
    """Show which paths the high-impact policy matches."""
    config = _load_config_or_exit(config_file)

    table = Table(title="High-impact classification")
    table.add_column("Path")
    table.add_column("Decision required")
    for path in paths:
        required = path_matches_required(path, config.extra_patterns)
        table.add_row(path, "[red]YES[/red]" if required else "[green]NO[/green]")
    console.print(table)


@cli.command()
def refs(
    text: str | None = typer.Argument(None, help="Text to scan (PR body, commit message)"),
    file: Path | None = typer.Option(None, "--file", "-f", help="Read text from this file"),
) -> None:
    """List decision references found in text."""
    if file is not None:
        try:
            text = file.read_text(encoding="utf-8")
        except OSError as exc:
            err_console.print(f"Cannot read {file}: {exc}", style="bold red", markup=False)
            raise typer.Exit(code=1) from exc
    if text is None:
        err_console.print("Provide TEXT or --file.", style="bold red")
        raise typer.Exit(code=2)

    found = extract_references(text)
    if not found:
        console.print("No decision references found.")
        return
    for ref in found:
        console.print(f"{ref.value}  ({ref.kind.value})", markup=False, highlight=False)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
