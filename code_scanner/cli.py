"""Typer-based CLI for the code scanner."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__
from .config_manager import load_config
from .errors import CodeScannerError
from .filters import FilterOptions, split_csv
from .languages import default_registry
from .models import DETAIL_LEVELS, OUTPUT_FORMATS
from .scanner import CodeScanner

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="🔎 Code Scanner: structural catalog of functions, classes and more across languages.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"Code Scanner v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    )
):
    """Code Scanner: list definitions with line numbers, as Markdown, XML or JSON."""
    pass


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.command("scan")
def scan_command(
    directory: Path = typer.Argument(..., help="Directory to scan."),
    patterns: Optional[List[str]] = typer.Option(
        None, "--pattern", "-p", help="Glob pattern(s) for files to scan (repeat or comma-separate)."
    ),
    output_format: Optional[str] = typer.Option(
        None, "--format", "-f", help=f"Output format: {', '.join(OUTPUT_FORMATS)}."
    ),
    detail: Optional[str] = typer.Option(
        None, "--detail", "-l", help=f"Detail level: {', '.join(DETAIL_LEVELS)}."
    ),
    include_types: Optional[List[str]] = typer.Option(None, "--include-types", help="Only these kinds (e.g. class,method)."),
    exclude_types: Optional[List[str]] = typer.Option(None, "--exclude-types", help="Skip these kinds."),
    include_modifiers: Optional[List[str]] = typer.Option(None, "--include-modifiers", help="Require one of these modifiers."),
    exclude_modifiers: Optional[List[str]] = typer.Option(None, "--exclude-modifiers", help="Skip definitions with these modifiers."),
    name_pattern: Optional[str] = typer.Option(None, "--name-pattern", help="Regex that names must match."),
    exclude_name_pattern: Optional[str] = typer.Option(None, "--exclude-name-pattern", help="Regex for names to skip."),
    include_paths: Optional[List[str]] = typer.Option(None, "--include-paths", help="Only scan these files, directories or globs."),
    exclude_paths: Optional[List[str]] = typer.Option(None, "--exclude-paths", help="Glob patterns of files to skip."),
    min_complexity: Optional[int] = typer.Option(None, "--min-complexity", help="Minimum cyclomatic complexity."),
    max_complexity: Optional[int] = typer.Option(None, "--max-complexity", help="Maximum cyclomatic complexity."),
    min_parameters: Optional[int] = typer.Option(None, "--min-parameters", help="Minimum parameter count."),
    max_parameters: Optional[int] = typer.Option(None, "--max-parameters", help="Maximum parameter count."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the result to this file instead of stdout."),
    verbose: bool = typer.Option(False, "--verbose", help="Log progress and diagnostics to stderr."),
):
    """Scan a directory and print its definitions."""
    setup_logging(verbose)
    defaults = load_config()

    fmt = output_format or defaults["format"]
    level = detail or defaults["detail"]
    if fmt not in OUTPUT_FORMATS:
        raise typer.BadParameter(f"Unknown format '{fmt}'. Choose from: {', '.join(OUTPUT_FORMATS)}.")
    if level not in DETAIL_LEVELS:
        raise typer.BadParameter(f"Unknown detail level '{level}'. Choose from: {', '.join(DETAIL_LEVELS)}.")

    options = FilterOptions(
        include_types=split_csv(include_types),
        exclude_types=split_csv(exclude_types),
        include_modifiers=split_csv(include_modifiers),
        exclude_modifiers=split_csv(exclude_modifiers),
        name_pattern=name_pattern,
        exclude_name_pattern=exclude_name_pattern,
        include_paths=split_csv(include_paths),
        exclude_paths=split_csv(exclude_paths),
        min_complexity=min_complexity,
        max_complexity=max_complexity,
        min_parameters=min_parameters,
        max_parameters=max_parameters,
    )

    try:
        result = CodeScanner().scan(
            directory,
            split_csv(patterns) or defaults["patterns"],
            output_format=fmt,
            detail_level=level,
            filter_options=options,
        )
    except CodeScannerError as exc:
        err_console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1)

    if output:
        output.write_text(result, encoding="utf-8")
        err_console.print(f"[green]Wrote {fmt} results to {output}[/green]")
    else:
        typer.echo(result)


@app.command("languages")
def languages_command():
    """List supported file extensions and whether their grammar is installed."""
    registry = default_registry()
    table = Table(title="Supported Languages", show_header=True)
    table.add_column("Extension", style="cyan")
    table.add_column("Language")
    table.add_column("Grammar")

    for ext, lang in registry.extension_map().items():
        status = "[green]installed[/green]" if registry.is_available(lang) else "[red]missing[/red]"
        table.add_row(ext, lang, status)

    console.print(table)
