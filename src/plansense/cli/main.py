"""
PlanSense CLI - plain-English explanations of PostgreSQL query plans.

Reads EXPLAIN / EXPLAIN ANALYZE text output (not FORMAT JSON).

Usage:
    plansense explain plan.txt
    psql -c "EXPLAIN ANALYZE SELECT ..." | plansense explain -
    plansense explain --simple --format markdown plan.txt
    plansense detect plan.txt
"""

from __future__ import annotations

import logging
import sys
from enum import Enum
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from plansense import __version__
from plansense.config import Config, get_config, load_config_from_file
from plansense.engine import ExplainReport, ExplainService
from plansense.exceptions import ConfigurationError, ParseError, PlanSenseError
from plansense.output.renderers import OutputFormat, render
from plansense.parser.config import DEFAULT_CONFIG, STRICT_CONFIG
from plansense.parser.dialect import detect_database_type
from plansense.parser.models import DatabaseType


class DatabaseChoice(str, Enum):
    """Dialects accepted by --database."""
    auto = "auto"
    postgres = "postgres"
    mysql = "mysql"

    def to_database_type(self) -> DatabaseType:
        if self is DatabaseChoice.postgres:
            return DatabaseType.POSTGRESQL
        if self is DatabaseChoice.mysql:
            return DatabaseType.MYSQL
        return DatabaseType.UNKNOWN


app = typer.Typer(
    name="plansense",
    help="Explain PostgreSQL EXPLAIN output in plain English",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"PlanSense version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            help="Log parser and translator debug output to stderr.",
        ),
    ] = False,
) -> None:
    """PlanSense - plain-English explanations of PostgreSQL query plans."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )


def _read_input(explain_file: Optional[Path]) -> tuple[str, str | None]:
    """
    Read plan text from a file, or from stdin when the path is omitted or "-".

    Returns:
        (text, source) where source is the file path, or None for stdin

    Raises:
        ParseError: If the file cannot be read
    """
    if explain_file is None or str(explain_file) == "-":
        return sys.stdin.read(), None

    if not explain_file.is_file():
        raise ParseError(f"File not found: {explain_file}", source="file_read")
    try:
        return explain_file.read_text(encoding="utf-8"), str(explain_file)
    except (OSError, UnicodeDecodeError) as e:
        raise ParseError(
            f"Cannot read file: {explain_file}",
            detail=str(e),
            source="file_read",
        ) from e


def _load_config(config_file: Optional[Path]) -> Config:
    if config_file is None:
        return get_config()
    return load_config_from_file(config_file, strict=True)


def _print_error(error: PlanSenseError, output_format: Optional[OutputFormat]) -> None:
    """Report a failure before any plan was parsed."""
    if output_format == OutputFormat.JSON:
        console.print_json(data={"ok": False, "error": error.to_dict()})
        return

    if isinstance(error, ConfigurationError):
        error_console.print(f"[red]Configuration error:[/red] {escape(error.message)}")
        if error.config_key:
            error_console.print(f"[dim]Offending key: {escape(error.config_key)}[/dim]")
        return

    error_console.print(f"[red]Error:[/red] {escape(error.message)}")
    if isinstance(error, ParseError) and error.detail:
        error_console.print(f"\n[dim]{escape(error.detail)}[/dim]")


def _print_report(report: ExplainReport) -> None:
    """Pretty terminal output for a successful report."""
    translation = report.translation
    assert translation is not None

    details = f"{report.node_count} plan node(s), {report.database_type.value}"
    parsed = report.parse_result
    if parsed.execution_time_ms is not None:
        details += f", executed in {parsed.execution_time_ms:.3f} ms"

    console.print(Panel(
        f"{escape(translation.summary)}\n\n[dim]{escape(details)}[/dim]",
        title="PlanSense",
        border_style="blue",
    ))

    table = Table(title="Execution steps", show_lines=False, expand=True)
    table.add_column("#", justify="right", style="dim", no_wrap=True)
    table.add_column("Step")
    for i, step in enumerate(translation.steps, 1):
        table.add_row(str(i), escape(step))
    console.print(table)

    if translation.warnings:
        console.print("\n[bold yellow]Warnings:[/bold yellow]")
        for warning in translation.warnings:
            console.print(f"  [yellow]⚠[/yellow] {escape(warning)}")

    if translation.recommendations:
        console.print("\n[bold green]Recommendations:[/bold green]")
        for recommendation in translation.recommendations:
            console.print(f"  [green]•[/green] {escape(recommendation)}")

    if not translation.warnings and not translation.recommendations:
        console.print("\n[green]No performance issues detected.[/green]")


@app.command()
def explain(
    explain_file: Annotated[
        Optional[Path],
        typer.Argument(
            help="Path to EXPLAIN text output; omit or use '-' to read stdin",
        ),
    ] = None,
    database: Annotated[
        DatabaseChoice,
        typer.Option(
            "--database",
            "-d",
            help="Database type (auto-detected if not specified)",
        ),
    ] = DatabaseChoice.auto,
    simple: Annotated[
        bool,
        typer.Option(
            "--simple",
            "-s",
            help="Compact one-line-per-step narrative",
        ),
    ] = False,
    output_format: Annotated[
        Optional[OutputFormat],
        typer.Option(
            "--format",
            "-f",
            help="Render as text, json or markdown instead of the rich terminal view",
        ),
    ] = None,
    config_file: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="JSON or YAML file with threshold overrides",
        ),
    ] = None,
    strict: Annotated[
        bool,
        typer.Option(
            "--strict",
            help="Apply tighter input size, node and depth limits (untrusted input)",
        ),
    ] = False,
) -> None:
    """
    Explain a PostgreSQL query plan in plain English.

    Examples:

        $ psql -c "EXPLAIN ANALYZE SELECT * FROM orders WHERE total > 100" > plan.txt
        $ plansense explain plan.txt

        $ psql -At -c "EXPLAIN SELECT 1" | plansense explain --format json
    """
    try:
        config = _load_config(config_file)
        text, source = _read_input(explain_file)
    except PlanSenseError as e:
        _print_error(e, output_format)
        raise typer.Exit(code=1)

    service = ExplainService(
        config=config,
        parser_config=STRICT_CONFIG if strict else DEFAULT_CONFIG,
    )
    report = service.explain(
        text,
        database=database.to_database_type(),
        simple=simple,
        source=source,
    )

    if output_format == OutputFormat.JSON:
        console.print_json(render(report, OutputFormat.JSON))
    elif output_format is not None and report.ok:
        typer.echo(render(report, output_format))
    elif report.ok:
        _print_report(report)

    if not report.ok:
        error_console.print(f"[red]Error:[/red] {escape(report.error or 'Could not parse the plan')}")
        raise typer.Exit(code=1)


@app.command()
def detect(
    explain_file: Annotated[
        Optional[Path],
        typer.Argument(
            help="Path to EXPLAIN output; omit or use '-' to read stdin",
        ),
    ] = None,
) -> None:
    """
    Report which database produced an EXPLAIN output.

    Exits with code 1 when the dialect cannot be recognized.
    """
    try:
        text, _ = _read_input(explain_file)
    except ParseError as e:
        error_console.print(f"[red]Error:[/red] {escape(e.message)}")
        raise typer.Exit(code=1)

    database = detect_database_type(text)
    console.print(database.value)

    if database is DatabaseType.UNKNOWN:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
