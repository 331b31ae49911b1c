"""Crawl commands - build a catalog from a database and report on it."""

import typer
from typing import List, Optional
from typing_extensions import Annotated
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from ..config import settings
from ..crawl.catalog import Catalog
from ..crawl.crawler import crawl as crawl_source
from ..crawl.options import CrawlOptions, build_rule
from ..crawl.rules import RuleFor
from ..database import DuckDBMetadataSource, MetadataSource, SqliteMetadataSource
from ..errors import ConfigurationError, ConnectionFatalError
from ..logging import log_crawl_run

app = typer.Typer(help="Crawl database metadata")
console = Console()


def build_options(
    info_level: Optional[str] = None,
    schemas: Optional[str] = None,
    tables: Optional[str] = None,
    exclude_tables: Optional[str] = None,
    routines: Optional[str] = None,
    enable: Optional[List[str]] = None,
    disable: Optional[List[str]] = None,
) -> CrawlOptions:
    """Build crawl options from settings and command line overrides.

    Patterns use the configured pattern syntax and are matched against
    fully qualified names, e.g. ``main.ORDERS``. Categories switched on or
    off here apply on top of the info level.

    Raises:
        ConfigurationError: If a level, category or pattern is invalid
    """
    options = CrawlOptions.from_settings(settings)
    syntax = settings.pattern_syntax
    if info_level:
        options = options.with_info_level(info_level)
    if enable or disable:
        options = options.with_categories(enable=enable, disable=disable)
    if schemas:
        options = options.with_rule(RuleFor.SCHEMA, build_rule(schemas, None, syntax))
    if tables or exclude_tables:
        options = options.with_rule(RuleFor.TABLE, build_rule(tables, exclude_tables, syntax))
    if routines:
        options = options.with_rule(RuleFor.ROUTINE, build_rule(routines, None, syntax))
    return options


def print_catalog(catalog: Catalog, show_objects: bool = False) -> None:
    """Print the crawl summary, optionally the crawled objects, then warnings."""
    info = catalog.info

    if show_objects:
        console.print("\n[green]Crawled Objects:[/green]")
        for schema in catalog.schemas:
            console.print(f"  Schema: [cyan]{schema.full_name or '(default)'}[/cyan]")
            for table in catalog.get_tables(schema):
                kind = "view" if table.is_view else table.table_type.lower()
                console.print(f"    - {table.name} ({kind}, {len(table.columns)} columns)")
            for routine in catalog.get_routines(schema):
                console.print(f"    - {routine.name}() ({routine.routine_type.value})")

    results = Table(title="Retrieval Summary")
    results.add_column("Category", style="cyan")
    results.add_column("Retrieved", justify="right", style="green")
    results.add_column("Excluded", justify="right")
    results.add_column("Skipped", justify="right", style="yellow")
    results.add_column("Warnings", justify="right", style="red")
    results.add_column("Time (ms)", justify="right")
    for result in info.results:
        results.add_row(
            result.category,
            str(result.retrieved),
            str(result.excluded),
            str(result.skipped),
            str(len(result.warnings)),
            str(result.duration_ms if result.duration_ms is not None else "-"),
            style="red" if result.failed else None,
        )
    console.print(results)
    failed = [result.category for result in info.results if result.failed]
    if failed:
        console.print(f"[red]Nothing retrieved for: {', '.join(failed)}[/red]")

    summary = catalog.summary()
    console.print(
        f"\n[bold]Total: {summary['tables']} tables, {summary['columns']} columns and "
        f"{summary['routines']} routines across {summary['schemas']} schema(s) "
        f"in {info.duration_ms}ms[/bold]"
    )

    warnings = catalog.warnings
    if warnings:
        console.print(f"\n[yellow]{len(warnings)} warning(s):[/yellow]")
        for warning in warnings:
            style = "dim" if warning.unsupported else "yellow"
            console.print(f"  [{style}]{escape(str(warning))}[/{style}]")


def run_crawl(
    source_type: str,
    source: MetadataSource,
    path: str,
    options_kwargs: dict,
    show_objects: bool,
) -> Catalog:
    """Crawl a source with run logging and print the result.

    Raises:
        typer.Exit: With code 1 on configuration or connection errors
    """
    console.print(Panel(
        f"[bold blue]Crawling {source_type} database[/bold blue]\n"
        f"Path: {path}\n"
        f"Info level: {options_kwargs.get('info_level') or settings.info_level}",
        title="Catalog Crawler"
    ))

    try:
        with log_crawl_run(
            source_type=source_type,
            source_path=path,
            info_level=options_kwargs.get("info_level") or settings.info_level,
            arguments=options_kwargs,
        ) as ctx:
            options = build_options(**options_kwargs)
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
                transient=True,
            ) as progress:
                progress.add_task("Crawling metadata...", total=None)
                catalog = crawl_source(source, options)
            ctx.record_catalog(catalog)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {escape(e.message)}[/red]")
        raise typer.Exit(1)
    except ConnectionFatalError as e:
        console.print(f"[red]Cannot crawl {path}: {escape(e.message)}[/red]")
        raise typer.Exit(1)

    console.print(
        f"[green]Connected to {catalog.info.product_name} {catalog.info.product_version}[/green]"
    )
    print_catalog(catalog, show_objects=show_objects)
    return catalog


@app.command("sqlite")
def crawl_sqlite(
    path: str = typer.Argument(..., help="Path to the SQLite database file"),
    info_level: Optional[str] = typer.Option(None, "--info-level", "-l", help="minimum, standard, detailed or maximum"),
    schemas: Optional[str] = typer.Option(None, "--schemas", "-s", help="Schemas to include (e.g. 'main')"),
    tables: Optional[str] = typer.Option(None, "--tables", "-t", help="Tables to include (e.g. 'main.ORD*')"),
    exclude_tables: Optional[str] = typer.Option(None, "--exclude-tables", "-x", help="Tables to exclude (e.g. '*.TMP_*')"),
    routines: Optional[str] = typer.Option(None, "--routines", "-r", help="Routines to include"),
    enable: Annotated[Optional[List[str]], typer.Option(
        "--enable",
        help="Retrieval category to add to the info level, e.g. row_counts. Can be specified multiple times."
    )] = None,
    disable: Annotated[Optional[List[str]], typer.Option(
        "--disable",
        help="Retrieval category to skip, e.g. indexes. Can be specified multiple times."
    )] = None,
    show_objects: bool = typer.Option(False, "--show-objects", help="List crawled tables and routines"),
):
    """
    Crawl a SQLite database.

    Examples:
        catalog-crawler crawl sqlite ./app.db
        catalog-crawler crawl sqlite ./app.db --info-level maximum --exclude-tables "*.TMP_*"
        catalog-crawler crawl sqlite ./app.db --enable row_counts --disable indexes
    """
    run_crawl(
        "sqlite",
        SqliteMetadataSource(database_path=path),
        path,
        dict(
            info_level=info_level,
            schemas=schemas,
            tables=tables,
            exclude_tables=exclude_tables,
            routines=routines,
            enable=enable,
            disable=disable,
        ),
        show_objects,
    )


@app.command("duckdb")
def crawl_duckdb(
    path: str = typer.Argument(..., help="Path to the DuckDB database file"),
    info_level: Optional[str] = typer.Option(None, "--info-level", "-l", help="minimum, standard, detailed or maximum"),
    schemas: Optional[str] = typer.Option(None, "--schemas", "-s", help="Schemas to include (e.g. 'warehouse.main')"),
    tables: Optional[str] = typer.Option(None, "--tables", "-t", help="Tables to include"),
    exclude_tables: Optional[str] = typer.Option(None, "--exclude-tables", "-x", help="Tables to exclude"),
    routines: Optional[str] = typer.Option(None, "--routines", "-r", help="Macros to include"),
    enable: Annotated[Optional[List[str]], typer.Option(
        "--enable",
        help="Retrieval category to add to the info level. Can be specified multiple times."
    )] = None,
    disable: Annotated[Optional[List[str]], typer.Option(
        "--disable",
        help="Retrieval category to skip. Can be specified multiple times."
    )] = None,
    show_objects: bool = typer.Option(False, "--show-objects", help="List crawled tables and routines"),
):
    """
    Crawl a DuckDB database.

    Examples:
        catalog-crawler crawl duckdb ./warehouse.duckdb
        catalog-crawler crawl duckdb ./warehouse.duckdb --schemas "warehouse.main"
    """
    run_crawl(
        "duckdb",
        DuckDBMetadataSource(database_path=path),
        path,
        dict(
            info_level=info_level,
            schemas=schemas,
            tables=tables,
            exclude_tables=exclude_tables,
            routines=routines,
            enable=enable,
            disable=disable,
        ),
        show_objects,
    )
