"""catalog-crawler - Main entry point."""

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler
from typing import Optional

from .commands import crawl, runs
from .config import settings

app = typer.Typer(
    name="catalog-crawler",
    help="Crawl database metadata into an in-memory catalog",
    add_completion=False,
)

# Add subcommands
app.add_typer(crawl.app, name="crawl")
app.add_typer(runs.app, name="runs")

console = Console()


def configure_logging(level: str) -> None:
    """Route library logging through rich at the given level."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)],
        force=True,
    )


@app.command()
def config():
    """Show current configuration."""
    console.print("[bold]Current Configuration[/bold]")
    console.print(f"  Info level: {settings.info_level}")
    console.print(f"  Pattern syntax: {settings.pattern_syntax}")
    for name in ("schema", "table", "column", "routine", "parameter", "synonym"):
        include = getattr(settings, f"{name}_include")
        exclude = getattr(settings, f"{name}_exclude")
        if include or exclude:
            console.print(f"  {name.capitalize()} rule: include={include or '*'} exclude={exclude or '-'}")
    console.print(f"  Table types: {settings.table_types or 'All'}")
    console.print(f"  Routine types: {settings.routine_types or 'All'}")
    console.print(f"  Enabled categories: {settings.enable_categories or 'Per info level'}")
    console.print(f"  Disabled categories: {settings.disable_categories or 'None'}")
    console.print(f"  Type map overrides: {len(settings.type_map)}")
    console.print(f"  Run log: {'Enabled' if settings.run_log_enabled else 'Disabled'}")
    console.print(f"  Run log database: {settings.run_log_db_path or '~/.catalog-crawler/crawl_runs.db'}")
    console.print(f"  Run log retention: {settings.run_log_retention_days} days")
    console.print(f"  Log level: {settings.log_level}")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Console log level (default from settings)"),
):
    """
    catalog-crawler - Crawl database metadata into an in-memory catalog.

    Examples:

        catalog-crawler crawl sqlite ./app.db

        catalog-crawler crawl duckdb ./warehouse.duckdb --info-level maximum

        catalog-crawler crawl sqlite ./app.db --exclude-tables "*.TMP_*"

        catalog-crawler runs list
    """
    configure_logging("DEBUG" if verbose else (log_level or settings.log_level))


if __name__ == "__main__":
    app()
