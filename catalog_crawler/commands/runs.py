"""Crawl run history commands."""

import json
import typer
from typing import Optional
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..logging import get_run_logger

app = typer.Typer(help="Crawl run history")
console = Console()


@app.command("list")
def list_runs(
    status: Optional[str] = typer.Option(None, "--status", help="Filter by status (started, success, error)"),
    source_type: Optional[str] = typer.Option(None, "--source-type", help="Filter by source type (sqlite, duckdb)"),
    since_hours: int = typer.Option(24, "--since-hours", help="Look back N hours"),
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum number of runs"),
):
    """List recent crawl runs."""
    run_logger = get_run_logger()
    if not run_logger.enabled:
        console.print("[yellow]Crawl run logging is disabled.[/yellow]")
        return

    runs = run_logger.query_runs(
        status=status,
        source_type=source_type,
        since_hours=since_hours,
        limit=limit,
    )
    if not runs:
        console.print("[yellow]No crawl runs found.[/yellow]")
        return

    table = Table(title=f"Crawl Runs (last {since_hours}h)")
    table.add_column("Run ID", style="cyan")
    table.add_column("Started", style="dim")
    table.add_column("Source")
    table.add_column("Path")
    table.add_column("Status")
    table.add_column("Tables", justify="right")
    table.add_column("Warnings", justify="right")
    table.add_column("Time (ms)", justify="right")

    for run in runs:
        status_style = {"success": "green", "error": "red"}.get(run["status"], "yellow")
        table.add_row(
            run["run_id"],
            run["timestamp"][:19],
            run["source_type"],
            run.get("source_path") or "-",
            f"[{status_style}]{run['status']}[/{status_style}]",
            str(run.get("tables_count") or 0),
            str(run.get("warnings_count") or 0),
            str(run.get("duration_ms") or "-"),
        )

    console.print(table)


@app.command("show")
def show_run(
    run_id: str = typer.Argument(..., help="Run ID"),
):
    """Show details of a crawl run."""
    run = get_run_logger().get_run(run_id)
    if run is None:
        console.print(f"[red]Run not found: {run_id}[/red]")
        raise typer.Exit(1)

    console.print(f"[bold]Crawl Run: {run['run_id']}[/bold]")
    console.print(f"  Started: {run['timestamp']}")
    console.print(f"  Source: {run['source_type']} {run.get('source_path') or ''}")
    console.print(f"  Info level: {run.get('info_level') or '-'}")
    console.print(f"  Status: {run['status']}")
    console.print(f"  Duration: {run.get('duration_ms') or '-'} ms")
    if run.get("product_name"):
        console.print(f"  Product: {run['product_name']} {run.get('product_version') or ''}")
        console.print(
            f"  Objects: {run.get('schemas_count') or 0} schemas, {run.get('tables_count') or 0} tables, "
            f"{run.get('columns_count') or 0} columns, {run.get('routines_count') or 0} routines"
        )
    if run.get("arguments"):
        console.print(f"  Arguments: {escape(json.dumps(run['arguments']))}")
    for warning in run.get("warnings") or []:
        console.print(f"  [yellow]Warning ({warning['category']}): {escape(warning['message'])}[/yellow]")
    if run["status"] == "error":
        console.print(f"  [red]Error ({run.get('error_type')}): {escape(run.get('error_message') or '')}[/red]")


@app.command("stats")
def run_stats(
    since_hours: int = typer.Option(24, "--since-hours", help="Look back N hours"),
):
    """Show crawl run statistics."""
    stats = get_run_logger().get_stats(since_hours=since_hours)
    if "error" in stats:
        console.print(f"[yellow]{stats['error']}[/yellow]")
        return

    console.print(f"[bold]Crawl Runs (last {since_hours}h)[/bold]")
    console.print(f"  Total runs: {stats['total_runs']}")
    console.print(f"  Successful: [green]{stats['success_count']}[/green]")
    console.print(f"  Failed: [red]{stats['error_count']}[/red]")
    console.print(f"  Average duration: {stats['avg_duration_ms']} ms")
    console.print(f"  Tables crawled: {stats['total_tables_crawled']}")
    console.print(f"  Warnings: {stats['total_warnings']}")

    if stats["by_source_type"]:
        table = Table(title="By Source Type")
        table.add_column("Source", style="cyan")
        table.add_column("Runs", justify="right")
        table.add_column("Success", justify="right", style="green")
        table.add_column("Errors", justify="right", style="red")
        for row in stats["by_source_type"]:
            table.add_row(row["source_type"], str(row["runs"]), str(row["succeeded"]), str(row["failed"]))
        console.print(table)

    for error in stats["recent_errors"]:
        console.print(f"  [red]{error['run_id']}: {escape(error.get('error_message') or '')}[/red]")
