"""Command line entry point for Trip Vault."""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from trip_vault.core.config import MissingSettingsError, require_settings
from trip_vault.core.db import SessionLocal, init_db
from trip_vault.core.logging import configure_logging
from trip_vault.modules.classification.categories import Category
from trip_vault.modules.documents.schemas import DocumentOut
from trip_vault.modules.documents.service import list_documents, to_result
from trip_vault.modules.ingestion.service import (
    FileOutcome,
    IngestionError,
    IngestionReport,
    run_ingestion,
    run_reclassify,
)
from trip_vault.modules.trips.aggregator import TripSummary
from trip_vault.modules.trips.service import (
    get_trip_summary,
    refresh_trip_summary,
    summary_from_record,
)
from trip_vault.modules.trips.timeline import build_timeline

app = typer.Typer(
    name="trip-vault",
    help="Classify travel PDFs, store them and summarize the trip.",
    no_args_is_help=True,
)

console = Console()

FOLDER_OPTION = typer.Option(
    ...,
    "--folder",
    "-f",
    help="Folder of PDF documents to ingest",
)


def _prepare() -> None:
    configure_logging()
    try:
        require_settings()
    except MissingSettingsError as e:
        console.print(f"[red]{e}[/red]")
        console.print("[dim]Set them in the environment or in .env[/dim]")
        raise typer.Exit(1) from e
    init_db()


def _print_progress(outcome: FileOutcome) -> None:
    if outcome.result is None:
        console.print(f"[red]✗[/red] {escape(outcome.filename)}: {escape(str(outcome.error))}")
        return
    result = outcome.result
    event_date = result.event_date or "no date"
    console.print(
        f"[green]✓[/green] {escape(outcome.filename)} → [cyan]{result.category.value}[/cyan] "
        f"[dim]{event_date}[/dim] {escape(result.title)}"
    )


def _print_summary_lines(summary: TripSummary) -> None:
    console.print(f"\n[bold]{escape(summary.trip_name)}[/bold]")
    if summary.start_date:
        dates = f"{summary.start_date} to {summary.end_date}"
        if summary.duration_days:
            dates += f" ({summary.duration_days} days)"
        console.print(f"  Dates: {dates}")
    if summary.destinations:
        console.print(f"  Destinations: {escape(', '.join(summary.destinations))}")
    if summary.passengers:
        console.print(f"  Passengers: {escape(', '.join(summary.passengers))}")
    if summary.primary_airline:
        console.print(f"  Airline: {escape(summary.primary_airline)}")
    console.print(
        f"  Flights: {summary.total_flights}  Hotels: {summary.total_hotels}  "
        f"Activities: {summary.total_activities}  Documents: {summary.total_documents}"
    )


def _print_report(report: IngestionReport) -> None:
    counts = report.category_counts()
    table = Table(title="Documents by category")
    table.add_column("Category", style="cyan")
    table.add_column("Count", justify="right")
    for category in Category:
        table.add_row(category.value, str(counts.get(category.value, 0)))
    console.print()
    console.print(table)

    console.print(f"{report.succeeded}/{report.discovered} documents stored")
    if report.failures:
        console.print(f"[yellow]{len(report.failures)} document(s) failed[/yellow]")
    if not report.summary_saved:
        console.print("[yellow]Trip summary could not be saved[/yellow]")
    if report.summary is not None:
        _print_summary_lines(report.summary)


def _ingest(folder: Path, *, reclassify: bool) -> None:
    _prepare()
    runner = run_reclassify if reclassify else run_ingestion
    try:
        report = runner(folder, progress=_print_progress)
    except IngestionError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1) from e
    _print_report(report)


@app.command()
def run(folder: Path = FOLDER_OPTION) -> None:
    """Upload and classify new or changed documents."""
    _ingest(folder, reclassify=False)


@app.command()
def reclassify(folder: Path = FOLDER_OPTION) -> None:
    """Delete every stored document, then classify the folder again."""
    _ingest(folder, reclassify=True)


@app.command()
def summarize() -> None:
    """Recompute the trip summary from every stored document."""
    _prepare()
    with SessionLocal() as session:
        summary = summary_from_record(refresh_trip_summary(session))
    _print_summary_lines(summary)


@app.command()
def documents(
    category: str = typer.Option(None, "--category", "-c", help="Only show this category"),
    search: str = typer.Option(None, "--search", "-s", help="Match title or filename"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table"),
) -> None:
    """List stored documents ordered by date."""
    if category and category != "all" and category not in {c.value for c in Category}:
        console.print(f"[red]Unknown category: {category}[/red]")
        raise typer.Exit(2)

    _prepare()
    with SessionLocal() as session:
        docs = [
            DocumentOut.model_validate(doc)
            for doc in list_documents(session, category=category, search=search)
        ]

    if as_json:
        typer.echo(json.dumps([doc.model_dump(mode="json") for doc in docs], indent=2))
        return

    table = Table(title=f"Documents ({len(docs)})")
    table.add_column("Date", style="dim")
    table.add_column("Category", style="cyan")
    table.add_column("Title")
    table.add_column("File", style="dim")
    for doc in docs:
        table.add_row(
            doc.event_date or "",
            doc.category.value,
            escape(doc.title or ""),
            escape(doc.filename),
        )
    console.print(table)


@app.command()
def timeline() -> None:
    """Show dated documents grouped by day."""
    _prepare()
    with SessionLocal() as session:
        results = [to_result(doc) for doc in list_documents(session)]

    days = build_timeline(results)
    if not days:
        console.print("[dim]No dated documents[/dim]")
        return
    for day in days:
        console.print(f"\n[bold]{day.date}[/bold]")
        for item in day.items:
            line = f"  {item.time or '--':>9}  [cyan]{item.category.value}[/cyan] "
            line += escape(item.title)
            if item.subtitle:
                line += f" [dim]{escape(item.subtitle)}[/dim]"
            console.print(line)


@app.command()
def trip() -> None:
    """Show the saved trip summary."""
    _prepare()
    with SessionLocal() as session:
        record = get_trip_summary(session)
        summary = summary_from_record(record) if record is not None else None
    if summary is None:
        console.print("[yellow]No trip summary yet. Run `trip-vault run` first.[/yellow]")
        raise typer.Exit(1)

    table = Table(title=escape(summary.trip_name))
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for name, value in summary.to_dict().items():
        if name == "trip_name":
            continue
        if isinstance(value, list):
            value = ", ".join(value)
        table.add_row(name, escape(str(value)) if value not in (None, "") else "[dim](none)[/dim]")
    console.print(table)


if __name__ == "__main__":
    app()
