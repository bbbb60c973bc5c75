"""Flotilla tracker CLI — vessel ETA report for boats en route to Gaza.

Commands:
  run      — process one scrape: normalize, sort, persist snapshot + history
  status   — latest snapshot summary and history length
  history  — most recent history entries
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from flotilla.config import get_settings

app = typer.Typer(
    name="flotilla",
    help="Track flotilla vessels and estimate their arrival at Gaza.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Configure logging for every command."""
    level = "DEBUG" if verbose else get_settings().LOG_LEVEL
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("run")
def run(
    input_path: Optional[Path] = typer.Option(None, "--input", "-i", help="Scraper JSON output file"),
    url: Optional[str] = typer.Option(None, "--url", help="Scraper JSON endpoint (defaults to SOURCE_URL)"),
    demo: bool = typer.Option(False, "--demo", help="Use built-in sample rows"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Do not write snapshot or history"),
):
    """Process one scrape and update the snapshot and history."""
    from flotilla.errors import PersistenceUnavailable
    from flotilla.modules.pipeline import ProcessingPipeline

    settings = get_settings()
    try:
        rows = _load_rows(input_path, url or settings.SOURCE_URL, demo)
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]Could not load vessel rows: {e}[/red]")
        raise typer.Exit(1)

    pipeline = ProcessingPipeline.from_settings(settings, persist=not dry_run)
    try:
        result = pipeline.run(rows)
    except PersistenceUnavailable as e:
        if e.result is not None:
            _print_vessels_table(console, e.result)
        console.print(f"[red]Report not persisted: {e}[/red]")
        raise typer.Exit(1)

    _print_vessels_table(console, result)
    stats = result.stats
    console.print(
        f"  Vessels: {stats.total}  |  Sailing: {stats.sailing}  |  "
        f"Intercepted: {stats.intercepted}  |  Other: {stats.other}"
    )
    console.print(f"  Skipped: {stats.skipped}  |  Failed: {stats.failed}")
    if dry_run:
        console.print("[yellow]Dry run: snapshot and history not written[/yellow]")
    else:
        console.print(f"[green]Snapshot written to {settings.snapshot_path}[/green]")


@app.command("status")
def status():
    """Show the latest snapshot and history size."""
    from flotilla.modules.history_store import HistoryStore

    settings = get_settings()
    store = HistoryStore.from_settings(settings)
    snapshot = store.load_snapshot()
    if snapshot is None:
        console.print(
            "[yellow]No snapshot yet.[/yellow] Run [cyan]flotilla run --input FILE[/cyan] first."
        )
        raise typer.Exit(0)

    history = store.load_history()
    stats = snapshot.stats
    console.print(f"[bold]Snapshot:[/bold] {snapshot.generated_at.isoformat()}")
    console.print(
        f"  Vessels: {stats.total}  |  Sailing: {stats.sailing}  |  "
        f"Intercepted: {stats.intercepted}  |  Other: {stats.other}"
    )
    if stats.latest_update:
        console.print(f"  Latest position update: {stats.latest_update.isoformat()}")
    console.print(f"  History: {len(history)}/{store.cap} entries")


@app.command("history")
def history(
    limit: int = typer.Option(10, "--limit", "-n", help="Number of entries to show"),
):
    """List the most recent history entries."""
    from flotilla.modules.history_store import HistoryStore

    store = HistoryStore.from_settings(get_settings())
    entries = store.load_history()
    if not entries:
        console.print("[yellow]History is empty.[/yellow]")
        raise typer.Exit(0)

    table = Table(title=f"History ({len(entries)} entries, newest first)")
    table.add_column("Timestamp (UTC)", style="cyan")
    table.add_column("Vessels", justify="right")
    table.add_column("Closest")
    table.add_column("Distance (nm)", justify="right")

    for entry in reversed(entries[-limit:]):
        closest = next((v for v in entry.vessels if v.distance_nm is not None), None)
        table.add_row(
            entry.timestamp.strftime("%Y-%m-%d %H:%M"),
            str(len(entry.vessels)),
            closest.name if closest else "-",
            f"{closest.distance_nm:.1f}" if closest else "-",
        )
    console.print(table)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_rows(input_path: Optional[Path], url: Optional[str], demo: bool) -> list[dict]:
    """Pick the row source: --demo, then --input, then --url / SOURCE_URL."""
    if demo:
        from scripts.generate_sample_data import generate_sample_rows
        return generate_sample_rows()
    if input_path is not None:
        from flotilla.modules.source import load_raw_records
        return load_raw_records(input_path)
    if url:
        from flotilla.modules.source import fetch_raw_records
        settings = get_settings()
        with console.status("[bold]Fetching vessel rows..."):
            return fetch_raw_records(
                url,
                timeout=settings.SOURCE_TIMEOUT,
                attempts=settings.RETRY_ATTEMPTS,
                base_delay=settings.RETRY_BASE_DELAY,
            )
    console.print("[red]No input: pass --input FILE, --url URL, or --demo (or set SOURCE_URL).[/red]")
    raise typer.Exit(2)


def _print_vessels_table(con: Console, result) -> None:
    """Print a Rich table of vessels, closest first."""
    table = Table(title=f"Vessels ({len(result.vessels)}) at {result.generated_at:%Y-%m-%d %H:%M} UTC")
    table.add_column("Vessel", style="cyan")
    table.add_column("Status")
    table.add_column("Speed (kn)", justify="right")
    table.add_column("Distance (nm)", justify="right")
    table.add_column("ETA")
    table.add_column("Last update")

    for v in result.vessels:
        table.add_row(
            v.name,
            v.status_label,
            f"{v.speed_kn:.1f}" if v.speed_kn is not None else "-",
            f"{v.distance_nm:.1f}" if v.distance_nm is not None else "-",
            v.eta_display,
            v.last_update_display or "-",
        )
    con.print(table)
