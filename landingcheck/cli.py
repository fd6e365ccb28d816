"""LandingCheck CLI — catch certificate / landing reconciliation.

Commands:
  init-db      — create database tables
  refresh      — load reference data and risking settings, print counts
  score        — risk breakdown for a vessel / species / exporter
  investigate  — landings to re-fetch for a certificate + landing export
  eod-audit    — evidence-of-date change history
  serve        — run the HTTP API
"""
from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table


app = typer.Typer(
    name="landingcheck",
    help="Reconcile catch certificates against recorded landings.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("init-db")
def init_db_command():
    """Create all database tables."""
    from landingcheck.database import init_db

    with console.status("[bold]Creating database..."):
        init_db()
    console.print("[green]Database ready.[/green]")


@app.command("refresh")
def refresh(
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", help="Reference data directory"),
    weighting_config: Optional[Path] = typer.Option(None, "--weighting", help="Risk weighting YAML"),
):
    """Load reference data, risking settings and EOD rules; print per-category counts."""
    cache = _load_cache(data_dir, weighting_config)
    table = Table(title="Reference data")
    table.add_column("Category")
    table.add_column("Records", justify="right")
    for category, count in cache.category_counts().items():
        table.add_row(category, str(count))
    console.print(table)


@app.command("score")
def score(
    pln: str = typer.Option(..., "--pln", help="Vessel port letter and number"),
    species: str = typer.Option(..., "--species", help="FAO species code"),
    account_id: Optional[str] = typer.Option(None, "--account-id"),
    contact_id: Optional[str] = typer.Option(None, "--contact-id"),
    data_dir: Optional[Path] = typer.Option(None, "--data-dir"),
):
    """Show the weighted risk components and verdict."""
    from landingcheck.modules.risk_scoring import RiskScoringEngine

    cache = _load_cache(data_dir)
    breakdown = RiskScoringEngine(cache).risk_breakdown(pln, species, account_id, contact_id)

    table = Table(title=f"Risk for {pln} / {species}")
    table.add_column("Component")
    table.add_column("Value", justify="right")
    for key in ("vesselScore", "speciesScore", "exporterScore", "totalScore", "threshold"):
        table.add_row(key, f"{breakdown[key]:.4f}")
    console.print(table)
    if breakdown["isHighRisk"]:
        console.print("[bold red]HIGH RISK[/bold red]")
    else:
        console.print("[green]Not high risk[/green]")
    if not breakdown["isRiskEnabled"]:
        console.print("[dim]Species risking is disabled[/dim]")


@app.command("investigate")
def investigate(
    export_file: Path = typer.Argument(..., help="JSON file with 'certificates' and 'landings' arrays"),
    query_time: Optional[datetime] = typer.Option(None, "--query-time", help="Defaults to now (UTC)"),
    data_dir: Optional[Path] = typer.Option(None, "--data-dir"),
):
    """List (RSS number, landing date) pairs whose landings should be re-fetched."""
    from landingcheck.modules.landing_query import LandingReconciliationQuery
    from landingcheck.utils.dates import utc_now

    try:
        with open(export_file, encoding="utf-8") as f:
            payload = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Cannot read {export_file}: {e}[/red]")
        raise typer.Exit(1)

    cache = _load_cache(data_dir)
    try:
        candidates = LandingReconciliationQuery(cache).missing_landing_investigation_refresh_query(
            payload.get("certificates") or [],
            payload.get("landings") or [],
            cache.vessel_index,
            query_time or utc_now(),
        )
    except ValueError as e:
        console.print(f"[red]Invalid export data: {e}[/red]")
        raise typer.Exit(1)

    if not candidates:
        console.print("[green]No landings need investigating[/green]")
        return
    table = Table(title="Landings to re-fetch")
    table.add_column("RSS number")
    table.add_column("Date landed")
    for candidate in candidates:
        table.add_row(candidate.rss_number, candidate.date_landed)
    console.print(table)


@app.command("eod-audit")
def eod_audit(
    da: Optional[str] = typer.Option(None, "--da", help="Only show one devolved authority"),
):
    """Show the evidence-of-date change history."""
    from landingcheck.database import SessionLocal
    from landingcheck.modules.eod_repository import SqlEodRepository
    from landingcheck.modules.eod_rules import EvidenceOfDateEngine
    from landingcheck.modules.reference_cache import ReferenceDataCache

    db = SessionLocal()
    try:
        audits = EvidenceOfDateEngine(ReferenceDataCache(), SqlEodRepository(db)).eod_audits()
    finally:
        db.close()

    if da:
        audits = [a for a in audits if a["da"] == da]
    if not audits:
        console.print("[yellow]No EOD changes recorded[/yellow]")
        return

    console.print(f"[bold]EOD audit[/bold] ({len(audits)} changes)")
    for audit in audits:
        change = f"{audit['changedFrom'] or '-'} -> {audit['changedTo'] or '-'}"
        console.print(
            f"  {audit['date']} {audit['time']}  [cyan]{audit['user']}[/cyan]  {audit['da']}  "
            f"{audit['rule']} ({audit['vesselSizes'] or '-'})  {change}"
        )


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8000, "--port"),
):
    """Run the HTTP API."""
    import uvicorn

    console.print(f"API running at [cyan]http://{host}:{port}/docs[/cyan] — press Ctrl+C to stop")
    uvicorn.run("landingcheck.main:app", host=host, port=port)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_cache(data_dir: Optional[Path] = None, weighting_config: Optional[Path] = None):
    """Build a fully refreshed cache, exiting non-zero if a source is broken."""
    from landingcheck.database import SessionLocal, init_db
    from landingcheck.modules.reference_cache import ReferenceDataCache
    from landingcheck.modules.reference_loader import ReferenceLoadError
    from landingcheck.modules.refresh import refresh_all

    cache = ReferenceDataCache()
    init_db()
    db = SessionLocal()
    try:
        with console.status("[bold]Loading reference data..."):
            refresh_all(
                cache, db,
                str(data_dir) if data_dir else None,
                str(weighting_config) if weighting_config else None,
            )
    except ReferenceLoadError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    finally:
        db.close()
    return cache
