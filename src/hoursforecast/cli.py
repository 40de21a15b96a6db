from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from .agents import AnalystAgent, ReporterAgent
from .catalog import find_entry, match_related, search_catalog
from .config import EngineConfig, default_config
from .db import delete_quote, get_connection, init_db, list_quotes, save_quote
from .io import load_catalog, load_inputs
from .model import breakdown_frame
from .quotes import build_snapshot
from .recurrence import classify_days
from .reporting import write_schedule
from .synth import SynthSpec, generate_synthetic_catalog
from .types import BudgetStatus, RateCategory

app = typer.Typer(add_completion=False, help="Recurring service hours and cost forecaster.")
console = Console()


def _load_config(config: Optional[Path]) -> EngineConfig:
    return EngineConfig.from_yaml(config) if config else default_config()


def _db_path(db: Optional[Path], config: Optional[Path]) -> Path:
    return db or Path(_load_config(config).db_path)


@app.command()
def forecast(
    inputs: Path = typer.Option(..., exists=True, dir_okay=False, help="YAML file with forecast inputs."),
    config: Optional[Path] = typer.Option(None, help="Settings YAML (default uses packaged settings)."),
    budget: Optional[float] = typer.Option(None, help="Target budget; turns on budget lock."),
    all_rates_same: bool = typer.Option(
        False, "--all-rates-same", help="Pay weekend and holiday hours at the weekday rate."
    ),
    save: Optional[str] = typer.Option(None, help="Save the forecast as a quote with this description."),
    schedule: Optional[Path] = typer.Option(None, help="Write the counted-day schedule to this CSV."),
    db: Optional[Path] = typer.Option(None, help="SQLite quote database (default from settings)."),
):
    cfg = _load_config(config)
    raw = load_inputs(inputs)
    if budget is not None:
        raw = {**raw, "budget": budget, "budget_locked": True}
    if all_rates_same:
        raw = {**raw, "all_rates_same": True}
    analysis = AnalystAgent(cfg).run(raw)
    result = analysis.result
    if not result.ok:
        console.print(f"[red]{result.error}[/red]")
        raise typer.Exit(code=1)

    table = Table(title="Forecast")
    for col in ["Category", "Hours", "Pay"]:
        table.add_column(col, justify="left" if col == "Category" else "right")
    for _, row in breakdown_frame(result).iterrows():
        table.add_row(row["Category"], f"{row['Hours']:,.2f}", f"${row['Pay']:,.2f}")
    console.print(table)

    b = result.breakdown
    console.print(
        f"Counted days {b.counted_days} (weekdays {b.counted_weekdays}, Saturdays {b.counted_saturdays}, "
        f"Sundays {b.counted_sundays}, holidays {b.counted_holidays}); full weeks {b.full_weeks}, "
        f"fortnights {b.full_fortnights}, months {b.full_months}"
    )
    if result.travel_total:
        console.print(f"Travel ${result.travel_total:,.2f}; grand total ${result.grand_total:,.2f}")
    for w in result.warnings:
        console.print(f"[yellow]{w}[/yellow]")

    if analysis.variance is not None:
        v = analysis.variance
        colour = {BudgetStatus.OVER: "red", BudgetStatus.UNDER: "green"}.get(v.status, "blue")
        console.print(f"Budget vs. Projected: [{colour}]{v.label}[/{colour}]")

    if analysis.suggestion is not None:
        s = analysis.suggestion
        console.print(f"Budget scaling factor: {s.scaling_factor:.4f}")
        for day, hours in s.suggested_hours.items():
            if hours:
                console.print(f"  {day.value}: {hours:.2f} h/day")
        for kind, distance in s.suggested_travel.items():
            console.print(f"  {kind.value}: {distance:.2f}")

    if schedule is not None and analysis.inputs is not None:
        i = analysis.inputs
        write_schedule(schedule, classify_days(i.date_range, i.pattern, i.policy, i.holidays, i.holidays_enabled))
        console.print(f"Wrote schedule to {schedule}")

    if save and analysis.inputs is not None:
        quote = build_snapshot(save, analysis.inputs.rate_sheet, result, analysis.inputs.date_range, analysis.inputs.policy)
        db_path = init_db(db or cfg.db_path)
        conn = get_connection(db_path)
        try:
            save_quote(conn, quote)
        finally:
            conn.close()
        console.print(f"Saved quote {quote.id}")


@app.command()
def match(
    catalog: Path = typer.Option(..., exists=True, dir_okay=False, help="Rate catalog (.csv or .json)."),
    query: Optional[str] = typer.Option(None, help="Search text (name tokens or code)."),
    base: Optional[str] = typer.Option(None, help="Code of the base (weekday daytime) item."),
    config: Optional[Path] = typer.Option(None, help="Settings YAML (default uses packaged settings)."),
    rate_field: Optional[str] = typer.Option(None, help="Catalog price column (overrides settings)."),
    limit: int = typer.Option(20, min=1, help="Maximum search results."),
):
    """Search the catalog, or derive related category rates from a base item."""
    cfg = _load_config(config)
    entries = load_catalog(catalog, rate_field or cfg.rate_field)

    if base:
        entry = find_entry(entries, base)
        if entry is None:
            raise typer.BadParameter(f"No catalog item with code {base}")
        related = match_related(entries, entry)
        table = Table(title=f"Rates related to {entry.code}")
        for col in ["Category", "Code", "Name", "Rate"]:
            table.add_column(col, no_wrap=col == "Code")
        for cat in RateCategory:
            hit = related.get(cat)
            if hit is None:
                table.add_row(cat.label, "-", "(no match)", "-")
            else:
                table.add_row(cat.label, hit.catalog_code or "", hit.catalog_name or "", f"${hit.amount:,.2f}")
        console.print(table)
        return

    if not query:
        raise typer.BadParameter("Provide --query or --base")
    table = Table(title=f"Catalog matches for '{query}'")
    for col in ["Code", "Name", "Rate"]:
        table.add_column(col, no_wrap=col == "Code")
    for entry in search_catalog(entries, query, limit=limit):
        table.add_row(entry.code, entry.name, f"${entry.amount:,.2f}")
    console.print(table)


@app.command()
def synth(
    out: Path = typer.Option(..., help="Output catalog file (.csv or .json)."),
    items: int = typer.Option(4, min=1, max=4, help="Number of support items."),
    seed: int = typer.Option(42, help="RNG seed."),
):
    generate_synthetic_catalog(out, SynthSpec(items=items, seed=seed))
    console.print(f"Wrote synthetic catalog to {out}")


@app.command(name="init-db")
def init_db_cmd(
    config: Optional[Path] = typer.Option(None, help="Settings YAML (default uses packaged settings)."),
    db: Optional[Path] = typer.Option(None, help="SQLite quote database (default from settings)."),
):
    """Initialize the SQLite database (creates tables if they don't exist)."""
    path = init_db(_db_path(db, config))
    console.print(f"Database initialized at {path}")


@app.command()
def quotes(
    config: Optional[Path] = typer.Option(None, help="Settings YAML (default uses packaged settings)."),
    db: Optional[Path] = typer.Option(None, help="SQLite quote database (default from settings)."),
):
    """List saved quotes."""
    path = init_db(_db_path(db, config))
    conn = get_connection(path)
    try:
        saved = list_quotes(conn)
    finally:
        conn.close()
    table = Table(title="Saved quotes")
    for col in ["Id", "Description", "Period", "Hours", "Pay"]:
        table.add_column(col)
    for q in saved:
        table.add_row(
            q.id,
            q.description,
            f"{q.date_range.start} to {q.date_range.end}",
            f"{q.total_hours:,.2f}",
            f"${q.total_pay:,.2f}",
        )
    console.print(table)


@app.command(name="delete-quote")
def delete_quote_cmd(
    quote_id: str = typer.Argument(..., help="Id of the quote to delete."),
    config: Optional[Path] = typer.Option(None, help="Settings YAML (default uses packaged settings)."),
    db: Optional[Path] = typer.Option(None, help="SQLite quote database (default from settings)."),
):
    path = init_db(_db_path(db, config))
    conn = get_connection(path)
    try:
        deleted = delete_quote(conn, quote_id)
    finally:
        conn.close()
    if not deleted:
        console.print(f"[red]Quote {quote_id} not found[/red]")
        raise typer.Exit(code=1)
    console.print(f"Deleted quote {quote_id}")


@app.command()
def pack(
    out: Path = typer.Option(..., help="Output directory for the quote pack."),
    config: Optional[Path] = typer.Option(None, help="Settings YAML (default uses packaged settings)."),
    db: Optional[Path] = typer.Option(None, help="SQLite quote database (default from settings)."),
):
    """Write the agreement summary, workbook and chart for all saved quotes."""
    path = init_db(_db_path(db, config))
    conn = get_connection(path)
    try:
        saved = list_quotes(conn)
    finally:
        conn.close()
    ReporterAgent().package(out_dir=out, quotes=saved)
    console.print(f"Wrote quote pack to {out}")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Host to bind (use 0.0.0.0 for LAN)."),
    port: int = typer.Option(8000, help="Port to serve the API on."),
):
    """Start the forecast API server."""
    try:
        import uvicorn
    except Exception as e:  # pragma: no cover
        raise typer.BadParameter('Missing server deps. Install with: pip install -e ".[server]"') from e

    uvicorn.run("hoursforecast.server:app", host=host, port=port, reload=False)
