from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
import os
from pathlib import Path
from typing import Any

import typer
from rich.box import ROUNDED
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from vcdash.assessment import required_call_summary, score_summary
from vcdash.client import AttioAPIError, AttioConfigError
from vcdash.config import get_settings
from vcdash.db import init_db
from vcdash.funnel import FUNNEL_STAGES, FunnelSnapshot
from vcdash.joiner import coverage_stats
from vcdash.lp_pipeline import FUNDS_BY_ID, summarize_pipeline
from vcdash.portfolio import compute_portfolio_summary
from vcdash.services import DashboardService

app = typer.Typer(help="Venture dashboard views derived from the Attio CRM")
console = Console()


_LOG_LEVELS = (logging.WARNING, logging.INFO, logging.DEBUG)


@app.callback()
def app_callback(
    ctx: typer.Context,
    db_path: str | None = typer.Option(None, "--db-path", help="SQLite file for assessments and durable caches."),
    json_output: bool = typer.Option(False, "--json", help="Output raw JSON for scripting."),
    verbose: int = typer.Option(0, "-v", "--verbose", count=True, help="Increase log verbosity."),
) -> None:
    if db_path:
        os.environ["VCDASH_DB_PATH"] = str(Path(db_path).expanduser().resolve())
        get_settings.cache_clear()
    ctx.obj = {"json_output": json_output}
    handler = logging.StreamHandler() if json_output else RichHandler(console=console, show_path=False)
    logging.basicConfig(level=_LOG_LEVELS[min(verbose, 2)], format="%(message)s",
                        handlers=[handler], force=True)


def _json_mode(ctx: typer.Context) -> bool:
    return bool(ctx.obj and ctx.obj.get("json_output"))


def _cell(value: Any) -> str:
    if value is None:
        return "-"
    if isinstance(value, float):
        return f"{value:,.2f}"
    if isinstance(value, list):
        return ", ".join(map(str, value)) or "-"
    return str(value)


def _print(title: str, payload: dict[str, Any], ctx: typer.Context) -> None:
    """Flat values in one table, each nested mapping in a table of its own."""
    if _json_mode(ctx):
        typer.echo(json.dumps(payload, indent=2, ensure_ascii=False, default=str))
        return
    sections = [(title, {k: v for k, v in payload.items() if not isinstance(v, dict)})]
    sections += [(f"{title}: {k}", v) for k, v in payload.items() if isinstance(v, dict)]
    for name, rows in sections:
        if not rows:
            continue
        table = Table(show_header=False, box=ROUNDED)
        table.add_column(style="bold")
        table.add_column(justify="right")
        for key, value in rows.items():
            table.add_row(str(key), _cell(value))
        console.print(Panel(table, title=name, border_style="cyan"))


def _service() -> DashboardService:
    init_db()
    return DashboardService()


def _run(coro):
    try:
        return asyncio.run(coro)
    except (AttioConfigError, AttioAPIError) as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("coverage")
def coverage_command(
    ctx: typer.Context,
    refresh: bool = typer.Option(False, "--refresh", help="Bypass the cache."),
) -> None:
    snap = _run(_service().load_coverage(refresh=refresh))
    _print("coverage", {"rows": len(snap.data), "is_live": snap.is_live, "error": snap.error,
                        **coverage_stats(snap.data)}, ctx)


@app.command("funnel")
def funnel_command(
    ctx: typer.Context,
    refresh: bool = typer.Option(False, "--refresh", help="Bypass the cache."),
) -> None:
    service = _service()
    snap = _run(service.load_funnel(refresh=refresh))
    qualified = _run(service.qualified_count())
    funnel = FunnelSnapshot.from_dict(snap.data)
    counts = dict(funnel.counts)
    counts["universe"] = max(counts.get("universe", 0), qualified.data)

    if _json_mode(ctx):
        _print("funnel", {"counts": counts, "email_metrics": funnel.email_metrics,
                          "is_live": snap.is_live, "error": snap.error}, ctx)
        return

    table = Table(show_header=True, header_style="bold cyan", box=ROUNDED)
    table.add_column("Stage", style="bold")
    table.add_column("Count", justify="right")
    table.add_column("Conversion", justify="right")
    previous = None
    for stage in FUNNEL_STAGES:
        count = counts.get(stage.id, 0)
        rate = f"{count / previous * 100:.0f}%" if previous else "-"
        table.add_row(stage.name, f"{count:,}", rate)
        previous = count
    title = "deal funnel" if snap.is_live else "deal funnel (cached)"
    console.print(Panel(table, title=title, border_style="green"))
    _print("email metrics", {k: v for k, v in funnel.email_metrics.items() if k != "by_year"}, ctx)


@app.command("lps")
def lps_command(
    ctx: typer.Context,
    fund_id: str = typer.Argument("fund3", help="commit, fund3 or fund2"),
    refresh: bool = typer.Option(False, "--refresh", help="Bypass the cache."),
) -> None:
    if fund_id not in FUNDS_BY_ID:
        raise typer.BadParameter(f"fund must be one of {', '.join(FUNDS_BY_ID)}")
    snap = _run(_service().load_lps(refresh=refresh))
    summary = summarize_pipeline(fund_id, snap.data)

    if _json_mode(ctx):
        payload = dataclasses.asdict(summary)
        payload.update(is_live=snap.is_live, error=snap.error)
        _print("lps", payload, ctx)
        return

    table = Table(show_header=True, header_style="bold cyan", box=ROUNDED)
    table.add_column("Stage", style="bold")
    table.add_column("Weight", justify="right")
    table.add_column("LPs", justify="right")
    table.add_column(f"Total ({summary.currency})", justify="right")
    table.add_column("Weighted", justify="right")
    for stage in summary.stages:
        table.add_row(stage.name, f"{stage.weight:.0%}", str(stage.count),
                      f"{stage.total:,.0f}", f"{stage.weighted:,.0f}")
    console.print(Panel(table, title=f"{FUNDS_BY_ID[fund_id].name} pipeline", border_style="green"))
    _print("totals", {
        "active_lps": summary.active_count,
        "active_total": summary.active_total,
        "active_weighted": summary.active_weighted,
        "committed": summary.committed,
        "no_status": summary.no_status_count,
        "estimated_amounts": summary.estimated_count,
    }, ctx)


@app.command("portfolio")
def portfolio_command(ctx: typer.Context) -> None:
    _print("portfolio", compute_portfolio_summary(), ctx)


@app.command("assessment")
def assessment_command(ctx: typer.Context, company_id: str = typer.Argument(...)) -> None:
    assessments = _service().assessments
    summary = score_summary(assessments.get(company_id))
    calls = required_call_summary(assessments.completed_calls(company_id))["overall"]
    _print(f"assessment {company_id}", {
        "completion": summary["completion"],
        "score": summary["score"],
        "required_calls": f"{calls['done']}/{calls['total']}",
        "themes": {k: f"{v['completion']}% / {_cell(v['score'])}" for k, v in summary["themes"].items()},
    }, ctx)


@app.command("board")
def board_command(
    ctx: typer.Context,
    refresh: bool = typer.Option(False, "--refresh", help="Bypass the cache."),
) -> None:
    snap = _run(_service().load_board(refresh=refresh))
    if _json_mode(ctx):
        _print("board", {"cards": snap.data, "is_live": snap.is_live, "error": snap.error}, ctx)
        return
    table = Table(show_header=True, header_style="bold cyan", box=ROUNDED)
    table.add_column("Deal", style="bold")
    table.add_column("Status")
    table.add_column("Column")
    for card in snap.data:
        column = card["column"] + (" (pinned)" if card["override"] else "")
        table.add_row(card["name"], _cell(card["satus"]), column)
    console.print(Panel(table, title="DD board" if snap.is_live else "DD board (cached)", border_style="green"))


@app.command("sync")
def sync_command(ctx: typer.Context) -> None:
    _print("sync", {"cleared": _service().sync()}, ctx)


@app.command("serve")
def serve_command(
    host: str = typer.Option("127.0.0.1", help="Bind address."),
    port: int = typer.Option(8001, help="Port."),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes."),
) -> None:
    import uvicorn
    uvicorn.run("vcdash.app:app", host=host, port=port, reload=reload)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
