from __future__ import annotations

import dataclasses
import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from mcp.server.fastmcp import FastMCP

from vcdash.assessment import completion_color, required_call_summary, score_color, score_summary
from vcdash.assessment_schema import ASSESSMENT_THEMES
from vcdash.client import AttioAPIError, AttioConfigError
from vcdash.db import init_db
from vcdash.funnel import FUNNEL_STAGES, FunnelSnapshot
from vcdash.joiner import coverage_stats
from vcdash.lp_pipeline import FUNDS, FUNDS_BY_ID, summarize_pipeline
from vcdash.portfolio import (
    DESTINY_LEVELS,
    FUND_DEFINITIONS,
    HEALTH_LEVELS,
    US_EXPANSION_LEVELS,
    compute_portfolio_summary,
)
from vcdash.services import DashboardService

log = logging.getLogger(__name__)

_service: DashboardService | None = None


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def vcdash_lifespan(server: FastMCP) -> AsyncIterator[None]:
    global _service
    init_db()
    _service = DashboardService()
    yield
    _service = None


mcp = FastMCP(
    "vcdash",
    instructions=(
        "vcdash reads the fund's Attio CRM and derives dashboard views. "
        "Start with coverage_stats() or funnel_counts() for an overview, "
        "lp_pipeline(fund_id) for fundraising, and assessment_scores(company_id) "
        "for due-diligence progress. Call sync() to drop cached data."
    ),
    lifespan=vcdash_lifespan,
    json_response=True,
)


def _svc() -> DashboardService:
    global _service
    if _service is None:
        init_db()
        _service = DashboardService()
    return _service


def _error(exc: Exception) -> dict:
    return {"error": str(exc)}


# ---------------------------------------------------------------------------
# Resource
# ---------------------------------------------------------------------------


@mcp.resource("vcdash://overview")
def vcdash_overview() -> str:
    """Funnel stages, LP funds, portfolio classifications and assessment themes."""
    return json.dumps({
        "funnel_stages": [{"id": s.id, "name": s.name, "description": s.description} for s in FUNNEL_STAGES],
        "funds": [{"id": f.id, "name": f.name, "currency": f.currency} for f in FUNDS],
        "portfolio": {
            "funds": [{"id": f.id, "label": f.label} for f in FUND_DEFINITIONS],
            "health": list(HEALTH_LEVELS),
            "destiny_control": list(DESTINY_LEVELS),
            "us_expansion": list(US_EXPANSION_LEVELS),
        },
        "assessment_themes": [{"id": t.id, "label": t.label, "fields": len(t.real_fields)}
                              for t in ASSESSMENT_THEMES],
    }, indent=2)


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


@mcp.tool()
async def coverage_stats_tool(refresh: bool = False) -> dict:
    """Market coverage: in-scope companies, how many were seen, and outcome/region breakdowns."""
    try:
        snap = await _svc().load_coverage(refresh=refresh)
    except (AttioAPIError, AttioConfigError) as exc:
        return _error(exc)
    return {**coverage_stats(snap.data), "is_live": snap.is_live, "error": snap.error}


@mcp.tool()
async def funnel_counts(refresh: bool = False) -> dict:
    """Cumulative count per funnel stage, plus email conversion metrics."""
    svc = _svc()
    try:
        snap = await svc.load_funnel(refresh=refresh)
    except (AttioAPIError, AttioConfigError) as exc:
        return _error(exc)
    qualified = await svc.qualified_count()
    funnel = FunnelSnapshot.from_dict(snap.data)
    counts = dict(funnel.counts)
    counts["universe"] = max(counts.get("universe", 0), qualified.data)
    return {
        "counts": counts,
        "email_metrics": funnel.email_metrics,
        "active_deals": funnel.active_deals,
        "is_live": snap.is_live,
        "error": snap.error,
    }


@mcp.tool()
async def lp_pipeline(fund_id: str = "fund3", refresh: bool = False) -> dict:
    """Weighted LP pipeline for one fund: commit, fund3 or fund2."""
    if fund_id not in FUNDS_BY_ID:
        return {"error": f"Unknown fund '{fund_id}'", "funds": list(FUNDS_BY_ID)}
    try:
        snap = await _svc().load_lps(refresh=refresh)
    except (AttioAPIError, AttioConfigError) as exc:
        return _error(exc)
    summary = dataclasses.asdict(summarize_pipeline(fund_id, snap.data))
    for stage in summary["stages"]:
        stage.pop("lp_ids", None)
    return {**summary, "is_live": snap.is_live, "error": snap.error}


@mcp.tool()
def portfolio_summary() -> dict:
    """Totals invested, mean ownership and health / destiny-control counts."""
    return compute_portfolio_summary()


@mcp.tool()
def assessment_scores(company_id: str) -> dict:
    """Completion and score per theme for one company's DD assessment, plus required-call progress."""
    assessments = _svc().assessments
    summary = score_summary(assessments.get(company_id))
    return {
        "company_id": company_id,
        **summary,
        "score_color": score_color(summary["score"]),
        "completion_color": completion_color(summary["completion"]),
        "required_calls": required_call_summary(assessments.completed_calls(company_id)),
    }


@mcp.tool()
async def dd_board(refresh: bool = False) -> dict:
    """Deals on the DD board (Met or Committee) with their column; manual overrides win."""
    try:
        snap = await _svc().load_board(refresh=refresh)
    except (AttioAPIError, AttioConfigError) as exc:
        return _error(exc)
    return {"cards": snap.data, "is_live": snap.is_live, "error": snap.error}


@mcp.tool()
def sync() -> dict:
    """Clear every cached view so the next call refetches from Attio."""
    return {"cleared": _svc().sync()}


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main():
    """Run the vcdash MCP server over stdio."""
    mcp.run()


if __name__ == "__main__":
    main()
