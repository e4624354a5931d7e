from __future__ import annotations

import dataclasses
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from vcdash.assessment import completion_color, required_call_summary, score_color, score_summary
from vcdash.client import AttioAPIError, AttioConfigError
from vcdash.db import init_db
from vcdash.funnel import FUNNEL_STAGES, FunnelSnapshot
from vcdash.joiner import coverage_stats
from vcdash.lp_pipeline import FUNDS_BY_ID, summarize_pipeline
from vcdash.portfolio import compute_portfolio_summary
from vcdash.schemas import (
    AssessmentOut,
    AssessmentUpdate,
    BoardCardOut,
    BoardOut,
    BoardOverride,
    CallUpdate,
    CoverageOut,
    CoverageToggle,
    DealStateOut,
    DealStateUpdate,
    FunnelOut,
    FunnelStageOut,
    LPPipelineOut,
    MeetingRatingsOut,
    MeetingRatingUpdate,
    PortfolioOut,
    QualifiedCountOut,
    RequiredCallsOut,
    SyncOut,
    ToggleOut,
)
from vcdash.services import DashboardService

log = logging.getLogger(__name__)

_service: DashboardService | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _service
    init_db()
    _service = DashboardService()
    yield
    _service = None


app = FastAPI(
    title="vcdash",
    version="0.1.0",
    description=(
        "Venture dashboard API over Attio: sourcing coverage, deal funnel, "
        "LP pipeline, portfolio monitoring and DD assessments. "
        "All endpoints return JSON."
    ),
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Coverage", "description": "Market coverage: companies joined with deals and coverage entries."},
        {"name": "Funnel", "description": "Sourcing-to-investment funnel counts."},
        {"name": "LPs", "description": "Fundraising pipeline per fund, weighted by stage."},
        {"name": "Portfolio", "description": "Portfolio companies with health and runway metrics."},
        {"name": "Assessments", "description": "Due-diligence questionnaires, required calls and meeting ratings."},
        {"name": "Board", "description": "DD board columns with manual overrides."},
        {"name": "Admin", "description": "Cache management."},
    ],
)


# ---------------------------------------------------------------------------
# Dependencies & error mapping
# ---------------------------------------------------------------------------


def get_service() -> DashboardService:
    if _service is None:
        raise HTTPException(503, "Service not initialised")
    return _service


@app.exception_handler(AttioConfigError)
async def _config_error(request: Request, exc: AttioConfigError):
    return JSONResponse({"detail": str(exc)}, status_code=500)


@app.exception_handler(AttioAPIError)
async def _api_error(request: Request, exc: AttioAPIError):
    return JSONResponse({"detail": exc.message, "upstream_status": exc.status_code}, status_code=502)


# ---------------------------------------------------------------------------
# Routes: Coverage
# ---------------------------------------------------------------------------


@app.get("/api/coverage", response_model=CoverageOut,
         tags=["Coverage"], summary="Companies with their best deal and coverage entry")
async def get_coverage(refresh: bool = Query(False), service: DashboardService = Depends(get_service)):
    snap = await service.load_coverage(refresh=refresh)
    return CoverageOut(rows=snap.data, stats=coverage_stats(snap.data),
                       is_live=snap.is_live, error=snap.error)


@app.put("/api/coverage/{entry_id}", response_model=ToggleOut,
         tags=["Coverage"], summary="Update one field of a coverage entry")
async def update_coverage(entry_id: str, body: CoverageToggle,
                          service: DashboardService = Depends(get_service)):
    result = await service.toggle_coverage_field(entry_id, body.field, body.value)
    return ToggleOut(**dataclasses.asdict(result))


# ---------------------------------------------------------------------------
# Routes: Funnel
# ---------------------------------------------------------------------------


@app.get("/api/funnel", response_model=FunnelOut,
         tags=["Funnel"], summary="Cumulative funnel counts, email metrics and deal-flow entries")
async def get_funnel(refresh: bool = Query(False), service: DashboardService = Depends(get_service)):
    snap = await service.load_funnel(refresh=refresh)
    qualified = await service.qualified_count()
    funnel = FunnelSnapshot.from_dict(snap.data)
    counts = dict(funnel.counts)
    counts["universe"] = max(counts.get("universe", 0), qualified.data)
    return FunnelOut(
        stages=[FunnelStageOut(id=s.id, name=s.name, description=s.description, count=counts.get(s.id, 0))
                for s in FUNNEL_STAGES],
        counts_by_source=funnel.counts_by_source,
        email_metrics=funnel.email_metrics,
        universe_count=funnel.universe_count,
        qualified_count=qualified.data,
        deal_count=len(funnel.deals),
        active_deals=funnel.active_deals,
        deals=funnel.deals,
        is_live=snap.is_live,
        error=snap.error,
    )


@app.get("/api/qualified-count", response_model=QualifiedCountOut,
         tags=["Funnel"], summary="Size of the qualified sourcing universe")
async def get_qualified_count(refresh: bool = Query(False), service: DashboardService = Depends(get_service)):
    snap = await service.qualified_count(refresh=refresh)
    return QualifiedCountOut(count=snap.data, is_live=snap.is_live, error=snap.error)


# ---------------------------------------------------------------------------
# Routes: LPs & Portfolio
# ---------------------------------------------------------------------------


@app.get("/api/lps/{fund_id}", response_model=LPPipelineOut,
         tags=["LPs"], summary="LPs and weighted pipeline for one fund")
async def get_lps(fund_id: str, refresh: bool = Query(False), service: DashboardService = Depends(get_service)):
    if fund_id not in FUNDS_BY_ID:
        raise HTTPException(404, f"Unknown fund '{fund_id}'")
    snap = await service.load_lps(refresh=refresh)
    summary = summarize_pipeline(fund_id, snap.data)
    return LPPipelineOut(fund_id=fund_id, lps=snap.data, summary=dataclasses.asdict(summary),
                         is_live=snap.is_live, error=snap.error)


@app.get("/api/portfolio", response_model=PortfolioOut,
         tags=["Portfolio"], summary="Portfolio companies with fund metrics")
async def get_portfolio(refresh: bool = Query(False), service: DashboardService = Depends(get_service)):
    snap = await service.load_portfolio(refresh=refresh)
    return PortfolioOut(companies=snap.data, summary=compute_portfolio_summary(),
                        is_live=snap.is_live, error=snap.error)


# ---------------------------------------------------------------------------
# Routes: Assessments
# ---------------------------------------------------------------------------


def _assessment_out(company_id: str, assessment: dict) -> AssessmentOut:
    summary = score_summary(assessment)
    return AssessmentOut(
        company_id=company_id,
        assessment=assessment,
        completion=summary["completion"],
        score=summary["score"],
        score_color=score_color(summary["score"]),
        completion_color=completion_color(summary["completion"]),
        themes=summary["themes"],
    )


@app.get("/api/assessments/{company_id}", response_model=AssessmentOut,
         tags=["Assessments"], summary="DD assessment with completion and scores")
async def get_assessment(company_id: str, service: DashboardService = Depends(get_service)):
    return _assessment_out(company_id, service.assessments.get(company_id))


@app.put("/api/assessments/{company_id}", response_model=AssessmentOut,
         tags=["Assessments"], summary="Set one assessment field")
async def update_assessment(company_id: str, body: AssessmentUpdate,
                            service: DashboardService = Depends(get_service)):
    try:
        assessment = service.assessments.set_field(company_id, body.theme_id, body.field_id, body.value)
    except ValueError as exc:
        raise HTTPException(400, str(exc)) from exc
    return _assessment_out(company_id, assessment)


@app.put("/api/meeting-ratings/{meeting_id}", response_model=MeetingRatingsOut,
         tags=["Assessments"], summary="Rate a meeting 1-5 stars (null clears)")
async def rate_meeting(meeting_id: str, body: MeetingRatingUpdate,
                       service: DashboardService = Depends(get_service)):
    try:
        ratings = service.assessments.set_meeting_rating(meeting_id, body.stars)
    except ValueError as exc:
        raise HTTPException(400, str(exc)) from exc
    return MeetingRatingsOut(ratings=ratings)


def _calls_out(company_id: str, completed: list[str]) -> RequiredCallsOut:
    return RequiredCallsOut(company_id=company_id, completed=completed, **required_call_summary(completed))


@app.get("/api/assessments/{company_id}/calls", response_model=RequiredCallsOut,
         tags=["Assessments"], summary="Required DD calls done so far, overall and per theme")
async def get_required_calls(company_id: str, service: DashboardService = Depends(get_service)):
    return _calls_out(company_id, service.assessments.completed_calls(company_id))


@app.put("/api/assessments/{company_id}/calls/{call_id}", response_model=RequiredCallsOut,
         tags=["Assessments"], summary="Tick or untick a required DD call")
async def mark_required_call(company_id: str, call_id: str, body: CallUpdate,
                             service: DashboardService = Depends(get_service)):
    try:
        completed = service.assessments.mark_call(company_id, call_id, body.done)
    except ValueError as exc:
        raise HTTPException(400, str(exc)) from exc
    return _calls_out(company_id, completed)


# ---------------------------------------------------------------------------
# Routes: DD board & deal state
# ---------------------------------------------------------------------------


async def _board_card(service: DashboardService, deal_id: str) -> BoardCardOut:
    snap = await service.load_board()
    for card in snap.data:
        if card["id"] == deal_id:
            return BoardCardOut(**card)
    raise HTTPException(404, f"Deal '{deal_id}' is not on the DD board")


@app.get("/api/board", response_model=BoardOut,
         tags=["Board"], summary="Deals at Met or Committee with their board column")
async def get_board(refresh: bool = Query(False), service: DashboardService = Depends(get_service)):
    snap = await service.load_board(refresh=refresh)
    return BoardOut(cards=snap.data, is_live=snap.is_live, error=snap.error)


@app.get("/api/board/{deal_id}", response_model=BoardCardOut,
         tags=["Board"], summary="One deal's board column and manual override")
async def get_board_card(deal_id: str, service: DashboardService = Depends(get_service)):
    return await _board_card(service, deal_id)


@app.put("/api/board/{deal_id}", response_model=BoardCardOut,
         tags=["Board"], summary="Pin a deal to a board column (null returns it to the computed one)")
async def move_board_card(deal_id: str, body: BoardOverride, service: DashboardService = Depends(get_service)):
    await _board_card(service, deal_id)
    try:
        service.assessments.set_kanban_override(deal_id, body.column)
    except ValueError as exc:
        raise HTTPException(400, str(exc)) from exc
    return await _board_card(service, deal_id)


@app.get("/api/deal-state", response_model=dict[str, DealStateOut],
         tags=["Coverage"], summary="Local in-scope / seen flags by deal")
async def get_deal_state(service: DashboardService = Depends(get_service)):
    return {deal_id: DealStateOut(deal_id=deal_id, in_scope=s.get("inScope"), seen=s.get("seen"))
            for deal_id, s in service.assessments.deal_state().items()}


@app.put("/api/deal-state/{deal_id}", response_model=DealStateOut,
         tags=["Coverage"], summary="Set a deal's local in-scope / seen flags, overlaid on coverage rows")
async def set_deal_state(deal_id: str, body: DealStateUpdate, service: DashboardService = Depends(get_service)):
    state = service.assessments.set_deal_state(deal_id, in_scope=body.in_scope, seen=body.seen)
    return DealStateOut(deal_id=deal_id, in_scope=state.get("inScope"), seen=state.get("seen"))


# ---------------------------------------------------------------------------
# Routes: Admin
# ---------------------------------------------------------------------------


@app.post("/api/sync", response_model=SyncOut,
          tags=["Admin"], summary="Clear every cache so the next read refetches")
async def sync(service: DashboardService = Depends(get_service)):
    return SyncOut(cleared=service.sync())


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------


def main():
    import uvicorn
    uvicorn.run("vcdash.app:app", host="127.0.0.1", port=8001, reload=True)


if __name__ == "__main__":
    main()
