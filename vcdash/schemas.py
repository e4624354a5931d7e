"""Pydantic request/response schemas for the vcdash API."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator


class _LiveMixin(BaseModel):
    is_live: bool
    error: str | None = None


class CoverageStatsOut(BaseModel):
    in_scope: int
    seen: int
    missed: int
    coverage_rate: int
    by_outcome: dict[str, int] = {}
    by_region: dict[str, int] = {}
    by_funnel_stage: dict[str, int] = {}


class CoverageOut(_LiveMixin):
    rows: list[dict[str, Any]]
    stats: CoverageStatsOut


class CoverageToggle(BaseModel):
    field: str = "in_scope"
    value: Any

    @field_validator("field")
    @classmethod
    def field_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("field must not be blank")
        return v.strip()


class ToggleOut(BaseModel):
    ok: bool
    entry_id: str
    field: str
    value: Any
    previous: Any = None
    error: str | None = None


class FunnelStageOut(BaseModel):
    id: str
    name: str
    description: str
    count: int


class FunnelOut(_LiveMixin):
    stages: list[FunnelStageOut]
    counts_by_source: dict[str, dict[str, int]] = {}
    email_metrics: dict[str, Any] = {}
    universe_count: int
    qualified_count: int | None = None
    deal_count: int = 0
    active_deals: int = 0
    deals: list[dict[str, Any]] = []


class StageTotalsOut(BaseModel):
    id: str
    name: str
    weight: float
    count: int
    total: float
    weighted: float


class PipelineSummaryOut(BaseModel):
    fund_id: str
    currency: str
    stages: list[StageTotalsOut]
    no_status_count: int
    unmatched_statuses: dict[str, int] = {}
    active_count: int
    active_total: float
    active_weighted: float
    committed: float
    estimated_count: int


class LPPipelineOut(_LiveMixin):
    fund_id: str
    lps: list[dict[str, Any]]
    summary: PipelineSummaryOut


class PortfolioOut(_LiveMixin):
    companies: list[dict[str, Any]]
    summary: dict[str, Any]


class QualifiedCountOut(_LiveMixin):
    count: int


class SyncOut(BaseModel):
    cleared: list[str]


class ThemeScoreOut(BaseModel):
    completion: int
    score: float | None = None


class AssessmentOut(BaseModel):
    company_id: str
    assessment: dict[str, dict[str, Any]]
    completion: int
    score: float | None = None
    score_color: str | None = None
    completion_color: str | None = None
    themes: dict[str, ThemeScoreOut] = {}


class AssessmentUpdate(BaseModel):
    theme_id: str
    field_id: str
    value: Any = None


class MeetingRatingUpdate(BaseModel):
    stars: int | None = Field(default=None, description="1-5, or null to clear")


class MeetingRatingsOut(BaseModel):
    ratings: dict[str, int]


class CallProgressOut(BaseModel):
    done: int
    total: int


class RequiredCallsOut(BaseModel):
    company_id: str
    completed: list[str]
    overall: CallProgressOut
    by_theme: dict[str, CallProgressOut]


class CallUpdate(BaseModel):
    done: bool = True


class BoardCardOut(BaseModel):
    id: str
    name: str
    satus: str | None = None
    column: str
    override: str | None = None


class BoardOut(_LiveMixin):
    cards: list[BoardCardOut]


class BoardOverride(BaseModel):
    column: str | None = Field(default=None, description="met, analysis or committee; null clears")


class DealStateUpdate(BaseModel):
    in_scope: bool | None = None
    seen: bool | None = None


class DealStateOut(BaseModel):
    deal_id: str
    in_scope: bool | None = None
    seen: bool | None = None
