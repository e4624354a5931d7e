"""Deal funnel: top of funnel from owned companies, bottom from deal-flow entries.

Companies are placed by their status into universe / outreach / contact;
anything that has reached the deal-flow list is counted from the list
entries instead, using the highest stage the deal ever reached.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from vcdash.attio import extract_company_fields
from vcdash.team import TEAM_MAP
from vcdash.utils import parse_year, round_int, to_float

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class FunnelStage:
    id: str
    name: str
    description: str


FUNNEL_STAGES: tuple[FunnelStage, ...] = (
    FunnelStage("universe", "Qualified Universe", "Companies with an assigned owner"),
    FunnelStage("outreach", "Outreach", "Contact attempted (cold emails, VC intros)"),
    FunnelStage("contact", "Contact Established", "Founder responded / meeting scheduled"),
    FunnelStage("dealflow", "Dealflow", "Deck received, deal confirmed"),
    FunnelStage("met", "Met", "First meeting held with founders"),
    FunnelStage("analysis", "In-Depth Analysis", "Deep-dive due diligence"),
    FunnelStage("committee", "Committee", "IC presentation"),
    FunnelStage("portfolio", "Won / Portfolio", "Investment made"),
)
STAGE_ORDER: tuple[str, ...] = tuple(s.id for s in FUNNEL_STAGES)
DEAL_STAGES: tuple[str, ...] = STAGE_ORDER[STAGE_ORDER.index("dealflow"):]


@dataclass(frozen=True)
class SourceChannel:
    id: str
    name: str
    color: str


SOURCE_CHANNELS: tuple[SourceChannel, ...] = (
    SourceChannel("Proactively sourced", "Proactive", "#3B82F6"),
    SourceChannel("Direct inbound", "Direct Inbound", "#10B981"),
    SourceChannel("VC network", "VC Network", "#8B5CF6"),
    SourceChannel("Other network (referrals...)", "Referrals", "#F59E0B"),
    SourceChannel("Intermediate (Banker)", "Banker", "#EF4444"),
    SourceChannel("Venture Partner", "Venture Partner", "#EC4899"),
    SourceChannel("Other", "Other", "#6B7280"),
    SourceChannel("unknown", "Untagged", "#9CA3AF"),
)
SOURCE_CHANNEL_IDS = frozenset(c.id for c in SOURCE_CHANNELS)

DEALFLOW_BRIDGE = "dealflow_bridge"
EXCLUDED = "excluded"

STATUS_TO_TOP_FUNNEL: dict[str, str] = {
    "Qualification": "universe",
    "To contact": "universe",
    "Contacted / to meet": "outreach",
    "Ghosting (Help)": "outreach",
    "Met": "contact",
    "To nurture": "contact",
    # Already in the deal-flow list, counted from there
    "Dealflow": DEALFLOW_BRIDGE,
    "Due Dilligence": DEALFLOW_BRIDGE,
    "Due Diligence": DEALFLOW_BRIDGE,
    "IC": DEALFLOW_BRIDGE,
    "Portfolio": DEALFLOW_BRIDGE,
    "Passed": DEALFLOW_BRIDGE,
    "To Decline": DEALFLOW_BRIDGE,
    "Analysed but too early": DEALFLOW_BRIDGE,
    "Old/ Out of scope": EXCLUDED,
    "Old/Out of scope": EXCLUDED,
    "No US path for now": EXCLUDED,
}

MAX_STATUS_TO_STAGE: dict[str, str] = {
    "Qualified": "dealflow",
    "Screened": "dealflow",
    "In depth analysis": "analysis",
    "LOI": "analysis",
    "Memo started": "analysis",
}

SATUS_TO_STAGE: dict[str, str] = {
    "Dealflow qualification": "dealflow",
    "To Meet": "dealflow",
    "Coming soon": "dealflow",
    "Met": "met",
    "Committee": "committee",
    "Won / Portfolio": "portfolio",
    "Standby": "dealflow",
    "Unqualified": "dealflow",
    "To decline": "declined",
    "Declined": "declined",
}

DECLINED_SATUS = frozenset({"Declined", "To decline"})

DEALFLOW_COMPANY_STATUSES = frozenset({
    "Dealflow", "Due Dilligence", "Due Diligence", "IC", "Portfolio",
    "Passed", "To Decline", "Analysed but too early",
})

# Deal-flow statuses shown on the DD board, whose record names are looked up
KANBAN_SATUS = frozenset({"Met", "Committee"})


def stage_index(stage_id: str) -> int:
    try:
        return STAGE_ORDER.index(stage_id)
    except ValueError:
        return -1


# ---------------------------------------------------------------------------
# Stage derivation
# ---------------------------------------------------------------------------


def top_stage(status: str | None) -> str:
    return STATUS_TO_TOP_FUNNEL.get(status or "", "universe")


def highest_stage(satus: str | None, max_status5: str | None) -> str:
    """Furthest stage a deal reached; a declined deal keeps its high-water mark."""
    highest = "dealflow"
    mapped = MAX_STATUS_TO_STAGE.get(max_status5 or "")
    if mapped and stage_index(mapped) > stage_index(highest):
        highest = mapped
    mapped = SATUS_TO_STAGE.get(satus or "")
    if mapped and mapped != "declined" and stage_index(mapped) > stage_index(highest):
        highest = mapped
    return highest


def current_stage(satus: str | None) -> str:
    if not satus:
        return "dealflow"
    return SATUS_TO_STAGE.get(satus, "dealflow")


# ---------------------------------------------------------------------------
# Record processing
# ---------------------------------------------------------------------------


def process_companies(records: Iterable[Any]) -> list[dict[str, Any]]:
    companies = []
    for rec in records:
        c = extract_company_fields(rec)
        if c is None:
            continue
        stage = top_stage(c["status4"])
        if stage == EXCLUDED:
            continue
        companies.append({
            **c,
            "top_stage": stage,
            "email_year": parse_year(c["first_email"]),
            "calendar_year": parse_year(c["first_calendar"]),
        })
    return companies


def process_deal_entries(
    entries: Iterable[Mapping[str, Any]],
    name_map: Mapping[str, Mapping[str, Any]] | None = None,
) -> list[dict[str, Any]]:
    """Enrich slim deal-flow entries with stages, source and record names."""
    name_map = name_map or {}
    deals = []
    for entry in entries:
        satus = entry.get("satus")
        max_status5 = entry.get("max_status_5")
        source_type = entry.get("source_type_8")
        record_id = entry.get("record_id")
        info = name_map.get(record_id) or {}
        source_ws_id = entry.get("source_ws_id")
        is_declined = satus in DECLINED_SATUS
        deals.append({
            "id": entry.get("entry_id"),
            "deal_record_id": record_id,
            "name": info.get("name") or (record_id[:8] if record_id else None) or "Unknown Deal",
            "owner_ids": list(info.get("owner_ids") or []),
            "domain": info.get("domain"),
            "logo_url": info.get("logo_url"),
            "satus": satus,
            "max_status5": max_status5,
            "highest_stage": highest_stage(satus, max_status5),
            "current_stage": current_stage(satus),
            "is_declined": is_declined,
            "is_active": not is_declined,
            "source": source_type or "unknown",
            "source_type": source_type,
            "source_name": TEAM_MAP.get(source_ws_id, "Unknown") if source_ws_id else None,
            "amount_in_meu": to_float(entry.get("amount_in_meu")),
            "founding_team": entry.get("founding_team"),
            "created_at": entry.get("created_at"),
            "created_year": parse_year(entry.get("created_at")),
        })
    return deals


def kanban_record_ids(entries: Iterable[Mapping[str, Any]]) -> list[str]:
    """Unique parent record ids of entries on the DD board, in first-seen order."""
    out: dict[str, None] = {}
    for e in entries:
        if e.get("satus") in KANBAN_SATUS and e.get("record_id"):
            out.setdefault(e["record_id"], None)
    return list(out)


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------


def _rate(part: int, whole: int) -> int:
    return round_int(part / whole * 100) if whole else 0


def compute_email_metrics(companies: Iterable[Mapping[str, Any]]) -> dict[str, Any]:
    companies = list(companies)
    with_email = [c for c in companies if c.get("first_email")]
    with_calendar = [c for c in companies if c.get("first_calendar")]
    email_to_call = [c for c in with_email if c.get("first_calendar")]
    email_to_dealflow = [c for c in with_email if c.get("status4") in DEALFLOW_COMPANY_STATUSES]

    by_year: dict[int, dict[str, int]] = {}
    for c in with_email:
        year = c.get("email_year")
        if year is None:
            continue
        bucket = by_year.setdefault(year, {"emails": 0, "calls": 0, "dealflow": 0})
        bucket["emails"] += 1
        if c.get("first_calendar"):
            bucket["calls"] += 1
        if c.get("status4") in DEALFLOW_COMPANY_STATUSES:
            bucket["dealflow"] += 1

    return {
        "total_emails": len(with_email),
        "total_calls": len(with_calendar),
        "email_to_call_count": len(email_to_call),
        "email_to_call_rate": _rate(len(email_to_call), len(with_email)),
        "email_to_dealflow_count": len(email_to_dealflow),
        "email_to_dealflow_rate": _rate(len(email_to_dealflow), len(with_email)),
        "by_year": [{"year": y, **by_year[y]} for y in sorted(by_year, reverse=True)],
    }


def cumulative_counts(
    companies: Iterable[Mapping[str, Any]],
    deals: Iterable[Mapping[str, Any]],
    universe_count: int | None = None,
) -> dict[str, int]:
    """Cumulative count per funnel stage: an item at stage N counts for every stage <= N.

    Companies already in the deal-flow list count through ``contact``; the
    deal-flow stages themselves come from the deals' highest stage.
    """
    counts = dict.fromkeys(STAGE_ORDER, 0)
    for c in companies:
        stage = c.get("top_stage")
        idx = stage_index("dealflow") - 1 if stage == DEALFLOW_BRIDGE else stage_index(stage or "universe")
        for s in STAGE_ORDER[:idx + 1]:
            counts[s] += 1
    for d in deals:
        idx = stage_index(d.get("highest_stage") or "dealflow")
        for s in STAGE_ORDER[stage_index("dealflow"):idx + 1]:
            counts[s] += 1
    if universe_count is not None:
        counts["universe"] = max(counts["universe"], universe_count)
    return counts


def counts_by_source(deals: Iterable[Mapping[str, Any]]) -> dict[str, dict[str, int]]:
    """Cumulative deal-stage counts per source channel (unrecognised sources go to ``Other``)."""
    out = {c.id: dict.fromkeys(DEAL_STAGES, 0) for c in SOURCE_CHANNELS}
    for d in deals:
        source = d.get("source") or "unknown"
        if source not in SOURCE_CHANNEL_IDS:
            source = "Other"
        idx = stage_index(d.get("highest_stage") or "dealflow")
        for s in STAGE_ORDER[stage_index("dealflow"):idx + 1]:
            out[source][s] += 1
    return out


@dataclass
class FunnelSnapshot:
    companies: list[dict[str, Any]]
    deals: list[dict[str, Any]]
    email_metrics: dict[str, Any]
    universe_count: int
    counts: dict[str, int]
    counts_by_source: dict[str, dict[str, int]] = field(default_factory=dict)

    @property
    def active_deals(self) -> int:
        return sum(1 for d in self.deals if d["is_active"])

    def to_dict(self) -> dict[str, Any]:
        return {
            "companies": self.companies,
            "deals": self.deals,
            "email_metrics": self.email_metrics,
            "universe_count": self.universe_count,
            "counts": self.counts,
            "counts_by_source": self.counts_by_source,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FunnelSnapshot:
        return cls(
            companies=list(data.get("companies", [])),
            deals=list(data.get("deals", [])),
            email_metrics=dict(data.get("email_metrics", {})),
            universe_count=int(data.get("universe_count", 0)),
            counts=dict(data.get("counts", {})),
            counts_by_source=dict(data.get("counts_by_source", {})),
        )


def build_funnel(
    raw_companies: Iterable[Any],
    deal_entries: Iterable[Mapping[str, Any]],
    name_map: Mapping[str, Mapping[str, Any]] | None = None,
    qualified_count: int | None = None,
) -> FunnelSnapshot:
    companies = process_companies(raw_companies)
    deals = process_deal_entries(deal_entries, name_map)
    counts = cumulative_counts(companies, deals, qualified_count)
    log.info("Funnel: %d companies, %d deal-flow entries", len(companies), len(deals))
    return FunnelSnapshot(
        companies=companies,
        deals=deals,
        email_metrics=compute_email_metrics(companies),
        universe_count=len(companies),
        counts=counts,
        counts_by_source=counts_by_source(deals),
    )


def record_name_map(records: Iterable[Any]) -> dict[str, dict[str, Any]]:
    """record id -> name / owners / domain / logo, for labelling deal-flow entries."""
    out = {}
    for rec in records:
        c = extract_company_fields(rec)
        if c is None:
            continue
        out[c["id"]] = {
            "name": c["name"],
            "owner_ids": c["owner_ids"],
            "domain": c["domain"],
            "logo_url": c["logo_url"],
        }
    return out
