"""LP fundraising pipeline: stage tables per fund and weighted totals.

Each fund reads its own status and amount attributes from the LP object.
A status string is mapped to a stage through the fund's table; an LP whose
status is absent or not in the table is counted as "no status" and kept
out of every stage bucket.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from vcdash.attio import actor_ids, extract, record_id
from vcdash.team import member_name
from vcdash.utils import to_float

log = logging.getLogger(__name__)

INTERESTED_STATUS = "__interested__"
DECLINED_STATUS = "__declined__"
FUND2_MARKER = "Fund II LP"

# Stages shown but not counted as active pipeline
PRE_PIPELINE_STAGES = frozenset({"interested", "declined"})


@dataclass(frozen=True)
class Fund:
    id: str
    name: str
    status_slug: str
    amount_slug: str
    currency: str


@dataclass(frozen=True)
class PipelineStage:
    id: str
    name: str
    attio_values: tuple[str, ...]
    weight: float


FUNDS: tuple[Fund, ...] = (
    Fund("commit", ">Commit", "status_3", "amount", "EUR"),
    Fund("fund3", "Fund III (RRW3)", "rrw_3_status", "amount_rrw", "USD"),
    Fund("fund2", "Fund II (Historical)", "_fund2", "amount", "EUR"),
)
FUNDS_BY_ID = {f.id: f for f in FUNDS}

COMMIT_STAGES: tuple[PipelineStage, ...] = (
    PipelineStage("contact_to_initiate", "Contact to Initiate", ("Contact to initiate",), 0.05),
    PipelineStage("existing_contacts", "Existing Contacts", ("Existing contacts",), 0.05),
    PipelineStage("fund_ii_lp", "Fund II LP", ("Fund II LP",), 0.15),
    PipelineStage("cold_outreach", "Cold Email / LinkedIn", ("Cold e-mail / linkedIn",), 0.05),
    PipelineStage("contact_initiated", "Contact Initiated", ("Contact initiated",), 0.10),
    PipelineStage("waiting_for_answer", "Waiting for Answer", ("Waiting for answer",), 0.10),
    PipelineStage("first_meeting", "First Meeting", ("First meeting",), 0.20),
    PipelineStage("second_meeting", "Second Meeting", ("Second meeting",), 0.35),
    PipelineStage("pause", "Pause", ("Pause",), 0.10),
    PipelineStage("in_depth", "In-Depth Discussions", ("In depth discussions",), 0.50),
    PipelineStage("second_closing", "Second Closing Discussions", ("Second closing discussions",), 0.70),
    PipelineStage("oral_agreement", "Oral Agreement", ("Oral agreement (with amount)",), 0.90),
    PipelineStage("second_closing_agreement", "Second Closing Agreement", ("Second closing agreement",), 0.95),
    PipelineStage("declined", "Declined", ("Declined",), 0.0),
)

FUND3_STAGES: tuple[PipelineStage, ...] = (
    PipelineStage("interested", "Interested (Pre-Pipeline)", (INTERESTED_STATUS,), 0.03),
    PipelineStage("to_contact", "To Contact", ("To contact",), 0.05),
    PipelineStage("contact_to_initiate", "Contact to Initiate", ("Contact to initiate",), 0.05),
    PipelineStage("waiting_for_answer", "Waiting for Answer", ("Waiting for answer",), 0.10),
    PipelineStage("first_meeting", "First Meeting", ("First Meeting",), 0.20),
    PipelineStage("second_meeting", "Second Meeting", ("Second meeting",), 0.35),
    PipelineStage("in_depth", "In-Depth Discussion", ("In depth discussion",), 0.50),
    PipelineStage("pause", "Pause", ("Pause",), 0.10),
    PipelineStage("oral_agreement", "Oral Agreement", ("Oral agreement",), 0.90),
    PipelineStage("declined", "Declined", (DECLINED_STATUS,), 0.0),
)

# Fund II is fully deployed; its LPs are tagged "Fund II LP" in the >Commit status
FUND2_STAGES: tuple[PipelineStage, ...] = (
    PipelineStage("invested", "Fund II Investors", (FUND2_MARKER,), 1.0),
)

STAGES_BY_FUND: dict[str, tuple[PipelineStage, ...]] = {
    "commit": COMMIT_STAGES,
    "fund3": FUND3_STAGES,
    "fund2": FUND2_STAGES,
}

COMMITTED_STAGES: dict[str, frozenset[str]] = {
    "commit": frozenset({"oral_agreement", "second_closing_agreement"}),
    "fund3": frozenset({"oral_agreement"}),
    "fund2": frozenset({"invested"}),
}


def _stage_lookup(stages: Iterable[PipelineStage]) -> dict[str, PipelineStage]:
    return {value: stage for stage in stages for value in stage.attio_values}


_LOOKUPS = {fund_id: _stage_lookup(stages) for fund_id, stages in STAGES_BY_FUND.items()}


def stage_for_status(fund_id: str, status: str | None) -> PipelineStage | None:
    if not status:
        return None
    return _LOOKUPS[fund_id].get(status)


# ---------------------------------------------------------------------------
# Record processing
# ---------------------------------------------------------------------------


def currency_amount(record: Any, slug: str) -> float | None:
    """Amount from a currency attribute, falling back to a plain number."""
    attr = (record or {}).get("values", {}).get(slug) if isinstance(record, dict) else None
    if not attr or not isinstance(attr[0], dict):
        return None
    inst = attr[0]
    if "currency_value" in inst:
        return to_float(inst["currency_value"])
    if "value" in inst:
        return to_float(inst["value"])
    return None


def fund3_effective_status(raw_status: str | None, interest: str | None) -> str | None:
    """A real status wins; otherwise the interest flag picks a virtual stage."""
    if raw_status:
        return raw_status
    if not interest:
        return None
    return DECLINED_STATUS if interest == "No" else INTERESTED_STATUS


def process_lp(record: Any) -> dict[str, Any]:
    owner_ids = actor_ids(record, "owner")
    commit_status = extract(record, "status_3")
    commit_amount = currency_amount(record, "amount")
    fund3_amount = currency_amount(record, "amount_rrw")
    fund3_interest = extract(record, "rrw_3_7")
    is_fund2 = commit_status == FUND2_MARKER
    return {
        "id": record_id(record),
        "name": extract(record, "name") or "Unknown",
        "owner_ids": owner_ids,
        "owner_names": [member_name(o, extended=True) for o in owner_ids],
        "has_owner": bool(owner_ids),
        "lp_type": extract(record, "lp_type"),
        "country": extract(record, "country"),
        "open_source": extract(record, "open_source"),
        "commit_status": commit_status,
        "commit_amount": commit_amount,
        "commit_priority": extract(record, "priority_6"),
        "fund3_status": fund3_effective_status(extract(record, "rrw_3_status"), fund3_interest),
        # Ticket size estimate when no Fund III amount has been entered yet
        "fund3_amount": fund3_amount or commit_amount or None,
        "fund3_amount_is_estimate": not fund3_amount and bool(commit_amount),
        "fund3_priority": extract(record, "priority_rrw_3"),
        "fund3_interest": fund3_interest,
        "fund2_status": FUND2_MARKER if is_fund2 else None,
        "fund2_amount": commit_amount if is_fund2 else None,
        "comment": extract(record, "comment_2"),
        "raise_invite": extract(record, "raise_invite"),
        "reminder": extract(record, "reminder"),
        "created_at": extract(record, "created_at"),
        "last_modified": extract(record, "last_modified"),
    }


def process_lps(records: Iterable[Any]) -> list[dict[str, Any]]:
    return [process_lp(r) for r in records if record_id(r)]


def lp_status(lp: dict[str, Any], fund_id: str) -> str | None:
    return lp.get(f"{fund_id}_status")


def lp_amount(lp: dict[str, Any], fund_id: str) -> float:
    return lp.get(f"{fund_id}_amount") or 0.0


def lp_is_estimate(lp: dict[str, Any], fund_id: str) -> bool:
    return bool(lp.get(f"{fund_id}_amount_is_estimate"))


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


@dataclass
class StageTotals:
    id: str
    name: str
    weight: float
    count: int = 0
    total: float = 0.0
    weighted: float = 0.0
    lp_ids: list[str] = field(default_factory=list)

    def add(self, lp_id: str, amount: float) -> None:
        self.count += 1
        self.total += amount
        self.weighted += amount * self.weight
        self.lp_ids.append(lp_id)


@dataclass
class PipelineSummary:
    fund_id: str
    currency: str
    stages: list[StageTotals]
    no_status_count: int = 0
    unmatched_statuses: dict[str, int] = field(default_factory=dict)
    active_count: int = 0
    active_total: float = 0.0
    active_weighted: float = 0.0
    committed: float = 0.0
    estimated_count: int = 0

    def stage(self, stage_id: str) -> StageTotals | None:
        return next((s for s in self.stages if s.id == stage_id), None)


def summarize_pipeline(fund_id: str, lps: Iterable[dict[str, Any]]) -> PipelineSummary:
    """Bucket processed LPs into the fund's stages and total them."""
    if fund_id not in STAGES_BY_FUND:
        raise ValueError(f"Unknown fund: {fund_id}")
    fund = FUNDS_BY_ID[fund_id]
    totals = {s.id: StageTotals(s.id, s.name, s.weight) for s in STAGES_BY_FUND[fund_id]}
    summary = PipelineSummary(fund_id=fund_id, currency=fund.currency, stages=list(totals.values()))
    committed_ids = COMMITTED_STAGES[fund_id]

    for lp in lps:
        status = lp_status(lp, fund_id)
        stage = stage_for_status(fund_id, status)
        if stage is None:
            summary.no_status_count += 1
            if status:
                summary.unmatched_statuses[status] = summary.unmatched_statuses.get(status, 0) + 1
            continue

        amount = lp_amount(lp, fund_id)
        totals[stage.id].add(lp.get("id"), amount)
        if lp_is_estimate(lp, fund_id):
            summary.estimated_count += 1
        if stage.id not in PRE_PIPELINE_STAGES:
            summary.active_count += 1
            summary.active_total += amount
            summary.active_weighted += amount * stage.weight
        if stage.id in committed_ids:
            summary.committed += amount

    if summary.unmatched_statuses:
        log.warning("%s: %d LP(s) with unknown status %s",
                    fund_id, sum(summary.unmatched_statuses.values()),
                    sorted(summary.unmatched_statuses))
    return summary
