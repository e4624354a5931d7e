"""Company x deal x coverage-entry join.

Inputs are three independently paginated arrays: company records, deal
records and entries of the coverage list.  The output has one row per
company.  A company carries at most one deal (latest ``announced_date``
wins) and that deal carries at most one coverage entry (last seen wins).
"""
from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Iterable

from vcdash.attio import (
    actor_ids,
    entry_id,
    entry_parent_id,
    entry_value,
    extract,
    extract_all,
    first_reference,
    record_id,
)
from vcdash.companies import NormalizedCompany, normalize_company
from vcdash.dates import CLUSTER_THRESHOLD, redistribute_bulk_dates
from vcdash.geography import (
    FUNDING_STATUS_TO_STAGE,
    date_to_quarter,
    format_amount,
    parse_stage_from_deal_id,
)
from vcdash.stages import cumulative_counts
from vcdash.utils import round_int, to_float

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Status sets
# ---------------------------------------------------------------------------

SEEN_DEAL_STATUSES = frozenset({"deal flow", "Announced deals we saw", "deal rumors"})

PROGRESSED_COMPANY_STATUSES = frozenset({
    "Contacted / to meet", "Met", "To nurture", "Dealflow",
    "Due Dilligence", "Due Diligence", "IC", "Portfolio",
    "Passed", "Analysed but too early", "To Decline",
})

PASSED_STATUSES = frozenset({"Passed", "To Decline", "Analysed but too early", "No US path for now"})

# (source, statuses, outcome); first match wins
OUTCOME_RULES: tuple[tuple[str, frozenset[str], str], ...] = (
    ("company", PASSED_STATUSES, "Passed"),
    ("company", frozenset({"Due Dilligence", "Due Diligence"}), "DD"),
    ("company", frozenset({"IC"}), "IC"),
    ("company", frozenset({"Portfolio"}), "Invested"),
    ("deal", frozenset({"deal flow"}), "In Pipeline"),
    ("deal", frozenset({"Announced deals we saw"}), "Saw"),
)
DEFAULT_SEEN_OUTCOME = "Tracked"
UNSEEN_OUTCOME = "Missed"


# ---------------------------------------------------------------------------
# Index builders
# ---------------------------------------------------------------------------


def best_deals_by_company(deals: Iterable[dict[str, Any]]) -> dict[str, dict[str, Any]]:
    """Company id -> deal with the latest announced date.

    A dated deal always beats an undated one; among undated deals the first
    seen is kept.
    """
    best: dict[str, dict[str, Any]] = {}
    best_date: dict[str, str | None] = {}
    for deal in deals:
        company_id = first_reference(deal, "associated_company_domain")
        if not company_id:
            continue
        announced = extract(deal, "announced_date")
        announced = announced if isinstance(announced, str) and announced else None
        if company_id not in best:
            best[company_id] = deal
            best_date[company_id] = announced
            continue
        current = best_date[company_id]
        if announced is not None and (current is None or announced > current):
            best[company_id] = deal
            best_date[company_id] = announced
    return best


def coverage_by_deal(entries: Iterable[dict[str, Any]]) -> dict[str, dict[str, Any]]:
    """Deal record id -> coverage list entry (last one wins)."""
    out: dict[str, dict[str, Any]] = {}
    for entry in entries:
        parent = entry_parent_id(entry)
        if parent:
            if parent in out:
                log.debug("Duplicate coverage entry for deal %s, keeping the later one", parent)
            out[parent] = entry
    return out


# ---------------------------------------------------------------------------
# Field resolution
# ---------------------------------------------------------------------------


def resolve_stage(deal_name: str | None, funding_status: str | None) -> str:
    return (
        parse_stage_from_deal_id(deal_name)
        or (FUNDING_STATUS_TO_STAGE.get(funding_status) if funding_status else None)
        or "Unknown"
    )


def resolve_best_date(announced: Any, received: Any, created_at: Any) -> str | None:
    if announced:
        return announced
    if received:
        return received
    if isinstance(created_at, str) and created_at:
        return created_at[:10]
    return None


def resolve_seen(
    deal_status: str | None,
    company_status: str | None,
    has_email: bool,
    has_calendar: bool,
    received_date: Any,
) -> bool:
    """Any single signal is enough."""
    return (
        deal_status in SEEN_DEAL_STATUSES
        or company_status in PROGRESSED_COMPANY_STATUSES
        or has_email
        or has_calendar
        or bool(received_date)
    )


def resolve_outcome(seen: bool, company_status: str | None, deal_status: str | None) -> str:
    if not seen:
        return UNSEEN_OUTCOME
    for source, statuses, outcome in OUTCOME_RULES:
        value = company_status if source == "company" else deal_status
        if value in statuses:
            return outcome
    return DEFAULT_SEEN_OUTCOME


def resolve_amount(coverage: dict[str, Any] | None, company: dict[str, Any]) -> int | None:
    if coverage is not None:
        meu = to_float(entry_value(coverage, "amount_raised_in_meu"))
        if meu is not None:
            return round_int(meu)
    return format_amount(extract(company, "last_funding_amount"))


# ---------------------------------------------------------------------------
# Join
# ---------------------------------------------------------------------------


def build_row(
    company: dict[str, Any],
    normalized: NormalizedCompany,
    deal: dict[str, Any] | None,
    coverage: dict[str, Any] | None,
) -> dict[str, Any]:
    deal_name = _text(extract(deal, "deal_id")) if deal else None
    deal_status = _text(extract(deal, "status")) if deal else None
    announced = _text(extract(deal, "announced_date")) if deal else None
    received = _text(extract(deal, "received_date")) if deal else None
    best_date = resolve_best_date(announced, received, normalized.created_at)

    company_status = normalized.status
    has_email = bool(normalized.first_email)
    has_calendar = bool(normalized.first_calendar)
    seen = resolve_seen(deal_status, company_status, has_email, has_calendar, received)

    coverage_in_scope = bool(entry_value(coverage, "in_scope")) if coverage is not None else None
    industry = extract_all(deal, "industry") if deal else []
    feeling = to_float(extract(company, "feeling"))

    return {
        "id": normalized.id,
        "company": normalized.name,
        "deal_id": record_id(deal) if deal else None,
        "deal_name": deal_name or normalized.name,
        "coverage_entry_id": entry_id(coverage) if coverage else None,
        "coverage_in_scope": coverage_in_scope,
        "country": normalized.region,
        "filter_region": normalized.filter_region,
        "country_code": normalized.country_code,
        "stage": resolve_stage(deal_name, normalized.funding_status),
        "amount": resolve_amount(coverage, company),
        "date": date_to_quarter(best_date),
        "announced_date": best_date,
        # no coverage entry is not evidence of out-of-scope
        "in_scope": coverage_in_scope if coverage is not None else True,
        "seen": seen,
        "has_email_interaction": has_email,
        "has_calendar_interaction": has_calendar,
        "status": company_status or deal_status,
        "funnel_stage": str(normalized.funnel_stage),
        "industry": industry or list(normalized.industry),
        "rating": feeling * 2 if feeling else None,
        "deal_score": entry_value(coverage, "deal_score") if coverage is not None else None,
        "outcome": resolve_outcome(seen, company_status, deal_status),
        "owner_ids": (actor_ids(deal, "owner") if deal else []) or list(normalized.owner_ids),
        "received_date": received,
        "logo_url": normalized.logo_url,
        "description": normalized.description,
        "linkedin_url": extract(company, "linkedin"),
        "total_funding": extract(company, "total_funding_amount"),
        "employee_range": normalized.employee_range,
        "reasons_to_decline": extract(company, "reasons_to_decline"),
        "deal_comment": extract(deal, "comment") if deal else None,
        "funding_raised_usd": extract(company, "funding_raised_usd"),
        "last_funding_status": normalized.funding_status,
        "last_funding_date": extract(company, "last_funding_date"),
    }


def join_coverage(
    companies: list[dict[str, Any]],
    deals: list[dict[str, Any]],
    entries: list[dict[str, Any]],
    cluster_threshold: int = CLUSTER_THRESHOLD,
) -> list[dict[str, Any]]:
    """One row per company, with clustered dates redistributed."""
    deal_index = best_deals_by_company(deals)
    coverage_index = coverage_by_deal(entries)

    rows: list[dict[str, Any]] = []
    for company in companies:
        normalized = normalize_company(company)
        if normalized is None:
            continue
        deal = deal_index.get(normalized.id)
        deal_rid = record_id(deal) if deal else None
        coverage = coverage_index.get(deal_rid) if deal_rid else None
        rows.append(build_row(company, normalized, deal, coverage))

    log.info("Joined %d companies, %d with a deal, %d with coverage",
             len(rows), sum(1 for r in rows if r["deal_id"]), sum(1 for r in rows if r["coverage_entry_id"]))
    return redistribute_bulk_dates(rows, cluster_threshold)


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def coverage_stats(rows: Iterable[dict[str, Any]]) -> dict[str, Any]:
    """Headline numbers for the coverage view, over in-scope rows."""
    rows = [r for r in rows if r.get("in_scope")]
    seen = sum(1 for r in rows if r.get("seen"))
    by_outcome = Counter(r.get("outcome") or UNSEEN_OUTCOME for r in rows)
    by_region = Counter(r.get("filter_region") or "Other" for r in rows)
    return {
        "in_scope": len(rows),
        "seen": seen,
        "missed": len(rows) - seen,
        "coverage_rate": round_int(seen / len(rows) * 100) if rows else 0,
        "by_outcome": dict(by_outcome.most_common()),
        "by_region": dict(by_region.most_common()),
        "by_funnel_stage": cumulative_counts(r.get("funnel_stage") or "" for r in rows),
    }
