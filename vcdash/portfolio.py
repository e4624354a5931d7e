"""Portfolio monitoring: static fund metrics joined onto live company records.

The metrics table is maintained by hand; Attio has no fields for runway,
ownership or board seats.  Companies are matched to their metrics by
lowercased name, key or alias.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Literal

from vcdash.attio import extract, extract_all, extract_company_fields
from vcdash.team import BOARD_MEMBER_COLORS
from vcdash.utils import to_float

log = logging.getLogger(__name__)

Health = Literal["green", "amber", "red"]
DestinyControl = Literal["secured", "manageable", "at_risk", "critical"]
UsExpansion = Literal["none", "planned", "active"]

HEALTH_LEVELS: tuple[str, ...] = ("green", "amber", "red")
DESTINY_LEVELS: tuple[str, ...] = ("secured", "manageable", "at_risk", "critical")
US_EXPANSION_LEVELS: tuple[str, ...] = ("none", "planned", "active")

CLEARBIT_LOGO_URL = "https://logo.clearbit.com/{domain}"


@dataclass(frozen=True)
class FundDefinition:
    id: str
    label: str
    short_label: str
    color: str


FUND_DEFINITIONS: tuple[FundDefinition, ...] = (
    FundDefinition("fund-1", "Fund I", "F1", "#E63424"),
    FundDefinition("fund-2", "Fund II", "F2", "#6366F1"),
    FundDefinition("fund-3", "Fund III", "F3", "#059669"),
    FundDefinition("fund-ocommit", "O Commit", "OC", "#D97706"),
)


@dataclass(frozen=True)
class PortfolioMetrics:
    key: str
    name: str
    fund: str
    ownership: float | None
    invested: float | None
    sector: str
    runway_months: int
    runway_trend: str
    can_raise: bool
    near_profitability: bool = False
    us_expansion: UsExpansion = "none"
    aliases: tuple[str, ...] = ()
    drive_folder_url: str | None = None


def _m(key, name, fund, ownership, invested, sector, runway, trend, can_raise, us, aliases=()):
    return PortfolioMetrics(
        key=key, name=name, fund=fund, ownership=ownership, invested=invested,
        sector=sector, runway_months=runway, runway_trend=trend,
        can_raise=can_raise, us_expansion=us, aliases=tuple(aliases),
    )


PORTFOLIO_METRICS: tuple[PortfolioMetrics, ...] = (
    _m("allo media", "Allo Media", "fund-1", None, None, "Voice AI", 5, "down", False, "none",
       ("allo-media", "allo media / uhlive")),
    _m("brut", "Brut", "fund-1", 3.2, 8.5, "Media", 6, "down", False, "active", ("brut.",)),
    _m("zml", "ZML", "fund-2", 5.1, 3.2, "AI Infrastructure", 18, "stable", True, "planned"),
    _m("resilience", "Resilience", "fund-1", 4.8, 6.5, "Digital Health", 14, "up", True, "active"),
    _m("hypr space", "HyPr Space", "fund-2", 12.5, 5.0, "New Space", 24, "stable", True, "none",
       ("hypr space (hybrid propulsion for space)",)),
    _m("veesion", "Veesion", "fund-2", 6.2, 4.5, "AI/Retail Tech", 16, "up", True, "active"),
    _m("worldia", "Worldia", "fund-1", 7.8, 5.5, "Travel Tech", 10, "stable", True, "planned"),
    _m("atuin", "Atuin", "fund-1", 4.1, 8.0, "Fintech", 20, "up", True, "active", ("jiko",)),
    _m("iobeya", "iObeya", "fund-1", 9.5, 3.5, "Enterprise SaaS", 15, "stable", True, "planned"),
    _m("le collectionist", "Le Collectionist", "fund-1", 11.2, 4.0, "Luxury Travel", 8, "down", False, "active",
       ("collectionist",)),
    _m("wemaintain", "WeMaintain", "fund-1", 8.5, 6.0, "Proptech", 12, "stable", True, "planned"),
    _m("okeiro", "Okeiro", "fund-2", 15.0, 3.5, "Digital Health", 22, "stable", True, "none"),
    _m("otera", "Otera", "fund-2", 8.0, 3.0, "AI/Automation", 14, "up", True, "planned"),
    _m("robovision", "Robovision", "fund-1", 10.0, 5.0, "AI/Computer Vision", 12, "down", True, "none"),
    _m("the exploration company", "The Exploration Company", "fund-2", 6.0, 4.0, "New Space", 18, "stable",
       True, "active", ("tec",)),
    _m("speach", "Speach", "fund-2", 12.0, 2.5, "Enterprise SaaS", 20, "up", True, "none"),
    _m("deepopinion", "DeepOpinion", "fund-2", 7.5, 3.0, "AI/Automation", 15, "stable", True, "planned"),
    _m("open payments", "Open Payments", "fund-1", 5.5, 4.0, "Fintech/Payments", 10, "stable", True, "none",
       ("uma",)),
)


# Lowercased Attio company name (or alias) -> board representatives
BOARD_MAP: dict[str, tuple[str, ...]] = {
    "okeiro": ("Joseph", "Luc-Emmanuel"),
    "veesion": ("Joseph", "Luc-Emmanuel"),
    "resilience": ("Olivier",),
    "robovision": ("Olivier",),
    "deepopinion": ("Olivier",),
    "otera": ("Olivier",),
    "iobeya": ("Antoine",),
    "le collectionist": ("Antoine",),
    "worldia": ("Antoine",),
    "wemaintain": ("Antoine",),
    "hypr space": ("Luc-Emmanuel",),
    "hypr space (hybrid propulsion for space)": ("Luc-Emmanuel",),
    "allo-media": ("Luc-Emmanuel",),
    "allo media": ("Luc-Emmanuel",),
    "the exploration company": ("Alfred",),
    "tec": ("Alfred",),
    "speach": ("Joseph", "Alfred"),
}


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def compute_health(m: PortfolioMetrics | None) -> Health:
    if m is None:
        return "amber"
    if m.runway_months > 12 and (m.can_raise or m.near_profitability):
        return "green"
    if m.runway_months < 6 and not m.can_raise and not m.near_profitability:
        return "red"
    return "amber"


def compute_destiny_control(m: PortfolioMetrics | None) -> DestinyControl:
    if m is None:
        return "at_risk"
    if m.runway_months > 18 or m.near_profitability:
        return "secured"
    if m.can_raise and m.runway_months >= 6:
        return "manageable"
    if m.runway_months < 6 and not m.can_raise and not m.near_profitability:
        return "critical"
    return "at_risk"


def build_metrics_map(metrics: Iterable[PortfolioMetrics] = PORTFOLIO_METRICS) -> dict[str, PortfolioMetrics]:
    out: dict[str, PortfolioMetrics] = {}
    for m in metrics:
        out[m.key] = m
        out[m.name.lower().strip()] = m
        for alias in m.aliases:
            out[alias.lower().strip()] = m
    return out


def compute_portfolio_summary(metrics: Iterable[PortfolioMetrics] = PORTFOLIO_METRICS) -> dict[str, Any]:
    metrics = list(metrics)
    invested = [m.invested for m in metrics if m.invested is not None]
    ownership = [m.ownership for m in metrics if m.ownership is not None]
    health_counts = dict.fromkeys(HEALTH_LEVELS, 0)
    destiny_counts = dict.fromkeys(DESTINY_LEVELS, 0)
    for m in metrics:
        health_counts[compute_health(m)] += 1
        destiny_counts[compute_destiny_control(m)] += 1
    return {
        "total_invested": sum(invested),
        "avg_ownership": sum(ownership) / len(ownership) if ownership else 0,
        "health_counts": health_counts,
        "destiny_counts": destiny_counts,
        "company_count": len(metrics),
    }


# ---------------------------------------------------------------------------
# Record transform
# ---------------------------------------------------------------------------


def format_funding(value: Any) -> str | None:
    """``$1.2B`` / ``$3.4M`` / ``$12K``; non-numeric strings pass through."""
    if not value:
        return None
    num = to_float(value)
    if num is None:
        return value if isinstance(value, str) else None
    if num >= 1e9:
        return f"${num / 1e9:.1f}B"
    if num >= 1e6:
        return f"${num / 1e6:.1f}M"
    if num >= 1e3:
        return f"${num / 1e3:.0f}K"
    return f"${num:,g}"


def board_members(company_name: str | None) -> list[dict[str, str]]:
    if not company_name:
        return []
    names = BOARD_MAP.get(company_name.lower().strip(), ())
    return [{"name": n, "role": "board", "color": BOARD_MEMBER_COLORS.get(n, "")} for n in names]


def _first_raw(record: Any, slug: str) -> dict[str, Any]:
    attr = record.get("values", {}).get(slug) if isinstance(record, dict) else None
    if attr and isinstance(attr[0], dict):
        return attr[0]
    return {}


def transform_portfolio_company(
    record: Any, metrics_map: dict[str, PortfolioMetrics] | None = None,
) -> dict[str, Any] | None:
    base = extract_company_fields(record)
    if base is None:
        return None
    if metrics_map is None:
        metrics_map = build_metrics_map()

    total_inst = _first_raw(record, "total_funding_amount")
    total_raw = total_inst.get("value") or total_inst.get("currency_value")
    logo_url = base["logo_url"]
    if not logo_url and base["domain"]:
        logo_url = CLEARBIT_LOGO_URL.format(domain=base["domain"])

    metrics = metrics_map.get(base["name"].lower().strip())
    return {
        **base,
        "logo_url": logo_url,
        "description": extract(record, "description"),
        "last_funding_amount": extract(record, "last_funding_amount"),
        "total_funding": format_funding(total_raw),
        "total_funding_raw": to_float(total_raw),
        "last_funding_status": extract(record, "last_funding_status_46"),
        "employee_range": extract(record, "employee_range"),
        "foundation_date": extract(record, "foundation_date"),
        "categories": [c for c in extract_all(record, "categories") if c],
        "tags": [t for t in extract_all(record, "tags") if t],
        "board_members": board_members(base["name"]),
        "metrics": _metrics_view(metrics),
    }


def _metrics_view(m: PortfolioMetrics | None) -> dict[str, Any] | None:
    if m is None:
        return None
    return {
        "fund": m.fund,
        "ownership": m.ownership,
        "invested": m.invested,
        "sector": m.sector,
        "runway_months": m.runway_months,
        "runway_trend": m.runway_trend,
        "can_raise": m.can_raise,
        "near_profitability": m.near_profitability,
        "us_expansion": m.us_expansion,
        "health": compute_health(m),
        "destiny_control": compute_destiny_control(m),
    }


def merge_portfolio_records(primary: list[Any], extras: Iterable[Any]) -> list[Any]:
    """Append extra records whose id is not already present."""
    seen = {(r.get("id") or {}).get("record_id") for r in primary}
    out = list(primary)
    for r in extras:
        rid = (r.get("id") or {}).get("record_id")
        if rid and rid not in seen:
            seen.add(rid)
            out.append(r)
    return out


def pick_name_match(records: Iterable[Any], name: str) -> Any | None:
    """First search hit whose name equals or starts with *name* (case-insensitive)."""
    target = name.lower()
    for r in records:
        n = (extract(r, "name") or "")
        if not isinstance(n, str):
            continue
        n = n.lower()
        if n == target or n.startswith(target):
            return r
    return None
