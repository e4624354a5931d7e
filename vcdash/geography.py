"""Country/region lookups and label parsers shared by the deal views."""
from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any

from vcdash.utils import round_int

# One country per entry, for display.
COUNTRY_TO_REGION: dict[str, str] = {
    "FR": "France", "DE": "Germany", "NL": "Netherlands", "BE": "Belgium",
    "SE": "Sweden", "NO": "Norway", "DK": "Denmark", "FI": "Finland",
    "ES": "Spain", "IT": "Italy", "PT": "Portugal", "PL": "Poland",
    "CZ": "Czech Republic", "AT": "Austria", "CH": "Switzerland",
    "IE": "Ireland", "GB": "UK", "UK": "UK",
}

# Coarser buckets for dashboard filters; small markets are merged.
COUNTRY_TO_FILTER_REGION: dict[str, str] = {
    "FR": "France",
    "DE": "Germany", "NL": "Germany", "BE": "Germany", "LU": "Germany",
    "SE": "Nordics", "NO": "Nordics", "DK": "Nordics", "FI": "Nordics", "IS": "Nordics",
    "ES": "Southern Europe", "IT": "Southern Europe", "PT": "Southern Europe", "GR": "Southern Europe",
    "PL": "Eastern Europe", "CZ": "Eastern Europe", "HU": "Eastern Europe",
    "RO": "Eastern Europe", "BG": "Eastern Europe", "SK": "Eastern Europe",
    "SI": "Eastern Europe", "HR": "Eastern Europe", "RS": "Eastern Europe",
    "UA": "Eastern Europe", "EE": "Eastern Europe", "LV": "Eastern Europe", "LT": "Eastern Europe",
}

FILTER_REGION_FALLBACK = "Other"
DISPLAY_REGION_FALLBACK = "Unknown"

# Attio last_funding_status slug -> display stage
FUNDING_STATUS_TO_STAGE: dict[str, str] = {
    "pre_seed": "Pre-Seed", "seed": "Seed",
    "series_a": "Series A", "series_b": "Series B", "series_c": "Series C",
    "series_d": "Series D", "series_e": "Series E", "series_f": "Series F",
    "series_unknown": "Unknown", "venture_round": "Venture",
    "corporate_round": "Corporate", "private_equity": "PE", "angel": "Angel",
}

_STAGE_RE = re.compile(
    r"^(Series [A-Z]|Seed|Pre-Seed|Venture|Grant|Private Equity|Corporate)", re.IGNORECASE,
)
_AMOUNT_RE = re.compile(r"[\d,]+")


def region_for(code: str | None) -> str | None:
    return COUNTRY_TO_REGION.get(code) if code else None


def filter_region_for(code: str | None) -> str | None:
    return COUNTRY_TO_FILTER_REGION.get(code) if code else None


def parse_stage_from_deal_id(deal_id: str | None) -> str | None:
    """Funding stage from a deal label such as ``"Series A - Acme"``."""
    if not deal_id:
        return None
    m = _STAGE_RE.match(deal_id)
    if not m:
        return None
    stage = m.group(1)
    if stage.lower().startswith("series"):
        return "Series " + stage[-1].upper()
    return stage[0].upper() + stage[1:].lower()


def format_amount(amount: Any) -> int | None:
    """Raw amount (number or money string) to whole millions, half-up.

    Empty and zero inputs give None, as do strings with no digits.
    """
    if not amount or isinstance(amount, bool):
        return None
    if isinstance(amount, (int, float)):
        return round_int(amount / 1_000_000)
    m = _AMOUNT_RE.search(str(amount))
    if not m:
        return None
    digits = m.group(0).replace(",", "")
    if not digits:
        return None
    return round_int(float(digits) / 1_000_000)


def parse_date(value: Any) -> date | None:
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    # Attio timestamps carry nanoseconds, which fromisoformat rejects
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def date_to_quarter(value: Any) -> str | None:
    """``"2024-03-15"`` -> ``"Q1 2024"``; None when unparseable."""
    d = parse_date(value)
    if d is None:
        return None
    return f"Q{(d.month - 1) // 3 + 1} {d.year}"
