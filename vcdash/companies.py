"""Normalized company view built from a raw Attio company record."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict

from vcdash.attio import (
    actor_ids,
    extract,
    extract_all,
    interaction_at,
    location_country_code,
    record_id,
)
from vcdash.geography import (
    DISPLAY_REGION_FALLBACK,
    FILTER_REGION_FALLBACK,
    filter_region_for,
    region_for,
)
from vcdash.stages import CompanyStage, classify_company
from vcdash.utils import parse_year


class NormalizedCompany(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    status: str | None = None
    funnel_stage: CompanyStage = CompanyStage.QUALIFIED
    country_code: str | None = None
    region: str = DISPLAY_REGION_FALLBACK
    filter_region: str = FILTER_REGION_FALLBACK
    first_email: str | None = None
    last_email: str | None = None
    first_calendar: str | None = None
    last_calendar: str | None = None
    created_at: str | None = None
    contact_year: int | None = None
    meeting_year: int | None = None
    owner_ids: list[str] = []
    industry: list[str] = []
    funding_status: str | None = None
    estimated_arr: str | None = None
    employee_range: str | None = None
    domain: str | None = None
    logo_url: str | None = None
    description: str | None = None


def company_country_code(record: Any) -> str | None:
    """Location country first, then the cross-checked HQ country prefix."""
    code = location_country_code(record, "primary_location")
    if code:
        return code
    hq = extract(record, "cross_checked_hq_country")
    if isinstance(hq, str) and hq:
        return hq[:2].upper()
    return None


def normalize_company(record: Any) -> NormalizedCompany | None:
    rid = record_id(record)
    if not rid:
        return None
    status = _str(extract(record, "status_4"))
    first_email = interaction_at(record, "first_email_interaction")
    first_calendar = interaction_at(record, "first_calendar_interaction")
    code = company_country_code(record)
    team_country = extract(record, "team_country")
    return NormalizedCompany(
        id=rid,
        name=_str(extract(record, "name")) or "Unknown",
        status=status,
        funnel_stage=classify_company(status, first_email, first_calendar),
        country_code=code,
        region=region_for(code) or (team_country if isinstance(team_country, str) and team_country else DISPLAY_REGION_FALLBACK),
        filter_region=filter_region_for(code) or FILTER_REGION_FALLBACK,
        first_email=first_email,
        last_email=interaction_at(record, "last_email_interaction"),
        first_calendar=first_calendar,
        last_calendar=interaction_at(record, "last_calendar_interaction"),
        created_at=_str(extract(record, "created_at")),
        contact_year=parse_year(first_email),
        meeting_year=parse_year(first_calendar),
        owner_ids=actor_ids(record, "owner"),
        industry=[str(c) for c in extract_all(record, "categories") if isinstance(c, str)],
        funding_status=_str(extract(record, "last_funding_status_46")),
        estimated_arr=_as_text(extract(record, "estimated_arr_usd")),
        employee_range=_as_text(extract(record, "employee_range")),
        domain=_str(extract(record, "domains")),
        logo_url=_str(extract(record, "logo_url")),
        description=_str(extract(record, "description")),
    )


def _as_text(value: Any) -> str | None:
    if value is None or isinstance(value, dict):
        return None
    return str(value)


def _str(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None
