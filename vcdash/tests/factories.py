"""Builders for Attio-shaped records and list entries, and a fake client."""
from __future__ import annotations

from typing import Any

from vcdash.client import AttioAPIError


def record(rid: str, **values: list[dict[str, Any]]) -> dict[str, Any]:
    return {"id": {"record_id": rid}, "values": dict(values)}


def text(value: Any) -> list[dict[str, Any]]:
    return [{"value": value}]


def status(title: str) -> list[dict[str, Any]]:
    return [{"status": {"title": title}}]


def ref(target: str) -> list[dict[str, Any]]:
    return [{"target_record_id": target, "target_object": "companies"}]


def owners(*ids: str) -> list[dict[str, Any]]:
    return [{"referenced_actor_type": "workspace-member", "referenced_actor_id": i} for i in ids]


def company(
    rid: str,
    name: str = "Acme",
    status4: str | None = None,
    email: str | None = None,
    calendar: str | None = None,
    country: str | None = None,
    owner: str | None = None,
    **extra: list[dict[str, Any]],
) -> dict[str, Any]:
    values: dict[str, Any] = {"name": text(name)}
    if status4:
        values["status_4"] = status(status4)
    if email:
        values["first_email_interaction"] = [{"interacted_at": email}]
    if calendar:
        values["first_calendar_interaction"] = [{"interacted_at": calendar}]
    if country:
        values["primary_location"] = [{"country_code": country, "locality": None}]
    if owner:
        values["owner"] = owners(owner)
    values.update(extra)
    return record(rid, **values)


def deal(
    rid: str,
    company_id: str,
    announced: str | None = None,
    deal_status: str | None = None,
    deal_id: str | None = None,
    received: str | None = None,
) -> dict[str, Any]:
    values: dict[str, Any] = {"associated_company_domain": ref(company_id)}
    if announced:
        values["announced_date"] = text(announced)
    if deal_status:
        values["status"] = status(deal_status)
    if deal_id:
        values["deal_id"] = text(deal_id)
    if received:
        values["received_date"] = text(received)
    return record(rid, **values)


def coverage_entry(eid: str, deal_rid: str, in_scope: bool = True, **values: Any) -> dict[str, Any]:
    entry_values = {"in_scope": text(in_scope)}
    entry_values.update({k: text(v) for k, v in values.items()})
    return {"id": {"entry_id": eid}, "parent_record_id": deal_rid, "entry_values": entry_values}


def lp(rid: str, name: str = "LP", **values: list[dict[str, Any]]) -> dict[str, Any]:
    return record(rid, name=text(name), **values)


class FakeAttio:
    """Stands in for AttioClient; ``fail`` makes every call raise."""

    def __init__(self):
        self.fail: AttioAPIError | None = None
        self.calls: list[str] = []
        self.updates: list[tuple] = []
        self.companies = [company("c1", name="Acme", country="FR"), company("c2", name="Beta")]
        self.deals = [deal("d1", "c1", announced="2024-01-05"), deal("d2", "c2")]
        self.entries = [coverage_entry("e1", "d1")]
        self.qualified = 1500

    def __call__(self):
        return self

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return None

    def _hit(self, name):
        self.calls.append(name)
        if self.fail is not None:
            raise self.fail

    async def fetch_all_deals(self):
        self._hit("deals")
        return self.deals

    async def fetch_list_entries(self, list_slug=None):
        self._hit("entries")
        return self.entries

    async def fetch_companies_by_ids(self, ids):
        self._hit("companies")
        wanted = set(ids)
        return [c for c in self.companies if c["id"]["record_id"] in wanted]

    async def fetch_owned_companies(self):
        self._hit("owned")
        return [company("c1", status4="Met"), company("c3", status4="Dealflow")]

    async def fetch_deal_flow_entries(self):
        self._hit("dealflow")
        return [{"entry_id": "e9", "record_id": "d9", "satus": "Met", "max_status_5": None,
                 "source_type_8": "Direct inbound"}]

    async def fetch_record_names(self, ids):
        self._hit("names")
        return {"d9": {"name": "Deal Nine"}}

    async def fetch_all_lps(self):
        self._hit("lps")
        return [lp("l1", "Pension", rrw_3_status=status("First Meeting"))]

    async def fetch_portfolio_companies(self):
        self._hit("portfolio")
        return [company("p1", name="Veesion")]

    async def count_list_entries(self, list_slug=None):
        self._hit("count")
        return self.qualified

    async def update_entry(self, entry_id, field_slug, value, list_slug=None):
        self._hit("update")
        self.updates.append((entry_id, field_slug, value, list_slug))
        return {}