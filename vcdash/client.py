"""Async Attio REST client.

All reads go through ``query``; list and record queries are paged by
numeric offset.  ``paginate`` fetches the first page alone and, when it
comes back full, requests further pages concurrently in waves of
``fan_out`` offsets.  A page that fails is logged and counted as empty so a
partial result still comes back.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

import httpx

from vcdash.attio import ENTRY_NAMESPACE, actor_ids, entry_id, entry_parent_id, entry_value
from vcdash.config import Settings, get_settings
from vcdash.funnel import record_name_map
from vcdash.portfolio import merge_portfolio_records, pick_name_match
from vcdash.utils import chunked

log = logging.getLogger(__name__)


class AttioConfigError(RuntimeError):
    """No API key configured."""


class AttioAPIError(RuntimeError):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


@dataclass
class PageResult:
    records: list[dict[str, Any]] = field(default_factory=list)
    pages: int = 0
    failed_pages: list[int] = field(default_factory=list)
    hit_ceiling: bool = False

    @property
    def complete(self) -> bool:
        return not self.failed_pages and not self.hit_ceiling


def error_message(response: httpx.Response) -> str:
    """Upstream error text when the body carries one."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
        if body.get("message"):
            return str(body["message"])
    return f"Attio API error: {response.status_code}"


def slim_deal_flow_entry(entry: Mapping[str, Any]) -> dict[str, Any]:
    """Keep only what the funnel needs; deal-flow entries carry full email bodies."""
    sources = actor_ids(entry, "source", namespace=ENTRY_NAMESPACE)
    return {
        "entry_id": entry_id(entry),
        "record_id": entry_parent_id(entry),
        "satus": entry_value(entry, "satus"),
        "max_status_5": entry_value(entry, "max_status_5"),
        "source_type_8": entry_value(entry, "source_type_8"),
        "amount_in_meu": entry_value(entry, "amount_in_meu"),
        "founding_team": entry_value(entry, "founding_team"),
        "created_at": entry_value(entry, "created_at"),
        "source_ws_id": sources[0] if sources else None,
    }


class AttioClient:
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        *,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings or get_settings()
        api_key = api_key if api_key is not None else self.settings.attio_api_key
        if not api_key:
            raise AttioConfigError("ATTIO_API_KEY not configured")
        self._http = httpx.AsyncClient(
            base_url=(base_url or self.settings.attio_api_base).rstrip("/"),
            timeout=httpx.Timeout(timeout or self.settings.request_timeout_seconds),
            headers={"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"},
            transport=transport,
        )

    async def __aenter__(self) -> AttioClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # -- transport ----------------------------------------------------------

    async def query(self, path: str, payload: Mapping[str, Any] | None = None,
                    method: str = "POST") -> dict[str, Any]:
        try:
            resp = await self._http.request(method, path, json=dict(payload or {}))
        except httpx.HTTPError as exc:
            raise AttioAPIError(0, f"Attio request failed: {exc}") from exc
        if resp.status_code >= 400:
            raise AttioAPIError(resp.status_code, error_message(resp))
        return resp.json()

    async def update_entry(self, entry_id: str, field_slug: str, value: Any,
                           list_slug: str | None = None) -> dict[str, Any]:
        list_slug = list_slug or self.settings.coverage_list
        return await self.query(
            f"/lists/{list_slug}/entries/{entry_id}",
            {"entry_values": {field_slug: [{"value": value}]}},
            method="PUT",
        )

    async def _page(self, path: str, payload: Mapping[str, Any], offset: int, limit: int) -> list[dict[str, Any]]:
        body = {**payload, "limit": limit}
        if offset:
            body["offset"] = offset
        data = await self.query(path, body)
        return list(data.get("data") or [])

    async def paginate(self, path: str, payload: Mapping[str, Any] | None = None,
                       page_size: int | None = None) -> PageResult:
        payload = dict(payload or {})
        size = page_size or self.settings.record_page_size
        max_pages = max(1, self.settings.max_pages)
        fan_out = max(1, self.settings.fan_out)

        first = await self._page(path, payload, 0, size)
        result = PageResult(records=list(first), pages=1)
        last_full = len(first) >= size
        next_index = 1

        while last_full and next_index < max_pages:
            indexes = list(range(next_index, min(next_index + fan_out, max_pages)))
            pages = await asyncio.gather(
                *(self._page(path, payload, i * size, size) for i in indexes),
                return_exceptions=True,
            )
            short_seen = False
            succeeded = 0
            for i, page in zip(indexes, pages):
                result.pages += 1
                if isinstance(page, BaseException):
                    log.warning("%s: page at offset %d failed: %s", path, i * size, page)
                    result.failed_pages.append(i * size)
                    continue
                succeeded += 1
                result.records.extend(page)
                if len(page) < size:
                    short_seen = True
            next_index = indexes[-1] + 1
            last_full = succeeded > 0 and not short_seen

        if last_full and next_index >= max_pages:
            result.hit_ceiling = True
            log.warning("%s: stopped at the %d-page ceiling; data may be truncated", path, max_pages)
        log.debug("%s: %d record(s) in %d page(s)", path, len(result.records), result.pages)
        return result

    # -- fetchers -----------------------------------------------------------

    def _records_path(self, obj: str) -> str:
        return f"/objects/{obj}/records/query"

    def _entries_path(self, list_slug: str) -> str:
        return f"/lists/{list_slug}/entries/query"

    async def fetch_all_deals(self) -> list[dict[str, Any]]:
        result = await self.paginate(
            self._records_path(self.settings.deals_object),
            {"sorts": [{"attribute": "announced_date", "direction": "desc"}]},
        )
        return result.records

    async def _fetch_by_ids(self, obj: str, ids: Iterable[str]) -> list[dict[str, Any]]:
        unique = list(dict.fromkeys(i for i in ids if i))
        records: list[dict[str, Any]] = []
        for chunk in chunked(unique, self.settings.id_chunk_size):
            result = await self.paginate(self._records_path(obj), {"filter": {"record_id": {"$in": chunk}}})
            records.extend(result.records)
        return records

    async def fetch_companies_by_ids(self, ids: Iterable[str]) -> list[dict[str, Any]]:
        return await self._fetch_by_ids(self.settings.companies_object, ids)

    async def fetch_deals_by_ids(self, ids: Iterable[str]) -> list[dict[str, Any]]:
        return await self._fetch_by_ids(self.settings.deals_object, ids)

    async def fetch_owned_companies(self) -> list[dict[str, Any]]:
        result = await self.paginate(
            self._records_path(self.settings.companies_object),
            {"filter": {"owner": {"$not_empty": True}}},
        )
        return result.records

    async def fetch_all_lps(self) -> list[dict[str, Any]]:
        result = await self.paginate(self._records_path(self.settings.lps_object))
        return result.records

    async def fetch_list_entries(self, list_slug: str | None = None) -> list[dict[str, Any]]:
        result = await self.paginate(
            self._entries_path(list_slug or self.settings.coverage_list),
            page_size=self.settings.entry_page_size,
        )
        return result.records

    async def fetch_deal_flow_entries(self) -> list[dict[str, Any]]:
        entries = await self.fetch_list_entries(self.settings.deal_flow_list)
        return [slim_deal_flow_entry(e) for e in entries]

    async def count_list_entries(self, list_slug: str | None = None) -> int:
        result = await self.paginate(
            self._entries_path(list_slug or self.settings.qualified_list),
            page_size=self.settings.entry_page_size,
        )
        return len(result.records)

    async def fetch_record_names(self, ids: Iterable[str]) -> dict[str, dict[str, Any]]:
        return record_name_map(await self.fetch_deals_by_ids(ids))

    async def fetch_portfolio_companies(self, extra_names: Iterable[str] | None = None) -> list[dict[str, Any]]:
        path = self._records_path(self.settings.companies_object)
        data = await self.query(path, {"filter": {"status_4": {"$eq": "Portfolio"}}, "limit": 50})
        records = list(data.get("data") or [])

        names = self.settings.extra_portfolio_names if extra_names is None else list(extra_names)
        extras = []
        for name in names:
            try:
                found = await self.query(path, {"filter": {"name": {"$contains": name}}, "limit": 5})
            except AttioAPIError as exc:
                log.warning("Could not fetch extra portfolio company %s: %s", name, exc)
                continue
            match = pick_name_match(found.get("data") or [], name)
            if match is not None:
                extras.append(match)
        return merge_portfolio_records(records, extras)
