"""Dashboard data loaders shared by the HTTP API, MCP server and CLI.

Each loader serves from its TTL cache when it can, otherwise fetches from
Attio, derives the view and caches it.  When Attio is unreachable the last
good result is returned marked ``is_live=False`` together with the error.
"""
from __future__ import annotations

import asyncio
import copy
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from vcdash.assessment import AssessmentStore, apply_deal_state, kanban_column
from vcdash.attio import first_reference
from vcdash.cache import (
    COVERAGE_CACHE,
    FUNNEL_CACHE,
    LPS_CACHE,
    PORTFOLIO_CACHE,
    QUALIFIED_COUNT_CACHE,
    CacheService,
    default_cache_service,
)
from vcdash.client import AttioAPIError, AttioClient
from vcdash.config import Settings, get_settings
from vcdash.funnel import KANBAN_SATUS, build_funnel, kanban_record_ids
from vcdash.joiner import join_coverage
from vcdash.lp_pipeline import process_lps
from vcdash.portfolio import build_metrics_map, transform_portfolio_company
from vcdash.store import LocalStore

log = logging.getLogger(__name__)

ClientFactory = Callable[[], AttioClient]

# Coverage entry slug -> row keys that mirror it
COVERAGE_FIELD_KEYS: dict[str, tuple[str, ...]] = {
    "in_scope": ("in_scope", "coverage_in_scope"),
    "received": ("received_date",),
    "deal_score": ("deal_score",),
}


@dataclass
class Snapshot:
    data: Any
    is_live: bool
    error: str | None = None


@dataclass
class ToggleResult:
    ok: bool
    entry_id: str
    field: str
    value: Any
    previous: Any = None
    error: str | None = None


class DashboardService:
    def __init__(
        self,
        client_factory: ClientFactory | None = None,
        caches: CacheService | None = None,
        store: LocalStore | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self.client_factory = client_factory or (lambda: AttioClient(settings=self.settings))
        self.store = store or LocalStore()
        self.caches = caches or default_cache_service(
            self.store,
            session_ttl=self.settings.cache_ttl_seconds,
            qualified_ttl=self.settings.qualified_count_ttl_seconds,
        )
        self.assessments = AssessmentStore(self.store)
        self._last: dict[str, Any] = {}

    # -- generic loader -----------------------------------------------------

    async def _load(self, key: str, fetch: Callable[[AttioClient], Awaitable[Any]],
                    refresh: bool = False) -> Snapshot:
        cache = self.caches.get(key)
        if not refresh:
            cached = cache.get()
            if cached is not None:
                return Snapshot(cached, is_live=True)
        try:
            async with self.client_factory() as client:
                data = await fetch(client)
        except AttioAPIError as exc:
            last = self._last.get(key)
            if last is None:
                raise
            log.warning("Attio fetch for %s failed, serving last data: %s", key, exc)
            return Snapshot(last, is_live=False, error=str(exc))
        cache.set(data)
        self._last[key] = data
        return Snapshot(data, is_live=True)

    # -- loaders ------------------------------------------------------------

    async def load_coverage(self, refresh: bool = False) -> Snapshot:
        async def fetch(client: AttioClient) -> list[dict[str, Any]]:
            deals, entries = await asyncio.gather(client.fetch_all_deals(), client.fetch_list_entries())
            company_ids = list(dict.fromkeys(
                cid for cid in (first_reference(d, "associated_company_domain") for d in deals) if cid
            ))
            companies = await client.fetch_companies_by_ids(company_ids)
            return join_coverage(companies, deals, entries, self.settings.cluster_threshold)

        snap = await self._load(COVERAGE_CACHE, fetch, refresh)
        return Snapshot(apply_deal_state(snap.data, self.assessments.deal_state()), snap.is_live, snap.error)

    async def load_funnel(self, refresh: bool = False) -> Snapshot:
        async def fetch(client: AttioClient) -> dict[str, Any]:
            companies, entries = await asyncio.gather(
                client.fetch_owned_companies(), client.fetch_deal_flow_entries(),
            )
            try:
                name_map = await client.fetch_record_names(kanban_record_ids(entries))
            except AttioAPIError as exc:
                log.warning("Deal names unavailable: %s", exc)
                name_map = {}
            return build_funnel(companies, entries, name_map).to_dict()

        return await self._load(FUNNEL_CACHE, fetch, refresh)

    async def load_board(self, refresh: bool = False) -> Snapshot:
        """DD board cards: deal-flow entries at Met or Committee, placed in their column."""
        snap = await self.load_funnel(refresh=refresh)
        overrides = self.assessments.kanban_overrides()
        cards = [
            {"id": d["id"], "name": d["name"], "satus": d.get("satus"),
             "column": kanban_column(d, overrides), "override": overrides.get(d["id"])}
            for d in snap.data.get("deals", []) if d.get("satus") in KANBAN_SATUS and d.get("id")
        ]
        return Snapshot(cards, snap.is_live, snap.error)

    async def load_lps(self, refresh: bool = False) -> Snapshot:
        async def fetch(client: AttioClient) -> list[dict[str, Any]]:
            return process_lps(await client.fetch_all_lps())

        return await self._load(LPS_CACHE, fetch, refresh)

    async def load_portfolio(self, refresh: bool = False) -> Snapshot:
        async def fetch(client: AttioClient) -> list[dict[str, Any]]:
            metrics_map = build_metrics_map()
            records = await client.fetch_portfolio_companies()
            rows = (transform_portfolio_company(r, metrics_map) for r in records)
            return [r for r in rows if r is not None]

        return await self._load(PORTFOLIO_CACHE, fetch, refresh)

    async def qualified_count(self, refresh: bool = False) -> Snapshot:
        """Qualified-universe size: cache, then a live count, then the configured fallback."""
        cache = self.caches.get(QUALIFIED_COUNT_CACHE)
        if not refresh:
            cached = cache.get()
            if cached is not None:
                return Snapshot(cached, is_live=True)
        try:
            async with self.client_factory() as client:
                count = await client.count_list_entries(self.settings.qualified_list)
        except AttioAPIError as exc:
            log.warning("Qualified count unavailable, using fallback %d: %s",
                        self.settings.qualified_universe_fallback, exc)
            return Snapshot(self.settings.qualified_universe_fallback, is_live=False, error=str(exc))
        cache.set(count)
        return Snapshot(count, is_live=True)

    # -- writes -------------------------------------------------------------

    async def toggle_coverage_field(self, entry_id: str, field_slug: str, value: Any) -> ToggleResult:
        """Apply to the cached rows first, write to Attio, roll back on failure."""
        cache = self.caches.get(COVERAGE_CACHE)
        rows = cache.get()
        keys = COVERAGE_FIELD_KEYS.get(field_slug, (field_slug,))
        previous = None
        before = copy.deepcopy(rows) if rows is not None else None
        if rows is not None:
            for row in rows:
                if row.get("coverage_entry_id") == entry_id:
                    previous = row.get(keys[0])
                    for k in keys:
                        row[k] = value
            cache.set(rows)

        try:
            async with self.client_factory() as client:
                await client.update_entry(entry_id, field_slug, value, self.settings.coverage_list)
        except AttioAPIError as exc:
            log.warning("Coverage update %s.%s failed, reverting: %s", entry_id, field_slug, exc)
            if before is not None:
                cache.set(before)
            return ToggleResult(False, entry_id, field_slug, value, previous, str(exc))

        if rows is not None:
            self._last[COVERAGE_CACHE] = rows
        return ToggleResult(True, entry_id, field_slug, value, previous)

    def sync(self) -> list[str]:
        return self.caches.sync()
