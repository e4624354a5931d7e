"""DashboardService loaders with a fake Attio client."""
from __future__ import annotations

import pytest

from vcdash.cache import COVERAGE_CACHE, default_cache_service
from vcdash.client import AttioAPIError, AttioConfigError
from vcdash.services import DashboardService


@pytest.fixture()
def service(fake, store, settings) -> DashboardService:
    return DashboardService(
        client_factory=fake,
        caches=default_cache_service(store),
        store=store,
        settings=settings,
    )


class TestCoverage:
    @pytest.mark.asyncio
    async def test_live_then_cached(self, service, fake):
        first = await service.load_coverage()
        assert first.is_live
        assert [r["id"] for r in first.data] == ["c1", "c2"]
        assert first.data[0]["coverage_entry_id"] == "e1"
        calls = len(fake.calls)
        second = await service.load_coverage()
        assert second.data == first.data
        assert len(fake.calls) == calls

    @pytest.mark.asyncio
    async def test_refresh_bypasses_cache(self, service, fake):
        await service.load_coverage()
        calls = len(fake.calls)
        await service.load_coverage(refresh=True)
        assert len(fake.calls) > calls

    @pytest.mark.asyncio
    async def test_fallback_to_last_data(self, service, fake):
        live = await service.load_coverage()
        fake.fail = AttioAPIError(503, "Attio down")
        stale = await service.load_coverage(refresh=True)
        assert not stale.is_live
        assert stale.error == "Attio down"
        assert stale.data == live.data

    @pytest.mark.asyncio
    async def test_error_without_previous_data(self, service, fake):
        fake.fail = AttioAPIError(503, "Attio down")
        with pytest.raises(AttioAPIError):
            await service.load_coverage()

    @pytest.mark.asyncio
    async def test_config_error_propagates(self, store, settings):
        def factory():
            raise AttioConfigError("ATTIO_API_KEY not configured")

        service = DashboardService(client_factory=factory, caches=default_cache_service(store),
                                   store=store, settings=settings)
        with pytest.raises(AttioConfigError):
            await service.load_coverage()

    @pytest.mark.asyncio
    async def test_local_deal_state_overlay(self, service):
        service.assessments.set_deal_state("d1", in_scope=False)
        snap = await service.load_coverage()
        rows = {r["id"]: r for r in snap.data}
        assert rows["c1"]["in_scope"] is False
        assert rows["c2"]["in_scope"] is True


class TestToggle:
    @pytest.mark.asyncio
    async def test_optimistic_update(self, service, fake):
        await service.load_coverage()
        result = await service.toggle_coverage_field("e1", "in_scope", False)
        assert result.ok
        assert result.previous is True
        assert fake.updates == [("e1", "in_scope", False, "deal_coverage_6")]
        row = service.caches.get(COVERAGE_CACHE).get()[0]
        assert row["in_scope"] is False
        assert row["coverage_in_scope"] is False

    @pytest.mark.asyncio
    async def test_rollback_on_failure(self, service, fake):
        await service.load_coverage()
        fake.fail = AttioAPIError(500, "write failed")
        result = await service.toggle_coverage_field("e1", "in_scope", False)
        assert not result.ok
        assert result.error == "write failed"
        row = service.caches.get(COVERAGE_CACHE).get()[0]
        assert row["in_scope"] is True


class TestOtherLoaders:
    @pytest.mark.asyncio
    async def test_funnel(self, service):
        snap = await service.load_funnel()
        assert snap.data["deals"][0]["name"] == "Deal Nine"
        assert snap.data["counts"]["met"] == 1
        assert snap.data["universe_count"] == 2

    @pytest.mark.asyncio
    async def test_funnel_without_names(self, service, fake):
        async def broken(ids):
            raise AttioAPIError(500, "names down")

        fake.fetch_record_names = broken
        snap = await service.load_funnel()
        assert snap.is_live
        assert snap.data["deals"][0]["name"] == "d9"

    @pytest.mark.asyncio
    async def test_board_uses_overrides(self, service):
        snap = await service.load_board()
        assert [(c["id"], c["column"]) for c in snap.data] == [("e9", "met")]
        service.assessments.set_kanban_override("e9", "analysis")
        card = (await service.load_board()).data[0]
        assert card["column"] == "analysis"
        assert card["override"] == "analysis"

    @pytest.mark.asyncio
    async def test_lps(self, service):
        snap = await service.load_lps()
        assert snap.data[0]["fund3_status"] == "First Meeting"

    @pytest.mark.asyncio
    async def test_portfolio(self, service):
        snap = await service.load_portfolio()
        assert snap.data[0]["metrics"]["fund"] == "fund-2"

    @pytest.mark.asyncio
    async def test_qualified_count(self, service, fake, store):
        snap = await service.qualified_count()
        assert snap.data == 1500
        assert snap.is_live
        assert "cache:attio-qualified-count" in store.keys()

    @pytest.mark.asyncio
    async def test_qualified_count_fallback(self, service, fake, settings):
        fake.fail = AttioAPIError(0, "offline")
        snap = await service.qualified_count()
        assert snap.data == settings.qualified_universe_fallback
        assert not snap.is_live

    @pytest.mark.asyncio
    async def test_sync_clears_caches(self, service, fake):
        await service.load_lps()
        assert COVERAGE_CACHE in service.sync()
        calls = len(fake.calls)
        await service.load_lps()
        assert len(fake.calls) == calls + 1

    @pytest.mark.asyncio
    async def test_last_data_survives_sync(self, service, fake):
        live = await service.load_lps()
        service.sync()
        fake.fail = AttioAPIError(503, "Attio down")
        stale = await service.load_lps()
        assert not stale.is_live
        assert stale.data == live.data
