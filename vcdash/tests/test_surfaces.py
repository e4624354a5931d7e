"""CLI and MCP entry points that need no Attio access."""
from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from vcdash import mcp_server
from vcdash.cache import default_cache_service
from vcdash.cli import app as cli_app
from vcdash.services import DashboardService


class TestCLI:
    def test_portfolio_json(self):
        result = CliRunner().invoke(cli_app, ["--json", "portfolio"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert set(data["health_counts"]) == {"green", "amber", "red"}

    def test_portfolio_table(self):
        result = CliRunner().invoke(cli_app, ["portfolio"])
        assert result.exit_code == 0
        assert "company_count" in result.stdout
        assert "portfolio: health_counts" in result.stdout

    def test_unknown_fund_rejected(self):
        result = CliRunner().invoke(cli_app, ["lps", "fund9"])
        assert result.exit_code != 0


class TestMCP:
    @pytest.fixture()
    def service(self, fake, store, settings, monkeypatch):
        service = DashboardService(client_factory=fake, caches=default_cache_service(store),
                                   store=store, settings=settings)
        monkeypatch.setattr(mcp_server, "_service", service)
        return service

    def test_assessment_scores_include_required_calls(self, service):
        service.assessments.mark_call("c1", "rc_legal_review")
        out = mcp_server.assessment_scores("c1")
        assert out["required_calls"]["overall"]["done"] == 1
        assert out["required_calls"]["by_theme"]["legal"]["done"] == 1
        assert out["completion"] == 0

    @pytest.mark.asyncio
    async def test_dd_board(self, service):
        service.assessments.set_kanban_override("e9", "committee")
        out = await mcp_server.dd_board()
        assert out["cards"][0]["column"] == "committee"
        assert out["is_live"] is True

    def test_overview_resource(self):
        data = json.loads(mcp_server.vcdash_overview())
        assert [s["id"] for s in data["funnel_stages"]][-1] == "portfolio"
        assert {f["id"] for f in data["funds"]} == {"commit", "fund3", "fund2"}
        assert data["portfolio"]["us_expansion"] == ["none", "planned", "active"]
        assert data["portfolio"]["destiny_control"] == ["secured", "manageable", "at_risk", "critical"]

    def test_portfolio_summary(self):
        assert mcp_server.portfolio_summary()["company_count"] == 18

    @pytest.mark.asyncio
    async def test_unknown_fund(self):
        out = await mcp_server.lp_pipeline("fund9")
        assert "error" in out
        assert out["funds"] == ["commit", "fund3", "fund2"]
