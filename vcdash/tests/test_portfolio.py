from __future__ import annotations

import pytest

from vcdash.portfolio import (
    PORTFOLIO_METRICS,
    board_members,
    build_metrics_map,
    compute_destiny_control,
    compute_health,
    compute_portfolio_summary,
    format_funding,
    merge_portfolio_records,
    pick_name_match,
    transform_portfolio_company,
)
from vcdash.tests.factories import company, record, text

METRICS = build_metrics_map()


class TestClassification:
    def test_health(self):
        assert compute_health(METRICS["veesion"]) == "green"
        assert compute_health(METRICS["allo media"]) == "red"
        assert compute_health(METRICS["worldia"]) == "amber"
        assert compute_health(None) == "amber"

    def test_destiny_control(self):
        assert compute_destiny_control(METRICS["hypr space"]) == "secured"
        assert compute_destiny_control(METRICS["worldia"]) == "manageable"
        assert compute_destiny_control(METRICS["le collectionist"]) == "at_risk"
        assert compute_destiny_control(METRICS["allo media"]) == "critical"
        assert compute_destiny_control(None) == "at_risk"

    def test_aliases_resolve(self):
        assert METRICS["tec"].key == "the exploration company"
        assert METRICS["jiko"].name == "Atuin"


class TestSummary:
    def test_counts_cover_every_company(self):
        summary = compute_portfolio_summary()
        assert summary["company_count"] == len(PORTFOLIO_METRICS)
        assert sum(summary["health_counts"].values()) == len(PORTFOLIO_METRICS)
        assert sum(summary["destiny_counts"].values()) == len(PORTFOLIO_METRICS)

    def test_missing_values_skipped(self):
        summary = compute_portfolio_summary([METRICS["allo media"], METRICS["brut"]])
        assert summary["total_invested"] == 8.5
        assert summary["avg_ownership"] == 3.2


class TestFormatting:
    @pytest.mark.parametrize("raw, expected", [
        (1_200_000_000, "$1.2B"),
        (3_400_000, "$3.4M"),
        ("12000", "$12K"),
        (500, "$500"),
        ("n/a", "n/a"),
        (None, None),
        (0, None),
    ])
    def test_format_funding(self, raw, expected):
        assert format_funding(raw) == expected

    def test_board_members(self):
        members = board_members("  Okeiro ")
        assert [m["name"] for m in members] == ["Joseph", "Luc-Emmanuel"]
        assert members[0]["color"] == "#E63424"
        assert board_members("Unknown Co") == []


class TestTransform:
    def test_portfolio_company(self):
        rec = company("c1", name="Veesion", status4="Portfolio",
                      domains=[{"domain": "veesion.io"}],
                      total_funding_amount=[{"currency_value": 38_000_000}],
                      categories=[{"option": {"title": "Retail"}}])
        row = transform_portfolio_company(rec, METRICS)
        assert row["logo_url"] == "https://logo.clearbit.com/veesion.io"
        assert row["total_funding"] == "$38.0M"
        assert row["total_funding_raw"] == 38_000_000
        assert row["categories"] == ["Retail"]
        assert row["metrics"]["health"] == "green"
        assert row["metrics"]["fund"] == "fund-2"
        assert [m["name"] for m in row["board_members"]] == ["Joseph", "Luc-Emmanuel"]

    def test_unknown_company_has_no_metrics(self):
        row = transform_portfolio_company(company("c9", name="Nobody"))
        assert row["metrics"] is None
        assert row["logo_url"] is None

    def test_missing_id(self):
        assert transform_portfolio_company({"values": {}}) is None


class TestRecordMerging:
    def test_merge_dedups_by_id(self):
        a, b = record("a"), record("b")
        assert merge_portfolio_records([a], [record("a"), b, b]) == [a, b]

    def test_pick_name_match(self):
        hits = [record("x", name=text("Speachless")), record("y", name=text("Speach"))]
        assert pick_name_match(hits, "speach")["id"]["record_id"] == "x"
        assert pick_name_match([record("z", name=text("Other"))], "Speach") is None
