"""Company x deal x coverage join and the coverage headline numbers."""
from __future__ import annotations

from vcdash.companies import normalize_company
from vcdash.joiner import (
    best_deals_by_company,
    coverage_by_deal,
    coverage_stats,
    join_coverage,
    resolve_outcome,
    resolve_seen,
)
from vcdash.tests.factories import company, coverage_entry, deal, text


class TestNormalize:
    def test_fields(self):
        rec = company("c1", name="Acme", status4="Met", email="2023-04-01T00:00:00Z",
                      calendar="2024-02-02T00:00:00Z", country="NL", owner="u1")
        c = normalize_company(rec)
        assert c.funnel_stage == "met"
        assert c.region == "Netherlands"
        assert c.filter_region == "Germany"
        assert c.contact_year == 2023
        assert c.meeting_year == 2024
        assert c.owner_ids == ["u1"]

    def test_hq_country_fallback(self):
        rec = company("c1", cross_checked_hq_country=text("fr - France"))
        c = normalize_company(rec)
        assert c.country_code == "FR"
        assert c.region == "France"

    def test_unknown_region(self):
        c = normalize_company(company("c1"))
        assert c.region == "Unknown"
        assert c.filter_region == "Other"

    def test_missing_id(self):
        assert normalize_company({"values": {}}) is None


class TestIndexes:
    def test_latest_deal_wins(self):
        deals = [
            deal("d1", "c1", announced="2023-01-01"),
            deal("d2", "c1", announced="2024-06-01"),
            deal("d3", "c1", announced="2022-12-31"),
        ]
        assert best_deals_by_company(deals)["c1"]["id"]["record_id"] == "d2"

    def test_dated_beats_undated(self):
        deals = [deal("d1", "c1"), deal("d2", "c1", announced="2020-01-01"), deal("d3", "c1")]
        assert best_deals_by_company(deals)["c1"]["id"]["record_id"] == "d2"

    def test_deal_without_company_skipped(self):
        orphan = {"id": {"record_id": "d9"}, "values": {}}
        assert best_deals_by_company([orphan]) == {}

    def test_last_coverage_entry_wins(self):
        entries = [coverage_entry("e1", "d1"), coverage_entry("e2", "d1", in_scope=False)]
        assert coverage_by_deal(entries)["d1"]["id"]["entry_id"] == "e2"


class TestResolvers:
    def test_any_signal_means_seen(self):
        assert resolve_seen("deal flow", None, False, False, None)
        assert resolve_seen(None, "Passed", False, False, None)
        assert resolve_seen(None, None, False, False, "2024-01-01")
        assert not resolve_seen("Announced deal", "To contact", False, False, None)

    def test_outcomes(self):
        assert resolve_outcome(False, "Portfolio", None) == "Missed"
        assert resolve_outcome(True, "To Decline", "deal flow") == "Passed"
        assert resolve_outcome(True, "Due Diligence", None) == "DD"
        assert resolve_outcome(True, "Portfolio", None) == "Invested"
        assert resolve_outcome(True, None, "deal flow") == "In Pipeline"
        assert resolve_outcome(True, "Met", "Announced deals we saw") == "Saw"
        assert resolve_outcome(True, "Met", None) == "Tracked"


class TestJoin:
    def _data(self):
        companies = [
            company("c1", name="Acme", status4="Passed", country="FR"),
            company("c2", name="Beta", country="DE"),
            company("c3", name="Gamma", email="2024-01-01T00:00:00Z"),
        ]
        deals = [
            deal("d1", "c1", announced="2023-01-01", deal_id="Seed - Acme"),
            deal("d2", "c1", announced="2024-06-01", deal_id="Series A - Acme", deal_status="deal flow"),
            deal("d3", "c2", announced="2024-02-10", deal_status="Announced deal"),
        ]
        entries = [
            coverage_entry("e1", "d2", amount_raised_in_meu=12.5, deal_score=4),
            coverage_entry("e3", "d3", in_scope=False),
        ]
        return companies, deals, entries

    def test_one_row_per_company(self):
        rows = join_coverage(*self._data())
        assert [r["id"] for r in rows] == ["c1", "c2", "c3"]

    def test_row_uses_latest_deal_and_its_coverage(self):
        row = join_coverage(*self._data())[0]
        assert row["deal_id"] == "d2"
        assert row["stage"] == "Series A"
        assert row["date"] == "Q2 2024"
        assert row["coverage_entry_id"] == "e1"
        assert row["amount"] == 13
        assert row["deal_score"] == 4
        assert row["outcome"] == "Passed"
        assert row["country"] == "France"

    def test_in_scope_defaults_true_without_entry(self):
        rows = {r["id"]: r for r in join_coverage(*self._data())}
        assert rows["c2"]["in_scope"] is False
        assert rows["c3"]["in_scope"] is True
        assert rows["c3"]["coverage_in_scope"] is None

    def test_seen_and_missed(self):
        rows = {r["id"]: r for r in join_coverage(*self._data())}
        assert rows["c2"]["seen"] is False
        assert rows["c2"]["outcome"] == "Missed"
        assert rows["c3"]["seen"] is True
        assert rows["c3"]["deal_name"] == "Gamma"


class TestCoverageStats:
    def test_only_in_scope_rows(self):
        rows = [
            {"in_scope": True, "seen": True, "outcome": "Passed", "filter_region": "France"},
            {"in_scope": True, "seen": False, "outcome": "Missed", "filter_region": "France"},
            {"in_scope": True, "seen": True, "outcome": "Passed", "filter_region": "Nordics"},
            {"in_scope": False, "seen": True, "outcome": "Invested", "filter_region": "Germany"},
        ]
        stats = coverage_stats(rows)
        assert stats["in_scope"] == 3
        assert stats["seen"] == 2
        assert stats["missed"] == 1
        assert stats["coverage_rate"] == 67
        assert stats["by_outcome"] == {"Passed": 2, "Missed": 1}
        assert list(stats["by_region"]) == ["France", "Nordics"]

    def test_empty(self):
        assert coverage_stats([])["coverage_rate"] == 0

    def test_funnel_stage_counts_are_cumulative(self):
        rows = [
            {"in_scope": True, "funnel_stage": "met"},
            {"in_scope": True, "funnel_stage": "portfolio"},
            {"in_scope": True, "funnel_stage": "qualified"},
            {"in_scope": False, "funnel_stage": "portfolio"},
        ]
        by_stage = coverage_stats(rows)["by_funnel_stage"]
        assert by_stage["qualified"] == 3
        assert by_stage["met"] == 2
        assert by_stage["portfolio"] == 1
