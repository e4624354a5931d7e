from __future__ import annotations

from vcdash.stages import (
    COMPANY_STAGE_ORDER,
    CompanyStage,
    classify_company,
    classify_with_rule,
    cumulative_counts,
)


class TestClassify:
    def test_override_beats_interactions(self):
        assert classify_company("Portfolio") == CompanyStage.PORTFOLIO
        assert classify_company("IC", None, None) == CompanyStage.COMMITTEE

    def test_both_diligence_spellings(self):
        assert classify_company("Due Dilligence") == CompanyStage.ANALYSIS
        assert classify_company("Due Diligence") == CompanyStage.ANALYSIS

    def test_hint_is_fixed(self):
        assert classify_company("Met") == CompanyStage.MET
        assert classify_company("Contacted / to meet", "2024-01-01") == CompanyStage.CONTACTED

    def test_terminal_falls_back_to_interactions(self):
        assert classify_company("Passed", None, "2023-02-01") == CompanyStage.MET
        assert classify_company("Passed", "2023-02-01", None) == CompanyStage.CONTACTED
        assert classify_company("Passed") == CompanyStage.QUALIFIED

    def test_unknown_status_uses_default_rule(self):
        stage, rule = classify_with_rule("Something new", True, False)
        assert stage == CompanyStage.CONTACTED
        assert rule == "default"

    def test_rule_names(self):
        assert classify_with_rule("Portfolio", False, False)[1] == "override"
        assert classify_with_rule("To nurture", False, False)[1] == "hint"
        assert classify_with_rule("To Decline", False, True)[1] == "terminal"


class TestCumulativeCounts:
    def test_later_stages_count_for_earlier(self):
        counts = cumulative_counts(["met", "portfolio", "qualified"])
        assert counts["qualified"] == 3
        assert counts["contacted"] == 2
        assert counts["met"] == 2
        assert counts["dealflow"] == 1
        assert counts["portfolio"] == 1
        assert list(counts) == [str(s) for s in COMPANY_STAGE_ORDER]

    def test_unknown_stage_ignored(self):
        assert cumulative_counts(["bogus"])["qualified"] == 0
