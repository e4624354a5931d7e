"""Assessment completion/scoring and the persisted DD tracking state."""
from __future__ import annotations

import pytest

from vcdash.assessment import (
    AssessmentStore,
    apply_deal_state,
    completion_color,
    empty_assessment,
    field_score,
    kanban_column,
    overall_completion,
    overall_score,
    required_call_progress,
    score_color,
    score_summary,
    theme_completion,
    theme_score,
)
from vcdash.assessment_schema import (
    ASSESSMENT_THEMES,
    CHECK,
    RATING,
    SELECT,
    SELECT_SCORE_MAP,
    THEMES_BY_ID,
    FieldDef,
)


def _filled() -> dict:
    out = {}
    for theme in ASSESSMENT_THEMES:
        values = {}
        for f in theme.real_fields:
            if f.kind == CHECK:
                values[f.id] = True
            elif f.kind == RATING:
                values[f.id] = 8
            else:
                values[f.id] = f.options[0]
        out[theme.id] = values
    return out


class TestSchema:
    def test_sections_are_not_real_fields(self):
        for theme in ASSESSMENT_THEMES:
            assert all(f.kind != "section" for f in theme.real_fields)
            assert theme.real_fields

    def test_empty_assessment_defaults(self):
        empty = empty_assessment()
        founder = empty["founder"]
        assert founder["founderRolesConfirmed"] is False
        assert founder["founderGutScore"] is None
        assert founder["tenYears"] == ""
        assert "_s_founders" not in founder


class TestCompletion:
    def test_empty_is_zero(self):
        assert overall_completion(empty_assessment()) == 0
        assert overall_completion({}) == 0

    def test_full_is_hundred(self):
        data = _filled()
        assert overall_completion(data) == 100
        assert all(theme_completion(data[t.id], t.id) == 100 for t in ASSESSMENT_THEMES)

    def test_false_check_not_filled(self):
        theme = THEMES_BY_ID["founder"]
        data = {f.id: False for f in theme.real_fields if f.kind == CHECK}
        assert theme_completion(data, "founder") == 0

    def test_unknown_theme(self):
        assert theme_completion({"x": True}, "nope") == 0


class TestScoring:
    def test_field_scores(self):
        check = FieldDef("c", "c", CHECK)
        rating = FieldDef("r", "r", RATING)
        select = FieldDef("s", "s", SELECT, ("Strong", "Odd label"))
        assert field_score(check, True) == 10.0
        assert field_score(check, False) is None
        assert field_score(rating, 7) == 7.0
        assert field_score(rating, None) is None
        assert field_score(select, "Strong") == SELECT_SCORE_MAP["Strong"]
        assert field_score(select, "Odd label") is None
        assert field_score(select, "") is None

    def test_single_true_check_scores_ten(self):
        assert theme_score({"founderRolesConfirmed": True}, "founder") == 10.0

    def test_false_check_gives_no_score(self):
        assert theme_score({"founderRolesConfirmed": False}, "founder") is None

    def test_unmapped_select_excluded(self):
        # "< 1 hour" has no entry in the score map
        data = {"initialResponse": "< 1 hour", "founderGutScore": 6}
        assert theme_score(data, "founder") == 6.0
        assert theme_completion(data, "founder") > 0

    def test_mean_rounds_half_up(self):
        data = {"founderGutScore": 6, "camePrepared": "No", "founderRolesConfirmed": True}
        # (6 + 2 + 10) / 3 = 6.0
        assert theme_score(data, "founder") == 6.0
        data = {"founderGutScore": 5, "tenYears": "Unsure"}
        # (5 + 4) / 2 = 4.5
        assert theme_score(data, "founder") == 4.5

    def test_overall_skips_unscored_themes(self):
        data = empty_assessment()
        data["founder"]["founderGutScore"] = 9
        data["market"]["problemClarity"] = True
        assert overall_score(data) == 9.5
        assert overall_score(empty_assessment()) is None

    def test_summary_shape(self):
        summary = score_summary(_filled())
        assert summary["completion"] == 100
        assert set(summary["themes"]) == {t.id for t in ASSESSMENT_THEMES}
        assert summary["score"] is not None


class TestColors:
    def test_score_color(self):
        assert score_color(None) is None
        assert score_color(8) == "#10B981"
        assert score_color(5) == "#F59E0B"
        assert score_color(4.9) == "#EF4444"

    def test_completion_color(self):
        assert completion_color(0) is None
        assert completion_color(10) == "#3B82F6"
        assert completion_color(50) == "#F59E0B"
        assert completion_color(80) == "#10B981"


class TestBoard:
    def test_columns(self):
        assert kanban_column({"id": "a", "satus": "Met"}) == "met"
        assert kanban_column({"id": "a", "satus": "Committee"}) == "committee"
        assert kanban_column({"id": "a", "satus": "Met", "max_status5": "LOI"}) == "analysis"
        assert kanban_column({"id": "a", "satus": "Committee", "max_status5": "LOI"}) == "committee"

    def test_override_wins(self):
        assert kanban_column({"id": "a", "satus": "Met"}, {"a": "committee"}) == "committee"

    def test_required_call_progress(self):
        progress = required_call_progress(["rc_founder_intro", "rc_legal_review", "bogus"])
        assert progress["done"] == 2
        assert progress["total"] == 16
        assert required_call_progress(["rc_founder_intro"], "founder") == {"done": 1, "total": 4}


class TestAssessmentStore:
    def test_get_creates_empty(self, store):
        s = AssessmentStore(store)
        assert s.get("c1") == empty_assessment()
        assert s.all() == {}

    def test_set_field_persists(self, store):
        s = AssessmentStore(store)
        s.set_field("c1", "founder", "founderGutScore", 8)
        s.set_field("c1", "founder", "tenYears", "Absolutely")
        again = AssessmentStore(store).get("c1")
        assert again["founder"]["founderGutScore"] == 8
        assert again["founder"]["tenYears"] == "Absolutely"
        assert AssessmentStore(store).get("c2") == empty_assessment()

    @pytest.mark.parametrize("theme, field, value", [
        ("nope", "x", True),
        ("founder", "nope", True),
        ("founder", "_s_founders", True),
        ("founder", "founderRolesConfirmed", "yes"),
        ("founder", "founderGutScore", 11),
        ("founder", "founderGutScore", True),
        ("founder", "tenYears", "Maybe"),
    ])
    def test_set_field_rejects(self, store, theme, field, value):
        with pytest.raises(ValueError):
            AssessmentStore(store).set_field("c1", theme, field, value)

    def test_stored_unknown_keys_dropped(self, store):
        store.set_json("assessments", {"c1": {"founder": {"legacyField": 1, "founderGutScore": 3}}})
        got = AssessmentStore(store).get("c1")
        assert "legacyField" not in got["founder"]
        assert got["founder"]["founderGutScore"] == 3

    def test_required_calls(self, store):
        s = AssessmentStore(store)
        s.mark_call("c1", "rc_founder_intro")
        s.mark_call("c1", "rc_product_demo")
        assert s.mark_call("c1", "rc_founder_intro", done=False) == ["rc_product_demo"]
        assert s.completed_calls("c1") == ["rc_product_demo"]
        with pytest.raises(ValueError):
            s.mark_call("c1", "rc_unknown")

    def test_kanban_overrides(self, store):
        s = AssessmentStore(store)
        assert s.set_kanban_override("e1", "analysis") == {"e1": "analysis"}
        assert s.set_kanban_override("e1", None) == {}
        with pytest.raises(ValueError):
            s.set_kanban_override("e1", "portfolio")

    def test_meeting_ratings(self, store):
        s = AssessmentStore(store)
        s.set_meeting_rating("m1", 4)
        assert s.meeting_ratings() == {"m1": 4}
        s.set_meeting_rating("m1", None)
        assert s.meeting_ratings() == {}
        for bad in (0, 6, True):
            with pytest.raises(ValueError):
                s.set_meeting_rating("m1", bad)


class TestDealState:
    def test_overlay(self, store):
        s = AssessmentStore(store)
        s.set_deal_state("d1", in_scope=False)
        s.set_deal_state("d1", seen=True)
        rows = [{"id": "c1", "deal_id": "d1", "in_scope": True, "seen": False},
                {"id": "c2", "deal_id": None, "in_scope": True, "seen": False}]
        out = apply_deal_state(rows, s.deal_state())
        assert out[0]["in_scope"] is False
        assert out[0]["seen"] is True
        assert out[1] is rows[1]
        assert rows[0]["in_scope"] is True

    def test_empty_state_returns_rows(self):
        rows = [{"id": "c1"}]
        assert apply_deal_state(rows, {}) is rows
