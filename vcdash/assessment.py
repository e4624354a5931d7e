"""Assessment completion and scoring, plus the DD tracking store.

Completion counts a field as filled when a check is True, a rating is set,
or a select is non-empty.  Scoring only averages fields that carry a score:
a False check, an empty select and a select label missing from
``SELECT_SCORE_MAP`` are left out rather than counted as zero, and a theme
with nothing scored has no score at all.
"""
from __future__ import annotations

import copy
import logging
from typing import Any, Iterable

from vcdash.assessment_schema import (
    ASSESSMENT_THEMES,
    CHECK,
    KANBAN_STAGE_IDS,
    RATING,
    REQUIRED_CALLS,
    SELECT,
    SELECT_SCORE_MAP,
    THEMES_BY_ID,
    FieldDef,
)
from vcdash.store import LocalStore
from vcdash.utils import round_half_up, round_int

log = logging.getLogger(__name__)

ASSESSMENTS_KEY = "assessments"
COMPLETED_CALLS_KEY = "completedCalls"
KANBAN_OVERRIDES_KEY = "kanbanOverrides"
MEETING_RATINGS_KEY = "meetingRatings"
DEAL_STATE_KEY = "dealState"

ANALYSIS_MAX_STATUSES = frozenset({"In depth analysis", "LOI", "Memo started"})

Assessment = dict[str, dict[str, Any]]


# ---------------------------------------------------------------------------
# Pure scoring
# ---------------------------------------------------------------------------


def default_value(field: FieldDef) -> Any:
    if field.kind == RATING:
        return None
    if field.kind == CHECK:
        return False
    return ""


def empty_assessment() -> Assessment:
    return {
        theme.id: {f.id: default_value(f) for f in theme.real_fields}
        for theme in ASSESSMENT_THEMES
    }


def is_filled(field: FieldDef, value: Any) -> bool:
    if field.kind == CHECK:
        return value is True
    if field.kind == RATING:
        return value is not None
    return value is not None and value != ""


def field_score(field: FieldDef, value: Any) -> float | None:
    """Contribution of one field, or None when it does not count."""
    if field.kind == RATING:
        if value is None or isinstance(value, bool):
            return None
        return float(value)
    if field.kind == CHECK:
        return 10.0 if value is True else None
    if field.kind == SELECT and value:
        score = SELECT_SCORE_MAP.get(value)
        return float(score) if score is not None else None
    return None


def theme_completion(theme_data: dict[str, Any] | None, theme_id: str) -> int:
    theme = THEMES_BY_ID.get(theme_id)
    if theme is None or not theme_data:
        return 0
    real = theme.real_fields
    if not real:
        return 0
    filled = sum(1 for f in real if is_filled(f, theme_data.get(f.id)))
    return round_int(100 * filled / len(real))


def overall_completion(assessment: Assessment | None) -> int:
    """Unweighted mean of the per-theme completions."""
    if not assessment:
        return 0
    values = [theme_completion(assessment.get(t.id), t.id) for t in ASSESSMENT_THEMES]
    return round_int(sum(values) / len(values))


def theme_score(theme_data: dict[str, Any] | None, theme_id: str) -> float | None:
    theme = THEMES_BY_ID.get(theme_id)
    if theme is None or not theme_data:
        return None
    scores = [
        s for s in (field_score(f, theme_data.get(f.id)) for f in theme.real_fields)
        if s is not None
    ]
    if not scores:
        return None
    return round_half_up(sum(scores) / len(scores), 1)


def overall_score(assessment: Assessment | None) -> float | None:
    """Mean of the theme scores that exist; unscored themes are skipped."""
    if not assessment:
        return None
    scores = [
        s for s in (theme_score(assessment.get(t.id), t.id) for t in ASSESSMENT_THEMES)
        if s is not None
    ]
    if not scores:
        return None
    return round_half_up(sum(scores) / len(scores), 1)


def score_summary(assessment: Assessment) -> dict[str, Any]:
    return {
        "completion": overall_completion(assessment),
        "score": overall_score(assessment),
        "themes": {
            t.id: {
                "completion": theme_completion(assessment.get(t.id), t.id),
                "score": theme_score(assessment.get(t.id), t.id),
            }
            for t in ASSESSMENT_THEMES
        },
    }


def score_color(score: float | None) -> str | None:
    if score is None:
        return None
    if score >= 7.5:
        return "#10B981"
    if score >= 5:
        return "#F59E0B"
    return "#EF4444"


def completion_color(pct: int) -> str | None:
    if pct >= 80:
        return "#10B981"
    if pct >= 50:
        return "#F59E0B"
    if pct > 0:
        return "#3B82F6"
    return None


def kanban_column(deal: dict[str, Any], overrides: dict[str, str] | None = None) -> str:
    """Board column for a deal-flow entry; a manual override always wins."""
    if overrides and deal.get("id") in overrides:
        return overrides[deal["id"]]
    satus = deal.get("satus")
    if deal.get("max_status5") in ANALYSIS_MAX_STATUSES and satus not in ("Committee", "Won / Portfolio"):
        return "analysis"
    if satus == "Committee":
        return "committee"
    return "met"


def required_call_progress(completed: Iterable[str], theme_id: str | None = None) -> dict[str, int]:
    calls = [c for c in REQUIRED_CALLS if theme_id is None or c.theme == theme_id]
    done_ids = set(completed)
    return {"done": sum(1 for c in calls if c.id in done_ids), "total": len(calls)}


def required_call_summary(completed: Iterable[str]) -> dict[str, Any]:
    completed = list(completed)
    themes = dict.fromkeys(c.theme for c in REQUIRED_CALLS)
    return {
        "overall": required_call_progress(completed),
        "by_theme": {theme: required_call_progress(completed, theme) for theme in themes},
    }


def validate_value(field: FieldDef, value: Any) -> Any:
    if field.kind == CHECK:
        if not isinstance(value, bool):
            raise ValueError(f"{field.id}: expected true/false")
        return value
    if field.kind == RATING:
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 10:
            raise ValueError(f"{field.id}: rating must be an integer 1-10 or null")
        return value
    if field.kind == SELECT:
        if value == "" or value in field.options:
            return value
        raise ValueError(f"{field.id}: {value!r} is not one of {list(field.options)}")
    raise ValueError(f"{field.id}: section headers hold no value")


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class AssessmentStore:
    """Per-company assessments and DD tracking state in the local store.

    An assessment is created empty on first view and only persisted on the
    first write; stored assessments are never deleted, only overwritten.
    """

    def __init__(self, store: LocalStore):
        self.store = store

    # -- assessments --------------------------------------------------------

    def all(self) -> dict[str, Assessment]:
        return self.store.get_json(ASSESSMENTS_KEY, {}) or {}

    def get(self, company_id: str) -> Assessment:
        merged = empty_assessment()
        stored = self.all().get(company_id) or {}
        for theme_id, values in stored.items():
            if theme_id in merged and isinstance(values, dict):
                merged[theme_id].update({k: v for k, v in values.items() if k in merged[theme_id]})
        return merged

    def set_field(self, company_id: str, theme_id: str, field_id: str, value: Any) -> Assessment:
        theme = THEMES_BY_ID.get(theme_id)
        if theme is None:
            raise ValueError(f"Unknown theme: {theme_id}")
        field = theme.field(field_id)
        if field is None or not field.is_real:
            raise ValueError(f"Unknown field {field_id!r} in theme {theme_id!r}")
        value = validate_value(field, value)

        data = self.all()
        assessment = self.get(company_id)
        assessment[theme_id][field_id] = value
        data[company_id] = assessment
        self.store.set_json(ASSESSMENTS_KEY, data)
        log.debug("Assessment %s.%s.%s = %r", company_id, theme_id, field_id, value)
        return copy.deepcopy(assessment)

    # -- required calls -----------------------------------------------------

    def completed_calls(self, company_id: str) -> list[str]:
        return list((self.store.get_json(COMPLETED_CALLS_KEY, {}) or {}).get(company_id, []))

    def mark_call(self, company_id: str, call_id: str, done: bool = True) -> list[str]:
        if call_id not in {c.id for c in REQUIRED_CALLS}:
            raise ValueError(f"Unknown required call: {call_id}")
        data = self.store.get_json(COMPLETED_CALLS_KEY, {}) or {}
        calls = [c for c in data.get(company_id, []) if c != call_id]
        if done:
            calls.append(call_id)
        data[company_id] = calls
        self.store.set_json(COMPLETED_CALLS_KEY, data)
        return calls

    # -- board overrides ----------------------------------------------------

    def kanban_overrides(self) -> dict[str, str]:
        return self.store.get_json(KANBAN_OVERRIDES_KEY, {}) or {}

    def set_kanban_override(self, deal_id: str, column: str | None) -> dict[str, str]:
        overrides = self.kanban_overrides()
        if column is None:
            overrides.pop(deal_id, None)
        elif column not in KANBAN_STAGE_IDS:
            raise ValueError(f"Unknown board column: {column}")
        else:
            overrides[deal_id] = column
        self.store.set_json(KANBAN_OVERRIDES_KEY, overrides)
        return overrides

    # -- meeting ratings ----------------------------------------------------

    def meeting_ratings(self) -> dict[str, int]:
        return self.store.get_json(MEETING_RATINGS_KEY, {}) or {}

    def set_meeting_rating(self, meeting_id: str, stars: int | None) -> dict[str, int]:
        ratings = self.meeting_ratings()
        if stars is None:
            ratings.pop(meeting_id, None)
        elif isinstance(stars, bool) or not isinstance(stars, int) or not 1 <= stars <= 5:
            raise ValueError("Meeting rating must be 1-5 stars")
        else:
            ratings[meeting_id] = stars
        self.store.set_json(MEETING_RATINGS_KEY, ratings)
        return ratings

    # -- deal state ---------------------------------------------------------

    def deal_state(self) -> dict[str, dict[str, bool]]:
        return self.store.get_json(DEAL_STATE_KEY, {}) or {}

    def set_deal_state(self, deal_id: str, *, in_scope: bool | None = None,
                       seen: bool | None = None) -> dict[str, bool]:
        state = self.deal_state()
        entry = dict(state.get(deal_id, {}))
        if in_scope is not None:
            entry["inScope"] = in_scope
        if seen is not None:
            entry["seen"] = seen
        state[deal_id] = entry
        self.store.set_json(DEAL_STATE_KEY, state)
        return entry


def apply_deal_state(rows: list[dict[str, Any]], state: dict[str, dict[str, bool]]) -> list[dict[str, Any]]:
    """Overlay locally stored in-scope / seen flags on coverage rows."""
    if not state:
        return rows
    out = []
    for row in rows:
        override = state.get(row.get("deal_id") or row.get("id"))
        if not override:
            out.append(row)
            continue
        row = dict(row)
        if "inScope" in override:
            row["in_scope"] = override["inScope"]
        if "seen" in override:
            row["seen"] = override["seen"]
        out.append(row)
    return out
