"""Company funnel-stage classification.

Stage is derived per company from the manually maintained ``status_4``
label and from the auto-tracked first email / calendar interactions.  The
precedence lives in ``STAGE_RULES``, an ordered table evaluated top to
bottom; the first rule that knows the status wins.  Statuses no rule knows
fall through to the interaction cascade.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import StrEnum
from typing import Iterable, Mapping, Sequence


class CompanyStage(StrEnum):
    QUALIFIED = "qualified"
    CONTACTED = "contacted"
    MET = "met"
    DEALFLOW = "dealflow"
    ANALYSIS = "analysis"
    COMMITTEE = "committee"
    PORTFOLIO = "portfolio"


COMPANY_STAGE_ORDER: tuple[CompanyStage, ...] = tuple(CompanyStage)

TERMINAL_STATUSES = frozenset({
    "To Decline",
    "Passed",
    "Analysed but too early",
    "No US path for now",
    "Old/ Out of scope",
    "Old/Out of scope",
})


@dataclass(frozen=True)
class StageRule:
    """One precedence level.

    ``stages`` maps a status label to a fixed stage, or to None when the
    stage must come from the interaction signals instead.
    """
    name: str
    stages: Mapping[str, CompanyStage | None]

    def matches(self, status: str | None) -> bool:
        return status is not None and status in self.stages


STAGE_RULES: tuple[StageRule, ...] = (
    StageRule("override", {
        "Portfolio": CompanyStage.PORTFOLIO,
        "IC": CompanyStage.COMMITTEE,
        # both spellings are emitted upstream
        "Due Dilligence": CompanyStage.ANALYSIS,
        "Due Diligence": CompanyStage.ANALYSIS,
        "Dealflow": CompanyStage.DEALFLOW,
    }),
    StageRule("hint", {
        "Met": CompanyStage.MET,
        "To nurture": CompanyStage.MET,
        "Contacted / to meet": CompanyStage.CONTACTED,
        "Ghosting (Help)": CompanyStage.CONTACTED,
    }),
    StageRule("terminal", dict.fromkeys(TERMINAL_STATUSES)),
)


def interaction_stage(has_email: bool, has_calendar: bool) -> CompanyStage:
    """Furthest stage the interaction signals alone prove."""
    if has_calendar:
        return CompanyStage.MET
    if has_email:
        return CompanyStage.CONTACTED
    return CompanyStage.QUALIFIED


def classify_with_rule(
    status: str | None, has_email: bool, has_calendar: bool,
) -> tuple[CompanyStage, str]:
    """Return the stage and the name of the rule that produced it."""
    for rule in STAGE_RULES:
        if rule.matches(status):
            fixed = rule.stages[status]
            if fixed is not None:
                return fixed, rule.name
            return interaction_stage(has_email, has_calendar), rule.name
    return interaction_stage(has_email, has_calendar), "default"


def classify_company(status: str | None, first_email: object = None, first_calendar: object = None) -> CompanyStage:
    stage, _ = classify_with_rule(status, bool(first_email), bool(first_calendar))
    return stage


def cumulative_counts(stages: Iterable[str], order: Sequence[str] = COMPANY_STAGE_ORDER) -> dict[str, int]:
    """Count each stage plus everything that went further.

    A company at position N is included in every stage <= N.  Stages not
    in ``order`` are ignored.
    """
    order = [str(s) for s in order]
    raw = Counter(str(s) for s in stages)
    out: dict[str, int] = {}
    running = 0
    for stage in reversed(order):
        running += raw.get(stage, 0)
        out[stage] = running
    return {stage: out[stage] for stage in order}
