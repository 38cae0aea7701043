"""
Lead Scorer
-----------
score(answers) is a plain sum of independent weighted predicates. The weight
table and tier thresholds are data: leads scored by earlier releases must
land in the same tier, so values only change with a product decision.

    rule                     predicate                                   weight
    risk_window_continuous   risk_window in {"24/7", "Overnight"}            3
    night_lighting_dark      night_lighting in {"Pretty dark", "Very dark"}  2
    many_priority_areas      len(priority_areas) >= 3                        2
    timeline_asap            timeline == "ASAP"                              4
    timeline_soon            timeline in {"Within 2 weeks", "Within a month"} 2
    sole_decision_maker      decision_makers == "Me"                         2
    recent_incident          recent_incident == "Yes"                        3
    low_security_rating      1 <= security_rating <= 4                       2
    has_concerns_text        concerns is non-blank                           1

Tiers: score >= 12 Hot, score >= 8 Warm, otherwise Nurture.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Tuple

from leadform.form.models import ScoreResult

Answers = Mapping[str, Any]

HOT = "Hot"
WARM = "Warm"
NURTURE = "Nurture"

# Ordered, closed thresholds: first match wins
TIER_THRESHOLDS: List[Tuple[int, str]] = [(12, HOT), (8, WARM)]


def _text(answers: Answers, key: str) -> str:
    v = answers.get(key)
    if v is None:
        return ""
    return str(v).strip()


def _items(answers: Answers, key: str) -> List[str]:
    v = answers.get(key)
    if v is None:
        return []
    if isinstance(v, (list, tuple, set)):
        return [str(x).strip() for x in v if str(x).strip()]
    return [s.strip() for s in str(v).replace(";", ",").split(",") if s.strip()]


def _number(answers: Answers, key: str):
    try:
        return float(_text(answers, key))
    except ValueError:
        return None


def _in(key: str, values) -> Callable[[Answers], bool]:
    wanted = {v.lower() for v in values}
    return lambda a: _text(a, key).lower() in wanted


def _low_rating(a: Answers) -> bool:
    n = _number(a, "security_rating")
    return n is not None and 1 <= n <= 4


@dataclass(frozen=True)
class ScoringRule:
    name: str
    predicate: Callable[[Answers], bool]
    weight: int


SCORING_RULES: List[ScoringRule] = [
    ScoringRule("risk_window_continuous", _in("risk_window", ["24/7", "Overnight"]), 3),
    ScoringRule("night_lighting_dark", _in("night_lighting", ["Pretty dark", "Very dark"]), 2),
    ScoringRule("many_priority_areas", lambda a: len(_items(a, "priority_areas")) >= 3, 2),
    ScoringRule("timeline_asap", _in("timeline", ["ASAP"]), 4),
    ScoringRule("timeline_soon", _in("timeline", ["Within 2 weeks", "Within a month"]), 2),
    ScoringRule("sole_decision_maker", _in("decision_makers", ["Me"]), 2),
    ScoringRule("recent_incident", _in("recent_incident", ["Yes"]), 3),
    ScoringRule("low_security_rating", _low_rating, 2),
    ScoringRule("has_concerns_text", lambda a: bool(_text(a, "concerns")), 1),
]


@dataclass(frozen=True)
class NoteRule:
    name: str
    predicate: Callable[[Answers], bool]
    text: str


# Evaluation order is the output order
NOTE_RULES: List[NoteRule] = [
    NoteRule(
        "continuous_coverage",
        _in("risk_window", ["24/7", "Overnight"]),
        "Needs round-the-clock coverage; recommend continuous recording.",
    ),
    NoteRule(
        "low_light",
        _in("night_lighting", ["Pretty dark", "Very dark"]),
        "Low-light property; prioritize cameras with strong night vision.",
    ),
    NoteRule(
        "multi_zone",
        lambda a: len(_items(a, "priority_areas")) >= 3,
        "Several priority zones; quote a multi-camera package.",
    ),
    NoteRule(
        "fast_track",
        _in("timeline", ["ASAP"]),
        "Wants it ASAP; fast-track scheduling.",
    ),
    NoteRule(
        "other_decision_makers",
        lambda a: bool(_text(a, "decision_makers")) and _text(a, "decision_makers").lower() != "me",
        "Other decision makers involved; include them in the follow-up.",
    ),
    NoteRule(
        "recent_incident",
        _in("recent_incident", ["Yes"]),
        "Recent incident reported; lead with deterrence.",
    ),
    NoteRule(
        "unsure_areas",
        lambda a: any("not sure" in x.lower() for x in _items(a, "priority_areas")),
        "Unsure which areas to cover; offer a site walkthrough.",
    ),
]


def fired_rules(answers: Answers) -> List[ScoringRule]:
    return [r for r in SCORING_RULES if r.predicate(answers)]


def score(answers: Answers) -> int:
    return sum(r.weight for r in fired_rules(answers))


def tier(value: int) -> str:
    for threshold, label in TIER_THRESHOLDS:
        if value >= threshold:
            return label
    return NURTURE


def notes(answers: Answers) -> str:
    return " ".join(r.text for r in NOTE_RULES if r.predicate(answers))


def evaluate(answers: Answers) -> ScoreResult:
    s = score(answers)
    return ScoreResult(score=s, tier=tier(s), notes=notes(answers))


def breakdown(answers: Answers) -> Dict[str, int]:
    return {r.name: r.weight for r in fired_rules(answers)}
