"""Cancer-risk questionnaire scoring.

The score is a fixed additive heuristic over the questionnaire answers. It
never raises: missing or malformed answers simply add nothing.
"""
import re
from typing import NamedTuple

SYMPTOMS = [
    "Persistent cough",
    "Unexplained weight loss",
    "Fatigue",
    "Changes in bowel habits",
    "Unusual bleeding",
    "Persistent pain",
    "Changes in skin moles",
    "Difficulty swallowing",
]

MEDICAL_CONDITIONS = [
    "Diabetes",
    "High blood pressure",
    "Heart disease",
    "Previous cancer",
    "Autoimmune disorders",
    "Chronic infections",
]

GENDERS = ("male", "female", "other")
SMOKING_POINTS = {"current": 3, "former": 2, "never": 0}
ALCOHOL_POINTS = {"heavy": 2, "moderate": 1, "light": 0, "none": 0}
ACTIVITY_POINTS = {"sedentary": 2, "light": 1, "moderate": 0, "active": 0}
DIET_POINTS = {"poor": 2, "average": 1, "good": 0, "excellent": 0}

# (minimum score, level, percentage), highest first
RISK_BANDS = [
    (12, "High", 75),
    (8, "Moderate", 45),
    (4, "Low-Moderate", 25),
    (0, "Low", 15),
]

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")

_ALIASES = {
    "familyHistory": "family_history",
    "smokingHistory": "smoking_history",
    "alcoholConsumption": "alcohol_consumption",
    "physicalActivity": "physical_activity",
    "medicalHistory": "medical_history",
}


class RiskResult(NamedTuple):
    risk_score: int
    risk_level: str
    risk_percentage: int


def normalize_answers(answers: dict) -> dict:
    """Return a copy keyed by snake_case names (camelCase keys are accepted)."""
    out = {}
    for key, value in (answers or {}).items():
        out[_ALIASES.get(key, key)] = value
    return out


def _parse_age(value):
    """Leading whole number of the answer, so 70.5 and "70 years" read as 70."""
    if isinstance(value, bool) or value is None:
        return None
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def _age_points(value) -> int:
    age = _parse_age(value)
    if age is None:
        return 0
    if age > 65:
        return 3
    if age > 50:
        return 2
    if age > 35:
        return 1
    return 0


def _choice_points(table: dict, value) -> int:
    if not isinstance(value, str):
        return 0
    return table.get(value.strip().lower(), 0)


def _count_known(selected, known) -> int:
    if isinstance(selected, str) or not isinstance(selected, (list, tuple, set, frozenset)):
        return 0
    return len({s for s in selected if isinstance(s, str) and s in known})


def _is_true(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "yes", "on", "1"}
    return value is True or value == 1


def level_for(score: int):
    for minimum, level, pct in RISK_BANDS:
        if score >= minimum:
            return level, pct
    return RISK_BANDS[-1][1], RISK_BANDS[-1][2]


def score(answers: dict) -> RiskResult:
    a = normalize_answers(answers)
    total = _age_points(a.get("age"))
    if _is_true(a.get("family_history")):
        total += 2
    total += _choice_points(SMOKING_POINTS, a.get("smoking_history"))
    total += _choice_points(ALCOHOL_POINTS, a.get("alcohol_consumption"))
    total += _choice_points(ACTIVITY_POINTS, a.get("physical_activity"))
    total += _choice_points(DIET_POINTS, a.get("diet"))
    total += _count_known(a.get("symptoms"), SYMPTOMS)
    total += _count_known(a.get("medical_history"), MEDICAL_CONDITIONS)
    level, pct = level_for(total)
    return RiskResult(total, level, pct)
