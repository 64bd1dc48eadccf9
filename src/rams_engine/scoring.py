"""5x5 risk matrix scoring for construction risk assessments.

Scores are likelihood x severity, each on a 1..5 scale. Initial scores are
derived from a hazard's severity tier; residual scores assume the attached
controls reduce likelihood (by at most two steps) and severity by exactly one
step. Control effectiveness is not part of the residual formula.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from .models import SeverityTier

RiskLevel = Literal["low", "medium", "high", "very_high"]

MIN_SCORE = 1
MAX_SCORE = 5
MAX_LIKELIHOOD_REDUCTION = 2

LIKELIHOOD_LABELS: dict[int, str] = {
    1: "Very Unlikely",
    2: "Unlikely",
    3: "Possible",
    4: "Likely",
    5: "Very Likely",
}

SEVERITY_LABELS: dict[int, str] = {
    1: "Negligible",
    2: "Minor",
    3: "Moderate",
    4: "Major",
    5: "Catastrophic",
}

# Upper bound (inclusive) of each band, lowest first.
RISK_BANDS: tuple[tuple[int, RiskLevel], ...] = (
    (4, "low"),
    (9, "medium"),
    (16, "high"),
    (25, "very_high"),
)


class InvalidScoreError(ValueError):
    """Raised when a likelihood or severity falls outside 1..5."""


@dataclass(frozen=True)
class ScorePair:
    """Likelihood and severity on the 1..5 scale."""

    likelihood: int
    severity: int

    @property
    def score(self) -> int:
        return risk_score(self.likelihood, self.severity)

    @property
    def level(self) -> RiskLevel:
        return risk_level(self.score)


# severity tier -> (likelihood, severity)
_INITIAL_BY_TIER: dict[str, ScorePair] = {
    "critical": ScorePair(likelihood=3, severity=5),
    "high": ScorePair(likelihood=3, severity=4),
    "medium": ScorePair(likelihood=3, severity=3),
    "low": ScorePair(likelihood=2, severity=2),
}

CUSTOM_INITIAL = ScorePair(likelihood=3, severity=3)
CUSTOM_RESIDUAL = ScorePair(likelihood=2, severity=2)


def validate_score(value: object, field: str = "score") -> int:
    """Return ``value`` if it is an integer in 1..5, else raise InvalidScoreError."""

    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidScoreError(f"{field} must be an integer between {MIN_SCORE} and {MAX_SCORE}, got {value!r}")
    if value < MIN_SCORE or value > MAX_SCORE:
        raise InvalidScoreError(f"{field} must be between {MIN_SCORE} and {MAX_SCORE}, got {value}")
    return value


def risk_score(likelihood: int, severity: int) -> int:
    return validate_score(likelihood, "likelihood") * validate_score(severity, "severity")


def risk_level(score: int) -> RiskLevel:
    """Band a 1..25 score into low / medium / high / very_high."""

    if score < MIN_SCORE or score > MAX_SCORE * MAX_SCORE:
        raise ValueError(f"risk score must be between 1 and 25, got {score}")
    for upper, level in RISK_BANDS[:-1]:
        if score <= upper:
            return level
    return RISK_BANDS[-1][1]


def initial_scores_for_severity(tier: SeverityTier) -> ScorePair:
    try:
        return _INITIAL_BY_TIER[tier]
    except KeyError:
        raise ValueError(f"unknown severity tier {tier!r}") from None


def residual_scores(initial: ScorePair, control_count: int) -> ScorePair:
    """Residual risk after ``control_count`` attached controls; never below 1."""

    if control_count < 0:
        raise ValueError("control_count must be >= 0")
    reduction = min(control_count, MAX_LIKELIHOOD_REDUCTION)
    return ScorePair(
        likelihood=max(MIN_SCORE, initial.likelihood - reduction),
        severity=max(MIN_SCORE, initial.severity - 1),
    )


class RiskMatrix:
    """Label and colour helpers for rendering the 5x5 matrix."""

    colours: dict[str, str] = {
        "low": "#22c55e",
        "medium": "#eab308",
        "high": "#f97316",
        "very_high": "#ef4444",
    }

    @classmethod
    def describe(cls, pair: ScorePair) -> str:
        # e.g. "L3 (Possible) x S4 (Major) = 12 HIGH"
        return (
            f"L{pair.likelihood} ({LIKELIHOOD_LABELS[pair.likelihood]}) x "
            f"S{pair.severity} ({SEVERITY_LABELS[pair.severity]}) = "
            f"{pair.score} {pair.level.replace('_', ' ').upper()}"
        )

    @classmethod
    def colour(cls, score: int) -> str:
        return cls.colours[risk_level(score)]
