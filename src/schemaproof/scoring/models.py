"""Score breakdown records.

Every category is always present in a breakdown, even with a zero total;
``ratio`` is the single place a zero denominator turns into 0.0.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

SCORE_PRECISION = 3


def ratio(numerator: float, denominator: float) -> float:
    """``numerator / denominator``, or 0.0 when the denominator is not positive."""
    if denominator <= 0:
        return 0.0
    return numerator / denominator


def rounded(value: float) -> float:
    return round(value, SCORE_PRECISION)


@dataclass(frozen=True, slots=True)
class CategoryScore:
    """Covered / total weight for one scoring category."""

    earned: float = 0.0
    total: float = 0.0
    active: bool = True

    @property
    def score(self) -> float:
        return ratio(self.earned, self.total)

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": rounded(self.score),
            "earnedWeight": rounded(self.earned),
            "totalWeight": rounded(self.total),
            "active": self.active,
        }


@dataclass(frozen=True, slots=True)
class RiskCategory:
    """Points and occurrences for one MRI category."""

    points: int = 0
    count: int = 0

    def to_dict(self, capped_total: int) -> dict[str, Any]:
        return {
            "score": rounded(ratio(min(self.points, 100), capped_total)),
            "points": self.points,
            "count": self.count,
        }


@dataclass(frozen=True, slots=True)
class ScoreResult:
    """A score with its per-category breakdown."""

    score: float
    categories: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)


class Verdict(Enum):
    ELEMENTARY = "ELEMENTARY"
    REQUIRES_INVESTIGATION = "REQUIRES INVESTIGATION"
    YOU_SHALL_NOT_PASS = "YOU SHALL NOT PASS"

    @classmethod
    def from_failures(cls, failures: int) -> Verdict:
        if failures == 0:
            return cls.ELEMENTARY
        if failures >= 2:
            return cls.YOU_SHALL_NOT_PASS
        return cls.REQUIRES_INVESTIGATION


@dataclass(frozen=True, slots=True)
class GateCheck:
    score: float
    threshold: float
    passed: bool

    def to_dict(self) -> dict[str, Any]:
        return {"score": self.score, "threshold": self.threshold, "pass": self.passed}


@dataclass(frozen=True, slots=True)
class Readiness:
    """Combined SCS / TCI / MRI gate."""

    scs: GateCheck
    tci: GateCheck
    mri: GateCheck

    @property
    def failures(self) -> list[str]:
        reasons = []
        if not self.scs.passed:
            reasons.append("incomplete artifacts")
        if not self.tci.passed:
            reasons.append("insufficient tests")
        if not self.mri.passed:
            reasons.append("high risk migrations")
        return reasons

    @property
    def ready(self) -> bool:
        return not self.failures

    @property
    def verdict(self) -> Verdict:
        return Verdict.from_failures(len(self.failures))

    def to_dict(self) -> dict[str, Any]:
        return {
            "ready": self.ready,
            "scs": self.scs.to_dict(),
            "tci": self.tci.to_dict(),
            "mri": self.mri.to_dict(),
            "verdict": self.verdict.value,
            "failures": self.failures,
        }
