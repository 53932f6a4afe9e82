"""Evidence bundle - ledger plus the scores exported for the same commit."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from schemaproof.core.errors import EvidenceError
from schemaproof.evidence.ledger import EvidenceLedger
from schemaproof.schema.models import Schema

SCORE_NAMES = ("scs", "tci", "mri")


def _number(value: Any) -> float:
    if isinstance(value, int | float) and not isinstance(value, bool):
        return float(value)
    return 0.0


@dataclass(frozen=True)
class EvidenceBundle:
    """What the generation pipeline hands to investigation and verification.

    ``scores`` is the payload of ``ScoringEngine.export_scores``. Missing or
    non-numeric scores read as 0.
    """

    commit: str | None
    timestamp: str
    ledger: EvidenceLedger
    scores: dict[str, Any] = field(default_factory=dict)
    schema: Schema | None = None

    def score(self, name: str) -> float:
        return _number((self.scores.get("scores") or {}).get(name))

    def score_summary(self) -> dict[str, float]:
        return {name: self.score(name) for name in SCORE_NAMES}

    @property
    def verdict(self) -> str:
        readiness = self.scores.get("readiness") or {}
        return str(readiness.get("verdict") or "UNKNOWN")

    @classmethod
    def from_dict(cls, data: Any) -> EvidenceBundle:
        """Parse ``{commit|sha, timestamp, evidence, scores, schema?}``."""
        if not isinstance(data, Mapping):
            raise EvidenceError.bad_bundle("bundle must be a mapping")
        if "evidence" not in data:
            raise EvidenceError.bad_bundle("bundle has no 'evidence' section")

        ledger = EvidenceLedger.from_dict(data["evidence"])
        commit = data.get("commit") or data.get("sha") or ledger.commit
        scores = data.get("scores") or {}
        if not isinstance(scores, Mapping):
            raise EvidenceError.bad_bundle("'scores' must be a mapping")
        raw_schema = data.get("schema")
        return cls(
            commit=commit,
            timestamp=str(data.get("timestamp") or ledger.timestamp),
            ledger=ledger,
            scores=dict(scores),
            schema=Schema.from_dict(raw_schema) if raw_schema is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "commit": self.commit,
            "timestamp": self.timestamp,
            "evidence": self.ledger.to_dict(),
            "scores": self.scores,
        }
