"""Investigator - explains an evidence bundle's scores element by element.

Reads a frozen ``EvidenceBundle`` and produces an ``InvestigationReport``:
run metadata, one row per schema element, three gates and the readiness
verdict carried by the bundle. ``render`` turns the report into markdown.

Output is a function of the bundle alone: the report is stamped with the
bundle timestamp, never the wall clock.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import structlog

from schemaproof.config.models import InvestigatorConfig, WeightConfig
from schemaproof.core.formatting import format_percent, progress_bar, short_sha
from schemaproof.evidence.bundle import EvidenceBundle
from schemaproof.evidence.models import Citation
from schemaproof.investigate.weights import WeightResolver, coerce_weight_config
from schemaproof.schema.models import Schema

log = structlog.get_logger(__name__)

SQL_KINDS = ("sql",)
TEST_KINDS = ("test", "tests")


class ElementStatus(Enum):
    COMPLETE = "complete"
    SQL_ONLY = "SQL only"
    TESTS_ONLY = "tests only"
    MISSING = "missing"

    @property
    def icon(self) -> str:
        if self is ElementStatus.COMPLETE:
            return "✅"
        if self is ElementStatus.MISSING:
            return "⛔"
        return "⚠️"


class GateStatus(Enum):
    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"

    @property
    def icon(self) -> str:
        return {"pass": "✅", "warn": "⚠️", "fail": "⛔"}[self.value]


_VERDICT_MESSAGES = {
    "ELEMENTARY": (
        "Ship immediately! The evidence is conclusive.",
        "✅ **ELEMENTARY** - Ship immediately!\n"
        '"The evidence is conclusive. No mysteries remain."',
    ),
    "REQUIRES INVESTIGATION": (
        "Further investigation required before shipping.",
        "⚠️ **REQUIRES FURTHER INVESTIGATION**\n"
        '"Some clues remain unclear. Address the noted issues."',
    ),
    "YOU SHALL NOT PASS": (
        "Do not ship. Critical evidence is missing.",
        '⛔ **YOU SHALL NOT PASS**\n"Critical evidence is missing! Return to your laboratory!"',
    ),
}


@dataclass(frozen=True, slots=True)
class ElementRow:
    uid: str
    weight: float
    weight_source: str
    status: ElementStatus
    citation: str
    deduction: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "element": self.uid,
            "weight": self.weight,
            "weightSource": self.weight_source,
            "status": self.status.value,
            "evidence": self.citation,
            "deduction": self.deduction,
        }


@dataclass(frozen=True, slots=True)
class Gate:
    name: str
    status: GateStatus
    evidence: str
    ruling: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "gate": self.name,
            "status": self.status.value,
            "evidence": self.evidence,
            "ruling": self.ruling,
        }


@dataclass(frozen=True, slots=True)
class VerdictSummary:
    code: str
    message: str
    markdown: str

    @classmethod
    def from_code(cls, code: str) -> VerdictSummary:
        # Unknown or missing verdicts are treated as blocking
        if code not in _VERDICT_MESSAGES:
            code = "YOU SHALL NOT PASS"
        message, markdown = _VERDICT_MESSAGES[code]
        return cls(code, message, markdown)

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


@dataclass(frozen=True)
class InvestigationReport:
    metadata: dict[str, Any]
    scores: dict[str, float]
    elements: tuple[ElementRow, ...]
    gates: tuple[Gate, ...]
    verdict: VerdictSummary
    sensitive: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "metadata": dict(self.metadata),
            "scores": dict(self.scores),
            "evidence": [row.to_dict() for row in self.elements],
            "gates": [gate.to_dict() for gate in self.gates],
            "verdict": self.verdict.to_dict(),
        }


def assess_risk(mri: float) -> str:
    if mri < 0.2:
        return "Trivial risk"
    if mri < 0.4:
        return "Acceptable risk"
    if mri < 0.6:
        return "Moderate risk"
    return "HIGH RISK!"


def assess_tests(tci: float) -> str:
    if tci > 0.8:
        return "Excellent coverage"
    if tci > 0.7:
        return "Adequate coverage"
    if tci > 0.5:
        return "Insufficient coverage"
    return "Theatrical tests!"


def element_status(evidence: Mapping[str, Sequence[Citation]]) -> ElementStatus:
    has_sql = any(evidence.get(kind) for kind in SQL_KINDS)
    has_tests = any(evidence.get(kind) for kind in TEST_KINDS)
    if has_sql and has_tests:
        return ElementStatus.COMPLETE
    if has_sql:
        return ElementStatus.SQL_ONLY
    if has_tests:
        return ElementStatus.TESTS_ONLY
    return ElementStatus.MISSING


def first_citation(evidence: Mapping[str, Sequence[Citation]]) -> str:
    for kind in sorted(evidence):
        if evidence[kind]:
            return evidence[kind][0].format()
    return "No evidence"


class Investigator:
    """Builds the investigation report for one evidence bundle.

    ``weights`` may be a ``WeightConfig`` or raw mapping; a malformed raw
    mapping is replaced by the defaults (logged as ``weights.config_invalid``).
    The schema, when given (or carried by the bundle), supplies directive tags
    for ``DirectiveRule`` and adds rows for fields with no evidence at all.
    """

    def __init__(
        self,
        bundle: EvidenceBundle,
        weights: WeightConfig | Mapping[str, Any] | None = None,
        schema: Schema | None = None,
        *,
        config: InvestigatorConfig | None = None,
        weight_source: str = "defaults",
    ) -> None:
        self.bundle = bundle
        self.schema = schema or bundle.schema
        self.config = config or InvestigatorConfig()
        self.weight_source = weight_source
        index = self.schema.directive_index() if self.schema is not None else {}
        self.resolver = WeightResolver(coerce_weight_config(weights), index)

    def _is_sensitive(self, uid: str) -> bool:
        lowered = uid.lower()
        return any(needle in lowered for needle in self.config.sensitive_substrings)

    def _element_uids(self) -> list[str]:
        uids = set(self.bundle.ledger.uids())
        if self.schema is not None:
            for table in self.schema.tables:
                uids.update(table.field_uid(f) for f in table.real_fields() if not f.skipped)
        return sorted(uids)

    def _deduce(self, uid: str, status: ElementStatus) -> str:
        if status is ElementStatus.COMPLETE:
            return "Elementary!"
        if status is not ElementStatus.MISSING:
            return "Incomplete"
        if self._is_sensitive(uid):
            return "CRITICAL OVERSIGHT!"
        return "Missing"

    def elements(self) -> list[ElementRow]:
        rows = []
        for uid in self._element_uids():
            evidence = self.bundle.ledger.get_evidence(uid)
            resolved = self.resolver.resolve(uid)
            status = element_status(evidence)
            rows.append(
                ElementRow(
                    uid=uid,
                    weight=resolved.value,
                    weight_source=resolved.source,
                    status=status,
                    citation=first_citation(evidence),
                    deduction=self._deduce(uid, status),
                )
            )
        return rows

    def sensitive_fields(self, rows: Sequence[ElementRow]) -> dict[str, Any]:
        """Sensitive-named elements that lack SQL or test evidence."""
        flagged = [r for r in rows if self._is_sensitive(r.uid)]
        exposed = [r.uid for r in flagged if r.status is not ElementStatus.COMPLETE]
        return {
            "count": len(flagged),
            "exposed": exposed,
            "safe": not exposed,
            "ruling": "All secured" if not exposed else f"{len(exposed)} EXPOSED!",
        }

    def gates(self, scores: Mapping[str, float], sensitive: Mapping[str, Any]) -> list[Gate]:
        mri, tci = scores["mri"], scores["tci"]
        return [
            Gate(
                "Migration Risk",
                GateStatus.PASS if mri < self.config.mri_gate else GateStatus.FAIL,
                f"MRI: {format_percent(mri)}",
                assess_risk(mri),
            ),
            Gate(
                "Test Coverage",
                GateStatus.PASS if tci > self.config.tci_gate else GateStatus.WARN,
                f"TCI: {format_percent(tci)}",
                assess_tests(tci),
            ),
            Gate(
                "Sensitive Fields",
                GateStatus.PASS if sensitive["safe"] else GateStatus.FAIL,
                f"{sensitive['count']} fields",
                sensitive["ruling"],
            ),
        ]

    def investigation(self) -> InvestigationReport:
        scores = self.bundle.score_summary()
        rows = self.elements()
        sensitive = self.sensitive_fields(rows)
        verdict = VerdictSummary.from_code(self.bundle.verdict)
        metadata = {
            "generatedAt": self.bundle.timestamp,
            "commit": self.bundle.commit,
            "weightedCompletion": scores["scs"],
            "citationCount": self.bundle.ledger.citation_count(),
            "verificationStatus": self.bundle.verdict,
            "tci": scores["tci"],
            "mri": scores["mri"],
            "weightSource": self.weight_source,
        }
        log.info(
            "investigation.completed",
            commit=self.bundle.commit,
            elements=len(rows),
            verdict=verdict.code,
        )
        return InvestigationReport(
            metadata=metadata,
            scores=scores,
            elements=tuple(rows),
            gates=tuple(self.gates(scores, sensitive)),
            verdict=verdict,
            sensitive=sensitive,
        )

    def render(self, report: InvestigationReport | None = None) -> str:
        return render_investigation(report or self.investigation())


def render_investigation(report: InvestigationReport) -> str:
    meta = report.metadata
    scores = report.scores
    sha = short_sha(meta["commit"])
    completion = meta["weightedCompletion"]

    out = ["### 🕵️ Evidence Investigation", ""]
    out.append(f"- Generated: {meta['generatedAt']}")
    out.append(f"- Commit: {meta['commit'] or 'unknown'}")
    out.append(f"- Weights: {meta['weightSource']}")
    out += ["", f"> ⚠️ Evidence valid only for commit `{sha}`", ""]

    out += ["## 🔍 Executive Deduction", ""]
    out.append(f"**Weighted Completion**: {progress_bar(completion)} {format_percent(completion)}")
    out.append(
        f"**Scores**: SCS {format_percent(scores['scs'])} · "
        f"TCI {format_percent(scores['tci'])} · MRI {format_percent(scores['mri'])}"
    )
    out.append(f"**Citations**: {meta['citationCount']} claims recorded")
    out.append(f"**Ship Verdict**: {meta['verificationStatus']}")
    out.append("")

    out += ["## 📊 The Weight of Evidence", ""]
    out.append("| Element | Weight | Source | Status | Evidence | Deduction |")
    out.append("|---------|--------|--------|--------|----------|-----------|")
    for row in report.elements:
        out.append(
            f"| {row.uid} | {row.weight:g} | {row.weight_source} | "
            f"{row.status.icon} {row.status.value} | {row.citation} | {row.deduction} |"
        )
    out.append("")

    out += ["## 🚪 Security & Performance Gates", ""]
    out.append("| Gate | Status | Evidence | Ruling |")
    out.append("|------|--------|----------|--------|")
    for gate in report.gates:
        out.append(f"| {gate.name} | {gate.status.icon} | {gate.evidence} | {gate.ruling} |")
    out.append("")

    out += ["## 📋 The Verdict", "", report.verdict.markdown, ""]
    out.append(f"[END OF INVESTIGATION FOR COMMIT {sha}]")
    return "\n".join(out)
