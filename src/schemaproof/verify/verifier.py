"""Verifier - an independent second opinion on an evidence bundle.

Re-derives from the raw ledger and score summary, never from the
Investigator's report:

- Citations: every citation is checked against the object store and the
  working tree. Lookups run on daemon threads, once per (commit, file) pair,
  each bounded by ``lookup_timeout_sec``. A failed or hung lookup marks that
  pair's citations ``failed`` without holding up the others; verification
  always completes.
- Arithmetic: SCS is recomputed with substring-only weights and a stricter
  "SQL and tests" rule. Agreement within tolerance is a sanity signal.
- Consistency: heuristics for score combinations that contradict each other.
"""

from __future__ import annotations

import queue
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

import structlog

from schemaproof.config.models import DEFAULT_SUBSTRING_WEIGHTS, VerifierConfig
from schemaproof.core.formatting import format_percent, short_sha
from schemaproof.evidence.bundle import EvidenceBundle
from schemaproof.evidence.models import Citation
from schemaproof.scoring.models import ratio
from schemaproof.verify.object_store import ObjectStore

log = structlog.get_logger(__name__)

FALLBACK_WEIGHT = 5
_SQL_KINDS = ("sql",)
_TEST_KINDS = ("test", "tests")


class CitationOutcome(Enum):
    VERIFIED = "verified"
    FAILED = "failed"
    UNVERIFIED = "unverified"


@dataclass(frozen=True, slots=True)
class CitationResult:
    uid: str
    kind: str
    citation: Citation
    outcome: CitationOutcome
    reason: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "uid": self.uid,
            "kind": self.kind,
            "file": self.citation.file,
            "commit": self.citation.commit,
            "outcome": self.outcome.value,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class CitationSummary:
    results: tuple[CitationResult, ...]

    def count(self, outcome: CitationOutcome) -> int:
        return sum(1 for r in self.results if r.outcome is outcome)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def verified(self) -> int:
        return self.count(CitationOutcome.VERIFIED)

    @property
    def failed(self) -> int:
        return self.count(CitationOutcome.FAILED)

    @property
    def unverified(self) -> int:
        return self.count(CitationOutcome.UNVERIFIED)

    @property
    def rate(self) -> float:
        return ratio(self.verified, self.total)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "verified": self.verified,
            "failed": self.failed,
            "unverified": self.unverified,
            "rate": self.rate,
            "failures": [
                r.to_dict() for r in self.results if r.outcome is CitationOutcome.FAILED
            ],
        }


@dataclass(frozen=True, slots=True)
class MathCheck:
    claimed_scs: float
    recalculated_scs: float
    tolerance: float

    @property
    def difference(self) -> float:
        return self.claimed_scs - self.recalculated_scs

    @property
    def acceptable(self) -> bool:
        return abs(self.difference) < self.tolerance

    def to_dict(self) -> dict[str, Any]:
        return {
            "claimedScs": self.claimed_scs,
            "recalculatedScs": self.recalculated_scs,
            "difference": self.difference,
            "acceptable": self.acceptable,
        }


class Opinion(Enum):
    PASSED = "PASSED"
    CONCERNS = "CONCERNS NOTED"

    @property
    def message(self) -> str:
        if self is Opinion.PASSED:
            return "Evidence independently verified; conclusions concur."
        return "Discrepancies detected; further investigation recommended."


@dataclass(frozen=True)
class VerificationReport:
    examined_at: str
    commit: str | None
    citations: CitationSummary
    math: MathCheck
    inconsistencies: tuple[str, ...]
    opinion: Opinion
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "metadata": {"examinedAt": self.examined_at, "commit": self.commit, **self.metadata},
            "citations": self.citations.to_dict(),
            "math": self.math.to_dict(),
            "inconsistencies": list(self.inconsistencies),
            "opinion": {"verdict": self.opinion.value, "message": self.opinion.message},
        }


def substring_weight(uid: str) -> float:
    """Fixed built-in substring weights; deliberately ignores any user config."""
    lowered = uid.lower()
    for needle, weight in DEFAULT_SUBSTRING_WEIGHTS.items():
        if needle in lowered:
            return weight
    return FALLBACK_WEIGHT


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Verifier:
    """Independent verification of one evidence bundle."""

    def __init__(
        self,
        bundle: EvidenceBundle,
        store: ObjectStore,
        workspace: Path | str,
        config: VerifierConfig | None = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.bundle = bundle
        self.store = store
        self.workspace = Path(workspace)
        self.config = config or VerifierConfig()
        self._clock = clock

    # =========================================================================
    # Citations
    # =========================================================================

    def verify_citations(self) -> CitationSummary:
        """Classify every citation; ``total == verified + failed + unverified``."""
        citations = list(self.bundle.ledger.iter_citations())
        pairs = sorted(
            {(c.commit, c.file) for _, _, c in citations if c.commit == self.bundle.commit}
        )
        snapshots = self._fetch_snapshots(pairs)
        local_cache: dict[str, str | None] = {}

        results = []
        for uid, kind, citation in citations:
            outcome, reason = self._classify(citation, snapshots, local_cache)
            results.append(CitationResult(uid, kind, citation, outcome, reason))
        return CitationSummary(tuple(results))

    def _classify(
        self,
        citation: Citation,
        snapshots: dict[tuple[str, str], str | None],
        local_cache: dict[str, str | None],
    ) -> tuple[CitationOutcome, str]:
        if citation.commit != self.bundle.commit:
            return CitationOutcome.FAILED, "commit mismatch"
        historical = snapshots.get((citation.commit, citation.file))
        if historical is None:
            return CitationOutcome.FAILED, "lookup failed"
        if citation.file not in local_cache:
            local_cache[citation.file] = self._read_local(citation.file)
        local = local_cache[citation.file]
        if local is None:
            # Historical snapshot is trusted when the workspace lacks the file
            return CitationOutcome.UNVERIFIED, "not in workspace"
        if local == historical:
            return CitationOutcome.VERIFIED, ""
        return CitationOutcome.FAILED, "content differs"

    def _read_local(self, path: str) -> str | None:
        full = self.workspace / path
        if not full.is_file():
            return None
        try:
            return full.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            log.warning("verify.local_read_failed", path=path, error=str(e))
            return None

    def _fetch_snapshots(
        self, pairs: Iterable[tuple[str, str]]
    ) -> dict[tuple[str, str], str | None]:
        """One bounded lookup per (commit, file); ``None`` marks a failure.

        At most ``max_workers`` lookups are live at once, each on a daemon
        thread with its own deadline. An expired lookup is abandoned and frees
        its slot; whatever it returns later is ignored.
        """
        timeout = self.config.lookup_timeout_sec
        pending = list(pairs)
        snapshots: dict[tuple[str, str], str | None] = {}
        deadlines: dict[tuple[str, str], float] = {}
        done: queue.Queue[tuple[tuple[str, str], str | None]] = queue.Queue()

        while pending or deadlines:
            while pending and len(deadlines) < self.config.max_workers:
                pair = pending.pop(0)
                deadlines[pair] = time.monotonic() + timeout
                threading.Thread(
                    target=self._lookup,
                    args=(pair, done),
                    name=f"verify-lookup-{pair[1]}",
                    daemon=True,
                ).start()

            wait = max(0.0, min(deadlines.values()) - time.monotonic())
            try:
                pair, text = done.get(timeout=wait)
            except queue.Empty:
                now = time.monotonic()
                for pair, deadline in list(deadlines.items()):
                    if deadline <= now:
                        del deadlines[pair]
                        snapshots[pair] = None
                        log.warning(
                            "verify.lookup_failed", commit=pair[0], path=pair[1], error="timeout"
                        )
                continue
            if deadlines.pop(pair, None) is not None:
                snapshots[pair] = text
        return snapshots

    def _lookup(
        self,
        pair: tuple[str, str],
        done: queue.Queue[tuple[tuple[str, str], str | None]],
    ) -> None:
        commit, path = pair
        text: str | None
        try:
            text = self.store.get_file_at(commit, path)
        except Exception as e:  # any store failure degrades to 'failed'
            log.warning("verify.lookup_failed", commit=commit, path=path, error=str(e))
            text = None
        done.put((pair, text))

    # =========================================================================
    # Arithmetic and consistency
    # =========================================================================

    def recalculate_scs(self) -> float:
        ledger = self.bundle.ledger
        earned = total = 0.0
        for uid in ledger.uids():
            weight = substring_weight(uid)
            total += weight
            if ledger.has_artifact(uid, _SQL_KINDS) and ledger.has_any_artifact(uid, _TEST_KINDS):
                earned += weight
        return ratio(earned, total)

    def verify_math(self) -> MathCheck:
        return MathCheck(
            claimed_scs=self.bundle.score("scs"),
            recalculated_scs=self.recalculate_scs(),
            tolerance=self.config.scs_tolerance,
        )

    def check_inconsistencies(self) -> list[str]:
        scs = self.bundle.score("scs")
        tci = self.bundle.score("tci")
        mri = self.bundle.score("mri")
        issues = []
        if scs > 0.8 and tci < 0.5:
            issues.append("High schema coverage (SCS) but low test confidence (TCI)")
        if mri < 0.2 and scs < 0.5:
            issues.append("Low migration risk claimed but schema incomplete")
        ledger = self.bundle.ledger
        for uid in ledger.uids():
            lowered = uid.lower()
            if not any(needle in lowered for needle in self.config.sensitive_substrings):
                continue
            if not ledger.has_any_artifact(uid, _TEST_KINDS):
                issues.append(f"Sensitive field {uid} lacks test coverage")
        return issues

    # =========================================================================
    # Report
    # =========================================================================

    def verification(self) -> VerificationReport:
        citations = self.verify_citations()
        math = self.verify_math()
        inconsistencies = self.check_inconsistencies()
        passed = citations.rate >= self.config.min_verification_rate and not inconsistencies
        opinion = Opinion.PASSED if passed else Opinion.CONCERNS
        log.info(
            "verification.completed",
            commit=self.bundle.commit,
            total=citations.total,
            verified=citations.verified,
            failed=citations.failed,
            unverified=citations.unverified,
            opinion=opinion.value,
        )
        return VerificationReport(
            examined_at=self._clock().isoformat(),
            commit=self.bundle.commit,
            citations=citations,
            math=math,
            inconsistencies=tuple(inconsistencies),
            opinion=opinion,
        )

    def render(self, report: VerificationReport | None = None) -> str:
        return render_verification(report or self.verification())


def render_verification(report: VerificationReport) -> str:
    c = report.citations
    out = ["### 🩺 Independent Verification Report", ""]
    out.append(f"- Examined: {report.examined_at}")
    out.append(f"- Commit: {report.commit or 'unknown'} ({short_sha(report.commit)})")
    out.append("")

    out += ["## 🔬 Citation Verification", ""]
    out.append(f"- **Citations Examined**: {c.total}")
    out.append(f"- **Verified**: {c.verified} ✅")
    out.append(f"- **Failed**: {c.failed} ❌")
    out.append(f"- **Unable to Verify**: {c.unverified}")
    out.append("")
    out.append(f"**Verification Rate**: {format_percent(c.rate)}")
    out.append("")

    out += ["## 📊 Mathematical Verification", ""]
    out.append(f"Claimed SCS: {format_percent(report.math.claimed_scs)}")
    out.append(f"Recalculated SCS: {format_percent(report.math.recalculated_scs)}")
    verdict = "✅ Negligible" if report.math.acceptable else "⚠️ Significant"
    out.append(f"Difference: {verdict}")
    out.append("")

    out += ["## 🔍 Consistency Analysis", ""]
    if report.inconsistencies:
        out.extend(f"⚠️ {issue}" for issue in report.inconsistencies)
    else:
        out.append("✅ No logical inconsistencies detected")
    out.append("")

    out += ["## 🩺 Opinion", ""]
    if report.opinion is Opinion.PASSED:
        out.append("**VERIFICATION: PASSED** ✅")
    else:
        out.append("**VERIFICATION: CONCERNS NOTED** ⚠️")
    out.append("")
    out.append(report.opinion.message)
    return "\n".join(out)
