"""Evidence ledger - where each schema element landed in generated artifacts.

The generation pipeline writes to the ledger (``record``, ``record_error``,
``record_warning``) during one run; scoring, investigation and verification
only read it. Entries are append-only: regenerating an artifact adds a
citation, it never replaces one.

The ledger does no locking. Concurrent generators must serialize their writes.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from datetime import UTC, datetime
from typing import Any

import structlog

from schemaproof.core.errors import EvidenceError
from schemaproof.evidence.models import UNCOMMITTED, Citation, Issue, Location

log = structlog.get_logger(__name__)

LEDGER_VERSION = "1.0.0"
DEFAULT_REQUIRED_KINDS = ("sql", "ts", "zod")


def _utcnow() -> datetime:
    return datetime.now(UTC)


class EvidenceLedger:
    """Append-only map of UID -> artifact kind -> citations, plus issues."""

    def __init__(
        self,
        commit: str | None = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._clock = clock
        self._evidence: dict[str, dict[str, list[Citation]]] = {}
        self._errors: dict[str, list[Issue]] = {}
        self._warnings: dict[str, list[Issue]] = {}
        self.commit = commit
        self.timestamp = self._now()
        self.version = LEDGER_VERSION

    def _now(self) -> str:
        return self._clock().isoformat()

    def set_commit(self, commit: str) -> None:
        self.commit = commit

    # =========================================================================
    # Write API (generation pipeline)
    # =========================================================================

    def record(self, uid: str, kind: str, location: Location | Mapping[str, Any]) -> Citation:
        """Append a citation for ``uid`` stamped with the ledger commit."""
        loc = Location.coerce(location)
        citation = Citation(
            file=loc.file,
            lines=loc.lines,
            commit=self.commit or UNCOMMITTED,
            timestamp=self._now(),
        )
        self._evidence.setdefault(uid, {}).setdefault(kind, []).append(citation)
        return citation

    def record_error(self, uid: str, error: Mapping[str, Any]) -> Issue:
        issue = self._issue(error, severity="error")
        self._errors.setdefault(uid, []).append(issue)
        return issue

    def record_warning(self, uid: str, warning: Mapping[str, Any]) -> Issue:
        issue = self._issue(warning, severity="warning")
        self._warnings.setdefault(uid, []).append(issue)
        return issue

    def _issue(self, data: Mapping[str, Any], *, severity: str) -> Issue:
        return Issue(
            message=str(data.get("message", "")),
            type=str(data.get("type") or "validation"),
            severity=str(data.get("severity") or severity),
            context=dict(data.get("context") or {}),
            timestamp=self._now(),
        )

    # =========================================================================
    # Read API
    # =========================================================================

    def uids(self) -> list[str]:
        return sorted(self._evidence)

    def get_evidence(self, uid: str) -> dict[str, list[Citation]]:
        """Kind -> citations for ``uid``; empty mapping when nothing was recorded."""
        return {kind: list(cites) for kind, cites in self._evidence.get(uid, {}).items()}

    def get_citations(self, uid: str, kind: str) -> list[str]:
        return [c.format() for c in self._evidence.get(uid, {}).get(kind, [])]

    def has_artifact(self, uid: str, kinds: str | Iterable[str]) -> bool:
        """True iff every one of ``kinds`` has at least one citation for ``uid``."""
        wanted = (kinds,) if isinstance(kinds, str) else tuple(kinds)
        element = self._evidence.get(uid, {})
        return all(element.get(kind) for kind in wanted)

    def has_any_artifact(self, uid: str, kinds: Iterable[str]) -> bool:
        """True if at least one of ``kinds`` is cited, for kind aliases like test/tests."""
        return any(self.has_artifact(uid, kind) for kind in kinds)

    def has_complete_artifacts(
        self, uid: str, required: Iterable[str] = DEFAULT_REQUIRED_KINDS
    ) -> bool:
        """``has_artifact`` over the generated kinds by default."""
        return self.has_artifact(uid, tuple(required))

    def kinds_present(self) -> set[str]:
        """Every artifact kind with at least one citation anywhere in the ledger."""
        return {kind for element in self._evidence.values() for kind, c in element.items() if c}

    def iter_citations(self) -> Iterator[tuple[str, str, Citation]]:
        """(uid, kind, citation) in sorted uid/kind order."""
        for uid in sorted(self._evidence):
            element = self._evidence[uid]
            for kind in sorted(element):
                for citation in element[kind]:
                    yield uid, kind, citation

    def citation_count(self) -> int:
        return sum(len(c) for element in self._evidence.values() for c in element.values())

    def get_errors(self, uid: str) -> list[Issue]:
        return list(self._errors.get(uid, []))

    def get_warnings(self, uid: str) -> list[Issue]:
        return list(self._warnings.get(uid, []))

    def has_errors(self) -> bool:
        return any(self._errors.values())

    def all_errors(self) -> list[dict[str, Any]]:
        return [
            {"uid": uid, **issue.to_dict()}
            for uid in sorted(self._errors)
            for issue in self._errors[uid]
        ]

    def all_warnings(self) -> list[dict[str, Any]]:
        return [
            {"uid": uid, **issue.to_dict()}
            for uid in sorted(self._warnings)
            for issue in self._warnings[uid]
        ]

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "commit": self.commit,
            "timestamp": self.timestamp,
            "evidence": {
                uid: {kind: [c.to_dict() for c in cites] for kind, cites in element.items()}
                for uid, element in self._evidence.items()
            },
            "errors": {
                uid: [i.to_dict() for i in issues] for uid, issues in self._errors.items()
            },
            "warnings": {
                uid: [i.to_dict() for i in issues] for uid, issues in self._warnings.items()
            },
        }

    @classmethod
    def from_dict(cls, data: Any) -> EvidenceLedger:
        """Restore a serialized ledger, including errors and warnings.

        Entries that are not shaped like ``{kind: [citation, ...]}`` are
        skipped as "no evidence" rather than rejected.
        """
        if not isinstance(data, Mapping):
            raise EvidenceError.malformed("ledger payload must be a mapping")

        ledger = cls(commit=data.get("commit") or data.get("sha"))
        ledger.version = str(data.get("version") or LEDGER_VERSION)
        if data.get("timestamp"):
            ledger.timestamp = str(data["timestamp"])

        evidence = data.get("evidence") or {}
        if not isinstance(evidence, Mapping):
            raise EvidenceError.malformed("'evidence' must be a mapping")
        for uid, element in evidence.items():
            if not isinstance(element, Mapping):
                log.debug("evidence.entry_skipped", uid=uid)
                continue
            for kind, cites in element.items():
                if not isinstance(cites, list):
                    log.debug("evidence.kind_skipped", uid=uid, kind=kind)
                    continue
                restored = [Citation.from_dict(c) for c in cites if isinstance(c, Mapping)]
                ledger._evidence.setdefault(uid, {})[kind] = restored

        for attr, key, severity in (
            ("_errors", "errors", "error"),
            ("_warnings", "warnings", "warning"),
        ):
            issues = data.get(key) or {}
            if not isinstance(issues, Mapping):
                continue
            target: dict[str, list[Issue]] = getattr(ledger, attr)
            for uid, entries in issues.items():
                if isinstance(entries, list):
                    target[uid] = [
                        Issue.from_dict(e, severity=severity)
                        for e in entries
                        if isinstance(e, Mapping)
                    ]
        return ledger
