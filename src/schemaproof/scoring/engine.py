"""Scoring engine - SCS, MRI, TCI and the readiness gate.

Single Responsibility: turn (Schema, EvidenceLedger, migration steps) into
three normalized scores with breakdowns. Pure and re-runnable; the only
input besides its arguments is the injected clock used for export stamps.

- SCS: weighted share of fields whose artifacts were generated
- MRI: capped risk points of the planned migration steps, 0 = safe
- TCI: weighted share of constraints, policies, relations and steps with tests
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from datetime import UTC, datetime
from typing import Any

import structlog

from schemaproof.config.models import ScoringConfig, WeightConfig
from schemaproof.evidence.ledger import EvidenceLedger
from schemaproof.investigate.weights import WeightResolver
from schemaproof.schema.models import Field, MigrationStep, Schema, Table
from schemaproof.scoring.models import (
    CategoryScore,
    GateCheck,
    Readiness,
    RiskCategory,
    ScoreResult,
    ratio,
    rounded,
)

log = structlog.get_logger(__name__)

BUNDLE_VERSION = "2.0.0"
MRI_CAP = 100

# Type widenings that cannot lose data
SAFE_CASTS: dict[str, frozenset[str]] = {
    "Int": frozenset({"Float", "String"}),
    "Float": frozenset({"String"}),
    "Boolean": frozenset({"String"}),
    "ID": frozenset({"String"}),
}

MRI_CATEGORIES = (
    "drops",
    "renames_without_uid",
    "unsafe_type_changes",
    "not_null_without_default",
    "non_concurrent_indexes",
    "other",
)

# Field flag -> ledger UID suffix for constraint tests
_CONSTRAINT_SUFFIXES: tuple[tuple[Callable[[Field], bool], str], ...] = (
    (lambda f: f.primary_key, "pk"),
    (lambda f: f.is_foreign_key, "fk"),
    (lambda f: f.unique, "unique"),
    (lambda f: f.check is not None, "check"),
    (lambda f: f.has_default, "default"),
    (lambda f: f.indexed, "index"),
)


def is_safe_cast(from_type: str | None, to_type: str | None) -> bool:
    if not from_type or not to_type:
        return False
    if from_type == to_type:
        return True
    return to_type in SAFE_CASTS.get(from_type, frozenset())


def migration_step_uid(step: MigrationStep) -> str:
    """'mig:add_column:User.email' - ledger UID for tests that exercise a step."""
    target = f"{step.table}.{step.column}" if step.column else step.table
    return f"mig:{step.kind}:{target}"


def step_risk(step: MigrationStep) -> tuple[str, int]:
    """(MRI category, points) for one migration step."""
    kind = step.kind
    if kind == "drop_table":
        return "drops", 40
    if kind == "drop_column":
        return "drops", 25
    if kind in ("rename_table", "rename_column"):
        if step.uid_continuity:
            return "other", 0
        return "renames_without_uid", 15 if kind == "rename_table" else 10
    if kind == "alter_type":
        if is_safe_cast(step.from_type, step.to_type):
            return "other", 10
        return "unsafe_type_changes", 30
    if kind == "add_column":
        if step.field is not None and step.field.non_null and not step.field.has_default:
            return "not_null_without_default", 25
        return "other", 0
    if kind == "set_not_null":
        return "not_null_without_default", 25
    if kind == "create_index" and step.concurrent is False:
        return "non_concurrent_indexes", 10
    return "other", 0


def _blend(parts: dict[str, CategoryScore], weights: dict[str, float]) -> float:
    """Weighted mean of active categories, normalized by their weights."""
    active = {name: c for name, c in parts.items() if c.active and weights.get(name, 0) > 0}
    total_weight = sum(weights[name] for name in active)
    weighted = sum(weights[name] * c.score for name, c in active.items())
    return ratio(weighted, total_weight)


def _fixed_blend(parts: dict[str, CategoryScore], weights: dict[str, float]) -> float:
    """Weighted mean over every category; empty ones contribute 0."""
    total_weight = sum(weights.get(name, 0) for name in parts)
    weighted = sum(weights.get(name, 0) * c.score for name, c in parts.items())
    return ratio(weighted, total_weight)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ScoringEngine:
    """Computes SCS, MRI, TCI and readiness from a ledger snapshot."""

    def __init__(
        self,
        ledger: EvidenceLedger,
        config: ScoringConfig | None = None,
        weights: WeightConfig | None = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._ledger = ledger
        self._config = config or ScoringConfig()
        self._weights = weights
        self._clock = clock

    def _field_weights(self, schema: Schema) -> Callable[[Table, Field], float]:
        """Weights from the resolver when weight data is supplied, else directive defaults."""
        if self._weights is None:
            return lambda _table, f: f.weight()
        resolver = WeightResolver(self._weights, schema.directive_index())
        return lambda table, f: resolver.resolve(table.field_uid(f)).value

    # =========================================================================
    # Schema Coverage Score
    # =========================================================================

    def scs_details(self, schema: Schema) -> ScoreResult:
        """Coverage of every scored field across the artifact categories.

        A category counts only when the ledger holds at least one citation of
        its kinds; a pipeline that never emits validation schemas is not
        penalized for them. ``rollup`` is the weight share of fields that have
        every active category.
        """
        groups = self._config.artifact_groups
        weigh = self._field_weights(schema)
        present = self._ledger.kinds_present()
        active = {name for name, kinds in groups.items() if present.intersection(kinds)}

        earned = dict.fromkeys(groups, 0.0)
        totals = dict.fromkeys(groups, 0.0)
        rollup_earned = 0.0
        rollup_total = 0.0

        for table, f in self._scored_fields(schema):
            uid = table.field_uid(f)
            weight = weigh(table, f)
            rollup_total += weight
            complete = True
            for name, kinds in groups.items():
                if name not in active:
                    continue
                totals[name] += weight
                if self._ledger.has_any_artifact(uid, kinds):
                    earned[name] += weight
                else:
                    complete = False
            if complete and active:
                rollup_earned += weight
            log.debug("scs.field_scored", uid=uid, weight=weight, complete=complete)

        categories = {
            name: CategoryScore(earned[name], totals[name], active=name in active)
            for name in groups
        }
        rollup = CategoryScore(rollup_earned, rollup_total if active else 0.0)
        score = _blend(categories, self._config.category_weights)
        return ScoreResult(score=score, categories=categories, extra={"rollup": rollup})

    def calculate_scs(self, schema: Schema) -> float:
        return self.scs_details(schema).score

    def _scored_fields(self, schema: Schema) -> Iterable[tuple[Table, Field]]:
        for table in schema.tables:
            for f in table.real_fields():
                if not f.skipped:
                    yield table, f

    # =========================================================================
    # Migration Risk Index
    # =========================================================================

    def mri_details(self, steps: Sequence[MigrationStep]) -> ScoreResult:
        points = dict.fromkeys(MRI_CATEGORIES, 0)
        counts = dict.fromkeys(MRI_CATEGORIES, 0)
        for step in steps:
            category, value = step_risk(step)
            points[category] += value
            counts[category] += 1
            log.debug("mri.step_scored", kind=step.kind, table=step.table, points=value)

        total_points = sum(points.values())
        capped = min(MRI_CAP, total_points)
        categories = {
            name: RiskCategory(points[name], counts[name]) for name in MRI_CATEGORIES
        }
        return ScoreResult(
            score=capped / MRI_CAP,
            categories=categories,
            extra={"totalPoints": total_points},
        )

    def calculate_mri(self, steps: Sequence[MigrationStep]) -> float:
        return self.mri_details(steps).score

    # =========================================================================
    # Test Confidence Index
    # =========================================================================

    def tci_details(self, schema: Schema, steps: Sequence[MigrationStep] = ()) -> ScoreResult:
        """Test evidence over four surfaces.

        Fixed-weight blend; a sub-score with nothing to cover reports 0 and
        still counts, so untested surfaces cap the index below 1.
        """
        categories = {
            "unit_constraints": self._constraint_coverage(schema),
            "unit_rls": self._rls_coverage(schema),
            "integration_relations": self._relation_coverage(schema),
            "e2e_ops": self._step_coverage(steps),
        }
        score = _fixed_blend(categories, self._config.tci_weights)
        return ScoreResult(score=score, categories=categories)

    def calculate_tci(self, schema: Schema, steps: Sequence[MigrationStep] = ()) -> float:
        return self.tci_details(schema, steps).score

    def _tested(self, uid: str) -> bool:
        return self._ledger.has_any_artifact(uid, self._config.test_kinds)

    def _constraint_coverage(self, schema: Schema) -> CategoryScore:
        weigh = self._field_weights(schema)
        earned = total = 0.0
        for table in schema.tables:
            for f in table.real_fields():
                weight = weigh(table, f)
                uid = table.field_uid(f)
                for applies, suffix in _CONSTRAINT_SUFFIXES:
                    if not applies(f):
                        continue
                    total += weight
                    if self._tested(f"{uid}.{suffix}"):
                        earned += weight
        return CategoryScore(earned, total, active=total > 0)

    def _rls_coverage(self, schema: Schema) -> CategoryScore:
        tables = [t for t in schema.tables if t.rls]
        covered = sum(1 for t in tables if self._tested(f"{t.element_uid}.rls"))
        return CategoryScore(covered, len(tables), active=bool(tables))

    def _relation_coverage(self, schema: Schema) -> CategoryScore:
        uids = [
            table.field_uid(f)
            for table in schema.tables
            for f in table.real_fields()
            if f.is_foreign_key
        ]
        covered = sum(1 for uid in uids if self._tested(f"{uid}.fk"))
        return CategoryScore(covered, len(uids), active=bool(uids))

    def _step_coverage(self, steps: Sequence[MigrationStep]) -> CategoryScore:
        uids = sorted({migration_step_uid(s) for s in steps})
        covered = sum(1 for uid in uids if self._tested(uid))
        return CategoryScore(covered, len(uids), active=bool(uids))

    # =========================================================================
    # Readiness
    # =========================================================================

    def readiness(self, scs: float, mri: float, tci: float) -> Readiness:
        t = self._config.thresholds
        return Readiness(
            scs=GateCheck(scs, t.scs_min, scs >= t.scs_min),
            tci=GateCheck(tci, t.tci_min, tci >= t.tci_min),
            mri=GateCheck(mri, t.mri_max, mri <= t.mri_max),
        )

    # =========================================================================
    # Export
    # =========================================================================

    def export_scores(
        self, schema: Schema, steps: Sequence[MigrationStep] = ()
    ) -> dict[str, Any]:
        """Scores bundle consumed by the Investigator and the Verifier."""
        scs = self.scs_details(schema)
        mri = self.mri_details(steps)
        tci = self.tci_details(schema, steps)
        scores = {"scs": rounded(scs.score), "mri": rounded(mri.score), "tci": rounded(tci.score)}
        readiness = self.readiness(scores["scs"], scores["mri"], scores["tci"])

        capped = min(MRI_CAP, mri.extra["totalPoints"])
        result = {
            "version": BUNDLE_VERSION,
            "timestamp": self._clock().isoformat(),
            "commit": self._ledger.commit,
            "scores": scores,
            "breakdown": {
                "scs": {
                    **{name: c.to_dict() for name, c in scs.categories.items()},
                    "rollup": scs.extra["rollup"].to_dict(),
                },
                "mri": {
                    **{name: c.to_dict(capped) for name, c in mri.categories.items()},
                    "totalPoints": mri.extra["totalPoints"],
                },
                "tci": {
                    name: {
                        "score": rounded(c.score),
                        "covered": c.earned,
                        "total": c.total,
                    }
                    for name, c in tci.categories.items()
                },
            },
            "readiness": readiness.to_dict(),
            "metadata": {
                "tables": len(schema.tables),
                "fields": sum(1 for _ in self._scored_fields(schema)),
                "migrationSteps": len(steps),
                "citations": self._ledger.citation_count(),
            },
        }
        log.info(
            "scores.exported",
            commit=self._ledger.commit,
            verdict=readiness.verdict.value,
            **scores,
        )
        return result
