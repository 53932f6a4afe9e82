"""Migration-wide aggregation of classified operations."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from schemaproof.core.formatting import format_duration, plural
from schemaproof.locks.classifier import MigrationOperation, OperationType, RiskLevel

# Above this the migration should be split into batches
LONG_MIGRATION_MS = 300_000

_OVERALL_BANDS: tuple[tuple[int, RiskLevel], ...] = (
    (100, RiskLevel.CRITICAL),
    (50, RiskLevel.HIGH),
    (25, RiskLevel.MEDIUM),
)


class Priority(Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"


@dataclass(frozen=True, slots=True)
class Recommendation:
    type: str
    priority: Priority
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"type": self.type, "priority": self.priority.value, "message": self.message}


def overall_risk(operations: Iterable[MigrationOperation]) -> RiskLevel:
    """Band the weighted tier sum of all operations."""
    total = sum(op.risk_level.weight for op in operations)
    for floor, level in _OVERALL_BANDS:
        if total >= floor:
            return level
    return RiskLevel.LOW


def recommend(
    operations: tuple[MigrationOperation, ...],
    blocking: tuple[MigrationOperation, ...],
    total_duration_ms: float,
) -> list[Recommendation]:
    recs: list[Recommendation] = []
    if blocking:
        recs.append(
            Recommendation(
                "SCHEDULING",
                Priority.HIGH,
                f"{plural(len(blocking), 'operation')} will block application access. "
                "Schedule during maintenance window.",
            )
        )
    index_ops = sum(1 for op in operations if op.operation_type is OperationType.CREATE_INDEX)
    if index_ops:
        recs.append(
            Recommendation(
                "CONCURRENCY",
                Priority.MEDIUM,
                f"Consider using CREATE INDEX CONCURRENTLY for "
                f"{plural(index_ops, 'index operation')} to reduce blocking.",
            )
        )
    if any(op.operation_type is OperationType.ADD_CONSTRAINT for op in operations):
        recs.append(
            Recommendation(
                "VALIDATION",
                Priority.MEDIUM,
                "Consider adding constraints with NOT VALID, then validating separately "
                "to reduce lock time.",
            )
        )
    if total_duration_ms > LONG_MIGRATION_MS:
        recs.append(
            Recommendation(
                "DURATION",
                Priority.HIGH,
                f"Migration estimated to take {format_duration(total_duration_ms)}. "
                "Consider breaking into smaller batches.",
            )
        )
    return recs


@dataclass(frozen=True, slots=True)
class MigrationAnalysis:
    """Aggregate lock impact of a batch of migration statements."""

    operations: tuple[MigrationOperation, ...]
    risk_distribution: dict[RiskLevel, int]
    estimated_duration_ms: float
    affected_tables: tuple[str, ...]
    blocking_operations: tuple[MigrationOperation, ...]
    overall_risk: RiskLevel
    recommendations: tuple[Recommendation, ...]
    timestamp: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def total_operations(self) -> int:
        return len(self.operations)

    @classmethod
    def from_operations(
        cls,
        operations: Iterable[MigrationOperation],
        *,
        timestamp: str = "",
        metadata: dict[str, Any] | None = None,
    ) -> MigrationAnalysis:
        ops = tuple(operations)
        counts = Counter(op.risk_level for op in ops)
        tables: dict[str, None] = {}
        for op in ops:
            for table in op.affected_tables:
                tables.setdefault(table, None)
        blocking = tuple(op for op in ops if op.blocking)
        duration = sum(op.estimated_duration_ms for op in ops)
        return cls(
            operations=ops,
            risk_distribution={level: counts.get(level, 0) for level in RiskLevel},
            estimated_duration_ms=duration,
            affected_tables=tuple(tables),
            blocking_operations=blocking,
            overall_risk=overall_risk(ops),
            recommendations=tuple(recommend(ops, blocking, duration)),
            timestamp=timestamp,
            metadata=dict(metadata or {}),
        )

    def recommendations_for(self, priority: Priority) -> list[Recommendation]:
        return [r for r in self.recommendations if r.priority is priority]

    def risk_share(self, level: RiskLevel) -> float:
        if not self.operations:
            return 0.0
        return self.risk_distribution.get(level, 0) / len(self.operations)
