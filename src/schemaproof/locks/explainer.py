"""Migration explainer - classify a batch of statements and report on it.

Two output forms:
- ``to_dict``: structured, JSON-serializable
- ``render_markdown``: narrative report for review threads and CI logs

Rendering is deterministic for a given analysis; the only time-dependent
field is the analysis timestamp, which callers may inject via ``clock``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import Any

import structlog

from schemaproof.core.formatting import format_duration, plural
from schemaproof.locks.analysis import MigrationAnalysis, Priority
from schemaproof.locks.classifier import MigrationOperation, RiskLevel, classify_statement

log = structlog.get_logger(__name__)

SQL_PREVIEW_CHARS = 200

_RISK_BADGES = {
    RiskLevel.CRITICAL: "🔴 CRITICAL",
    RiskLevel.HIGH: "🟠 HIGH",
    RiskLevel.MEDIUM: "🟡 MEDIUM",
    RiskLevel.LOW: "🟢 LOW",
}


def risk_badge(level: RiskLevel) -> str:
    return _RISK_BADGES.get(level, "⚪ UNKNOWN")


def split_statements(sql: str) -> list[str]:
    """Split a migration script on ``;``, dropping blanks and ``--`` comment lines."""
    statements = []
    for chunk in sql.split(";"):
        lines = [ln for ln in chunk.splitlines() if not ln.strip().startswith("--")]
        stmt = "\n".join(lines).strip()
        if stmt:
            statements.append(stmt)
    return statements


def _utcnow() -> datetime:
    return datetime.now(UTC)


class MigrationExplainer:
    """Classifies migration statements and renders their lock impact."""

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock

    def analyze(
        self,
        statements: Iterable[str | MigrationOperation],
        metadata: dict[str, Any] | None = None,
    ) -> MigrationAnalysis:
        """Classify each statement and aggregate the batch.

        ``metadata["estimatedRows"]`` is passed to the classifier as a size hint.
        """
        metadata = dict(metadata or {})
        items = list(statements)
        log.info("migration.analysis_started", statements=len(items))

        rows = metadata.get("estimatedRows")
        operations = [
            item if isinstance(item, MigrationOperation) else classify_statement(item, rows)
            for item in items
        ]
        analysis = MigrationAnalysis.from_operations(
            operations,
            timestamp=self._clock().isoformat(),
            metadata=metadata,
        )

        log.info(
            "migration.analysis_completed",
            operations=analysis.total_operations,
            overall_risk=analysis.overall_risk.value,
            blocking=len(analysis.blocking_operations),
        )
        return analysis

    def quick_assessment(self, sql: str, estimated_rows: int | None = None) -> dict[str, Any]:
        op = classify_statement(sql, estimated_rows)
        explanation = op.explain()
        return {
            "riskLevel": op.risk_level.value,
            "lockLevel": op.lock_level.label,
            "estimatedDuration": explanation["estimatedDuration"],
            "impact": explanation["impact"],
            "blocksReads": op.lock_level.blocks_reads,
            "blocksWrites": op.lock_level.blocks_writes,
            "affectedTables": list(op.affected_tables),
        }

    # =========================================================================
    # Output
    # =========================================================================

    def to_dict(self, analysis: MigrationAnalysis) -> dict[str, Any]:
        return {
            "timestamp": analysis.timestamp,
            "summary": {
                "totalOperations": analysis.total_operations,
                "overallRiskScore": analysis.overall_risk.value,
                "estimatedDurationMs": analysis.estimated_duration_ms,
                "affectedTables": list(analysis.affected_tables),
                "riskDistribution": {
                    level.value: count
                    for level, count in analysis.risk_distribution.items()
                    if count
                },
                "blockingOperations": len(analysis.blocking_operations),
                "recommendations": [r.to_dict() for r in analysis.recommendations],
            },
            "operations": [op.to_dict() for op in analysis.operations],
        }

    def render_markdown(self, analysis: MigrationAnalysis) -> str:
        out: list[str] = []
        duration = format_duration(analysis.estimated_duration_ms)

        out.append("# Migration Impact Analysis\n")
        out.append(f"**Generated:** {analysis.timestamp}")
        out.append(f"**Overall Risk:** {risk_badge(analysis.overall_risk)}")
        out.append(f"**Estimated Duration:** {duration}")
        out.append(f"**Operations:** {analysis.total_operations}")
        out.append(f"**Affected Tables:** {', '.join(analysis.affected_tables) or 'None'}\n")

        out.append("## Risk Summary\n")
        out.append("| Risk Level | Count | Percentage |")
        out.append("|------------|-------|------------|")
        for level in RiskLevel:
            count = analysis.risk_distribution.get(level, 0)
            share = analysis.risk_share(level) * 100
            out.append(f"| {risk_badge(level)} | {count} | {share:.1f}% |")
        out.append("")

        blocking = analysis.blocking_operations
        if blocking:
            out.append("## ⚠️ Blocking Operations\n")
            out.append(f"**{plural(len(blocking), 'operation')} will block application access:**\n")
            for op in blocking:
                ex = op.explain()
                out.append(f"- **{ex['operation']}** on `{ex['tables']}`")
                out.append(f"  - Lock: {ex['lockLevel']}")
                out.append(f"  - Duration: {ex['estimatedDuration']}")
                out.append(f"  - Impact: {ex['impact']}\n")

        if analysis.recommendations:
            out.append("## 💡 Recommendations\n")
            for priority, heading in ((Priority.HIGH, "High"), (Priority.MEDIUM, "Medium")):
                recs = analysis.recommendations_for(priority)
                if not recs:
                    continue
                out.append(f"### {heading} Priority\n")
                out.extend(f"- **{r.type}:** {r.message}" for r in recs)
                out.append("")

        out.append("## Detailed Operation Analysis\n")
        for i, op in enumerate(analysis.operations, 1):
            out.extend(self._render_operation(i, op))

        out.append("## Summary\n")
        out.append(
            f"This migration contains **{plural(analysis.total_operations, 'operation')}** "
            f"affecting **{plural(len(analysis.affected_tables), 'table')}**."
        )
        out.append(f"The estimated total duration is **{duration}**.")
        if blocking:
            out.append(
                f"\n⚠️ **WARNING:** {plural(len(blocking), 'operation')} will block "
                "application access. Plan accordingly."
            )
        else:
            out.append("\n✅ **GOOD:** No operations will block application access.")
        return "\n".join(out)

    def _render_operation(self, index: int, op: MigrationOperation) -> list[str]:
        ex = op.explain()
        preview = op.sql
        if len(preview) > SQL_PREVIEW_CHARS:
            preview = preview[:SQL_PREVIEW_CHARS] + "..."
        return [
            f"### {index}. {ex['operation'].upper()}\n",
            f"**Risk Level:** {risk_badge(op.risk_level)}",
            f"**Affected Tables:** `{ex['tables']}`",
            f"**Lock Level:** {ex['lockLevel']}",
            f"**Estimated Duration:** {ex['estimatedDuration']}",
            f"**Impact:** {ex['impact']}\n",
            "**SQL:**",
            "```sql",
            preview,
            "```\n",
            "**Lock Details:**",
            f"- Blocks Reads: {'❌ Yes' if ex['blocksReads'] else '✅ No'}",
            f"- Blocks Writes: {'❌ Yes' if ex['blocksWrites'] else '✅ No'}",
            f"- Description: {ex['lockDescription']}\n",
            "---\n",
        ]
