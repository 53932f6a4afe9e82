"""Lock-impact classification for a single migration statement.

Classification is a pure function of the statement text and an optional
row-count hint, so results are cached by ``(sql, estimated_rows)``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from collections.abc import Mapping
from enum import Enum
from functools import lru_cache
from types import MappingProxyType
from typing import Any

from schemaproof.core.formatting import format_duration
from schemaproof.locks.levels import LockLevel


class OperationType(Enum):
    CREATE_TABLE = "CREATE_TABLE"
    DROP_TABLE = "DROP_TABLE"
    ADD_COLUMN = "ADD_COLUMN"
    DROP_COLUMN = "DROP_COLUMN"
    ALTER_COLUMN = "ALTER_COLUMN"
    ADD_CONSTRAINT = "ADD_CONSTRAINT"
    DROP_CONSTRAINT = "DROP_CONSTRAINT"
    ALTER_TABLE = "ALTER_TABLE"
    CREATE_INDEX_CONCURRENT = "CREATE_INDEX_CONCURRENT"
    CREATE_INDEX = "CREATE_INDEX"
    DROP_INDEX = "DROP_INDEX"
    REINDEX = "REINDEX"
    CREATE_OBJECT = "CREATE_OBJECT"
    DROP_OBJECT = "DROP_OBJECT"
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    UNKNOWN = "UNKNOWN"

    @property
    def label(self) -> str:
        """'ADD_COLUMN' -> 'add column'."""
        return self.value.replace("_", " ").lower()


class RiskLevel(Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def weight(self) -> int:
        return _RISK_WEIGHTS[self]


_RISK_WEIGHTS = {
    RiskLevel.CRITICAL: 100,
    RiskLevel.HIGH: 50,
    RiskLevel.MEDIUM: 25,
    RiskLevel.LOW: 5,
}

# (prefix, type) tried in order; ALTER TABLE and CONCURRENTLY are handled separately
_PREFIX_RULES: tuple[tuple[str, OperationType], ...] = (
    ("CREATE TABLE", OperationType.CREATE_TABLE),
    ("DROP TABLE", OperationType.DROP_TABLE),
)
_ALTER_TABLE_RULES: tuple[tuple[str, OperationType], ...] = (
    ("ADD COLUMN", OperationType.ADD_COLUMN),
    ("DROP COLUMN", OperationType.DROP_COLUMN),
    ("ALTER COLUMN", OperationType.ALTER_COLUMN),
    ("ADD CONSTRAINT", OperationType.ADD_CONSTRAINT),
    ("DROP CONSTRAINT", OperationType.DROP_CONSTRAINT),
)
_TRAILING_RULES: tuple[tuple[str, OperationType], ...] = (
    ("CREATE INDEX", OperationType.CREATE_INDEX),
    ("DROP INDEX", OperationType.DROP_INDEX),
    ("REINDEX", OperationType.REINDEX),
    ("CREATE", OperationType.CREATE_OBJECT),
    ("DROP", OperationType.DROP_OBJECT),
    ("INSERT", OperationType.INSERT),
    ("UPDATE", OperationType.UPDATE),
    ("DELETE", OperationType.DELETE),
)

_LOCK_MAP: dict[OperationType, LockLevel] = {
    OperationType.CREATE_TABLE: LockLevel.SHARE_UPDATE_EXCLUSIVE,
    OperationType.CREATE_INDEX_CONCURRENT: LockLevel.SHARE_UPDATE_EXCLUSIVE,
    OperationType.CREATE_INDEX: LockLevel.SHARE,
    OperationType.DROP_TABLE: LockLevel.ACCESS_EXCLUSIVE,
    OperationType.DROP_COLUMN: LockLevel.ACCESS_EXCLUSIVE,
    OperationType.ALTER_COLUMN: LockLevel.ACCESS_EXCLUSIVE,
    OperationType.REINDEX: LockLevel.ACCESS_EXCLUSIVE,
    OperationType.DROP_CONSTRAINT: LockLevel.SHARE_ROW_EXCLUSIVE,
    OperationType.DROP_INDEX: LockLevel.SHARE_ROW_EXCLUSIVE,
    OperationType.INSERT: LockLevel.ROW_EXCLUSIVE,
    OperationType.UPDATE: LockLevel.ROW_EXCLUSIVE,
    OperationType.DELETE: LockLevel.ROW_EXCLUSIVE,
}

_CRITICAL_TYPES = frozenset(
    {OperationType.DROP_TABLE, OperationType.REINDEX, OperationType.ALTER_COLUMN}
)

# Base estimates in milliseconds for an average-sized table
BASE_DURATION_MS: dict[OperationType, float] = {
    OperationType.CREATE_TABLE: 100,
    OperationType.DROP_TABLE: 50,
    OperationType.ADD_COLUMN: 500,
    OperationType.DROP_COLUMN: 10_000,
    OperationType.ALTER_COLUMN: 30_000,
    OperationType.CREATE_INDEX: 60_000,
    OperationType.CREATE_INDEX_CONCURRENT: 120_000,
    OperationType.DROP_INDEX: 1_000,
    OperationType.ADD_CONSTRAINT: 15_000,
    OperationType.DROP_CONSTRAINT: 500,
    OperationType.INSERT: 10,
    OperationType.UPDATE: 20,
    OperationType.DELETE: 15,
    OperationType.REINDEX: 180_000,
    OperationType.UNKNOWN: 30_000,
}
_FALLBACK_DURATION_MS = 30_000

# (row threshold, multiplier), largest first
_ROW_SCALING: tuple[tuple[int, float], ...] = (
    (1_000_000, 10),
    (100_000, 3),
    (10_000, 1.5),
)

_IDENT = r'"?([a-zA-Z_][a-zA-Z0-9_]*)"?'
_QUALIFIER = r"(?:IF\s+(?:NOT\s+)?EXISTS\s+)?(?:ONLY\s+)?"
_TABLE_PATTERNS = (
    re.compile(
        rf"\b(?:FROM|JOIN|UPDATE|INTO|TABLE)\s+{_QUALIFIER}(?:{_IDENT}\.)?{_IDENT}", re.IGNORECASE
    ),
    re.compile(rf"\bALTER\s+TABLE\s+{_QUALIFIER}(?:{_IDENT}\.)?{_IDENT}", re.IGNORECASE),
)
_NOT_TABLES = frozenset(
    {
        "SELECT",
        "FROM",
        "WHERE",
        "ORDER",
        "GROUP",
        "IF",
        "ONLY",
        "EXISTS",
        "NOT",
        "SET",
        "TABLE",
    }
)


def determine_operation_type(sql: str) -> OperationType:
    normalized = sql.strip().upper()
    for prefix, op in _PREFIX_RULES:
        if normalized.startswith(prefix):
            return op
    if normalized.startswith("ALTER TABLE"):
        for needle, op in _ALTER_TABLE_RULES:
            if needle in normalized:
                return op
        return OperationType.ALTER_TABLE
    if "CREATE INDEX CONCURRENTLY" in normalized:
        return OperationType.CREATE_INDEX_CONCURRENT
    for prefix, op in _TRAILING_RULES:
        if normalized.startswith(prefix):
            return op
    return OperationType.UNKNOWN


def extract_affected_tables(sql: str) -> tuple[str, ...]:
    """Lower-cased table names in first-seen order, schema prefixes dropped."""
    tables: dict[str, None] = {}
    for pattern in _TABLE_PATTERNS:
        for match in pattern.finditer(sql):
            name = match.group(2) or match.group(1)
            if name and name.upper() not in _NOT_TABLES:
                tables.setdefault(name.lower(), None)
    return tuple(tables)


def determine_lock_level(op: OperationType, sql: str) -> LockLevel:
    upper = sql.upper()
    if op is OperationType.ADD_COLUMN:
        # NOT NULL with DEFAULT rewrites the table
        if "NOT NULL" in upper and "DEFAULT" in upper:
            return LockLevel.ACCESS_EXCLUSIVE
        return LockLevel.SHARE_ROW_EXCLUSIVE
    if op is OperationType.ADD_CONSTRAINT:
        if "NOT VALID" in upper:
            return LockLevel.SHARE_ROW_EXCLUSIVE
        return LockLevel.ACCESS_EXCLUSIVE
    return _LOCK_MAP.get(op, LockLevel.ACCESS_EXCLUSIVE)


def determine_risk_level(op: OperationType, lock: LockLevel) -> RiskLevel:
    if op in _CRITICAL_TYPES:
        return RiskLevel.CRITICAL
    # Without a rewrite, ADD COLUMN only touches the catalog
    if op is OperationType.ADD_COLUMN and not lock.blocks_reads:
        return RiskLevel.MEDIUM
    if lock.blocks_reads or (lock.blocks_writes and lock.severity >= 5):
        return RiskLevel.HIGH
    if lock.blocks_writes:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def estimate_duration_ms(op: OperationType, estimated_rows: int | None = None) -> float:
    base = BASE_DURATION_MS.get(op, _FALLBACK_DURATION_MS)
    if estimated_rows:
        for threshold, factor in _ROW_SCALING:
            if estimated_rows > threshold:
                return base * factor
    return base


def impact_description(lock: LockLevel) -> str:
    if lock.blocks_reads and lock.blocks_writes:
        return "BLOCKS ALL ACCESS - application will be unavailable for affected tables"
    if lock.blocks_reads:
        return "BLOCKS READS - application cannot read from affected tables"
    if lock.blocks_writes:
        return "BLOCKS WRITES - application cannot modify affected tables"
    return "LOW IMPACT - minimal blocking of concurrent operations"


@dataclass(frozen=True, slots=True)
class MigrationOperation:
    """Classified lock impact of one migration statement."""

    sql: str
    operation_type: OperationType
    affected_tables: tuple[str, ...]
    lock_level: LockLevel
    risk_level: RiskLevel
    estimated_duration_ms: float
    metadata: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def blocking(self) -> bool:
        return self.lock_level.blocking

    def explain(self) -> dict[str, Any]:
        """Human-readable breakdown of this operation."""
        return {
            "operation": self.operation_type.label,
            "tables": ", ".join(self.affected_tables) or "unknown tables",
            "lockLevel": self.lock_level.label,
            "lockDescription": self.lock_level.description,
            "blocksReads": self.lock_level.blocks_reads,
            "blocksWrites": self.lock_level.blocks_writes,
            "estimatedDuration": format_duration(self.estimated_duration_ms),
            "riskLevel": self.risk_level.value,
            "impact": impact_description(self.lock_level),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "sql": self.sql,
            "operationType": self.operation_type.value,
            "affectedTables": list(self.affected_tables),
            "lockLevel": self.lock_level.mode.to_dict(),
            "riskLevel": self.risk_level.value,
            "estimatedDurationMs": self.estimated_duration_ms,
            "explanation": self.explain(),
        }


@lru_cache(maxsize=1024)
def _classify(sql: str, estimated_rows: int | None) -> MigrationOperation:
    op = determine_operation_type(sql)
    lock = determine_lock_level(op, sql)
    metadata = {"estimatedRows": estimated_rows} if estimated_rows is not None else {}
    return MigrationOperation(
        sql=sql,
        operation_type=op,
        affected_tables=extract_affected_tables(sql),
        lock_level=lock,
        risk_level=determine_risk_level(op, lock),
        estimated_duration_ms=estimate_duration_ms(op, estimated_rows),
        # Shared by every cache hit
        metadata=MappingProxyType(metadata),
    )


def classify_statement(sql: str, estimated_rows: int | None = None) -> MigrationOperation:
    """Classify operation type, tables, lock, risk and duration for ``sql``."""
    return _classify(sql, estimated_rows)
