"""PostgreSQL table lock modes, weakest to strongest."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True, slots=True)
class LockMode:
    """One PostgreSQL table-level lock mode and what it blocks."""

    key: str
    name: str
    severity: int
    blocks_reads: bool
    blocks_writes: bool
    description: str
    common_operations: tuple[str, ...] = ()

    @property
    def blocking(self) -> bool:
        return self.blocks_reads or self.blocks_writes

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "level": self.severity,
            "blocksReads": self.blocks_reads,
            "blocksWrites": self.blocks_writes,
        }


class LockLevel(Enum):
    """The eight PostgreSQL table lock modes, ordered by severity 1-8."""

    ACCESS_SHARE = LockMode(
        "ACCESS_SHARE",
        "ACCESS SHARE",
        1,
        blocks_reads=False,
        blocks_writes=False,
        description="Lightest lock - only conflicts with ACCESS EXCLUSIVE",
        common_operations=("SELECT", "COPY TO"),
    )
    ROW_SHARE = LockMode(
        "ROW_SHARE",
        "ROW SHARE",
        2,
        blocks_reads=False,
        blocks_writes=False,
        description="Allows concurrent reads and writes, prevents exclusive table locks",
        common_operations=("SELECT FOR UPDATE", "SELECT FOR SHARE"),
    )
    ROW_EXCLUSIVE = LockMode(
        "ROW_EXCLUSIVE",
        "ROW EXCLUSIVE",
        3,
        blocks_reads=False,
        blocks_writes=False,
        description="Allows concurrent reads, prevents share and exclusive locks",
        common_operations=("INSERT", "UPDATE", "DELETE"),
    )
    SHARE_UPDATE_EXCLUSIVE = LockMode(
        "SHARE_UPDATE_EXCLUSIVE",
        "SHARE UPDATE EXCLUSIVE",
        4,
        blocks_reads=False,
        blocks_writes=True,
        description="Blocks other writes and DDL, allows reads",
        common_operations=("VACUUM", "ANALYZE", "CREATE INDEX CONCURRENTLY"),
    )
    SHARE = LockMode(
        "SHARE",
        "SHARE",
        5,
        blocks_reads=False,
        blocks_writes=True,
        description="Allows concurrent reads, blocks all writes",
        common_operations=("CREATE INDEX (non-concurrent)",),
    )
    SHARE_ROW_EXCLUSIVE = LockMode(
        "SHARE_ROW_EXCLUSIVE",
        "SHARE ROW EXCLUSIVE",
        6,
        blocks_reads=False,
        blocks_writes=True,
        description="More restrictive than SHARE, used by some DDL",
        common_operations=("CREATE TRIGGER", "ALTER TABLE (some operations)"),
    )
    EXCLUSIVE = LockMode(
        "EXCLUSIVE",
        "EXCLUSIVE",
        7,
        blocks_reads=False,
        blocks_writes=True,
        description="Blocks writes, allows reads, prevents concurrent schema changes",
        common_operations=("REFRESH MATERIALIZED VIEW CONCURRENTLY",),
    )
    ACCESS_EXCLUSIVE = LockMode(
        "ACCESS_EXCLUSIVE",
        "ACCESS EXCLUSIVE",
        8,
        blocks_reads=True,
        blocks_writes=True,
        description="Strongest lock - blocks everything",
        common_operations=("DROP TABLE", "TRUNCATE", "ALTER TABLE (rewrites)", "REINDEX"),
    )

    @property
    def mode(self) -> LockMode:
        return self.value

    @property
    def severity(self) -> int:
        return self.value.severity

    @property
    def blocks_reads(self) -> bool:
        return self.value.blocks_reads

    @property
    def blocks_writes(self) -> bool:
        return self.value.blocks_writes

    @property
    def blocking(self) -> bool:
        return self.value.blocking

    @property
    def label(self) -> str:
        return self.value.name

    @property
    def description(self) -> str:
        return self.value.description


def ordered_levels() -> list[LockLevel]:
    return sorted(LockLevel, key=lambda lvl: lvl.severity)
