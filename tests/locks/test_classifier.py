"""Tests for single-statement lock classification."""

import pytest

from schemaproof.locks.classifier import (
    MigrationOperation,
    OperationType,
    RiskLevel,
    classify_statement,
    determine_lock_level,
    determine_operation_type,
    determine_risk_level,
    estimate_duration_ms,
    extract_affected_tables,
)
from schemaproof.locks.levels import LockLevel, ordered_levels


class TestLockLevels:
    """The eight lock modes."""

    def test_severities_are_one_to_eight(self) -> None:
        assert [lvl.severity for lvl in ordered_levels()] == list(range(1, 9))

    def test_only_access_exclusive_blocks_reads(self) -> None:
        assert [lvl for lvl in LockLevel if lvl.blocks_reads] == [LockLevel.ACCESS_EXCLUSIVE]

    def test_writes_blocked_from_share_update_exclusive_up(self) -> None:
        for lvl in LockLevel:
            assert lvl.blocks_writes == (lvl.severity >= 4)

    def test_mode_to_dict(self) -> None:
        assert LockLevel.SHARE.mode.to_dict() == {
            "name": "SHARE",
            "level": 5,
            "blocksReads": False,
            "blocksWrites": True,
        }


class TestOperationType:
    """Priority-ordered operation detection."""

    @pytest.mark.parametrize(
        ("sql", "expected"),
        [
            ("create table users (id int)", OperationType.CREATE_TABLE),
            ("  DROP TABLE users", OperationType.DROP_TABLE),
            ("ALTER TABLE users ADD COLUMN age int", OperationType.ADD_COLUMN),
            ("ALTER TABLE users DROP COLUMN age", OperationType.DROP_COLUMN),
            ("ALTER TABLE users ALTER COLUMN age TYPE bigint", OperationType.ALTER_COLUMN),
            ("ALTER TABLE users ADD CONSTRAINT c CHECK (age > 0)", OperationType.ADD_CONSTRAINT),
            ("ALTER TABLE users DROP CONSTRAINT c", OperationType.DROP_CONSTRAINT),
            ("ALTER TABLE users RENAME TO people", OperationType.ALTER_TABLE),
            ("CREATE INDEX CONCURRENTLY idx ON users(age)", OperationType.CREATE_INDEX_CONCURRENT),
            ("CREATE INDEX idx ON users(age)", OperationType.CREATE_INDEX),
            ("DROP INDEX idx", OperationType.DROP_INDEX),
            ("REINDEX TABLE users", OperationType.REINDEX),
            ("CREATE VIEW v AS SELECT 1", OperationType.CREATE_OBJECT),
            ("DROP VIEW v", OperationType.DROP_OBJECT),
            ("INSERT INTO users VALUES (1)", OperationType.INSERT),
            ("UPDATE users SET age = 1", OperationType.UPDATE),
            ("DELETE FROM users", OperationType.DELETE),
            ("VACUUM users", OperationType.UNKNOWN),
        ],
    )
    def test_detects_operation(self, sql: str, expected: OperationType) -> None:
        assert determine_operation_type(sql) is expected

    def test_label(self) -> None:
        assert OperationType.CREATE_INDEX_CONCURRENT.label == "create index concurrent"


class TestAffectedTables:
    @pytest.mark.parametrize(
        ("sql", "expected"),
        [
            ("ALTER TABLE x ADD COLUMN y text", ("x",)),
            ("ALTER TABLE public.Users ADD COLUMN y text", ("users",)),
            ('INSERT INTO "Orders" VALUES (1)', ("orders",)),
            (
                "UPDATE users SET a = 1 WHERE id IN (SELECT id FROM accounts JOIN users ON 1=1)",
                ("users", "accounts"),
            ),
            ("CREATE INDEX CONCURRENTLY idx_x ON t(x)", ()),
            ("CREATE TABLE IF NOT EXISTS users (id int)", ("users",)),
            ("DROP TABLE IF EXISTS public.sessions", ("sessions",)),
            ("ALTER TABLE ONLY accounts ADD CONSTRAINT ck CHECK (a > 0)", ("accounts",)),
            ("ALTER TABLE IF EXISTS ONLY ledger DROP COLUMN memo", ("ledger",)),
        ],
    )
    def test_extracts_lowercased_unique_names(self, sql: str, expected: tuple[str, ...]) -> None:
        assert extract_affected_tables(sql) == expected


class TestLockAndRisk:
    """Lock mapping with context rules and risk tiers."""

    @pytest.mark.parametrize(
        ("sql", "expected"),
        [
            ("ALTER TABLE t ADD COLUMN c int", LockLevel.SHARE_ROW_EXCLUSIVE),
            ("ALTER TABLE t ADD COLUMN c int NOT NULL", LockLevel.SHARE_ROW_EXCLUSIVE),
            ("ALTER TABLE t ADD COLUMN c int NOT NULL DEFAULT 0", LockLevel.ACCESS_EXCLUSIVE),
            (
                "ALTER TABLE t ADD CONSTRAINT fk FOREIGN KEY (a) REFERENCES b NOT VALID",
                LockLevel.SHARE_ROW_EXCLUSIVE,
            ),
            ("ALTER TABLE t ADD CONSTRAINT ck CHECK (a > 0)", LockLevel.ACCESS_EXCLUSIVE),
            ("VACUUM t", LockLevel.ACCESS_EXCLUSIVE),
            ("ALTER TABLE t RENAME TO u", LockLevel.ACCESS_EXCLUSIVE),
        ],
    )
    def test_context_sensitive_lock(self, sql: str, expected: LockLevel) -> None:
        assert determine_lock_level(determine_operation_type(sql), sql) is expected

    @pytest.mark.parametrize(
        ("op", "lock", "expected"),
        [
            (OperationType.ALTER_COLUMN, LockLevel.ACCESS_SHARE, RiskLevel.CRITICAL),
            (OperationType.ADD_COLUMN, LockLevel.SHARE_ROW_EXCLUSIVE, RiskLevel.MEDIUM),
            (OperationType.ADD_COLUMN, LockLevel.ACCESS_EXCLUSIVE, RiskLevel.HIGH),
            (OperationType.UNKNOWN, LockLevel.ACCESS_EXCLUSIVE, RiskLevel.HIGH),
            (OperationType.CREATE_INDEX, LockLevel.SHARE, RiskLevel.HIGH),
            (OperationType.CREATE_TABLE, LockLevel.SHARE_UPDATE_EXCLUSIVE, RiskLevel.MEDIUM),
            (OperationType.INSERT, LockLevel.ROW_EXCLUSIVE, RiskLevel.LOW),
        ],
    )
    def test_risk_tiers(self, op: OperationType, lock: LockLevel, expected: RiskLevel) -> None:
        assert determine_risk_level(op, lock) is expected


class TestClassifyStatement:
    """End-to-end classification of single statements."""

    def test_given_drop_table_when_classified_then_critical_and_blocks_everything(
        self,
    ) -> None:
        # When
        op = classify_statement("DROP TABLE users")

        # Then
        assert op.operation_type is OperationType.DROP_TABLE
        assert op.lock_level is LockLevel.ACCESS_EXCLUSIVE
        assert op.lock_level.blocks_reads
        assert op.lock_level.blocks_writes
        assert op.risk_level is RiskLevel.CRITICAL
        assert op.affected_tables == ("users",)

    def test_given_concurrent_index_when_classified_then_medium_write_blocking(self) -> None:
        # When
        op = classify_statement("CREATE INDEX CONCURRENTLY idx_x ON t(x)")

        # Then
        assert op.operation_type is OperationType.CREATE_INDEX_CONCURRENT
        assert op.lock_level is LockLevel.SHARE_UPDATE_EXCLUSIVE
        assert op.lock_level.blocks_writes
        assert not op.lock_level.blocks_reads
        assert op.risk_level is RiskLevel.MEDIUM
        assert op.estimated_duration_ms == 120_000

    def test_given_plain_add_column_when_classified_then_medium(self) -> None:
        # When
        op = classify_statement("ALTER TABLE x ADD COLUMN y text")

        # Then
        assert op.operation_type is OperationType.ADD_COLUMN
        assert op.lock_level is LockLevel.SHARE_ROW_EXCLUSIVE
        assert not op.lock_level.blocks_reads
        assert op.risk_level is RiskLevel.MEDIUM

    def test_given_rewriting_add_column_when_classified_then_high(self) -> None:
        op = classify_statement("ALTER TABLE x ADD COLUMN y int NOT NULL DEFAULT 0")

        assert op.lock_level is LockLevel.ACCESS_EXCLUSIVE
        assert op.risk_level is RiskLevel.HIGH

    def test_classification_is_cached(self) -> None:
        assert classify_statement("DROP TABLE a", 10) is classify_statement("DROP TABLE a", 10)

    def test_given_cached_operation_when_metadata_mutated_then_rejected(self) -> None:
        # Given
        first = classify_statement("DROP TABLE audit", 5)

        # When
        with pytest.raises(TypeError):
            first.metadata["note"] = "mutated"  # type: ignore[index]

        # Then
        assert classify_statement("DROP TABLE audit", 5).metadata == {"estimatedRows": 5}

    def test_explain_fields(self) -> None:
        explanation = classify_statement("ALTER TABLE t ALTER COLUMN c TYPE bigint").explain()

        assert explanation["operation"] == "alter column"
        assert explanation["tables"] == "t"
        assert explanation["lockLevel"] == "ACCESS EXCLUSIVE"
        assert explanation["estimatedDuration"] == "30.0s"
        assert explanation["riskLevel"] == "CRITICAL"
        assert explanation["impact"].startswith("BLOCKS ALL ACCESS")

    def test_to_dict_nests_lock_mode(self) -> None:
        data = classify_statement("INSERT INTO logs VALUES (1)", 5).to_dict()

        assert data["operationType"] == "INSERT"
        assert data["affectedTables"] == ["logs"]
        assert data["lockLevel"]["name"] == "ROW EXCLUSIVE"
        assert data["explanation"]["impact"].startswith("LOW IMPACT")
        assert isinstance(classify_statement("INSERT INTO logs VALUES (1)"), MigrationOperation)


class TestDuration:
    @pytest.mark.parametrize(
        ("rows", "expected"),
        [
            (None, 500),
            (10_000, 500),
            (10_001, 750),
            (100_001, 1_500),
            (1_000_001, 5_000),
        ],
    )
    def test_row_scaling(self, rows: int | None, expected: float) -> None:
        assert estimate_duration_ms(OperationType.ADD_COLUMN, rows) == expected

    def test_unmapped_type_falls_back(self) -> None:
        assert estimate_duration_ms(OperationType.CREATE_OBJECT) == 30_000
