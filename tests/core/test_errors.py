"""Tests for core error types."""

import pytest

from schemaproof.core.errors import (
    ConfigError,
    ErrorCode,
    EvidenceError,
    InternalError,
    SchemaError,
    SchemaProofError,
)


class TestErrorCode:
    """Error code range tests."""

    @pytest.mark.parametrize(
        ("prefix", "low", "high"),
        [
            ("CONFIG_", 2000, 2999),
            ("SCHEMA_", 3000, 3999),
            ("EVIDENCE_", 4000, 4999),
            ("INTERNAL_", 9000, 9999),
        ],
    )
    def test_codes_stay_in_their_range(self, prefix: str, low: int, high: int) -> None:
        """Each family of codes lives in its documented range."""
        codes = [c for c in ErrorCode if c.name.startswith(prefix)]
        assert codes
        assert all(low <= c.value <= high for c in codes)


class TestSchemaProofError:
    """Base error behaviour."""

    def test_given_error_when_to_dict_then_serializes_all_fields(self) -> None:
        # Given
        err = SchemaProofError(ErrorCode.INTERNAL_ERROR, "boom", details={"k": 1})

        # When
        data = err.to_dict()

        # Then
        assert data == {
            "code": 9001,
            "error": "INTERNAL_ERROR",
            "message": "boom",
            "retryable": False,
            "details": {"k": 1},
        }

    def test_str_includes_code_and_name(self) -> None:
        err = SchemaProofError(ErrorCode.SCHEMA_NO_TABLES, "empty")
        assert str(err) == "[3002] SCHEMA_NO_TABLES: empty"

    def test_is_raisable(self) -> None:
        with pytest.raises(SchemaProofError) as exc_info:
            raise SchemaError.no_tables()
        assert exc_info.value.code is ErrorCode.SCHEMA_NO_TABLES


class TestFactories:
    """Factory classmethods produce typed errors."""

    def test_config_parse_error(self) -> None:
        err = ConfigError.parse_error("/x.yaml", "bad indent")
        assert err.code is ErrorCode.CONFIG_PARSE_ERROR
        assert "/x.yaml" in err.message
        assert err.details == {"path": "/x.yaml", "reason": "bad indent"}

    def test_config_invalid_value(self) -> None:
        err = ConfigError.invalid_value("scoring.thresholds.scs_min", 2, "too large")
        assert err.code is ErrorCode.CONFIG_INVALID_VALUE
        assert err.details["value"] == "2"

    def test_config_file_not_found(self) -> None:
        err = ConfigError.file_not_found("/nope.json")
        assert err.code is ErrorCode.CONFIG_FILE_NOT_FOUND

    def test_config_missing_required(self) -> None:
        err = ConfigError.missing_required("weights")
        assert err.code is ErrorCode.CONFIG_MISSING_REQUIRED

    def test_schema_bad_step_carries_index(self) -> None:
        err = SchemaError.bad_step(3, "missing 'kind'")
        assert err.code is ErrorCode.MIGRATION_STEP_MALFORMED
        assert err.details == {"index": 3, "reason": "missing 'kind'"}

    def test_schema_malformed_keeps_details(self) -> None:
        err = SchemaError.malformed("no tables key", value="[]")
        assert err.code is ErrorCode.SCHEMA_MALFORMED
        assert err.details == {"value": "[]"}

    def test_evidence_errors(self) -> None:
        assert EvidenceError.malformed("x").code is ErrorCode.EVIDENCE_MALFORMED
        assert EvidenceError.bad_bundle("x").code is ErrorCode.BUNDLE_MALFORMED

    def test_internal_unexpected(self) -> None:
        err = InternalError.unexpected("oops", where="engine")
        assert err.code is ErrorCode.INTERNAL_ERROR
        assert err.details == {"where": "engine"}
