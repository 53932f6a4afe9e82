"""SchemaProof error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Schema input
- 4xxx: Evidence
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_MISSING_REQUIRED = 2003
    CONFIG_FILE_NOT_FOUND = 2004

    # Schema input (3xxx)
    SCHEMA_MALFORMED = 3001
    SCHEMA_NO_TABLES = 3002
    MIGRATION_STEP_MALFORMED = 3003

    # Evidence (4xxx)
    EVIDENCE_MALFORMED = 4001
    BUNDLE_MALFORMED = 4002

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class SchemaProofError(Exception):
    """Base error with structured context for reports and CLI output."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'SCHEMA_NO_TABLES')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(SchemaProofError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def missing_required(cls, field: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_MISSING_REQUIRED,
            message=f"Missing required config field: {field}",
            details={"field": field},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class SchemaError(SchemaProofError):
    """Malformed Schema IR or migration step input. Always fatal."""

    @classmethod
    def malformed(cls, reason: str, **details: Any) -> "SchemaError":
        return cls(
            code=ErrorCode.SCHEMA_MALFORMED,
            message=f"Malformed schema: {reason}",
            details=details,
        )

    @classmethod
    def no_tables(cls) -> "SchemaError":
        return cls(
            code=ErrorCode.SCHEMA_NO_TABLES,
            message="Schema does not enumerate any tables; refusing to score an empty schema",
        )

    @classmethod
    def bad_step(cls, index: int, reason: str) -> "SchemaError":
        return cls(
            code=ErrorCode.MIGRATION_STEP_MALFORMED,
            message=f"Migration step #{index} is malformed: {reason}",
            details={"index": index, "reason": reason},
        )


class EvidenceError(SchemaProofError):
    """Evidence ledger or bundle payload errors."""

    @classmethod
    def malformed(cls, reason: str, **details: Any) -> "EvidenceError":
        return cls(
            code=ErrorCode.EVIDENCE_MALFORMED,
            message=f"Malformed evidence ledger: {reason}",
            details=details,
        )

    @classmethod
    def bad_bundle(cls, reason: str) -> "EvidenceError":
        return cls(
            code=ErrorCode.BUNDLE_MALFORMED,
            message=f"Malformed evidence bundle: {reason}",
            details={"reason": reason},
        )


class InternalError(SchemaProofError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
