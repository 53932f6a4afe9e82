"""Core module exports."""

from schemaproof.core.errors import (
    ConfigError,
    ErrorCode,
    EvidenceError,
    InternalError,
    SchemaError,
    SchemaProofError,
)
from schemaproof.core.logging import (
    clear_run_id,
    configure_logging,
    get_logger,
    get_run_id,
    set_run_id,
)

__all__ = [
    # Errors
    "SchemaProofError",
    "ConfigError",
    "ErrorCode",
    "EvidenceError",
    "InternalError",
    "SchemaError",
    # Logging
    "clear_run_id",
    "configure_logging",
    "get_logger",
    "get_run_id",
    "set_run_id",
]
