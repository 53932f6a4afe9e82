"""PostgreSQL lock-impact classification and migration analysis."""

from schemaproof.core.formatting import format_duration
from schemaproof.locks.analysis import MigrationAnalysis, Priority, Recommendation
from schemaproof.locks.classifier import (
    MigrationOperation,
    OperationType,
    RiskLevel,
    classify_statement,
)
from schemaproof.locks.explainer import MigrationExplainer, split_statements
from schemaproof.locks.levels import LockLevel, LockMode, ordered_levels

__all__ = [
    # Lock table
    "LockLevel",
    "LockMode",
    "ordered_levels",
    # Classifier
    "MigrationOperation",
    "OperationType",
    "RiskLevel",
    "classify_statement",
    # Batch analysis
    "MigrationAnalysis",
    "MigrationExplainer",
    "Priority",
    "Recommendation",
    "format_duration",
    "split_statements",
]
