"""Independent verification of evidence bundles."""

from schemaproof.verify.errors import NotARepositoryError, ObjectNotFoundError, ObjectStoreError
from schemaproof.verify.object_store import GitObjectStore, ObjectStore
from schemaproof.verify.verifier import (
    CitationOutcome,
    CitationResult,
    CitationSummary,
    MathCheck,
    Opinion,
    VerificationReport,
    Verifier,
    render_verification,
    substring_weight,
)

__all__ = [
    "Verifier",
    "VerificationReport",
    "CitationOutcome",
    "CitationResult",
    "CitationSummary",
    "MathCheck",
    "Opinion",
    "render_verification",
    "substring_weight",
    # Object store
    "ObjectStore",
    "GitObjectStore",
    # Errors
    "ObjectStoreError",
    "ObjectNotFoundError",
    "NotARepositoryError",
]
