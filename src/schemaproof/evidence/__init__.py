"""Evidence ledger module exports."""

from schemaproof.evidence.bundle import SCORE_NAMES, EvidenceBundle
from schemaproof.evidence.ledger import DEFAULT_REQUIRED_KINDS, LEDGER_VERSION, EvidenceLedger
from schemaproof.evidence.models import UNCOMMITTED, Citation, Issue, Location

__all__ = [
    "EvidenceLedger",
    "EvidenceBundle",
    "Citation",
    "Issue",
    "Location",
    "DEFAULT_REQUIRED_KINDS",
    "LEDGER_VERSION",
    "SCORE_NAMES",
    "UNCOMMITTED",
]
