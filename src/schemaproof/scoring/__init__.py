"""Coverage, risk and test confidence scoring."""

from schemaproof.scoring.engine import (
    BUNDLE_VERSION,
    MRI_CATEGORIES,
    ScoringEngine,
    is_safe_cast,
    migration_step_uid,
    step_risk,
)
from schemaproof.scoring.models import (
    CategoryScore,
    GateCheck,
    Readiness,
    RiskCategory,
    ScoreResult,
    Verdict,
    ratio,
)

__all__ = [
    "ScoringEngine",
    "BUNDLE_VERSION",
    "MRI_CATEGORIES",
    "is_safe_cast",
    "migration_step_uid",
    "step_risk",
    # Breakdown records
    "CategoryScore",
    "GateCheck",
    "Readiness",
    "RiskCategory",
    "ScoreResult",
    "Verdict",
    "ratio",
]
