"""Weighted investigation of an evidence bundle."""

from schemaproof.investigate.investigator import (
    ElementRow,
    ElementStatus,
    Gate,
    GateStatus,
    InvestigationReport,
    Investigator,
    VerdictSummary,
    render_investigation,
)
from schemaproof.investigate.weights import (
    DefaultRule,
    DirectiveRule,
    OverrideRule,
    ResolvedWeight,
    SubstringRule,
    WeightResolver,
    WeightRule,
    coerce_weight_config,
)

__all__ = [
    "Investigator",
    "InvestigationReport",
    "ElementRow",
    "ElementStatus",
    "Gate",
    "GateStatus",
    "VerdictSummary",
    "render_investigation",
    # Weight resolution
    "WeightResolver",
    "WeightRule",
    "ResolvedWeight",
    "OverrideRule",
    "DirectiveRule",
    "SubstringRule",
    "DefaultRule",
    "coerce_weight_config",
]
