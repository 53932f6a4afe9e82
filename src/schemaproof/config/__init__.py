"""Config module exports."""

from schemaproof.config.loader import load_config, load_weight_config
from schemaproof.config.models import (
    InvestigatorConfig,
    LoggingConfig,
    LogOutputConfig,
    SchemaProofConfig,
    ScoringConfig,
    ThresholdsConfig,
    VerifierConfig,
    WeightConfig,
)

__all__ = [
    "load_config",
    "load_weight_config",
    "SchemaProofConfig",
    "InvestigatorConfig",
    "LoggingConfig",
    "LogOutputConfig",
    "ScoringConfig",
    "ThresholdsConfig",
    "VerifierConfig",
    "WeightConfig",
]
