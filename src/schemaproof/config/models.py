"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (SCHEMAPROOF__SECTION__KEY)
3. Repo YAML (.schemaproof/config.yaml)
4. Global YAML (~/.config/schemaproof/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    SCHEMAPROOF__<SECTION>__<KEY>=<VALUE>

Examples:
    SCHEMAPROOF__LOGGING__LEVEL=DEBUG
    SCHEMAPROOF__SCORING__THRESHOLDS__SCS_MIN=0.9
    SCHEMAPROOF__VERIFIER__LOOKUP_TIMEOUT_SEC=2.5

Components never load these themselves; the caller builds a config once and
passes the relevant section in.
"""

import math
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

DEFAULT_SUBSTRING_WEIGHTS: dict[str, float] = {
    "password": 10,
    "email": 8,
    "id": 7,
    "user": 6,
    "created": 5,
    "theme": 2,
}

DEFAULT_SENSITIVE_SUBSTRINGS: list[str] = ["password", "sensitive", "pii"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        SCHEMAPROOF__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every per-element decision.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


def _normalize_directive_key(key: str) -> str:
    return key.removeprefix("@").lower()


class WeightConfig(BaseModel):
    """Weight resolution data for the Investigator.

    Resolution order is fixed: overrides > directives > substrings > default.
    A legacy flat map such as ``{"password": 12, "default": 4}`` is accepted
    and read as substring weights plus a default.
    """

    default: float = Field(default=5, description="Weight used when no rule matches.")
    substrings: dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_SUBSTRING_WEIGHTS),
        description="Needle -> weight, matched against the lower-cased UID in order.",
    )
    directives: dict[str, float] = Field(
        default_factory=dict,
        description="Directive name (without '@') -> weight.",
    )
    overrides: dict[str, float] = Field(
        default_factory=dict,
        description="Exact UID or 'tbl:Table.*' wildcard -> weight.",
    )

    @model_validator(mode="before")
    @classmethod
    def normalize_raw(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            raise ValueError("weights config must be a mapping")
        looks_flat = all(
            isinstance(v, int | float) and not isinstance(v, bool) for v in data.values()
        )
        if data and looks_flat:
            flat = dict(data)
            default = flat.pop("default", 5)
            substrings = dict(DEFAULT_SUBSTRING_WEIGHTS)
            substrings.update({k.lower(): v for k, v in flat.items()})
            return {"default": default, "substrings": substrings}

        normalized = dict(data)
        if isinstance(data.get("substrings"), dict):
            substrings = dict(DEFAULT_SUBSTRING_WEIGHTS)
            substrings.update({k.lower(): v for k, v in data["substrings"].items()})
            normalized["substrings"] = substrings
        if isinstance(data.get("directives"), dict):
            normalized["directives"] = {
                _normalize_directive_key(k): v for k, v in data["directives"].items()
            }
        return normalized

    @field_validator("default")
    @classmethod
    def validate_default(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("'default' weight must be a finite number")
        return v

    @field_validator("substrings", "directives", "overrides")
    @classmethod
    def validate_finite(cls, v: dict[str, float]) -> dict[str, float]:
        for key, value in v.items():
            if not math.isfinite(value):
                raise ValueError(f"weight for {key!r} must be a finite number")
        return v


class ThresholdsConfig(BaseModel):
    """Readiness gate thresholds.

    Env vars:
        SCHEMAPROOF__SCORING__THRESHOLDS__SCS_MIN: Minimum schema coverage
        SCHEMAPROOF__SCORING__THRESHOLDS__TCI_MIN: Minimum test confidence
        SCHEMAPROOF__SCORING__THRESHOLDS__MRI_MAX: Maximum migration risk
    """

    scs_min: float = Field(default=0.8, ge=0.0, le=1.0)
    tci_min: float = Field(default=0.7, ge=0.0, le=1.0)
    mri_max: float = Field(
        default=0.4,
        ge=0.0,
        le=1.0,
        description="Lower is safer. RISK: raising this ships destructive migrations.",
    )


class ScoringConfig(BaseModel):
    """Scoring engine configuration.

    Artifact groups map a coverage category to the ledger artifact kinds that
    satisfy it. Category weights are blended over active categories; TCI weights
    over all four sub-scores.
    """

    artifact_groups: dict[str, list[str]] = Field(
        default_factory=lambda: {
            "sql": ["sql"],
            "types": ["ts", "typescript"],
            "validation": ["zod"],
            "tests": ["test", "tests"],
        },
    )
    category_weights: dict[str, float] = Field(
        default_factory=lambda: {"sql": 0.4, "types": 0.2, "validation": 0.2, "tests": 0.2},
    )
    tci_weights: dict[str, float] = Field(
        default_factory=lambda: {
            "unit_constraints": 0.45,
            "unit_rls": 0.15,
            "integration_relations": 0.2,
            "e2e_ops": 0.2,
        },
    )
    test_kinds: list[str] = Field(default_factory=lambda: ["test", "tests"])
    thresholds: ThresholdsConfig = Field(default_factory=ThresholdsConfig)

    @model_validator(mode="after")
    def validate_weights(self) -> "ScoringConfig":
        missing = set(self.category_weights) - set(self.artifact_groups)
        if missing:
            raise ValueError(f"category weights without artifact group: {sorted(missing)}")
        for name, value in (*self.category_weights.items(), *self.tci_weights.items()):
            if value < 0:
                raise ValueError(f"weight for {name!r} must be >= 0")
        return self


class InvestigatorConfig(BaseModel):
    """Investigator gate configuration."""

    mri_gate: float = Field(default=0.4, description="Migration Risk gate passes below this MRI.")
    tci_gate: float = Field(default=0.7, description="Test Coverage gate passes above this TCI.")
    sensitive_substrings: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SENSITIVE_SUBSTRINGS)
    )


class VerifierConfig(BaseModel):
    """Verifier configuration.

    Env vars:
        SCHEMAPROOF__VERIFIER__LOOKUP_TIMEOUT_SEC: Per-lookup object store timeout
        SCHEMAPROOF__VERIFIER__MAX_WORKERS: Parallel object store lookups
    """

    lookup_timeout_sec: float = Field(
        default=5.0,
        gt=0,
        description="Max wait per (commit, file) lookup. A hung repository degrades "
        "that citation group to failed.",
    )
    max_workers: int = Field(default=4, ge=1, description="Parallel object store lookups.")
    scs_tolerance: float = Field(default=0.01, ge=0.0)
    min_verification_rate: float = Field(default=0.8, ge=0.0, le=1.0)
    sensitive_substrings: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SENSITIVE_SUBSTRINGS)
    )


class SchemaProofConfig(BaseModel):
    """Root configuration for SchemaProof.

    All settings can be configured via:
    1. Environment variables: SCHEMAPROOF__SECTION__KEY
    2. YAML config files (repo or global)
    3. Direct kwargs to load_config()
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    weights: WeightConfig = Field(default_factory=WeightConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    investigator: InvestigatorConfig = Field(default_factory=InvestigatorConfig)
    verifier: VerifierConfig = Field(default_factory=VerifierConfig)
