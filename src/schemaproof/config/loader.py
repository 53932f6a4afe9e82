"""Configuration loading with pydantic-settings.

Supports loading configuration from multiple sources with precedence:
1. Direct kwargs (highest priority)
2. Environment variables (SCHEMAPROOF__SECTION__KEY)
3. Repo config (.schemaproof/config.yaml)
4. Global config (~/.config/schemaproof/config.yaml)
5. Built-in defaults (lowest priority)

Only the CLI edge calls into this module. Scoring, investigation and
verification receive already-built config objects.
"""

import json
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from schemaproof.config.models import (
    InvestigatorConfig,
    LoggingConfig,
    SchemaProofConfig,
    ScoringConfig,
    VerifierConfig,
    WeightConfig,
)
from schemaproof.core.errors import ConfigError

log = structlog.get_logger(__name__)

GLOBAL_CONFIG_PATH = Path("~/.config/schemaproof/config.yaml").expanduser()
REPO_CONFIG_DIR = ".schemaproof"
REPO_WEIGHTS_FILE = "weights.json"


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open() as f:
            return yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


class _YamlSource(PydanticBaseSettingsSource):
    """Settings source that reads from pre-loaded YAML config."""

    def __init__(self, settings_cls: type[BaseSettings], yaml_config: dict[str, Any]) -> None:
        super().__init__(settings_cls)
        self._yaml_config = yaml_config

    def get_field_value(
        self,
        field: Any,  # noqa: ARG002
        field_name: str,
    ) -> tuple[Any, str, bool]:
        val = self._yaml_config.get(field_name)
        return val, field_name, val is not None

    def __call__(self) -> dict[str, Any]:
        return self._yaml_config


def _make_settings_class(yaml_config: dict[str, Any]) -> type[BaseSettings]:
    """Create a Settings class with instance-based YAML source (thread-safe)."""

    class SchemaProofSettings(BaseSettings):
        """Root config. Env vars: SCHEMAPROOF__LOGGING__LEVEL, SCHEMAPROOF__VERIFIER__..."""

        model_config = SettingsConfigDict(
            env_prefix="SCHEMAPROOF__",
            env_nested_delimiter="__",
            case_sensitive=False,
        )

        logging: LoggingConfig = LoggingConfig()
        weights: WeightConfig = WeightConfig()
        scoring: ScoringConfig = ScoringConfig()
        investigator: InvestigatorConfig = InvestigatorConfig()
        verifier: VerifierConfig = VerifierConfig()

        @classmethod
        def settings_customise_sources(
            cls,
            settings_cls: type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
            file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        ) -> tuple[PydanticBaseSettingsSource, ...]:
            # Precedence (first wins): init kwargs > env vars > yaml files
            return (init_settings, env_settings, _YamlSource(settings_cls, yaml_config))

    return SchemaProofSettings


def load_config(repo_root: Path | None = None, **kwargs: Any) -> SchemaProofConfig:
    """Load config: defaults < global yaml < repo yaml < env vars < kwargs.

    Args:
        repo_root: Repository root to load .schemaproof/config.yaml from.
                   Defaults to current working directory.
        **kwargs: Override values (highest precedence).

    Returns:
        Fully resolved configuration object.

    Raises:
        ConfigError: On invalid YAML syntax or validation errors.
    """
    root = repo_root or Path.cwd()
    yaml_config = _deep_merge(
        _load_yaml(GLOBAL_CONFIG_PATH),
        _load_yaml(root / REPO_CONFIG_DIR / "config.yaml"),
    )

    settings_cls = _make_settings_class(yaml_config)
    try:
        settings = settings_cls(**kwargs)
    except ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(loc) for loc in err["loc"])
        raise ConfigError.invalid_value(field, err.get("input"), err["msg"]) from e
    return SchemaProofConfig.model_validate(settings.model_dump())


def load_weight_config(
    path: Path | None = None,
    repo_root: Path | None = None,
    fallback: WeightConfig | None = None,
) -> WeightConfig:
    """Read a weight file (JSON or YAML), falling back to ``fallback``.

    With no explicit path, ``.schemaproof/weights.json`` under the repo root
    is used when present. An explicit path that does not exist raises; a file
    that cannot be parsed or validated logs a warning and yields the fallback.
    ``fallback`` is normally ``SchemaProofConfig.weights``; built-in defaults
    when omitted.
    """
    fallback = fallback or WeightConfig()
    if path is None:
        path = (repo_root or Path.cwd()) / REPO_CONFIG_DIR / REPO_WEIGHTS_FILE
        if not path.exists():
            return fallback
    elif not path.exists():
        raise ConfigError.file_not_found(str(path))

    try:
        text = path.read_text()
        raw = json.loads(text) if path.suffix == ".json" else yaml.safe_load(text)
        return WeightConfig.model_validate(raw)
    except (json.JSONDecodeError, yaml.YAMLError, ValidationError, ValueError) as e:
        log.warning("weights.config_invalid", path=str(path), error=str(e))
        return fallback
