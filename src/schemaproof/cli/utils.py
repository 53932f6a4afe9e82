"""CLI utilities."""

import contextlib
import json
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import click
import yaml

from schemaproof.config.loader import REPO_CONFIG_DIR, REPO_WEIGHTS_FILE, load_config
from schemaproof.config.models import SchemaProofConfig, WeightConfig
from schemaproof.core.errors import SchemaProofError
from schemaproof.verify.errors import ObjectStoreError


def read_document(path: Path) -> Any:
    """Parse a JSON or YAML input file.

    Raises:
        click.ClickException: If the file cannot be read or parsed
    """
    try:
        text = path.read_text(encoding="utf-8")
        if path.suffix == ".json":
            return json.loads(text)
        return yaml.safe_load(text)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise click.ClickException(f"Cannot read {path}: {e}") from e


def emit_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, sort_keys=False, default=str))


def load_cli_config() -> SchemaProofConfig:
    with cli_errors():
        return load_config(Path.cwd())


def weight_source(path: Path | None, fallback: WeightConfig | None = None) -> str:
    """Human-readable origin of the weight config the CLI will load."""
    if path is not None:
        return f"file:{path}"
    default = Path.cwd() / REPO_CONFIG_DIR / REPO_WEIGHTS_FILE
    if default.exists():
        return f"file:{default}"
    if fallback is not None and fallback != WeightConfig():
        return "config"
    return "defaults"


@contextlib.contextmanager
def cli_errors() -> Iterator[None]:
    """Turn domain errors into click errors with a non-zero exit."""
    try:
        yield
    except (SchemaProofError, ObjectStoreError) as e:
        raise click.ClickException(str(e)) from e
