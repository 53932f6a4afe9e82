"""Schema IR and migration step inputs."""

from schemaproof.schema.models import (
    Field,
    FieldSpec,
    MigrationStep,
    Schema,
    Table,
    load_steps,
    normalize_directive,
)

__all__ = [
    "Field",
    "FieldSpec",
    "MigrationStep",
    "Schema",
    "Table",
    "load_steps",
    "normalize_directive",
]
