"""Schema IR and migration step models.

These are the read-only inputs handed over by the schema compiler and the
migration planner. Loading is strict: a payload that cannot enumerate tables
fails loudly, because scoring an empty schema would read as "ready".
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from schemaproof.core.errors import SchemaError

# Directive tags that imply field flags
_PK_TAGS = ("primarykey", "pk", "id")
_FK_TAGS = ("foreignkey", "fk", "references")
_UNIQUE_TAGS = ("unique",)
_INDEX_TAGS = ("index", "indexed")
_SKIP_TAGS = ("skip", "deprecated")
_SENSITIVE_TAGS = ("sensitive", "pii")

_WEIGHT_TAG = "weight"
_CRITICAL_TAG = "critical"
_DEFAULT_FIELD_WEIGHT = 3


def normalize_directive(name: str) -> str:
    """'@primaryKey' -> 'primarykey'."""
    return name.removeprefix("@").lower()


def _normalize_directives(raw: Any) -> dict[str, Any]:
    if raw is None:
        return {}
    if isinstance(raw, Mapping):
        return {normalize_directive(str(k)): v for k, v in raw.items()}
    if isinstance(raw, list | tuple):
        return {normalize_directive(str(k)): True for k in raw}
    raise SchemaError.malformed("directives must be a mapping or list", value=repr(raw))


def _pick(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return default


@dataclass(frozen=True, slots=True)
class Field:
    """A column of a table in the compiled schema."""

    name: str
    type: str = "String"
    nullable: bool = True
    list: bool = False
    virtual: bool = False
    primary_key: bool = False
    foreign_key: str | None = None
    unique: bool = False
    indexed: bool = False
    default: Any = None
    check: str | None = None
    directives: dict[str, Any] = field(default_factory=dict)
    uid: str | None = None

    @property
    def non_null(self) -> bool:
        return not self.nullable

    @property
    def is_foreign_key(self) -> bool:
        return self.foreign_key is not None

    @property
    def has_default(self) -> bool:
        return self.default is not None

    @property
    def skipped(self) -> bool:
        return any(tag in self.directives for tag in _SKIP_TAGS)

    @property
    def sensitive(self) -> bool:
        return any(tag in self.directives for tag in _SENSITIVE_TAGS)

    def weight(self) -> int:
        """Directive-derived coverage weight."""
        explicit = self.directives.get(_WEIGHT_TAG)
        if explicit is not None and explicit is not True:
            value = explicit.get("value") if isinstance(explicit, Mapping) else explicit
            try:
                return int(value)
            except (TypeError, ValueError):
                return _DEFAULT_FIELD_WEIGHT
        if _CRITICAL_TAG in self.directives or self.primary_key:
            return 10
        if self.sensitive:
            return 9
        if self.is_foreign_key or self.unique:
            return 8
        if self.indexed:
            return 5
        return _DEFAULT_FIELD_WEIGHT

    @classmethod
    def from_dict(cls, name: str, data: Mapping[str, Any]) -> Field:
        if not isinstance(data, Mapping):
            raise SchemaError.malformed(f"field {name!r} must be a mapping")
        directives = _normalize_directives(data.get("directives"))
        fk = _pick(data, "foreignKey", "foreign_key", "references")
        if fk is None:
            for tag in _FK_TAGS:
                if tag in directives:
                    ref = directives[tag]
                    fk = ref.get("ref", "") if isinstance(ref, Mapping) else str(ref)
                    break
        default = _pick(data, "default", "defaultValue", "default_value")
        if default is None and "default" in directives:
            ref = directives["default"]
            default = ref.get("value", ref.get("expr")) if isinstance(ref, Mapping) else ref
        check = _pick(data, "check", "checkConstraint")
        if check is None and "check" in directives:
            ref = directives["check"]
            check = ref.get("expr") if isinstance(ref, Mapping) else str(ref)
        non_null = _pick(data, "nonNull", "non_null")
        nullable = bool(data.get("nullable", True)) if non_null is None else not non_null
        return cls(
            name=name,
            type=str(data.get("type", "String")),
            nullable=nullable,
            list=bool(_pick(data, "list", "isList", default=False)),
            virtual=bool(_pick(data, "virtual", "isVirtual", default=False)),
            primary_key=bool(_pick(data, "primaryKey", "primary_key", default=False))
            or any(tag in directives for tag in _PK_TAGS[:2]),
            foreign_key=str(fk) if fk is not None else None,
            unique=bool(data.get("unique", False)) or "unique" in directives,
            indexed=bool(_pick(data, "indexed", "index", default=False))
            or any(tag in directives for tag in _INDEX_TAGS),
            default=default,
            check=check,
            directives=directives,
            uid=data.get("uid") or _directive_uid(directives),
        )


def _directive_uid(directives: Mapping[str, Any]) -> str | None:
    uid = directives.get("uid")
    if isinstance(uid, Mapping):
        return uid.get("value")
    return uid if isinstance(uid, str) else None


@dataclass(frozen=True, slots=True)
class Table:
    """A table of the compiled schema."""

    name: str
    fields: tuple[Field, ...] = ()
    directives: dict[str, Any] = field(default_factory=dict)
    uid: str | None = None

    @property
    def element_uid(self) -> str:
        return self.uid or f"tbl:{self.name}"

    @property
    def rls(self) -> bool:
        return "rls" in self.directives

    def field_uid(self, f: Field) -> str:
        return f.uid or f"col:{self.name}.{f.name}"

    def real_fields(self) -> Iterator[Field]:
        """Fields that materialize as columns."""
        return (f for f in self.fields if not f.virtual)

    @classmethod
    def from_dict(cls, name: str, data: Mapping[str, Any]) -> Table:
        if not isinstance(data, Mapping):
            raise SchemaError.malformed(f"table {name!r} must be a mapping")
        raw_fields = data.get("fields", {})
        if isinstance(raw_fields, Mapping):
            fields = tuple(Field.from_dict(n, f) for n, f in raw_fields.items())
        elif isinstance(raw_fields, list):
            fields = tuple(Field.from_dict(_require_name(f, "field"), f) for f in raw_fields)
        else:
            raise SchemaError.malformed(f"fields of table {name!r} must be a mapping or list")
        directives = _normalize_directives(data.get("directives"))
        return cls(
            name=name,
            fields=fields,
            directives=directives,
            uid=data.get("uid") or _directive_uid(directives),
        )


def _require_name(data: Any, what: str) -> str:
    if not isinstance(data, Mapping) or not isinstance(data.get("name"), str):
        raise SchemaError.malformed(f"every {what} in a list needs a string 'name'")
    return data["name"]


@dataclass(frozen=True, slots=True)
class Schema:
    """Compiled schema snapshot."""

    tables: tuple[Table, ...]

    def __post_init__(self) -> None:
        if not self.tables:
            raise SchemaError.no_tables()

    def table(self, name: str) -> Table | None:
        return next((t for t in self.tables if t.name == name), None)

    def directive_index(self) -> dict[str, frozenset[str]]:
        """UID -> directive tags for every table and field element."""
        index: dict[str, frozenset[str]] = {}
        for table in self.tables:
            index[table.element_uid] = frozenset(table.directives)
            for f in table.fields:
                index[table.field_uid(f)] = frozenset(f.directives)
        return index

    @classmethod
    def from_dict(cls, data: Any) -> Schema:
        if not isinstance(data, Mapping) or "tables" not in data:
            raise SchemaError.malformed("expected a mapping with a 'tables' key")
        raw = data["tables"]
        if isinstance(raw, Mapping):
            tables = tuple(Table.from_dict(n, t) for n, t in raw.items())
        elif isinstance(raw, list):
            tables = tuple(Table.from_dict(_require_name(t, "table"), t) for t in raw)
        else:
            raise SchemaError.malformed("'tables' must be a mapping or list")
        return cls(tables=tables)


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """Column definition carried by an add_column step."""

    non_null: bool = False
    default: Any = None
    directives: dict[str, Any] = field(default_factory=dict)

    @property
    def has_default(self) -> bool:
        return self.default is not None or "default" in self.directives


@dataclass(frozen=True, slots=True)
class MigrationStep:
    """One declarative schema change from the migration planner."""

    kind: str
    table: str
    column: str | None = None
    field: FieldSpec | None = None
    from_type: str | None = None
    to_type: str | None = None
    concurrent: bool | None = None
    uid_continuity: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], index: int = 0) -> MigrationStep:
        if not isinstance(data, Mapping):
            raise SchemaError.bad_step(index, "step must be a mapping")
        kind = data.get("kind")
        table = data.get("table")
        if not isinstance(kind, str) or not kind:
            raise SchemaError.bad_step(index, "missing 'kind'")
        if not isinstance(table, str) or not table:
            raise SchemaError.bad_step(index, "missing 'table'")
        raw_field = data.get("field")
        spec = None
        if isinstance(raw_field, Mapping):
            spec = FieldSpec(
                non_null=bool(_pick(raw_field, "nonNull", "non_null", default=False)),
                default=_pick(raw_field, "default", "defaultValue"),
                directives=_normalize_directives(raw_field.get("directives")),
            )
        concurrent = data.get("concurrent")
        return cls(
            kind=kind,
            table=table,
            column=data.get("column"),
            field=spec,
            from_type=_pick(data, "from", "from_type"),
            to_type=_pick(data, "to", "to_type"),
            concurrent=None if concurrent is None else bool(concurrent),
            uid_continuity=bool(_pick(data, "uidContinuity", "uid_continuity", default=False)),
        )


def load_steps(data: Any) -> list[MigrationStep]:
    """Parse a list of step mappings (or ``{"steps": [...]}``)."""
    if isinstance(data, Mapping):
        data = data.get("steps", [])
    if not isinstance(data, list):
        raise SchemaError.malformed("migration steps must be a list")
    return [MigrationStep.from_dict(step, i) for i, step in enumerate(data)]
