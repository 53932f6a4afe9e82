"""Weight resolution with an audit trail.

Rules are tried top-down and the first match wins:

1. ``OverrideRule``  - exact UID, then ``tbl:Table.*`` for ``col:Table.x``
2. ``DirectiveRule`` - a configured directive the element is tagged with
3. ``SubstringRule`` - a configured needle found in the lower-cased UID
4. ``DefaultRule``   - always matches

Each returns a ``ResolvedWeight`` whose ``source`` names the rule and key,
e.g. ``override tbl:Orders.*`` or ``substring email``.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

import structlog
from pydantic import ValidationError

from schemaproof.config.models import WeightConfig

log = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ResolvedWeight:
    value: float
    source: str

    def display(self) -> str:
        return f"{self.value:g}"


class WeightRule(Protocol):
    def resolve(self, uid: str, directives: frozenset[str]) -> ResolvedWeight | None: ...


def table_wildcard(uid: str) -> str | None:
    """'col:Orders.id' -> 'tbl:Orders.*'; None for non-column UIDs."""
    if not uid.startswith("col:") or "." not in uid:
        return None
    table = uid[len("col:") :].split(".", 1)[0]
    return f"tbl:{table}.*"


class OverrideRule:
    def __init__(self, overrides: Mapping[str, float]) -> None:
        self._overrides = overrides

    def resolve(
        self,
        uid: str,
        directives: frozenset[str],  # noqa: ARG002
    ) -> ResolvedWeight | None:
        for key in (uid, table_wildcard(uid)):
            if key is not None and key in self._overrides:
                return ResolvedWeight(self._overrides[key], f"override {key}")
        return None


class DirectiveRule:
    def __init__(self, directives: Mapping[str, float]) -> None:
        self._directives = directives

    def resolve(
        self,
        uid: str,  # noqa: ARG002
        directives: frozenset[str],  # noqa: ARG002
    ) -> ResolvedWeight | None:
        for name, weight in self._directives.items():
            if name in directives:
                return ResolvedWeight(weight, f"directive @{name}")
        return None


class SubstringRule:
    def __init__(self, substrings: Mapping[str, float]) -> None:
        self._substrings = substrings

    def resolve(
        self,
        uid: str,
        directives: frozenset[str],  # noqa: ARG002
    ) -> ResolvedWeight | None:
        lowered = uid.lower()
        for needle, weight in self._substrings.items():
            if needle in lowered:
                return ResolvedWeight(weight, f"substring {needle}")
        return None


class DefaultRule:
    def __init__(self, default: float) -> None:
        self._default = default

    def resolve(
        self,
        uid: str,  # noqa: ARG002
        directives: frozenset[str],  # noqa: ARG002
    ) -> ResolvedWeight:
        return ResolvedWeight(self._default, "default")


class WeightResolver:
    """Resolves element weights from a ``WeightConfig`` and a directive index."""

    def __init__(
        self,
        config: WeightConfig,
        directive_index: Mapping[str, frozenset[str]] | None = None,
    ) -> None:
        self.config = config
        self._directive_index = directive_index or {}
        self._default = DefaultRule(config.default)
        self.rules: Sequence[WeightRule] = (
            OverrideRule(config.overrides),
            DirectiveRule(config.directives),
            SubstringRule(config.substrings),
            self._default,
        )

    def resolve(self, uid: str) -> ResolvedWeight:
        tags = self._directive_index.get(uid, frozenset())
        for rule in self.rules:
            resolved = rule.resolve(uid, tags)
            if resolved is not None:
                log.debug("weights.resolved", uid=uid, value=resolved.value, source=resolved.source)
                return resolved
        return self._default.resolve(uid, tags)


def coerce_weight_config(raw: WeightConfig | Mapping[str, Any] | None) -> WeightConfig:
    """Accept a ready config or raw data; malformed data yields the defaults."""
    if isinstance(raw, WeightConfig):
        return raw
    if raw is None:
        return WeightConfig()
    try:
        return WeightConfig.model_validate(dict(raw) if isinstance(raw, Mapping) else raw)
    except (ValidationError, ValueError, TypeError) as e:
        log.warning("weights.config_invalid", error=str(e))
        return WeightConfig()
