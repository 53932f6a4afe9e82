"""Tests for ordered weight resolution."""

from typing import Any

import pytest
from structlog.testing import capture_logs

from schemaproof.config.models import DEFAULT_SUBSTRING_WEIGHTS, WeightConfig
from schemaproof.investigate.weights import (
    ResolvedWeight,
    WeightResolver,
    coerce_weight_config,
    table_wildcard,
)


def _resolver(index: dict[str, frozenset[str]] | None = None, **raw: Any) -> WeightResolver:
    return WeightResolver(WeightConfig.model_validate(raw), index)


class TestTableWildcard:
    @pytest.mark.parametrize(
        ("uid", "expected"),
        [
            ("col:Orders.id", "tbl:Orders.*"),
            ("col:Orders.meta.key", "tbl:Orders.*"),
            ("tbl:Orders", None),
            ("col:Orders", None),
        ],
    )
    def test_wildcard_for_columns_only(self, uid: str, expected: str | None) -> None:
        assert table_wildcard(uid) == expected


class TestPrecedence:
    """First matching rule wins, in fixed order."""

    def test_given_override_and_substring_when_resolved_then_override(self) -> None:
        # Given
        resolver = _resolver(overrides={"col:User.password": 1})

        # When
        resolved = resolver.resolve("col:User.password")

        # Then
        assert resolved == ResolvedWeight(1, "override col:User.password")

    def test_given_table_wildcard_when_resolved_then_covers_every_column(self) -> None:
        # Given
        resolver = _resolver(overrides={"tbl:Orders.*": 3})

        # When / Then
        assert resolver.resolve("col:Orders.email").source == "override tbl:Orders.*"
        assert resolver.resolve("col:Orders.total").value == 3
        assert resolver.resolve("tbl:Orders").source == "default"

    def test_exact_override_beats_wildcard(self) -> None:
        resolver = _resolver(overrides={"tbl:Orders.*": 3, "col:Orders.total": 9})
        expected = ResolvedWeight(9, "override col:Orders.total")
        assert resolver.resolve("col:Orders.total") == expected

    def test_given_directive_and_substring_when_resolved_then_directive(self) -> None:
        # Given - "id" is also a default substring
        resolver = _resolver(
            {"col:User.id": frozenset({"primarykey"})},
            directives={"@primaryKey": 11},
        )

        # When
        resolved = resolver.resolve("col:User.id")

        # Then
        assert resolved == ResolvedWeight(11, "directive @primarykey")

    def test_directive_without_tag_falls_through(self) -> None:
        resolver = _resolver(directives={"pii": 12})
        assert resolver.resolve("col:User.email") == ResolvedWeight(8, "substring email")

    def test_substrings_match_case_insensitively_in_order(self) -> None:
        resolver = _resolver()
        assert resolver.resolve("col:Account.PasswordHash").source == "substring password"
        assert resolver.resolve("col:User.theme").source == "substring user"

    def test_given_nothing_matches_when_resolved_then_default(self) -> None:
        resolved = _resolver(default=4).resolve("col:Post.body")

        assert resolved == ResolvedWeight(4, "default")
        assert resolved.display() == "4"


class TestCoerceWeightConfig:
    """Raw weight data coercion."""

    def test_passes_config_through(self) -> None:
        config = WeightConfig(default=2)
        assert coerce_weight_config(config) is config

    def test_none_gives_defaults(self) -> None:
        assert coerce_weight_config(None).substrings == DEFAULT_SUBSTRING_WEIGHTS

    def test_given_malformed_data_when_coerced_then_defaults_with_warning(self) -> None:
        # When
        with capture_logs() as logs:
            config = coerce_weight_config({"default": "heavy", "overrides": []})

        # Then
        assert config == WeightConfig()
        assert [e["event"] for e in logs] == ["weights.config_invalid"]
        assert logs[0]["log_level"] == "warning"
