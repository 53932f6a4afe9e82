"""Tests for core.formatting utilities."""

import pytest

from schemaproof.core.formatting import (
    format_duration,
    format_percent,
    plural,
    progress_bar,
    short_sha,
)


class TestFormatDuration:
    """Tests for format_duration function."""

    @pytest.mark.parametrize(
        ("ms", "expected"),
        [
            (0, "0ms"),
            (500, "500ms"),
            (999, "999ms"),
            (1000, "1.0s"),
            (1500, "1.5s"),
            (60_000, "1.0m"),
            (120_000, "2.0m"),
            (3_600_000, "1.0h"),
            (7_200_000, "2.0h"),
        ],
    )
    def test_picks_largest_unit(self, ms: float, expected: str) -> None:
        assert format_duration(ms) == expected

    def test_fractional_milliseconds(self) -> None:
        assert format_duration(12.5) == "12.5ms"


class TestFormatPercent:
    def test_one_decimal(self) -> None:
        assert format_percent(2 / 3) == "66.7%"

    def test_whole(self) -> None:
        assert format_percent(1) == "100.0%"


class TestProgressBar:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (0.0, "░" * 10),
            (0.5, "█" * 5 + "░" * 5),
            (1.0, "█" * 10),
            (1.7, "█" * 10),
            (-0.3, "░" * 10),
        ],
    )
    def test_clamped_block_bar(self, value: float, expected: str) -> None:
        assert progress_bar(value) == expected

    def test_custom_width(self) -> None:
        assert progress_bar(0.5, width=4) == "██░░"


class TestShortSha:
    def test_truncates_to_seven(self) -> None:
        assert short_sha("abcdef0123456789") == "abcdef0"

    @pytest.mark.parametrize("value", [None, ""])
    def test_missing_commit(self, value: str | None) -> None:
        assert short_sha(value) == "unknown"


class TestPlural:
    def test_singular(self) -> None:
        assert plural(1, "table") == "1 table"

    def test_plural(self) -> None:
        assert plural(3, "table") == "3 tables"

    def test_irregular(self) -> None:
        assert plural(2, "index", "indexes") == "2 indexes"
