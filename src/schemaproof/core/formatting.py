"""Formatting utilities for consistent report output.

Design principles:
- Deterministic: identical inputs render identical strings
- Percentages always carry one decimal place
- Commit ids shortened to 7 characters in narrative text
"""

from __future__ import annotations

SHORT_SHA_LEN = 7


def format_duration(ms: float) -> str:
    """Format a millisecond duration with the largest sensible unit.

    Examples:
        500 -> "500ms"
        1500 -> "1.5s"
        120000 -> "2.0m"
        7200000 -> "2.0h"
    """
    if ms < 1000:
        return f"{ms:g}ms"
    if ms < 60_000:
        return f"{ms / 1000:.1f}s"
    if ms < 3_600_000:
        return f"{ms / 60_000:.1f}m"
    return f"{ms / 3_600_000:.1f}h"


def format_percent(value: float) -> str:
    """Format a 0..1 ratio as a percentage.

    Examples:
        0.6667 -> "66.7%"
        1 -> "100.0%"
    """
    return f"{value * 100:.1f}%"


def progress_bar(value: float, width: int = 10) -> str:
    """Render a fixed-width block bar for a 0..1 ratio (clamped)."""
    filled = round(min(max(value, 0.0), 1.0) * width)
    return "█" * filled + "░" * (width - filled)


def short_sha(commit: str | None) -> str:
    """Shorten a commit id for display; missing commits render as 'unknown'."""
    if not commit:
        return "unknown"
    return commit[:SHORT_SHA_LEN]


def plural(count: int, singular: str, plural_form: str | None = None) -> str:
    """Grammatically correct count phrase.

    Examples:
        plural(1, "table") -> "1 table"
        plural(3, "table") -> "3 tables"
    """
    word = singular if count == 1 else (plural_form or f"{singular}s")
    return f"{count} {word}"
