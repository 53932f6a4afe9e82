"""Serializable evidence records: citations, issues, locations."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from schemaproof.core.formatting import short_sha

UNCOMMITTED = "uncommitted"


@dataclass(frozen=True, slots=True)
class Location:
    """Where a generator emitted an artifact."""

    file: str
    lines: str = ""

    @classmethod
    def coerce(cls, value: Location | Mapping[str, Any]) -> Location:
        if isinstance(value, Location):
            return value
        lines = value.get("lines", value.get("lineRange", ""))
        if isinstance(lines, list | tuple) and len(lines) == 2:
            lines = f"{lines[0]}-{lines[1]}"
        return cls(file=str(value["file"]), lines=str(lines))


@dataclass(frozen=True, slots=True)
class Citation:
    """One artifact location stamped with the commit it was generated under."""

    file: str
    lines: str
    commit: str
    timestamp: str

    def format(self) -> str:
        """'schema.sql:10-12@abc1234'."""
        return f"{self.file}:{self.lines}@{short_sha(self.commit)}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.file,
            "lines": self.lines,
            "commit": self.commit,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Citation:
        # Older bundles stamp citations with "sha"
        return cls(
            file=str(data.get("file", "")),
            lines=str(data.get("lines", data.get("lineRange", ""))),
            commit=str(data.get("commit") or data.get("sha") or UNCOMMITTED),
            timestamp=str(data.get("timestamp", "")),
        )


@dataclass(frozen=True, slots=True)
class Issue:
    """An error or warning recorded against a schema element."""

    message: str
    type: str = "validation"
    severity: str = "error"
    context: dict[str, Any] = field(default_factory=dict)
    timestamp: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "type": self.type,
            "severity": self.severity,
            "context": dict(self.context),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, severity: str = "error") -> Issue:
        return cls(
            message=str(data.get("message", "")),
            type=str(data.get("type") or "validation"),
            severity=str(data.get("severity") or severity),
            context=dict(data.get("context") or {}),
            timestamp=str(data.get("timestamp", "")),
        )
