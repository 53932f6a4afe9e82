"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages,
and provides shared schema / ledger fixtures.
"""

import sys
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

# Insert local src directory at the beginning of sys.path
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

# Force reimport of schemaproof modules if already imported
for module_name in list(sys.modules.keys()):
    if module_name.startswith("schemaproof"):
        del sys.modules[module_name]

from schemaproof.evidence.ledger import EvidenceLedger  # noqa: E402
from schemaproof.schema.models import Schema  # noqa: E402

FIXED_NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC)
COMMIT = "a1b2c3d4e5f60718293a4b5c6d7e8f9012345678"


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def ledger(fixed_clock: Callable[[], datetime]) -> EvidenceLedger:
    """Empty ledger stamped with a known commit."""
    return EvidenceLedger(COMMIT, clock=fixed_clock)


@pytest.fixture
def user_schema_data() -> dict[str, Any]:
    return {
        "tables": {
            "User": {
                "directives": {"@table": {}, "@rls": {}},
                "fields": {
                    "id": {"type": "ID", "nonNull": True, "directives": {"@primaryKey": {}}},
                    "email": {"type": "String", "nonNull": True, "directives": {"@unique": {}}},
                    "password": {"type": "String", "directives": {"@sensitive": {}}},
                    "theme": {"type": "String"},
                    "posts": {"type": "Post", "list": True, "virtual": True},
                },
            },
            "Post": {
                "fields": {
                    "id": {"type": "ID", "directives": {"@primaryKey": {}}},
                    "author_id": {
                        "type": "ID",
                        "directives": {"@foreignKey": {"ref": "User.id"}},
                    },
                    "legacy": {"type": "String", "directives": {"@deprecated": {}}},
                },
            },
        }
    }


@pytest.fixture
def user_schema(user_schema_data: dict[str, Any]) -> Schema:
    return Schema.from_dict(user_schema_data)
