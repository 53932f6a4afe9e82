"""Fixtures for verification tests."""

import threading
from collections.abc import Callable, Collection, Generator
from pathlib import Path

import pygit2
import pytest

from schemaproof.verify.errors import ObjectNotFoundError

SCHEMA_SQL = "CREATE TABLE users (id uuid primary key, email text unique);\n"


@pytest.fixture
def temp_repo(tmp_path: Path) -> Generator[pygit2.Repository, None, None]:
    """Create a temporary git repository with generated artifacts committed."""
    repo_path = tmp_path / "repo"
    (repo_path / "gen").mkdir(parents=True)

    repo = pygit2.init_repository(str(repo_path), initial_head="main")

    # Configure user
    repo.config["user.name"] = "Test User"
    repo.config["user.email"] = "test@example.com"

    (repo_path / "README.md").write_text("# Test Repo\n")
    (repo_path / "gen" / "schema.sql").write_text(SCHEMA_SQL)
    repo.index.add("README.md")
    repo.index.add("gen/schema.sql")
    repo.index.write()
    tree = repo.index.write_tree()
    sig = pygit2.Signature("Test User", "test@example.com")
    repo.create_commit("refs/heads/main", sig, sig, "Generate schema", tree, [])
    repo.set_head("refs/heads/main")

    yield repo


class FakeObjectStore:
    """In-memory store keyed by (commit, path); records every lookup."""

    def __init__(self, files: dict[tuple[str, str], str] | None = None) -> None:
        self.files = dict(files or {})
        self.calls: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def get_file_at(self, commit: str, path: str) -> str:
        with self._lock:
            self.calls.append((commit, path))
        try:
            return self.files[(commit, path)]
        except KeyError as e:
            raise ObjectNotFoundError(commit, path) from e


class HangingObjectStore(FakeObjectStore):
    """Blocks lookups of any path in ``hang_paths`` until released."""

    def __init__(
        self, files: dict[tuple[str, str], str], hang_paths: Collection[str]
    ) -> None:
        super().__init__(files)
        self.hang_paths = frozenset(hang_paths)
        self.release = threading.Event()

    def get_file_at(self, commit: str, path: str) -> str:
        if path in self.hang_paths:
            self.release.wait(timeout=10)
        return super().get_file_at(commit, path)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    root = tmp_path / "workspace"
    (root / "gen").mkdir(parents=True)
    return root


@pytest.fixture
def make_store() -> Callable[..., FakeObjectStore]:
    """Build a fake store from ``{(commit, path): text}``."""
    return FakeObjectStore


@pytest.fixture
def make_hanging_store() -> Generator[Callable[..., HangingObjectStore], None, None]:
    """Build a store whose ``hang_paths`` lookups block until teardown."""
    created: list[HangingObjectStore] = []

    def factory(
        files: dict[tuple[str, str], str], hang_paths: Collection[str]
    ) -> HangingObjectStore:
        store = HangingObjectStore(files, hang_paths)
        created.append(store)
        return store

    yield factory
    for store in created:
        store.release.set()
