"""Version-control object port and its pygit2 adapter."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

import pygit2

from schemaproof.verify.errors import NotARepositoryError, ObjectNotFoundError


class ObjectStore(Protocol):
    """Reads file content as it existed at a commit."""

    def get_file_at(self, commit: str, path: str) -> str:
        """Return the file text; raise ``ObjectNotFoundError`` if absent."""
        ...


class GitObjectStore:
    """``ObjectStore`` over a local git repository."""

    def __init__(self, repo_path: Path | str) -> None:
        self._path = Path(repo_path)
        try:
            self._repo = pygit2.Repository(str(self._path))
        except pygit2.GitError as e:
            raise NotARepositoryError(str(self._path)) from e

    @property
    def workdir(self) -> Path:
        return Path(self._repo.workdir) if self._repo.workdir else self._path

    def _resolve_commit(self, commit: str) -> pygit2.Commit:
        try:
            obj, _ = self._repo.resolve_refish(commit)
        except (pygit2.GitError, KeyError, ValueError) as e:
            raise ObjectNotFoundError(commit, "", "unknown commit") from e
        if isinstance(obj, pygit2.Tag):
            obj = obj.peel(pygit2.Commit)
        if not isinstance(obj, pygit2.Commit):
            raise ObjectNotFoundError(commit, "", "not a commit")
        return obj

    def get_file_at(self, commit: str, path: str) -> str:
        tree = self._resolve_commit(commit).tree
        normalized = Path(path).as_posix().removeprefix("./")
        try:
            entry = tree[normalized]
        except KeyError as e:
            raise ObjectNotFoundError(commit, path) from e
        blob = self._repo.get(entry.id)
        if not isinstance(blob, pygit2.Blob):
            raise ObjectNotFoundError(commit, path, "not a file")
        return blob.data.decode("utf-8", errors="replace")

