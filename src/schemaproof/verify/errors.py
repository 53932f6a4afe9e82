"""Object store error types."""


class ObjectStoreError(Exception):
    """Base error for version-control lookups."""

    pass


class NotARepositoryError(ObjectStoreError):
    """Path is not a git repository."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Not a git repository: {path}")
        self.path = path


class ObjectNotFoundError(ObjectStoreError):
    """Commit or path does not exist in the object store."""

    def __init__(self, commit: str, path: str, reason: str = "not found") -> None:
        super().__init__(f"{commit}:{path}: {reason}")
        self.commit = commit
        self.path = path
        self.reason = reason
