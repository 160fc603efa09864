"""Object store errors."""

from __future__ import annotations


class StoreError(RuntimeError):
    """Base class for object store failures."""


class ObjectNotFoundError(StoreError, LookupError):
    """Raised when a requested object does not exist."""

    def __init__(self, kind: str, key: str) -> None:
        """Initialise with the missing object's kind and ``namespace/name`` key."""
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} {key} not found")


class ConflictError(StoreError):
    """Raised when a write carries a stale ``resource_version``."""

    def __init__(self, kind: str, key: str, expected: int) -> None:
        """Initialise with the object identity and the version the writer held."""
        self.kind = kind
        self.key = key
        self.expected = expected
        super().__init__(
            f"{kind} {key} was modified concurrently "
            f"(expected resource version {expected})"
        )
