"""Object store interface used by the reconcilers."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    from gitsync.resources.models import Repository, Secret, Snapshot, Sync


class ObjectStore(typ.Protocol):
    """Read resources and write their status.

    Getters raise :class:`~gitsync.store.errors.ObjectNotFoundError` for
    missing objects. Status writers raise
    :class:`~gitsync.store.errors.ConflictError` when the stored
    ``resource_version`` no longer equals ``expected_resource_version`` and
    return the object as stored, with its new version.
    """

    async def get_sync(self, namespace: str, name: str) -> Sync:
        """Return the Sync ``namespace/name``."""
        ...

    async def get_repository(self, namespace: str, name: str) -> Repository:
        """Return the Repository ``namespace/name``."""
        ...

    async def get_snapshot(self, namespace: str, name: str) -> Snapshot:
        """Return the Snapshot ``namespace/name``."""
        ...

    async def get_secret(self, namespace: str, name: str) -> Secret:
        """Return the Secret ``namespace/name``."""
        ...

    async def update_sync_status(
        self, sync: Sync, expected_resource_version: int
    ) -> Sync:
        """Persist ``sync.status``."""
        ...

    async def update_repository_status(
        self, repository: Repository, expected_resource_version: int
    ) -> Repository:
        """Persist ``repository.status``."""
        ...
