"""SQLAlchemy-backed object store with optimistic concurrency."""

from __future__ import annotations

import typing as typ

import msgspec
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from gitsync.common.time import utcnow
from gitsync.logging import get_logger, log_info
from gitsync.resources.models import (
    ObjectMeta,
    Repository,
    Resource,
    Secret,
    Snapshot,
    Sync,
)

from .errors import ConflictError, ObjectNotFoundError
from .storage import ResourceRecord, init_store_storage

logger = get_logger(__name__)

type SessionFactory = async_sessionmaker[AsyncSession]

_ENCODER = msgspec.json.Encoder()


def _desired_state(resource: Resource) -> bytes:
    """Return the encoding of the user-owned part of ``resource``."""
    if isinstance(resource, Secret):
        return _ENCODER.encode(resource.data)
    return _ENCODER.encode(resource.spec)


def _with_metadata[T: Resource](resource: T, record: ResourceRecord) -> T:
    metadata = ObjectMeta(
        name=record.name,
        namespace=record.namespace,
        generation=record.generation,
        resource_version=record.resource_version,
    )
    return msgspec.structs.replace(resource, metadata=metadata)


def _decode[T: Resource](record: ResourceRecord, kind: type[T]) -> T:
    return _with_metadata(msgspec.json.decode(record.document, type=kind), record)


class SqlObjectStore:
    """Store resources in a single relational table.

    Spec (or secret data) changes bump ``generation``; every write bumps
    ``resource_version``. Status writes are conditional on the version the
    writer read.
    """

    def __init__(self, session_factory: SessionFactory) -> None:
        """Initialise with an async session factory."""
        self._session_factory = session_factory

    @classmethod
    async def from_engine(cls, engine: AsyncEngine) -> SqlObjectStore:
        """Create tables on ``engine`` if needed and return a store."""
        await init_store_storage(engine)
        return cls(async_sessionmaker(engine, expire_on_commit=False))

    @classmethod
    async def from_url(cls, database_url: str) -> tuple[SqlObjectStore, AsyncEngine]:
        """Create an engine for ``database_url`` and a store bound to it.

        The caller owns the returned engine and should dispose of it.
        """
        engine = create_async_engine(database_url)
        return await cls.from_engine(engine), engine

    async def _get[T: Resource](self, kind: type[T], namespace: str, name: str) -> T:
        async with self._session_factory() as session:
            record = await session.scalar(
                select(ResourceRecord).where(
                    ResourceRecord.kind == kind.__name__,
                    ResourceRecord.namespace == namespace,
                    ResourceRecord.name == name,
                )
            )
        if record is None:
            raise ObjectNotFoundError(kind.__name__, f"{namespace}/{name}")
        return _decode(record, kind)

    async def get_sync(self, namespace: str, name: str) -> Sync:
        """Return the Sync ``namespace/name``."""
        return await self._get(Sync, namespace, name)

    async def get_repository(self, namespace: str, name: str) -> Repository:
        """Return the Repository ``namespace/name``."""
        return await self._get(Repository, namespace, name)

    async def get_snapshot(self, namespace: str, name: str) -> Snapshot:
        """Return the Snapshot ``namespace/name``."""
        return await self._get(Snapshot, namespace, name)

    async def get_secret(self, namespace: str, name: str) -> Secret:
        """Return the Secret ``namespace/name``."""
        return await self._get(Secret, namespace, name)

    async def _update_status[T: Sync | Repository](
        self, resource: T, expected_resource_version: int
    ) -> T:
        kind = type(resource).__name__
        metadata = resource.metadata
        new_version = expected_resource_version + 1
        stored = msgspec.structs.replace(
            resource,
            metadata=msgspec.structs.replace(metadata, resource_version=new_version),
        )

        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                update(ResourceRecord)
                .where(
                    ResourceRecord.kind == kind,
                    ResourceRecord.namespace == metadata.namespace,
                    ResourceRecord.name == metadata.name,
                    ResourceRecord.resource_version == expected_resource_version,
                )
                .values(
                    document=_ENCODER.encode(stored).decode("utf-8"),
                    resource_version=new_version,
                    updated_at=utcnow(),
                )
            )
            if result.rowcount == 0:
                exists = await session.scalar(
                    select(ResourceRecord.id).where(
                        ResourceRecord.kind == kind,
                        ResourceRecord.namespace == metadata.namespace,
                        ResourceRecord.name == metadata.name,
                    )
                )
                if exists is None:
                    raise ObjectNotFoundError(kind, metadata.key)
                raise ConflictError(kind, metadata.key, expected_resource_version)
        return stored

    async def update_sync_status(
        self, sync: Sync, expected_resource_version: int
    ) -> Sync:
        """Persist ``sync.status`` if the stored version is unchanged."""
        return await self._update_status(sync, expected_resource_version)

    async def update_repository_status(
        self, repository: Repository, expected_resource_version: int
    ) -> Repository:
        """Persist ``repository.status`` if the stored version is unchanged."""
        return await self._update_status(repository, expected_resource_version)

    async def apply[T: Resource](self, resource: T) -> T:
        """Create or update ``resource`` from a manifest.

        The stored status is kept; a status in ``resource`` is only used when
        the object is new. ``generation`` increases when the spec (or secret
        data) changed, and an unchanged object is not rewritten.
        """
        kind = type(resource).__name__
        metadata = resource.metadata
        async with self._session_factory() as session, session.begin():
            record = await session.scalar(
                select(ResourceRecord).where(
                    ResourceRecord.kind == kind,
                    ResourceRecord.namespace == metadata.namespace,
                    ResourceRecord.name == metadata.name,
                )
            )
            if record is None:
                record = ResourceRecord(
                    kind=kind,
                    namespace=metadata.namespace,
                    name=metadata.name,
                    generation=1,
                    resource_version=1,
                    document="",
                )
                stored = _with_metadata(resource, record)
                record.document = _ENCODER.encode(stored).decode("utf-8")
                session.add(record)
                log_info(logger, "Created %s %s", kind, metadata.key)
                return stored

            current = _decode(record, type(resource))
            if _desired_state(current) == _desired_state(resource):
                return current

            record.generation += 1
            record.resource_version += 1
            if isinstance(resource, Sync | Repository):
                resource = msgspec.structs.replace(
                    resource,
                    status=typ.cast("Sync | Repository", current).status,
                )
            stored = _with_metadata(resource, record)
            record.document = _ENCODER.encode(stored).decode("utf-8")
            log_info(
                logger,
                "Updated %s %s to generation %d",
                kind,
                metadata.key,
                record.generation,
            )
            return stored
