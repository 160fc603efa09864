"""Unit tests for the SQLAlchemy object store."""

from __future__ import annotations

import datetime as dt
import typing as typ

import msgspec
import pytest
from sqlalchemy import select
from sqlalchemy.exc import StatementError
from sqlalchemy.ext.asyncio import async_sessionmaker

from gitsync.conditions import mark_ready
from gitsync.resources import SyncStatus
from gitsync.store import ConflictError, ObjectNotFoundError, ResourceRecord
from tests.helpers.builders import make_secret, make_sync

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from gitsync.store import SqlObjectStore


class TestApply:
    """Manifest application semantics."""

    @pytest.mark.asyncio
    async def test_new_object_starts_at_generation_one(
        self, sql_store: SqlObjectStore
    ) -> None:
        """Created objects get generation 1 and resource version 1."""
        stored = await sql_store.apply(make_sync())

        assert (stored.metadata.generation, stored.metadata.resource_version) == (1, 1)
        fetched = await sql_store.get_sync("default", "sync")
        assert fetched == stored

    @pytest.mark.asyncio
    async def test_unchanged_spec_is_not_rewritten(
        self, sql_store: SqlObjectStore
    ) -> None:
        """Re-applying the same manifest leaves versions alone."""
        await sql_store.apply(make_sync())

        again = await sql_store.apply(make_sync())

        assert (again.metadata.generation, again.metadata.resource_version) == (1, 1)

    @pytest.mark.asyncio
    async def test_spec_change_bumps_generation_and_keeps_status(
        self, sql_store: SqlObjectStore
    ) -> None:
        """A changed spec is a new generation; the stored status survives."""
        stored = await sql_store.apply(make_sync())
        stored.status.digest = "abc123"
        await sql_store.update_sync_status(stored, stored.metadata.resource_version)

        changed = make_sync(sub_path="deploy")
        changed = msgspec.structs.replace(changed, status=SyncStatus(digest="ignored"))
        updated = await sql_store.apply(changed)

        assert updated.metadata.generation == 2
        assert updated.metadata.resource_version == 3
        assert updated.spec.sub_path == "deploy"
        assert updated.status.digest == "abc123"

    @pytest.mark.asyncio
    async def test_secret_data_change_bumps_generation(
        self, sql_store: SqlObjectStore
    ) -> None:
        """Secret data counts as desired state."""
        await sql_store.apply(make_secret())

        updated = await sql_store.apply(make_secret(data={"token": "rotated"}))

        assert updated.metadata.generation == 2
        assert (await sql_store.get_secret("default", "creds")).data == {
            "token": "rotated"
        }


class TestStatusWrites:
    """Optimistic-concurrency status updates."""

    @pytest.mark.asyncio
    async def test_write_increments_resource_version(
        self, sql_store: SqlObjectStore
    ) -> None:
        """A write with the current version succeeds and bumps it."""
        stored = await sql_store.apply(make_sync())
        stored.status.digest = "abc123"

        written = await sql_store.update_sync_status(stored, 1)

        assert written.metadata.resource_version == 2
        fetched = await sql_store.get_sync("default", "sync")
        assert fetched.status.digest == "abc123"
        assert fetched.metadata.generation == 1

    @pytest.mark.asyncio
    async def test_stale_version_conflicts(self, sql_store: SqlObjectStore) -> None:
        """A second writer holding the old version is rejected."""
        stored = await sql_store.apply(make_sync())
        await sql_store.update_sync_status(stored, 1)

        with pytest.raises(ConflictError) as excinfo:
            await sql_store.update_sync_status(stored, 1)

        assert excinfo.value.key == "default/sync"
        fetched = await sql_store.get_sync("default", "sync")
        assert fetched.metadata.resource_version == 2

    @pytest.mark.asyncio
    async def test_deleted_object_is_not_found(
        self, sql_store: SqlObjectStore
    ) -> None:
        """Writing the status of a missing object raises ObjectNotFoundError."""
        with pytest.raises(ObjectNotFoundError):
            await sql_store.update_sync_status(make_sync(), 1)

    @pytest.mark.asyncio
    async def test_condition_timestamps_round_trip(
        self, sql_store: SqlObjectStore
    ) -> None:
        """Condition transition times come back timezone-aware and equal."""
        stored = await sql_store.apply(make_sync())
        when = dt.datetime(2024, 6, 1, 12, 0, tzinfo=dt.UTC)
        mark_ready(stored.status.conditions, 1, "done")
        stored.status.conditions[0].last_transition_time = when

        await sql_store.update_sync_status(stored, 1)

        fetched = await sql_store.get_sync("default", "sync")
        assert fetched.status.conditions[0].last_transition_time == when


@pytest.mark.asyncio
async def test_getters_raise_for_missing_objects(sql_store: SqlObjectStore) -> None:
    """Missing objects raise ObjectNotFoundError naming the kind."""
    with pytest.raises(ObjectNotFoundError, match="Snapshot default/absent"):
        await sql_store.get_snapshot("default", "absent")


class TestUTCDateTime:
    """Record timestamps are stored and read as UTC."""

    @pytest.mark.asyncio
    async def test_record_timestamps_are_aware(
        self, sql_store: SqlObjectStore, engine: AsyncEngine
    ) -> None:
        """SQLite results are returned with UTC tzinfo."""
        await sql_store.apply(make_sync())
        session_factory = async_sessionmaker(engine, expire_on_commit=False)

        async with session_factory() as session:
            record = (await session.execute(select(ResourceRecord))).scalar_one()

        assert record.created_at.utcoffset() == dt.timedelta(0)

    @pytest.mark.asyncio
    async def test_naive_datetimes_are_rejected(
        self, sql_store: SqlObjectStore, engine: AsyncEngine
    ) -> None:
        """Binding a naive datetime fails before it reaches the database."""
        session_factory = async_sessionmaker(engine, expire_on_commit=False)

        with pytest.raises(StatementError) as excinfo:
            async with session_factory() as session, session.begin():
                session.add(
                    ResourceRecord(
                        kind="Sync",
                        namespace="default",
                        name="naive",
                        document="{}",
                        created_at=dt.datetime(2024, 6, 1, 12, 0),  # noqa: DTZ001
                    )
                )

        assert isinstance(excinfo.value.__cause__, ValueError)
