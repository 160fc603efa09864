"""Behavioural tests for reconciling syncs into a local remote."""

from __future__ import annotations

import asyncio
import typing as typ

import pytest
from pytest_bdd import given, parsers, scenario, then, when
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from gitsync.conditions import ConditionType, find_condition
from gitsync.controller import SyncReconciler
from gitsync.git import GitPushPipeline
from gitsync.providers import ProviderChain
from gitsync.resources import CommitTemplate
from gitsync.store import SqlObjectStore
from tests.helpers.builders import (
    make_repository,
    make_secret,
    make_snapshot,
    make_sync,
    tar_bytes,
)
from tests.helpers.fakes import CountingPipeline, FakeBlobStore, FakeProvider
from tests.helpers.git_repos import branches, commit_count, list_files

if typ.TYPE_CHECKING:
    from pathlib import Path

    from gitsync.controller import ReconcileResult
    from gitsync.resources import Sync

GENERATED_BRANCH = "branch-1700000000-cafe"


class SyncContext(typ.TypedDict, total=False):
    """Shared state used by BDD steps."""

    store: SqlObjectStore
    work_dir: Path
    remote: Path
    blob_store: FakeBlobStore
    pipeline: CountingPipeline
    provider: FakeProvider
    result: ReconcileResult


@scenario(
    "../sync_reconcile.feature",
    "A snapshot is pushed once and later reconciles do nothing",
)
def test_sync_push_is_idempotent() -> None:
    """Behavioural test wrapper for pytest-bdd."""


@scenario(
    "../sync_reconcile.feature",
    "An automatic pull request is opened from a generated branch",
)
def test_sync_opens_pull_request() -> None:
    """Behavioural test wrapper for pytest-bdd."""


@scenario(
    "../sync_reconcile.feature",
    "An archive that escapes the sub path pushes nothing",
)
def test_sync_rejects_traversal_archive() -> None:
    """Behavioural test wrapper for pytest-bdd."""


@pytest.fixture
def sync_context(tmp_path: Path) -> typ.Iterator[SyncContext]:
    """Provision a fresh object store and scratch directory per scenario."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'bdd-sync.db'}", poolclass=NullPool
    )
    store = asyncio.run(SqlObjectStore.from_engine(engine))

    yield {
        "store": store,
        "work_dir": tmp_path / "work",
        "blob_store": FakeBlobStore(tar_bytes({"index.html": "<h1>frontend</h1>\n"})),
        "provider": FakeProvider("github"),
    }

    asyncio.run(engine.dispose())


def _stored_sync(context: SyncContext) -> Sync:
    return asyncio.run(context["store"].get_sync("default", "sync"))


def _store_objects(context: SyncContext, sync: Sync, digest: str) -> None:
    store = context["store"]

    async def _apply() -> None:
        await store.apply(make_snapshot(digest=digest))
        await store.apply(make_repository())
        await store.apply(make_secret())
        await store.apply(sync)

    asyncio.run(_apply())


@given("a remote repository with a main branch")
def remote_repository(sync_context: SyncContext, bare_repository: Path) -> None:
    """Record the seeded bare repository and route pushes to it."""
    sync_context["remote"] = bare_repository
    sync_context["pipeline"] = CountingPipeline(
        delegate=GitPushPipeline(
            sync_context["blob_store"],
            work_dir=sync_context["work_dir"],
            git_timeout_s=30,
        ),
        url=str(bare_repository),
    )


@given(
    parsers.parse(
        'a stored sync delivering snapshot "{digest}" into "{sub_path}" '
        'on branch "{branch}"'
    )
)
def stored_direct_sync(
    sync_context: SyncContext, digest: str, sub_path: str, branch: str
) -> None:
    """Store a sync that pushes straight to ``branch``."""
    template = CommitTemplate(
        name="Deploy Bot",
        email="bot@acme.org",
        message="deploy frontend",
        target_branch=branch,
    )
    _store_objects(
        sync_context, make_sync(commit_template=template, sub_path=sub_path), digest
    )


@given(
    parsers.parse(
        'a stored sync delivering snapshot "{digest}" into "{sub_path}" '
        "with automatic pull requests"
    )
)
def stored_pull_request_sync(
    sync_context: SyncContext, digest: str, sub_path: str
) -> None:
    """Store a sync that proposes its push through a pull request."""
    template = CommitTemplate(name="Deploy Bot", email="bot@acme.org")
    sync = make_sync(
        commit_template=template,
        sub_path=sub_path,
        automatic_pull_request_creation=True,
    )
    _store_objects(sync_context, sync, digest)


@given(parsers.parse('the snapshot archive contains the entry "{member}"'))
def traversal_archive(sync_context: SyncContext, member: str) -> None:
    """Serve an archive with a hostile member name."""
    sync_context["blob_store"].data = tar_bytes(
        {"index.html": "ok\n", member: "escaped\n"}
    )


def _reconcile(sync_context: SyncContext) -> None:
    reconciler = SyncReconciler(
        sync_context["store"],
        sync_context["pipeline"],
        ProviderChain([sync_context["provider"]]),
        branch_namer=lambda: GENERATED_BRANCH,
    )
    sync_context["result"] = asyncio.run(reconciler.reconcile("default", "sync"))


@when("the sync is reconciled")
def reconcile_sync(sync_context: SyncContext) -> None:
    """Run one reconcile attempt."""
    _reconcile(sync_context)


@when("the sync is reconciled again")
def reconcile_sync_again(sync_context: SyncContext) -> None:
    """Run a second attempt against the stored status."""
    _reconcile(sync_context)


@then(parsers.parse('branch "{branch}" of the remote contains "{path}"'))
def remote_contains(sync_context: SyncContext, branch: str, path: str) -> None:
    """The pushed branch carries the extracted file."""
    files = list_files(sync_context["remote"], branch)
    assert path in files, f"expected {path} on {branch}, found {files}"


@then(parsers.parse('the sync is Ready with digest "{digest}"'))
def sync_ready(sync_context: SyncContext, digest: str) -> None:
    """Ready is True and the digest is recorded for the generation."""
    assert sync_context["result"].ready, sync_context["result"].message
    sync = _stored_sync(sync_context)
    assert sync.status.digest == digest
    assert sync.status.observed_generation == sync.metadata.generation


@then("the pipeline ran once and no provider was called")
def no_repeat_work(sync_context: SyncContext) -> None:
    """The second attempt was a no-op."""
    assert len(sync_context["pipeline"].calls) == 1, "expected a single push"
    assert sync_context["provider"].total_calls == 0


@then(parsers.parse('the remote has branch "{branch}"'))
def remote_has_branch(sync_context: SyncContext, branch: str) -> None:
    """The generated branch was pushed beside the base branch."""
    assert branch in branches(sync_context["remote"])


@then(parsers.parse('a pull request was requested from "{branch}"'))
def pull_request_requested(sync_context: SyncContext, branch: str) -> None:
    """The provider saw one pull request from the pushed branch."""
    assert sync_context["provider"].pull_request_branches == [branch]


@then(parsers.parse("the sync records pull request {number:d}"))
def pull_request_recorded(sync_context: SyncContext, number: int) -> None:
    """The provider's pull request id is stored on the status."""
    assert sync_context["result"].ready, sync_context["result"].message
    assert _stored_sync(sync_context).status.pull_request_id == number


@then(parsers.parse('the sync is not Ready with reason "{reason}"'))
def sync_not_ready(sync_context: SyncContext, reason: str) -> None:
    """The failure reason is on the stored Ready condition."""
    assert sync_context["result"].ready is False
    ready = find_condition(
        _stored_sync(sync_context).status.conditions, ConditionType.READY
    )
    assert ready is not None
    assert (ready.status, ready.reason) == ("False", reason)


@then(parsers.parse('branch "{branch}" of the remote still has only its seed commit'))
def remote_untouched(sync_context: SyncContext, branch: str) -> None:
    """Nothing was pushed."""
    assert commit_count(sync_context["remote"], branch) == 1
