"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import os
import typing as typ

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from gitsync.store import SqlObjectStore
from tests.helpers.git_repos import init_bare_repository

if typ.TYPE_CHECKING:
    from pathlib import Path

# Declaring the reconcile actors needs a broker; tests use the in-memory one.
os.environ.setdefault("GITSYNC_ALLOW_STUB_BROKER", "1")


@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> typ.AsyncIterator[AsyncEngine]:
    """Yield an async engine on a fresh SQLite database."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'gitsync.db'}")
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def sql_store(engine: AsyncEngine) -> SqlObjectStore:
    """Return an object store with its tables created."""
    return await SqlObjectStore.from_engine(engine)


@pytest.fixture
def bare_repository(tmp_path: Path) -> Path:
    """Return a bare repository with a seed commit on ``main``."""
    root = tmp_path / "remote"
    root.mkdir()
    return init_bare_repository(root)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Clear gitsync environment variables so tests start from defaults."""
    for name in (
        "GITSYNC_WORK_DIR",
        "GITSYNC_GIT_TIMEOUT_S",
        "GITSYNC_HTTP_TIMEOUT_S",
        "GITSYNC_REGISTRY_URL",
        "GITSYNC_REGISTRY_TOKEN",
        "GITSYNC_DATABASE_URL",
        "GITSYNC_LOG_LEVEL",
        "GITSYNC_ALLOW_STUB_BROKER",
    ):
        monkeypatch.delenv(name, raising=False)
