"""Behaviour tests for the gitsync command-line entry point."""
# ruff: noqa: D103

from __future__ import annotations

import asyncio
import typing as typ

import pytest

from gitsync.cli import main
from gitsync.store import SqlObjectStore

if typ.TYPE_CHECKING:
    from pathlib import Path

_MANIFEST = """
kind: Snapshot
metadata:
  name: frontend
spec:
  identity: acme.org/frontend
  digest: sha256:0123
---
kind: Sync
metadata:
  name: deploy
spec:
  snapshotRef:
    name: frontend
  repositoryRef:
    name: site
  commitTemplate:
    name: Deploy Bot
    email: bot@acme.org
    targetBranch: main
"""


@pytest.fixture(autouse=True)
def _no_handler_setup(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("gitsync.logging.basicConfig", lambda **_: None)


@pytest.fixture
def manifest(tmp_path: Path) -> Path:
    path = tmp_path / "manifest.yaml"
    path.write_text(_MANIFEST, encoding="utf-8")
    return path


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"


def test_validate_reports_resource_count(
    manifest: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    assert main(["validate", str(manifest)]) == 0
    assert "is valid (2 resources)" in capsys.readouterr().out


def test_validate_lists_every_issue(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    invalid = tmp_path / "invalid.yaml"
    invalid.write_text(
        _MANIFEST.replace("bot@acme.org", "not-an-email").replace(
            "targetBranch: main", "targetBranch: main\n  subPath: ../escape"
        ),
        encoding="utf-8",
    )

    assert main(["validate", str(invalid)]) == 1

    out = capsys.readouterr().out
    assert "Manifest validation failed" in out
    assert "is not an email" in out
    assert "must stay inside the repository" in out


def test_apply_stores_resources(
    manifest: Path, database_url: str, capsys: pytest.CaptureFixture[str]
) -> None:
    assert main(["--database-url", database_url, "apply", str(manifest)]) == 0
    assert "sync default/deploy applied (generation 1)" in capsys.readouterr().out

    async def _load() -> str:
        store, engine = await SqlObjectStore.from_url(database_url)
        try:
            sync = await store.get_sync("default", "deploy")
        finally:
            await engine.dispose()
        return sync.spec.snapshot_ref.name

    assert asyncio.run(_load()) == "frontend"


def test_apply_requires_database_url(
    manifest: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    assert main(["apply", str(manifest)]) == 2
    assert "GITSYNC_DATABASE_URL" in capsys.readouterr().out


def test_reconcile_requires_registry(
    database_url: str, capsys: pytest.CaptureFixture[str]
) -> None:
    assert main(["--database-url", database_url, "reconcile", "sync", "deploy"]) == 2
    assert "GITSYNC_REGISTRY_URL is required" in capsys.readouterr().out


def test_reconcile_missing_object_is_not_ready(
    monkeypatch: pytest.MonkeyPatch,
    database_url: str,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.setenv("GITSYNC_REGISTRY_URL", "https://registry.invalid")
    monkeypatch.setenv("GITSYNC_DATABASE_URL", database_url)

    assert main(["reconcile", "sync", "default/absent"]) == 1

    out = capsys.readouterr().out
    assert out.startswith("sync default/absent: not ready (NotFound)")


def test_invalid_timeout_is_a_usage_error(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("GITSYNC_HTTP_TIMEOUT_S", "never")

    assert main(["reconcile", "repository", "default/site"]) == 2
    assert "Invalid configuration" in capsys.readouterr().out
