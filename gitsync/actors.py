"""Dramatiq actors that run reconcile attempts.

Each message is one attempt for one object. Dramatiq retries are disabled:
failed attempts are recorded on the object's status and retried only when the
object is enqueued again. An attempt discarded because the object changed
underneath it re-sends its own message so the newer state is reconciled.

Usage
-----
>>> reconcile_sync_job.send("postgresql+asyncpg://...", "default", "deploy")
>>> reconcile_repository_job.send("postgresql+asyncpg://...", "default", "reef")

"""

from __future__ import annotations

import asyncio
import dataclasses
import threading
import typing as typ

import dramatiq
from dramatiq.brokers.stub import StubBroker

from gitsync.config import ControllerConfig
from gitsync.logging import get_logger, log_info
from gitsync.runtime import controller_runtime

if typ.TYPE_CHECKING:
    from gitsync.controller import ReconcileResult

logger = get_logger(__name__)

type ReconcileKind = typ.Literal["sync", "repository"]

_BROKER_LOCK = threading.Lock()


def install_broker(*, allow_stub: bool) -> dramatiq.Broker:
    """Return the broker the reconcile actors are declared on.

    A broker installed by the worker before importing this module is kept.
    Otherwise Dramatiq falls back to RabbitMQ; when its client library is not
    installed, a :class:`StubBroker` takes its place if ``allow_stub`` is set.

    Raises
    ------
    RuntimeError
        If no broker is available and the stub broker is not allowed.

    """
    with _BROKER_LOCK:
        try:
            return dramatiq.get_broker()
        except ImportError as exc:
            if not allow_stub:
                msg = (
                    "No Dramatiq broker configured. Install one before importing "
                    "gitsync.actors or set GITSYNC_ALLOW_STUB_BROKER=1."
                )
                raise RuntimeError(msg) from exc
        broker = StubBroker()
        dramatiq.set_broker(broker)
        log_info(logger, "Using the in-memory Dramatiq broker")
        return broker


# Actors bind to the global broker when they are declared.
install_broker(allow_stub=ControllerConfig.from_env().allow_stub_broker)


async def reconcile_once(
    kind: ReconcileKind, database_url: str, namespace: str, name: str
) -> ReconcileResult:
    """Run one reconcile attempt with a runtime built from the environment."""
    config = ControllerConfig.from_env()
    async with controller_runtime(config, database_url=database_url) as runtime:
        if kind == "sync":
            return await runtime.sync_reconciler.reconcile(namespace, name)
        return await runtime.repository_reconciler.reconcile(namespace, name)


def _run(
    kind: ReconcileKind,
    actor: dramatiq.Actor,
    database_url: str,
    namespace: str,
    name: str,
) -> dict[str, typ.Any]:
    result = asyncio.run(reconcile_once(kind, database_url, namespace, name))
    if result.superseded:
        log_info(
            logger,
            "Re-enqueueing %s %s/%s after a superseded attempt",
            kind,
            namespace,
            name,
        )
        actor.send(database_url, namespace, name)
    return dataclasses.asdict(result)


@dramatiq.actor(max_retries=0)
def reconcile_sync_job(
    database_url: str, namespace: str, name: str
) -> dict[str, typ.Any]:
    """Dramatiq actor running one Sync reconcile attempt.

    Parameters
    ----------
    database_url
        SQLAlchemy URL of the object store.
    namespace
        Namespace of the Sync.
    name
        Name of the Sync.

    Returns
    -------
    dict[str, typing.Any]
        The :class:`~gitsync.controller.ReconcileResult` fields.

    """
    return _run("sync", reconcile_sync_job, database_url, namespace, name)


@dramatiq.actor(max_retries=0)
def reconcile_repository_job(
    database_url: str, namespace: str, name: str
) -> dict[str, typ.Any]:
    """Dramatiq actor running one Repository reconcile attempt."""
    return _run("repository", reconcile_repository_job, database_url, namespace, name)
