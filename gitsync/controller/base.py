"""Outcome type and status helpers shared by the reconcilers."""

from __future__ import annotations

import dataclasses
import datetime as dt
import time
import typing as typ

from gitsync.conditions import (
    ConditionType,
    Reason,
    find_condition,
    mark_not_ready,
    mark_ready,
    mark_stalled,
)
from gitsync.logging import get_logger, log_info
from gitsync.store.errors import ConflictError, ObjectNotFoundError

from .observability import ReconcileEventLogger

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from gitsync.resources.models import Repository, Sync
    from gitsync.store.protocol import ObjectStore

logger = get_logger(__name__)


@dataclasses.dataclass(frozen=True, slots=True)
class ReconcileResult:
    """Verdict of one reconcile attempt.

    Attributes
    ----------
    ready
        The Ready condition is True after the attempt.
    stalled
        The attempt hit a terminal configuration error.
    superseded
        The object changed during the attempt and nothing was persisted.
    reason
        Condition reason describing the verdict.
    message
        Human-readable detail.

    """

    ready: bool
    stalled: bool = False
    superseded: bool = False
    reason: str = ""
    message: str = ""

    @classmethod
    def not_found(cls, kind: str, key: str) -> ReconcileResult:
        """Return the result for an object that no longer exists."""
        return cls(ready=False, reason="NotFound", message=f"{kind} {key} not found")


class _Reconciler[T: Sync | Repository]:
    """Bookkeeping shared by the sync and repository reconcilers."""

    kind: typ.ClassVar[str]

    def __init__(self, store: ObjectStore) -> None:
        self._store = store
        self._events = ReconcileEventLogger(self.kind.lower())

    async def _write_status(self, obj: T, expected_resource_version: int) -> T:
        raise NotImplementedError

    def _ready(self, obj: T, message: str) -> ReconcileResult:
        generation = obj.metadata.generation
        mark_ready(obj.status.conditions, generation, message)
        obj.status.observed_generation = generation
        return ReconcileResult(ready=True, reason=Reason.SUCCEEDED, message=message)

    def _not_ready(self, obj: T, reason: str, error: BaseException) -> ReconcileResult:
        message = str(error)
        mark_not_ready(obj.status.conditions, obj.metadata.generation, reason, message)
        self._events.log_failed(key=obj.metadata.key, reason=reason, error=error)
        return ReconcileResult(ready=False, reason=reason, message=message)

    def _stalled(self, obj: T, reason: str, error: BaseException) -> ReconcileResult:
        generation = obj.metadata.generation
        message = str(error)
        mark_stalled(obj.status.conditions, generation, reason, message)
        obj.status.observed_generation = generation
        self._events.log_failed(
            key=obj.metadata.key, reason=reason, error=error, stalled=True
        )
        return ReconcileResult(
            ready=False, stalled=True, reason=reason, message=message
        )

    async def _persist(
        self, obj: T, result: ReconcileResult, expected_resource_version: int
    ) -> ReconcileResult:
        """Write the attempt's status once; a stale version discards it."""
        try:
            await self._write_status(obj, expected_resource_version)
        except (ConflictError, ObjectNotFoundError):
            self._events.log_superseded(
                key=obj.metadata.key,
                expected_resource_version=expected_resource_version,
            )
            return dataclasses.replace(result, superseded=True)
        return result

    async def _run_attempt(
        self,
        obj: T,
        attempt: cabc.Callable[[T], cabc.Awaitable[ReconcileResult]],
    ) -> ReconcileResult:
        """Run ``attempt`` and persist its outcome.

        Unexpected exceptions are recorded as ``ReconciliationFailed`` and
        re-raised after the status write. Cancellation skips the write.
        """
        key = obj.metadata.key
        generation = obj.metadata.generation
        expected = obj.metadata.resource_version
        started = time.monotonic()
        self._events.log_started(key=key, generation=generation)

        try:
            result = await attempt(obj)
        except Exception as exc:
            failed = self._not_ready(obj, Reason.RECONCILIATION_FAILED, exc)
            await self._persist(obj, failed, expected)
            raise

        result = await self._persist(obj, result, expected)
        if not result.superseded:
            self._events.log_completed(
                key=key,
                generation=generation,
                ready=result.ready,
                reason=result.reason,
                duration=_elapsed(started),
            )
        return result

    def _skip(self, obj: T, reason: str) -> ReconcileResult:
        self._events.log_skipped(
            key=obj.metadata.key, generation=obj.metadata.generation, reason=reason
        )
        ready = find_condition(obj.status.conditions, ConditionType.READY)
        return ReconcileResult(
            ready=True,
            reason=ready.reason if ready else Reason.SUCCEEDED,
            message=ready.message if ready else "",
        )

    def _log_missing(self, namespace: str, name: str) -> ReconcileResult:
        key = f"{namespace}/{name}"
        log_info(logger, "%s %s no longer exists; nothing to reconcile", self.kind, key)
        return ReconcileResult.not_found(self.kind, key)


def _elapsed(started: float) -> dt.timedelta:
    return dt.timedelta(seconds=time.monotonic() - started)
