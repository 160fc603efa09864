"""Emit structured observability events for reconcile attempts.

Every attempt logs a ``started`` event, then exactly one of ``completed``,
``skipped``, ``failed`` or ``superseded``. Events are bracket-tagged with the
event type and carry ``key=value`` fields so log pipelines can match them.

Usage
-----
>>> events = ReconcileEventLogger("sync")
>>> events.log_started(key="default/deploy", generation=3)
"""

from __future__ import annotations

import enum
import typing as typ

from gitsync.logging import get_logger, log_error, log_info, log_warning

from .errors import categorize_error

if typ.TYPE_CHECKING:
    import datetime as dt

logger = get_logger(__name__)


class ReconcileEventType(enum.StrEnum):
    """Structured log event suffixes for reconcile attempts."""

    STARTED = "reconcile.started"
    COMPLETED = "reconcile.completed"
    SKIPPED = "reconcile.skipped"
    FAILED = "reconcile.failed"
    SUPERSEDED = "reconcile.superseded"


class ReconcileEventLogger:
    """Emit reconcile lifecycle events for one resource kind."""

    def __init__(self, kind: str) -> None:
        """Initialise with the event prefix, e.g. ``sync`` or ``repository``."""
        self._kind = kind

    def _event(self, event_type: ReconcileEventType) -> str:
        return f"{self._kind}.{event_type}"

    def log_started(self, *, key: str, generation: int) -> None:
        """Log the start of an attempt."""
        log_info(
            logger,
            "[%s] %s=%s generation=%d",
            self._event(ReconcileEventType.STARTED),
            self._kind,
            key,
            generation,
        )

    def log_skipped(self, *, key: str, generation: int, reason: str) -> None:
        """Log an attempt that had nothing to do."""
        log_info(
            logger,
            "[%s] %s=%s generation=%d reason=%s",
            self._event(ReconcileEventType.SKIPPED),
            self._kind,
            key,
            generation,
            reason,
        )

    def log_completed(
        self,
        *,
        key: str,
        generation: int,
        ready: bool,
        reason: str,
        duration: dt.timedelta,
    ) -> None:
        """Log an attempt that reached a verdict and persisted it."""
        log_info(
            logger,
            "[%s] %s=%s generation=%d ready=%s reason=%s duration_seconds=%.3f",
            self._event(ReconcileEventType.COMPLETED),
            self._kind,
            key,
            generation,
            ready,
            reason,
            duration.total_seconds(),
        )

    def log_failed(
        self, *, key: str, reason: str, error: BaseException, stalled: bool = False
    ) -> None:
        """Log a failed step with its error category."""
        log_error(
            logger,
            "[%s] %s=%s reason=%s stalled=%s error_category=%s error_type=%s "
            "error_message=%s",
            self._event(ReconcileEventType.FAILED),
            self._kind,
            key,
            reason,
            stalled,
            categorize_error(error),
            type(error).__name__,
            str(error),
        )

    def log_superseded(self, *, key: str, expected_resource_version: int) -> None:
        """Log an attempt discarded because the object changed underneath it."""
        log_warning(
            logger,
            "[%s] %s=%s expected_resource_version=%d",
            self._event(ReconcileEventType.SUPERSEDED),
            self._kind,
            key,
            expected_resource_version,
        )
