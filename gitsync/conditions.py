"""Condition bookkeeping for resource status.

Conditions are kept as an ordered list on each status object. Setting a
condition replaces any existing entry of the same type in place, and the
transition time only moves when the status value actually changes, so
repeated reconciliations that reach the same verdict leave the list stable.
"""

from __future__ import annotations

import datetime as dt  # noqa: TC003
import enum
import typing as typ

from gitsync.common.time import utcnow
from gitsync.resources.models import Condition

type ConditionStatus = typ.Literal["True", "False", "Unknown"]


class ConditionType(enum.StrEnum):
    """Condition types written by the reconcilers."""

    READY = "Ready"
    RECONCILING = "Reconciling"
    STALLED = "Stalled"


class Reason(enum.StrEnum):
    """Stable, machine-matchable condition reasons."""

    PROGRESSING = "Progressing"
    PROGRESSING_WITH_RETRY = "ProgressingWithRetry"
    SUCCEEDED = "Succeeded"
    SNAPSHOT_GET_FAILED = "SnapshotGetFailed"
    REPOSITORY_GET_FAILED = "RepositoryGetFailed"
    CREDENTIALS_NOT_FOUND = "CredentialsNotFound"
    TARGET_BRANCH_MISSING = "TargetBranchMissing"
    INVALID_CONFIGURATION = "InvalidConfiguration"
    INVALID_REPOSITORY_POLICY = "InvalidRepositoryPolicy"
    UNSUPPORTED_PROVIDER = "UnsupportedProvider"
    GIT_REPOSITORY_PUSH_FAILED = "GitRepositoryPushFailed"
    CREATE_PULL_REQUEST_FAILED = "CreatePullRequestFailed"
    REPOSITORY_CREATE_FAILED = "RepositoryCreateFailed"
    UPDATING_BRANCH_PROTECTION_FAILED = "UpdatingBranchProtectionFailed"
    RECONCILIATION_FAILED = "ReconciliationFailed"


def find_condition(conditions: list[Condition], type_: str) -> Condition | None:
    """Return the condition of ``type_`` or ``None`` when absent."""
    for condition in conditions:
        if condition.type == type_:
            return condition
    return None


def is_true(conditions: list[Condition], type_: str) -> bool:
    """Return whether the condition of ``type_`` is present with status True."""
    condition = find_condition(conditions, type_)
    return condition is not None and condition.status == "True"


def set_condition(  # noqa: PLR0913
    conditions: list[Condition],
    type_: str,
    status: ConditionStatus,
    reason: str,
    message: str,
    *,
    observed_generation: int,
    now: dt.datetime | None = None,
) -> Condition:
    """Insert or update the condition of ``type_``.

    ``last_transition_time`` is preserved when ``status`` is unchanged.
    """
    existing = find_condition(conditions, type_)
    if existing is None:
        condition = Condition(
            type=type_,
            status=status,
            reason=reason,
            message=message,
            last_transition_time=now or utcnow(),
            observed_generation=observed_generation,
        )
        conditions.append(condition)
        return condition

    if existing.status != status:
        existing.last_transition_time = now or utcnow()
    existing.status = status
    existing.reason = reason
    existing.message = message
    existing.observed_generation = observed_generation
    return existing


def remove_condition(conditions: list[Condition], type_: str) -> None:
    """Drop every condition of ``type_``."""
    conditions[:] = [c for c in conditions if c.type != type_]


def mark_reconciling(
    conditions: list[Condition], generation: int, message: str
) -> None:
    """Record the start of an attempt and drop any earlier Stalled verdict."""
    set_condition(
        conditions,
        ConditionType.RECONCILING,
        "True",
        Reason.PROGRESSING,
        message,
        observed_generation=generation,
    )
    remove_condition(conditions, ConditionType.STALLED)


def mark_not_ready(
    conditions: list[Condition], generation: int, reason: str, message: str
) -> None:
    """Record a retryable failure.

    Ready turns False and the Reconciling reason becomes
    ``ProgressingWithRetry``; the object may be retried by a later trigger.
    """
    set_condition(
        conditions,
        ConditionType.READY,
        "False",
        reason,
        message,
        observed_generation=generation,
    )
    set_condition(
        conditions,
        ConditionType.RECONCILING,
        "True",
        Reason.PROGRESSING_WITH_RETRY,
        message,
        observed_generation=generation,
    )
    remove_condition(conditions, ConditionType.STALLED)


def mark_stalled(
    conditions: list[Condition], generation: int, reason: str, message: str
) -> None:
    """Record a terminal failure that needs a spec change to clear."""
    set_condition(
        conditions,
        ConditionType.READY,
        "False",
        reason,
        message,
        observed_generation=generation,
    )
    set_condition(
        conditions,
        ConditionType.STALLED,
        "True",
        reason,
        message,
        observed_generation=generation,
    )
    remove_condition(conditions, ConditionType.RECONCILING)


def mark_ready(conditions: list[Condition], generation: int, message: str) -> None:
    """Record success and clear in-progress and stalled markers."""
    set_condition(
        conditions,
        ConditionType.READY,
        "True",
        Reason.SUCCEEDED,
        message,
        observed_generation=generation,
    )
    remove_condition(conditions, ConditionType.RECONCILING)
    remove_condition(conditions, ConditionType.STALLED)


__all__ = [
    "ConditionStatus",
    "ConditionType",
    "Reason",
    "find_condition",
    "is_true",
    "mark_not_ready",
    "mark_ready",
    "mark_reconciling",
    "mark_stalled",
    "remove_condition",
    "set_condition",
]
