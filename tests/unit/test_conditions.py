"""Unit tests for condition bookkeeping."""

from __future__ import annotations

import datetime as dt

from gitsync.conditions import (
    ConditionType,
    Reason,
    find_condition,
    is_true,
    mark_not_ready,
    mark_ready,
    mark_reconciling,
    mark_stalled,
    set_condition,
)
from gitsync.resources import Condition

_EARLIER = dt.datetime(2024, 1, 1, tzinfo=dt.UTC)
_LATER = dt.datetime(2024, 1, 2, tzinfo=dt.UTC)


def _types(conditions: list[Condition]) -> list[str]:
    return [condition.type for condition in conditions]


def test_set_condition_appends_new_type() -> None:
    """A condition of a new type is appended with the given values."""
    conditions: list[Condition] = []

    set_condition(
        conditions, "Ready", "True", "Succeeded", "done", observed_generation=2
    )

    assert len(conditions) == 1
    assert conditions[0].status == "True"
    assert conditions[0].observed_generation == 2


def test_set_condition_keeps_transition_time_for_same_status() -> None:
    """Updating reason or message alone does not move the transition time."""
    conditions: list[Condition] = []
    set_condition(
        conditions, "Ready", "False", "A", "a", observed_generation=1, now=_EARLIER
    )

    set_condition(
        conditions, "Ready", "False", "B", "b", observed_generation=2, now=_LATER
    )

    condition = conditions[0]
    assert condition.last_transition_time == _EARLIER
    assert (condition.reason, condition.message) == ("B", "b")
    assert condition.observed_generation == 2


def test_set_condition_moves_transition_time_on_status_change() -> None:
    """A status flip records a new transition time."""
    conditions: list[Condition] = []
    set_condition(
        conditions, "Ready", "False", "A", "a", observed_generation=1, now=_EARLIER
    )

    set_condition(
        conditions, "Ready", "True", "B", "b", observed_generation=1, now=_LATER
    )

    assert conditions[0].last_transition_time == _LATER


def test_mark_not_ready_sets_retry_reason() -> None:
    """A retryable failure keeps Reconciling with ProgressingWithRetry."""
    conditions: list[Condition] = []
    mark_reconciling(conditions, 1, "Reconciling")

    mark_not_ready(conditions, 1, Reason.SNAPSHOT_GET_FAILED, "missing")

    ready = find_condition(conditions, ConditionType.READY)
    reconciling = find_condition(conditions, ConditionType.RECONCILING)
    assert ready is not None
    assert reconciling is not None
    assert ready.status == "False"
    assert ready.reason == Reason.SNAPSHOT_GET_FAILED
    assert reconciling.reason == Reason.PROGRESSING_WITH_RETRY


def test_mark_stalled_removes_reconciling() -> None:
    """Stalled replaces Reconciling and sets Ready False."""
    conditions: list[Condition] = []
    mark_reconciling(conditions, 1, "Reconciling")

    mark_stalled(conditions, 1, Reason.TARGET_BRANCH_MISSING, "no branch")

    assert _types(conditions) == [ConditionType.READY, ConditionType.STALLED]
    assert not is_true(conditions, ConditionType.READY)
    assert is_true(conditions, ConditionType.STALLED)


def test_mark_ready_clears_stalled_and_reconciling() -> None:
    """Success leaves only the Ready condition."""
    conditions: list[Condition] = []
    mark_stalled(conditions, 1, Reason.INVALID_CONFIGURATION, "bad")
    mark_reconciling(conditions, 2, "Reconciling new object generation (2)")

    mark_ready(conditions, 2, "done")

    assert _types(conditions) == [ConditionType.READY]
    assert is_true(conditions, ConditionType.READY)
    assert conditions[0].reason == Reason.SUCCEEDED


def test_mark_reconciling_clears_earlier_stalled() -> None:
    """A new attempt does not carry a Stalled verdict from an older generation."""
    conditions: list[Condition] = []
    mark_stalled(conditions, 1, Reason.INVALID_REPOSITORY_POLICY, "bogus")

    mark_reconciling(conditions, 2, "Reconciling new object generation (2)")

    assert find_condition(conditions, ConditionType.STALLED) is None
    assert is_true(conditions, ConditionType.RECONCILING)


def test_mark_not_ready_never_leaves_stalled_beside_retry() -> None:
    """Stalled and ProgressingWithRetry are never reported together."""
    conditions: list[Condition] = []
    mark_stalled(conditions, 1, Reason.TARGET_BRANCH_MISSING, "no branch")

    mark_not_ready(conditions, 2, Reason.CREDENTIALS_NOT_FOUND, "no secret")

    assert _types(conditions) == [ConditionType.READY, ConditionType.RECONCILING]
    ready = find_condition(conditions, ConditionType.READY)
    assert ready is not None
    assert (ready.reason, ready.observed_generation) == (
        Reason.CREDENTIALS_NOT_FOUND,
        2,
    )
