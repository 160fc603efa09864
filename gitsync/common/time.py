"""Common time utilities."""

from __future__ import annotations

import datetime as dt


def utcnow() -> dt.datetime:
    """Return an aware UTC timestamp for condition transitions and records."""
    return dt.datetime.now(dt.UTC)


def unix_seconds(moment: dt.datetime | None = None) -> int:
    """Return whole seconds since the epoch for ``moment`` (default: now)."""
    return int((moment or utcnow()).timestamp())
