"""Reconcilers for Sync and Repository objects.

Run a single attempt (async)::

    >>> from gitsync.controller import SyncReconciler
    >>> reconciler = SyncReconciler(store, pipeline, chain)
    >>> result = await reconciler.reconcile("default", "deploy")
    >>> result.ready
    True
"""

from __future__ import annotations

from .base import ReconcileResult
from .errors import ConfigurationError, ErrorCategory, categorize_error
from .observability import ReconcileEventLogger, ReconcileEventType
from .repository import RepositoryReconciler
from .sync import (
    PushPipeline,
    SyncReconciler,
    generate_branch_name,
    resolve_branches,
)

__all__ = [
    "ConfigurationError",
    "ErrorCategory",
    "PushPipeline",
    "ReconcileEventLogger",
    "ReconcileEventType",
    "ReconcileResult",
    "RepositoryReconciler",
    "SyncReconciler",
    "categorize_error",
    "generate_branch_name",
    "resolve_branches",
]
