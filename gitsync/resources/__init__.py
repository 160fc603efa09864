"""Resource models, manifest loading, and validation.

Load and validate a manifest::

    >>> from gitsync.resources import load_manifest
    >>> resources = load_manifest("examples/sync.yaml")
"""

from __future__ import annotations

from .loader import load_manifest, load_manifest_text
from .models import (
    RESOURCE_TYPES,
    CommitTemplate,
    Condition,
    Credentials,
    ExistingRepositoryPolicy,
    LocalObjectReference,
    NamespacedObjectReference,
    ObjectMeta,
    PullRequestTemplate,
    Repository,
    RepositorySpec,
    RepositoryStatus,
    Resource,
    Secret,
    Snapshot,
    SnapshotSpec,
    Sync,
    SyncSpec,
    SyncStatus,
    Visibility,
)
from .validation import ManifestValidationError, validate_resources

__all__ = [
    "RESOURCE_TYPES",
    "CommitTemplate",
    "Condition",
    "Credentials",
    "ExistingRepositoryPolicy",
    "LocalObjectReference",
    "ManifestValidationError",
    "NamespacedObjectReference",
    "ObjectMeta",
    "PullRequestTemplate",
    "Repository",
    "RepositorySpec",
    "RepositoryStatus",
    "Resource",
    "Secret",
    "Snapshot",
    "SnapshotSpec",
    "Sync",
    "SyncSpec",
    "SyncStatus",
    "Visibility",
    "load_manifest",
    "load_manifest_text",
    "validate_resources",
]
