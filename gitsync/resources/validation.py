"""Structural validation rules for resource manifests."""

from __future__ import annotations

import re
import typing as typ
from pathlib import PurePosixPath

from .models import Repository, Secret, Snapshot, Sync

if typ.TYPE_CHECKING:
    from .models import ObjectMeta, Resource

NAME_PATTERN = re.compile(r"^[a-z0-9](?:[a-z0-9.-]{0,251}[a-z0-9])?$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+$")


class ManifestValidationError(ValueError):
    """Raised when a manifest fails structural validation."""

    def __init__(self, issues: list[str]) -> None:
        """Capture validation issues whilst preserving the aggregated message."""
        message = "\n".join(issues)
        super().__init__(message)
        self.issues = issues


def _validate_metadata(label: str, metadata: ObjectMeta, issues: list[str]) -> None:
    if not NAME_PATTERN.match(metadata.name):
        issues.append(f"{label}: metadata.name {metadata.name!r} is not a valid name")
    if not NAME_PATTERN.match(metadata.namespace):
        issues.append(
            f"{label}: metadata.namespace {metadata.namespace!r} is not a valid name"
        )
    if metadata.generation < 1:
        issues.append(f"{label}: metadata.generation must be >= 1")


def _validate_sync(label: str, sync: Sync, issues: list[str]) -> None:
    template = sync.spec.commit_template
    if not template.name.strip():
        issues.append(f"{label}: spec.commitTemplate.name must not be empty")
    if not EMAIL_PATTERN.match(template.email):
        issues.append(
            f"{label}: spec.commitTemplate.email {template.email!r} is not an email"
        )
    if not template.base_branch.strip():
        issues.append(f"{label}: spec.commitTemplate.baseBranch must not be empty")

    sub_path = PurePosixPath(sync.spec.sub_path)
    if sub_path.is_absolute() or ".." in sub_path.parts:
        issues.append(
            f"{label}: spec.subPath {sync.spec.sub_path!r} must stay inside the "
            "repository"
        )


def _validate_repository(label: str, repository: Repository, issues: list[str]) -> None:
    if not repository.spec.owner.strip():
        issues.append(f"{label}: spec.owner must not be empty")
    if not repository.spec.provider.strip():
        issues.append(f"{label}: spec.provider must not be empty")
    issues.extend(
        f"{label}: spec.maintainers entries must not be empty"
        for maintainer in repository.spec.maintainers
        if not maintainer.strip()
    )


def _validate_snapshot(label: str, snapshot: Snapshot, issues: list[str]) -> None:
    if not snapshot.spec.identity.strip():
        issues.append(f"{label}: spec.identity must not be empty")
    if not snapshot.spec.digest.strip():
        issues.append(f"{label}: spec.digest must not be empty")


def validate_resources[T: Resource](resources: list[T]) -> list[T]:
    """Validate decoded resources, returning them when all checks pass.

    Policy values such as ``existingRepositoryPolicy`` are not checked here;
    the reconcilers report those on the object's status.

    Raises
    ------
    ManifestValidationError
        If any resource breaks a rule, or two resources share a kind and key.

    """
    issues: list[str] = []
    seen: set[tuple[str, str]] = set()

    for resource in resources:
        kind = type(resource).__name__
        label = f"{kind} {resource.metadata.key}"
        identity = (kind, resource.metadata.key)
        if identity in seen:
            issues.append(f"{label}: duplicate resource")
        seen.add(identity)

        _validate_metadata(label, resource.metadata, issues)
        match resource:
            case Sync():
                _validate_sync(label, resource, issues)
            case Repository():
                _validate_repository(label, resource, issues)
            case Snapshot():
                _validate_snapshot(label, resource, issues)
            case Secret():
                pass

    if issues:
        raise ManifestValidationError(issues)
    return resources
