"""YAML loaders for resource manifests."""

from __future__ import annotations

from pathlib import Path

import msgspec
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .models import Repository, Resource, Secret, Snapshot, Sync
from .validation import ManifestValidationError, validate_resources

YAML_VERSION = (1, 2)

_RESOURCE_UNION = Sync | Repository | Snapshot | Secret


def load_manifest(path: Path | str) -> list[Resource]:
    """Parse a multi-document YAML manifest and validate every resource."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ManifestValidationError([f"failed to read manifest: {exc}"]) from exc
    return load_manifest_text(text)


def load_manifest_text(text: str) -> list[Resource]:
    """Parse manifest ``text``; empty documents are ignored."""
    yaml = _yaml()
    try:
        documents = [doc for doc in yaml.load_all(text) if doc is not None]
    except YAMLError as exc:
        raise ManifestValidationError([f"failed to parse YAML: {exc}"]) from exc

    if not documents:
        raise ManifestValidationError(["manifest contains no resources"])

    resources: list[Resource] = []
    issues: list[str] = []
    for index, document in enumerate(documents):
        try:
            resources.append(msgspec.convert(document, type=_RESOURCE_UNION))
        except msgspec.ValidationError as exc:
            issues.append(f"document {index}: schema validation failed: {exc}")
    if issues:
        raise ManifestValidationError(issues)

    return validate_resources(resources)


def _yaml() -> YAML:
    yaml = YAML(typ="safe")
    yaml.version = YAML_VERSION
    yaml.allow_duplicate_keys = False
    return yaml
