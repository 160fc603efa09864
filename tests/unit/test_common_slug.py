"""Unit tests for object-key and repository slug utilities."""

from __future__ import annotations

import pytest

from gitsync.common.slug import object_key, parse_object_key, repo_slug


def test_repo_slug_combines_owner_and_name() -> None:
    """repo_slug returns owner/name format."""
    assert repo_slug("owner", "repo") == "owner/repo"


def test_object_key_combines_namespace_and_name() -> None:
    """object_key returns namespace/name format."""
    assert object_key("prod", "deploy") == "prod/deploy"


def test_parse_object_key_splits_namespace_and_name() -> None:
    """parse_object_key returns (namespace, name) for qualified keys."""
    assert parse_object_key("prod/deploy") == ("prod", "deploy")


def test_parse_object_key_defaults_namespace() -> None:
    """A bare name resolves into the default namespace."""
    assert parse_object_key("deploy") == ("default", "deploy")
    assert parse_object_key("deploy", default_namespace="ops") == ("ops", "deploy")


@pytest.mark.parametrize("key", ["", "/", "ns/", "/name", "a/b/c", "ns//name"])
def test_parse_object_key_rejects_invalid_keys(key: str) -> None:
    """parse_object_key raises ValueError for malformed keys."""
    with pytest.raises(ValueError, match="Invalid object key"):
        parse_object_key(key)
