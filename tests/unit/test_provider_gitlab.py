"""Unit tests for the GitLab provider adapter."""

from __future__ import annotations

import pytest

from gitsync.providers import GitLabProvider, ProtectionStatus, RepositoryExistsError
from tests.helpers.builders import TEST_TOKEN, make_repository, make_secret, make_sync
from tests.helpers.http import RecordingRouter

_PROJECT = "/api/v4/projects/owner%2Frepo"


@pytest.mark.asyncio
async def test_creates_project_in_group_with_single_scaffold_commit() -> None:
    """Group projects resolve the namespace id and scaffold in one commit."""
    router = RecordingRouter(
        {
            ("GET", _PROJECT): (404, {"message": "404 Project Not Found"}),
            ("GET", "/api/v4/groups/owner"): (200, {"id": 42}),
            ("POST", "/api/v4/projects"): (201, {"id": 7}),
            ("POST", f"{_PROJECT}/repository/commits"): (201, {"id": "abc"}),
        }
    )
    async with router.client() as client:
        outcome = await GitLabProvider(http_client=client).create_repository(
            make_repository(provider="gitlab", maintainers=["@owner"]), make_secret()
        )

    assert outcome.created is True
    assert outcome.url == "https://gitlab.com/owner/repo"
    assert router.last("GET", _PROJECT).headers["PRIVATE-TOKEN"] == TEST_TOKEN
    project = router.body("POST", "/api/v4/projects")
    assert project["namespace_id"] == 42
    assert project["visibility"] == "private"
    commit = router.body("POST", f"{_PROJECT}/repository/commits")
    assert commit["commit_message"] == "creating initial project structure"
    assert [action["file_path"] for action in commit["actions"]] == [
        "CODEOWNERS",
        "generators/.keep",
        "products/.keep",
        "subscriptions/.keep",
        "targets/.keep",
    ]
    assert commit["actions"][0]["content"] == "@owner\n"


@pytest.mark.asyncio
async def test_fail_policy_maps_taken_name() -> None:
    """A taken project path becomes RepositoryExistsError."""
    router = RecordingRouter(
        {
            ("POST", "/api/v4/projects"): (
                400,
                {"message": {"name": ["has already been taken"]}},
            )
        }
    )
    async with router.client() as client:
        with pytest.raises(RepositoryExistsError):
            await GitLabProvider(http_client=client).create_repository(
                make_repository(
                    provider="gitlab", policy="fail", is_organization=False
                ),
                make_secret(),
            )

    assert router.sent() == [("POST", "/api/v4/projects")]


@pytest.mark.asyncio
async def test_self_hosted_ssh_domain() -> None:
    """An SSH-style domain is reached over HTTPS on its host."""
    router = RecordingRouter({("GET", _PROJECT): (200, {"id": 7})})
    async with router.client() as client:
        outcome = await GitLabProvider(http_client=client).create_repository(
            make_repository(provider="gitlab", domain="git@gitlab.example.com"),
            make_secret(),
        )

    assert outcome.created is False
    assert router.requests[0].url.host == "gitlab.example.com"
    assert outcome.url == "git@gitlab.example.com:owner/repo"


@pytest.mark.asyncio
async def test_create_merge_request_returns_iid() -> None:
    """Merge requests are identified by their project-scoped iid."""
    router = RecordingRouter(
        {("POST", f"{_PROJECT}/merge_requests"): (201, {"id": 900, "iid": 5})}
    )
    async with router.client() as client:
        iid = await GitLabProvider(http_client=client).create_pull_request(
            "branch-1-abcd",
            make_sync(),
            make_repository(provider="gitlab"),
            make_secret(),
        )

    assert iid == 5
    body = router.body("POST", f"{_PROJECT}/merge_requests")
    assert body["source_branch"] == "branch-1-abcd"
    assert body["target_branch"] == "main"


@pytest.mark.asyncio
async def test_branch_protection_is_unsupported() -> None:
    """GitLab reports protection as unsupported without calling the API."""
    router = RecordingRouter({})
    async with router.client() as client:
        result = await GitLabProvider(http_client=client).create_branch_protection(
            make_repository(provider="gitlab"), make_secret()
        )

    assert result.status is ProtectionStatus.UNSUPPORTED
    assert router.requests == []
