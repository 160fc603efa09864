"""Unit tests for the GitHub provider adapter."""

from __future__ import annotations

import pytest

from gitsync.errors import ConfigurationError
from gitsync.providers import (
    VALIDATION_CHECK_CONTEXT,
    GitHubProvider,
    ProtectionStatus,
    ProviderAPIError,
    ProviderAuthError,
    RepositoryExistsError,
)
from gitsync.resources import PullRequestTemplate
from tests.helpers.builders import TEST_TOKEN, make_repository, make_secret, make_sync
from tests.helpers.http import RecordingRouter

_REPO = "/repos/owner/repo"
_KEEP_FILES = (
    "generators/.keep",
    "products/.keep",
    "subscriptions/.keep",
    "targets/.keep",
)


def _scaffold_routes(status: int = 201) -> dict[tuple[str, str], tuple[int, object]]:
    return {
        ("PUT", f"{_REPO}/contents/{path}"): (status, {"content": {}})
        for path in ("CODEOWNERS", *_KEEP_FILES)
    }


class TestCreateRepository:
    """Tests for create_repository."""

    @pytest.mark.asyncio
    async def test_adopt_existing_repository(self) -> None:
        """adopt returns the existing repository without writing to it."""
        router = RecordingRouter({("GET", _REPO): (200, {"full_name": "owner/repo"})})
        async with router.client() as client:
            provider = GitHubProvider(http_client=client)
            outcome = await provider.create_repository(
                make_repository(policy="adopt"), make_secret()
            )

        assert outcome.created is False
        assert outcome.url == "https://github.com/owner/repo"
        assert router.sent() == [("GET", _REPO)]
        assert router.last("GET", _REPO).headers["Authorization"] == (
            f"Bearer {TEST_TOKEN}"
        )

    @pytest.mark.asyncio
    async def test_creates_and_scaffolds_org_repository(self) -> None:
        """A missing repository is created in the org and scaffolded."""
        router = RecordingRouter(
            {
                ("GET", _REPO): (404, {"message": "Not Found"}),
                ("POST", "/orgs/owner/repos"): (201, {"full_name": "owner/repo"}),
                **_scaffold_routes(),
            }
        )
        repository = make_repository(maintainers=["@owner/team"])
        async with router.client() as client:
            outcome = await GitHubProvider(http_client=client).create_repository(
                repository, make_secret()
            )

        assert outcome.created is True
        body = router.body("POST", "/orgs/owner/repos")
        assert body["name"] == "repo"
        assert body["visibility"] == "private"
        assert body["private"] is True
        puts = [path for method, path in router.sent() if method == "PUT"]
        assert len(puts) == 5, f"expected CODEOWNERS and four .keep files, got {puts}"
        scaffold = router.body("PUT", f"{_REPO}/contents/generators/.keep")
        assert scaffold["message"] == "creating initial project structure"
        assert scaffold["branch"] == "main"

    @pytest.mark.asyncio
    async def test_user_repository_uses_user_endpoint(self) -> None:
        """Repositories owned by a user are created through /user/repos."""
        router = RecordingRouter(
            {
                ("GET", _REPO): (404, {"message": "Not Found"}),
                ("POST", "/user/repos"): (201, {"full_name": "owner/repo"}),
                **_scaffold_routes(),
            }
        )
        async with router.client() as client:
            await GitHubProvider(http_client=client).create_repository(
                make_repository(is_organization=False, visibility="public"),
                make_secret(),
            )

        body = router.body("POST", "/user/repos")
        assert body["private"] is False
        assert "visibility" not in body

    @pytest.mark.asyncio
    async def test_fail_policy_rejects_existing_repository(self) -> None:
        """fail raises RepositoryExistsError and never scaffolds."""
        router = RecordingRouter(
            {
                ("POST", "/orgs/owner/repos"): (
                    422,
                    {
                        "message": "Repository creation failed.",
                        "errors": [{"message": "name already exists on this account"}],
                    },
                )
            }
        )
        async with router.client() as client:
            with pytest.raises(RepositoryExistsError):
                await GitHubProvider(http_client=client).create_repository(
                    make_repository(policy="fail"), make_secret()
                )

        assert router.sent() == [("POST", "/orgs/owner/repos")]

    @pytest.mark.asyncio
    async def test_scaffold_failure_deletes_repository(self) -> None:
        """A failed scaffold commit rolls the new repository back."""
        router = RecordingRouter(
            {
                ("GET", _REPO): (404, {"message": "Not Found"}),
                ("POST", "/orgs/owner/repos"): (201, {}),
                ("PUT", f"{_REPO}/contents/generators/.keep"): (
                    500,
                    {"message": "boom"},
                ),
                ("DELETE", _REPO): (204, None),
            }
        )
        async with router.client() as client:
            with pytest.raises(ProviderAPIError, match="HTTP 500"):
                await GitHubProvider(http_client=client).create_repository(
                    make_repository(), make_secret()
                )

        assert router.sent()[-1] == ("DELETE", _REPO)

    @pytest.mark.asyncio
    async def test_invalid_policy_makes_no_calls(self) -> None:
        """Policy validation happens before any API call."""
        router = RecordingRouter({})
        async with router.client() as client:
            with pytest.raises(ConfigurationError) as excinfo:
                await GitHubProvider(http_client=client).create_repository(
                    make_repository(policy="merge"), make_secret()
                )

        assert excinfo.value.reason == "InvalidRepositoryPolicy"
        assert router.requests == []

    @pytest.mark.asyncio
    async def test_missing_token(self) -> None:
        """A secret without a token cannot authenticate."""
        router = RecordingRouter({})
        async with router.client() as client:
            with pytest.raises(ProviderAuthError):
                await GitHubProvider(http_client=client).create_repository(
                    make_repository(), make_secret(data={"username": "bot"})
                )

    @pytest.mark.asyncio
    async def test_enterprise_domain_uses_api_v3(self) -> None:
        """Non-public domains are served from /api/v3."""
        router = RecordingRouter({("GET", f"/api/v3{_REPO}"): (200, {})})
        async with router.client() as client:
            await GitHubProvider(http_client=client).create_repository(
                make_repository(domain="github.example.com"), make_secret()
            )

        assert router.requests[0].url.host == "github.example.com"


@pytest.mark.asyncio
async def test_create_pull_request_sets_pending_status() -> None:
    """Opening a pull request marks its head with the validation context."""
    router = RecordingRouter(
        {
            ("POST", f"{_REPO}/pulls"): (201, {"number": 12, "head": {"sha": "f00d"}}),
            ("POST", f"{_REPO}/statuses/f00d"): (201, {}),
        }
    )
    async with router.client() as client:
        number = await GitHubProvider(http_client=client).create_pull_request(
            "branch-1-abcd", make_sync(), make_repository(), make_secret()
        )

    assert number == 12
    pull = router.body("POST", f"{_REPO}/pulls")
    assert pull == {
        "title": "Git Controller automated Pull Request",
        "head": "branch-1-abcd",
        "base": "main",
        "body": "Pull requested created automatically by Git Controller.",
    }
    status = router.body("POST", f"{_REPO}/statuses/f00d")
    assert status["state"] == "pending"
    assert status["context"] == VALIDATION_CHECK_CONTEXT


@pytest.mark.asyncio
async def test_create_pull_request_uses_template() -> None:
    """Template values override the pull request defaults."""
    router = RecordingRouter({("POST", f"{_REPO}/pulls"): (201, {"number": 3})})
    sync = make_sync(
        pull_request_template=PullRequestTemplate(
            title="Deploy", description="Automated", base="release"
        )
    )
    async with router.client() as client:
        await GitHubProvider(http_client=client).create_pull_request(
            "feature", sync, make_repository(), make_secret()
        )

    pull = router.body("POST", f"{_REPO}/pulls")
    assert (pull["title"], pull["base"], pull["body"]) == (
        "Deploy",
        "release",
        "Automated",
    )


@pytest.mark.asyncio
async def test_branch_protection_requires_validation_check() -> None:
    """The default branch requires the validation status check."""
    path = f"{_REPO}/branches/main/protection"
    router = RecordingRouter({("PUT", path): (200, {})})
    async with router.client() as client:
        result = await GitHubProvider(http_client=client).create_branch_protection(
            make_repository(), make_secret()
        )

    assert result.status is ProtectionStatus.APPLIED
    contexts = router.body("PUT", path)["required_status_checks"]["contexts"]
    assert contexts == [VALIDATION_CHECK_CONTEXT]
