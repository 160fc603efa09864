"""GitHub adapter using the REST v3 API."""

from __future__ import annotations

import typing as typ
from urllib.parse import quote

from gitsync.logging import get_logger, log_info

from .base import (
    VALIDATION_CHECK_CONTEXT,
    ProtectionResult,
    RestProvider,
    host_from_domain,
    provider_token,
    pull_request_fields,
)
from .errors import ProviderAPIError, RepositoryExistsError
from .scaffold import SCAFFOLD_COMMIT_MESSAGE

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from gitsync.resources.models import Repository, Secret, Sync, Visibility

    from .scaffold import ScaffoldFile

logger = get_logger(__name__)

PUBLIC_API_URL = "https://api.github.com"
_PUBLIC_DOMAIN = "github.com"
_HTTP_UNPROCESSABLE = 422


def _repo_path(repository: Repository) -> str:
    return f"/repos/{quote(repository.spec.owner)}/{quote(repository.name)}"


class GitHubProvider(RestProvider):
    """Create repositories, pull requests and branch protection on GitHub.

    ``github.com`` is served by ``api.github.com``; any other domain is
    treated as GitHub Enterprise with its API under ``/api/v3``.
    """

    provider_type: typ.ClassVar[str] = "github"

    def _api_base(self, repository: Repository) -> str:
        host = host_from_domain(repository.domain())
        if host == _PUBLIC_DOMAIN:
            return PUBLIC_API_URL
        return f"https://{host}/api/v3"

    def _auth_headers(self, token: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    async def _get_repository(
        self, api: str, repository: Repository, token: str
    ) -> dict[str, typ.Any] | None:
        response = await self._request(
            "GET",
            f"{api}{_repo_path(repository)}",
            token=token,
            operation="get repository",
            allow_not_found=True,
        )
        return None if response is None else response.json()

    async def _create_repository(
        self, api: str, repository: Repository, visibility: Visibility, token: str
    ) -> dict[str, typ.Any]:
        body: dict[str, typ.Any] = {
            "name": repository.name,
            "private": visibility != "public",
            "auto_init": True,
        }
        if repository.spec.is_organization:
            body["visibility"] = str(visibility)
            url = f"{api}/orgs/{quote(repository.spec.owner)}/repos"
        else:
            url = f"{api}/user/repos"

        try:
            return await self._request_json(
                "POST", url, token=token, operation="create repository", json=body
            )
        except ProviderAPIError as exc:
            if exc.status_code == _HTTP_UNPROCESSABLE and "already exists" in str(
                exc
            ):
                raise RepositoryExistsError.for_slug(
                    self.provider_type, repository.slug, exc.status_code
                ) from exc
            raise

    async def _commit_files(
        self,
        api: str,
        repository: Repository,
        files: cabc.Sequence[ScaffoldFile],
        token: str,
    ) -> None:
        # The contents API commits one file per request.
        for scaffold_file in files:
            await self._request(
                "PUT",
                f"{api}{_repo_path(repository)}/contents/{scaffold_file.path}",
                token=token,
                operation=f"add file {scaffold_file.path}",
                json={
                    "message": SCAFFOLD_COMMIT_MESSAGE,
                    "content": scaffold_file.content_b64,
                    "branch": repository.spec.default_branch,
                },
            )

    async def _delete_repository(
        self, api: str, repository: Repository, token: str
    ) -> None:
        await self._request(
            "DELETE",
            f"{api}{_repo_path(repository)}",
            token=token,
            operation="delete repository",
        )

    async def create_pull_request(
        self, branch: str, sync: Sync, repository: Repository, secret: Secret
    ) -> int:
        """Open a pull request and mark its head with a pending validation status.

        Returns the pull request number.
        """
        token = provider_token(secret)
        api = self._api_base(repository)
        title, base, description = pull_request_fields(sync)
        payload = await self._request_json(
            "POST",
            f"{api}{_repo_path(repository)}/pulls",
            token=token,
            operation="create pull request",
            json={"title": title, "head": branch, "base": base, "body": description},
        )
        number = int(payload["number"])
        head_sha = payload.get("head", {}).get("sha")
        if head_sha:
            await self._request(
                "POST",
                f"{api}{_repo_path(repository)}/statuses/{head_sha}",
                token=token,
                operation="create commit status",
                json={
                    "state": "pending",
                    "context": VALIDATION_CHECK_CONTEXT,
                    "description": "Waiting for validation",
                },
            )
        log_info(
            logger, "Opened GitHub pull request #%d on %s", number, repository.slug
        )
        return number

    async def create_branch_protection(
        self, repository: Repository, secret: Secret
    ) -> ProtectionResult:
        """Require the validation check on the default branch."""
        token = provider_token(secret)
        api = self._api_base(repository)
        branch = quote(repository.spec.default_branch)
        await self._request(
            "PUT",
            f"{api}{_repo_path(repository)}/branches/{branch}/protection",
            token=token,
            operation="update branch protection",
            json={
                "required_status_checks": {
                    "strict": False,
                    "contexts": [VALIDATION_CHECK_CONTEXT],
                },
                "enforce_admins": False,
                "required_pull_request_reviews": None,
                "restrictions": None,
            },
        )
        return ProtectionResult.applied()
