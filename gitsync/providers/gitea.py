"""Gitea adapter using the REST v1 API."""

from __future__ import annotations

import typing as typ
from urllib.parse import quote

from gitsync.logging import get_logger, log_info

from .base import (
    VALIDATION_CHECK_CONTEXT,
    ProtectionResult,
    RestProvider,
    base_url_from_repository,
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

_HTTP_CONFLICT = 409


def _repo_path(repository: Repository) -> str:
    return f"/repos/{quote(repository.spec.owner)}/{quote(repository.name)}"


class GiteaProvider(RestProvider):
    """Create repositories, pull requests and branch protection on Gitea.

    The API lives at ``/api/v1`` on the ``scheme://host`` of the repository
    URL, so self-hosted instances need only a ``domain`` override.
    """

    provider_type: typ.ClassVar[str] = "gitea"

    def _api_base(self, repository: Repository) -> str:
        return f"{base_url_from_repository(repository)}/api/v1"

    def _auth_headers(self, token: str) -> dict[str, str]:
        return {"Authorization": f"token {token}"}

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
        if repository.spec.is_organization:
            url = f"{api}/orgs/{quote(repository.spec.owner)}/repos"
        else:
            url = f"{api}/user/repos"
        body = {
            "name": repository.name,
            "description": "Created by gitsync",
            "private": visibility != "public",
            "auto_init": True,
            "default_branch": repository.spec.default_branch,
            "trust_model": "default",
        }
        try:
            return await self._request_json(
                "POST", url, token=token, operation="create repository", json=body
            )
        except ProviderAPIError as exc:
            if exc.status_code == _HTTP_CONFLICT:
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
        await self._request(
            "POST",
            f"{api}{_repo_path(repository)}/contents",
            token=token,
            operation="create scaffold commit",
            json={
                "branch": repository.spec.default_branch,
                "message": SCAFFOLD_COMMIT_MESSAGE,
                "files": [
                    {
                        "operation": "create",
                        "path": scaffold_file.path,
                        "content": scaffold_file.content_b64,
                    }
                    for scaffold_file in files
                ],
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
        """Open a pull request and return its number."""
        token = provider_token(secret)
        api = self._api_base(repository)
        title, base, description = pull_request_fields(sync)
        payload = await self._request_json(
            "POST",
            f"{api}{_repo_path(repository)}/pulls",
            token=token,
            operation="create pull request",
            json={"head": branch, "base": base, "title": title, "body": description},
        )
        number = int(payload["number"])
        log_info(logger, "Opened Gitea pull request #%d on %s", number, repository.slug)
        return number

    async def create_branch_protection(
        self, repository: Repository, secret: Secret
    ) -> ProtectionResult:
        """Allow pushes to the default branch behind the validation check."""
        token = provider_token(secret)
        api = self._api_base(repository)
        await self._request(
            "POST",
            f"{api}{_repo_path(repository)}/branch_protections",
            token=token,
            operation="create branch protection",
            json={
                "rule_name": repository.spec.default_branch,
                "enable_push": True,
                "enable_status_check": True,
                "status_check_contexts": [VALIDATION_CHECK_CONTEXT],
            },
        )
        return ProtectionResult.applied()
