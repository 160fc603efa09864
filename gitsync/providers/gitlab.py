"""GitLab adapter using the REST v4 API."""

from __future__ import annotations

import typing as typ
from urllib.parse import quote

from gitsync.logging import get_logger, log_info

from .base import (
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

_HTTP_BAD_REQUEST = 400
_HTTP_CONFLICT = 409
_TAKEN_MARKER = "has already been taken"


def _project_id(repository: Repository) -> str:
    return quote(repository.slug, safe="")


class GitLabProvider(RestProvider):
    """Create projects and merge requests on GitLab.

    Branch protection is reported as unsupported.
    """

    provider_type: typ.ClassVar[str] = "gitlab"

    def _api_base(self, repository: Repository) -> str:
        return f"https://{host_from_domain(repository.domain())}/api/v4"

    def _auth_headers(self, token: str) -> dict[str, str]:
        return {"PRIVATE-TOKEN": token}

    async def _get_repository(
        self, api: str, repository: Repository, token: str
    ) -> dict[str, typ.Any] | None:
        response = await self._request(
            "GET",
            f"{api}/projects/{_project_id(repository)}",
            token=token,
            operation="get project",
            allow_not_found=True,
        )
        return None if response is None else response.json()

    async def _namespace_id(self, api: str, repository: Repository, token: str) -> int:
        group = await self._request_json(
            "GET",
            f"{api}/groups/{quote(repository.spec.owner, safe='')}",
            token=token,
            operation="get group",
        )
        return int(group["id"])

    async def _create_repository(
        self, api: str, repository: Repository, visibility: Visibility, token: str
    ) -> dict[str, typ.Any]:
        body: dict[str, typ.Any] = {
            "name": repository.name,
            "path": repository.name,
            "visibility": str(visibility),
            "initialize_with_readme": True,
            "default_branch": repository.spec.default_branch,
        }
        if repository.spec.is_organization:
            body["namespace_id"] = await self._namespace_id(api, repository, token)

        try:
            return await self._request_json(
                "POST",
                f"{api}/projects",
                token=token,
                operation="create project",
                json=body,
            )
        except ProviderAPIError as exc:
            if exc.status_code in {_HTTP_BAD_REQUEST, _HTTP_CONFLICT} and (
                _TAKEN_MARKER in str(exc)
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
        await self._request(
            "POST",
            f"{api}/projects/{_project_id(repository)}/repository/commits",
            token=token,
            operation="create scaffold commit",
            json={
                "branch": repository.spec.default_branch,
                "commit_message": SCAFFOLD_COMMIT_MESSAGE,
                "actions": [
                    {
                        "action": "create",
                        "file_path": scaffold_file.path,
                        "content": scaffold_file.content,
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
            f"{api}/projects/{_project_id(repository)}",
            token=token,
            operation="delete project",
        )

    async def create_pull_request(
        self, branch: str, sync: Sync, repository: Repository, secret: Secret
    ) -> int:
        """Open a merge request and return its project-scoped ``iid``."""
        token = provider_token(secret)
        api = self._api_base(repository)
        title, base, description = pull_request_fields(sync)
        payload = await self._request_json(
            "POST",
            f"{api}/projects/{_project_id(repository)}/merge_requests",
            token=token,
            operation="create merge request",
            json={
                "source_branch": branch,
                "target_branch": base,
                "title": title,
                "description": description,
            },
        )
        iid = int(payload["iid"])
        log_info(logger, "Opened GitLab merge request !%d on %s", iid, repository.slug)
        return iid

    async def create_branch_protection(
        self, repository: Repository, secret: Secret
    ) -> ProtectionResult:
        """Report that status-check branch protection is not available."""
        return ProtectionResult.unsupported(
            "branch protection is not supported for gitlab repositories"
        )
