"""Provider adapter contract and the shared REST adapter skeleton.

Each hosting provider is reached through an adapter that implements
:class:`Provider`. :class:`RestProvider` carries what the GitHub, GitLab and
Gitea adapters share: policy and visibility validation, token lookup, the
adopt/fail decision, scaffolding with rollback, pull-request defaults, and an
``httpx`` request helper that turns failures into :class:`ProviderAPIError`.
"""

from __future__ import annotations

import dataclasses
import enum
import typing as typ
from urllib.parse import urlsplit

import httpx

from gitsync.errors import ConfigurationError
from gitsync.logging import get_logger, log_info, log_warning
from gitsync.resources.models import ExistingRepositoryPolicy, Visibility

from .errors import ProviderAPIError, ProviderAuthError, RepositoryExistsError
from .scaffold import scaffold_files

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from gitsync.resources.models import Repository, Secret, Sync

    from .scaffold import ScaffoldFile

logger = get_logger(__name__)

VALIDATION_CHECK_CONTEXT = "mpas/validation-check"
DEFAULT_PULL_REQUEST_TITLE = "Git Controller automated Pull Request"
DEFAULT_PULL_REQUEST_BASE = "main"
DEFAULT_PULL_REQUEST_DESCRIPTION = (
    "Pull requested created automatically by Git Controller."
)

_HTTP_ERROR_STATUS_THRESHOLD = 400
_HTTP_NOT_FOUND = 404
_ERROR_DETAIL_LIMIT = 200


class ProtectionStatus(enum.StrEnum):
    """Outcome kinds for branch protection requests."""

    APPLIED = "applied"
    UNSUPPORTED = "unsupported"
    FAILED = "failed"


@dataclasses.dataclass(frozen=True, slots=True)
class ProtectionResult:
    """Tagged result of an optional branch-protection request."""

    status: ProtectionStatus
    detail: str = ""

    @classmethod
    def applied(cls) -> ProtectionResult:
        """Return a result for protection that is now in place."""
        return cls(ProtectionStatus.APPLIED)

    @classmethod
    def unsupported(cls, detail: str) -> ProtectionResult:
        """Return a result for a provider without branch protection support."""
        return cls(ProtectionStatus.UNSUPPORTED, detail)

    @classmethod
    def failed(cls, detail: str) -> ProtectionResult:
        """Return a result for a protection request that errored."""
        return cls(ProtectionStatus.FAILED, detail)


@dataclasses.dataclass(frozen=True, slots=True)
class RepositoryOutcome:
    """Result of creating or adopting a repository."""

    created: bool
    url: str


class Provider(typ.Protocol):
    """Interface implemented by every hosting-provider adapter."""

    @property
    def provider_type(self) -> str:
        """Return the provider tag this adapter services."""
        ...

    async def create_repository(
        self, repository: Repository, secret: Secret
    ) -> RepositoryOutcome:
        """Create or adopt ``repository`` according to its policy."""
        ...

    async def create_pull_request(
        self, branch: str, sync: Sync, repository: Repository, secret: Secret
    ) -> int:
        """Open a pull request from ``branch`` and return its provider id."""
        ...

    async def create_branch_protection(
        self, repository: Repository, secret: Secret
    ) -> ProtectionResult:
        """Protect the repository's default branch."""
        ...


def validate_repository_spec(
    repository: Repository,
) -> tuple[ExistingRepositoryPolicy, Visibility]:
    """Return the parsed policy and visibility.

    Raises
    ------
    ConfigurationError
        If either value is not one of the accepted spellings.

    """
    try:
        policy = ExistingRepositoryPolicy(repository.spec.existing_repository_policy)
    except ValueError as exc:
        raise ConfigurationError.invalid_policy(
            repository.spec.existing_repository_policy
        ) from exc
    try:
        visibility = Visibility(repository.spec.visibility)
    except ValueError as exc:
        raise ConfigurationError.invalid_visibility(
            repository.spec.visibility
        ) from exc
    return policy, visibility


def provider_token(secret: Secret) -> str:
    """Return the bearer token held in ``secret``.

    Raises
    ------
    ProviderAuthError
        If neither ``password`` nor ``token`` is set.

    """
    token = secret.data.get("password") or secret.data.get("token")
    if not token:
        raise ProviderAuthError.missing_token(secret.metadata.key)
    return token


def pull_request_fields(sync: Sync) -> tuple[str, str, str]:
    """Return ``(title, base, description)`` for a sync's pull request."""
    template = sync.spec.pull_request_template
    return (
        template.title or DEFAULT_PULL_REQUEST_TITLE,
        template.base or DEFAULT_PULL_REQUEST_BASE,
        template.description or DEFAULT_PULL_REQUEST_DESCRIPTION,
    )


def host_from_domain(domain: str) -> str:
    """Strip an SSH user prefix from ``domain``.

    Examples
    --------
    >>> host_from_domain("git@gitlab.example.com")
    'gitlab.example.com'
    >>> host_from_domain("github.com")
    'github.com'

    """
    return domain.rsplit("@", 1)[-1]


def base_url_from_repository(repository: Repository) -> str:
    """Return ``scheme://host`` for the repository's clone URL."""
    domain = repository.domain()
    if "@" in domain:
        return f"https://{host_from_domain(domain)}"
    parts = urlsplit(repository.repository_url())
    return f"{parts.scheme}://{parts.netloc}"


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:_ERROR_DETAIL_LIMIT]
    if not isinstance(payload, dict):
        return str(payload)[:_ERROR_DETAIL_LIMIT]

    parts = [
        str(payload[key])
        for key in ("message", "error", "error_description")
        if payload.get(key)
    ]
    # GitHub puts the specific cause in ``errors[].message``.
    errors = payload.get("errors")
    if isinstance(errors, list):
        parts.extend(
            str(item.get("message", item)) if isinstance(item, dict) else str(item)
            for item in errors
        )
    detail = "; ".join(parts) if parts else str(payload)
    return detail[:_ERROR_DETAIL_LIMIT]


class RestProvider:
    """Shared skeleton for providers reached over a JSON REST API.

    Subclasses set :attr:`provider_type` and implement the ``_``-prefixed
    hooks. A single :class:`httpx.AsyncClient` can be shared between
    adapters; tokens are sent per request because they come from each
    repository's secret.
    """

    provider_type: typ.ClassVar[str]

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout_s: float = 20.0,
    ) -> None:
        """Initialise with an optional shared HTTP client."""
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=timeout_s, headers={"User-Agent": "gitsync/0.1"}
        )

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    # Hooks -----------------------------------------------------------------

    def _api_base(self, repository: Repository) -> str:
        raise NotImplementedError

    def _auth_headers(self, token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    async def _get_repository(
        self, api: str, repository: Repository, token: str
    ) -> dict[str, typ.Any] | None:
        raise NotImplementedError

    async def _create_repository(
        self, api: str, repository: Repository, visibility: Visibility, token: str
    ) -> dict[str, typ.Any]:
        raise NotImplementedError

    async def _commit_files(
        self,
        api: str,
        repository: Repository,
        files: cabc.Sequence[ScaffoldFile],
        token: str,
    ) -> None:
        raise NotImplementedError

    async def _delete_repository(
        self, api: str, repository: Repository, token: str
    ) -> None:
        raise NotImplementedError

    # Contract --------------------------------------------------------------

    async def create_repository(
        self, repository: Repository, secret: Secret
    ) -> RepositoryOutcome:
        """Create or adopt ``repository`` according to its policy.

        With ``adopt`` an existing repository is returned untouched
        (``created=False``). With ``fail`` an existing repository raises
        :class:`RepositoryExistsError`. A freshly created repository receives
        the scaffold commit; if that fails the repository is deleted again.

        Raises
        ------
        ConfigurationError
            For an unknown policy or visibility, before any API call.
        ProviderAuthError
            If the secret holds no token.
        ProviderAPIError
            For provider failures, including :class:`RepositoryExistsError`.

        """
        policy, visibility = validate_repository_spec(repository)
        token = provider_token(secret)
        api = self._api_base(repository)
        url = repository.repository_url()

        if policy is ExistingRepositoryPolicy.ADOPT:
            existing = await self._get_repository(api, repository, token)
            if existing is not None:
                log_info(
                    logger,
                    "Adopting existing %s repository %s",
                    self.provider_type,
                    repository.slug,
                )
                return RepositoryOutcome(created=False, url=url)

        try:
            await self._create_repository(api, repository, visibility, token)
        except RepositoryExistsError:
            if policy is ExistingRepositoryPolicy.FAIL:
                raise
            log_info(
                logger,
                "Repository %s appeared concurrently; adopting it",
                repository.slug,
            )
            return RepositoryOutcome(created=False, url=url)

        log_info(
            logger, "Created %s repository %s", self.provider_type, repository.slug
        )
        await self._scaffold(api, repository, token)
        return RepositoryOutcome(created=True, url=url)

    async def _scaffold(self, api: str, repository: Repository, token: str) -> None:
        files = scaffold_files(repository.spec.maintainers)
        try:
            await self._commit_files(api, repository, files, token)
        except ProviderAPIError as exc:
            log_warning(
                logger,
                "Scaffolding %s failed; deleting the new repository",
                repository.slug,
            )
            try:
                await self._delete_repository(api, repository, token)
            except ProviderAPIError as delete_exc:
                exc.add_note(f"deleting repository failed: {delete_exc}")
            raise

    async def _request(  # noqa: PLR0913
        self,
        method: str,
        url: str,
        *,
        token: str,
        operation: str,
        json: object | None = None,
        params: dict[str, str] | None = None,
        allow_not_found: bool = False,
    ) -> httpx.Response | None:
        """Send one API request.

        Returns ``None`` for a 404 when ``allow_not_found`` is set.
        """
        try:
            response = await self._client.request(
                method,
                url,
                json=json,
                params=params,
                headers=self._auth_headers(token),
            )
        except httpx.HTTPError as exc:
            raise ProviderAPIError.transport(
                self.provider_type, operation, exc
            ) from exc

        if allow_not_found and response.status_code == _HTTP_NOT_FOUND:
            return None
        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise ProviderAPIError.http_error(
                self.provider_type,
                operation,
                response.status_code,
                _error_detail(response),
            )
        return response

    async def _request_json(  # noqa: PLR0913
        self,
        method: str,
        url: str,
        *,
        token: str,
        operation: str,
        json: object | None = None,
        params: dict[str, str] | None = None,
    ) -> dict[str, typ.Any]:
        response = typ.cast(
            "httpx.Response",
            await self._request(
                method,
                url,
                token=token,
                operation=operation,
                json=json,
                params=params,
            ),
        )
        payload = response.json()
        if not isinstance(payload, dict):
            msg = f"{self.provider_type} {operation} returned a non-object payload"
            raise ProviderAPIError(msg, status_code=response.status_code)
        return payload
