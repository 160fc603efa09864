"""Ordered dispatch of provider operations to the matching adapter."""

from __future__ import annotations

import typing as typ

import httpx

from gitsync.logging import get_logger, log_warning

from .base import ProtectionResult
from .errors import UnsupportedProviderError
from .gitea import GiteaProvider
from .github import GitHubProvider
from .gitlab import GitLabProvider

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from gitsync.resources.models import Repository, Secret, Sync

    from .base import Provider, RepositoryOutcome

logger = get_logger(__name__)


class ProviderChain:
    """Route each operation to the first adapter whose type matches.

    Adapters are tried in list order and exactly one is invoked per call.
    Adapters never see requests for other provider types.
    """

    def __init__(
        self,
        providers: cabc.Sequence[Provider],
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise with adapters in priority order.

        ``http_client``, when given, is owned by the chain and closed by
        :meth:`aclose`.
        """
        self._providers = tuple(providers)
        self._http_client = http_client

    @property
    def provider_types(self) -> list[str]:
        """Return the adapter types in dispatch order."""
        return [provider.provider_type for provider in self._providers]

    async def aclose(self) -> None:
        """Close the shared HTTP client, if the chain owns one."""
        if self._http_client is not None:
            await self._http_client.aclose()

    def select(self, provider_type: str) -> Provider:
        """Return the first adapter for ``provider_type``.

        Raises
        ------
        UnsupportedProviderError
            If no adapter handles the type.

        """
        for provider in self._providers:
            if provider.provider_type == provider_type:
                return provider
        raise UnsupportedProviderError.for_type(provider_type, self.provider_types)

    async def create_repository(
        self, repository: Repository, secret: Secret
    ) -> RepositoryOutcome:
        """Create or adopt ``repository`` through its provider."""
        provider = self.select(repository.spec.provider)
        return await provider.create_repository(repository, secret)

    async def create_pull_request(
        self, branch: str, sync: Sync, repository: Repository, secret: Secret
    ) -> int:
        """Open a pull request from ``branch`` through the repository's provider."""
        provider = self.select(repository.spec.provider)
        return await provider.create_pull_request(branch, sync, repository, secret)

    async def create_branch_protection(
        self, repository: Repository, secret: Secret
    ) -> ProtectionResult:
        """Protect the default branch, always returning a tagged result.

        Errors, including a missing adapter, become ``FAILED`` results;
        cancellation still propagates.
        """
        try:
            provider = self.select(repository.spec.provider)
            return await provider.create_branch_protection(repository, secret)
        except Exception as exc:  # noqa: BLE001
            log_warning(
                logger,
                "Branch protection for %s failed: %s",
                repository.slug,
                exc,
            )
            return ProtectionResult.failed(str(exc))


def build_default_chain(
    *,
    http_client: httpx.AsyncClient | None = None,
    timeout_s: float = 20.0,
) -> ProviderChain:
    """Return a chain of the Gitea, GitLab and GitHub adapters, in that order.

    The adapters share one HTTP client. A client created here is owned by the
    returned chain.
    """
    owned = http_client is None
    client = http_client or httpx.AsyncClient(
        timeout=timeout_s, headers={"User-Agent": "gitsync/0.1"}
    )
    providers: list[Provider] = [
        GiteaProvider(http_client=client),
        GitLabProvider(http_client=client),
        GitHubProvider(http_client=client),
    ]
    return ProviderChain(providers, http_client=client if owned else None)
