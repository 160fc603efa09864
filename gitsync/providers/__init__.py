"""Git hosting provider adapters and the dispatch chain.

Build the default chain and create a repository::

    >>> from gitsync.providers import build_default_chain
    >>> chain = build_default_chain()
    >>> outcome = await chain.create_repository(repository, secret)
    >>> outcome.created
    True
"""

from __future__ import annotations

from .base import (
    DEFAULT_PULL_REQUEST_BASE,
    DEFAULT_PULL_REQUEST_DESCRIPTION,
    DEFAULT_PULL_REQUEST_TITLE,
    VALIDATION_CHECK_CONTEXT,
    ProtectionResult,
    ProtectionStatus,
    Provider,
    RepositoryOutcome,
    RestProvider,
    provider_token,
    pull_request_fields,
    validate_repository_spec,
)
from .chain import ProviderChain, build_default_chain
from .errors import (
    ProviderAPIError,
    ProviderAuthError,
    ProviderError,
    RepositoryExistsError,
    UnsupportedProviderError,
)
from .gitea import GiteaProvider
from .github import GitHubProvider
from .gitlab import GitLabProvider
from .scaffold import SCAFFOLD_COMMIT_MESSAGE, ScaffoldFile, scaffold_files

__all__ = [
    "DEFAULT_PULL_REQUEST_BASE",
    "DEFAULT_PULL_REQUEST_DESCRIPTION",
    "DEFAULT_PULL_REQUEST_TITLE",
    "SCAFFOLD_COMMIT_MESSAGE",
    "VALIDATION_CHECK_CONTEXT",
    "GitHubProvider",
    "GitLabProvider",
    "GiteaProvider",
    "ProtectionResult",
    "ProtectionStatus",
    "Provider",
    "ProviderAPIError",
    "ProviderAuthError",
    "ProviderChain",
    "ProviderError",
    "RepositoryExistsError",
    "RepositoryOutcome",
    "RestProvider",
    "ScaffoldFile",
    "UnsupportedProviderError",
    "build_default_chain",
    "provider_token",
    "pull_request_fields",
    "scaffold_files",
    "validate_repository_spec",
]
