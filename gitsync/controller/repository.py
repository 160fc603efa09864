"""Reconcile Repository objects into provider repositories."""

from __future__ import annotations

import typing as typ

from gitsync.conditions import ConditionType, Reason, is_true, mark_reconciling
from gitsync.errors import ConfigurationError
from gitsync.logging import get_logger, log_info
from gitsync.providers.base import (
    ProtectionStatus,
    RepositoryOutcome,
    validate_repository_spec,
)
from gitsync.providers.errors import ProviderError, UnsupportedProviderError
from gitsync.store.errors import ObjectNotFoundError

from .base import ReconcileResult, _Reconciler

if typ.TYPE_CHECKING:
    from gitsync.providers.chain import ProviderChain
    from gitsync.resources.models import Repository, Secret
    from gitsync.store.protocol import ObjectStore

logger = get_logger(__name__)


class BranchProtectionError(ProviderError):
    """Raised internally to report a ``FAILED`` protection result."""


class RepositoryReconciler(_Reconciler["Repository"]):
    """Create or adopt a provider repository and protect its default branch.

    A repository that is Ready at its current generation is left alone, and
    a repository already recorded on the status is not created again, so the
    ``fail`` policy does not trip over the repository it created itself.
    """

    kind: typ.ClassVar[str] = "Repository"

    def __init__(self, store: ObjectStore, chain: ProviderChain) -> None:
        """Initialise with the store and provider chain."""
        super().__init__(store)
        self._chain = chain

    async def _write_status(
        self, obj: Repository, expected_resource_version: int
    ) -> Repository:
        return await self._store.update_repository_status(
            obj, expected_resource_version
        )

    async def reconcile(self, namespace: str, name: str) -> ReconcileResult:
        """Run one attempt for the Repository ``namespace/name``."""
        try:
            repository = await self._store.get_repository(namespace, name)
        except ObjectNotFoundError:
            return self._log_missing(namespace, name)

        status = repository.status
        if status.observed_generation == repository.metadata.generation and is_true(
            status.conditions, ConditionType.READY
        ):
            return self._skip(repository, "repository already reconciled")

        return await self._run_attempt(repository, self._attempt)

    async def _attempt(self, repository: Repository) -> ReconcileResult:
        generation = repository.metadata.generation
        if generation != repository.status.observed_generation:
            message = f"Reconciling new object generation ({generation})"
        else:
            message = "Reconciling"
        mark_reconciling(repository.status.conditions, generation, message)

        try:
            secret = await self._store.get_secret(
                repository.metadata.namespace,
                repository.spec.credentials.secret_ref.name,
            )
        except ObjectNotFoundError as exc:
            return self._not_ready(repository, Reason.CREDENTIALS_NOT_FOUND, exc)

        try:
            validate_repository_spec(repository)
        except ConfigurationError as exc:
            return self._stalled(repository, exc.reason, exc)

        try:
            self._chain.select(repository.spec.provider)
        except UnsupportedProviderError as exc:
            return self._stalled(repository, Reason.UNSUPPORTED_PROVIDER, exc)

        try:
            outcome = await self._provision(repository, secret)
        except ProviderError as exc:
            return self._not_ready(repository, Reason.REPOSITORY_CREATE_FAILED, exc)

        protection = await self._chain.create_branch_protection(repository, secret)
        match protection.status:
            case ProtectionStatus.FAILED:
                return self._not_ready(
                    repository,
                    Reason.UPDATING_BRANCH_PROTECTION_FAILED,
                    BranchProtectionError(protection.detail),
                )
            case ProtectionStatus.UNSUPPORTED:
                suffix = f"; branch protection not applied: {protection.detail}"
            case _:
                suffix = ""

        verb = "created" if outcome.created else "adopted"
        return self._ready(repository, f"Repository {outcome.url} {verb}{suffix}")

    async def _provision(
        self, repository: Repository, secret: Secret
    ) -> RepositoryOutcome:
        """Create or adopt the repository unless the status already records it."""
        status = repository.status
        url = repository.repository_url()
        if status.url == url:
            log_info(
                logger,
                "Repository %s already provisioned at %s; skipping creation",
                repository.metadata.key,
                url,
            )
            return RepositoryOutcome(created=status.created, url=url)

        outcome = await self._chain.create_repository(repository, secret)
        status.url = outcome.url
        status.created = outcome.created
        return outcome
