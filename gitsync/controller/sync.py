"""Reconcile Sync objects into commits, branches and pull requests.

One call to :meth:`SyncReconciler.reconcile` is one attempt:

1. Skip when the current generation already completed with a pushed digest.
2. Resolve the snapshot, repository and credential secret.
3. Resolve the base and target branches.
4. Push the snapshot through the git pipeline and record its digest.
5. Optionally open a pull request and record its id.
6. Mark Ready and advance ``observed_generation``.

A failed step marks Ready False with a step-specific reason; a configuration
error stalls the object instead. The status is written once, at the end.
"""

from __future__ import annotations

import secrets
import typing as typ

from gitsync.common.time import unix_seconds
from gitsync.conditions import (
    ConditionType,
    Reason,
    is_true,
    mark_ready,
    mark_reconciling,
)
from gitsync.errors import ConfigurationError
from gitsync.git.auth import credentials_from_secret
from gitsync.git.errors import CredentialsError, GitOperationError
from gitsync.git.models import PushOptions, SnapshotRef
from gitsync.logging import get_logger, log_info
from gitsync.providers.errors import ProviderError, UnsupportedProviderError
from gitsync.store.errors import ObjectNotFoundError

from .base import ReconcileResult, _Reconciler

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from gitsync.git.models import PushOutcome
    from gitsync.providers.chain import ProviderChain
    from gitsync.resources.models import Sync, SyncSpec
    from gitsync.store.protocol import ObjectStore

logger = get_logger(__name__)

DEFAULT_BASE_BRANCH = "main"


class PushPipeline(typ.Protocol):
    """Interface of :class:`gitsync.git.GitPushPipeline` used here."""

    async def push(self, options: PushOptions) -> PushOutcome:
        """Materialise a snapshot and push it."""
        ...


def generate_branch_name() -> str:
    """Return a fresh branch name for an automatic pull request.

    Examples
    --------
    >>> generate_branch_name().startswith("branch-")
    True

    """
    return f"branch-{unix_seconds()}-{secrets.token_hex(2)}"


def resolve_branches(
    spec: SyncSpec, branch_namer: cabc.Callable[[], str] = generate_branch_name
) -> tuple[str, str]:
    """Return ``(base_branch, target_branch)`` for a sync.

    Raises
    ------
    ConfigurationError
        If no target branch is set without automatic pull requests, or if an
        automatic pull request would target its own head branch.

    """
    template = spec.commit_template
    base = template.base_branch or DEFAULT_BASE_BRANCH
    target = template.target_branch or ""
    if not target:
        if not spec.automatic_pull_request_creation:
            raise ConfigurationError.target_branch_missing()
        target = branch_namer()
    if spec.automatic_pull_request_creation and target == base:
        raise ConfigurationError.pull_request_onto_base(target)
    return base, target


class SyncReconciler(_Reconciler["Sync"]):
    """Drive a Sync from its spec to a pushed snapshot."""

    kind: typ.ClassVar[str] = "Sync"

    def __init__(
        self,
        store: ObjectStore,
        pipeline: PushPipeline,
        chain: ProviderChain,
        *,
        branch_namer: cabc.Callable[[], str] = generate_branch_name,
    ) -> None:
        """Initialise with the store, push pipeline and provider chain."""
        super().__init__(store)
        self._pipeline = pipeline
        self._chain = chain
        self._branch_namer = branch_namer

    async def _write_status(self, obj: Sync, expected_resource_version: int) -> Sync:
        return await self._store.update_sync_status(obj, expected_resource_version)

    async def reconcile(self, namespace: str, name: str) -> ReconcileResult:
        """Run one attempt for the Sync ``namespace/name``."""
        try:
            sync = await self._store.get_sync(namespace, name)
        except ObjectNotFoundError:
            return self._log_missing(namespace, name)

        status = sync.status
        generation = sync.metadata.generation
        if status.digest and status.digest_generation == generation:
            if is_true(status.conditions, ConditionType.READY):
                return self._skip(sync, "digest already pushed")
            message = f"Snapshot {status.digest} already pushed"
            mark_ready(status.conditions, generation, message)
            return await self._persist(
                sync,
                ReconcileResult(ready=True, reason=Reason.SUCCEEDED, message=message),
                sync.metadata.resource_version,
            )

        return await self._run_attempt(sync, self._attempt)

    async def _attempt(self, sync: Sync) -> ReconcileResult:  # noqa: PLR0911
        spec = sync.spec
        namespace = sync.metadata.namespace
        mark_reconciling(
            sync.status.conditions,
            sync.metadata.generation,
            f"Reconciling generation {sync.metadata.generation}",
        )

        try:
            snapshot = await self._store.get_snapshot(namespace, spec.snapshot_ref.name)
        except ObjectNotFoundError as exc:
            return self._not_ready(sync, Reason.SNAPSHOT_GET_FAILED, exc)

        try:
            repository = await self._store.get_repository(
                spec.repository_ref.namespace or namespace, spec.repository_ref.name
            )
        except ObjectNotFoundError as exc:
            return self._not_ready(sync, Reason.REPOSITORY_GET_FAILED, exc)

        try:
            secret = await self._store.get_secret(
                repository.metadata.namespace,
                repository.spec.credentials.secret_ref.name,
            )
            credential = credentials_from_secret(secret)
        except (ObjectNotFoundError, CredentialsError) as exc:
            return self._not_ready(sync, Reason.CREDENTIALS_NOT_FOUND, exc)

        try:
            base_branch, target_branch = resolve_branches(spec, self._branch_namer)
        except ConfigurationError as exc:
            return self._stalled(sync, exc.reason, exc)

        if spec.automatic_pull_request_creation:
            try:
                self._chain.select(repository.spec.provider)
            except UnsupportedProviderError as exc:
                return self._stalled(sync, Reason.UNSUPPORTED_PROVIDER, exc)

        options = PushOptions(
            url=repository.repository_url(),
            base_branch=base_branch,
            target_branch=target_branch,
            author_name=spec.commit_template.name,
            author_email=spec.commit_template.email,
            commit_message=spec.commit_template.message,
            snapshot=SnapshotRef(
                repository_name=snapshot.repository_name(),
                digest=snapshot.spec.digest,
            ),
            auth=credential,
            sub_path=spec.sub_path,
            prune=spec.prune,
        )
        try:
            outcome = await self._pipeline.push(options)
        except GitOperationError as exc:
            return self._not_ready(sync, Reason.GIT_REPOSITORY_PUSH_FAILED, exc)
        sync.status.digest = outcome.digest

        if spec.automatic_pull_request_creation:
            try:
                pull_request_id = await self._chain.create_pull_request(
                    outcome.branch, sync, repository, secret
                )
            except ProviderError as exc:
                return self._not_ready(sync, Reason.CREATE_PULL_REQUEST_FAILED, exc)
            sync.status.pull_request_id = pull_request_id
            log_info(
                logger,
                "Sync %s opened pull request %d from %s",
                sync.metadata.key,
                pull_request_id,
                outcome.branch,
            )

        sync.status.digest_generation = sync.metadata.generation
        return self._ready(
            sync, f"Snapshot {outcome.digest} pushed to branch {outcome.branch}"
        )
