"""Wire the store, pipeline, provider chain and reconcilers together.

Actors and the CLI build everything for one run through
:func:`controller_runtime`, which also releases the database engine and HTTP
clients when the run ends.

Configuration is driven by :class:`gitsync.config.ControllerConfig`; the
database URL may be passed explicitly to override ``GITSYNC_DATABASE_URL``.
"""

from __future__ import annotations

import contextlib
import dataclasses
import typing as typ

from sqlalchemy.ext.asyncio import create_async_engine

from gitsync.blobs import RegistryBlobStore
from gitsync.controller import RepositoryReconciler, SyncReconciler
from gitsync.git import GitPushPipeline
from gitsync.providers import build_default_chain
from gitsync.store import SqlObjectStore

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from gitsync.blobs import BlobStore
    from gitsync.config import ControllerConfig
    from gitsync.providers import ProviderChain


class RuntimeConfigError(ValueError):
    """Raised when the runtime cannot be assembled from configuration."""

    @classmethod
    def missing(cls, env_var: str) -> RuntimeConfigError:
        """Return an error naming the missing environment variable."""
        return cls(f"{env_var} is required")


@dataclasses.dataclass(frozen=True, slots=True)
class ControllerRuntime:
    """Everything needed to run reconcile attempts."""

    store: SqlObjectStore
    sync_reconciler: SyncReconciler
    repository_reconciler: RepositoryReconciler


@contextlib.asynccontextmanager
async def controller_runtime(
    config: ControllerConfig,
    *,
    database_url: str | None = None,
    blob_store: BlobStore | None = None,
    chain: ProviderChain | None = None,
) -> cabc.AsyncIterator[ControllerRuntime]:
    """Yield a runtime built from ``config``.

    ``blob_store`` and ``chain`` replace the registry client and the default
    provider chain; the caller keeps ownership of anything passed in.

    Raises
    ------
    RuntimeConfigError
        If no database URL is available, or no registry URL is configured and
        no blob store was given.

    """
    url = database_url or config.database_url
    if not url:
        raise RuntimeConfigError.missing("GITSYNC_DATABASE_URL")

    async with contextlib.AsyncExitStack() as stack:
        if blob_store is None:
            if not config.registry_url:
                raise RuntimeConfigError.missing("GITSYNC_REGISTRY_URL")
            registry = RegistryBlobStore(
                config.registry_url,
                token=config.registry_token,
                timeout_s=config.http_timeout_s,
            )
            stack.push_async_callback(registry.aclose)
            blob_store = registry

        if chain is None:
            chain = build_default_chain(timeout_s=config.http_timeout_s)
            stack.push_async_callback(chain.aclose)

        engine = create_async_engine(url)
        stack.push_async_callback(engine.dispose)
        store = await SqlObjectStore.from_engine(engine)

        pipeline = GitPushPipeline.from_config(config, blob_store)
        yield ControllerRuntime(
            store=store,
            sync_reconciler=SyncReconciler(store, pipeline, chain),
            repository_reconciler=RepositoryReconciler(store, chain),
        )
