"""Resource persistence with optimistic concurrency.

Initialise a store and load a manifest (async)::

    >>> from sqlalchemy.ext.asyncio import create_async_engine
    >>> from gitsync.store import SqlObjectStore
    >>> engine = create_async_engine("sqlite+aiosqlite:///gitsync.db")
    >>> store = await SqlObjectStore.from_engine(engine)
    >>> sync = await store.apply(sync)
"""

from __future__ import annotations

from .errors import ConflictError, ObjectNotFoundError, StoreError
from .protocol import ObjectStore
from .sql import SessionFactory, SqlObjectStore
from .storage import Base, ResourceRecord, UTCDateTime, init_store_storage

__all__ = [
    "Base",
    "ConflictError",
    "ObjectNotFoundError",
    "ObjectStore",
    "ResourceRecord",
    "SessionFactory",
    "SqlObjectStore",
    "StoreError",
    "UTCDateTime",
    "init_store_storage",
]
