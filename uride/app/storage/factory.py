"""
Ride store selection.

`get_store` is the FastAPI dependency every ride/driver endpoint uses; the
backend comes from `settings.storage_backend`.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from uride.app.core.config import settings
from uride.app.db.session import get_db
from uride.app.storage.base import RideStore
from uride.app.storage.memory_store import MemoryRideStore
from uride.app.storage.sql_store import SqlRideStore

STORAGE_BACKENDS = ("sql", "firestore", "memory")


@lru_cache(maxsize=1)
def get_memory_store() -> MemoryRideStore:
    """Process-wide in-memory store."""
    return MemoryRideStore()


@lru_cache(maxsize=1)
def get_firestore_store():
    from uride.app.storage.firestore_store import FirestoreRideStore, init_firestore_client

    client = init_firestore_client(
        settings.firebase_credentials_path,
        settings.firebase_project_id,
    )
    return FirestoreRideStore(client)


async def get_store(db: AsyncSession = Depends(get_db)) -> RideStore:
    backend = settings.storage_backend.lower()

    if backend == "sql":
        return SqlRideStore(db)
    if backend == "memory":
        return get_memory_store()
    if backend == "firestore":
        return get_firestore_store()

    raise ValueError(
        f"Unknown storage_backend '{settings.storage_backend}', expected one of {STORAGE_BACKENDS}"
    )
