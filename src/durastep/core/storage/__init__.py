"""Storage adapters for checkpoints.

Provides:
- InMemoryCheckpointStore: dict-backed adapter (tests, single process)
- SQLCheckpointStore: SQLAlchemy adapter for SQLite/PostgreSQL
- create_storage: Build an adapter from StorageSettings
"""

from durastep.contracts import StorageAdapter
from durastep.core.clock import Clock
from durastep.core.config import StorageSettings
from durastep.core.storage.database import SQLCheckpointStore
from durastep.core.storage.memory import InMemoryCheckpointStore


def create_storage(settings: StorageSettings, *, clock: Clock | None = None) -> StorageAdapter:
    """Build the storage adapter described by settings."""
    if settings.backend == "memory":
        return InMemoryCheckpointStore(clock=clock)
    return SQLCheckpointStore(settings.url, echo=settings.echo, clock=clock)


__all__ = [
    "InMemoryCheckpointStore",
    "SQLCheckpointStore",
    "create_storage",
]
