"""Storage adapter and cleanup registry contracts.

Both are provided by the caller; the core never owns their lifecycle.
"""

from collections.abc import Awaitable, Callable, Mapping
from datetime import timedelta
from typing import Any, Protocol, runtime_checkable

from durastep.contracts.checkpoint import Checkpoint

CleanupRunner = Callable[[dict[str, Any]], Awaitable[None] | None]
"""Compensation runner. Receives the action params; may be sync or async."""

CleanupRegistry = Mapping[str, CleanupRunner]
"""Action type -> runner. Unregistered types are tolerated (warning only)."""


@runtime_checkable
class StorageAdapter(Protocol):
    """Durable key-value persistence for checkpoints keyed by run_id."""

    async def fetch_one(self, run_id: str) -> Checkpoint | None:
        """Return the stored checkpoint, or None if absent."""
        ...

    async def upsert(self, checkpoint: Checkpoint) -> Checkpoint:
        """Durably write a checkpoint (idempotent by run_id) and return it."""
        ...

    async def delete_one(self, run_id: str) -> None:
        """Remove a checkpoint. Deleting an absent run is not an error."""
        ...

    async def fetch_stale(self, stale_after: timedelta) -> list[Checkpoint]:
        """Running checkpoints whose started_at is older than now - stale_after."""
        ...

    async def fetch_pending_cleanups(self) -> list[Checkpoint]:
        """Checkpoints of any status with a non-empty cleanup list."""
        ...
