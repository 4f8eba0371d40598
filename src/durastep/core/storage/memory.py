"""Dictionary-backed storage adapter.

Holds Checkpoint values directly (they are immutable, so no copying is
needed). Suitable for tests and single-process use; nothing survives the
process.
"""

from datetime import timedelta

from durastep.contracts import Checkpoint, CheckpointStatus
from durastep.core.clock import DEFAULT_CLOCK, Clock


class InMemoryCheckpointStore:
    """StorageAdapter over a plain dict keyed by run_id."""

    def __init__(self, *, clock: Clock | None = None) -> None:
        self._clock = clock if clock is not None else DEFAULT_CLOCK
        self._rows: dict[str, Checkpoint] = {}

    async def fetch_one(self, run_id: str) -> Checkpoint | None:
        return self._rows.get(run_id)

    async def upsert(self, checkpoint: Checkpoint) -> Checkpoint:
        self._rows[checkpoint.run_id] = checkpoint
        return checkpoint

    async def delete_one(self, run_id: str) -> None:
        self._rows.pop(run_id, None)

    async def fetch_stale(self, stale_after: timedelta) -> list[Checkpoint]:
        cutoff = self._clock.now() - stale_after
        return [cp for cp in self._rows.values() if cp.status is CheckpointStatus.RUNNING and cp.started_at < cutoff]

    async def fetch_pending_cleanups(self) -> list[Checkpoint]:
        return [cp for cp in self._rows.values() if cp.has_pending_cleanup]

    def __len__(self) -> int:
        return len(self._rows)

    def __contains__(self, run_id: object) -> bool:
        return run_id in self._rows
