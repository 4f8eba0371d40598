# src/durastep/engine/orchestrator.py
"""CheckpointOrchestrator: the run lifecycle over a storage adapter.

State machine over Checkpoint.status:
    RUNNING -> COMPLETED (terminal)
    RUNNING -> FAILED    (terminal)
Re-entry into RUNNING happens only through the crash-recovery pass in load().

Every method that changes a run persists the new checkpoint before returning
it. The checkpoint passed in is never modified; the caller must adopt the
returned value before the next call on the same run:

    orchestrator = CheckpointOrchestrator(storage, {"delete_temp": delete_temp})
    cp = await orchestrator.load("file-123")

    parsed = await orchestrator.step(cp, "parse", {"path": path}, lambda: parse(path))
    cp = parsed.checkpoint

    cp = await orchestrator.before_risky(cp, "delete_upload", {"key": key})
    await upload(key)
    cp = await orchestrator.after_safe(cp, "delete_upload")

    cp = await orchestrator.complete(cp)

Storage calls for one run are issued sequentially. Storage write failures
propagate; step function exceptions propagate unchanged; cleanup failures are
contained by the cleanup executor.

Only a single in-process caller holding the current checkpoint gets
at-most-once step execution. Two processes driving the same run_id can both
miss the cache and both run a step; the last upsert wins.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import Any, TypeVar

from durastep.contracts import (
    Checkpoint,
    CheckpointStatus,
    CleanupRegistry,
    CleanupSpec,
    StepResult,
    StorageAdapter,
    SweepResult,
)
from durastep.core.canonical import fingerprint
from durastep.core.checkpoint import cleanup, model
from durastep.core.checkpoint.serialization import to_stored_form
from durastep.core.clock import DEFAULT_CLOCK, Clock
from durastep.core.logging import get_logger, run_context

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_STALE_AFTER = timedelta(hours=1)

StepFunction = Callable[[], Awaitable[T] | T]


def as_stale_after(value: timedelta | int | float) -> timedelta:
    """Normalize a stale threshold; bare numbers are milliseconds."""
    if isinstance(value, timedelta):
        return value
    return timedelta(milliseconds=value)


class CheckpointOrchestrator:
    """Drives memoized steps, compensations and recovery for workflow runs."""

    def __init__(
        self,
        storage: StorageAdapter,
        registry: CleanupRegistry | None = None,
        *,
        clock: Clock | None = None,
    ) -> None:
        """Initialize with caller-owned collaborators.

        Args:
            storage: Adapter that persists checkpoints
            registry: Compensation runners by action type (default: none)
            clock: Time source for checkpoint timestamps (default: system clock)
        """
        self._storage = storage
        self._registry: CleanupRegistry = registry if registry is not None else {}
        self._clock = clock if clock is not None else DEFAULT_CLOCK

    @property
    def storage(self) -> StorageAdapter:
        return self._storage

    @property
    def registry(self) -> CleanupRegistry:
        return self._registry

    async def load(self, run_id: str) -> Checkpoint:
        """Fetch a run or start a fresh one, recovering pending cleanup first.

        If the stored checkpoint still lists cleanup actions, the previous
        process died between registering a compensation and confirming the
        risky operation. All of them are executed, then the run restarts as
        RUNNING with an empty cleanup list and a new started_at.

        Returns:
            The persisted checkpoint the caller must adopt
        """
        with run_context(run_id):
            existing = await self._storage.fetch_one(run_id)
            cp = existing if existing is not None else model.empty_checkpoint(run_id, now=self._clock.now())

            if cp.has_pending_cleanup:
                logger.warning("recovering pending cleanups", pending=len(cp.cleanup))
                await cleanup.execute_all(self._registry, cp.cleanup)
                cp = model.restarted(cp, now=self._clock.now())

            return await self._storage.upsert(cp)

    async def step(
        self,
        cp: Checkpoint,
        name: str,
        inputs: Any,
        fn: StepFunction[T],
    ) -> StepResult:
        """Run fn once per distinct inputs, returning the memoized result afterwards.

        The value handed back is always the stored form of fn's result, the
        same value a reload returns: tuples come back as lists, non-string
        mapping keys as strings and naive datetimes as UTC-aware.

        Args:
            cp: Current checkpoint for the run
            name: Step name, unique within the run
            inputs: Everything fn's result depends on; fingerprinted for cache checks
            fn: Zero-argument callable (sync or async) producing the step result

        Returns:
            StepResult with the value and the checkpoint to adopt

        Raises:
            Exception: Whatever fn raises, unchanged; nothing is persisted
            TypeError: If fn's result cannot be stored as JSON; nothing is persisted
            ValueError: If fn's result holds NaN or Infinity; nothing is persisted
            StorageError: If the result could not be persisted
        """
        with run_context(cp.run_id, step=name):
            input_hash = fingerprint(inputs)
            cached = model.check_cache(cp.steps.get(name), input_hash)

            if cached.hit:
                logger.info("step cached", input_hash=input_hash)
                return StepResult(value=cached.result, checkpoint=cp, cached=True)

            logger.info("step executing", input_hash=input_hash)
            value = fn()
            if inspect.isawaitable(value):
                value = await value

            stored = to_stored_form(value)
            updated = await self._storage.upsert(model.with_step(cp, name, stored, input_hash, now=self._clock.now()))
            logger.info("step saved")
            return StepResult(value=updated.steps[name].result, checkpoint=updated, cached=False)

    async def before_risky(
        self,
        cp: Checkpoint,
        action_type: str,
        params: dict[str, Any] | None = None,
    ) -> Checkpoint:
        """Durably register a compensation BEFORE starting an operation that cannot be trivially undone.

        params are kept in their stored form, so a runner sees the same
        mapping whether it fires in this process or after a restart.
        """
        with run_context(cp.run_id, action_type=action_type):
            spec = CleanupSpec(type=action_type, params=to_stored_form(params) if params is not None else {})
            updated = await self._storage.upsert(model.with_cleanup(cp, spec, now=self._clock.now()))
            logger.info("cleanup registered")
            return updated

    async def after_safe(self, cp: Checkpoint, action_type: str) -> Checkpoint:
        """Drop all compensations of a type once the risky operation is confirmed."""
        with run_context(cp.run_id, action_type=action_type):
            updated = await self._storage.upsert(model.without_cleanup(cp, action_type))
            logger.info("cleanup cleared")
            return updated

    async def complete(self, cp: Checkpoint) -> Checkpoint:
        with run_context(cp.run_id):
            updated = await self._storage.upsert(model.with_status(cp, CheckpointStatus.COMPLETED, now=self._clock.now()))
            logger.info("run completed", steps=len(updated.steps))
            return updated

    async def fail(self, cp: Checkpoint) -> Checkpoint:
        with run_context(cp.run_id):
            updated = await self._storage.upsert(model.with_status(cp, CheckpointStatus.FAILED, now=self._clock.now()))
            logger.warning("run failed", steps=len(updated.steps))
            return updated

    async def clear_step(self, cp: Checkpoint, name: str) -> Checkpoint:
        """Forget a step's memoized result so it re-executes on the next call."""
        with run_context(cp.run_id, step=name):
            updated = await self._storage.upsert(model.without_step(cp, name))
            logger.info("step cleared")
            return updated

    async def clear(self, run_id: str) -> None:
        """Delete the run's checkpoint entirely."""
        with run_context(run_id):
            await self._storage.delete_one(run_id)
            logger.info("run cleared")

    async def sweep(self, stale_after: timedelta | int | float = DEFAULT_STALE_AFTER) -> SweepResult:
        """Reap abandoned runs.

        Every RUNNING checkpoint older than stale_after has its pending
        cleanup executed and is persisted as FAILED with no cleanup.

        Args:
            stale_after: Age threshold (timedelta, or milliseconds)

        Returns:
            SweepResult listing the reaped run ids
        """
        threshold = as_stale_after(stale_after)
        stale = await self._storage.fetch_stale(threshold)
        run_ids = await asyncio.gather(*(self._reap(cp) for cp in stale))
        logger.info("sweep finished", cleaned=len(run_ids), stale_after_seconds=threshold.total_seconds())
        return SweepResult(cleaned=len(run_ids), details=list(run_ids))

    async def sweep_all_cleanups(self) -> SweepResult:
        """Run and drain pending cleanup for every run, leaving status untouched."""
        pending = await self._storage.fetch_pending_cleanups()
        run_ids = await asyncio.gather(*(self._drain(cp) for cp in pending))
        logger.info("cleanup sweep finished", cleaned=len(run_ids))
        return SweepResult(cleaned=len(run_ids), details=list(run_ids))

    async def _reap(self, cp: Checkpoint) -> str:
        # gather() runs each coroutine in its own task, so bindings stay per run
        with run_context(cp.run_id):
            logger.warning("reaping stale run", pending=len(cp.cleanup))
            await cleanup.execute_all(self._registry, cp.cleanup)
            reaped = model.with_status(model.without_any_cleanup(cp), CheckpointStatus.FAILED, now=self._clock.now())
            await self._storage.upsert(reaped)
        return cp.run_id

    async def _drain(self, cp: Checkpoint) -> str:
        with run_context(cp.run_id):
            await cleanup.execute_all(self._registry, cp.cleanup)
            await self._storage.upsert(model.without_any_cleanup(cp))
        return cp.run_id
