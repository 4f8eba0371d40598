"""Pure transitions over the Checkpoint value.

Every function returns a NEW Checkpoint and leaves its argument untouched.
Callers that need the latest state must adopt the returned value.

Timestamps default to the current UTC time; pass `now` for deterministic
results (the orchestrator passes its Clock's time).
"""

import dataclasses
import uuid
from datetime import UTC, datetime
from typing import Any

from durastep.contracts import (
    CacheCheck,
    CacheHit,
    CacheMiss,
    Checkpoint,
    CheckpointStatus,
    CleanupAction,
    CleanupSpec,
    StepRecord,
)


def _now(now: datetime | None) -> datetime:
    return now if now is not None else datetime.now(UTC)


def empty_checkpoint(run_id: str, *, now: datetime | None = None) -> Checkpoint:
    """A fresh running checkpoint with no steps and no pending cleanup."""
    return Checkpoint(run_id=run_id, started_at=_now(now))


def check_cache(record: StepRecord | None, input_hash: str) -> CacheCheck[Any]:
    """Hit iff a record exists and it was produced from the same input hash."""
    if record is not None and record.input_hash == input_hash:
        return CacheHit(record.result)
    return CacheMiss()


def with_step(
    cp: Checkpoint,
    name: str,
    result: Any,
    input_hash: str,
    *,
    now: datetime | None = None,
) -> Checkpoint:
    """Insert or overwrite steps[name]; all other fields are untouched."""
    record = StepRecord(result=result, input_hash=input_hash, completed_at=_now(now))
    return dataclasses.replace(cp, steps={**cp.steps, name: record})


def without_step(cp: Checkpoint, name: str) -> Checkpoint:
    """Remove steps[name] if present."""
    if name not in cp.steps:
        return cp
    return dataclasses.replace(cp, steps={k: v for k, v in cp.steps.items() if k != name})


def with_cleanup(cp: Checkpoint, spec: CleanupSpec, *, now: datetime | None = None) -> Checkpoint:
    """Append a compensation action with a fresh unique id."""
    action = CleanupAction(
        id=f"{spec.type}-{uuid.uuid4().hex}",
        type=spec.type,
        params=dict(spec.params),
        registered_at=_now(now),
    )
    return dataclasses.replace(cp, cleanup=(*cp.cleanup, action))


def without_cleanup(cp: Checkpoint, action_type: str) -> Checkpoint:
    """Remove every pending action of the given type (zero, one or many)."""
    return dataclasses.replace(cp, cleanup=tuple(a for a in cp.cleanup if a.type != action_type))


def without_any_cleanup(cp: Checkpoint) -> Checkpoint:
    """Clear the cleanup list wholesale."""
    return dataclasses.replace(cp, cleanup=())


def with_status(cp: Checkpoint, status: CheckpointStatus, *, now: datetime | None = None) -> Checkpoint:
    """Set status; completed_at is stamped for terminal states and cleared for RUNNING."""
    completed_at = None if status is CheckpointStatus.RUNNING else _now(now)
    return dataclasses.replace(cp, status=status, completed_at=completed_at)


def restarted(cp: Checkpoint, *, now: datetime | None = None) -> Checkpoint:
    """State after a crash-recovery pass: running again, cleanup drained, clock reset."""
    return dataclasses.replace(
        cp,
        cleanup=(),
        started_at=_now(now),
        status=CheckpointStatus.RUNNING,
        completed_at=None,
    )
