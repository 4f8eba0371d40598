"""Checkpoint value types.

A Checkpoint is the durable state of one run. Every type here is frozen:
transitions produce new values (see durastep.core.checkpoint.model) and the
caller adopts the returned value explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, TypeVar

from durastep.contracts.enums import CheckpointStatus

T = TypeVar("T")


@dataclass(frozen=True)
class StepRecord:
    """Memoized result of a completed step.

    input_hash is the fingerprint of the inputs that produced result.
    """

    result: Any
    input_hash: str
    completed_at: datetime


@dataclass(frozen=True)
class CleanupSpec:
    """A compensation action as requested by the caller, before registration."""

    type: str
    params: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CleanupAction:
    """A registered compensation action.

    The id is generated at registration time and never reused.
    """

    id: str
    type: str
    params: dict[str, Any]
    registered_at: datetime


@dataclass(frozen=True)
class Checkpoint:
    """Full state of one workflow run, addressed by run_id."""

    run_id: str
    started_at: datetime
    status: CheckpointStatus = CheckpointStatus.RUNNING
    completed_at: datetime | None = None
    steps: dict[str, StepRecord] = field(default_factory=dict)
    cleanup: tuple[CleanupAction, ...] = ()

    def __post_init__(self) -> None:
        if self.status is CheckpointStatus.RUNNING and self.completed_at is not None:
            raise ValueError(f"Running checkpoint {self.run_id!r} must not have completed_at")
        if self.status.is_terminal and self.completed_at is None:
            raise ValueError(f"Checkpoint {self.run_id!r} with status {self.status} requires completed_at")

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def has_pending_cleanup(self) -> bool:
        return len(self.cleanup) > 0


@dataclass(frozen=True)
class CacheHit(Generic[T]):
    """Stored step result whose input hash matched."""

    result: T
    hit: bool = field(default=True, init=False)


@dataclass(frozen=True)
class CacheMiss:
    """No record, or the record was produced from different inputs."""

    hit: bool = field(default=False, init=False)


CacheCheck = CacheHit[T] | CacheMiss
