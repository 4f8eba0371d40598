"""Result types returned by the orchestration API and the cleanup executor."""

from dataclasses import dataclass, field
from typing import Any

from durastep.contracts.checkpoint import Checkpoint
from durastep.contracts.enums import CleanupStatus


@dataclass(frozen=True)
class CleanupOutcome:
    """Result of attempting one compensation action.

    error is set only when status is FAILED.
    """

    action_id: str
    action_type: str
    status: CleanupStatus
    error: str | None = None

    def __post_init__(self) -> None:
        if self.status == CleanupStatus.FAILED and self.error is None:
            raise ValueError("FAILED cleanup outcome must carry an error")
        if self.status != CleanupStatus.FAILED and self.error is not None:
            raise ValueError(f"{self.status} cleanup outcome must not carry an error")

    @property
    def succeeded(self) -> bool:
        return self.status == CleanupStatus.EXECUTED


@dataclass(frozen=True)
class StepResult:
    """Value produced by a memoized step plus the checkpoint to adopt.

    On a cache hit, checkpoint is the caller's checkpoint unchanged.
    """

    value: Any
    checkpoint: Checkpoint
    cached: bool


@dataclass(frozen=True)
class SweepResult:
    """Summary of a sweep pass."""

    cleaned: int
    details: list[str] = field(default_factory=list)
