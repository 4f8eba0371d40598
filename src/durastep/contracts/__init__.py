"""Shared contracts for cross-boundary data types.

This package is a LEAF MODULE with no outbound dependencies to core.

Import patterns:
    from durastep.contracts import Checkpoint, CheckpointStatus, StorageAdapter
"""

from durastep.contracts.checkpoint import (
    CacheCheck,
    CacheHit,
    CacheMiss,
    Checkpoint,
    CleanupAction,
    CleanupSpec,
    StepRecord,
)
from durastep.contracts.enums import CheckpointStatus, CleanupStatus
from durastep.contracts.errors import (
    CheckpointDecodeError,
    DurastepError,
    RegistryImportError,
    StorageError,
)
from durastep.contracts.results import CleanupOutcome, StepResult, SweepResult
from durastep.contracts.storage import CleanupRegistry, CleanupRunner, StorageAdapter

__all__ = [
    "CacheCheck",
    "CacheHit",
    "CacheMiss",
    "Checkpoint",
    "CheckpointDecodeError",
    "CheckpointStatus",
    "CleanupAction",
    "CleanupOutcome",
    "CleanupRegistry",
    "CleanupRunner",
    "CleanupSpec",
    "CleanupStatus",
    "DurastepError",
    "RegistryImportError",
    "StepRecord",
    "StepResult",
    "StorageAdapter",
    "StorageError",
    "SweepResult",
]
