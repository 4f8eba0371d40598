"""Run orchestration over a caller-provided storage adapter and cleanup registry."""

from durastep.engine.orchestrator import DEFAULT_STALE_AFTER, CheckpointOrchestrator, as_stale_after

__all__ = [
    "DEFAULT_STALE_AFTER",
    "CheckpointOrchestrator",
    "as_stale_after",
]
