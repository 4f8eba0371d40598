"""Exception hierarchy.

Cleanup failures are never raised; they are reported as CleanupOutcome values.
Everything here signals a condition that must reach the caller because the
durable state can no longer be trusted to match the in-memory checkpoint.
"""


class DurastepError(Exception):
    """Base class for all durastep errors."""


class StorageError(DurastepError):
    """Raised when a storage adapter fails to persist, delete or scan checkpoints.

    The original driver exception is chained as __cause__.
    """

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        super().__init__(f"{operation} failed: {message}")


class CheckpointDecodeError(DurastepError):
    """Raised when a stored row cannot be decoded into a Checkpoint."""

    def __init__(self, run_id: str | None, message: str) -> None:
        self.run_id = run_id
        super().__init__(f"Cannot decode checkpoint {run_id!r}: {message}")


class RegistryImportError(DurastepError):
    """Raised when a cleanup registry reference cannot be imported."""
