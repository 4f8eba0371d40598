"""Status enumerations shared across subsystems."""

from enum import StrEnum


class CheckpointStatus(StrEnum):
    """Status of a workflow run.

    Stored in the database (checkpoint_runs.status).
    """

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not CheckpointStatus.RUNNING


class CleanupStatus(StrEnum):
    """Outcome of attempting a single compensation action."""

    EXECUTED = "executed"
    SKIPPED = "skipped"  # No runner registered for the action type
    FAILED = "failed"
