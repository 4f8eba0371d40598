"""Checkpoint subsystem for crash recovery.

Provides:
- model: Pure transitions over the Checkpoint value
- cleanup: Best-effort concurrent execution of compensation actions
- checkpoint_dumps/checkpoint_loads: Type-preserving JSON for step results and params
- to_stored_form: The value a step result or param reads back as after a reload
- checkpoint_to_row/row_to_checkpoint: Row encoding for record-oriented stores
"""

from durastep.core.checkpoint import cleanup, model
from durastep.core.checkpoint.cleanup import execute_all, execute_cleanup
from durastep.core.checkpoint.serialization import (
    checkpoint_dumps,
    checkpoint_loads,
    checkpoint_to_row,
    row_to_checkpoint,
    to_stored_form,
)

__all__ = [
    "checkpoint_dumps",
    "checkpoint_loads",
    "checkpoint_to_row",
    "cleanup",
    "execute_all",
    "execute_cleanup",
    "model",
    "row_to_checkpoint",
    "to_stored_form",
]
