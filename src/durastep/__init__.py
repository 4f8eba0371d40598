"""
Durastep: crash-recoverable, idempotent execution of multi-step workflows.

A run persists its progress as a checkpoint. Re-running after a crash resumes
from the last completed step and executes any compensation registered for a
risky operation that was never confirmed.
"""

__version__ = "0.1.0"
