# src/durastep/core/storage/schema.py
"""SQLAlchemy table definitions for checkpoint storage.

Uses SQLAlchemy Core (not ORM) for explicit control over queries
and compatibility with multiple database backends.
"""

from sqlalchemy import Column, DateTime, Index, MetaData, String, Table, Text

# Shared metadata for all tables
metadata = MetaData()

# One row per run. steps/cleanup hold type-preserving JSON text
# (see durastep.core.checkpoint.serialization).
checkpoint_runs_table = Table(
    "checkpoint_runs",
    metadata,
    Column("run_id", String(255), primary_key=True),
    Column("started_at", DateTime(timezone=True), nullable=False),
    Column("completed_at", DateTime(timezone=True)),
    Column("status", String(32), nullable=False, default="running"),
    Column("steps", Text, nullable=False, default="{}"),
    Column("cleanup", Text, nullable=False, default="[]"),
)

Index("ix_checkpoint_runs_status", checkpoint_runs_table.c.status)
# Supports fetch_stale(): status = 'running' AND started_at < cutoff
Index(
    "ix_checkpoint_runs_status_started",
    checkpoint_runs_table.c.status,
    checkpoint_runs_table.c.started_at,
)

# Serialized form of an empty cleanup list, used to find pending cleanups
EMPTY_CLEANUP = "[]"
