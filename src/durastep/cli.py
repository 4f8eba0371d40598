# src/durastep/cli.py
"""durastep Command Line Interface.

Operational commands for inspecting and reaping checkpointed runs. Workflows
themselves drive CheckpointOrchestrator in-process; this CLI is what cron or a
scheduler calls to sweep abandoned runs.
"""

from __future__ import annotations

import asyncio
import json
from datetime import timedelta
from collections.abc import Coroutine
from pathlib import Path
from typing import Any, TypeVar

import typer
from pydantic import ValidationError

from durastep import __version__
from durastep.contracts import Checkpoint, CleanupRegistry, DurastepError, RegistryImportError, StorageAdapter
from durastep.core.checkpoint.serialization import checkpoint_to_row
from durastep.core.config import DurastepSettings, load_settings
from durastep.core.logging import configure_logging
from durastep.core.registry import load_registry
from durastep.core.storage import SQLCheckpointStore, create_storage
from durastep.engine import CheckpointOrchestrator

__all__ = ["app"]

T = TypeVar("T")

app = typer.Typer(
    name="durastep",
    help="durastep: crash-recoverable checkpoints for multi-step workflows.",
    no_args_is_help=True,
)

_SETTINGS_OPTION = typer.Option(
    None,
    "--settings",
    "-s",
    help="Path to settings YAML file (default: ./settings.yaml if present).",
)
_DATABASE_OPTION = typer.Option(
    None,
    "--database",
    "-d",
    help="SQLite database file or SQLAlchemy URL (overrides settings).",
)
_REGISTRY_OPTION = typer.Option(
    None,
    "--registry",
    "-r",
    help="Cleanup registry as 'module:attribute' (overrides settings).",
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"durastep version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """durastep: crash-recoverable checkpoints for multi-step workflows."""


def _load_cli_settings(settings_file: str | None) -> DurastepSettings:
    """Load settings from an explicit file, ./settings.yaml, or defaults; configure logging."""
    if settings_file is not None:
        settings_path = Path(settings_file).expanduser()
        if not settings_path.exists():
            typer.echo(f"Error: Settings file not found: {settings_path}", err=True)
            raise typer.Exit(1)
    else:
        settings_path = Path("settings.yaml")

    if settings_path.exists():
        try:
            settings = load_settings(settings_path)
        except ValidationError as e:
            typer.echo(f"Error: Invalid settings in {settings_path}:\n{e}", err=True)
            raise typer.Exit(1) from None
    else:
        settings = DurastepSettings()

    configure_logging(json_output=settings.logging.json_output, level=settings.logging.level)
    return settings


def _open_storage(settings: DurastepSettings, database: str | None) -> StorageAdapter:
    if database is None:
        return create_storage(settings.storage)
    if "://" in database:
        return SQLCheckpointStore(database)
    db_path = Path(database).expanduser().resolve()
    # Fail fast on typoed paths instead of silently creating an empty database
    if not db_path.exists():
        typer.echo(f"Error: Database file not found: {db_path}", err=True)
        raise typer.Exit(1)
    return SQLCheckpointStore(f"sqlite:///{db_path}")


def _close_storage(storage: StorageAdapter) -> None:
    if isinstance(storage, SQLCheckpointStore):
        storage.close()


def _resolve_registry(settings: DurastepSettings, registry_ref: str | None) -> CleanupRegistry:
    reference = registry_ref if registry_ref is not None else settings.sweep.registry
    if reference is None:
        typer.echo("Warning: no cleanup registry configured; pending cleanup actions will be skipped.", err=True)
        return {}
    try:
        return load_registry(reference)
    except RegistryImportError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None


def _run(operation: Coroutine[Any, Any, T]) -> T:
    """Drive one async operation, reporting storage and decode failures as a CLI error."""
    try:
        return asyncio.run(operation)
    except DurastepError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None


def _require_run(storage: StorageAdapter, run_id: str) -> Checkpoint:
    cp = _run(storage.fetch_one(run_id))
    if cp is None:
        typer.echo(f"Error: Run not found: {run_id}", err=True)
        raise typer.Exit(1)
    return cp


def _format_checkpoint(cp: Checkpoint) -> str:
    lines = [
        f"Run:       {cp.run_id}",
        f"Status:    {cp.status}",
        f"Started:   {cp.started_at.isoformat()}",
        f"Completed: {cp.completed_at.isoformat() if cp.completed_at else '-'}",
        f"Steps ({len(cp.steps)}):",
    ]
    for name, record in sorted(cp.steps.items(), key=lambda item: item[1].completed_at):
        lines.append(f"  {name}  hash={record.input_hash}  at={record.completed_at.isoformat()}")
    lines.append(f"Pending cleanup ({len(cp.cleanup)}):")
    for action in cp.cleanup:
        lines.append(f"  {action.type}  id={action.id}  params={json.dumps(action.params, default=str, sort_keys=True)}")
    return "\n".join(lines)


@app.command()
def show(
    run_id: str = typer.Argument(..., help="Run ID to inspect"),
    as_json: bool = typer.Option(False, "--json", help="Print the stored row as JSON."),
    settings_file: str | None = _SETTINGS_OPTION,
    database: str | None = _DATABASE_OPTION,
) -> None:
    """Show a run's status, completed steps and pending cleanup."""
    settings = _load_cli_settings(settings_file)
    storage = _open_storage(settings, database)
    try:
        cp = _require_run(storage, run_id)
        if as_json:
            typer.echo(json.dumps(checkpoint_to_row(cp, structured=True), default=str, indent=2))
        else:
            typer.echo(_format_checkpoint(cp))
    finally:
        _close_storage(storage)


@app.command()
def clear(
    run_id: str = typer.Argument(..., help="Run ID to delete"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt."),
    settings_file: str | None = _SETTINGS_OPTION,
    database: str | None = _DATABASE_OPTION,
) -> None:
    """Delete a run's checkpoint. The next load starts the run from scratch."""
    settings = _load_cli_settings(settings_file)
    storage = _open_storage(settings, database)
    try:
        cp = _require_run(storage, run_id)
        if cp.has_pending_cleanup:
            typer.echo(f"Warning: run {run_id} has {len(cp.cleanup)} pending cleanup action(s) that will be discarded.", err=True)
        if not yes and not typer.confirm(f"Delete checkpoint for run {run_id}?"):
            typer.echo("Aborted.")
            raise typer.Exit(1)
        _run(CheckpointOrchestrator(storage).clear(run_id))
        typer.echo(f"Cleared run {run_id}")
    finally:
        _close_storage(storage)


@app.command("clear-step")
def clear_step(
    run_id: str = typer.Argument(..., help="Run ID"),
    step: str = typer.Argument(..., help="Step name to forget"),
    settings_file: str | None = _SETTINGS_OPTION,
    database: str | None = _DATABASE_OPTION,
) -> None:
    """Forget one step's memoized result so it re-executes on the next run."""
    settings = _load_cli_settings(settings_file)
    storage = _open_storage(settings, database)
    try:
        cp = _require_run(storage, run_id)
        if step not in cp.steps:
            typer.echo(f"Error: Run {run_id} has no step {step!r}", err=True)
            raise typer.Exit(1)
        _run(CheckpointOrchestrator(storage).clear_step(cp, step))
        typer.echo(f"Cleared step {step!r} of run {run_id}")
    finally:
        _close_storage(storage)


@app.command()
def sweep(
    stale_after_seconds: float | None = typer.Option(
        None,
        "--stale-after-seconds",
        "-t",
        min=0,
        help="Age after which RUNNING runs are reaped (default: from settings, 3600).",
    ),
    registry_ref: str | None = _REGISTRY_OPTION,
    settings_file: str | None = _SETTINGS_OPTION,
    database: str | None = _DATABASE_OPTION,
) -> None:
    """Reap abandoned runs: run their pending cleanup and mark them FAILED."""
    settings = _load_cli_settings(settings_file)
    registry = _resolve_registry(settings, registry_ref)
    stale_after = timedelta(seconds=stale_after_seconds) if stale_after_seconds is not None else settings.sweep.stale_after
    storage = _open_storage(settings, database)
    try:
        result = _run(CheckpointOrchestrator(storage, registry).sweep(stale_after))
    finally:
        _close_storage(storage)

    typer.echo(f"Reaped {result.cleaned} stale run(s)")
    for run_id in result.details:
        typer.echo(f"  {run_id}")


@app.command("sweep-cleanups")
def sweep_cleanups(
    registry_ref: str | None = _REGISTRY_OPTION,
    settings_file: str | None = _SETTINGS_OPTION,
    database: str | None = _DATABASE_OPTION,
) -> None:
    """Run pending cleanup for every run regardless of status, leaving status unchanged."""
    settings = _load_cli_settings(settings_file)
    registry = _resolve_registry(settings, registry_ref)
    storage = _open_storage(settings, database)
    try:
        result = _run(CheckpointOrchestrator(storage, registry).sweep_all_cleanups())
    finally:
        _close_storage(storage)

    typer.echo(f"Drained cleanup for {result.cleaned} run(s)")
    for run_id in result.details:
        typer.echo(f"  {run_id}")


if __name__ == "__main__":
    app()
