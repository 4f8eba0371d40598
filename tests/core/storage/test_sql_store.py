"""SQLCheckpointStore specifics: schema, failure policy, lazy initialization."""

from pathlib import Path

import pytest
from sqlalchemy import inspect, insert

from durastep.contracts import CheckpointDecodeError, CleanupSpec, StorageError
from durastep.core.checkpoint import model
from durastep.core.clock import MockClock
from durastep.core.storage import SQLCheckpointStore
from durastep.core.storage.schema import checkpoint_runs_table


def _unreachable_store(tmp_path: Path) -> SQLCheckpointStore:
    # Parent directory does not exist, so SQLite cannot open the file
    return SQLCheckpointStore(f"sqlite:///{tmp_path}/missing-dir/checkpoints.db")


class TestSchema:
    def test_table_and_indexes_created_on_first_use(self, sql_store: SQLCheckpointStore) -> None:
        inspector = inspect(sql_store.engine)

        assert "checkpoint_runs" in inspector.get_table_names()
        columns = {c["name"] for c in inspector.get_columns("checkpoint_runs")}
        assert columns == {"run_id", "started_at", "completed_at", "status", "steps", "cleanup"}
        index_names = {ix["name"] for ix in inspector.get_indexes("checkpoint_runs")}
        assert {"ix_checkpoint_runs_status", "ix_checkpoint_runs_status_started"} <= index_names

    def test_engine_is_created_once(self, sql_store: SQLCheckpointStore) -> None:
        assert sql_store.engine is sql_store.engine

    def test_file_database_uses_wal(self, sql_store: SQLCheckpointStore) -> None:
        with sql_store.engine.connect() as conn:
            mode = conn.exec_driver_sql("PRAGMA journal_mode").scalar()
        assert mode == "wal"


class TestPersistence:
    @pytest.mark.asyncio
    async def test_survives_reopen(self, tmp_path: Path, clock: MockClock) -> None:
        url = f"sqlite:///{tmp_path}/reopen.db"
        cp = model.with_step(model.empty_checkpoint("r1", now=clock.now()), "s", [1, 2], "h", now=clock.now())

        with SQLCheckpointStore(url, clock=clock) as first:
            await first.upsert(cp)

        with SQLCheckpointStore(url, clock=clock) as second:
            assert await second.fetch_one("r1") == cp

    @pytest.mark.asyncio
    async def test_in_memory_shared_across_worker_threads(self, clock: MockClock) -> None:
        with SQLCheckpointStore.in_memory(clock=clock) as store:
            cp = model.empty_checkpoint("r1", now=clock.now())
            await store.upsert(cp)
            assert await store.fetch_one("r1") == cp


class TestFailurePolicy:
    """fetch_one is tolerant; writes and scans raise StorageError."""

    @pytest.mark.asyncio
    async def test_fetch_one_treats_database_error_as_absent(self, tmp_path: Path) -> None:
        store = _unreachable_store(tmp_path)
        assert await store.fetch_one("r1") is None

    @pytest.mark.asyncio
    async def test_upsert_raises_storage_error(self, tmp_path: Path, clock: MockClock) -> None:
        store = _unreachable_store(tmp_path)

        with pytest.raises(StorageError, match="upsert failed") as exc_info:
            await store.upsert(model.empty_checkpoint("r1", now=clock.now()))
        assert exc_info.value.operation == "upsert"
        assert exc_info.value.__cause__ is not None

    @pytest.mark.asyncio
    async def test_delete_raises_storage_error(self, tmp_path: Path) -> None:
        with pytest.raises(StorageError, match="delete failed"):
            await _unreachable_store(tmp_path).delete_one("r1")

    @pytest.mark.asyncio
    async def test_scans_raise_storage_error(self, tmp_path: Path) -> None:
        from datetime import timedelta

        store = _unreachable_store(tmp_path)
        with pytest.raises(StorageError, match="fetch_stale"):
            await store.fetch_stale(timedelta(hours=1))
        with pytest.raises(StorageError, match="fetch_pending_cleanups"):
            await store.fetch_pending_cleanups()


class TestUndecodableRows:
    def _insert_bad_row(self, store: SQLCheckpointStore, clock: MockClock) -> None:
        with store.engine.begin() as conn:
            conn.execute(
                insert(checkpoint_runs_table).values(
                    run_id="corrupt",
                    started_at=clock.now(),
                    status="running",
                    steps="{broken",
                    cleanup='[{"id": "x"}]',
                )
            )

    @pytest.mark.asyncio
    async def test_fetch_one_raises_decode_error(self, sql_store: SQLCheckpointStore, clock: MockClock) -> None:
        self._insert_bad_row(sql_store, clock)

        with pytest.raises(CheckpointDecodeError) as exc_info:
            await sql_store.fetch_one("corrupt")
        assert exc_info.value.run_id == "corrupt"

    @pytest.mark.asyncio
    async def test_scans_skip_bad_rows(self, sql_store: SQLCheckpointStore, clock: MockClock) -> None:
        self._insert_bad_row(sql_store, clock)
        good = model.with_cleanup(model.empty_checkpoint("good", now=clock.now()), CleanupSpec("delete_temp"), now=clock.now())
        await sql_store.upsert(good)

        pending = await sql_store.fetch_pending_cleanups()

        assert [cp.run_id for cp in pending] == ["good"]
