# tests/conftest.py
"""Shared test fixtures and helpers.

Fixtures:
- clock: MockClock pinned to 2024-01-01T00:00:00Z
- memory_store: InMemoryCheckpointStore driven by the mock clock
- sql_store: SQLCheckpointStore over a tmp_path SQLite file
- cleanup_calls / recording_registry: registry whose runners record their params
- orchestrator: CheckpointOrchestrator over memory_store + recording_registry

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import os
from collections.abc import Iterator
from pathlib import Path

import pytest
from hypothesis import Phase, Verbosity, settings

from durastep.contracts import CleanupRegistry
from durastep.core.clock import MockClock
from durastep.core.storage import InMemoryCheckpointStore, SQLCheckpointStore
from durastep.engine import CheckpointOrchestrator
from tests.helpers.cleanup_recorder import CleanupRecorder


@pytest.fixture
def clock() -> MockClock:
    return MockClock()


@pytest.fixture
def memory_store(clock: MockClock) -> InMemoryCheckpointStore:
    return InMemoryCheckpointStore(clock=clock)


@pytest.fixture
def sql_store(tmp_path: Path, clock: MockClock) -> Iterator[SQLCheckpointStore]:
    store = SQLCheckpointStore(f"sqlite:///{tmp_path}/checkpoints.db", clock=clock)
    yield store
    store.close()


@pytest.fixture
def cleanup_recorder() -> CleanupRecorder:
    return CleanupRecorder()


@pytest.fixture
def recording_registry(cleanup_recorder: CleanupRecorder) -> CleanupRegistry:
    return {
        "delete_temp": cleanup_recorder.runner("delete_temp"),
        "delete_upload": cleanup_recorder.runner("delete_upload"),
    }


@pytest.fixture
def orchestrator(
    memory_store: InMemoryCheckpointStore,
    recording_registry: CleanupRegistry,
    clock: MockClock,
) -> CheckpointOrchestrator:
    return CheckpointOrchestrator(memory_store, recording_registry, clock=clock)


# =============================================================================
# Hypothesis Configuration
# =============================================================================

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))
