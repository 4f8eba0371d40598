# tests/property/conftest.py
"""Shared Hypothesis strategies for property-based tests.

Usage:
    from tests.property.conftest import json_values, checkpoints

    @given(cp=checkpoints())
    def test_row_round_trip(cp: Checkpoint) -> None:
        ...
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

from hypothesis import strategies as st

from durastep.contracts import Checkpoint, CheckpointStatus, CleanupSpec
from durastep.core.checkpoint import model

# =============================================================================
# RFC 8785 / JSON Canonicalization Scheme Constraints
# =============================================================================

# RFC 8785 (JCS) uses JavaScript-safe integers: -(2^53-1) to (2^53-1)
MAX_SAFE_INT = 2**53 - 1
MIN_SAFE_INT = -(2**53 - 1)


# =============================================================================
# Core JSON Strategies
# =============================================================================

# JSON-safe primitives (excluding NaN/Infinity which are rejected)
json_primitives = (
    st.none()
    | st.booleans()
    | st.integers(min_value=MIN_SAFE_INT, max_value=MAX_SAFE_INT)
    | st.floats(allow_nan=False, allow_infinity=False)
    | st.text(max_size=100)
)

# Recursive strategy for nested JSON structures (arrays and objects)
json_values = st.recursive(
    json_primitives,
    lambda children: (st.lists(children, max_size=10) | st.dictionaries(st.text(max_size=20), children, max_size=10)),
    max_leaves=50,
)

json_objects = st.dictionaries(st.text(max_size=20), json_values, max_size=10)


# =============================================================================
# Checkpoint Strategies
# =============================================================================

step_names = st.text(min_size=1, max_size=30)
action_types = st.sampled_from(["delete_temp", "delete_upload", "release_lock", "refund"])

aware_datetimes = st.datetimes(
    min_value=datetime(2000, 1, 1),
    max_value=datetime(2100, 1, 1),
    timezones=st.just(UTC),
)


@st.composite
def checkpoints(draw: st.DrawFn) -> Checkpoint:
    """A checkpoint built through the public transitions, in any status."""
    now = draw(aware_datetimes)
    cp = model.empty_checkpoint(draw(st.text(min_size=1, max_size=40)), now=now)

    for name in draw(st.lists(step_names, max_size=5, unique=True)):
        now += timedelta(seconds=draw(st.integers(min_value=0, max_value=3600)))
        cp = model.with_step(cp, name, draw(json_values), draw(st.text(min_size=1, max_size=10)), now=now)

    for action_type in draw(st.lists(action_types, max_size=4)):
        params: dict[str, Any] = draw(json_objects)
        cp = model.with_cleanup(cp, CleanupSpec(action_type, params), now=now)

    status = draw(st.sampled_from(list(CheckpointStatus)))
    if status is not CheckpointStatus.RUNNING:
        cp = model.with_status(cp, status, now=now)
    return cp
