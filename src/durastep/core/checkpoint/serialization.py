"""Type-preserving JSON serialization and the checkpoint row encoding.

Step results and cleanup params are opaque caller data. Standard json.dumps()
cannot serialize datetime objects, so datetimes are wrapped in collision-safe
type envelopes with ``__durastep_type__`` and ``__durastep_value__`` keys.
User dicts that coincidentally contain the reserved key ``__durastep_type__``
are escaped before encoding, preventing incorrect deserialization.

This is distinct from canonical_json() which is designed for hashing and
does not round-trip.

Row encoding (record-oriented stores):
    run_id, started_at, completed_at, status, steps, cleanup

``steps`` and ``cleanup`` are written either as JSON text or as structured
(already JSON-safe) values. The decoder accepts both so an adapter can pick a
TEXT or a JSON/JSONB column without changing the core.

Nested step and cleanup fields are written in snake_case. The decoder also
reads the camelCase spellings (``inputHash``, ``completedAt``,
``registeredAt``) so rows written by other clients of the same table load.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from durastep.contracts import (
    Checkpoint,
    CheckpointDecodeError,
    CheckpointStatus,
    CleanupAction,
    StepRecord,
)

# Reserved key used for type envelopes. User dicts containing this key
# are escaped via _escape_reserved_keys() before encoding.
_ENVELOPE_TYPE_KEY = "__durastep_type__"
_ENVELOPE_VALUE_KEY = "__durastep_value__"


class CheckpointEncoder(json.JSONEncoder):
    """JSON encoder that preserves datetime with collision-safe type envelopes.

    NaN and Infinity are rejected.
    """

    def default(self, obj: Any) -> Any:
        if isinstance(obj, datetime):
            if obj.tzinfo is None:
                obj = obj.replace(tzinfo=UTC)
            return {
                _ENVELOPE_TYPE_KEY: "datetime",
                _ENVELOPE_VALUE_KEY: obj.isoformat(),
            }

        # Let default encoder handle or raise TypeError
        return super().default(obj)


def _reject_nan_infinity(obj: Any) -> Any:
    """Recursively check for NaN/Infinity in data structure.

    Raises:
        ValueError: If NaN or Infinity found
    """
    if isinstance(obj, float):
        if math.isnan(obj) or math.isinf(obj):
            raise ValueError(f"Cannot serialize non-finite float: {obj}. Use None for missing values, not NaN/Infinity.")
    elif isinstance(obj, dict):
        for v in obj.values():
            _reject_nan_infinity(v)
    elif isinstance(obj, list | tuple):
        for v in obj:
            _reject_nan_infinity(v)
    return obj


def _escape_reserved_keys(obj: Any) -> Any:
    """Recursively escape user dicts that coincidentally contain the reserved key."""
    if isinstance(obj, datetime):
        # Datetimes are handled by CheckpointEncoder, pass through
        return obj
    if isinstance(obj, dict):
        escaped = {k: _escape_reserved_keys(v) for k, v in obj.items()}
        if _ENVELOPE_TYPE_KEY in escaped:
            return {
                _ENVELOPE_TYPE_KEY: "escaped_dict",
                _ENVELOPE_VALUE_KEY: escaped,
            }
        return escaped
    if isinstance(obj, list | tuple):
        return [_escape_reserved_keys(v) for v in obj]
    return obj


def checkpoint_dumps(obj: Any) -> str:
    """Serialize object to JSON with type preservation.

    Raises:
        ValueError: If data contains NaN or Infinity
        TypeError: If data contains non-serializable types
    """
    _reject_nan_infinity(obj)
    escaped = _escape_reserved_keys(obj)
    return json.dumps(escaped, cls=CheckpointEncoder, allow_nan=False)


def restore_types(obj: Any) -> Any:
    """Recursively restore type-tagged values in decoded JSON data.

    Handles:
    - {"__durastep_type__": "datetime", "__durastep_value__": iso_string}
    - {"__durastep_type__": "escaped_dict", "__durastep_value__": {...}}
    """
    if isinstance(obj, dict):
        if _ENVELOPE_TYPE_KEY in obj and _ENVELOPE_VALUE_KEY in obj and len(obj) == 2:
            envelope_type = obj[_ENVELOPE_TYPE_KEY]
            envelope_value = obj[_ENVELOPE_VALUE_KEY]

            if envelope_type == "datetime" and isinstance(envelope_value, str):
                return datetime.fromisoformat(envelope_value)

            if envelope_type == "escaped_dict" and isinstance(envelope_value, dict):
                return {k: restore_types(v) for k, v in envelope_value.items()}

        return {k: restore_types(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [restore_types(v) for v in obj]
    return obj


def checkpoint_loads(s: str | bytes) -> Any:
    """Deserialize JSON text with type restoration.

    Raises:
        json.JSONDecodeError: If string is not valid JSON
    """
    return restore_types(json.loads(s))


def to_stored_form(obj: Any) -> Any:
    """Return obj as it reads back after a save and reload.

    Tuples become lists, non-string mapping keys become strings and naive
    datetimes become UTC-aware.

    Raises:
        ValueError: If data contains NaN or Infinity
        TypeError: If data contains non-serializable types
    """
    return checkpoint_loads(checkpoint_dumps(obj))


# =============================================================================
# Row encoding
# =============================================================================


def _steps_payload(cp: Checkpoint) -> dict[str, Any]:
    return {
        name: {
            "result": record.result,
            "input_hash": record.input_hash,
            "completed_at": record.completed_at,
        }
        for name, record in cp.steps.items()
    }


def _cleanup_payload(cp: Checkpoint) -> list[dict[str, Any]]:
    return [
        {
            "id": action.id,
            "type": action.type,
            "params": action.params,
            "registered_at": action.registered_at,
        }
        for action in cp.cleanup
    ]


def checkpoint_to_row(cp: Checkpoint, *, structured: bool = False) -> dict[str, Any]:
    """Flatten a checkpoint into a storage row.

    Args:
        cp: Checkpoint to encode
        structured: If True, steps/cleanup are JSON-safe Python structures
            (for JSON/JSONB columns). If False, they are JSON text.

    Returns:
        Row mapping with keys run_id, started_at, completed_at, status, steps, cleanup
    """
    steps_text = checkpoint_dumps(_steps_payload(cp))
    cleanup_text = checkpoint_dumps(_cleanup_payload(cp))
    return {
        "run_id": cp.run_id,
        "started_at": cp.started_at,
        "completed_at": cp.completed_at,
        "status": cp.status.value,
        "steps": json.loads(steps_text) if structured else steps_text,
        "cleanup": json.loads(cleanup_text) if structured else cleanup_text,
    }


def coerce_timestamp(value: Any) -> datetime:
    """Decode a stored timestamp into an aware UTC datetime.

    Accepts datetimes (naive values are taken as UTC), ISO-8601 strings and
    epoch milliseconds.

    Raises:
        TypeError: For any other type
    """
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    if isinstance(value, str):
        return coerce_timestamp(datetime.fromisoformat(value))
    if isinstance(value, int | float) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000, tz=UTC)
    raise TypeError(f"Unsupported timestamp value {value!r} ({type(value).__name__})")


def _field(record: Mapping[str, Any], name: str, alias: str) -> Any:
    """Read a nested field written under either its snake_case or camelCase name."""
    if name in record:
        return record[name]
    if alias in record:
        return record[alias]
    raise KeyError(name)


def _decode_field(raw: Any, default: Any) -> Any:
    if raw is None:
        return default
    if isinstance(raw, str | bytes):
        return checkpoint_loads(raw)
    return restore_types(raw)


def row_to_checkpoint(row: Mapping[str, Any]) -> Checkpoint:
    """Rebuild a checkpoint from a storage row.

    Raises:
        CheckpointDecodeError: If the row is missing fields or holds malformed data
    """
    run_id = row.get("run_id")
    try:
        steps_raw = _decode_field(row.get("steps"), {})
        cleanup_raw = _decode_field(row.get("cleanup"), [])
        completed_at = row.get("completed_at")
        return Checkpoint(
            run_id=row["run_id"],
            started_at=coerce_timestamp(row["started_at"]),
            completed_at=coerce_timestamp(completed_at) if completed_at is not None else None,
            status=CheckpointStatus(row["status"]),
            steps={
                name: StepRecord(
                    result=record["result"],
                    input_hash=_field(record, "input_hash", "inputHash"),
                    completed_at=coerce_timestamp(_field(record, "completed_at", "completedAt")),
                )
                for name, record in steps_raw.items()
            },
            cleanup=tuple(
                CleanupAction(
                    id=action["id"],
                    type=action["type"],
                    params=dict(action["params"] or {}),
                    registered_at=coerce_timestamp(_field(action, "registered_at", "registeredAt")),
                )
                for action in cleanup_raw
            ),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise CheckpointDecodeError(run_id, f"{type(e).__name__}: {e}") from e
