# src/durastep/core/canonical.py
"""
Canonical JSON serialization and step-input fingerprints.

Two-phase approach:
1. Normalize: Convert pandas/numpy/stdlib types to JSON-safe primitives (our code)
2. Serialize: Produce deterministic JSON per RFC 8785/JCS (rfc8785 package)

RFC 8785 sorts object keys at every nesting level and leaves arrays in their
original order, so two inputs that differ only in key insertion order produce
identical text.

IMPORTANT: fingerprint() is a 32-bit NON-CRYPTOGRAPHIC rolling hash. It exists
for change detection on step inputs only. Two different inputs CAN collide,
and a collision is observed as a false cache hit (the step is skipped and the
stale result returned). Use stable_hash() where strong uniqueness matters.

NaN and Infinity are strictly REJECTED, not silently converted.

Integers beyond +/-(2^53 - 1) are rendered as exact decimal strings, the same
form Decimal takes. Non-string mapping keys are converted the way json.dumps
converts them (1 -> "1", True -> "true", None -> "null"); two keys that
convert to the same text are rejected.
"""

from __future__ import annotations

import base64
import hashlib
import math
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

import numpy as np
import pandas as pd
import rfc8785
from pydantic import BaseModel

# Version string for the strong digest produced by stable_hash()
CANONICAL_VERSION = "sha256-rfc8785-v1"

# Rolling hash parameters: h = h * 31 + code_unit, wrapped to signed int32
_FINGERPRINT_MULTIPLIER = 31
_INT32_MASK = 0xFFFFFFFF
_INT32_SIGN = 0x80000000
_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"

# Largest integer RFC 8785 serializes as a JSON number
_MAX_SAFE_INTEGER = 2**53 - 1


def _normalize_int(value: int) -> int | str:
    """Render integers outside the IEEE-754 exact range as decimal strings."""
    if -_MAX_SAFE_INTEGER <= value <= _MAX_SAFE_INTEGER:
        return value
    return str(value)


def _normalize_key(key: Any) -> str:
    """Convert a mapping key to its JSON object-key text.

    Follows json.dumps: str as-is, bool as true/false, None as null,
    numbers by their JSON text.

    Raises:
        TypeError: If the key is not a str, number, bool or None
    """
    if isinstance(key, str):
        return key
    if isinstance(key, bool | np.bool_):
        return "true" if key else "false"
    if key is None:
        return "null"
    if isinstance(key, int | np.integer):
        return str(int(key))
    if isinstance(key, float | np.floating):
        if math.isnan(key) or math.isinf(key):
            raise ValueError(f"Cannot fingerprint non-finite mapping key: {key!r}")
        return repr(float(key))
    raise TypeError(f"Cannot fingerprint mapping key {key!r} of type {type(key).__name__}; keys must be str, int, float, bool or None")


def _normalize_value(obj: Any) -> Any:
    """Convert a single value to JSON-safe primitive.

    NaN Policy: STRICT REJECTION
    - NaN and Infinity are invalid input states for float AND Decimal
    - Use None for intentional missing values

    Args:
        obj: Any Python value

    Returns:
        JSON-serializable primitive

    Raises:
        ValueError: If value contains NaN or Infinity
    """
    # Check for NaN/Infinity FIRST (before type coercion)
    if isinstance(obj, float | np.floating):
        if math.isnan(obj) or math.isinf(obj):
            raise ValueError(f"Cannot fingerprint non-finite float: {obj}. Use None for missing values, not NaN.")
        if isinstance(obj, np.floating):
            return float(obj)
        return obj

    # Primitives pass through unchanged
    if obj is None or isinstance(obj, str | bool):
        return obj

    if isinstance(obj, int | np.integer):
        return _normalize_int(int(obj))

    # NumPy scalar types
    if isinstance(obj, np.bool_):
        return bool(obj)
    if isinstance(obj, np.ndarray):
        if obj.size > 0:
            try:
                if np.any(np.isnan(obj)) or np.any(np.isinf(obj)):
                    raise ValueError("NaN/Infinity found in NumPy array. Use None for missing values, not NaN.")
            except TypeError:
                # np.isnan/isinf raise TypeError for non-numeric dtypes; those cannot hold NaN
                pass
        return _normalize_for_canonical(obj.tolist())

    # Pandas types
    if isinstance(obj, pd.Timestamp):
        # Naive timestamps assumed UTC
        if obj.tz is None:
            return obj.tz_localize("UTC").isoformat()
        return obj.tz_convert("UTC").isoformat()

    if obj is pd.NA or (isinstance(obj, type(pd.NaT)) and obj is pd.NaT):
        return None

    # Standard library types
    if isinstance(obj, datetime):
        if obj.tzinfo is None:
            obj = obj.replace(tzinfo=UTC)
        return obj.astimezone(UTC).isoformat()

    if isinstance(obj, bytes):
        return {"__bytes__": base64.b64encode(obj).decode("ascii")}

    if isinstance(obj, Decimal):
        if not obj.is_finite():
            raise ValueError(f"Cannot fingerprint non-finite Decimal: {obj}. Use None for missing values, not NaN/Infinity.")
        return str(obj)

    return obj


def _normalize_for_canonical(data: Any) -> Any:
    """Recursively normalize a data structure for canonical JSON.

    Mappings are recursed into (key order is fixed later by the serializer);
    sequences are recursed into but never reordered.

    Raises:
        ValueError: If data contains NaN, Infinity, or other non-finite values
        TypeError: If a mapping key has no JSON object-key form
    """
    if isinstance(data, BaseModel):
        return _normalize_for_canonical(data.model_dump(mode="json"))
    if isinstance(data, dict):
        normalized: dict[str, Any] = {}
        for key, value in data.items():
            text = _normalize_key(key)
            if text in normalized:
                raise ValueError(f"Mapping keys collide after conversion to JSON text: {key!r} -> {text!r}")
            normalized[text] = _normalize_for_canonical(value)
        return normalized
    if isinstance(data, list | tuple):
        return [_normalize_for_canonical(v) for v in data]
    return _normalize_value(data)


def canonical_json(obj: Any) -> str:
    """Produce canonical JSON for hashing.

    Args:
        obj: Data structure to serialize

    Returns:
        Canonical JSON string (no whitespace, sorted keys)

    Raises:
        ValueError: If data contains NaN, Infinity, or other non-finite values
        TypeError: If data contains types that cannot be serialized
    """
    normalized = _normalize_for_canonical(obj)
    result: bytes = rfc8785.dumps(normalized)
    return result.decode("utf-8")


def _utf16_code_units(text: str) -> list[int]:
    """Split text into UTF-16 code units (astral characters become surrogate pairs)."""
    data = text.encode("utf-16-le")
    return [data[i] | (data[i + 1] << 8) for i in range(0, len(data), 2)]


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""
    value = abs(value)
    digits: list[str] = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return sign + "".join(reversed(digits))


def fingerprint(obj: Any) -> str:
    """Compute the change-detection fingerprint of a step's inputs.

    The canonical JSON text is reduced with a rolling accumulator over its
    UTF-16 code units (multiply by 31, add the code unit, wrap to signed
    32 bits) and rendered in base 36.

    Deterministic across processes and independent of mapping key order.
    NOT collision resistant: see module docstring.

    Args:
        obj: Step inputs (any JSON-like structure)

    Returns:
        Short base-36 digest, possibly with a leading '-'
    """
    accumulator = 0
    for unit in _utf16_code_units(canonical_json(obj)):
        accumulator = (accumulator * _FINGERPRINT_MULTIPLIER + unit) & _INT32_MASK
    if accumulator & _INT32_SIGN:
        accumulator -= _INT32_MASK + 1
    return _to_base36(accumulator)


def stable_hash(obj: Any, version: str = CANONICAL_VERSION) -> str:
    """Compute stable hash of object.

    Args:
        obj: Data structure to hash
        version: Hash algorithm version

    Returns:
        SHA-256 hex digest of canonical JSON
    """
    canonical = canonical_json(obj)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
