"""Decode captured program output into a tagged value.

JSON first; anything that is not valid JSON is kept as a trimmed string.
"""
from __future__ import annotations
import json
from typing import Any

from gofunc_tables.models import DecodedValue, ValueKind


def decode_output(raw: bytes) -> DecodedValue:
    """Decode and classify the stdout bytes of a generated program."""
    try:
        value = json.loads(raw.decode("utf-8"), parse_constant=_reject_constant)
    except (UnicodeDecodeError, ValueError):
        return DecodedValue(ValueKind.SCALAR, raw.decode("utf-8", errors="replace").strip())
    return classify(value)


def _reject_constant(token: str) -> Any:
    # NaN and Infinity are not JSON; they stay as text
    raise ValueError(f"not a JSON value: {token}")


def classify(value: Any) -> DecodedValue:
    """Tag a JSON value with its shape.

    A list counts as an object array only when every element is an object,
    so an empty list is an object array with no first element.
    """
    if value is None:
        return DecodedValue(ValueKind.NULL, None)
    if isinstance(value, dict):
        return DecodedValue(ValueKind.OBJECT, value)
    if isinstance(value, list):
        if all(isinstance(item, dict) for item in value):
            return DecodedValue(ValueKind.OBJECT_ARRAY, value)
        return DecodedValue(ValueKind.PRIMITIVE_ARRAY, value)
    return DecodedValue(ValueKind.SCALAR, value)
