"""Infer a table definition from a decoded value.

Only the runtime value is used; declared Go return types say nothing
reliable about shape (interface{} returns, for example).
"""
from __future__ import annotations
from typing import Any

from gofunc_tables.models import Column, DecodedValue, TableSpec, ValueKind

PRIMARY_KEY_DDL = "id SERIAL PRIMARY KEY"
VALUE_COLUMN = Column("value", "TEXT")
DATA_COLUMN = Column("data", "JSONB")


def sql_type_for(value: Any) -> str:
    """Map a JSON value to a PostgreSQL column type.

    Priority: integer, other numeric, boolean, nested array/object, text.
    bool is an int subclass in Python, so it is excluded from the numeric checks.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return "INTEGER"
    if isinstance(value, float):
        return "NUMERIC"
    if isinstance(value, bool):
        return "BOOLEAN"
    if isinstance(value, (list, dict)):
        return "JSONB"
    return "TEXT"


def columns_for_object(obj: dict[str, Any]) -> tuple[Column, ...]:
    return tuple(Column(key, sql_type_for(value)) for key, value in obj.items())


def infer_table_spec(table_name: str, decoded: DecodedValue) -> TableSpec:
    """Derive the table definition for a function's output.

    Object arrays take their columns from the first element only. Later
    elements with other keys are not merged in and will fail on insert.
    """
    kind = decoded.kind

    if kind is ValueKind.OBJECT:
        return TableSpec(table_name, columns_for_object(decoded.value))

    if kind is ValueKind.OBJECT_ARRAY:
        if not decoded.value:
            return TableSpec(table_name, (DATA_COLUMN,))
        return TableSpec(table_name, columns_for_object(decoded.value[0]))

    if kind is ValueKind.PRIMITIVE_ARRAY:
        return TableSpec(table_name, (VALUE_COLUMN,))

    if kind in (ValueKind.SCALAR, ValueKind.NULL):
        return TableSpec(table_name, (DATA_COLUMN,))

    raise ValueError(f"Unhandled value kind: {kind}")
