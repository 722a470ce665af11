"""Create a table for a function's output and insert its rows.

Every run starts from an empty table: the previous table of the same name
is dropped first. Table and column names are used verbatim.
"""
from __future__ import annotations
from decimal import Decimal
from typing import Any
import json
import logging
import asyncpg

from gofunc_tables.errors import PersistenceError
from gofunc_tables.models import DecodedValue, TableSpec, ValueKind
from .inference import PRIMARY_KEY_DDL

logger = logging.getLogger(__name__)


def to_text(value: Any) -> str:
    """Render a JSON value for a TEXT column."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, (list, dict)):
        return json.dumps(value)
    return str(value)


def bind_value(value: Any, sql_type: str | None) -> Any:
    """Convert a decoded value into what asyncpg expects for the column type.

    Values that cannot be represented are passed through unchanged so the
    driver rejects them.
    """
    if value is None:
        return None
    if isinstance(value, (list, dict)) or sql_type == "JSONB":
        return json.dumps(value)
    if sql_type == "TEXT":
        return to_text(value)
    if sql_type == "NUMERIC" and isinstance(value, (int, float)) and not isinstance(value, bool):
        return Decimal(str(value))
    if sql_type == "INTEGER" and isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def create_table_sql(spec: TableSpec) -> str:
    columns = [PRIMARY_KEY_DDL] + [f"{c.name} {c.sql_type}" for c in spec.columns]
    return f"CREATE TABLE {spec.table_name} ({', '.join(columns)})"


def insert_sql(table_name: str, columns: list[str]) -> str:
    if not columns:
        return f"INSERT INTO {table_name} DEFAULT VALUES"
    placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))
    return f"INSERT INTO {table_name} ({', '.join(columns)}) VALUES ({placeholders})"


class TableMaterializer:
    """Writes inferred tables through a single asyncpg connection."""

    def __init__(self, conn: asyncpg.Connection):
        self.conn = conn

    async def materialize(self, spec: TableSpec, decoded: DecodedValue) -> int:
        """Drop, create and populate the table for one function.

        Returns:
            Number of rows inserted

        Raises:
            PersistenceError: If any statement fails
        """
        await self._execute("drop", f"DROP TABLE IF EXISTS {spec.table_name}", spec)
        await self._execute("create", create_table_sql(spec), spec)
        logger.info(f"Created table {spec.table_name}")

        rows = 0
        for columns, values in self._rows(spec, decoded):
            await self._execute("insert", insert_sql(spec.table_name, columns), spec, *values)
            rows += 1

        logger.info(f"Inserted {rows} rows into {spec.table_name}")
        return rows

    def _rows(self, spec: TableSpec, decoded: DecodedValue):
        """Yield (column names, bound values) for each row."""
        types = {c.name: c.sql_type for c in spec.columns}
        kind = decoded.kind

        if kind is ValueKind.OBJECT:
            yield self._record(decoded.value, types)

        elif kind is ValueKind.OBJECT_ARRAY:
            # Each element is inserted with its own keys, not the schema's
            for record in decoded.value:
                yield self._record(record, types)

        elif kind is ValueKind.PRIMITIVE_ARRAY:
            for item in decoded.value:
                yield ["value"], [to_text(item)]

        elif kind in (ValueKind.SCALAR, ValueKind.NULL):
            yield ["data"], [json.dumps(decoded.value)]

        else:
            raise ValueError(f"Unhandled value kind: {kind}")

    @staticmethod
    def _record(record: dict[str, Any], types: dict[str, str]) -> tuple[list[str], list[Any]]:
        columns = list(record.keys())
        values = [bind_value(record[key], types.get(key)) for key in columns]
        return columns, values

    async def _execute(self, step: str, query: str, spec: TableSpec, *args: Any) -> None:
        try:
            await self.conn.execute(query, *args)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, ValueError, TypeError) as e:
            raise PersistenceError(
                f"failed to {step} table {spec.table_name}: {e}"
            ) from e
