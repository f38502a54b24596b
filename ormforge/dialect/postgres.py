"""PostgreSQL dialect."""

from __future__ import annotations

from typing import ClassVar

from ormforge.dialect.base import SQLDialect


class PostgresDialect(SQLDialect):
    """Renders PostgreSQL-flavoured SQL.

    Parameter style: ``$1, $2, ...`` – the native positional style used by
    ``asyncpg`` and server-side prepared statements.
    """

    TYPE_MAP: ClassVar[dict[str, str]] = {
        "string": "TEXT",
        "text": "TEXT",
        "varchar": "VARCHAR(255)",
        "smallint": "SMALLINT",
        "int16": "SMALLINT",
        "integer": "INTEGER",
        "int": "INTEGER",
        "int32": "INTEGER",
        "bigint": "BIGINT",
        "int64": "BIGINT",
        "float": "REAL",
        "float32": "REAL",
        "float64": "DOUBLE PRECISION",
        "double": "DOUBLE PRECISION",
        "decimal": "NUMERIC",
        "numeric": "NUMERIC",
        "boolean": "BOOLEAN",
        "bool": "BOOLEAN",
        "date": "DATE",
        "time": "TIME",
        "timestamp": "TIMESTAMP",
        "datetime": "TIMESTAMP",
        "json": "JSON",
        "jsonb": "JSONB",
        "uuid": "UUID",
        "binary": "BYTEA",
        "bytes": "BYTEA",
        "blob": "BYTEA",
    }

    SERIAL_TYPES: ClassVar[dict[str, str]] = {
        "smallint": "SMALLSERIAL",
        "int16": "SMALLSERIAL",
        "integer": "SERIAL",
        "int": "SERIAL",
        "int32": "SERIAL",
        "bigint": "BIGSERIAL",
        "int64": "BIGSERIAL",
    }

    BOOLEAN_LITERALS: ClassVar[tuple[str, str]] = ("FALSE", "TRUE")

    supports_alter_constraints: ClassVar[bool] = True
    supports_alter_column: ClassVar[bool] = True
    supports_forward_references: ClassVar[bool] = False

    @property
    def dialect_name(self) -> str:
        return "postgres"

    def param_placeholder(self, index: int) -> str:
        return f"${index}"

    def alter_column_type(self, table: str, column: str, sql_type: str) -> str:
        # Text to number and similar conversions need an explicit cast.
        return (
            f"ALTER TABLE {table} ALTER COLUMN {column} "
            f"TYPE {sql_type} USING {column}::{sql_type};"
        )
