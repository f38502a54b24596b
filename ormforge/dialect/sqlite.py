"""SQLite dialect."""
from __future__ import annotations

from typing import ClassVar

from ormforge.dialect.base import SQLDialect


class SQLiteDialect(SQLDialect):
    """Renders SQLite-flavoured SQL.

    Parameter style: ``?`` – compatible with Python's built-in ``sqlite3``
    positional execution (``cursor.execute(sql, params)``).

    Note: SQLite has no native UUID / JSON / BOOLEAN storage; those map to
    text and integer affinities.  It cannot ``ALTER TABLE ... ADD
    CONSTRAINT`` or ``ALTER COLUMN``, but it resolves foreign-key targets
    lazily, so a CREATE TABLE may reference a table created later in the
    same script, and ``ADD COLUMN`` may carry a ``REFERENCES`` clause.
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
        "float64": "REAL",
        "double": "REAL",
        "decimal": "DECIMAL",
        "numeric": "DECIMAL",
        "boolean": "BOOLEAN",
        "bool": "BOOLEAN",
        "date": "DATE",
        "time": "TIME",
        "timestamp": "TIMESTAMP",
        "datetime": "DATETIME",
        "json": "TEXT",
        "jsonb": "TEXT",
        "uuid": "CHAR(36)",
        "binary": "BLOB",
        "bytes": "BLOB",
        "blob": "BLOB",
    }

    # SQLite only auto-increments an INTEGER PRIMARY KEY (rowid alias).
    SERIAL_TYPES: ClassVar[dict[str, str]] = {
        "smallint": "INTEGER",
        "int16": "INTEGER",
        "integer": "INTEGER",
        "int": "INTEGER",
        "int32": "INTEGER",
        "bigint": "INTEGER",
        "int64": "INTEGER",
    }

    AUTOINCREMENT_KEYWORD: ClassVar[str] = "AUTOINCREMENT"

    BOOLEAN_LITERALS: ClassVar[tuple[str, str]] = ("0", "1")

    supports_alter_constraints: ClassVar[bool] = False
    supports_alter_column: ClassVar[bool] = False
    supports_forward_references: ClassVar[bool] = True

    @property
    def dialect_name(self) -> str:
        return "sqlite"

    def param_placeholder(self, index: int) -> str:
        return "?"
