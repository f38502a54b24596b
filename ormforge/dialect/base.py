"""Dialect abstractions: CompiledSQL and the SQLDialect strategy ABC.

The Strategy pattern (GoF) is used:
- ``SQLDialect`` holds every SQL-flavour decision as class-level lookup
  tables (type names, serial types, boolean literals, capabilities) plus the
  placeholder hook.
- ``PostgresDialect`` and ``SQLiteDialect`` fill in the tables; rendering
  code never branches on the dialect name.
"""
from __future__ import annotations

import datetime
import re
from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, ClassVar

#: Default expressions rendered verbatim rather than as string literals.
SQL_KEYWORD_DEFAULTS: frozenset[str] = frozenset(
    {"CURRENT_TIMESTAMP", "CURRENT_DATE", "CURRENT_TIME", "NULL"}
)

#: Leading type keywords -> family.  Types in one family hold the same kind
#: of data; earlier patterns win (``timestamp`` before ``time``).
TYPE_FAMILIES: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(pattern), family)
    for pattern, family in (
        (r"(big|small|tiny|medium)?int(eger|2|4|8|16|32|64)?\b|(big|small)?serial\b", "integer"),
        (r"(character varying|varchar|character|n?char|text|clob|string)\b", "string"),
        (r"bool(ean)?\b", "boolean"),
        (r"(real|float(4|8|32|64)?|double|decimal|numeric)\b", "float"),
        (r"(timestamptz|timestamp|datetime)\b", "timestamp"),
        (r"date\b", "date"),
        (r"time\b", "time"),
        (r"jsonb?\b", "json"),
        (r"(bytea|blob|(var)?binary)\b", "binary"),
        (r"uuid\b", "uuid"),
    )
)


@dataclass
class CompiledSQL:
    """The output of a successful render.

    Unpacks as a ``(sql, params)`` pair so it can be handed straight to a
    DB-API cursor::

        sql, params = builder.build_select()
        cursor.execute(sql, params)

    Attributes:
        sql: The rendered SQL string with positional placeholders.
        params: Values for the placeholders, in placeholder order.
        dialect: The dialect the SQL was rendered for.
    """

    sql: str
    params: list[Any]
    dialect: str

    def __iter__(self) -> Iterator[Any]:
        return iter((self.sql, self.params))


class SQLDialect(ABC):
    """Abstract base for dialect-specific SQL rendering.

    Subclasses provide the lookup tables and the placeholder style; the
    query builder and the migration generator consult them for every type
    name, literal and identifier they emit.
    """

    #: Logical column type (lower case) -> SQL type name.
    TYPE_MAP: ClassVar[dict[str, str]] = {}

    #: Logical column type -> auto-incrementing SQL type name.
    SERIAL_TYPES: ClassVar[dict[str, str]] = {}

    #: Keyword appended after ``PRIMARY KEY`` for auto-increment columns.
    AUTOINCREMENT_KEYWORD: ClassVar[str] = ""

    #: Rendered ``(false, true)`` literals.
    BOOLEAN_LITERALS: ClassVar[tuple[str, str]] = ("FALSE", "TRUE")

    #: Whether ``ALTER TABLE ... ADD/DROP CONSTRAINT`` is available.
    supports_alter_constraints: ClassVar[bool] = True

    #: Whether ``ALTER TABLE ... ALTER COLUMN`` can change a column type or
    #: its NOT NULL constraint.
    supports_alter_column: ClassVar[bool] = True

    #: Whether CREATE TABLE may reference a table that does not exist yet.
    supports_forward_references: ClassVar[bool] = False

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the canonical dialect identifier (``'postgres'``, ``'sqlite'``)."""

    @abstractmethod
    def param_placeholder(self, index: int) -> str:
        """Return the placeholder for the ``index``-th bound value (1-based).

        Args:
            index: Position of the value in the flat argument list.

        Returns:
            Dialect-specific placeholder string.
        """

    # ------------------------------------------------------------------
    # Identifiers
    # ------------------------------------------------------------------

    def quote_identifier(self, name: str) -> str:
        """Return a double-quoted SQL identifier."""
        escaped = name.replace('"', '""')
        return f'"{escaped}"'

    def quote_column(self, name: str) -> str:
        """Quote a column reference, leaving ``*`` and expressions untouched.

        ``users.name`` becomes ``"users"."name"``; ``COUNT(id)`` and
        already-quoted names are returned as written.
        """
        if name == "*" or "(" in name or name.startswith('"') or " " in name:
            return name
        return ".".join(
            part if part == "*" else self.quote_identifier(part)
            for part in name.split(".")
        )

    # ------------------------------------------------------------------
    # Types and literals
    # ------------------------------------------------------------------

    def column_type(self, logical_type: str) -> str:
        """Map a logical column type (``'bigint'``, ``'uuid'``, ...) to SQL."""
        return self.TYPE_MAP.get(logical_type.lower(), logical_type.upper())

    def serial_type(self, logical_type: str) -> str:
        """Return the auto-incrementing variant of ``logical_type``."""
        return self.SERIAL_TYPES.get(logical_type.lower(), self.column_type(logical_type))

    def is_serial_type(self, logical_type: str) -> bool:
        """Whether ``logical_type`` has an auto-incrementing variant."""
        return logical_type.lower() in self.SERIAL_TYPES

    def type_family(self, sql_type: str) -> str:
        """Classify a type name as ``'integer'``, ``'string'``, ``'timestamp'``, ...

        Unrecognised types are their own family: the upper-cased text with
        whitespace collapsed.
        """
        text = " ".join(sql_type.lower().split())
        for pattern, family in TYPE_FAMILIES:
            if pattern.match(text):
                return family
        return text.upper()

    def boolean_literal(self, value: bool) -> str:
        return self.BOOLEAN_LITERALS[1] if value else self.BOOLEAN_LITERALS[0]

    def literal(self, value: Any) -> str:
        """Render a Python value as an inline SQL literal (used for DEFAULT)."""
        if value is None:
            return "NULL"
        if isinstance(value, bool):
            return self.boolean_literal(value)
        if isinstance(value, (int, float, Decimal)):
            return str(value)
        if isinstance(value, (datetime.date, datetime.time)):
            value = value.isoformat()
        text = str(value)
        if text.upper() in SQL_KEYWORD_DEFAULTS:
            return text.upper()
        escaped = text.replace("'", "''")
        return f"'{escaped}'"

    # ------------------------------------------------------------------
    # DDL
    # ------------------------------------------------------------------

    def alter_column_type(self, table: str, column: str, sql_type: str) -> str:
        """Render a column type change; ``table`` and ``column`` come quoted."""
        return f"ALTER TABLE {table} ALTER COLUMN {column} TYPE {sql_type};"
