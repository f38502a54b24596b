"""Custom exception hierarchy for ormforge.

All public errors inherit from OrmForgeError so callers can catch the base
class for any ormforge-specific failure.  Every error is raised synchronously
to the immediate caller; nothing here is retried.
"""
from __future__ import annotations

from typing import Any


class OrmForgeError(Exception):
    """Base exception for all ormforge errors."""


class MalformedClauseError(OrmForgeError):
    """Raised when a clause cannot be rendered as written.

    The common case is a WHERE / HAVING fragment whose ``?`` marker count
    does not match the number of supplied values.

    Args:
        message: Human-readable description.
        fragment: The offending SQL fragment, when there is one.
        expected: Number of placeholder markers found in ``fragment``.
        received: Number of values supplied.
    """

    def __init__(
        self,
        message: str,
        fragment: str | None = None,
        expected: int | None = None,
        received: int | None = None,
    ) -> None:
        super().__init__(message)
        self.fragment = fragment
        self.expected = expected
        self.received = received


class TableMismatchError(OrmForgeError):
    """Raised when two builders targeting different tables are combined."""

    def __init__(self, operation: str, left_table: str, right_table: str) -> None:
        super().__init__(
            f"Cannot {operation}() a query on '{right_table}' into a query on "
            f"'{left_table}'; both builders must target the same table."
        )
        self.operation = operation
        self.left_table = left_table
        self.right_table = right_table


class SchemaError(OrmForgeError):
    """Raised when declared or introspected schema input is structurally invalid.

    Drift between the two schemas is never an error; it is reported as a
    :class:`~ormforge.schema.diff.SchemaDiff`.

    Args:
        message: Human-readable description.
        details: Extra context (table, column, referenced table, ...).
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = details or {}


class MigrationPlanningError(OrmForgeError):
    """Raised when a migration cannot be planned into valid DDL.

    Detected before any SQL text is returned, so a failed plan never yields a
    partial migration file.

    Args:
        message: Human-readable description.
        table: Table being planned when the failure occurred.
        details: Extra context (cycle members, offending edge, ...).
    """

    def __init__(
        self,
        message: str,
        table: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.table = table
        self.details: dict[str, Any] = details or {}


class UnsupportedDialectError(OrmForgeError):
    """Raised when no dialect is registered under the requested identifier."""

    def __init__(self, name: str, registered: list[str]) -> None:
        super().__init__(
            f"Unsupported dialect: '{name}'. Registered dialects: {registered}."
        )
        self.name = name
        self.registered = registered
