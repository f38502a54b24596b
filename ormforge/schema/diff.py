"""Schema diff result types."""
from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ChangeType(str, Enum):
    """Kinds of schema change the comparator detects."""

    CREATE_TABLE = "create_table"
    DROP_TABLE = "drop_table"
    ADD_COLUMN = "add_column"
    REMOVE_COLUMN = "remove_column"
    ADD_FOREIGN_KEY = "add_foreign_key"
    CHANGE_COLUMN_TYPE = "change_column_type"
    CHANGE_COLUMN_NULLABLE = "change_column_nullable"
    REMOVE_FOREIGN_KEY = "remove_foreign_key"


#: Change types that lose data when applied.
DESTRUCTIVE_CHANGES: frozenset[ChangeType] = frozenset(
    {ChangeType.DROP_TABLE, ChangeType.REMOVE_COLUMN, ChangeType.CHANGE_COLUMN_TYPE}
)


class SchemaChange(BaseModel):
    """One detected difference between the declared and live schemas.

    Attributes:
        type: What kind of change this is.
        table: Table the change applies to.
        column: Column name for column and foreign-key changes.
        details: Type-specific data.  ``ADD_COLUMN`` carries ``type`` and
            ``nullable`` (``"true"``/``"false"``); ``ADD_FOREIGN_KEY``
            carries ``to_table`` and ``to_column``.  ``CHANGE_COLUMN_TYPE``
            carries ``from`` (reported type) and ``to`` (declared type);
            ``CHANGE_COLUMN_NULLABLE`` carries ``from`` and ``to`` as
            ``"true"``/``"false"``.  ``REMOVE_FOREIGN_KEY`` carries
            ``to_table``, ``to_column``, the database ``constraint`` name
            when known and any ``on_delete``/``on_update`` action.
        warning: Human-readable warning for destructive changes.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: ChangeType
    table: str
    column: str | None = None
    details: dict[str, str] = Field(default_factory=dict)
    warning: str | None = None

    @property
    def destructive(self) -> bool:
        return self.type in DESTRUCTIVE_CHANGES


class SchemaDiff(BaseModel):
    """Ordered list of changes produced by one comparison.

    Changes are ordered CREATE_TABLE first, then DROP_TABLE, then the
    per-table column and foreign-key changes (see
    :mod:`ormforge.schema.comparator`).

    Attributes:
        changes: Detected changes, in emission order.
        warnings: Warnings collected from destructive changes.
        dialect: Dialect identifier the comparison ran for.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    changes: list[SchemaChange] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    dialect: str = "sqlite"

    @property
    def is_empty(self) -> bool:
        return not self.changes

    @property
    def has_destructive_changes(self) -> bool:
        return any(change.destructive for change in self.changes)

    def of_type(self, change_type: ChangeType) -> list[SchemaChange]:
        """Returns the changes of ``change_type``, in order."""
        return [c for c in self.changes if c.type == change_type]
