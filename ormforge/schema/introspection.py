"""Introspected (database-side) schema types.

Built once per run by reading the live database, for example with
:func:`~ormforge.schema.converters.database_schema_from_sqlalchemy`, and
treated as read-only afterwards.
"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class DatabaseColumn(BaseModel):
    """A column as reported by the database.

    Attributes:
        name: Column name.
        sql_type: Type text exactly as the database reports it.
        nullable: Whether the column accepts NULL.
        default: Default expression text, or ``None``.
        primary_key: Whether the column is (part of) the primary key.
        auto_increment: Whether the database generates the value.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    sql_type: str = ""
    nullable: bool = True
    default: Any = None
    primary_key: bool = False
    auto_increment: bool = False


class DatabaseForeignKey(BaseModel):
    """A foreign-key constraint present in the database."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    column: str
    to_table: str
    to_column: str
    name: str | None = None
    on_delete: str | None = None
    on_update: str | None = None

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.column, self.to_table, self.to_column)


class DatabaseTable(BaseModel):
    """A table present in the database."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    columns: list[DatabaseColumn] = Field(default_factory=list)
    foreign_keys: list[DatabaseForeignKey] = Field(default_factory=list)

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]


class DatabaseSchema(BaseModel):
    """All tables of the live database, keyed by table name.

    Attributes:
        tables: Mapping of table name to :class:`DatabaseTable`.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    tables: dict[str, DatabaseTable] = Field(default_factory=dict)

    @classmethod
    def from_tables(cls, tables: list[DatabaseTable]) -> DatabaseSchema:
        """Build a schema from a list of tables, keyed by their names."""
        return cls(tables={t.name: t for t in tables})

    def get_table(self, name: str) -> DatabaseTable | None:
        return self.tables.get(name)

    @property
    def table_names(self) -> list[str]:
        return list(self.tables)
