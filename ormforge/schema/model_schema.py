"""Declared (model-side) schema types.

A :class:`ModelSchema` describes the table a model expects to exist.  It is
produced at model-definition time, by hand or via
:func:`~ormforge.schema.converters.model_schemas_from_metadata`, and stays
immutable for the lifetime of a comparison run.
"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ormforge.errors import SchemaError


class ModelColumn(BaseModel):
    """A declared column.

    Attributes:
        name: Column name.
        source_type: Name of the host-language type the column maps from
            (informational, e.g. ``'int'`` or ``'datetime'``).
        sql_type: Logical SQL type (``'bigint'``, ``'string'``, ``'uuid'``)
            or a literal SQL type (``'VARCHAR(100)'``); the dialect maps it.
        nullable: Whether the column accepts NULL.
        primary_key: Whether the column is (part of) the primary key.
        default: Default value rendered as a literal, or ``None``.
        auto_increment: Whether the column is generated by the database.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    source_type: str = ""
    sql_type: str
    nullable: bool = True
    primary_key: bool = False
    default: Any = None
    auto_increment: bool = False


class ModelForeignKey(BaseModel):
    """A declared foreign key from ``column`` to ``to_table.to_column``."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    column: str
    to_table: str
    to_column: str = "id"
    on_delete: str | None = None
    on_update: str | None = None

    @property
    def key(self) -> tuple[str, str, str]:
        """Identity used when matching against database foreign keys."""
        return (self.column, self.to_table, self.to_column)


class ModelSchema(BaseModel):
    """The table a model declares.

    Attributes:
        table_name: Table name.
        columns: Ordered columns.
        foreign_keys: Foreign keys in declaration order.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    table_name: str
    columns: list[ModelColumn] = Field(default_factory=list)
    foreign_keys: list[ModelForeignKey] = Field(default_factory=list)

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def get_column(self, name: str) -> ModelColumn | None:
        """Returns the column called ``name``, or ``None``."""
        for col in self.columns:
            if col.name == name:
                return col
        return None


class ModelRegistry:
    """Ordered collection of :class:`ModelSchema` keyed by table name.

    Registration order is preserved and drives the order of the resulting
    diff, so register models in the order they should be created.

    Example::

        registry = ModelRegistry()
        registry.register(users_schema)
        registry.register(posts_schema)
        diff = SchemaComparator(registry.schemas(), db_schema).compare()
    """

    def __init__(self) -> None:
        self._schemas: dict[str, ModelSchema] = {}

    def register(self, schema: ModelSchema) -> ModelSchema:
        """Add ``schema``; registering the same table twice replaces it.

        Raises:
            SchemaError: If the table name is empty.
        """
        if not schema.table_name:
            raise SchemaError("Model schema has an empty table name.")
        self._schemas[schema.table_name] = schema
        return schema

    def get(self, table_name: str) -> ModelSchema | None:
        return self._schemas.get(table_name)

    def schemas(self) -> dict[str, ModelSchema]:
        """Return a copy of the registered schemas, in registration order."""
        return dict(self._schemas)

    def clear(self) -> None:
        self._schemas.clear()

    def __contains__(self, table_name: object) -> bool:
        return table_name in self._schemas

    def __len__(self) -> int:
        return len(self._schemas)
