"""Schema types, the schema comparator and SQLAlchemy converters."""
from __future__ import annotations

from ormforge.schema.comparator import DEFAULT_TRACKING_TABLES, SchemaComparator
from ormforge.schema.diff import ChangeType, SchemaChange, SchemaDiff
from ormforge.schema.introspection import (
    DatabaseColumn,
    DatabaseForeignKey,
    DatabaseSchema,
    DatabaseTable,
)
from ormforge.schema.model_schema import (
    ModelColumn,
    ModelForeignKey,
    ModelRegistry,
    ModelSchema,
)

__all__ = [
    "DEFAULT_TRACKING_TABLES",
    "ChangeType",
    "DatabaseColumn",
    "DatabaseForeignKey",
    "DatabaseSchema",
    "DatabaseTable",
    "ModelColumn",
    "ModelForeignKey",
    "ModelRegistry",
    "ModelSchema",
    "SchemaChange",
    "SchemaComparator",
    "SchemaDiff",
]
