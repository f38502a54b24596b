"""ormforge – composable query building and schema migrations for SQL.

Public API
----------
``QueryBuilder``
    Immutable builder rendering parameterized SELECT / INSERT / UPDATE /
    DELETE / aggregate statements; builders combine with ``or_``, ``and_``
    and ``merge``.

``plan_migration``
    Compare declared model schemas with an introspected database and render
    the up/down SQL migration for the differences.

Re-exported types
-----------------
Schema types, ``SchemaComparator``, ``MigrationGenerator``,
``MigrationSettings``, the dialects and all error classes.

Extensibility
-------------
New dialects are registered via::

    from ormforge.dialect.registry import DialectFactory

    @DialectFactory.register("mysql")
    class MySQLDialect(SQLDialect):
        ...

Logging
-------
Modules log planning details at DEBUG level under the ``ormforge`` logger.
A ``NullHandler`` is installed; attach handlers in the host application.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from ormforge.config import MigrationSettings
from ormforge.dialect import (
    CompiledSQL,
    DialectFactory,
    PostgresDialect,
    SQLDialect,
    SQLiteDialect,
)
from ormforge.errors import (
    MalformedClauseError,
    MigrationPlanningError,
    OrmForgeError,
    SchemaError,
    TableMismatchError,
    UnsupportedDialectError,
)
from ormforge.migrate import (
    CreationPlan,
    CreationPlanner,
    MigrationGenerator,
    MigrationScript,
)
from ormforge.query import Direction, JoinKind, QueryBuilder
from ormforge.schema import (
    ChangeType,
    DatabaseColumn,
    DatabaseForeignKey,
    DatabaseSchema,
    DatabaseTable,
    ModelColumn,
    ModelForeignKey,
    ModelRegistry,
    ModelSchema,
    SchemaChange,
    SchemaComparator,
    SchemaDiff,
)
from ormforge.schema.converters import (
    database_schema_from_sqlalchemy,
    model_schemas_from_metadata,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Pipeline
    "plan_migration",
    "MigrationSettings",
    # Query building
    "QueryBuilder",
    "Direction",
    "JoinKind",
    "CompiledSQL",
    # Dialects
    "DialectFactory",
    "SQLDialect",
    "PostgresDialect",
    "SQLiteDialect",
    # Schema types
    "ModelColumn",
    "ModelForeignKey",
    "ModelSchema",
    "ModelRegistry",
    "DatabaseColumn",
    "DatabaseForeignKey",
    "DatabaseTable",
    "DatabaseSchema",
    "ChangeType",
    "SchemaChange",
    "SchemaDiff",
    "SchemaComparator",
    # Converters
    "database_schema_from_sqlalchemy",
    "model_schemas_from_metadata",
    # Migrations
    "CreationPlan",
    "CreationPlanner",
    "MigrationGenerator",
    "MigrationScript",
    # Errors
    "OrmForgeError",
    "MalformedClauseError",
    "TableMismatchError",
    "SchemaError",
    "MigrationPlanningError",
    "UnsupportedDialectError",
]


def plan_migration(
    model_schemas: Mapping[str, ModelSchema],
    db_schema: DatabaseSchema,
    settings: MigrationSettings | None = None,
) -> MigrationScript:
    """Compare the declared models with the database and render a migration.

    This is the main entry point for schema migrations::

        script = ormforge.plan_migration(
            model_schemas=registry.schemas(),
            db_schema=database_schema_from_sqlalchemy(engine),
            settings=MigrationSettings(dialect="postgres", name="add_posts"),
        )
        Path(script.path).write_text(script.content)

    Args:
        model_schemas: Declared schemas keyed by table name.
        db_schema: The introspected database schema.
        settings: Optional settings; defaults to ``MigrationSettings()``.

    Returns:
        The rendered :class:`MigrationScript`; writing it is the caller's job.

    Raises:
        SchemaError: If the schema inputs are structurally invalid.
        MigrationPlanningError: If the new tables cannot be ordered into
            valid DDL.
    """
    if settings is None:
        settings = MigrationSettings()

    # 1. Compare
    diff = SchemaComparator(
        model_schemas,
        db_schema,
        dialect=settings.dialect,
        ignored_tables=settings.ignored_tables,
        tracking_tables=settings.tracking_tables,
    ).compare()

    # 2. Generate
    return MigrationGenerator(
        diff,
        model_schemas,
        dialect=settings.dialect,
        name=settings.name,
        output_dir=settings.output_dir,
    ).generate()
