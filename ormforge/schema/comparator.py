"""Schema comparator: declared models vs. the live database.

:class:`SchemaComparator` produces a :class:`~ormforge.schema.diff.SchemaDiff`
in a fixed order the migration generator relies on:

1. ``CREATE_TABLE`` for every model table missing from the database, in
   model registration order;
2. ``DROP_TABLE`` for every database table no model declares, skipping
   migration-bookkeeping and engine-internal tables;
3. for tables present on both sides, per table: ``ADD_COLUMN``,
   ``REMOVE_COLUMN``, ``ADD_FOREIGN_KEY``, then ``CHANGE_COLUMN_TYPE`` and
   ``CHANGE_COLUMN_NULLABLE`` per column, then ``REMOVE_FOREIGN_KEY``.

Types are compared by family (integer, string, timestamp, ...), not by exact
spelling, since databases report types differently from how they were
declared.

Foreign keys of tables created in the same run are never emitted as
``ADD_FOREIGN_KEY``; the generator inlines them in ``CREATE TABLE``.

Drift is the comparator's output, not an error.  Only structurally invalid
input raises :class:`~ormforge.errors.SchemaError`.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from ormforge.dialect.registry import DialectFactory
from ormforge.dialect.base import SQLDialect
from ormforge.errors import SchemaError
from ormforge.schema.diff import ChangeType, SchemaChange, SchemaDiff
from ormforge.schema.introspection import DatabaseSchema, DatabaseTable
from ormforge.schema.model_schema import ModelSchema

logger = logging.getLogger(__name__)

#: Tables that record applied migrations; never proposed for dropping.
DEFAULT_TRACKING_TABLES: frozenset[str] = frozenset(
    {"schema_migrations", "ar_internal_metadata", "adonis_schema", "alembic_version"}
)

#: Prefixes of engine-internal tables (``sqlite_sequence``, ``sqlite_stat1``).
INTERNAL_TABLE_PREFIXES: tuple[str, ...] = ("sqlite_",)


class SchemaComparator:
    """Compares declared model schemas against an introspected database.

    Args:
        model_schemas: Declared schemas keyed by table name, in the order
            tables should be considered.
        db_schema: The introspected database schema.
        dialect: Dialect identifier (or instance) the diff is produced for.
        ignored_tables: Extra table names never proposed for dropping.
        tracking_tables: Migration-bookkeeping table names never proposed
            for dropping.

    Raises:
        UnsupportedDialectError: If ``dialect`` is not registered.

    Example::

        diff = SchemaComparator(registry.schemas(), db_schema, "postgres").compare()
        for change in diff.changes:
            print(change.type, change.table, change.column)
    """

    def __init__(
        self,
        model_schemas: Mapping[str, ModelSchema],
        db_schema: DatabaseSchema,
        dialect: str | SQLDialect = "sqlite",
        ignored_tables: Iterable[str] = (),
        tracking_tables: Iterable[str] = DEFAULT_TRACKING_TABLES,
    ) -> None:
        self._models = dict(model_schemas)
        self._db = db_schema
        self._dialect = DialectFactory.create(dialect)
        self._ignored = frozenset(ignored_tables)
        self._tracking = frozenset(tracking_tables)

    def compare(self) -> SchemaDiff:
        """Return the ordered diff between the models and the database.

        Raises:
            SchemaError: If a registry key differs from its schema's table
                name, a foreign key names a column its model does not
                declare, or a foreign key references a table that is
                neither modelled nor kept (absent from the database, or
                about to be dropped).
        """
        self._validate_models()

        creating = [name for name in self._models if name not in self._db.tables]
        changes: list[SchemaChange] = [
            SchemaChange(type=ChangeType.CREATE_TABLE, table=name) for name in creating
        ]
        warnings: list[str] = []

        for table_name in self._db.tables:
            if table_name in self._models or self._is_protected(table_name):
                continue
            changes.append(
                SchemaChange(
                    type=ChangeType.DROP_TABLE,
                    table=table_name,
                    warning=f"Table {table_name} exists in database but not in models",
                )
            )
            warnings.append(
                f"Table '{table_name}' will be dropped. This will delete all data in the table."
            )

        for table_name, model in self._models.items():
            db_table = self._db.tables.get(table_name)
            if db_table is None:
                continue
            changes.extend(self._compare_columns(model, db_table, warnings))
            changes.extend(self._added_foreign_keys(model, db_table))
            changes.extend(self._changed_columns(model, db_table, warnings))
            changes.extend(self._removed_foreign_keys(model, db_table))

        logger.debug(
            "Compared %d model table(s) with %d database table(s): %d change(s)",
            len(self._models),
            len(self._db.tables),
            len(changes),
        )
        return SchemaDiff(
            changes=changes, warnings=warnings, dialect=self._dialect.dialect_name
        )

    # ------------------------------------------------------------------
    # Per-table comparison
    # ------------------------------------------------------------------

    def _compare_columns(
        self,
        model: ModelSchema,
        db_table: DatabaseTable,
        warnings: list[str],
    ) -> list[SchemaChange]:
        changes: list[SchemaChange] = []
        db_columns = set(db_table.column_names)
        model_columns = set(model.column_names)

        for col in model.columns:
            if col.name in db_columns:
                continue
            changes.append(
                SchemaChange(
                    type=ChangeType.ADD_COLUMN,
                    table=model.table_name,
                    column=col.name,
                    details={
                        "type": col.sql_type,
                        "nullable": "true" if col.nullable else "false",
                    },
                )
            )

        for col in db_table.columns:
            if col.name in model_columns:
                continue
            changes.append(
                SchemaChange(
                    type=ChangeType.REMOVE_COLUMN,
                    table=model.table_name,
                    column=col.name,
                    warning=f"Column {col.name} will be removed",
                )
            )
            warnings.append(
                f"Column '{model.table_name}.{col.name}' will be dropped. "
                "This will delete all data in the column."
            )

        return changes

    def _added_foreign_keys(
        self, model: ModelSchema, db_table: DatabaseTable
    ) -> list[SchemaChange]:
        existing = {fk.key for fk in db_table.foreign_keys}
        return [
            SchemaChange(
                type=ChangeType.ADD_FOREIGN_KEY,
                table=model.table_name,
                column=fk.column,
                details={"to_table": fk.to_table, "to_column": fk.to_column},
            )
            for fk in model.foreign_keys
            if fk.key not in existing
        ]

    def _changed_columns(
        self,
        model: ModelSchema,
        db_table: DatabaseTable,
        warnings: list[str],
    ) -> list[SchemaChange]:
        changes: list[SchemaChange] = []
        db_columns = {c.name: c for c in db_table.columns}

        for col in model.columns:
            db_col = db_columns.get(col.name)
            if db_col is None:
                continue

            if db_col.sql_type and not self._same_type(col.sql_type, db_col.sql_type):
                changes.append(
                    SchemaChange(
                        type=ChangeType.CHANGE_COLUMN_TYPE,
                        table=model.table_name,
                        column=col.name,
                        details={"from": db_col.sql_type, "to": col.sql_type},
                        warning="Type change may cause data loss",
                    )
                )
                warnings.append(
                    f"Column '{model.table_name}.{col.name}' changes type from "
                    f"{db_col.sql_type} to {col.sql_type}. Existing values may not convert."
                )

            # Primary keys are NOT NULL whatever the declaration says.
            model_nullable = col.nullable and not col.primary_key
            db_nullable = db_col.nullable and not db_col.primary_key
            if model_nullable != db_nullable:
                changes.append(
                    SchemaChange(
                        type=ChangeType.CHANGE_COLUMN_NULLABLE,
                        table=model.table_name,
                        column=col.name,
                        details={
                            "from": "true" if db_nullable else "false",
                            "to": "true" if model_nullable else "false",
                        },
                    )
                )

        return changes

    def _removed_foreign_keys(
        self, model: ModelSchema, db_table: DatabaseTable
    ) -> list[SchemaChange]:
        declared = {fk.key for fk in model.foreign_keys}
        model_columns = set(model.column_names)
        changes: list[SchemaChange] = []
        for fk in db_table.foreign_keys:
            # Dropping the column drops its constraints with it.
            if fk.key in declared or fk.column not in model_columns:
                continue
            details = {"to_table": fk.to_table, "to_column": fk.to_column}
            if fk.name:
                details["constraint"] = fk.name
            if fk.on_delete:
                details["on_delete"] = fk.on_delete
            if fk.on_update:
                details["on_update"] = fk.on_update
            changes.append(
                SchemaChange(
                    type=ChangeType.REMOVE_FOREIGN_KEY,
                    table=model.table_name,
                    column=fk.column,
                    details=details,
                )
            )
        return changes

    def _same_type(self, model_type: str, db_type: str) -> bool:
        """Whether a declared type and a reported type hold the same kind of data.

        The declared type matches when either its logical name or the SQL
        type the dialect renders for it falls in the reported type's family,
        so ``bigint`` matches ``INTEGER`` and ``uuid`` matches SQLite's
        ``CHAR(36)``.
        """
        family = self._dialect.type_family(db_type)
        return family in (
            self._dialect.type_family(model_type),
            self._dialect.type_family(self._dialect.column_type(model_type)),
        )

    # ------------------------------------------------------------------
    # Input validation
    # ------------------------------------------------------------------

    def _validate_models(self) -> None:
        for key, model in self._models.items():
            if key != model.table_name:
                raise SchemaError(
                    f"Model registered as '{key}' declares table '{model.table_name}'.",
                    details={"key": key, "table": model.table_name},
                )
            declared = set(model.column_names)
            for fk in model.foreign_keys:
                if fk.column not in declared:
                    raise SchemaError(
                        f"Foreign key on '{model.table_name}' uses column "
                        f"'{fk.column}', which the model does not declare.",
                        details={"table": model.table_name, "column": fk.column},
                    )
                if fk.to_table not in self._models and fk.to_table not in self._db.tables:
                    raise SchemaError(
                        f"Foreign key '{model.table_name}.{fk.column}' references "
                        f"unknown table '{fk.to_table}'.",
                        details={
                            "table": model.table_name,
                            "column": fk.column,
                            "to_table": fk.to_table,
                        },
                    )
                if fk.to_table not in self._models and not self._is_protected(fk.to_table):
                    raise SchemaError(
                        f"Foreign key '{model.table_name}.{fk.column}' references "
                        f"table '{fk.to_table}', which no model declares and which "
                        "would be dropped; declare a model for it or ignore it.",
                        details={
                            "table": model.table_name,
                            "column": fk.column,
                            "to_table": fk.to_table,
                        },
                    )

    def _is_protected(self, table_name: str) -> bool:
        return (
            table_name in self._tracking
            or table_name in self._ignored
            or table_name.startswith(INTERNAL_TABLE_PREFIXES)
        )
