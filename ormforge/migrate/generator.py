"""SQL migration generator.

Turns a :class:`~ormforge.schema.diff.SchemaDiff` into plain-SQL up and down
scripts with ``-- +migrate Up`` / ``-- +migrate Down`` markers.

Up script layout:

1. ``CREATE TABLE`` for every new table, in foreign-key dependency order
   (see :mod:`ormforge.migrate.planner`), with foreign keys inlined as
   named constraints;
2. a "Deferred foreign keys" section adding the constraints that were held
   back to break circular references;
3. foreign-key removals, then the remaining changes in diff order.

The down script reverses the remaining changes, drops the deferred
constraints, then drops the new tables in reverse creation order.

Planning runs before any SQL is rendered, so a failed plan never yields a
partial script.  Writing the file is left to the caller::

    script = MigrationGenerator(diff, models, "postgres", "create users").generate()
    Path(script.path).write_text(script.content)
"""
from __future__ import annotations

import datetime
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ormforge.dialect.base import SQLDialect
from ormforge.dialect.registry import DialectFactory
from ormforge.migrate.planner import (
    CreationPlan,
    CreationPlanner,
    DeferredForeignKey,
    fk_constraint_name,
)
from ormforge.schema.diff import ChangeType, SchemaChange, SchemaDiff
from ormforge.schema.model_schema import ModelColumn, ModelForeignKey, ModelSchema

logger = logging.getLogger(__name__)

UP_MARKER = "-- +migrate Up"
DOWN_MARKER = "-- +migrate Down"


@dataclass
class MigrationScript:
    """A rendered migration.

    Attributes:
        name: Human-readable migration name.
        path: Suggested file path, ``<output_dir>/<timestamp>_<snake_name>.sql``.
        up: SQL applying the changes.
        down: SQL reverting them, as far as that is possible.
        content: Full file text: header, up section and down section.
    """

    name: str
    path: Path
    up: str
    down: str
    content: str


def snake_case(name: str) -> str:
    """``"CreateUsers"`` / ``"create users"`` -> ``"create_users"``."""
    name = re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", name.strip())
    return re.sub(r"[^a-z0-9_]", "_", name.lower())


class MigrationGenerator:
    """Renders a schema diff as a dialect-specific SQL migration.

    Args:
        diff: Changes to render, as produced by
            :class:`~ormforge.schema.comparator.SchemaComparator`.
        model_schemas: Declared schemas; ``CREATE TABLE`` bodies and foreign
            key actions are read from here.
        dialect: Target dialect; defaults to the dialect the diff was
            compared for.
        name: Migration name used in the header and the file name.
        output_dir: Directory the suggested path points into.

    Raises:
        UnsupportedDialectError: If ``dialect`` is not registered.
    """

    def __init__(
        self,
        diff: SchemaDiff,
        model_schemas: Mapping[str, ModelSchema],
        dialect: str | SQLDialect | None = None,
        name: str = "auto_migration",
        output_dir: str | Path = "./db/migrations",
    ) -> None:
        self._diff = diff
        self._schemas = model_schemas
        self._dialect = DialectFactory.create(dialect if dialect is not None else diff.dialect)
        self._name = name
        self._output_dir = Path(output_dir)
        self._inline_references = self._column_references()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def generate(self, timestamp: datetime.datetime | None = None) -> MigrationScript:
        """Plan and render the migration.

        Args:
            timestamp: Generation time; defaults to the current UTC time.

        Returns:
            The rendered :class:`MigrationScript`.

        Raises:
            MigrationPlanningError: If the new tables cannot be ordered into
                valid DDL for this dialect.
        """
        timestamp = timestamp or datetime.datetime.now(datetime.timezone.utc)

        creates = [c.table for c in self._diff.changes if c.type is ChangeType.CREATE_TABLE]
        rest = [c for c in self._diff.changes if c.type is not ChangeType.CREATE_TABLE]
        # Foreign keys are dropped before the tables and columns they use.
        rest.sort(key=lambda c: c.type is not ChangeType.REMOVE_FOREIGN_KEY)
        plan = CreationPlanner(self._schemas, self._dialect).plan(creates)

        up = self._up_script(plan, rest)
        down = self._down_script(plan, rest)
        content = "\n".join(
            [self._header(timestamp), UP_MARKER, up, DOWN_MARKER, down]
        )
        file_name = f"{timestamp.strftime('%Y%m%d%H%M%S')}_{snake_case(self._name)}.sql"

        logger.debug(
            "Generated migration %s: %d change(s), %d deferred foreign key(s)",
            file_name,
            len(self._diff.changes),
            len(plan.deferred),
        )
        return MigrationScript(
            name=self._name,
            path=self._output_dir / file_name,
            up=up,
            down=down,
            content=content,
        )

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def _header(self, timestamp: datetime.datetime) -> str:
        lines = [
            f"-- Migration: {self._name}",
            f"-- Generated: {timestamp.isoformat()}",
            f"-- Dialect: {self._dialect.dialect_name}",
        ]
        if self._diff.has_destructive_changes:
            lines += [
                "--",
                "-- WARNING: This migration contains destructive changes!",
                "-- Review carefully before running.",
            ]
        return "\n".join(lines) + "\n"

    def _up_script(self, plan: CreationPlan, rest: list[SchemaChange]) -> str:
        if self._diff.is_empty:
            return "-- No changes detected\n"

        inline_deferred = not self._dialect.supports_alter_constraints
        statements = [self._create_table(table, plan, inline_deferred) for table in plan.order]

        if plan.deferred:
            statements.append("")
            statements.append("-- Deferred foreign keys (circular dependencies)")
            if inline_deferred:
                statements.append(
                    "-- Declared inline above; this dialect resolves foreign key "
                    "targets when rows are written."
                )
                statements.extend(f"-- {self._describe(d)}" for d in plan.deferred)
            else:
                statements.extend(
                    self._add_constraint(d.table, d.foreign_key) for d in plan.deferred
                )

        for change in rest:
            if change.warning:
                statements.append(f"-- WARNING: {change.warning}")
            statements.append(self._apply(change))

        return "\n".join(statements) + "\n"

    def _down_script(self, plan: CreationPlan, rest: list[SchemaChange]) -> str:
        if self._diff.is_empty:
            return "-- No changes to reverse\n"

        statements = [self._revert(change) for change in reversed(rest)]
        if self._dialect.supports_alter_constraints:
            statements.extend(
                self._drop_constraint(d.table, d.constraint_name)
                for d in reversed(plan.deferred)
            )
        statements.extend(
            f"DROP TABLE IF EXISTS {self._q(table)};" for table in reversed(plan.order)
        )
        return "\n".join(statements) + "\n"

    # ------------------------------------------------------------------
    # CREATE TABLE
    # ------------------------------------------------------------------

    def _create_table(self, table: str, plan: CreationPlan, inline_deferred: bool) -> str:
        schema = self._schemas[table]
        pk_columns = [c.name for c in schema.columns if c.primary_key]
        composite_pk = len(pk_columns) > 1

        definitions = [
            "    " + self._column_definition(col, inline_pk=not composite_pk)
            for col in schema.columns
        ]
        if composite_pk:
            cols = ", ".join(self._q(c) for c in pk_columns)
            definitions.append(f"    PRIMARY KEY ({cols})")
        for fk in schema.foreign_keys:
            if plan.is_deferred(table, fk) and not inline_deferred:
                continue
            definitions.append("    " + self._fk_constraint(table, fk))

        body = ",\n".join(definitions)
        return f"CREATE TABLE {self._q(table)} (\n{body}\n);"

    def _column_definition(self, col: ModelColumn, inline_pk: bool = True) -> str:
        dialect = self._dialect
        serial = (
            col.auto_increment
            and col.primary_key
            and inline_pk
            and dialect.is_serial_type(col.sql_type)
        )
        sql_type = dialect.serial_type(col.sql_type) if serial else dialect.column_type(col.sql_type)
        parts = [self._q(col.name), sql_type]
        if col.primary_key and inline_pk:
            parts.append("PRIMARY KEY")
            if serial and dialect.AUTOINCREMENT_KEYWORD:
                parts.append(dialect.AUTOINCREMENT_KEYWORD)
        if not col.nullable or col.primary_key:
            parts.append("NOT NULL")
        if col.default is not None and not serial:
            parts.append(f"DEFAULT {dialect.literal(col.default)}")
        return " ".join(parts)

    def _fk_constraint(self, table: str, fk: ModelForeignKey, name: str | None = None) -> str:
        name = name or fk_constraint_name(table, fk.column)
        return (
            f"CONSTRAINT {self._q(name)} FOREIGN KEY ({self._q(fk.column)}) "
            + self._references(fk)
        )

    def _references(self, fk: ModelForeignKey) -> str:
        sql = f"REFERENCES {self._q(fk.to_table)} ({self._q(fk.to_column)})"
        if fk.on_delete:
            sql += f" ON DELETE {_action(fk.on_delete)}"
        if fk.on_update:
            sql += f" ON UPDATE {_action(fk.on_update)}"
        return sql

    # ------------------------------------------------------------------
    # Remaining changes
    # ------------------------------------------------------------------

    def _apply(self, change: SchemaChange) -> str:
        table = self._q(change.table)
        column = self._q(change.column or "")
        where = f"{change.table}.{change.column}"

        if change.type is ChangeType.DROP_TABLE:
            return f"DROP TABLE IF EXISTS {table};"

        if change.type is ChangeType.ADD_COLUMN:
            sql_type = self._dialect.column_type(change.details.get("type", "text"))
            sql = f"ALTER TABLE {table} ADD COLUMN {column} {sql_type}"
            if change.details.get("nullable") == "false":
                sql += " NOT NULL"
            default = self._declared_default(change)
            if default is not None:
                sql += f" DEFAULT {self._dialect.literal(default)}"
            reference = self._inline_references.get((change.table, change.column or ""))
            if reference is not None:
                sql += " " + self._references(reference)
            return sql + ";"

        if change.type is ChangeType.REMOVE_COLUMN:
            return f"ALTER TABLE {table} DROP COLUMN {column};"

        if change.type is ChangeType.CHANGE_COLUMN_TYPE:
            to_type = change.details.get("to", "text")
            if not self._dialect.supports_alter_column:
                return (
                    f"-- {self._dialect.dialect_name} cannot change a column type in "
                    "place; rebuild the table.\n"
                    f"-- {where}: {change.details.get('from', '')} -> {to_type}"
                )
            return self._dialect.alter_column_type(
                table, column, self._dialect.column_type(to_type)
            )

        if change.type is ChangeType.CHANGE_COLUMN_NULLABLE:
            if not self._dialect.supports_alter_column:
                return (
                    f"-- {self._dialect.dialect_name} cannot change NOT NULL in "
                    "place; rebuild the table.\n"
                    f"-- {where}: nullable {change.details.get('from')} -> "
                    f"{change.details.get('to')}"
                )
            return self._set_nullable(table, column, change.details.get("to") == "true")

        if change.type is ChangeType.REMOVE_FOREIGN_KEY:
            fk = self._removed_foreign_key(change)
            if not self._dialect.supports_alter_constraints:
                return (
                    f"-- {self._dialect.dialect_name} cannot drop a foreign key from an "
                    "existing table; rebuild the table to remove it.\n"
                    f"-- {where} -> {fk.to_table}.{fk.to_column}"
                )
            return self._drop_constraint(change.table, self._removed_constraint_name(change))

        fk = self._foreign_key_for(change)
        if (change.table, fk.column) in self._inline_references:
            return (
                f"-- {where} -> {fk.to_table}.{fk.to_column} "
                f"is declared by ADD COLUMN {change.column} above"
            )
        if not self._dialect.supports_alter_constraints:
            return (
                f"-- {self._dialect.dialect_name} cannot add a foreign key to an "
                "existing table; declare it when the table is created.\n"
                f"-- {where} -> {fk.to_table}.{fk.to_column}"
            )
        return self._add_constraint(change.table, fk)

    def _revert(self, change: SchemaChange) -> str:
        table = self._q(change.table)
        column = self._q(change.column or "")
        where = f"{change.table}.{change.column}"

        if change.type is ChangeType.DROP_TABLE:
            return (
                "-- Cannot automatically reverse DROP TABLE\n"
                f"-- Manual recreation required for: {change.table}"
            )

        if change.type is ChangeType.ADD_COLUMN:
            return f"ALTER TABLE {table} DROP COLUMN {column};"

        if change.type is ChangeType.REMOVE_COLUMN:
            return (
                "-- Cannot automatically reverse DROP COLUMN\n"
                f"-- Original column: {where}"
            )

        if change.type is ChangeType.CHANGE_COLUMN_TYPE:
            if not self._dialect.supports_alter_column:
                return f"-- No type change was applied to {where}"
            from_type = change.details.get("from", "text")
            return self._dialect.alter_column_type(
                table, column, self._dialect.column_type(from_type)
            )

        if change.type is ChangeType.CHANGE_COLUMN_NULLABLE:
            if not self._dialect.supports_alter_column:
                return f"-- No NOT NULL change was applied to {where}"
            return self._set_nullable(table, column, change.details.get("from") == "true")

        if change.type is ChangeType.REMOVE_FOREIGN_KEY:
            if not self._dialect.supports_alter_constraints:
                return f"-- No foreign key was dropped from {where}"
            return self._add_constraint(
                change.table,
                self._removed_foreign_key(change),
                name=self._removed_constraint_name(change),
            )

        if (change.table, change.column or "") in self._inline_references:
            return f"-- Foreign key on {where} is dropped with its column"
        if not self._dialect.supports_alter_constraints:
            return f"-- No foreign key was added to {where}"
        return self._drop_constraint(
            change.table, fk_constraint_name(change.table, change.column or "")
        )

    def _set_nullable(self, table: str, column: str, nullable: bool) -> str:
        action = "DROP NOT NULL" if nullable else "SET NOT NULL"
        return f"ALTER TABLE {table} ALTER COLUMN {column} {action};"

    def _declared_default(self, change: SchemaChange) -> Any:
        schema = self._schemas.get(change.table)
        column = schema.get_column(change.column or "") if schema is not None else None
        return column.default if column is not None else None

    def _foreign_key_for(self, change: SchemaChange) -> ModelForeignKey:
        """Return the declared foreign key behind an ADD_FOREIGN_KEY change.

        Falls back to the change details when the model is not available,
        which loses only the ON DELETE / ON UPDATE actions.
        """
        to_table = change.details.get("to_table", "")
        to_column = change.details.get("to_column", "id")
        schema = self._schemas.get(change.table)
        if schema is not None:
            for fk in schema.foreign_keys:
                if fk.key == (change.column, to_table, to_column):
                    return fk
        return ModelForeignKey(column=change.column or "", to_table=to_table, to_column=to_column)

    def _removed_foreign_key(self, change: SchemaChange) -> ModelForeignKey:
        """Rebuild the database foreign key a REMOVE_FOREIGN_KEY change drops."""
        return ModelForeignKey(
            column=change.column or "",
            to_table=change.details.get("to_table", ""),
            to_column=change.details.get("to_column", "id"),
            on_delete=change.details.get("on_delete"),
            on_update=change.details.get("on_update"),
        )

    def _removed_constraint_name(self, change: SchemaChange) -> str:
        return change.details.get("constraint") or fk_constraint_name(
            change.table, change.column or ""
        )

    def _column_references(self) -> dict[tuple[str, str], ModelForeignKey]:
        """Foreign keys rendered as ``REFERENCES`` on ``ADD COLUMN``.

        Only for dialects that cannot add constraints to existing tables,
        and only for columns added by this migration without a default.
        """
        if self._dialect.supports_alter_constraints:
            return {}
        added = {(c.table, c.column) for c in self._diff.of_type(ChangeType.ADD_COLUMN)}
        references: dict[tuple[str, str], ModelForeignKey] = {}
        for change in self._diff.of_type(ChangeType.ADD_FOREIGN_KEY):
            key = (change.table, change.column or "")
            if key in added and self._declared_default(change) is None:
                references[key] = self._foreign_key_for(change)
        return references

    # ------------------------------------------------------------------
    # Constraint helpers
    # ------------------------------------------------------------------

    def _add_constraint(self, table: str, fk: ModelForeignKey, name: str | None = None) -> str:
        return f"ALTER TABLE {self._q(table)} ADD {self._fk_constraint(table, fk, name)};"

    def _drop_constraint(self, table: str, constraint: str) -> str:
        return f"ALTER TABLE {self._q(table)} DROP CONSTRAINT {self._q(constraint)};"

    def _describe(self, deferred: DeferredForeignKey) -> str:
        fk = deferred.foreign_key
        return f"{deferred.table}.{fk.column} -> {fk.to_table}.{fk.to_column}"

    def _q(self, name: str) -> str:
        return self._dialect.quote_identifier(name)


def _action(action: str) -> str:
    """``"cascade"`` / ``"set_null"`` -> ``"CASCADE"`` / ``"SET NULL"``."""
    return action.replace("_", " ").upper()
