"""Dependency-ordered CREATE TABLE planning.

The tables a migration creates reference each other through foreign keys.
A ``CREATE TABLE`` that inlines a foreign key must come after the table it
references, so the planner orders the new tables by a depth-first
post-order walk of the foreign-key graph:

* an edge ``A -> B`` exists for every foreign key on ``A`` whose target
  ``B`` is also being created (self-references are not edges);
* roots are visited in diff order, edges in foreign-key declaration order;
* an edge whose target is still on the DFS stack closes a cycle.  Its
  foreign key is *deferred*: it is left out of ``CREATE TABLE`` and added
  afterwards with ``ALTER TABLE``.  Every other edge is honoured.

Exactly one edge is deferred per back-edge found, which breaks pairwise
cycles (``users <-> teams``) and longer ones (``a -> b -> c -> a``) alike.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from ormforge.dialect.base import SQLDialect
from ormforge.errors import MigrationPlanningError
from ormforge.schema.model_schema import ModelForeignKey, ModelSchema

logger = logging.getLogger(__name__)


def fk_constraint_name(table: str, column: str) -> str:
    """Return the generated constraint name for ``table.column``."""
    return f"fk_{table}_{column}"


@dataclass(frozen=True)
class DeferredForeignKey:
    """A foreign key added by ``ALTER TABLE`` after all tables exist."""

    table: str
    foreign_key: ModelForeignKey

    @property
    def constraint_name(self) -> str:
        return fk_constraint_name(self.table, self.foreign_key.column)


@dataclass
class CreationPlan:
    """Result of :meth:`CreationPlanner.plan`.

    Attributes:
        order: Table names in creation order.
        deferred: Foreign keys removed from ``CREATE TABLE`` to break cycles.
    """

    order: list[str] = field(default_factory=list)
    deferred: list[DeferredForeignKey] = field(default_factory=list)

    def is_deferred(self, table: str, fk: ModelForeignKey) -> bool:
        return any(d.table == table and d.foreign_key == fk for d in self.deferred)


class CreationPlanner:
    """Orders new tables by foreign-key dependency.

    Args:
        model_schemas: Declared schemas keyed by table name.
        dialect: Target dialect; decides whether a deferral can be applied.
    """

    def __init__(self, model_schemas: Mapping[str, ModelSchema], dialect: SQLDialect) -> None:
        self._schemas = model_schemas
        self._dialect = dialect

    def plan(self, tables: Sequence[str]) -> CreationPlan:
        """Return the creation order and deferred foreign keys for ``tables``.

        Args:
            tables: Tables to create, in diff order.

        Returns:
            A :class:`CreationPlan`.

        Raises:
            MigrationPlanningError: If a table has no model schema or no
                columns, if an auto-increment column has a type the dialect
                cannot auto-increment, if a deferral is needed on a dialect
                that supports neither ``ALTER TABLE ... ADD CONSTRAINT`` nor
                forward references, or if the order violates a kept
                dependency.
        """
        schemas = {name: self._schema_for(name) for name in tables}
        creating = set(schemas)

        plan = CreationPlan()
        visited: set[str] = set()
        on_stack: set[str] = set()

        for root in schemas:
            if root in visited:
                continue
            # Explicit stack of (table, remaining foreign keys); no recursion.
            on_stack.add(root)
            stack = [(root, iter(schemas[root].foreign_keys))]
            while stack:
                table, edges = stack[-1]
                for fk in edges:
                    target = fk.to_table
                    if target == table or target not in creating:
                        continue
                    if target in on_stack:
                        plan.deferred.append(DeferredForeignKey(table, fk))
                    elif target not in visited:
                        on_stack.add(target)
                        stack.append((target, iter(schemas[target].foreign_keys)))
                        break
                else:
                    stack.pop()
                    on_stack.discard(table)
                    visited.add(table)
                    plan.order.append(table)

        if plan.deferred:
            self._check_deferrable(plan)
        self._verify(plan, schemas)

        logger.debug(
            "Planned creation of %d table(s): order=%s deferred=%s",
            len(plan.order),
            plan.order,
            [d.constraint_name for d in plan.deferred],
        )
        return plan

    def _schema_for(self, table: str) -> ModelSchema:
        schema = self._schemas.get(table)
        if schema is None:
            raise MigrationPlanningError(
                f"No model schema is registered for table '{table}'.", table=table
            )
        if not schema.columns:
            raise MigrationPlanningError(
                f"Model for table '{table}' declares no columns.", table=table
            )
        for col in schema.columns:
            if col.auto_increment and not self._dialect.is_serial_type(col.sql_type):
                raise MigrationPlanningError(
                    f"Column '{table}.{col.name}' is auto-increment, but type "
                    f"'{col.sql_type}' cannot auto-increment on dialect "
                    f"'{self._dialect.dialect_name}'.",
                    table=table,
                    details={"column": col.name, "sql_type": col.sql_type},
                )
        return schema

    def _check_deferrable(self, plan: CreationPlan) -> None:
        if self._dialect.supports_alter_constraints or self._dialect.supports_forward_references:
            return
        first = plan.deferred[0]
        raise MigrationPlanningError(
            f"Circular foreign keys through '{first.table}' cannot be resolved on "
            f"dialect '{self._dialect.dialect_name}'.",
            table=first.table,
            details={"deferred": [d.constraint_name for d in plan.deferred]},
        )

    def _verify(self, plan: CreationPlan, schemas: Mapping[str, ModelSchema]) -> None:
        position = {table: i for i, table in enumerate(plan.order)}
        for table, schema in schemas.items():
            for fk in schema.foreign_keys:
                target = fk.to_table
                if target == table or target not in position or plan.is_deferred(table, fk):
                    continue
                if position[target] > position[table]:
                    raise MigrationPlanningError(
                        f"Table '{table}' would be created before '{target}', "
                        f"which its foreign key '{fk.column}' references.",
                        table=table,
                        details={"column": fk.column, "to_table": target},
                    )
