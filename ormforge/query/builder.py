"""Immutable, composable query builder.

``QueryBuilder`` is a frozen value: every chain method returns a new builder
built with :func:`dataclasses.replace`, so builders can be stored, shared
between threads, reused as scopes and combined without aliasing bugs::

    adults = QueryBuilder("users").where("age >= ?", 18)
    admins = QueryBuilder("users").where("role = ?", "admin")

    sql, params = adults.or_(admins).order("name").limit(10).build_select()
    # SELECT * FROM "users" WHERE (age >= $1 OR role = $2)
    #   ORDER BY "name" ASC LIMIT 10
    # params == [18, "admin"]

WHERE state
-----------
``wheres`` is a clause group: a tuple of leaves and
:class:`~ormforge.query.clauses.CombinedClause` nodes that are AND-ed in
insertion order.  ``where()`` appends a leaf; ``or_()`` / ``and_()`` collapse
both operands' groups into a single combined node; ``merge()`` concatenates
the two groups.  Rendering walks this structure once, numbering placeholders
and collecting arguments in the same pass.

Rendering
---------
All ``build_*`` methods return :class:`~ormforge.dialect.base.CompiledSQL`
(which unpacks as ``sql, params``).  Placeholders follow the builder's
dialect: ``$1, $2, …`` for ``postgres`` and ``?`` for ``sqlite``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, replace
from typing import Any

from ormforge.dialect.base import CompiledSQL, SQLDialect
from ormforge.dialect.registry import DialectFactory
from ormforge.errors import MalformedClauseError, TableMismatchError
from ormforge.query.clauses import (
    BoolOp,
    ClauseGroup,
    CombinedClause,
    Direction,
    HavingClause,
    JoinClause,
    JoinKind,
    OrderClause,
    SubqueryClause,
    WhereClause,
)
from ormforge.query.context import RenderContext
from ormforge.query.statements import StatementRenderer


def _ordered_union(left: Sequence[str], right: Iterable[str]) -> tuple[str, ...]:
    """Union preserving first-seen order."""
    seen = dict.fromkeys(left)
    for item in right:
        seen.setdefault(item, None)
    return tuple(seen)


@dataclass(frozen=True)
class QueryBuilder:
    """Immutable accumulator of SQL clauses for one table.

    Attributes:
        table: Table the statement targets.
        dialect: Dialect identifier used when rendering.
        selects: Selected columns (empty means ``*``), unique, in order.
        is_distinct: Emit ``SELECT DISTINCT``.
        wheres: WHERE clause group (see module docstring).
        orders: ORDER BY clauses.
        groups: GROUP BY columns.
        havings: HAVING clauses, AND-ed.
        limit_value: LIMIT, or ``None``.
        offset_value: OFFSET, or ``None``.
        joins: JOIN clauses.
    """

    table: str
    dialect: str = "postgres"
    selects: tuple[str, ...] = ()
    is_distinct: bool = False
    wheres: ClauseGroup = ()
    orders: tuple[OrderClause, ...] = ()
    groups: tuple[str, ...] = ()
    havings: tuple[HavingClause, ...] = ()
    limit_value: int | None = None
    offset_value: int | None = None
    joins: tuple[JoinClause, ...] = ()

    # ------------------------------------------------------------------
    # Projection
    # ------------------------------------------------------------------

    def select(self, *columns: str) -> QueryBuilder:
        return replace(self, selects=_ordered_union(self.selects, columns))

    def distinct(self) -> QueryBuilder:
        return replace(self, is_distinct=True)

    # ------------------------------------------------------------------
    # Filtering
    # ------------------------------------------------------------------

    def where(self, fragment: str, *values: Any) -> QueryBuilder:
        """AND a raw fragment with ``?`` markers onto the WHERE clause.

        On a combined builder the fragment is AND-ed alongside the combined
        node, rendering as ``(<combined>) AND <fragment>``.

        Raises:
            MalformedClauseError: If the marker count differs from
                ``len(values)``.
        """
        return self._add_where(WhereClause(fragment, values))

    def where_not(self, fragment: str, *values: Any) -> QueryBuilder:
        return self._add_where(WhereClause(f"NOT ({fragment})", values))

    def where_in(self, column: str, values: Sequence[Any] | QueryBuilder) -> QueryBuilder:
        """Restrict ``column`` to a list of values or a subquery.

        An empty list renders ``1=0`` (matches nothing).  A subquery builder
        may target any table; its arguments are bound where its SQL appears.

        Raises:
            MalformedClauseError: If ``values`` is a ``str`` or ``bytes``.
        """
        return self._add_where(self._membership(column, values, negate=False))

    def where_not_in(self, column: str, values: Sequence[Any] | QueryBuilder) -> QueryBuilder:
        """Exclude a list of values or a subquery; an empty list renders ``1=1``."""
        return self._add_where(self._membership(column, values, negate=True))

    def _membership(
        self,
        column: str,
        values: Sequence[Any] | QueryBuilder,
        negate: bool,
    ) -> WhereClause | SubqueryClause:
        if isinstance(values, QueryBuilder):
            return SubqueryClause(column, values, negate=negate)
        if isinstance(values, (str, bytes)):
            raise MalformedClauseError(
                f"IN values for {column!r} must be a sequence of values, not a string."
            )
        values = list(values)
        if not values:
            return WhereClause("1=1" if negate else "1=0")
        keyword = "NOT IN" if negate else "IN"
        markers = ", ".join("?" for _ in values)
        quoted = self._dialect.quote_column(column)
        return WhereClause(f"{quoted} {keyword} ({markers})", values)

    def _add_where(self, clause: WhereClause | SubqueryClause) -> QueryBuilder:
        return replace(self, wheres=self.wheres + (clause,))

    # ------------------------------------------------------------------
    # Composition
    # ------------------------------------------------------------------

    def or_(self, other: QueryBuilder) -> QueryBuilder:
        """Combine WHERE conditions: ``(<self> OR <other>)``.

        All non-WHERE attributes come from ``self``.
        """
        return self._combine(BoolOp.OR, other, "or")

    def and_(self, other: QueryBuilder) -> QueryBuilder:
        """Combine WHERE conditions as an explicit group: ``(<self> AND <other>)``."""
        return self._combine(BoolOp.AND, other, "and")

    def _combine(self, op: BoolOp, other: QueryBuilder, operation: str) -> QueryBuilder:
        self._check_same_table(other, operation)
        if not other.wheres:
            return self
        if not self.wheres:
            return replace(self, wheres=other.wheres)
        return replace(self, wheres=(CombinedClause(op, self.wheres, other.wheres),))

    def merge(self, other: QueryBuilder) -> QueryBuilder:
        """Conjunctively merge every clause of ``other`` into ``self``.

        WHERE, ORDER, GROUP and HAVING are concatenated; SELECT columns and
        JOINs are unioned; DISTINCT is OR-ed; LIMIT and OFFSET keep
        ``self``'s value when set and fall back to ``other``'s.
        """
        self._check_same_table(other, "merge")
        return replace(
            self,
            selects=_ordered_union(self.selects, other.selects),
            is_distinct=self.is_distinct or other.is_distinct,
            wheres=self.wheres + other.wheres,
            orders=self.orders + other.orders,
            groups=self.groups + other.groups,
            havings=self.havings + other.havings,
            limit_value=self.limit_value if self.limit_value is not None else other.limit_value,
            offset_value=self.offset_value if self.offset_value is not None else other.offset_value,
            joins=self.joins + tuple(j for j in other.joins if j not in self.joins),
        )

    def _check_same_table(self, other: QueryBuilder, operation: str) -> None:
        if other.table != self.table:
            raise TableMismatchError(operation, self.table, other.table)

    # ------------------------------------------------------------------
    # Ordering, paging, grouping
    # ------------------------------------------------------------------

    def order(self, column: str, direction: Direction | str = Direction.ASC) -> QueryBuilder:
        if not isinstance(direction, Direction):
            try:
                direction = Direction(direction.upper())
            except ValueError:
                raise MalformedClauseError(
                    f"ORDER direction must be ASC or DESC, got {direction!r}."
                ) from None
        return replace(self, orders=self.orders + (OrderClause(column, direction),))

    def limit(self, count: int) -> QueryBuilder:
        if count < 0:
            raise MalformedClauseError(f"LIMIT must be non-negative, got {count}.")
        return replace(self, limit_value=count)

    def offset(self, count: int) -> QueryBuilder:
        if count < 0:
            raise MalformedClauseError(f"OFFSET must be non-negative, got {count}.")
        return replace(self, offset_value=count)

    def group(self, *columns: str) -> QueryBuilder:
        return replace(self, groups=self.groups + columns)

    def having(self, fragment: str, *values: Any) -> QueryBuilder:
        return replace(self, havings=self.havings + (HavingClause(fragment, values),))

    # ------------------------------------------------------------------
    # Joins
    # ------------------------------------------------------------------

    def join(
        self,
        table: str,
        on: str,
        kind: JoinKind | str = JoinKind.INNER,
        alias: str | None = None,
    ) -> QueryBuilder:
        if not isinstance(kind, JoinKind):
            try:
                kind = JoinKind[kind.upper()]
            except KeyError:
                known = ", ".join(k.name.lower() for k in JoinKind)
                raise MalformedClauseError(
                    f"Unknown join kind {kind!r}; expected one of: {known}."
                ) from None
        return replace(self, joins=self.joins + (JoinClause(table, on, kind, alias),))

    def inner_join(self, table: str, on: str, alias: str | None = None) -> QueryBuilder:
        return self.join(table, on, JoinKind.INNER, alias)

    def left_join(self, table: str, on: str, alias: str | None = None) -> QueryBuilder:
        return self.join(table, on, JoinKind.LEFT, alias)

    def right_join(self, table: str, on: str, alias: str | None = None) -> QueryBuilder:
        return self.join(table, on, JoinKind.RIGHT, alias)

    def full_join(self, table: str, on: str, alias: str | None = None) -> QueryBuilder:
        return self.join(table, on, JoinKind.FULL, alias)

    def cross_join(self, table: str, alias: str | None = None) -> QueryBuilder:
        return self.join(table, "", JoinKind.CROSS, alias)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def reset(self) -> QueryBuilder:
        """Return an empty builder for the same table and dialect."""
        return QueryBuilder(self.table, dialect=self.dialect)

    def for_dialect(self, dialect: str) -> QueryBuilder:
        """Return a copy rendering for another dialect."""
        DialectFactory.create(dialect)
        return replace(self, dialect=dialect)

    def has_conditions(self) -> bool:
        return bool(self.wheres)

    def all_args(self) -> list[Any]:
        """Return the arguments of :meth:`build_select`, in placeholder order."""
        return self.build_select().params

    @property
    def _dialect(self) -> SQLDialect:
        return DialectFactory.create(self.dialect)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def build_select(self) -> CompiledSQL:
        return StatementRenderer(self._dialect).select(self)

    def render_select(self, ctx: RenderContext) -> str:
        """Render this builder as a subquery inside an outer context."""
        return StatementRenderer(ctx.dialect).select_sql(self, ctx)

    def build_count(self, column: str = "*") -> CompiledSQL:
        return StatementRenderer(self._dialect).aggregate(self, "COUNT", column)

    def build_sum(self, column: str) -> CompiledSQL:
        return StatementRenderer(self._dialect).aggregate(self, "SUM", column)

    def build_avg(self, column: str) -> CompiledSQL:
        return StatementRenderer(self._dialect).aggregate(self, "AVG", column)

    def build_min(self, column: str) -> CompiledSQL:
        return StatementRenderer(self._dialect).aggregate(self, "MIN", column)

    def build_max(self, column: str) -> CompiledSQL:
        return StatementRenderer(self._dialect).aggregate(self, "MAX", column)

    def build_insert(self, values: Mapping[str, Any]) -> CompiledSQL:
        return StatementRenderer(self._dialect).insert(self, values)

    def build_update(self, values: Mapping[str, Any]) -> CompiledSQL:
        return StatementRenderer(self._dialect).update(self, values)

    def build_delete(self) -> CompiledSQL:
        return StatementRenderer(self._dialect).delete(self)
