"""Statement renderers: QueryBuilder state → parameterized SQL.

``StatementRenderer`` assembles full statements from a builder's clauses.
One :class:`~ormforge.query.context.RenderContext` is created per public
render call and shared with every nested subquery, so the placeholder
sequence and the argument list are produced by a single traversal.

Render order for SELECT (and therefore argument order)::

    SELECT … FROM … JOIN … WHERE … GROUP BY … HAVING … ORDER BY … LIMIT … OFFSET
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from ormforge.dialect.base import CompiledSQL, SQLDialect
from ormforge.errors import MalformedClauseError
from ormforge.query.clauses import render_group
from ormforge.query.context import RenderContext

if TYPE_CHECKING:
    from ormforge.query.builder import QueryBuilder


class StatementRenderer:
    """Renders SELECT / aggregate / INSERT / UPDATE / DELETE statements.

    Args:
        dialect: Dialect supplying placeholders, quoting and literals.
    """

    def __init__(self, dialect: SQLDialect) -> None:
        self._dialect = dialect

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def select(self, query: QueryBuilder) -> CompiledSQL:
        ctx = RenderContext(self._dialect)
        return self._compiled(self.select_sql(query, ctx), ctx)

    def aggregate(self, query: QueryBuilder, func: str, column: str) -> CompiledSQL:
        """Render ``SELECT <func>(<column>) FROM … [WHERE …]``."""
        ctx = RenderContext(self._dialect)
        target = self._dialect.quote_column(column)
        parts = [f"SELECT {func}({target})", self._from_clause(query)]
        parts.extend(self._join_clauses(query))
        where_sql = self._where_clause(query, ctx)
        if where_sql:
            parts.append(where_sql)
        return self._compiled(" ".join(parts), ctx)

    def insert(self, query: QueryBuilder, values: Mapping[str, Any]) -> CompiledSQL:
        ctx = RenderContext(self._dialect)
        table = self._dialect.quote_column(query.table)
        if not values:
            return self._compiled(f"INSERT INTO {table} DEFAULT VALUES", ctx)
        quote = self._dialect.quote_identifier
        columns = ", ".join(quote(c) for c in values)
        placeholders = ", ".join(ctx.add_value(v) for v in values.values())
        return self._compiled(
            f"INSERT INTO {table} ({columns}) VALUES ({placeholders})", ctx
        )

    def update(self, query: QueryBuilder, values: Mapping[str, Any]) -> CompiledSQL:
        """Render UPDATE; SET values are bound before the WHERE values."""
        if not values:
            raise MalformedClauseError(
                f"UPDATE on '{query.table}' needs at least one column to set."
            )
        ctx = RenderContext(self._dialect)
        quote = self._dialect.quote_identifier
        assignments = ", ".join(f"{quote(c)} = {ctx.add_value(v)}" for c, v in values.items())
        parts = [f"UPDATE {self._dialect.quote_column(query.table)} SET {assignments}"]
        where_sql = self._where_clause(query, ctx)
        if where_sql:
            parts.append(where_sql)
        return self._compiled(" ".join(parts), ctx)

    def delete(self, query: QueryBuilder) -> CompiledSQL:
        ctx = RenderContext(self._dialect)
        parts = [f"DELETE {self._from_clause(query)}"]
        where_sql = self._where_clause(query, ctx)
        if where_sql:
            parts.append(where_sql)
        return self._compiled(" ".join(parts), ctx)

    # ------------------------------------------------------------------
    # SELECT assembly (shared with subqueries)
    # ------------------------------------------------------------------

    def select_sql(self, query: QueryBuilder, ctx: RenderContext) -> str:
        """Render a SELECT into an existing context and return the SQL text."""
        quote_column = self._dialect.quote_column
        columns = ", ".join(quote_column(c) for c in query.selects) if query.selects else "*"
        prefix = "SELECT DISTINCT" if query.is_distinct else "SELECT"
        parts = [f"{prefix} {columns}", self._from_clause(query)]
        parts.extend(self._join_clauses(query))

        where_sql = self._where_clause(query, ctx)
        if where_sql:
            parts.append(where_sql)

        if query.groups:
            parts.append(f"GROUP BY {', '.join(quote_column(g) for g in query.groups)}")

        if query.havings:
            having_sql = " AND ".join(h.render(ctx) for h in query.havings)
            parts.append(f"HAVING {having_sql}")

        if query.orders:
            parts.append(f"ORDER BY {', '.join(o.render(self._dialect) for o in query.orders)}")

        if query.limit_value is not None:
            parts.append(f"LIMIT {query.limit_value}")

        if query.offset_value is not None:
            parts.append(f"OFFSET {query.offset_value}")

        return " ".join(parts)

    # ------------------------------------------------------------------
    # Clause helpers
    # ------------------------------------------------------------------

    def _from_clause(self, query: QueryBuilder) -> str:
        return f"FROM {self._dialect.quote_column(query.table)}"

    def _join_clauses(self, query: QueryBuilder) -> list[str]:
        return [j.render(self._dialect) for j in query.joins]

    def _where_clause(self, query: QueryBuilder, ctx: RenderContext) -> str:
        if not query.wheres:
            return ""
        return f"WHERE {render_group(query.wheres, ctx)}"

    def _compiled(self, sql: str, ctx: RenderContext) -> CompiledSQL:
        return CompiledSQL(sql=sql, params=ctx.params, dialect=self._dialect.dialect_name)
