"""Clause primitives for the query builder.

Each class renders exactly one SQL fragment.  WHERE-side clauses render into
a shared :class:`~ormforge.query.context.RenderContext` so their bound values
land in the flat argument list in the same order their placeholders appear.

Classes
-------
WhereClause     : raw fragment with ``?`` markers plus bound values
HavingClause    : same shape, rendered after GROUP BY
SubqueryClause  : ``"col" [NOT] IN (<subquery>)``
CombinedClause  : ``(<left group> AND|OR <right group>)``
OrderClause     : ``"col" ASC|DESC``
JoinClause      : ``<kind> JOIN "table" [AS "alias"] [ON …]``

A *clause group* is a tuple of items, each a leaf (``WhereClause`` /
``SubqueryClause``) or a ``CombinedClause``; items of a group are AND-ed.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Union

from ormforge.dialect.base import SQLDialect
from ormforge.errors import MalformedClauseError
from ormforge.query.context import RenderContext, count_markers

if TYPE_CHECKING:
    from ormforge.query.builder import QueryBuilder


class Direction(str, Enum):
    """ORDER BY direction."""

    ASC = "ASC"
    DESC = "DESC"


class JoinKind(str, Enum):
    """JOIN kinds; the value is the SQL keyword preceding ``JOIN``."""

    INNER = "INNER"
    LEFT = "LEFT"
    RIGHT = "RIGHT"
    FULL = "FULL OUTER"
    CROSS = "CROSS"


class BoolOp(str, Enum):
    """Operator joining the two groups of a :class:`CombinedClause`."""

    AND = "AND"
    OR = "OR"


@dataclass(frozen=True)
class WhereClause:
    """A raw SQL fragment and the values for its ``?`` markers.

    Attributes:
        fragment: SQL text such as ``"age > ?"``.
        bound_values: One value per marker, in marker order.

    Raises:
        MalformedClauseError: If the marker count differs from the number
            of values.
    """

    fragment: str
    bound_values: tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "bound_values", tuple(self.bound_values))
        expected = count_markers(self.fragment)
        if expected != len(self.bound_values):
            raise MalformedClauseError(
                f"Clause {self.fragment!r} has {expected} placeholder(s) but "
                f"{len(self.bound_values)} value(s) were supplied.",
                fragment=self.fragment,
                expected=expected,
                received=len(self.bound_values),
            )

    def render(self, ctx: RenderContext) -> str:
        return ctx.bind(self.fragment, self.bound_values)


class HavingClause(WhereClause):
    """A HAVING fragment; identical to :class:`WhereClause` in shape."""


@dataclass(frozen=True)
class SubqueryClause:
    """``column IN (<subquery SELECT>)``.

    The subquery renders into the outer context, so its arguments follow
    whatever the outer statement bound before it.
    """

    column: str
    subquery: QueryBuilder
    negate: bool = False

    def render(self, ctx: RenderContext) -> str:
        keyword = "NOT IN" if self.negate else "IN"
        sub_sql = self.subquery.render_select(ctx)
        return f"{ctx.dialect.quote_column(self.column)} {keyword} ({sub_sql})"


@dataclass(frozen=True)
class CombinedClause:
    """Boolean node joining two independently built clause groups."""

    op: BoolOp
    left: ClauseGroup
    right: ClauseGroup

    def render(self, ctx: RenderContext) -> str:
        left_sql = render_group(self.left, ctx, nested=True)
        right_sql = render_group(self.right, ctx, nested=True)
        return f"({left_sql} {self.op.value} {right_sql})"


ClauseItem = Union[WhereClause, SubqueryClause, CombinedClause]
ClauseGroup = tuple[ClauseItem, ...]


def render_group(group: ClauseGroup, ctx: RenderContext, nested: bool = False) -> str:
    """Render a clause group, AND-ing its items in insertion order.

    A nested group (one side of a :class:`CombinedClause`) is parenthesised
    unless it is a single item: a lone leaf needs no grouping and a lone
    combined node already carries its own parentheses.
    """
    if nested and len(group) == 1:
        return group[0].render(ctx)
    sql = " AND ".join(item.render(ctx) for item in group)
    return f"({sql})" if nested else sql


@dataclass(frozen=True)
class OrderClause:
    """A single ORDER BY column."""

    column: str
    direction: Direction = Direction.ASC

    def render(self, dialect: SQLDialect) -> str:
        return f"{dialect.quote_column(self.column)} {self.direction.value}"


@dataclass(frozen=True)
class JoinClause:
    """A single JOIN; ``on`` is raw SQL and is ignored for CROSS joins."""

    table: str
    on: str = ""
    kind: JoinKind = JoinKind.INNER
    alias: str | None = None

    def render(self, dialect: SQLDialect) -> str:
        table_sql = dialect.quote_identifier(self.table)
        if self.alias:
            table_sql = f"{table_sql} AS {dialect.quote_identifier(self.alias)}"
        if self.kind is JoinKind.CROSS:
            return f"CROSS JOIN {table_sql}"
        return f"{self.kind.value} JOIN {table_sql} ON {self.on}"
