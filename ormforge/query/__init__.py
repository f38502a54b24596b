"""Composable, immutable query builder."""
from __future__ import annotations

from ormforge.query.builder import QueryBuilder
from ormforge.query.clauses import (
    BoolOp,
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

__all__ = [
    "BoolOp",
    "CombinedClause",
    "Direction",
    "HavingClause",
    "JoinClause",
    "JoinKind",
    "OrderClause",
    "QueryBuilder",
    "RenderContext",
    "StatementRenderer",
    "SubqueryClause",
    "WhereClause",
]
