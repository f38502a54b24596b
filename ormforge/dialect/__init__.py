"""SQL dialects and the dialect registry.

Built-in dialects are registered here so that resolving ``"postgres"`` or
``"sqlite"`` works as soon as any part of the package is imported.
"""
from __future__ import annotations

from ormforge.dialect.base import CompiledSQL, SQLDialect
from ormforge.dialect.postgres import PostgresDialect
from ormforge.dialect.registry import DialectFactory
from ormforge.dialect.sqlite import SQLiteDialect

DialectFactory.register_class("postgres", PostgresDialect)
DialectFactory.register_class("sqlite", SQLiteDialect)

__all__ = [
    "CompiledSQL",
    "DialectFactory",
    "PostgresDialect",
    "SQLDialect",
    "SQLiteDialect",
]
