"""Shared pytest fixtures for ormforge unit and integration tests."""
from __future__ import annotations

import pytest

from ormforge.dialect import DialectFactory, SQLDialect
from ormforge.schema.introspection import (
    DatabaseColumn,
    DatabaseSchema,
    DatabaseTable,
)
from ormforge.schema.model_schema import ModelSchema
from tests.fixtures import load_model_schemas


@pytest.fixture(scope="session")
def models() -> dict[str, ModelSchema]:
    """Blog model schemas (users, teams, posts, comments) in declaration order."""
    return load_model_schemas()


@pytest.fixture(scope="session")
def empty_db() -> DatabaseSchema:
    return DatabaseSchema()


@pytest.fixture(scope="session")
def legacy_db() -> DatabaseSchema:
    """Database mirroring tests/fixtures/ddl_sqlite.sql."""
    return DatabaseSchema.from_tables(
        [
            DatabaseTable(
                name="schema_migrations",
                columns=[DatabaseColumn(name="version", sql_type="TEXT", nullable=False, primary_key=True)],
            ),
            DatabaseTable(
                name="users",
                columns=[
                    DatabaseColumn(name="id", sql_type="INTEGER", nullable=False, primary_key=True, auto_increment=True),
                    DatabaseColumn(name="email", sql_type="TEXT", nullable=False),
                    DatabaseColumn(name="name", sql_type="TEXT", nullable=False),
                    DatabaseColumn(name="nickname", sql_type="TEXT"),
                ],
            ),
            DatabaseTable(
                name="legacy_events",
                columns=[
                    DatabaseColumn(name="id", sql_type="INTEGER", nullable=False, primary_key=True),
                    DatabaseColumn(name="payload", sql_type="TEXT"),
                ],
            ),
        ]
    )


@pytest.fixture(scope="session")
def postgres() -> SQLDialect:
    return DialectFactory.create("postgres")


@pytest.fixture(scope="session")
def sqlite() -> SQLDialect:
    return DialectFactory.create("sqlite")
