"""Unit tests for ormforge.schema.converters (SQLAlchemy reflection and metadata)."""

from __future__ import annotations

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    Uuid,
    create_engine,
    text,
)
from sqlalchemy.engine import Engine

from ormforge.schema.comparator import SchemaComparator
from ormforge.schema.converters import (
    database_schema_from_sqlalchemy,
    model_schemas_from_metadata,
)
from ormforge.schema.introspection import DatabaseSchema


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_engine() -> Engine:
    """Return an in-memory SQLite engine."""
    return create_engine("sqlite:///:memory:")


def _company_schema(engine: Engine) -> None:
    """Create companies and departments (departments.company_id -> companies)."""
    with engine.begin() as conn:
        conn.execute(
            text(
                """
                CREATE TABLE companies (
                    company_id INTEGER PRIMARY KEY,
                    name       TEXT    NOT NULL,
                    country    VARCHAR(2) DEFAULT 'NL'
                )
                """
            )
        )
        conn.execute(
            text(
                """
                CREATE TABLE departments (
                    department_id INTEGER PRIMARY KEY,
                    company_id    INTEGER NOT NULL,
                    name          TEXT    NOT NULL,
                    headcount     INTEGER DEFAULT 0,
                    FOREIGN KEY (company_id) REFERENCES companies(company_id)
                )
                """
            )
        )


def _reflect(**kwargs) -> DatabaseSchema:
    engine = _make_engine()
    _company_schema(engine)
    return database_schema_from_sqlalchemy(engine, **kwargs)


def _blog_metadata() -> MetaData:
    metadata = MetaData()
    Table(
        "teams",
        metadata,
        Column("id", BigInteger, primary_key=True),
        Column("name", String(100), nullable=False),
    )
    Table(
        "users",
        metadata,
        Column("id", BigInteger, primary_key=True),
        Column("email", String(255), nullable=False),
        Column("active", Boolean, nullable=False, default=True),
        Column("bio", Text),
        Column("team_id", BigInteger, ForeignKey("teams.id", ondelete="SET NULL")),
        Column("created_at", DateTime, server_default=text("CURRENT_TIMESTAMP")),
    )
    return metadata


# ---------------------------------------------------------------------------
# database_schema_from_sqlalchemy
# ---------------------------------------------------------------------------


class TestReflection:
    def test_table_names(self) -> None:
        db = _reflect()
        assert set(db.table_names) == {"companies", "departments"}

    def test_referenced_tables_come_first(self) -> None:
        assert _reflect().table_names == ["companies", "departments"]

    def test_column_names_keep_declaration_order(self) -> None:
        table = _reflect().get_table("departments")
        assert table is not None
        assert table.column_names == ["department_id", "company_id", "name", "headcount"]

    def test_column_types_are_strings(self) -> None:
        table = _reflect().get_table("companies")
        assert table is not None
        types = {c.name: c.sql_type for c in table.columns}
        assert types["name"] == "TEXT"
        assert types["country"] == "VARCHAR(2)"

    def test_nullability(self) -> None:
        table = _reflect().get_table("departments")
        assert table is not None
        nullable = {c.name: c.nullable for c in table.columns}
        assert nullable["company_id"] is False
        assert nullable["headcount"] is True

    def test_primary_key(self) -> None:
        table = _reflect().get_table("companies")
        assert table is not None
        assert [c.name for c in table.columns if c.primary_key] == ["company_id"]

    def test_server_defaults(self) -> None:
        table = _reflect().get_table("departments")
        assert table is not None
        defaults = {c.name: c.default for c in table.columns}
        assert defaults["headcount"] == "0"
        assert defaults["name"] is None

    def test_foreign_keys(self) -> None:
        table = _reflect().get_table("departments")
        assert table is not None
        assert [fk.key for fk in table.foreign_keys] == [
            ("company_id", "companies", "company_id")
        ]

    def test_include_tables(self) -> None:
        db = _reflect(include_tables=["companies"])
        assert db.table_names == ["companies"]


# ---------------------------------------------------------------------------
# model_schemas_from_metadata
# ---------------------------------------------------------------------------


class TestModelSchemasFromMetadata:
    def test_tables_keep_declaration_order(self) -> None:
        assert list(model_schemas_from_metadata(_blog_metadata())) == ["teams", "users"]

    def test_logical_types(self) -> None:
        users = model_schemas_from_metadata(_blog_metadata())["users"]
        types = {c.name: c.sql_type for c in users.columns}
        assert types == {
            "id": "bigint",
            "email": "string",
            "active": "boolean",
            "bio": "text",
            "team_id": "bigint",
            "created_at": "timestamp",
        }

    def test_source_types(self) -> None:
        users = model_schemas_from_metadata(_blog_metadata())["users"]
        sources = {c.name: c.source_type for c in users.columns}
        assert sources["id"] == "int"
        assert sources["email"] == "str"
        assert sources["active"] == "bool"
        assert sources["created_at"] == "datetime"

    def test_numeric_and_uuid_types(self) -> None:
        metadata = MetaData()
        Table(
            "prices",
            metadata,
            Column("id", Uuid, primary_key=True),
            Column("amount", Numeric(10, 2)),
            Column("ratio", Float),
            Column("qty", Integer),
        )
        prices = model_schemas_from_metadata(metadata)["prices"]
        types = {c.name: c.sql_type for c in prices.columns}
        assert types == {"id": "uuid", "amount": "decimal", "ratio": "float64", "qty": "integer"}

    def test_primary_key_and_auto_increment(self) -> None:
        users = model_schemas_from_metadata(_blog_metadata())["users"]
        id_col = users.get_column("id")
        assert id_col is not None
        assert id_col.primary_key and id_col.auto_increment
        assert not id_col.nullable
        team_id = users.get_column("team_id")
        assert team_id is not None
        assert not team_id.auto_increment and team_id.nullable

    def test_defaults(self) -> None:
        users = model_schemas_from_metadata(_blog_metadata())["users"]
        active = users.get_column("active")
        created_at = users.get_column("created_at")
        assert active is not None and active.default is True
        assert created_at is not None and created_at.default == "CURRENT_TIMESTAMP"

    def test_foreign_keys(self) -> None:
        users = model_schemas_from_metadata(_blog_metadata())["users"]
        (fk,) = users.foreign_keys
        assert fk.key == ("team_id", "teams", "id")
        assert fk.on_delete == "SET NULL"
        assert fk.on_update is None


# ---------------------------------------------------------------------------
# Declared metadata against a database created from it
# ---------------------------------------------------------------------------


def test_created_database_matches_its_metadata() -> None:
    engine = _make_engine()
    metadata = _blog_metadata()
    metadata.create_all(engine)

    diff = SchemaComparator(
        model_schemas_from_metadata(metadata),
        database_schema_from_sqlalchemy(engine),
    ).compare()

    assert diff.is_empty
