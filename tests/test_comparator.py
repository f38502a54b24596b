"""Unit tests for SchemaComparator."""

from __future__ import annotations

import pytest

from ormforge.errors import SchemaError, UnsupportedDialectError
from ormforge.schema.comparator import SchemaComparator
from ormforge.schema.diff import ChangeType, SchemaChange
from ormforge.schema.introspection import (
    DatabaseColumn,
    DatabaseForeignKey,
    DatabaseSchema,
    DatabaseTable,
)
from ormforge.schema.model_schema import ModelColumn, ModelForeignKey, ModelSchema


def _summary(changes: list[SchemaChange]) -> list[tuple[ChangeType, str, str | None]]:
    return [(c.type, c.table, c.column) for c in changes]


def _table(name: str, *columns: str, fks: list[DatabaseForeignKey] | None = None) -> DatabaseTable:
    return DatabaseTable(
        name=name,
        columns=[DatabaseColumn(name=c, sql_type="INTEGER") for c in columns],
        foreign_keys=fks or [],
    )


def _model(name: str, *columns: str, fks: list[ModelForeignKey] | None = None) -> ModelSchema:
    return ModelSchema(
        table_name=name,
        columns=[ModelColumn(name=c, sql_type="bigint") for c in columns],
        foreign_keys=fks or [],
    )


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------


def test_empty_database_creates_every_model_in_order(models, empty_db):
    diff = SchemaComparator(models, empty_db).compare()
    assert _summary(diff.changes) == [
        (ChangeType.CREATE_TABLE, "users", None),
        (ChangeType.CREATE_TABLE, "teams", None),
        (ChangeType.CREATE_TABLE, "posts", None),
        (ChangeType.CREATE_TABLE, "comments", None),
    ]
    assert diff.warnings == []
    assert not diff.has_destructive_changes


def test_create_table_changes_carry_no_details(models, empty_db):
    diff = SchemaComparator(models, empty_db).compare()
    assert all(c.details == {} for c in diff.changes)


def test_fixed_change_order_against_legacy_database(models, legacy_db):
    diff = SchemaComparator(models, legacy_db).compare()
    assert _summary(diff.changes) == [
        (ChangeType.CREATE_TABLE, "teams", None),
        (ChangeType.CREATE_TABLE, "posts", None),
        (ChangeType.CREATE_TABLE, "comments", None),
        (ChangeType.DROP_TABLE, "legacy_events", None),
        (ChangeType.ADD_COLUMN, "users", "active"),
        (ChangeType.ADD_COLUMN, "users", "team_id"),
        (ChangeType.REMOVE_COLUMN, "users", "nickname"),
        (ChangeType.ADD_FOREIGN_KEY, "users", "team_id"),
    ]


def test_change_details(models, legacy_db):
    diff = SchemaComparator(models, legacy_db).compare()
    active, team_id = diff.of_type(ChangeType.ADD_COLUMN)
    assert active.details == {"type": "boolean", "nullable": "false"}
    assert team_id.details == {"type": "bigint", "nullable": "true"}
    (fk,) = diff.of_type(ChangeType.ADD_FOREIGN_KEY)
    assert fk.details == {"to_table": "teams", "to_column": "id"}


def test_destructive_changes_carry_warnings(models, legacy_db):
    diff = SchemaComparator(models, legacy_db).compare()
    assert diff.has_destructive_changes
    (drop,) = diff.of_type(ChangeType.DROP_TABLE)
    (remove,) = diff.of_type(ChangeType.REMOVE_COLUMN)
    assert drop.destructive and drop.warning
    assert remove.destructive and remove.warning
    assert len(diff.warnings) == 2
    assert "legacy_events" in diff.warnings[0]


def test_identical_schemas_produce_empty_diff():
    models = {"users": _model("users", "id", "name")}
    db = DatabaseSchema.from_tables([_table("users", "id", "name")])
    diff = SchemaComparator(models, db).compare()
    assert diff.is_empty
    assert diff.changes == []


# ---------------------------------------------------------------------------
# Drop-table exclusions
# ---------------------------------------------------------------------------


def test_bookkeeping_and_internal_tables_are_never_dropped():
    db = DatabaseSchema.from_tables(
        [
            _table("schema_migrations", "version"),
            _table("alembic_version", "version_num"),
            _table("sqlite_sequence", "name", "seq"),
        ]
    )
    assert SchemaComparator({}, db).compare().is_empty


def test_ignored_tables_are_not_dropped():
    db = DatabaseSchema.from_tables([_table("audit_log", "id"), _table("old", "id")])
    diff = SchemaComparator({}, db, ignored_tables=["audit_log"]).compare()
    assert _summary(diff.changes) == [(ChangeType.DROP_TABLE, "old", None)]


def test_tracking_tables_can_be_overridden():
    db = DatabaseSchema.from_tables([_table("schema_migrations", "version"), _table("migrations", "id")])
    diff = SchemaComparator({}, db, tracking_tables=["migrations"]).compare()
    assert _summary(diff.changes) == [(ChangeType.DROP_TABLE, "schema_migrations", None)]


# ---------------------------------------------------------------------------
# Foreign keys
# ---------------------------------------------------------------------------


def test_existing_foreign_key_is_not_re_added():
    fk = ModelForeignKey(column="user_id", to_table="users", to_column="id")
    models = {"users": _model("users", "id"), "posts": _model("posts", "id", "user_id", fks=[fk])}
    db = DatabaseSchema.from_tables(
        [
            _table("users", "id"),
            _table(
                "posts",
                "id",
                "user_id",
                fks=[DatabaseForeignKey(column="user_id", to_table="users", to_column="id")],
            ),
        ]
    )
    assert SchemaComparator(models, db).compare().is_empty


def test_foreign_key_with_different_target_column_is_added():
    fk = ModelForeignKey(column="user_id", to_table="users", to_column="uuid")
    models = {"users": _model("users", "id", "uuid"), "posts": _model("posts", "id", "user_id", fks=[fk])}
    db = DatabaseSchema.from_tables(
        [
            _table("users", "id", "uuid"),
            _table(
                "posts",
                "id",
                "user_id",
                fks=[DatabaseForeignKey(column="user_id", to_table="users", to_column="id")],
            ),
        ]
    )
    diff = SchemaComparator(models, db).compare()
    assert _summary(diff.changes) == [
        (ChangeType.ADD_FOREIGN_KEY, "posts", "user_id"),
        (ChangeType.REMOVE_FOREIGN_KEY, "posts", "user_id"),
    ]
    added, removed = diff.changes
    assert added.details == {"to_table": "users", "to_column": "uuid"}
    assert removed.details == {"to_table": "users", "to_column": "id"}


def test_foreign_keys_of_new_tables_are_not_emitted_separately(models, empty_db):
    diff = SchemaComparator(models, empty_db).compare()
    assert diff.of_type(ChangeType.ADD_FOREIGN_KEY) == []


def test_foreign_key_may_reference_existing_unmodelled_table():
    fk = ModelForeignKey(column="account_id", to_table="accounts", to_column="id")
    models = {"users": _model("users", "id", "account_id", fks=[fk])}
    db = DatabaseSchema.from_tables([_table("accounts", "id")])
    diff = SchemaComparator(models, db, ignored_tables=["accounts"]).compare()
    assert _summary(diff.changes) == [(ChangeType.CREATE_TABLE, "users", None)]


# ---------------------------------------------------------------------------
# Invalid input
# ---------------------------------------------------------------------------


def test_foreign_key_to_unknown_table_raises(empty_db):
    fk = ModelForeignKey(column="org_id", to_table="orgs", to_column="id")
    models = {"users": _model("users", "id", "org_id", fks=[fk])}
    with pytest.raises(SchemaError) as exc_info:
        SchemaComparator(models, empty_db).compare()
    assert exc_info.value.details["to_table"] == "orgs"


def test_foreign_key_to_table_that_would_be_dropped_raises():
    fk = ModelForeignKey(column="account_id", to_table="accounts", to_column="id")
    models = {"users": _model("users", "id", "account_id", fks=[fk])}
    db = DatabaseSchema.from_tables([_table("accounts", "id")])
    with pytest.raises(SchemaError) as exc_info:
        SchemaComparator(models, db).compare()
    assert exc_info.value.details == {
        "table": "users",
        "column": "account_id",
        "to_table": "accounts",
    }


def test_foreign_key_on_undeclared_column_raises(empty_db):
    fk = ModelForeignKey(column="owner_id", to_table="users", to_column="id")
    models = {"users": _model("users", "id", fks=[fk])}
    with pytest.raises(SchemaError):
        SchemaComparator(models, empty_db).compare()


def test_registry_key_must_match_table_name(empty_db):
    with pytest.raises(SchemaError):
        SchemaComparator({"people": _model("users", "id")}, empty_db).compare()


def test_unknown_dialect_raises(empty_db):
    with pytest.raises(UnsupportedDialectError):
        SchemaComparator({}, empty_db, dialect="oracle")


def test_diff_records_dialect(models, empty_db):
    assert SchemaComparator(models, empty_db).compare().dialect == "sqlite"
    assert SchemaComparator(models, empty_db, dialect="postgres").compare().dialect == "postgres"


# ---------------------------------------------------------------------------
# Column type and nullability changes
# ---------------------------------------------------------------------------


def _typed_db(*columns: DatabaseColumn) -> DatabaseSchema:
    return DatabaseSchema.from_tables([DatabaseTable(name="users", columns=list(columns))])


def _typed_model(*columns: ModelColumn) -> dict[str, ModelSchema]:
    return {"users": ModelSchema(table_name="users", columns=list(columns))}


def test_type_change_is_detected_and_destructive():
    models = _typed_model(ModelColumn(name="age", sql_type="integer"))
    db = _typed_db(DatabaseColumn(name="age", sql_type="TEXT"))
    diff = SchemaComparator(models, db, dialect="postgres").compare()
    (change,) = diff.changes
    assert change.type is ChangeType.CHANGE_COLUMN_TYPE
    assert change.column == "age"
    assert change.details == {"from": "TEXT", "to": "integer"}
    assert change.destructive and change.warning
    assert diff.has_destructive_changes
    assert diff.warnings == [
        "Column 'users.age' changes type from TEXT to integer. Existing values may not convert."
    ]


@pytest.mark.parametrize(
    "dialect, declared, reported",
    [
        ("postgres", "bigint", "INTEGER"),
        ("postgres", "string", "VARCHAR(255)"),
        ("postgres", "string", "character varying"),
        ("postgres", "timestamp", "TIMESTAMP WITHOUT TIME ZONE"),
        ("postgres", "float64", "DOUBLE PRECISION"),
        ("postgres", "jsonb", "JSONB"),
        ("sqlite", "uuid", "CHAR(36)"),
        ("sqlite", "json", "JSON"),
        ("sqlite", "boolean", "BOOLEAN"),
        ("sqlite", "VARCHAR(100)", "VARCHAR(100)"),
    ],
)
def test_type_spellings_of_one_family_match(dialect, declared, reported):
    models = _typed_model(ModelColumn(name="value", sql_type=declared))
    db = _typed_db(DatabaseColumn(name="value", sql_type=reported))
    assert SchemaComparator(models, db, dialect=dialect).compare().is_empty


def test_unreported_type_is_not_compared():
    models = _typed_model(ModelColumn(name="value", sql_type="uuid"))
    db = _typed_db(DatabaseColumn(name="value"))
    assert SchemaComparator(models, db).compare().is_empty


def test_nullability_change_in_both_directions():
    models = _typed_model(
        ModelColumn(name="email", sql_type="string", nullable=False),
        ModelColumn(name="bio", sql_type="text"),
    )
    db = _typed_db(
        DatabaseColumn(name="email", sql_type="TEXT"),
        DatabaseColumn(name="bio", sql_type="TEXT", nullable=False),
    )
    diff = SchemaComparator(models, db).compare()
    assert _summary(diff.changes) == [
        (ChangeType.CHANGE_COLUMN_NULLABLE, "users", "email"),
        (ChangeType.CHANGE_COLUMN_NULLABLE, "users", "bio"),
    ]
    email, bio = diff.changes
    assert email.details == {"from": "true", "to": "false"}
    assert bio.details == {"from": "false", "to": "true"}
    assert not diff.has_destructive_changes
    assert diff.warnings == []


def test_primary_keys_count_as_not_null():
    models = _typed_model(ModelColumn(name="id", sql_type="bigint", primary_key=True))
    db = _typed_db(DatabaseColumn(name="id", sql_type="INTEGER", nullable=True, primary_key=True))
    assert SchemaComparator(models, db).compare().is_empty


def test_type_change_precedes_nullability_change():
    models = _typed_model(ModelColumn(name="age", sql_type="integer", nullable=False))
    db = _typed_db(DatabaseColumn(name="age", sql_type="TEXT"))
    diff = SchemaComparator(models, db).compare()
    assert [c.type for c in diff.changes] == [
        ChangeType.CHANGE_COLUMN_TYPE,
        ChangeType.CHANGE_COLUMN_NULLABLE,
    ]


# ---------------------------------------------------------------------------
# Removed foreign keys
# ---------------------------------------------------------------------------


def test_foreign_key_missing_from_model_is_removed():
    models = {"users": _model("users", "id"), "posts": _model("posts", "id", "user_id")}
    db_fk = DatabaseForeignKey(
        column="user_id",
        to_table="users",
        to_column="id",
        name="posts_user_id_fkey",
        on_delete="CASCADE",
    )
    db = DatabaseSchema.from_tables(
        [_table("users", "id"), _table("posts", "id", "user_id", fks=[db_fk])]
    )
    diff = SchemaComparator(models, db).compare()
    (change,) = diff.changes
    assert change.type is ChangeType.REMOVE_FOREIGN_KEY
    assert (change.table, change.column) == ("posts", "user_id")
    assert change.details == {
        "to_table": "users",
        "to_column": "id",
        "constraint": "posts_user_id_fkey",
        "on_delete": "CASCADE",
    }
    assert not change.destructive


def test_foreign_key_of_removed_column_is_not_removed_separately():
    models = {"users": _model("users", "id"), "posts": _model("posts", "id")}
    db_fk = DatabaseForeignKey(column="user_id", to_table="users", to_column="id")
    db = DatabaseSchema.from_tables(
        [_table("users", "id"), _table("posts", "id", "user_id", fks=[db_fk])]
    )
    diff = SchemaComparator(models, db).compare()
    assert _summary(diff.changes) == [(ChangeType.REMOVE_COLUMN, "posts", "user_id")]


def test_full_per_table_order():
    fk = ModelForeignKey(column="team_id", to_table="teams", to_column="id")
    models = {
        "teams": _model("teams", "id"),
        "users": ModelSchema(
            table_name="users",
            columns=[
                ModelColumn(name="id", sql_type="bigint"),
                ModelColumn(name="email", sql_type="string", nullable=False),
                ModelColumn(name="team_id", sql_type="bigint"),
                ModelColumn(name="org_id", sql_type="bigint"),
            ],
            foreign_keys=[fk],
        ),
    }
    db = DatabaseSchema.from_tables(
        [
            _table("teams", "id"),
            _table("orgs", "id"),
            DatabaseTable(
                name="users",
                columns=[
                    DatabaseColumn(name="id", sql_type="INTEGER"),
                    DatabaseColumn(name="email", sql_type="INTEGER"),
                    DatabaseColumn(name="org_id", sql_type="INTEGER"),
                    DatabaseColumn(name="nickname", sql_type="TEXT"),
                ],
                foreign_keys=[DatabaseForeignKey(column="org_id", to_table="orgs", to_column="id")],
            ),
        ]
    )
    diff = SchemaComparator(models, db, ignored_tables=["orgs"]).compare()
    assert _summary(diff.changes) == [
        (ChangeType.ADD_COLUMN, "users", "team_id"),
        (ChangeType.REMOVE_COLUMN, "users", "nickname"),
        (ChangeType.ADD_FOREIGN_KEY, "users", "team_id"),
        (ChangeType.CHANGE_COLUMN_TYPE, "users", "email"),
        (ChangeType.CHANGE_COLUMN_NULLABLE, "users", "email"),
        (ChangeType.REMOVE_FOREIGN_KEY, "users", "org_id"),
    ]
