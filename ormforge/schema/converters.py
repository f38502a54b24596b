"""Build schema inputs from SQLAlchemy.

Two converters feed :class:`~ormforge.schema.comparator.SchemaComparator`:

* :func:`database_schema_from_sqlalchemy` reflects a live engine into a
  :class:`~ormforge.schema.introspection.DatabaseSchema`;
* :func:`model_schemas_from_metadata` turns declared SQLAlchemy ``Table``
  definitions into the ``{table_name: ModelSchema}`` registry.

Install the optional dependency before using this module::

    pip install "ormforge[sqlalchemy]"

Example::

    from sqlalchemy import create_engine
    from ormforge.schema.converters import (
        database_schema_from_sqlalchemy,
        model_schemas_from_metadata,
    )

    engine = create_engine("sqlite:///app.db")
    db_schema = database_schema_from_sqlalchemy(engine)
    models = model_schemas_from_metadata(Base.metadata)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ormforge.schema.introspection import (
    DatabaseColumn,
    DatabaseForeignKey,
    DatabaseSchema,
    DatabaseTable,
)
from ormforge.schema.model_schema import ModelColumn, ModelForeignKey, ModelSchema

if TYPE_CHECKING:
    from sqlalchemy import Column, Engine, MetaData, Table


def database_schema_from_sqlalchemy(
    engine: Engine,
    *,
    include_tables: list[str] | None = None,
    schema: str | None = None,
) -> DatabaseSchema:
    """Build a :class:`DatabaseSchema` by reflecting a SQLAlchemy engine.

    Args:
        engine: A :class:`sqlalchemy.engine.Engine` instance.
        include_tables: Optional allowlist of table names to reflect.
            When ``None`` every table in the schema is reflected.
        schema: Optional database schema name (e.g. ``"public"``), passed
            to :meth:`sqlalchemy.schema.MetaData.reflect`.

    Returns:
        The reflected schema, tables in dependency-sorted order.

    Raises:
        ImportError: If ``sqlalchemy`` is not installed.
    """
    try:
        from sqlalchemy import MetaData as _MetaData
    except ImportError as exc:
        raise ImportError(
            "SQLAlchemy is required for database_schema_from_sqlalchemy(). "
            'Install it with: pip install "ormforge[sqlalchemy]"'
        ) from exc

    metadata = _MetaData()
    with engine.connect() as conn:
        metadata.reflect(bind=conn, only=include_tables, schema=schema)

    return DatabaseSchema.from_tables(
        [_reflected_table(table) for table in metadata.sorted_tables]
    )


def model_schemas_from_metadata(metadata: MetaData) -> dict[str, ModelSchema]:
    """Build the declared-model registry from SQLAlchemy table definitions.

    Tables keep the order they were added to ``metadata``; column types are
    translated to the logical names the dialects understand.

    Args:
        metadata: A :class:`sqlalchemy.schema.MetaData` holding declared
            tables (for example ``Base.metadata``).

    Returns:
        ``{table_name: ModelSchema}`` in declaration order.
    """
    return {
        table.name: ModelSchema(
            table_name=table.name,
            columns=[_model_column(col, table) for col in table.columns],
            foreign_keys=[
                ModelForeignKey(
                    column=fk.parent.name,
                    to_table=fk.column.table.name,
                    to_column=fk.column.name,
                    on_delete=fk.ondelete,
                    on_update=fk.onupdate,
                )
                for col in table.columns
                for fk in col.foreign_keys
            ],
        )
        for table in metadata.tables.values()
    }


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _reflected_table(table: Table) -> DatabaseTable:
    columns = [
        DatabaseColumn(
            name=col.name,
            sql_type=str(col.type),
            # Reflected nullability is True/False; treat unset as nullable.
            nullable=col.nullable is not False,
            default=_server_default(col),
            primary_key=col.primary_key,
            auto_increment=col.autoincrement is True,
        )
        for col in table.columns
    ]
    foreign_keys = [
        DatabaseForeignKey(
            column=fk.parent.name,
            to_table=fk.column.table.name,
            to_column=fk.column.name,
            name=fk.constraint.name if fk.constraint is not None else None,
            on_delete=fk.ondelete,
            on_update=fk.onupdate,
        )
        for col in table.columns
        for fk in col.foreign_keys
    ]
    return DatabaseTable(name=table.name, columns=columns, foreign_keys=foreign_keys)


def _server_default(col: Column[Any]) -> str | None:
    default = col.server_default
    if default is None:
        return None
    arg = getattr(default, "arg", None)
    if arg is None:
        return None
    return str(getattr(arg, "text", arg))


def _model_column(col: Column[Any], table: Table) -> ModelColumn:
    try:
        source_type = col.type.python_type.__name__
    except NotImplementedError:
        source_type = ""
    return ModelColumn(
        name=col.name,
        source_type=source_type,
        sql_type=_logical_type(col.type),
        nullable=bool(col.nullable),
        primary_key=col.primary_key,
        default=_column_default(col),
        auto_increment=col is table.autoincrement_column,
    )


def _column_default(col: Column[Any]) -> Any:
    default = col.default
    if default is not None and getattr(default, "is_scalar", False):
        return default.arg
    return _server_default(col)


def _logical_type(sa_type: Any) -> str:
    """Map a SQLAlchemy type instance to a dialect-neutral logical name.

    Subclasses are checked before their bases (``BigInteger`` before
    ``Integer``, ``Text`` before ``String``).  Unrecognised types fall back
    to their compiled-generic text.
    """
    from sqlalchemy import types as sa

    checks: list[tuple[type[Any], str]] = [
        (sa.SmallInteger, "smallint"),
        (sa.BigInteger, "bigint"),
        (sa.Integer, "integer"),
        (sa.Boolean, "boolean"),
        (sa.Float, "float64"),
        (sa.Numeric, "decimal"),
        (sa.DateTime, "timestamp"),
        (sa.Date, "date"),
        (sa.Time, "time"),
        (sa.JSON, "json"),
        (sa.Uuid, "uuid"),
        (sa.Text, "text"),
        (sa.String, "string"),
        (sa.LargeBinary, "binary"),
    ]
    for type_cls, logical in checks:
        if isinstance(sa_type, type_cls):
            return logical
    return str(sa_type)
