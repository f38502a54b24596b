"""Migration settings.

``MigrationSettings`` collects the knobs of the compare -> generate pipeline
in one place so host applications can load them from their own config
files::

    settings = MigrationSettings.from_mapping(
        {"dialect": "postgres", "name": "add_profiles", "ignored_tables": ["legacy"]}
    )
    script = ormforge.plan_migration(models, db_schema, settings)
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any

from ormforge.dialect.registry import DialectFactory
from ormforge.errors import OrmForgeError
from ormforge.schema.comparator import DEFAULT_TRACKING_TABLES


@dataclass
class MigrationSettings:
    """Configuration for :func:`ormforge.plan_migration`.

    Attributes:
        dialect: Target dialect identifier (``"postgres"`` or ``"sqlite"``).
        name: Migration name used in the header and the file name.
        output_dir: Directory the generated file path points into.
        ignored_tables: Database tables never proposed for dropping, on top
            of ``tracking_tables``.
        tracking_tables: Migration-bookkeeping tables (the table that
            records applied migrations and its peers).  Never dropped.
    """

    dialect: str = "sqlite"
    name: str = "auto_migration"
    output_dir: str = "./db/migrations"
    ignored_tables: list[str] = field(default_factory=list)
    tracking_tables: list[str] = field(
        default_factory=lambda: sorted(DEFAULT_TRACKING_TABLES)
    )

    def __post_init__(self) -> None:
        DialectFactory.create(self.dialect)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> MigrationSettings:
        """Build settings from a plain mapping (parsed TOML / YAML / JSON).

        Raises:
            OrmForgeError: If ``data`` contains an unknown key.
            UnsupportedDialectError: If ``dialect`` is not registered.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise OrmForgeError(
                f"Unknown migration setting(s): {unknown}. Valid keys: {sorted(known)}."
            )
        values = dict(data)
        for key in ("ignored_tables", "tracking_tables"):
            if key in values:
                values[key] = list(values[key])
        return cls(**values)
