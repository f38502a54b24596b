"""Test fixtures: sample model schemas and live-database DDL."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Literal

from ormforge.schema.model_schema import ModelSchema

_FIXTURES_DIR = Path(__file__).parent


def load_model_schemas() -> dict[str, ModelSchema]:
    """Load the blog model schemas from blog_models.json, in file order.

    ``users`` and ``teams`` reference each other; ``posts`` and ``comments``
    hang off ``users``.
    """
    data = json.loads((_FIXTURES_DIR / "blog_models.json").read_text())
    schemas = [ModelSchema.model_validate(item) for item in data]
    return {s.table_name: s for s in schemas}


def load_ddl(target: Literal["sqlite", "postgres"] = "sqlite") -> str:
    """Return the DDL describing the pre-existing database for ``target``."""
    return (_FIXTURES_DIR / f"ddl_{target}.sql").read_text()
