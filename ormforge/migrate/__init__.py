"""Migration planning and SQL generation."""
from __future__ import annotations

from ormforge.migrate.generator import MigrationGenerator, MigrationScript
from ormforge.migrate.planner import CreationPlan, CreationPlanner, DeferredForeignKey

__all__ = [
    "CreationPlan",
    "CreationPlanner",
    "DeferredForeignKey",
    "MigrationGenerator",
    "MigrationScript",
]
