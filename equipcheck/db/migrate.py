"""Idempotent index upkeep for SQLite installations.

``create_all`` only creates missing tables, so a table that already exists
(restored from a backup, or created by hand) keeps whatever indexes it came
with. The indexes below carry the barcode uniqueness and the lookups the
registry and the conference engine rely on.
"""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import text
from sqlalchemy.engine import Engine

LOGGER = logging.getLogger(__name__)

# (table, index name, columns, unique)
INDEXES: tuple[tuple[str, str, tuple[str, ...], bool], ...] = (
    ("equipments", "ix_equipments_barcode", ("barcode",), True),
    ("equipments", "ix_equipments_sector_id", ("sector_id",), False),
    ("conferences", "ix_conferences_equipment_id", ("equipment_id",), False),
)


def _index_names(engine: Engine, table: str) -> set[str]:
    with engine.connect() as conn:
        rows = conn.execute(text(f"PRAGMA index_list({table})")).mappings().all()
    return {row["name"] for row in rows}


def _table_exists(engine: Engine, table: str) -> bool:
    with engine.connect() as conn:
        row = conn.execute(
            text("SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = :name"),
            {"name": table},
        ).first()
    return row is not None


def _create_index(engine: Engine, table: str, name: str, cols: Iterable[str], unique: bool = False) -> None:
    cols_sql = ", ".join(cols)
    unique_sql = "UNIQUE " if unique else ""
    with engine.begin() as conn:
        conn.execute(text(f"CREATE {unique_sql}INDEX IF NOT EXISTS {name} ON {table} ({cols_sql})"))


def run_migrations(engine: Engine) -> list[str]:
    """Create any missing index; return the names created."""

    if engine.dialect.name != "sqlite":
        return []

    created = []
    for table, name, cols, unique in INDEXES:
        if not _table_exists(engine, table) or name in _index_names(engine, table):
            continue
        _create_index(engine, table, name, cols, unique)
        created.append(name)

    if created:
        LOGGER.info("schema.indexes_created", extra={"extra_data": {"indexes": created}})
    return created
