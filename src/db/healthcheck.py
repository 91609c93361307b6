from __future__ import annotations

from sqlalchemy import func, inspect, select, table, text
from sqlalchemy.engine import Engine

from src.db.writers import EVENTS_CLEANED_TABLE, EVENTS_TABLE, OFFERS_TABLE
from src.etl._ops import RUNS_TABLE

WAREHOUSE_TABLES: tuple[str, ...] = (RUNS_TABLE, EVENTS_TABLE, OFFERS_TABLE, EVENTS_CLEANED_TABLE)


def run_healthcheck(engine: Engine) -> dict:
    with engine.connect() as conn:
        row = conn.execute(text("SELECT 1 AS ok, CURRENT_TIMESTAMP AS now;")).mappings().one()
        return {**dict(row), "backend": engine.dialect.name}


def warehouse_table_counts(engine: Engine) -> dict[str, int | None]:
    """Row count per pipeline table; None when the step that builds it has not run."""
    counts: dict[str, int | None] = {}
    with engine.connect() as conn:
        present = set(inspect(conn).get_table_names())
        for name in WAREHOUSE_TABLES:
            if name not in present:
                counts[name] = None
                continue
            counts[name] = int(conn.execute(select(func.count()).select_from(table(name))).scalar_one())
    return counts
