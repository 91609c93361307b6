from __future__ import annotations

import json
from typing import Any

import pandas as pd
from sqlalchemy import inspect
from sqlalchemy.engine import Connection

EVENTS_TABLE = "events"
OFFERS_TABLE = "offers"
EVENTS_CLEANED_TABLE = "events_cleaned"

_TABLE_HINTS: dict[str, str] = {
    EVENTS_TABLE: "python -m src.etl.02_load_sources",
    OFFERS_TABLE: "python -m src.etl.02_load_sources",
    EVENTS_CLEANED_TABLE: "python -m src.etl.03_build_cleaned",
}


def _json_dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def _to_sql_cell(value: Any) -> Any:
    if isinstance(value, (dict, list)):
        return _json_dumps(value)
    return value


def sql_safe_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Nested dict/list cells (from JSON sources) are stored as JSON text."""
    out = df.copy()
    for col in out.columns:
        if out[col].dtype == object:
            out[col] = out[col].map(_to_sql_cell)
    return out


def table_exists(conn: Connection, table: str) -> bool:
    return inspect(conn).has_table(table)


def replace_table(
    conn: Connection, df: pd.DataFrame, table: str, chunk_size: int = 4000
) -> int:
    sql_safe_frame(df).to_sql(
        table, con=conn, if_exists="replace", index=False, chunksize=chunk_size
    )
    return int(len(df))


def read_table(conn: Connection, table: str) -> pd.DataFrame:
    if not table_exists(conn, table):
        hint = _TABLE_HINTS.get(table)
        suffix = f" Run: {hint}" if hint else ""
        raise RuntimeError(f"{table} not found.{suffix}")
    return pd.read_sql_table(table, conn)
