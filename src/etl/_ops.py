from __future__ import annotations

from dataclasses import dataclass
from uuid import uuid4

from sqlalchemy import inspect, text
from sqlalchemy.engine import Connection

from src.utils.time import db_timestamp, db_timestamp_minutes_ago

RUNS_TABLE = "etl_runs"
MAX_ERROR_MESSAGE = 3800

CREATE_RUNS_TABLE = f"""
    CREATE TABLE IF NOT EXISTS {RUNS_TABLE}(
        run_id varchar(32) NOT NULL PRIMARY KEY,
        run_type varchar(200) NOT NULL,
        started_at varchar(32) NOT NULL,
        finished_at varchar(32) NULL,
        status varchar(20) NOT NULL,
        rows_inserted integer NOT NULL DEFAULT 0,
        error_message text NULL
    );
"""

CREATE_RUNS_INDEX = f"""
    CREATE INDEX IF NOT EXISTS ix_{RUNS_TABLE}_run_type_started_at
        ON {RUNS_TABLE} (run_type, started_at);
"""


@dataclass(frozen=True)
class EtlRun:
    run_id: str
    run_type: str


def _truncate(message: str | None) -> str | None:
    if message is not None and len(message) > MAX_ERROR_MESSAGE:
        return message[:MAX_ERROR_MESSAGE] + "..."
    return message


def ensure_ops_tables(conn: Connection) -> None:
    conn.execute(text(CREATE_RUNS_TABLE))
    conn.execute(text(CREATE_RUNS_INDEX))


def assert_ops_ready(conn: Connection) -> None:
    if not inspect(conn).has_table(RUNS_TABLE):
        raise RuntimeError(
            f"{RUNS_TABLE} not found. Run: python -m src.etl.01_create_warehouse"
        )


def start_run(conn: Connection, run_type: str) -> EtlRun:
    assert_ops_ready(conn)
    run = EtlRun(run_id=uuid4().hex, run_type=str(run_type)[:200])
    conn.execute(
        text(f"""
            INSERT INTO {RUNS_TABLE} (run_id, run_type, started_at, status, rows_inserted)
            VALUES (:run_id, :run_type, :started_at, 'running', 0);
            """),
        {"run_id": run.run_id, "run_type": run.run_type, "started_at": db_timestamp()},
    )
    return run


def finish_run(
    conn: Connection,
    run: EtlRun,
    rows_inserted: int = 0,
    status: str = "success",
    error_message: str | None = None,
) -> None:
    conn.execute(
        text(f"""
            UPDATE {RUNS_TABLE}
            SET finished_at = :finished_at,
                status = :status,
                rows_inserted = :rows_inserted,
                error_message = :error_message
            WHERE run_id = :run_id
              AND finished_at IS NULL;
            """),
        {
            "run_id": run.run_id,
            "finished_at": db_timestamp(),
            "status": str(status)[:20],
            "rows_inserted": int(rows_inserted),
            "error_message": _truncate(error_message),
        },
    )


def fail_run(conn: Connection, run: EtlRun, error_message: str) -> None:
    finish_run(conn, run, rows_inserted=0, status="failed", error_message=error_message)


def fail_stale_running_runs(conn: Connection, older_than_minutes: int = 10) -> int:
    params: dict[str, object] = {
        "finished_at": db_timestamp(),
        "error_message": f"Auto-failed stale running run (older than {int(older_than_minutes)} minutes).",
        "cutoff": db_timestamp_minutes_ago(older_than_minutes),
    }
    res = conn.execute(
        text(f"""
            UPDATE {RUNS_TABLE}
            SET finished_at = :finished_at,
                status = 'failed',
                error_message = :error_message
            WHERE status = 'running'
              AND finished_at IS NULL
              AND started_at < :cutoff;
            """),
        params,
    )
    return int(getattr(res, "rowcount", 0) or 0)


def latest_run(conn: Connection, run_type: str) -> dict[str, object] | None:
    row = conn.execute(
        text(f"""
            SELECT run_id, run_type, status, rows_inserted, started_at, finished_at, error_message
            FROM {RUNS_TABLE}
            WHERE run_type = :run_type
            ORDER BY started_at DESC
            LIMIT 1;
            """),
        {"run_type": run_type},
    ).mappings().first()
    return None if row is None else dict(row)


def recent_runs(conn: Connection, limit: int = 10) -> list[dict[str, object]]:
    rows = conn.execute(
        text(f"""
            SELECT run_id, run_type, started_at, finished_at, status, rows_inserted, error_message
            FROM {RUNS_TABLE}
            ORDER BY COALESCE(finished_at, started_at) DESC
            LIMIT :limit;
            """),
        {"limit": int(limit)},
    ).mappings()
    return [dict(r) for r in rows]
