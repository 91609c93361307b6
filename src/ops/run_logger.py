from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from loguru import logger
from sqlalchemy.engine import Engine

from src.etl import _ops
from src.etl._ops import EtlRun


@dataclass
class RunStats:
    run: EtlRun
    rows_inserted: int = 0


def fail_stale_running_runs(engine: Engine, older_than_minutes: int = 10) -> int:
    with engine.begin() as conn:
        _ops.ensure_ops_tables(conn)
        return _ops.fail_stale_running_runs(conn, older_than_minutes=older_than_minutes)


def start_run(engine: Engine, run_type: str) -> EtlRun:
    with engine.begin() as conn:
        _ops.ensure_ops_tables(conn)
        return _ops.start_run(conn, run_type)


def finish_run(
    engine: Engine,
    run: EtlRun,
    status: str,
    rows_inserted: int = 0,
    error_message: str | None = None,
) -> None:
    with engine.begin() as conn:
        _ops.finish_run(
            conn, run, rows_inserted=rows_inserted, status=status, error_message=error_message
        )


def latest_run(engine: Engine, run_type: str) -> dict[str, object] | None:
    with engine.connect() as conn:
        return _ops.latest_run(conn, run_type)


@contextmanager
def tracked_run(engine: Engine, run_type: str) -> Iterator[RunStats]:
    """Record a step in etl_runs; failures are written in their own transaction, then re-raised."""
    stats = RunStats(run=start_run(engine, run_type))
    try:
        yield stats
    except BaseException as exc:
        try:
            with engine.begin() as conn:
                _ops.fail_run(conn, stats.run, str(exc) or type(exc).__name__)
        except Exception as finish_exc:
            logger.warning("failed to finalize etl_runs for run_id={}: {}", stats.run.run_id, finish_exc)
        raise
    finish_run(engine, stats.run, "success", rows_inserted=stats.rows_inserted)
