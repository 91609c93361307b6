from __future__ import annotations

from sqlalchemy import text

from src.config import load_settings
from src.db.engine import get_engine
from src.etl._ops import RUNS_TABLE, assert_ops_ready, recent_runs


def main() -> int:
    settings = load_settings()
    engine = get_engine(settings)

    with engine.connect() as conn:
        assert_ops_ready(conn)
        running = conn.execute(
            text(f"SELECT COUNT(1) FROM {RUNS_TABLE} WHERE status = 'running';")
        ).scalar_one()
        rows = recent_runs(conn, limit=10)

    print(f"running_count={int(running)}")
    print("last_10_runs:")
    for r in rows:
        print(
            f"- run_id={r.get('run_id')} run_type={r.get('run_type')} "
            f"status={r.get('status')} started_at={r.get('started_at')} "
            f"finished_at={r.get('finished_at')} rows_inserted={r.get('rows_inserted')} "
            f"error_message={r.get('error_message')}"
        )

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
