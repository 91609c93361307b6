from __future__ import annotations

from src.config import load_settings
from src.db.engine import ensure_database_exists, get_engine
from src.etl._ops import ensure_ops_tables
from src.ops.run_logger import tracked_run


def main() -> int:
    settings = load_settings()
    result = ensure_database_exists(settings)
    engine = get_engine(settings)

    with engine.begin() as conn:
        ensure_ops_tables(conn)

    with tracked_run(engine, "create_warehouse"):
        pass

    state = "created" if result.created else "ready"
    print(f"Warehouse {state}: {engine.url.render_as_string(hide_password=True)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
