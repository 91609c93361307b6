from __future__ import annotations

import contextlib
import importlib
import sys
from datetime import datetime

from src.config import load_settings
from src.db.engine import get_engine
from src.ops.run_logger import fail_stale_running_runs, finish_run, latest_run, start_run

SOURCE_MODES: set[str] = {"files", "seed", "none"}


def _ts() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


@contextlib.contextmanager
def _clean_argv(module_name: str):
    prev = sys.argv
    try:
        sys.argv = [module_name]
        yield
    finally:
        sys.argv = prev


def _call_etl_main(module_name: str) -> None:
    print(f"[{_ts()}] START {module_name}")
    mod = importlib.import_module(module_name)
    main = getattr(mod, "main", None)
    if not callable(main):
        raise RuntimeError(f"{module_name}.main() not found")
    with _clean_argv(module_name):
        rc = int(main())
    if rc != 0:
        raise RuntimeError(f"{module_name}.main() returned {rc}")
    print(f"[{_ts()}] END   {module_name}")


_STEP_RUN_TYPES: dict[str, str] = {
    "src.etl.01_create_warehouse": "create_warehouse",
    "src.etl.02_load_sources": "load_sources",
    "src.etl.02b_seed_sample_events": "seed_sample_events",
    "src.etl.03_build_cleaned": "build_cleaned",
    "src.etl.04_build_funnel": "build_funnel",
}


def pipeline_steps(source_mode: str = "files") -> list[str]:
    mode = str(source_mode or "files").strip().lower()
    if mode not in SOURCE_MODES:
        raise ValueError("source_mode must be one of: files, seed, none")

    steps = ["src.etl.01_create_warehouse"]
    if mode == "files":
        steps.append("src.etl.02_load_sources")
    elif mode == "seed":
        steps.append("src.etl.02b_seed_sample_events")
    steps += ["src.etl.03_build_cleaned", "src.etl.04_build_funnel"]
    return steps


def run_pipeline(*, run_type: str = "pipeline", source_mode: str = "files") -> int:
    """Run every step in order; the first failing step aborts the run."""
    settings = load_settings()
    engine = get_engine(settings)
    steps = pipeline_steps(source_mode)

    fail_stale_running_runs(engine, older_than_minutes=settings.stale_run_minutes)
    run = start_run(engine, run_type)

    status = "failed"
    error_message: str | None = None
    total_rows = 0
    try:
        for module_name in steps:
            _call_etl_main(module_name)
            latest = latest_run(engine, _STEP_RUN_TYPES[module_name])
            if latest:
                rows = int(latest.get("rows_inserted") or 0)
                total_rows += max(0, rows)
                print(
                    f"[{_ts()}] STATS {module_name} rows={rows} status={latest.get('status')} run_id={latest.get('run_id')}"
                )
        status = "success"
    except BaseException as exc:
        error_message = str(exc)
        raise
    finally:
        try:
            finish_run(engine, run, status, rows_inserted=total_rows, error_message=error_message)
        except Exception as finish_exc:
            print(
                f"[{_ts()}] WARN  failed to finalize etl_runs for run_id={run.run_id}: {finish_exc}",
                file=sys.stderr,
            )
    return total_rows
