from __future__ import annotations

import argparse
from pathlib import Path

from src.analysis.report import build_report, export_report, render_report
from src.config import load_settings
from src.db.engine import get_engine
from src.db.writers import EVENTS_CLEANED_TABLE, OFFERS_TABLE, read_table
from src.ops.run_logger import tracked_run


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Run the funnel dropoff queries over events_cleaned")
    p.add_argument(
        "--ordering",
        choices=["count", "stage"],
        default=None,
        help="Rank events by descending count or by funnel stage (default: FUNNEL_ORDERING)",
    )
    p.add_argument(
        "--export-dir",
        type=Path,
        default=None,
        help="Also write one CSV per query into this directory",
    )
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    settings = load_settings()
    engine = get_engine(settings)

    with tracked_run(engine, "build_funnel") as stats:
        with engine.connect() as conn:
            cleaned = read_table(conn, EVENTS_CLEANED_TABLE)
            offers = read_table(conn, OFFERS_TABLE)
        results = build_report(cleaned, offers, settings, ordering=args.ordering)
        stats.rows_inserted = sum(len(df) for df in results.values())

        written = export_report(results, args.export_dir) if args.export_dir else []

    print(render_report(results), end="")
    for path in written:
        print(f"Wrote {path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
