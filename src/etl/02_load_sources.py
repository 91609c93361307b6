from __future__ import annotations

import argparse
from pathlib import Path

from src.config import load_settings
from src.db.engine import get_engine
from src.db.writers import EVENTS_TABLE, OFFERS_TABLE, replace_table
from src.etl.sources import load_events, load_offers
from src.ops.run_logger import tracked_run


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Load the events and offers sources into the warehouse")
    p.add_argument("--events", type=Path, default=None, help="Events file (default: EVENTS_PATH)")
    p.add_argument("--offers", type=Path, default=None, help="Offers file (default: OFFERS_PATH)")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    settings = load_settings()
    engine = get_engine(settings)

    events_path = args.events or settings.events_path
    offers_path = args.offers or settings.offers_path

    with tracked_run(engine, "load_sources") as stats:
        # validate both files before touching either table
        events = load_events(events_path)
        offers = load_offers(offers_path)
        with engine.begin() as conn:
            stats.rows_inserted += replace_table(conn, events, EVENTS_TABLE)
            stats.rows_inserted += replace_table(conn, offers, OFFERS_TABLE)

    print(f"Loaded {len(events)} events from {events_path}")
    print(f"Loaded {len(offers)} offers from {offers_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
