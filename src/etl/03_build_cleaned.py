from __future__ import annotations

from loguru import logger

from src.config import load_settings
from src.db.engine import get_engine
from src.db.writers import EVENTS_CLEANED_TABLE, EVENTS_TABLE, read_table, replace_table
from src.etl.cleaning import clean_events, payload_parse_failures
from src.ops.run_logger import tracked_run


def main() -> int:
    settings = load_settings()
    engine = get_engine(settings)

    with tracked_run(engine, "build_cleaned") as stats:
        with engine.begin() as conn:
            events = read_table(conn, EVENTS_TABLE)
            cleaned = clean_events(events)
            stats.rows_inserted = replace_table(conn, cleaned, EVENTS_CLEANED_TABLE)

    failures = payload_parse_failures(events)
    if failures:
        logger.warning("{} payload(s) could not be parsed; derived fields left null", failures)

    print(
        f"{EVENTS_CLEANED_TABLE} built: rows={stats.rows_inserted} "
        f"offer_id={int(cleaned['offer_id'].notna().sum())} "
        f"transaction_amount={int(cleaned['transaction_amount'].notna().sum())} "
        f"reward_amount={int(cleaned['reward_amount'].notna().sum())}"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
