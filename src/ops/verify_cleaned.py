from __future__ import annotations

import pandas as pd

from src.analysis.slicing import unmatched_offer_events
from src.config import load_settings
from src.db.engine import get_engine
from src.db.writers import EVENTS_CLEANED_TABLE, OFFERS_TABLE, read_table
from src.etl.cleaning import DERIVED_COLUMNS
from src.models.events import FUNNEL_EVENTS, CleanedEvent


def summarize_cleaned(cleaned: pd.DataFrame, offers: pd.DataFrame) -> dict[str, object]:
    funnel = cleaned[cleaned["event"].isin(list(FUNNEL_EVENTS))]
    unmatched = unmatched_offer_events(funnel, offers)
    summary: dict[str, object] = {
        "rows": int(len(cleaned)),
        "customers": int(cleaned["customer_id"].nunique()),
        "funnel_rows_without_offer": int(len(unmatched)),
    }
    for col in DERIVED_COLUMNS:
        summary[f"{col}_nulls"] = int(cleaned[col].isna().sum())
    return summary


def sample_rows(cleaned: pd.DataFrame, n: int = 5) -> list[CleanedEvent]:
    out: list[CleanedEvent] = []
    for record in cleaned.tail(n).to_dict("records"):
        out.append(
            CleanedEvent.model_validate({k: (None if pd.isna(v) else v) for k, v in record.items()})
        )
    return out


def main() -> int:
    settings = load_settings()
    engine = get_engine(settings)

    with engine.connect() as conn:
        cleaned = read_table(conn, EVENTS_CLEANED_TABLE)
        offers = read_table(conn, OFFERS_TABLE)

    print(f"{EVENTS_CLEANED_TABLE} summary:")
    for k, v in summarize_cleaned(cleaned, offers).items():
        print(f"- {k}={v}")

    print(f"{EVENTS_CLEANED_TABLE} last_5:")
    for row in sample_rows(cleaned):
        print(
            "- "
            + " ".join(
                f"{k}={v}"
                for k, v in row.model_dump(include={"customer_id", "event", "time", *DERIVED_COLUMNS}).items()
            )
        )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
