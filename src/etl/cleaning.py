from __future__ import annotations

import pandas as pd

from src.etl.utils_offer_events import extract_payload_fields, is_unparseable_payload

DERIVED_COLUMNS: list[str] = ["transaction_amount", "offer_id", "reward_amount"]


def clean_events(events: pd.DataFrame) -> pd.DataFrame:
    """
    Parse the ``value`` payload of every event into typed columns.

    Returns a new frame with every original column kept in place and
    ``transaction_amount``, ``offer_id`` and ``reward_amount`` appended.
    Rows whose payload is missing or malformed get nulls rather than failing
    the whole batch.
    """
    if "value" not in events.columns:
        raise ValueError("events is missing the 'value' column")

    fields = [extract_payload_fields(raw) for raw in events["value"].tolist()]

    cleaned = events.drop(columns=[c for c in DERIVED_COLUMNS if c in events.columns]).copy()
    cleaned["transaction_amount"] = pd.Series(
        [f.transaction_amount for f in fields], index=events.index, dtype="float64"
    )
    cleaned["offer_id"] = pd.Series([f.offer_id for f in fields], index=events.index, dtype="object")
    cleaned["reward_amount"] = pd.Series(
        [f.reward_amount for f in fields], index=events.index, dtype="float64"
    )
    return cleaned


def payload_parse_failures(events: pd.DataFrame) -> int:
    if "value" not in events.columns:
        return 0
    return sum(1 for raw in events["value"].tolist() if is_unparseable_payload(raw))
