from __future__ import annotations

import pandas as pd
from loguru import logger

from src.analysis.funnel import Ordering, funnel_dropoff, restrict_to_funnel
from src.models.events import SLICE_DIMENSIONS, SliceDimension

OFFER_COLUMNS: list[str] = ["offer_id", "offer_type", "difficulty", "reward", "duration"]
NUMERIC_OFFER_COLUMNS: list[str] = ["difficulty", "reward", "duration"]


def normalize_offers(offers: pd.DataFrame) -> pd.DataFrame:
    missing = [c for c in OFFER_COLUMNS if c not in offers.columns]
    if missing:
        raise ValueError(f"offers is missing column(s): {', '.join(missing)}")

    out = offers[offers["offer_id"].notna()].copy()
    out["offer_id"] = out["offer_id"].astype(str).str.strip()
    for col in NUMERIC_OFFER_COLUMNS:
        out[col] = pd.to_numeric(out[col], errors="coerce")
    return out


def _offer_keys(cleaned: pd.DataFrame) -> pd.Series:
    if "offer_id" not in cleaned.columns:
        raise ValueError("events is missing the 'offer_id' column; clean it first")
    return cleaned["offer_id"].where(cleaned["offer_id"].isna(), cleaned["offer_id"].astype(str))


def join_offers(cleaned: pd.DataFrame, offers: pd.DataFrame) -> pd.DataFrame:
    """
    Inner join of cleaned events onto offers by offer_id.

    Events without a matching offer are dropped, which removes every
    transaction row and any event pointing at an unknown offer. Duplicate
    offer ids raise ``pandas.errors.MergeError``.
    """
    events = cleaned.assign(offer_id=_offer_keys(cleaned))
    joined = events.merge(
        normalize_offers(offers),
        on="offer_id",
        how="inner",
        validate="many_to_one",
        suffixes=("", "_offer"),
    )

    dropped = len(restrict_to_funnel(unmatched_offer_events(events, offers)))
    if dropped:
        logger.info("join_offers dropped {} funnel event(s) without a matching offer", dropped)
    return joined


def unmatched_offer_events(cleaned: pd.DataFrame, offers: pd.DataFrame) -> pd.DataFrame:
    keys = _offer_keys(cleaned)
    known = set(normalize_offers(offers)["offer_id"])
    return cleaned[~keys.isin(known)]


def sliced_funnel(
    cleaned: pd.DataFrame,
    offers: pd.DataFrame,
    dimension: SliceDimension,
    *,
    min_value: float | None = None,
    ordering: Ordering = "count",
    display_order: Ordering | None = None,
    round_to: int | None = 2,
) -> pd.DataFrame:
    if dimension not in SLICE_DIMENSIONS:
        raise ValueError(f"dimension must be one of: {', '.join(SLICE_DIMENSIONS)}")
    return funnel_dropoff(
        join_offers(cleaned, offers),
        dimension,
        min_value=min_value,
        ordering=ordering,
        display_order=display_order,
        round_to=round_to,
    )
