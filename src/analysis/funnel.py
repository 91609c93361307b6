from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Literal

import pandas as pd

from src.models.events import FUNNEL_EVENTS

Ordering = Literal["count", "stage"]

STAGE_RANK: dict[str, int] = {event: rank for rank, event in enumerate(FUNNEL_EVENTS, start=1)}
_UNRANKED = len(STAGE_RANK) + 1


def _stage_rank(event: Any) -> int:
    return STAGE_RANK.get(str(event), _UNRANKED)


def _require_columns(frame: pd.DataFrame, columns: list[str]) -> None:
    missing = [c for c in columns if c not in frame.columns]
    if missing:
        raise ValueError(f"missing required column(s): {', '.join(missing)}")


def _order_key(ordering: str) -> Callable[[dict[str, Any]], tuple]:
    if ordering == "count":
        # equal counts fall back to funnel order so the ranking is deterministic
        return lambda row: (-int(row["event_count"]), _stage_rank(row["event"]), str(row["event"]))
    if ordering == "stage":
        return lambda row: (_stage_rank(row["event"]), str(row["event"]))
    raise ValueError("ordering must be one of: count, stage")


def churn_rate(
    previous: int | None, current: int, round_to: int | None = 2
) -> float | None:
    if previous is None or pd.isna(previous) or int(previous) == 0:
        return None
    rate = Decimal(int(previous) - int(current)) * 100 / Decimal(int(previous))
    if round_to is None:
        return float(rate)
    return float(rate.quantize(Decimal(1).scaleb(-round_to), rounding=ROUND_HALF_UP))


def restrict_to_funnel(
    events: pd.DataFrame, funnel_events: tuple[str, ...] = FUNNEL_EVENTS
) -> pd.DataFrame:
    _require_columns(events, ["event"])
    return events[events["event"].isin(list(funnel_events))]


def distinct_events(events: pd.DataFrame) -> pd.DataFrame:
    _require_columns(events, ["event"])
    names = sorted(str(e) for e in events["event"].dropna().unique())
    return pd.DataFrame({"event": names})


def funnel_counts(events: pd.DataFrame, dimension: str | None = None) -> pd.DataFrame:
    """Distinct customers per (slice, event); rows with a null slice value are left out."""
    keys = [dimension, "event"] if dimension else ["event"]
    _require_columns(events, ["customer_id", *keys])

    frame = events.dropna(subset=["customer_id", *keys])
    if frame.empty:
        return pd.DataFrame({k: pd.Series(dtype=events[k].dtype) for k in keys}).assign(
            event_count=pd.Series(dtype="int64")
        )

    counts = (
        frame.groupby(keys, sort=True)["customer_id"]
        .nunique()
        .reset_index(name="event_count")
    )
    counts["event_count"] = counts["event_count"].astype("int64")
    return counts


def previous_counts(
    counts: pd.DataFrame,
    dimension: str | None = None,
    ordering: Ordering = "count",
    round_to: int | None = 2,
) -> pd.DataFrame:
    """
    Walk each slice in ranking order and attach the preceding row's count.

    ``ordering="count"`` ranks by descending event_count, ``"stage"`` by the
    canonical received -> viewed -> completed sequence. The first row of a
    slice has no previous_count and no churn_rate.
    """
    key = _order_key(ordering)
    _require_columns(counts, ["event", "event_count", *([dimension] if dimension else [])])

    if dimension:
        groups = [group for _, group in counts.groupby(dimension, sort=True)]
    else:
        groups = [counts]

    records: list[dict[str, Any]] = []
    for group in groups:
        previous: int | None = None
        for row in sorted(group.to_dict("records"), key=key):
            current = int(row["event_count"])
            row["previous_count"] = previous
            row["churn_rate"] = churn_rate(previous, current, round_to)
            records.append(row)
            previous = current

    out = pd.DataFrame.from_records(
        records, columns=[*counts.columns, "previous_count", "churn_rate"]
    )
    out["previous_count"] = out["previous_count"].astype("Int64")
    out["churn_rate"] = out["churn_rate"].astype("float64")
    return out


def sort_for_display(
    result: pd.DataFrame, dimension: str | None = None, ordering: Ordering = "count"
) -> pd.DataFrame:
    if ordering not in ("count", "stage"):
        raise ValueError("ordering must be one of: count, stage")
    ranked = result.assign(_stage=result["event"].map(_stage_rank))
    by: list[str] = [dimension] if dimension else []
    ascending: list[bool] = [True] if dimension else []
    if ordering == "count":
        by += ["event_count", "_stage"]
        ascending += [False, True]
    else:
        by += ["_stage"]
        ascending += [True]
    return (
        ranked.sort_values(by=by, ascending=ascending, kind="mergesort")
        .drop(columns="_stage")
        .reset_index(drop=True)
    )


def funnel_dropoff(
    events: pd.DataFrame,
    dimension: str | None = None,
    *,
    min_value: float | None = None,
    ordering: Ordering = "count",
    display_order: Ordering | None = None,
    round_to: int | None = 2,
) -> pd.DataFrame:
    counts = funnel_counts(restrict_to_funnel(events), dimension)
    if min_value is not None:
        if dimension is None:
            raise ValueError("min_value needs a slice dimension")
        counts = counts[counts[dimension] >= min_value]
    result = previous_counts(counts, dimension, ordering=ordering, round_to=round_to)
    return sort_for_display(result, dimension, display_order or ordering)


def funnel_stage_inversions(result: pd.DataFrame, dimension: str | None = None) -> pd.DataFrame:
    """Slices where ranking by count disagrees with the canonical funnel sequence."""
    columns = [*([dimension] if dimension else []), "count_order", "stage_order"]
    groups = result.groupby(dimension, sort=True) if dimension else [(None, result)]

    rows: list[dict[str, Any]] = []
    for slice_value, group in groups:
        records = group.to_dict("records")
        by_count = [r["event"] for r in sorted(records, key=_order_key("count"))]
        by_stage = [r["event"] for r in sorted(records, key=_order_key("stage"))]
        if by_count != by_stage:
            row: dict[str, Any] = {"count_order": " > ".join(by_count), "stage_order": " > ".join(by_stage)}
            if dimension:
                row[dimension] = slice_value
            rows.append(row)
    return pd.DataFrame.from_records(rows, columns=columns)

