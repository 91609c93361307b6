from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import pandas as pd

from src.analysis.funnel import (
    Ordering,
    distinct_events,
    funnel_counts,
    funnel_dropoff,
    funnel_stage_inversions,
    restrict_to_funnel,
    sort_for_display,
)
from src.analysis.slicing import sliced_funnel
from src.config import Settings
from src.models.events import SliceDimension


@dataclass(frozen=True)
class SliceQuery:
    name: str
    dimension: SliceDimension
    min_value: float | None = None
    display_order: Ordering | None = None


def slice_queries(settings: Settings) -> list[SliceQuery]:
    return [
        SliceQuery("dropoff_by_offer_type", "offer_type"),
        # lag is still ranked by count here; only the listing follows the funnel
        SliceQuery(
            "dropoff_by_difficulty",
            "difficulty",
            min_value=settings.funnel_min_difficulty,
            display_order="stage",
        ),
        SliceQuery("dropoff_by_reward", "reward", min_value=settings.funnel_min_reward),
        SliceQuery("dropoff_by_duration", "duration", min_value=settings.funnel_min_duration),
    ]


def build_report(
    cleaned: pd.DataFrame,
    offers: pd.DataFrame,
    settings: Settings,
    ordering: Ordering | None = None,
) -> dict[str, pd.DataFrame]:
    order: Ordering = ordering or settings.funnel_ordering
    digits = settings.churn_round_digits

    results: dict[str, pd.DataFrame] = {
        "events": distinct_events(cleaned),
        "funnel_counts": sort_for_display(
            funnel_counts(restrict_to_funnel(cleaned)), ordering=order
        ),
        "funnel_dropoff": funnel_dropoff(cleaned, ordering=order, round_to=digits),
    }
    queries = slice_queries(settings)
    for q in queries:
        results[q.name] = sliced_funnel(
            cleaned,
            offers,
            q.dimension,
            min_value=q.min_value,
            ordering=order,
            display_order=q.display_order or order,
            round_to=digits,
        )

    # where ranking by count disagrees with received -> viewed -> completed
    results["funnel_dropoff_stage_inversions"] = funnel_stage_inversions(results["funnel_dropoff"])
    for q in queries:
        results[f"{q.name}_stage_inversions"] = funnel_stage_inversions(results[q.name], q.dimension)
    return results


def render_report(results: dict[str, pd.DataFrame]) -> str:
    blocks: list[str] = []
    for name, df in results.items():
        body = "(no rows)" if df.empty else df.to_string(index=False)
        blocks.append(f"== {name} ({len(df)} rows)\n{body}")
    return "\n\n".join(blocks) + "\n"


def export_report(results: dict[str, pd.DataFrame], out_dir: Path) -> list[Path]:
    out_dir.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for name, df in results.items():
        path = out_dir / f"{name}.csv"
        df.to_csv(path, index=False)
        written.append(path)
    return written
