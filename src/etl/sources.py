from __future__ import annotations

from pathlib import Path

import pandas as pd
from pydantic import ValidationError

from src.models.events import Offer

EVENT_COLUMNS: list[str] = ["customer_id", "event", "value"]
OFFER_COLUMNS: list[str] = ["offer_id", "offer_type", "difficulty", "reward", "duration"]

_EVENT_ALIASES: dict[str, str] = {"person": "customer_id"}
_OFFER_ALIASES: dict[str, str] = {"id": "offer_id"}


def read_source(path: Path) -> pd.DataFrame:
    """Read a CSV, JSON array or JSON-lines file into a DataFrame."""
    if not path.exists():
        raise FileNotFoundError(f"source file not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".csv":
        return pd.read_csv(path)
    if suffix in {".jsonl", ".ndjson"}:
        return pd.read_json(path, orient="records", lines=True)
    if suffix == ".json":
        # the public offer dataset ships JSON-lines under a .json name
        with path.open(encoding="utf-8") as fh:
            head = fh.read(4096).lstrip()[:1]
        return pd.read_json(path, orient="records", lines=head != "[")
    raise ValueError(f"unsupported source format '{suffix}' for {path}")


def _apply_aliases(df: pd.DataFrame, aliases: dict[str, str]) -> pd.DataFrame:
    renames = {src: dst for src, dst in aliases.items() if src in df.columns and dst not in df.columns}
    return df.rename(columns=renames) if renames else df


def _require(df: pd.DataFrame, columns: list[str], name: str) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise ValueError(f"{name} source is missing column(s): {', '.join(missing)}")


def prepare_events(df: pd.DataFrame) -> pd.DataFrame:
    out = _apply_aliases(df, _EVENT_ALIASES)
    _require(out, EVENT_COLUMNS, "events")
    out = out.copy()
    out["customer_id"] = out["customer_id"].map(lambda v: None if pd.isna(v) else str(v).strip())
    out["event"] = out["event"].map(lambda v: None if pd.isna(v) else str(v).strip())
    return out


def prepare_offers(df: pd.DataFrame) -> pd.DataFrame:
    out = _apply_aliases(df, _OFFER_ALIASES)
    _require(out, OFFER_COLUMNS, "offers")
    out = out.copy()
    out["offer_id"] = out["offer_id"].map(lambda v: None if pd.isna(v) else str(v).strip())

    for idx, record in zip(out.index, out[OFFER_COLUMNS].to_dict("records")):
        try:
            Offer.model_validate(record)
        except ValidationError as exc:
            raise ValueError(f"invalid offer at row {idx}: {exc}") from exc

    dupes = out["offer_id"][out["offer_id"].duplicated()].unique().tolist()
    if dupes:
        raise ValueError(f"duplicate offer_id value(s): {', '.join(map(str, dupes))}")
    return out


def load_events(path: Path) -> pd.DataFrame:
    return prepare_events(read_source(path))


def load_offers(path: Path) -> pd.DataFrame:
    return prepare_offers(read_source(path))
