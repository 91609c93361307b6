from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any

AMOUNT_KEYS: list[str] = ["amount"]
OFFER_ID_KEYS: list[str] = ["offer_id", "offer id"]
REWARD_KEYS: list[str] = ["reward"]


@dataclass(frozen=True)
class PayloadFields:
    transaction_amount: float | None
    offer_id: str | None
    reward_amount: float | None


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def normalize_payload_quotes(raw: str) -> str:
    """The upstream export writes python-style dicts; swap every single quote for JSON's double."""
    return raw.replace("'", '"')


def parse_offer_payload(raw: Any) -> dict[str, Any] | None:
    if isinstance(raw, dict):
        return raw
    if _is_missing(raw):
        return None
    try:
        obj = json.loads(normalize_payload_quotes(str(raw)))
    except (TypeError, ValueError):
        return None
    return obj if isinstance(obj, dict) else None


def is_unparseable_payload(raw: Any) -> bool:
    return not _is_missing(raw) and parse_offer_payload(raw) is None


def _as_str(value: Any) -> str | None:
    if _is_missing(value):
        return None
    return str(value).strip()


def _as_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        out = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(out) else out


def _find_first(obj: Any, keys: list[str]) -> Any | None:
    if not isinstance(obj, dict):
        return None
    for k in keys:
        if k in obj and obj[k] is not None:
            return obj[k]
    return None


def best_effort_transaction_amount(payload_obj: Any) -> float | None:
    return _as_float(_find_first(payload_obj, AMOUNT_KEYS))


def best_effort_offer_id(payload_obj: Any) -> str | None:
    return _as_str(_find_first(payload_obj, OFFER_ID_KEYS))


def best_effort_reward_amount(payload_obj: Any) -> float | None:
    return _as_float(_find_first(payload_obj, REWARD_KEYS))


def extract_payload_fields(raw: Any) -> PayloadFields:
    obj = parse_offer_payload(raw)
    return PayloadFields(
        transaction_amount=best_effort_transaction_amount(obj),
        offer_id=best_effort_offer_id(obj),
        reward_amount=best_effort_reward_amount(obj),
    )
