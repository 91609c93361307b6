from __future__ import annotations

import argparse
import hashlib
import random
from dataclasses import dataclass
from pathlib import Path

import pandas as pd

from src.config import load_settings
from src.db.engine import get_engine
from src.db.writers import EVENTS_TABLE, OFFERS_TABLE, replace_table
from src.etl.sources import prepare_events, prepare_offers
from src.ops.run_logger import tracked_run

# (offer_type, difficulty, reward, duration) as published in the reward-program portfolio
PORTFOLIO: list[tuple[str, int, int, int]] = [
    ("bogo", 10, 10, 7),
    ("bogo", 10, 10, 5),
    ("informational", 0, 0, 4),
    ("bogo", 5, 5, 7),
    ("discount", 20, 5, 10),
    ("discount", 7, 3, 7),
    ("discount", 10, 2, 10),
    ("informational", 0, 0, 3),
    ("bogo", 5, 5, 5),
    ("discount", 10, 2, 7),
]

OFFER_WAVES_HOURS: list[int] = [0, 168, 336, 408, 504, 576]


@dataclass(frozen=True)
class SeedConfig:
    customers: int
    seed: int


def deterministic_id(seed: str, max_len: int = 32) -> str:
    h = hashlib.sha1(seed.encode("utf-8", errors="replace")).hexdigest()
    return h[:max_len]


def _payload(fields: dict[str, object]) -> str:
    # mirror the upstream export: python-style dict text with single quotes
    return str(fields)


def generate_offers() -> pd.DataFrame:
    rows = [
        {
            "offer_id": deterministic_id(f"offer-{i}"),
            "offer_type": offer_type,
            "difficulty": difficulty,
            "reward": reward,
            "duration": duration,
        }
        for i, (offer_type, difficulty, reward, duration) in enumerate(PORTFOLIO)
    ]
    return pd.DataFrame(rows)


def generate_events(offers: pd.DataFrame, cfg: SeedConfig) -> pd.DataFrame:
    rng = random.Random(cfg.seed)
    offer_rows = offers.to_dict("records")
    rows: list[dict[str, object]] = []

    for c in range(cfg.customers):
        customer_id = deterministic_id(f"customer-{cfg.seed}-{c}")
        for wave in OFFER_WAVES_HOURS:
            if rng.random() < 0.25:
                continue
            offer = rng.choice(offer_rows)
            offer_id = offer["offer_id"]
            rows.append(
                {
                    "customer_id": customer_id,
                    "event": "offer received",
                    "value": _payload({"offer id": offer_id}),
                    "time": wave,
                }
            )
            if rng.random() > 0.78:
                continue
            viewed_at = wave + rng.randint(0, 72)
            rows.append(
                {
                    "customer_id": customer_id,
                    "event": "offer viewed",
                    "value": _payload({"offer id": offer_id}),
                    "time": viewed_at,
                }
            )
            if offer["offer_type"] == "informational":
                continue
            completion_odds = 0.95 - 0.03 * float(offer["difficulty"])
            if rng.random() > completion_odds:
                continue
            completed_at = viewed_at + rng.randint(1, 24 * int(offer["duration"]))
            spend = round(float(offer["difficulty"]) + rng.uniform(0.5, 15.0), 2)
            rows.append(
                {
                    "customer_id": customer_id,
                    "event": "transaction",
                    "value": _payload({"amount": spend}),
                    "time": completed_at,
                }
            )
            rows.append(
                {
                    "customer_id": customer_id,
                    "event": "offer completed",
                    "value": _payload({"offer_id": offer_id, "reward": int(offer["reward"])}),
                    "time": completed_at,
                }
            )

        for _ in range(rng.randint(0, 4)):
            rows.append(
                {
                    "customer_id": customer_id,
                    "event": "transaction",
                    "value": _payload({"amount": round(rng.uniform(0.5, 30.0), 2)}),
                    "time": rng.randint(0, 714),
                }
            )

    rows.sort(key=lambda r: (int(r["time"]), str(r["customer_id"])))
    return pd.DataFrame(rows, columns=["customer_id", "event", "value", "time"])


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Seed a synthetic offer portfolio and customer event log."
    )
    parser.add_argument("--customers", type=int, default=500, help="Number of customers.")
    parser.add_argument("--seed", type=int, default=42, help="Random seed.")
    parser.add_argument(
        "--out-dir",
        type=Path,
        default=None,
        help="Also write events.csv and offers.csv into this directory.",
    )
    args = parser.parse_args(argv)

    cfg = SeedConfig(customers=max(1, int(args.customers)), seed=int(args.seed))
    offers = prepare_offers(generate_offers())
    events = prepare_events(generate_events(offers, cfg))

    settings = load_settings()
    engine = get_engine(settings)
    with tracked_run(engine, "seed_sample_events") as stats:
        with engine.begin() as conn:
            stats.rows_inserted += replace_table(conn, offers, OFFERS_TABLE)
            stats.rows_inserted += replace_table(conn, events, EVENTS_TABLE)

    if args.out_dir:
        args.out_dir.mkdir(parents=True, exist_ok=True)
        events.to_csv(args.out_dir / "events.csv", index=False)
        offers.to_csv(args.out_dir / "offers.csv", index=False)
        print(f"Wrote sample files to {args.out_dir}")

    print(f"Seeded {len(offers)} offers and {len(events)} events for {cfg.customers} customers.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
