"""
Shared fixtures for the offer funnel tests.

Event frames are built in memory; anything touching the warehouse gets a
throwaway SQLite file under ``tmp_path`` through ``DATABASE_URL``.
"""

from pathlib import Path

import pandas as pd
import pytest

from src.config import Settings, load_settings


# ---------------------------------------------------------------------------
# Frame builders
# ---------------------------------------------------------------------------
@pytest.fixture
def make_events():
    """Build an events frame from (customer_id, event, value) tuples."""

    def _make(rows, with_time: bool = True) -> pd.DataFrame:
        records = []
        for i, (customer_id, event, value) in enumerate(rows):
            record = {"customer_id": customer_id, "event": event, "value": value}
            if with_time:
                record["time"] = i
            records.append(record)
        return pd.DataFrame(records)

    return _make


@pytest.fixture
def make_funnel(make_events):
    """Events for one offer where the first N customers reach each stage."""

    def _make(offer_id: str, received: int, viewed: int, completed: int, prefix: str = "c"):
        rows = []
        for i in range(received):
            rows.append((f"{prefix}{i}", "offer received", f"{{'offer id': '{offer_id}'}}"))
        for i in range(viewed):
            rows.append((f"{prefix}{i}", "offer viewed", f"{{'offer id': '{offer_id}'}}"))
        for i in range(completed):
            rows.append(
                (f"{prefix}{i}", "offer completed", f"{{'offer_id': '{offer_id}', 'reward': 5}}")
            )
        return make_events(rows)

    return _make


@pytest.fixture
def offers_df() -> pd.DataFrame:
    return pd.DataFrame(
        [
            {"offer_id": "A", "offer_type": "bogo", "difficulty": 5, "reward": 5, "duration": 7},
            {"offer_id": "B", "offer_type": "discount", "difficulty": 10, "reward": 2, "duration": 10},
            {"offer_id": "C", "offer_type": "informational", "difficulty": 0, "reward": 0, "duration": 3},
        ]
    )


@pytest.fixture
def sample_events(make_events) -> pd.DataFrame:
    return make_events(
        [
            ("1", "offer received", "{'offer id': 'A'}"),
            ("2", "offer received", "{'offer id': 'A'}"),
            ("3", "offer received", "{'offer id': 'B'}"),
            ("1", "offer viewed", "{'offer id': 'A'}"),
            ("1", "offer viewed", "{'offer id': 'A'}"),
            ("3", "offer viewed", "{'offer id': 'B'}"),
            ("1", "transaction", "{'amount': 12.5}"),
            ("1", "offer completed", "{'offer_id': 'A', 'reward': 5}"),
            ("4", "offer received", "{'offer id': 'ZZZ'}"),
        ]
    )


# ---------------------------------------------------------------------------
# Warehouse
# ---------------------------------------------------------------------------
@pytest.fixture
def warehouse(tmp_path: Path, monkeypatch) -> Settings:
    """Point every step at a fresh SQLite warehouse and return the settings."""
    for name in (
        "FUNNEL_ORDERING",
        "FUNNEL_MIN_DIFFICULTY",
        "FUNNEL_MIN_REWARD",
        "FUNNEL_MIN_DURATION",
        "CHURN_ROUND_DIGITS",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'warehouse.db'}")
    monkeypatch.setenv("EVENTS_PATH", str(tmp_path / "events.csv"))
    monkeypatch.setenv("OFFERS_PATH", str(tmp_path / "offers.csv"))
    return load_settings(env_path=tmp_path / "missing.env")
