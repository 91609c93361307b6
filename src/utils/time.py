from __future__ import annotations

from datetime import UTC, datetime, timedelta

DB_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


def ensure_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None or dt.tzinfo.utcoffset(dt) is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def db_timestamp(dt: datetime | None = None) -> str:
    """UTC timestamp text that sorts correctly on every backend we write to."""
    return ensure_utc(dt or utc_now()).strftime(DB_TIMESTAMP_FORMAT)


def db_timestamp_minutes_ago(minutes: int, now: datetime | None = None) -> str:
    return db_timestamp((now or utc_now()) - timedelta(minutes=int(minutes)))
