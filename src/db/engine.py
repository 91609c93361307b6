from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url

from src.config import Settings


@dataclass(frozen=True)
class DbEnsureResult:
    existed: bool
    created: bool


def _sqlite_path(url: str) -> Path | None:
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return None
    database = parsed.database
    if not database or database == ":memory:":
        return None
    return Path(database)


def get_engine(settings: Settings, database_url: str | None = None) -> Engine:
    url = database_url or settings.database_url
    path = _sqlite_path(url)
    if path is not None:
        path.parent.mkdir(parents=True, exist_ok=True)
    return create_engine(url, pool_pre_ping=True)


def ensure_database_exists(settings: Settings) -> DbEnsureResult:
    """SQLite files are created on first connect; other backends must already exist."""
    path = _sqlite_path(settings.database_url)
    if path is None:
        return DbEnsureResult(existed=True, created=False)
    if path.exists():
        return DbEnsureResult(existed=True, created=False)

    engine = get_engine(settings)
    with engine.connect():
        pass
    engine.dispose()
    return DbEnsureResult(existed=False, created=True)
