from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


def project_root() -> Path:
    return Path(__file__).resolve().parents[1]


def _default_database_url() -> str:
    return f"sqlite:///{project_root() / 'data' / 'offer_funnel.db'}"


class Settings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    database_url: str = Field(default_factory=_default_database_url, alias="DATABASE_URL")

    events_path: Path = Field(
        default_factory=lambda: project_root() / "data" / "events.csv", alias="EVENTS_PATH"
    )
    offers_path: Path = Field(
        default_factory=lambda: project_root() / "data" / "offers.csv", alias="OFFERS_PATH"
    )

    funnel_ordering: Literal["count", "stage"] = Field(default="count", alias="FUNNEL_ORDERING")
    funnel_min_difficulty: float = Field(default=5, alias="FUNNEL_MIN_DIFFICULTY")
    funnel_min_reward: float = Field(default=2, alias="FUNNEL_MIN_REWARD")
    funnel_min_duration: float = Field(default=5, alias="FUNNEL_MIN_DURATION")
    churn_round_digits: int = Field(default=2, ge=0, le=10, alias="CHURN_ROUND_DIGITS")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    stale_run_minutes: int = Field(default=10, ge=1, alias="STALE_RUN_MINUTES")

    @field_validator("funnel_ordering", mode="before")
    @classmethod
    def _normalize_ordering(cls, value: object) -> object:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> object:
        return value.strip().upper() if isinstance(value, str) else value


def load_settings(env_path: Path | None = None) -> Settings:
    env_file = env_path or (project_root() / ".env")
    if env_file.exists():
        load_dotenv(env_file, override=False)
    try:
        return Settings.model_validate(dict(os.environ))
    except ValidationError as exc:
        raise RuntimeError(
            "Invalid environment variables. Copy `.env.example` to `.env` and edit it."
        ) from exc
