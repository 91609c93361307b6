from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

EventName = Literal["offer received", "offer viewed", "offer completed", "transaction"]
SliceDimension = Literal["offer_type", "difficulty", "reward", "duration"]

FUNNEL_EVENTS: tuple[str, ...] = ("offer received", "offer viewed", "offer completed")
SLICE_DIMENSIONS: tuple[str, ...] = ("offer_type", "difficulty", "reward", "duration")


class RawEvent(BaseModel):
    model_config = ConfigDict(extra="allow")

    customer_id: str
    event: EventName
    value: str | dict[str, Any] | None = None
    time: int | None = None

    @field_validator("customer_id", mode="before")
    @classmethod
    def _customer_id_as_str(cls, value: Any) -> Any:
        if value is None:
            return value
        return str(value).strip()


class CleanedEvent(RawEvent):
    transaction_amount: float | None = None
    offer_id: str | None = None
    reward_amount: float | None = None


class Offer(BaseModel):
    model_config = ConfigDict(extra="allow")

    offer_id: str = Field(min_length=1)
    offer_type: str
    difficulty: float = Field(ge=0)
    reward: float = Field(ge=0)
    duration: float = Field(ge=0)

