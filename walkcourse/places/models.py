from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ActivityBucket(str, Enum):
    food = "맛집"
    cafe = "카페"
    attraction = "볼거리"


class Place(BaseModel):
    """Raw place record as stored in the place datastore. Read-only here."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    region: str | None = None
    sub_region: str | None = None
    province: str | None = None
    category_main: str | None = None
    category_sub: str | None = None
    lat: float
    lon: float
    address: str | None = None
    memo: str | None = None
    short_desc: str | None = None
    features: dict[str, bool] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    rating: float = 0.0
    price_level: int | None = None
