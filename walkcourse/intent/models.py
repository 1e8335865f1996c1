from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ResponseType = Literal["single", "course"]
Mode = Literal["solo", "date", "group", "party"]
NoisePreference = Literal["quiet", "lively", "balanced", "unknown"]
BudgetSensitivity = Literal["low", "moderate", "high", "unknown"]
WalkingPreference = Literal["minimal", "moderate", "active"]

VALID_MODES: tuple[str, ...] = ("solo", "date", "group", "party")
VALID_RESPONSE_TYPES: tuple[str, ...] = ("single", "course")
NOISE_VALUES: tuple[str, ...] = ("quiet", "lively", "balanced", "unknown")
BUDGET_VALUES: tuple[str, ...] = ("low", "moderate", "high", "unknown")
WALKING_VALUES: tuple[str, ...] = ("minimal", "moderate", "active")


class Intent(BaseModel):
    """Structured preferences resolved from one query. Frozen once built."""

    model_config = ConfigDict(frozen=True)

    response_type: ResponseType = "single"
    region: str | None = None
    vibe: list[str] = Field(default_factory=list)
    activity_type: str | None = None
    people_count: int | None = None
    season: str | None = None
    mode: Mode | None = None
    special_context: str | None = None
    noise_preference: NoisePreference = "unknown"
    budget_sensitivity: BudgetSensitivity = "unknown"
    walking_preference: WalkingPreference = "moderate"


class IntentOverrides(BaseModel):
    region: str | None = None
    people_count: int | None = Field(default=None, gt=0)
    mode: Mode | None = None
    response_type: ResponseType | None = None


class IntentResult(BaseModel):
    intent: Intent
    parse_errors: list[str] = Field(default_factory=list)
