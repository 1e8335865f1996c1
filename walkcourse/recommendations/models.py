from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..intent.models import Intent, Mode, ResponseType
from ..places.models import Place

_WHITESPACE_RE = re.compile(r"\s+")


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ScoreBreakdown(_CamelModel):
    vibe_match: float
    distance: float
    jjeop_level: float
    popularity: float
    season: float
    activity_match: float


class ScoredPlace(Place):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    score: float = Field(..., ge=0.0, le=1.0)
    score_breakdown: ScoreBreakdown = Field(..., alias="scoreBreakdown")


class CourseStep(_CamelModel):
    label: str
    place: ScoredPlace
    distance_from_prev: int | None = None


class Course(_CamelModel):
    id: int
    steps: list[CourseStep]
    total_distance: int
    difficulty: str
    mode: str
    vibes: list[str] = Field(default_factory=list)
    total_score: float

    def place_ids(self) -> list[str]:
        return [step.place.id for step in self.steps]


class Timing(_CamelModel):
    llm_ms: int = 0
    db_ms: int = 0
    total_ms: int = 0


class RecommendRequest(BaseModel):
    query: str = Field(..., min_length=1, max_length=500)
    region: str | None = None
    people_count: int | None = Field(default=None, gt=0)
    mode: Mode | None = None
    response_type: ResponseType | None = None
    feedback: str | None = Field(default=None, max_length=500)
    exclude_place_ids: list[str] = Field(default_factory=list, max_length=50)

    @field_validator("query", mode="before")
    @classmethod
    def _collapse_whitespace(cls, value: Any) -> Any:
        if isinstance(value, str):
            return _WHITESPACE_RE.sub(" ", value.strip())
        return value

    @field_validator("feedback", mode="before")
    @classmethod
    def _blank_feedback_is_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("exclude_place_ids", mode="before")
    @classmethod
    def _clean_ids(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [v.strip() for v in value if isinstance(v, str) and v.strip()]
        return value


class RecommendResponse(_CamelModel):
    type: ResponseType
    places: list[ScoredPlace] = Field(default_factory=list)
    courses: list[Course] = Field(default_factory=list)
    intent: Intent
    parse_errors: list[str] = Field(default_factory=list)
    timing: Timing = Field(default_factory=Timing)


class SaveCourseRequest(BaseModel):
    course: dict[str, Any]
    query: str | None = Field(default=None, max_length=500)
    intent: Intent | None = None


class SaveCourseResponse(BaseModel):
    ok: bool
    course_hash: str


class SearchLogRequest(BaseModel):
    raw_query: str = Field(..., min_length=1, max_length=500)
    response_type: ResponseType = "single"
    region: str | None = None
    people_count: int | None = Field(default=None, gt=0)
    mode: Mode | None = None
    activity_type: str | None = None
    season: str | None = None
    vibe: list[str] = Field(default_factory=list)
    selected_place_id: str | None = None
    selected_place_name: str | None = None
    selected_course: dict[str, Any] | None = None
    regenerate_count: int = Field(default=0, ge=0)
    parse_error_fields: list[str] = Field(default_factory=list)
    user_feedbacks: list[str] = Field(default_factory=list)

    @field_validator("raw_query", mode="before")
    @classmethod
    def _collapse_whitespace(cls, value: Any) -> Any:
        if isinstance(value, str):
            return _WHITESPACE_RE.sub(" ", value.strip())
        return value
