from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Sequence

SEASONS: tuple[str, ...] = ("봄", "여름", "가을", "겨울")


@dataclass(frozen=True)
class SeasonalAdjustment:
    season: str
    vibe_boost: tuple[str, ...]
    activity_boost: tuple[str, ...]
    penalty_vibes: tuple[str, ...]


SEASONAL_ADJUSTMENTS: tuple[SeasonalAdjustment, ...] = (
    SeasonalAdjustment(
        season="봄",
        vibe_boost=("벚꽃", "산책", "피크닉", "야외"),
        activity_boost=("산책", "공원", "카페"),
        penalty_vibes=("실내", "따뜻한"),
    ),
    SeasonalAdjustment(
        season="여름",
        vibe_boost=("시원한", "빙수", "냉면", "물놀이"),
        activity_boost=("실내", "카페", "아이스크림"),
        penalty_vibes=("뜨거운", "국물"),
    ),
    SeasonalAdjustment(
        season="가을",
        vibe_boost=("단풍", "감성", "산책", "분위기"),
        activity_boost=("산책", "카페", "전시"),
        penalty_vibes=(),
    ),
    SeasonalAdjustment(
        season="겨울",
        vibe_boost=("따뜻한", "국물", "핫초코", "실내"),
        activity_boost=("실내", "카페", "국밥"),
        penalty_vibes=("야외", "산책"),
    ),
)

_VIBE_BOOST = 0.15
_VIBE_PENALTY = 0.1
_ACTIVITY_BOOST = 0.1
_MAX_ADJUSTMENT = 0.3


def detect_current_season(today: date | None = None) -> str:
    month = (today or date.today()).month
    if 3 <= month <= 5:
        return "봄"
    if 6 <= month <= 8:
        return "여름"
    if 9 <= month <= 11:
        return "가을"
    return "겨울"


def season_boost(
    season: str | None,
    vibe_terms: Sequence[str],
    activity_text: str | None,
) -> float:
    """Return a seasonal adjustment in [-0.3, 0.3] for the given tags."""
    if not season:
        return 0.0

    adjustment = next((a for a in SEASONAL_ADJUSTMENTS if a.season == season), None)
    if adjustment is None:
        return 0.0

    boost = 0.0
    for term in vibe_terms:
        if any(word in term for word in adjustment.vibe_boost):
            boost += _VIBE_BOOST
        if any(word in term for word in adjustment.penalty_vibes):
            boost -= _VIBE_PENALTY

    if activity_text and any(word in activity_text for word in adjustment.activity_boost):
        boost += _ACTIVITY_BOOST

    return max(-_MAX_ADJUSTMENT, min(_MAX_ADJUSTMENT, boost))
