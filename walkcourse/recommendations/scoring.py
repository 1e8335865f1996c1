from __future__ import annotations

from ..intent.models import Intent
from ..intent.season import season_boost
from ..places.models import Place
from .config import DEFAULT_WEIGHTS, ScoringWeights
from .models import ScoreBreakdown, ScoredPlace

# No user origin is known, so every place gets the same distance sub-score.
NEUTRAL_DISTANCE_SCORE = 0.5
NEUTRAL_SCORE = 0.5

_FEATURE_BONUSES: dict[str, float] = {
    "date_ok": 0.15,
    "quiet": 0.1,
    "solo_ok": 0.1,
    "reservation": 0.05,
}


def _place_text(place: Place) -> str:
    parts = [t.lower() for t in place.tags]
    parts.append((place.memo or "").lower())
    parts.append((place.short_desc or "").lower())
    return " ".join(parts)


def vibe_match_score(place: Place, vibes: list[str]) -> float:
    """Fraction of requested vibes mentioned by the place's tags or copy."""
    if not vibes:
        return NEUTRAL_SCORE
    text = _place_text(place)
    matches = sum(1 for vibe in vibes if vibe.lower() in text)
    return matches / len(vibes)


def activity_match_score(place: Place, activity_type: str | None) -> float:
    if not activity_type:
        return NEUTRAL_SCORE
    needle = activity_type.lower()
    category = f"{place.category_main or ''} {place.category_sub or ''}".lower()
    if needle in category:
        return 1.0
    if needle in " ".join(place.tags).lower():
        return 0.7
    return 0.1


def popularity_score(place: Place) -> float:
    return max(0.0, min(1.0, (place.rating or 0.0) / 5.0))


def jjeop_level_score(place: Place) -> float:
    """Curation confidence from the curated feature flags."""
    score = 0.5
    for feature, bonus in _FEATURE_BONUSES.items():
        if place.features.get(feature):
            score += bonus
    return min(1.0, score)


def seasonal_score(place: Place, season: str | None) -> float:
    activity_text = f"{place.category_main or ''} {place.category_sub or ''}"
    return NEUTRAL_SCORE + season_boost(season, place.tags, activity_text)


def score_place(place: Place, intent: Intent, weights: ScoringWeights = DEFAULT_WEIGHTS) -> ScoredPlace:
    breakdown = ScoreBreakdown(
        vibe_match=vibe_match_score(place, intent.vibe),
        distance=NEUTRAL_DISTANCE_SCORE,
        jjeop_level=jjeop_level_score(place),
        popularity=popularity_score(place),
        season=seasonal_score(place, intent.season),
        activity_match=activity_match_score(place, intent.activity_type),
    )
    score = (
        weights.vibe_match * breakdown.vibe_match
        + weights.distance * breakdown.distance
        + weights.jjeop_level * breakdown.jjeop_level
        + weights.popularity * breakdown.popularity
        + weights.season * breakdown.season
        + weights.activity_match * breakdown.activity_match
    )
    return ScoredPlace(
        **place.model_dump(),
        score=max(0.0, min(1.0, score)),
        score_breakdown=breakdown,
    )


def score_places(
    places: list[Place],
    intent: Intent,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> list[ScoredPlace]:
    """Score every place and sort by score, keeping retrieval order on ties."""
    scored = [score_place(place, intent, weights) for place in places]
    # list.sort is stable, so equal scores keep the rating-desc retrieval order.
    scored.sort(key=lambda p: p.score, reverse=True)
    return scored
