from __future__ import annotations

import logging

from ..intent.models import Intent
from .buckets import CAFE_CATEGORY_MAIN, matches_activity
from .models import Place
from .store import PlaceQuery, PlaceStore

logger = logging.getLogger(__name__)

# Broad labels that should not narrow the category query.
GENERIC_ACTIVITY_TYPES: frozenset[str] = frozenset({
    "맛집", "추천", "밥", "식사", "먹을곳", "음식점", "산책", "놀곳",
})
SPECIFIC_CATEGORIES: tuple[str, ...] = (
    "밥", "면", "국물", "고기요리", "해산물", "간편식", "양식·퓨전", "디저트", "카페", "술안주",
)
MEAL_CONTEXTS: tuple[str, ...] = ("점심", "저녁", "식사", "밥")


def is_specific_category(activity_type: str) -> bool:
    if activity_type in GENERIC_ACTIVITY_TYPES:
        return False
    return any(cat in activity_type or activity_type in cat for cat in SPECIFIC_CATEGORIES)


def is_meal_context(intent: Intent) -> bool:
    context = intent.special_context or ""
    return any(
        ctx in context or any(ctx in vibe for vibe in intent.vibe)
        for ctx in MEAL_CONTEXTS
    )


def build_place_query(intent: Intent) -> PlaceQuery:
    category = None
    if intent.activity_type and is_specific_category(intent.activity_type):
        category = intent.activity_type

    exclude = None
    wants_cafe = bool(intent.activity_type and CAFE_CATEGORY_MAIN in intent.activity_type)
    if is_meal_context(intent) and not wants_cafe:
        exclude = CAFE_CATEGORY_MAIN

    return PlaceQuery(region=intent.region, category=category, exclude_category_main=exclude)


def retrieve_places(store: PlaceStore, intent: Intent) -> list[Place]:
    """Fetch rating-ordered candidates and keep only matching activity buckets."""
    query = build_place_query(intent)
    rows = store.query(query)
    places = [place for place in rows if matches_activity(place, intent.activity_type)]
    logger.debug(
        "Retrieved %d/%d places for region=%s activity=%s",
        len(places), len(rows), intent.region, intent.activity_type,
    )
    return places
