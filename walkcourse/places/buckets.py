from __future__ import annotations

from typing import Callable, Sequence

from .models import ActivityBucket, Place

FOOD_CATEGORY_MAINS: frozenset[str] = frozenset({
    "밥", "면", "국물", "고기요리", "해산물", "간편식", "양식·퓨전", "디저트", "술안주",
})
CAFE_CATEGORY_MAIN = "카페"

CAFE_HINTS: tuple[str, ...] = ("카페", "커피", "라떼", "카공", "브런치카페")
FOOD_HINTS: tuple[str, ...] = ("맛집", "식당", "밥", "요리", "국밥", "라멘", "파스타", "고기", "해산물")

BucketRule = tuple[Callable[[Place], bool], ActivityBucket]


def _search_text(place: Place) -> str:
    parts = [
        place.category_sub or "",
        " ".join(place.tags),
        place.memo or "",
        place.short_desc or "",
    ]
    return " ".join(parts).lower()


def _is_cafe(place: Place) -> bool:
    if (place.category_main or "").strip() == CAFE_CATEGORY_MAIN:
        return True
    text = _search_text(place)
    return any(hint in text for hint in CAFE_HINTS)


def _is_food(place: Place) -> bool:
    if (place.category_main or "").strip() in FOOD_CATEGORY_MAINS:
        return True
    text = _search_text(place)
    return any(hint in text for hint in FOOD_HINTS)


# Evaluated in order; a cafe memo often mentions food, so cafe must come first.
BUCKET_RULES: Sequence[BucketRule] = (
    (_is_cafe, ActivityBucket.cafe),
    (_is_food, ActivityBucket.food),
)
DEFAULT_BUCKET = ActivityBucket.attraction


def classify_place(place: Place, rules: Sequence[BucketRule] = BUCKET_RULES) -> ActivityBucket:
    for predicate, bucket in rules:
        if predicate(place):
            return bucket
    return DEFAULT_BUCKET


def matches_activity(place: Place, activity_type: str | None) -> bool:
    """``None`` means every bucket is acceptable."""
    if not activity_type:
        return True
    return classify_place(place).value == activity_type


def bucket_for_activity(activity_type: str | None) -> ActivityBucket:
    """Map an intent activity label onto the bucket used for composition."""
    if activity_type == ActivityBucket.cafe.value:
        return ActivityBucket.cafe
    if activity_type == ActivityBucket.attraction.value:
        return ActivityBucket.attraction
    return ActivityBucket.food
