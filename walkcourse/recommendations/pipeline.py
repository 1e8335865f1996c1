"""
Recommendation pipeline.

Resolves the query intent, retrieves candidate places, scores them and,
for course requests, composes walking courses merged with reusable saved
ones. The result fills the ``RecommendResponse`` envelope together with
per-stage timings and advisory parse-error flags.
"""
from __future__ import annotations

import logging
import re
import time
from typing import Callable, Sequence

from ..analytics.store import record_event
from ..intent.models import Intent, IntentOverrides
from ..intent.resolver import resolve_intent
from ..llm.config import DEFAULT_LLM_CONFIG, LLMConfig
from ..places.buckets import classify_place
from ..places.models import ActivityBucket
from ..places.retriever import retrieve_places
from ..places.store import PlaceStore
from ..saved_courses.reuse import (
    ReusableCourse,
    dispatch_usage_update,
    get_reusable_courses,
    merge_courses,
)
from ..saved_courses.store import SavedCourseStore
from .composer import build_courses, place_set_key
from .config import COURSE_RESULT_COUNT, SINGLE_RESULT_COUNT
from .models import Course, RecommendRequest, RecommendResponse, ScoredPlace, Timing
from .modes import plan_mode
from .scoring import score_places

logger = logging.getLogger(__name__)

UsageDispatcher = Callable[[SavedCourseStore, Sequence[ReusableCourse]], object]

FEEDBACK_STOPWORDS: frozenset[str] = frozenset({
    "추천", "다시", "별로", "마음", "안", "그냥", "좀", "너무", "같아요", "같아", "입니다",
    "장소", "코스", "원해요", "원함", "좋아요", "싫어요", "싶어요", "찾고", "찾기",
})
FEEDBACK_HIT_PENALTY = 0.12
FEEDBACK_MAX_PENALTY = 0.45
_ROTATION_WINDOW = 3

_NON_WORD_RE = re.compile(r"[^\w\s]|_")


def _elapsed_ms(start: float) -> int:
    return int(round((time.perf_counter() - start) * 1000))


# ---------------------------------------------------------------------------
# Feedback re-ranking
# ---------------------------------------------------------------------------


def extract_feedback_keywords(feedback: str) -> list[str]:
    tokens = _NON_WORD_RE.sub(" ", feedback.lower()).split()
    return [t for t in tokens if len(t) >= 2 and t not in FEEDBACK_STOPWORDS]


def feedback_penalty(place: ScoredPlace, keywords: Sequence[str]) -> float:
    if not keywords:
        return 0.0
    text = " ".join([place.name, place.memo or "", place.short_desc or "", " ".join(place.tags)]).lower()
    hits = sum(1 for kw in keywords if kw in text)
    return min(FEEDBACK_MAX_PENALTY, hits * FEEDBACK_HIT_PENALTY)


def hash_text(text: str) -> int:
    """Stable 32-bit string hash (``h * 31 + c``), non-negative."""
    h = 0
    for ch in text:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def rerank_with_feedback(places: list[ScoredPlace], feedback: str | None) -> list[ScoredPlace]:
    """Penalise places echoing the complaint, then rotate the head of the list."""
    if not feedback:
        return places

    keywords = extract_feedback_keywords(feedback)
    rescored = [
        p.model_copy(update={"score": max(0.0, p.score - feedback_penalty(p, keywords))})
        for p in places
    ]
    rescored.sort(key=lambda p: p.score, reverse=True)

    if len(rescored) > 1:
        rotate_by = hash_text(feedback) % min(_ROTATION_WINDOW, len(rescored))
        if rotate_by:
            rescored = rescored[rotate_by:] + rescored[:rotate_by]
    return rescored


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------


def has_attraction_step(course: Course) -> bool:
    return any(classify_place(step.place) == ActivityBucket.attraction for step in course.steps)


def prefer_attraction_courses(
    pool: Sequence[ScoredPlace],
    reused: list[Course],
    generated: list[Course],
) -> tuple[list[Course], list[Course]]:
    """Drop attraction-free courses when the pool and at least one course allow it."""
    if not any(classify_place(p) == ActivityBucket.attraction for p in pool):
        return reused, generated
    reused_ok = [c for c in reused if has_attraction_step(c)]
    generated_ok = [c for c in generated if has_attraction_step(c)]
    if reused_ok or generated_ok:
        return reused_ok, generated_ok
    return reused, generated


def compose_courses(
    pool: list[ScoredPlace],
    intent: Intent,
    saved_store: SavedCourseStore | None,
    dispatch: UsageDispatcher | None = dispatch_usage_update,
) -> list[Course]:
    mode_config = plan_mode(intent.people_count or 2, intent.mode)
    generated = build_courses(
        pool,
        mode_config,
        intent.vibe,
        intent.activity_type,
        COURSE_RESULT_COUNT,
    )

    reusable = get_reusable_courses(saved_store, intent, COURSE_RESULT_COUNT) if saved_store else []
    reused, generated = prefer_attraction_courses(pool, [r.course for r in reusable], generated)
    courses = merge_courses(reused, generated, COURSE_RESULT_COUNT)

    returned = returned_reusable(reusable, reused, courses)
    if returned and saved_store is not None and dispatch is not None:
        dispatch(saved_store, returned)
    return courses


def returned_reusable(
    reusable: Sequence[ReusableCourse],
    kept: Sequence[Course],
    courses: Sequence[Course],
) -> list[ReusableCourse]:
    """Reusable courses that survived filtering and made it into ``courses``."""
    kept_keys = {place_set_key(c.place_ids()) for c in kept}
    returned_keys = kept_keys & {place_set_key(c.place_ids()) for c in courses}
    return [r for r in reusable if place_set_key(r.course.place_ids()) in returned_keys]


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def recommend(
    request: RecommendRequest,
    place_store: PlaceStore,
    saved_store: SavedCourseStore | None = None,
    llm_config: LLMConfig = DEFAULT_LLM_CONFIG,
    dispatch: UsageDispatcher | None = dispatch_usage_update,
) -> RecommendResponse:
    """Run one recommendation request end to end.

    ``PlaceStoreError`` propagates; LLM and saved-course failures degrade
    silently (see ``parse_errors`` and the logs).
    """
    start = time.perf_counter()

    llm_start = time.perf_counter()
    overrides = IntentOverrides(
        region=request.region,
        people_count=request.people_count,
        mode=request.mode,
        response_type=request.response_type,
    )
    result = resolve_intent(request.query, overrides, llm_config)
    intent, parse_errors = result.intent, result.parse_errors
    llm_ms = _elapsed_ms(llm_start)

    db_start = time.perf_counter()
    places = retrieve_places(place_store, intent)
    db_ms = _elapsed_ms(db_start)

    response_places: list[ScoredPlace] = []
    courses: list[Course] = []

    if places:
        excluded = set(request.exclude_place_ids)
        scored = [p for p in score_places(places, intent) if p.id not in excluded]
        ranked = rerank_with_feedback(scored, request.feedback)
        response_places = ranked[:SINGLE_RESULT_COUNT]
        if intent.response_type == "course":
            courses = compose_courses(ranked, intent, saved_store, dispatch)
    else:
        logger.info("No places matched region=%s activity=%s", intent.region, intent.activity_type)

    timing = Timing(llm_ms=llm_ms, db_ms=db_ms, total_ms=_elapsed_ms(start))
    record_event("search", {
        "raw_query": request.query,
        "response_type": intent.response_type,
        "region": intent.region,
        "mode": intent.mode,
        "season": intent.season,
        "activity_type": intent.activity_type,
        "vibe": list(intent.vibe),
        "people_count": intent.people_count,
        "parse_error_fields": list(parse_errors),
        "place_count": len(response_places),
        "course_count": len(courses),
        "total_ms": timing.total_ms,
    })

    return RecommendResponse(
        type=intent.response_type,
        places=response_places,
        courses=courses,
        intent=intent,
        parse_errors=parse_errors,
        timing=timing,
    )
