"""
Saved-course reuse.

Previously saved courses that fit the current intent are offered ahead of
freshly composed ones. Candidate rows are scored against the intent,
rehydrated into ``Course`` objects (malformed rows are dropped), ranked,
deduplicated by place set and merged with the generated courses.

Usage bookkeeping for reused courses runs off the request path and logs
to its own channel; its failures never reach the caller.
"""
from __future__ import annotations

import hashlib
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Sequence

from pydantic import ValidationError

from ..intent.models import Intent
from ..places.store import PlaceStore
from ..recommendations.composer import PlaceSetKey, place_set_key
from ..recommendations.difficulty import difficulty_for
from ..recommendations.models import Course
from .config import DEFAULT_SAVED_COURSE_CONFIG
from .store import SavedCourseRow, SavedCourseStore, SavedCourseStoreError

logger = logging.getLogger(__name__)
usage_logger = logging.getLogger("walkcourse.saved_courses.usage")

_usage_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="course-usage")

REGION_MATCH = 4.0
ACTIVITY_MATCH = 3.0
SEASON_MATCH = 2.0
MODE_MATCH = 1.0
PEOPLE_MATCH = 1.0
VIBE_MATCH = 1.5
USAGE_WEIGHT = 0.1
USAGE_CAP = 2.0


@dataclass(frozen=True)
class ReusableCourse:
    row_id: str
    hash: str
    usage_count: int
    course: Course


@dataclass(frozen=True)
class CourseValidationResult:
    is_valid: bool
    reason: str | None
    place_ids: list[str]


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


def calc_reuse_score(row: SavedCourseRow, intent: Intent) -> float:
    score = 0.0
    if row.region and row.region == intent.region:
        score += REGION_MATCH
    if row.activity_type and row.activity_type == intent.activity_type:
        score += ACTIVITY_MATCH
    if row.season and row.season == intent.season:
        score += SEASON_MATCH
    if row.mode and row.mode == intent.mode:
        score += MODE_MATCH
    if (
        row.people_count is not None
        and intent.people_count is not None
        and abs(row.people_count - intent.people_count) <= 1
    ):
        score += PEOPLE_MATCH

    overlap = set(row.vibe or []) & set(intent.vibe)
    score += len(overlap) * VIBE_MATCH
    score += min(USAGE_CAP, (row.usage_count or 0) * USAGE_WEIGHT)
    return score


# ---------------------------------------------------------------------------
# Rehydration
# ---------------------------------------------------------------------------


def _step_place_id(step: Any) -> str | None:
    if not isinstance(step, dict):
        return None
    place = step.get("place")
    if not isinstance(place, dict):
        return None
    place_id = place.get("id")
    return place_id if isinstance(place_id, str) and place_id else None


def _has_valid_structure(data: Any) -> bool:
    if not isinstance(data, dict):
        return False
    steps = data.get("steps")
    if not isinstance(steps, list) or len(steps) < 2:
        return False
    return all(_step_place_id(step) is not None for step in steps)


def rehydrate_course(data: Any, row: SavedCourseRow | None = None) -> Course | None:
    """Turn stored ``course_data`` back into a ``Course``, or ``None`` if malformed.

    Summary fields a client may have left out (id, totals, difficulty) are
    recomputed from the steps; step places must still be complete.
    """
    if not _has_valid_structure(data):
        return None

    payload = dict(data)
    steps = payload["steps"]
    if "totalDistance" not in payload and "total_distance" not in payload:
        payload["totalDistance"] = sum(
            int(s.get("distanceFromPrev") or s.get("distance_from_prev") or 0) for s in steps
        )
    total = payload.get("totalDistance", payload.get("total_distance"))
    payload.setdefault("id", 0)
    payload.setdefault("difficulty", difficulty_for(total or 0))
    if "mode" not in payload:
        payload["mode"] = (row.mode if row else None) or ""
    if "vibes" not in payload and row is not None:
        payload["vibes"] = row.vibe or []
    if "totalScore" not in payload and "total_score" not in payload:
        scores = [float(s["place"].get("score") or 0.0) for s in steps]
        payload["totalScore"] = sum(scores) / len(scores)

    try:
        return Course.model_validate(payload)
    except ValidationError:
        logger.debug("Dropping saved course with unusable step data", exc_info=True)
        return None


# ---------------------------------------------------------------------------
# Matching and merging
# ---------------------------------------------------------------------------


def get_reusable_courses(
    store: SavedCourseStore,
    intent: Intent,
    limit: int = 3,
) -> list[ReusableCourse]:
    """Rank saved courses against *intent* and return the best distinct ones."""
    try:
        rows = store.fetch_candidates(DEFAULT_SAVED_COURSE_CONFIG.candidate_limit)
    except (SavedCourseStoreError, ValidationError) as exc:
        logger.warning("Saved-course fetch failed: %s", exc)
        return []

    scored: list[tuple[float, int, SavedCourseRow, Course]] = []
    for row in rows:
        course = rehydrate_course(row.course_data, row)
        if course is None:
            continue
        score = calc_reuse_score(row, intent)
        if score < DEFAULT_SAVED_COURSE_CONFIG.min_reuse_score:
            continue
        scored.append((score, row.usage_count or 0, row, course))

    scored.sort(key=lambda item: (item[0], item[1]), reverse=True)

    seen: set[PlaceSetKey] = set()
    reused: list[ReusableCourse] = []
    for _, usage, row, course in scored:
        key = place_set_key(course.place_ids())
        if key in seen:
            continue
        seen.add(key)
        reused.append(ReusableCourse(row_id=row.id, hash=row.course_hash, usage_count=usage, course=course))
        if len(reused) >= limit:
            break
    return reused


def merge_courses(reused: Sequence[Course], generated: Sequence[Course], limit: int) -> list[Course]:
    """Reused courses first, then generated, distinct by place set, ids renumbered."""
    seen: set[PlaceSetKey] = set()
    merged: list[Course] = []
    for course in [*reused, *generated]:
        key = place_set_key(course.place_ids())
        if key in seen:
            continue
        seen.add(key)
        merged.append(course.model_copy(update={"id": len(merged) + 1}))
        if len(merged) >= limit:
            break
    return merged


# ---------------------------------------------------------------------------
# Usage bookkeeping
# ---------------------------------------------------------------------------


def touch_reused_courses(store: SavedCourseStore, courses: Sequence[ReusableCourse]) -> None:
    for course in courses:
        try:
            store.increment_usage(course.row_id)
        except Exception:
            usage_logger.warning("Usage update failed for saved course %s", course.row_id, exc_info=True)


def dispatch_usage_update(
    store: SavedCourseStore,
    courses: Sequence[ReusableCourse],
    executor: ThreadPoolExecutor | None = None,
) -> Future | None:
    """Schedule usage bookkeeping without waiting for it."""
    if not courses:
        return None
    try:
        return (executor or _usage_executor).submit(touch_reused_courses, store, list(courses))
    except RuntimeError:
        usage_logger.warning("Usage update could not be scheduled", exc_info=True)
        return None


# ---------------------------------------------------------------------------
# Saving
# ---------------------------------------------------------------------------


def validate_course_data(data: Any) -> CourseValidationResult:
    if not _has_valid_structure(data):
        return CourseValidationResult(False, "invalid_course_structure", [])

    place_ids = list(dict.fromkeys(_step_place_id(step) for step in data["steps"]))
    if len(place_ids) < 2:
        return CourseValidationResult(False, "at_least_two_unique_places_required", place_ids)
    return CourseValidationResult(True, None, place_ids)


def verify_course_places_exist(place_store: PlaceStore, place_ids: list[str]) -> CourseValidationResult:
    if not place_ids:
        return CourseValidationResult(False, "no_place_ids", [])
    found = place_store.existing_ids(place_ids)
    missing = [pid for pid in place_ids if pid not in found]
    if missing:
        return CourseValidationResult(False, f"missing_place_ids:{','.join(missing)}", place_ids)
    return CourseValidationResult(True, None, place_ids)


def course_hash(ordered_place_ids: Sequence[str]) -> str:
    key = "|".join(ordered_place_ids)
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def save_course(
    store: SavedCourseStore,
    course_data: dict[str, Any],
    intent: Intent | None = None,
    query: str | None = None,
    place_store: PlaceStore | None = None,
) -> str:
    """Validate and upsert a course; return its content hash.

    Raises ``ValueError`` for structurally invalid courses. Courses whose
    places are missing from *place_store* are still stored, flagged
    ``invalid`` so they are never reused.
    """
    result = validate_course_data(course_data)
    if not result.is_valid:
        raise ValueError(result.reason)

    ordered_ids = [_step_place_id(step) for step in course_data["steps"]]
    digest = course_hash(ordered_ids)

    status, reason = "verified", None
    if place_store is not None:
        existence = verify_course_places_exist(place_store, result.place_ids)
        if not existence.is_valid:
            status, reason = "invalid", existence.reason

    values: dict[str, Any] = {
        "course_data": course_data,
        "source_query": query,
        "place_ids": result.place_ids,
        "response_type": "course",
        "validation_status": status,
        "validation_reason": reason,
    }
    if intent is not None:
        values.update({
            "region": intent.region,
            "activity_type": intent.activity_type,
            "vibe": list(intent.vibe),
            "season": intent.season,
            "people_count": intent.people_count,
            "mode": intent.mode,
        })

    store.upsert(digest, values)
    logger.info("Saved course %s (%s)", digest, status)
    return digest
