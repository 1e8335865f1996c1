"""
Course composition.

Turns a score-sorted place pool into up to N multi-stop walking courses.
Each course is picked by a bounded greedy search that keeps stops at
least ``min_spacing_m`` apart, honours a per-step-count activity mix, and
never repeats a place set already used in the same call. When the search
gives up, the top-scored places are tried as a relaxed fallback.

The composer is a pure function of its inputs; it never raises for an
unsatisfiable pool and may return fewer courses than requested.
"""
from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Sequence

import numpy as np

from ..places.buckets import bucket_for_activity, classify_place
from ..places.models import ActivityBucket
from .config import DEFAULT_COMPOSITION_CONFIG, CompositionConfig
from .difficulty import difficulty_for
from .distance import walking_distance_m, walking_distance_matrix
from .models import Course, CourseStep, ScoredPlace
from .modes import ModeConfig

logger = logging.getLogger(__name__)

PlaceSetKey = frozenset


class PickOutcome(str, Enum):
    success = "success"
    degraded = "degraded-fallback"
    no_course = "no-course"


@dataclass(frozen=True)
class PickResult:
    outcome: PickOutcome
    places: list[ScoredPlace] = field(default_factory=list)


def place_set_key(place_ids: Iterable[str]) -> PlaceSetKey:
    """Order-independent identity of a course."""
    return frozenset(place_ids)


# ---------------------------------------------------------------------------
# Activity mix
# ---------------------------------------------------------------------------


def desired_buckets(step_count: int, primary_activity: str | None) -> list[ActivityBucket]:
    primary = bucket_for_activity(primary_activity)
    food, cafe, attraction = ActivityBucket.food, ActivityBucket.cafe, ActivityBucket.attraction

    if step_count <= 1:
        return [primary]
    if step_count == 2:
        return [attraction, cafe] if primary == attraction else [primary, attraction]
    if primary == cafe:
        return [cafe, attraction]
    if primary == attraction:
        return [attraction, cafe]
    return [food, attraction]


def satisfies_buckets(
    picked: Sequence[ActivityBucket],
    desired: Sequence[ActivityBucket],
    allow_partial: bool = False,
    require_attraction: bool = True,
) -> bool:
    """Check the picked bucket multiset against the desired one.

    ``require_attraction=False`` waives the attraction slot entirely (the
    pool has none). ``allow_partial`` accepts a single attraction where more
    were asked for; other buckets must always be fully met.
    """
    have = Counter(picked)
    for bucket, need in Counter(desired).items():
        if bucket == ActivityBucket.attraction and not require_attraction:
            continue
        if have[bucket] >= need:
            continue
        if allow_partial and bucket == ActivityBucket.attraction and have[bucket] > 0:
            continue
        return False
    return True


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


class _Pool:
    """Score-sorted candidates with their buckets and pairwise distances."""

    def __init__(self, places: Sequence[ScoredPlace]) -> None:
        self.places = list(places)
        self.buckets = [classify_place(p) for p in self.places]
        self.distances = walking_distance_matrix(
            [p.lat for p in self.places], [p.lon for p in self.places],
        ) if self.places else np.zeros((0, 0))
        self.has_attraction = ActivityBucket.attraction in self.buckets

    def __len__(self) -> int:
        return len(self.places)

    def key(self, indices: Sequence[int]) -> PlaceSetKey:
        return place_set_key(self.places[i].id for i in indices)


def _greedy_pick(pool: _Pool, start: int, needed: int, min_spacing_m: float) -> list[int]:
    picked = [start]
    for i in range(start + 1, len(pool)):
        if len(picked) >= needed:
            break
        if all(pool.distances[p, i] >= min_spacing_m for p in picked):
            picked.append(i)
    return picked


def _pick(
    pool: _Pool,
    needed: int,
    used_keys: set[PlaceSetKey],
    primary_activity: str | None,
    config: CompositionConfig,
) -> PickResult:
    desired = desired_buckets(needed, primary_activity)

    for attempt in range(config.max_attempts):
        offset = attempt * config.offset_stride
        if offset >= len(pool):
            break
        picked = _greedy_pick(pool, offset, needed, config.min_spacing_m)
        if len(picked) != needed:
            continue
        buckets = [pool.buckets[i] for i in picked]
        if not satisfies_buckets(buckets, desired, require_attraction=pool.has_attraction):
            continue
        if pool.key(picked) in used_keys:
            continue
        return PickResult(PickOutcome.success, [pool.places[i] for i in picked])

    fallback = list(range(min(needed, len(pool))))
    if len(fallback) == needed and pool.key(fallback) not in used_keys:
        buckets = [pool.buckets[i] for i in fallback]
        if satisfies_buckets(buckets, desired, allow_partial=True, require_attraction=pool.has_attraction):
            return PickResult(PickOutcome.degraded, [pool.places[i] for i in fallback])

    return PickResult(PickOutcome.no_course)


def pick_diverse_steps(
    places: Sequence[ScoredPlace],
    needed: int,
    used_keys: set[PlaceSetKey] | None = None,
    primary_activity: str | None = None,
    config: CompositionConfig = DEFAULT_COMPOSITION_CONFIG,
) -> PickResult:
    """Pick one spaced, bucket-balanced step sequence from a sorted pool."""
    return _pick(_Pool(places), needed, used_keys or set(), primary_activity, config)


# ---------------------------------------------------------------------------
# Course assembly
# ---------------------------------------------------------------------------


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def build_course_steps(places: Sequence[ScoredPlace], labels: Sequence[str]) -> list[CourseStep]:
    steps: list[CourseStep] = []
    for i, place in enumerate(places):
        distance = None
        if i > 0:
            prev = places[i - 1]
            distance = _round_half_up(walking_distance_m(prev.lat, prev.lon, place.lat, place.lon))
        label = labels[i] if i < len(labels) else f"Step {i + 1}"
        steps.append(CourseStep(label=label, place=place, distance_from_prev=distance))
    return steps


def build_course(
    places: Sequence[ScoredPlace],
    mode_config: ModeConfig,
    vibes: Sequence[str],
    course_id: int,
) -> Course:
    steps = build_course_steps(places, mode_config.labels)
    total_distance = sum(step.distance_from_prev or 0 for step in steps)
    return Course(
        id=course_id,
        steps=steps,
        total_distance=total_distance,
        difficulty=difficulty_for(total_distance),
        mode=mode_config.mode,
        vibes=list(vibes),
        total_score=sum(p.score for p in places) / len(places),
    )


def build_courses(
    scored_places: Sequence[ScoredPlace],
    mode_config: ModeConfig,
    vibes: Sequence[str],
    primary_activity: str | None = None,
    count: int = 3,
    config: CompositionConfig = DEFAULT_COMPOSITION_CONFIG,
) -> list[Course]:
    """Compose up to *count* distinct courses from score-sorted places."""
    if not scored_places:
        return []

    if len(scored_places) < mode_config.steps:
        return [build_course(scored_places[:mode_config.steps], mode_config, vibes, 1)]

    pool = _Pool(scored_places)
    used_keys: set[PlaceSetKey] = set()
    courses: list[Course] = []

    for _ in range(count):
        result = _pick(pool, mode_config.steps, used_keys, primary_activity, config)
        if result.outcome == PickOutcome.no_course:
            # The pool and used set are unchanged, so later rounds would fail too.
            break
        if result.outcome == PickOutcome.degraded:
            logger.info("Course %d fell back to top-scored places", len(courses) + 1)
        courses.append(build_course(result.places, mode_config, vibes, len(courses) + 1))
        used_keys.add(place_set_key(p.id for p in result.places))

    return courses
