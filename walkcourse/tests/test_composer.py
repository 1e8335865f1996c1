from itertools import combinations

import pytest

from walkcourse.places.buckets import classify_place
from walkcourse.places.models import ActivityBucket
from walkcourse.recommendations.composer import (
    PickOutcome,
    build_course,
    build_course_steps,
    build_courses,
    desired_buckets,
    pick_diverse_steps,
    place_set_key,
    satisfies_buckets,
)
from walkcourse.recommendations.difficulty import EASY, HARD, MEDIUM, difficulty_for, difficulty_label
from walkcourse.recommendations.distance import walking_distance_m
from walkcourse.recommendations.models import ScoreBreakdown, ScoredPlace
from walkcourse.recommendations.modes import mode_from_people_count, plan_mode

CATEGORY_BY_BUCKET = {
    "food": "밥",
    "cafe": "카페",
    "attraction": "전시/문화",
}

BREAKDOWN = ScoreBreakdown(
    vibe_match=0.5, distance=0.5, jjeop_level=0.5, popularity=0.5, season=0.5, activity_match=0.5,
)

DATE_MODE = plan_mode(2)


def _scored(pid: str, bucket: str, score: float, lat: float, lon: float = 127.0) -> ScoredPlace:
    return ScoredPlace(
        id=pid,
        name=pid,
        lat=lat,
        lon=lon,
        category_main=CATEGORY_BY_BUCKET[bucket],
        score=score,
        score_breakdown=BREAKDOWN,
    )


def _spaced(specs: list[tuple[str, str, float]], step_deg: float = 0.002) -> list[ScoredPlace]:
    """Places on a north-south line, ~290 m apart by default."""
    return [_scored(pid, bucket, score, 37.5 + i * step_deg) for i, (pid, bucket, score) in enumerate(specs)]


def _has_attraction(course) -> bool:
    return any(classify_place(step.place) == ActivityBucket.attraction for step in course.steps)


# ── Modes & difficulty ───────────────────────────────────────────────────


def test_mode_from_people_count():
    assert [mode_from_people_count(n) for n in (1, 2, 3, 5, 6, 10)] == [
        "solo", "date", "group", "group", "party", "party",
    ]


def test_plan_mode_steps_and_labels():
    assert plan_mode(1).steps == 2
    assert plan_mode(2).labels == ["시작", "메인", "마무리"]
    party = plan_mode(2, "party")
    assert party.mode == "party"
    assert party.steps == 4


@pytest.mark.parametrize(
    "distance, expected",
    [(0, EASY), (799, EASY), (800, MEDIUM), (1800, MEDIUM), (1801, HARD)],
)
def test_difficulty_boundaries(distance, expected):
    assert difficulty_for(distance) == expected


def test_difficulty_labels():
    assert difficulty_label(EASY) == "쉬움"
    assert difficulty_label(HARD) == "도전"


# ── Bucket mix ───────────────────────────────────────────────────────────


def test_desired_buckets_table():
    assert desired_buckets(3, "맛집") == [ActivityBucket.food, ActivityBucket.attraction]
    assert desired_buckets(3, "카페") == [ActivityBucket.cafe, ActivityBucket.attraction]
    assert desired_buckets(3, "볼거리") == [ActivityBucket.attraction, ActivityBucket.cafe]
    assert desired_buckets(2, None) == [ActivityBucket.food, ActivityBucket.attraction]
    assert desired_buckets(2, "볼거리") == [ActivityBucket.attraction, ActivityBucket.cafe]


def test_satisfies_buckets_waiver_and_partial():
    desired = [ActivityBucket.food, ActivityBucket.attraction]
    food_only = [ActivityBucket.food, ActivityBucket.food]
    assert not satisfies_buckets(food_only, desired)
    assert satisfies_buckets(food_only, desired, require_attraction=False)
    assert not satisfies_buckets([ActivityBucket.attraction], desired, allow_partial=True)
    two_attractions = [ActivityBucket.attraction, ActivityBucket.attraction]
    assert satisfies_buckets([ActivityBucket.attraction], two_attractions, allow_partial=True)
    assert not satisfies_buckets([ActivityBucket.attraction], two_attractions)


# ── Composition ──────────────────────────────────────────────────────────


def test_mixed_pool_courses_include_attraction():
    pool = _spaced([
        ("food-1", "food", 0.99),
        ("cafe-1", "cafe", 0.95),
        ("attr-1", "attraction", 0.93),
        ("food-2", "food", 0.90),
    ])

    courses = build_courses(pool, DATE_MODE, ["감성"], "맛집", count=4)

    assert courses
    for course in courses:
        assert len(course.steps) == 3
        assert "attr-1" in course.place_ids()


def test_food_only_pool_yields_single_attraction_free_course():
    pool = _spaced([(f"food-{i}", "food", 0.9 - i * 0.01) for i in range(4)])

    courses = build_courses(pool, DATE_MODE, [], "맛집", count=4)

    assert len(courses) == 1
    assert len(courses[0].steps) == 3
    assert not _has_attraction(courses[0])


def test_clustered_pool_falls_back_to_top_scored():
    # All four places sit within a few meters of each other.
    pool = [_scored(f"food-{i}", "food", 0.9 - i * 0.01, 37.5 + i * 0.00001) for i in range(4)]

    result = pick_diverse_steps(pool, 3, primary_activity="맛집")

    assert result.outcome == PickOutcome.degraded
    assert [p.id for p in result.places] == ["food-0", "food-1", "food-2"]
    assert len(build_courses(pool, DATE_MODE, [], "맛집", count=4)) == 1


def test_no_course_when_fallback_already_used():
    pool = [_scored(f"food-{i}", "food", 0.9, 37.5) for i in range(3)]
    used = {place_set_key(["food-0", "food-1", "food-2"])}

    result = pick_diverse_steps(pool, 3, used_keys=used)

    assert result.outcome == PickOutcome.no_course
    assert result.places == []


def test_pool_smaller_than_steps_gives_one_short_course():
    pool = _spaced([("food-1", "food", 0.9), ("attr-1", "attraction", 0.8)])

    courses = build_courses(pool, DATE_MODE, [], "맛집", count=4)

    assert len(courses) == 1
    assert courses[0].place_ids() == ["food-1", "attr-1"]


def test_empty_pool_gives_no_courses():
    assert build_courses([], DATE_MODE, [], None) == []


def test_courses_are_distinct_and_spaced():
    buckets = ["food", "attraction", "cafe"] * 6
    pool = _spaced([(f"p{i}", bucket, 1.0 - i * 0.01) for i, bucket in enumerate(buckets)])

    courses = build_courses(pool, DATE_MODE, [], "맛집", count=4)

    assert len(courses) == 4
    keys = {place_set_key(c.place_ids()) for c in courses}
    assert len(keys) == 4
    for course in courses:
        assert len(course.steps) == 3
        assert _has_attraction(course)
        for a, b in combinations(course.steps, 2):
            assert walking_distance_m(a.place.lat, a.place.lon, b.place.lat, b.place.lon) >= 100


def test_spacing_rule_skips_close_candidates():
    pool = [
        _scored("food-1", "food", 0.99, 37.5),
        _scored("attr-near", "attraction", 0.98, 37.5003),
        _scored("attr-far", "attraction", 0.97, 37.502),
        _scored("cafe-far", "cafe", 0.96, 37.504),
    ]

    result = pick_diverse_steps(pool, 3, primary_activity="맛집")

    assert result.outcome == PickOutcome.success
    assert [p.id for p in result.places] == ["food-1", "attr-far", "cafe-far"]


def test_course_fields():
    pool = _spaced([("a", "food", 0.9), ("b", "attraction", 0.7), ("c", "cafe", 0.5)])

    course = build_course(pool, DATE_MODE, ["감성"], course_id=7)

    assert course.id == 7
    assert course.mode == "date"
    assert course.vibes == ["감성"]
    assert [s.label for s in course.steps] == ["시작", "메인", "마무리"]
    assert course.steps[0].distance_from_prev is None
    assert all(isinstance(s.distance_from_prev, int) for s in course.steps[1:])
    assert course.total_distance == sum(s.distance_from_prev for s in course.steps[1:])
    assert course.difficulty == difficulty_for(course.total_distance)
    assert course.total_score == pytest.approx(0.7)


def test_step_labels_fall_back_to_numbered():
    pool = _spaced([("a", "food", 0.9), ("b", "attraction", 0.8), ("c", "cafe", 0.7)])
    steps = build_course_steps(pool, ["첫번째"])
    assert [s.label for s in steps] == ["첫번째", "Step 2", "Step 3"]
