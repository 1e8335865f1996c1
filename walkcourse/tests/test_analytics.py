from __future__ import annotations

from walkcourse.analytics.aggregator import compute_stats
from walkcourse.analytics.store import clear_events, get_events, record_event


def _search(**kwargs) -> dict:
    event = {"type": "search", "created_at": "2026-10-17T14:05:00+00:00", "total_ms": 100}
    event.update(kwargs)
    return event


def test_stats_empty():
    body = compute_stats([])
    assert body["total_searches"] == 0
    assert body["top_regions"] == []
    assert body["parse_error_rate"] == 0.0
    assert body["avg_walking_distance"] == 0
    assert body["weekday_vs_weekend"] == {"weekday": 0, "weekend": 0}


def test_stats_distributions():
    events = [
        _search(region="강남", mode="date", response_type="course", season="가을", vibe=["감성", "야경"]),
        _search(region="강남", mode="solo", activity_type="카페", vibe=["감성"], parse_error_fields=["region"]),
        _search(region=None, activity_type="카페", created_at="2026-10-19T09:00:00+00:00", total_ms=300),
    ]

    body = compute_stats(events)

    assert body["total_searches"] == 3
    assert body["top_regions"] == [{"region": "강남", "count": 2}, {"region": "미지정", "count": 1}]
    assert {"type": "single", "count": 2} in body["response_type_distribution"]
    assert body["top_activity_types"] == [{"activity": "카페", "count": 2}]
    assert body["top_vibes"][0] == {"vibe": "감성", "count": 2}
    assert body["parse_error_rate"] == 33.3
    assert body["avg_response_time_ms"] == 166.7
    # 2026-10-17 is a Saturday, 2026-10-19 a Monday.
    assert body["weekday_vs_weekend"] == {"weekday": 1, "weekend": 2}
    assert body["hour_distribution"] == [{"hour": 9, "count": 1}, {"hour": 14, "count": 2}]


def test_stats_selections():
    events = [
        {"type": "selection", "selected_place_name": "국밥집", "regenerate_count": 1,
         "selected_course": {"totalDistance": 900}},
        {"type": "selection", "selected_place_name": "국밥집", "regenerate_count": 3,
         "selected_course": {"totalDistance": 1500}},
        {"type": "selection", "selected_place_name": None, "regenerate_count": 0},
    ]

    body = compute_stats(events)

    assert body["total_searches"] == 0
    assert body["top_selected_places"] == [{"name": "국밥집", "count": 2}]
    assert body["avg_walking_distance"] == 1200
    assert body["avg_regenerate_count"] == 1.33


def test_event_store_records_and_clears():
    clear_events()
    record_event("search", {"region": "강남"})
    events = get_events()
    assert len(events) == 1
    assert events[0]["type"] == "search"
    assert "created_at" in events[0]
    clear_events()
    assert get_events() == []
