from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import Any

UNSPECIFIED = "미지정"


def _ranked(counter: Counter[str], key: str, top: int | None = None) -> list[dict[str, Any]]:
    return [{key: name, "count": count} for name, count in counter.most_common(top)]


def _parse_time(value: Any) -> datetime | None:
    if not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def compute_stats(events: list[dict[str, Any]]) -> dict[str, Any]:
    """Summarise recorded search and selection events."""
    searches = [e for e in events if e["type"] == "search"]
    selections = [e for e in events if e["type"] == "selection"]
    total = len(searches)

    regions: Counter[str] = Counter()
    modes: Counter[str] = Counter()
    response_types: Counter[str] = Counter()
    seasons: Counter[str] = Counter()
    activities: Counter[str] = Counter()
    vibes: Counter[str] = Counter()
    hours: Counter[int] = Counter()
    weekday = weekend = 0
    parse_error_count = 0

    for s in searches:
        regions[s.get("region") or UNSPECIFIED] += 1
        modes[s.get("mode") or UNSPECIFIED] += 1
        response_types[s.get("response_type") or "single"] += 1
        seasons[s.get("season") or UNSPECIFIED] += 1
        if s.get("activity_type"):
            activities[s["activity_type"]] += 1
        for v in s.get("vibe") or []:
            vibes[v] += 1
        if s.get("parse_error_fields"):
            parse_error_count += 1

        created = _parse_time(s.get("created_at"))
        if created is not None:
            hours[created.hour] += 1
            if created.weekday() >= 5:
                weekend += 1
            else:
                weekday += 1

    # Selections
    selected_places: Counter[str] = Counter()
    regenerate_total = 0
    distances: list[int] = []
    for sel in selections:
        if sel.get("selected_place_name"):
            selected_places[sel["selected_place_name"]] += 1
        regenerate_total += sel.get("regenerate_count") or 0
        course = sel.get("selected_course") or {}
        distance = course.get("totalDistance") or course.get("total_distance")
        if distance:
            distances.append(distance)

    # Timing
    times = [s["total_ms"] for s in searches if "total_ms" in s]

    return {
        "total_searches": total,
        "top_regions": _ranked(regions, "region", 5),
        "mode_distribution": _ranked(modes, "mode"),
        "response_type_distribution": _ranked(response_types, "type"),
        "season_distribution": _ranked(seasons, "season"),
        "top_activity_types": _ranked(activities, "activity", 5),
        "top_vibes": _ranked(vibes, "vibe", 10),
        "top_selected_places": _ranked(selected_places, "name", 5),
        "hour_distribution": [{"hour": h, "count": c} for h, c in sorted(hours.items())],
        "weekday_vs_weekend": {"weekday": weekday, "weekend": weekend},
        "parse_error_rate": round(parse_error_count / total * 100, 1) if total else 0.0,
        "avg_regenerate_count": round(regenerate_total / len(selections), 2) if selections else 0.0,
        "avg_walking_distance": round(sum(distances) / len(distances)) if distances else 0,
        "avg_response_time_ms": round(sum(times) / len(times), 1) if times else 0.0,
    }
