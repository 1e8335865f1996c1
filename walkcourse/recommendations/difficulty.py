from __future__ import annotations

EASY = "★☆☆"
MEDIUM = "★★☆"
HARD = "★★★"

_EASY_BELOW_M = 800
_MEDIUM_UP_TO_M = 1800

DIFFICULTY_LABELS: dict[str, str] = {
    EASY: "쉬움",
    MEDIUM: "보통",
    HARD: "도전",
}


def difficulty_for(total_distance_m: float) -> str:
    if total_distance_m < _EASY_BELOW_M:
        return EASY
    if total_distance_m <= _MEDIUM_UP_TO_M:
        return MEDIUM
    return HARD


def difficulty_label(difficulty: str) -> str:
    return DIFFICULTY_LABELS.get(difficulty, "")
