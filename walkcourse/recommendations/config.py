from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ScoringWeights:
    vibe_match: float = 0.30
    distance: float = 0.15
    jjeop_level: float = 0.15
    popularity: float = 0.15
    season: float = 0.10
    activity_match: float = 0.15


DEFAULT_WEIGHTS = ScoringWeights()

MODE_STEP_MAP: dict[str, int] = {
    "solo": 2,
    "date": 3,
    "group": 3,
    "party": 4,
}

MODE_LABELS: dict[str, list[str]] = {
    "solo": ["탐색", "마무리"],
    "date": ["시작", "메인", "마무리"],
    "group": ["집합", "메인", "마무리"],
    "party": ["저녁", "2차", "3차", "마무리"],
}


@dataclass(frozen=True)
class CompositionConfig:
    max_attempts: int = 20
    offset_stride: int = 2
    min_spacing_m: float = 100.0


DEFAULT_COMPOSITION_CONFIG = CompositionConfig()

SINGLE_RESULT_COUNT = 5
COURSE_RESULT_COUNT = 4
MAX_EXCLUDE_PLACE_IDS = 50
