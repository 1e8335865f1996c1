from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

_DATA_DIR = Path(__file__).resolve().parent.parent / "data" / "processed"


@dataclass(frozen=True)
class SavedCourseStoreConfig:
    json_path: Path = Path(
        os.getenv("WALKCOURSE_SAVED_COURSES_JSON", str(_DATA_DIR / "saved_courses.json"))
    )
    candidate_limit: int = 200
    min_reuse_score: float = 1.0


DEFAULT_SAVED_COURSE_CONFIG = SavedCourseStoreConfig()
