from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Sequence

from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Request

from .analytics.aggregator import compute_stats
from .analytics.store import get_events, record_event
from .intent.cache import get_cache_stats
from .intent.models import VALID_MODES
from .intent.regions import ALL_AREAS
from .intent.season import SEASONS
from .llm.config import DEFAULT_LLM_CONFIG
from .places.store import PlaceStore, PlaceStoreError
from .recommendations.config import MODE_LABELS, MODE_STEP_MAP
from .recommendations.models import (
    RecommendRequest,
    RecommendResponse,
    SaveCourseRequest,
    SaveCourseResponse,
    SearchLogRequest,
)
from .recommendations.pipeline import recommend
from .saved_courses.reuse import ReusableCourse, save_course, touch_reused_courses
from .saved_courses.store import SavedCourseStore, SavedCourseStoreError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Datastore clients live for the whole process.
    if not hasattr(app.state, "place_store"):
        app.state.place_store = PlaceStore.from_csv()
    if not hasattr(app.state, "saved_store"):
        app.state.saved_store = SavedCourseStore.from_json()
    yield


app = FastAPI(title="Walking Course Recommendation API", version="0.1.0", lifespan=lifespan)


def get_place_store(request: Request) -> PlaceStore:
    return request.app.state.place_store


def get_saved_store(request: Request) -> SavedCourseStore:
    return request.app.state.saved_store


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/metadata")
def metadata(place_store: PlaceStore = Depends(get_place_store)) -> dict:
    return {
        "regions": list(ALL_AREAS),
        "place_regions": place_store.regions(),
        "modes": [
            {"mode": mode, "steps": MODE_STEP_MAP[mode], "labels": MODE_LABELS[mode]}
            for mode in VALID_MODES
        ],
        "seasons": list(SEASONS),
    }


@app.post("/recommend", response_model=RecommendResponse)
def recommend_endpoint(
    body: RecommendRequest,
    background: BackgroundTasks,
    place_store: PlaceStore = Depends(get_place_store),
    saved_store: SavedCourseStore = Depends(get_saved_store),
) -> RecommendResponse:
    def dispatch(store: SavedCourseStore, courses: Sequence[ReusableCourse]) -> None:
        # Runs after the response has been sent.
        background.add_task(touch_reused_courses, store, list(courses))

    try:
        return recommend(body, place_store, saved_store, DEFAULT_LLM_CONFIG, dispatch)
    except PlaceStoreError:
        logger.exception("Place retrieval failed")
        raise HTTPException(status_code=500, detail="Failed to fetch places")


@app.post("/courses", response_model=SaveCourseResponse)
def save_course_endpoint(
    body: SaveCourseRequest,
    place_store: PlaceStore = Depends(get_place_store),
    saved_store: SavedCourseStore = Depends(get_saved_store),
) -> SaveCourseResponse:
    try:
        digest = save_course(saved_store, body.course, body.intent, body.query, place_store)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid course: {exc}")
    except SavedCourseStoreError:
        logger.exception("Saving course failed")
        raise HTTPException(status_code=500, detail="Failed to save course")
    return SaveCourseResponse(ok=True, course_hash=digest)


@app.post("/log")
def log_selection(body: SearchLogRequest) -> dict:
    record_event("selection", body.model_dump())
    return {"ok": True}


# ── Stats endpoints ──────────────────────────────────────────────────────


@app.get("/stats")
def stats() -> dict:
    return compute_stats(get_events())


@app.get("/cache/stats")
def cache_stats() -> dict:
    return get_cache_stats()
