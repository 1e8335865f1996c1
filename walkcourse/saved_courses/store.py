from __future__ import annotations

import logging
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pandas as pd
from pydantic import BaseModel, ConfigDict, ValidationError

from .config import DEFAULT_SAVED_COURSE_CONFIG

logger = logging.getLogger(__name__)

SAVED_COURSE_COLUMNS: list[str] = [
    "id",
    "course_hash",
    "course_data",
    "source_query",
    "region",
    "activity_type",
    "vibe",
    "season",
    "people_count",
    "mode",
    "response_type",
    "place_ids",
    "validation_status",
    "validation_reason",
    "usage_count",
    "created_at",
    "updated_at",
    "last_used_at",
]


class SavedCourseStoreError(RuntimeError):
    """Raised when the saved-course datastore cannot be read or written."""


class SavedCourseRow(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    course_hash: str
    course_data: Any = None
    source_query: str | None = None
    region: str | None = None
    activity_type: str | None = None
    vibe: list[str] | None = None
    season: str | None = None
    people_count: int | None = None
    mode: str | None = None
    response_type: str | None = None
    place_ids: list[str] | None = None
    validation_status: str | None = None
    validation_reason: str | None = None
    usage_count: int | None = None
    created_at: str
    updated_at: str | None = None
    last_used_at: str | None = None


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _clean(value: Any) -> Any:
    if isinstance(value, (list, dict)):
        return value
    return None if pd.isna(value) else value


def _row_model(record: dict[str, Any]) -> SavedCourseRow:
    clean = {k: _clean(v) for k, v in record.items()}
    for key in ("usage_count", "people_count"):
        if clean.get(key) is not None:
            clean[key] = int(clean[key])
    return SavedCourseRow.model_validate(clean)


class SavedCourseStore:
    """Saved-course datastore: ordered candidate reads, hash-keyed upserts
    and usage-count increments.

    Rows are held as records guarded by a lock and queried through a pandas
    frame; when a ``path`` is given every write is flushed to that JSON
    file. Concurrent increments on the same row may interleave; usage
    counts are a popularity signal, not a ledger.
    """

    def __init__(self, rows: list[dict[str, Any]] | None = None, path: Path | None = None) -> None:
        self._rows: list[dict[str, Any]] = [
            {col: row.get(col) for col in SAVED_COURSE_COLUMNS} for row in rows or []
        ]
        self._path = path
        self._lock = threading.Lock()

    @classmethod
    def from_json(cls, path: Path | None = None) -> "SavedCourseStore":
        json_path = path or DEFAULT_SAVED_COURSE_CONFIG.json_path
        if not json_path.exists():
            logger.info("Saved-course file %s not found, starting empty", json_path)
            return cls(path=json_path)
        try:
            df = pd.read_json(json_path, orient="records", dtype=False, convert_dates=False)
        except ValueError as exc:
            raise SavedCourseStoreError(f"Failed to load saved courses from {json_path}") from exc
        logger.info("Loaded %d saved courses from %s", len(df), json_path)
        records = [{k: _clean(v) for k, v in r.items()} for r in df.to_dict(orient="records")]
        return cls(records, path=json_path)

    def __len__(self) -> int:
        return len(self._rows)

    # -- reads ---------------------------------------------------------------

    def fetch_candidates(self, limit: int = DEFAULT_SAVED_COURSE_CONFIG.candidate_limit) -> list[SavedCourseRow]:
        """Course-typed, non-invalidated rows, most used then most recent first."""
        with self._lock:
            df = pd.DataFrame([dict(r) for r in self._rows], columns=SAVED_COURSE_COLUMNS)

        if df.empty:
            return []

        response_type = df["response_type"].fillna("course")
        mask = (response_type == "course") & (df["validation_status"] != "invalid")
        df = df.loc[mask].copy()
        df["_usage"] = pd.to_numeric(df["usage_count"], errors="coerce")
        df = df.sort_values(
            ["_usage", "created_at"],
            ascending=[False, False],
            na_position="last",
            kind="mergesort",
        ).head(limit)

        rows: list[SavedCourseRow] = []
        for record in df[SAVED_COURSE_COLUMNS].to_dict(orient="records"):
            try:
                rows.append(_row_model(record))
            except (ValueError, TypeError, ValidationError):
                logger.debug("Skipping malformed saved course %s", record.get("id"), exc_info=True)
        return rows

    def get_by_hash(self, course_hash: str) -> SavedCourseRow | None:
        with self._lock:
            record = next((dict(r) for r in self._rows if r["course_hash"] == course_hash), None)
        return _row_model(record) if record else None

    # -- writes --------------------------------------------------------------

    def upsert(self, course_hash: str, values: dict[str, Any]) -> SavedCourseRow:
        """Insert or update the row keyed by *course_hash*.

        ``id`` and ``created_at`` of an existing row are kept.
        """
        now = _now_iso()
        updates = {k: v for k, v in values.items() if k in SAVED_COURSE_COLUMNS}
        with self._lock:
            row = next((r for r in self._rows if r["course_hash"] == course_hash), None)
            if row is not None:
                for key in ("id", "course_hash", "created_at"):
                    updates.pop(key, None)
                row.update(updates)
                row["updated_at"] = now
            else:
                row = {col: None for col in SAVED_COURSE_COLUMNS}
                row.update(updates)
                row.update({
                    "id": str(uuid.uuid4()),
                    "course_hash": course_hash,
                    "usage_count": row.get("usage_count") or 0,
                    "created_at": now,
                    "updated_at": now,
                })
                self._rows.append(row)
            saved = dict(row)
            self._flush()
        return _row_model(saved)

    def increment_usage(self, row_id: str) -> int:
        """Bump ``usage_count`` and ``last_used_at``; return the new count."""
        now = _now_iso()
        with self._lock:
            row = next((r for r in self._rows if r["id"] == row_id), None)
            if row is None:
                raise SavedCourseStoreError(f"Saved course {row_id} not found")
            row["usage_count"] = int(_clean(row.get("usage_count")) or 0) + 1
            row["last_used_at"] = now
            row["updated_at"] = now
            self._flush()
            return row["usage_count"]

    def _flush(self) -> None:
        if self._path is None:
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            frame = pd.DataFrame(self._rows, columns=SAVED_COURSE_COLUMNS)
            frame.to_json(self._path, orient="records", force_ascii=False, indent=2)
        except (OSError, ValueError) as exc:
            raise SavedCourseStoreError(f"Failed to write saved courses to {self._path}") from exc
