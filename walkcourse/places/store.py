from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

import pandas as pd

from .config import DEFAULT_PLACE_STORE_CONFIG, PlaceStoreConfig
from .models import Place

logger = logging.getLogger(__name__)

PLACE_COLUMNS: list[str] = [
    "id",
    "name",
    "region",
    "sub_region",
    "province",
    "category_main",
    "category_sub",
    "lat",
    "lon",
    "address",
    "memo",
    "short_desc",
    "features",
    "tags",
    "rating",
    "price_level",
]

_REGION_FIELDS = ("region", "province", "sub_region")
_CATEGORY_FIELDS = ("category_main", "category_sub")


class PlaceStoreError(RuntimeError):
    """Raised when the place datastore cannot be read."""


@dataclass(frozen=True)
class PlaceQuery:
    region: str | None = None
    category: str | None = None
    exclude_category_main: str | None = None
    limit: int = DEFAULT_PLACE_STORE_CONFIG.query_limit


def _parse_tags(value: Any) -> list[str]:
    if isinstance(value, list):
        return [str(t).strip() for t in value if str(t).strip()]
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return []
    raw = str(value).strip()
    if raw.startswith("["):
        try:
            return [str(t).strip() for t in json.loads(raw) if str(t).strip()]
        except ValueError:
            pass
    return [t.strip() for t in raw.split(",") if t.strip()]


def _parse_features(value: Any) -> dict[str, bool]:
    if isinstance(value, dict):
        return {str(k): bool(v) for k, v in value.items()}
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return {}
    try:
        parsed = json.loads(str(value))
    except ValueError:
        return {}
    return {str(k): bool(v) for k, v in parsed.items()} if isinstance(parsed, dict) else {}


def _prepare(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    for col in PLACE_COLUMNS:
        if col not in df.columns:
            df[col] = None

    df["id"] = df["id"].astype(str)
    df["tags"] = df["tags"].apply(_parse_tags)
    df["features"] = df["features"].apply(_parse_features)
    df["rating"] = pd.to_numeric(df["rating"], errors="coerce").fillna(0.0)
    df["lat"] = pd.to_numeric(df["lat"], errors="coerce")
    df["lon"] = pd.to_numeric(df["lon"], errors="coerce")

    # Rows without coordinates cannot take part in walking courses.
    missing_coords = df["lat"].isna() | df["lon"].isna()
    if missing_coords.any():
        logger.warning("Dropping %d places without coordinates", int(missing_coords.sum()))
        df = df.loc[~missing_coords]

    for col in _REGION_FIELDS + _CATEGORY_FIELDS:
        df[f"{col}_lower"] = df[col].fillna("").astype(str).str.lower()

    return df.reset_index(drop=True)


def _row_to_place(record: dict[str, Any]) -> Place:
    clean = {
        key: (None if not isinstance(value, (list, dict)) and pd.isna(value) else value)
        for key, value in record.items()
        if key in PLACE_COLUMNS
    }
    if clean.get("price_level") is not None:
        clean["price_level"] = int(clean["price_level"])
    return Place.model_validate(clean)


class PlaceStore:
    """In-memory place datastore exposing filtered, rating-ordered reads.

    Built once at process start and handed to the components that need it.
    """

    def __init__(self, df: pd.DataFrame) -> None:
        self._df = _prepare(df)

    @classmethod
    def from_csv(cls, path: Path | None = None) -> "PlaceStore":
        csv_path = path or DEFAULT_PLACE_STORE_CONFIG.csv_path
        if not csv_path.exists():
            logger.warning("Place CSV %s not found, starting with an empty store", csv_path)
            return cls(pd.DataFrame(columns=PLACE_COLUMNS))
        try:
            df = pd.read_csv(csv_path)
        except (OSError, ValueError) as exc:
            raise PlaceStoreError(f"Failed to load places from {csv_path}") from exc
        logger.info("Loaded %d places from %s", len(df), csv_path)
        return cls(df)

    @classmethod
    def from_records(cls, records: Iterable[dict[str, Any]]) -> "PlaceStore":
        return cls(pd.DataFrame(list(records), columns=PLACE_COLUMNS))

    def __len__(self) -> int:
        return len(self._df)

    def query(self, query: PlaceQuery) -> list[Place]:
        df = self._df
        mask = pd.Series(True, index=df.index)

        if query.region:
            needle = query.region.strip().lower()
            region_mask = pd.Series(False, index=df.index)
            for col in _REGION_FIELDS:
                region_mask |= df[f"{col}_lower"].str.contains(needle, regex=False, na=False)
            mask &= region_mask

        if query.category:
            needle = query.category.strip().lower()
            category_mask = pd.Series(False, index=df.index)
            for col in _CATEGORY_FIELDS:
                category_mask |= df[f"{col}_lower"].str.contains(needle, regex=False, na=False)
            mask &= category_mask

        if query.exclude_category_main:
            mask &= df["category_main"].fillna("") != query.exclude_category_main

        candidates = df.loc[mask].sort_values("rating", ascending=False, kind="mergesort")
        top = candidates.head(query.limit)
        return [_row_to_place(rec) for rec in top[PLACE_COLUMNS].to_dict(orient="records")]

    def existing_ids(self, place_ids: Iterable[str]) -> set[str]:
        wanted = {str(pid) for pid in place_ids}
        return set(self._df.loc[self._df["id"].isin(wanted), "id"].tolist())

    def regions(self) -> list[str]:
        return sorted(self._df["region"].dropna().astype(str).unique().tolist())
