from __future__ import annotations

import argparse
import json
import logging
import re
from pathlib import Path
from typing import Any, List

import pandas as pd

from ..places.store import PLACE_COLUMNS
from .config import DEFAULT_INGESTION_CONFIG, IngestionConfig

logger = logging.getLogger(__name__)

# Candidate raw column names per canonical column, first present wins.
COLUMN_ALIASES: dict[str, List[str]] = {
    "id": ["id", "place_id", "kakao_id", "uuid"],
    "name": ["name", "place_name", "title"],
    "region": ["region", "area"],
    "sub_region": ["sub_region", "dong", "neighborhood"],
    "province": ["province", "sido"],
    "category_main": ["category_main", "category", "main_category"],
    "category_sub": ["category_sub", "sub_category"],
    "lat": ["lat", "latitude", "y"],
    "lon": ["lon", "lng", "longitude", "x"],
    "address": ["address", "road_address", "full_address"],
    "memo": ["memo", "note", "curator_note"],
    "short_desc": ["short_desc", "description", "summary"],
    "features": ["features"],
    "tags": ["tags", "keywords", "event_tags"],
    "rating": ["rating", "avg_rating", "score"],
    "price_level": ["price_level", "price"],
}

PROVINCES: tuple[str, ...] = ("서울", "경기", "인천", "부산")

DISTRICT_REGIONS: dict[str, dict[str, str]] = {
    "서울": {
        "강남구": "강남", "서초구": "서초", "송파구": "잠실/송파/강동", "강동구": "잠실/송파/강동",
        "영등포구": "영등포/여의도/강서", "강서구": "영등포/여의도/강서",
        "광진구": "건대/성수/왕십리", "성동구": "건대/성수/왕십리",
        "종로구": "종로/중구", "중구": "종로/중구",
        "마포구": "홍대/합정/마포/연남", "용산구": "용산/이태원/한남",
        "성북구": "성북/노원/중랑", "노원구": "성북/노원/중랑", "중랑구": "성북/노원/중랑",
        "구로구": "구로/관악/동작", "관악구": "구로/관악/동작", "동작구": "구로/관악/동작",
        "서대문구": "신촌/연희", "도봉구": "창동/도봉산", "동대문구": "회기/청량리",
        "은평구": "연신내/구파발", "강북구": "미아/수유/북한산", "양천구": "목동/양천", "금천구": "금천/가산",
    },
    "경기": {
        "수원시": "수원", "성남시": "성남/분당", "고양시": "고양/일산", "용인시": "용인", "부천시": "부천",
        "안양시": "안양/과천", "안산시": "안산", "화성시": "화성/동탄", "의정부시": "의정부", "파주시": "파주",
    },
}

_DONG_RE = re.compile(r"\s([가-힣]+[동읍면리])(?:\s|$)")


def _first_present(df: pd.DataFrame, columns: List[str]) -> str | None:
    for col in columns:
        if col in df.columns:
            return col
    return None


def _normalize_rating(rating: Any, max_rating: float = 5.0) -> float | None:
    if rating is None or (isinstance(rating, float) and pd.isna(rating)):
        return None
    raw = str(rating).strip()
    # Handle "X/5" format (e.g. "4.1/5")
    if "/" in raw:
        raw = raw.split("/")[0].strip()
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return max(0.0, min(max_rating, value))


def _split_tags(value: Any) -> str:
    if isinstance(value, list):
        tags = [str(t).strip() for t in value]
    elif value is None or (isinstance(value, float) and pd.isna(value)):
        tags = []
    else:
        raw = str(value).strip()
        if raw.startswith("["):
            try:
                tags = [str(t).strip() for t in json.loads(raw)]
            except ValueError:
                tags = raw.strip("[]").split(",")
        else:
            tags = re.split(r"[,#|]", raw)
    cleaned = [t.strip().strip("'\"") for t in tags]
    return json.dumps([t for t in cleaned if t], ensure_ascii=False)


def _normalize_features(value: Any) -> str:
    if isinstance(value, dict):
        features = value
    elif value is None or (isinstance(value, float) and pd.isna(value)):
        features = {}
    else:
        try:
            features = json.loads(str(value))
        except ValueError:
            features = {}
    if not isinstance(features, dict):
        features = {}
    return json.dumps({str(k): bool(v) for k, v in features.items()}, ensure_ascii=False)


def region_from_address(address: Any) -> tuple[str | None, str | None, str | None]:
    """Derive ``(province, region, sub_region)`` from a Korean street address."""
    if not isinstance(address, str) or not address.strip():
        return None, None, None

    province = next((p for p in PROVINCES if p in address), None)
    if province is None:
        return None, None, None

    region = next(
        (area for district, area in DISTRICT_REGIONS.get(province, {}).items() if district in address),
        province,
    )
    match = _DONG_RE.search(address)
    return province, region, match.group(1) if match else None


def _read_raw(path: Path) -> pd.DataFrame:
    if path.suffix.lower() == ".json":
        return pd.read_json(path, orient="records", dtype=False)
    return pd.read_csv(path)


def normalize_places(df: pd.DataFrame, config: IngestionConfig = DEFAULT_INGESTION_CONFIG) -> pd.DataFrame:
    """Map a raw place export into the canonical place columns."""
    canonical = pd.DataFrame(index=df.index)
    for column, aliases in COLUMN_ALIASES.items():
        source = _first_present(df, aliases)
        canonical[column] = df[source] if source else None

    missing_id = canonical["id"].isna()
    canonical.loc[missing_id, "id"] = [f"place-{i}" for i in canonical.index[missing_id]]
    canonical["id"] = canonical["id"].astype(str)

    derived = canonical["address"].apply(region_from_address)
    for pos, column in enumerate(("province", "region", "sub_region")):
        values = derived.apply(lambda parts: parts[pos])
        canonical[column] = canonical[column].where(canonical[column].notna(), values)

    canonical["lat"] = pd.to_numeric(canonical["lat"], errors="coerce")
    canonical["lon"] = pd.to_numeric(canonical["lon"], errors="coerce")
    canonical["rating"] = canonical["rating"].apply(lambda r: _normalize_rating(r, config.max_rating))
    canonical["price_level"] = pd.to_numeric(canonical["price_level"], errors="coerce").astype("Int64")
    canonical["tags"] = canonical["tags"].apply(_split_tags)
    canonical["features"] = canonical["features"].apply(_normalize_features)

    no_name = canonical["name"].isna() | (canonical["name"].astype(str).str.strip() == "")
    if no_name.any():
        logger.warning("Dropping %d rows without a name", int(no_name.sum()))
    canonical = canonical.loc[~no_name]

    canonical = canonical.drop_duplicates(subset="id", keep="first")
    return canonical[PLACE_COLUMNS].reset_index(drop=True)


def run_ingestion(raw_path: Path, config: IngestionConfig = DEFAULT_INGESTION_CONFIG) -> Path:
    """
    Execute the place ingestion pipeline.

    Steps:
    - Read the raw export (CSV or JSON records).
    - Map raw fields into the canonical place schema.
    - Persist cleaned data as CSV for ``PlaceStore``.
    """
    config.processed_data_dir.mkdir(parents=True, exist_ok=True)

    raw = _read_raw(raw_path)
    canonical = normalize_places(raw, config)

    output_path = config.processed_path
    canonical.to_csv(output_path, index=False)
    logger.info("Wrote %d places to %s", len(canonical), output_path)
    return output_path


def main(argv: List[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Normalize a raw place export into places.csv")
    parser.add_argument("raw_path", type=Path)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    path = run_ingestion(args.raw_path)
    print(f"Ingestion complete. Processed data saved to: {path}")


if __name__ == "__main__":
    main()
