from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

_DATA_DIR = Path(__file__).resolve().parent.parent / "data" / "processed"


@dataclass(frozen=True)
class PlaceStoreConfig:
    csv_path: Path = Path(os.getenv("WALKCOURSE_PLACES_CSV", str(_DATA_DIR / "places.csv")))
    query_limit: int = 200


DEFAULT_PLACE_STORE_CONFIG = PlaceStoreConfig()
