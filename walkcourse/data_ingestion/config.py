from dataclasses import dataclass
from pathlib import Path

_DATA_DIR = Path(__file__).resolve().parent.parent / "data"


@dataclass(frozen=True)
class IngestionConfig:
    """
    Where raw place exports are read from and the canonical CSV is written.
    """

    raw_data_dir: Path = _DATA_DIR / "raw"
    processed_data_dir: Path = _DATA_DIR / "processed"
    processed_filename: str = "places.csv"
    max_rating: float = 5.0

    @property
    def processed_path(self) -> Path:
        return self.processed_data_dir / self.processed_filename


DEFAULT_INGESTION_CONFIG = IngestionConfig()
