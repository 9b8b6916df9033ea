"""Runtime settings, overridable via PARKGUARD_* environment variables or .env."""

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PARKGUARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Dataset layout: <dataset_root>/zones/<country>/<region>/zones.json
    dataset_root: Path = Path(".")

    # Bucketing
    geohash_precision: int = 6

    # Duplicate detection
    duplicate_name_distance_m: float = 50.0
    duplicate_name_similarity: float = 0.6
    duplicate_proximity_distance_m: float = 20.0
    duplicate_radius_tolerance: float = 0.3

    # Persistence
    max_write_retries: int = 3
    rebuild_manifest_on_commit: bool = True

    # Logging
    log_level: str = "INFO"
    log_dir: Optional[Path] = None


settings = Settings()
