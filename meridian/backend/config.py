"""Meridian — Application Configuration."""

import logging
from pathlib import Path
from pydantic_settings import BaseSettings
from typing import Optional

_cfg_logger = logging.getLogger("meridian.config")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Server
    app_name: str = "Meridian"
    app_version: str = "1.0.0"
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Redis (pre-computed risk score cache)
    redis_url: str = "redis://localhost:6379"
    use_redis: bool = False  # Set True when Redis is available
    score_cache_key: str = "risk:scores:v2"
    score_stale_cache_key: str = "risk:scores:stale:v2"
    score_cache_ttl: int = 600  # seconds
    score_stale_cache_ttl: int = 3600  # seconds

    # Scoring engine
    learning_duration_minutes: float = 15.0
    convergence_window_hours: float = 24.0
    convergence_dedup_ttl: Optional[float] = None  # seconds, None = never forget
    convergence_location_names: bool = True

    # GeoJSON FeatureCollection with country polygons (ISO_A2 / iso_a2 property)
    country_boundaries_path: Optional[str] = None

    model_config = {"env_file": ".env", "env_prefix": "MERIDIAN_"}


def _load_settings() -> Settings:
    """Load settings, dropping a boundaries path that does not exist on disk."""
    s = Settings()

    if s.country_boundaries_path and not Path(s.country_boundaries_path).exists():
        _cfg_logger.warning(
            "Country boundaries file %s not found, point attribution disabled",
            s.country_boundaries_path,
        )
        s.country_boundaries_path = None

    return s


settings = _load_settings()
