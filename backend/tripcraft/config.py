"""Runtime settings for TripCraft.

Values come from the environment (a local ``.env`` is loaded first).
"""

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"[CONFIG] Ignoring non-integer {name}={raw!r}")
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"[CONFIG] Ignoring non-numeric {name}={raw!r}")
        return default


@dataclass
class Settings:
    """Process-wide configuration."""

    google_maps_api_key: str | None = None
    naver_client_id: str | None = None
    naver_client_secret: str | None = None
    redis_url: str = "redis://localhost:6379"
    place_language: str = "ko"
    http_timeout_seconds: float = 10.0
    resolution_cache_size: int = 1000
    enrichment_mode: str = "sequential"
    enrichment_delay_seconds: float = 0.2
    image_sweep_enabled: bool = True
    image_sweep_weekday: int = 6  # Monday=0 ... Sunday=6
    image_sweep_hour: int = 4

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            google_maps_api_key=os.getenv("GOOGLE_MAPS_API_KEY"),
            naver_client_id=os.getenv("NAVER_CLIENT_ID"),
            naver_client_secret=os.getenv("NAVER_CLIENT_SECRET"),
            redis_url=os.getenv("REDIS_URL", "redis://localhost:6379"),
            place_language=os.getenv("PLACE_LANGUAGE", "ko"),
            http_timeout_seconds=_env_float("HTTP_TIMEOUT_SECONDS", 10.0),
            resolution_cache_size=_env_int("RESOLUTION_CACHE_SIZE", 1000),
            enrichment_mode=os.getenv("ENRICHMENT_MODE", "sequential"),
            enrichment_delay_seconds=_env_float("ENRICHMENT_DELAY_SECONDS", 0.2),
            image_sweep_enabled=_env_bool("IMAGE_SWEEP_ENABLED", True),
            image_sweep_weekday=_env_int("IMAGE_SWEEP_WEEKDAY", 6),
            image_sweep_hour=_env_int("IMAGE_SWEEP_HOUR", 4),
        )
