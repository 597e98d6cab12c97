"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ALL_SOURCES = ("google", "yelp", "tripadvisor", "foursquare")


class ConfigError(RuntimeError):
    """Raised when a configuration value cannot be parsed."""


@dataclass(frozen=True)
class Settings:
    google_api_key: str = ""
    serpapi_api_key: str = ""
    yelp_api_key: str = ""
    foursquare_api_key: str = ""
    tripadvisor_api_key: str = ""
    source_timeout_ms: int = 5000
    tripadvisor_min_interval_seconds: float = 1.0
    max_nearby_venues: int = 10
    default_max_travel_min: float = 20.0
    enabled_sources: Tuple[str, ...] = ALL_SOURCES
    worker_port: int = 8080


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be numeric, got {raw!r}") from exc


def _parse_sources(raw: Optional[str]) -> Tuple[str, ...]:
    if not raw:
        return ALL_SOURCES
    sources = tuple(part.strip().lower() for part in raw.split(",") if part.strip())
    unknown = [source for source in sources if source not in ALL_SOURCES]
    if unknown:
        logger.warning("Ignoring unknown review sources in ENABLED_SOURCES: %s", ", ".join(unknown))
    return tuple(source for source in sources if source in ALL_SOURCES)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    settings = Settings(
        google_api_key=os.getenv("GOOGLE_API_KEY", ""),
        serpapi_api_key=os.getenv("SERPAPI_API_KEY", ""),
        yelp_api_key=os.getenv("YELP_API_KEY", ""),
        foursquare_api_key=os.getenv("FOURSQUARE_API_KEY", ""),
        tripadvisor_api_key=os.getenv("TRIPADVISOR_API_KEY", ""),
        source_timeout_ms=_get_int("SOURCE_TIMEOUT_MS", 5000),
        tripadvisor_min_interval_seconds=_get_float("TRIPADVISOR_MIN_INTERVAL_SECONDS", 1.0),
        max_nearby_venues=_get_int("MAX_NEARBY_VENUES", 10),
        default_max_travel_min=_get_float("DEFAULT_MAX_TRAVEL_MIN", 20.0),
        enabled_sources=_parse_sources(os.getenv("ENABLED_SOURCES")),
        worker_port=_get_int("WORKER_PORT", 8080),
    )

    if not settings.google_api_key:
        logger.warning("GOOGLE_API_KEY is not configured; nearby search will fail.")
    if not settings.serpapi_api_key:
        logger.warning("SERPAPI_API_KEY is not configured; Google ratings fall back to page scraping.")
    for name, value in (
        ("YELP_API_KEY", settings.yelp_api_key),
        ("FOURSQUARE_API_KEY", settings.foursquare_api_key),
        ("TRIPADVISOR_API_KEY", settings.tripadvisor_api_key),
    ):
        if not value:
            logger.warning("%s is not configured; that source will be skipped.", name)

    return settings
