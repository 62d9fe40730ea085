"""Application configuration helpers.

Credentials only ever come from the environment (or a local `.env`): the Google
and SerpAPI keys are billable and must never be hardcoded.
"""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

SEARCH_PROVIDERS = ("google_places", "serpapi")


class ConfigError(RuntimeError):
    """Raised when configuration needed by an operation is missing or invalid."""


@dataclass(frozen=True)
class Settings:
    google_api_key: str = ""
    serpapi_api_key: str = ""
    search_provider: str = "google_places"
    search_radius_km: float = 25.0
    max_results: int = 20
    default_center_lat: float = 34.0522
    default_center_lng: float = -118.2437
    default_center_label: str = "Los Angeles, CA, USA"
    grid_preset: str = "default"


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be numeric, got {raw!r}") from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    google_api_key = os.getenv("GOOGLE_API_KEY", "")
    serpapi_api_key = os.getenv("SERPAPI_API_KEY", "")
    search_provider = os.getenv("SEARCH_PROVIDER", "google_places").strip().lower()
    if search_provider not in SEARCH_PROVIDERS:
        raise ConfigError(f"SEARCH_PROVIDER must be one of: {', '.join(SEARCH_PROVIDERS)}")

    search_radius_km = _get_float("SEARCH_RADIUS_KM", 25.0)
    max_results = int(_get_float("MAX_RESULTS", 20))
    default_center_lat = _get_float("DEFAULT_CENTER_LAT", 34.0522)
    default_center_lng = _get_float("DEFAULT_CENTER_LNG", -118.2437)
    if not (-90 <= default_center_lat <= 90 and -180 <= default_center_lng <= 180):
        raise ConfigError("DEFAULT_CENTER_LAT/DEFAULT_CENTER_LNG are out of range")
    default_center_label = os.getenv("DEFAULT_CENTER_LABEL") or "Los Angeles, CA, USA"
    grid_preset = os.getenv("GRID_PRESET", "default").strip().lower() or "default"

    if not google_api_key:
        logger.warning("GOOGLE_API_KEY is not configured; remote geocoding and Places search are disabled.")
    if not serpapi_api_key:
        logger.warning("SERPAPI_API_KEY is not configured; the SerpAPI geocoder is disabled.")

    return Settings(
        google_api_key=google_api_key,
        serpapi_api_key=serpapi_api_key,
        search_provider=search_provider,
        search_radius_km=search_radius_km,
        max_results=max_results,
        default_center_lat=default_center_lat,
        default_center_lng=default_center_lng,
        default_center_label=default_center_label,
        grid_preset=grid_preset,
    )
