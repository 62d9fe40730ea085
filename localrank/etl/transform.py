"""Utilities for transforming provider responses into core models."""

import logging
import math
from typing import Any, Dict, Mapping, Optional

from localrank.models import PlaceRecord, ResolvedLocation

logger = logging.getLogger(__name__)

UNKNOWN_NAME = "Unknown Business"


def strip_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    value_str = str(value).strip()
    return value_str or None


def safe_float(value: Any) -> Optional[float]:
    try:
        if value is None or isinstance(value, bool):
            return None
        return float(value)
    except (TypeError, ValueError):
        return None


def safe_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value

    number = safe_float(value)
    if number is not None and math.isfinite(number):
        return int(number)

    # Counts such as "1,234 reviews".
    if isinstance(value, str):
        digits = "".join(ch for ch in value if ch.isdigit())
        if digits:
            return int(digits)
    return None


def _location_of(result: Mapping[str, Any]) -> Dict[str, Any]:
    geometry = result.get("geometry")
    if not isinstance(geometry, Mapping):
        return {}
    location = geometry.get("location")
    return dict(location) if isinstance(location, Mapping) else {}


def to_place_record(result: Mapping[str, Any], index: int, source: str = "google_places") -> PlaceRecord:
    """Normalize one Places text-search result; missing fields degrade to defaults."""
    location = _location_of(result)
    place_id = strip_or_none(result.get("place_id")) or ""
    address = strip_or_none(result.get("formatted_address")) or strip_or_none(result.get("vicinity")) or ""

    return PlaceRecord(
        result_id=place_id or f"place_{index}",
        name=strip_or_none(result.get("name")) or UNKNOWN_NAME,
        address=address,
        external_ref=place_id,
        rating=safe_float(result.get("rating")),
        review_count=safe_int(result.get("user_ratings_total")),
        latitude=safe_float(location.get("lat")),
        longitude=safe_float(location.get("lng")),
        source=source,
        raw_snapshot=dict(result),
    )


def to_resolved_location(result: Mapping[str, Any], source_strategy: str) -> Optional[ResolvedLocation]:
    """Build a ResolvedLocation from a geocoding result, or None without usable geometry."""
    location = _location_of(result)
    lat = safe_float(location.get("lat"))
    lng = safe_float(location.get("lng"))
    if lat is None or lng is None:
        logger.debug("Geocoding result without geometry: %s", str(result)[:200])
        return None
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        logger.warning("Geocoding result out of range: lat=%s lng=%s", lat, lng)
        return None

    return ResolvedLocation(
        latitude=lat,
        longitude=lng,
        source_strategy=source_strategy,
        formatted_address=strip_or_none(result.get("formatted_address")),
        place_id=strip_or_none(result.get("place_id")),
    )
