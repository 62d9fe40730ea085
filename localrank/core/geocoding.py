"""Multi-strategy location resolver.

Strategies are tried strictly in order and the first one returning a location
wins. Strategy failures are logged and swallowed; the chain always ends on a
fixed default center, so `LocationResolver.resolve` never raises.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from functools import partial
from typing import Callable, List, Optional, Protocol, Sequence

from localrank.core import gazetteer
from localrank.core.config import Settings, get_settings
from localrank.etl.transform import to_resolved_location
from localrank.models import ResolvedLocation
from localrank.vendors import google_places, serpapi_maps
from localrank.vendors.google_places import ProviderAccessError

logger = logging.getLogger(__name__)

COORDINATE_PAIR = re.compile(r"^(-?\d+\.?\d*),\s*(-?\d+\.?\d*)$")


def is_valid_coordinate(lat: float, lng: float) -> bool:
    return -90 <= lat <= 90 and -180 <= lng <= 180


class GeocodingStrategy(Protocol):
    name: str

    @property
    def available(self) -> bool: ...

    def attempt(self, text: str) -> Optional[ResolvedLocation]: ...


class RemoteGeocodingStrategy:
    """Google Geocoding API lookup of the raw text."""

    name = "google_geocoding"

    def __init__(self, api_key: str):
        self.api_key = api_key

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    def attempt(self, text: str) -> Optional[ResolvedLocation]:
        payload = google_places.geocode(text, self.api_key)
        if payload.get("status") == "ZERO_RESULTS":
            logger.info("Google geocoding returned no results for %r", text)
            return None
        for result in payload.get("results") or []:
            location = to_resolved_location(result, self.name)
            if location is not None:
                return location
        logger.info("Google geocoding returned no usable geometry for %r", text)
        return None


class CoordinatePairStrategy:
    """Bare `lat,lng` input used as-is."""

    name = "coordinates"
    available = True

    def attempt(self, text: str) -> Optional[ResolvedLocation]:
        stripped = (text or "").strip()
        match = COORDINATE_PAIR.match(stripped)
        if not match:
            return None
        lat, lng = float(match.group(1)), float(match.group(2))
        if not is_valid_coordinate(lat, lng):
            logger.debug("Coordinate pair out of range: %s", stripped)
            return None
        return ResolvedLocation(latitude=lat, longitude=lng, source_strategy=self.name, formatted_address=stripped)


class AlternateGeocodingStrategy:
    """Second geocoder reached through a different provider; optional capability."""

    name = "serpapi"

    def __init__(self, lookup: Optional[Callable[[str], Optional[ResolvedLocation]]] = None):
        self.lookup = lookup

    @property
    def available(self) -> bool:
        return self.lookup is not None

    def attempt(self, text: str) -> Optional[ResolvedLocation]:
        if not text or not text.strip():
            return None
        return self.lookup(text)


class GazetteerStrategy:
    name = "gazetteer"
    available = True

    def attempt(self, text: str) -> Optional[ResolvedLocation]:
        entry = gazetteer.lookup(text)
        if entry is None:
            return None
        return ResolvedLocation(
            latitude=entry.latitude,
            longitude=entry.longitude,
            source_strategy=self.name,
            formatted_address=entry.formatted_address,
        )


class LocationResolver:
    def __init__(self, strategies: Sequence[GeocodingStrategy], default: ResolvedLocation):
        self.strategies = list(strategies)
        self.default = default

    def resolve(self, raw_text: str) -> ResolvedLocation:
        text = raw_text if isinstance(raw_text, str) else ""
        logger.info("Resolving location %r", text)
        provider_errors: List[str] = []

        for strategy in self.strategies:
            if not strategy.available:
                logger.debug("Skipping unavailable strategy %s", strategy.name)
                continue
            try:
                result = strategy.attempt(text)
            except ProviderAccessError as exc:
                logger.error("Strategy %s hit a provider access problem: %s", strategy.name, exc)
                provider_errors.append(f"{strategy.name}: {exc}")
                continue
            except Exception as exc:  # noqa: BLE001
                logger.warning("Strategy %s failed for %r: %s", strategy.name, text, exc)
                continue

            if result is not None:
                logger.info(
                    "Resolved %r via %s to (%.6f, %.6f)", text, strategy.name, result.latitude, result.longitude
                )
                return replace(result, provider_errors=tuple(provider_errors))

        logger.warning("All geocoding strategies failed for %r, using default location", text)
        return replace(self.default, provider_errors=tuple(provider_errors))


def default_location(settings: Settings) -> ResolvedLocation:
    return ResolvedLocation(
        latitude=settings.default_center_lat,
        longitude=settings.default_center_lng,
        source_strategy="default",
        formatted_address=settings.default_center_label,
    )


def build_resolver(settings: Optional[Settings] = None) -> LocationResolver:
    """The standard chain: Google geocoding, coordinates, SerpAPI, gazetteer, default."""
    settings = settings or get_settings()
    alternate = None
    if settings.serpapi_api_key:
        alternate = partial(serpapi_maps.geocode_with_serpapi, api_key=settings.serpapi_api_key)
    return LocationResolver(
        strategies=[
            RemoteGeocodingStrategy(settings.google_api_key),
            CoordinatePairStrategy(),
            AlternateGeocodingStrategy(alternate),
            GazetteerStrategy(),
        ],
        default=default_location(settings),
    )
