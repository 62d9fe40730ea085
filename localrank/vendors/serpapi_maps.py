"""SerpAPI Google Maps helpers: alternate geocoder and alternate places search."""

from __future__ import annotations

import logging
import random
import time
from typing import Any, Dict, Iterable, List, Optional

from serpapi import GoogleSearch

from localrank.core.config import ConfigError, get_settings
from localrank.etl.transform import UNKNOWN_NAME, safe_float, safe_int, strip_or_none
from localrank.models import PlaceRecord, ResolvedLocation
from localrank.vendors.google_places import GooglePlacesError, ProviderAccessError

logger = logging.getLogger(__name__)

RETRY_LIMIT = 2
RETRY_DELAY_SECONDS = 1.2
SOURCE = "serpapi_google_maps"
# Lower-cased fragments of SerpAPI error messages about the key or the plan.
ACCESS_ERROR_MARKERS = (
    "invalid api key",
    "run out of searches",
    "account is disabled",
    "account has been suspended",
    "searches per hour",
    "plan limit",
)
NO_RESULTS_MARKER = "hasn't returned any results"


def build_serpapi_params(query: str, ll: Optional[str] = None, api_key: Optional[str] = None) -> Dict[str, Any]:
    """Construct SerpAPI request parameters for the Google Maps engine."""
    if not query or not query.strip():
        raise ValueError("Query must be provided for SerpAPI lookups.")

    api_key = api_key or get_settings().serpapi_api_key
    if not api_key:
        raise ConfigError("SERPAPI_API_KEY must be set to use SerpAPI lookups.")

    params: Dict[str, Any] = {
        "engine": "google_maps",
        "q": query.strip(),
        "api_key": api_key,
        "type": "search",
    }
    if ll:
        params["ll"] = ll
    return params


def format_ll(latitude: float, longitude: float, zoom: int = 14) -> str:
    """SerpAPI `ll` parameter, e.g. '@34.0522,-118.2437,14z'."""
    return f"@{latitude:.6f},{longitude:.6f},{zoom}z"


def _raise_for_error(data: Dict[str, Any]) -> None:
    """Raise for SerpAPI error payloads; quota and key problems are not retryable."""
    message = str(data.get("error") or data)
    lowered = message.lower()
    if any(marker in lowered for marker in ACCESS_ERROR_MARKERS):
        raise ProviderAccessError(f"SerpAPI access problem: {message}", status="SERPAPI_ACCESS")
    raise GooglePlacesError(f"SerpAPI returned an error response: {message}", status="SERPAPI_ERROR")


def fetch_from_serpapi(query: str, ll: Optional[str] = None, api_key: Optional[str] = None) -> Dict[str, Any]:
    """Call SerpAPI Google Maps and return the raw JSON response with retry logic.

    SerpAPI charges per request; attempts are logged so usage can be audited.
    Access problems (invalid key, exhausted plan) raise ProviderAccessError at
    once; any other failure is retried and then raised as GooglePlacesError.
    """
    params = build_serpapi_params(query, ll, api_key)

    attempt = 0
    while True:
        attempt += 1
        try:
            logger.info("Calling SerpAPI (attempt %s) for query=%s ll=%s", attempt, query, ll)
            data = GoogleSearch(params).get_dict()
            if not data:
                raise GooglePlacesError("SerpAPI returned an empty payload.", status="SERPAPI_ERROR")
            if "error" in data:
                if NO_RESULTS_MARKER in str(data.get("error")).lower():
                    logger.info("SerpAPI found no results for query=%s", query)
                    return {"local_results": []}
                _raise_for_error(data)
            return data
        except ProviderAccessError:
            logger.error("SerpAPI rejected the request for query=%s", query)
            raise
        except Exception as exc:  # noqa: BLE001
            logger.warning("SerpAPI request failed (attempt %s/%s): %s", attempt, RETRY_LIMIT + 1, exc)
            if attempt > RETRY_LIMIT:
                logger.error("SerpAPI request exhausted retries for query=%s", query)
                if isinstance(exc, GooglePlacesError):
                    raise
                raise GooglePlacesError(f"SerpAPI request failed: {exc}", status="SERPAPI_ERROR") from exc
            time.sleep(RETRY_DELAY_SECONDS + random.uniform(0, 0.8))



def _extract_items(data: Dict[str, Any]) -> Iterable[Any]:
    """SerpAPI sometimes returns local_results as a list or nested dict."""
    local_results = data.get("local_results")
    if isinstance(local_results, list):
        return local_results
    if isinstance(local_results, dict):
        for maybe in (local_results.get("places"), local_results.get("results"), local_results.get("local_results")):
            if isinstance(maybe, list):
                return maybe
    place_results = data.get("place_results")
    if isinstance(place_results, list):
        return place_results
    if isinstance(place_results, dict):
        return [place_results]
    return []


def parse_serpapi_maps(data: Optional[Dict[str, Any]]) -> List[PlaceRecord]:
    """Extract SerpAPI local/place results into PlaceRecords, preserving provider order."""
    if not data:
        return []

    records: List[PlaceRecord] = []
    for index, raw in enumerate(_extract_items(data)):
        if not isinstance(raw, dict):
            continue

        gps = raw.get("gps_coordinates") or {}
        place_id = strip_or_none(raw.get("place_id")) or ""
        records.append(
            PlaceRecord(
                result_id=place_id or strip_or_none(raw.get("data_id")) or f"serp_{index}",
                name=strip_or_none(raw.get("title") or raw.get("name")) or UNKNOWN_NAME,
                address=strip_or_none(raw.get("address")) or "",
                external_ref=place_id,
                rating=safe_float(raw.get("rating")),
                review_count=safe_int(raw.get("reviews_count") or raw.get("reviews")),
                latitude=safe_float(gps.get("latitude")),
                longitude=safe_float(gps.get("longitude")),
                source=SOURCE,
                raw_snapshot=raw,
            )
        )

    if not records:
        logger.warning("SerpAPI response without usable results. keys=%s", list(data.keys())[:10])
    return records


def geocode_with_serpapi(text: str, api_key: Optional[str] = None) -> Optional[ResolvedLocation]:
    """Resolve free text to the first SerpAPI Maps hit carrying GPS coordinates."""
    data = fetch_from_serpapi(text, api_key=api_key)
    for raw in _extract_items(data):
        if not isinstance(raw, dict):
            continue
        gps = raw.get("gps_coordinates") or {}
        lat = safe_float(gps.get("latitude"))
        lng = safe_float(gps.get("longitude"))
        if lat is None or lng is None or not (-90 <= lat <= 90 and -180 <= lng <= 180):
            continue
        return ResolvedLocation(
            latitude=lat,
            longitude=lng,
            source_strategy="serpapi",
            formatted_address=strip_or_none(raw.get("address")) or strip_or_none(raw.get("title")),
            place_id=strip_or_none(raw.get("place_id")),
        )
    return None
