"""Client utilities for the Google Places and Geocoding APIs."""

import logging
from typing import Any, Dict, Optional, Tuple

import requests

logger = logging.getLogger(__name__)
_SESSION = requests.Session()
_PLACES_URL = "https://maps.googleapis.com/maps/api/place"
_GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
REQUEST_TIMEOUT = 10

SUCCESS_STATUSES = {"OK", "ZERO_RESULTS"}
ACCESS_STATUSES = {"REQUEST_DENIED", "OVER_QUERY_LIMIT"}


class GooglePlacesError(RuntimeError):
    """Raised when a Google Maps Platform API returns a non-successful response."""

    def __init__(self, message: str, status: Optional[str] = None):
        super().__init__(message)
        self.status = status


class ProviderAccessError(GooglePlacesError):
    """The API key was rejected or the quota is exhausted; needs operator action."""


def _get_json(url: str, params: Dict[str, Any], operation: str) -> Dict[str, Any]:
    try:
        response = _SESSION.get(url, params=params, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
        return response.json()
    except requests.RequestException as exc:
        logger.error("%s request failed: %s", operation, exc)
        raise GooglePlacesError(f"{operation} request failed: {exc}", status="REQUEST_FAILED") from exc


def _check_status(payload: Dict[str, Any], operation: str) -> Dict[str, Any]:
    status = payload.get("status")
    if status in SUCCESS_STATUSES:
        return payload

    message = payload.get("error_message") or status or "unknown error"
    logger.error("%s failed: status=%s, error_message=%s", operation, status, payload.get("error_message"))
    if status == "REQUEST_DENIED":
        raise ProviderAccessError(f"API access denied: {message}", status=status)
    if status == "OVER_QUERY_LIMIT":
        raise ProviderAccessError(f"API quota exceeded: {message}", status=status)
    raise GooglePlacesError(f"{operation} failed: {status} - {message}", status=status)


def text_search(
    query: str,
    api_key: str,
    location: Optional[Tuple[float, float]] = None,
    radius_m: Optional[float] = None,
    pagetoken: Optional[str] = None,
) -> Dict[str, Any]:
    params: Dict[str, Any] = {"query": query, "key": api_key}
    if location is not None:
        params["location"] = f"{location[0]},{location[1]}"
        if radius_m:
            params["radius"] = int(radius_m)
    if pagetoken:
        params["pagetoken"] = pagetoken
    return _check_status(_get_json(f"{_PLACES_URL}/textsearch/json", params, "text_search"), "text_search")


def geocode(address: str, api_key: str) -> Dict[str, Any]:
    params = {"address": address, "key": api_key}
    return _check_status(_get_json(_GEOCODE_URL, params, "geocode"), "geocode")
