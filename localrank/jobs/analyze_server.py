"""HTTP entrypoint exposing the visibility analysis (Cloud Run friendly)."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request

from localrank.core import gazetteer
from localrank.core.config import ConfigError, get_settings
from localrank.core.geocoding import build_resolver
from localrank.core.geogrid import (
    GridConfigError,
    custom_business_rings,
    generate_grid,
    ring_circles_geojson,
    to_geojson,
)
from localrank.jobs.analyze import run_analysis
from localrank.models import FilterConfig, TargetDescriptor
from localrank.vendors.google_places import GooglePlacesError, ProviderAccessError

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------- App ----------
app = Flask(__name__)


def _error(message: str, status: int) -> Any:
    return jsonify({"success": False, "error": message}), status


def _parse_filters(raw: Optional[Dict[str, Any]]) -> Optional[FilterConfig]:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ValueError("filters must be an object")

    settings = get_settings()
    max_results = raw.get("max_results", raw.get("maxResults", settings.max_results))
    return FilterConfig(
        radius_km=float(raw.get("radius_km", raw.get("radius", settings.search_radius_km))),
        min_rating=float(raw.get("min_rating", raw.get("minRating", 0))),
        max_results=int(max_results) if max_results is not None else None,
        sort_by=str(raw.get("sort_by", raw.get("sortBy", "relevance"))),
    )


# ---------- Routes ----------


@app.get("/healthz")
def healthcheck() -> Any:
    settings = get_settings()
    return (
        jsonify(
            {
                "status": "ok",
                "search_provider": settings.search_provider,
                "revision": os.getenv("K_REVISION", "unknown"),
            }
        ),
        200,
    )


@app.post("/analyze")
def analyze() -> Any:
    """
    Run one visibility analysis.
    Required JSON fields: business {name, address}, location, keywords
    Optional: business.place_id, filters {radius_km, min_rating, max_results, sort_by}
    """
    payload: Dict[str, Any] = request.get_json(silent=True) or {}

    business = payload.get("business")
    location = payload.get("location")
    keywords = payload.get("keywords")
    if not business or not location or not keywords:
        return _error("business, location, and keywords are required", 400)
    if not isinstance(business, dict) or not business.get("name") or not business.get("address"):
        return _error("business name and address are required", 400)

    try:
        filters = _parse_filters(payload.get("filters"))
    except (TypeError, ValueError) as exc:
        return _error(f"invalid filters: {exc}", 400)

    target = TargetDescriptor(
        name=str(business["name"]),
        address=str(business["address"]),
        external_ref=business.get("place_id") or business.get("placeId") or None,
    )

    try:
        result = run_analysis(location=str(location), keywords=keywords, target=target, filters=filters)
    except ValueError as exc:
        return _error(str(exc), 400)
    except (ConfigError, ProviderAccessError) as exc:
        logger.error("Analysis blocked by configuration or quota: %s", exc)
        return _error(f"Search provider is not available: {exc}", 503)
    except GooglePlacesError as exc:
        logger.exception("Search provider failed: %s", exc)
        return _error("Failed to analyze rankings. Please try again.", 500)

    data = result.to_dict()
    return jsonify({"success": True, "data": data, "message": data.pop("message")}), 200


@app.post("/grid")
def grid() -> Any:
    """
    Resolve a location and return its geo-grid as GeoJSON plus ring circles.
    Required JSON fields: location
    Optional: rings (preset name or [[radius_m, point_count], ...]) or
    service_radius_m (rings scaled to a business's service area)
    """
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    location = payload.get("location")
    if not location:
        return _error("location is required", 400)

    rings = payload.get("rings") or get_settings().grid_preset
    service_radius = payload.get("service_radius_m")
    if service_radius is not None:
        try:
            service_radius_m = float(service_radius)
        except (TypeError, ValueError):
            return _error("service_radius_m must be numeric", 400)
        if not service_radius_m > 0:
            return _error("service_radius_m must be positive", 400)
        rings = custom_business_rings(service_radius_m)

    center = build_resolver().resolve(str(location))
    try:
        geo_grid = generate_grid(center.latitude, center.longitude, rings)
    except (GridConfigError, TypeError) as exc:
        return _error(f"invalid rings: {exc}", 400)

    data = {
        "center": center.to_dict(),
        "total_points": geo_grid.total_points,
        "rings": ring_circles_geojson(geo_grid),
        "points": to_geojson(geo_grid),
    }
    return jsonify({"success": True, "data": data}), 200


@app.get("/locations/suggest")
def suggest_locations() -> Any:
    return jsonify({"suggestions": gazetteer.suggest(request.args.get("q", ""))}), 200


def main() -> None:
    port = int(os.getenv("PORT") or 8080)
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
