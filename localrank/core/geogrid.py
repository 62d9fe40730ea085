"""Concentric geo-grid generation for local-search visibility sampling.

Points are placed with the spherical forward-geodesic (destination point)
formula rather than a flat-earth offset, so rings stay round from a few hundred
metres out to 15 km and at high latitudes.
"""

from __future__ import annotations

import logging
import math
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple, Union

from localrank.models import BoundingBox, GeoGrid, GeoPoint, GridRing, RingConfig

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6_371_000.0


class GridConfigError(ValueError):
    """Raised for ring configurations that cannot produce a grid."""


def _rings(*pairs: Tuple[float, int]) -> Tuple[RingConfig, ...]:
    return tuple(RingConfig(radius_m=radius, point_count=count) for radius, count in pairs)


PRESETS: Mapping[str, Tuple[RingConfig, ...]] = MappingProxyType(
    {
        "default": _rings((500, 6), (1000, 8), (1500, 10), (2000, 12), (2500, 14), (3000, 16), (3500, 18)),
        "dense": _rings((250, 8), (500, 12), (750, 16), (1000, 20), (1500, 24), (2000, 28), (2500, 32)),
        "wide": _rings((1000, 6), (2000, 8), (3000, 10), (5000, 12), (7500, 14), (10000, 16), (15000, 18)),
    }
)

RingsSpec = Union[str, Sequence[Union[RingConfig, Tuple[float, int]]]]


def preset_rings(name: str) -> Tuple[RingConfig, ...]:
    key = (name or "").strip().lower()
    if key not in PRESETS:
        raise GridConfigError(f"Unknown grid preset {name!r}; expected one of: {', '.join(PRESETS)}")
    return PRESETS[key]


def custom_business_rings(max_radius_m: float = 3000) -> Tuple[RingConfig, ...]:
    """Seven rings scaled to a business's own service radius."""
    fractions = (0.1, 0.2, 0.35, 0.5, 0.65, 0.8, 1.0)
    return tuple(
        RingConfig(radius_m=max_radius_m * fraction, point_count=6 + 2 * index)
        for index, fraction in enumerate(fractions)
    )


def _normalize_lng(lng: float) -> float:
    return (lng + 540.0) % 360.0 - 180.0


def destination_point(lat: float, lng: float, bearing_deg: float, distance_m: float) -> Tuple[float, float]:
    """Lat/lng reached from (lat, lng) after distance_m along the given initial bearing."""
    delta = distance_m / EARTH_RADIUS_M
    phi1 = math.radians(lat)
    lambda1 = math.radians(lng)
    theta = math.radians(bearing_deg)

    phi2 = math.asin(math.sin(phi1) * math.cos(delta) + math.cos(phi1) * math.sin(delta) * math.cos(theta))
    lambda2 = lambda1 + math.atan2(
        math.sin(theta) * math.sin(delta) * math.cos(phi1),
        math.cos(delta) - math.sin(phi1) * math.sin(phi2),
    )
    return math.degrees(phi2), _normalize_lng(math.degrees(lambda2))


def format_distance(meters: float) -> str:
    """Ring label: '500m' below a kilometre, '1.5km' from there on."""
    if meters < 1000:
        return f"{round(meters)}m"
    return f"{meters / 1000:.1f}km"


def _coerce_ring(ring: Union[RingConfig, Tuple[float, int]], position: int) -> RingConfig:
    if isinstance(ring, RingConfig):
        radius, count = ring.radius_m, ring.point_count
    else:
        try:
            radius, count = ring
        except (TypeError, ValueError) as exc:
            raise GridConfigError(f"Ring {position} must be a (radius_m, point_count) pair") from exc

    if isinstance(count, bool) or not isinstance(count, int):
        raise GridConfigError(f"Ring {position} point_count must be an integer, got {count!r}")
    if isinstance(radius, bool) or not isinstance(radius, (int, float)) or not math.isfinite(radius):
        raise GridConfigError(f"Ring {position} radius_m must be a finite number, got {radius!r}")
    if radius <= 0:
        raise GridConfigError(f"Ring {position} radius_m must be positive, got {radius}")
    if count <= 0:
        raise GridConfigError(f"Ring {position} point_count must be positive, got {count}")
    return RingConfig(radius_m=float(radius), point_count=count)


def validate_rings(rings: RingsSpec) -> Tuple[RingConfig, ...]:
    """Resolve a preset name or validate a custom ring list before any point is generated."""
    if isinstance(rings, str):
        return preset_rings(rings)
    validated = tuple(_coerce_ring(ring, position) for position, ring in enumerate(rings, start=1))
    if not validated:
        raise GridConfigError("At least one ring is required")
    return validated


def _ring_points(center_lat: float, center_lng: float, ring: RingConfig, ring_index: int) -> Tuple[GeoPoint, ...]:
    angle_step = 360.0 / ring.point_count
    points: List[GeoPoint] = []
    for point_index in range(ring.point_count):
        bearing = point_index * angle_step
        lat, lng = destination_point(center_lat, center_lng, bearing, ring.radius_m)
        points.append(
            GeoPoint(
                latitude=lat,
                longitude=lng,
                ring_index=ring_index,
                point_index=point_index,
                distance_from_center_m=ring.radius_m,
                bearing_degrees=bearing,
                point_id=f"ring{ring_index}_point{point_index}",
            )
        )
    return tuple(points)


def bounding_box(points: Iterable[GeoPoint]) -> BoundingBox:
    north, south, east, west = -90.0, 90.0, -180.0, 180.0
    for point in points:
        north = max(north, point.latitude)
        south = min(south, point.latitude)
        east = max(east, point.longitude)
        west = min(west, point.longitude)
    return BoundingBox(north=north, south=south, east=east, west=west)


def generate_grid(center_lat: float, center_lng: float, rings: RingsSpec = "default") -> GeoGrid:
    """Build the center point plus one ring of evenly spaced points per ring config."""
    if not (-90 <= center_lat <= 90 and -180 <= center_lng <= 180):
        raise GridConfigError(f"Center ({center_lat}, {center_lng}) is outside valid coordinate ranges")
    ring_configs = validate_rings(rings)

    center = GeoPoint(
        latitude=center_lat,
        longitude=center_lng,
        ring_index=0,
        point_index=0,
        distance_from_center_m=0.0,
        bearing_degrees=0.0,
        point_id="center",
    )
    grid_rings: List[GridRing] = []
    all_points: List[GeoPoint] = [center]

    for ring_index, ring in enumerate(ring_configs, start=1):
        points = _ring_points(center_lat, center_lng, ring, ring_index)
        grid_rings.append(
            GridRing(ring_index=ring_index, radius_m=ring.radius_m, point_count=ring.point_count, points=points)
        )
        all_points.extend(points)

    grid = GeoGrid(
        center=center,
        rings=tuple(grid_rings),
        all_points=tuple(all_points),
        bounding_box=bounding_box(all_points),
    )
    logger.info("Generated geo-grid with %d rings and %d points", len(grid.rings), grid.total_points)
    return grid


def to_geojson(grid: GeoGrid) -> Dict[str, Any]:
    """FeatureCollection of every grid point, for map layers."""
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "geometry": {"type": "Point", "coordinates": [point.longitude, point.latitude]},
                "properties": {
                    "id": point.point_id,
                    "ringIndex": point.ring_index,
                    "pointIndex": point.point_index,
                    "distanceFromCenter": point.distance_from_center_m,
                    "bearing": point.bearing_degrees,
                    "isCenter": point.is_center,
                },
            }
            for point in grid.all_points
        ],
    }


def ring_circles_geojson(grid: GeoGrid) -> Dict[str, Any]:
    """One center-anchored feature per ring, carrying radius and label for overlays."""
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "geometry": {"type": "Point", "coordinates": [grid.center.longitude, grid.center.latitude]},
                "properties": {
                    "ringIndex": ring.ring_index,
                    "radius": ring.radius_m,
                    "pointCount": ring.point_count,
                    "label": format_distance(ring.radius_m),
                },
            }
            for ring in grid.rings
        ],
    }
