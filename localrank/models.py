"""Core data models shared by the location, grid and ranking stages."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Literal, Optional, Tuple

Difficulty = Literal["LOW", "MEDIUM", "HIGH"]
SortBy = Literal["relevance", "rating", "reviews", "distance"]

SORT_OPTIONS: Tuple[str, ...] = ("relevance", "rating", "reviews", "distance")


@dataclass(frozen=True, slots=True)
class GeoPoint:
    """A single sample location of a geo-grid."""

    latitude: float
    longitude: float
    ring_index: int
    point_index: int
    distance_from_center_m: float
    bearing_degrees: float
    point_id: str

    @property
    def is_center(self) -> bool:
        return self.ring_index == 0


@dataclass(frozen=True, slots=True)
class RingConfig:
    radius_m: float
    point_count: int


@dataclass(frozen=True, slots=True)
class GridRing:
    ring_index: int
    radius_m: float
    point_count: int
    points: Tuple[GeoPoint, ...]


@dataclass(frozen=True, slots=True)
class BoundingBox:
    north: float
    south: float
    east: float
    west: float

    def contains(self, latitude: float, longitude: float) -> bool:
        return self.south <= latitude <= self.north and self.west <= longitude <= self.east


@dataclass(frozen=True, slots=True)
class GeoGrid:
    center: GeoPoint
    rings: Tuple[GridRing, ...]
    all_points: Tuple[GeoPoint, ...]
    bounding_box: BoundingBox

    @property
    def total_points(self) -> int:
        return len(self.all_points)


@dataclass(frozen=True, slots=True)
class PlaceRecord:
    """Normalized snapshot of a business returned by a places-search provider."""

    result_id: str
    name: str
    address: str = ""
    external_ref: str = ""
    rating: Optional[float] = None
    review_count: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    source: str = "google_places"
    raw_snapshot: Optional[Dict[str, Any]] = field(default=None, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class TargetDescriptor:
    """The business an analysis is trying to locate among competitor results."""

    name: str
    address: str = ""
    external_ref: Optional[str] = None


@dataclass(frozen=True, slots=True)
class BusinessResult:
    result_id: str
    name: str
    address: str
    external_ref: str
    rank: int
    visibility_score: int
    difficulty: Difficulty
    is_target: bool = False
    rating: Optional[float] = None
    review_count: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class ResolvedLocation:
    """Center point of one analysis and the strategy that produced it."""

    latitude: float
    longitude: float
    source_strategy: str
    formatted_address: Optional[str] = None
    place_id: Optional[str] = None
    # Quota / auth failures hit while resolving; empty when none occurred.
    provider_errors: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["provider_errors"] = list(self.provider_errors)
        return payload


@dataclass(frozen=True, slots=True)
class FilterConfig:
    radius_km: float = 25.0
    min_rating: float = 0.0
    max_results: Optional[int] = 20
    sort_by: SortBy = "relevance"

    def __post_init__(self) -> None:
        if self.radius_km <= 0:
            raise ValueError("radius_km must be positive")
        if self.min_rating < 0:
            raise ValueError("min_rating must not be negative")
        if self.max_results is not None and self.max_results <= 0:
            raise ValueError("max_results must be positive")
        if self.sort_by not in SORT_OPTIONS:
            raise ValueError(f"sort_by must be one of: {', '.join(SORT_OPTIONS)}")
