"""Local-search visibility analysis: resolve, search, rank and filter.

Also provides the grid scan that re-runs the search at every geo-grid point,
and a CLI entrypoint printing the result as JSON.
"""

import argparse
import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Union

from localrank.core.config import ConfigError, Settings, get_settings
from localrank.core.filters import apply_filters
from localrank.core.geocoding import LocationResolver, build_resolver
from localrank.core.geogrid import RingsSpec, generate_grid
from localrank.core.ranking import find_target, rank_results
from localrank.etl.transform import to_place_record
from localrank.models import (
    SORT_OPTIONS,
    BusinessResult,
    Difficulty,
    FilterConfig,
    GeoGrid,
    GeoPoint,
    PlaceRecord,
    ResolvedLocation,
    TargetDescriptor,
)
from localrank.vendors import google_places, serpapi_maps
from localrank.vendors.google_places import GooglePlacesError, ProviderAccessError

logger = logging.getLogger(__name__)

Keywords = Union[str, Sequence[str]]


@dataclass
class AnalysisResult:
    center: ResolvedLocation
    businesses: List[BusinessResult]
    keywords: str
    message: str
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "center": self.center.to_dict(),
            "timestamp": self.timestamp,
            "keywords": self.keywords,
            "businesses": [business.to_dict() for business in self.businesses],
            "message": self.message,
        }


@dataclass
class GridCellRanking:
    point: GeoPoint
    rank: int
    found: bool
    visibility_score: int
    difficulty: Difficulty

    def to_dict(self) -> Dict[str, Any]:
        return {
            "point_id": self.point.point_id,
            "latitude": self.point.latitude,
            "longitude": self.point.longitude,
            "ring_index": self.point.ring_index,
            "rank": self.rank,
            "found": self.found,
            "visibility_score": self.visibility_score,
            "difficulty": self.difficulty,
        }


@dataclass
class GridScan:
    grid: GeoGrid
    cells: List[GridCellRanking]

    @property
    def found_count(self) -> int:
        return sum(1 for cell in self.cells if cell.found)

    @property
    def average_rank(self) -> Optional[float]:
        if not self.cells:
            return None
        return sum(cell.rank for cell in self.cells) / len(self.cells)

    def to_dict(self) -> Dict[str, Any]:
        box = self.grid.bounding_box
        return {
            "total_points": self.grid.total_points,
            "bounding_box": {"north": box.north, "south": box.south, "east": box.east, "west": box.west},
            "found_count": self.found_count,
            "average_rank": self.average_rank,
            "cells": [cell.to_dict() for cell in self.cells],
        }


def build_query(keywords: Keywords) -> str:
    if isinstance(keywords, str):
        parts = [keywords]
    else:
        parts = list(keywords)
    query = " ".join(str(part).strip() for part in parts if part and str(part).strip())
    if not query:
        raise ValueError("Keywords are empty")
    return query


def search_places(
    query: str,
    latitude: float,
    longitude: float,
    radius_km: float,
    settings: Settings,
    max_pages: int = 1,
) -> List[PlaceRecord]:
    """Fetch provider-ordered results around a point with the configured provider."""
    if settings.search_provider == "serpapi":
        if not settings.serpapi_api_key:
            raise ConfigError("SERPAPI_API_KEY is required for the serpapi search provider")
        data = serpapi_maps.fetch_from_serpapi(
            query, ll=serpapi_maps.format_ll(latitude, longitude), api_key=settings.serpapi_api_key
        )
        return serpapi_maps.parse_serpapi_maps(data)

    if not settings.google_api_key:
        raise ConfigError("GOOGLE_API_KEY is required for the google_places search provider")

    records: List[PlaceRecord] = []
    page_token = None
    processed_pages = 0
    while processed_pages < max_pages:
        response = google_places.text_search(
            query,
            settings.google_api_key,
            location=(latitude, longitude),
            radius_m=radius_km * 1000,
            pagetoken=page_token,
        )
        results = response.get("results", []) or []
        logger.info("Fetched %d results on page %d", len(results), processed_pages + 1)
        base = len(records)
        records.extend(to_place_record(result, base + offset) for offset, result in enumerate(results))

        processed_pages += 1
        page_token = response.get("next_page_token")
        if not page_token:
            break
        # Next-page tokens only become valid after a short delay.
        time.sleep(2.5)
    return records


def _summary_message(businesses: List[BusinessResult], found_rank: Optional[int], synthetic_rank: Optional[int]) -> str:
    prefix = f"Found {len(businesses)} businesses."
    if found_rank is not None:
        return f"{prefix} Your business ranks #{found_rank}."
    return f"{prefix} Your business was added at rank #{synthetic_rank} (not found in search results)."


def run_analysis(
    *,
    location: str,
    keywords: Keywords,
    target: TargetDescriptor,
    filters: Optional[FilterConfig] = None,
    settings: Optional[Settings] = None,
    resolver: Optional[LocationResolver] = None,
    max_pages: int = 1,
) -> AnalysisResult:
    settings = settings or get_settings()
    query = build_query(keywords)
    filters = filters or FilterConfig(radius_km=settings.search_radius_km, max_results=settings.max_results)
    resolver = resolver or build_resolver(settings)

    logger.info("Starting analysis for business=%r location=%r keywords=%r", target.name, location, query)
    center = resolver.resolve(location)
    if center.provider_errors:
        logger.warning("Location resolved with provider errors: %s", "; ".join(center.provider_errors))

    records = search_places(query, center.latitude, center.longitude, filters.radius_km, settings, max_pages)
    logger.info("Found %d businesses for query=%s", len(records), query)

    ranked = rank_results(records, target, center=center)
    target_entry = find_target(ranked)
    found_rank = target_entry.rank if target_entry and target_entry.rank <= len(records) else None
    synthetic_rank = None if found_rank is not None else len(records) + 1

    businesses = apply_filters(ranked, filters)
    return AnalysisResult(
        center=center,
        businesses=businesses,
        keywords=query,
        message=_summary_message(businesses, found_rank, synthetic_rank),
    )


def scan_grid(
    *,
    center: ResolvedLocation,
    keywords: Keywords,
    target: TargetDescriptor,
    rings: RingsSpec = "default",
    radius_km: float = 5.0,
    settings: Optional[Settings] = None,
    pause_seconds: float = 0.15,
) -> GridScan:
    """Re-run the search at each grid point and record where the target lands."""
    settings = settings or get_settings()
    query = build_query(keywords)
    grid = generate_grid(center.latitude, center.longitude, rings)
    logger.info("Scanning %d grid points for query=%s", grid.total_points, query)

    cells: List[GridCellRanking] = []
    for point in grid.all_points:
        records = search_places(query, point.latitude, point.longitude, radius_km, settings)
        entry = find_target(rank_results(records, target))
        cells.append(
            GridCellRanking(
                point=point,
                rank=entry.rank,
                found=entry.rank <= len(records),
                visibility_score=entry.visibility_score,
                difficulty=entry.difficulty,
            )
        )
        if pause_seconds:
            time.sleep(pause_seconds)

    scan = GridScan(grid=grid, cells=cells)
    logger.info("Grid scan complete: target found at %d/%d points", scan.found_count, len(cells))
    return scan


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Analyze local-search visibility of a business")
    parser.add_argument("--location", required=True, help="City, address or 'lat,lng'")
    parser.add_argument("--keywords", required=True, nargs="+", help="Search keywords")
    parser.add_argument("--business-name", dest="business_name", required=True)
    parser.add_argument("--business-address", dest="business_address", default="")
    parser.add_argument("--place-id", dest="place_id", default=None, help="Place identifier of the business")
    parser.add_argument("--radius-km", dest="radius_km", type=float, default=settings.search_radius_km)
    parser.add_argument("--min-rating", dest="min_rating", type=float, default=0.0)
    parser.add_argument("--max-results", dest="max_results", type=int, default=settings.max_results)
    parser.add_argument("--sort-by", dest="sort_by", choices=SORT_OPTIONS, default="relevance")
    parser.add_argument("--max-pages", dest="max_pages", type=int, default=1)
    parser.add_argument(
        "--grid",
        dest="grid",
        default=None,
        help="Also scan a geo-grid preset (default, dense, wide) around the resolved center",
    )
    return parser


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    args = build_parser().parse_args()

    target = TargetDescriptor(name=args.business_name, address=args.business_address, external_ref=args.place_id)
    filters = FilterConfig(
        radius_km=args.radius_km,
        min_rating=args.min_rating,
        max_results=args.max_results,
        sort_by=args.sort_by,
    )
    try:
        result = run_analysis(
            location=args.location,
            keywords=args.keywords,
            target=target,
            filters=filters,
            max_pages=args.max_pages,
        )
        output = result.to_dict()
        if args.grid:
            output["grid"] = scan_grid(center=result.center, keywords=args.keywords, target=target, rings=args.grid).to_dict()
    except (ConfigError, ProviderAccessError) as exc:
        logger.error("Configuration or quota problem: %s", exc)
        raise SystemExit(2) from exc
    except GooglePlacesError as exc:
        logger.error("Search provider failed: %s", exc)
        raise SystemExit(1) from exc
    except ValueError as exc:
        logger.error("Invalid input: %s", exc)
        raise SystemExit(2) from exc

    print(json.dumps(output, indent=2))


if __name__ == "__main__":
    main()
