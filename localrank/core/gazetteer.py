"""Static place-name table used as the last geocoding fallback."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GazetteerEntry:
    latitude: float
    longitude: float
    formatted_address: str


# (city, region code, country, lat, lng, extra aliases)
_PLACES: Tuple[Tuple[str, str, str, float, float, Tuple[str, ...]], ...] = (
    ("Los Angeles", "CA", "USA", 34.0522, -118.2437, ()),
    ("San Francisco", "CA", "USA", 37.7749, -122.4194, ()),
    ("San Diego", "CA", "USA", 32.7157, -117.1611, ()),
    ("New York", "NY", "USA", 40.7128, -74.006, ("new york city", "nyc")),
    ("Chicago", "IL", "USA", 41.8781, -87.6298, ()),
    ("Houston", "TX", "USA", 29.7604, -95.3698, ()),
    ("Phoenix", "AZ", "USA", 33.4484, -112.074, ()),
    ("Philadelphia", "PA", "USA", 39.9526, -75.1652, ()),
    ("San Antonio", "TX", "USA", 29.4241, -98.4936, ()),
    ("Dallas", "TX", "USA", 32.7767, -96.797, ()),
    ("San Jose", "CA", "USA", 37.3382, -121.8863, ()),
    ("Austin", "TX", "USA", 30.2672, -97.7431, ()),
    ("Fort Worth", "TX", "USA", 32.7555, -97.3308, ()),
    ("Columbus", "OH", "USA", 39.9612, -82.9988, ()),
    ("Charlotte", "NC", "USA", 35.2271, -80.8431, ()),
    ("Indianapolis", "IN", "USA", 39.7684, -86.1581, ()),
    ("Seattle", "WA", "USA", 47.6062, -122.3321, ()),
    ("Denver", "CO", "USA", 39.7392, -104.9903, ()),
    ("Washington", "DC", "USA", 38.9072, -77.0369, ()),
    ("Boston", "MA", "USA", 42.3601, -71.0589, ()),
    ("El Paso", "TX", "USA", 31.7619, -106.485, ()),
    ("Nashville", "TN", "USA", 36.1627, -86.7816, ()),
    ("Detroit", "MI", "USA", 42.3314, -83.0458, ()),
    ("Portland", "OR", "USA", 45.5152, -122.6784, ()),
    ("Las Vegas", "NV", "USA", 36.1699, -115.1398, ()),
    ("Memphis", "TN", "USA", 35.1495, -90.049, ()),
    ("Louisville", "KY", "USA", 38.2527, -85.7585, ()),
    ("Baltimore", "MD", "USA", 39.2904, -76.6122, ()),
    ("Milwaukee", "WI", "USA", 43.0389, -87.9065, ()),
    ("Albuquerque", "NM", "USA", 35.0844, -106.6504, ()),
    ("Tucson", "AZ", "USA", 32.2226, -110.9747, ()),
    ("Fresno", "CA", "USA", 36.7378, -119.7871, ()),
    ("Sacramento", "CA", "USA", 38.5816, -121.4944, ()),
    ("Kansas City", "MO", "USA", 39.0997, -94.5786, ()),
    ("Mesa", "AZ", "USA", 33.4152, -111.8315, ()),
    ("Atlanta", "GA", "USA", 33.749, -84.388, ()),
    ("Colorado Springs", "CO", "USA", 38.8339, -104.8214, ()),
    ("Omaha", "NE", "USA", 41.2565, -95.9345, ()),
    ("Raleigh", "NC", "USA", 35.7796, -78.6382, ()),
    ("Miami", "FL", "USA", 25.7617, -80.1918, ()),
    ("Oakland", "CA", "USA", 37.8044, -122.2712, ()),
    ("Minneapolis", "MN", "USA", 44.9778, -93.265, ()),
    ("Tulsa", "OK", "USA", 36.154, -95.9928, ()),
    ("Cleveland", "OH", "USA", 41.4993, -81.6944, ()),
    ("Wichita", "KS", "USA", 37.6872, -97.3301, ()),
    ("Arlington", "TX", "USA", 32.7357, -97.1081, ()),
    ("Toronto", "ON", "Canada", 43.6532, -79.3832, ()),
    ("Vancouver", "BC", "Canada", 49.2827, -123.1207, ()),
    ("Montreal", "QC", "Canada", 45.5017, -73.5673, ()),
    ("Calgary", "AB", "Canada", 51.0447, -114.0719, ()),
    ("Ottawa", "ON", "Canada", 45.4215, -75.6972, ()),
    ("Edmonton", "AB", "Canada", 53.5461, -113.4938, ()),
)


def _build_table() -> Mapping[str, GazetteerEntry]:
    table: Dict[str, GazetteerEntry] = {}
    for city, region, country, lat, lng, aliases in _PLACES:
        entry = GazetteerEntry(latitude=lat, longitude=lng, formatted_address=f"{city}, {region}, {country}")
        for key in (city.lower(), f"{city}, {region}".lower(), *aliases):
            table.setdefault(key, entry)
    return MappingProxyType(table)


PLACES: Mapping[str, GazetteerEntry] = _build_table()
DISPLAY_NAMES: Tuple[str, ...] = tuple(f"{city}, {region}" for city, region, *_ in _PLACES)


def lookup(text: str) -> Optional[GazetteerEntry]:
    """Exact case-insensitive match first, then the first key/input containment match."""
    needle = (text or "").lower().strip()
    if not needle:
        return None

    entry = PLACES.get(needle)
    if entry is not None:
        return entry

    for key, candidate in PLACES.items():
        if needle in key or key in needle:
            logger.debug("Gazetteer partial match %r -> %r", needle, key)
            return candidate
    return None


def suggest(text: str, limit: int = 5) -> List[str]:
    prefix = (text or "").lower().strip()
    if not prefix:
        return []
    return [name for name in DISPLAY_NAMES if name.lower().startswith(prefix)][:limit]
