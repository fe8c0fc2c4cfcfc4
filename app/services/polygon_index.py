"""
Division resolution for submitted coordinates.

resolve() maps a (lat, lng) pair to the first division whose outer ring
contains it, in storage order. Results, including "outside every division",
are cached for LOCATION_CACHE_TTL_HOURS keyed on the coordinate rounded to
6 decimals. A cache hit never rescans the boundaries.

Lookups fail closed: any error while scanning is logged and reported as
"outside jurisdiction".
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from app.core.settings import settings
from app.models.division import Division
from app.services.storage import DivisionRepository, get_repositories
from app.utils.clock import Clock, utc_now
from app.utils.geometry import is_valid_ring, point_in_polygon, to_float

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PolygonCacheEntry:
    division_id: Optional[str]
    division_name: Optional[str]
    expires_at: datetime

    @property
    def is_outside(self) -> bool:
        return self.division_id is None


class LocationCache:
    """Thread-safe TTL map of rounded coordinates to resolution results."""

    def __init__(self, ttl: timedelta, clock: Clock = utc_now):
        self.ttl = ttl
        self.clock = clock
        self._entries: Dict[str, PolygonCacheEntry] = {}
        self._lock = threading.Lock()

    @staticmethod
    def key(lat: float, lng: float) -> str:
        return f"{lat:.6f},{lng:.6f}"

    def get(self, key: str) -> Optional[PolygonCacheEntry]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self.clock():
                del self._entries[key]
                return None
            return entry

    def put(self, key: str, division: Optional[Division]) -> PolygonCacheEntry:
        entry = PolygonCacheEntry(
            division_id=division.id if division else None,
            division_name=division.name if division else None,
            expires_at=self.clock() + self.ttl,
        )
        with self._lock:
            self._entries[key] = entry
        return entry

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class PolygonIndex:
    def __init__(
        self,
        divisions: Optional[DivisionRepository] = None,
        cache: Optional[LocationCache] = None,
        clock: Clock = utc_now,
    ):
        self._divisions = divisions
        self.cache = cache or LocationCache(timedelta(hours=settings.LOCATION_CACHE_TTL_HOURS), clock)

    @property
    def divisions(self) -> DivisionRepository:
        if self._divisions is None:
            self._divisions = get_repositories().divisions
        return self._divisions

    def resolve(self, lat: Any, lng: Any) -> Optional[Division]:
        """
        Find the division containing a coordinate.

        Args:
            lat: Latitude, as a number or numeric string
            lng: Longitude, as a number or numeric string

        Returns:
            The matching Division, or None when the point is outside every
            division, the inputs are not numeric or the lookup failed.
        """
        latitude = to_float(lat)
        longitude = to_float(lng)
        if latitude is None or longitude is None:
            logger.warning(f"Non-numeric coordinates rejected: lat={lat!r}, lng={lng!r}")
            return None

        key = LocationCache.key(latitude, longitude)

        try:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug(f"Location cache hit for {key}: {cached.division_name or 'outside'}")
                if cached.is_outside:
                    return None
                # Re-read so officer rosters are current
                return self.divisions.get(cached.division_id)

            division = self._scan(latitude, longitude)
            self.cache.put(key, division)
            if division:
                logger.info(f"Location {key} resolved to division {division.name} ({division.id})")
            else:
                logger.info(f"Location {key} is outside all divisions")
            return division

        except Exception as e:
            logger.error(f"Division lookup failed for {key}: {e}", exc_info=True)
            return None

    def _scan(self, lat: float, lng: float) -> Optional[Division]:
        for division in self.divisions.list_all():
            if not is_valid_ring(division.boundary):
                logger.debug(f"Division {division.id} has no usable boundary, skipping")
                continue
            if point_in_polygon(lng, lat, division.boundary):
                return division
        return None


# Global service instance (singleton pattern)
_polygon_index: Optional[PolygonIndex] = None


def get_polygon_index() -> PolygonIndex:
    global _polygon_index
    if _polygon_index is None:
        _polygon_index = PolygonIndex()
    return _polygon_index


def reset_polygon_index() -> None:
    """Drop the singleton (and its cache) after the division source changes."""
    global _polygon_index
    _polygon_index = None
