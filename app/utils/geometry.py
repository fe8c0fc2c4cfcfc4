"""
Geometry utilities for division boundary matching.
"""

import logging
from typing import Any, Optional, Sequence

logger = logging.getLogger(__name__)

MIN_RING_POINTS = 3


def to_float(value: Any) -> Optional[float]:
    """
    Coerce a coordinate to float.

    Accepts numbers and numeric strings. Returns None for anything else
    (None, empty strings, NaN, booleans, garbage).
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number:  # NaN
        return None
    return number


def is_valid_ring(ring: Optional[Sequence]) -> bool:
    """A usable outer ring is a list of at least three vertices."""
    return isinstance(ring, (list, tuple)) and len(ring) >= MIN_RING_POINTS


def point_in_polygon(lng: float, lat: float, ring: Sequence[Sequence[Any]]) -> bool:
    """
    Even-odd ray casting test for a point against a polygon ring.

    The ring is an ordered list of [lng, lat] vertices; closing the ring
    (repeating the first vertex) is optional. Each edge is treated as a
    half-open interval on the y axis, so a ray passing exactly through a
    shared vertex is counted once.

    Edges with a non-numeric endpoint are skipped with a warning instead of
    failing the whole test.
    """
    if not is_valid_ring(ring):
        return False

    x = to_float(lng)
    y = to_float(lat)
    if x is None or y is None:
        return False

    inside = False
    j = len(ring) - 1
    for i in range(len(ring)):
        vertex_i, vertex_j = ring[i], ring[j]
        j = i
        try:
            xi, yi = to_float(vertex_i[0]), to_float(vertex_i[1])
            xj, yj = to_float(vertex_j[0]), to_float(vertex_j[1])
        except (TypeError, IndexError):
            xi = yi = xj = yj = None

        if None in (xi, yi, xj, yj):
            logger.warning(f"Invalid polygon vertex skipped: {vertex_i!r} / {vertex_j!r}")
            continue

        if (yi > y) != (yj > y):
            crossing_x = (xj - xi) * (y - yi) / (yj - yi) + xi
            if x < crossing_x:
                inside = not inside

    return inside
