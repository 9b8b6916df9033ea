from __future__ import annotations

import pygeohash

from schemas import Coordinate

DEFAULT_PRECISION = 6
MAX_PRECISION = 12


def encode(point: Coordinate, precision: int = DEFAULT_PRECISION) -> str:
    """Bucket key for ``point``; precision 6 is a cell of about 1.2 km x 0.6 km."""
    if not 1 <= precision <= MAX_PRECISION:
        raise ValueError(f"Geohash precision must be between 1 and {MAX_PRECISION}, got {precision}.")
    return pygeohash.encode(point.lat, point.lng, precision=precision)
