from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Optional

from proximity_engine import distance_meters, iter_zones
from schemas import ParkingZone

NAME_MATCH_DISTANCE_M = 50.0
NAME_MATCH_SIMILARITY = 0.6
PROXIMITY_MATCH_DISTANCE_M = 20.0
RADIUS_TOLERANCE = 0.3


def _tokens(name: str) -> set[str]:
    return set(name.lower().split())


def name_similarity(a: str, b: str) -> float:
    """Jaccard similarity of lowercased, whitespace-split name tokens."""
    tokens_a = _tokens(a)
    tokens_b = _tokens(b)
    if not tokens_a and not tokens_b:
        return 1.0
    if not tokens_a or not tokens_b:
        return 0.0
    return len(tokens_a & tokens_b) / len(tokens_a | tokens_b)


def radius_difference(r1: float, r2: float) -> Optional[float]:
    """Relative radius difference, or None when both radii are zero."""
    largest = max(r1, r2)
    if largest <= 0:
        return None
    return abs(r1 - r2) / largest


def find_duplicate(
    candidate: Any,
    zones: Mapping[str, Iterable[ParkingZone]],
    *,
    name_distance_m: float = NAME_MATCH_DISTANCE_M,
    name_similarity_min: float = NAME_MATCH_SIMILARITY,
    proximity_distance_m: float = PROXIMITY_MATCH_DISTANCE_M,
    radius_tolerance: float = RADIUS_TOLERANCE,
) -> Optional[ParkingZone]:
    """First zone anywhere in the region that looks like the same place.

    ``candidate`` needs ``name``, ``center`` and ``radius``; a submission or a
    stored zone both qualify. The whole region is scanned because a
    near-duplicate can sit just across a geohash cell edge.
    """
    for zone in iter_zones(zones):
        distance = distance_meters(candidate.center, zone.center)

        if distance <= name_distance_m:
            if name_similarity(candidate.name, zone.name) >= name_similarity_min:
                return zone

        if distance <= proximity_distance_m:
            diff = radius_difference(candidate.radius, zone.radius)
            if diff is not None and diff <= radius_tolerance:
                return zone

    return None
