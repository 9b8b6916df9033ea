from __future__ import annotations

from collections.abc import Iterable, Mapping
from math import asin, cos, floor, radians, sin, sqrt

from errors import EmptyRegionError
from schemas import BoundingBox, Coordinate, ParkingZone

EARTH_RADIUS_M = 6_371_000.0
BBOX_PADDING_DEG = 0.05


def distance_meters(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance using haversine formula."""
    dlat = radians(b.lat - a.lat)
    dlng = radians(b.lng - a.lng)
    h = (
        sin(dlat / 2) ** 2
        + cos(radians(a.lat)) * cos(radians(b.lat)) * sin(dlng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_M * asin(min(1.0, sqrt(h)))


def _round_one_decimal(value: float) -> float:
    # half-up, so -12.25 -> -12.2 and 12.25 -> 12.3
    return floor(value * 10 + 0.5) / 10


def iter_zones(zones: Mapping[str, Iterable[ParkingZone]]) -> Iterable[ParkingZone]:
    for bucket in zones.values():
        yield from bucket


def bounding_box(
    zones: Mapping[str, Iterable[ParkingZone]],
    *,
    padding_deg: float = BBOX_PADDING_DEG,
) -> BoundingBox:
    """Padded extent of every zone center in a region, rounded to 0.1 degree.

    Raises EmptyRegionError when the region holds no zones.
    """
    lats: list[float] = []
    lngs: list[float] = []
    for zone in iter_zones(zones):
        lats.append(zone.center.lat)
        lngs.append(zone.center.lng)

    if not lats:
        raise EmptyRegionError("Cannot compute a bounding box for a region with no zones.")

    return BoundingBox(
        north=_round_one_decimal(max(lats) + padding_deg),
        south=_round_one_decimal(min(lats) - padding_deg),
        east=_round_one_decimal(max(lngs) + padding_deg),
        west=_round_one_decimal(min(lngs) - padding_deg),
    )
