from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime

from log_utils import get_logger
from proximity_engine import bounding_box
from schemas import Manifest, ManifestRegion, RegionShard

logger = get_logger(__name__)


def build_manifest(shards: Iterable[RegionShard], *, now: datetime | None = None) -> Manifest:
    """Rebuild the manifest from shard state alone, keeping input order.

    A region emptied by deletions stays listed with a zero count and no bbox.
    """
    regions: list[ManifestRegion] = []
    for shard in shards:
        bbox = None
        if any(shard.zones.values()):
            bbox = bounding_box(shard.zones)
        else:
            logger.info("Region %s/%s has no zones; listing it without a bbox", shard.country, shard.region)
        regions.append(
            ManifestRegion(
                country=shard.country,
                region=shard.region,
                bbox=bbox,
                zone_count=shard.zone_count,
            )
        )

    return Manifest(regions=regions, last_updated=now or datetime.now(UTC))
