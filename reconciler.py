from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Optional
from uuid import uuid4

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from errors import ValidationFailed, ZoneNotFound
from geohash_index import DEFAULT_PRECISION, encode
from schemas import SYSTEM_FIELDS, FieldError, ParkingZone, RegionShard, ZoneSubmission
from zone_validator import field_errors


@dataclass
class ReconcileOutcome:
    shard: RegionShard
    zone: ParkingZone
    bucket_key: str
    previous_bucket_key: Optional[str] = None
    previous_version: Optional[int] = None
    changed_fields: list[str] = field(default_factory=list)

    @property
    def relocated(self) -> bool:
        return self.previous_bucket_key is not None and self.previous_bucket_key != self.bucket_key


@dataclass(frozen=True)
class ZoneLocation:
    shard_index: int
    bucket_key: str
    position: int
    zone: ParkingZone


def empty_shard(country: str, region: str, *, now: datetime | None = None) -> RegionShard:
    return RegionShard(
        country=country,
        region=region,
        last_updated=now or datetime.now(UTC),
        zone_count=0,
        zones={},
    )


def generate_zone_id(country: str, region: str) -> str:
    return f"cdn-{country}-{region}-{uuid4()}"


def count_zones(zones: Mapping[str, list[ParkingZone]]) -> int:
    return sum(len(bucket) for bucket in zones.values())


def _stamp(shard: RegionShard, now: datetime | None) -> None:
    shard.zone_count = count_zones(shard.zones)
    shard.last_updated = now or datetime.now(UTC)


def _locate(shard: RegionShard, zone_id: str) -> tuple[str, int]:
    for bucket_key, bucket in shard.zones.items():
        for position, zone in enumerate(bucket):
            if zone.id == zone_id:
                return bucket_key, position
    raise ZoneNotFound(zone_id)


def find_zone(shards: Iterable[RegionShard], zone_id: str) -> Optional[ZoneLocation]:
    """Full scan: zone ids carry no shard or bucket information."""
    for shard_index, shard in enumerate(shards):
        try:
            bucket_key, position = _locate(shard, zone_id)
        except ZoneNotFound:
            continue
        return ZoneLocation(
            shard_index=shard_index,
            bucket_key=bucket_key,
            position=position,
            zone=shard.zones[bucket_key][position],
        )
    return None


def create_zone(
    shard: RegionShard,
    submission: ZoneSubmission,
    *,
    precision: int = DEFAULT_PRECISION,
    zone_id: str | None = None,
    now: datetime | None = None,
) -> ReconcileOutcome:
    if (submission.country, submission.region) != (shard.country, shard.region):
        raise ValueError(
            f"Submission for {submission.country}/{submission.region} "
            f"cannot be placed in shard {shard.country}/{shard.region}."
        )

    zone = ParkingZone.model_validate(
        {
            **submission.model_dump(),
            "id": zone_id or generate_zone_id(shard.country, shard.region),
            "verified": False,
            "version": 1,
        }
    )
    bucket_key = encode(zone.center, precision)

    new_shard = shard.model_copy(deep=True)
    new_shard.zones.setdefault(bucket_key, []).append(zone)
    _stamp(new_shard, now)
    return ReconcileOutcome(shard=new_shard, zone=zone, bucket_key=bucket_key)


def _reject_region_move(shard: RegionShard, changes: Mapping[str, Any]) -> None:
    errors: list[FieldError] = []
    for name, current in (("country", shard.country), ("region", shard.region)):
        if name in changes and changes[name] != current:
            errors.append(
                FieldError(
                    field_path=f"changes.{name}",
                    message="Moving a zone to another region is not supported; delete it and submit it again.",
                )
            )
    if errors:
        raise ValidationFailed(errors)


def update_zone(
    shard: RegionShard,
    zone_id: str,
    changes: Mapping[str, Any],
    *,
    precision: int = DEFAULT_PRECISION,
    now: datetime | None = None,
) -> ReconcileOutcome:
    """Merge snake_case ``changes`` onto a zone, re-bucketing when its center moves.

    The input shard is left untouched; the outcome carries a new shard, so a
    relocated zone is never visible in two buckets or in none.
    """
    changes = {name: value for name, value in changes.items() if name not in SYSTEM_FIELDS}
    _reject_region_move(shard, changes)

    new_shard = shard.model_copy(deep=True)
    old_key, position = _locate(new_shard, zone_id)
    existing = new_shard.zones[old_key][position]

    merged = existing.model_dump()
    merged.update(changes)
    merged["id"] = existing.id
    merged["verified"] = existing.verified
    merged["version"] = existing.version + 1
    try:
        updated = ParkingZone.model_validate(merged)
    except ValidationError as exc:
        raise ValidationFailed(field_errors(exc)) from None

    new_key = encode(updated.center, precision) if "center" in changes else old_key

    bucket = new_shard.zones[old_key]
    if new_key != old_key:
        del bucket[position]
        if not bucket:
            del new_shard.zones[old_key]
        new_shard.zones.setdefault(new_key, []).append(updated)
    else:
        bucket[position] = updated

    _stamp(new_shard, now)
    return ReconcileOutcome(
        shard=new_shard,
        zone=updated,
        bucket_key=new_key,
        previous_bucket_key=old_key,
        previous_version=existing.version,
        changed_fields=[to_camel(name) for name in changes],
    )


def delete_zone(
    shard: RegionShard,
    zone_id: str,
    *,
    now: datetime | None = None,
) -> ReconcileOutcome:
    new_shard = shard.model_copy(deep=True)
    bucket_key, position = _locate(new_shard, zone_id)
    bucket = new_shard.zones[bucket_key]
    removed = bucket.pop(position)
    if not bucket:
        del new_shard.zones[bucket_key]

    _stamp(new_shard, now)
    return ReconcileOutcome(
        shard=new_shard,
        zone=removed,
        bucket_key=bucket_key,
        previous_bucket_key=bucket_key,
        previous_version=removed.version,
    )
