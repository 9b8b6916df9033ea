from __future__ import annotations

from typing import Any, Callable, TypeVar

from config import Settings, settings
from duplicate_detector import find_duplicate
from errors import (
    DuplicateDetected,
    EmptyChangeset,
    InputMalformed,
    ValidationFailed,
    WriteConflict,
    ZoneNotFound,
)
from log_utils import get_logger
from manifest_builder import build_manifest
from reconciler import ReconcileOutcome, create_zone, delete_zone, find_zone, update_zone
from schemas import DuplicateRef, Manifest, ProcessingResult, ZoneSubmission
from submission_parser import parse_submission_text
from zone_store import ShardSnapshot, ZoneStore
from zone_validator import validate_deletion, validate_submission, validate_update

logger = get_logger(__name__)

T = TypeVar("T")


def _with_write_retries(attempt_fn: Callable[[], T], *, retries: int) -> tuple[T, int]:
    """Run ``attempt_fn`` until it persists without a WriteConflict.

    Every attempt must read fresh shard state itself; nothing is replayed
    against a stale snapshot.
    """
    attempts = max(retries, 1)
    for attempt in range(1, attempts + 1):
        try:
            return attempt_fn(), attempt
        except WriteConflict as exc:
            logger.warning("Write conflict on attempt %d/%d: %s", attempt, attempts, exc)
    raise WriteConflict(f"Dataset kept changing underneath the write; gave up after {attempts} attempts.")


def _run(action: str, operation: Callable[[], ProcessingResult]) -> ProcessingResult:
    try:
        return operation()
    except ValidationFailed as exc:
        logger.info("%s rejected: %d validation error(s)", action, len(exc.errors))
        return ProcessingResult(
            status=exc.status,
            action=action,
            message="Validation failed.",
            errors=exc.errors,
        )
    except (InputMalformed, EmptyChangeset) as exc:
        logger.info("%s rejected: %s", action, exc)
        return ProcessingResult(status=exc.status, action=action, message=str(exc))
    except DuplicateDetected as exc:
        logger.info("%s rejected as duplicate of %s", action, exc.zone_id)
        return ProcessingResult(
            status=exc.status,
            action=action,
            message=str(exc),
            duplicate_of=DuplicateRef(zone_id=exc.zone_id, name=exc.name),
        )
    except ZoneNotFound as exc:
        logger.info("%s rejected: %s", action, exc)
        return ProcessingResult(status=exc.status, action=action, message=str(exc), zone_id=exc.zone_id)
    except WriteConflict as exc:
        logger.warning("%s failed: %s", action, exc)
        return ProcessingResult(status=exc.status, action=action, message=str(exc))
    except Exception as exc:
        logger.exception("%s failed with an internal error", action)
        return ProcessingResult(status="error", action=action, message=f"Internal error: {exc}")


def _duplicate_thresholds(config: Settings) -> dict[str, float]:
    return {
        "name_distance_m": config.duplicate_name_distance_m,
        "name_similarity_min": config.duplicate_name_similarity,
        "proximity_distance_m": config.duplicate_proximity_distance_m,
        "radius_tolerance": config.duplicate_radius_tolerance,
    }


def regenerate_manifest(store: ZoneStore) -> Manifest:
    shards = [snapshot.shard for snapshot in store.read_all_shards()]
    manifest = build_manifest(shards)
    store.write_manifest(manifest)
    logger.info("Manifest updated with %d region(s).", len(manifest.regions))
    return manifest


def _refresh_manifest(store: ZoneStore, config: Settings) -> bool | None:
    if not config.rebuild_manifest_on_commit:
        return None
    try:
        regenerate_manifest(store)
    except (OSError, ValueError) as exc:
        logger.warning("Manifest update failed (non-fatal): %s", exc)
        return False
    return True


def _locate_snapshot(store: ZoneStore, zone_id: str) -> ShardSnapshot:
    snapshots = store.read_all_shards()
    location = find_zone((snapshot.shard for snapshot in snapshots), zone_id)
    if location is None:
        raise ZoneNotFound(zone_id)
    return snapshots[location.shard_index]


def _accepted(
    action: str,
    message: str,
    outcome: ReconcileOutcome,
    attempts: int,
    manifest_updated: bool | None,
) -> ProcessingResult:
    return ProcessingResult(
        status="accepted",
        action=action,
        message=message,
        zone_id=outcome.zone.id,
        country=outcome.shard.country,
        region=outcome.shard.region,
        geohash=outcome.bucket_key,
        previous_geohash=outcome.previous_bucket_key,
        version=outcome.zone.version,
        previous_version=outcome.previous_version,
        changed_fields=outcome.changed_fields or None,
        attempts=attempts,
        manifest_updated=manifest_updated,
    )


def _create(submission: ZoneSubmission, store: ZoneStore, config: Settings) -> ReconcileOutcome:
    snapshot = store.read(submission.country, submission.region)
    duplicate = find_duplicate(submission, snapshot.shard.zones, **_duplicate_thresholds(config))
    if duplicate is not None:
        raise DuplicateDetected(duplicate.id, duplicate.name)
    outcome = create_zone(snapshot.shard, submission, precision=config.geohash_precision)
    store.write(outcome.shard, snapshot.token)
    return outcome


def process_submission(raw: Any, *, store: ZoneStore, config: Settings = settings) -> ProcessingResult:
    """Validate, dedupe and add a new zone to its region shard."""

    def operation() -> ProcessingResult:
        submission = validate_submission(raw)
        outcome, attempts = _with_write_retries(
            lambda: _create(submission, store, config),
            retries=config.max_write_retries,
        )
        logger.info(
            "Added zone %s (%s/%s) in bucket %s",
            outcome.zone.id,
            outcome.shard.country,
            outcome.shard.region,
            outcome.bucket_key,
        )
        return _accepted(
            "create",
            f"Added zone {outcome.zone.name!r}.",
            outcome,
            attempts,
            _refresh_manifest(store, config),
        )

    return _run("create", operation)


def process_update(raw: Any, *, store: ZoneStore, config: Settings = settings) -> ProcessingResult:
    """Apply partial changes to an existing zone found anywhere in the dataset."""

    def attempt(zone_id: str, changes: dict[str, Any]) -> ReconcileOutcome:
        snapshot = _locate_snapshot(store, zone_id)
        outcome = update_zone(snapshot.shard, zone_id, changes, precision=config.geohash_precision)
        store.write(outcome.shard, snapshot.token)
        return outcome

    def operation() -> ProcessingResult:
        update = validate_update(raw)
        changes = update.changed_values()
        outcome, attempts = _with_write_retries(
            lambda: attempt(update.zone_id, changes),
            retries=config.max_write_retries,
        )
        logger.info(
            "Updated zone %s (%s) to version %d%s",
            outcome.zone.id,
            ", ".join(outcome.changed_fields),
            outcome.zone.version,
            f", moved {outcome.previous_bucket_key} -> {outcome.bucket_key}" if outcome.relocated else "",
        )
        return _accepted(
            "update",
            f"Updated zone {outcome.zone.name!r}: version {outcome.previous_version} -> {outcome.zone.version}.",
            outcome,
            attempts,
            _refresh_manifest(store, config),
        )

    return _run("update", operation)


def process_deletion(raw: Any, *, store: ZoneStore, config: Settings = settings) -> ProcessingResult:
    def attempt(zone_id: str) -> ReconcileOutcome:
        snapshot = _locate_snapshot(store, zone_id)
        outcome = delete_zone(snapshot.shard, zone_id)
        store.write(outcome.shard, snapshot.token)
        return outcome

    def operation() -> ProcessingResult:
        deletion = validate_deletion(raw)
        outcome, attempts = _with_write_retries(
            lambda: attempt(deletion.zone_id),
            retries=config.max_write_retries,
        )
        logger.info(
            "Deleted zone %s from %s/%s (reason: %s)",
            outcome.zone.id,
            outcome.shard.country,
            outcome.shard.region,
            deletion.reason or "none given",
        )
        return _accepted(
            "delete",
            f"Deleted zone {outcome.zone.name!r}.",
            outcome,
            attempts,
            _refresh_manifest(store, config),
        )

    return _run("delete", operation)


def _from_text(
    action: str,
    body: str | None,
    process: Callable[..., ProcessingResult],
    store: ZoneStore,
    config: Settings,
) -> ProcessingResult:
    try:
        payload = parse_submission_text(body)
    except InputMalformed as exc:
        logger.info("%s rejected: %s", action, exc)
        return ProcessingResult(status=exc.status, action=action, message=str(exc))
    return process(payload, store=store, config=config)


def process_submission_text(body: str | None, *, store: ZoneStore, config: Settings = settings) -> ProcessingResult:
    return _from_text("create", body, process_submission, store, config)


def process_update_text(body: str | None, *, store: ZoneStore, config: Settings = settings) -> ProcessingResult:
    return _from_text("update", body, process_update, store, config)


def process_deletion_text(body: str | None, *, store: ZoneStore, config: Settings = settings) -> ProcessingResult:
    return _from_text("delete", body, process_deletion, store, config)
