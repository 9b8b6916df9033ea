from datetime import UTC, datetime
from typing import Any

from fastapi import Body, FastAPI, HTTPException

from config import settings
from log_utils import get_logger
from schemas import (
    HealthResponse,
    Manifest,
    ProcessingResult,
    SubmissionEnvelope,
    ValidationReport,
)
from zone_service import (
    process_deletion_text,
    process_submission_text,
    process_update_text,
    regenerate_manifest,
)
from zone_store import ZoneStore
from zone_validator import check_submission

logger = get_logger(__name__)

app = FastAPI(
    title="ParkGuard Zones",
    description="Community parking zone intake: validation, deduplication and dataset reconciliation",
    version="0.1.0",
)

store = ZoneStore(settings.dataset_root)


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="ok")


@app.get("/system-health")
def system_health() -> dict:
    return {
        "status": "ok",
        "service": app.title,
        "version": app.version,
        "timestamp": datetime.now(UTC),
        "dataset_root": str(store.root),
        "store": store.stats(),
    }


@app.post("/zones/validate", response_model=ValidationReport)
def validate_zone(payload: Any = Body(...)) -> ValidationReport:
    return check_submission(payload)


@app.post("/submissions", response_model=ProcessingResult)
def submit_zone(envelope: SubmissionEnvelope) -> ProcessingResult:
    return process_submission_text(envelope.body, store=store, config=settings)


@app.post("/updates", response_model=ProcessingResult)
def update_zone(envelope: SubmissionEnvelope) -> ProcessingResult:
    return process_update_text(envelope.body, store=store, config=settings)


@app.post("/deletions", response_model=ProcessingResult)
def delete_zone(envelope: SubmissionEnvelope) -> ProcessingResult:
    return process_deletion_text(envelope.body, store=store, config=settings)


@app.get("/manifest", response_model=Manifest, response_model_exclude_none=True)
def get_manifest() -> Manifest:
    manifest = store.read_manifest()
    if manifest is None:
        raise HTTPException(status_code=404, detail="Manifest has not been generated yet")
    return manifest


@app.post("/manifest/rebuild", response_model=Manifest)
def rebuild_manifest() -> Manifest:
    manifest = regenerate_manifest(store)
    logger.info("Manifest rebuilt on request")
    return manifest
