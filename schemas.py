from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, create_model
from pydantic.alias_generators import to_camel

# Region slugs double as directory names in the dataset.
REGION_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9_.-]*$"
COUNTRY_PATTERN = r"^[A-Za-z]{2}$"
CLOCK_PATTERN = r"^\d{2}:\d{2}$"


class WireModel(BaseModel):
    """Snake_case in Python, camelCase on the wire.

    Strict: a string is never a number and a number is never a bool. Enum
    fields opt back into lax mode so their wire strings are accepted.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, strict=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class HealthResponse(BaseModel):
    status: str = Field(..., examples=["ok"])


class EnforcementType(str, Enum):
    government = "government"
    private = "private"
    council = "council"
    hospital = "hospital"
    university = "university"
    airport = "airport"
    shopping_centre = "shopping_centre"
    residential = "residential"
    other = "other"


class EnforcementMethod(str, Enum):
    camera_anpr = "camera_anpr"
    physical_warden = "physical_warden"
    ticket_machine = "ticket_machine"
    pay_and_display = "pay_and_display"
    barrier = "barrier"
    clamp = "clamp"
    tow = "tow"
    mixed = "mixed"
    unknown = "unknown"


class Coordinate(WireModel):
    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class OperatingHours(WireModel):
    day_of_week: int = Field(..., ge=0, le=6)
    start_time: str = Field(..., pattern=CLOCK_PATTERN, examples=["08:00"])
    end_time: str = Field(..., pattern=CLOCK_PATTERN, examples=["18:00"])
    enforced: bool


class ParkingZone(WireModel):
    id: str
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    center: Coordinate
    radius: float = Field(..., gt=0, description="Meters")
    polygon: Optional[list[Coordinate]] = None
    enforcement_type: EnforcementType = Field(..., strict=False)
    enforcement_method: EnforcementMethod = Field(..., strict=False)
    enforcement_company: Optional[str] = None
    legislation_code: Optional[str] = None
    free_minutes: float = Field(0, ge=0)
    max_stay_minutes: Optional[float] = Field(None, ge=0)
    charge_per_hour: Optional[float] = Field(None, ge=0)
    currency: str = Field("GBP", min_length=3, max_length=3)
    operating_hours: Optional[list[OperatingHours]] = None
    no_return_minutes: Optional[float] = Field(None, ge=0)
    reparking_tips: Optional[str] = None
    country: str = Field(..., pattern=COUNTRY_PATTERN)
    region: str = Field(..., min_length=1, pattern=REGION_PATTERN)
    city: Optional[str] = None
    verified: bool = False
    version: int = Field(1, gt=0)


SYSTEM_FIELDS = ("id", "verified", "version")


def _annotation_with_constraints(info) -> Any:
    if not info.metadata:
        return info.annotation
    return Annotated[(info.annotation, *info.metadata)]


def omit_fields(model: type[WireModel], *names: str, model_name: str) -> type[WireModel]:
    """Derive a model carrying every field of ``model`` except ``names``."""
    fields: dict[str, Any] = {}
    for field_name, info in model.model_fields.items():
        if field_name in names:
            continue
        default = ... if info.is_required() else info.default
        fields[field_name] = (
            _annotation_with_constraints(info),
            Field(default, description=info.description),
        )
    return create_model(model_name, __base__=WireModel, **fields)


def make_partial(model: type[WireModel], *, model_name: str) -> type[WireModel]:
    """Derive a model where every field may be omitted.

    Omitted fields stay unset (see ``model_dump(exclude_unset=True)``), so
    defaults of the source model never leak into a partial payload. An
    explicit ``null`` is still rejected for fields that are not optional.
    """
    fields: dict[str, Any] = {}
    for field_name, info in model.model_fields.items():
        fields[field_name] = (
            _annotation_with_constraints(info),
            Field(None, description=info.description),
        )
    return create_model(model_name, __base__=WireModel, **fields)


ZoneSubmission = omit_fields(ParkingZone, *SYSTEM_FIELDS, model_name="ZoneSubmission")
ZoneChanges = make_partial(ZoneSubmission, model_name="ZoneChanges")


class ZoneUpdate(WireModel):
    zone_id: str = Field(..., min_length=1)
    changes: ZoneChanges

    def changed_values(self) -> dict[str, Any]:
        return self.changes.model_dump(exclude_unset=True)


class ZoneDeletion(WireModel):
    zone_id: str = Field(..., min_length=1)
    reason: Optional[str] = None


class BoundingBox(WireModel):
    north: float
    south: float
    east: float
    west: float


class RegionShard(WireModel):
    country: str = Field(..., pattern=COUNTRY_PATTERN)
    region: str = Field(..., min_length=1, pattern=REGION_PATTERN)
    last_updated: datetime
    zone_count: int = Field(0, ge=0)
    zones: dict[str, list[ParkingZone]] = Field(default_factory=dict)


class ManifestRegion(WireModel):
    country: str
    region: str
    bbox: Optional[BoundingBox] = Field(None, description="Absent while the region holds no zones")
    zone_count: int


class Manifest(WireModel):
    regions: list[ManifestRegion]
    last_updated: datetime


class FieldError(WireModel):
    field_path: str
    message: str


class DuplicateRef(BaseModel):
    zone_id: str
    name: str


class ValidationReport(BaseModel):
    valid: bool
    data: Optional[dict[str, Any]] = None
    errors: list[FieldError] = Field(default_factory=list)


class ProcessingResult(BaseModel):
    status: str = Field(
        ...,
        description="accepted | invalid | duplicate | not_found | conflict | error",
    )
    action: str = Field(..., description="create | update | delete | manifest")
    message: str
    zone_id: Optional[str] = None
    country: Optional[str] = None
    region: Optional[str] = None
    geohash: Optional[str] = None
    previous_geohash: Optional[str] = None
    version: Optional[int] = None
    previous_version: Optional[int] = None
    changed_fields: Optional[list[str]] = None
    errors: list[FieldError] = Field(default_factory=list)
    duplicate_of: Optional[DuplicateRef] = None
    attempts: Optional[int] = None
    manifest_updated: Optional[bool] = None


class SubmissionEnvelope(BaseModel):
    body: str = Field(..., description="Submission text containing one ```json fenced block")
