from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ValidationError

from errors import EmptyChangeset, ValidationFailed
from schemas import (
    FieldError,
    ValidationReport,
    ZoneDeletion,
    ZoneSubmission,
    ZoneUpdate,
)

ROOT_PATH = "(root)"


def field_errors(exc: ValidationError) -> list[FieldError]:
    """Every violated constraint, in the order pydantic reports them."""
    errors: list[FieldError] = []
    for item in exc.errors(include_url=False):
        loc = item.get("loc") or ()
        path = ".".join(str(part) for part in loc) or ROOT_PATH
        errors.append(FieldError(field_path=path, message=item["msg"]))
    return errors


def _validate(model: type[BaseModel], raw: Any) -> Any:
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        raise ValidationFailed(field_errors(exc)) from None


def validate_submission(raw: Any) -> ZoneSubmission:
    return _validate(ZoneSubmission, raw)


def validate_update(raw: Any) -> ZoneUpdate:
    update = _validate(ZoneUpdate, raw)
    if not update.changed_values():
        raise EmptyChangeset()
    return update


def validate_deletion(raw: Any) -> ZoneDeletion:
    return _validate(ZoneDeletion, raw)


def normalized_submission(submission: ZoneSubmission) -> dict[str, Any]:
    return submission.to_wire()


def check_submission(raw: Any) -> ValidationReport:
    try:
        submission = validate_submission(raw)
    except ValidationFailed as exc:
        return ValidationReport(valid=False, errors=exc.errors)
    return ValidationReport(valid=True, data=normalized_submission(submission))
