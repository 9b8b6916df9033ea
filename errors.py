from __future__ import annotations

from schemas import FieldError


class ZoneProcessingError(Exception):
    status = "error"


class InputMalformed(ZoneProcessingError):
    """No parseable structured payload in the submission text."""

    status = "invalid"


class ValidationFailed(ZoneProcessingError):
    status = "invalid"

    def __init__(self, errors: list[FieldError]) -> None:
        self.errors = list(errors)
        summary = "; ".join(f"{e.field_path}: {e.message}" for e in self.errors)
        super().__init__(f"Validation failed: {summary}")


class EmptyChangeset(ZoneProcessingError):
    status = "invalid"

    def __init__(self) -> None:
        super().__init__("No changes provided in the update payload.")


class DuplicateDetected(ZoneProcessingError):
    status = "duplicate"

    def __init__(self, zone_id: str, name: str) -> None:
        self.zone_id = zone_id
        self.name = name
        super().__init__(f"Possible duplicate of existing zone {name!r} (ID: {zone_id}).")


class ZoneNotFound(ZoneProcessingError):
    status = "not_found"

    def __init__(self, zone_id: str) -> None:
        self.zone_id = zone_id
        super().__init__(f"Zone with ID {zone_id!r} not found.")


class WriteConflict(ZoneProcessingError):
    """Shard changed on disk since it was read; retry from a fresh read."""

    status = "conflict"


class EmptyRegionError(ValueError):
    pass
