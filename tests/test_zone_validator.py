import unittest

from errors import EmptyChangeset, ValidationFailed
from zone_validator import (
    ROOT_PATH,
    check_submission,
    normalized_submission,
    validate_deletion,
    validate_submission,
    validate_update,
)
from zone_fixtures import submission_payload


def _paths(exc: ValidationFailed) -> list[str]:
    return [error.field_path for error in exc.errors]


class SubmissionValidationTests(unittest.TestCase):
    def test_valid_submission_applies_defaults(self) -> None:
        submission = validate_submission(submission_payload())
        self.assertEqual(submission.free_minutes, 0)
        self.assertEqual(submission.currency, "GBP")
        self.assertEqual(submission.center.lat, -36.8442)

        normalized = normalized_submission(submission)
        self.assertEqual(normalized["freeMinutes"], 0)
        self.assertEqual(normalized["currency"], "GBP")
        self.assertEqual(normalized["enforcementType"], "council")
        self.assertNotIn("description", normalized)

    def test_system_fields_cannot_be_submitted(self) -> None:
        submission = validate_submission(
            submission_payload(id="mine", verified=True, version=9)
        )
        normalized = normalized_submission(submission)
        for name in ("id", "verified", "version"):
            self.assertNotIn(name, normalized)

    def test_optional_fields_round_trip(self) -> None:
        submission = validate_submission(
            submission_payload(
                description="Level 2 only",
                maxStayMinutes=120,
                chargePerHour=4.5,
                currency="NZD",
                noReturnMinutes=60,
                operatingHours=[
                    {"dayOfWeek": 1, "startTime": "08:00", "endTime": "18:00", "enforced": True}
                ],
                polygon=[{"lat": -36.844, "lng": 174.768}, {"lat": -36.845, "lng": 174.769}],
                city="Auckland",
            )
        )
        normalized = normalized_submission(submission)
        self.assertEqual(normalized["maxStayMinutes"], 120)
        self.assertEqual(normalized["operatingHours"][0]["startTime"], "08:00")
        self.assertEqual(len(normalized["polygon"]), 2)
        self.assertEqual(normalized["currency"], "NZD")

    def test_every_error_is_reported(self) -> None:
        payload = submission_payload(name="", enforcementType="car_park")
        del payload["center"]["lat"]
        with self.assertRaises(ValidationFailed) as ctx:
            validate_submission(payload)

        paths = _paths(ctx.exception)
        self.assertIn("center.lat", paths)
        self.assertIn("name", paths)
        self.assertIn("enforcementType", paths)
        self.assertGreaterEqual(len(paths), 3)

    def test_numeric_ranges(self) -> None:
        payload = submission_payload(
            radius=0,
            freeMinutes=-5,
            chargePerHour=-1,
            center={"lat": 91, "lng": -181},
        )
        with self.assertRaises(ValidationFailed) as ctx:
            validate_submission(payload)

        paths = _paths(ctx.exception)
        for expected in ("radius", "freeMinutes", "chargePerHour", "center.lat", "center.lng"):
            self.assertIn(expected, paths)

    def test_wrong_types_are_not_coerced(self) -> None:
        payload = submission_payload(
            radius=True,
            center={"lat": "-36.8442", "lng": 174.7681},
            operatingHours=[
                {"dayOfWeek": "1", "startTime": "08:00", "endTime": "18:00", "enforced": "yes"},
            ],
        )
        report = check_submission(payload)

        self.assertFalse(report.valid)
        paths = [error.field_path for error in report.errors]
        for expected in ("radius", "center.lat", "operatingHours.0.dayOfWeek", "operatingHours.0.enforced"):
            self.assertIn(expected, paths)
        self.assertNotIn("center.lng", paths)

    def test_integer_radius_is_still_a_number(self) -> None:
        self.assertEqual(validate_submission(submission_payload(radius=50)).radius, 50)

    def test_fractional_minutes(self) -> None:
        submission = validate_submission(
            submission_payload(freeMinutes=7.5, maxStayMinutes=90.5, noReturnMinutes=0.5)
        )
        self.assertEqual(submission.free_minutes, 7.5)
        normalized = normalized_submission(submission)
        self.assertEqual(normalized["maxStayMinutes"], 90.5)
        self.assertEqual(normalized["noReturnMinutes"], 0.5)

    def test_country_currency_and_region(self) -> None:
        payload = submission_payload(country="NZL", currency="NZ", region="")
        with self.assertRaises(ValidationFailed) as ctx:
            validate_submission(payload)

        paths = _paths(ctx.exception)
        self.assertIn("country", paths)
        self.assertIn("currency", paths)
        self.assertIn("region", paths)

    def test_region_must_be_a_slug(self) -> None:
        with self.assertRaises(ValidationFailed) as ctx:
            validate_submission(submission_payload(region="../etc"))
        self.assertEqual(_paths(ctx.exception), ["region"])

    def test_operating_hours_constraints(self) -> None:
        payload = submission_payload(
            operatingHours=[
                {"dayOfWeek": 7, "startTime": "8:00", "endTime": "18:00", "enforced": True},
            ]
        )
        with self.assertRaises(ValidationFailed) as ctx:
            validate_submission(payload)

        paths = _paths(ctx.exception)
        self.assertIn("operatingHours.0.dayOfWeek", paths)
        self.assertIn("operatingHours.0.startTime", paths)
        self.assertNotIn("operatingHours.0.endTime", paths)

    def test_non_object_payload(self) -> None:
        with self.assertRaises(ValidationFailed) as ctx:
            validate_submission(["not", "a", "zone"])
        self.assertEqual(_paths(ctx.exception), [ROOT_PATH])

    def test_check_submission_report(self) -> None:
        ok = check_submission(submission_payload())
        self.assertTrue(ok.valid)
        self.assertEqual(ok.data["name"], "Britomart Transport Centre")
        self.assertEqual(ok.errors, [])

        bad = check_submission({})
        self.assertFalse(bad.valid)
        self.assertIsNone(bad.data)
        self.assertIn("center", [error.field_path for error in bad.errors])


class UpdateValidationTests(unittest.TestCase):
    def test_partial_changes_do_not_pick_up_defaults(self) -> None:
        update = validate_update({"zoneId": "cdn-NZ-auckland-1", "changes": {"name": "Britomart East"}})
        self.assertEqual(update.zone_id, "cdn-NZ-auckland-1")
        self.assertEqual(update.changed_values(), {"name": "Britomart East"})

    def test_center_change_is_nested(self) -> None:
        update = validate_update(
            {"zoneId": "z1", "changes": {"center": {"lat": -41.2865, "lng": 174.7762}}}
        )
        self.assertEqual(update.changed_values(), {"center": {"lat": -41.2865, "lng": 174.7762}})

    def test_empty_changes(self) -> None:
        with self.assertRaises(EmptyChangeset):
            validate_update({"zoneId": "z1", "changes": {}})

    def test_only_system_fields_is_empty(self) -> None:
        with self.assertRaises(EmptyChangeset):
            validate_update({"zoneId": "z1", "changes": {"id": "x", "verified": True, "version": 5}})

    def test_invalid_changes_are_reported_with_path(self) -> None:
        with self.assertRaises(ValidationFailed) as ctx:
            validate_update({"zoneId": "", "changes": {"name": None, "radius": -3}})

        paths = _paths(ctx.exception)
        self.assertIn("zoneId", paths)
        self.assertIn("changes.name", paths)
        self.assertIn("changes.radius", paths)

    def test_changes_are_type_checked(self) -> None:
        with self.assertRaises(ValidationFailed) as ctx:
            validate_update({"zoneId": "z1", "changes": {"radius": "80", "enforcementType": "council"}})
        self.assertEqual(_paths(ctx.exception), ["changes.radius"])

    def test_missing_changes(self) -> None:
        with self.assertRaises(ValidationFailed) as ctx:
            validate_update({"zoneId": "z1"})
        self.assertEqual(_paths(ctx.exception), ["changes"])


class DeletionValidationTests(unittest.TestCase):
    def test_valid_deletion(self) -> None:
        deletion = validate_deletion({"zoneId": "z1", "reason": "Car park demolished"})
        self.assertEqual(deletion.zone_id, "z1")
        self.assertEqual(deletion.reason, "Car park demolished")

    def test_zone_id_required(self) -> None:
        with self.assertRaises(ValidationFailed) as ctx:
            validate_deletion({"reason": "gone"})
        self.assertEqual(_paths(ctx.exception), ["zoneId"])


if __name__ == "__main__":
    unittest.main()
