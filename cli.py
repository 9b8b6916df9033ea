"""Command-line entry points: validate a zone payload, rebuild the manifest."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from config import settings
from errors import InputMalformed
from submission_parser import parse_json_text
from zone_service import regenerate_manifest
from zone_store import ZoneStore
from zone_validator import check_submission


def load_json_argument(value: str) -> Any:
    """Treat ``value`` as a file path when one exists, else as inline JSON."""
    path = Path(value)
    try:
        is_file = path.is_file()
    except OSError:
        # inline JSON longer than the OS path limit
        is_file = False
    raw = path.read_text(encoding="utf-8") if is_file else value
    return parse_json_text(raw)


def validate_main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Validate a parking zone submission against the zone schema",
    )
    parser.add_argument("input", help="Inline JSON string or path to a JSON file")
    args = parser.parse_args(argv)

    try:
        data = load_json_argument(args.input)
    except InputMalformed as exc:
        print(str(exc), file=sys.stderr)
        return 1

    report = check_submission(data)
    if report.valid:
        print("Valid zone data.")
        print(json.dumps(report.data, indent=2, ensure_ascii=False))
        return 0

    print("Validation errors:", file=sys.stderr)
    for error in report.errors:
        print(f"  - {error.field_path}: {error.message}", file=sys.stderr)
    return 1


def update_manifest_main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Regenerate manifest.json from every region shard")
    parser.add_argument(
        "--root",
        type=Path,
        default=settings.dataset_root,
        help="Dataset root holding zones/ and manifest.json (default: %(default)s)",
    )
    args = parser.parse_args(argv)

    manifest = regenerate_manifest(ZoneStore(args.root))
    print(f"Manifest updated with {len(manifest.regions)} region(s).")
    return 0


def validate_entrypoint() -> None:
    raise SystemExit(validate_main())


def update_manifest_entrypoint() -> None:
    raise SystemExit(update_manifest_main())


if __name__ == "__main__":
    validate_entrypoint()
