from __future__ import annotations

import json
import re
from typing import Any

from errors import InputMalformed

# First ```json fenced block; the closing fence may be indented.
JSON_BLOCK_RE = re.compile(r"```json\s*\n(.*?)\n\s*```", re.DOTALL)


def extract_json_block(body: str | None) -> str:
    match = JSON_BLOCK_RE.search(body or "")
    if match is None:
        raise InputMalformed("No JSON code block found in submission body.")
    return match.group(1).strip()


def parse_json_text(raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InputMalformed(
            f"Invalid JSON: {exc.msg} (line {exc.lineno}, column {exc.colno})"
        ) from exc


def parse_submission_text(body: str | None) -> Any:
    return parse_json_text(extract_json_block(body))
