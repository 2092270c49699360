"""Defensive parsing of LLM row payloads."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Sequence, Tuple

from ddl2data.core.schema.types import Row
from ddl2data.exceptions import ResponseParseError
from ddl2data.utils.logging import get_logger

logger = get_logger(__name__)

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r",\s*([\]}])")


class ResponseShape(str, Enum):
    """Recognized layouts of a row payload."""

    ROW_ARRAY = "row_array"  # [{...}, ...]
    WRAPPED_ROWS = "wrapped_rows"  # {"<table>": [{...}]} or {"rows": [...]}
    SINGLE_RECORD = "single_record"  # {...}


@dataclass
class ParsedResponse:
    shape: ResponseShape
    records: List[Any] = field(default_factory=list)


def strip_code_fences(text: str) -> str:
    """Return the content of the first markdown code fence, or the text itself."""
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    return text.strip().strip("`").strip()


def slice_json(text: str) -> str:
    """Slice from the first opening bracket to its last matching closer."""
    starts = [idx for idx in (text.find("["), text.find("{")) if idx >= 0]
    if not starts:
        return text
    start = min(starts)
    closer = "]" if text[start] == "[" else "}"
    end = text.rfind(closer)
    if end <= start:
        return text[start:]
    return text[start : end + 1]


def extract_json(text: Optional[str]) -> Any:
    """Decode the JSON payload embedded in an LLM response.

    Strips markdown fences, slices the outermost array/object and drops
    trailing commas before decoding.

    Raises:
        ResponseParseError: If no JSON value can be decoded
    """
    if not text or not text.strip():
        raise ResponseParseError("Empty response")

    candidate = slice_json(strip_code_fences(text))
    for attempt in (candidate, _TRAILING_COMMA_RE.sub(r"\1", candidate)):
        try:
            return json.loads(attempt)
        except json.JSONDecodeError:
            continue

    logger.debug(f"Unparsable response excerpt: {text[:300]!r}")
    raise ResponseParseError("Response does not contain valid JSON")


def parse_rows_response(text: Optional[str], table_name: str) -> ParsedResponse:
    """Parse a row payload for ``table_name``.

    Args:
        text: Raw response text
        table_name: Table the rows were requested for

    Returns:
        ParsedResponse tagged with the detected shape

    Raises:
        ResponseParseError: If the payload is not JSON or not a row layout
    """
    payload = extract_json(text)

    if isinstance(payload, list):
        return ParsedResponse(ResponseShape.ROW_ARRAY, payload)

    if isinstance(payload, dict) and payload:
        for key, value in payload.items():
            if key.lower() == table_name.lower() and isinstance(value, list):
                return ParsedResponse(ResponseShape.WRAPPED_ROWS, value)
        for value in payload.values():
            if isinstance(value, list):
                return ParsedResponse(ResponseShape.WRAPPED_ROWS, value)
        return ParsedResponse(ResponseShape.SINGLE_RECORD, [payload])

    raise ResponseParseError(f"Unsupported payload type: {type(payload).__name__}")


def sanitize_records(
    records: Sequence[Any],
    columns: Sequence[str],
    max_fields: int = 200,
) -> Tuple[List[Row], List[str]]:
    """Coerce parsed records into row dicts.

    Nulls and non-scalar entries are dropped, primitives become single-field
    records keyed by the first column (or ``value``), and records are capped
    at ``max_fields`` fields.

    Returns:
        (rows, adjustments) where adjustments describe what was changed
    """
    rows: List[Row] = []
    dropped = coerced = truncated = 0
    key = columns[0] if columns else "value"

    for record in records:
        if isinstance(record, dict):
            if len(record) > max_fields:
                record = dict(list(record.items())[:max_fields])
                truncated += 1
            rows.append(dict(record))
        elif isinstance(record, (str, int, float, bool)):
            rows.append({key: record})
            coerced += 1
        else:
            dropped += 1

    adjustments = []
    if dropped:
        adjustments.append(f"dropped {dropped} invalid records")
    if coerced:
        adjustments.append(f"coerced {coerced} primitive values into records")
    if truncated:
        adjustments.append(f"truncated {truncated} records to {max_fields} fields")
    return rows, adjustments
