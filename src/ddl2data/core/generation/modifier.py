"""Merging agent-edited tables back into a stored dataset."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from ddl2data.core.generation.orchestrator import normalize_rows
from ddl2data.core.generation.response_parser import sanitize_records
from ddl2data.core.schema.types import Dataset, SchemaMetadata
from ddl2data.exceptions import ModificationError
from ddl2data.utils.logging import get_logger

logger = get_logger(__name__)


def coerce_modified_payload(payload: Any, table_name: Optional[str] = None) -> Dict[str, Any]:
    """Table mapping from a decoded modification response.

    A bare array is accepted when a single table was sent for editing.

    Raises:
        ModificationError: If the payload is not a table mapping
    """
    if isinstance(payload, list) and table_name:
        return {table_name: payload}
    if isinstance(payload, dict) and payload:
        return payload
    raise ModificationError(
        f"Modification response is not a table mapping: {type(payload).__name__}"
    )


def merge_modified_tables(
    schema: SchemaMetadata,
    original: Dataset,
    modified: Dict[str, Any],
    only: Optional[str] = None,
) -> Tuple[Dataset, List[str]]:
    """Replace the tables present in ``modified``; keep every other table.

    Table names match the schema case-insensitively. Rows are aligned to the
    schema columns. Tables outside the schema, outside ``only`` or without a
    row array are skipped.

    Args:
        schema: Schema of the stored dataset
        original: Stored data, left unmodified
        modified: Decoded ``{table: rows}`` mapping from the agent
        only: Restrict the merge to this table

    Returns:
        (merged dataset, skipped table names)
    """
    tables = {name.lower(): name for name in schema.tables}
    merged: Dataset = {name: list(rows) for name, rows in original.items()}
    skipped: List[str] = []

    for key, rows in modified.items():
        name = tables.get(str(key).lower())
        if name is None or (only is not None and name != only) or not isinstance(rows, list):
            skipped.append(str(key))
            continue
        columns = list(schema.tables[name].columns)
        records, adjustments = sanitize_records(rows, columns)
        if adjustments:
            logger.info(f"Modified {name}: {'; '.join(adjustments)}")
        merged[name] = normalize_rows(records, columns)

    if skipped:
        logger.warning(f"Skipped modified tables: {', '.join(skipped)}")
    return merged, skipped


def row_count_diff(before: Dataset, after: Dataset) -> Dict[str, Dict[str, int]]:
    """Row counts of every table whose size changed."""
    diff = {}
    for name in list(before) + [t for t in after if t not in before]:
        old, new = len(before.get(name) or []), len(after.get(name) or [])
        if old != new:
            diff[name] = {"before": old, "after": new, "delta": new - old}
    return diff
