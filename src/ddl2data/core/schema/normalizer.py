"""Normalization of schema payloads returned by an LLM agent.

Agents answer with a handful of JSON layouts. Each recognized layout is a
tagged :class:`PayloadShape`; anything else is rejected.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ddl2data.core.schema.types import (
    ColumnMetadata,
    ForeignKey,
    SchemaMetadata,
    TableMetadata,
)
from ddl2data.exceptions import SchemaParseError
from ddl2data.utils.logging import get_logger

logger = get_logger(__name__)

_TABLE_KEYS = ("columns", "cols", "schema")
_MAX_WRAP_DEPTH = 2


class PayloadShape(str, Enum):
    """Recognized layouts of an agent schema payload."""

    CANONICAL = "canonical"  # {"tables": {name: table}}
    TABLE_LIST = "table_list"  # {"tables": [table]}
    BARE_ARRAY = "bare_array"  # [table]
    KEYED_OBJECT = "keyed_object"  # {name: table}
    WRAPPED = "wrapped"  # {"<any>": <one of the above>}


TableEntry = Tuple[Optional[str], Dict[str, Any]]


def _looks_like_table(value: Any) -> bool:
    return isinstance(value, dict) and any(key in value for key in _TABLE_KEYS)


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def detect_shape(payload: Any, depth: int = 0) -> Optional[Tuple[PayloadShape, List[TableEntry]]]:
    """Classify a payload and list its (name hint, table payload) entries.

    Returns:
        (shape, entries), or None when the layout is not recognized
    """
    if isinstance(payload, dict) and "tables" in payload:
        tables = payload["tables"]
        if isinstance(tables, dict):
            return PayloadShape.CANONICAL, [
                (name, table) for name, table in tables.items() if isinstance(table, dict)
            ]
        if isinstance(tables, list):
            return PayloadShape.TABLE_LIST, [
                (None, table) for table in tables if isinstance(table, dict)
            ]

    if isinstance(payload, list):
        entries = [(None, table) for table in payload if isinstance(table, dict)]
        return (PayloadShape.BARE_ARRAY, entries) if entries else None

    if isinstance(payload, dict) and payload:
        if all(_looks_like_table(value) for value in payload.values()):
            return PayloadShape.KEYED_OBJECT, list(payload.items())

        if len(payload) == 1 and depth < _MAX_WRAP_DEPTH:
            inner = detect_shape(next(iter(payload.values())), depth + 1)
            if inner:
                return PayloadShape.WRAPPED, inner[1]

    return None


def _normalize_columns(raw: Any) -> Tuple[Dict[str, ColumnMetadata], List[str]]:
    columns: Dict[str, ColumnMetadata] = {}
    flagged_pk: List[str] = []

    if isinstance(raw, dict):
        items = []
        for name, definition in raw.items():
            if isinstance(definition, dict):
                items.append({"name": name, **definition})
            else:
                items.append({"name": name, "type": definition})
    else:
        items = _as_list(raw)

    for item in items:
        if isinstance(item, str):
            columns[item] = ColumnMetadata()
            continue
        if not isinstance(item, dict):
            continue
        name = item.get("name") or item.get("column") or item.get("col")
        if not name:
            continue
        enum_values = item.get("enumValues") or item.get("enum")
        columns[str(name)] = ColumnMetadata(
            type=str(item.get("type") or "text").lower(),
            nullable=item.get("nullable", True) is not False,
            default=item.get("default"),
            enum_values=[str(v) for v in enum_values] if isinstance(enum_values, list) else None,
        )
        if item.get("primaryKey") is True or item.get("pk") is True:
            flagged_pk.append(str(name))

    return columns, flagged_pk


def _normalize_foreign_key(raw: Any) -> Optional[ForeignKey]:
    if not isinstance(raw, dict):
        return None
    columns = [str(c) for c in _as_list(raw.get("columns") or raw.get("column"))]

    reference = None
    for key in ("referenceTable", "refTable", "table", "references", "on"):
        if raw.get(key):
            reference = raw[key]
            break
    ref_columns = _as_list(
        raw.get("referenceColumns") or raw.get("refColumns") or raw.get("refs")
    )
    if isinstance(reference, dict):
        ref_columns = ref_columns or _as_list(reference.get("columns") or reference.get("column"))
        reference = reference.get("table") or reference.get("name")

    if not columns or not reference:
        return None
    return ForeignKey(
        columns=columns,
        reference_table=str(reference),
        reference_columns=[str(c) for c in ref_columns] or list(columns),
    )


def normalize_table(name_hint: Optional[str], raw: Dict[str, Any]) -> Optional[TableMetadata]:
    """Normalize one table payload; None when it has no name."""
    name = raw.get("name") or raw.get("tableName") or raw.get("table") or name_hint
    if not name or not isinstance(name, str):
        return None

    raw_columns = None
    for key in _TABLE_KEYS:
        if raw.get(key):
            raw_columns = raw[key]
            break
    columns, flagged_pk = _normalize_columns(raw_columns)

    primary_key = _as_list(raw.get("primaryKey") or raw.get("primary_key")) or flagged_pk
    foreign_keys = []
    for fk_raw in _as_list(raw.get("foreignKeys") or raw.get("foreign_keys")):
        fk = _normalize_foreign_key(fk_raw)
        if fk:
            foreign_keys.append(fk)

    return TableMetadata(
        name=name,
        columns=columns,
        primary_key=[str(c) for c in primary_key],
        foreign_keys=foreign_keys,
    )


def normalize_schema_payload(payload: Any) -> SchemaMetadata:
    """Convert an agent schema payload into SchemaMetadata.

    Args:
        payload: Decoded JSON returned by the agent

    Returns:
        SchemaMetadata with the recognized tables

    Raises:
        SchemaParseError: If the layout is unrecognized or yields no table
    """
    detected = detect_shape(payload)
    if detected is None:
        raise SchemaParseError(
            f"Unrecognized schema payload ({type(payload).__name__})"
        )

    shape, entries = detected
    schema = SchemaMetadata()
    for name_hint, raw in entries:
        table = normalize_table(name_hint, raw)
        if table is None:
            schema.warn("missing-name", "Skipped an AI table without a name")
            continue
        schema.tables[table.name] = table

    if not schema.tables:
        raise SchemaParseError(f"Schema payload ({shape.value}) contains no tables")

    logger.debug(f"Normalized {shape.value} schema payload: {list(schema.tables)}")
    return schema
