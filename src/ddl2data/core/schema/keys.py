"""Column type families and primary key inference."""

from __future__ import annotations

import re
from typing import List, Optional

from ddl2data.core.schema.types import TableMetadata

INTEGER_TYPES = {
    "int",
    "integer",
    "bigint",
    "smallint",
    "tinyint",
    "mediumint",
    "int2",
    "int4",
    "int8",
    "serial",
    "bigserial",
    "smallserial",
    "serial2",
    "serial4",
    "serial8",
}
DECIMAL_TYPES = {
    "numeric",
    "decimal",
    "real",
    "double",
    "float",
    "float4",
    "float8",
    "money",
    "number",
}
BOOLEAN_TYPES = {"boolean", "bool", "bit"}
TEXT_TYPES = {
    "text",
    "char",
    "character",
    "varchar",
    "nvarchar",
    "nchar",
    "string",
    "uuid",
    "citext",
    "clob",
    "tinytext",
    "mediumtext",
    "longtext",
}

_BASE_TYPE_RE = re.compile(r"[a-z_][a-z0-9_]*")


def base_type(raw_type: Optional[str]) -> str:
    """Lower-cased leading type keyword ("VARCHAR(100)" -> "varchar")."""
    match = _BASE_TYPE_RE.search((raw_type or "").lower())
    return match.group(0) if match else ""


def type_family(raw_type: Optional[str]) -> str:
    """Classify a declared SQL type into a generation family.

    Returns one of: integer, decimal, boolean, timestamp, date, time, text, unknown.
    """
    lowered = (raw_type or "").lower()
    base = base_type(lowered)
    # MySQL unsigned variants render as uint, ubigint, udecimal, ...
    if base.startswith("u") and (base[1:] in INTEGER_TYPES or base[1:] in DECIMAL_TYPES):
        base = base[1:]

    if base in INTEGER_TYPES:
        return "integer"
    if base in BOOLEAN_TYPES:
        return "boolean"
    if base in ("timestamp", "timestamptz", "datetime", "datetime2", "smalldatetime"):
        return "timestamp"
    if base == "date":
        return "date"
    if base in ("time", "timetz"):
        return "time"
    if base in TEXT_TYPES or "char" in base:
        return "text"
    if base in DECIMAL_TYPES or base.startswith("double"):
        return "decimal"
    return "unknown"


def is_numeric_type(raw_type: Optional[str]) -> bool:
    """True for integer/serial and decimal families."""
    return type_family(raw_type) in ("integer", "decimal")


def infer_single_primary_key(table_name: str, table: TableMetadata) -> Optional[str]:
    """Infer a single-column primary key.

    Precedence: declared single-column key; a numeric column named ``id``; a
    numeric column named ``<table>_id``; any numeric column ending in ``_id``.
    Tables with a declared composite key get None.

    Args:
        table_name: Table name
        table: Table definition

    Returns:
        Column name, or None when the table is treated as keyless
    """
    if len(table.primary_key) == 1:
        return table.primary_key[0]
    if table.primary_key:
        # Composite keys are never collapsed to one column
        return None

    numeric_columns = [
        name for name, col in table.columns.items() if is_numeric_type(col.type)
    ]

    for name in numeric_columns:
        if name.lower() == "id":
            return name

    table_id = f"{table_name.lower()}_id"
    for name in numeric_columns:
        if name.lower() == table_id:
            return name

    for name in numeric_columns:
        if name.lower().endswith("_id"):
            return name

    return None


def infer_primary_key(table_name: str, table: TableMetadata) -> List[str]:
    """Declared (possibly composite) key, else the inferred single column, else []."""
    if table.primary_key:
        return list(table.primary_key)
    inferred = infer_single_primary_key(table_name, table)
    return [inferred] if inferred else []
