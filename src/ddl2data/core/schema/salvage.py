"""Regex salvage for CREATE TABLE blocks no grammar accepted."""

from __future__ import annotations

import re
from typing import List

from ddl2data.core.schema.sanitizer import (
    TableBlock,
    bare_name,
    column_name,
    split_block,
    split_top_level,
    unquote,
)
from ddl2data.core.schema.types import ColumnMetadata, ForeignKey, TableMetadata
from ddl2data.utils.logging import get_logger

logger = get_logger(__name__)

_IDENT = r"[`\"\[]?[\w$]+[`\"\]]?"
_QUALIFIED = rf"{_IDENT}(?:\s*\.\s*{_IDENT})*"

_PK_CLAUSE_RE = re.compile(
    rf"^(?:CONSTRAINT\s+{_IDENT}\s+)?PRIMARY\s+KEY\s*\(([^)]*)\)", re.IGNORECASE
)
_FK_CLAUSE_RE = re.compile(
    rf"^(?:CONSTRAINT\s+{_IDENT}\s+)?FOREIGN\s+KEY\s*\(([^)]*)\)\s*"
    rf"REFERENCES\s+({_QUALIFIED})\s*(?:\(([^)]*)\))?",
    re.IGNORECASE,
)
_OTHER_CONSTRAINT_RE = re.compile(
    r"^(?:CONSTRAINT|UNIQUE|KEY|INDEX|FULLTEXT|SPATIAL|CHECK|EXCLUDE|LIKE)\b",
    re.IGNORECASE,
)
_COLUMN_RE = re.compile(
    rf"^({_IDENT})\s+"
    r"([A-Za-z_]\w*(?:\s+(?:precision|varying))?(?:\s*\([^)]*\))?(?:\s*\[\])?)",
    re.IGNORECASE,
)
_NOT_NULL_RE = re.compile(r"\bNOT\s+NULL\b", re.IGNORECASE)
_INLINE_PK_RE = re.compile(r"\bPRIMARY\s+KEY\b", re.IGNORECASE)
_DEFAULT_RE = re.compile(r"\bDEFAULT\s+('(?:[^']|'')*'|\([^)]*\)|[^\s,]+)", re.IGNORECASE)
_REFERENCES_RE = re.compile(
    rf"\bREFERENCES\s+({_QUALIFIED})\s*(?:\(([^)]*)\))?", re.IGNORECASE
)


def _identifiers(text: str) -> List[str]:
    return [bare_name(part) for part in split_top_level(text or "") if part.strip()]


def salvage_table(block: TableBlock) -> TableMetadata:
    """Recover what a regex can from one CREATE TABLE block.

    Never fails: a block with an unreadable body yields a table with no
    columns.

    Args:
        block: The CREATE TABLE block

    Returns:
        TableMetadata for the block's table
    """
    table = TableMetadata(name=block.name)
    _, body, _ = split_block(block.text)

    for item in split_top_level(body):
        pk_match = _PK_CLAUSE_RE.match(item)
        if pk_match:
            table.primary_key = _identifiers(pk_match.group(1))
            continue

        fk_match = _FK_CLAUSE_RE.match(item)
        if fk_match:
            columns = _identifiers(fk_match.group(1))
            ref_columns = _identifiers(fk_match.group(3)) or list(columns)
            table.foreign_keys.append(
                ForeignKey(
                    columns=columns,
                    reference_table=bare_name(fk_match.group(2)),
                    reference_columns=ref_columns,
                )
            )
            continue

        if _OTHER_CONSTRAINT_RE.match(item):
            continue

        col_match = _COLUMN_RE.match(item)
        if col_match:
            name = bare_name(col_match.group(1))
            col_type = re.sub(r"\s+", " ", col_match.group(2)).lower()
        else:
            name = column_name(item)
            col_type = "text"
        if not name:
            continue

        default_match = _DEFAULT_RE.search(item)
        table.columns[name] = ColumnMetadata(
            type=col_type,
            nullable=not _NOT_NULL_RE.search(item),
            default=unquote(default_match.group(1)) if default_match else None,
        )

        if _INLINE_PK_RE.search(item) and name not in table.primary_key:
            table.primary_key.append(name)

        ref_match = _REFERENCES_RE.search(item)
        if ref_match:
            table.foreign_keys.append(
                ForeignKey(
                    columns=[name],
                    reference_table=bare_name(ref_match.group(1)),
                    reference_columns=_identifiers(ref_match.group(2)) or [name],
                )
            )

    logger.debug(
        f"Salvaged {block.name}: {len(table.columns)} columns, "
        f"pk={table.primary_key}, fks={len(table.foreign_keys)}"
    )
    return table
