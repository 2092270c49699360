"""DDL sanitization and CREATE TABLE segmentation.

Vendor syntax that trips structured parsers is normalized here, while the
information it carried (enum values, CHECK expressions) is moved into a side
channel keyed by table and column.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ddl2data.core.schema.types import CheckConstraint

_QUOTES = ("'", '"', "`")

CREATE_TABLE_RE = re.compile(
    r"CREATE\s+(?:OR\s+REPLACE\s+)?(?:(?:GLOBAL|LOCAL)\s+)?"
    r"(?:(?:TEMP|TEMPORARY|UNLOGGED)\s+)?TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?"
    r"(?P<name>(?:[`\"\[]?[\w$]+[`\"\]]?\s*\.\s*)*[`\"\[]?[\w$]+[`\"\]]?)\s*\(",
    re.IGNORECASE,
)
_ENUM_TYPE_RE = re.compile(
    r"CREATE\s+TYPE\s+(?P<name>[`\"]?[\w$.]+[`\"]?)\s+AS\s+ENUM\s*\(",
    re.IGNORECASE,
)
_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
_LINE_COMMENT_RE = re.compile(r"--[^\n]*")
_HASH_COMMENT_RE = re.compile(r"^\s*#[^\n]*", re.MULTILINE)
_AUTO_INCREMENT_OPTION_RE = re.compile(r"\bAUTO_INCREMENT\s*=\s*\d+", re.IGNORECASE)
_AUTO_INCREMENT_COLUMN_RE = re.compile(
    r"(?<=\s)(?:BIG|SMALL|TINY|MEDIUM)?INT(?:EGER)?\b(?:\s*\(\s*\d+\s*\))?"
    r"(?:\s+UNSIGNED)?(?P<mid>[^,()]*?)\bAUTO_?INCREMENT\b",
    re.IGNORECASE,
)
_AUTO_INCREMENT_RE = re.compile(r"\bAUTO_?INCREMENT\b", re.IGNORECASE)
_DATETIME_RE = re.compile(
    r"\bTIMESTAMP\s+WITH(?:OUT)?\s+TIME\s+ZONE\b|\bTIMESTAMPTZ\b|\bSMALLDATETIME\b|\bDATETIME2?\b",
    re.IGNORECASE,
)
_TABLE_CHECK_RE = re.compile(r"^(?:CONSTRAINT\s+\S+\s+)?CHECK\s*\(", re.IGNORECASE)
_CONSTRAINT_ITEM_RE = re.compile(
    r"^(?:CONSTRAINT|PRIMARY\s+KEY|FOREIGN\s+KEY|UNIQUE|KEY|INDEX|FULLTEXT|SPATIAL|EXCLUDE)\b",
    re.IGNORECASE,
)
_COLUMN_NAME_RE = re.compile(r"^[`\"\[]?([\w$]+)[`\"\]]?")
_ENUM_RE = re.compile(r"\bENUM\s*\(", re.IGNORECASE)
_INLINE_CHECK_RE = re.compile(
    r"(?:\bCONSTRAINT\s+[`\"]?[\w$]+[`\"]?\s+)?\bCHECK\s*\(", re.IGNORECASE
)


@dataclass
class TableBlock:
    """One CREATE TABLE statement located in DDL text."""

    name: str
    text: str
    start: int
    end: int


@dataclass
class SanitizedDDL:
    """Sanitized DDL text plus the side-channel metadata removed from it."""

    text: str
    enums: Dict[str, Dict[str, List[str]]] = field(default_factory=dict)
    checks: Dict[str, List[CheckConstraint]] = field(default_factory=dict)


def bare_name(name: str) -> str:
    """Strip schema qualifiers and identifier quotes (`public."Users"` -> Users)."""
    last = re.split(r"\s*\.\s*", name.strip())[-1]
    return last.strip('`"[]')


def unquote(value: str) -> str:
    """Strip one level of SQL quotes from a literal."""
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in _QUOTES:
        quote = value[0]
        return value[1:-1].replace(quote * 2, quote)
    return value


def find_matching_paren(text: str, open_idx: int) -> Optional[int]:
    """Index of the parenthesis closing ``text[open_idx]``, ignoring quoted text."""
    depth = 0
    quote: Optional[str] = None
    i = open_idx
    length = len(text)
    while i < length:
        ch = text[i]
        if quote:
            if ch == "\\" and quote == "'":
                i += 2
                continue
            if ch == quote:
                if i + 1 < length and text[i + 1] == quote:
                    i += 2
                    continue
                quote = None
        elif ch in _QUOTES:
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return None


def split_top_level(text: str, sep: str = ",") -> List[str]:
    """Split on ``sep`` outside parentheses and quotes; empty items dropped."""
    items: List[str] = []
    depth = 0
    quote: Optional[str] = None
    current: List[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if quote:
            current.append(ch)
            if ch == "\\" and quote == "'" and i + 1 < len(text):
                current.append(text[i + 1])
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in _QUOTES:
            quote = ch
            current.append(ch)
        elif ch == "(":
            depth += 1
            current.append(ch)
        elif ch == ")":
            depth = max(0, depth - 1)
            current.append(ch)
        elif ch == sep and depth == 0:
            items.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
        i += 1
    items.append("".join(current).strip())
    return [item for item in items if item]


def _next_terminator(text: str, idx: int) -> int:
    """Index just past the next ``;`` outside quotes (or len(text))."""
    quote: Optional[str] = None
    i = idx
    while i < len(text):
        ch = text[i]
        if quote:
            if ch == quote:
                quote = None
        elif ch in _QUOTES:
            quote = ch
        elif ch == ";":
            return i + 1
        i += 1
    return len(text)


def segment_create_tables(text: str) -> List[TableBlock]:
    """Split DDL into one block per CREATE TABLE statement.

    Matching is balanced-paren aware; an unbalanced statement runs to the
    next terminator or the next CREATE TABLE, whichever comes first.
    """
    blocks: List[TableBlock] = []
    pos = 0
    while True:
        match = CREATE_TABLE_RE.search(text, pos)
        if not match:
            break
        open_idx = match.end() - 1
        close_idx = find_matching_paren(text, open_idx)
        end = _next_terminator(text, close_idx + 1 if close_idx is not None else open_idx)

        following = CREATE_TABLE_RE.search(text, match.end())
        if following and following.start() < end:
            end = following.start()

        blocks.append(
            TableBlock(
                name=bare_name(match.group("name")),
                text=text[match.start() : end].strip(),
                start=match.start(),
                end=end,
            )
        )
        pos = max(end, match.end())
    return blocks


def split_block(block_text: str) -> Tuple[str, str, str]:
    """Split a CREATE TABLE block into (head incl. '(', body, tail incl. ')').

    The tail is empty when the body parenthesis is never closed.
    """
    match = CREATE_TABLE_RE.search(block_text)
    open_idx = match.end() - 1 if match else block_text.find("(")
    if open_idx < 0:
        return block_text, "", ""
    close_idx = find_matching_paren(block_text, open_idx)
    head = block_text[: open_idx + 1]
    if close_idx is None:
        return head, block_text[open_idx + 1 :], ""
    return head, block_text[open_idx + 1 : close_idx], block_text[close_idx:]


def column_name(item: str) -> Optional[str]:
    """Column name at the start of a column definition item."""
    match = _COLUMN_NAME_RE.match(item)
    return match.group(1) if match else None


def is_constraint_item(item: str) -> bool:
    return bool(_CONSTRAINT_ITEM_RE.match(item) or _TABLE_CHECK_RE.match(item))


def _replace_enum(item: str) -> Tuple[str, Optional[List[str]]]:
    match = _ENUM_RE.search(item)
    if not match:
        return item, None
    close_idx = find_matching_paren(item, match.end() - 1)
    if close_idx is None:
        return item, None
    values = [unquote(v) for v in split_top_level(item[match.end() : close_idx])]
    return item[: match.start()] + "TEXT" + item[close_idx + 1 :], [v for v in values if v]


def _strip_inline_checks(item: str) -> Tuple[str, List[str]]:
    expressions = []
    while True:
        match = _INLINE_CHECK_RE.search(item)
        if not match:
            break
        close_idx = find_matching_paren(item, match.end() - 1)
        if close_idx is None:
            break
        expressions.append(item[match.end() : close_idx].strip())
        item = (item[: match.start()].rstrip() + " " + item[close_idx + 1 :].lstrip()).strip()
    return item, expressions


def _collect_enum_types(text: str) -> Dict[str, List[str]]:
    """Values of ``CREATE TYPE x AS ENUM (...)`` declarations."""
    enum_types: Dict[str, List[str]] = {}
    for match in _ENUM_TYPE_RE.finditer(text):
        close_idx = find_matching_paren(text, match.end() - 1)
        if close_idx is None:
            continue
        values = [unquote(v) for v in split_top_level(text[match.end() : close_idx])]
        enum_types[bare_name(match.group("name")).lower()] = [v for v in values if v]
    return enum_types


def _rewrite_block(
    block: TableBlock, enum_types: Dict[str, List[str]]
) -> Tuple[str, Dict[str, List[str]], List[CheckConstraint]]:
    head, body, tail = split_block(block.text)
    enums: Dict[str, List[str]] = {}
    checks: List[CheckConstraint] = []
    items = []

    for item in split_top_level(body):
        if _TABLE_CHECK_RE.match(item):
            close_idx = find_matching_paren(item, item.upper().index("CHECK") + 5)
            if close_idx is not None:
                open_idx = item.index("(", item.upper().index("CHECK"))
                checks.append(
                    CheckConstraint(
                        expression=item[open_idx + 1 : close_idx].strip(),
                        column=None,
                        level="table",
                    )
                )
            items.append(item)
            continue
        if is_constraint_item(item):
            items.append(item)
            continue

        col = column_name(item)
        item, values = _replace_enum(item)
        if col and values:
            enums[col] = values
        elif col and enum_types:
            parts = item.split(None, 2)
            declared = bare_name(parts[1]).lower() if len(parts) > 1 else ""
            if declared in enum_types:
                enums[col] = list(enum_types[declared])
                parts[1] = "TEXT"
                item = " ".join(parts)

        item, expressions = _strip_inline_checks(item)
        for expression in expressions:
            checks.append(CheckConstraint(expression=expression, column=col, level="column"))
        items.append(item)

    text = head + "\n  " + ",\n  ".join(items) + "\n" + tail
    return text, enums, checks


def _normalize_whitespace(text: str) -> str:
    lines = [re.sub(r"[ \t]+", " ", line).rstrip() for line in text.split("\n")]
    text = "\n".join(line for line in lines if line.strip())
    text = re.sub(r";\s*", ";\n", text)
    text = re.sub(r",\s*\)", ")", text)
    return text.strip()


def strip_comments(text: str) -> str:
    text = _BLOCK_COMMENT_RE.sub("", text)
    text = _LINE_COMMENT_RE.sub("", text)
    return _HASH_COMMENT_RE.sub("", text)


def sanitize_ddl(raw: str) -> SanitizedDDL:
    """Normalize vendor-specific DDL syntax.

    - comments removed, BOM and CRLF normalized
    - AUTO_INCREMENT integer columns become SERIAL
    - ENUM(...) columns become TEXT, values kept in ``enums``
    - DATETIME variants become TIMESTAMP
    - inline CHECK constraints removed, expressions kept in ``checks``
    - whitespace, terminators and trailing commas normalized

    Args:
        raw: Raw DDL text

    Returns:
        SanitizedDDL with the cleaned text and side-channel metadata
    """
    text = (raw or "").replace("\r\n", "\n").replace("\r", "\n").lstrip("﻿")
    text = strip_comments(text)
    text = _AUTO_INCREMENT_OPTION_RE.sub("", text)
    text = _AUTO_INCREMENT_COLUMN_RE.sub(lambda m: "SERIAL" + m.group("mid"), text)
    text = _AUTO_INCREMENT_RE.sub("", text)
    text = _DATETIME_RE.sub("TIMESTAMP", text)

    enum_types = _collect_enum_types(text)
    result = SanitizedDDL(text="")
    pieces = []
    last = 0
    for block in segment_create_tables(text):
        rewritten, enums, checks = _rewrite_block(block, enum_types)
        pieces.append(text[last : block.start])
        pieces.append(rewritten)
        if not rewritten.rstrip().endswith(";"):
            pieces.append(";")
        last = block.end
        if enums:
            result.enums.setdefault(block.name, {}).update(enums)
        if checks:
            result.checks.setdefault(block.name, []).extend(checks)
    pieces.append(text[last:])

    result.text = _normalize_whitespace("".join(pieces))
    return result
