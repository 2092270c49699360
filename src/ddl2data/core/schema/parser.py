"""Schema recovery from raw DDL.

Recovery cascades per CREATE TABLE block: the block as written, then
simplified variants, each tried with every configured sqlglot dialect, then
a regex salvage. Only when no block exists at all is the LLM agent asked for
the schema.
"""

from __future__ import annotations

import asyncio
import re
from typing import Any, Iterator, List, Optional, Tuple

import sqlglot
from sqlglot import exp
from sqlglot.errors import SqlglotError

from ddl2data.core.generation.response_parser import extract_json
from ddl2data.core.prompts import (
    build_schema_enhancement_prompt,
    build_schema_extraction_prompt,
)
from ddl2data.core.schema.keys import type_family
from ddl2data.core.schema.normalizer import normalize_schema_payload
from ddl2data.core.schema.salvage import salvage_table
from ddl2data.core.schema.sanitizer import (
    SanitizedDDL,
    TableBlock,
    sanitize_ddl,
    segment_create_tables,
    split_block,
    split_top_level,
)
from ddl2data.core.schema.types import (
    ColumnMetadata,
    ForeignKey,
    SchemaMetadata,
    TableMetadata,
)
from ddl2data.exceptions import SchemaParseError
from ddl2data.utils.config import Config, get_config
from ddl2data.utils.logging import get_logger
from ddl2data.utils.timing import TimingContext

logger = get_logger(__name__)

_NAMELESS_TABLE_RE = re.compile(r"CREATE\s+TABLE\s*\(", re.IGNORECASE)
_TABLE_CHECK_ITEM_RE = re.compile(r"^(?:CONSTRAINT\s+\S+\s+)?CHECK\b", re.IGNORECASE)
_ENUM_SET_RE = re.compile(r"\b(?:ENUM|SET)\s*\([^)]*\)", re.IGNORECASE)
_COMMENT_CLAUSE_RE = re.compile(r"\bCOMMENT\s*(?:=\s*)?'(?:[^']|'')*'", re.IGNORECASE)
_CHARSET_RE = re.compile(
    r"\b(?:DEFAULT\s+)?(?:CHARACTER\s+SET|CHARSET|COLLATE)\s*=?\s*[\w$]+", re.IGNORECASE
)


def _identifier(node: Any) -> str:
    if isinstance(node, exp.Ordered):
        node = node.this
    return node.name if isinstance(node, exp.Expression) else str(node)


def _reference_target(reference: exp.Reference) -> Tuple[Optional[str], List[str]]:
    target = reference.this
    if isinstance(target, exp.Schema):
        table = target.this
        return (table.name if table else None), [_identifier(e) for e in target.expressions]
    if isinstance(target, exp.Table):
        return target.name, []
    return None, []


def _literal_value(node: Any, dialect: str) -> Any:
    if isinstance(node, exp.Null):
        return None
    if isinstance(node, exp.Boolean):
        return node.this
    if isinstance(node, exp.Literal):
        if node.is_string:
            return node.this
        try:
            number = float(node.this)
        except ValueError:
            return node.this
        return int(number) if number.is_integer() and "." not in node.this else number
    return node.sql(dialect=dialect) if isinstance(node, exp.Expression) else node


class SchemaParser:
    """Recovers a SchemaMetadata from raw, possibly malformed DDL."""

    def __init__(self, agent: Any = None, config: Optional[Config] = None):
        """Initialize the parser.

        Args:
            agent: Optional agent offering ``agenerate(prompt, ...)``
            config: Configuration (global config if None)
        """
        self.config = config or get_config()
        self.agent = agent

        default = self.config.get("schema.default_dialect", "postgres")
        dialects = list(self.config.get("schema.dialects") or [default])
        self.dialects = [default] + [d for d in dialects if d != default]
        self.ai_fallback = bool(self.config.get("schema.ai_fallback", True))
        self.enhance = bool(self.config.get("schema.enhance", False))
        self.ai_timeout = float(self.config.get("schema.ai_timeout_seconds", 30.0))

    async def parse(self, ddl: str) -> SchemaMetadata:
        """Recover the schema described by ``ddl``.

        Args:
            ddl: Raw DDL text

        Returns:
            SchemaMetadata with parse warnings for every recovery step taken

        Raises:
            SchemaParseError: If no table can be recovered
        """
        with TimingContext("schema_parse"):
            schema = SchemaMetadata()
            sanitized = sanitize_ddl(ddl)

            for _ in _NAMELESS_TABLE_RE.finditer(sanitized.text):
                schema.warn("missing-name", "Skipped a CREATE TABLE statement without a name")

            blocks = segment_create_tables(sanitized.text)
            if not blocks:
                schema.warn("no-blocks", "No CREATE TABLE statements found")

            for block in blocks:
                table = self._parse_block(block, schema)
                schema.tables[table.name] = table

            if not schema.tables:
                schema = await self._ai_fallback(ddl, schema)

            schema.resolve_references()
            self._attach_side_channel(schema, sanitized)

            if self.enhance and self.agent is not None:
                await self._enhance(schema, ddl)

        logger.info(
            f"Parsed {len(schema.tables)} tables with {len(schema.warnings)} warnings"
        )
        return schema

    def _parse_block(self, block: TableBlock, schema: SchemaMetadata) -> TableMetadata:
        for label, text in self._variants(block):
            for dialect in self.dialects:
                table = self._try_grammar(text, dialect, block.name)
                if table is None:
                    continue
                if label != "original-block":
                    schema.warn(
                        "block-simplified", f"{block.name}: parsed after {label}"
                    )
                if dialect != self.dialects[0]:
                    schema.warn(
                        "dialect-detection", f"{block.name}: parsed with {dialect} grammar"
                    )
                return table

        schema.warn(
            "regex-salvage", f"{block.name}: no grammar accepted the block, salvaged with regex"
        )
        return salvage_table(block)

    def _variants(self, block: TableBlock) -> Iterator[Tuple[str, str]]:
        """Yield (label, text) candidates for one block, each derived from the block itself."""
        yield "original-block", block.text

        head, body, tail = split_block(block.text)
        items = [i for i in split_top_level(body) if not _TABLE_CHECK_ITEM_RE.match(i)]
        yield "strip-check", head + ", ".join(items) + (tail or ")")

        yield "strip-enum", _ENUM_SET_RE.sub("VARCHAR(100)", block.text)

        stripped_body = _CHARSET_RE.sub("", _COMMENT_CLAUSE_RE.sub("", body))
        yield "strip-comments", head + stripped_body + ")"

    def _try_grammar(self, text: str, dialect: str, name: str) -> Optional[TableMetadata]:
        try:
            statements = sqlglot.parse(text, read=dialect)
        except (SqlglotError, ValueError) as e:
            logger.debug(f"{name}: {dialect} grammar rejected block: {e}")
            return None

        for stmt in statements:
            if not isinstance(stmt, exp.Create):
                continue
            if str(stmt.args.get("kind") or "").upper() != "TABLE":
                continue
            table = self._table_from_ast(stmt, dialect)
            if table is not None and table.name.lower() == name.lower():
                return table
        return None

    def _table_from_ast(self, stmt: exp.Create, dialect: str) -> Optional[TableMetadata]:
        schema_node = stmt.this
        if not isinstance(schema_node, exp.Schema) or not isinstance(
            schema_node.this, exp.Table
        ):
            return None

        table = TableMetadata(name=schema_node.this.name)
        for item in schema_node.expressions:
            self._apply_item(table, item, dialect)
        return table

    def _apply_item(self, table: TableMetadata, item: Any, dialect: str) -> None:
        if isinstance(item, exp.ColumnDef):
            self._apply_column(table, item, dialect)
        elif isinstance(item, exp.PrimaryKey):
            table.primary_key = [_identifier(e) for e in item.expressions]
        elif isinstance(item, exp.ForeignKey):
            columns = [_identifier(e) for e in item.expressions]
            reference = item.args.get("reference")
            if isinstance(reference, exp.Reference):
                ref_table, ref_columns = _reference_target(reference)
                if ref_table:
                    table.foreign_keys.append(
                        ForeignKey(
                            columns=columns,
                            reference_table=ref_table,
                            reference_columns=ref_columns or list(columns),
                        )
                    )
        elif isinstance(item, exp.Constraint):
            for sub in item.expressions:
                self._apply_item(table, sub, dialect)

    def _apply_column(self, table: TableMetadata, node: exp.ColumnDef, dialect: str) -> None:
        name = node.name
        kind = node.args.get("kind")
        column = ColumnMetadata(type=kind.sql(dialect=dialect).lower() if kind else "text")

        for constraint in node.args.get("constraints") or []:
            ckind = constraint.args.get("kind") if isinstance(constraint, exp.ColumnConstraint) else None
            if isinstance(ckind, exp.NotNullColumnConstraint):
                column.nullable = bool(ckind.args.get("allow_null"))
            elif isinstance(ckind, exp.PrimaryKeyColumnConstraint):
                if name not in table.primary_key:
                    table.primary_key.append(name)
            elif isinstance(ckind, exp.DefaultColumnConstraint):
                column.default = _literal_value(ckind.this, dialect)
            elif isinstance(ckind, exp.AutoIncrementColumnConstraint):
                if type_family(column.type) == "integer":
                    column.type = "serial"
            elif isinstance(ckind, exp.Reference):
                ref_table, ref_columns = _reference_target(ckind)
                if ref_table:
                    table.foreign_keys.append(
                        ForeignKey(
                            columns=[name],
                            reference_table=ref_table,
                            reference_columns=ref_columns[:1] or [name],
                        )
                    )

        table.columns[name] = column

    @staticmethod
    def _attach_side_channel(schema: SchemaMetadata, sanitized: SanitizedDDL) -> None:
        """Attach enum values and CHECK expressions removed during sanitization."""
        for table_name, enums in sanitized.enums.items():
            table = schema.tables.get(table_name)
            if table is None:
                continue
            for col_name, values in enums.items():
                if col_name in table.columns:
                    table.columns[col_name].enum_values = list(values)

        for table_name, checks in sanitized.checks.items():
            table = schema.tables.get(table_name)
            if table is None:
                continue
            seen = {(c.column, c.expression) for c in table.checks}
            for check in checks:
                if (check.column, check.expression) not in seen:
                    table.checks.append(check)
                    seen.add((check.column, check.expression))

    async def _ai_fallback(self, ddl: str, schema: SchemaMetadata) -> SchemaMetadata:
        warnings = [w.to_dict() for w in schema.warnings]
        if self.agent is None or not self.ai_fallback:
            raise SchemaParseError("No tables could be recovered from the DDL", warnings)

        logger.info("No table recovered, asking the agent for the schema")
        try:
            response = await asyncio.wait_for(
                self.agent.agenerate(build_schema_extraction_prompt(ddl), temperature=0.0),
                timeout=self.ai_timeout,
            )
            recovered = normalize_schema_payload(extract_json(response.content))
        except asyncio.TimeoutError as e:
            raise SchemaParseError(
                f"AI schema extraction timed out after {self.ai_timeout}s", warnings
            ) from e
        except Exception as e:
            raise SchemaParseError(f"AI schema extraction failed: {e}", warnings) from e

        recovered.warnings = schema.warnings + recovered.warnings
        recovered.warn(
            "ai-fallback", f"Recovered {len(recovered.tables)} tables with AI schema extraction"
        )
        return recovered

    async def _enhance(self, schema: SchemaMetadata, ddl: str) -> None:
        prompt = build_schema_enhancement_prompt(schema.to_dict()["tables"], ddl)
        try:
            response = await asyncio.wait_for(
                self.agent.agenerate(prompt, temperature=0.2),
                timeout=self.ai_timeout,
            )
            schema.suggestions = extract_json(response.content)
        except Exception as e:
            logger.warning(f"Schema enhancement skipped: {e}")
            schema.warn("ai-enhance-skip", f"Schema enhancement skipped: {e}")
