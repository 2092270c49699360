"""Prompt templates sent to the LLM agent."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

DEFAULT_INSTRUCTIONS = "Generate realistic and consistent data"


def build_table_prompt(
    table_name: str,
    table: Dict[str, Any],
    schema: Dict[str, Any],
    row_count: int,
    instructions: Optional[str] = None,
    parent_samples: Optional[Dict[str, Any]] = None,
) -> str:
    """Prompt asking for the rows of one table.

    Args:
        table_name: Table to generate
        table: Table definition (``TableMetadata.to_dict()``)
        schema: Full schema tables mapping, for context
        row_count: Advisory number of rows
        instructions: Caller instructions
        parent_samples: Existing key values of referenced tables

    Returns:
        Prompt text
    """
    prompt = f"""Generate synthetic data for the {table_name} table.
Generate {row_count} records while maintaining referential integrity.

Table schema:
{json.dumps(table, indent=2)}

Full schema context:
{json.dumps(schema, indent=2)}
"""
    if parent_samples:
        prompt += f"""
Foreign key columns must use values from these existing parent keys:
{json.dumps(parent_samples, indent=2, default=str)}
"""
    prompt += f"""
Additional instructions: {instructions or DEFAULT_INSTRUCTIONS}

Return ONLY a JSON array of records for the {table_name} table.
Return the JSON array without any markdown formatting or code blocks."""
    return prompt


def build_strict_retry_prompt(base_prompt: str) -> str:
    """Stricter variant used after an unusable first answer."""
    return (
        base_prompt
        + "\n\nSTRICT: your previous answer could not be used. Respond with a single "
        "JSON array of objects, one object per row, keyed by column name. "
        "No prose, no comments, no markdown."
    )


def build_schema_extraction_prompt(ddl: str) -> str:
    """Prompt asking the agent to recover a schema from DDL no parser accepted."""
    return f"""Parse this DDL and return the schema as JSON.

Use this layout:
{{"tables": {{"<table>": {{"columns": {{"<column>": {{"type": "<sql type>", "nullable": true}}}},
  "primaryKey": ["<column>"],
  "foreignKeys": [{{"columns": ["<column>"], "referenceTable": "<table>", "referenceColumns": ["<column>"]}}]}}}}}}

Return only JSON.

DDL:
{ddl}"""


def build_schema_enhancement_prompt(schema: Dict[str, Any], ddl: str) -> str:
    """Prompt asking for value-range and business-rule suggestions."""
    return f"""Analyze this database schema and suggest:
1. Realistic value ranges and patterns for each column
2. Relationships and constraints not explicitly declared
3. Business rules to respect when generating data

Schema:
{json.dumps(schema, indent=2)}

Original DDL:
{ddl}

Return your suggestions as a JSON object keyed by table name.
Return only JSON without any markdown formatting or code blocks."""


def build_modification_prompt(
    data: Dict[str, Any], instructions: str, schema: Dict[str, Any]
) -> str:
    """Prompt asking the agent to edit existing rows."""
    return f"""Modify the following dataset according to these instructions:
{instructions}

Schema:
{json.dumps(schema, indent=2)}

Current data:
{json.dumps(data, indent=2, default=str)}

Return the modified data as a JSON object mapping each table name to its
array of records, in the same format as the current data. Keep primary and
foreign key values consistent with the schema.
Return only JSON without any markdown formatting or code blocks."""
