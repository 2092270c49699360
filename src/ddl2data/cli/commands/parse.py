"""Parse command: recover a schema from DDL."""

from __future__ import annotations

from pathlib import Path

import click

from ddl2data.cli.decorators import handle_errors, with_agent_config, with_ai_toggle, with_output_file
from ddl2data.cli.handlers import GenerationHandler
from ddl2data.cli.output import OutputFormatter
from ddl2data.core.schema.keys import infer_primary_key
from ddl2data.core.schema.ordering import find_cycles, order_tables
from ddl2data.utils.config import get_config

out = OutputFormatter()


@click.command(name="parse")
@click.argument("ddl_file", type=click.Path(exists=True, dir_okay=False))
@with_output_file
@with_ai_toggle
@with_agent_config
@handle_errors
def parse_cmd(ddl_file, output, use_ai, provider, model):
    """Parse DDL_FILE and print (or save) the recovered schema.

    \b
    Examples:
        ddl2data parse schema.sql
        ddl2data parse schema.sql -o schema.json
        ddl2data parse messy.sql --ai --provider openai
    """
    handler = GenerationHandler(get_config())
    agent = handler.build_agent(use_ai, provider, model)
    schema = handler.parse(Path(ddl_file).read_text(encoding="utf-8"), agent=agent)

    out.section(f"📊 Parsed {len(schema.tables)} tables:")
    for name, table in schema.tables.items():
        out.table_summary(
            name,
            -1,
            len(table.columns),
            primary_key=infer_primary_key(name, table),
            fk_count=len(table.foreign_keys),
        )

    out.section("Generation order:")
    out.info(" -> ".join(order_tables(schema)))
    cycles = find_cycles(schema)
    if cycles:
        out.warning(f"Reference cycle among: {', '.join(cycles)}")

    if schema.warnings:
        out.section(f"⚠️  {len(schema.warnings)} parse warnings:")
        out.list_items([f"[{w.type}] {w.message}" for w in schema.warnings])

    if output:
        schema.save(output)
        out.success(f"Schema saved to {output}")
