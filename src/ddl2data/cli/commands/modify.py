"""Modify command: agent-driven edits of a stored dataset."""

from __future__ import annotations

import click

from ddl2data.cli.decorators import handle_errors, with_agent_config
from ddl2data.cli.handlers import GenerationHandler
from ddl2data.cli.output import OutputFormatter
from ddl2data.exceptions import ModificationError
from ddl2data.utils.config import get_config

out = OutputFormatter()


@click.command(name="modify")
@click.argument("dataset_id")
@click.argument("instructions")
@click.option("--table", "table_name", type=str, help="Only send this table to the agent")
@click.option("--temperature", type=float, default=None, help="Sampling temperature (0-1)")
@with_agent_config
@handle_errors
def modify_cmd(dataset_id, instructions, table_name, temperature, provider, model):
    """Apply INSTRUCTIONS to the stored dataset DATASET_ID.

    The dataset must have been saved with ``generate --save-name``.

    \b
    Examples:
        ddl2data modify authors-1a2b3c4d "Give every author a French name"
        ddl2data modify authors-1a2b3c4d "Add two more books" --table books
    """
    handler = GenerationHandler(get_config())
    agent = handler.build_agent(True, provider, model)
    if agent is None:
        raise ModificationError("Dataset modification needs an LLM agent")

    out.progress_start(f"Modifying {dataset_id}...")
    result = handler.modify(
        dataset_id, instructions, agent, table_name=table_name, temperature=temperature
    )

    if result["diff"]:
        out.section("📊 Row counts:")
        for table, change in result["diff"].items():
            out.info(f"{table}: {change['before']} -> {change['after']}")
    else:
        out.info("Row counts unchanged")
    if result["skippedTables"]:
        out.warning(f"Skipped unknown tables: {', '.join(result['skippedTables'])}")
    out.validation(result["validation"])
    out.success(f"Updated dataset {dataset_id}")
