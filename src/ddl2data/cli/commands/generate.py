"""Generate command: DDL to synthetic dataset."""

from __future__ import annotations

from pathlib import Path

import click

from ddl2data.cli.decorators import (
    handle_errors,
    with_agent_config,
    with_ai_toggle,
    with_generation_options,
)
from ddl2data.cli.handlers import GenerationHandler, parse_row_overrides
from ddl2data.cli.output import OutputFormatter
from ddl2data.utils.config import get_config
from ddl2data.utils.logging import get_logger

logger = get_logger(__name__)
out = OutputFormatter()


@click.command(name="generate")
@click.argument("ddl_file", type=click.Path(exists=True, dir_okay=False))
@with_generation_options
@with_ai_toggle
@with_agent_config
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(file_okay=False),
    default="./output",
    show_default=True,
    help="Directory for dataset.json and report.json",
)
@click.option("--save-name", type=str, help="Also persist the dataset in the configured store")
@handle_errors
def generate_cmd(
    ddl_file,
    num_records,
    per_table,
    seed,
    null_probability,
    temperature,
    max_tokens,
    instructions,
    integrity_repair,
    with_meta,
    use_ai,
    provider,
    model,
    output_dir,
    save_name,
):
    """Generate a synthetic dataset for the tables in DDL_FILE.

    \b
    Examples:
        # Deterministic, reproducible
        ddl2data generate schema.sql --no-ai --seed 42 -n 20

        # With the configured LLM agent and repair
        ddl2data generate schema.sql --ai --integrity-repair

        # Per-table counts
        ddl2data generate schema.sql --rows users=50 --rows orders=200
    """
    config = get_config()
    handler = GenerationHandler(config)

    options = {
        "seed": seed,
        "perTableRowCounts": parse_row_overrides(per_table),
        "withMeta": with_meta,
        "integrityRepair": integrity_repair,
        "useAI": use_ai,
    }
    options["numRecords"] = num_records if num_records is not None else config.get("generation.num_records", 10)
    if null_probability is not None:
        options["nullProbability"] = null_probability
    if temperature is not None:
        options["temperature"] = temperature
    if max_tokens is not None:
        options["maxTokens"] = max_tokens

    agent = handler.build_agent(use_ai, provider, model)
    if use_ai and agent is None:
        out.warning("Agent unavailable; falling back to deterministic generation")

    out.progress_start(f"Generating data from {ddl_file}...")
    result = handler.generate(
        Path(ddl_file).read_text(encoding="utf-8"),
        options,
        instructions=instructions,
        agent=agent,
        save_name=save_name,
    )

    out.section("📊 Generated tables:")
    for table, count in result["rowCounts"].items():
        out.table_summary(table, count, len(result["data"][table][0]) if result["data"][table] else 0)

    if result["parseWarnings"]:
        out.warning(f"{len(result['parseWarnings'])} parse warnings (see report.json)")
    if result["aiErrors"]:
        out.warning(f"{len(result['aiErrors'])} AI errors, fallback used (see report.json)")
    out.validation(result["validation"])

    paths = handler.write_result(result, Path(output_dir))
    out.success(f"Wrote {', '.join(str(p) for p in paths)}")
    if result.get("datasetId"):
        out.success(f"Saved dataset {result['datasetId']}")
