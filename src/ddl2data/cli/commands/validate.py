"""Validate command: check a dataset against a schema."""

from __future__ import annotations

import json
from pathlib import Path

import click

from ddl2data.cli.decorators import handle_errors, with_output_file
from ddl2data.cli.handlers import GenerationHandler
from ddl2data.cli.output import OutputFormatter
from ddl2data.utils.config import get_config

out = OutputFormatter()


@click.command(name="validate")
@click.argument("schema_json", type=click.Path(exists=True, dir_okay=False))
@click.argument("dataset_json", type=click.Path(exists=True, dir_okay=False))
@with_output_file
@click.option("--max-errors", type=int, default=10, show_default=True, help="Errors to print")
@handle_errors
def validate_cmd(schema_json, dataset_json, output, max_errors):
    """Validate DATASET_JSON against SCHEMA_JSON (PK, NOT NULL, FK coverage).

    Exits with status 1 when violations are found.

    \b
    Examples:
        ddl2data validate schema.json output/dataset.json
        ddl2data validate schema.json output/dataset.json -o validation.json
    """
    handler = GenerationHandler(get_config())
    report = handler.validate(Path(schema_json), Path(dataset_json))

    out.section("📊 Coverage:")
    for table, table_report in report.tables.items():
        for coverage in table_report.fk_coverage:
            out.info(f"{table}: {coverage['fk']} {coverage['coveredPct']}%")
    out.validation(report.to_dict(), max_errors=max_errors)

    if output:
        with open(output, "w") as f:
            json.dump(report.to_dict(), f, indent=2)
        out.success(f"Report saved to {output}")

    if not report.passed:
        raise SystemExit(1)
