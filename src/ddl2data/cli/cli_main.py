"""CLI entry point for ddl2data."""

from __future__ import annotations

import click

from ddl2data import __version__
from ddl2data.cli.commands import generate, modify, parse, validate
from ddl2data.utils.config import load_config
from ddl2data.utils.logging import setup_logging


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    type=click.Path(exists=True),
    help="Path to config.yml file",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Logging level",
)
@click.pass_context
def cli(ctx, config, log_level):
    """ddl2data - synthetic datasets from relational DDL.

    \b
    Examples:
        # Inspect what the parser recovers
        ddl2data parse schema.sql -o schema.json

        # Generate a reproducible dataset without an LLM
        ddl2data generate schema.sql --no-ai --seed 1 -n 10

        # Check a dataset against a schema
        ddl2data validate schema.json output/dataset.json

        # Edit a saved dataset with the agent
        ddl2data modify authors-1a2b3c4d "Give every author a French name"
    """
    ctx.ensure_object(dict)

    setup_logging(level=log_level)

    if config:
        ctx.obj["config"] = load_config(config)


cli.add_command(parse.parse_cmd)
cli.add_command(generate.generate_cmd)
cli.add_command(modify.modify_cmd)
cli.add_command(validate.validate_cmd)


def main():
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
