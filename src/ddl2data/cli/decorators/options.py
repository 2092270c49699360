"""Common CLI option decorators."""

from __future__ import annotations

from functools import wraps

import click


def with_output_file(f):
    """Add --output option to command.

    Example:
        @click.command()
        @with_output_file
        def my_command(output):
            pass
    """
    return click.option(
        "--output",
        "-o",
        type=click.Path(),
        help="Output path",
    )(f)


def with_ai_toggle(f):
    """Add --ai/--no-ai; None leaves the decision to ``agent.enabled``."""
    return click.option(
        "--ai/--no-ai",
        "use_ai",
        default=None,
        help="Force the LLM agent on or off (default: agent.enabled in config)",
    )(f)


def with_agent_config(f):
    """Add agent configuration options to command.

    Example:
        @click.command()
        @with_agent_config
        def my_command(provider, model):
            pass
    """

    @click.option(
        "--provider",
        type=click.Choice(["gemini", "openai", "anthropic", "ollama"], case_sensitive=False),
        help="LLM provider",
    )
    @click.option(
        "--model",
        type=str,
        help="Model name (e.g., gemini-2.0-flash-001, gpt-4o-mini)",
    )
    @wraps(f)
    def wrapper(*args, **kwargs):
        return f(*args, **kwargs)

    return wrapper


def with_generation_options(f):
    """Add the generation option set (row counts, seed, sampling, repair)."""
    options = [
        click.option("--num-records", "-n", type=int, default=None, help="Advisory rows per table"),
        click.option(
            "--rows",
            "per_table",
            multiple=True,
            metavar="TABLE=N",
            help="Per-table row count (repeatable)",
        ),
        click.option("--seed", type=int, default=None, help="Seed for reproducible output"),
        click.option(
            "--null-probability",
            type=float,
            default=None,
            help="Probability of NULL in nullable columns",
        ),
        click.option("--temperature", type=float, default=None, help="Sampling temperature (0-1)"),
        click.option("--max-tokens", type=int, default=None, help="Max tokens per agent call"),
        click.option("--instructions", type=str, default=None, help="Extra guidance for the agent"),
        click.option(
            "--integrity-repair/--no-integrity-repair",
            default=None,
            help="Repair PK/FK defects before validation",
        ),
        click.option("--with-meta", is_flag=True, help="Include generation metadata"),
    ]
    for option in reversed(options):
        f = option(f)
    return f
