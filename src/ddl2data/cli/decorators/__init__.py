"""CLI decorators for common options and error handling."""

from ddl2data.cli.decorators.error_handling import handle_errors
from ddl2data.cli.decorators.options import (
    with_agent_config,
    with_ai_toggle,
    with_generation_options,
    with_output_file,
)

__all__ = [
    "handle_errors",
    "with_agent_config",
    "with_ai_toggle",
    "with_generation_options",
    "with_output_file",
]
