"""CLI command handlers containing business logic."""

from ddl2data.cli.handlers.generation_handler import GenerationHandler, parse_row_overrides

__all__ = ["GenerationHandler", "parse_row_overrides"]
