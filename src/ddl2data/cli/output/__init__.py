"""CLI output helpers."""

from ddl2data.cli.output.formatters import OutputFormatter

__all__ = ["OutputFormatter"]
