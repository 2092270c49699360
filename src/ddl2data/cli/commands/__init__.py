"""CLI command modules."""

from . import generate, modify, parse, validate

__all__ = ["generate", "modify", "parse", "validate"]
