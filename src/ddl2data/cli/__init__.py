"""Command-line interface for ddl2data."""
