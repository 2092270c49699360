"""Output formatting utilities for CLI."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import click


class OutputFormatter:
    """Format output for CLI display.

    Example:
        >>> out = OutputFormatter()
        >>> out.success("Generated 3 tables")
        >>> out.stats({"pkDuplicates": 0, "fkViolations": 0})
    """

    @staticmethod
    def success(message: str) -> None:
        click.echo(f"✓ {message}")

    @staticmethod
    def warning(message: str) -> None:
        click.echo(f"⚠️  {message}")

    @staticmethod
    def info(message: str) -> None:
        click.echo(f"ℹ️  {message}")

    @staticmethod
    def section(title: str) -> None:
        click.echo(f"\n{title}")

    @staticmethod
    def stats(stats_dict: Dict[str, Any], indent: str = "   ") -> None:
        """Display statistics dictionary in key: value format.

        Args:
            stats_dict: Dictionary of statistics to display
            indent: Indentation string for each line
        """
        for key, value in stats_dict.items():
            click.echo(f"{indent}{key}: {value}")

    @staticmethod
    def list_items(items: List[str], indent: str = "   ", bullet: str = "-") -> None:
        for item in items:
            click.echo(f"{indent}{bullet} {item}")

    @staticmethod
    def table_summary(
        table_name: str,
        row_count: int,
        col_count: int,
        primary_key: Optional[List[str]] = None,
        fk_count: int = 0,
        indent: str = "   ",
    ) -> None:
        """Display one table's summary line.

        Args:
            table_name: Name of the table
            row_count: Number of rows (or -1 to omit)
            col_count: Number of columns
            primary_key: Primary key columns (if any)
            fk_count: Number of foreign keys
            indent: Indentation string
        """
        parts = []
        if row_count >= 0:
            parts.append(f"{row_count} rows")
        parts.append(f"{col_count} columns")
        if primary_key:
            parts.append(f"PK={','.join(primary_key)}")
        if fk_count:
            parts.append(f"{fk_count} FKs")
        click.echo(f"{indent}✓ {table_name}: {', '.join(parts)}")

    @staticmethod
    def validation(report: Dict[str, Any], max_errors: int = 10) -> None:
        """Display a validation report summary and its first errors."""
        mark = "✓" if report.get("passed") else "❌"
        click.echo(f"\n{mark} Validation")
        OutputFormatter.stats(report.get("summary") or {})
        errors = report.get("errors") or []
        for error in errors[:max_errors]:
            click.echo(f"   - {error}")
        if len(errors) > max_errors:
            click.echo(f"   ... {len(errors) - max_errors} more")

    @staticmethod
    def progress_start(message: str) -> None:
        click.echo(f"\n🔍 {message}")

