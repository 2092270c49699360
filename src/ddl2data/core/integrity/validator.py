"""Constraint validation of generated datasets."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List

from ddl2data.core.schema.types import Dataset, SchemaMetadata, is_hashable
from ddl2data.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class TableReport:
    """Constraint counts for one table."""

    row_count: int = 0
    pk_duplicates: int = 0
    fk_violations: int = 0
    not_null_violations: int = 0
    fk_coverage: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rowCount": self.row_count,
            "pkDuplicates": self.pk_duplicates,
            "fkViolations": self.fk_violations,
            "notNullViolations": self.not_null_violations,
            "fkCoverage": [dict(c) for c in self.fk_coverage],
        }


@dataclass
class ValidationReport:
    """Per-table reports, totals and human-readable violation lines."""

    tables: Dict[str, TableReport] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)

    @property
    def summary(self) -> Dict[str, int]:
        return {
            "pkDuplicates": sum(t.pk_duplicates for t in self.tables.values()),
            "fkViolations": sum(t.fk_violations for t in self.tables.values()),
            "notNullViolations": sum(t.not_null_violations for t in self.tables.values()),
        }

    @property
    def passed(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passed": self.passed,
            "errors": list(self.errors),
            "tables": {name: report.to_dict() for name, report in self.tables.items()},
            "summary": self.summary,
        }


def _key(values: List[Any]) -> str:
    # JSON keeps 1, 1.0 and True distinct where tuple hashing merges them
    return json.dumps(values, sort_keys=True, default=str)


def validate_dataset(schema: SchemaMetadata, data: Dataset) -> ValidationReport:
    """Check PK uniqueness, NOT NULL and FK coverage.

    Pure: neither argument is modified, and repeated calls give equal reports.

    Args:
        schema: Schema the data was generated for
        data: Generated dataset

    Returns:
        ValidationReport
    """
    report = ValidationReport()

    for table_name, table in schema.tables.items():
        rows = data.get(table_name) or []
        t_report = TableReport(row_count=len(rows))

        # Declared key only; tuples with a missing part are skipped
        if table.primary_key:
            pk_cols = table.primary_key
            seen = set()
            for idx, row in enumerate(rows):
                values = [row.get(c) for c in pk_cols]
                if any(v is None for v in values):
                    continue
                key = _key(values)
                if key in seen:
                    report.errors.append(
                        f"Duplicate PK {table_name}({','.join(pk_cols)})="
                        f"{json.dumps(values, default=str)} (row {idx})"
                    )
                    t_report.pk_duplicates += 1
                seen.add(key)

        for col_name, col in table.columns.items():
            if col.nullable:
                continue
            for idx, row in enumerate(rows):
                if row.get(col_name) is None:
                    report.errors.append(f"NOT NULL violation {table_name}.{col_name} (row {idx})")
                    t_report.not_null_violations += 1

        for fk in table.foreign_keys:
            parent_table = fk.reference_table
            parent_rows = data.get(parent_table) or []
            for child_col, parent_col in fk.column_pairs():
                index = {
                    r.get(parent_col)
                    for r in parent_rows
                    if r.get(parent_col) is not None and is_hashable(r.get(parent_col))
                }
                covered = total = 0
                for row in rows:
                    value = row.get(child_col)
                    if value is None:
                        continue
                    total += 1
                    if is_hashable(value) and value in index:
                        covered += 1
                    else:
                        report.errors.append(
                            f"FK violation {table_name}.{child_col} -> "
                            f"{parent_table}.{parent_col} value {value}"
                        )
                        t_report.fk_violations += 1
                t_report.fk_coverage.append(
                    {
                        "fk": f"{child_col}->{parent_table}.{parent_col}",
                        "coveredPct": round(covered / total * 100, 2) if total else 0,
                    }
                )

        report.tables[table_name] = t_report

    return report
