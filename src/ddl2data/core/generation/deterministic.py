"""Deterministic synthetic data generation.

Offline baseline and per-table fallback for the AI path. With a seed, the
same schema and options always produce the same dataset.
"""

from __future__ import annotations

import random
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import pandas as pd

from ddl2data.core.generation.options import DEFAULT_NUM_RECORDS, GenerationOptions
from ddl2data.core.schema.keys import infer_primary_key, type_family
from ddl2data.core.schema.ordering import order_tables
from ddl2data.core.schema.types import (
    ColumnMetadata,
    Dataset,
    Row,
    SchemaMetadata,
    TableMetadata,
    is_hashable,
)
from ddl2data.utils.logging import get_logger

logger = get_logger(__name__)

SEEDED_REFERENCE_DATE = date(2025, 1, 1)
DATE_SPAN_DAYS = 5 * 365
TEXT_VALUE_LENGTH = 50

RandomFn = Callable[[], float]
NullProbability = Optional[Union[float, Dict[str, Any]]]


class LCG:
    """Linear congruential generator yielding floats in [0, 1]."""

    MODULUS = 2**32

    def __init__(self, seed: int):
        self._state = int(seed) % self.MODULUS

    def __call__(self) -> float:
        self._state = (self._state * 1664525 + 1013904223) % self.MODULUS
        return self._state / 0xFFFFFFFF


def make_rng(seed: Optional[int] = None) -> RandomFn:
    """Seeded LCG, or ``random.random`` when no seed is given."""
    return LCG(seed) if seed is not None else random.random


def pick_index(rng: RandomFn, size: int) -> int:
    """Uniform index in ``[0, size)``; the draw may reach 1.0 so it is clamped."""
    return min(int(rng() * size), size - 1)


def resolve_null_probability(config: NullProbability, table: str, column: str) -> float:
    """Null probability for one column.

    Precedence: column entry, table ``default``, global ``default``, 0.
    """
    if config is None:
        return 0.0
    if isinstance(config, (int, float)):
        return float(config)

    table_config = config.get(table)
    if isinstance(table_config, dict):
        if column in table_config:
            return float(table_config[column])
        if "default" in table_config:
            return float(table_config["default"])
    elif isinstance(table_config, (int, float)):
        return float(table_config)
    return float(config.get("default", 0.0) or 0.0)


def column_stats(rows: List[Row], columns: List[str]) -> Dict[str, Dict[str, Any]]:
    """Per-column null counts, distinct counts and samples."""
    df = pd.DataFrame(
        [{col: (v if is_hashable(v) else str(v)) for col, v in row.items()} for row in rows],
        columns=columns,
    )
    stats = {}
    for col in columns:
        series = df[col]
        nulls = int(series.isna().sum())
        stats[col] = {
            "nulls": nulls,
            "nullPct": round(nulls / len(df) * 100, 2) if len(df) else 0,
            "distinct": int(series.nunique(dropna=True)),
            "sample": [row.get(col) for row in rows[:3]],
        }
    return stats


class DeterministicGenerator:
    """Seeded synthetic row generator honoring PK/FK relationships.

    Example:
        >>> generator = DeterministicGenerator(seed=42)
        >>> data = generator.generate(schema)
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        num_records: int = DEFAULT_NUM_RECORDS,
        per_table_row_counts: Optional[Dict[str, int]] = None,
        null_probability: NullProbability = None,
        reference_date: Optional[date] = None,
    ):
        """Initialize the generator.

        Args:
            seed: Seed for the LCG; None draws from ``random.random``
            num_records: Default rows per table
            per_table_row_counts: Per-table row count overrides
            null_probability: Number or nested mapping (see resolve_null_probability)
            reference_date: Anchor for relative dates (2025-01-01 when seeded)
        """
        self.seed = seed
        self.num_records = num_records
        self.per_table_row_counts = dict(per_table_row_counts or {})
        self.null_probability = null_probability
        if reference_date is None:
            reference_date = SEEDED_REFERENCE_DATE if seed is not None else date.today()
        self.reference_date = reference_date
        self._rng = make_rng(seed)

    @classmethod
    def from_options(cls, options: GenerationOptions) -> DeterministicGenerator:
        return cls(
            seed=options.seed,
            num_records=options.num_records,
            per_table_row_counts=options.per_table_row_counts,
            null_probability=options.null_probability,
            reference_date=options.reference_date,
        )

    def row_count_for(self, table: str) -> int:
        return self.per_table_row_counts.get(table, self.num_records)

    def generate(self, schema: SchemaMetadata) -> Dataset:
        """Generate every table in dependency order, then reconcile FKs.

        Args:
            schema: Parsed schema

        Returns:
            Dataset mapping table name to rows
        """
        data: Dataset = {}
        for name in order_tables(schema):
            data[name] = self.generate_table(name, schema.tables[name], generated=data)
        self.reconcile(schema, data)
        return data

    def generate_with_meta(self, schema: SchemaMetadata) -> Tuple[Dataset, Dict[str, Any]]:
        """Generate the dataset together with its generation metadata."""
        data = self.generate(schema)
        return data, self.describe(schema, data)

    def describe(self, schema: SchemaMetadata, data: Dataset) -> Dict[str, Any]:
        """Generation metadata: order, seed, per-table key info and column stats."""
        tables = {}
        for name, table in schema.tables.items():
            rows = data.get(name, [])
            tables[name] = {
                "rowCount": len(rows),
                "pkCols": infer_primary_key(name, table),
                "fkCount": len(table.foreign_keys),
                "columns": column_stats(rows, list(table.columns)),
            }
            logger.debug(f"Column stats for {name}: {tables[name]['columns']}")
        return {"order": order_tables(schema), "seed": self.seed, "tables": tables}

    def generate_table(
        self,
        name: str,
        table: TableMetadata,
        row_count: Optional[int] = None,
        generated: Optional[Dataset] = None,
    ) -> List[Row]:
        """Generate rows for a single table.

        Args:
            name: Table name
            table: Table definition
            row_count: Rows to produce (configured count if None)
            generated: Already generated tables, sampled for FK values

        Returns:
            List of rows keyed by the table's columns
        """
        generated = generated if generated is not None else {}
        count = self.row_count_for(name) if row_count is None else max(0, int(row_count))
        pk_cols = set(infer_primary_key(name, table))
        fk_sources = self._fk_sources(table)

        rows = []
        for i in range(count):
            row: Row = {}
            for col_name, col in table.columns.items():
                row[col_name] = self._column_value(
                    name, col_name, col, i, col_name in pk_cols, fk_sources, generated
                )
            rows.append(row)
        return rows

    def reconcile(self, schema: SchemaMetadata, data: Dataset) -> None:
        """Reassign null or dangling FK values from the parent's values (in place)."""
        for name, table in schema.tables.items():
            rows = data.get(name) or []
            for fk in table.foreign_keys:
                parent_rows = data.get(fk.reference_table) or []
                if not rows or not parent_rows:
                    continue
                for child_col, parent_col in fk.column_pairs():
                    pool = list(
                        dict.fromkeys(
                            r.get(parent_col)
                            for r in parent_rows
                            if r.get(parent_col) is not None and is_hashable(r.get(parent_col))
                        )
                    )
                    if not pool:
                        continue
                    known = set(pool)
                    for row in rows:
                        value = row.get(child_col)
                        if value is None or not is_hashable(value) or value not in known:
                            row[child_col] = pool[pick_index(self._rng, len(pool))]

    @staticmethod
    def _fk_sources(table: TableMetadata) -> Dict[str, Tuple[str, str]]:
        sources = {}
        for fk in table.foreign_keys:
            for child_col, parent_col in fk.column_pairs():
                sources[child_col] = (fk.reference_table, parent_col)
        return sources

    def _column_value(
        self,
        table_name: str,
        col_name: str,
        col: ColumnMetadata,
        i: int,
        is_pk: bool,
        fk_sources: Dict[str, Tuple[str, str]],
        generated: Dataset,
    ) -> Any:
        if col.nullable and not is_pk:
            probability = resolve_null_probability(self.null_probability, table_name, col_name)
            if self._rng() < probability:
                return None

        family = type_family(col.type)
        if is_pk and family in ("integer", "decimal"):
            return i + 1

        if col_name in fk_sources:
            parent_table, parent_col = fk_sources[col_name]
            pool = [
                r.get(parent_col)
                for r in generated.get(parent_table, [])
                if r.get(parent_col) is not None
            ]
            # Reconciliation fills it once the parent exists
            return pool[pick_index(self._rng, len(pool))] if pool else None

        if col.enum_values:
            return col.enum_values[pick_index(self._rng, len(col.enum_values))]
        return self._synthesize(family, table_name, col_name, i)

    def _synthesize(self, family: str, table_name: str, col_name: str, i: int) -> Any:
        if family == "integer":
            return i + 1
        if family == "boolean":
            return i % 2 == 0
        if family == "timestamp":
            anchor = datetime.combine(self.reference_date, datetime.min.time())
            offset = timedelta(seconds=int(self._rng() * DATE_SPAN_DAYS * 86400))
            return (anchor - offset).strftime("%Y-%m-%d %H:%M:%S")
        if family == "date":
            offset = timedelta(days=int(self._rng() * DATE_SPAN_DAYS))
            return (self.reference_date - offset).isoformat()
        if family == "time":
            return (
                f"{pick_index(self._rng, 24):02d}:"
                f"{pick_index(self._rng, 60):02d}:"
                f"{pick_index(self._rng, 60):02d}"
            )
        if family == "text":
            suffix = f"_{i + 1}"
            return f"{table_name}_{col_name}"[: TEXT_VALUE_LENGTH - len(suffix)] + suffix
        if family == "decimal":
            return round(self._rng() * 100, 2)
        return f"{col_name}_{i + 1}"
