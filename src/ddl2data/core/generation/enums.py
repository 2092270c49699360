"""Enum value sampling for generated rows."""

from __future__ import annotations

import random
from typing import Any, Callable, Optional, Sequence

from ddl2data.core.generation.deterministic import pick_index
from ddl2data.core.schema.types import Dataset, SchemaMetadata


def sample_enum(values: Sequence[Any], rng: Callable[[], float] = random.random) -> Optional[Any]:
    """Pick one declared enum value, or None for an empty declaration."""
    if not values:
        return None
    return values[pick_index(rng, len(values))]


def apply_enum_sampling(
    schema: SchemaMetadata,
    data: Dataset,
    rng: Callable[[], float] = random.random,
) -> int:
    """Fill null enum cells with sampled declared values (in place).

    Existing values are never overwritten.

    Returns:
        Number of cells filled
    """
    filled = 0
    for table_name, table in schema.tables.items():
        rows = data.get(table_name) or []
        for col_name, col in table.columns.items():
            if not col.enum_values:
                continue
            for row in rows:
                if row.get(col_name) is None:
                    row[col_name] = sample_enum(col.enum_values, rng)
                    filled += 1
    return filled
