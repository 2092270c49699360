"""Heuristic primary/foreign key repair.

Opt-in. Rewrites invalid single-column keys to ``1..n`` and points dangling
foreign keys at existing parent keys, round-robin. A column that is both the
key and a reference takes each parent key at most once; child rows left over
are dropped.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ddl2data.core.schema.keys import infer_single_primary_key
from ddl2data.core.schema.ordering import order_tables
from ddl2data.core.schema.types import Dataset, SchemaMetadata, is_hashable
from ddl2data.utils.logging import get_logger

logger = get_logger(__name__)

MAX_KEY_STRING_LENGTH = 40


@dataclass
class RepairAudit:
    """Counts and notes describing what a repair pass changed."""

    pk_rewrites: Dict[str, int] = field(default_factory=dict)
    fk_rewrites: Dict[str, int] = field(default_factory=dict)
    dropped_rows: Dict[str, int] = field(default_factory=dict)
    notes: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.pk_rewrites or self.fk_rewrites or self.dropped_rows or self.notes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pkRewrites": dict(self.pk_rewrites),
            "fkRewrites": dict(self.fk_rewrites),
            "droppedRows": dict(self.dropped_rows),
            "notes": list(self.notes),
        }


def _is_numeric(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _needs_rewrite(values: List[Any]) -> bool:
    seen = set()
    numeric = 0
    for value in values:
        if value is None or (isinstance(value, str) and len(value) > MAX_KEY_STRING_LENGTH):
            return True
        key = json.dumps(value, sort_keys=True, default=str)
        if key in seen:
            return True
        seen.add(key)
        if _is_numeric(value):
            numeric += 1
    return numeric == 0


class IntegrityRepairer:
    """Repairs PK/FK defects in a generated dataset.

    Example:
        >>> audit = IntegrityRepairer().repair(schema, data)
        >>> audit.to_dict()["pkRewrites"]
    """

    def repair(self, schema: SchemaMetadata, data: Dataset) -> RepairAudit:
        """Repair ``data`` in place.

        Args:
            schema: Schema the data was generated for
            data: Dataset to mutate

        Returns:
            RepairAudit of the rewrites performed
        """
        audit = RepairAudit()
        pk_columns: Dict[str, Optional[str]] = {
            name: infer_single_primary_key(name, table) for name, table in schema.tables.items()
        }

        for name, table in schema.tables.items():
            pk_col = pk_columns[name]
            if pk_col and not data.get(name):
                row = {col: None for col in table.columns}
                row[pk_col] = 1
                data[name] = [row]
                audit.pk_rewrites[name] = 1
                audit.notes.append(f"Synthesized 1 row for empty table {name}")

        for name in schema.tables:
            pk_col = pk_columns[name]
            rows = data.get(name) or []
            if not pk_col or not rows:
                continue
            if _needs_rewrite([row.get(pk_col) for row in rows]):
                for idx, row in enumerate(rows, start=1):
                    row[pk_col] = idx
                audit.pk_rewrites[name] = audit.pk_rewrites.get(name, 0) + len(rows)
                audit.notes.append(f"Rewrote {name}.{pk_col} to 1..{len(rows)}")
            if not schema.tables[name].primary_key:
                audit.notes.append(f"Inferred PK {name}.{pk_col} (not declared in schema)")

        # Parents first, so rows dropped from a parent are gone before its children are repaired
        for name in order_tables(schema):
            table = schema.tables[name]
            if not data.get(name):
                continue
            for fk in table.foreign_keys:
                if not fk.is_simple:
                    continue
                child_col = fk.columns[0]
                self._repair_foreign_key(
                    name,
                    child_col,
                    fk.reference_table,
                    fk.reference_columns[0],
                    data,
                    audit,
                    unique=child_col == pk_columns[name],
                )

        if audit.changed:
            logger.info(
                f"Integrity repair: {sum(audit.pk_rewrites.values())} PK rewrites, "
                f"{sum(audit.fk_rewrites.values())} FK rewrites"
            )
        return audit

    @staticmethod
    def _repair_foreign_key(
        table_name: str,
        child_col: str,
        parent_table: str,
        parent_col: str,
        data: Dataset,
        audit: RepairAudit,
        unique: bool = False,
    ) -> None:
        if parent_table not in data:
            audit.notes.append(f"Parent table missing for FK {table_name}.{child_col}")
            return

        parent_values = list(
            dict.fromkeys(
                r.get(parent_col)
                for r in data.get(parent_table) or []
                if r.get(parent_col) is not None and is_hashable(r.get(parent_col))
            )
        )
        if not parent_values:
            audit.notes.append(
                f"No parent values for FK {table_name}.{child_col} -> {parent_table}.{parent_col}"
            )
            return

        key = f"{table_name}.{child_col}"
        if unique:
            rewrites = IntegrityRepairer._reassign_unique(
                table_name, child_col, parent_values, data, audit
            )
        else:
            known = set(parent_values)
            rewrites = 0
            for row in data.get(table_name) or []:
                value = row.get(child_col)
                if value is None or not is_hashable(value) or value not in known:
                    row[child_col] = parent_values[rewrites % len(parent_values)]
                    rewrites += 1
        if rewrites:
            audit.fk_rewrites[key] = audit.fk_rewrites.get(key, 0) + rewrites

    @staticmethod
    def _reassign_unique(
        table_name: str,
        child_col: str,
        parent_values: List[Any],
        data: Dataset,
        audit: RepairAudit,
    ) -> int:
        """Repair a column that is both the key and a reference.

        Each parent value is used at most once; rows left without a free
        parent value are dropped.
        """
        rows = data.get(table_name) or []
        known = set(parent_values)
        claimed = set()
        pending = []
        for idx, row in enumerate(rows):
            value = row.get(child_col)
            if value is not None and is_hashable(value) and value in known and value not in claimed:
                claimed.add(value)
            else:
                pending.append(idx)

        free = iter([value for value in parent_values if value not in claimed])
        dropped = set()
        for idx in pending:
            value = next(free, None)
            if value is None:
                dropped.add(idx)
            else:
                rows[idx][child_col] = value

        if dropped:
            data[table_name] = [row for idx, row in enumerate(rows) if idx not in dropped]
            audit.dropped_rows[table_name] = audit.dropped_rows.get(table_name, 0) + len(dropped)
            audit.notes.append(
                f"Dropped {len(dropped)} {table_name} rows without an unused parent key for {child_col}"
            )
        return len(pending) - len(dropped)
