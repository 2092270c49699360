"""Schema data types and models."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

Row = Dict[str, Any]
Dataset = Dict[str, List[Row]]


def is_hashable(value: Any) -> bool:
    """True when a cell value can be used in sets and dict keys."""
    try:
        hash(value)
    except TypeError:
        return False
    return True


@dataclass
class ColumnMetadata:
    """Column definition recovered from DDL."""

    type: str = "text"
    nullable: bool = True  # only False when NOT NULL was explicit
    default: Optional[Any] = None
    enum_values: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type, "nullable": self.nullable}
        if self.default is not None:
            data["default"] = self.default
        if self.enum_values:
            data["enumValues"] = list(self.enum_values)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ColumnMetadata:
        return cls(
            type=str(data.get("type") or "text").lower(),
            nullable=data.get("nullable", True) is not False,
            default=data.get("default"),
            enum_values=data.get("enumValues") or data.get("enum_values"),
        )


@dataclass
class ForeignKey:
    """Foreign key constraint (possibly composite)."""

    columns: List[str]
    reference_table: str
    reference_columns: List[str] = field(default_factory=list)

    @property
    def is_simple(self) -> bool:
        """True for single-column FKs."""
        return len(self.columns) == 1 and len(self.reference_columns) == 1

    def column_pairs(self) -> List[tuple]:
        """(child_column, parent_column) pairs; missing parent columns repeat the child name."""
        pairs = []
        for idx, col in enumerate(self.columns):
            if idx < len(self.reference_columns):
                pairs.append((col, self.reference_columns[idx]))
            else:
                pairs.append((col, col))
        return pairs

    def to_dict(self) -> Dict[str, Any]:
        return {
            "columns": list(self.columns),
            "referenceTable": self.reference_table,
            "referenceColumns": list(self.reference_columns),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ForeignKey:
        return cls(
            columns=list(data.get("columns") or []),
            reference_table=data.get("referenceTable") or data.get("reference_table"),
            reference_columns=list(
                data.get("referenceColumns") or data.get("reference_columns") or []
            ),
        )

    def __repr__(self) -> str:
        return (
            f"FK({','.join(self.columns)} -> "
            f"{self.reference_table}({','.join(self.reference_columns)}))"
        )


@dataclass
class CheckConstraint:
    """CHECK expression preserved as metadata."""

    expression: str
    column: Optional[str] = None
    level: str = "column"  # column | table

    def to_dict(self) -> Dict[str, Any]:
        return {"column": self.column, "expression": self.expression, "level": self.level}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> CheckConstraint:
        return cls(
            expression=data.get("expression", ""),
            column=data.get("column"),
            level=data.get("level", "column"),
        )


@dataclass
class TableMetadata:
    """Metadata for a single table."""

    name: str
    columns: Dict[str, ColumnMetadata] = field(default_factory=dict)
    primary_key: List[str] = field(default_factory=list)
    foreign_keys: List[ForeignKey] = field(default_factory=list)
    checks: List[CheckConstraint] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "columns": {name: col.to_dict() for name, col in self.columns.items()},
            "primaryKey": list(self.primary_key),
            "foreignKeys": [fk.to_dict() for fk in self.foreign_keys],
        }
        if self.checks:
            data["checks"] = [check.to_dict() for check in self.checks]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], name: Optional[str] = None) -> TableMetadata:
        return cls(
            name=name or data.get("name", "unknown"),
            columns={
                col: ColumnMetadata.from_dict(col_def or {})
                for col, col_def in (data.get("columns") or {}).items()
            },
            primary_key=list(data.get("primaryKey") or data.get("primary_key") or []),
            foreign_keys=[
                ForeignKey.from_dict(fk)
                for fk in (data.get("foreignKeys") or data.get("foreign_keys") or [])
            ],
            checks=[CheckConstraint.from_dict(c) for c in data.get("checks") or []],
        )

    def __repr__(self) -> str:
        return (
            f"TableMetadata({self.name}, columns={len(self.columns)}, "
            f"pk={self.primary_key}, fks={len(self.foreign_keys)})"
        )


@dataclass
class ParseWarning:
    """A recovery step recorded while parsing DDL."""

    type: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"type": self.type, "message": self.message}


@dataclass
class SchemaMetadata:
    """Complete schema recovered from DDL."""

    tables: Dict[str, TableMetadata] = field(default_factory=dict)
    warnings: List[ParseWarning] = field(default_factory=list)
    suggestions: Optional[Any] = None

    @property
    def enums(self) -> Dict[str, Dict[str, List[str]]]:
        """Enum values summarized per table and column."""
        summary: Dict[str, Dict[str, List[str]]] = {}
        for table_name, table in self.tables.items():
            for col_name, col in table.columns.items():
                if col.enum_values:
                    summary.setdefault(table_name, {})[col_name] = list(col.enum_values)
        return summary

    def warn(self, warning_type: str, message: str) -> None:
        self.warnings.append(ParseWarning(type=warning_type, message=message))

    def resolve_references(self) -> int:
        """Point FK targets at the declared table and column names, ignoring case.

        Unquoted SQL identifiers are case-insensitive, so ``REFERENCES
        Authors(ID)`` targets ``authors.id``. Unknown targets are left as is.

        Returns:
            Number of names rewritten
        """
        tables = {name.lower(): name for name in self.tables}
        rewritten = 0
        for table in self.tables.values():
            for fk in table.foreign_keys:
                target = tables.get(str(fk.reference_table).lower())
                if target is None:
                    continue
                if target != fk.reference_table:
                    fk.reference_table = target
                    rewritten += 1
                columns = {col.lower(): col for col in self.tables[target].columns}
                resolved = [columns.get(col.lower(), col) for col in fk.reference_columns]
                rewritten += sum(1 for old, new in zip(fk.reference_columns, resolved) if old != new)
                fk.reference_columns = resolved
        return rewritten

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON interface shape."""
        meta: Dict[str, Any] = {"parseWarnings": [w.to_dict() for w in self.warnings]}
        enums = self.enums
        if enums:
            meta["enums"] = enums
        data: Dict[str, Any] = {
            "tables": {name: table.to_dict() for name, table in self.tables.items()},
            "meta": meta,
        }
        if self.suggestions is not None:
            data["suggestions"] = self.suggestions
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> SchemaMetadata:
        """Create from the JSON interface shape.

        Args:
            data: Dictionary with a ``tables`` mapping

        Returns:
            SchemaMetadata instance
        """
        meta = data.get("meta") or {}
        schema = cls(
            tables={
                name: TableMetadata.from_dict(table or {}, name=name)
                for name, table in (data.get("tables") or {}).items()
            },
            warnings=[
                ParseWarning(type=w.get("type", ""), message=w.get("message", ""))
                for w in meta.get("parseWarnings") or []
            ],
            suggestions=data.get("suggestions"),
        )
        schema.resolve_references()
        return schema

    def save(self, path: str | Path) -> None:
        """Save schema to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: str | Path) -> SchemaMetadata:
        """Load schema from a JSON file."""
        with open(path, "r") as f:
            return cls.from_dict(json.load(f))

    def __repr__(self) -> str:
        return (
            f"SchemaMetadata(tables={len(self.tables)}, "
            f"warnings={len(self.warnings)})"
        )
