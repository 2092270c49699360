"""Schema recovery, metadata and dependency ordering."""

from ddl2data.core.schema.keys import infer_primary_key, infer_single_primary_key
from ddl2data.core.schema.ordering import find_cycles, order_tables
from ddl2data.core.schema.types import (
    CheckConstraint,
    ColumnMetadata,
    ForeignKey,
    ParseWarning,
    SchemaMetadata,
    TableMetadata,
)
from ddl2data.core.schema.parser import SchemaParser

__all__ = [
    "CheckConstraint",
    "ColumnMetadata",
    "ForeignKey",
    "ParseWarning",
    "SchemaMetadata",
    "SchemaParser",
    "TableMetadata",
    "find_cycles",
    "infer_primary_key",
    "infer_single_primary_key",
    "order_tables",
]
