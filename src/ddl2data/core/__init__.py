"""Core modules for ddl2data."""

from ddl2data.core.cancellation import CancellationToken
from ddl2data.core.generation import (
    AIOrchestrator,
    DeterministicGenerator,
    GenerationCallbacks,
    GenerationOptions,
    GenerationRequest,
    GenerationResult,
)
from ddl2data.core.integrity import IntegrityRepairer, ValidationReport, validate_dataset
from ddl2data.core.schema import (
    ForeignKey,
    SchemaMetadata,
    SchemaParser,
    TableMetadata,
    order_tables,
)

__all__ = [
    # Schema
    "ForeignKey",
    "SchemaMetadata",
    "SchemaParser",
    "TableMetadata",
    "order_tables",
    # Generation
    "AIOrchestrator",
    "CancellationToken",
    "DeterministicGenerator",
    "GenerationCallbacks",
    "GenerationOptions",
    "GenerationRequest",
    "GenerationResult",
    # Integrity
    "IntegrityRepairer",
    "ValidationReport",
    "validate_dataset",
]
