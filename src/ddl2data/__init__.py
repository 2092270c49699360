"""ddl2data - synthetic relational datasets from DDL."""

__version__ = "0.1.0"

from ddl2data.core import (
    AIOrchestrator,
    CancellationToken,
    DeterministicGenerator,
    ForeignKey,
    GenerationCallbacks,
    GenerationOptions,
    GenerationRequest,
    GenerationResult,
    IntegrityRepairer,
    SchemaMetadata,
    SchemaParser,
    TableMetadata,
    ValidationReport,
    order_tables,
    validate_dataset,
)
from ddl2data.jobs import GenerationService, JobManager, JobStatus, JsonDatasetStore
from ddl2data.utils.config import Config, get_config, load_config

__all__ = [
    # Version
    "__version__",
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
    # Jobs
    "GenerationService",
    "JobManager",
    "JobStatus",
    "JsonDatasetStore",
    # Config
    "Config",
    "get_config",
    "load_config",
]
