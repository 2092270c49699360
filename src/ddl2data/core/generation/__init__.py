"""Dataset generation: deterministic baseline and AI orchestration."""

from ddl2data.core.generation.deterministic import DeterministicGenerator, make_rng
from ddl2data.core.generation.enums import apply_enum_sampling, sample_enum
from ddl2data.core.generation.options import GenerationOptions, GenerationRequest
from ddl2data.core.generation.modifier import merge_modified_tables, row_count_diff
from ddl2data.core.generation.orchestrator import (
    AIOrchestrator,
    GenerationCallbacks,
    GenerationResult,
    RetryPolicy,
)
from ddl2data.core.generation.response_parser import (
    ParsedResponse,
    ResponseShape,
    extract_json,
    parse_rows_response,
    sanitize_records,
)

__all__ = [
    "AIOrchestrator",
    "DeterministicGenerator",
    "GenerationCallbacks",
    "GenerationOptions",
    "GenerationRequest",
    "GenerationResult",
    "ParsedResponse",
    "ResponseShape",
    "RetryPolicy",
    "apply_enum_sampling",
    "extract_json",
    "make_rng",
    "merge_modified_tables",
    "parse_rows_response",
    "row_count_diff",
    "sample_enum",
    "sanitize_records",
]
