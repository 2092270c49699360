"""Pydantic models for generation requests and options."""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field, field_validator

DEFAULT_NUM_RECORDS = 10
MAX_ROWS_PER_TABLE = 1000
MAX_DDL_CHARS = 200_000
MAX_INSTRUCTIONS_CHARS = 5_000
DEFAULT_CHUNK_SIZE = 25
MAX_CHUNK_SIZE = 50


def clamp_row_count(value: Any, default: int = DEFAULT_NUM_RECORDS, limit: int = MAX_ROWS_PER_TABLE) -> int:
    """Clamp an advisory row count into ``[1, limit]``; unusable input gives ``default``."""
    try:
        count = int(value)
    except (TypeError, ValueError):
        return default
    return max(1, min(count, limit))


class GenerationOptions(BaseModel):
    """Options controlling one generation run.

    camelCase aliases are accepted alongside field names.
    """

    num_records: int = Field(DEFAULT_NUM_RECORDS, alias="numRecords", description="Advisory rows per table")
    per_table_row_counts: Dict[str, int] = Field(default_factory=dict, alias="perTableRowCounts")
    null_probability: Optional[Union[float, Dict[str, Any]]] = Field(
        None,
        alias="nullProbability",
        description="Number, or {default, <table>: {default, <column>: p}}",
    )
    seed: Optional[int] = Field(None, description="Seed for reproducible deterministic output")
    temperature: Optional[float] = Field(None, description="Sampling temperature in [0, 1]")
    max_tokens: Optional[int] = Field(None, alias="maxTokens", ge=1)
    with_meta: bool = Field(False, alias="withMeta")
    integrity_repair: Optional[bool] = Field(None, alias="integrityRepair")
    debug: bool = False
    use_ai: Optional[bool] = Field(None, alias="useAI", description="None follows agent.enabled")
    chunk_size: Optional[int] = Field(None, alias="chunkSize", description="Rows per delivered chunk")
    reference_date: Optional[date] = Field(None, alias="referenceDate")

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "examples": [
                {"numRecords": 10, "seed": 42, "withMeta": True, "nullProbability": {"default": 0.1}}
            ]
        },
    }

    @field_validator("num_records", mode="before")
    @classmethod
    def _clamp_num_records(cls, value: Any) -> int:
        return clamp_row_count(value)

    @field_validator("per_table_row_counts", mode="before")
    @classmethod
    def _clamp_per_table(cls, value: Any) -> Dict[str, int]:
        if not isinstance(value, dict):
            return {}
        return {str(table): clamp_row_count(count) for table, count in value.items()}

    @field_validator("temperature", mode="before")
    @classmethod
    def _clamp_temperature(cls, value: Any) -> Optional[float]:
        if value is None:
            return None
        return max(0.0, min(float(value), 1.0))

    @field_validator("chunk_size", mode="before")
    @classmethod
    def _clamp_chunk_size(cls, value: Any) -> Optional[int]:
        if value is None:
            return None
        return max(1, min(int(value), MAX_CHUNK_SIZE))

    def row_count_for(self, table: str) -> int:
        """Advisory row count for ``table``."""
        return self.per_table_row_counts.get(table, self.num_records)


class GenerationRequest(BaseModel):
    """A DDL-to-dataset generation request."""

    ddl: str = Field(..., min_length=1, max_length=MAX_DDL_CHARS, description="Raw DDL text")
    instructions: Optional[str] = Field(None, max_length=MAX_INSTRUCTIONS_CHARS)
    config: GenerationOptions = Field(default_factory=GenerationOptions)
    save_name: Optional[str] = Field(None, alias="saveName", description="Persist the dataset under this name")
    description: Optional[str] = None

    model_config = {"populate_by_name": True}
