"""Exception hierarchy for ddl2data."""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class Ddl2DataError(Exception):
    """Base exception for all ddl2data errors."""


class SchemaParseError(Ddl2DataError):
    """Raised when no table can be recovered from the DDL.

    Carries the parse warnings collected before the failure.
    """

    def __init__(self, message: str, warnings: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.warnings = list(warnings or [])


class ResponseParseError(Ddl2DataError):
    """Raised when an external service response has no usable JSON payload."""


class GenerationCancelled(Ddl2DataError):
    """Raised at a suspension point once a job's cancellation token is set.

    ``data`` holds the rows generated before the cancellation was observed.
    """

    def __init__(self, message: str = "Generation cancelled", data: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.data = data


class ConcurrencyLimitError(Ddl2DataError):
    """Raised when a job is submitted while the in-flight cap is reached."""

    def __init__(self, limit: int):
        super().__init__(f"Too many concurrent generations (limit={limit})")
        self.limit = limit


class DatasetNotFoundError(Ddl2DataError):
    """Raised when a stored dataset id cannot be found."""


class ModificationError(Ddl2DataError):
    """Raised when a stored dataset cannot be modified as requested."""
