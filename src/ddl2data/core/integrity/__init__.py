"""Dataset validation and integrity repair."""

from ddl2data.core.integrity.repair import IntegrityRepairer, RepairAudit
from ddl2data.core.integrity.validator import TableReport, ValidationReport, validate_dataset

__all__ = [
    "IntegrityRepairer",
    "RepairAudit",
    "TableReport",
    "ValidationReport",
    "validate_dataset",
]
