"""JSON file store for generated datasets."""

from __future__ import annotations

import json
import re
import time
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

from ddl2data.core.schema.types import Dataset, SchemaMetadata
from ddl2data.exceptions import DatasetNotFoundError
from ddl2data.utils.config import Config, get_config
from ddl2data.utils.logging import get_logger

logger = get_logger(__name__)


def sanitize_name(name: str) -> str:
    """Make a dataset name safe for use in file paths."""
    return re.sub(r"[^\w\-.]", "_", str(name)).strip("._") or "dataset"


class JsonDatasetStore:
    """Stores each dataset with its schema and metadata as one JSON file."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    @classmethod
    def from_config(cls, config: Optional[Config] = None) -> JsonDatasetStore:
        config = config or get_config()
        return cls(config.get("storage.output_dir", "./data/datasets"))

    def _path(self, dataset_id: str) -> Path:
        return self.directory / f"{sanitize_name(dataset_id)}.json"

    def save(
        self,
        name: str,
        schema: SchemaMetadata,
        data: Dataset,
        meta: Optional[Dict[str, Any]] = None,
        description: Optional[str] = None,
    ) -> str:
        """Persist a dataset.

        Returns:
            Dataset id (sanitized name plus a short unique suffix)
        """
        dataset_id = f"{sanitize_name(name)}-{uuid.uuid4().hex[:8]}"
        record = {
            "id": dataset_id,
            "name": name,
            "description": description,
            "createdAt": time.time(),
            "schema": schema.to_dict(),
            "data": data,
            "meta": meta or {},
        }
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(dataset_id)
        with open(path, "w") as f:
            json.dump(record, f, indent=2, default=str)
        logger.info(f"Saved dataset {dataset_id} to {path}")
        return dataset_id

    def load(self, dataset_id: str) -> Dict[str, Any]:
        """Load a stored dataset record.

        Raises:
            DatasetNotFoundError: If no dataset has this id
        """
        path = self._path(dataset_id)
        if not path.exists():
            raise DatasetNotFoundError(f"Dataset not found: {dataset_id}")
        with open(path, "r") as f:
            record = json.load(f)
        record["schema"] = SchemaMetadata.from_dict(record.get("schema") or {})
        return record

    def update(
        self, dataset_id: str, data: Dataset, meta: Optional[Dict[str, Any]] = None
    ) -> None:
        """Replace a stored dataset's rows in place.

        ``meta`` entries are merged into the stored metadata.

        Raises:
            DatasetNotFoundError: If no dataset has this id
        """
        path = self._path(dataset_id)
        if not path.exists():
            raise DatasetNotFoundError(f"Dataset not found: {dataset_id}")
        with open(path, "r") as f:
            record = json.load(f)
        record["data"] = data
        record["meta"] = {**(record.get("meta") or {}), **(meta or {})}
        record["updatedAt"] = time.time()
        with open(path, "w") as f:
            json.dump(record, f, indent=2, default=str)
        logger.info(f"Updated dataset {dataset_id}")

    def list_ids(self) -> List[str]:
        if not self.directory.exists():
            return []
        return sorted(path.stem for path in self.directory.glob("*.json"))
