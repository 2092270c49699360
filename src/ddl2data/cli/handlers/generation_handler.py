"""Business logic for parse, generate, modify and validate commands."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ddl2data.agent import AgentWrapper, create_agent
from ddl2data.core.generation.options import GenerationOptions, GenerationRequest
from ddl2data.core.generation.orchestrator import AIOrchestrator
from ddl2data.core.integrity.validator import ValidationReport, validate_dataset
from ddl2data.core.schema.parser import SchemaParser
from ddl2data.core.schema.types import SchemaMetadata
from ddl2data.jobs import GenerationService, JobManager, JsonDatasetStore
from ddl2data.utils.config import Config
from ddl2data.utils.logging import get_logger

logger = get_logger(__name__)


def parse_row_overrides(values: Tuple[str, ...]) -> Dict[str, int]:
    """Parse repeated ``TABLE=N`` options.

    Raises:
        ValueError: For entries without ``=`` or with a non-integer count
    """
    overrides = {}
    for value in values:
        table, sep, count = value.partition("=")
        if not sep or not table.strip():
            raise ValueError(f"Expected TABLE=N, got {value!r}")
        overrides[table.strip()] = int(count)
    return overrides


class GenerationHandler:
    """Handler for DDL parsing and dataset generation.

    Keeps CLI commands thin: every command builds a handler and calls one
    method.

    Example:
        >>> handler = GenerationHandler(config)
        >>> schema = handler.parse(Path("schema.sql").read_text())
    """

    def __init__(self, config: Config):
        """Initialize handler.

        Args:
            config: Configuration instance
        """
        self.config = config

    def build_agent(
        self,
        use_ai: Optional[bool],
        provider: Optional[str] = None,
        model: Optional[str] = None,
    ) -> Optional[AgentWrapper]:
        """Agent for this run, or None when AI is off or unavailable."""
        if use_ai is False:
            return None
        if provider:
            self.config.set("agent.provider", provider)
            # The configured model belongs to the configured provider
            self.config.set("agent.model", model)
        elif model:
            self.config.set("agent.model", model)
        return create_agent(self.config, force=bool(use_ai))

    def parse(self, ddl: str, agent: Optional[AgentWrapper] = None) -> SchemaMetadata:
        """Recover the schema from DDL text."""
        parser = SchemaParser(agent=agent, config=self.config)
        return asyncio.run(parser.parse(ddl))

    def generate(
        self,
        ddl: str,
        options: Dict[str, Any],
        instructions: Optional[str] = None,
        agent: Optional[AgentWrapper] = None,
        save_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Run the full pipeline as a job and return its result.

        Args:
            ddl: Raw DDL text
            options: Generation options (camelCase or field names)
            instructions: Extra guidance for the agent
            agent: LLM agent, or None for deterministic generation
            save_name: Persist the dataset in the configured store under this name

        Returns:
            Job result dictionary
        """
        request = GenerationRequest(
            ddl=ddl,
            instructions=instructions,
            config=GenerationOptions.model_validate(options),
            save_name=save_name,
        )
        service = GenerationService(
            parser=SchemaParser(agent=agent, config=self.config),
            orchestrator=AIOrchestrator(agent=agent, config=self.config),
            manager=JobManager.from_config(self.config),
            store=JsonDatasetStore.from_config(self.config) if save_name else None,
        )
        return asyncio.run(service.run(request))

    def modify(
        self,
        dataset_id: str,
        instructions: str,
        agent: Optional[AgentWrapper],
        table_name: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> Dict[str, Any]:
        """Edit a dataset in the configured store with the agent."""
        service = GenerationService(
            parser=SchemaParser(agent=agent, config=self.config),
            orchestrator=AIOrchestrator(agent=agent, config=self.config),
            manager=JobManager.from_config(self.config),
            store=JsonDatasetStore.from_config(self.config),
        )
        return asyncio.run(
            service.modify(dataset_id, instructions, table_name=table_name, temperature=temperature)
        )

    def validate(self, schema_path: Path, dataset_path: Path) -> ValidationReport:
        """Validate a dataset file against a schema file.

        The dataset file may be a bare ``{table: rows}`` mapping or a
        generation result with a ``data`` key.
        """
        schema = SchemaMetadata.load(schema_path)
        with open(dataset_path, "r") as f:
            payload = json.load(f)
        data = payload.get("data", payload) if isinstance(payload, dict) else {}
        if not isinstance(data, dict):
            raise ValueError(f"{dataset_path} does not contain a table mapping")
        return validate_dataset(schema, data)

    @staticmethod
    def write_result(result: Dict[str, Any], output_dir: Path) -> List[Path]:
        """Write ``dataset.json`` and ``report.json`` into ``output_dir``."""
        output_dir.mkdir(parents=True, exist_ok=True)
        dataset_path = output_dir / "dataset.json"
        with open(dataset_path, "w") as f:
            json.dump(result["data"], f, indent=2, default=str)

        report = {key: value for key, value in result.items() if key != "data"}
        report_path = output_dir / "report.json"
        with open(report_path, "w") as f:
            json.dump(report, f, indent=2, default=str)
        logger.info(f"Wrote dataset to {dataset_path}")
        return [dataset_path, report_path]
