"""End-to-end generation pipeline run as a tracked job, and stored dataset edits."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional, Union

from ddl2data.core.generation.modifier import (
    coerce_modified_payload,
    merge_modified_tables,
    row_count_diff,
)
from ddl2data.core.generation.options import GenerationRequest
from ddl2data.core.generation.orchestrator import AIOrchestrator, GenerationCallbacks
from ddl2data.core.generation.response_parser import extract_json
from ddl2data.core.integrity.validator import validate_dataset
from ddl2data.core.prompts import build_modification_prompt
from ddl2data.core.schema.parser import SchemaParser
from ddl2data.exceptions import GenerationCancelled, ModificationError, ResponseParseError
from ddl2data.jobs.manager import Job, JobManager, JobStatus
from ddl2data.jobs.store import JsonDatasetStore
from ddl2data.utils.logging import get_logger

logger = get_logger(__name__)

PARSE_PROGRESS = 0.1
GENERATE_SHARE = 0.7
PERSIST_PROGRESS = 0.9


class GenerationService:
    """Wires parser, orchestrator, job registry and dataset store together.

    Example:
        >>> service = GenerationService(SchemaParser(), AIOrchestrator(), JobManager())
        >>> job = service.start({"ddl": ddl, "config": {"seed": 1}})
        >>> job = await service.manager.wait(job.id)
    """

    def __init__(
        self,
        parser: SchemaParser,
        orchestrator: AIOrchestrator,
        manager: JobManager,
        store: Optional[JsonDatasetStore] = None,
    ):
        self.parser = parser
        self.orchestrator = orchestrator
        self.manager = manager
        self.store = store

    def start(self, request: Union[GenerationRequest, Dict[str, Any]]) -> Job:
        """Validate the request and submit the pipeline as a job.

        Raises:
            pydantic.ValidationError: If the request is malformed
            ConcurrencyLimitError: If the job cap is reached
        """
        if not isinstance(request, GenerationRequest):
            request = GenerationRequest.model_validate(request)
        return self.manager.submit(lambda job: self._pipeline(job, request), kind="generation")

    async def run(self, request: Union[GenerationRequest, Dict[str, Any]]) -> Dict[str, Any]:
        """Run a job to completion and return its result.

        Raises:
            GenerationCancelled: If the job was cancelled
            RuntimeError: If the job failed
        """
        job = self.start(request)
        job = await self.manager.wait(job.id)
        if job.status == JobStatus.CANCELLED:
            raise GenerationCancelled(f"Job {job.id} cancelled")
        if job.status == JobStatus.ERROR:
            raise RuntimeError(f"Job {job.id} failed: {job.error}")
        return job.result

    async def modify(
        self,
        dataset_id: str,
        instructions: str,
        table_name: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> Dict[str, Any]:
        """Edit a stored dataset with the agent and store the result in place.

        The agent receives the stored rows (one table when ``table_name`` is
        given) and returns a ``{table: rows}`` mapping. Returned tables replace
        the stored ones and the merged dataset is re-validated against the
        stored schema.

        Args:
            dataset_id: Id returned when the dataset was saved
            instructions: Edit to apply, in plain language
            table_name: Restrict the edit to this table
            temperature: Sampling temperature for the agent

        Returns:
            Dict with ``datasetId``, ``diff`` (row counts per changed table),
            ``skippedTables``, ``validation`` and ``data``

        Raises:
            DatasetNotFoundError: If the dataset does not exist
            ModificationError: If no store or agent is configured, the table
                is unknown, or the agent's answer is unusable
        """
        if self.store is None:
            raise ModificationError("Dataset modification needs a dataset store")
        agent = self.orchestrator.agent
        if agent is None:
            raise ModificationError("Dataset modification needs an LLM agent")

        record = await asyncio.to_thread(self.store.load, dataset_id)
        schema = record["schema"]
        original = record.get("data") or {}
        if table_name is not None and table_name not in original:
            raise ModificationError(f"Table not found in dataset {dataset_id}: {table_name}")
        target = {table_name: original[table_name]} if table_name else original

        prompt = build_modification_prompt(target, instructions, schema.to_dict()["tables"])
        timeout = self.orchestrator.table_timeout
        try:
            response = await asyncio.wait_for(
                agent.agenerate(prompt, temperature=temperature), timeout=timeout
            )
            payload = extract_json(response.content)
        except asyncio.TimeoutError as e:
            raise ModificationError(f"Dataset modification timed out after {timeout}s") from e
        except ResponseParseError as e:
            raise ModificationError(f"Unusable modification response: {e}") from e

        modified = coerce_modified_payload(payload, table_name)
        merged, skipped = merge_modified_tables(schema, original, modified, only=table_name)
        diff = row_count_diff(original, merged)
        validation = validate_dataset(schema, merged)

        await asyncio.to_thread(
            self.store.update,
            dataset_id,
            merged,
            {"lastModification": {"instructions": instructions, "diff": diff}},
        )
        logger.info(f"Modified dataset {dataset_id}: {len(diff)} tables changed size")
        return {
            "datasetId": dataset_id,
            "diff": diff,
            "skippedTables": skipped,
            "validation": validation.to_dict(),
            "data": merged,
        }

    async def _pipeline(self, job: Job, request: GenerationRequest) -> Dict[str, Any]:
        options = request.config
        job.token.raise_if_cancelled()

        schema = await self.parser.parse(request.ddl)
        self.manager.report_progress(job.id, PARSE_PROGRESS)
        logger.info(f"Job {job.id}: parsed {len(schema.tables)} tables")

        callbacks = GenerationCallbacks(
            on_progress=lambda ratio: self.manager.report_progress(
                job.id, PARSE_PROGRESS + GENERATE_SHARE * ratio
            )
        )
        result = await self.orchestrator.generate(
            schema, options, request.instructions, callbacks=callbacks, token=job.token
        )
        job.token.raise_if_cancelled()
        self.manager.report_progress(job.id, PERSIST_PROGRESS)

        dataset_id = None
        if request.save_name and self.store is not None:
            dataset_id = await asyncio.to_thread(
                self.store.save,
                request.save_name,
                schema,
                result.data,
                result.meta,
                request.description,
            )

        output: Dict[str, Any] = {
            "jobId": job.id,
            "datasetId": dataset_id,
            "rowCounts": result.row_counts,
            "validation": result.validation.to_dict(),
            "aiErrors": result.meta.get("aiErrors", []),
            "parseWarnings": [w.to_dict() for w in schema.warnings],
            "data": result.data,
        }
        if options.with_meta:
            output["meta"] = result.meta
        if options.debug:
            output["schema"] = schema.to_dict()
        return output
