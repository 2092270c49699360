"""Per-table generation loop driving the LLM agent.

Tables are generated strictly in dependency order. Each table gets one
agent call plus bounded retries; anything unusable falls back to the
deterministic generator so every table always receives rows.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from ddl2data.core.cancellation import CancellationToken
from ddl2data.core.generation.deterministic import DeterministicGenerator, make_rng
from ddl2data.core.generation.enums import apply_enum_sampling
from ddl2data.core.generation.options import (
    DEFAULT_CHUNK_SIZE,
    MAX_CHUNK_SIZE,
    MAX_ROWS_PER_TABLE,
    GenerationOptions,
)
from ddl2data.core.generation.response_parser import parse_rows_response, sanitize_records
from ddl2data.core.integrity.repair import IntegrityRepairer
from ddl2data.core.integrity.validator import ValidationReport, validate_dataset
from ddl2data.core.prompts import build_strict_retry_prompt, build_table_prompt
from ddl2data.core.schema.ordering import find_cycles, order_tables
from ddl2data.core.schema.types import Dataset, Row, SchemaMetadata, TableMetadata
from ddl2data.exceptions import GenerationCancelled, ResponseParseError
from ddl2data.utils.config import Config, get_config
from ddl2data.utils.logging import get_logger
from ddl2data.utils.timing import LatencyTracker, TimingContext

logger = get_logger(__name__)

PARENT_SAMPLE_SIZE = 20

Callback = Optional[Callable[[Any], Any]]


@dataclass
class RetryPolicy:
    """Attempts per table and the temperature used for each retry."""

    max_attempts: int = 2
    temperature_factor: float = 0.5
    default_temperature: float = 0.7

    @classmethod
    def from_config(cls, config: Config) -> RetryPolicy:
        return cls(
            max_attempts=max(1, int(config.get("generation.max_attempts", 2))),
            temperature_factor=float(config.get("generation.retry_temperature_factor", 0.5)),
            default_temperature=float(config.get("generation.default_temperature", 0.7)),
        )

    def temperature_for(self, attempt: int, requested: Optional[float]) -> Optional[float]:
        """Temperature for a 0-based attempt; retries scale the base down."""
        if attempt == 0:
            return requested
        base = requested if requested is not None else self.default_temperature
        return round(base * self.temperature_factor**attempt, 4)


@dataclass
class GenerationCallbacks:
    """Event hooks; a failing hook is logged and never aborts generation."""

    on_table_start: Callback = None  # {"table", "index", "total"}
    on_table_rows: Callback = None  # {"table", "rows", "chunkIndex", "totalChunks"}
    on_table_complete: Callback = None  # {"table", "rowCount", "source"}
    on_progress: Callback = None  # completed-table ratio in [0, 1]


@dataclass
class GenerationResult:
    """Generated dataset with its metadata and validation report."""

    data: Dataset
    meta: Dict[str, Any] = field(default_factory=dict)
    validation: Optional[ValidationReport] = None

    @property
    def row_counts(self) -> Dict[str, int]:
        return {name: len(rows) for name, rows in self.data.items()}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data": self.data,
            "meta": self.meta,
            "validation": self.validation.to_dict() if self.validation else None,
        }


def normalize_rows(rows: List[Row], columns: List[str]) -> List[Row]:
    """Reshape rows to exactly ``columns``: unknown keys dropped, missing ones None."""
    return [{col: row.get(col) for col in columns} for row in rows]


def minimal_rows(table: TableMetadata, count: int) -> List[Row]:
    """Last-resort rows: ``i+1`` in every column."""
    return [{col: i + 1 for col in table.columns} for i in range(count)]


def _emit(callback: Callback, payload: Any) -> None:
    if callback is None:
        return
    try:
        callback(payload)
    except Exception as e:
        logger.warning(f"Generation callback failed: {e}")


def _check(token: Optional[CancellationToken]) -> None:
    if token is not None:
        token.raise_if_cancelled()


class AIOrchestrator:
    """Generates a dataset table by table with the agent and deterministic fallback.

    Without an agent (or with ``use_ai=False``) the same loop runs on the
    deterministic generator and yields exactly its standalone output.

    Example:
        >>> orchestrator = AIOrchestrator(agent=create_agent())
        >>> result = await orchestrator.generate(schema, GenerationOptions(seed=1))
        >>> result.validation.passed
    """

    def __init__(
        self,
        agent: Any = None,
        config: Optional[Config] = None,
        retry_policy: Optional[RetryPolicy] = None,
        repairer: Optional[IntegrityRepairer] = None,
    ):
        """Initialize the orchestrator.

        Args:
            agent: Object offering ``agenerate(prompt, temperature=, max_tokens=)``
            config: Configuration (global config if None)
            retry_policy: Attempt policy (from ``generation`` config if None)
            repairer: Integrity repairer used when repair is enabled
        """
        self.config = config or get_config()
        self.agent = agent
        self.retry_policy = retry_policy or RetryPolicy.from_config(self.config)
        self.repairer = repairer or IntegrityRepairer()

        gen = self.config.section("generation")
        self.table_timeout = float(gen.get("table_timeout_seconds", 25.0))
        self.max_fields = int(gen.get("max_fields_per_record", 200))
        self.max_rows = int(gen.get("max_rows_per_table", MAX_ROWS_PER_TABLE))
        self.chunk_size = max(1, min(int(gen.get("chunk_size", DEFAULT_CHUNK_SIZE)), MAX_CHUNK_SIZE))
        self.chunk_delay = float(gen.get("chunk_delay_seconds", 0.005))
        self.integrity_repair = bool(gen.get("integrity_repair", False))

    def uses_ai(self, options: GenerationOptions) -> bool:
        if self.agent is None:
            return False
        return options.use_ai is not False

    @property
    def provider_name(self) -> Optional[str]:
        if self.agent is None:
            return None
        return getattr(self.agent, "provider_type", None) or type(self.agent).__name__

    async def generate(
        self,
        schema: SchemaMetadata,
        options: Optional[GenerationOptions] = None,
        instructions: Optional[str] = None,
        callbacks: Optional[GenerationCallbacks] = None,
        token: Optional[CancellationToken] = None,
    ) -> GenerationResult:
        """Generate rows for every table of ``schema``.

        Args:
            schema: Parsed schema
            options: Generation options
            instructions: Free-text guidance forwarded to the agent
            callbacks: Event hooks
            token: Cancellation token checked between tables and before each call

        Returns:
            GenerationResult with data, metadata and validation report

        Raises:
            GenerationCancelled: If the token is cancelled
        """
        options = options or GenerationOptions()
        callbacks = callbacks or GenerationCallbacks()
        use_ai = self.uses_ai(options)
        tracker = LatencyTracker()
        fallback = DeterministicGenerator.from_options(options)

        order = order_tables(schema)
        cycles = find_cycles(schema)
        if cycles:
            logger.warning(f"Reference cycle among tables: {cycles}")

        meta: Dict[str, Any] = {
            "ai": use_ai,
            "provider": self.provider_name if use_ai else None,
            "temperature": options.temperature,
            "timeoutSeconds": self.table_timeout,
            "order": order,
            "cycles": cycles,
            "aiErrors": [],
            "adjustments": {},
            "fallbacks": {},
        }
        data: Dataset = {name: [] for name in order}

        completed = 0
        try:
            for index, name in enumerate(order):
                _check(token)
                table = schema.tables[name]
                count = min(options.row_count_for(name), self.max_rows)
                logger.info(f"Generating {name} ({index + 1}/{len(order)}), {count} rows requested")
                _emit(callbacks.on_table_start, {"table": name, "index": index, "total": len(order)})

                with TimingContext("generate_table", tracker=tracker):
                    if use_ai:
                        rows, source = await self._generate_ai_table(
                            name, table, schema, count, options, instructions, data, fallback, meta, token
                        )
                    else:
                        rows, source = fallback.generate_table(name, table, count, data), "deterministic"

                data[name] = normalize_rows(rows[: self.max_rows], list(table.columns))
                await self._deliver(name, data[name], options.chunk_size, callbacks)
                completed += 1

                logger.info(f"Completed {name}: {len(data[name])} rows ({source})")
                _emit(callbacks.on_table_complete, {"table": name, "rowCount": len(data[name]), "source": source})
                _emit(callbacks.on_progress, completed / len(order))
        except GenerationCancelled as e:
            logger.info(f"Generation cancelled after {completed}/{len(order)} tables")
            raise GenerationCancelled(str(e), data=data) from e

        if not use_ai:
            fallback.reconcile(schema, data)

        meta["enumFilled"] = apply_enum_sampling(schema, data, make_rng(options.seed))

        repair = options.integrity_repair if options.integrity_repair is not None else self.integrity_repair
        if repair:
            try:
                meta["integrityRepair"] = self.repairer.repair(schema, data).to_dict()
            except Exception as e:
                logger.warning(f"Integrity repair failed: {e}")
                meta["integrityRepairError"] = str(e)

        with TimingContext("validate", tracker=tracker):
            report = validate_dataset(schema, data)
        if not report.passed:
            logger.warning(
                f"Validation failed: {report.summary}; first errors: {report.errors[:5]}"
            )
        meta["validation"] = report.to_dict()

        if options.with_meta:
            meta["generator"] = fallback.describe(schema, data)
        meta["timings"] = tracker.get_stats()

        return GenerationResult(data=data, meta=meta, validation=report)

    async def _generate_ai_table(
        self,
        name: str,
        table: TableMetadata,
        schema: SchemaMetadata,
        count: int,
        options: GenerationOptions,
        instructions: Optional[str],
        data: Dataset,
        fallback: DeterministicGenerator,
        meta: Dict[str, Any],
        token: Optional[CancellationToken],
    ) -> Tuple[List[Row], str]:
        prompt = build_table_prompt(
            name,
            table.to_dict(),
            {t_name: t.to_dict() for t_name, t in schema.tables.items()},
            count,
            instructions,
            self._parent_samples(table, data),
        )

        for attempt in range(self.retry_policy.max_attempts):
            _check(token)
            attempt_prompt = prompt if attempt == 0 else build_strict_retry_prompt(prompt)
            temperature = self.retry_policy.temperature_for(attempt, options.temperature)
            try:
                response = await asyncio.wait_for(
                    self.agent.agenerate(
                        attempt_prompt, temperature=temperature, max_tokens=options.max_tokens
                    ),
                    timeout=self.table_timeout,
                )
            except asyncio.TimeoutError:
                meta["aiErrors"].append(
                    f"AI generation timeout {name} after {self.table_timeout}s (attempt {attempt + 1})"
                )
                continue
            except Exception as e:
                meta["aiErrors"].append(f"AI generation error {name}: {e}")
                continue

            content = getattr(response, "content", response)
            logger.debug(f"Raw AI response for {name}: {str(content)[:600]!r}")
            _check(token)

            try:
                parsed = parse_rows_response(content, name)
            except ResponseParseError as e:
                meta["aiErrors"].append(f"Parse error {name}: {e}")
                continue

            rows, adjustments = sanitize_records(parsed.records, list(table.columns), self.max_fields)
            if adjustments:
                meta["adjustments"].setdefault(name, []).extend(adjustments)
            if rows:
                return rows, "ai"
            meta["aiErrors"].append(f"Empty result {name} (attempt {attempt + 1})")

        for error in meta["aiErrors"][-self.retry_policy.max_attempts :]:
            logger.warning(error)

        rows = fallback.generate_table(name, table, count, data)
        source = "deterministic"
        if not rows:
            rows, source = minimal_rows(table, count), "minimal"
        meta["fallbacks"][name] = source
        return rows, source

    @staticmethod
    def _parent_samples(table: TableMetadata, data: Dataset) -> Dict[str, List[Any]]:
        samples = {}
        for fk in table.foreign_keys:
            for child_col, parent_col in fk.column_pairs():
                values = [
                    r.get(parent_col)
                    for r in data.get(fk.reference_table, [])
                    if r.get(parent_col) is not None
                ]
                if values:
                    samples[f"{fk.reference_table}.{parent_col}"] = values[:PARENT_SAMPLE_SIZE]
        return samples

    async def _deliver(
        self, name: str, rows: List[Row], chunk_size: Optional[int], callbacks: GenerationCallbacks
    ) -> None:
        """Relay rows in sequential chunks, pacing between chunks."""
        if callbacks.on_table_rows is None:
            return
        size = chunk_size or self.chunk_size
        chunks = [rows[i : i + size] for i in range(0, len(rows), size)] or [[]]
        for idx, chunk in enumerate(chunks):
            _emit(
                callbacks.on_table_rows,
                {"table": name, "rows": chunk, "chunkIndex": idx, "totalChunks": len(chunks)},
            )
            if idx < len(chunks) - 1 and self.chunk_delay > 0:
                await asyncio.sleep(self.chunk_delay)
