"""Tests for the per-table AI orchestration loop."""

import asyncio
import json

import pytest

from conftest import ScriptedProvider, SlowProvider
from ddl2data.agent import AgentWrapper
from ddl2data.core.cancellation import CancellationToken
from ddl2data.core.generation.deterministic import DeterministicGenerator
from ddl2data.core.generation.options import GenerationOptions
from ddl2data.core.generation.orchestrator import (
    AIOrchestrator,
    GenerationCallbacks,
    RetryPolicy,
    minimal_rows,
    normalize_rows,
)
from ddl2data.core.schema.types import ColumnMetadata, TableMetadata
from ddl2data.exceptions import GenerationCancelled


def _run(orchestrator, schema, **kwargs):
    options = kwargs.pop("options", GenerationOptions(seed=1, numRecords=3))
    return asyncio.run(orchestrator.generate(schema, options, **kwargs))


def test_without_agent_matches_standalone_generator(config, authors_books_schema):
    options = GenerationOptions(seed=11, numRecords=4, nullProbability=0.3)
    result = _run(AIOrchestrator(config=config), authors_books_schema, options=options)
    expected = DeterministicGenerator.from_options(options).generate(authors_books_schema)

    assert result.data == expected
    assert result.meta["ai"] is False
    assert result.meta["aiErrors"] == []
    assert result.validation.passed


def test_ai_rows_used_and_normalized(config, authors_books_schema):
    provider = ScriptedProvider(
        [
            json.dumps([{"id": 1, "name": "Ann", "extra": "x"}, {"id": 2, "name": "Bo"}]),
            json.dumps({"books": [{"id": 10, "author_id": 2}]}),
        ]
    )
    orchestrator = AIOrchestrator(agent=AgentWrapper.from_provider(provider), config=config)
    result = _run(orchestrator, authors_books_schema)

    assert result.data["authors"] == [{"id": 1, "name": "Ann"}, {"id": 2, "name": "Bo"}]
    assert result.data["books"] == [{"id": 10, "author_id": 2}]
    assert result.meta["ai"] is True
    assert result.meta["provider"] == "scripted"
    assert result.meta["fallbacks"] == {}
    # Books prompt carries the parent keys already generated
    assert '"authors.id"' in provider.calls[1][0]


def test_double_unparsable_falls_back_with_exact_count(config, authors_books_schema):
    provider = ScriptedProvider(["not json at all"])
    orchestrator = AIOrchestrator(agent=AgentWrapper.from_provider(provider), config=config)
    options = GenerationOptions(seed=4, numRecords=3, perTableRowCounts={"books": 6}, temperature=0.8)
    result = _run(orchestrator, authors_books_schema, options=options)

    assert len(result.data["authors"]) == 3
    assert len(result.data["books"]) == 6
    assert result.meta["fallbacks"] == {"authors": "deterministic", "books": "deterministic"}
    assert len(result.meta["aiErrors"]) == 4
    assert all(e.startswith("Parse error") for e in result.meta["aiErrors"])
    # One retry per table, the retry stricter and cooler
    assert len(provider.calls) == 4
    assert [call[1] for call in provider.calls[:2]] == [0.8, 0.4]
    assert "STRICT" in provider.calls[1][0]
    assert "STRICT" not in provider.calls[0][0]


def test_retry_success_uses_second_answer(config, authors_books_schema):
    provider = ScriptedProvider(["[]", json.dumps([{"id": 5, "name": "Late"}]), "[]"])
    orchestrator = AIOrchestrator(agent=AgentWrapper.from_provider(provider), config=config)
    result = _run(orchestrator, authors_books_schema)

    assert result.data["authors"] == [{"id": 5, "name": "Late"}]
    assert result.meta["aiErrors"][0].startswith("Empty result authors")
    assert result.meta["fallbacks"] == {"books": "deterministic"}


def test_timeout_counts_as_failure(config, authors_books_schema):
    config.set("generation.table_timeout_seconds", 0.05)
    orchestrator = AIOrchestrator(
        agent=AgentWrapper.from_provider(SlowProvider(["[]"])),
        config=config,
        retry_policy=RetryPolicy(max_attempts=1),
    )
    result = _run(orchestrator, authors_books_schema)

    assert len(result.data["authors"]) == 3
    assert result.meta["aiErrors"][0].startswith("AI generation timeout authors")
    assert result.meta["timeoutSeconds"] == 0.05


def test_adjustments_recorded(config, authors_books_schema):
    provider = ScriptedProvider([json.dumps([{"id": 1, "name": "A"}, None, "B"])])
    orchestrator = AIOrchestrator(agent=AgentWrapper.from_provider(provider), config=config)
    result = _run(orchestrator, authors_books_schema)

    assert result.meta["adjustments"]["authors"] == [
        "dropped 1 invalid records",
        "coerced 1 primitive values into records",
    ]
    assert result.data["authors"][1] == {"id": "B", "name": None}


def test_use_ai_false_skips_agent(config, authors_books_schema):
    provider = ScriptedProvider(["[]"])
    orchestrator = AIOrchestrator(agent=AgentWrapper.from_provider(provider), config=config)
    result = _run(
        orchestrator, authors_books_schema, options=GenerationOptions(seed=1, useAI=False)
    )

    assert provider.calls == []
    assert result.meta["ai"] is False


def test_events_and_chunks(config, authors_books_schema):
    events = []
    callbacks = GenerationCallbacks(
        on_table_start=lambda e: events.append(("start", e["table"], e["index"], e["total"])),
        on_table_rows=lambda e: events.append(("rows", e["table"], len(e["rows"]), e["chunkIndex"])),
        on_table_complete=lambda e: events.append(("complete", e["table"], e["rowCount"])),
        on_progress=lambda ratio: events.append(("progress", ratio)),
    )
    options = GenerationOptions(seed=1, numRecords=5, chunkSize=2)
    _run(AIOrchestrator(config=config), authors_books_schema, options=options, callbacks=callbacks)

    assert events[:6] == [
        ("start", "authors", 0, 2),
        ("rows", "authors", 2, 0),
        ("rows", "authors", 2, 1),
        ("rows", "authors", 1, 2),
        ("complete", "authors", 5),
        ("progress", 0.5),
    ]
    assert events[-1] == ("progress", 1.0)


def test_failing_callback_does_not_abort(config, authors_books_schema):
    def explode(_):
        raise RuntimeError("listener down")

    result = _run(
        AIOrchestrator(config=config),
        authors_books_schema,
        callbacks=GenerationCallbacks(on_table_complete=explode),
    )

    assert len(result.data["books"]) == 3


def test_cancel_after_first_table(config, authors_books_schema):
    token = CancellationToken()
    callbacks = GenerationCallbacks(on_table_complete=lambda e: token.cancel())

    with pytest.raises(GenerationCancelled) as exc_info:
        _run(AIOrchestrator(config=config), authors_books_schema, callbacks=callbacks, token=token)

    partial = exc_info.value.data
    assert len(partial["authors"]) == 3
    assert partial["books"] == []


def test_cancel_before_external_call(config, authors_books_schema):
    token = CancellationToken()
    token.cancel()
    provider = ScriptedProvider(["[]"])
    orchestrator = AIOrchestrator(agent=AgentWrapper.from_provider(provider), config=config)

    with pytest.raises(GenerationCancelled):
        _run(orchestrator, authors_books_schema, token=token)
    assert provider.calls == []


def test_integrity_repair_applied(config, authors_books_schema):
    provider = ScriptedProvider(
        [
            json.dumps([{"id": "a", "name": "A"}, {"id": "a", "name": "B"}]),
            json.dumps([{"id": 1, "author_id": 77}]),
        ]
    )
    orchestrator = AIOrchestrator(agent=AgentWrapper.from_provider(provider), config=config)
    options = GenerationOptions(seed=1, integrityRepair=True, withMeta=True)
    result = _run(orchestrator, authors_books_schema, options=options)

    assert [r["id"] for r in result.data["authors"]] == [1, 2]
    assert result.data["books"][0]["author_id"] in (1, 2)
    assert result.validation.passed
    assert result.meta["integrityRepair"]["pkRewrites"] == {"authors": 2}
    assert "generator" in result.meta
    assert result.meta["timings"]["generate_table"]["count"] == 2


def test_repair_failure_recorded(config, authors_books_schema):
    class BrokenRepairer:
        def repair(self, schema, data):
            raise RuntimeError("boom")

    orchestrator = AIOrchestrator(config=config, repairer=BrokenRepairer())
    result = _run(
        orchestrator,
        authors_books_schema,
        options=GenerationOptions(seed=1, numRecords=3, integrityRepair=True),
    )

    assert result.meta["integrityRepairError"] == "boom"
    assert len(result.data["authors"]) == 3


def test_retry_policy_temperatures():
    policy = RetryPolicy(max_attempts=3, temperature_factor=0.5, default_temperature=0.7)

    assert policy.temperature_for(0, None) is None
    assert policy.temperature_for(0, 0.9) == 0.9
    assert policy.temperature_for(1, None) == 0.35
    assert policy.temperature_for(2, 0.8) == 0.2


def test_row_helpers():
    table = TableMetadata(name="t", columns={"a": ColumnMetadata(), "b": ColumnMetadata()})

    assert normalize_rows([{"a": 1, "z": 2}], ["a", "b"]) == [{"a": 1, "b": None}]
    assert minimal_rows(table, 2) == [{"a": 1, "b": 1}, {"a": 2, "b": 2}]
