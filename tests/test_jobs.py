"""Tests for the job registry, dataset store and generation service."""

import asyncio
import json

import pytest
from pydantic import ValidationError

from conftest import AUTHORS_BOOKS_DDL, SlowProvider, scripted_agent
from ddl2data.agent import AgentWrapper
from ddl2data.core.generation.orchestrator import AIOrchestrator
from ddl2data.core.schema.parser import SchemaParser
from ddl2data.exceptions import ConcurrencyLimitError, DatasetNotFoundError, ModificationError
from ddl2data.jobs.manager import JobManager, JobStatus
from ddl2data.jobs.service import GenerationService
from ddl2data.jobs.store import JsonDatasetStore, sanitize_name


async def _sleeper(job):
    while True:
        job.token.raise_if_cancelled()
        await asyncio.sleep(0.01)


def test_job_completes_with_result():
    async def scenario():
        manager = JobManager()
        job = manager.submit(lambda job: asyncio.sleep(0, result={"ok": True}))
        assert job.status in (JobStatus.CREATED, JobStatus.RUNNING)
        return await manager.wait(job.id)

    job = asyncio.run(scenario())

    assert job.status == JobStatus.COMPLETED
    assert job.progress == 1.0
    assert job.result == {"ok": True}
    assert job.to_dict()["status"] == "completed"


def test_job_error_recorded():
    async def failing(job):
        raise RuntimeError("bad ddl")

    async def scenario():
        manager = JobManager()
        job = manager.submit(failing)
        return await manager.wait(job.id)

    job = asyncio.run(scenario())

    assert job.status == JobStatus.ERROR
    assert job.error == "bad ddl"


def test_cancel_running_job():
    async def scenario():
        manager = JobManager()
        job = manager.submit(_sleeper)
        await asyncio.sleep(0.02)
        assert manager.cancel(job.id) is True
        await manager.wait(job.id, timeout=1)
        assert manager.cancel(job.id) is False
        return job

    job = asyncio.run(scenario())

    assert job.status == JobStatus.CANCELLED
    assert job.cancelled is True
    assert job.error == "Cancelled"


def test_cancel_unknown_job():
    assert JobManager().cancel("missing") is False


def test_concurrency_cap():
    async def scenario():
        manager = JobManager(max_concurrent=2)
        jobs = [manager.submit(_sleeper), manager.submit(_sleeper)]
        with pytest.raises(ConcurrencyLimitError):
            manager.submit(_sleeper)
        assert manager.in_flight == 2

        manager.cancel(jobs[0].id)
        await manager.wait(jobs[0].id, timeout=1)
        third = manager.submit(_sleeper)

        for job in (jobs[1], third):
            manager.cancel(job.id)
            await manager.wait(job.id, timeout=1)

    asyncio.run(scenario())


def test_progress_monotonic_and_clamped():
    async def scenario():
        manager = JobManager()
        job = manager.submit(_sleeper)
        manager.report_progress(job.id, 0.5)
        manager.report_progress(job.id, 0.3)
        assert job.progress == 0.5
        manager.report_progress(job.id, 7)
        assert job.progress == 1.0
        manager.cancel(job.id)
        await manager.wait(job.id, timeout=1)

    asyncio.run(scenario())


def test_collect_garbage_respects_retention():
    async def scenario():
        manager = JobManager(retention_seconds=60)
        job = manager.submit(lambda job: asyncio.sleep(0))
        await manager.wait(job.id)
        return manager, job

    manager, job = asyncio.run(scenario())

    assert manager.collect_garbage(now=job.finished_at + 30) == 0
    assert manager.collect_garbage(now=job.finished_at + 61) == 1
    assert manager.get(job.id) is None


def test_submit_collects_expired_jobs():
    async def scenario():
        manager = JobManager(max_concurrent=10, retention_seconds=0)
        finished = []
        for _ in range(5):
            job = manager.submit(lambda job: asyncio.sleep(0))
            await manager.wait(job.id)
            finished.append(job.id)
        latest = manager.submit(lambda job: asyncio.sleep(0))
        await manager.wait(latest.id)
        return manager, finished, latest

    manager, finished, latest = asyncio.run(scenario())

    assert all(manager.get(job_id) is None for job_id in finished)
    assert [job.id for job in manager.list_jobs()] == [latest.id]


def test_cancel_after_last_await_discards_result():
    async def scenario():
        manager = JobManager()

        async def runner(job):
            await asyncio.sleep(0)
            manager.cancel(job.id)
            return {"rows": 3}

        job = manager.submit(runner)
        await manager.wait(job.id)
        return job

    job = asyncio.run(scenario())

    assert job.status == JobStatus.CANCELLED
    assert job.result is None


def test_list_jobs_by_status():
    async def scenario():
        manager = JobManager()
        done = manager.submit(lambda job: asyncio.sleep(0))
        await manager.wait(done.id)
        running = manager.submit(_sleeper)
        await asyncio.sleep(0)
        listed = [j.id for j in manager.list_jobs(JobStatus.COMPLETED)]
        manager.cancel(running.id)
        await manager.wait(running.id, timeout=1)
        return done, listed

    done, listed = asyncio.run(scenario())

    assert listed == [done.id]


def test_wait_unknown_job():
    with pytest.raises(KeyError):
        asyncio.run(JobManager().wait("missing"))


def test_store_roundtrip(tmp_path, authors_books_schema):
    store = JsonDatasetStore(tmp_path)
    dataset_id = store.save("my set/1", authors_books_schema, {"authors": []}, {"seed": 1}, "demo")

    assert dataset_id.startswith("my_set_1-")
    assert store.list_ids() == [dataset_id]
    record = store.load(dataset_id)
    assert record["name"] == "my set/1"
    assert record["description"] == "demo"
    assert list(record["schema"].tables) == ["authors", "books"]

    with pytest.raises(DatasetNotFoundError):
        store.load("nope")


def test_sanitize_name():
    assert sanitize_name("../etc/passwd") == "etc_passwd"
    assert sanitize_name("...") == "dataset"


def _service(config, agent=None, store=None):
    return GenerationService(
        parser=SchemaParser(agent=agent, config=config),
        orchestrator=AIOrchestrator(agent=agent, config=config),
        manager=JobManager(),
        store=store,
    )


def test_service_run_deterministic(config, tmp_path):
    service = _service(config, store=JsonDatasetStore(tmp_path))
    request = {
        "ddl": AUTHORS_BOOKS_DDL,
        "config": {"seed": 3, "numRecords": 4, "withMeta": True, "debug": True},
        "saveName": "books",
    }
    result = asyncio.run(service.run(request))

    assert result["rowCounts"] == {"authors": 4, "books": 4}
    assert result["validation"]["passed"] is True
    assert result["aiErrors"] == []
    assert result["parseWarnings"] == []
    assert result["meta"]["order"] == ["authors", "books"]
    assert "tables" in result["schema"]
    assert JsonDatasetStore(tmp_path).load(result["datasetId"])["data"] == result["data"]


def test_service_result_without_meta(config):
    result = asyncio.run(_service(config).run({"ddl": AUTHORS_BOOKS_DDL}))

    assert set(result) == {"jobId", "datasetId", "rowCounts", "validation", "aiErrors", "parseWarnings", "data"}
    assert result["datasetId"] is None


def test_service_with_agent_records_errors(config):
    agent = scripted_agent("sorry, cannot help")
    result = asyncio.run(_service(config, agent=agent).run({"ddl": AUTHORS_BOOKS_DDL}))

    assert len(result["aiErrors"]) == 4
    assert result["validation"]["passed"] is True


def test_service_rejects_bad_request(config):
    with pytest.raises(ValidationError):
        asyncio.run(_service(config).run({"ddl": ""}))


def test_service_parse_failure_marks_job_error(config):
    with pytest.raises(RuntimeError, match="failed"):
        asyncio.run(_service(config).run({"ddl": "SELECT 1;"}))


def test_service_cancelled(config):
    async def scenario():
        service = _service(config)
        job = service.start({"ddl": AUTHORS_BOOKS_DDL})
        service.manager.cancel(job.id)
        return await service.manager.wait(job.id)

    job = asyncio.run(scenario())

    assert job.status == JobStatus.CANCELLED


STORED_DATA = {
    "authors": [
        {"id": 1, "name": "Ann"},
        {"id": 2, "name": "Bob"},
        {"id": 3, "name": "Cy"},
    ],
    "books": [{"id": 1, "author_id": 1}, {"id": 2, "author_id": 3}],
}


@pytest.fixture
def stored(tmp_path, authors_books_schema):
    store = JsonDatasetStore(tmp_path)
    dataset_id = store.save("library", authors_books_schema, STORED_DATA, {"seed": 1})
    return store, dataset_id


def test_modify_replaces_returned_tables(config, stored):
    store, dataset_id = stored
    response = {
        "Authors": [{"id": 1, "name": "Ana", "country": "PT"}, {"id": 2, "name": "Bo"}],
        "books": [{"id": 1, "author_id": 1}, {"id": 2, "author_id": 2}],
        "ghosts": [{"id": 1}],
    }
    agent = scripted_agent(json.dumps(response))
    service = _service(config, agent=agent, store=store)

    result = asyncio.run(service.modify(dataset_id, "Drop the last author"))

    assert result["diff"] == {"authors": {"before": 3, "after": 2, "delta": -1}}
    assert result["skippedTables"] == ["ghosts"]
    assert result["validation"]["passed"] is True
    assert result["data"]["authors"][0] == {"id": 1, "name": "Ana"}
    record = store.load(dataset_id)
    assert record["data"] == result["data"]
    assert record["meta"]["seed"] == 1
    assert record["meta"]["lastModification"]["instructions"] == "Drop the last author"
    assert "updatedAt" in record
    assert "Drop the last author" in agent.provider.calls[0][0]


def test_modify_single_table_keeps_the_rest(config, stored):
    store, dataset_id = stored
    agent = scripted_agent('[{"id": 1, "author_id": 1}, {"id": 2, "author_id": 9}, {"id": 3}]')
    service = _service(config, agent=agent, store=store)

    result = asyncio.run(
        service.modify(dataset_id, "Add a book", table_name="books", temperature=0.1)
    )

    assert result["data"]["authors"] == STORED_DATA["authors"]
    assert result["data"]["books"][2] == {"id": 3, "author_id": None}
    assert result["diff"] == {"books": {"before": 2, "after": 3, "delta": 1}}
    assert result["validation"]["summary"]["fkViolations"] == 1
    assert result["validation"]["passed"] is False
    assert agent.provider.calls[0][1] == 0.1


def test_modify_ignores_other_tables_when_one_is_targeted(config, stored):
    store, dataset_id = stored
    response = {"books": [{"id": 1, "author_id": 2}], "authors": []}
    service = _service(config, agent=scripted_agent(json.dumps(response)), store=store)

    result = asyncio.run(service.modify(dataset_id, "Keep one book", table_name="books"))

    assert result["data"]["authors"] == STORED_DATA["authors"]
    assert result["skippedTables"] == ["authors"]


def test_modify_unusable_response_leaves_store_untouched(config, stored):
    store, dataset_id = stored
    service = _service(config, agent=scripted_agent("I changed it for you!"), store=store)

    with pytest.raises(ModificationError, match="Unusable"):
        asyncio.run(service.modify(dataset_id, "Anything"))
    assert store.load(dataset_id)["data"] == STORED_DATA


def test_modify_timeout(config, stored):
    store, dataset_id = stored
    agent = AgentWrapper.from_provider(SlowProvider(["{}"]))
    service = _service(config, agent=agent, store=store)

    with pytest.raises(ModificationError, match="timed out"):
        asyncio.run(service.modify(dataset_id, "Anything"))


def test_modify_requires_store_agent_and_known_table(config, stored):
    store, dataset_id = stored

    with pytest.raises(ModificationError, match="store"):
        asyncio.run(_service(config, agent=scripted_agent("{}")).modify(dataset_id, "x"))
    with pytest.raises(ModificationError, match="agent"):
        asyncio.run(_service(config, store=store).modify(dataset_id, "x"))
    service = _service(config, agent=scripted_agent("{}"), store=store)
    with pytest.raises(ModificationError, match="Table not found"):
        asyncio.run(service.modify(dataset_id, "x", table_name="reviews"))
    with pytest.raises(DatasetNotFoundError):
        asyncio.run(service.modify("missing", "x"))
