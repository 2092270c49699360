"""Asynchronous generation jobs."""

from ddl2data.jobs.manager import Job, JobManager, JobStatus
from ddl2data.jobs.service import GenerationService
from ddl2data.jobs.store import JsonDatasetStore

__all__ = [
    "GenerationService",
    "Job",
    "JobManager",
    "JobStatus",
    "JsonDatasetStore",
]
