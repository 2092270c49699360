"""Registry of asynchronous generation jobs."""

from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from threading import Lock
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ddl2data.core.cancellation import CancellationToken
from ddl2data.exceptions import ConcurrencyLimitError, GenerationCancelled
from ddl2data.utils.logging import get_logger

logger = get_logger(__name__)


class JobStatus(str, Enum):
    """Job lifecycle states."""

    CREATED = "created"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"
    CANCELLED = "cancelled"

    @property
    def terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.ERROR, JobStatus.CANCELLED)


@dataclass
class Job:
    """One tracked unit of asynchronous work."""

    id: str
    kind: str = "generation"
    status: JobStatus = JobStatus.CREATED
    progress: float = 0.0
    error: Optional[str] = None
    result: Optional[Any] = None
    created_at: float = field(default_factory=time.time)
    finished_at: Optional[float] = None
    cancelled: bool = False
    token: CancellationToken = field(default_factory=CancellationToken, repr=False)
    task: Optional[asyncio.Task] = field(default=None, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "status": self.status.value,
            "progress": round(self.progress, 4),
            "error": self.error,
            "result": self.result,
            "createdAt": self.created_at,
            "finishedAt": self.finished_at,
            "cancelled": self.cancelled,
        }


Runner = Callable[[Job], Awaitable[Any]]


class JobManager:
    """Process-wide job registry with a concurrency cap.

    Construct once and hand it to whatever serves requests. Jobs run as
    tasks on the caller's event loop, so ``submit`` must be called from a
    coroutine.

    Example:
        >>> manager = JobManager(max_concurrent=3)
        >>> job = manager.submit(runner)
        >>> await manager.wait(job.id)
    """

    def __init__(self, max_concurrent: int = 3, retention_seconds: float = 3600.0):
        """Initialize the manager.

        Args:
            max_concurrent: Jobs allowed in flight at once
            retention_seconds: Age after which finished jobs are collected
        """
        self.max_concurrent = max(1, int(max_concurrent))
        self.retention_seconds = retention_seconds
        self._jobs: Dict[str, Job] = {}
        self._lock = Lock()

    @classmethod
    def from_config(cls, config) -> JobManager:
        jobs = config.section("jobs")
        return cls(
            max_concurrent=jobs.get("max_concurrent", 3),
            retention_seconds=jobs.get("retention_seconds", 3600),
        )

    @property
    def in_flight(self) -> int:
        with self._lock:
            return sum(1 for job in self._jobs.values() if not job.status.terminal)

    def submit(self, runner: Runner, kind: str = "generation") -> Job:
        """Register a job and schedule ``runner(job)`` on the running loop.

        Raises:
            ConcurrencyLimitError: If ``max_concurrent`` jobs are in flight
        """
        self.collect_garbage()
        job = Job(id=uuid.uuid4().hex, kind=kind)
        with self._lock:
            active = sum(1 for j in self._jobs.values() if not j.status.terminal)
            if active >= self.max_concurrent:
                raise ConcurrencyLimitError(self.max_concurrent)
            self._jobs[job.id] = job

        job.task = asyncio.create_task(self._execute(job, runner))
        logger.info(f"Submitted {kind} job {job.id}")
        return job

    async def _execute(self, job: Job, runner: Runner) -> None:
        job.status = JobStatus.RUNNING
        try:
            job.result = await runner(job)
        except GenerationCancelled:
            self._finish(job, JobStatus.CANCELLED, "Cancelled")
        except asyncio.CancelledError:
            self._finish(job, JobStatus.CANCELLED, "Cancelled")
            raise
        except Exception as e:
            logger.error(f"Job {job.id} failed: {e}")
            self._finish(job, JobStatus.ERROR, str(e))
        else:
            if job.cancelled:
                # Cancelled after the last suspension point; the result is discarded
                job.result = None
                self._finish(job, JobStatus.CANCELLED, "Cancelled")
            else:
                job.progress = 1.0
                self._finish(job, JobStatus.COMPLETED)

    def _finish(self, job: Job, status: JobStatus, error: Optional[str] = None) -> None:
        job.status = status
        job.error = error
        job.finished_at = time.time()
        logger.info(f"Job {job.id} finished: {status.value}")

    def get(self, job_id: str) -> Optional[Job]:
        with self._lock:
            return self._jobs.get(job_id)

    def list_jobs(self, status: Optional[JobStatus] = None) -> List[Job]:
        with self._lock:
            jobs = list(self._jobs.values())
        if status is not None:
            jobs = [job for job in jobs if job.status == status]
        return sorted(jobs, key=lambda job: job.created_at)

    def cancel(self, job_id: str) -> bool:
        """Request cooperative cancellation.

        Returns:
            False for unknown or already finished jobs
        """
        job = self.get(job_id)
        if job is None or job.status.terminal:
            return False
        job.cancelled = True
        job.token.cancel()
        logger.info(f"Cancellation requested for job {job_id}")
        return True

    def report_progress(self, job_id: str, progress: float) -> None:
        """Raise a job's progress; lower values are ignored."""
        job = self.get(job_id)
        if job is None or job.status.terminal:
            return
        job.progress = max(job.progress, min(max(float(progress), 0.0), 1.0))

    async def wait(self, job_id: str, timeout: Optional[float] = None) -> Job:
        """Wait until the job reaches a terminal state.

        Raises:
            KeyError: If the job is unknown
        """
        job = self.get(job_id)
        if job is None:
            raise KeyError(job_id)
        if job.task is not None and not job.task.done():
            await asyncio.wait_for(asyncio.shield(job.task), timeout=timeout)
        return job

    def collect_garbage(self, now: Optional[float] = None) -> int:
        """Drop finished jobs older than the retention window.

        Returns:
            Number of jobs removed
        """
        now = time.time() if now is None else now
        with self._lock:
            expired = [
                job_id
                for job_id, job in self._jobs.items()
                if job.status.terminal
                and job.finished_at is not None
                and now - job.finished_at >= self.retention_seconds
            ]
            for job_id in expired:
                del self._jobs[job_id]
        if expired:
            logger.debug(f"Collected {len(expired)} finished jobs")
        return len(expired)

    def __repr__(self) -> str:
        return f"JobManager(jobs={len(self._jobs)}, max_concurrent={self.max_concurrent})"
