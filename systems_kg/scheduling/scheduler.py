"""
Job Scheduler / Admission Controller

Priority-ordered job queue with two admission limits: the number of jobs
processing at once and the sum of their memory estimates.

Admission is strict head-of-line: the highest-priority, earliest-submitted
queued job is the only candidate. If it does not fit, nothing behind it is
admitted either. A job whose estimate alone exceeds the memory threshold
waits until the scheduler is idle and then runs by itself.

Example:
    >>> async def handler(job: Job) -> None:
    ...     ...  # do the work
    >>> scheduler = JobScheduler(handler, max_concurrent_jobs=3)
    >>> job_id = scheduler.submit("doc-1", payload_size=500_000)
    >>> job = await scheduler.wait(job_id)
    >>> job.status
    'completed'
"""

from __future__ import annotations

import asyncio
import bisect
import logging
import math
import threading
import time
import uuid
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from systems_kg.errors import InvalidRequestError
from systems_kg.types import PRIORITY_WEIGHTS, Job, JobRequest, QueueMetrics

logger = logging.getLogger(__name__)

_MB = 1024 * 1024

# Milliseconds of processing per MB of payload
DURATION_MS_PER_MB: dict[str, int] = {
    "extraction": 2000,
    "analysis": 5000,
    "chunking": 500,
}
LARGE_PAYLOAD_MB = 10
LARGE_PAYLOAD_OVERHEAD_MS_PER_MB = 200

JobHandler = Callable[[Job], Awaitable[Any]]


def estimate_duration_ms(payload_size: int, job_type: str) -> int:
    """Estimated processing time from payload size and job type."""
    size_mb = payload_size / _MB
    duration = size_mb * DURATION_MS_PER_MB[job_type]
    if size_mb > LARGE_PAYLOAD_MB:
        duration += size_mb * LARGE_PAYLOAD_OVERHEAD_MS_PER_MB
    return math.floor(duration + 0.5)


def _now_ms() -> int:
    return int(time.time() * 1000)


def build_request(
    document_id: str,
    *,
    payload_size: int,
    job_type: str = "extraction",
    priority: str = "medium",
    memory_estimate: int | None = None,
    strategy: str | None = None,
    warnings: list[str] | None = None,
) -> JobRequest:
    """
    Validate a submission without queueing it.

    Raises:
        InvalidRequestError: Unknown priority or job type, or a negative size
    """
    try:
        return JobRequest(
            document_id=document_id,
            job_type=job_type,
            priority=priority,
            payload_size=payload_size,
            memory_estimate=memory_estimate,
            strategy=strategy,
            warnings=warnings or [],
        )
    except ValidationError as e:
        raise InvalidRequestError(f"Invalid job request: {e}") from e


@dataclass
class SchedulerStats:
    submitted: int = 0
    admitted: int = 0
    completed: int = 0
    failed: int = 0
    cancelled: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "submitted": self.submitted,
            "admitted": self.admitted,
            "completed": self.completed,
            "failed": self.failed,
            "cancelled": self.cancelled,
        }


class JobScheduler:
    """
    Admits queued jobs into processing within concurrency and memory limits.

    ``submit`` is synchronous and returns the job id immediately; admitted
    jobs run as asyncio tasks on the running loop. Admission is re-evaluated
    on submit, on job completion and on configuration change, always under
    one lock.

    Args:
        handler: Coroutine function run for each admitted job. Exceptions it
            raises fail the job; an exception's ``retryable`` attribute becomes
            the job's ``recoverable`` hint.
        max_concurrent_jobs: Jobs allowed in processing at once
        memory_threshold: Budget for the sum of running memory estimates
        default_job_memory: Base estimate added to the payload size when a
            submission carries no explicit estimate
        history_limit: Finished jobs kept for status lookups
        clock: Epoch-milliseconds time source
    """

    def __init__(
        self,
        handler: JobHandler,
        *,
        max_concurrent_jobs: int = 3,
        memory_threshold: int = 512 * _MB,
        default_job_memory: int = 50 * _MB,
        history_limit: int = 100,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        _check_limits(max_concurrent_jobs, memory_threshold)
        self._handler = handler
        self.max_concurrent_jobs = max_concurrent_jobs
        self.memory_threshold = memory_threshold
        self.default_job_memory = default_job_memory
        self.history_limit = history_limit
        self._clock = clock

        self._lock = threading.RLock()
        self._seq = 0
        # Sorted by (-priority weight, arrival sequence)
        self._queue: list[tuple[int, int, str]] = []
        self._live: dict[str, Job] = {}
        self._history: OrderedDict[str, Job] = OrderedDict()
        self._tasks: dict[str, asyncio.Task] = {}
        self._events: dict[str, asyncio.Event] = {}
        self._active = 0
        self._current_memory = 0
        self.stats = SchedulerStats()

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def submit(
        self,
        document_id: str,
        *,
        payload_size: int,
        job_type: str = "extraction",
        priority: str = "medium",
        memory_estimate: int | None = None,
        strategy: str | None = None,
        warnings: list[str] | None = None,
    ) -> str:
        """
        Validate, queue a job and trigger admission.

        Returns:
            The new job id

        Raises:
            InvalidRequestError: Unknown priority or job type, or a negative
                size. The job is not enqueued.
            RuntimeError: No event loop is running
        """
        return self.enqueue(
            build_request(
                document_id,
                payload_size=payload_size,
                job_type=job_type,
                priority=priority,
                memory_estimate=memory_estimate,
                strategy=strategy,
                warnings=warnings,
            )
        )

    def enqueue(self, request: JobRequest) -> str:
        """
        Queue an already validated request and trigger admission.

        Must be called with an event loop running, since admitted jobs are
        scheduled as tasks on it.
        """
        # Fails before the job is recorded anywhere
        asyncio.get_running_loop()

        estimate = request.memory_estimate
        if estimate is None:
            estimate = request.payload_size + self.default_job_memory

        with self._lock:
            job = Job(
                id=f"job_{uuid.uuid4().hex[:12]}",
                document_id=request.document_id,
                job_type=request.job_type,
                priority=request.priority,
                payload_size=request.payload_size,
                memory_estimate=estimate,
                estimated_duration_ms=estimate_duration_ms(request.payload_size, request.job_type),
                strategy=request.strategy,
                warnings=list(request.warnings),
                submitted_at=self._clock(),
            )
            self._seq += 1
            bisect.insort(self._queue, (-PRIORITY_WEIGHTS[job.priority], self._seq, job.id))
            self._live[job.id] = job
            self._events[job.id] = asyncio.Event()
            self.stats.submitted += 1
            if estimate > self.memory_threshold:
                logger.info(
                    "Job %s estimate %d exceeds memory threshold; it will run alone",
                    job.id,
                    estimate,
                )
            self._admit()
            return job.id

    def status(self, job_id: str) -> Job | None:
        """Snapshot of a job, or None if unknown, cancelled or pruned."""
        with self._lock:
            job = self._live.get(job_id) or self._history.get(job_id)
            return job.model_copy() if job is not None else None

    def cancel(self, job_id: str) -> bool:
        """Cancel a queued job. Jobs already processing are not interrupted."""
        with self._lock:
            job = self._live.get(job_id)
            if job is None or job.status != "queued":
                return False
            self._queue = [entry for entry in self._queue if entry[2] != job_id]
            del self._live[job_id]
            self.stats.cancelled += 1
            event = self._events.pop(job_id, None)
            if event is not None:
                event.set()
            # The head may have changed
            self._admit()
            return True

    def add_warnings(self, job_id: str, warnings: list[str]) -> None:
        """Append non-fatal warnings to a live job."""
        if not warnings:
            return
        with self._lock:
            job = self._live.get(job_id)
            if job is not None:
                job.warnings.extend(warnings)

    def metrics(self) -> QueueMetrics:
        with self._lock:
            finished = list(self._history.values())
            completed = [j for j in finished if j.status == "completed"]
            failed = [j for j in finished if j.status == "failed"]
            times = [j.processing_time_ms for j in completed if j.processing_time_ms is not None]
            average = math.floor(sum(times) / len(times) + 0.5) if times else 0
            return QueueMetrics(
                total_jobs=len(self._live) + len(finished),
                active_jobs=self._active,
                queue_depth=len(self._queue),
                completed_jobs=len(completed),
                failed_jobs=len(failed),
                current_memory_usage=self._current_memory,
                average_processing_time_ms=average,
            )

    def update_config(
        self,
        *,
        max_concurrent_jobs: int | None = None,
        memory_threshold: int | None = None,
    ) -> None:
        """Change admission limits and re-evaluate the queue."""
        with self._lock:
            _check_limits(
                max_concurrent_jobs if max_concurrent_jobs is not None else self.max_concurrent_jobs,
                memory_threshold if memory_threshold is not None else self.memory_threshold,
            )
            if max_concurrent_jobs is not None:
                self.max_concurrent_jobs = max_concurrent_jobs
            if memory_threshold is not None:
                self.memory_threshold = memory_threshold
            self._admit()

    async def wait(self, job_id: str) -> Job | None:
        """Wait until a job finishes or is cancelled; return its final snapshot."""
        with self._lock:
            event = self._events.get(job_id)
        if event is not None:
            await event.wait()
        return self.status(job_id)

    async def drain(self) -> None:
        """Wait until no job is queued or processing."""
        while True:
            with self._lock:
                pending = [
                    self._events[job_id] for job_id in self._live if job_id in self._events
                ]
            if not pending:
                return
            await asyncio.gather(*(event.wait() for event in pending))

    # -------------------------------------------------------------------------
    # Admission
    # -------------------------------------------------------------------------

    def _admit(self) -> None:
        with self._lock:
            while self._queue:
                job = self._live[self._queue[0][2]]
                if self._active >= self.max_concurrent_jobs:
                    return
                if job.memory_estimate > self.memory_threshold:
                    if self._active > 0:
                        return
                elif self._current_memory + job.memory_estimate > self.memory_threshold:
                    return
                loop = asyncio.get_running_loop()
                self._queue.pop(0)
                self._start(job, loop)

    def _start(self, job: Job, loop: asyncio.AbstractEventLoop) -> None:
        job.status = "processing"
        job.started_at = self._clock()
        self._active += 1
        self._current_memory += job.memory_estimate
        self.stats.admitted += 1
        logger.debug("Admitted job %s (%s, %s)", job.id, job.priority, job.job_type)
        self._tasks[job.id] = loop.create_task(self._run(job))

    async def _run(self, job: Job) -> None:
        try:
            await self._handler(job)
        except asyncio.CancelledError:
            self._finish(job, "failed", error="Job interrupted", recoverable=True)
            raise
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.warning("Job %s failed: %s", job.id, message)
            self._finish(job, "failed", error=message, recoverable=bool(getattr(e, "retryable", False)))
        else:
            self._finish(job, "completed")

    def _finish(
        self,
        job: Job,
        status: str,
        *,
        error: str | None = None,
        recoverable: bool | None = None,
    ) -> None:
        with self._lock:
            job.status = status
            job.ended_at = self._clock()
            job.error = error
            job.recoverable = recoverable
            self._active -= 1
            self._current_memory -= job.memory_estimate
            self._live.pop(job.id, None)
            self._tasks.pop(job.id, None)
            self._history[job.id] = job
            while len(self._history) > self.history_limit:
                self._history.popitem(last=False)
            if status == "completed":
                self.stats.completed += 1
            else:
                self.stats.failed += 1
            event = self._events.pop(job.id, None)
            if event is not None:
                event.set()
            self._admit()


def _check_limits(max_concurrent_jobs: int, memory_threshold: int) -> None:
    if max_concurrent_jobs < 1:
        raise InvalidRequestError("max_concurrent_jobs must be at least 1")
    if memory_threshold <= 0:
        raise InvalidRequestError("memory_threshold must be positive")
