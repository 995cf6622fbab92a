"""Bounded asynchronous worker pool for blocking RCON operations."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Protocol
from uuid import uuid4

from mc_rcon.errors import AuthenticationFailed


class CommandJobStatus(str, Enum):
    """Lifecycle states for submitted jobs."""

    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass(slots=True)
class CommandJob:
    """One service operation queued on the runtime and its final outcome."""

    id: str
    operation: str
    submitted_at: datetime
    status: CommandJobStatus
    result: Any = None
    error: str | None = None
    exception: BaseException | None = None
    finished_at: datetime | None = None


class CommandHistoryStore(Protocol):
    """Storage contract for finished jobs."""

    def append(self, job: CommandJob) -> None:
        """Record a finished job."""

    def list_recent(self, limit: int) -> list[CommandJob]:
        """Return up to ``limit`` newest jobs."""


class InMemoryHistoryStore:
    """Bounded in-memory history store."""

    def __init__(self, max_jobs: int = 1_000) -> None:
        self._jobs: deque[CommandJob] = deque(maxlen=max_jobs)

    def append(self, job: CommandJob) -> None:
        self._jobs.appendleft(job)

    def list_recent(self, limit: int) -> list[CommandJob]:
        return list(self._jobs)[:limit]


class CommandRuntime:
    """Queue-backed runtime executing service calls on a fixed number of workers.

    Each job runs in a worker thread under ``operation_timeout_seconds``.
    Retries are opt-in and never repeat a rejected password.
    """

    def __init__(
        self,
        *,
        workers: int = 4,
        history_store: CommandHistoryStore | None = None,
        operation_timeout_seconds: float = 10.0,
        max_retries: int = 0,
        retry_delay_seconds: float = 0.2,
        max_queue_size: int = 1_000,
        logger: logging.Logger | None = None,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be at least 1")

        self._workers = workers
        self._history_store = history_store or InMemoryHistoryStore(max_jobs=max_queue_size)
        self._operation_timeout_seconds = operation_timeout_seconds
        self._max_retries = max_retries
        self._retry_delay_seconds = retry_delay_seconds
        self._logger = logger or logging.getLogger("mc_rcon.command_runtime")

        self._jobs: dict[str, CommandJob] = {}
        self._calls: dict[str, Callable[[], Any]] = {}
        self._done: dict[str, asyncio.Event] = {}
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=max_queue_size)
        self._worker_tasks: list[asyncio.Task[None]] = []

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._worker_tasks)

    async def start(self) -> None:
        """Start the worker pool once for this runtime."""
        if self.running:
            return

        self._worker_tasks = [
            asyncio.create_task(self._worker_loop(), name=f"command-runtime-worker-{index}")
            for index in range(self._workers)
        ]
        self._logger.info(
            "command_runtime_started",
            extra={"workers": self._workers, "queue_maxsize": self._queue.maxsize},
        )

    async def stop(self) -> None:
        """Cancel the workers and wait for them to finish."""
        if not self._worker_tasks:
            return

        for task in self._worker_tasks:
            task.cancel()
        await asyncio.gather(*self._worker_tasks, return_exceptions=True)
        self._worker_tasks = []

        self._logger.info("command_runtime_stopped")

    def submit(self, operation: str, fn: Callable[..., Any], *args: Any) -> str:
        """Queue ``fn(*args)`` and return the job id."""
        job_id = uuid4().hex
        self._jobs[job_id] = CommandJob(
            id=job_id,
            operation=operation,
            submitted_at=datetime.now(timezone.utc),
            status=CommandJobStatus.QUEUED,
        )
        self._calls[job_id] = lambda: fn(*args)
        self._done[job_id] = asyncio.Event()
        self._queue.put_nowait(job_id)
        self._logger.info(
            "command_submitted",
            extra={"job_id": job_id, "operation": operation, "queue_size": self._queue.qsize()},
        )
        return job_id

    def get_job(self, job_id: str) -> CommandJob:
        """Return job state for the given id."""
        if job_id in self._jobs:
            return self._jobs[job_id]
        for job in self._history_store.list_recent(limit=len(self._jobs) + 1_000):
            if job.id == job_id:
                return job
        raise KeyError(f"Unknown command job id: {job_id}")

    async def wait(self, job_id: str) -> CommandJob:
        """Block until the job has finished and return it."""
        done = self._done.get(job_id)
        if done is not None:
            await done.wait()
        return self.get_job(job_id)

    async def run(self, operation: str, fn: Callable[..., Any], *args: Any) -> Any:
        """Submit, wait, and return the result or re-raise the job's error."""
        job = await self.wait(self.submit(operation, fn, *args))
        if job.status is CommandJobStatus.SUCCEEDED:
            return job.result
        if job.exception is not None:
            raise job.exception
        raise TimeoutError(job.error or "Unknown command execution failure")

    def list_recent_jobs(self, limit: int = 20) -> list[CommandJob]:
        """Return newest jobs, pending ones first, then finished history."""
        pending = sorted(self._jobs.values(), key=lambda job: job.submitted_at, reverse=True)
        merged: list[CommandJob] = []
        seen: set[str] = set()
        for job in [*pending, *self._history_store.list_recent(limit)]:
            if job.id in seen:
                continue
            seen.add(job.id)
            merged.append(job)
            if len(merged) >= limit:
                break
        return merged

    async def _worker_loop(self) -> None:
        while True:
            job_id = await self._queue.get()
            try:
                await self._execute_job(job_id)
            finally:
                self._queue.task_done()

    async def _execute_job(self, job_id: str) -> None:
        job = self._jobs[job_id]
        call = self._calls.pop(job_id)
        job.status = CommandJobStatus.RUNNING
        self._logger.info("command_started", extra={"job_id": job.id, "operation": job.operation})

        try:
            for attempt in range(1, self._max_retries + 2):
                try:
                    job.result = await asyncio.wait_for(
                        asyncio.to_thread(call),
                        timeout=self._operation_timeout_seconds,
                    )
                    job.status = CommandJobStatus.SUCCEEDED
                    job.error = None
                    job.exception = None
                    self._logger.info(
                        "command_succeeded",
                        extra={"job_id": job.id, "operation": job.operation, "attempt": attempt},
                    )
                    break
                except asyncio.TimeoutError:
                    job.status = CommandJobStatus.TIMED_OUT
                    job.exception = None
                    job.error = (
                        f"Operation timed out after {self._operation_timeout_seconds}s "
                        f"(attempt {attempt}/{self._max_retries + 1})"
                    )
                    self._logger.warning(
                        "command_timeout",
                        extra={"job_id": job.id, "operation": job.operation, "attempt": attempt},
                    )
                except Exception as exc:  # noqa: BLE001 - the job record carries the failure.
                    job.status = CommandJobStatus.FAILED
                    job.exception = exc
                    job.error = f"{type(exc).__name__}: {exc}"
                    self._logger.warning(
                        "command_failed",
                        extra={"job_id": job.id, "operation": job.operation, "attempt": attempt, "error": job.error},
                    )
                    if isinstance(exc, AuthenticationFailed):
                        break

                if attempt <= self._max_retries:
                    await asyncio.sleep(self._retry_delay_seconds)
        finally:
            job.finished_at = datetime.now(timezone.utc)
            self._history_store.append(job)
            self._jobs.pop(job_id, None)
            self._done.pop(job_id).set()
