# File: dbscaffold/pipeline.py
"""
dbscaffold - Generation Job Pipeline
=====================================
Runs the schema compiler as background jobs and tracks their status.

    submit ──► Queued ──► Processing ──► Completed (package name)
                  │            │
                  └────────────┴──────► Error (message)

``JobRegistry`` is the only shared mutable state: a dict of job records
guarded by one ``threading.Lock`` so that the event loop and worker threads
can both read it.  A job's record is only ever written by the coroutine
running that job, and every write replaces the whole record, so a poll never
observes a half-updated status.

``JobPipeline`` schedules one supervised ``asyncio.Task`` per job.  Inside a
job the steps are strictly sequential; file writes and archive creation are
pushed to worker threads with ``asyncio.to_thread``.  Failures are recorded
on the job and never propagate to the caller of ``submit``.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import threading
import uuid
from pathlib import Path
from typing import Dict, List, Optional

from dbscaffold.exceptions import (
    InvalidFileNameError,
    JobNotFoundError,
    JobStateError,
    PackageNotFoundError,
)
from dbscaffold.exporters import StagingArea, package_directory, package_name_for
from dbscaffold.generator import ScaffoldGenerator
from dbscaffold.models import (
    GenerationJob,
    GenerationRequest,
    JobStatus,
    JobStatusResult,
    SubmitResult,
    utcnow,
)
from dbscaffold.settings import PipelineSettings, get_settings
from dbscaffold.utils import is_safe_filename

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dbscaffold.pipeline")

MSG_QUEUED: str = "Job queued; waiting to start."
MSG_PROCESSING: str = "Generating code."
MSG_NO_VALID_TABLES: str = "No valid tables were provided."
MSG_NOT_FOUND: str = "Job not found."
MSG_CANCELLED: str = "Error: job was cancelled."

_TERMINAL: frozenset = frozenset({JobStatus.COMPLETED, JobStatus.ERROR})

_ALLOWED_TRANSITIONS: Dict[JobStatus, frozenset] = {
    JobStatus.QUEUED: frozenset({JobStatus.PROCESSING, JobStatus.ERROR}),
    JobStatus.PROCESSING: frozenset({JobStatus.COMPLETED, JobStatus.ERROR}),
}


# ---------------------------------------------------------------------------
# JobRegistry
# ---------------------------------------------------------------------------


class JobRegistry:
    """Process-lifetime map of job id → ``GenerationJob``."""

    def __init__(self) -> None:
        self._lock: threading.Lock = threading.Lock()
        self._jobs: Dict[str, GenerationJob] = {}

    def create(self) -> GenerationJob:
        """Register a new Queued job under a fresh unique id."""
        job: GenerationJob = GenerationJob(
            job_id=str(uuid.uuid4()), status=JobStatus.QUEUED, message=MSG_QUEUED
        )
        with self._lock:
            self._jobs[job.job_id] = job
        return job.model_copy()

    def transition(
        self,
        job_id: str,
        status: JobStatus,
        message: str,
        download_name: Optional[str] = None,
    ) -> GenerationJob:
        """
        Move a job forward.

        Raises:
            JobNotFoundError: Unknown id.
            JobStateError: The change would leave a terminal state or go back.
        """
        with self._lock:
            current: Optional[GenerationJob] = self._jobs.get(job_id)
            if current is None:
                raise JobNotFoundError(job_id)
            current_status: JobStatus = JobStatus(current.status)
            if status not in _ALLOWED_TRANSITIONS.get(current_status, frozenset()):
                raise JobStateError(
                    f"Job {job_id}: cannot move from {current_status.value} to {status.value}."
                )
            updated: GenerationJob = current.model_copy(
                update={
                    "status": status.value,
                    "message": message,
                    "download_name": download_name,
                    "updated_at": utcnow(),
                }
            )
            self._jobs[job_id] = updated
        logger.debug("[job %s] %s → %s", job_id, current_status.value, status.value)
        return updated.model_copy()

    def get(self, job_id: str) -> Optional[GenerationJob]:
        with self._lock:
            job: Optional[GenerationJob] = self._jobs.get(job_id)
        return job.model_copy() if job is not None else None

    def is_terminal(self, job_id: str) -> bool:
        job: Optional[GenerationJob] = self.get(job_id)
        return job is not None and JobStatus(job.status) in _TERMINAL

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)


# ---------------------------------------------------------------------------
# JobPipeline
# ---------------------------------------------------------------------------


class JobPipeline:
    """
    Accepts generation requests and runs them in the background.

    Usage::

        pipeline = JobPipeline(settings)
        result = await pipeline.submit(request)
        await pipeline.wait(result.job_id)
        status = pipeline.get_status(result.job_id)
        path = pipeline.package_path(status.download_name)

    ``submit`` must be awaited on a running event loop; the job task is
    bound to that loop.
    """

    def __init__(
        self,
        settings: Optional[PipelineSettings] = None,
        *,
        generator: Optional[ScaffoldGenerator] = None,
        registry: Optional[JobRegistry] = None,
    ) -> None:
        self._settings: PipelineSettings = settings or get_settings()
        self._generator: ScaffoldGenerator = generator or ScaffoldGenerator(
            run_diagnostics=False
        )
        self._registry: JobRegistry = registry or JobRegistry()
        self._tasks: Dict[str, asyncio.Task] = {}
        self._slots: Optional[asyncio.Semaphore] = (
            asyncio.Semaphore(self._settings.max_concurrent_jobs)
            if self._settings.max_concurrent_jobs
            else None
        )
        logger.debug(
            "JobPipeline initialised (staging_root=%s, package_dir=%s, max_concurrent_jobs=%s).",
            self._settings.staging_root,
            self._settings.package_dir,
            self._settings.max_concurrent_jobs,
        )

    @property
    def registry(self) -> JobRegistry:
        return self._registry

    @property
    def settings(self) -> PipelineSettings:
        return self._settings

    @property
    def active_jobs(self) -> int:
        return len(self._tasks)

    # -----------------------------------------------------------------
    # Submission
    # -----------------------------------------------------------------

    async def submit(self, request: GenerationRequest) -> SubmitResult:
        """
        Create a job for *request* and start it without waiting for it.

        A request without any valid table is refused and creates no job.
        """
        valid_count: int = len(request.valid_tables())
        if valid_count == 0:
            logger.info("Rejected submission: %s", MSG_NO_VALID_TABLES)
            return SubmitResult(success=False, job_id=None, message=MSG_NO_VALID_TABLES)

        job: GenerationJob = self._registry.create()
        task: asyncio.Task = asyncio.create_task(
            self._run_job(job.job_id, request), name=f"dbscaffold-job-{job.job_id}"
        )
        self._tasks[job.job_id] = task
        task.add_done_callback(functools.partial(self._on_task_done, job.job_id))

        logger.info("[job %s] Queued (%d valid table(s)).", job.job_id, valid_count)
        return SubmitResult(
            success=True,
            job_id=job.job_id,
            message=f"Generation started for {valid_count} table(s).",
        )

    def _on_task_done(self, job_id: str, task: asyncio.Task) -> None:
        self._tasks.pop(job_id, None)
        if task.cancelled():
            # A task cancelled before its first step never reaches _run_job's handler.
            logger.warning("[job %s] Task cancelled.", job_id)
            self._fail(job_id, MSG_CANCELLED)
            return
        exc: Optional[BaseException] = task.exception()
        if exc is not None:
            logger.error("[job %s] Task ended with an unhandled error: %r", job_id, exc)

    # -----------------------------------------------------------------
    # Background unit of work
    # -----------------------------------------------------------------

    async def _run_job(self, job_id: str, request: GenerationRequest) -> None:
        try:
            if self._slots is not None:
                async with self._slots:
                    await self._execute(job_id, request)
            else:
                await self._execute(job_id, request)
        except asyncio.CancelledError:
            self._fail(job_id, MSG_CANCELLED)
            raise
        except Exception as exc:
            logger.exception("[job %s] Generation failed.", job_id)
            self._fail(job_id, f"Error: {exc}")

    def _fail(self, job_id: str, message: str) -> None:
        if not self._registry.is_terminal(job_id):
            self._registry.transition(job_id, JobStatus.ERROR, message)

    async def _execute(self, job_id: str, request: GenerationRequest) -> None:
        self._registry.transition(job_id, JobStatus.PROCESSING, MSG_PROCESSING)
        logger.info("[job %s] Processing.", job_id)

        staging: StagingArea = StagingArea(self._settings.staging_root, job_id)
        await asyncio.to_thread(staging.create)
        try:
            tables, relationship_map = self._generator.resolve(request)
            for rel_path, content in self._generator.iter_artifacts(request, relationship_map):
                await asyncio.to_thread(staging.write, rel_path, content)

            package_name: str = package_name_for(job_id)
            destination: Path = self._settings.package_dir / package_name
            await self._write_package(job_id, staging, destination)

            file_count: int = len(staging.records)
            self._registry.transition(
                job_id,
                JobStatus.COMPLETED,
                f"Code generation completed: {file_count} file(s) for {len(tables)} table(s).",
                download_name=package_name,
            )
            logger.info("[job %s] Completed → %s (%d files).", job_id, package_name, file_count)
        finally:
            try:
                await asyncio.to_thread(staging.remove)
            except OSError as exc:
                logger.warning("[job %s] Could not remove staging area: %s", job_id, exc)

    @staticmethod
    async def _write_package(job_id: str, staging: StagingArea, destination: Path) -> None:
        """
        Zip the staging tree into *destination*.

        The worker thread outlives a cancel: wait for it, remove its package
        and re-raise.
        """
        writer: asyncio.Future = asyncio.ensure_future(
            asyncio.to_thread(package_directory, staging.path, destination)
        )
        try:
            await asyncio.shield(writer)
        except asyncio.CancelledError:
            await asyncio.wait({writer})
            if not writer.cancelled() and writer.exception() is not None:
                logger.warning(
                    "[job %s] Packaging failed during cancellation: %s",
                    job_id,
                    writer.exception(),
                )
            await asyncio.to_thread(destination.unlink, missing_ok=True)
            logger.info("[job %s] Discarded package written during cancellation.", job_id)
            raise

    # -----------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------

    def get_status(self, job_id: str) -> JobStatusResult:
        job: Optional[GenerationJob] = self._registry.get(job_id)
        if job is None:
            return JobStatusResult(status=JobStatus.NOT_FOUND, message=MSG_NOT_FOUND)
        return JobStatusResult(
            status=job.status, message=job.message, download_name=job.download_name
        )

    def package_path(self, file_name: str) -> Path:
        """
        Resolve a package name to its path.

        Raises:
            InvalidFileNameError: Before touching the disk, for unsafe names.
            PackageNotFoundError: No such package.
        """
        if not is_safe_filename(file_name):
            raise InvalidFileNameError(file_name)
        path: Path = self._settings.package_dir / file_name
        if not path.is_file():
            raise PackageNotFoundError(file_name)
        return path

    async def download(self, file_name: str) -> bytes:
        path: Path = self.package_path(file_name)
        return await asyncio.to_thread(path.read_bytes)

    # -----------------------------------------------------------------
    # Supervision
    # -----------------------------------------------------------------

    async def wait(self, job_id: str, timeout: Optional[float] = None) -> JobStatusResult:
        """Wait until the job's task finishes (or *timeout* passes); return its status."""
        task: Optional[asyncio.Task] = self._tasks.get(job_id)
        if task is not None:
            await asyncio.wait({task}, timeout=timeout)
        return self.get_status(job_id)

    def cancel(self, job_id: str) -> bool:
        task: Optional[asyncio.Task] = self._tasks.get(job_id)
        if task is None or task.done():
            return False
        return task.cancel()

    async def shutdown(self) -> None:
        """Cancel every running job and wait for the tasks to settle."""
        tasks: List[asyncio.Task] = list(self._tasks.values())
        if not tasks:
            return
        logger.info("Shutting down: cancelling %d running job(s).", len(tasks))
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


__all__: List[str] = [
    "JobRegistry",
    "JobPipeline",
    "MSG_QUEUED",
    "MSG_PROCESSING",
    "MSG_NO_VALID_TABLES",
    "MSG_NOT_FOUND",
    "MSG_CANCELLED",
]

logger.debug("dbscaffold.pipeline loaded — %d public symbols.", len(__all__))
