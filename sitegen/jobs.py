"""
Background generation jobs.

``POST /generate-website/jobs`` validates the request, stores a queued
``GenerationJob`` and returns at once; ``run_generation_job`` then drives
``GenerationPipeline.run`` in a task, copying each stage's progress onto
the job so ``GET /generate-website/jobs/{id}`` can report it.

``InMemoryJobStore`` carries the same caveats as ``InMemorySiteStore``:
jobs live in this process only, vanish on restart and expire after
``job_ttl_seconds``. A client that loses its job id loses the job, but
never the repository, which exists on the source host regardless.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

from sitegen.errors import SiteGenError
from sitegen.models import GenerateWebsiteRequest, GenerationJob
from sitegen.pipeline import GenerationPipeline

logger = logging.getLogger("sitegen.jobs")

MSG_STARTED = "Initializing..."
MSG_COMPLETE = "Website generation complete!"
MSG_UNEXPECTED = (
    "Failed to generate website. Please try again or contact support if the issue persists."
)


def new_job_id() -> str:
    return f"job_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class JobStore(Protocol):
    async def create(self, company_name: str) -> GenerationJob: ...

    async def get(self, job_id: str) -> GenerationJob | None: ...

    async def update(self, job_id: str, **changes: Any) -> GenerationJob | None: ...


class InMemoryJobStore:
    """Async-safe in-memory job table with expiry."""

    def __init__(self, ttl_seconds: float = 3600.0, limit: int = 200) -> None:
        self._jobs: dict[str, GenerationJob] = {}
        self._lock = asyncio.Lock()
        self.ttl = timedelta(seconds=ttl_seconds)
        self.limit = limit

    async def create(self, company_name: str) -> GenerationJob:
        now = datetime.now(timezone.utc)
        job = GenerationJob(
            id=new_job_id(), company_name=company_name, created_at=now, updated_at=now
        )
        async with self._lock:
            self._expire(now)
            self._jobs[job.id] = job
            if len(self._jobs) > self.limit:
                # Oldest finished jobs go first; running ones are kept
                finished = sorted(
                    (j for j in self._jobs.values() if j.finished),
                    key=lambda j: j.created_at,
                )
                for old in finished[: len(self._jobs) - self.limit]:
                    del self._jobs[old.id]
        return job

    async def get(self, job_id: str) -> GenerationJob | None:
        async with self._lock:
            self._expire(datetime.now(timezone.utc))
            return self._jobs.get(job_id)

    async def update(self, job_id: str, **changes: Any) -> GenerationJob | None:
        """Apply *changes*; progress never moves backwards."""
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return None
            if "progress" in changes:
                changes["progress"] = max(job.progress, changes["progress"])
            job = job.model_copy(
                update={**changes, "updated_at": datetime.now(timezone.utc)}
            )
            self._jobs[job_id] = job
            return job

    def _expire(self, now: datetime) -> None:
        cutoff = now - self.ttl
        for job_id in [j.id for j in self._jobs.values() if j.created_at < cutoff]:
            del self._jobs[job_id]


async def run_generation_job(
    pipeline: GenerationPipeline,
    jobs: JobStore,
    job_id: str,
    request: GenerateWebsiteRequest,
) -> None:
    """Run one generation to completion, recording the outcome on the job. Never raises."""

    async def report(message: str, percentage: float) -> None:
        await jobs.update(job_id, message=message, progress=percentage)

    log_extra = {"stage": "job"}
    await jobs.update(job_id, status="processing", message=MSG_STARTED, progress=5)
    logger.info("Generation job %s started", job_id, extra=log_extra)
    try:
        result = await pipeline.run(request, progress=report)
    except SiteGenError as exc:
        logger.warning(
            "Generation job %s failed at %s: %s", job_id, exc.stage, exc.message,
            extra=log_extra,
        )
        await jobs.update(
            job_id,
            status="failed",
            message=f"Error: {exc.message}",
            error=exc.message,
            code=exc.code,
            stage=exc.stage,
            details=exc.wire_details(),
        )
        return
    except Exception:
        logger.exception("Generation job %s crashed", job_id, extra=log_extra)
        await jobs.update(
            job_id,
            status="failed",
            message=f"Error: {MSG_UNEXPECTED}",
            error=MSG_UNEXPECTED,
            code="GENERATION_FAILED",
        )
        return

    await jobs.update(
        job_id, status="completed", message=MSG_COMPLETE, progress=100, result=result
    )
    logger.info("Generation job %s completed: %s", job_id, result.repo_url, extra=log_extra)
