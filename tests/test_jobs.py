"""Tests for sitegen.jobs — job store and the background generation runner."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from sitegen.errors import ConfigurationError, PublishError
from sitegen.jobs import MSG_COMPLETE, MSG_UNEXPECTED, InMemoryJobStore, run_generation_job
from sitegen.models import GenerateWebsiteRequest, GenerationResult
from sitegen.pipeline import MSG_DEPLOYED, GenerationPipeline

RESULT = GenerationResult(
    repo_url="https://github.com/acme/acme-corp-website-1",
    vercel_url="https://acme-corp-website-1.vercel.app",
    project_url="https://vercel.com/team_1/acme-corp-website-1",
    message=MSG_DEPLOYED,
    auto_deployed=True,
    needs_manual_import=False,
)


def _pipeline(run) -> AsyncMock:
    pipeline = AsyncMock(spec=GenerationPipeline)
    pipeline.run.side_effect = run
    return pipeline


# ── Store ──────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_new_job_is_queued():
    store = InMemoryJobStore()

    job = await store.create("Acme Corp")

    assert job.id.startswith("job_")
    assert (await store.get(job.id)) == job
    wire = job.to_wire()
    assert wire["status"] == "queued"
    assert wire["progress"] == 0
    assert wire["companyName"] == "Acme Corp"
    assert "result" not in wire and "error" not in wire


@pytest.mark.asyncio
async def test_progress_never_moves_backwards():
    store = InMemoryJobStore()
    job = await store.create("Acme Corp")

    await store.update(job.id, progress=60, message="Building website files...")
    updated = await store.update(job.id, progress=30, message="Late report")

    assert updated.progress == 60
    assert updated.message == "Late report"
    assert updated.updated_at >= job.updated_at


@pytest.mark.asyncio
async def test_unknown_job():
    store = InMemoryJobStore()
    assert await store.get("job_missing") is None
    assert await store.update("job_missing", progress=10) is None


@pytest.mark.asyncio
async def test_jobs_expire():
    store = InMemoryJobStore(ttl_seconds=60)
    job = await store.create("Acme Corp")
    await store.update(
        job.id, created_at=datetime.now(timezone.utc) - timedelta(minutes=5)
    )

    assert await store.get(job.id) is None


@pytest.mark.asyncio
async def test_store_is_bounded_but_keeps_running_jobs():
    store = InMemoryJobStore(limit=2)
    first = await store.create("First")
    second = await store.create("Second")
    await store.update(second.id, status="completed")

    third = await store.create("Third")

    assert await store.get(first.id) is not None
    assert await store.get(second.id) is None
    assert await store.get(third.id) is not None


# ── Runner ─────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_successful_job_records_result_and_progress(acme_payload):
    store = InMemoryJobStore()
    job = await store.create("Acme Corp")
    seen = []

    async def run(request, progress):
        for message, pct in (("Parsing color scheme...", 10), ("Pushing to GitHub...", 80)):
            await progress(message, pct)
            seen.append((await store.get(job.id)).progress)
        return RESULT

    pipeline = _pipeline(run)
    request = GenerateWebsiteRequest.model_validate(acme_payload)

    await run_generation_job(pipeline, store, job.id, request)

    done = await store.get(job.id)
    assert seen == [10, 80]
    assert done.status == "completed"
    assert done.progress == 100
    assert done.message == MSG_COMPLETE
    wire = done.to_wire()
    assert wire["result"]["repoUrl"] == RESULT.repo_url
    assert wire["result"]["autoDeployed"] is True
    assert pipeline.run.await_args.args[0] is request


@pytest.mark.asyncio
async def test_failed_job_keeps_repository_url(acme_payload):
    store = InMemoryJobStore()
    job = await store.create("Acme Corp")

    async def run(request, progress):
        await progress("Pushing to GitHub...", 80)
        raise PublishError(
            "Uploading index.html failed after 1 of 6 files",
            details={"status": 502},
            repo_url=RESULT.repo_url,
            stage="publish",
        )

    await run_generation_job(
        _pipeline(run), store, job.id, GenerateWebsiteRequest.model_validate(acme_payload)
    )

    failed = (await store.get(job.id)).to_wire()
    assert failed["status"] == "failed"
    assert failed["progress"] == 80
    assert failed["code"] == "PUBLISH_FAILED"
    assert failed["stage"] == "publish"
    assert failed["details"] == {"repoUrl": RESULT.repo_url, "upstream": {"status": 502}}
    assert failed["message"].startswith("Error: Uploading index.html")
    assert "result" not in failed


@pytest.mark.asyncio
async def test_configuration_error_fails_job(acme_payload):
    store = InMemoryJobStore()
    job = await store.create("Acme Corp")

    async def run(request, progress):
        raise ConfigurationError("Service is not configured: missing GITHUB_TOKEN.")

    await run_generation_job(
        _pipeline(run), store, job.id, GenerateWebsiteRequest.model_validate(acme_payload)
    )

    failed = await store.get(job.id)
    assert failed.status == "failed"
    assert failed.code == "SERVICE_UNAVAILABLE"


@pytest.mark.asyncio
async def test_unexpected_error_is_generic(acme_payload):
    store = InMemoryJobStore()
    job = await store.create("Acme Corp")

    async def run(request, progress):
        raise RuntimeError("disk full")

    await run_generation_job(
        _pipeline(run), store, job.id, GenerateWebsiteRequest.model_validate(acme_payload)
    )

    failed = await store.get(job.id)
    assert failed.status == "failed"
    assert failed.error == MSG_UNEXPECTED
    assert failed.code == "GENERATION_FAILED"
    assert "disk full" not in failed.message
