"""
FastAPI application — AI website generation and redeployment service.

Endpoints:
    GET  /health                      → {"status": "ok"}
    GET  /sites                       → [SavedSite]  (best-effort, in-process)
    POST /generate-website            → GenerationResult
    POST /generate-website/jobs       → 202 {"jobId", "statusUrl"}
    GET  /generate-website/jobs/{id}  → GenerationJob  (best-effort, in-process)
    POST /edit-website                → text/event-stream of progress frames
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from sitegen.deployer import DeploymentTrigger
from sitegen.editor import EditOrchestrator
from sitegen.errors import SiteGenError, ValidationError
from sitegen.github_client import GitHubClient
from sitegen.images import ImageFetcher
from sitegen.jobs import InMemoryJobStore, JobStore, run_generation_job
from sitegen.llm_client import LLMClient
from sitegen.logging_config import new_request_id, request_id_ctx, setup_logging
from sitegen.materializer import FreeformMaterializer, TemplatedMaterializer
from sitegen.models import EditWebsiteRequest, ErrorResponse, GenerateWebsiteRequest
from sitegen.pipeline import GenerationPipeline
from sitegen.planner import ContentPlanner
from sitegen.publisher import RepositoryPublisher
from sitegen.settings import require_credentials, settings
from sitegen.site_store import InMemorySiteStore, SiteStore
from sitegen.streaming import ProgressChannel, pump
from sitegen.url_parser import parse_repo_url
from sitegen.vercel_client import VercelClient

logger = logging.getLogger("sitegen.main")


# ── Shared state ───────────────────────────────────────────────
class _State:
    """Mutable container so lifespan and endpoints share instances."""

    def __init__(self) -> None:
        self.llm_client: LLMClient | None = None
        self.github_client: GitHubClient | None = None
        self.vercel_client: VercelClient | None = None
        self.image_fetcher: ImageFetcher | None = None
        self.site_store: SiteStore | None = None
        self.job_store: JobStore | None = None
        self.pipeline: GenerationPipeline | None = None
        self.orchestrator: EditOrchestrator | None = None
        # Running edits and jobs; referenced so they are not garbage-collected mid-flight
        self.background: set[asyncio.Task] = set()


state = _State()


def _ensure_store() -> SiteStore:
    if state.site_store is None:
        state.site_store = InMemorySiteStore(limit=settings.known_sites_limit)
    return state.site_store


def _ensure_jobs() -> JobStore:
    if state.job_store is None:
        state.job_store = InMemoryJobStore(
            ttl_seconds=settings.job_ttl_seconds, limit=settings.job_limit
        )
    return state.job_store


def _ensure_state() -> _State:
    """Lazily initialise clients and services for TestClient compatibility."""
    if state.llm_client is None:
        state.llm_client = LLMClient()
    if state.github_client is None:
        state.github_client = GitHubClient()
    if state.vercel_client is None:
        state.vercel_client = VercelClient()
    if state.image_fetcher is None:
        state.image_fetcher = ImageFetcher()

    publisher = RepositoryPublisher(state.github_client)
    deployer = DeploymentTrigger(state.vercel_client)
    if state.pipeline is None:
        state.pipeline = GenerationPipeline(
            planner=ContentPlanner(state.llm_client),
            templated=TemplatedMaterializer(),
            freeform=FreeformMaterializer(state.llm_client),
            publisher=publisher,
            deployer=deployer,
            images=state.image_fetcher,
            store=_ensure_store(),
        )
    if state.orchestrator is None:
        state.orchestrator = EditOrchestrator(
            state.llm_client, state.github_client, publisher, deployer
        )
    return state


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage client lifetime."""
    setup_logging(settings.log_level)
    _ensure_store()
    _ensure_jobs()
    _ensure_state()

    logger.info(
        "Application started (github_token=%s, vercel_token=%s, llm_model=%s)",
        bool(settings.github_token),
        bool(settings.vercel_token),
        settings.llm_model,
    )
    if not settings.llm_api_key or not settings.github_token:
        logger.warning(
            "LLM_API_KEY or GITHUB_TOKEN is not set; generation and edits will be "
            "rejected as not configured."
        )
    yield

    if state.background:
        await asyncio.gather(*state.background, return_exceptions=True)
    for client in (
        state.llm_client,
        state.github_client,
        state.vercel_client,
        state.image_fetcher,
    ):
        if client is not None:
            await client.aclose()
    logger.info("Application shutdown")


app = FastAPI(
    title="AI Website Generator",
    version="1.0.0",
    lifespan=lifespan,
)

# ── CORS (read-only endpoints only) ────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)


# ── Middleware: request_id + timing ────────────────────────────
@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    rid = new_request_id(request.headers.get("x-request-id"))
    request_id_ctx.set(rid)
    t0 = time.perf_counter()
    response = await call_next(request)
    elapsed = round((time.perf_counter() - t0) * 1000, 1)
    response.headers["X-Request-Id"] = rid
    logger.info(
        "%s %s → %s (%.1f ms)",
        request.method, request.url.path, response.status_code, elapsed,
    )
    return response


def _spawn(coro) -> asyncio.Task:
    task = asyncio.create_task(coro)
    state.background.add(task)
    task.add_done_callback(state.background.discard)
    return task


# ── Error handling ─────────────────────────────────────────────
def _error_response(
    status: int,
    message: str,
    *,
    details: Any = None,
    code: str | None = None,
    stage: str | None = None,
) -> JSONResponse:
    body = ErrorResponse(error=message, details=details, code=code, stage=stage)
    return JSONResponse(status_code=status, content=body.model_dump(exclude_none=True))


@app.exception_handler(SiteGenError)
async def sitegen_error_handler(request: Request, exc: SiteGenError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("%s at stage %s: %s", exc.code, exc.stage, exc.message)
    return _error_response(
        exc.status_code, exc.message, details=exc.wire_details(), code=exc.code, stage=exc.stage
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    problems = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return _error_response(
        400, "Invalid request body", details=problems, code=ValidationError.code
    )


# ── Endpoints ──────────────────────────────────────────────────
@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/sites")
async def list_sites():
    sites = await _ensure_store().list()
    return [site.to_wire() for site in sites]


@app.post("/generate-website")
async def generate_website(body: GenerateWebsiteRequest):
    pipeline = _ensure_state().pipeline
    try:
        result = await pipeline.run(body)
    except SiteGenError:
        raise
    except Exception:
        logger.exception("Unexpected error generating website")
        return _error_response(
            500,
            "Failed to generate website. Please try again or contact support if the issue persists.",
            code="GENERATION_FAILED",
        )
    return result.to_wire()


@app.post("/generate-website/jobs", status_code=202)
async def submit_generation_job(body: GenerateWebsiteRequest):
    pipeline = _ensure_state().pipeline
    pipeline.validate(body)

    jobs = _ensure_jobs()
    job = await jobs.create(body.company_name)
    logger.info("Queued generation job %s for %s", job.id, body.company_name)
    _spawn(run_generation_job(pipeline, jobs, job.id, body))
    return {
        "success": True,
        "jobId": job.id,
        "statusUrl": f"/generate-website/jobs/{job.id}",
        "message": "Website generation started",
    }


@app.get("/generate-website/jobs/{job_id}")
async def generation_job_status(job_id: str):
    job = await _ensure_jobs().get(job_id)
    if job is None:
        return _error_response(404, "Job not found", code="JOB_NOT_FOUND")
    return job.to_wire()


@app.post("/edit-website")
async def edit_website(body: EditWebsiteRequest):
    if not body.repo_url.strip() or not body.edit_prompt.strip():
        raise ValidationError("Missing repoUrl or editPrompt")
    parse_repo_url(body.repo_url)
    require_credentials("llm_api_key", "github_token")

    orchestrator = _ensure_state().orchestrator
    logger.info(
        "Starting website edit for %s (%s)",
        body.repo_url, body.company_name or "unknown company",
    )

    channel = ProgressChannel()
    _spawn(pump(orchestrator.apply_edit(body.repo_url, body.edit_prompt), channel))

    return StreamingResponse(
        channel.frames(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
