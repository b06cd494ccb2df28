"""
Website generation pipeline.

    validate → plan → materialize → publish_initial → deploy → record

Validation, configuration, generation and publish failures abort the run
and propagate (tagged with the failing ``stage``). Deployment never
aborts: a created repository with no deployment is reported as success
with ``autoDeployed=False`` and ``needsManualImport=True``.

An optional ``progress`` callback receives a message and percentage as
each stage starts; background jobs use it to expose their progress.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Awaitable, Callable

from sitegen.deployer import DeploymentTrigger
from sitegen.errors import SiteGenError
from sitegen.images import ImageFetcher
from sitegen.materializer import FreeformMaterializer, TemplatedMaterializer
from sitegen.models import (
    DeploymentResult,
    GeneratedFile,
    GenerateWebsiteRequest,
    GenerationResult,
    IntakeRecord,
    RepoIdentity,
    SavedSite,
)
from sitegen.naming import repo_name_for
from sitegen.planner import ContentPlanner
from sitegen.publisher import RepositoryPublisher
from sitegen.settings import require_credentials, settings
from sitegen.site_store import SiteStore
from sitegen.templates import get_template

logger = logging.getLogger("sitegen.pipeline")

MSG_DEPLOYED = "Website generated, pushed to GitHub, and automatically deployed to Vercel"
MSG_DEPLOY_ATTEMPTED = (
    "Website generated and pushed to GitHub. Vercel deployment attempted "
    "but may need manual setup."
)
MSG_NOT_CONFIGURED = (
    "Website generated and pushed to GitHub. Import the repo in Vercel dashboard to deploy."
)


# (message, percentage); percentages only grow across one run
ProgressCallback = Callable[[str, float], Awaitable[None]]


async def _silent(message: str, percentage: float) -> None:
    return None


@asynccontextmanager
async def _stage(name: str):
    logger.info("Stage %s started", name, extra={"stage": name})
    try:
        yield
    except SiteGenError as exc:
        exc.stage = exc.stage or name
        raise


class GenerationPipeline:
    def __init__(
        self,
        planner: ContentPlanner,
        templated: TemplatedMaterializer,
        freeform: FreeformMaterializer,
        publisher: RepositoryPublisher,
        deployer: DeploymentTrigger,
        images: ImageFetcher,
        store: SiteStore,
    ) -> None:
        self._planner = planner
        self._templated = templated
        self._freeform = freeform
        self._publisher = publisher
        self._deployer = deployer
        self._images = images
        self._store = store

    def validate(self, request: GenerateWebsiteRequest) -> IntakeRecord:
        """Reject bad input or missing credentials before any external call."""
        intake = request.intake()
        intake.validate_required()
        require_credentials("llm_api_key", "github_token")
        if request.strategy == "templated":
            get_template(request.template_id)
        return intake

    async def run(
        self,
        request: GenerateWebsiteRequest,
        progress: ProgressCallback | None = None,
    ) -> GenerationResult:
        report = progress or _silent
        async with _stage("validate"):
            intake = self.validate(request)

        logger.info("Generating website for %s", intake.company_name)
        files = await self.materialize(request, intake, report)

        repo_name = repo_name_for(intake.company_name)
        await report("Pushing to GitHub...", 80)
        async with _stage("publish"):
            identity = await self._publisher.publish_initial(repo_name, files, intake)

        await report("Deploying to Vercel...", 90)
        async with _stage("deploy"):
            deployment = await self._deployer.deploy(identity, repo_name)

        result = self.summarize(identity, deployment)
        await self._record(intake, identity, deployment)
        return result

    async def materialize(
        self,
        request: GenerateWebsiteRequest,
        intake: IntakeRecord,
        report: ProgressCallback,
    ) -> list[GeneratedFile]:
        if request.strategy == "freeform":
            await report("Planning website design...", 10)
            async with _stage("plan"):
                plan = await self._planner.create_plan(intake)
            await report("Generating website files...", 30)
            async with _stage("materialize"):
                return await self._freeform.materialize(plan, intake)

        await report("Parsing color scheme...", 10)
        async with _stage("plan"):
            palette = await self._planner.parse_palette(intake.colors)
            await report("Generating website content...", 30)
            content = await self._planner.create_site_content(
                intake, palette, request.template_id
            )
        await report("Fetching relevant images...", 45)
        images = await self._images.images_for(intake.company_name, intake.industry)
        await report("Building website files...", 60)
        async with _stage("materialize"):
            return self._templated.materialize(
                content, palette, intake, request.template_id, images=images
            )

    @staticmethod
    def summarize(identity: RepoIdentity, deployment: DeploymentResult) -> GenerationResult:
        if deployment.deployed:
            message = MSG_DEPLOYED
        elif settings.vercel_token:
            message = MSG_DEPLOY_ATTEMPTED
        else:
            message = MSG_NOT_CONFIGURED

        return GenerationResult(
            success=True,
            repo_url=identity.repo_url,
            vercel_url=deployment.url,
            project_url=deployment.project_url,
            message=message,
            auto_deployed=deployment.deployed,
            needs_manual_import=not deployment.deployed,
            expected_url=deployment.expected_url,
            deployment_error=deployment.error,
        )

    async def _record(
        self, intake: IntakeRecord, identity: RepoIdentity, deployment: DeploymentResult
    ) -> None:
        await self._store.add(
            SavedSite(
                id=identity.repo_name,
                company_name=intake.company_name,
                repo_url=identity.repo_url,
                vercel_url=deployment.url,
                project_url=deployment.project_url,
                created_at=datetime.now(timezone.utc),
                industry=intake.industry,
                error=deployment.error,
            )
        )
