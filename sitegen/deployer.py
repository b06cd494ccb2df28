"""
Deployment Trigger.

``deploy`` never raises: a repository already exists by the time it runs,
so every hosting failure becomes a ``DeploymentResult`` with ``url=None``
and an ``error``. Optional steps (account resolution, repository link,
readiness poll, URL discovery) go through ``best_effort``.
"""

from __future__ import annotations

import asyncio
import logging

from sitegen.errors import DeploymentError
from sitegen.models import DeploymentResult, RepoIdentity
from sitegen.naming import slugify
from sitegen.outcome import Outcome, best_effort
from sitegen.settings import settings
from sitegen.vercel_client import PROJECT_ALREADY_EXISTS, VercelAPIError, VercelClient

logger = logging.getLogger("sitegen.deployer")


def project_slug(hint: str) -> str:
    return slugify(hint, settings.project_name_max_length) or "site"


def expected_url(slug: str) -> str:
    return f"https://{slug}.{settings.vercel_platform_domain}"


def _as_url(host: str) -> str:
    return host if host.startswith("http") else f"https://{host}"


class DeploymentTrigger:
    def __init__(self, vercel: VercelClient) -> None:
        self._vercel = vercel

    async def resolve_account(self) -> str | None:
        """First team id, else the user id, else None (calls go unscoped)."""
        teams = await best_effort("Listing Vercel teams", self._vercel.list_teams)
        if teams.ok and teams.value and isinstance(teams.value[0], dict):
            return teams.value[0].get("id")

        user = await best_effort("Fetching Vercel user", self._vercel.get_user)
        if user.ok and isinstance(user.value, dict):
            return user.value.get("id")
        return None

    def project_url(self, account_id: str | None, slug: str) -> str:
        if account_id:
            return f"https://vercel.com/{account_id}/{slug}"
        return settings.vercel_dashboard_url

    async def deploy(self, identity: RepoIdentity, project_name_hint: str) -> DeploymentResult:
        slug = project_slug(project_name_hint)

        if not settings.vercel_token:
            logger.warning("VERCEL_TOKEN not configured; skipping deployment")
            return DeploymentResult(
                project_url=settings.vercel_dashboard_url,
                expected_url=expected_url(slug),
                error="VERCEL_TOKEN not configured",
            )

        account_id: str | None = None
        try:
            account_id = await self.resolve_account()
            project = await self._ensure_project(slug, identity, account_id)
            project_id = project.get("id")
            if not project_id:
                raise DeploymentError(f"Vercel returned no id for project {slug}")

            await best_effort(
                "Linking repository",
                lambda: self._vercel.link_repository(
                    identity.repo_id, project_id, team_id=account_id
                ),
            )
            await self._wait_until_ready(project_id, account_id)

            deployment = await self._vercel.create_deployment(
                slug,
                project_id,
                repo_id=identity.repo_id,
                ref=identity.latest_commit_sha if identity.has_commit_sha else identity.default_branch,
                sha=identity.latest_commit_sha if identity.has_commit_sha else None,
                team_id=account_id,
            )
            url = await self._deployment_url(deployment, project_id, account_id, slug)
        except DeploymentError as exc:
            logger.warning(
                "Deployment of %s failed: %s", slug, exc, extra={"stage": "deploy"}
            )
            return self._partial(account_id, slug, exc.message)
        except Exception as exc:
            logger.exception(
                "Unexpected failure deploying %s", slug, extra={"stage": "deploy"}
            )
            return self._partial(account_id, slug, f"Unexpected deployment failure: {exc}")

        logger.info("Deployment triggered: %s", url, extra={"stage": "deploy"})
        return DeploymentResult(
            url=url,
            project_url=self.project_url(account_id, slug),
            expected_url=expected_url(slug),
        )

    def _partial(self, account_id: str | None, slug: str, error: str) -> DeploymentResult:
        return DeploymentResult(
            project_url=self.project_url(account_id, slug),
            expected_url=expected_url(slug),
            error=error,
        )

    async def redeploy(self, identity: RepoIdentity, project_name_hint: str) -> Outcome[str]:
        """Re-trigger a deployment after an edit; failure is reported, not raised."""
        result = await self.deploy(identity, project_name_hint)
        if result.deployed:
            return Outcome(ok=True, value=result.url)
        return Outcome(ok=False, error=result.error)

    async def _ensure_project(
        self, slug: str, identity: RepoIdentity, account_id: str | None
    ) -> dict:
        try:
            return await self._vercel.create_project(
                slug, team_id=account_id, repo=identity.repo_full_name
            )
        except VercelAPIError as exc:
            if exc.vercel_code != PROJECT_ALREADY_EXISTS:
                raise
            logger.info("Project %s already exists; reusing it", slug)
            return await self._vercel.get_project(slug, team_id=account_id)

    async def _wait_until_ready(self, project_id: str, account_id: str | None) -> None:
        """Poll the project until its git link is visible, bounded."""
        for attempt in range(1, settings.deploy_ready_attempts + 1):
            project = await best_effort(
                "Polling project readiness",
                lambda: self._vercel.get_project(project_id, team_id=account_id),
            )
            if project.ok and project.value and project.value.get("link"):
                return
            if attempt < settings.deploy_ready_attempts:
                await asyncio.sleep(settings.deploy_ready_interval)
        logger.warning(
            "Project %s not confirmed ready after %d checks; deploying anyway",
            project_id, settings.deploy_ready_attempts,
        )

    async def _deployment_url(
        self, deployment: dict, project_id: str, account_id: str | None, slug: str
    ) -> str:
        if deployment.get("url"):
            return _as_url(deployment["url"])
        if deployment.get("alias"):
            return _as_url(deployment["alias"][0])

        latest = await best_effort(
            "Listing deployments",
            lambda: self._vercel.list_deployments(project_id, team_id=account_id),
        )
        if latest.ok and latest.value and latest.value[0].get("url"):
            return _as_url(latest.value[0]["url"])
        return expected_url(slug)
