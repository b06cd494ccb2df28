"""
Async Vercel REST API client.

Every call is team-scoped with a ``teamId`` query parameter when one is
known. Non-2xx responses carry ``{"error": {"code", "message"}}``; they,
network failures and undecodable bodies all surface as ``VercelAPIError``
with the platform's ``code`` so callers can special-case
``project_already_exists``.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from sitegen.errors import DeploymentError
from sitegen.settings import settings

logger = logging.getLogger("sitegen.vercel_client")

PROJECT_ALREADY_EXISTS = "project_already_exists"


class VercelAPIError(DeploymentError):
    """Non-2xx or transport failure talking to Vercel."""

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status: int | None = None,
    ) -> None:
        super().__init__(message, details={"code": code, "status": status})
        self.vercel_code = code
        self.status = status


class VercelClient:
    """Thin async wrapper over the endpoints the deployment trigger uses."""

    def __init__(
        self, client: httpx.AsyncClient | None = None, token: str | None = None
    ) -> None:
        token = token or settings.vercel_token
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        if client is not None:
            client.headers.update(headers)
        self._client = client or httpx.AsyncClient(
            base_url=settings.vercel_api_base,
            headers=headers,
            timeout=httpx.Timeout(
                connect=settings.http_connect_timeout,
                read=settings.http_read_timeout,
                write=settings.http_read_timeout,
                pool=settings.http_read_timeout,
            ),
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        team_id: str | None = None,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        query = dict(params or {})
        if team_id:
            query["teamId"] = team_id

        try:
            resp = await self._client.request(
                method, path, json=json, params=query or None
            )
        except httpx.HTTPError as exc:
            raise VercelAPIError(f"Vercel {method} {path} failed: {exc}") from exc

        try:
            body = resp.json() if resp.content else {}
        except ValueError:
            body = None

        if resp.status_code >= 400:
            error = body.get("error", {}) if isinstance(body, dict) else {}
            code = error.get("code")
            message = error.get("message") or f"HTTP {resp.status_code}"
            logger.warning(
                "Vercel %s %s returned %d (%s)", method, path, resp.status_code, code
            )
            raise VercelAPIError(
                f"Vercel {method} {path} failed: {message}",
                code=code,
                status=resp.status_code,
            )
        if not isinstance(body, dict):
            logger.warning("Vercel %s %s returned a non-object body", method, path)
            raise VercelAPIError(
                f"Vercel {method} {path} returned an unreadable response",
                status=resp.status_code,
            )
        return body

    # ── Accounts ───────────────────────────────────────────────
    async def list_teams(self) -> list[dict]:
        body = await self._request("GET", "/v2/teams")
        return body.get("teams") or []

    async def get_user(self) -> dict:
        body = await self._request("GET", "/v2/user")
        return body.get("user") or {}

    # ── Projects ───────────────────────────────────────────────
    async def create_project(
        self, name: str, *, team_id: str | None = None, repo: str | None = None
    ) -> dict:
        """Create a static project (no framework, no build/install/dev commands)."""
        payload: dict[str, Any] = {
            "name": name,
            "framework": None,
            "buildCommand": None,
            "installCommand": None,
            "devCommand": None,
            "publicSource": False,
        }
        if repo:
            payload["gitRepository"] = {"type": "github", "repo": repo}
        return await self._request("POST", "/v9/projects", team_id=team_id, json=payload)

    async def get_project(self, name_or_id: str, *, team_id: str | None = None) -> dict:
        return await self._request("GET", f"/v9/projects/{name_or_id}", team_id=team_id)

    async def link_repository(
        self, repo_id: int, project_id: str, *, team_id: str | None = None
    ) -> dict:
        return await self._request(
            "POST",
            f"/v1/integrations/github/repo/{repo_id}",
            team_id=team_id,
            json={"projectId": project_id},
        )

    # ── Deployments ────────────────────────────────────────────
    async def create_deployment(
        self,
        name: str,
        project_id: str,
        *,
        repo_id: int,
        ref: str,
        sha: str | None = None,
        team_id: str | None = None,
    ) -> dict:
        git_source: dict[str, Any] = {"type": "github", "repoId": repo_id, "ref": ref}
        if sha:
            git_source["sha"] = sha
        return await self._request(
            "POST",
            "/v13/deployments",
            team_id=team_id,
            json={
                "name": name,
                "project": project_id,
                "gitSource": git_source,
                "target": "production",
            },
        )

    async def list_deployments(
        self, project_id: str, *, team_id: str | None = None, limit: int = 1
    ) -> list[dict]:
        """Most recent deployments of *project_id*, newest first."""
        body = await self._request(
            "GET",
            "/v6/deployments",
            team_id=team_id,
            params={"projectId": project_id, "limit": limit},
        )
        return body.get("deployments") or []

    async def aclose(self) -> None:
        await self._client.aclose()
