"""
Async GitHub REST API client.

Features:
- httpx.AsyncClient with configurable timeouts.
- Retries with exponential backoff on 5xx / network errors (idempotent
  calls only; repository creation is never retried).
- Proper 403/429 rate-limit handling (reads X-RateLimit-Reset header).
- Status mapping: 401/403 → AuthenticationError, 404 → NotFoundError,
  422 → UnprocessableError (NameConflictError for repository creation).
- Git data primitives (blob / tree / commit / ref) for atomic commits.
"""

from __future__ import annotations

import asyncio
import base64
import datetime as _dt
import logging
from typing import Any

import httpx

from sitegen.errors import AuthenticationError, NameConflictError, PublishError
from sitegen.settings import settings

logger = logging.getLogger("sitegen.github_client")


# ── Custom exceptions ──────────────────────────────────────────
class GitHubError(PublishError):
    """Base for GitHub-related errors."""


class NotFoundError(GitHubError):
    """404 — resource absent (also used for existence checks)."""


class UnprocessableError(GitHubError):
    """422 — validation failed upstream."""


class RateLimitError(GitHubError):
    """403/429 — rate limit exceeded."""

    def __init__(self, message: str, reset_timestamp: int | None = None):
        super().__init__(message, status=429)
        self.reset_timestamp = reset_timestamp


class UpstreamError(GitHubError):
    """5xx or network failure after retries."""


# ── Helpers ─────────────────────────────────────────────────────
def _rate_limit_reset(response: httpx.Response) -> int | None:
    """Extract X-RateLimit-Reset header (unix timestamp) if present."""
    val = response.headers.get("x-ratelimit-reset")
    if val:
        try:
            return int(val)
        except ValueError:
            pass
    return None


def _check_rate_limit(response: httpx.Response) -> None:
    """Raise RateLimitError if response indicates rate limiting."""
    if response.status_code in (403, 429):
        remaining = response.headers.get("x-ratelimit-remaining")
        # GitHub returns 403 with remaining=0 when rate-limited
        if response.status_code == 429 or remaining == "0":
            reset_ts = _rate_limit_reset(response)
            hint = " Try again later."
            if reset_ts:
                reset_dt = _dt.datetime.fromtimestamp(reset_ts, tz=_dt.timezone.utc)
                hint = f" Try again after {reset_dt:%Y-%m-%d %H:%M:%S} UTC."
            raise RateLimitError(
                f"GitHub rate limit hit.{hint}", reset_timestamp=reset_ts
            )


def _upstream_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        return str(body.get("message", ""))[:200]
    return ""


# ── Client ──────────────────────────────────────────────────────
class GitHubClient:
    """Async GitHub REST API wrapper."""

    def __init__(
        self, client: httpx.AsyncClient | None = None, token: str | None = None
    ) -> None:
        token = token or settings.github_token
        headers: dict[str, str] = {
            "Accept": "application/vnd.github+json",
            "User-Agent": "sitegen/1.0",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"

        if client is not None:
            client.headers.update(headers)
        self._client = client or httpx.AsyncClient(
            base_url=settings.github_api_base,
            headers=headers,
            timeout=httpx.Timeout(
                connect=settings.http_connect_timeout,
                read=settings.http_read_timeout,
                write=settings.http_read_timeout,
                pool=settings.http_read_timeout,
            ),
        )

    # ── Low-level request with retries ─────────────────────────
    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, str] | None = None,
        retry: bool = True,
    ) -> httpx.Response:
        """Fire an HTTP request with retry + backoff on transient failures."""
        attempts = settings.http_max_retries if retry else 1
        last_exc: Exception | None = None

        for attempt in range(1, attempts + 1):
            try:
                resp = await self._client.request(
                    method, path, json=json, params=params
                )
            except httpx.HTTPError as exc:  # network errors
                last_exc = exc
                logger.warning(
                    "GitHub %s %s failed (attempt %d/%d): %s",
                    method, path, attempt, attempts, exc,
                )
                if attempt < attempts:
                    await self._backoff(attempt)
                continue

            if resp.status_code >= 500:
                last_exc = UpstreamError(
                    f"GitHub returned {resp.status_code} for {path}",
                    status=resp.status_code,
                )
                if attempt < attempts:
                    await self._backoff(attempt)
                continue

            self._raise_for_status(resp, path)
            return resp

        raise UpstreamError(
            f"GitHub request failed after {attempts} attempt(s): {method} {path}",
            details=str(last_exc),
        ) from last_exc

    @staticmethod
    def _raise_for_status(resp: httpx.Response, path: str) -> None:
        if resp.status_code < 400:
            return

        _check_rate_limit(resp)
        message = _upstream_message(resp)
        details = {"status": resp.status_code, "message": message}

        if resp.status_code in (401, 403):
            raise AuthenticationError(
                "GitHub authentication failed", details=details, status=resp.status_code
            )
        if resp.status_code == 404:
            raise NotFoundError(
                f"GitHub resource not found: {path}", details=details, status=404
            )
        if resp.status_code == 422:
            raise UnprocessableError(
                f"GitHub rejected the request for {path}: {message}",
                details=details,
                status=422,
            )
        raise GitHubError(
            f"GitHub returned {resp.status_code} for {path}",
            details=details,
            status=resp.status_code,
        )

    @staticmethod
    async def _backoff(attempt: int) -> None:
        wait = settings.http_backoff_base * (2 ** (attempt - 1))
        await asyncio.sleep(wait)

    # ── Identity & repositories ────────────────────────────────
    async def get_authenticated_user(self) -> dict:
        resp = await self._request("GET", "/user")
        return resp.json()

    async def create_repository(
        self, name: str, description: str, *, private: bool
    ) -> dict:
        """Create a repository for the authenticated user (never auto-initialised)."""
        try:
            resp = await self._request(
                "POST",
                "/user/repos",
                json={
                    "name": name,
                    "description": description,
                    "private": private,
                    "auto_init": False,
                },
                retry=False,
            )
        except UnprocessableError as exc:
            raise NameConflictError(
                f'Repository name conflict for "{name}". '
                "Please retry with a different name.",
                details=exc.details,
                status=422,
            ) from exc
        return resp.json()

    async def get_repository(self, owner: str, repo: str) -> dict:
        resp = await self._request("GET", f"/repos/{owner}/{repo}")
        return resp.json()

    # ── Contents ───────────────────────────────────────────────
    async def put_file(
        self, owner: str, repo: str, path: str, content: str, message: str
    ) -> dict:
        """Create or update one file; produces one commit."""
        encoded = base64.b64encode(content.encode("utf-8")).decode("ascii")
        resp = await self._request(
            "PUT",
            f"/repos/{owner}/{repo}/contents/{path}",
            json={"message": message, "content": encoded},
        )
        return resp.json()

    async def get_file_content(self, owner: str, repo: str, path: str) -> str | None:
        """Fetch and decode a single file. Returns None on 404 or non-file paths."""
        try:
            resp = await self._request("GET", f"/repos/{owner}/{repo}/contents/{path}")
        except NotFoundError:
            return None

        data = resp.json()
        if not isinstance(data, dict) or data.get("encoding") != "base64":
            return None
        return base64.b64decode(data.get("content", "")).decode(
            "utf-8", errors="replace"
        )

    # ── Branches, commits, trees ───────────────────────────────
    async def get_branch(self, owner: str, repo: str, branch: str) -> dict:
        resp = await self._request("GET", f"/repos/{owner}/{repo}/branches/{branch}")
        return resp.json()

    async def get_commit(self, owner: str, repo: str, ref: str) -> dict:
        resp = await self._request("GET", f"/repos/{owner}/{repo}/commits/{ref}")
        return resp.json()

    async def get_tree(
        self, owner: str, repo: str, tree_sha: str, *, recursive: bool = True
    ) -> list[dict]:
        params = {"recursive": "1"} if recursive else None
        resp = await self._request(
            "GET", f"/repos/{owner}/{repo}/git/trees/{tree_sha}", params=params
        )
        data = resp.json()
        if data.get("truncated"):
            logger.warning("Tree for %s/%s was truncated by GitHub", owner, repo)
        return data.get("tree", [])

    async def create_blob(self, owner: str, repo: str, content: str) -> str:
        resp = await self._request(
            "POST",
            f"/repos/{owner}/{repo}/git/blobs",
            json={"content": content, "encoding": "utf-8"},
        )
        return resp.json()["sha"]

    async def create_tree(
        self, owner: str, repo: str, base_tree: str, entries: list[dict]
    ) -> str:
        resp = await self._request(
            "POST",
            f"/repos/{owner}/{repo}/git/trees",
            json={"base_tree": base_tree, "tree": entries},
        )
        return resp.json()["sha"]

    async def create_commit(
        self, owner: str, repo: str, message: str, tree: str, parents: list[str]
    ) -> str:
        resp = await self._request(
            "POST",
            f"/repos/{owner}/{repo}/git/commits",
            json={"message": message, "tree": tree, "parents": parents},
        )
        return resp.json()["sha"]

    async def update_ref(self, owner: str, repo: str, branch: str, sha: str) -> None:
        await self._request(
            "PATCH",
            f"/repos/{owner}/{repo}/git/refs/heads/{branch}",
            json={"sha": sha},
        )

    async def aclose(self) -> None:
        await self._client.aclose()
