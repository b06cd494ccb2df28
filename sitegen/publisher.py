"""
Repository Publisher.

Two deliberately different write paths:

- ``publish_initial``: create a fresh repository and upload each file with
  its own contents call (one commit per file, list order).
- ``publish_atomic``: write a batch of changes to an existing branch as a
  single commit (blob → tree → commit → ref update).
"""

from __future__ import annotations

import asyncio
import logging

from sitegen.errors import PublishError
from sitegen.github_client import GitHubClient
from sitegen.models import GeneratedFile, IntakeRecord, RepoIdentity
from sitegen.outcome import best_effort
from sitegen.settings import require_credentials, settings

logger = logging.getLogger("sitegen.publisher")


class RepositoryPublisher:
    def __init__(self, github: GitHubClient) -> None:
        self._github = github

    async def publish_initial(
        self, name: str, files: list[GeneratedFile], intake: IntakeRecord
    ) -> RepoIdentity:
        """Create repository *name* and upload *files* in order."""
        require_credentials("github_token")

        user = await self._github.get_authenticated_user()
        owner = user["login"]

        repo = await self._github.create_repository(
            name,
            f"Website for {intake.company_name} - {intake.industry}",
            private=settings.github_private_repos,
        )
        repo_url = repo["html_url"]
        logger.info("Created repository %s", repo["full_name"], extra={"repo": repo_url})

        for index, file in enumerate(files, 1):
            try:
                await self._github.put_file(
                    owner, name, file.name, file.content, f"Add {file.name}"
                )
            except PublishError as exc:
                raise PublishError(
                    f"Uploading {file.name} failed after {index - 1} of "
                    f"{len(files)} files: {exc.message}",
                    details=exc.details,
                    status=exc.status,
                    repo_url=repo_url,
                ) from exc

        branch = repo.get("default_branch") or settings.github_default_branch
        head = await best_effort(
            "Resolving head commit",
            lambda: self._github.get_branch(owner, name, branch),
        )
        sha = branch
        if head.ok and head.value and head.value.get("commit", {}).get("sha"):
            sha = head.value["commit"]["sha"]

        return RepoIdentity(
            repo_url=repo_url,
            repo_full_name=repo["full_name"],
            repo_owner=owner,
            repo_id=repo["id"],
            default_branch=branch,
            latest_commit_sha=sha,
        )

    async def publish_atomic(
        self,
        owner: str,
        repo: str,
        *,
        branch: str,
        files: list[GeneratedFile],
        message: str,
    ) -> str:
        """Commit *files* onto *branch* as one commit; return the new commit sha."""
        head = await self._github.get_commit(owner, repo, branch)
        parent_sha = head["sha"]
        base_tree = head["commit"]["tree"]["sha"]

        semaphore = asyncio.Semaphore(max(1, settings.blob_upload_concurrency))

        async def upload(file: GeneratedFile) -> dict:
            async with semaphore:
                sha = await self._github.create_blob(owner, repo, file.content)
            return {"path": file.name, "mode": "100644", "type": "blob", "sha": sha}

        tasks = [asyncio.ensure_future(upload(f)) for f in files]
        try:
            entries = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        tree_sha = await self._github.create_tree(owner, repo, base_tree, list(entries))
        commit_sha = await self._github.create_commit(
            owner, repo, message, tree_sha, [parent_sha]
        )
        try:
            await self._github.update_ref(owner, repo, branch, commit_sha)
        except PublishError as exc:
            exc.stage = "update_ref"
            raise
        logger.info(
            "Committed %d file(s) to %s/%s@%s", len(files), owner, repo, branch,
            extra={"stage": "update_ref"},
        )
        return commit_sha
