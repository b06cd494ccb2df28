"""
Edit Orchestrator.

Applies a natural-language change request to an already-published site:

    PARSE_URL → FETCH_TREE → ANALYZE → REGENERATE (per file)
              → ASSEMBLE_COMMIT → UPDATE_REF → TRIGGER_REDEPLOY → DONE

``apply_edit`` is an async generator of wire events. Progress events are
``{"message", "percentage"}``; the last event is always either
``{"success": true, "message", "commitSha"}`` or
``{"success": false, "error", "code"}``. Only a malformed repository URL
or an empty prompt raises, and it does so before any event is produced.
The ref update runs inside ``RepositoryPublisher.publish_atomic``, which
tags its own failure with stage ``update_ref``.
"""

from __future__ import annotations

import enum
import logging
import posixpath
from typing import Any, AsyncIterator

from pydantic import ValidationError as PydanticValidationError

from sitegen.deployer import DeploymentTrigger
from sitegen.errors import GenerationError, SiteGenError, ValidationError
from sitegen.github_client import GitHubClient
from sitegen.llm_client import LLMClient
from sitegen.models import (
    EditFailed,
    EditPlan,
    EditSucceeded,
    FileModification,
    GeneratedFile,
    ProgressEvent,
    RepoIdentity,
)
from sitegen.publisher import RepositoryPublisher
from sitegen.settings import settings
from sitegen.structured_output import extract_json, strip_code_fences
from sitegen.url_parser import parse_repo_url

logger = logging.getLogger("sitegen.editor")

SOURCE_EXTENSIONS = (".html", ".htm", ".css", ".js", ".jsx", ".ts", ".tsx", ".json")
MARKUP_EXTENSIONS = (".html", ".htm", ".jsx", ".tsx")
COMPONENT_DIRS = {"components", "pages", "sections"}

_ANALYZE_SYSTEM = (
    "You are a senior web developer analyzing website modification requests. "
    "Provide clear, specific instructions for what needs to change. "
    "Always return valid JSON."
)

_EDIT_SYSTEM = (
    "You are a senior web developer editing one file of an existing website. "
    "Make precise changes while keeping the file valid. Never remove shared "
    "layout (navigation, footer, stylesheet and script includes, imports) or "
    "functionality unrelated to the request. Return only the complete file."
)


class EditStage(str, enum.Enum):
    PARSE_URL = "parse_url"
    FETCH_TREE = "fetch_tree"
    ANALYZE = "analyze"
    REGENERATE = "regenerate"
    ASSEMBLE_COMMIT = "assemble_commit"
    TRIGGER_REDEPLOY = "trigger_redeploy"


class NoChangesError(GenerationError):
    code = "NO_CHANGES"


def _progress(message: str, percentage: float) -> dict[str, Any]:
    return ProgressEvent(message=message, percentage=percentage).model_dump()


# ── Plan helpers ────────────────────────────────────────────────
def build_analysis_prompt(edit_prompt: str, paths: list[str]) -> str:
    listing = "\n".join(f"- {p}" for p in paths) or "- (no source files found)"
    return f"""\
You are analyzing a website that needs to be edited based on user instructions.

User's Edit Request: "{edit_prompt}"

Current Website Files:
{listing}

Determine which files must be modified, what must change in each, and
whether new files are needed. Only include files that actually need changes.

Return a JSON object:
{{
  "filesToModify": [{{"path": "index.html", "reason": "...", "changes": "..."}}],
  "filesToCreate": [{{"path": "new/index.html", "reason": "...", "content": "full file content"}}]
}}"""


def build_regenerate_prompt(edit_prompt: str, mod: FileModification, original: str) -> str:
    return f"""\
Edit the file `{mod.path}`.

User's Request: "{edit_prompt}"
Specific Changes Needed: {mod.changes or mod.reason or edit_prompt}

Original File Content:
```
{original}
```

Requirements:
1. Keep the existing structure, shared navigation/footer and every include or import
2. Only modify what the request needs
3. Do not break existing functionality

Return ONLY the complete modified file content."""


def fallback_plan(edit_prompt: str, paths: list[str]) -> EditPlan:
    """Deterministic subset used when the analysis reply is unusable."""
    candidates = [
        p for p in paths if COMPONENT_DIRS.intersection(posixpath.dirname(p).split("/"))
    ]
    if not candidates:
        candidates = [p for p in paths if p.lower().endswith(MARKUP_EXTENSIONS)]
    if not candidates:
        candidates = list(paths)

    return EditPlan(
        files_to_modify=[
            FileModification(path=p, reason=edit_prompt, changes=edit_prompt)
            for p in candidates[: settings.edit_fallback_max_files]
        ]
    )


def parse_edit_plan(text: str, edit_prompt: str, paths: list[str]) -> EditPlan:
    data = extract_json(text)
    if data is not None:
        try:
            plan = EditPlan.model_validate(data)
        except PydanticValidationError as exc:
            logger.warning("Edit plan had an unexpected shape: %s", exc)
        else:
            if plan.files_to_modify or plan.files_to_create:
                return plan
            logger.warning("Edit plan listed no files; using fallback plan")
            return fallback_plan(edit_prompt, paths)

    logger.warning("Edit plan was not valid JSON; using fallback plan")
    return fallback_plan(edit_prompt, paths)


# ── Orchestrator ────────────────────────────────────────────────
class EditOrchestrator:
    def __init__(
        self,
        llm: LLMClient,
        github: GitHubClient,
        publisher: RepositoryPublisher,
        deployer: DeploymentTrigger,
    ) -> None:
        self._llm = llm
        self._github = github
        self._publisher = publisher
        self._deployer = deployer

    async def apply_edit(
        self, repo_url: str, edit_prompt: str
    ) -> AsyncIterator[dict[str, Any]]:
        owner, repo = parse_repo_url(repo_url)
        if not edit_prompt or not edit_prompt.strip():
            raise ValidationError("Edit prompt must not be empty.")

        stage = EditStage.PARSE_URL
        log_extra = {"repo": f"{owner}/{repo}"}
        try:
            yield _progress("Analyzing changes...", 10)

            stage = EditStage.FETCH_TREE
            yield _progress("Fetching current website files...", 20)
            repo_data = await self._github.get_repository(owner, repo)
            branch = repo_data.get("default_branch") or settings.github_default_branch
            sources = await self._fetch_sources(owner, repo, branch)
            logger.info("Fetched %d source file(s)", len(sources), extra=log_extra)

            stage = EditStage.ANALYZE
            yield _progress("Analyzing files with AI...", 40)
            reply = await self._llm.complete(
                _ANALYZE_SYSTEM, build_analysis_prompt(edit_prompt, list(sources))
            )
            plan = parse_edit_plan(reply, edit_prompt, list(sources))

            stage = EditStage.REGENERATE
            yield _progress("Applying changes to files...", 60)
            changed: list[GeneratedFile] = []
            total = len(plan.files_to_modify) or 1
            for index, mod in enumerate(plan.files_to_modify):
                path = mod.path.lstrip("/")
                original = sources.get(path)
                if original is None:
                    original = await self._github.get_file_content(owner, repo, path)
                if original is None:
                    logger.warning("Skipping %s: not found in repository", path, extra=log_extra)
                    continue

                yield _progress(f"Editing {path}...", 60 + 20 * index / total)
                edited = strip_code_fences(
                    await self._llm.complete(
                        _EDIT_SYSTEM,
                        build_regenerate_prompt(edit_prompt, mod, original),
                    )
                )
                if not edited:
                    logger.warning("Empty regeneration for %s; leaving it unchanged", path)
                    continue
                changed.append(GeneratedFile(name=path, content=edited))

            for new in plan.files_to_create:
                if not new.content.strip():
                    continue
                yield _progress(f"Creating {new.path}...", 80)
                changed.append(
                    GeneratedFile(
                        name=new.path.lstrip("/"), content=strip_code_fences(new.content)
                    )
                )

            if not changed:
                raise NoChangesError(
                    "No files were changed by this edit request. Try describing the change in more detail."
                )

            stage = EditStage.ASSEMBLE_COMMIT
            yield _progress("Committing changes to GitHub...", 90)
            commit_sha = await self._publisher.publish_atomic(
                owner,
                repo,
                branch=branch,
                files=changed,
                message=f"AI Edit: {edit_prompt[:72]}",
            )

            stage = EditStage.TRIGGER_REDEPLOY
            yield _progress("Triggering Vercel redeployment...", 95)
            identity = RepoIdentity(
                repo_url=repo_data.get("html_url") or repo_url,
                repo_full_name=repo_data.get("full_name") or f"{owner}/{repo}",
                repo_owner=owner,
                repo_id=repo_data["id"],
                default_branch=branch,
                latest_commit_sha=commit_sha,
            )
            redeploy = await self._deployer.redeploy(identity, repo)
            if redeploy.ok:
                message = "Website edited and redeployed successfully"
            else:
                message = "Website edited successfully; deployment will follow from the repository push"

            yield _progress("Edit complete!", 100)
            logger.info("Edit committed as %s", commit_sha, extra=log_extra)
            yield EditSucceeded(message=message, commit_sha=commit_sha).to_wire()

        except SiteGenError as exc:
            exc.stage = exc.stage or stage.value
            logger.warning(
                "Edit failed at %s: %s", exc.stage, exc, extra={**log_extra, "stage": exc.stage}
            )
            yield EditFailed(error=exc.message, code=exc.code).model_dump()
        except Exception:
            logger.exception("Unexpected error editing %s/%s at %s", owner, repo, stage.value)
            yield EditFailed(
                error="An unexpected error occurred while editing the website. Please try again.",
                code="EDIT_ERROR",
            ).model_dump()

    async def _fetch_sources(self, owner: str, repo: str, branch: str) -> dict[str, str]:
        """Path → decoded content for up to ``edit_max_files`` source files."""
        head = await self._github.get_branch(owner, repo, branch)
        tree = await self._github.get_tree(owner, repo, head["commit"]["sha"])

        paths = [
            item["path"]
            for item in tree
            if item.get("type") == "blob"
            and item.get("path", "").lower().endswith(SOURCE_EXTENSIONS)
        ]
        if len(paths) > settings.edit_max_files:
            logger.warning(
                "Repository has %d source files; only the first %d are considered",
                len(paths), settings.edit_max_files,
            )

        sources: dict[str, str] = {}
        for path in paths[: settings.edit_max_files]:
            try:
                content = await self._github.get_file_content(owner, repo, path)
            except SiteGenError as exc:
                logger.warning("Could not fetch %s: %s", path, exc)
                continue
            if content is not None:
                sources[path] = content
        return sources
