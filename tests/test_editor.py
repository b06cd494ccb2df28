"""Tests for sitegen.editor — every collaborator is an AsyncMock."""

import json
from unittest.mock import AsyncMock

import pytest

from sitegen.deployer import DeploymentTrigger
from sitegen.editor import EditOrchestrator, fallback_plan, parse_edit_plan
from sitegen.errors import PublishError, ValidationError
from sitegen.github_client import GitHubClient
from sitegen.llm_client import LLMClient
from sitegen.models import GeneratedFile
from sitegen.outcome import Outcome
from sitegen.publisher import RepositoryPublisher

REPO_URL = "https://github.com/acme/site"
SOURCES = {
    "index.html": "<h1>Acme</h1>",
    "styles.css": "h1 { font-size: 2rem; }",
    "components/Header.jsx": "export default () => <header />;",
}
TREE = [
    {"path": "index.html", "type": "blob"},
    {"path": "styles.css", "type": "blob"},
    {"path": "logo.png", "type": "blob"},
    {"path": "components", "type": "tree"},
    {"path": "components/Header.jsx", "type": "blob"},
]


def _orchestrator(*llm_replies):
    llm = AsyncMock(spec=LLMClient)
    llm.complete.side_effect = list(llm_replies)

    github = AsyncMock(spec=GitHubClient)
    github.get_repository.return_value = {
        "id": 42,
        "default_branch": "main",
        "html_url": REPO_URL,
        "full_name": "acme/site",
    }
    github.get_branch.return_value = {"commit": {"sha": "head"}}
    github.get_tree.return_value = TREE
    github.get_file_content.side_effect = lambda owner, repo, path: SOURCES.get(path)

    publisher = AsyncMock(spec=RepositoryPublisher)
    publisher.publish_atomic.return_value = "newsha"

    deployer = AsyncMock(spec=DeploymentTrigger)
    deployer.redeploy.return_value = Outcome(ok=True, value="https://site.vercel.app")

    orchestrator = EditOrchestrator(llm, github, publisher, deployer)
    return orchestrator, llm, github, publisher, deployer


async def _events(orchestrator, prompt="Make the heading bigger"):
    return [event async for event in orchestrator.apply_edit(REPO_URL, prompt)]


def _plan(*paths):
    return json.dumps(
        {"filesToModify": [{"path": p, "reason": "r", "changes": "bigger"} for p in paths]}
    )


# ── plan helpers ───────────────────────────────────────────────
def test_fallback_prefers_component_directories():
    plan = fallback_plan("x", list(SOURCES))
    assert [m.path for m in plan.files_to_modify] == ["components/Header.jsx"]


def test_fallback_then_markup_then_everything():
    assert [m.path for m in fallback_plan("x", ["a.css", "b.html"]).files_to_modify] == ["b.html"]
    assert [m.path for m in fallback_plan("x", ["a.css", "b.js"]).files_to_modify] == ["a.css", "b.js"]


def test_fallback_is_capped():
    paths = [f"pages/p{i}.html" for i in range(10)]
    assert len(fallback_plan("x", paths).files_to_modify) == 5


@pytest.mark.parametrize("reply", ["not json", '{"filesToModify": []}', '{"filesToModify": "index.html"}'])
def test_unusable_plan_falls_back(reply):
    plan = parse_edit_plan(reply, "bigger logo", ["index.html", "styles.css"])
    assert [m.path for m in plan.files_to_modify] == ["index.html"]
    assert plan.files_to_modify[0].changes == "bigger logo"


# ── apply_edit ─────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_successful_edit_commits_once_and_redeploys():
    orchestrator, llm, github, publisher, deployer = _orchestrator(
        _plan("index.html"), "```html\n<h1 class='big'>Acme</h1>\n```"
    )

    events = await _events(orchestrator)

    assert events[-1] == {
        "success": True,
        "message": "Website edited and redeployed successfully",
        "commitSha": "newsha",
    }
    percentages = [e["percentage"] for e in events if "percentage" in e]
    assert percentages == sorted(percentages)
    assert percentages[0] == 10 and percentages[-1] == 100

    publisher.publish_atomic.assert_awaited_once_with(
        "acme",
        "site",
        branch="main",
        files=[GeneratedFile(name="index.html", content="<h1 class='big'>Acme</h1>")],
        message="AI Edit: Make the heading bigger",
    )
    identity, hint = deployer.redeploy.await_args.args
    assert identity.latest_commit_sha == "newsha"
    assert identity.repo_id == 42
    assert hint == "site"
    # the binary asset is never read
    fetched = [c.args[2] for c in github.get_file_content.await_args_list]
    assert "logo.png" not in fetched


@pytest.mark.asyncio
async def test_unparseable_analysis_uses_fallback_plan():
    orchestrator, llm, _, publisher, _ = _orchestrator("I would change the header.", "<header>Big</header>")

    events = await _events(orchestrator)

    assert events[-1]["success"] is True
    files = publisher.publish_atomic.await_args.kwargs["files"]
    assert [f.name for f in files] == ["components/Header.jsx"]
    assert llm.complete.await_count == 2


@pytest.mark.asyncio
async def test_created_files_are_included():
    reply = json.dumps(
        {"filesToCreate": [{"path": "/faq/index.html", "reason": "new page", "content": "<h1>FAQ</h1>"}]}
    )
    orchestrator, _, _, publisher, _ = _orchestrator(reply)

    events = await _events(orchestrator, "Add an FAQ page")

    assert events[-1]["success"] is True
    files = publisher.publish_atomic.await_args.kwargs["files"]
    assert files == [GeneratedFile(name="faq/index.html", content="<h1>FAQ</h1>")]


@pytest.mark.asyncio
async def test_no_changes_is_terminal_failure_without_commit():
    orchestrator, _, _, publisher, deployer = _orchestrator(_plan("missing.html"))

    events = await _events(orchestrator)

    assert events[-1]["success"] is False
    assert events[-1]["code"] == "NO_CHANGES"
    publisher.publish_atomic.assert_not_awaited()
    deployer.redeploy.assert_not_awaited()


@pytest.mark.asyncio
async def test_ref_update_failure_is_reported():
    orchestrator, _, _, publisher, deployer = _orchestrator(_plan("index.html"), "<h1>Big</h1>")
    publisher.publish_atomic.side_effect = PublishError(
        "GitHub returned 409 for refs", stage="update_ref", status=409
    )

    events = await _events(orchestrator)

    assert events[-1] == {
        "success": False,
        "error": "GitHub returned 409 for refs",
        "code": "PUBLISH_FAILED",
    }
    deployer.redeploy.assert_not_awaited()


@pytest.mark.asyncio
async def test_redeploy_failure_still_succeeds():
    orchestrator, _, _, _, deployer = _orchestrator(_plan("index.html"), "<h1>Big</h1>")
    deployer.redeploy.return_value = Outcome(ok=False, error="VERCEL_TOKEN not configured")

    events = await _events(orchestrator)

    assert events[-1]["success"] is True
    assert "deployment will follow" in events[-1]["message"]


@pytest.mark.asyncio
async def test_unexpected_error_becomes_edit_error():
    orchestrator, _, github, _, _ = _orchestrator()
    github.get_tree.side_effect = RuntimeError("socket closed")

    events = await _events(orchestrator)

    assert events[-1]["code"] == "EDIT_ERROR"
    assert events[-1]["success"] is False


@pytest.mark.asyncio
@pytest.mark.parametrize("url, prompt", [("not a url", "x"), (REPO_URL, "   ")])
async def test_bad_input_raises_before_any_event(url, prompt):
    orchestrator, *_ = _orchestrator()

    with pytest.raises(ValidationError):
        await orchestrator.apply_edit(url, prompt).__anext__()
