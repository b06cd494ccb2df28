"""Tests for sitegen.github_client — all HTTP calls mocked via respx."""

import base64
import json

import httpx
import pytest
import respx

from sitegen.errors import AuthenticationError, NameConflictError
from sitegen.github_client import (
    GitHubClient,
    NotFoundError,
    RateLimitError,
    UpstreamError,
)

API = "https://api.github.com"


# ── Repositories ───────────────────────────────────────────────
@pytest.mark.asyncio
@respx.mock
async def test_create_repository_sends_no_auto_init():
    route = respx.post(f"{API}/user/repos").mock(
        return_value=httpx.Response(
            201, json={"id": 7, "full_name": "acme/site", "html_url": "https://github.com/acme/site"}
        )
    )

    async with httpx.AsyncClient(base_url=API) as hc:
        gc = GitHubClient(client=hc, token="t0k")
        data = await gc.create_repository("site", "Website", private=False)

    assert data["id"] == 7
    sent = json.loads(route.calls.last.request.content)
    assert sent == {"name": "site", "description": "Website", "private": False, "auto_init": False}
    assert route.calls.last.request.headers["authorization"] == "Bearer t0k"


@pytest.mark.asyncio
@respx.mock
async def test_create_repository_conflict_is_not_retried():
    route = respx.post(f"{API}/user/repos").mock(
        return_value=httpx.Response(422, json={"message": "name already exists on this account"})
    )

    async with httpx.AsyncClient(base_url=API) as hc:
        gc = GitHubClient(client=hc)
        with pytest.raises(NameConflictError) as exc_info:
            await gc.create_repository("site", "Website", private=False)

    assert route.call_count == 1
    assert "retry" in exc_info.value.message
    assert exc_info.value.status_code == 409


@pytest.mark.asyncio
@respx.mock
async def test_missing_repository_is_not_found():
    respx.get(f"{API}/repos/acme/missing").mock(
        return_value=httpx.Response(404, json={"message": "Not Found"})
    )

    async with httpx.AsyncClient(base_url=API) as hc:
        gc = GitHubClient(client=hc)
        with pytest.raises(NotFoundError):
            await gc.get_repository("acme", "missing")


@pytest.mark.asyncio
@respx.mock
async def test_bad_credentials_raise_authentication_error():
    respx.get(f"{API}/user").mock(
        return_value=httpx.Response(401, json={"message": "Bad credentials"})
    )

    async with httpx.AsyncClient(base_url=API) as hc:
        gc = GitHubClient(client=hc)
        with pytest.raises(AuthenticationError) as exc_info:
            await gc.get_authenticated_user()

    assert exc_info.value.details == {"status": 401, "message": "Bad credentials"}


# ── Rate limit ─────────────────────────────────────────────────
@pytest.mark.asyncio
@respx.mock
async def test_rate_limited_403():
    respx.get(f"{API}/repos/acme/site").mock(
        return_value=httpx.Response(
            403,
            json={"message": "API rate limit exceeded"},
            headers={
                "x-ratelimit-remaining": "0",
                "x-ratelimit-reset": "1700000000",
            },
        )
    )

    async with httpx.AsyncClient(base_url=API) as hc:
        gc = GitHubClient(client=hc)
        with pytest.raises(RateLimitError) as exc_info:
            await gc.get_repository("acme", "site")

    assert exc_info.value.reset_timestamp == 1700000000
    assert "2023-11-14" in exc_info.value.message


# ── Retries ────────────────────────────────────────────────────
@pytest.mark.asyncio
@respx.mock
async def test_server_errors_are_retried_then_succeed():
    route = respx.get(f"{API}/repos/acme/site/branches/main").mock(
        side_effect=[
            httpx.Response(502),
            httpx.ConnectError("boom"),
            httpx.Response(200, json={"commit": {"sha": "abc"}}),
        ]
    )

    async with httpx.AsyncClient(base_url=API) as hc:
        gc = GitHubClient(client=hc)
        branch = await gc.get_branch("acme", "site", "main")

    assert branch["commit"]["sha"] == "abc"
    assert route.call_count == 3


@pytest.mark.asyncio
@respx.mock
async def test_server_errors_exhaust_retries():
    route = respx.get(f"{API}/user").mock(return_value=httpx.Response(503))

    async with httpx.AsyncClient(base_url=API) as hc:
        gc = GitHubClient(client=hc)
        with pytest.raises(UpstreamError):
            await gc.get_authenticated_user()

    assert route.call_count == 3


# ── Contents ───────────────────────────────────────────────────
@pytest.mark.asyncio
@respx.mock
async def test_put_file_base64_encodes_content():
    route = respx.put(f"{API}/repos/acme/site/contents/services/index.html").mock(
        return_value=httpx.Response(201, json={"commit": {"sha": "c1"}})
    )

    async with httpx.AsyncClient(base_url=API) as hc:
        gc = GitHubClient(client=hc)
        await gc.put_file("acme", "site", "services/index.html", "<p>é</p>", "Add services/index.html")

    sent = json.loads(route.calls.last.request.content)
    assert sent["message"] == "Add services/index.html"
    assert base64.b64decode(sent["content"]).decode("utf-8") == "<p>é</p>"


@pytest.mark.asyncio
@respx.mock
async def test_get_file_content_decodes_and_handles_404():
    encoded = base64.b64encode(b"body { color: red; }").decode("ascii")
    respx.get(f"{API}/repos/acme/site/contents/styles.css").mock(
        return_value=httpx.Response(200, json={"encoding": "base64", "content": encoded})
    )
    respx.get(f"{API}/repos/acme/site/contents/gone.css").mock(
        return_value=httpx.Response(404, json={"message": "Not Found"})
    )
    respx.get(f"{API}/repos/acme/site/contents/assets").mock(
        return_value=httpx.Response(200, json=[{"path": "assets/a.png"}])
    )

    async with httpx.AsyncClient(base_url=API) as hc:
        gc = GitHubClient(client=hc)
        assert await gc.get_file_content("acme", "site", "styles.css") == "body { color: red; }"
        assert await gc.get_file_content("acme", "site", "gone.css") is None
        assert await gc.get_file_content("acme", "site", "assets") is None


# ── Git data ───────────────────────────────────────────────────
@pytest.mark.asyncio
@respx.mock
async def test_tree_is_fetched_recursively():
    route = respx.route(
        method="GET", host="api.github.com", path="/repos/acme/site/git/trees/t1"
    ).mock(
        return_value=httpx.Response(
            200,
            json={
                "sha": "t1",
                "tree": [
                    {"path": "index.html", "type": "blob"},
                    {"path": "components", "type": "tree"},
                ],
                "truncated": False,
            },
        )
    )

    async with httpx.AsyncClient(base_url=API) as hc:
        gc = GitHubClient(client=hc)
        items = await gc.get_tree("acme", "site", "t1")

    assert [item["path"] for item in items] == ["index.html", "components"]
    assert route.calls.last.request.url.params["recursive"] == "1"


@pytest.mark.asyncio
@respx.mock
async def test_atomic_commit_primitives():
    respx.post(f"{API}/repos/acme/site/git/blobs").mock(
        return_value=httpx.Response(201, json={"sha": "b1"})
    )
    tree_route = respx.post(f"{API}/repos/acme/site/git/trees").mock(
        return_value=httpx.Response(201, json={"sha": "t2"})
    )
    commit_route = respx.post(f"{API}/repos/acme/site/git/commits").mock(
        return_value=httpx.Response(201, json={"sha": "c2"})
    )
    ref_route = respx.patch(f"{API}/repos/acme/site/git/refs/heads/main").mock(
        return_value=httpx.Response(200, json={"object": {"sha": "c2"}})
    )

    async with httpx.AsyncClient(base_url=API) as hc:
        gc = GitHubClient(client=hc)
        blob = await gc.create_blob("acme", "site", "<p>x</p>")
        entries = [{"path": "index.html", "mode": "100644", "type": "blob", "sha": blob}]
        tree = await gc.create_tree("acme", "site", "t1", entries)
        commit = await gc.create_commit("acme", "site", "AI Edit: x", tree, ["c1"])
        await gc.update_ref("acme", "site", "main", commit)

    assert json.loads(tree_route.calls.last.request.content)["base_tree"] == "t1"
    assert json.loads(commit_route.calls.last.request.content)["parents"] == ["c1"]
    assert json.loads(ref_route.calls.last.request.content) == {"sha": "c2"}


@pytest.mark.asyncio
@respx.mock
async def test_update_ref_on_missing_branch():
    respx.patch(f"{API}/repos/acme/site/git/refs/heads/main").mock(
        return_value=httpx.Response(404, json={"message": "Reference does not exist"})
    )

    async with httpx.AsyncClient(base_url=API) as hc:
        gc = GitHubClient(client=hc)
        with pytest.raises(NotFoundError):
            await gc.update_ref("acme", "site", "main", "c2")
