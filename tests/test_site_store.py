"""Tests for sitegen.site_store."""

from datetime import datetime, timedelta, timezone

import pytest

from sitegen.models import SavedSite
from sitegen.site_store import InMemorySiteStore

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _site(n: int, **overrides) -> SavedSite:
    fields = dict(
        id=f"site-{n}",
        company_name=f"Company {n}",
        repo_url=f"https://github.com/acme/site-{n}",
        created_at=T0 + timedelta(minutes=n),
    )
    fields.update(overrides)
    return SavedSite(**fields)


@pytest.mark.asyncio
async def test_sites_listed_newest_first():
    store = InMemorySiteStore()
    for n in (1, 3, 2):
        await store.add(_site(n))

    assert [s.id for s in await store.list()] == ["site-3", "site-2", "site-1"]


@pytest.mark.asyncio
async def test_same_repository_replaces_entry():
    store = InMemorySiteStore()
    await store.add(_site(1))
    await store.add(_site(1, vercel_url="https://site-1.vercel.app", created_at=T0 + timedelta(hours=1)))

    sites = await store.list()
    assert len(sites) == 1
    assert sites[0].vercel_url == "https://site-1.vercel.app"


@pytest.mark.asyncio
async def test_store_is_bounded_keeping_newest():
    store = InMemorySiteStore(limit=2)
    for n in range(5):
        await store.add(_site(n))

    assert [s.id for s in await store.list()] == ["site-4", "site-3"]

    await store.clear()
    assert await store.list() == []


def test_saved_site_wire_shape():
    wire = _site(1).to_wire()
    assert wire["companyName"] == "Company 1"
    assert wire["repoUrl"] == "https://github.com/acme/site-1"
    assert wire["status"] == "success"
    assert "vercelUrl" not in wire
