"""
Known-sites store backing ``GET /sites``.

``SiteStore`` is the seam: anything with async ``list``/``add`` works.
``InMemorySiteStore`` is a best-effort, single-process cache: it is lost
on restart and not shared between workers, so callers treat it as display
data only, never as the record of which repositories exist.

Entries are keyed by repository URL (re-adding replaces), listed newest
first and bounded to ``known_sites_limit``.
"""

from __future__ import annotations

import asyncio
from typing import Protocol

from sitegen.models import SavedSite


class SiteStore(Protocol):
    async def list(self) -> list[SavedSite]: ...

    async def add(self, site: SavedSite) -> None: ...


class InMemorySiteStore:
    """Async-safe in-memory store."""

    def __init__(self, limit: int = 100) -> None:
        self._sites: list[SavedSite] = []
        self._lock = asyncio.Lock()
        self.limit = limit

    async def list(self) -> list[SavedSite]:
        async with self._lock:
            return sorted(self._sites, key=lambda s: s.created_at, reverse=True)

    async def add(self, site: SavedSite) -> None:
        async with self._lock:
            self._sites = [s for s in self._sites if s.repo_url != site.repo_url]
            self._sites.append(site)
            if len(self._sites) > self.limit:
                self._sites.sort(key=lambda s: s.created_at, reverse=True)
                del self._sites[self.limit:]

    async def clear(self) -> None:
        async with self._lock:
            self._sites.clear()
