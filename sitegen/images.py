"""
Stock imagery lookup (Pexels first, then Unsplash).

Lookups are purely decorative: a missing key, a timeout, a non-2xx
response or an empty result all yield ``None`` and a warning, never an
exception.
"""

from __future__ import annotations

import logging

import httpx

from sitegen.models import ImageAsset
from sitegen.settings import settings

logger = logging.getLogger("sitegen.images")

PEXELS_SEARCH_URL = "https://api.pexels.com/v1/search"
UNSPLASH_SEARCH_URL = "https://api.unsplash.com/search/photos"


class ImageFetcher:
    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.image_fetch_timeout)
        )

    @property
    def enabled(self) -> bool:
        return bool(settings.pexels_api_key or settings.unsplash_access_key)

    async def find(self, search_term: str) -> ImageAsset | None:
        """Return the first landscape photo for *search_term*, or None."""
        if settings.pexels_api_key:
            image = await self._search(self._pexels, "Pexels", search_term)
            if image:
                return image
        if settings.unsplash_access_key:
            image = await self._search(self._unsplash, "Unsplash", search_term)
            if image:
                return image
        return None

    async def images_for(self, company_name: str, industry: str) -> list[ImageAsset]:
        """Hero and secondary imagery for a business; may be empty."""
        if not self.enabled:
            return []
        images: list[ImageAsset] = []
        for term in (f"{company_name} {industry}", f"{industry} business"):
            image = await self.find(term)
            if image and all(image.url != seen.url for seen in images):
                images.append(image)
        return images

    async def _search(self, provider, label: str, term: str) -> ImageAsset | None:
        try:
            return await provider(term)
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as exc:
            logger.warning("%s image lookup for %r failed: %s", label, term, exc)
            return None

    async def _pexels(self, term: str) -> ImageAsset | None:
        resp = await self._client.get(
            PEXELS_SEARCH_URL,
            params={"query": term, "per_page": 1, "orientation": "landscape"},
            headers={"Authorization": settings.pexels_api_key or ""},
            timeout=settings.image_fetch_timeout,
        )
        if resp.status_code != 200:
            return None
        photos = resp.json().get("photos") or []
        if not photos:
            return None
        photo = photos[0]
        src = photo.get("src") or {}
        return ImageAsset(
            url=src.get("large") or src["medium"],
            alt=f"{term} - {photo.get('photographer', '')}",
            photographer=photo.get("photographer"),
            photographer_url=photo.get("photographer_url"),
            source="pexels",
        )

    async def _unsplash(self, term: str) -> ImageAsset | None:
        resp = await self._client.get(
            UNSPLASH_SEARCH_URL,
            params={"query": term, "per_page": 1, "orientation": "landscape"},
            headers={"Authorization": f"Client-ID {settings.unsplash_access_key}"},
            timeout=settings.image_fetch_timeout,
        )
        if resp.status_code != 200:
            return None
        results = resp.json().get("results") or []
        if not results:
            return None
        photo = results[0]
        urls = photo.get("urls") or {}
        user = photo.get("user") or {}
        return ImageAsset(
            url=urls.get("regular") or urls["small"],
            alt=f"{term} - {user.get('name', '')}",
            photographer=user.get("name"),
            photographer_url=(user.get("links") or {}).get("html"),
            source="unsplash",
        )

    async def aclose(self) -> None:
        await self._client.aclose()
