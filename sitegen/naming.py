"""
Slugs, repository names and page routes.

Routes are derived from the intake page list by position: the first page
is always ``/``, later pages get ``/<slug-of-title>``. A route maps to
``index.html`` (for ``/``) or ``<route>/index.html``.
"""

from __future__ import annotations

import re
import time

from sitegen.models import PageSpec

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")

GITHUB_REPO_NAME_MAX = 100


def slugify(text: str, max_length: int | None = None) -> str:
    """Lowercase, collapse every non-alphanumeric run to a hyphen, trim."""
    slug = _NON_ALNUM_RE.sub("-", text.lower()).strip("-")
    if max_length is not None:
        slug = slug[:max_length].rstrip("-")
    return slug


def repo_name_for(company_name: str, now_ms: int | None = None) -> str:
    """``<slug>-website-<epoch ms>``; the suffix makes retries after a conflict unique."""
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = f"-website-{stamp}"
    base = slugify(company_name, GITHUB_REPO_NAME_MAX - len(suffix)) or "site"
    return base + suffix


def page_routes(pages: list[PageSpec]) -> list[tuple[str, PageSpec]]:
    """Pair each intake page with a unique route, preserving input order."""
    routes: list[tuple[str, PageSpec]] = []
    seen: set[str] = set()
    for idx, page in enumerate(pages):
        if idx == 0:
            route = "/"
        else:
            route = "/" + (slugify(page.title) or f"page-{idx + 1}")
            candidate, n = route, 2
            while candidate in seen:
                candidate = f"{route}-{n}"
                n += 1
            route = candidate
        seen.add(route)
        routes.append((route, page))
    return routes


def nav_label(route: str, title: str) -> str:
    return "Home" if route == "/" else title


def file_for_route(route: str) -> str:
    path = route.strip("/")
    return f"{path}/index.html" if path else "index.html"
