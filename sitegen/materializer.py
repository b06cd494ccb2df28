"""
Site Materializer: plan → ordered list of GeneratedFile.

Two strategies:

- ``TemplatedMaterializer``: deterministic token substitution into a
  registered skeleton, one HTML file per route. Every interpolated text
  value is HTML-escaped; link targets are restricted to safe schemes.
- ``FreeformMaterializer``: one model call per artifact (home page, each
  other page, stylesheet, script). Any failed or empty artifact aborts
  the whole batch.

Both emit the hosting config (``vercel.json``) and a ``metadata.json``
manifest carrying the intake record under ``formData``.
"""

from __future__ import annotations

import asyncio
import html
import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable
from urllib.parse import quote

from sitegen.errors import GenerationError
from sitegen.llm_client import LLMClient
from sitegen.models import (
    ColorPalette,
    ContentPlan,
    GeneratedFile,
    ImageAsset,
    IntakeRecord,
    NavLink,
    SiteContent,
    SitePage,
)
from sitegen.naming import file_for_route, nav_label, page_routes
from sitegen.settings import settings
from sitegen.structured_output import strip_code_fences
from sitegen.templates import CONTACT_FORM_HTML, get_template

logger = logging.getLogger("sitegen.materializer")

_TOKEN_RE = re.compile(r"\{\{([A-Z_]+)\}\}")
_SAFE_LINK_RE = re.compile(r"^(/|#|https?://|mailto:|tel:)", re.IGNORECASE)
_REMOVABLE_SECTIONS = ("features", "services", "about")

ATTRIBUTIONS_FILE = "attributions.html"

_SECURITY_HEADERS = [
    {"key": "X-Content-Type-Options", "value": "nosniff"},
    {"key": "X-Frame-Options", "value": "DENY"},
    {"key": "Referrer-Policy", "value": "strict-origin-when-cross-origin"},
]


def esc(value: Any) -> str:
    return html.escape("" if value is None else str(value), quote=True)


def safe_link(link: str, default: str = "#contact") -> str:
    link = (link or "").strip()
    return esc(link) if _SAFE_LINK_RE.match(link) else default


def render_tokens(template: str, values: dict[str, str]) -> str:
    """Replace every ``{{TOKEN}}`` in one pass; inserted values are never re-scanned."""
    return _TOKEN_RE.sub(lambda m: values.get(m.group(1), ""), template)


def remove_section(markup: str, name: str) -> str:
    pattern = rf'[ \t]*<section class="{name}">.*?</section>\s*'
    return re.sub(pattern, "", markup, count=1, flags=re.DOTALL)


def vercel_config() -> GeneratedFile:
    config = {
        "cleanUrls": True,
        "headers": [{"source": "/(.*)", "headers": _SECURITY_HEADERS}],
    }
    return GeneratedFile(name="vercel.json", content=json.dumps(config, indent=2))


def _metadata(payload: dict[str, Any]) -> GeneratedFile:
    return GeneratedFile(name="metadata.json", content=json.dumps(payload, indent=2))


# ── Templated strategy ──────────────────────────────────────────
def _find_section(page: SitePage, kind: str) -> Any:
    for section in page.sections:
        if section.type == kind and section.content:
            return section.content
    return None


def _field(content: Any, key: str, default: str = "") -> str:
    if isinstance(content, dict):
        value = content.get(key)
        return str(value) if value else default
    return default


def _cards(content: Any, css_class: str, fallback_title: str) -> str:
    items = content.get("items") if isinstance(content, dict) else None
    if not isinstance(items, list) or not items:
        items = [{"title": fallback_title, "description": _field(content, "description")}]
    cards = []
    for item in items:
        if isinstance(item, dict):
            title, description = item.get("title") or fallback_title, item.get("description", "")
        else:
            title, description = str(item), ""
        cards.append(
            f'<div class="{css_class}">\n'
            f"                    <h3>{esc(title)}</h3>\n"
            f"                    <p>{esc(description)}</p>\n"
            f"                </div>"
        )
    return "\n                ".join(cards)


def _link_items(links: list[NavLink], indent: str) -> str:
    return f"\n{indent}".join(
        f'<li><a href="{safe_link(link.route, "/")}">{esc(link.label)}</a></li>'
        for link in links
    )


def _attributions_page(images: list[ImageAsset], intake: IntakeRecord) -> str:
    entries = []
    for image in images:
        site, site_url = (
            ("Pexels", "https://www.pexels.com")
            if image.source == "pexels"
            else ("Unsplash", "https://unsplash.com")
        )
        who = esc(image.photographer or "unknown")
        if image.photographer_url and _SAFE_LINK_RE.match(image.photographer_url):
            who = f'<a href="{esc(image.photographer_url)}" rel="noopener">{who}</a>'
        entries.append(
            f'        <li>Photo by {who} on <a href="{site_url}" rel="noopener">{site}</a></li>'
        )
    body = "\n".join(entries)
    return f"""\
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Image Attributions - {esc(intake.company_name)}</title>
    <link rel="stylesheet" href="/styles.css">
</head>
<body>
    <section>
        <div class="container">
            <h2>Image Attributions</h2>
            <ul>
{body}
            </ul>
            <p><a href="/">Back to home</a></p>
        </div>
    </section>
</body>
</html>
"""


class TemplatedMaterializer:
    """Fills a registered skeleton from SiteContent. No external calls."""

    def materialize(
        self,
        content: SiteContent,
        palette: ColorPalette,
        intake: IntakeRecord,
        template_id: str,
        images: list[ImageAsset] | None = None,
        generated_at: datetime | None = None,
    ) -> list[GeneratedFile]:
        template = get_template(template_id)
        images = images or []
        generated_at = generated_at or datetime.now(timezone.utc)

        files = [
            GeneratedFile(
                name="styles.css",
                content=render_tokens(
                    template.css,
                    {
                        "PRIMARY_COLOR": palette.primary,
                        "SECONDARY_COLOR": palette.secondary,
                        "ACCENT_COLOR": palette.accent,
                    },
                ),
            ),
            GeneratedFile(name="script.js", content=template.js),
        ]

        for page in content.pages:
            files.append(
                GeneratedFile(
                    name=file_for_route(page.route),
                    content=self.render_page(
                        template.html, page, content, intake, images, generated_at.year
                    ),
                )
            )

        files.append(vercel_config())
        files.append(
            _metadata(
                {
                    "companyName": intake.company_name,
                    "industry": intake.industry,
                    "colors": palette.model_dump(),
                    "templateId": template_id,
                    "generatedAt": generated_at.isoformat(),
                    "formData": intake.to_wire(),
                    "images": [
                        {
                            "url": image.url,
                            "alt": image.alt,
                            "photographer": image.photographer,
                            "source": image.source,
                            "attribution": image.attribution,
                        }
                        for image in images
                    ],
                }
            )
        )
        if images:
            files.append(
                GeneratedFile(name=ATTRIBUTIONS_FILE, content=_attributions_page(images, intake))
            )
        return files

    def render_page(
        self,
        skeleton: str,
        page: SitePage,
        content: SiteContent,
        intake: IntakeRecord,
        images: list[ImageAsset],
        year: int,
    ) -> str:
        is_home = page.route == "/"
        values: dict[str, str] = {
            "META_TITLE": esc(
                content.meta.title if is_home else f"{page.title} - {content.meta.title}"
            ),
            "META_DESCRIPTION": esc(content.meta.description),
            "META_KEYWORDS": esc(content.meta.keywords),
            "NAVBAR_LOGO": esc(content.navbar.logo_text),
            "NAVBAR_LINKS": _link_items(content.navbar.links, " " * 16),
            "CONTACT_TITLE": "Contact Us",
            "PHONE": esc(intake.phone_number),
            "EMAIL": esc(intake.email),
            "ADDRESS": esc(intake.full_address),
            "FOOTER_COMPANY_NAME": esc(content.footer.company_name),
            "FOOTER_DESCRIPTION": esc(content.footer.description),
            "FOOTER_PHONE": esc(content.footer.contact.phone),
            "FOOTER_EMAIL": esc(content.footer.contact.email),
            "FOOTER_ADDRESS": esc(content.footer.contact.address),
            "YEAR": str(year),
            "CONTACT_FORM": CONTACT_FORM_HTML if intake.contact_form else "",
        }

        footer_links = list(content.footer.links)
        if images:
            footer_links.append(NavLink(label="Image Attributions", route=f"/{ATTRIBUTIONS_FILE}"))
        values["FOOTER_LINKS"] = _link_items(footer_links, " " * 24)

        if is_home:
            hero = content.hero
            values.update(
                HERO_TITLE=esc(hero.title),
                HERO_SUBTITLE=esc(hero.subtitle),
                HERO_CTA_TEXT=esc(hero.cta_text),
                HERO_CTA_LINK=safe_link(hero.cta_link),
            )
            if images:
                url = quote(images[0].url, safe=":/?&=%#.,-_~+@;")
                values["HERO_STYLE"] = f" style=\"background-image: url('{url}');\""
                values["HERO_OVERLAY"] = '<div class="hero-overlay"></div>\n        '
        else:
            hero_section = _find_section(page, "hero")
            values.update(
                HERO_TITLE=esc(_field(hero_section, "title", page.title)),
                HERO_SUBTITLE=esc(_field(hero_section, "subtitle", f"Welcome to {page.title}")),
                HERO_CTA_TEXT="Get Started",
                HERO_CTA_LINK="#contact",
            )

        markup = skeleton
        for kind in _REMOVABLE_SECTIONS:
            section = _find_section(page, kind)
            if section is None:
                markup = remove_section(markup, kind)
                continue
            if kind == "features":
                values["FEATURES_TITLE"] = esc(_field(section, "title", "Why Choose Us"))
                values["FEATURES_ITEMS"] = _cards(section, "feature-card", "Feature")
            elif kind == "services":
                values["SERVICES_TITLE"] = esc(_field(section, "title", "Our Services"))
                values["SERVICES_ITEMS"] = _cards(section, "service-card", "Service")
            else:
                text = section if isinstance(section, str) else _field(section, "description")
                values["ABOUT_TITLE"] = esc(_field(section, "title", "About Us"))
                values["ABOUT_CONTENT"] = f"<p>{esc(text)}</p>"

        return render_tokens(markup, values)


# ── Freeform strategy ───────────────────────────────────────────
_HTML_SYSTEM = (
    "You are a senior front-end developer. Produce complete, production-ready, "
    "semantic HTML5 documents. Return only the code."
)
_CSS_SYSTEM = "You are a senior CSS developer. Return only production-ready CSS."
_JS_SYSTEM = "You are a senior JavaScript developer. Return only modern vanilla JavaScript."


class FreeformMaterializer:
    """Generates every artifact with its own model call."""

    def __init__(self, llm: LLMClient) -> None:
        self._llm = llm

    async def materialize(
        self,
        plan: ContentPlan,
        intake: IntakeRecord,
        generated_at: datetime | None = None,
    ) -> list[GeneratedFile]:
        generated_at = generated_at or datetime.now(timezone.utc)
        routes = page_routes(intake.pages)
        context = plan.as_context()
        nav = "\n".join(
            f"- {nav_label(route, page.title)}: {route}" for route, page in routes
        )

        jobs: list[tuple[str, Callable[[], Awaitable[str]]]] = []
        for route, page in routes:
            jobs.append(
                (
                    file_for_route(route),
                    self._page_job(intake, page.title, page.information, route, nav, context),
                )
            )
        jobs.append(("styles.css", self._css_job(intake, context)))
        jobs.append(("script.js", self._js_job(intake, nav, context)))

        contents = await self._run_in_order(jobs)
        files = [GeneratedFile(name=name, content=body) for (name, _), body in zip(jobs, contents)]

        files.append(GeneratedFile(name="README.md", content=readme_for(intake, routes)))
        files.append(vercel_config())
        files.append(
            _metadata(
                {
                    "companyName": intake.company_name,
                    "industry": intake.industry,
                    "strategy": "freeform",
                    "generatedAt": generated_at.isoformat(),
                    "plan": plan.to_wire(),
                    "formData": intake.to_wire(),
                }
            )
        )
        return files

    async def _run_in_order(
        self, jobs: list[tuple[str, Callable[[], Awaitable[str]]]]
    ) -> list[str]:
        """Run jobs with bounded concurrency; results keep job order."""
        semaphore = asyncio.Semaphore(max(1, settings.generation_concurrency))

        async def bounded(name: str, job: Callable[[], Awaitable[str]]) -> str:
            async with semaphore:
                logger.info("Generating %s", name, extra={"stage": "materialize"})
                body = strip_code_fences(await job())
                if not body:
                    raise GenerationError(f"Generated {name} was empty.", stage="materialize")
                return body

        tasks = [asyncio.ensure_future(bounded(name, job)) for name, job in jobs]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    def _page_job(self, intake, title, information, route, nav, context):
        prompt = f"""\
Create the complete HTML file for the "{title}" page ({route}) of a business website.

Company: {intake.company_name}
Industry: {intake.industry}
Page description: {information}
Phone: {intake.phone_number}
Email: {intake.email}
Address: {intake.full_address}
{"Include a contact form." if intake.contact_form else ""}
{"Include a booking request form." if intake.booking_form else ""}

Design guidelines:
{context}

Requirements:
- Link to /styles.css and /script.js with absolute paths
- Navigation linking every page with these exact hrefs:
{nav}
- Mobile-responsive, accessible, SEO meta tags

Return ONLY the HTML code."""
        return lambda: self._llm.complete(_HTML_SYSTEM, prompt)

    def _css_job(self, intake, context):
        prompt = f"""\
Create the shared stylesheet for this website.

Company: {intake.company_name}
Industry: {intake.industry}
Colors: {intake.colors}
Brand themes: {intake.brand_themes}

Design guidelines:
{context}

Requirements: responsive, smooth transitions, hover effects, accessible contrast.
Return ONLY the CSS code."""
        return lambda: self._llm.complete(_CSS_SYSTEM, prompt)

    def _js_job(self, intake, nav, context):
        prompt = f"""\
Create the shared JavaScript for this website.

Pages:
{nav}

Design guidelines:
{context}

Include a mobile menu toggle, smooth scrolling{", form validation" if intake.contact_form or intake.booking_form else ""}.
If no JavaScript is needed return: // No JavaScript needed
Return ONLY the JavaScript code."""
        return lambda: self._llm.complete(_JS_SYSTEM, prompt)


def readme_for(intake: IntakeRecord, routes) -> str:
    pages = "\n".join(f"- {page.title} (`{route}`)" for route, page in routes)
    return f"""\
# {intake.company_name}

{intake.industry} website for a {intake.company_type}.

## Pages
{pages}

## Contact
- Phone: {intake.phone_number}
- Email: {intake.email}
- Address: {intake.full_address}

## Deployment
Static site; every page is an `index.html` under its route directory.
"""
