"""
Content Planner.

Turns a validated intake record into the material the materializers need:

- ``create_plan``: free-form design brief (ContentPlan). A reply that is
  not a JSON object degrades to ``ContentPlan(raw_plan=<reply>)``.
- ``parse_palette``: colour description → three hex colours, falling back
  to the default palette on any failure.
- ``create_site_content``: structured SiteContent for the templated path,
  repaired so every input route has a page and navigation always mirrors
  the input page list.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from sitegen.errors import GenerationError
from sitegen.llm_client import LLMClient
from sitegen.models import (
    ColorPalette,
    ContentPlan,
    Footer,
    FooterContact,
    Hero,
    IntakeRecord,
    Meta,
    Navbar,
    NavLink,
    Section,
    SiteContent,
    SitePage,
)
from sitegen.naming import nav_label, page_routes
from sitegen.settings import settings
from sitegen.structured_output import extract_json

logger = logging.getLogger("sitegen.planner")

DEFAULT_PALETTE = ColorPalette(primary="#D32F2F", secondary="#FFC107", accent="#263238")

_HEX_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")

_PLAN_SYSTEM = (
    "You are a professional web developer and content strategist "
    "creating detailed game plans for websites."
)

_PALETTE_SYSTEM = "You are a color expert. Always return valid JSON with hex color codes."

_CONTENT_SYSTEM = (
    "You are an expert copywriter and web content strategist. Generate "
    "compelling, business-specific website content. Always return valid JSON."
)


# ── Prompt builders ─────────────────────────────────────────────
def _company_block(intake: IntakeRecord) -> str:
    lines = [
        f"- Name: {intake.company_name}",
        f"- Industry: {intake.industry}",
        f"- Company Type: {intake.company_type}",
        f"- Address: {intake.full_address}",
        f"- Phone: {intake.phone_number}",
        f"- Email: {intake.email}",
        f"- Colors: {intake.colors}",
        f"- Brand Themes: {intake.brand_themes}",
    ]
    if intake.extra_detailed_info:
        lines.append(f"- Additional Info: {intake.extra_detailed_info}")
    return "\n".join(lines)


def build_plan_prompt(intake: IntakeRecord) -> str:
    pages = "\n".join(
        f"{i}. {p.title}: {p.information}" for i, p in enumerate(intake.pages, 1)
    )
    return f"""\
Create a game plan for building a website.

Company Information:
{_company_block(intake)}

Pages to create:
{pages}

Addons:
- Contact Form: {"Yes" if intake.contact_form else "No"}
- Booking Form: {"Yes" if intake.booking_form else "No"}

Include:
1. Overall design approach and layout strategy
2. Color palette (specific hex codes based on the provided colors: {intake.colors})
3. Typography choices
4. Key features for each page
5. Navigation structure
6. Responsive design considerations
7. Any special interactive elements needed
8. How to integrate the contact and booking forms if requested

Keep it concise but comprehensive. Format as JSON with these keys: \
designApproach, colorPalette, typography, pageFeatures, navigation, \
responsiveStrategy, interactiveElements"""


def build_palette_prompt(colors: str) -> str:
    return f"""\
Convert this color description to valid CSS hex color codes.

Input: "{colors}"

Rules:
- Extract or infer 3 colors: primary, secondary, accent
- Primary is the main brand color, secondary complements it, accent is a highlight
- All colors must be 6-digit hex codes (e.g. #FF5733)
- If the input contains hex codes, use them

Return ONLY JSON: {{"primary": "#hexcode", "secondary": "#hexcode", "accent": "#hexcode"}}"""


def build_content_prompt(
    intake: IntakeRecord, palette: ColorPalette, template_id: str
) -> str:
    routes = page_routes(intake.pages)
    pages = "\n".join(f"- {p.title} ({route}): {p.information}" for route, p in routes)
    return f"""\
Generate complete website content as JSON for a professional business website.

Company Information:
{_company_block(intake)}

Pages to Create (exactly {len(routes)}, one per entry, using these routes):
{pages}

Color Scheme: primary {palette.primary}, secondary {palette.secondary}, accent {palette.accent}
Template: {template_id}
Contact form requested: {"yes" if intake.contact_form else "no"}
Booking form requested: {"yes" if intake.booking_form else "no"}

Requirements:
- Business-specific content for {intake.company_name}, no generic placeholder text
- Each page has sections of type "features", "services", "about" or "testimonials"
- features/services content: {{"title": "...", "items": [{{"title": "...", "description": "..."}}]}}
- about content: {{"title": "...", "description": "..."}}
- SEO-optimised meta tags

Return ONLY a JSON object with this structure:
{{
  "meta": {{"title": "...", "description": "...", "keywords": "..."}},
  "navbar": {{"logoText": "...", "links": [{{"label": "...", "route": "/"}}]}},
  "hero": {{"title": "...", "subtitle": "...", "ctaText": "...", "ctaLink": "#contact"}},
  "pages": [{{"route": "/", "title": "...", "sections": [{{"type": "features", "content": {{}}}}]}}],
  "footer": {{
    "companyName": "...", "description": "...",
    "contact": {{"phone": "...", "email": "...", "address": "..."}},
    "links": [{{"label": "...", "route": "/"}}]
  }}
}}"""


# ── Repair helpers ──────────────────────────────────────────────
def _section(raw: dict[str, Any], key: str, model, default):
    value = raw.get(key)
    if isinstance(value, dict):
        try:
            return model.model_validate(value)
        except PydanticValidationError as exc:
            logger.warning("Discarding malformed %s from model output: %s", key, exc)
    return default


def _normalise_route(route: Any) -> str:
    return "/" + str(route).strip().strip("/")


def fallback_page(route: str, title: str, information: str) -> SitePage:
    """Minimal page for a route the model omitted: hero + about."""
    return SitePage(
        route=route,
        title=title,
        sections=[
            Section(type="hero", content={"title": title, "subtitle": f"Welcome to {title}"}),
            Section(type="about", content={"title": title, "description": information}),
        ],
    )


def repair_site_content(raw: dict[str, Any], intake: IntakeRecord) -> SiteContent:
    """Coerce model output into a complete SiteContent for *intake*."""
    routes = page_routes(intake.pages)

    meta = _section(
        raw,
        "meta",
        Meta,
        Meta(
            title=f"{intake.company_name} - {intake.industry}",
            description=f"{intake.company_name}, {intake.company_type} in {intake.city}.",
            keywords=f"{intake.industry}, {intake.city}",
        ),
    )
    navbar = _section(raw, "navbar", Navbar, Navbar())
    hero = _section(
        raw,
        "hero",
        Hero,
        Hero(title=intake.company_name, subtitle=intake.brand_themes),
    )
    footer = _section(raw, "footer", Footer, Footer())

    generated: dict[str, SitePage] = {}
    raw_pages = raw.get("pages")
    for item in raw_pages if isinstance(raw_pages, list) else []:
        if not isinstance(item, dict) or "route" not in item:
            continue
        item = {**item, "route": _normalise_route(item["route"])}
        item.setdefault("title", "")
        try:
            page = SitePage.model_validate(item)
        except PydanticValidationError as exc:
            logger.warning("Discarding malformed page %s: %s", item["route"], exc)
            continue
        generated.setdefault(page.route, page)

    known = {route for route, _ in routes}
    extra = sorted(set(generated) - known)
    if extra:
        logger.warning("Dropping pages for unknown routes: %s", ", ".join(extra))

    pages: list[SitePage] = []
    for route, requested in routes:
        page = generated.get(route)
        if page is None:
            logger.info("Synthesising fallback page for %s", route, extra={"stage": "plan"})
            page = fallback_page(route, requested.title, requested.information)
        elif not page.title:
            page.title = requested.title
        pages.append(page)

    links = [
        NavLink(label=nav_label(route, requested.title), route=route)
        for route, requested in routes
    ]
    navbar.links = list(links)
    navbar.logo_text = navbar.logo_text or intake.company_name

    footer.links = list(links)
    footer.company_name = footer.company_name or intake.company_name
    footer.contact = FooterContact(
        phone=footer.contact.phone or intake.phone_number,
        email=footer.contact.email or intake.email,
        address=footer.contact.address or intake.full_address,
    )

    return SiteContent(meta=meta, navbar=navbar, hero=hero, pages=pages, footer=footer)


# ── Planner ─────────────────────────────────────────────────────
class ContentPlanner:
    def __init__(self, llm: LLMClient) -> None:
        self._llm = llm

    async def create_plan(self, intake: IntakeRecord) -> ContentPlan:
        """Ask for a design brief. Never raises on unparseable output."""
        intake.validate_required()

        text = await self._llm.complete(_PLAN_SYSTEM, build_plan_prompt(intake))
        data = extract_json(text)
        if data is None:
            logger.warning("Plan reply was not JSON; continuing with raw plan")
            return ContentPlan(raw_plan=text)
        try:
            return ContentPlan.model_validate(data)
        except PydanticValidationError:
            return ContentPlan(raw_plan=text)

    async def parse_palette(self, colors: str) -> ColorPalette:
        if not colors.strip():
            return DEFAULT_PALETTE
        try:
            data = await self._llm.complete_json(
                _PALETTE_SYSTEM,
                build_palette_prompt(colors),
                model=settings.llm_fast_model,
            )
        except GenerationError as exc:
            logger.warning("Palette parsing failed, using default: %s", exc)
            return DEFAULT_PALETTE

        if not data or not all(
            isinstance(data.get(k), str) and _HEX_RE.match(data[k])
            for k in ("primary", "secondary", "accent")
        ):
            logger.warning("Palette reply invalid, using default: %r", data)
            return DEFAULT_PALETTE
        return ColorPalette(
            primary=data["primary"], secondary=data["secondary"], accent=data["accent"]
        )

    async def create_site_content(
        self, intake: IntakeRecord, palette: ColorPalette, template_id: str
    ) -> SiteContent:
        intake.validate_required()

        data = await self._llm.complete_json(
            _CONTENT_SYSTEM, build_content_prompt(intake, palette, template_id)
        )
        if data is None:
            raise GenerationError("The generated site content was not valid JSON.")
        return repair_site_content(data, intake)
