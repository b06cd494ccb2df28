"""
Pydantic models for the pipeline's data and wire payloads.

Wire payloads use camelCase (``companyName``, ``repoUrl``); Python code
uses snake_case attribute names. Both are accepted on input.

  Generate request:  IntakeRecord + optional {"strategy", "templateId"}
  Generate response: {"success", "repoUrl", "vercelUrl", "projectUrl",
                      "message", "autoDeployed", "needsManualImport"}
  Edit request:      {"repoUrl", "editPrompt", "companyName"}
  Job status:        {"id", "status", "progress", "message", "result"? | "error"?}
  Error:             {"error", "details"?, "code"?, "stage"?}
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from sitegen.errors import ValidationError


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ── Intake ─────────────────────────────────────────────────────
class PageSpec(CamelModel):
    title: str = ""
    information: str = ""


_REQUIRED_SITEWIDE = (
    "company_name",
    "industry",
    "address",
    "city",
    "phone_number",
    "email",
    "company_type",
    "colors",
    "brand_themes",
)


class IntakeRecord(CamelModel):
    """Business intake form. Read-only once validated."""

    company_name: str = ""
    industry: str = ""
    address: str = ""
    city: str = ""
    phone_number: str = ""
    email: str = ""
    company_type: str = ""
    colors: str = ""
    brand_themes: str = ""
    extra_detailed_info: str = ""
    pages: list[PageSpec] = Field(default_factory=list)
    contact_form: bool = False
    booking_form: bool = False

    @property
    def full_address(self) -> str:
        return f"{self.address}, {self.city}"

    def validate_required(self) -> None:
        """Raise ``ValidationError`` unless every required field is non-blank."""
        missing = [
            to_camel(name)
            for name in _REQUIRED_SITEWIDE
            if not str(getattr(self, name)).strip()
        ]
        if missing:
            raise ValidationError(
                "Missing required fields in General Information",
                details={"missing": missing},
            )
        if not self.pages:
            raise ValidationError("At least one page is required")
        for page in self.pages:
            if not page.title.strip() or not page.information.strip():
                label = page.title.strip() or "Untitled"
                raise ValidationError(
                    f'Page "{label}" is missing required information'
                )


class GenerateWebsiteRequest(IntakeRecord):
    strategy: Literal["templated", "freeform"] = "templated"
    template_id: str = "service-business"

    def intake(self) -> IntakeRecord:
        return IntakeRecord.model_validate(
            self.model_dump(exclude={"strategy", "template_id"})
        )


# ── Plans ──────────────────────────────────────────────────────
class ContentPlan(CamelModel):
    """Design brief. ``raw_plan`` alone is set when the model reply was not JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    design_approach: Any = None
    color_palette: Any = None
    typography: Any = None
    page_features: Any = None
    navigation: Any = None
    responsive_strategy: Any = None
    interactive_elements: Any = None
    raw_plan: str | None = None

    @property
    def degraded(self) -> bool:
        return self.raw_plan is not None

    def as_context(self) -> str:
        """Render the plan for embedding in follow-up prompts."""
        if self.degraded:
            return self.raw_plan or ""
        return json.dumps(self.to_wire(), indent=2)


class ColorPalette(BaseModel):
    primary: str
    secondary: str
    accent: str


class NavLink(BaseModel):
    label: str
    route: str


class Meta(BaseModel):
    title: str = ""
    description: str = ""
    keywords: str = ""


class Navbar(CamelModel):
    logo_text: str = ""
    links: list[NavLink] = Field(default_factory=list)


class Hero(CamelModel):
    title: str = ""
    subtitle: str = ""
    cta_text: str = "Get Started"
    cta_link: str = "#contact"


class Section(BaseModel):
    type: str
    content: Any = None


class SitePage(BaseModel):
    route: str
    title: str
    sections: list[Section] = Field(default_factory=list)


class FooterContact(BaseModel):
    phone: str = ""
    email: str = ""
    address: str = ""


class Footer(CamelModel):
    company_name: str = ""
    description: str = ""
    contact: FooterContact = Field(default_factory=FooterContact)
    links: list[NavLink] = Field(default_factory=list)


class SiteContent(BaseModel):
    meta: Meta
    navbar: Navbar
    hero: Hero
    pages: list[SitePage]
    footer: Footer


class ImageAsset(BaseModel):
    url: str
    alt: str = ""
    photographer: str | None = None
    photographer_url: str | None = None
    source: Literal["pexels", "unsplash"]

    @property
    def attribution(self) -> str:
        site = "Pexels" if self.source == "pexels" else "Unsplash"
        return f"Photo by {self.photographer or 'unknown'} on {site}"


# ── Artifacts & identities ─────────────────────────────────────
class GeneratedFile(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    content: str


class RepoIdentity(CamelModel):
    repo_url: str
    repo_full_name: str
    repo_owner: str
    repo_id: int
    default_branch: str = "main"
    # Holds the branch name when the head commit could not be resolved
    latest_commit_sha: str

    @property
    def repo_name(self) -> str:
        return self.repo_full_name.split("/", 1)[-1]

    @property
    def has_commit_sha(self) -> bool:
        return self.latest_commit_sha != self.default_branch


class DeploymentResult(CamelModel):
    """Outcome of a deployment attempt. ``url`` is None when nothing was deployed."""

    url: str | None = None
    project_url: str
    expected_url: str | None = None
    error: str | None = None

    @property
    def deployed(self) -> bool:
        return self.url is not None


# ── Edits ──────────────────────────────────────────────────────
class EditWebsiteRequest(CamelModel):
    repo_url: str = ""
    edit_prompt: str = ""
    company_name: str | None = None


class FileModification(BaseModel):
    path: str
    reason: str = ""
    changes: str = ""


class FileCreation(BaseModel):
    path: str
    reason: str = ""
    content: str = ""


class EditPlan(CamelModel):
    files_to_modify: list[FileModification] = Field(default_factory=list)
    files_to_create: list[FileCreation] = Field(default_factory=list)


class ProgressEvent(BaseModel):
    message: str
    percentage: float = Field(ge=0, le=100)


class EditSucceeded(CamelModel):
    success: Literal[True] = True
    message: str
    commit_sha: str


class EditFailed(BaseModel):
    success: Literal[False] = False
    error: str
    code: str


# ── Results & responses ────────────────────────────────────────
class GenerationResult(CamelModel):
    success: bool = True
    repo_url: str
    vercel_url: str | None
    project_url: str
    message: str
    auto_deployed: bool
    needs_manual_import: bool
    expected_url: str | None = None
    deployment_error: str | None = None

    def to_wire(self) -> dict[str, Any]:
        # vercelUrl is always present, null when not deployed
        body = super().to_wire()
        body["vercelUrl"] = self.vercel_url
        return body


JobStatus = Literal["queued", "processing", "completed", "failed"]


class GenerationJob(CamelModel):
    """A background generation run, polled through its status URL."""

    id: str
    company_name: str
    status: JobStatus = "queued"
    progress: float = Field(default=0, ge=0, le=100)
    message: str = "Job created, waiting to start..."
    created_at: datetime
    updated_at: datetime
    result: GenerationResult | None = None
    error: str | None = None
    code: str | None = None
    stage: str | None = None
    details: Any = None

    @property
    def finished(self) -> bool:
        return self.status in ("completed", "failed")

    def to_wire(self) -> dict[str, Any]:
        body = super().to_wire()
        if self.result is not None:
            body["result"] = self.result.to_wire()
        return body


class SavedSite(CamelModel):
    id: str
    company_name: str
    repo_url: str
    vercel_url: str | None = None
    project_url: str | None = None
    created_at: datetime
    industry: str | None = None
    status: Literal["success", "failed"] = "success"
    error: str | None = None


class ErrorResponse(BaseModel):
    error: str
    details: Any = None
    code: str | None = None
    stage: str | None = None
