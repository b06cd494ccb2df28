"""
Error taxonomy shared by every pipeline stage.

Each error carries the wire ``code`` and HTTP ``status_code`` the API layer
uses to build ``{"error", "details", "code"}`` bodies, plus optional
``details`` (upstream status / message fragment) and the ``stage`` that
failed. Only ``sitegen.main`` turns these into responses.
"""

from __future__ import annotations

from typing import Any


class SiteGenError(Exception):
    """Base for all pipeline errors."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        details: Any = None,
        stage: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details
        self.stage = stage

    def wire_details(self) -> Any:
        return self.details


class ValidationError(SiteGenError, ValueError):
    """Malformed caller input (missing fields, bad repository URL)."""

    code = "VALIDATION_ERROR"
    status_code = 400


class ConfigurationError(SiteGenError):
    """A required credential is not configured."""

    code = "SERVICE_UNAVAILABLE"
    status_code = 503


class GenerationError(SiteGenError):
    """The generative collaborator failed or refused."""

    code = "GENERATION_FAILED"
    status_code = 502


class PublishError(SiteGenError):
    """Source-host failure. ``repo_url`` is set when a repository already exists."""

    code = "PUBLISH_FAILED"
    status_code = 502

    def __init__(
        self,
        message: str,
        *,
        details: Any = None,
        stage: str | None = None,
        status: int | None = None,
        repo_url: str | None = None,
    ) -> None:
        super().__init__(message, details=details, stage=stage)
        self.status = status
        self.repo_url = repo_url

    def wire_details(self) -> Any:
        if self.repo_url:
            # The repository exists; surface it so the operator can finish by hand
            return {"repoUrl": self.repo_url, "upstream": self.details}
        return self.details


class NameConflictError(PublishError):
    """422 from repository creation: the name is taken."""

    code = "NAME_CONFLICT"
    status_code = 409


class AuthenticationError(PublishError):
    """401/403 from the source host."""

    code = "GITHUB_AUTH_FAILED"
    status_code = 502


class DeploymentError(SiteGenError):
    """Hosting failure. Always downgraded to a partial result by callers."""

    code = "DEPLOYMENT_FAILED"
    status_code = 502
