"""Shared fixtures: isolated settings and a canonical intake record."""

import pytest

from sitegen.models import IntakeRecord
from sitegen.settings import settings

ACME = {
    "companyName": "Acme Corp",
    "industry": "Consulting",
    "address": "1 Main St",
    "city": "Springfield",
    "phoneNumber": "555-0100",
    "email": "a@acme.test",
    "companyType": "Professional Services",
    "colors": "navy and gold",
    "brandThemes": "trust, clarity",
    "pages": [
        {"title": "Home", "information": "landing page"},
        {"title": "Services", "information": "list of services"},
    ],
}


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    """No credentials, no sleeping, no image lookups unless a test opts in."""
    monkeypatch.setattr(settings, "llm_api_key", "")
    monkeypatch.setattr(settings, "github_token", None)
    monkeypatch.setattr(settings, "vercel_token", None)
    monkeypatch.setattr(settings, "pexels_api_key", None)
    monkeypatch.setattr(settings, "unsplash_access_key", None)
    monkeypatch.setattr(settings, "http_backoff_base", 0)
    monkeypatch.setattr(settings, "deploy_ready_interval", 0)
    monkeypatch.setattr(settings, "generation_concurrency", 1)


@pytest.fixture
def configured(monkeypatch):
    monkeypatch.setattr(settings, "llm_api_key", "test-llm-key")
    monkeypatch.setattr(settings, "github_token", "test-gh-token")
    monkeypatch.setattr(settings, "vercel_token", "test-vercel-token")


@pytest.fixture
def acme() -> IntakeRecord:
    return IntakeRecord.model_validate(ACME)


@pytest.fixture
def acme_payload() -> dict:
    return {**ACME, "pages": [dict(p) for p in ACME["pages"]]}
