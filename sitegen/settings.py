"""
Centralised application settings loaded from environment variables.
Uses pydantic-settings so every value can be overridden via env vars or a .env file.
"""

from pydantic_settings import BaseSettings

from sitegen.errors import ConfigurationError


class Settings(BaseSettings):
    """Application configuration."""

    # ── Generative model (OpenAI-compatible endpoint) ──────
    llm_api_key: str = ""
    llm_model: str = "gemini-2.5-pro"
    llm_fast_model: str = "gemini-2.5-flash"
    llm_base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    llm_max_tokens: int = 16_000
    llm_temperature: float = 0.7
    llm_timeout: float = 180.0
    llm_max_retries: int = 2

    # ── GitHub ──────────────────────────────────────────────
    github_token: str | None = None
    github_api_base: str = "https://api.github.com"
    github_private_repos: bool = False
    github_default_branch: str = "main"

    # ── Vercel ──────────────────────────────────────────────
    vercel_token: str | None = None
    vercel_api_base: str = "https://api.vercel.com"
    vercel_platform_domain: str = "vercel.app"
    vercel_dashboard_url: str = "https://vercel.com/dashboard"
    project_name_max_length: int = 52
    deploy_ready_attempts: int = 5
    deploy_ready_interval: float = 1.0

    # ── Stock imagery ───────────────────────────────────────
    pexels_api_key: str | None = None
    unsplash_access_key: str | None = None
    image_fetch_timeout: float = 3.0

    # ── HTTP client ─────────────────────────────────────────
    http_connect_timeout: float = 5.0
    http_read_timeout: float = 30.0
    http_max_retries: int = 3
    http_backoff_base: float = 0.5

    # ── Generation / edit limits ────────────────────────────
    generation_concurrency: int = 1
    edit_max_files: int = 50
    edit_fallback_max_files: int = 5
    blob_upload_concurrency: int = 4
    known_sites_limit: int = 100
    job_ttl_seconds: float = 3600.0
    job_limit: int = 200

    # ── Server ──────────────────────────────────────────────
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "info"

    model_config = {"env_prefix": "", "env_file": ".env", "env_file_encoding": "utf-8"}


# Singleton used across the app
settings = Settings()


def require_credentials(*names: str) -> None:
    """Raise ``ConfigurationError`` listing every unset credential in *names*."""
    missing = [name.upper() for name in names if not getattr(settings, name)]
    if missing:
        raise ConfigurationError(
            f"Service is not configured: missing {', '.join(missing)}.",
            details={"missing": missing},
        )
