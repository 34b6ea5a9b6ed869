"""Application Configuration: environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - Secrets are read only by the transport; adapters and the loop never see them
    - get_settings() is cached (lru_cache): single instance per process
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Loop
    agent_max_iterations: int = 200
    default_max_tokens: int = 4096

    # Provider endpoints (adapters emit paths; the transport owns the host)
    anthropic_base_url: str = "https://api.anthropic.com"
    anthropic_version: str = "2023-06-01"
    openai_base_url: str = "https://api.openai.com"
    ollama_base_url: str = "http://localhost:11434"
    gemini_base_url: str = "https://generativelanguage.googleapis.com"

    # Credentials
    anthropic_api_key: str | None = None
    openai_api_key: str | None = None
    gemini_api_key: str | None = None

    # Transport
    transport_timeout_seconds: int = 300
    transport_connect_timeout_seconds: int = 30

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @field_validator(
        "anthropic_base_url", "openai_base_url", "ollama_base_url",
        "gemini_base_url", mode="before",
    )
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Adapters emit absolute paths; a trailing slash would double up."""
        if isinstance(v, str):
            return v.rstrip("/")
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
