"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

DEFAULT_CATALOG_URL = (
    "https://docs.google.com/spreadsheets/d/e/"
    "2PACX-1vQ57HSiS9fzVpSA6rEhhWJNMhgsxJce-wq0_qBSXx3AYdngzJGUlqszgqgfjdyt3gBYApXZewmhWudc"  # noqa: E501
    "/pub?gid=0&single=true&output=csv"
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    leaderboard_table: str = "leaderboard_users"
    openai_api_key: str
    openai_models: str = "gpt-5.2,gpt-4.1-mini"
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.5-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    catalog_url: str = DEFAULT_CATALOG_URL
    catalog_ttl_seconds: int = 300
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_model_list(raw: str | None) -> list[str]:
    """Parse a comma-separated model fallback list, preserving order."""
    if raw is None:
        return []
    models: list[str] = []
    for chunk in raw.split(","):
        value = chunk.strip()
        if value and value not in models:
            models.append(value)
    return models
