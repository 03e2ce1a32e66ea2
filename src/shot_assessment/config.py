"""Application configuration."""

import os
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    openai_api_key: str
    openai_model: str = "gpt-4o"
    openai_max_output_tokens: int = 60
    openai_temperature: float = 0.4
    openai_image_detail: str = "low"
    openai_store: bool = False
    vision_timeout_seconds: float = 30.0
    relay_timeout_seconds: float = 35.0
    assessment_deadline_seconds: float | None = None
    angle_reset_threshold: float = 30.0
    feedback_word_limit: int = 40
    acceptance_policy: Literal["progressive", "keyword"] = "progressive"
    session_backend: Literal["memory", "supabase"] = "memory"
    session_ttl_seconds: int | None = None
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    transport: Literal["direct", "relay"] = "direct"
    cors_allow_origins: str = "*"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_cors_origins(raw: str) -> list[str]:
    """Parse a comma separated list of allowed CORS origins."""
    cleaned = raw.strip()
    if cleaned in {"", "*"}:
        return ["*"]
    return [chunk.strip() for chunk in cleaned.split(",") if chunk.strip()]
