"""Application settings loaded from environment variables.

Uses pydantic-settings for validation and type coercion. App-specific
settings use the ``ECHOCITY_`` prefix; Supabase / GCP / infrastructure
settings use their canonical environment variable names via
``validation_alias``.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(StrEnum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Central configuration for the EchoCity service.

    Environment variables are loaded from a ``.env`` file when present.
    App-specific keys are prefixed with ``ECHOCITY_``; Supabase, GCP and
    infra keys use their standard names (configured via
    ``validation_alias``).
    """

    model_config = SettingsConfigDict(
        env_prefix="ECHOCITY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # ── App ────────────────────────────────────────────────────────────
    env: Literal["development", "production"] = "development"
    cors_origins: str = "http://localhost:5173,http://localhost:8080"

    # ── Supabase (auth, rows, storage) ─────────────────────────────────
    # An empty URL selects the in-memory store (development / tests).
    supabase_url: str = Field(default="", validation_alias="SUPABASE_URL")
    supabase_anon_key: str = Field(default="", validation_alias="SUPABASE_ANON_KEY")
    storage_bucket: str = "complaint-images"
    remote_timeout: float = 10.0

    # ── GCP / Vertex AI Gemini ─────────────────────────────────────────
    gcp_project_id: str = Field(default="", validation_alias="GCP_PROJECT_ID")
    vertex_ai_model: str = Field(default="gemini-2.0-flash", validation_alias="VERTEX_AI_MODEL")
    vertex_ai_location: str = Field(default="asia-south1", validation_alias="VERTEX_AI_LOCATION")

    # ── Advisory ───────────────────────────────────────────────────────
    ai_timeout: float = 15.0
    auto_apply_confidence: float = Field(default=0.7, ge=0.0, le=1.0)
    analyze_url: str = Field(default="", validation_alias="ANALYZE_URL")

    # ── Session / role resolution ──────────────────────────────────────
    role_check_timeout: float = 3.0

    # ── Redis ──────────────────────────────────────────────────────────
    redis_url: str = Field(default="", validation_alias="REDIS_URL")
    directory_cache_ttl: int = 900  # 15 minutes

    # ── API ────────────────────────────────────────────────────────────
    api_host: str = Field(default="0.0.0.0", validation_alias="API_HOST")
    api_port: int = Field(default=8000, validation_alias="API_PORT")

    # ── Logging ────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_format: str = Field(default="json", validation_alias="LOG_FORMAT")

    # ── Derived Properties ─────────────────────────────────────────────

    @property
    def is_production(self) -> bool:
        return self.env == Environment.PRODUCTION

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


# Module-level singleton; import ``settings`` everywhere.
settings = Settings()
