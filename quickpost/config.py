"""
Application configuration via environment variables.

Uses Pydantic BaseSettings to load and validate all config from env vars
or a .env.local file. Every setting has a sensible default for local
development so the voice API and the client pipeline can start with
minimal configuration.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment selector."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class ExtractionBackend(str, Enum):
    """Which engine the voice API uses to extract job/user fields."""

    GEMINI = "gemini"
    RULES = "rules"


class Settings(BaseSettings):
    """
    Central configuration for the Quick Post voice intake pipeline.

    Values are loaded from environment variables first, falling back
    to a `.env.local` file in the project root. Secrets should NEVER
    be committed.
    """

    model_config = SettingsConfigDict(
        env_file=".env.local",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Environment ──────────────────────────────────────────────
    environment: Environment = Environment.DEVELOPMENT

    # ── Marketplace / Voice API ──────────────────────────────────
    api_base_url: str = Field(default="http://localhost:5000", description="Base URL of the marketplace API")
    http_timeout_seconds: float = Field(default=30.0, gt=0, description="Timeout for outbound HTTP calls")

    # ── Gemini ───────────────────────────────────────────────────
    gemini_api_key: str = Field(default="", description="Google Gemini API key")
    gemini_model: str = Field(default="gemini-1.5-flash", description="Model used for transcription and extraction")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Gemini REST endpoint root",
    )
    extraction_backend: ExtractionBackend = Field(
        default=ExtractionBackend.GEMINI,
        description="Extraction engine behind /api/voice/extract-*",
    )

    # ── Feature Flags ────────────────────────────────────────────
    demo_mode: bool = Field(default=False, description="Substitute flagged sample data when extraction fails")

    # ── Fuzzy Matching ───────────────────────────────────────────
    fuzzy_accept_threshold: float = Field(default=0.7, ge=0.0, le=1.0, description="Similarity above this auto-accepts")
    fuzzy_confirm_threshold: float = Field(default=0.6, ge=0.0, le=1.0, description="Similarity above this asks to confirm")

    # ── Conversation Timing ──────────────────────────────────────
    advance_delay_seconds: float = Field(default=2.0, ge=0.0, description="Pause after an acknowledgement before the next step")
    close_delay_seconds: float = Field(default=3.0, ge=0.0, description="Pause before closing after the last step")
    speech_timeout_seconds: float = Field(default=10.0, gt=0, description="Fallback if speech playback never reports an end")
    max_step_retries: int = Field(default=3, ge=1, le=10, description="Consecutive failed answers before giving up on a step")

    # ── Recording ────────────────────────────────────────────────
    recording_sample_rate: int = Field(default=16000, description="Microphone sample rate in Hz")
    recording_channels: int = Field(default=1, ge=1, le=2, description="Microphone channel count")
    max_recording_seconds: int = Field(default=120, ge=5, le=600, description="Hard limit per recording")

    # ── Quick Signup ─────────────────────────────────────────────
    quick_signup_password: str = Field(default="quickpost123", description="Temporary password for voice signups")

    # ── Reference Data ───────────────────────────────────────────
    gazetteer_path: Optional[str] = Field(default=None, description="Override for the bundled states/districts JSON")

    # ── Rate Limiting ────────────────────────────────────────────
    rate_limit_window_seconds: int = Field(default=60, ge=1, description="Sliding window length")
    rate_limit_max_requests: int = Field(default=100, ge=1, description="Requests per window per client IP")

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO", description="Root log level")

    # ── Derived helpers ──────────────────────────────────────────

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        return self.environment == Environment.DEVELOPMENT


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Return cached Settings instance.

    Using lru_cache ensures we read env vars exactly once, and every
    module that calls ``get_settings()`` gets the same object.
    """
    return Settings()
