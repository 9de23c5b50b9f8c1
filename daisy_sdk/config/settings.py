"""Pydantic BaseSettings — SDK defaults, overridable from env / .env file."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration loaded from env / .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ── Application ─────────────────────────────────────────────
    APP_ENV: Literal["dev", "prod"] = "dev"
    LOG_LEVEL: str = "INFO"

    # ── Network / API ───────────────────────────────────────────
    DAISY_BASE_URL: str = "https://sdk.daisypayments.com/api/v1"
    HTTP_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0)

    # ── Signing ─────────────────────────────────────────────────
    # Default lifetime of a signed agreement (10 minutes).
    SIGNATURE_TTL_SECONDS: int = Field(default=600, gt=0)

    # ── Transaction watcher ─────────────────────────────────────
    TX_POLL_INTERVAL_SECONDS: float = Field(default=3.0, gt=0)


settings = Settings()
