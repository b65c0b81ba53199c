"""Pulse — Central Configuration via Pydantic Settings."""

import os
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # ── Meta API (ads cache sync) ──
    meta_access_token: str = ""
    meta_api_version: str = "v21.0"
    meta_base_url: str = "https://graph.facebook.com"

    # ── Database ──
    database_url: str = ""

    # ── Attribution ──
    attribution_config_path: Optional[str] = None  # JSON file; built-in map if unset

    # ── App ──
    log_level: str = "INFO"
    max_parallel_reads: int = 8
    scheduler_enabled: bool = True
    ads_sync_hour: int = 3  # Daily ads cache refresh at 3 AM

    @property
    def effective_database_url(self) -> str:
        """Return PostgreSQL URL if set, otherwise fall back to SQLite."""
        if self.database_url:
            # Heroku-style URLs use postgres://, SQLAlchemy 2.x wants postgresql://
            return self.database_url.replace("postgres://", "postgresql://", 1)
        if os.environ.get("VERCEL"):
            return "sqlite:////tmp/pulse.db"
        return "sqlite:///./pulse.db"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
