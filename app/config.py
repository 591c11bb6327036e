"""ADPILOT — Central Configuration via Pydantic Settings."""

import os
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # ── Google Ads API ──
    google_ads_client_id: str = ""
    google_ads_client_secret: str = ""
    google_ads_developer_token: str = ""
    google_ads_api_version: str = "v17"
    google_ads_base_url: str = "https://googleads.googleapis.com"
    google_oauth_token_url: str = "https://oauth2.googleapis.com/token"

    # ── Database ──
    database_url: str = ""

    # ── AI Providers ──
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o"
    anthropic_api_key: Optional[str] = None
    anthropic_model: str = "claude-sonnet-4-20250514"
    perplexity_api_key: Optional[str] = None
    perplexity_model: str = "sonar"
    perplexity_base_url: str = "https://api.perplexity.ai"
    sarvam_api_key: Optional[str] = None
    sarvam_model: str = "sarvam-m"
    consensus_provider: str = "openai"  # openai | anthropic | perplexity | sarvam
    provider_timeout_seconds: float = 60.0
    consensus_join_timeout_seconds: float = 90.0

    # ── App ──
    log_level: str = "INFO"
    scheduler_enabled: bool = True
    sync_hour: int = 1  # Daily sync at 1 AM local
    sync_minute: int = 0
    scheduler_timezone: str = "Asia/Kolkata"

    # ── Sync & Recommendations ──
    sync_window_days: int = 7
    recommendation_retention_days: int = 7
    burn_in_hours: int = 72
    account_currency: str = "INR"

    @property
    def effective_database_url(self) -> str:
        """Return PostgreSQL URL if set, otherwise fall back to SQLite."""
        if self.database_url:
            return self.database_url
        # Vercel has a read-only filesystem; use /tmp for SQLite
        if os.environ.get("VERCEL"):
            return "sqlite:////tmp/adpilot.db"
        return "sqlite:///./adpilot.db"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
