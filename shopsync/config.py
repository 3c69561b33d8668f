"""Application configuration using Pydantic BaseSettings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from shopsync.constants import (
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    MEDIA_SETTLE_DELAY_SECONDS,
    SCRAPE_INITIAL_RETRY_DELAY_SECONDS,
    SCRAPE_MAX_PAGES,
    SCRAPE_MAX_RETRIES,
    SCRAPE_PAGE_DELAY_SECONDS,
    SHOPIFY_API_TIMEOUT_SECONDS,
    SHOPIFY_API_VERSION,
    UPLOAD_BATCH_DELAY_MS,
    UPLOAD_BATCH_SIZE,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        # Load .env first, then .env.local (for local/test overrides)
        # Later files override earlier ones, so .env.local takes precedence
        env_file=[".env", ".env.local"],
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Destination store (Admin GraphQL API)
    # Optional at load time so scrape-only deployments start without them;
    # get_admin_client() refuses to build a client when they are missing.
    shopify_store_domain: str | None = Field(
        default=None, description="Destination store domain (e.g. my-store.myshopify.com)"
    )
    shopify_admin_api_access_token: str | None = Field(
        default=None, description="Admin API access token for the destination store"
    )
    shopify_api_version: str = Field(
        default=SHOPIFY_API_VERSION, description="Admin GraphQL API version"
    )

    # Environment
    env: Literal["local", "staging", "prod"] = Field(
        default="local", description="Current environment"
    )
    log_level: str = Field(default="INFO", description="Stdlib logging level")

    # Sentry Configuration
    sentry_dsn: str | None = Field(
        default=None, description="Sentry DSN for error tracking (optional)"
    )
    sentry_traces_sample_rate: float = Field(
        default=1.0, description="Sentry traces sample rate (0.0 to 1.0)"
    )

    # Logfire Configuration
    logfire_token: str | None = Field(
        default=None, description="Pydantic Logfire token for observability"
    )

    # ==========================================================================
    # Timeout Configuration
    # ==========================================================================
    # Defaults are sourced from shopsync/constants.py.

    scraper_timeout_seconds: float = Field(
        default=DEFAULT_HTTP_TIMEOUT_SECONDS,
        description="HTTP timeout for storefront feed requests (seconds)",
    )
    shopify_api_timeout_seconds: float = Field(
        default=SHOPIFY_API_TIMEOUT_SECONDS,
        description="Timeout for Admin API calls (seconds)",
    )

    # ==========================================================================
    # Scraping Configuration
    # ==========================================================================

    scrape_page_delay_seconds: float = Field(
        default=SCRAPE_PAGE_DELAY_SECONDS,
        ge=0,
        description="Delay between feed pages (seconds)",
    )
    scrape_max_retries: int = Field(
        default=SCRAPE_MAX_RETRIES,
        ge=1,
        description="Attempts per page before giving up on rate limiting",
    )
    scrape_initial_retry_delay_seconds: float = Field(
        default=SCRAPE_INITIAL_RETRY_DELAY_SECONDS,
        ge=0,
        description="Base delay for exponential backoff (seconds)",
    )
    scrape_max_pages: int = Field(
        default=SCRAPE_MAX_PAGES,
        ge=1,
        description="Hard ceiling on pages fetched per scrape",
    )

    # ==========================================================================
    # Upload Configuration
    # ==========================================================================

    upload_batch_size: int = Field(
        default=UPLOAD_BATCH_SIZE, ge=1, description="Products uploaded per batch"
    )
    upload_batch_delay_ms: int = Field(
        default=UPLOAD_BATCH_DELAY_MS,
        ge=0,
        description="Delay between upload batches (milliseconds)",
    )
    upload_media_settle_delay_seconds: float = Field(
        default=MEDIA_SETTLE_DELAY_SECONDS,
        ge=0,
        description="Wait after product creation before attaching images (seconds)",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
