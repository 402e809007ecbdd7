"""
Configuration Management for Ledger Sync

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All tunable thresholds live here.
Every default matches the documented engine behavior, so an empty
environment gives the reference configuration.
"""

from enum import Enum
from functools import lru_cache
from urllib.parse import urlparse

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DotSeparatorMode(str, Enum):
    """
    How a token containing only '.' separators is read.

    STRICT_DECIMAL keeps the dot as a decimal point ("1.000" -> 1.0).
    THOUSANDS_HEURISTIC reads "1.000" / "12.345.678" as grouped integers.
    """
    STRICT_DECIMAL = "strict_decimal"
    THOUSANDS_HEURISTIC = "thousands_heuristic"


class BankSyncSettings(BaseSettings):
    """Bank aggregator API and sync cycle configuration."""

    model_config = SettingsConfigDict(
        env_prefix="BANK_SYNC_",
        extra="ignore"
    )

    base_url: str = Field(
        default="https://api.enablebanking.com",
        description="Aggregator API base URL"
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Per-request transport timeout"
    )
    cooldown_seconds: int = Field(
        default=3600,
        ge=0,
        description="Minimum time between automatic sync cycles"
    )

    # Rate limiting (HTTP 429)
    rate_limit_base_delay_seconds: float = Field(
        default=1.5,
        ge=0,
        description="First backoff delay after a 429, doubled on each retry"
    )
    rate_limit_max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="How many times a rate-limited request is retried"
    )

    # Signed assertion
    assertion_ttl_seconds: int = Field(
        default=3600,
        ge=60,
        description="Lifetime of the signed JWT assertion"
    )

    # Reconciliation
    reconciliation_tolerance: float = Field(
        default=0.01,
        ge=0,
        description="Balance differences at or below this are ignored"
    )
    balance_value_max_depth: int = Field(
        default=4,
        ge=1,
        le=10,
        description="How deep nested balance amount objects are walked"
    )

    # Transactions
    max_transaction_pages: int = Field(
        default=10,
        ge=1,
        description="Upper bound on continuation pages per account"
    )

    # New authorizations
    authorization_valid_days: int = Field(
        default=90,
        ge=1,
        le=180,
        description="Requested consent validity for new bank authorizations"
    )

    @property
    def audience(self) -> str:
        """Host the signed assertion is addressed to."""
        return urlparse(self.base_url).hostname or self.base_url


class IngestionSettings(BaseSettings):
    """Text ingestion and retention configuration."""

    model_config = SettingsConfigDict(
        env_prefix="INGESTION_",
        extra="ignore"
    )

    retention_days: int = Field(
        default=30,
        ge=1,
        description="Reviewed transactions older than this are purged"
    )
    ignored_hash_ttl_days: int = Field(
        default=90,
        ge=1,
        description="Ignored hashes older than this are pruned (bank history window)"
    )
    dot_separator_mode: DotSeparatorMode = Field(
        default=DotSeparatorMode.STRICT_DECIMAL,
        description="How amounts containing only '.' are read"
    )


class ValidationSettings(BaseSettings):
    """Thresholds for non-blocking validation warnings."""

    model_config = SettingsConfigDict(
        env_prefix="VALIDATION_",
        extra="ignore"
    )

    high_amount_threshold: float = Field(
        default=1000.0,
        ge=0,
        description="Amounts above this get a high-value warning"
    )
    generic_category_amount_threshold: float = Field(
        default=50.0,
        ge=0,
        description="Generic categories above this amount get a warning"
    )
    generic_categories: str = Field(
        default="Altro,Da Categorizzare,Other,Uncategorized",
        description="Comma-separated list of catch-all category names"
    )
    min_description_length: int = Field(
        default=3,
        ge=0,
        description="Descriptions shorter than this get a warning"
    )
    internal_transfer_keywords: str = Field(
        default="giroconto,trasferimento,transfer,bonifico interno",
        description="Comma-separated words suggesting an internal transfer"
    )

    @property
    def generic_categories_list(self) -> list[str]:
        """Get generic categories as a lowercase list."""
        return [c.strip().lower() for c in self.generic_categories.split(",") if c.strip()]

    @property
    def internal_transfer_keywords_list(self) -> list[str]:
        """Get internal transfer keywords as a lowercase list."""
        return [
            k.strip().lower()
            for k in self.internal_transfer_keywords.split(",")
            if k.strip()
        ]


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level for structlog's stdlib backend"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def bank_sync(self) -> BankSyncSettings:
        return BankSyncSettings()

    @property
    def ingestion(self) -> IngestionSettings:
        return IngestionSettings()

    @property
    def validation(self) -> ValidationSettings:
        return ValidationSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()
