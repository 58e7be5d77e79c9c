"""
Storefront Core
Centralized Configuration Management

This module provides configuration management using Pydantic settings with
environment variable support, validation, and type safety.
"""

from functools import lru_cache
from typing import Optional
from pydantic import Field, field_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class RedisSettings(BaseSettings):
    """Redis Persistence Configuration"""

    model_config = SettingsConfigDict(env_prefix="REDIS_")

    host: str = Field(default="localhost", description="Redis host")
    port: int = Field(default=6379, description="Redis port")
    password: Optional[SecretStr] = Field(default=None, description="Redis password")
    db: int = Field(default=0, description="Redis database number")
    max_connections: int = Field(default=20, description="Max connections")
    socket_timeout: int = Field(default=5, description="Socket timeout in seconds")
    decode_responses: bool = Field(default=True, description="Decode responses to strings")
    url: Optional[str] = Field(default=None, alias="REDIS_URL", description="Redis URL (overrides host/port)")

    def get_url(self) -> str:
        """Redis connection URL - uses REDIS_URL if set, otherwise builds from host/port"""
        if self.url:
            return self.url
        if self.password:
            return f"redis://:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"
        return f"redis://{self.host}:{self.port}/{self.db}"


class StorageSettings(BaseSettings):
    """Key-Value Persistence Configuration"""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    backend: str = Field(default="memory", description="Persistence backend: memory or redis")
    key_namespace: Optional[str] = Field(default=None, description="Prefix applied to every key")

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        """Validate backend value"""
        allowed = ["memory", "redis"]
        if v.lower() not in allowed:
            raise ValueError(f"Storage backend must be one of: {allowed}")
        return v.lower()


class CatalogSettings(BaseSettings):
    """Remote Product Catalog Configuration"""

    model_config = SettingsConfigDict(env_prefix="CATALOG_")

    base_url: str = Field(default="https://fakestoreapi.com", description="Catalog API base URL")
    timeout_seconds: float = Field(default=10.0, description="Round-trip timeout in seconds")
    currency_multiplier: int = Field(default=1000, description="Local units per source currency unit")
    page_size: int = Field(default=8, description="Default page size")


class LedgerSettings(BaseSettings):
    """Balance Ledger Configuration"""

    model_config = SettingsConfigDict(env_prefix="LEDGER_")

    default_balance: int = Field(default=500_000, description="Funding amount for a first balance read")
    reset_balances_on_startup: bool = Field(default=True, description="Reset every balance at startup")
    currency_label: str = Field(default="won", description="Currency label used in messages")


class PricingSettings(BaseSettings):
    """Per-User Pricing Configuration"""

    model_config = SettingsConfigDict(env_prefix="PRICING_")

    discount_rate: float = Field(default=0.0, description="Discount applied to derived prices")
    reset_prices_on_startup: bool = Field(default=True, description="Drop cached prices at startup")

    @field_validator("discount_rate")
    @classmethod
    def validate_discount_rate(cls, v: float) -> float:
        """Validate discount rate range"""
        if not 0.0 <= v < 1.0:
            raise ValueError("Discount rate must be in [0, 1)")
        return v


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or text")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = Field(default="storefront", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    redis: RedisSettings = Field(default_factory=RedisSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    ledger: LedgerSettings = Field(default_factory=LedgerSettings)
    pricing: PricingSettings = Field(default_factory=PricingSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development"""
        return self.app_env == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
