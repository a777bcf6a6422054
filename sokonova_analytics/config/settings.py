"""
SOKONOVA Seller Analytics
Centralized Configuration Management

This module provides configuration management using Pydantic settings with
environment variable support, validation, and type safety.
"""

from functools import lru_cache
from typing import Optional, List
from pydantic import Field, field_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """PostgreSQL Database Configuration"""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_")

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    db: str = Field(default="sokonova", alias="POSTGRES_DB", description="Database name")
    user: str = Field(default="sokonova", description="Database user")
    password: SecretStr = Field(default="secure_password", description="Database password")
    echo: bool = Field(default=False, description="Echo SQL queries")
    url: Optional[str] = Field(default=None, alias="DATABASE_URL", description="Full async URL (overrides host/port)")

    @property
    def async_url(self) -> str:
        """Async database URL for asyncpg"""
        if self.url:
            # Accept plain postgres URLs from hosting providers
            if self.url.startswith("postgresql://"):
                return self.url.replace("postgresql://", "postgresql+asyncpg://", 1)
            return self.url
        return f"postgresql+asyncpg://{self.user}:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"


class SecuritySettings(BaseSettings):
    """HTTP surface configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    # Rate limiting
    rate_limit_requests: int = Field(default=100, alias="RATE_LIMIT_REQUESTS", description="Rate limit requests")
    rate_limit_window_seconds: int = Field(default=60, alias="RATE_LIMIT_WINDOW_SECONDS", description="Rate limit window")

    # CORS
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", alias="LOG_FORMAT", description="Log format: json or text")


class AnalyticsSettings(BaseSettings):
    """
    Seller analytics business ratios and thresholds.

    None of these come from historical data; they are the marketplace's
    working assumptions and can be overridden per deployment.
    """

    model_config = SettingsConfigDict(env_prefix="ANALYTICS_")

    # Profitability
    cost_of_goods_ratio: float = Field(default=0.6, description="Assumed COGS as a share of current list price")
    platform_fee_rate: float = Field(default=0.1, description="Assumed platform fee as a share of item revenue")

    # Inventory
    velocity_window_days: int = Field(default=90, description="Trailing window for velocity and risk")
    stockout_window_days: int = Field(default=30, description="Trailing window for stockout predictions")
    restock_cover_days: int = Field(default=14, description="Days of sales a restock should cover")
    slow_moving_days_of_supply: float = Field(default=30, description="Days of supply above which stock is slow")
    fast_moving_days_of_supply: float = Field(default=7, description="Days of supply below which stock is fast")
    aging_days: int = Field(default=90, description="Age after which a product is reported as aging")
    very_old_days: int = Field(default=180, description="Age after which a product is very old")
    stockout_horizon_days: int = Field(default=30, description="Only predictions under this horizon are reported")
    markdown_discount_percent: float = Field(default=20, description="Suggested markdown for high-risk stock")
    placeholder_rating: float = Field(default=4.5, description="Rating assumed for products with sales")

    # Buyers
    high_value_spend: float = Field(default=200, description="Spend above which a buyer is high value")
    frequent_order_count: int = Field(default=3, description="Order count above which a buyer is frequent")
    at_risk_days: int = Field(default=60, description="Days since last order above which a buyer is at risk")
    default_campaign_max_uses: int = Field(default=100, description="Default redemption cap for campaigns")

    # Dashboard summary
    summary_revenue_window_days: int = Field(default=7, description="Revenue window for the seller summary")
    summary_dispute_window_days: int = Field(default=30, description="Dispute rate window for the seller summary")
    summary_top_skus: int = Field(default=5, description="Number of top SKUs in the seller summary")
    summary_review_trend_size: int = Field(default=10, description="Reviews in the rating trend")


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
    )

    # Application
    app_name: str = Field(default="sokonova-analytics", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", alias="API_HOST", description="API host")
    api_port: int = Field(default=8000, alias="API_PORT", description="API port")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)

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


# Convenience function for accessing settings
settings = get_settings()
