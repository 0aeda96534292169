"""
Storecast Analytics
Centralized Configuration Management

This module provides configuration management using Pydantic settings with
environment variable support, validation, and type safety. The analytics
policy (benchmark rates, alert cutoffs, seasonal table) lives here as a
single named structure so it can be tuned independently of the aggregation
logic.
"""

from functools import lru_cache
from typing import Dict, List, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_SEASONAL_FACTORS: Dict[int, float] = {
    1: 0.85,   # January - post-holiday slump
    2: 0.90,
    3: 0.95,
    4: 1.00,
    5: 1.00,
    6: 0.95,
    7: 0.90,
    8: 0.95,   # August - back to school
    9: 1.00,
    10: 1.05,
    11: 1.20,  # November - Black Friday
    12: 1.35,  # December - holiday season
}

DEFAULT_SCENARIO_RATES: Dict[str, float] = {
    "conservative": 0.02,
    "moderate": 0.05,
    "aggressive": 0.10,
}


class StoreSettings(BaseSettings):
    """Store identity configuration"""

    model_config = SettingsConfigDict(env_prefix="SHOPIFY_")

    shop_domain: Optional[str] = Field(default=None, description="Store's own domain, excluded from referral traffic")


class AnalyticsPolicy(BaseSettings):
    """
    Analytics policy constants.

    Industry-benchmark rates and alert thresholds used by the funnel,
    traffic and forecasting components. These are policy, not measurements.
    """

    model_config = SettingsConfigDict(env_prefix="ANALYTICS_")

    # Funnel / traffic benchmarks
    assumed_conversion_rate: float = Field(default=0.025, gt=0, le=1, description="Session to order conversion")
    checkout_reach_rate: float = Field(default=0.03, gt=0, le=1, description="Share of visitors reaching checkout")
    cart_to_checkout_rate: float = Field(default=0.45, gt=0, le=1, description="Share of add-to-carts reaching checkout")
    visitor_to_cart_rate: float = Field(default=0.08, gt=0, le=1, description="Share of visitors adding to cart")

    # Recommendation cutoffs (percent)
    abandonment_alert_pct: float = Field(default=70.0, description="Abandonment rate above which recovery is flagged")
    returning_rate_alert_pct: float = Field(default=20.0, description="Returning-customer rate below which retention is flagged")

    # Forecasting
    forecast_lookback_days: int = Field(default=90, gt=0, description="History window for monthly buckets")
    forecast_volatility: float = Field(default=0.15, ge=0, description="Per-month volatility for confidence bands")
    days_per_month: int = Field(default=30, gt=0, description="Days per forecast month when projecting dates")
    default_horizons: List[int] = Field(default=[1, 3, 6, 12], description="Default forecast horizons in months")
    scenario_growth_rates: Dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_SCENARIO_RATES),
        description="Monthly growth rate per scenario",
    )
    seasonal_factors: Dict[int, float] = Field(
        default_factory=lambda: dict(DEFAULT_SEASONAL_FACTORS),
        description="Demand multiplier per calendar month",
    )

    @field_validator("seasonal_factors")
    @classmethod
    def validate_seasonal_factors(cls, v: Dict[int, float]) -> Dict[int, float]:
        """Require one positive factor for each calendar month"""
        if sorted(v) != list(range(1, 13)):
            raise ValueError("Seasonal factors must cover months 1-12 exactly")
        if any(factor <= 0 for factor in v.values()):
            raise ValueError("Seasonal factors must be positive")
        return v

    @field_validator("default_horizons")
    @classmethod
    def validate_horizons(cls, v: List[int]) -> List[int]:
        """Horizons must be a non-empty list of positive month counts"""
        if not v or any(h < 1 for h in v):
            raise ValueError("Horizons must be a non-empty list of positive integers")
        return v

    @property
    def assumed_conversion_pct(self) -> float:
        """Assumed conversion rate as a percentage"""
        return round(self.assumed_conversion_rate * 100, 2)


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", alias="LOG_FORMAT", description="Log format: json or text")

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Only JSON lines and console text are rendered"""
        if v.lower() not in ("json", "text"):
            raise ValueError("Log format must be 'json' or 'text'")
        return v.lower()


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
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")

    # Subsystem configurations
    store: StoreSettings = Field(default_factory=StoreSettings)
    analytics: AnalyticsPolicy = Field(default_factory=AnalyticsPolicy)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
