"""
ShopPulse Risk Engine — Centralized Configuration
All settings loaded from environment variables with sensible defaults.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class AppSettings(BaseSettings):
    """Application-level settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    app_name: str = "ShopPulse-Risk"
    app_version: str = "1.0.0"
    app_env: Environment = Environment.DEVELOPMENT
    debug: bool = False
    log_level: str = "INFO"

    # --- FastAPI ---
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_reload: bool = False
    cors_origins: list[str] = ["*"]

    # --- Observability ---
    otel_service_name: str = "shoppulse-risk"
    otel_exporter_otlp_endpoint: str = "http://localhost:4317"
    tracing_enabled: bool = False

    # --- Engine defaults ---
    forecast_lookback_days: int = Field(7, gt=0)
    anomaly_lookback_days: int = Field(30, gt=0)
    anomaly_std_dev_threshold: float = Field(2.0, gt=0)
    hours_per_day: float = Field(8.0, gt=0)
    at_risk_threshold: int = Field(70, ge=0, le=100)

    @property
    def is_production(self) -> bool:
        return self.app_env == Environment.PRODUCTION


@lru_cache()
def get_settings() -> AppSettings:
    """Return cached singleton application settings."""
    return AppSettings()
