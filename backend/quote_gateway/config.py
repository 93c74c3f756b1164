"""
Quote Gateway - Configuration Settings
"""
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
import json


# Environment variable -> provider name
PROVIDER_KEY_ENV = {
    "ALPHAVANTAGE_API_KEY": "alphavantage",
    "TWELVEDATA_API_KEY": "twelvedata",
    "FINNHUB_API_KEY": "finnhub",
    "IEXCLOUD_API_KEY": "iexcloud",
    "POLYGON_API_KEY": "polygon",
    "QUANDL_API_KEY": "quandl",
    "WORLDTRADINGDATA_API_KEY": "worldtradingdata",
    "MARKETSTACK_API_KEY": "marketstack",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # =========================
    # Application Settings
    # =========================
    APP_NAME: str = "Smart Stock Trader Quote Gateway"
    APP_ENV: str = "development"
    DEBUG: bool = True
    API_V1_PREFIX: str = "/api/v1"

    # =========================
    # Server Configuration
    # =========================
    BACKEND_HOST: str = "0.0.0.0"
    BACKEND_PORT: int = 3001
    CORS_ORIGINS: List[str] = ["*"]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(",")]
        return v

    # =========================
    # Durable Store
    # =========================
    STORAGE_BACKEND: str = "auto"  # auto | redis | file
    DATA_DIR: str = "data"

    @field_validator("STORAGE_BACKEND")
    @classmethod
    def validate_storage_backend(cls, v: str) -> str:
        v = v.lower()
        if v not in ("auto", "redis", "file"):
            raise ValueError("STORAGE_BACKEND must be one of: auto, redis, file")
        return v

    # =========================
    # Redis
    # =========================
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: str = ""
    REDIS_DB: int = 0
    # Direct REDIS_URL from environment (overrides individual settings)
    REDIS_URL: str = ""
    REDIS_KEY_PREFIX: str = "quote_gateway"

    @property
    def redis_url(self) -> str:
        """Get the Redis URL."""
        if self.REDIS_URL:
            return self.REDIS_URL
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    # =========================
    # Data Providers - API Keys
    # =========================
    ALPHAVANTAGE_API_KEY: str = ""
    TWELVEDATA_API_KEY: str = ""
    FINNHUB_API_KEY: str = ""
    IEXCLOUD_API_KEY: str = ""
    POLYGON_API_KEY: str = ""
    QUANDL_API_KEY: str = ""
    WORLDTRADINGDATA_API_KEY: str = ""
    MARKETSTACK_API_KEY: str = ""

    def provider_api_keys(self) -> dict[str, str]:
        """Credentials supplied through the environment, by provider name."""
        return {
            provider: getattr(self, env_var)
            for env_var, provider in PROVIDER_KEY_ENV.items()
            if getattr(self, env_var)
        }

    # =========================
    # Gateway Settings
    # =========================
    QUOTE_CACHE_TTL_SECONDS: int = 300
    PROVIDER_TIMEOUT_SECONDS: float = 10.0
    CACHE_SWEEP_INTERVAL_SECONDS: int = 3600
    MAX_PROVIDER_ATTEMPTS: int = 1
    AUTO_DISABLE_THRESHOLD: int = 3
    AUTO_DISABLE_MINUTES: int = 30
    RATE_LIMIT_WINDOW_HOURS: int = 24

    # =========================
    # Logging
    # =========================
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_TO_FILE: bool = True


# Create global settings instance
settings = Settings()
