"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Service
    service_name: str = "retirement-engine"
    log_level: str = "INFO"
    environment: str = "development"

    # Engine
    diagnostics_enabled: bool = False  # Log safe-math anomalies (never changes results)
    default_locale: str = "en"
    default_country: str = "israel"


settings = Settings()
