"""
Application configuration using Pydantic settings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # App
    app_name: str = "Ledger"
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite:///./ledger.sqlite"
    store_transactional: bool = True  # Group multi-row writes in one DB transaction

    # Server
    frontend_url: str = "http://localhost:5173"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False
    )


# Global settings instance
settings = Settings()
