"""
Configuration management for the Picture Tales service.
"""
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Language model
    llm_provider: Literal["mock", "openai"] = "mock"
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None  # Any OpenAI-compatible endpoint
    llm_model: str = "gpt-4o"

    # Image storage
    storage_backend: Literal["local", "http"] = "local"
    storage_dir: str = "./uploads"
    storage_public_url: str = "http://localhost:8000/media"
    storage_api_url: Optional[str] = None
    storage_api_key: Optional[str] = None

    # Users whose id matches become admins
    owner_id: Optional[str] = None

    # Service configuration
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


def get_settings() -> Settings:
    """Get application settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
