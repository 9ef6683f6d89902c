"""Application configuration."""
from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Hippo Lending"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite:///./hippo.db"
    store_timeout_seconds: float = 5.0  # upper bound for any single store call

    # Routing
    api_prefix: str = "/api"

    # CORS (JSON list in the environment); defaults are the Expo dev servers
    cors_origins: List[str] = ["http://localhost:8081", "http://localhost:19006"]

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
