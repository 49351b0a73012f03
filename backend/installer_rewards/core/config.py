"""
Application Configuration
"""

from pydantic_settings import BaseSettings
from typing import List, Optional
import os
from dotenv import load_dotenv, find_dotenv

load_dotenv(find_dotenv())

DB_URL: Optional[str] = os.getenv("DATABASE_URL")


class Settings(BaseSettings):
    """Application settings"""

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    # API
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Installer Rewards"

    # CORS
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # Tracing
    TRACING_ENABLED: bool = False
    OTLP_ENDPOINT: str = "localhost:4317"

    # Storage
    STORAGE_BACKEND: str = "memory"  # memory | database
    DATABASE_URL: Optional[str] = DB_URL

    # Promotions
    NEW_INSTALLER_WINDOW_DAYS: int = 30
    REVERT_COMPLETION_ON_REGRESSION: bool = False
    PROMOTION_TITLE_MAX_LENGTH: int = 200
    PROMOTION_DESCRIPTION_MAX_LENGTH: int = 1000

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
