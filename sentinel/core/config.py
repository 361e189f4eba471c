"""
Configuration settings for Global Sentinel.

This module provides configuration settings loaded from environment variables.
"""

import os
from pydantic_settings import BaseSettings
from pydantic import validator


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Shared by the core API process and the collector process.
    """
    # Project info
    PROJECT_NAME: str = "Global Sentinel"
    VERSION: str = "0.1.0"
    DESCRIPTION: str = "Threat intake and crowd credibility service for global crisis signals"

    # Database
    DATABASE_URL: str = "sqlite:///./data/sentinel.db"
    STORE_TIMEOUT: float = 5.0  # seconds per store call
    SQLITE_BUSY_TIMEOUT_MS: int = 4000  # must stay below STORE_TIMEOUT
    VOTE_CAS_RETRIES: int = 5

    # API settings
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_KEY: str = "change-me"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "data/logs"

    # Credibility policy
    CREDIBILITY_PRIOR: float = 1.0
    SKEPTICAL_WEIGHT: float = 0.5
    STATUS_MIN_VOTES: int = 5
    MONITORING_THRESHOLD: int = 30
    REACTIVATION_THRESHOLD: int = 60

    # Collector forwarding
    CORE_BACKEND_URL: str = "http://localhost:8000"
    FORWARD_TIMEOUT: float = 10.0  # seconds per forwarded item
    FORWARD_MAX_RETRIES: int = 3
    FORWARD_DELAY: float = 0.3  # seconds between forwarded items

    # Collection settings
    COLLECTION_FREQUENCY: int = 10  # minutes
    MAX_ARTICLES_PER_SOURCE: int = 10
    MIN_RELEVANT_SEVERITY: int = 25

    # CORS settings for the dashboard
    CORS_ORIGINS: list = ["http://localhost:5173", "http://localhost:3000"]

    @validator("DATABASE_URL")
    def validate_database_url(cls, v: str) -> str:
        """Ensure database directory exists"""
        if v.startswith("sqlite:///") and ":memory:" not in v:
            db_path = v.replace("sqlite:///", "")
            db_dir = os.path.dirname(db_path)
            if db_dir:
                os.makedirs(db_dir, exist_ok=True)
        return v

    class Config:
        env_file = ".env"
        case_sensitive = True


# Create global settings instance
settings = Settings()
