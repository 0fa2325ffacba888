"""
Application configuration using pydantic-settings.

WHAT: Centralized config from environment variables
WHY: Type-safe, validated config with sensible defaults
HOW: Pydantic BaseSettings reads from .env and environment
"""

from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import Literal
from pathlib import Path


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # App metadata
    APP_NAME: str = "Freight Exchange"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite:///./data/freight.db"

    # Distance estimation
    DISTANCE_PROVIDER: Literal["lookup", "routing_api"] = "lookup"
    ROUTING_API_BASE_URL: str = "http://localhost:8989/v1"
    ROUTING_API_KEY: str = ""
    ROUTING_API_TIMEOUT: int = 10  # seconds
    ROUTING_MAX_RETRIES: int = 3
    ROUTING_RETRY_DELAY: float = 0.5  # seconds, base for exponential backoff

    # Negotiation
    # When False, a finished negotiation is always stored as "converged",
    # even if the simulator ran out of rounds.
    DERIVE_NEGOTIATION_STATUS: bool = False

    # Dispatch
    DEFAULT_TRIP_PAYOUT: int = 45000  # rupees, used when a load has no price yet

    @field_validator("ROUTING_API_BASE_URL", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v):
        """Normalize the routing API base URL."""
        if isinstance(v, str):
            return v.rstrip("/")
        return v

    # Logging
    LOG_LEVEL: str = "INFO"
    CONSOLE_LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "./data/logs/app.log"
    # Per-logger overrides; httpx logs every routing API request at INFO
    LOG_MODULE_LEVELS: dict[str, str] = {
        "freight_exchange.services": "INFO",
        "freight_exchange.core": "WARNING",
        "httpx": "WARNING",
    }

    class Config:
        # Look for .env in project root first, then backend/.env
        env_file = [
            str(Path(__file__).parent.parent.parent.parent / ".env"),
            str(Path(__file__).parent.parent.parent / ".env"),
        ]
        env_file_encoding = "utf-8"
        case_sensitive = True


# Singleton instance
settings = Settings()
