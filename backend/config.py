"""
Configuration module for the commute tracking backend.

Centralizes all configuration settings including database URLs,
logging and the thresholds used by the live fleet read models.
"""

import os
from typing import List


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes", "on")


def _mask_url(url: str) -> str:
    if "@" not in url:
        return url
    scheme, _, rest = url.partition("://")
    return f"{scheme}://***@{rest.split('@', 1)[-1]}"


class Config:
    """Application configuration loaded from environment variables."""

    APP_ENV: str = os.getenv("APP_ENV", "development").strip().lower() or "development"

    # Database Configuration
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./commute.db")
    SQLALCHEMY_ECHO: bool = _env_bool("SQLALCHEMY_ECHO", "false")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # HTTP
    CORS_ORIGINS: List[str] = [
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", "*").split(",")
        if origin.strip()
    ]

    # Live fleet read models
    OFFLINE_THRESHOLD_MINUTES: int = int(os.getenv("OFFLINE_THRESHOLD_MINUTES", "10"))
    NEARBY_DEFAULT_RADIUS_METERS: float = float(
        os.getenv("NEARBY_DEFAULT_RADIUS_METERS", "3000")
    )
    ALERT_DISPLAY_LIMIT: int = int(os.getenv("ALERT_DISPLAY_LIMIT", "6"))
    TOP_ROUTES_LIMIT: int = int(os.getenv("TOP_ROUTES_LIMIT", "3"))

    @classmethod
    def is_production(cls) -> bool:
        return cls.APP_ENV == "production"

    @classmethod
    def get_config_dict(cls) -> dict:
        """Return configuration as dictionary (for debugging)."""
        return {
            "APP_ENV": cls.APP_ENV,
            "DATABASE_URL": _mask_url(cls.DATABASE_URL),
            "LOG_LEVEL": cls.LOG_LEVEL,
            "CORS_ORIGINS": cls.CORS_ORIGINS,
            "OFFLINE_THRESHOLD_MINUTES": cls.OFFLINE_THRESHOLD_MINUTES,
            "NEARBY_DEFAULT_RADIUS_METERS": cls.NEARBY_DEFAULT_RADIUS_METERS,
            "ALERT_DISPLAY_LIMIT": cls.ALERT_DISPLAY_LIMIT,
            "TOP_ROUTES_LIMIT": cls.TOP_ROUTES_LIMIT,
        }


# Global configuration instance
config = Config()
