"""
Library configuration settings.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Library settings loaded from environment variables."""

    # Application
    APP_NAME: str = "roads"
    APP_VERSION: str = "0.3.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # osrm-routed server serving an opened graph
    OSRM_URL: str = "http://localhost:5000"
    OSRM_PROFILE: str = "driving"  # profile segment of the HTTP path
    OSRM_TIMEOUT: float = 30.0  # seconds
    OSRM_CONNECT_TIMEOUT: float = 10.0  # seconds

    # osrm-backend toolchain (osrm-extract, osrm-partition, osrm-customize)
    OSRM_BIN_DIR: Optional[str] = None  # None: resolve binaries from PATH
    OSRM_PROFILES_DIR: str = "/usr/local/share/osrm/profiles"

    # osmium-tool
    OSMIUM_BINARY: str = "osmium"

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
