"""
API configuration settings.
"""

from typing import List

from pydantic_settings import BaseSettings


class APIConfig(BaseSettings):
    """API configuration settings."""

    # API Settings
    api_title: str = "Bookshore Library Finder API"
    api_version: str = "1.0.0"

    # Server Settings
    host: str = "0.0.0.0"
    port: int = 3000
    debug: bool = False

    # CORS Settings
    cors_origins: List[str] = ["http://localhost:3000"]
    cors_allow_credentials: bool = True

    # Logging
    log_level: str = "INFO"

    model_config = {
        "env_file": ".env",
        "extra": "ignore"
    }


# Global config instance
config = APIConfig()
