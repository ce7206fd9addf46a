"""
Configuration management using environment variables.
Handles database, external API, gateway and logging settings with validation and defaults.
"""

from typing import Optional
from pathlib import Path

from pydantic import validator
from pydantic_settings import BaseSettings


class AppConfig(BaseSettings):
    """
    Configuration class for the library finder service.
    Uses pydantic BaseSettings for environment variable management.
    """

    # MongoDB Configuration
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_database: str = "bookshore"
    libraries_collection: str = "libraries"

    # Aladin book catalog API
    aladin_api_key: str = ""
    aladin_base_url: str = "http://www.aladin.co.kr/ttb/api"

    # data4library holdings API
    library_api_key: str = ""
    library_api_base_url: str = "http://data4library.kr/api"
    library_api_region: int = 11  # Seoul
    library_api_page_size: int = 10

    # Gateway Configuration
    request_timeout: float = 15.0
    retry_attempts: int = 2
    retry_delay: float = 1.0
    rate_limit_per_second: float = 10.0

    # Logging Configuration
    log_level: str = "INFO"
    log_format: str = "json"
    log_file: Optional[str] = None

    debug: bool = False

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @validator('retry_attempts')
    def validate_retry_attempts(cls, v):
        """Ensure retry attempts is reasonable."""
        if v < 0 or v > 10:
            raise ValueError('retry_attempts must be between 0 and 10')
        return v

    @validator('request_timeout')
    def validate_timeout(cls, v):
        """Ensure timeout is reasonable."""
        if v < 1 or v > 120:
            raise ValueError('request_timeout must be between 1 and 120 seconds')
        return v

    @validator('rate_limit_per_second')
    def validate_rate_limit(cls, v):
        if v < 0.1 or v > 100:
            raise ValueError('rate_limit_per_second must be between 0.1 and 100')
        return v

    @validator('library_api_page_size')
    def validate_page_size(cls, v):
        if v < 1 or v > 100:
            raise ValueError('library_api_page_size must be between 1 and 100')
        return v

    @validator('log_level')
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'log_level must be one of: {valid_levels}')
        return v.upper()

    @validator('log_format')
    def validate_log_format(cls, v):
        """Ensure log format is valid."""
        valid_formats = ['json', 'console']
        if v.lower() not in valid_formats:
            raise ValueError(f'log_format must be one of: {valid_formats}')
        return v.lower()

    def get_log_file_path(self) -> Optional[Path]:
        """Get log file path as Path object."""
        if self.log_file:
            return Path(self.log_file)
        return None

    def get_user_agent(self) -> str:
        """Get user agent string for outbound requests."""
        return "Bookshore-API/1.0"

    def get_headers(self) -> dict:
        """Get default headers for outbound HTTP requests."""
        return {
            "User-Agent": self.get_user_agent(),
            "Accept": "application/json",
        }


# Global configuration instance
config = AppConfig()
