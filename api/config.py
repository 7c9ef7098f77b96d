"""
API configuration settings.
"""

from pathlib import Path
from typing import Optional

from pydantic import validator
from pydantic_settings import BaseSettings


class APIConfig(BaseSettings):
    """API configuration settings."""

    # API Settings
    api_title: str = "Book Catalog API"
    api_version: str = "1.0.0"
    api_description: str = "REST API for managing a book catalog with token-based authentication"

    # Server Settings
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    # Database Settings
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_database: str = "book_catalog"
    books_collection: str = "books"
    users_collection: str = "users"

    # Security Settings
    secret_key: str = "your-secret-key-change-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60
    password_hash_rounds: int = 12

    # Pagination
    books_per_page: int = 4

    # CORS Settings
    cors_origins: list = ["*"]  # Configure appropriately for production
    cors_allow_credentials: bool = True
    cors_allow_methods: list = ["*"]
    cors_allow_headers: list = ["*"]

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"
    log_file: Optional[str] = None

    model_config = {
        "env_file": ".env",
        "extra": "ignore"  # Ignore extra fields from .env
    }

    @validator('books_per_page')
    def validate_books_per_page(cls, v):
        """Ensure page size is positive."""
        if v < 1:
            raise ValueError('books_per_page must be at least 1')
        return v

    @validator('password_hash_rounds')
    def validate_hash_rounds(cls, v):
        """bcrypt accepts cost factors between 4 and 31."""
        if v < 4 or v > 31:
            raise ValueError('password_hash_rounds must be between 4 and 31')
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


# Global config instance
config = APIConfig()
