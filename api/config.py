"""
API configuration settings.
Database credentials are required; everything else has a default.
"""

from pathlib import Path
from typing import List, Optional
from urllib.parse import quote_plus

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from api.errors import ConfigurationError


REQUIRED_VARIABLES = ("db_user", "db_pass", "db_host", "db_name")


class APIConfig(BaseSettings):
    """API configuration settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # API Settings
    api_title: str = "Livros API"
    api_version: str = "1.0.0"
    api_description: str = "CRUD REST API for books backed by MongoDB"

    # Server Settings
    host: str = "0.0.0.0"
    port: int = 3000
    debug: bool = False

    # Database Settings
    db_user: str
    db_pass: str
    db_host: str
    db_name: str
    db_scheme: str = "mongodb+srv"
    db_options: str = "retryWrites=true&w=majority"
    db_collection: str = "books"
    db_timeout_ms: int = 10000

    # CORS Settings
    cors_origins: List[str] = ["*"]

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"
    log_file: Optional[str] = None

    @field_validator(*REQUIRED_VARIABLES)
    @classmethod
    def validate_required(cls, v):
        """Database settings may not be blank."""
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'log_level must be one of: {valid_levels}')
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        """Ensure log format is valid."""
        valid_formats = ['json', 'console']
        if v.lower() not in valid_formats:
            raise ValueError(f'log_format must be one of: {valid_formats}')
        return v.lower()

    @property
    def mongodb_url(self) -> str:
        """Connection URI with percent-encoded credentials."""
        url = (
            f"{self.db_scheme}://{quote_plus(self.db_user)}:{quote_plus(self.db_pass)}"
            f"@{self.db_host}/{self.db_name}"
        )
        if self.db_options:
            url = f"{url}?{self.db_options}"
        return url

    def get_log_file_path(self) -> Optional[Path]:
        """Get log file path as Path object."""
        if self.log_file:
            return Path(self.log_file)
        return None


def load_config(env_file: Optional[str] = ".env") -> APIConfig:
    """
    Load settings from the environment and the optional env file.

    Raises:
        ConfigurationError: a required variable is missing or a value is invalid
    """
    try:
        return APIConfig(_env_file=env_file)
    except ValidationError as e:
        names = []
        for error in e.errors():
            name = str(error["loc"][0]).upper() if error["loc"] else "?"
            if name not in names:
                names.append(name)
        raise ConfigurationError(
            f"Invalid or missing environment variables: {', '.join(names)}"
        ) from e
