"""
CampusNews Configuration System
===============================

Configuration management with environment variables and Pydantic models.
Environment variables override Field defaults with clear precedence.
"""

import os
from pathlib import Path
from typing import Optional
from enum import Enum

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from ..utils.exceptions import ConfigurationError, ErrorCode


class LogLevel(str, Enum):
    """Available log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class IngestionSettings(BaseModel):
    """News ingestion configuration."""
    retention_days: int = Field(default=365, ge=1, description="Days to keep ingested news, counted from creation")
    image_directory: str = Field(default="news/newspread/", description="Storage path recorded on registered news images")
    user_agent: str = Field(default="CampusNews/1.0 (+news ingestion)", description="User agent sent with feed requests")

    @field_validator('image_directory')
    @classmethod
    def validate_image_directory(cls, v):
        """Keep the storage path in directory form."""
        v = v.strip()
        if not v:
            raise ValueError("image_directory cannot be empty")
        return v if v.endswith("/") else v + "/"


class LimitsSettings(BaseModel):
    """Network limits for feed retrieval."""
    request_timeout: int = Field(default=30, ge=1, le=300, description="Request timeout in seconds")
    max_retries: int = Field(default=3, ge=0, le=10, description="HTTP retries on 429/5xx responses")
    backoff_factor: float = Field(default=1.0, ge=0.0, le=10.0, description="Exponential backoff factor between retries")


class DatabaseSettings(BaseModel):
    """Database configuration."""
    path: str = Field(default="data/campusnews.db", description="SQLite database file path")
    pool_size: int = Field(default=5, ge=1, le=20, description="Connection pool size")


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Global log level")
    file_path: Optional[str] = Field(default="logs/campusnews.log", description="Log file path")
    max_file_size_mb: int = Field(default=10, ge=1, le=100, description="Max log file size in MB")
    backup_count: int = Field(default=5, ge=1, le=20, description="Number of log backup files")
    structured_logging: bool = Field(default=False, description="Use structured JSON logging")
    console_logging: bool = Field(default=True, description="Enable console logging")


class CampusNewsSettings(BaseSettings):
    """Main application settings."""

    ingestion: IngestionSettings = Field(default_factory=IngestionSettings)
    limits: LimitsSettings = Field(default_factory=LimitsSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    app_name: str = Field(default="CampusNews", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "env_prefix": "CAMPUSNEWS_",
        "extra": "ignore",
    }

    def validate_configuration(self) -> None:
        """Validate complete configuration."""
        errors = []

        try:
            db_path = Path(self.database.path)
            db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            errors.append(f"Invalid database path: {e}")

        if self.logging.file_path:
            try:
                log_path = Path(self.logging.file_path)
                log_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                errors.append(f"Invalid log file path: {e}")

        if errors:
            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}",
                error_code=ErrorCode.CONFIG_INVALID
            )

    def is_production_mode(self) -> bool:
        """Check if running in production mode."""
        return not self.debug and os.getenv("ENV", "development").lower() == "production"

    def get_effective_log_level(self) -> str:
        """Get effective log level considering debug mode."""
        if self.debug:
            return "DEBUG"
        return self.logging.level.value


def load_settings() -> CampusNewsSettings:
    """Load settings from environment variables and defaults.

    Returns:
        Loaded and validated settings

    Raises:
        ConfigurationError: If configuration is invalid
    """
    from dotenv import load_dotenv
    load_dotenv()

    try:
        # Precedence: environment, then .env, then Field defaults
        settings = CampusNewsSettings()
        settings.validate_configuration()
        return settings

    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(
            f"Failed to initialize settings: {e}",
            error_code=ErrorCode.CONFIG_INVALID
        ) from e


# Global settings instance
_settings: Optional[CampusNewsSettings] = None


def get_settings(reload: bool = False) -> CampusNewsSettings:
    """Get global settings instance (singleton pattern).

    Args:
        reload: Force reload of settings

    Returns:
        Global settings instance
    """
    global _settings

    if _settings is None or reload:
        _settings = load_settings()

    return _settings
