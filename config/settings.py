"""
Configuration management for the Git LoC tracker.

This module provides centralized configuration management with:
- Environment-specific settings
- Type validation and defaults
- Persistence, watcher and tracking configuration
- Logging configuration
"""

from typing import Any, Dict
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings
from pydantic_settings import BaseSettings as PydanticBaseSettings


PENDING_MODES = ("per_path", "once")


class DatabaseSettings(BaseSettings):
    """Database configuration settings."""

    url: str = Field(
        default="sqlite:///loc_stats.db",
        description="Database connection URL",
    )
    echo: bool = Field(default=False, description="Enable SQL logging")

    model_config = {"env_prefix": "LOC_TRACKER_DATABASE_", "extra": "ignore"}

    @field_validator("url")
    @classmethod
    def validate_database_url(cls, v):
        if not v.startswith("sqlite"):
            raise ValueError("Database URL must be SQLite")
        return v


class WatchSettings(BaseSettings):
    """Filesystem watcher configuration settings."""

    debounce_seconds: float = Field(
        default=300.0, description="Quiet period before a burst of events triggers a cycle"
    )
    recursive: bool = Field(default=True, description="Watch tracked paths recursively")

    model_config = {"env_prefix": "LOC_TRACKER_WATCH_", "extra": "ignore"}

    @field_validator("debounce_seconds")
    @classmethod
    def validate_debounce(cls, v):
        if v <= 0:
            raise ValueError("Debounce period must be positive")
        return v


class TrackerSettings(BaseSettings):
    """Change-tracking configuration settings."""

    pending_mode: str = Field(
        default="per_path",
        description="per_path adds the full working diff once per changed path; once adds it a single time",
    )

    model_config = {"env_prefix": "LOC_TRACKER_TRACKER_", "extra": "ignore"}

    @field_validator("pending_mode")
    @classmethod
    def validate_pending_mode(cls, v):
        v = v.lower()
        if v not in PENDING_MODES:
            raise ValueError(f"Pending mode must be one of: {list(PENDING_MODES)}")
        return v


class MonitoringSettings(BaseSettings):
    """Logging configuration settings."""

    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log record format",
    )

    model_config = {"env_prefix": "LOC_TRACKER_MONITORING_", "extra": "ignore"}

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()


class Settings(PydanticBaseSettings):
    """
    Main application settings with environment-specific configuration.

    Every value can be overridden from the environment with the
    ``LOC_TRACKER_`` prefix, using ``__`` to reach nested groups, e.g.
    ``LOC_TRACKER_WATCH__DEBOUNCE_SECONDS=60``.
    """

    # Core application settings
    app_name: str = Field(default="git-loc-tracker", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Component configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    watch: WatchSettings = Field(default_factory=WatchSettings)
    tracker: TrackerSettings = Field(default_factory=TrackerSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        valid_environments = ["development", "testing", "production"]
        if v not in valid_environments:
            raise ValueError(f"Environment must be one of: {valid_environments}")
        return v

    @field_validator("debug")
    @classmethod
    def validate_debug_mode(cls, v, info):
        if info.data.get("environment") == "production" and v:
            raise ValueError("Debug mode cannot be enabled in production")
        return v

    model_config = {
        "env_prefix": "LOC_TRACKER_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "extra": "ignore",
    }


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application configuration object

    Example:
        >>> settings = get_settings()
        >>> print(settings.database.url)
        >>> print(settings.watch.debounce_seconds)
    """
    return Settings()


# Global settings instance
settings = get_settings()


def get_database_url() -> str:
    """Get database URL with environment-specific configuration."""
    if settings.environment == "testing":
        return "sqlite:///:memory:"
    return settings.database.url


def is_production() -> bool:
    """Check if running in production environment."""
    return settings.environment == "production"


def validate_configuration() -> Dict[str, Any]:
    """
    Validate configuration settings and return validation results.

    Returns:
        Dict[str, Any]: Validation results with status and errors
    """
    errors = []
    warnings = []

    if is_production() and settings.debug:
        errors.append("Debug mode cannot be enabled in production")

    if settings.tracker.pending_mode == "per_path":
        warnings.append(
            "pending_mode=per_path adds the full working-tree diff once per changed path"
        )

    if settings.watch.debounce_seconds < 1:
        warnings.append("Debounce period below one second will reconcile on nearly every write")

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
        "environment": settings.environment,
    }


def export_config() -> Dict[str, Any]:
    """
    Export configuration for external tools.

    Returns:
        Dict[str, Any]: Configuration export
    """
    return {
        "app_name": settings.app_name,
        "version": settings.version,
        "environment": settings.environment,
        "debug": settings.debug,
        "database": {
            "url": settings.database.url,
            "echo": settings.database.echo,
        },
        "watch": {
            "debounce_seconds": settings.watch.debounce_seconds,
            "recursive": settings.watch.recursive,
        },
        "tracker": {
            "pending_mode": settings.tracker.pending_mode,
        },
        "monitoring": {
            "log_level": settings.monitoring.log_level,
        },
    }


if __name__ == "__main__":
    """Configuration validation script."""
    import json

    validation = validate_configuration()
    config_export = export_config()

    print("Configuration Validation:")
    print(json.dumps(validation, indent=2))

    print("\nConfiguration Export:")
    print(json.dumps(config_export, indent=2))

    if not validation["valid"]:
        exit(1)
