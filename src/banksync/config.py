"""Centralized configuration management for banksync.

This module provides a Pydantic Settings-based configuration system that
consolidates all application settings with environment variable integration,
type validation, and profile-specific ``.env`` files.
"""

import os
import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PROFILE_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")


def validate_profile_name(profile: str) -> str:
    """Ensure a profile name is safe for use in file names.

    Args:
        profile: Profile name to validate

    Returns:
        str: The unchanged profile name

    Raises:
        ValueError: If the name is empty or contains invalid characters
    """
    if not profile:
        raise ValueError("Profile name cannot be empty")
    if not PROFILE_PATTERN.match(profile):
        raise ValueError(
            f"Invalid profile: {profile}. "
            "Profile name must contain only alphanumeric characters, dashes, and underscores"
        )
    return profile


class DatabaseConfig(BaseModel):
    """Cursor store database settings."""

    model_config = ConfigDict(frozen=True)

    path: Path = Field(
        default=Path("data/duckdb/banksync.duckdb"),
        description="Path to DuckDB database file holding sync cursors",
    )
    create_dirs: bool = Field(
        default=True, description="Automatically create database directories"
    )

    @field_validator("path")
    @classmethod
    def validate_database_path(cls, v: Path) -> Path:
        """Ensure database path has correct extension."""
        if not str(v).endswith((".db", ".duckdb")):
            raise ValueError("Database path must end with .db or .duckdb")
        return v


class PlaidConfig(BaseModel):
    """Plaid API configuration settings."""

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(..., description="Plaid client ID")
    secret: str = Field(..., description="Plaid secret key")
    environment: Literal["sandbox", "development", "production"] = Field(
        default="sandbox", description="Plaid environment"
    )
    products: tuple[str, ...] = Field(
        default=("transactions",), description="Products requested for new items"
    )


class SyncConfig(BaseModel):
    """Transaction sync behavior."""

    model_config = ConfigDict(frozen=True)

    pause_seconds: float = Field(
        default=2.0,
        ge=0.0,
        le=60.0,
        description="Pause before re-polling when the feed has no new data yet",
    )
    max_pages: int | None = Field(
        default=None,
        ge=1,
        description="Optional cap on feed calls per sync (unbounded when unset)",
    )
    page_size: int = Field(
        default=500, ge=1, le=500, description="Records requested per feed call"
    )
    display_limit: int = Field(
        default=8, ge=1, le=500, description="Number of recent transactions to show"
    )


class DataConfig(BaseModel):
    """Data storage configuration."""

    model_config = ConfigDict(frozen=True)

    raw_data_path: Path = Field(
        default=Path("data/raw/plaid"), description="Path to raw sync output"
    )
    save_raw_data: bool = Field(
        default=True, description="Write each completed sync to Parquet"
    )


class LoggingConfig(BaseModel):
    """Logging configuration settings."""

    model_config = ConfigDict(frozen=True)

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_to_file: bool = Field(default=True, description="Enable file logging")
    log_file_path: Path = Field(
        default=Path("logs/banksync.log"), description="Path to log file"
    )
    max_file_size_mb: int = Field(
        default=50, ge=1, le=1000, description="Maximum log file size in MB"
    )
    backup_count: int = Field(
        default=5, ge=1, le=50, description="Number of log file backups to keep"
    )


LEGACY_LOGGING_VARS = {
    "level": "LOG_LEVEL",
    "log_to_file": "LOG_TO_FILE",
    "log_file_path": "LOG_FILE_PATH",
    "max_file_size_mb": "LOG_MAX_FILE_SIZE_MB",
    "backup_count": "LOG_BACKUP_COUNT",
}


class BankSyncSettings(BaseSettings):
    """Main application settings with environment variable integration.

    Environment variables are loaded with the BANKSYNC_ prefix.
    For nested configs, use double underscores: BANKSYNC_SYNC__PAUSE_SECONDS

    Profile Support:
    - Loads from .env.{profile} files (e.g., .env.dev, .env.prod)
    - Falls back to .env when no profile file exists
    """

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    plaid: PlaidConfig = Field(
        default_factory=lambda: PlaidConfig(
            client_id="", secret="", environment="sandbox"
        )
    )
    sync: SyncConfig = Field(default_factory=SyncConfig)
    data: DataConfig = Field(default_factory=DataConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    debug: bool = Field(default=False, description="Enable debug mode")
    profile: str = Field(
        default="default",
        description="User profile name (e.g., alice, bob, household)",
    )

    @field_validator("profile")
    @classmethod
    def validate_profile(cls, v: str) -> str:
        """Ensure profile name is safe for use as a filename."""
        return validate_profile_name(v)

    def __init__(self, **kwargs: Any):
        """Initialize settings with legacy Plaid and logging environment variables.

        `PLAID_CLIENT_ID`, `PLAID_SECRET` and `PLAID_ENV` replace the `plaid`
        section. `LOG_LEVEL`, `LOG_TO_FILE`, `LOG_FILE_PATH`,
        `LOG_MAX_FILE_SIZE_MB` and `LOG_BACKUP_COUNT` override single fields
        of the `logging` section.

        Args:
            **kwargs: Additional configuration overrides
        """
        if "plaid" not in kwargs:
            client_id = os.getenv("PLAID_CLIENT_ID")
            secret = os.getenv("PLAID_SECRET")
            env = os.getenv("PLAID_ENV", "sandbox")

            if client_id and secret:
                plaid_config: dict[str, Any] = {
                    "client_id": client_id,
                    "secret": secret,
                }
                if env in ("sandbox", "development", "production"):
                    plaid_config["environment"] = env
                kwargs["plaid"] = PlaidConfig(**plaid_config)

        if "logging" not in kwargs:
            legacy_logging = {
                field: value
                for field, var in LEGACY_LOGGING_VARS.items()
                if (value := os.getenv(var))
            }
            if "level" in legacy_logging:
                legacy_logging["level"] = legacy_logging["level"].upper()
            if legacy_logging:
                # A plain dict is merged field by field with BANKSYNC_LOGGING__*
                kwargs["logging"] = legacy_logging

        super().__init__(**kwargs)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: Any,
        env_settings: Any,
        dotenv_settings: Any,
        file_secret_settings: Any,
    ) -> tuple[Any, ...]:
        """Load the profile-specific env file instead of the default one."""
        init_dict = init_settings.init_kwargs if init_settings else {}
        profile = init_dict.get("profile", "default")  # type: ignore[reportUnknownMemberType]

        profile_env_file = Path(f".env.{profile}")
        env_file = str(profile_env_file) if profile_env_file.exists() else ".env"

        from pydantic_settings import DotEnvSettingsSource

        custom_dotenv = DotEnvSettingsSource(
            settings_cls,
            env_file=env_file,
            env_file_encoding="utf-8",
        )

        return (
            init_settings,
            env_settings,
            custom_dotenv,
            file_secret_settings,
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="BANKSYNC_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    def create_directories(self) -> None:
        """Create necessary directories for the application."""
        directories = [
            self.database.path.parent,
            self.data.raw_data_path,
            self.logging.log_file_path.parent,
        ]
        for directory in directories:
            directory.mkdir(parents=True, exist_ok=True)

    def validate_required_credentials(self) -> None:
        """Validate that required credentials are present."""
        errors: list[str] = []

        if not self.plaid.client_id:
            errors.append("PLAID_CLIENT_ID is required")
        if not self.plaid.secret:
            errors.append("PLAID_SECRET is required")

        if errors:
            raise ValueError(f"Missing required configuration: {', '.join(errors)}")


_settings_cache: dict[str, BankSyncSettings] = {}
_current_profile: str = "default"


def get_settings(profile: str | None = None) -> BankSyncSettings:
    """Get the settings instance for the specified profile.

    Settings are loaded once per profile and cached.

    Args:
        profile: Profile name. Defaults to the current profile.

    Returns:
        BankSyncSettings: The configuration instance for the profile

    Raises:
        ValueError: If required configuration is missing or invalid
    """
    if profile is None:
        profile = _current_profile

    if profile in _settings_cache:
        return _settings_cache[profile]

    try:
        settings = BankSyncSettings(profile=profile)
        settings.validate_required_credentials()

        if settings.database.create_dirs:
            settings.create_directories()

        _settings_cache[profile] = settings
        return settings

    except Exception as e:
        raise ValueError(f"Configuration error for profile '{profile}': {e}") from e


def set_current_profile(profile: str) -> None:
    """Set the current active profile.

    Raises:
        ValueError: If profile name contains invalid characters
    """
    global _current_profile
    _current_profile = validate_profile_name(profile)


def get_current_profile() -> str:
    """Get the current active profile name."""
    return _current_profile


def reload_settings(profile: str | None = None) -> BankSyncSettings:
    """Reload settings from environment variables.

    Args:
        profile: Profile to reload. If None, reloads current profile.

    Returns:
        BankSyncSettings: The reloaded configuration instance
    """
    if profile is None:
        profile = _current_profile

    _settings_cache.pop(profile, None)
    return get_settings(profile)


def clear_settings_cache() -> None:
    """Drop every cached settings instance."""
    _settings_cache.clear()


def get_sync_config() -> SyncConfig:
    """Get the sync configuration for the current profile."""
    return get_settings().sync


def get_logging_config(profile: str | None = None) -> LoggingConfig:
    """Get the logging configuration for a profile.

    Unlike :func:`get_settings` this does not require Plaid credentials, so
    logging can be set up before credentials are checked.

    Raises:
        ValueError: If a logging setting is invalid
    """
    if profile is None:
        profile = _current_profile

    if profile in _settings_cache:
        return _settings_cache[profile].logging
    return BankSyncSettings(profile=profile).logging
