"""Configuration management using Pydantic Settings."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PoolSettings(BaseSettings):
    """Memory pool configuration.

    Controls the capacity of the pool the server creates at startup.
    """

    model_config = SettingsConfigDict(
        env_prefix="POOLSIM_POOL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    capacity: int = Field(
        default=1024,
        ge=1,
        le=1 << 30,
        description="Pool buffer size in bytes",
    )


class ServerSettings(BaseSettings):
    """HTTP server configuration."""

    model_config = SettingsConfigDict(
        env_prefix="POOLSIM_SERVER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(
        default="127.0.0.1",
        description="Server bind address",
    )

    port: int = Field(
        default=8000,
        ge=1024,
        le=65535,
        description="Server port",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    json_logs: bool = Field(
        default=True,
        description="Render logs as JSON (False = colored console output)",
    )


class WorkloadSettings(BaseSettings):
    """Workload file discovery configuration."""

    model_config = SettingsConfigDict(
        env_prefix="POOLSIM_WORKLOAD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    directory: str = Field(
        default="workloads",
        description="Directory scanned for *.yaml workload files",
    )


class Settings(BaseSettings):
    """Root settings container.

    Aggregates all subsettings into a single object.

    Example:
        >>> settings = Settings()
        >>> settings.pool.capacity
        1024
        >>> settings.workload.directory
        'workloads'
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    pool: PoolSettings = Field(default_factory=PoolSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    workload: WorkloadSettings = Field(default_factory=WorkloadSettings)


# Singleton instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create settings singleton.

    Loads configuration from environment variables and .env file.

    Returns:
        Settings instance.
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Reload settings (for testing).

    Forces reload of configuration from environment.

    Returns:
        Fresh Settings instance.
    """
    global _settings
    _settings = Settings()
    return _settings
