"""
Configuration Management.

Loads secrets from config/.env (or HASTILY_* environment variables) and
settings from config/settings/*.yaml.

Secrets (.env / environment):
    HASTILY_API_TOKEN (overrides saved login credentials)

Settings (YAML):
    application.yaml   - App identity, backend endpoints, export defaults
    logging.yaml       - Logging configuration
    concurrency.yaml   - Fan-out limits, thread pool size, retry policy
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from hastily.core.config_schema import (
    ApplicationSchema,
    ConcurrencySchema,
    LoggingSchema,
)
from hastily.core.exceptions import ConfigurationError


def find_project_root() -> Path:
    """Find project root by looking for .project_root marker file."""
    current = Path.cwd()
    while current != current.parent:
        if (current / ".project_root").exists():
            return current
        current = current.parent
    raise RuntimeError("Project root not found. Ensure .project_root file exists.")


def validate_project_root() -> Path:
    """
    Validate that the project root can be found.

    Raises SystemExit with a clear message if .project_root is not found.
    Use this in entry scripts before any configuration loading.
    """
    try:
        return find_project_root()
    except RuntimeError as e:
        raise SystemExit(f"Error: {e}") from e


def load_yaml_config(filename: str) -> dict[str, Any]:
    """Load a YAML configuration file from config/settings/."""
    project_root = find_project_root()
    config_path = project_root / "config" / "settings" / filename

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path) as f:
        return yaml.safe_load(f) or {}


class Settings(BaseSettings):
    """Secrets loaded from config/.env or the environment. Only tokens."""

    api_token: str = ""

    model_config = SettingsConfigDict(
        env_prefix="HASTILY_",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


def _load_validated(schema_cls: type, filename: str) -> Any:
    """Load YAML and validate against schema. Returns typed model instance."""
    raw = load_yaml_config(filename)
    try:
        return schema_cls(**raw)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration in {filename}:\n{e}"
        ) from e


class AppConfig:
    """
    Application configuration loaded from YAML files.

    Each YAML file is validated against its Pydantic schema at load time.
    Properties return typed Pydantic model instances with attribute access.
    """

    def __init__(self) -> None:
        self._application = _load_validated(ApplicationSchema, "application.yaml")
        self._logging = _load_validated(LoggingSchema, "logging.yaml")
        self._concurrency = _load_validated(ConcurrencySchema, "concurrency.yaml")

    @property
    def application(self) -> ApplicationSchema:
        """Application settings."""
        return self._application

    @property
    def logging(self) -> LoggingSchema:
        """Logging settings."""
        return self._logging

    @property
    def concurrency(self) -> ConcurrencySchema:
        """Concurrency settings (fan-out, thread pool, retries)."""
        return self._concurrency


@lru_cache
def get_settings() -> Settings:
    """Get cached secrets instance. Reads config/.env when it exists."""
    env_path = find_project_root() / "config" / ".env"
    if env_path.is_file():
        return Settings(_env_file=str(env_path))
    return Settings()


@lru_cache
def get_app_config() -> AppConfig:
    """Get cached application configuration."""
    return AppConfig()
