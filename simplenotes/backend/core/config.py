"""
Configuration Management.

Two sources, both cached after the first read:

Environment (process environment, then config/.env):
    DATABASE_URL        - Postgres connection string; may be absent
    PORT                - HTTP listen port, overrides server.port
    APP_ENV             - Overrides application.environment
    SIMPLENOTES_API_URL - Base URL used by the CLI client

YAML (config/settings/, validated by config_schema.AppConfig):
    application.yaml, database.yaml, logging.yaml, features.yaml

Paths are resolved from the directory holding the ``.project_root`` marker.
This module must not log: logging is configured from it.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from simplenotes.backend.core.config_schema import AppConfig

PROJECT_MARKER = ".project_root"

# AppConfig section -> file under config/settings/
CONFIG_FILES = {
    "application": "application.yaml",
    "database": "database.yaml",
    "logging": "logging.yaml",
    "features": "features.yaml",
}


def find_project_root(start: Path | None = None) -> Path:
    """Walk up from ``start`` (default: cwd) to the directory holding the marker file."""
    here = (start or Path.cwd()).resolve()
    for candidate in (here, *here.parents):
        if (candidate / PROJECT_MARKER).is_file():
            return candidate
    raise RuntimeError(f"Project root not found: no {PROJECT_MARKER} in {here} or above")


def load_yaml_config(filename: str) -> dict[str, Any]:
    """Read one file from config/settings/. An empty file reads as {}."""
    path = find_project_root() / "config" / "settings" / filename
    if not path.is_file():
        raise FileNotFoundError(f"Configuration file not found: {path}")
    return yaml.safe_load(path.read_text(encoding="utf-8")) or {}


def load_app_config() -> AppConfig:
    """
    Read and validate every settings file.

    Raises:
        ValueError: naming the offending file(s), with pydantic's report attached
    """
    raw = {section: load_yaml_config(filename) for section, filename in CONFIG_FILES.items()}
    try:
        return AppConfig.model_validate(raw)
    except ValidationError as e:
        files = sorted({CONFIG_FILES[err["loc"][0]] for err in e.errors() if err["loc"]})
        raise ValueError(f"Invalid configuration in {', '.join(files)}:\n{e}") from e


class Settings(BaseSettings):
    """
    Environment-level settings.

    Every field is optional. A missing DATABASE_URL does not stop the
    process; it surfaces as connection errors on first use.
    """

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    database_url: str | None = None
    port: int | None = None
    app_env: str | None = None
    simplenotes_api_url: str | None = None


@lru_cache
def get_settings() -> Settings:
    return Settings(_env_file=find_project_root() / "config" / ".env")


@lru_cache
def get_app_config() -> AppConfig:
    return load_app_config()


def get_database_url() -> str | None:
    """DATABASE_URL, with an empty value treated as unset."""
    return get_settings().database_url or None


def get_environment() -> str:
    return get_settings().app_env or get_app_config().application.environment


def get_server_port() -> int:
    return get_settings().port or get_app_config().application.server.port


def get_server_base_url() -> tuple[str, float]:
    """
    Where the CLI finds the API, and how long it waits per request.

    SIMPLENOTES_API_URL wins; otherwise the URL is assembled from
    application.yaml and the effective port.
    """
    app = get_app_config().application
    override = get_settings().simplenotes_api_url
    if override:
        base_url = override.rstrip("/")
    else:
        base_url = f"http://{app.server.host}:{get_server_port()}{app.api_prefix}"
    return base_url, app.client_timeout_seconds
