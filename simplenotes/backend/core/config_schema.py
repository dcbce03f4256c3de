"""
Configuration Schemas.

One pydantic model per file in config/settings/, composed into AppConfig:

    application.yaml -> AppConfig.application  (ApplicationSchema)
    database.yaml    -> AppConfig.database     (DatabaseSchema)
    logging.yaml     -> AppConfig.logging      (LoggingSchema)
    features.yaml    -> AppConfig.features     (FeaturesSchema)

Every model forbids unknown keys, so a typo in YAML fails at startup.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class Strict(BaseModel):
    model_config = ConfigDict(extra="forbid")


# application.yaml

class ServerSchema(Strict):
    host: str
    port: int = Field(gt=0, lt=65536)


class ApplicationSchema(Strict):
    name: str
    version: str
    description: str
    environment: str
    debug: bool
    api_prefix: str = Field(pattern=r"^/")
    server: ServerSchema
    cors_origins: list[str]
    client_timeout_seconds: float = Field(gt=0)


# database.yaml

class SupervisorSchema(Strict):
    """ConnectionSupervisor tuning."""

    probe_query: str = "SELECT NOW()"
    probe_timeout_seconds: float = Field(default=5.0, gt=0)
    probe_interval_seconds: float = Field(default=30.0, gt=0)
    failure_threshold: int = Field(default=3, ge=1)


class ExecutorSchema(Strict):
    """QueryExecutor tuning."""

    max_retries: int = Field(default=1, ge=0)
    retry_delay_ms: int = Field(default=500, ge=0)


class DatabaseSchema(Strict):
    pool_size: int = Field(ge=1)
    max_overflow: int = Field(ge=0)
    pool_timeout: int
    pool_recycle: int
    connect_timeout: int
    command_timeout: int
    keepalive_idle_seconds: int
    ssl_mode: Literal["require", "verify-full", "disable"]
    echo: bool
    auto_create_schema: bool
    supervisor: SupervisorSchema
    executor: ExecutorSchema


# logging.yaml

class LoggingSchema(Strict):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "console"] = "console"


# features.yaml

class FeaturesSchema(Strict):
    api_detailed_errors: bool = False
    api_request_logging: bool = True


class AppConfig(Strict):
    """The four settings files, validated together."""

    application: ApplicationSchema
    database: DatabaseSchema
    logging: LoggingSchema
    features: FeaturesSchema
