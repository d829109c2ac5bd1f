"""
Environment-derived configuration for the exporter.

Built once at startup and passed to the components that need it.
"""

import os
from typing import Mapping, Optional

from psycopg.conninfo import make_conninfo
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from contracts.constants import (
    DEFAULT_DB_HOST,
    DEFAULT_DB_PORT,
    DEFAULT_EXPORT_INTERVAL_SECONDS,
    MIN_EXPORT_INTERVAL_SECONDS,
    METRIC_TYPE_BACKLOG_COUNT,
    METRIC_TYPE_PROCESSED_COUNT,
)
from exporter.errors import ConfigError

# Environment variable -> config field
ENV_FIELDS = {
    "GOOGLE_CLOUD_PROJECT": "project_id",
    "DB_USER": "db_user",
    "DB_PASS": "db_password",
    "DB_HOST": "db_host",
    "DB_NAME": "db_name",
    "DB_PORT": "db_port",
    "DB_POOL_MIN_SIZE": "pool_min_size",
    "DB_POOL_MAX_SIZE": "pool_max_size",
    "DB_POOL_TIMEOUT": "pool_timeout",
    "EXPORT_INTERVAL_SECONDS": "interval_seconds",
    "BACKLOG_METRIC_TYPE": "backlog_metric_type",
    "PROCESSED_METRIC_TYPE": "processed_metric_type",
    "METRICS_PORT": "metrics_port",
    "LOG_LEVEL": "log_level",
}


class ExporterConfig(BaseModel):
    """Settings for one exporter process."""
    model_config = ConfigDict(frozen=True)

    project_id: str = Field(min_length=1)

    db_user: str = Field(min_length=1)
    db_password: str = Field(default="", repr=False)
    db_host: str = DEFAULT_DB_HOST
    db_name: str = Field(min_length=1)
    db_port: int = Field(default=DEFAULT_DB_PORT, ge=1, le=65535)

    pool_min_size: int = Field(default=1, ge=1)
    pool_max_size: int = Field(default=4, ge=1)
    pool_timeout: float = Field(default=30.0, gt=0)

    interval_seconds: int = Field(
        default=DEFAULT_EXPORT_INTERVAL_SECONDS, ge=MIN_EXPORT_INTERVAL_SECONDS
    )
    backlog_metric_type: str = METRIC_TYPE_BACKLOG_COUNT
    processed_metric_type: str = METRIC_TYPE_PROCESSED_COUNT

    metrics_port: int = Field(default=8080, ge=0, le=65535)
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level {v!r}")
        return level

    @field_validator("pool_max_size")
    @classmethod
    def validate_pool_bounds(cls, v: int, info) -> int:
        min_size = info.data.get("pool_min_size")
        if min_size is not None and v < min_size:
            raise ValueError(f"must be >= DB_POOL_MIN_SIZE ({min_size})")
        return v

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ExporterConfig":
        """
        Load configuration from environment variables.

        Empty strings count as unset so defaults apply.

        Raises:
            ConfigError: listing every missing or malformed variable.
        """
        environ = os.environ if environ is None else environ
        values = {
            field: environ[var]
            for var, field in ENV_FIELDS.items()
            if environ.get(var, "") != ""
        }
        try:
            return cls(**values)
        except ValidationError as e:
            field_to_env = {field: var for var, field in ENV_FIELDS.items()}
            problems = []
            for err in e.errors():
                field = err["loc"][0] if err["loc"] else ""
                problems.append(f"{field_to_env.get(field, field)}: {err['msg']}")
            raise ConfigError("Invalid configuration: " + "; ".join(problems)) from e

    @property
    def conninfo(self) -> str:
        """libpq connection string for the order database."""
        return make_conninfo(
            host=self.db_host,
            port=self.db_port,
            dbname=self.db_name,
            user=self.db_user,
            password=self.db_password,
        )

    @property
    def metric_types(self) -> tuple[str, str]:
        return self.backlog_metric_type, self.processed_metric_type
