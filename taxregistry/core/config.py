"""Registry configuration loaded from the environment.

Settings are Pydantic Settings models, one nested model per concern (logging,
tracing, database, registry behaviour).

Sources, highest precedence first:
1. Environment variables (nested values use the ``__`` delimiter, e.g.
   ``DATABASE_CONFIG__DATABASE_URL``)
2. .env file in project root
3. Default values in model definitions
4. Environment-based defaults (production vs development)
"""

import os
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SUPPORTED_DATABASE_DRIVERS = ("postgresql+asyncpg://", "sqlite+aiosqlite://")


class LogConfig(BaseModel):
    """Logging configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Minimum level written to the log sinks",
    )
    log_formatter_type: Literal["console", "json"] | None = Field(
        default=None,
        description="console or json; detected from the environment when unset",
    )
    enable_sql_logging: bool = Field(
        default=False,
        description="Log statements slower than slow_query_threshold_ms",
    )
    slow_query_threshold_ms: int = Field(
        default=100,
        gt=0,
        description="Statements at or above this duration are logged as slow",
    )
    sensitive_fields: list[str] = Field(
        default_factory=lambda: [
            "password",
            "token",
            "secret",
            "authorization",
            "tin",
            "phone_no",
            "email",
        ],
        description="Log field names whose values are redacted",
    )


class ObservabilityConfig(BaseModel):
    """Tracing configuration."""

    enable_tracing: bool = Field(
        default=True,
        description="Trace registry operations and requests with OpenTelemetry",
    )
    exporter_type: Literal["console", "otlp", "none"] = Field(
        default="console",
        description="Where finished spans go: the log, an OTLP collector, or nowhere",
    )
    exporter_endpoint: str | None = Field(
        default=None,
        description="OTLP exporter endpoint",
    )
    trace_sample_rate: float = Field(
        default=1.0,
        ge=0.0,
        le=1.0,
        description="Fraction of traces kept",
    )

    @field_validator("exporter_endpoint", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: str | None) -> str | None:
        """Convert empty strings to None for nullable fields."""
        if v == "":
            return None
        return v


class DatabaseConfig(BaseModel):
    """Record store connection and pool settings."""

    database_url: str = Field(
        default=(
            "postgresql+asyncpg://taxregistry:taxregistry_pass"
            "@localhost:5432/taxregistry_db"
        ),
        description="Async URL: PostgreSQL via asyncpg or SQLite via aiosqlite",
    )
    pool_size: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Pooled PostgreSQL connections kept open",
    )
    max_overflow: int = Field(
        default=5,
        ge=0,
        le=50,
        description="Extra connections allowed beyond pool_size under load",
    )
    pool_timeout: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Seconds to wait for a pooled connection",
    )
    pool_pre_ping: bool = Field(
        default=True,
        description="Ping connections on checkout to drop stale ones",
    )
    echo: bool = Field(
        default=False,
        description="Echo every SQL statement, parameters included; local use only",
    )

    @field_validator("database_url", mode="after")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate the database URL uses an async driver."""
        if not v.startswith(SUPPORTED_DATABASE_DRIVERS):
            msg = (
                "Database URL must use an async driver: "
                + " or ".join(SUPPORTED_DATABASE_DRIVERS)
            )
            raise ValueError(msg)
        return v

    @property
    def is_sqlite(self) -> bool:
        """Whether the configured URL points at SQLite."""
        return self.database_url.startswith("sqlite")


class RegistryConfig(BaseModel):
    """Taxpayer registry settings: documents, defaults and paging."""

    public_base_url: str = Field(
        default="http://localhost:8000",
        description="Public base URL embedded in verification links",
    )
    verification_path_template: str = Field(
        default="/verify/{record_id}",
        description="Certificate verification path; must contain {record_id}",
    )
    receipt_path_template: str = Field(
        default="/taxpayer-doc/{record_id}",
        description="Receipt/slip verification path; must contain {record_id}",
    )
    default_revenue: str = Field(default="Presumptive Tax")
    default_platform: str = Field(default="REMITA")
    default_payment_details: str = Field(default="Presumptive Tax")
    default_page_size: int = Field(default=10, ge=1)
    max_page_size: int = Field(default=100, ge=1)
    certificate_years: int = Field(
        default=3,
        ge=1,
        description="Number of ledger years tabulated on a certificate",
    )

    @field_validator("verification_path_template", "receipt_path_template")
    @classmethod
    def require_record_placeholder(cls, v: str) -> str:
        """Path templates must embed the record id."""
        if "{record_id}" not in v:
            msg = "Path template must contain the {record_id} placeholder"
            raise ValueError(msg)
        return v

    @field_validator("public_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the base URL so templates can be appended directly."""
        return v.rstrip("/")


class Settings(BaseSettings):
    """Top-level registry settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        env_nested_delimiter="__",
    )

    # Application settings
    app_name: str = Field(default="Tax Registry", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Environment the application is running in",
    )
    debug: bool = Field(default=True, description="Debug mode flag")

    # API settings
    api_host: str = Field(default="127.0.0.1", description="API host")
    api_port: int = Field(default=8000, description="API port")
    docs_url: str | None = Field(default="/docs", description="Swagger UI URL")
    openapi_url: str | None = Field(
        default="/openapi.json", description="OpenAPI schema URL"
    )

    log_config: LogConfig = Field(
        default_factory=LogConfig, description="Logging configuration"
    )
    observability_config: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig, description="Observability configuration"
    )
    database_config: DatabaseConfig = Field(
        default_factory=DatabaseConfig, description="Database configuration"
    )
    registry_config: RegistryConfig = Field(
        default_factory=RegistryConfig, description="Taxpayer registry configuration"
    )

    def model_post_init(self, __context: object) -> None:
        """Fill in defaults that depend on the environment."""
        super().model_post_init(__context)

        if self.log_config.log_formatter_type is None:
            self.log_config.log_formatter_type = self._detect_formatter()

        if self.environment == "production":
            if self.observability_config.exporter_type == "console":
                self.observability_config.exporter_type = "otlp"
            if self.observability_config.trace_sample_rate == 1.0:
                self.observability_config.trace_sample_rate = 0.1

    def _detect_formatter(self) -> Literal["console", "json"]:
        """Pick the log formatter for the current environment."""
        # Containers on managed platforms want machine-readable logs
        if os.getenv("K_SERVICE") or os.getenv("AWS_EXECUTION_ENV"):
            return "json"
        if self.environment == "development":
            return "console"
        return "json"

    @field_validator("docs_url", "openapi_url", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: str | None) -> str | None:
        """Convert empty strings to None for nullable fields."""
        if v == "":
            return None
        return v


@lru_cache
def get_settings() -> Settings:
    """Settings loaded once per process."""
    return Settings()
