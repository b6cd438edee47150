"""Pydantic configuration schema for the email categorizer.

This module defines the configuration schema that mirrors config.yaml structure.
Every section has defaults, so an empty file (or no file at all) is valid.

Usage:
    from categorizer.config_schema import AppConfig

    config = AppConfig(**yaml_data)
"""

from typing import Literal

from pydantic import BaseModel, Field, field_validator

# Current schema version - increment when adding new required fields
CURRENT_SCHEMA_VERSION = 1


class ServiceConfig(BaseModel):
    """Remote generation service configuration."""

    endpoint: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta/models",
        description="Base URL of the models collection",
    )
    model: str = Field(
        default="gemini-2.5-flash-preview-05-20",
        description="Model used for classification",
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Per-attempt HTTP timeout (seconds)",
    )

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, v: str) -> str:
        """Require an http(s) URL and drop any trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("Service endpoint must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("model")
    @classmethod
    def validate_model(cls, v: str) -> str:
        """Ensure the model name is usable in a URL path."""
        if not v or not v.strip():
            raise ValueError("Model name cannot be empty")
        if "/" in v or ":" in v:
            raise ValueError("Model name cannot contain '/' or ':'")
        return v.strip()


class RetryConfig(BaseModel):
    """Retry and backoff policy for transient failures."""

    max_attempts: int = Field(
        default=5,
        ge=1,
        le=10,
        description="Maximum network attempts per classification",
    )
    base_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        le=60,
        description="Delay before the first retry; doubles on each retry",
    )
    max_jitter_seconds: float = Field(
        default=1.0,
        ge=0,
        le=10,
        description="Upper bound of the random jitter added to each delay",
    )


class LoggingConfig(BaseModel):
    """Logging output configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Minimum log level (--debug forces DEBUG)",
    )
    json_output: bool = Field(
        default=False,
        description="Emit JSON logs instead of human-readable console output",
    )


class AppConfig(BaseModel):
    """Root configuration model."""

    schema_version: int = Field(default=CURRENT_SCHEMA_VERSION, ge=1)
    service: ServiceConfig = Field(default_factory=ServiceConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
