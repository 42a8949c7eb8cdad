"""Error response schema for exceptions that escape an operation.

Record operations report expected failures in their own result body. This
schema covers the rest: request validation failures, errors while rendering
documents and unexpected exceptions.
"""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field


class ServiceInfo(BaseModel):
    """Service information for error context."""

    name: str = Field(..., description="Name of the service", examples=["Tax Registry"])
    version: str = Field(..., description="Version of the service", examples=["0.1.0"])
    environment: str = Field(
        ...,
        description="Environment where the service is running",
        examples=["development", "production"],
    )


class ErrorResponse(BaseModel):
    """Standardized error response model for API errors."""

    error_code: str = Field(
        ...,
        description="Error kind identifying the error type",
        examples=["VALIDATION_ERROR", "NOT_FOUND", "MALFORMED_ID"],
    )

    message: str = Field(
        ...,
        description="Human-readable error message",
        examples=["Taxpayer record not found", "Invalid taxpayer ID format"],
    )

    details: dict[str, Any] | None = Field(
        default=None,
        description="Field-path keyed error messages",
        examples=[{"incomeLedger[0].year": ["Year must be between 2000 and 2026"]}],
    )

    correlation_id: str | None = Field(
        default=None,
        description="Request correlation ID for tracing and debugging",
        examples=["550e8400-e29b-41d4-a716-446655440000"],
    )

    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Timestamp when the error occurred (with timezone)",
    )

    severity: str | None = Field(
        default=None,
        description="Error severity level (LOW, MEDIUM, HIGH, CRITICAL)",
        examples=["LOW", "HIGH"],
    )

    service_info: ServiceInfo | None = Field(
        default=None,
        description="Information about the service that generated the error",
    )

    debug_info: dict[str, Any] | None = Field(
        default=None,
        description="Debug information (only populated in development environments)",
    )
