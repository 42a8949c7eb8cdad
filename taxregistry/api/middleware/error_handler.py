"""Global exception handlers for the FastAPI application.

Record operations return their own results, so these handlers only see what
escapes an operation: registry errors raised while rendering documents,
request validation failures, HTTP exceptions and bugs.
"""

import traceback

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import Response
from loguru import logger
from starlette.exceptions import HTTPException

from taxregistry.api.constants import (
    ERROR_STATUS_CODES,
    HTTP_500_INTERNAL_SERVER_ERROR,
)
from taxregistry.api.schemas.errors import ErrorResponse, ServiceInfo
from taxregistry.api.utils.responses import ORJSONResponse
from taxregistry.core.config import Settings, get_settings
from taxregistry.core.context import get_correlation_id
from taxregistry.core.exceptions import ErrorKind, TaxRegistryError
from taxregistry.records.validation import format_loc


def get_service_info(settings: Settings) -> ServiceInfo:
    """Create ServiceInfo from application settings."""
    return ServiceInfo(
        name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )


def _settings_for(request: Request) -> Settings:
    settings: Settings | None = getattr(request.app.state, "settings", None)
    return settings or get_settings()


def status_for(kind: ErrorKind) -> int:
    """HTTP status code for an error kind."""
    return ERROR_STATUS_CODES.get(kind, status.HTTP_500_INTERNAL_SERVER_ERROR)


async def taxregistry_error_handler(request: Request, exc: Exception) -> Response:
    """Handle TaxRegistryError exceptions.

    Raises:
        TypeError: If exc is not a TaxRegistryError instance
    """
    if not isinstance(exc, TaxRegistryError):
        raise TypeError(f"Expected TaxRegistryError, got {type(exc).__name__}")

    settings = _settings_for(request)
    status_code = status_for(exc.kind)

    log = logger.error if exc.should_alert else logger.warning
    log(
        "Handling {}: {}",
        type(exc).__name__,
        exc.message,
        error_code=exc.error_code,
        status_code=status_code,
        path=request.url.path,
        method=request.method,
    )

    debug_info = None
    if settings.environment == "development":
        debug_info = {
            "stack_trace": exc.stack_trace,
            "error_context": exc.context,
            "exception_type": type(exc).__name__,
        }
        if exc.cause:
            debug_info["cause"] = {
                "type": type(exc.cause).__name__,
                "message": str(exc.cause),
            }

    error_response = ErrorResponse(
        error_code=exc.error_code,
        message=exc.message,
        details=exc.field_errors(),
        correlation_id=get_correlation_id(),
        severity=exc.severity.value,
        service_info=get_service_info(settings),
        debug_info=debug_info,
    )

    return ORJSONResponse(
        status_code=status_code,
        content=error_response.model_dump(mode="json"),
    )


async def validation_error_handler(request: Request, exc: Exception) -> Response:
    """Handle FastAPI RequestValidationError exceptions.

    Field paths use the same notation as record validation errors.

    Raises:
        TypeError: If exc is not a RequestValidationError instance
    """
    if not isinstance(exc, RequestValidationError):
        raise TypeError(f"Expected RequestValidationError, got {type(exc).__name__}")

    field_errors: dict[str, list[str]] = {}
    for error in exc.errors():
        # Drop the leading "body"/"query"/"path" segment
        loc = tuple(error.get("loc", ()))[1:]
        field_errors.setdefault(format_loc(loc), []).append(
            error.get("msg", "Invalid value")
        )

    logger.warning(
        "Request validation failed",
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        path=request.url.path,
        method=request.method,
        fields=sorted(field_errors),
    )

    error_response = ErrorResponse(
        error_code=ErrorKind.VALIDATION_ERROR.value,
        message="Request validation failed",
        details=field_errors,
        correlation_id=get_correlation_id(),
        severity="LOW",
        service_info=get_service_info(_settings_for(request)),
    )

    return ORJSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_response.model_dump(mode="json"),
    )


async def http_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle Starlette HTTPException.

    Raises:
        TypeError: If exc is not an HTTPException instance
    """
    if not isinstance(exc, HTTPException):
        raise TypeError(f"Expected HTTPException, got {type(exc).__name__}")

    error_code = ErrorKind.INTERNAL_ERROR.value
    severity = "MEDIUM"
    if exc.status_code == status.HTTP_400_BAD_REQUEST:
        error_code = ErrorKind.VALIDATION_ERROR.value
        severity = "LOW"
    elif exc.status_code == status.HTTP_404_NOT_FOUND:
        error_code = ErrorKind.NOT_FOUND.value
        severity = "LOW"
    elif exc.status_code >= HTTP_500_INTERNAL_SERVER_ERROR:
        severity = "HIGH"

    logger.warning(
        "HTTP exception",
        status_code=exc.status_code,
        path=request.url.path,
        method=request.method,
        detail=exc.detail,
    )

    error_response = ErrorResponse(
        error_code=error_code,
        message=str(exc.detail),
        correlation_id=get_correlation_id(),
        severity=severity,
        service_info=get_service_info(_settings_for(request)),
    )

    return ORJSONResponse(
        status_code=exc.status_code,
        content=error_response.model_dump(mode="json"),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle unhandled exceptions, hiding details in production."""
    settings = _settings_for(request)

    logger.opt(exception=exc).error(
        "Unhandled exception: {}",
        type(exc).__name__,
        path=request.url.path,
        method=request.method,
    )

    if settings.environment == "production":
        message = "An internal server error occurred"
        details = None
        debug_info = None
    else:
        message = f"Internal server error: {type(exc).__name__}"
        details = {"error": str(exc), "type": type(exc).__name__}
        debug_info = {
            "stack_trace": traceback.format_tb(exc.__traceback__),
            "exception_type": type(exc).__name__,
        }

    error_response = ErrorResponse(
        error_code=ErrorKind.INTERNAL_ERROR.value,
        message=message,
        details=details,
        correlation_id=get_correlation_id(),
        severity="CRITICAL",
        service_info=get_service_info(settings),
        debug_info=debug_info,
    )

    return ORJSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response.model_dump(mode="json"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application."""
    app.add_exception_handler(TaxRegistryError, taxregistry_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    logger.info("Exception handlers registered")
