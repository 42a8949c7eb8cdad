"""Structured exception hierarchy for the taxpayer registry.

This module defines the complete error taxonomy used across the registry.
Every failure a caller can observe is one of a closed set of kinds:

- **VALIDATION_ERROR**: one or more field-level violations, keyed by field path
- **DUPLICATE_KEY**: a unique field (certificateNo, reference, idBatch) collides
- **GENERATION_EXHAUSTED**: identifier generation hit its retry cap
- **NOT_FOUND**: no record exists for the given id
- **MALFORMED_ID**: the given id is not a valid record id
- **STORE_UNAVAILABLE**: the persistence layer could not be reached

Storage-specific errors are translated into this taxonomy at the persistence
boundary, so no layer above the record store ever sees driver exceptions.
Each error can render itself as a field error map (``field_errors()``), which
is the shape returned to callers in operation results.
"""

import hashlib
import traceback
from enum import Enum
from typing import Any

from taxregistry.core.types import FieldErrors

FORM_ERROR_KEY = "_form"

# Human-readable labels for the unique fields, keyed by their wire names
UNIQUE_FIELD_LABELS = {
    "certificateNo": "Certificate number",
    "reference": "Reference number",
    "idBatch": "ID/Batch",
}


class ErrorKind(Enum):
    """Closed set of error kinds a registry operation can fail with."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    """Input failed field- or ledger-level validation."""

    DUPLICATE_KEY = "DUPLICATE_KEY"
    """A globally unique field already holds the submitted value."""

    GENERATION_EXHAUSTED = "GENERATION_EXHAUSTED"
    """No unique identifier could be generated within the retry cap."""

    NOT_FOUND = "NOT_FOUND"
    """The requested record does not exist."""

    MALFORMED_ID = "MALFORMED_ID"
    """The supplied record id is not a positive integer."""

    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    """The record store could not be reached."""

    INTERNAL_ERROR = "INTERNAL_ERROR"
    """An unexpected internal error occurred."""


class Severity(Enum):
    """Severity levels used for logging and alerting."""

    LOW = "LOW"
    """Expected errors caused by caller input."""

    MEDIUM = "MEDIUM"
    """Errors that affect a single operation but not the service."""

    HIGH = "HIGH"
    """Errors impacting critical functionality or data integrity."""

    CRITICAL = "CRITICAL"
    """Errors requiring immediate attention."""


class TaxRegistryError(Exception):
    """Base exception class for all registry exceptions.

    Args:
        kind: The error kind from the closed ErrorKind taxonomy
        message: Human-readable error message
        severity: Severity level of the error (defaults to MEDIUM)
        context: Additional context information about the error
        cause: The original exception that caused this error
        field: Wire name of the field the error is about, if any
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        severity: Severity = Severity.MEDIUM,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
        field: str | None = None,
    ) -> None:
        self.kind = kind
        self.message = message
        self.severity = severity
        self.context = context or {}
        self.cause = cause
        self.field = field

        # Capture stack trace at creation time, excluding this frame
        self.stack_trace = traceback.format_stack()[:-1]
        self.fingerprint = self._generate_fingerprint()

        super().__init__(message)
        if cause:
            self.__cause__ = cause

    @property
    def error_code(self) -> str:
        """The string code of this error's kind."""
        return self.kind.value

    def _generate_fingerprint(self) -> str:
        """Generate a fingerprint for error grouping.

        Returns:
            str: A hash of the error type and the frames it was raised from
        """
        max_frames = 5
        relevant_frames = self.stack_trace[-max_frames:]

        fingerprint_data = f"{self.__class__.__name__}:{self.kind.value}"
        for frame in relevant_frames:
            if "site-packages" not in frame and "taxregistry/" in frame:
                lines = frame.strip().split("\n")
                if lines:
                    fingerprint_data += f":{lines[0]}"

        return hashlib.sha256(fingerprint_data.encode()).hexdigest()[:16]

    @property
    def is_expected(self) -> bool:
        """Whether this error occurs during normal operation (LOW/MEDIUM)."""
        return self.severity in (Severity.LOW, Severity.MEDIUM)

    @property
    def should_alert(self) -> bool:
        """Whether this error should trigger alerts (HIGH/CRITICAL)."""
        return self.severity in (Severity.HIGH, Severity.CRITICAL)

    def field_errors(self) -> FieldErrors:
        """Render this error as a field-path keyed error map.

        Returns:
            FieldErrors: The message under the error's field, or under
                ``_form`` when the error is not about a single field.
        """
        return {self.field or FORM_ERROR_KEY: [self.message]}

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.message}"

    def __repr__(self) -> str:
        class_name = self.__class__.__name__
        context_str = f", context={self.context}" if self.context else ""
        return (
            f"{class_name}(kind='{self.kind.value}', "
            f"message='{self.message}', severity={self.severity.value}{context_str})"
        )


class ValidationError(TaxRegistryError):
    """Raised when a submission violates one or more validation rules.

    Unlike the other errors this one carries many messages at once: the
    validator collects every violation before failing.

    Args:
        errors: Field-path keyed error messages
        message: Summary message
    """

    def __init__(
        self,
        errors: FieldErrors,
        message: str = "Validation failed",
        cause: Exception | None = None,
    ) -> None:
        self.errors = {path: list(messages) for path, messages in errors.items()}
        super().__init__(
            ErrorKind.VALIDATION_ERROR,
            message,
            Severity.LOW,
            context={"fields": sorted(self.errors)},
            cause=cause,
        )

    def field_errors(self) -> FieldErrors:
        return {path: list(messages) for path, messages in self.errors.items()}


class DuplicateKeyError(TaxRegistryError):
    """Raised when a unique field already holds the submitted value.

    Args:
        field: Wire name of the colliding field (certificateNo, reference, idBatch)
        cause: The storage error that revealed the collision, if any
    """

    def __init__(self, field: str, cause: Exception | None = None) -> None:
        label = UNIQUE_FIELD_LABELS.get(field, field)
        super().__init__(
            ErrorKind.DUPLICATE_KEY,
            f"{label} already exists",
            Severity.LOW,
            context={"field": field},
            cause=cause,
            field=field,
        )


class GenerationExhaustedError(TaxRegistryError):
    """Raised when no unique identifier was found within the retry cap.

    Args:
        field: Wire name of the identifier field being generated
        attempts: Number of candidates that were tried
    """

    def __init__(self, field: str, attempts: int) -> None:
        label = UNIQUE_FIELD_LABELS.get(field, field)
        super().__init__(
            ErrorKind.GENERATION_EXHAUSTED,
            f"Failed to generate unique {label} after {attempts} attempts",
            Severity.HIGH,
            context={"field": field, "attempts": attempts},
        )
        self.attempts = attempts


class NotFoundError(TaxRegistryError):
    """Raised when no record exists for the given id.

    Args:
        record_id: The id that was looked up
    """

    def __init__(self, record_id: int | str) -> None:
        super().__init__(
            ErrorKind.NOT_FOUND,
            "Taxpayer record not found",
            Severity.LOW,
            context={"record_id": str(record_id)},
        )
        self.record_id = record_id


class MalformedIdError(TaxRegistryError):
    """Raised when a record id is not a positive integer.

    Args:
        raw_id: The id exactly as supplied by the caller
    """

    def __init__(self, raw_id: object) -> None:
        super().__init__(
            ErrorKind.MALFORMED_ID,
            "Invalid taxpayer ID format",
            Severity.LOW,
            context={"record_id": repr(raw_id)},
        )


class StoreUnavailableError(TaxRegistryError):
    """Raised when the record store cannot be reached.

    Args:
        message: Description of the failed operation
        cause: The underlying connectivity error
    """

    def __init__(
        self,
        message: str = "Database connection error. Please try again.",
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            ErrorKind.STORE_UNAVAILABLE,
            message,
            Severity.HIGH,
            cause=cause,
        )
