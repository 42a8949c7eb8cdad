"""Type aliases for data shapes shared across the application.

All types defined here should be JSON-serializable to support logging,
API responses, and persistence layers.
"""

from collections.abc import Callable
from datetime import datetime
from typing import Any

# JSON-compatible type that represents any valid JSON value
type JsonValue = (
    dict[str, "JsonValue"] | list["JsonValue"] | str | int | float | bool | None
)

# Field-path keyed error messages, e.g. {"incomeLedger[2].year": ["..."]}
type FieldErrors = dict[str, list[str]]

# Context dictionary for error details and debugging information
type ErrorContext = dict[str, Any]

# Source of the current time; always returns a timezone-aware UTC datetime
type Clock = Callable[[], datetime]
