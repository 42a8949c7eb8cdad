"""API-related constants."""

from taxregistry.core.exceptions import ErrorKind

# HTTP Headers
CORRELATION_ID_HEADER = "X-Correlation-ID"

# HTTP status for each error kind
ERROR_STATUS_CODES = {
    ErrorKind.VALIDATION_ERROR: 400,
    ErrorKind.MALFORMED_ID: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.DUPLICATE_KEY: 409,
    ErrorKind.GENERATION_EXHAUSTED: 503,
    ErrorKind.STORE_UNAVAILABLE: 503,
    ErrorKind.INTERNAL_ERROR: 500,
}
HTTP_500_INTERNAL_SERVER_ERROR = 500

# Paths excluded from request logging
UNLOGGED_PATHS = frozenset({"/health"})
