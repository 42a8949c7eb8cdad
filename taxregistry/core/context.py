"""Request-scoped correlation id storage.

The correlation id is set once per HTTP request by the request context
middleware and read by logging and tracing. Operations called outside a
request (scripts, tests) simply see ``None``.
"""

import uuid
from contextvars import ContextVar, Token

_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str | None:
    """Return the correlation id of the current request, if any."""
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: str | None) -> Token[str | None]:
    """Set the correlation id for the current context.

    Returns:
        Token[str | None]: Token that restores the previous value on reset.
    """
    return _correlation_id_var.set(correlation_id)


def reset_correlation_id(token: Token[str | None]) -> None:
    """Restore the correlation id that was active before ``set_correlation_id``."""
    _correlation_id_var.reset(token)


def generate_correlation_id() -> str:
    """Generate a new correlation id (UUID4 string)."""
    return str(uuid.uuid4())
