"""Correlation ids and request timing.

Every request gets a correlation id, taken from the ``X-Correlation-ID``
header or generated. It is stored in a context variable for tracing, bound to
every log line of the request and echoed in the response headers. Each
request is logged once on completion with its status and duration.
"""

import time

from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from taxregistry.api.constants import CORRELATION_ID_HEADER, UNLOGGED_PATHS
from taxregistry.core.constants import MILLISECONDS_PER_SECOND
from taxregistry.core.context import (
    generate_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Sets up the correlation id and logs each request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        correlation_id = (
            request.headers.get(CORRELATION_ID_HEADER) or generate_correlation_id()
        )
        token = set_correlation_id(correlation_id)
        start = time.perf_counter()

        try:
            with logger.contextualize(correlation_id=correlation_id):
                response = await call_next(request)
                response.headers[CORRELATION_ID_HEADER] = correlation_id

                if request.url.path not in UNLOGGED_PATHS:
                    duration_ms = round(
                        (time.perf_counter() - start) * MILLISECONDS_PER_SECOND, 2
                    )
                    logger.info(
                        "{} {} -> {}",
                        request.method,
                        request.url.path,
                        response.status_code,
                        method=request.method,
                        path=request.url.path,
                        status_code=response.status_code,
                        duration_ms=duration_ms,
                    )
                return response
        finally:
            reset_correlation_id(token)
