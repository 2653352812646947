"""
Request Logging Middleware

Request tracing for the feed API.

Features:
- Reuses an incoming X-Request-ID header, or generates a short request_id
- Binds request_id to the structlog context so every log line of the
  request (feed composition, explore paging, save toggles) carries it
- Logs one line per request with method, path, status code and duration
- Echoes the request_id back in the response headers
"""

import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from kivaw_feed.utils.logging_config import bind_context, clear_context, get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Longer incoming ids are replaced rather than logged
_MAX_REQUEST_ID_LENGTH = 64


def _request_id(request: Request) -> str:
    """
    Request id for this request.

    Args:
        request: The incoming request.

    Returns:
        The client's X-Request-ID when present and at most 64 characters,
        otherwise the first 8 characters of a fresh uuid4.
    """
    incoming = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
    if incoming and len(incoming) <= _MAX_REQUEST_ID_LENGTH:
        return incoming
    return str(uuid.uuid4())[:8]


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware that adds request tracing and logging to all HTTP requests.

    For each request:
    1. Picks the request_id (client supplied or generated)
    2. Binds request_id to the structlog context
    3. Logs request start at debug level
    4. Processes the request
    5. Logs completion with status and duration, warning level for 4xx/5xx
    6. Clears the context so it does not leak into the next request
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process the request with logging and tracing."""
        # Resolve and bind the request id for all logs of this request
        request_id = _request_id(request)
        bind_context(request_id=request_id)

        method = request.method
        path = request.url.path

        # Debug level, the completion line carries the useful fields
        logger.debug(
            "Request started",
            method=method,
            path=path,
            client_ip=request.client.host if request.client else "unknown",
        )

        start_time = time.perf_counter()
        try:
            response = await call_next(request)

            duration_ms = (time.perf_counter() - start_time) * 1000

            # Upstream failures surface as 502, log them as warnings
            log_method = logger.info if response.status_code < 400 else logger.warning
            log_method(
                "Request completed",
                method=method,
                path=path,
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
            )

            # Client-side tracing
            response.headers[REQUEST_ID_HEADER] = request_id
            return response

        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.exception(
                "Request failed with exception",
                method=method,
                path=path,
                duration_ms=round(duration_ms, 2),
                error=str(e),
            )
            raise

        finally:
            clear_context()
