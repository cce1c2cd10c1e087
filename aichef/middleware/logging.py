"""Request/response logging middleware."""

import logging
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from aichef.core.context import generate_request_id, set_request_id

logger = logging.getLogger(__name__)

# Query keys whose values never reach the logs.
_SENSITIVE_KEYS = ("image", "api_key", "token", "secret", "password")


def _masked_query(request: Request) -> dict:
    masked = {}
    for key, value in request.query_params.items():
        if any(s in key.lower() for s in _SENSITIVE_KEYS):
            masked[key] = "***"
        else:
            masked[key] = value[:200]
    return masked


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request and response with timing and a request id.

    Bodies are not logged: they may carry base64 images several MB long.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        set_request_id(request_id)
        request.state.request_id = request_id

        start_time = time.perf_counter()
        method = request.method
        path = request.url.path

        logger.info(
            f"API Request: {method} {path}",
            extra={
                "request_id": request_id,
                "method": method,
                "path": path,
                "query": _masked_query(request),
                "client_ip": request.client.host if request.client else None,
                "content_length": request.headers.get("content-length"),
            },
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                f"API Error: {method} {path} - {e}",
                extra={
                    "request_id": request_id,
                    "method": method,
                    "path": path,
                    "process_time_ms": round((time.perf_counter() - start_time) * 1000, 2),
                },
                exc_info=True,
            )
            raise

        logger.info(
            f"API Response: {method} {path} - {response.status_code}",
            extra={
                "request_id": request_id,
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "process_time_ms": round((time.perf_counter() - start_time) * 1000, 2),
            },
        )

        response.headers["X-Request-ID"] = request_id
        return response
