"""
Request logging middleware.
"""

import logging
import time
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from ..utils.logging_config import request_id_var

logger = logging.getLogger(__name__)

QUIET_PATHS = frozenset({"/", "/health", "/docs", "/redoc", "/openapi.json"})
SLOW_REQUEST_SECONDS = 2.0


class LoggingMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id and log how it went."""

    def __init__(self, app, log_requests: bool = True, log_responses: bool = True):
        super().__init__(app)
        self.log_requests = log_requests
        self.log_responses = log_responses

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or uuid4().hex
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        started = time.perf_counter()
        try:
            if self.log_requests:
                self._log_request(request)
            try:
                response = await call_next(request)
            except Exception:
                logger.exception(
                    "Unhandled exception for %s %s",
                    request.method,
                    request.url.path,
                    extra={"elapsed": time.perf_counter() - started},
                )
                raise

            elapsed = time.perf_counter() - started
            response.headers["X-Request-ID"] = request_id
            response.headers["X-Process-Time"] = f"{elapsed:.4f}"
            if self.log_responses:
                self._log_response(request, response, elapsed)
            return response
        finally:
            request_id_var.reset(token)

    def _log_request(self, request: Request) -> None:
        level = logging.DEBUG if request.url.path in QUIET_PATHS else logging.INFO
        logger.log(
            level,
            "%s %s",
            request.method,
            request.url.path,
            extra={
                "query_params": dict(request.query_params),
                "client_ip": client_ip(request),
                "authenticated": "authorization" in request.headers,
            },
        )

    def _log_response(self, request: Request, response: Response, elapsed: float) -> None:
        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400 or elapsed > SLOW_REQUEST_SECONDS:
            level = logging.WARNING
        elif request.url.path in QUIET_PATHS:
            level = logging.DEBUG
        else:
            level = logging.INFO
        logger.log(
            level,
            "%s %s -> %d in %.4fs",
            request.method,
            request.url.path,
            response.status_code,
            elapsed,
            extra={"status_code": response.status_code, "elapsed": elapsed},
        )


def client_ip(request: Request) -> str:
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else "unknown"
