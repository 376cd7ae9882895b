"""
Error handling middleware mapping domain errors to HTTP responses.
"""

import logging
import traceback
from datetime import datetime, timezone
from uuid import uuid4

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from sqlalchemy.exc import IntegrityError, OperationalError, TimeoutError as SQLTimeoutError

from ..utils.exceptions import (
    PlatformError,
    ErrorCode,
    ConflictError,
    ConcurrencyError,
    ExternalServiceError,
)

logger = logging.getLogger(__name__)


STATUS_MAP = {
    ErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorCode.INVALID_STATE: status.HTTP_400_BAD_REQUEST,
    ErrorCode.EVENT_NOT_BOOKABLE: status.HTTP_400_BAD_REQUEST,
    ErrorCode.EVENT_FULL: status.HTTP_400_BAD_REQUEST,
    ErrorCode.EVENT_NOT_FULL: status.HTTP_400_BAD_REQUEST,
    ErrorCode.CANCELLATION_WINDOW_CLOSED: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INSUFFICIENT_POINTS: status.HTTP_400_BAD_REQUEST,
    ErrorCode.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.DUPLICATE_BOOKING: status.HTTP_409_CONFLICT,
    ErrorCode.ALREADY_ON_WAITLIST: status.HTTP_409_CONFLICT,
    ErrorCode.PENDING_PAYOUT_EXISTS: status.HTTP_409_CONFLICT,
    ErrorCode.PRODUCT_ALREADY_OWNED: status.HTTP_409_CONFLICT,
    ErrorCode.CONCURRENCY_CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.EXTERNAL_SERVICE_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_code_for(exc: PlatformError) -> int:
    """Map error codes to HTTP status codes."""
    return STATUS_MAP.get(exc.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Middleware for error handling and response formatting."""

    def __init__(self, app, debug: bool = False):
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next):
        """Process request and handle any exceptions."""
        try:
            return await call_next(request)
        except Exception as exc:
            return self._handle_exception(request, exc, str(uuid4()))

    def _handle_exception(self, request: Request, exc: Exception, error_id: str) -> JSONResponse:
        self._log_error(request, exc, error_id)

        if isinstance(exc, PlatformError):
            return self._render(exc, error_id, status_code_for(exc))
        elif isinstance(exc, IntegrityError):
            # Constraint races that slipped past the service checks
            return self._render(
                ConflictError("The request conflicts with the current state of the resource."),
                error_id,
                status.HTTP_409_CONFLICT,
            )
        elif isinstance(exc, (OperationalError, SQLTimeoutError)):
            return self._render(
                ExternalServiceError("database", "Database service temporarily unavailable"),
                error_id,
                status.HTTP_503_SERVICE_UNAVAILABLE,
                headers={"Retry-After": "30"},
            )
        return self._handle_unexpected_error(exc, error_id)

    def _render(self, exc: PlatformError, error_id: str, status_code: int, headers: dict = None) -> JSONResponse:
        response_headers = dict(headers or {})
        if exc.retry_after:
            response_headers["Retry-After"] = str(exc.retry_after)

        return JSONResponse(
            status_code=status_code,
            content={
                "error": exc.to_dict(),
                "error_id": error_id,
                "timestamp": self._get_timestamp()
            },
            headers=response_headers
        )

    def _handle_unexpected_error(self, exc: Exception, error_id: str) -> JSONResponse:
        platform_error = PlatformError(
            "An unexpected error occurred",
            error_code=ErrorCode.INTERNAL_ERROR,
            details={"error_type": type(exc).__name__} if self.debug else None
        )

        content = {
            "error": platform_error.to_dict(),
            "error_id": error_id,
            "timestamp": self._get_timestamp()
        }
        if self.debug:
            content["debug"] = {
                "exception": str(exc),
                "traceback": traceback.format_exc()
            }

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=content
        )

    def _log_error(self, request: Request, exc: Exception, error_id: str):
        context = {
            "error_id": error_id,
            "method": request.method,
            "path": request.url.path,
        }

        if isinstance(exc, PlatformError):
            context["error_code"] = exc.error_code.value
            context["details"] = exc.details
            if isinstance(exc, ConcurrencyError):
                logger.warning(f"Concurrency conflict [{error_id}]: {exc.message}", extra=context)
            elif status_code_for(exc) < 500:
                logger.warning(f"Client error [{error_id}]: {exc.message}", extra=context)
            else:
                logger.error(f"System error [{error_id}]: {exc.message}", extra=context)
        elif isinstance(exc, IntegrityError):
            logger.warning(f"Integrity conflict [{error_id}]: {exc.orig}", extra=context)
        else:
            context["error_type"] = type(exc).__name__
            logger.error(f"Unexpected error [{error_id}]: {exc}", extra=context, exc_info=exc)

    def _get_timestamp(self) -> str:
        return datetime.now(timezone.utc).isoformat()
