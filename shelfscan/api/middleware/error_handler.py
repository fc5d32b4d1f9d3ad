"""
Error Handling for ShelfScan

Centralized error handling:
- Structured error responses
- Logging of errors
- Exception translation (including upstream OpenAI failures)
"""

import traceback
from datetime import datetime, timezone
from typing import Optional

import openai
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from shelfscan.exceptions import ShelfScanException


API_KEY_MESSAGE = "OpenAI API key is missing or invalid. Check server configuration."
QUOTA_MESSAGE = "OpenAI quota exceeded. Please check your billing."


def create_error_response(
    error: str,
    code: str,
    status_code: int,
    detail: Optional[str] = None,
) -> JSONResponse:
    """Create standardized error response."""
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "code": code,
            "detail": detail,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


def describe_upstream_error(exc: BaseException) -> Optional[str]:
    """User-facing message for vision-service auth/billing failures, else None."""
    if isinstance(exc, openai.AuthenticationError):
        return API_KEY_MESSAGE
    if isinstance(exc, openai.RateLimitError) and getattr(exc, "code", None) == "insufficient_quota":
        return QUOTA_MESSAGE
    return None


def setup_exception_handlers(app):
    """Register exception handlers with FastAPI app."""

    @app.exception_handler(ShelfScanException)
    async def shelfscan_exception_handler(request: Request, exc: ShelfScanException):
        logger.warning(f"ShelfScan error: {exc.code} - {exc.message} ({request.url.path})")

        upstream = describe_upstream_error(getattr(exc, "cause", None))
        if upstream:
            return create_error_response(
                error=upstream,
                code="UPSTREAM_CONFIGURATION_ERROR",
                status_code=500,
                detail=exc.message,
            )

        return create_error_response(
            error=exc.message,
            code=exc.code,
            status_code=exc.status_code,
            detail=exc.detail,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")
        return create_error_response(
            error="Validation Error",
            code="VALIDATION_ERROR",
            status_code=400,
            detail=str(exc.errors()),
        )

    @app.exception_handler(openai.APIError)
    async def openai_exception_handler(request: Request, exc: openai.APIError):
        logger.error(f"Vision service error: {type(exc).__name__}: {exc}")
        return create_error_response(
            error=describe_upstream_error(exc) or "Vision service error",
            code="EXTERNAL_SERVICE_ERROR",
            status_code=500,
            detail=str(exc),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled exception: {type(exc).__name__}: {exc}\n{traceback.format_exc()}"
        )
        return create_error_response(
            error="Internal Server Error",
            code="INTERNAL_ERROR",
            status_code=500,
            detail="An unexpected error occurred",
        )
