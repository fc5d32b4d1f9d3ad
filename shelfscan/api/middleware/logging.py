"""
Request/Response logging middleware.

Provides logging for all API requests with:
- Request timing and slow-request flagging
- Correlation IDs for tracing
- Header redaction for sensitive values
"""

import sys
import time
import uuid
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Set

from fastapi import FastAPI, Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

# Context variable for request ID (accessible throughout request lifecycle)
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


@dataclass
class LoggingConfig:
    """Configuration for request logging."""

    enabled: bool = True

    # Paths to exclude from logging
    excluded_paths: Set[str] = field(default_factory=lambda: {
        "/health",
        "/favicon.ico",
    })

    # Headers to exclude from logging (sensitive)
    excluded_headers: Set[str] = field(default_factory=lambda: {
        "authorization",
        "x-api-key",
        "cookie",
        "set-cookie",
    })

    # Slow request threshold (seconds); a full scan takes tens of seconds
    slow_request_threshold: float = 60.0

    # Header name for request ID
    request_id_header: str = "X-Request-ID"


def get_request_id() -> str:
    """Get current request ID from context."""
    return request_id_var.get()


def _add_request_id(record: dict) -> None:
    record["extra"].setdefault("request_id", request_id_var.get())


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    FastAPI middleware for request/response logging.
    """

    def __init__(self, app: FastAPI, config: Optional[LoggingConfig] = None):
        super().__init__(app)
        self.config = config or LoggingConfig()

    def _should_log(self, path: str) -> bool:
        """Check if path should be logged."""
        return path not in self.config.excluded_paths

    def _filter_headers(self, headers: Dict[str, str]) -> Dict[str, str]:
        """Filter sensitive headers from logging."""
        return {
            key: value if key.lower() not in self.config.excluded_headers else "[REDACTED]"
            for key, value in headers.items()
        }

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request with logging."""
        request_id = request.headers.get(
            self.config.request_id_header,
            str(uuid.uuid4())[:8]
        )
        request_id_var.set(request_id)

        if not self.config.enabled or not self._should_log(request.url.path):
            response = await call_next(request)
            response.headers[self.config.request_id_header] = request_id
            return response

        start_time = time.time()
        response = await call_next(request)
        duration = time.time() - start_time
        duration_ms = round(duration * 1000, 2)

        response.headers[self.config.request_id_header] = request_id

        if response.status_code >= 500:
            level = "ERROR"
        elif response.status_code >= 400 or duration > self.config.slow_request_threshold:
            level = "WARNING"
        else:
            level = "INFO"

        message = f"{request.method} {request.url.path} -> {response.status_code} ({duration_ms}ms)"
        if duration > self.config.slow_request_threshold:
            message = f"[SLOW] {message}"

        logger.bind(
            request_id=request_id,
            duration_ms=duration_ms,
            client_ip=request.client.host if request.client else None,
            headers=self._filter_headers(dict(request.headers)),
        ).log(level, message)

        return response


def setup_logging(
    app: FastAPI,
    config: Optional[LoggingConfig] = None,
    structured: bool = True,
    level: str = "INFO",
) -> None:
    """
    Configure the loguru sink and add the request logging middleware.

    Args:
        app: FastAPI application instance.
        config: Logging configuration.
        structured: Emit JSON lines instead of human-readable text.
        level: Minimum log level.
    """
    if config is None:
        config = LoggingConfig()

    logger.configure(patcher=_add_request_id)
    if structured:
        logger.remove()
        logger.add(sys.stderr, level=level, serialize=True)

    app.add_middleware(RequestLoggingMiddleware, config=config)
