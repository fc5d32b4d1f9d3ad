"""
ShelfScan exception hierarchy.

Every error carries an HTTP status and a machine-readable code so the API
layer can translate it without knowing where it was raised.
"""

from typing import Optional


class ShelfScanException(Exception):
    """Base exception for ShelfScan errors."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        detail: Optional[str] = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)


class ConfigurationError(ShelfScanException):
    """A required setting (usually an API key) is missing."""

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(
            message=message,
            code="CONFIGURATION_ERROR",
            status_code=500,
            detail=detail,
        )


class ValidationError(ShelfScanException):
    """Input validation failed."""

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            status_code=400,
            detail=detail,
        )


class PayloadTooLargeError(ShelfScanException):
    """Uploaded image exceeds the configured size limit."""

    def __init__(self, max_mb: int):
        super().__init__(
            message=f"Image too large. Max {max_mb} MB.",
            code="PAYLOAD_TOO_LARGE",
            status_code=413,
        )


class ImageDecodeError(ValidationError):
    """Uploaded bytes are not a decodable image."""

    def __init__(self, detail: Optional[str] = None):
        super().__init__("Could not decode image", detail=detail)


class MalformedResponseError(ShelfScanException):
    """The vision service answered with something other than the expected JSON."""

    def __init__(self, message: str, raw: Optional[str] = None):
        super().__init__(
            message=message,
            code="MALFORMED_RESPONSE",
            status_code=502,
            detail=raw[:500] if raw else None,
        )
        self.raw = raw


class ClassificationError(ShelfScanException):
    """A Region could not be classified; the whole identification request fails."""

    def __init__(self, region_label: str, cause: Exception):
        super().__init__(
            message=f"Classification failed for region '{region_label}'",
            code="CLASSIFICATION_ERROR",
            status_code=502,
            detail=str(cause),
        )
        self.region_label = region_label
        self.cause = cause


class PipelineTimeoutError(ShelfScanException):
    """The identification pipeline exceeded its wall-clock budget."""

    def __init__(self, timeout_seconds: float):
        super().__init__(
            message="Identification timed out",
            code="PIPELINE_TIMEOUT",
            status_code=504,
            detail=f"No result within {timeout_seconds:g}s",
        )
        self.timeout_seconds = timeout_seconds


class CatalogSearchError(ShelfScanException):
    """The bibliographic search service failed for one query."""

    def __init__(self, detail: Optional[str] = None):
        super().__init__(
            message="Open Library service unavailable",
            code="EXTERNAL_SERVICE_ERROR",
            status_code=503,
            detail=detail,
        )
