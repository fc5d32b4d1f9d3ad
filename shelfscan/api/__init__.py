"""
ShelfScan - FastAPI Backend.
"""

from .main import app, create_app, main
from .dependencies import (
    Settings,
    get_settings,
    get_service_container,
    ServiceContainer,
)
from .schemas import (
    BookSchema,
    EnrichedBookSchema,
    OverviewSchema,
    ScanResponse,
    LookupRequest,
    LookupResponse,
    HealthResponse,
    ErrorResponse,
)

__all__ = [
    # Application
    "app",
    "create_app",
    "main",
    # Dependencies
    "Settings",
    "get_settings",
    "get_service_container",
    "ServiceContainer",
    # Schemas
    "BookSchema",
    "EnrichedBookSchema",
    "OverviewSchema",
    "ScanResponse",
    "LookupRequest",
    "LookupResponse",
    "HealthResponse",
    "ErrorResponse",
]
