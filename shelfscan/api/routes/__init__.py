"""
API Routes for ShelfScan

Route modules:
- scan: Photo upload and book identification
- lookup: Catalog resolution of identified books
"""

from shelfscan.api.routes.scan import router as scan_router
from shelfscan.api.routes.lookup import router as lookup_router

__all__ = [
    "scan_router",
    "lookup_router",
]
