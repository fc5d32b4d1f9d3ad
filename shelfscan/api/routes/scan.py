"""
Scan API Routes

Accepts a bookshelf photo and returns the identified books.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from loguru import logger

from shelfscan.api.dependencies import get_pipeline, get_preprocessor
from shelfscan.api.schemas import ErrorResponse, ScanResponse
from shelfscan.exceptions import PayloadTooLargeError, ValidationError
from shelfscan.pipeline.orchestrator import IdentificationPipeline
from shelfscan.vision.preprocessing import ImagePreprocessor


router = APIRouter(prefix="/scan", tags=["scan"])


@router.post(
    "",
    response_model=ScanResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Missing or invalid image"},
        413: {"model": ErrorResponse, "description": "Image too large"},
        502: {"model": ErrorResponse, "description": "Vision service returned unusable output"},
        504: {"model": ErrorResponse, "description": "Identification timed out"},
    },
)
async def scan_shelf(
    photo: Optional[UploadFile] = File(None, description="Bookshelf photo"),
    preprocessor: ImagePreprocessor = Depends(get_preprocessor),
    pipeline: IdentificationPipeline = Depends(get_pipeline),
) -> ScanResponse:
    """
    Identify every book in an uploaded bookshelf photo.

    Either the full corrected list is returned or a single error; never a
    partial list.
    """
    if photo is None:
        raise ValidationError("No image uploaded")

    max_bytes = preprocessor.config.max_upload_bytes
    if photo.size is not None and photo.size > max_bytes:
        raise PayloadTooLargeError(max_bytes // (1024 * 1024))

    content = await photo.read()
    mime_type = photo.content_type or "image/jpeg"

    if len(content) > max_bytes:
        raise PayloadTooLargeError(max_bytes // (1024 * 1024))

    is_valid, message = preprocessor.validate_upload(mime_type, len(content))
    if not is_valid:
        raise ValidationError(message)

    logger.info(f"Processing image: {photo.filename}, size={len(content) // 1024}KB")

    result = await pipeline.identify(content, mime_type)

    logger.info(
        f"Scan complete: {len(result.books)} books from {result.region_count} region(s) "
        f"in {result.processing_time_ms:.0f}ms"
    )
    return ScanResponse.from_result(result)
