"""
Dependency injection for FastAPI routes.

Provides injectable dependencies for:
- Configuration
- Service instances (vision client, pipeline, catalog client, resolver)
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from fastapi import Request
from loguru import logger

from shelfscan.classification.client import (
    OpenAIVisionClient,
    VisionClassifier,
    create_vision_client,
)
from shelfscan.identification.openlibrary import OpenLibraryClient
from shelfscan.identification.resolver import BibliographicResolver
from shelfscan.pipeline.orchestrator import IdentificationPipeline
from shelfscan.vision.preprocessing import ImagePreprocessor, PreprocessConfig


# =============================================================================
# Configuration
# =============================================================================

@dataclass
class Settings:
    """Application settings loaded from environment."""

    # Vision service
    openai_api_key: Optional[str] = None
    vision_model: str = "gpt-4o"
    vision_timeout_seconds: float = 90.0

    # Pipeline
    pipeline_timeout_seconds: float = 120.0

    # Catalog
    catalog_timeout_seconds: float = 10.0
    catalog_result_limit: int = 5
    lookup_concurrency: int = 0  # 0 = unbounded

    # File uploads
    max_upload_size_mb: int = 20
    allowed_image_types: str = "image/*"

    # Environment
    environment: str = "development"
    debug: bool = True

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        return cls(
            openai_api_key=(os.getenv("OPENAI_API_KEY") or "").strip() or None,
            vision_model=os.getenv("VISION_MODEL", cls.vision_model),
            vision_timeout_seconds=float(os.getenv("VISION_TIMEOUT_SECONDS", cls.vision_timeout_seconds)),
            pipeline_timeout_seconds=float(os.getenv("PIPELINE_TIMEOUT_SECONDS", cls.pipeline_timeout_seconds)),
            catalog_timeout_seconds=float(os.getenv("CATALOG_TIMEOUT_SECONDS", cls.catalog_timeout_seconds)),
            catalog_result_limit=int(os.getenv("CATALOG_RESULT_LIMIT", cls.catalog_result_limit)),
            lookup_concurrency=int(os.getenv("LOOKUP_CONCURRENCY", cls.lookup_concurrency)),
            max_upload_size_mb=int(os.getenv("MAX_UPLOAD_SIZE_MB", cls.max_upload_size_mb)),
            allowed_image_types=os.getenv("ALLOWED_IMAGE_TYPES", cls.allowed_image_types),
            environment=os.getenv("SHELFSCAN_ENV", cls.environment),
            debug=os.getenv("DEBUG", "true").lower() == "true",
        )

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings.from_env()


# =============================================================================
# Service Dependencies (Lazy Loading)
# =============================================================================

class ServiceContainer:
    """
    Container for lazy-loaded service instances.

    Clients are stateless and shared; every request gets its own pipeline run.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._preprocessor = None
        self._vision_client = None
        self._pipeline = None
        self._catalog_client = None
        self._resolver = None

    @property
    def preprocessor(self) -> ImagePreprocessor:
        if self._preprocessor is None:
            self._preprocessor = ImagePreprocessor(PreprocessConfig(
                max_upload_bytes=self.settings.max_upload_bytes,
                supported_formats=tuple(
                    t.strip() for t in self.settings.allowed_image_types.split(",") if t.strip()
                ),
            ))
        return self._preprocessor

    @property
    def vision_client(self) -> OpenAIVisionClient:
        if self._vision_client is None:
            self._vision_client = create_vision_client(
                self.settings.openai_api_key,
                model=self.settings.vision_model,
                timeout=self.settings.vision_timeout_seconds,
            )
            logger.info(f"Vision client initialized ({self.settings.vision_model})")
        return self._vision_client

    @property
    def pipeline(self) -> IdentificationPipeline:
        if self._pipeline is None:
            self._pipeline = IdentificationPipeline(
                VisionClassifier(self.vision_client),
                preprocessor=self.preprocessor,
                timeout_seconds=self.settings.pipeline_timeout_seconds or None,
            )
        return self._pipeline

    @property
    def catalog_client(self) -> OpenLibraryClient:
        if self._catalog_client is None:
            self._catalog_client = OpenLibraryClient(
                timeout=self.settings.catalog_timeout_seconds,
            )
        return self._catalog_client

    @property
    def resolver(self) -> BibliographicResolver:
        if self._resolver is None:
            self._resolver = BibliographicResolver(
                self.catalog_client,
                result_limit=self.settings.catalog_result_limit,
                max_concurrency=self.settings.lookup_concurrency or None,
            )
        return self._resolver

    async def close(self):
        """Close all HTTP clients."""
        if self._catalog_client is not None:
            await self._catalog_client.close()
        if self._vision_client is not None:
            await self._vision_client.close()


def init_services(settings: Settings) -> ServiceContainer:
    """Create the service container."""
    return ServiceContainer(settings)


def get_service_container(request: Request) -> ServiceContainer:
    """Service container stored on the application at startup."""
    return request.app.state.services


def get_preprocessor(request: Request) -> ImagePreprocessor:
    return get_service_container(request).preprocessor


def get_pipeline(request: Request) -> IdentificationPipeline:
    return get_service_container(request).pipeline


def get_resolver(request: Request) -> BibliographicResolver:
    return get_service_container(request).resolver
