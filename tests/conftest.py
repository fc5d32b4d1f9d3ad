"""
Pytest configuration and fixtures for ShelfScan tests.
"""

import io
import json
import re
from typing import AsyncGenerator, Optional, Union

import numpy as np
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image

from shelfscan.api.dependencies import Settings
from shelfscan.api.main import create_app
from shelfscan.classification.client import BaseVisionClient
from shelfscan.identification.openlibrary import SearchDocument
from shelfscan.models import Confidence, IdentifiedBook


# =============================================================================
# Image Fixtures
# =============================================================================

def make_bookshelf_image(width: int, height: int) -> Image.Image:
    """Synthetic bookshelf: coloured vertical rectangles on a light background."""
    pixels = np.full((height, width, 3), 240, dtype=np.uint8)

    spine_colors = [
        (150, 50, 50),
        (50, 150, 50),
        (50, 50, 150),
        (150, 150, 50),
        (150, 50, 150),
    ]

    x_start = width // 12
    spine_top, spine_bottom = height // 5, height * 5 // 6
    for i, color in enumerate(spine_colors):
        spine_width = width // 16 + i * 5
        pixels[spine_top:spine_bottom, x_start:x_start + spine_width] = color
        x_start += spine_width + width // 64

    return Image.fromarray(pixels)


def to_jpeg_bytes(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG")
    return buffer.getvalue()


@pytest.fixture
def sample_bookshelf_image() -> Image.Image:
    """Small 640x480 photo, below the tiling threshold."""
    return make_bookshelf_image(640, 480)


@pytest.fixture
def small_image_bytes(sample_bookshelf_image) -> bytes:
    return to_jpeg_bytes(sample_bookshelf_image)


@pytest.fixture
def large_image_bytes() -> bytes:
    """2400x1800 photo: tiled into a 3x2 grid without an overview."""
    return to_jpeg_bytes(make_bookshelf_image(2400, 1800))


# =============================================================================
# Fake Vision Service
# =============================================================================

_LABEL_PATTERN = re.compile(r"You are looking at the (.+?) section")

Scripted = Union[str, list, dict, Exception]


class FakeVisionClient(BaseVisionClient):
    """
    Scripted stand-in for the vision service.

    Routes each call by its system prompt: overview, region identification
    (keyed by region label, with a default) or correction.
    """

    def __init__(
        self,
        overview: Optional[Scripted] = None,
        regions: Optional[dict[str, Scripted]] = None,
        default_region: Scripted = "[]",
        correction: Optional[Scripted] = None,
    ):
        self.overview = overview if overview is not None else RuntimeError("no overview scripted")
        self.regions = regions or {}
        self.default_region = default_region
        self.correction = correction
        self.calls: list[dict] = []

    @staticmethod
    def _render(scripted: Scripted) -> str:
        if isinstance(scripted, Exception):
            raise scripted
        if isinstance(scripted, str):
            return scripted
        return json.dumps(scripted)

    async def complete(
        self,
        system_prompt: str,
        user_text: str,
        image_data_uri: Optional[str] = None,
        detail: str = "high",
        max_tokens: int = 4096,
    ) -> str:
        if "book-counting" in system_prompt:
            kind, label = "overview", None
        elif "book-identification" in system_prompt:
            match = _LABEL_PATTERN.search(system_prompt)
            kind, label = "identify", match.group(1) if match else None
        else:
            kind, label = "correct", None

        self.calls.append({
            "kind": kind,
            "label": label,
            "system": system_prompt,
            "user": user_text,
            "detail": detail,
            "has_image": image_data_uri is not None,
        })

        if kind == "overview":
            return self._render(self.overview)
        if kind == "identify":
            return self._render(self.regions.get(label, self.default_region))

        if self.correction is None:
            # Echo the input list back unchanged
            return user_text.split("\n", 1)[1]
        return self._render(self.correction)

    def calls_of(self, kind: str) -> list[dict]:
        return [call for call in self.calls if call["kind"] == kind]


@pytest.fixture
def fake_vision_client() -> FakeVisionClient:
    return FakeVisionClient()


# =============================================================================
# Fake Catalog
# =============================================================================

class FakeCatalog:
    """
    Scripted stand-in for OpenLibraryClient.

    Responses are keyed by ("q" | "title", query); unknown queries return [].
    """

    def __init__(self, responses: Optional[dict] = None):
        self.responses = responses or {}
        self.calls: list[tuple[str, str, int]] = []

    def _answer(self, kind: str, query: str, limit: int) -> list[SearchDocument]:
        self.calls.append((kind, query, limit))
        scripted = self.responses.get((kind, query), [])
        if isinstance(scripted, Exception):
            raise scripted
        return [doc if isinstance(doc, SearchDocument) else SearchDocument.from_doc(doc)
                for doc in scripted]

    async def search(self, query: str, limit: int = 5) -> list[SearchDocument]:
        return self._answer("q", query, limit)

    async def search_by_title(self, title: str, limit: int = 5) -> list[SearchDocument]:
        return self._answer("title", title, limit)


@pytest.fixture
def fake_catalog() -> FakeCatalog:
    return FakeCatalog()


# =============================================================================
# Data Fixtures
# =============================================================================

@pytest.fixture
def dune() -> IdentifiedBook:
    return IdentifiedBook("Dune", "Frank Herbert", Confidence.HIGH)


@pytest.fixture
def dune_doc() -> dict:
    """Open Library search.json document for Dune."""
    return {
        "title": "Dune",
        "author_name": ["Frank Herbert"],
        "isbn": ["0441172717", "9780441172719", "9780340960196"],
        "cover_i": 11481354,
        "first_publish_year": 1965,
        "publisher": ["Ace Books", "Chilton Books"],
        "number_of_pages_median": 896,
        "subject": ["Science fiction", "Dune (Imaginary place)", "Fiction", "Deserts"],
    }


# =============================================================================
# Application Fixtures
# =============================================================================

@pytest.fixture
def test_settings() -> Settings:
    """Settings for API tests: a dummy key and a 1 MB upload limit."""
    return Settings(
        openai_api_key="sk-test",
        pipeline_timeout_seconds=5.0,
        max_upload_size_mb=1,
        environment="test",
        debug=False,
    )


@pytest_asyncio.fixture(scope="function")
async def app(test_settings):
    """Create FastAPI application for testing."""
    application = create_app(test_settings)

    yield application

    application.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Provide async HTTP client for API tests."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
