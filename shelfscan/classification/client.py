"""
Vision Classification Client

Request/response framing for the three vision passes: overview,
per-region identification and text-only correction.
"""

import json
import time
from abc import ABC, abstractmethod
from typing import Optional

import openai
from loguru import logger

from shelfscan.classification.parsing import parse_books, parse_detections, parse_overview
from shelfscan.classification.prompts import PromptTemplates
from shelfscan.exceptions import ConfigurationError
from shelfscan.models import IdentifiedBook, Overview, RawDetection
from shelfscan.vision.partitioner import RegionImage
from shelfscan.vision.preprocessing import to_data_uri


class BaseVisionClient(ABC):
    """Abstract base class for vision/text completion services."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_text: str,
        image_data_uri: Optional[str] = None,
        detail: str = "high",
        max_tokens: int = 4096,
    ) -> str:
        """
        Run one completion and return the raw text content.

        Args:
            system_prompt: Task instructions
            user_text: User message text
            image_data_uri: Optional image as a data URI
            detail: Image detail level ("low" or "high")
            max_tokens: Completion token limit
        """
        pass


class OpenAIVisionClient(BaseVisionClient):
    """
    OpenAI chat-completions client with image input.

    Holds no per-request state, so one instance can serve concurrent calls.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o",
        timeout: Optional[float] = None,
    ):
        """
        Initialize OpenAI client.

        Args:
            api_key: OpenAI API key
            model: Model identifier
            timeout: Per-request timeout in seconds
        """
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._client: Optional[openai.AsyncOpenAI] = None

    def _get_client(self) -> openai.AsyncOpenAI:
        """Lazy initialization of OpenAI client."""
        if self._client is None:
            kwargs = {"api_key": self.api_key}
            if self.timeout is not None:
                kwargs["timeout"] = self.timeout
            self._client = openai.AsyncOpenAI(**kwargs)
        return self._client

    async def complete(
        self,
        system_prompt: str,
        user_text: str,
        image_data_uri: Optional[str] = None,
        detail: str = "high",
        max_tokens: int = 4096,
    ) -> str:
        client = self._get_client()

        if image_data_uri:
            user_content = [
                {"type": "image_url", "image_url": {"url": image_data_uri, "detail": detail}},
                {"type": "text", "text": user_text},
            ]
        else:
            user_content = user_text

        start_time = time.time()
        response = await client.chat.completions.create(
            model=self.model,
            max_tokens=max_tokens,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
        )
        elapsed_ms = (time.time() - start_time) * 1000
        logger.debug(f"{self.model} completion in {elapsed_ms:.0f}ms")

        return response.choices[0].message.content or ""

    async def close(self):
        """Close HTTP client."""
        if self._client is not None:
            await self._client.close()
            self._client = None


def create_vision_client(
    api_key: Optional[str],
    model: str = "gpt-4o",
    timeout: Optional[float] = None,
) -> OpenAIVisionClient:
    """Factory for the configured vision client."""
    if not api_key:
        raise ConfigurationError(
            "OpenAI API key is missing or invalid. Check server configuration.",
            detail="Set OPENAI_API_KEY",
        )
    return OpenAIVisionClient(api_key=api_key, model=model, timeout=timeout)


class VisionClassifier:
    """
    The three classification passes over an injected vision client.

    Usage:
        classifier = VisionClassifier(OpenAIVisionClient(api_key))
        overview = await classifier.overview(image_bytes)
        detections = await classifier.identify_region(tile, overview)
    """

    OVERVIEW_MAX_TOKENS = 1024
    IDENTIFY_MAX_TOKENS = 8192
    CORRECT_MAX_TOKENS = 4096

    def __init__(self, client: BaseVisionClient, prompts: type = PromptTemplates):
        self.client = client
        self.prompts = prompts

    async def overview(
        self,
        image_bytes: bytes,
        mime_type: str = "image/jpeg",
    ) -> Optional[Overview]:
        """
        Low-detail count of the whole photo.

        Never raises for service or parse failures: the pipeline proceeds
        without an anchor.
        """
        try:
            raw = await self.client.complete(
                self.prompts.OVERVIEW_SYSTEM,
                self.prompts.OVERVIEW_USER,
                image_data_uri=to_data_uri(image_bytes, mime_type),
                detail="low",
                max_tokens=self.OVERVIEW_MAX_TOKENS,
            )
            overview = parse_overview(raw)
        except Exception as e:
            logger.warning(f"Pass 1 (count) failed, continuing without anchor: {e}")
            return None

        logger.info(
            f"Pass 1 -> ~{overview.estimated_count} books, "
            f"{overview.estimated_shelves} shelves"
        )
        return overview

    async def identify_region(
        self,
        tile: RegionImage,
        overview: Optional[Overview] = None,
    ) -> list[RawDetection]:
        """
        High-detail identification of one Region.

        Raises:
            MalformedResponseError: the response is not a JSON array of books
        """
        raw = await self.client.complete(
            self.prompts.identify_system(tile.label, overview),
            self.prompts.IDENTIFY_USER,
            image_data_uri=to_data_uri(tile.data, tile.mime_type),
            detail="high",
            max_tokens=self.IDENTIFY_MAX_TOKENS,
        )
        detections = parse_detections(raw, region_label=tile.label)
        logger.debug(f"Region {tile.label}: {len(detections)} detection(s)")
        return detections

    async def correct(self, books: list[IdentifiedBook]) -> list[IdentifiedBook]:
        """
        Text-only correction of the deduplicated list.

        Raises:
            MalformedResponseError: the response is not a JSON array of books
        """
        if not books:
            return []

        books_json = json.dumps([book.to_dict() for book in books])
        raw = await self.client.complete(
            self.prompts.CORRECT_SYSTEM,
            self.prompts.CORRECT_USER.format(books_json=books_json),
            max_tokens=self.CORRECT_MAX_TOKENS,
        )
        return parse_books(raw)
