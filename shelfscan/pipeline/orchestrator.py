"""
Identification Pipeline

Sequences the passes for one photo:

    START -> OVERVIEW -> PARTITION -> IDENTIFY (parallel) -> DEDUP -> CORRECT -> DONE

OVERVIEW and CORRECT degrade in place. A failed Region, a timeout or an
undecodable upload moves the run to FAILED and surfaces a single error;
no partial result is ever returned.
"""

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from loguru import logger

from shelfscan.classification.client import VisionClassifier
from shelfscan.exceptions import ClassificationError, PipelineTimeoutError
from shelfscan.models import (
    UNKNOWN_AUTHOR,
    IdentificationResult,
    IdentifiedBook,
    Overview,
    RawDetection,
)
from shelfscan.pipeline.deduplicator import deduplicate
from shelfscan.vision.partitioner import Partitioner, RegionImage
from shelfscan.vision.preprocessing import ImagePreprocessor


class PipelineStage(str, Enum):
    """Stages of a single identification run."""
    START = "start"
    OVERVIEW = "overview"
    PARTITION = "partition"
    IDENTIFY = "identify"
    DEDUP = "dedup"
    CORRECT = "correct"
    DONE = "done"
    FAILED = "failed"


@dataclass
class PipelineRun:
    """Per-request state. Never shared between requests."""

    stage: PipelineStage = PipelineStage.START
    started_at: float = field(default_factory=time.perf_counter)
    stage_times_ms: dict[str, float] = field(default_factory=dict)
    _stage_started: float = field(default_factory=time.perf_counter)

    def advance(self, stage: PipelineStage) -> None:
        now = time.perf_counter()
        self.stage_times_ms[self.stage.value] = round((now - self._stage_started) * 1000, 1)
        logger.debug(f"Pipeline {self.stage.value} -> {stage.value}")
        self.stage = stage
        self._stage_started = now

    @property
    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self.started_at) * 1000


class IdentificationPipeline:
    """
    Multi-pass bookshelf identification.

    Usage:
        pipeline = IdentificationPipeline(VisionClassifier(client))
        result = await pipeline.identify(image_bytes)
        for book in result.books:
            print(book.title, book.author)
    """

    def __init__(
        self,
        classifier: VisionClassifier,
        partitioner: Optional[Partitioner] = None,
        preprocessor: Optional[ImagePreprocessor] = None,
        timeout_seconds: Optional[float] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            classifier: Vision passes over an injected client
            partitioner: Region planner/extractor
            preprocessor: Image decoder/enhancer
            timeout_seconds: Wall-clock budget for a whole run (None = unbounded)
        """
        self.classifier = classifier
        self.preprocessor = preprocessor or ImagePreprocessor()
        self.partitioner = partitioner or Partitioner(preprocessor=self.preprocessor)
        self.timeout_seconds = timeout_seconds

    async def identify(
        self,
        image_bytes: bytes,
        mime_type: str = "image/jpeg",
    ) -> IdentificationResult:
        """
        Run all passes on one photo.

        Raises:
            ClassificationError: a Region's identification call failed
            PipelineTimeoutError: the wall-clock budget expired
            ImageDecodeError: the upload is not an image
        """
        run = PipelineRun()
        try:
            if self.timeout_seconds:
                return await asyncio.wait_for(
                    self._run(run, image_bytes, mime_type),
                    timeout=self.timeout_seconds,
                )
            return await self._run(run, image_bytes, mime_type)
        except asyncio.TimeoutError:
            run.advance(PipelineStage.FAILED)
            logger.error(f"Identification timed out after {self.timeout_seconds}s")
            raise PipelineTimeoutError(self.timeout_seconds)
        except Exception as e:
            run.advance(PipelineStage.FAILED)
            logger.error(f"Identification failed: {type(e).__name__}: {e}")
            raise

    async def _run(
        self,
        run: PipelineRun,
        image_bytes: bytes,
        mime_type: str,
    ) -> IdentificationResult:
        # Pass 1: quick count at low detail
        run.advance(PipelineStage.OVERVIEW)
        overview = await self.classifier.overview(image_bytes, mime_type)

        # Tiling (adaptive grid based on the count)
        run.advance(PipelineStage.PARTITION)
        tiles = await asyncio.to_thread(self._partition, image_bytes, overview)
        logger.info(f"Tiling -> {len(tiles)} tile(s)")

        # Pass 2: identify books in each tile (parallel)
        run.advance(PipelineStage.IDENTIFY)
        region_results = await self._identify_regions(tiles, overview)
        all_detections = [d for detections in region_results for d in detections]

        run.advance(PipelineStage.DEDUP)
        deduped = deduplicate(all_detections)
        logger.info(
            f"Pass 2 -> {len(all_detections)} raw IDs, {len(deduped)} after dedup"
        )

        # Pass 3: verify and clean title/author data
        run.advance(PipelineStage.CORRECT)
        books = await self._correct(deduped)

        run.advance(PipelineStage.DONE)
        return IdentificationResult(
            books=books,
            overview=overview,
            region_count=len(tiles),
            raw_detection_count=len(all_detections),
            corrections=sum(1 for book in books if book.corrected),
            processing_time_ms=round(run.elapsed_ms, 1),
        )

    def _partition(
        self,
        image_bytes: bytes,
        overview: Optional[Overview],
    ) -> list[RegionImage]:
        image = self.preprocessor.load_image(image_bytes)
        return self.partitioner.partition(image, overview)

    async def _identify_one(
        self,
        tile: RegionImage,
        overview: Optional[Overview],
    ) -> list[RawDetection]:
        try:
            return await self.classifier.identify_region(tile, overview)
        except Exception as e:
            raise ClassificationError(tile.label, e) from e

    async def _identify_regions(
        self,
        tiles: list[RegionImage],
        overview: Optional[Overview],
    ) -> list[list[RawDetection]]:
        """Fan out one call per Region; the first failure cancels the rest."""
        tasks = [
            asyncio.create_task(self._identify_one(tile, overview))
            for tile in tiles
        ]
        try:
            return await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def _correct(self, books: list[IdentifiedBook]) -> list[IdentifiedBook]:
        """Best-effort correction; any failure keeps the uncorrected list."""
        try:
            cleaned = await self.classifier.correct(books)
        except Exception as e:
            logger.warning(f"Pass 3 (verify) failed, using uncleaned results: {e}")
            return books

        for book in cleaned:
            if not book.author:
                book.author = UNKNOWN_AUTHOR
        logger.info(
            f"Pass 3 (verify) -> {sum(1 for b in cleaned if b.corrected)} corrections made"
        )
        return cleaned
