"""
Unit tests for the identification pipeline.
"""

import asyncio

import pytest

from shelfscan.classification.client import VisionClassifier
from shelfscan.exceptions import (
    ClassificationError,
    ImageDecodeError,
    MalformedResponseError,
    PipelineTimeoutError,
)
from shelfscan.models import Confidence, IdentifiedBook
from shelfscan.pipeline.orchestrator import (
    IdentificationPipeline,
    PipelineRun,
    PipelineStage,
)
from shelfscan.vision.partitioner import FULL_IMAGE_LABEL

from tests.conftest import FakeVisionClient


def make_pipeline(client, **kwargs) -> IdentificationPipeline:
    return IdentificationPipeline(VisionClassifier(client), **kwargs)


class SlowVisionClient(FakeVisionClient):
    """Sleeps on every region call."""

    def __init__(self, delay: float, **kwargs):
        super().__init__(**kwargs)
        self.delay = delay
        self.cancelled = 0

    async def complete(self, system_prompt, user_text, image_data_uri=None,
                       detail="high", max_tokens=4096):
        if "book-identification" in system_prompt:
            try:
                await asyncio.sleep(self.delay)
            except asyncio.CancelledError:
                self.cancelled += 1
                raise
        return await super().complete(system_prompt, user_text, image_data_uri,
                                      detail, max_tokens)


@pytest.mark.asyncio
class TestIdentify:

    async def test_small_photo_is_one_region(self, small_image_bytes):
        client = FakeVisionClient(
            overview={"count": 5, "shelves": 1, "notes": ""},
            default_region=[{"title": "Dune", "author": "Frank Herbert", "confidence": "high"}],
        )

        result = await make_pipeline(client).identify(small_image_bytes)

        assert result.region_count == 1
        assert [c["label"] for c in client.calls_of("identify")] == [FULL_IMAGE_LABEL]
        assert result.books == [IdentifiedBook("Dune", "Frank Herbert", Confidence.HIGH)]
        assert result.overview.estimated_count == 5

    async def test_large_photo_fans_out_per_region(self, large_image_bytes):
        client = FakeVisionClient()

        result = await make_pipeline(client).identify(large_image_bytes)

        labels = sorted(c["label"] for c in client.calls_of("identify"))
        assert labels == sorted(
            f"row{r}-col{c}" for r in (1, 2) for c in (1, 2, 3)
        )
        assert result.region_count == 6
        assert result.books == []

    async def test_duplicates_across_regions_merged(self, large_image_bytes):
        client = FakeVisionClient(regions={
            "row1-col1": [{"title": "Dune", "author": "Frank Herbert", "confidence": "high"}],
            "row1-col2": [
                {"title": "dune", "author": "F. Herbert", "confidence": "low"},
                {"title": "Emma", "author": "Jane Austen", "confidence": "medium"},
            ],
        })

        result = await make_pipeline(client).identify(large_image_bytes)

        assert result.raw_detection_count == 3
        assert {b.title: b.author for b in result.books} == {
            "Dune": "Frank Herbert",
            "Emma": "Jane Austen",
        }

    async def test_overview_failure_degrades(self, small_image_bytes):
        client = FakeVisionClient(
            overview=RuntimeError("service unavailable"),
            default_region=[{"title": "It", "author": "Stephen King", "confidence": "medium"}],
        )

        result = await make_pipeline(client).identify(small_image_bytes)

        assert result.overview is None
        assert [b.title for b in result.books] == ["It"]
        assert "You are looking at the full image section" in client.calls_of("identify")[0]["system"]

    async def test_correction_applied(self, small_image_bytes):
        client = FakeVisionClient(
            default_region=[{"title": "Stephen King It", "author": "", "confidence": "high"}],
            correction=[{"title": "It", "author": "Stephen King",
                         "confidence": "high", "corrected": True}],
        )

        result = await make_pipeline(client).identify(small_image_bytes)

        assert result.books == [IdentifiedBook("It", "Stephen King", Confidence.HIGH, True)]
        assert result.corrections == 1

    async def test_correction_failure_keeps_deduplicated_list(self, small_image_bytes):
        client = FakeVisionClient(
            default_region=[
                {"title": "Dune", "author": "Frank Herbert", "confidence": "low"},
                {"title": "DUNE", "author": "Frank Herbert", "confidence": "high"},
            ],
            correction="I fixed them all!",
        )

        result = await make_pipeline(client).identify(small_image_bytes)

        assert result.books == [IdentifiedBook("DUNE", "Frank Herbert", Confidence.HIGH)]
        assert result.corrections == 0

    async def test_malformed_region_fails_whole_run(self, large_image_bytes):
        client = FakeVisionClient(regions={"row2-col1": "no books here, sorry"})

        with pytest.raises(ClassificationError) as exc_info:
            await make_pipeline(client).identify(large_image_bytes)

        assert exc_info.value.region_label == "row2-col1"
        assert isinstance(exc_info.value.cause, MalformedResponseError)
        assert client.calls_of("correct") == []

    async def test_region_service_error(self, small_image_bytes):
        client = FakeVisionClient(default_region=ConnectionError("reset by peer"))

        with pytest.raises(ClassificationError) as exc_info:
            await make_pipeline(client).identify(small_image_bytes)

        assert exc_info.value.region_label == FULL_IMAGE_LABEL
        assert exc_info.value.status_code == 502

    async def test_failed_region_cancels_siblings(self, large_image_bytes):
        client = SlowVisionClient(delay=5, regions={})
        pipeline = make_pipeline(client)

        async def fail_first(tile, overview):
            if tile.label == "row1-col1":
                raise MalformedResponseError("bad payload")
            return await VisionClassifier.identify_region(pipeline.classifier, tile, overview)

        pipeline.classifier.identify_region = fail_first

        with pytest.raises(ClassificationError):
            await asyncio.wait_for(pipeline.identify(large_image_bytes), timeout=3)

        assert client.cancelled == 5

    async def test_timeout(self, small_image_bytes):
        client = SlowVisionClient(delay=5)
        pipeline = make_pipeline(client, timeout_seconds=0.2)

        with pytest.raises(PipelineTimeoutError) as exc_info:
            await pipeline.identify(small_image_bytes)

        assert exc_info.value.status_code == 504

    async def test_undecodable_upload(self):
        client = FakeVisionClient()

        with pytest.raises(ImageDecodeError):
            await make_pipeline(client).identify(b"not an image at all")

        assert client.calls_of("identify") == []


def test_run_records_stage_times():
    run = PipelineRun()

    run.advance(PipelineStage.OVERVIEW)
    run.advance(PipelineStage.PARTITION)

    assert run.stage == PipelineStage.PARTITION
    assert set(run.stage_times_ms) == {"start", "overview"}
    assert run.elapsed_ms >= 0
