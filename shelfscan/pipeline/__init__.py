"""
Identification Pipeline Module

Overview, partitioning, parallel region classification, deduplication
and correction for a single photo.
"""

from shelfscan.pipeline.deduplicator import deduplicate, normalize_title
from shelfscan.pipeline.orchestrator import (
    IdentificationPipeline,
    PipelineRun,
    PipelineStage,
)

__all__ = [
    "deduplicate",
    "normalize_title",
    "IdentificationPipeline",
    "PipelineRun",
    "PipelineStage",
]
