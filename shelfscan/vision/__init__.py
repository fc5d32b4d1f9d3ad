"""
Computer Vision Module for ShelfScan

This module handles all pixel-level work:
- Image decoding and enhancement
- Adaptive partitioning into overlapping Regions
"""

from shelfscan.vision.preprocessing import ImagePreprocessor, PreprocessConfig, to_data_uri
from shelfscan.vision.partitioner import (
    Partitioner,
    PartitionConfig,
    RegionImage,
    FULL_IMAGE_LABEL,
)

__all__ = [
    "ImagePreprocessor",
    "PreprocessConfig",
    "to_data_uri",
    "Partitioner",
    "PartitionConfig",
    "RegionImage",
    "FULL_IMAGE_LABEL",
]
