"""
Adaptive Image Partitioner

Splits a bookshelf photo into overlapping Regions sized to the estimated
book density, so each vision call sees few enough spines to read them all.
"""

import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from loguru import logger

from shelfscan.models import Overview, Region
from shelfscan.vision.preprocessing import ImagePreprocessor


FULL_IMAGE_LABEL = "full image"


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _cell_size(length: int, count: int) -> int:
    """Cell length for `count` cells; the last cell never starts past the edge."""
    cell = _round_half_up(length / count)
    if cell * (count - 1) >= length:
        cell = length // count
    return cell


@dataclass
class PartitionConfig:
    """Grid sizing thresholds."""

    # Below this on both sides the photo is sent whole
    small_image_threshold: int = 1200

    # Fraction of a cell added on each interior edge
    overlap_fraction: float = 0.15

    # Column thresholds
    dense_count: int = 40
    medium_count: int = 20
    wide_width: int = 3000
    medium_width: int = 2000

    # Row thresholds
    many_shelves: int = 4
    max_rows: int = 4
    tall_height: int = 3000
    medium_height: int = 1600


@dataclass
class RegionImage:
    """A Region together with its enhanced, JPEG-encoded pixels."""

    region: Region
    data: bytes
    mime_type: str = "image/jpeg"

    @property
    def label(self) -> str:
        return self.region.label


class Partitioner:
    """
    Plans and extracts overlapping Regions.

    Usage:
        partitioner = Partitioner()
        regions = partitioner.plan(width, height, overview)
        tiles = partitioner.extract(image, regions)
    """

    def __init__(
        self,
        config: Optional[PartitionConfig] = None,
        preprocessor: Optional[ImagePreprocessor] = None,
    ):
        self.config = config or PartitionConfig()
        self.preprocessor = preprocessor or ImagePreprocessor()

    def grid_size(
        self,
        width: int,
        height: int,
        overview: Optional[Overview] = None,
    ) -> Tuple[int, int]:
        """Return (cols, rows) for the given image and overview."""
        cfg = self.config
        book_count = overview.estimated_count if overview else 0
        shelves = overview.estimated_shelves if overview else 1

        if book_count >= cfg.dense_count or width >= cfg.wide_width:
            cols = 4
        elif book_count >= cfg.medium_count or width >= cfg.medium_width:
            cols = 3
        else:
            cols = 2

        if shelves >= cfg.many_shelves or height >= cfg.tall_height:
            rows = cfg.max_rows
        elif shelves >= 2 or height >= cfg.medium_height:
            rows = max(shelves, 2)
        else:
            rows = 1

        return cols, rows

    def plan(
        self,
        width: int,
        height: int,
        overview: Optional[Overview] = None,
    ) -> list[Region]:
        """
        Compute the Regions for an image of the given size.

        Regions are returned row-major. Every pixel of the image lies in at
        least one Region; padding never extends past the image boundary.
        """
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid image dimensions: {width}x{height}")

        threshold = self.config.small_image_threshold
        if width < threshold and height < threshold:
            return [Region(0, 0, width, height, FULL_IMAGE_LABEL)]

        cols, rows = self.grid_size(width, height, overview)
        # Strip images: at least one pixel per cell
        cols, rows = min(cols, width), min(rows, height)
        logger.info(
            f"Adaptive tiling: {cols}x{rows} grid for "
            f"~{overview.estimated_count if overview else 0} books, "
            f"{overview.estimated_shelves if overview else 1} shelves, "
            f"{width}x{height}px"
        )

        cell_w = _cell_size(width, cols)
        cell_h = _cell_size(height, rows)
        pad_x = _round_half_up(cell_w * self.config.overlap_fraction)
        pad_y = _round_half_up(cell_h * self.config.overlap_fraction)

        regions = []
        for row in range(rows):
            for col in range(cols):
                # The last row/column absorbs any rounding remainder
                x0 = col * cell_w
                x1 = width if col == cols - 1 else (col + 1) * cell_w
                y0 = row * cell_h
                y1 = height if row == rows - 1 else (row + 1) * cell_h

                left = max(0, x0 - pad_x) if col > 0 else 0
                right = min(width, x1 + pad_x) if col < cols - 1 else width
                top = max(0, y0 - pad_y) if row > 0 else 0
                bottom = min(height, y1 + pad_y) if row < rows - 1 else height

                regions.append(Region(
                    left=left,
                    top=top,
                    width=right - left,
                    height=bottom - top,
                    label=f"row{row + 1}-col{col + 1}",
                ))

        return regions

    def extract(self, image: np.ndarray, regions: list[Region]) -> list[RegionImage]:
        """Crop, enhance and encode each Region."""
        tiles = []
        for region in regions:
            crop = image[region.top:region.bottom, region.left:region.right]
            enhanced = self.preprocessor.enhance(crop)
            tiles.append(RegionImage(
                region=region,
                data=self.preprocessor.encode_jpeg(enhanced),
            ))

        logger.debug(f"Extracted {len(tiles)} region(s)")
        return tiles

    def partition(
        self,
        image: np.ndarray,
        overview: Optional[Overview] = None,
    ) -> list[RegionImage]:
        """Plan and extract in one step."""
        height, width = image.shape[:2]
        return self.extract(image, self.plan(width, height, overview))
