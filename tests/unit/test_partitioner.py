"""
Unit tests for the adaptive partitioner.
"""

import io

import numpy as np
import pytest
from PIL import Image

from shelfscan.models import Overview
from shelfscan.vision.partitioner import FULL_IMAGE_LABEL, PartitionConfig, Partitioner


@pytest.fixture
def partitioner():
    return Partitioner()


class TestGridSize:
    """Tests for column/row selection."""

    def test_defaults_without_overview(self, partitioner):
        assert partitioner.grid_size(1300, 1300) == (2, 1)

    def test_dense_shelf_gets_four_columns(self, partitioner):
        overview = Overview(estimated_count=45, estimated_shelves=1)
        assert partitioner.grid_size(1300, 1300, overview)[0] == 4

    def test_wide_image_gets_four_columns(self, partitioner):
        assert partitioner.grid_size(3000, 1300)[0] == 4

    def test_medium_density_gets_three_columns(self, partitioner):
        overview = Overview(estimated_count=20, estimated_shelves=1)
        assert partitioner.grid_size(1300, 1300, overview)[0] == 3
        assert partitioner.grid_size(2000, 1300)[0] == 3

    def test_rows_follow_shelf_count(self, partitioner):
        overview = Overview(estimated_count=10, estimated_shelves=3)
        assert partitioner.grid_size(1300, 1300, overview)[1] == 3

    def test_many_shelves_capped_at_four_rows(self, partitioner):
        overview = Overview(estimated_count=10, estimated_shelves=7)
        assert partitioner.grid_size(1300, 1300, overview)[1] == 4

    def test_tall_image_gets_at_least_two_rows(self, partitioner):
        assert partitioner.grid_size(1300, 1600)[1] == 2
        assert partitioner.grid_size(1300, 3000)[1] == 4


class TestPlan:
    """Tests for Region planning."""

    def test_small_image_is_not_tiled(self, partitioner):
        regions = partitioner.plan(800, 600)

        assert len(regions) == 1
        region = regions[0]
        assert region.label == FULL_IMAGE_LABEL
        assert (region.left, region.top, region.width, region.height) == (0, 0, 800, 600)

    def test_small_image_ignores_overview(self, partitioner):
        overview = Overview(estimated_count=80, estimated_shelves=5)
        assert len(partitioner.plan(1199, 1199, overview)) == 1

    def test_labels_are_row_major_and_one_indexed(self, partitioner):
        regions = partitioner.plan(2400, 1800)

        assert [r.label for r in regions] == [
            "row1-col1", "row1-col2", "row1-col3",
            "row2-col1", "row2-col2", "row2-col3",
        ]

    @pytest.mark.parametrize("width,height", [
        (800, 600),
        (1200, 1200),
        (1199, 2500),
        (2002, 1601),
        (3001, 2999),
        (4032, 3024),
    ])
    def test_regions_cover_every_pixel(self, partitioner, width, height):
        covered = np.zeros((height, width), dtype=bool)

        for region in partitioner.plan(width, height):
            assert region.left >= 0 and region.top >= 0
            assert region.right <= width and region.bottom <= height
            covered[region.top:region.bottom, region.left:region.right] = True

        assert covered.all()

    def test_overlap_on_interior_edges_only(self, partitioner):
        # 3x2 grid, cells of 800x900
        regions = {r.label: r for r in partitioner.plan(2400, 1800)}
        pad_x = round(800 * 0.15)
        pad_y = round(900 * 0.15)

        first, middle, last = regions["row1-col1"], regions["row1-col2"], regions["row1-col3"]
        assert first.left == 0
        assert first.right == 800 + pad_x
        assert middle.left == 800 - pad_x
        assert middle.right == 1600 + pad_x
        assert last.right == 2400

        # Neighbours each reach pad into the other cell
        assert first.right - middle.left == 2 * pad_x
        assert middle.right - last.left == 2 * pad_x

        top, bottom = regions["row1-col2"], regions["row2-col2"]
        assert top.top == 0
        assert bottom.bottom == 1800
        assert top.bottom - bottom.top == 2 * pad_y

    def test_every_region_fully_contains_its_cell(self, partitioner):
        overview = Overview(estimated_count=50, estimated_shelves=4)
        regions = partitioner.plan(4000, 3000, overview)

        assert len(regions) == 16
        for region in regions:
            row, col = (int(p[3:]) for p in region.label.split("-"))
            assert region.contains((col - 1) * 1000, (row - 1) * 750)
            assert region.contains(col * 1000 - 1, row * 750 - 1)

    def test_halves_round_up(self, partitioner):
        # 61 / 2 = 30.5 -> 31 cells, 31 * 0.15 = 4.65 -> 5 pad
        first, second = partitioner.plan(61, 1300)

        assert first.right == 31 + 5
        assert second.left == 31 - 5
        assert second.right == 61

    @pytest.mark.parametrize("width,height,overview", [
        (1300, 3, Overview(10, 4)),
        (1300, 6, Overview(10, 4)),
        (1300, 1, Overview(50, 4)),
        (3, 3100, None),
        (1, 1300, None),
    ])
    def test_strip_images_have_no_empty_regions(self, partitioner, width, height, overview):
        regions = partitioner.plan(width, height, overview)
        covered = np.zeros((height, width), dtype=bool)

        for region in regions:
            assert region.width > 0 and region.height > 0
            covered[region.top:region.bottom, region.left:region.right] = True

        assert covered.all()

    @pytest.mark.parametrize("width,height,overview", [
        (1300, 3, Overview(10, 4)),
        (2, 3000, None),
    ])
    def test_partition_strip_image(self, partitioner, width, height, overview):
        image = np.full((height, width, 3), 90, dtype=np.uint8)

        tiles = partitioner.partition(image, overview)

        assert tiles
        for tile in tiles:
            assert tile.data[:2] == b"\xff\xd8"

    def test_max_rows_configurable(self):
        partitioner = Partitioner(PartitionConfig(max_rows=6))
        assert partitioner.grid_size(1300, 3000)[1] == 6

    @pytest.mark.parametrize("width,height", [(0, 100), (100, -1)])
    def test_invalid_dimensions(self, partitioner, width, height):
        with pytest.raises(ValueError):
            partitioner.plan(width, height)


class TestExtract:
    """Tests for Region extraction."""

    def test_extract_encodes_each_region(self, partitioner):
        image = np.random.default_rng(0).integers(0, 255, (1800, 2400, 3), dtype=np.uint8)
        regions = partitioner.plan(2400, 1800)

        tiles = partitioner.extract(image, regions)

        assert len(tiles) == len(regions)
        for tile, region in zip(tiles, regions):
            assert tile.label == region.label
            assert tile.mime_type == "image/jpeg"
            decoded = Image.open(io.BytesIO(tile.data))
            assert decoded.size == (region.width, region.height)

    def test_partition_small_image(self, partitioner):
        image = np.full((480, 640, 3), 128, dtype=np.uint8)

        tiles = partitioner.partition(image)

        assert len(tiles) == 1
        assert tiles[0].label == FULL_IMAGE_LABEL
