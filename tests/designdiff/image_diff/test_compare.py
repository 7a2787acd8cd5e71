from __future__ import annotations

import numpy as np
import pytest

from designdiff.image_diff.compare import (
    PixelComparator,
    compare,
    max_unchanged_delta,
    row_bands,
)
from designdiff.image_diff.normalize import normalize
from designdiff.image_diff.types import DiffOptions, PixelClass, RasterImage

BLACK = (0, 0, 0, 255)
WHITE = (255, 255, 255, 255)


def _edge_images() -> tuple[RasterImage, RasterImage]:
    # Black left half, white right half, with a grey anti-aliased column between them.
    before = np.zeros((10, 10, 4), dtype=np.uint8)
    before[..., 3] = 255
    before[:, 6:, :3] = 255
    after = before.copy()
    before[:, 5, :3] = 128
    after[:, 5, :3] = 100
    return RasterImage(before), RasterImage(after)


def _block_images() -> tuple[RasterImage, RasterImage]:
    before = RasterImage.filled(10, 10, (100, 100, 100, 255))
    after = np.array(before.pixels)
    after[3:7, 3:7] = (255, 0, 0, 255)
    return before, RasterImage(after)


class TestMaxUnchangedDelta:
    @pytest.mark.parametrize(
        "threshold,expected",
        [(0.0, 0), (0.05, 12), (13 / 255, 13), (0.1, 25), (1.0, 255)],
    )
    def test_limits(self, threshold, expected):
        assert max_unchanged_delta(threshold) == expected


class TestRowBands:
    def test_covers_every_row_once(self):
        assert list(row_bands(10, 4)) == [(0, 4), (4, 8), (8, 10)]
        assert list(row_bands(3, 256)) == [(0, 3)]


class TestCompare:
    def test_identical(self):
        img = RasterImage.filled(6, 6, WHITE)
        comparison = compare(normalize(img, img))
        assert comparison.changed_pixels == 0
        assert (comparison.classes == PixelClass.UNCHANGED).all()

    def test_alpha_difference_counts(self):
        before = RasterImage.filled(3, 3, (10, 10, 10, 255))
        after = RasterImage.filled(3, 3, (10, 10, 10, 200))
        assert compare(normalize(before, after)).changed_pixels == 9

    def test_single_channel_beyond_threshold(self):
        before = RasterImage.filled(2, 2, (100, 100, 100, 255))
        after = RasterImage.filled(2, 2, (100, 100, 87, 255))
        assert compare(normalize(before, after)).changed_pixels == 4

    def test_classes_mark_changed_region(self):
        before, after = _block_images()
        comparison = compare(normalize(before, after))
        assert comparison.changed_pixels == 16
        assert (comparison.classes[3:7, 3:7] == PixelClass.CHANGED).all()
        assert np.count_nonzero(comparison.classes) == 16


class TestAntiAliasing:
    def test_edge_pixels_are_antialiased(self):
        before, after = _edge_images()
        comparison = compare(normalize(before, after), DiffOptions(distinguish_antialiasing=True))
        assert comparison.changed_pixels == 0
        assert comparison.antialiased_pixels == 10
        assert (comparison.classes[:, 5] == PixelClass.ANTIALIASED).all()

    def test_edge_pixels_count_without_refinement(self):
        before, after = _edge_images()
        comparison = compare(normalize(before, after))
        assert comparison.changed_pixels == 10
        assert comparison.antialiased_pixels == 0

    def test_solid_block_is_not_antialiased(self):
        before, after = _block_images()
        comparison = compare(normalize(before, after), DiffOptions(distinguish_antialiasing=True))
        assert comparison.changed_pixels == 16
        assert comparison.antialiased_pixels == 0

    def test_bands_see_neighbours_across_boundaries(self):
        before, after = _edge_images()
        canvas = normalize(before, after)
        options = DiffOptions(distinguish_antialiasing=True, band_rows=1, workers=3)
        comparison = PixelComparator(canvas, options).compare()
        assert comparison.antialiased_pixels == 10
