from __future__ import annotations

import numpy as np
import pytest

from designdiff.image_diff.normalize import normalize, pad_to
from designdiff.image_diff.types import RasterImage

RED = (255, 0, 0, 255)
WHITE = (255, 255, 255, 255)


class TestNormalize:
    @pytest.mark.parametrize(
        "before_size,after_size",
        [((10, 10), (20, 10)), ((7, 30), (12, 3)), ((1, 1), (1, 1)), ((5, 9), (5, 4))],
    )
    def test_canvas_takes_max_dimensions(self, before_size, after_size):
        canvas = normalize(
            RasterImage.filled(*before_size, RED),
            RasterImage.filled(*after_size, RED),
        )
        expected = (max(before_size[0], after_size[0]), max(before_size[1], after_size[1]))
        assert canvas.before.size == expected
        assert canvas.after.size == expected
        assert (canvas.width, canvas.height) == expected

    def test_same_size_passes_through(self):
        before = RasterImage.filled(4, 4, RED)
        after = RasterImage.filled(4, 4, WHITE)
        canvas = normalize(before, after)
        assert canvas.before is before
        assert canvas.after is after

    def test_padding_anchored_at_origin(self):
        before = RasterImage.filled(10, 10, RED)
        after = RasterImage.filled(20, 10, RED)
        canvas = normalize(before, after)

        padded = canvas.before.pixels
        assert (padded[:, :10] == RED).all()
        assert (padded[:, 10:] == WHITE).all()
        assert canvas.after is after

    def test_custom_fill(self):
        canvas = normalize(
            RasterImage.filled(2, 2, RED),
            RasterImage.filled(2, 3, RED),
            fill=(0, 0, 0, 255),
        )
        assert tuple(canvas.before.pixels[2, 0]) == (0, 0, 0, 255)


class TestPadTo:
    def test_refuses_to_shrink(self):
        with pytest.raises(ValueError):
            pad_to(RasterImage.filled(5, 5, RED), 4, 5)

    def test_does_not_touch_source(self):
        source = RasterImage.filled(2, 2, RED)
        padded = pad_to(source, 3, 3)
        assert source.size == (2, 2)
        assert padded.size == (3, 3)
        assert np.array_equal(padded.pixels[:2, :2], source.pixels)
