from __future__ import annotations

import logging

import numpy as np

from .types import RGBA, WHITE, Canvas, RasterImage

logger = logging.getLogger(__name__)


def pad_to(image: RasterImage, width: int, height: int, fill: RGBA = WHITE) -> RasterImage:
    """
    Anchor ``image`` at the origin of a ``width`` x ``height`` canvas filled with ``fill``.

    Images are padded, never scaled. An image already at the target size is returned as is.
    """
    if image.width > width or image.height > height:
        raise ValueError(
            f"cannot pad {image.width}x{image.height} image down to {width}x{height}"
        )
    if image.size == (width, height):
        return image

    pixels = np.empty((height, width, 4), dtype=np.uint8)
    pixels[...] = fill
    pixels[: image.height, : image.width] = image.pixels
    pixels.flags.writeable = False
    return RasterImage(pixels)


def normalize(before: RasterImage, after: RasterImage, fill: RGBA = WHITE) -> Canvas:
    width = max(before.width, after.width)
    height = max(before.height, after.height)

    if before.size != after.size:
        logger.debug(
            "Padding images onto a shared canvas",
            extra={
                "before_size": before.size,
                "after_size": after.size,
                "canvas_size": (width, height),
            },
        )

    return Canvas(
        before=pad_to(before, width, height, fill),
        after=pad_to(after, width, height, fill),
    )
