from __future__ import annotations

import numpy as np

from .compare import row_bands, run_bands
from .types import RGBA, Canvas, DiffOptions, PixelClass, RasterImage


def _to_uint8(values: np.ndarray) -> np.ndarray:
    return np.clip(np.rint(values), 0, 255).astype(np.uint8)


class DiffRenderer:
    """
    Paints changed pixels with a tinted highlight over the "after" color and dims the rest.
    """

    def __init__(self, options: DiffOptions) -> None:
        self.options = options

    def _blend(self, rgb: np.ndarray, color: RGBA) -> np.ndarray:
        weight = self.options.highlight_opacity * color[3] / 255.0
        return rgb * (1.0 - weight) + np.array(color[:3], dtype=np.float64) * weight

    def render_rows(
        self,
        after: np.ndarray,
        classes: np.ndarray,
        r0: int,
        r1: int,
        out: np.ndarray,
    ) -> None:
        source = after[r0:r1]
        band_classes = classes[r0:r1]
        band = out[r0:r1]

        rgb = source[..., :3].astype(np.float64)
        k = self.options.dim_factor
        band[..., :3] = _to_uint8(rgb * (1.0 - k) + 255.0 * k)
        band[..., 3] = source[..., 3]

        for pixel_class, color in (
            (PixelClass.CHANGED, self.options.highlight_color),
            (PixelClass.ANTIALIASED, self.options.antialias_color),
        ):
            mask = band_classes == pixel_class
            if not mask.any():
                continue
            band[mask, :3] = _to_uint8(self._blend(rgb[mask], color))
            band[mask, 3] = 255

    def render(self, canvas: Canvas, classes: np.ndarray) -> RasterImage:
        out = np.empty((canvas.height, canvas.width, 4), dtype=np.uint8)
        after = canvas.after.pixels
        run_bands(
            lambda band: self.render_rows(after, classes, band[0], band[1], out),
            list(row_bands(canvas.height, self.options.band_rows)),
            self.options.workers,
        )
        out.flags.writeable = False
        return RasterImage(out)


def render(canvas: Canvas, classes: np.ndarray, options: DiffOptions | None = None) -> RasterImage:
    return DiffRenderer(options or DiffOptions()).render(canvas, classes)
