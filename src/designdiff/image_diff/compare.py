from __future__ import annotations

import functools
from collections.abc import Callable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import NamedTuple, TypeVar

import numpy as np

from .types import Canvas, DiffOptions, PixelClass

T = TypeVar("T")

# (dx, dy) in column-major scan order; ties in the anti-aliasing check resolve to the first hit.
NEIGHBOURS = ((-1, -1), (-1, 0), (-1, 1), (0, -1), (0, 1), (1, -1), (1, 0), (1, 1))

# YIQ luma coefficients
LUMA = np.array([0.29889531, 0.58662247, 0.11448223])


class BandCounts(NamedTuple):
    changed_pixels: int
    antialiased_pixels: int


class Comparison(NamedTuple):
    classes: np.ndarray
    changed_pixels: int
    antialiased_pixels: int


@functools.lru_cache(maxsize=64)
def max_unchanged_delta(threshold: float) -> int:
    """Largest 8-bit channel delta still within ``threshold`` on the [0, 1] scale."""
    limit = 0
    for delta in range(256):
        if delta / 255.0 <= threshold:
            limit = delta
    return limit


def row_bands(height: int, band_rows: int) -> Iterator[tuple[int, int]]:
    for start in range(0, height, band_rows):
        yield start, min(start + band_rows, height)


def run_bands(
    fn: Callable[[tuple[int, int]], T],
    bands: Sequence[tuple[int, int]],
    workers: int,
) -> list[T]:
    # Bands never overlap, so workers write to disjoint slices of the output arrays.
    if workers <= 1 or len(bands) <= 1:
        return [fn(band) for band in bands]
    with ThreadPoolExecutor(max_workers=min(workers, len(bands))) as pool:
        return list(pool.map(fn, bands))


def _valid(h: int, w: int, r0: int, r1: int, dx: int, dy: int) -> np.ndarray:
    ys = np.arange(r0, r1)[:, None] + dy
    xs = np.arange(w)[None, :] + dx
    return (ys >= 0) & (ys < h) & (xs >= 0) & (xs < w)


def _edge(h: int, w: int, r0: int, r1: int) -> np.ndarray:
    ys = np.arange(r0, r1)[:, None]
    xs = np.arange(w)[None, :]
    return (xs == 0) | (xs == w - 1) | (ys == 0) | (ys == h - 1)


def _window(arr: np.ndarray, r0: int, r1: int, dx: int, dy: int, fill: object) -> np.ndarray:
    """Rows ``r0:r1`` of ``arr`` sampled at (x + dx, y + dy); out of bounds reads ``fill``."""
    h, w = arr.shape[:2]
    out = np.full((r1 - r0, w), fill, dtype=arr.dtype)
    src_r0 = max(r0 + dy, 0)
    src_r1 = min(r1 + dy, h)
    if src_r0 >= src_r1:
        return out
    dst = slice(src_r0 - dy - r0, src_r1 - dy - r0)
    if dx >= 0:
        out[dst, : w - dx] = arr[src_r0:src_r1, dx:]
    else:
        out[dst, -dx:] = arr[src_r0:src_r1, : w + dx]
    return out


def _luma(pixels: np.ndarray) -> np.ndarray:
    rgb = pixels[..., :3].astype(np.float64)
    alpha = pixels[..., 3:].astype(np.float64) / 255.0
    # Translucent pixels are composited over white first.
    return (255.0 + (rgb - 255.0) * alpha) @ LUMA


def _many_siblings(pixels: np.ndarray) -> np.ndarray:
    """True where a pixel has more than two identical neighbours (edges count as one)."""
    packed = np.ascontiguousarray(pixels).view(np.uint32)[..., 0]
    h, w = packed.shape
    zeroes = _edge(h, w, 0, h).astype(np.uint8)
    for dx, dy in NEIGHBOURS:
        same = _window(packed, 0, h, dx, dy, 0) == packed
        zeroes += same & _valid(h, w, 0, h, dx, dy)
    return zeroes > 2


def _gather(flags: np.ndarray, r0: int, r1: int, index: np.ndarray) -> np.ndarray:
    out = np.zeros(index.shape, dtype=bool)
    for k, (dx, dy) in enumerate(NEIGHBOURS):
        selected = index == k
        if selected.any():
            out[selected] = _window(flags, r0, r1, dx, dy, False)[selected]
    return out


def antialiased(
    luma: np.ndarray,
    many_self: np.ndarray,
    many_other: np.ndarray,
    r0: int,
    r1: int,
) -> np.ndarray:
    """
    Flag pixels in rows ``r0:r1`` that look like anti-aliased edge pixels.

    A pixel qualifies when it has at most two identically bright neighbours, sits strictly
    between a darker and a brighter neighbour, and that darkest or brightest neighbour lies
    in a flat area of both images.
    """
    h, w = luma.shape
    centre = luma[r0:r1]
    zeroes = _edge(h, w, r0, r1).astype(np.uint8)
    min_delta = np.zeros_like(centre)
    max_delta = np.zeros_like(centre)
    min_at = np.zeros(centre.shape, dtype=np.int8)
    max_at = np.zeros(centre.shape, dtype=np.int8)

    for k, (dx, dy) in enumerate(NEIGHBOURS):
        valid = _valid(h, w, r0, r1, dx, dy)
        delta = centre - _window(luma, r0, r1, dx, dy, 0.0)
        zeroes += valid & (delta == 0)
        lower = valid & (delta < min_delta)
        min_delta = np.where(lower, delta, min_delta)
        min_at[lower] = k
        higher = valid & ~lower & (delta > max_delta)
        max_delta = np.where(higher, delta, max_delta)
        max_at[higher] = k

    result = (zeroes <= 2) & (min_delta != 0) & (max_delta != 0)
    if not result.any():
        return result

    flat_min = _gather(many_self, r0, r1, min_at) & _gather(many_other, r0, r1, min_at)
    flat_max = _gather(many_self, r0, r1, max_at) & _gather(many_other, r0, r1, max_at)
    return result & (flat_min | flat_max)


class PixelComparator:
    def __init__(self, canvas: Canvas, options: DiffOptions) -> None:
        self.canvas = canvas
        self.options = options
        self.limit = max_unchanged_delta(options.channel_threshold)
        self._before = canvas.before.pixels
        self._after = canvas.after.pixels
        self._aa_maps: tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray] | None = None
        if options.distinguish_antialiasing:
            self._aa_maps = (
                _luma(self._before),
                _luma(self._after),
                _many_siblings(self._before),
                _many_siblings(self._after),
            )

    def changed_mask(self, r0: int, r1: int) -> np.ndarray:
        delta = np.abs(self._before[r0:r1].astype(np.int16) - self._after[r0:r1])
        return (delta > self.limit).any(axis=2)

    def classify_rows(self, r0: int, r1: int, classes: np.ndarray) -> BandCounts:
        changed = self.changed_mask(r0, r1)
        band = classes[r0:r1]
        band[...] = PixelClass.UNCHANGED

        antialiased_pixels = 0
        if self._aa_maps is not None and changed.any():
            luma_before, luma_after, many_before, many_after = self._aa_maps
            aa = changed & (
                antialiased(luma_before, many_before, many_after, r0, r1)
                | antialiased(luma_after, many_after, many_before, r0, r1)
            )
            changed &= ~aa
            band[aa] = PixelClass.ANTIALIASED
            antialiased_pixels = int(np.count_nonzero(aa))

        band[changed] = PixelClass.CHANGED
        return BandCounts(int(np.count_nonzero(changed)), antialiased_pixels)

    def compare(self) -> Comparison:
        classes = np.empty((self.canvas.height, self.canvas.width), dtype=np.uint8)
        bands = list(row_bands(self.canvas.height, self.options.band_rows))
        counts = run_bands(
            lambda band: self.classify_rows(band[0], band[1], classes),
            bands,
            self.options.workers,
        )
        return Comparison(
            classes=classes,
            changed_pixels=sum(c.changed_pixels for c in counts),
            antialiased_pixels=sum(c.antialiased_pixels for c in counts),
        )


def compare(canvas: Canvas, options: DiffOptions | None = None) -> Comparison:
    return PixelComparator(canvas, options or DiffOptions()).compare()
