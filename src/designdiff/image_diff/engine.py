from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence

import numpy as np
import sentry_sdk

from .codec import ImageSource, decode_image
from .compare import BandCounts, PixelComparator, row_bands, run_bands
from .errors import DiffError, InvalidImage, ProcessingFailed
from .normalize import normalize
from .render import DiffRenderer
from .stats import aggregate
from .types import DiffOptions, DiffResult, EngineState, RasterImage

logger = logging.getLogger(__name__)

StateListener = Callable[[EngineState], None]


class DiffEngine:
    """
    Decodes a before/after pair, pads both onto a shared canvas, classifies every pixel,
    renders the highlighted diff and reports how much of the canvas changed.

    The engine holds only its immutable options, so one instance can serve concurrent calls.
    """

    def __init__(self, options: DiffOptions | None = None) -> None:
        self.options = options or DiffOptions()

    @sentry_sdk.tracing.trace
    def generate_diff(
        self,
        before: ImageSource,
        after: ImageSource,
        on_state: StateListener | None = None,
    ) -> DiffResult:
        def transition(state: EngineState) -> None:
            logger.debug("generate_diff: %s", state.value)
            if on_state is not None:
                on_state(state)

        transition(EngineState.DECODING)
        try:
            before_img = decode_image(before, label="before")
            after_img = decode_image(after, label="after")
        except InvalidImage:
            transition(EngineState.FAILED)
            raise

        try:
            result = self._diff(before_img, after_img, transition)
        except DiffError:
            transition(EngineState.FAILED)
            raise
        except Exception as e:
            logger.exception(
                "Failed to generate diff",
                extra={"before_size": before_img.size, "after_size": after_img.size},
            )
            transition(EngineState.FAILED)
            raise ProcessingFailed(str(e) or type(e).__name__) from e

        transition(EngineState.DONE)
        return result

    def _diff(
        self,
        before: RasterImage,
        after: RasterImage,
        transition: StateListener,
    ) -> DiffResult:
        transition(EngineState.NORMALIZING)
        canvas = normalize(before, after, self.options.background_fill)

        transition(EngineState.COMPARING)
        comparator = PixelComparator(canvas, self.options)
        renderer = DiffRenderer(self.options)
        classes = np.empty((canvas.height, canvas.width), dtype=np.uint8)
        diff = np.empty((canvas.height, canvas.width, 4), dtype=np.uint8)

        def process_band(band: tuple[int, int]) -> BandCounts:
            r0, r1 = band
            counts = comparator.classify_rows(r0, r1, classes)
            renderer.render_rows(canvas.after.pixels, classes, r0, r1, diff)
            return counts

        counts = run_bands(
            process_band,
            list(row_bands(canvas.height, self.options.band_rows)),
            self.options.workers,
        )
        diff.flags.writeable = False
        stats = aggregate(
            changed_pixels=sum(c.changed_pixels for c in counts),
            total_pixels=canvas.total_pixels,
            antialiased_pixels=sum(c.antialiased_pixels for c in counts),
        )

        logger.info(
            "generate_diff: %d of %d pixels changed (%.4f%%)",
            stats.changed_pixels,
            stats.total_pixels,
            stats.diff_percentage,
            extra={
                "width": canvas.width,
                "height": canvas.height,
                "antialiased_pixels": stats.antialiased_pixels,
            },
        )

        return DiffResult(
            diff_image=RasterImage(diff),
            diff_percentage=stats.diff_percentage,
            changed_pixels=stats.changed_pixels,
            total_pixels=stats.total_pixels,
            antialiased_pixels=stats.antialiased_pixels,
            width=canvas.width,
            height=canvas.height,
            before_width=before.width,
            before_height=before.height,
            after_width=after.width,
            after_height=after.height,
        )

    async def generate_diff_async(
        self,
        before: ImageSource,
        after: ImageSource,
        on_state: StateListener | None = None,
    ) -> DiffResult:
        # Runs to completion even if the awaiting task is cancelled; the result is discarded.
        return await asyncio.to_thread(self.generate_diff, before, after, on_state)

    def generate_diff_batch(
        self,
        pairs: Sequence[tuple[ImageSource, ImageSource]],
    ) -> list[DiffResult | DiffError]:
        results: list[DiffResult | DiffError] = []
        for idx, (before, after) in enumerate(pairs):
            try:
                results.append(self.generate_diff(before, after))
            except DiffError as e:
                logger.warning(
                    "Failed to compare image pair %d",
                    idx,
                    extra={"error": type(e).__name__, "reason": e.reason},
                )
                results.append(e)
        return results


def generate_diff(
    before: ImageSource,
    after: ImageSource,
    options: DiffOptions | None = None,
) -> DiffResult:
    return DiffEngine(options).generate_diff(before, after)


def generate_diff_batch(
    pairs: Sequence[tuple[ImageSource, ImageSource]],
    options: DiffOptions | None = None,
) -> list[DiffResult | DiffError]:
    return DiffEngine(options).generate_diff_batch(pairs)
