from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Annotated

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, model_validator

Channel = Annotated[int, Field(ge=0, le=255)]
RGBA = tuple[Channel, Channel, Channel, Channel]

WHITE: RGBA = (255, 255, 255, 255)
RED: RGBA = (255, 0, 0, 255)
YELLOW: RGBA = (255, 255, 0, 255)


class DiffOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Per-channel absolute difference on a [0, 1] scale; deltas <= threshold are unchanged.
    channel_threshold: float = Field(default=0.05, ge=0.0, le=1.0)
    highlight_color: RGBA = RED
    highlight_opacity: float = Field(default=0.6, ge=0.0, le=1.0)
    antialias_color: RGBA = YELLOW
    dim_factor: float = Field(default=0.3, ge=0.0, le=1.0)
    background_fill: RGBA = WHITE
    distinguish_antialiasing: bool = False
    workers: int = Field(default=1, ge=1)
    band_rows: int = Field(default=256, ge=1)


@dataclass(frozen=True, eq=False)
class RasterImage:
    """
    Decoded RGBA bitmap. ``pixels`` is a read-only (height, width, 4) uint8 array.
    """

    pixels: np.ndarray

    def __post_init__(self) -> None:
        pixels = self.pixels
        if pixels.dtype != np.uint8 or pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValueError(f"expected (height, width, 4) uint8 pixels, got {pixels.shape}")
        if pixels.shape[0] < 1 or pixels.shape[1] < 1:
            raise ValueError(f"image must be at least 1x1, got {pixels.shape[1]}x{pixels.shape[0]}")
        # Writable inputs are copied so the caller cannot mutate the image afterwards.
        source = pixels.copy() if pixels.flags.writeable else np.ascontiguousarray(pixels)
        view = source.view()
        view.flags.writeable = False
        object.__setattr__(self, "pixels", view)

    @classmethod
    def from_buffer(cls, width: int, height: int, data: bytes) -> RasterImage:
        if len(data) != width * height * 4:
            raise ValueError(
                f"buffer length {len(data)} does not match {width}x{height} RGBA image"
            )
        return cls(np.frombuffer(data, dtype=np.uint8).reshape(height, width, 4))

    @classmethod
    def filled(cls, width: int, height: int, color: RGBA) -> RasterImage:
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[...] = color
        pixels.flags.writeable = False
        return cls(pixels)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    def tobytes(self) -> bytes:
        return self.pixels.tobytes()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RasterImage):
            return NotImplemented
        return bool(np.array_equal(self.pixels, other.pixels))

    __hash__ = None  # type: ignore[assignment]


@dataclass(frozen=True, eq=False)
class Canvas:
    before: RasterImage
    after: RasterImage

    def __post_init__(self) -> None:
        if self.before.size != self.after.size:
            raise ValueError(
                f"canvas images differ in size: {self.before.size} != {self.after.size}"
            )

    @property
    def width(self) -> int:
        return self.before.width

    @property
    def height(self) -> int:
        return self.before.height

    @property
    def total_pixels(self) -> int:
        return self.width * self.height


class PixelClass(enum.IntEnum):
    UNCHANGED = 0
    CHANGED = 1
    ANTIALIASED = 2


class EngineState(enum.Enum):
    IDLE = "idle"
    DECODING = "decoding"
    NORMALIZING = "normalizing"
    COMPARING = "comparing"
    DONE = "done"
    FAILED = "failed"


class DiffResult(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    diff_image: RasterImage
    diff_percentage: float = Field(ge=0.0, le=100.0)
    changed_pixels: int = Field(ge=0)
    total_pixels: int = Field(gt=0)
    antialiased_pixels: int = Field(default=0, ge=0)
    width: int
    height: int
    before_width: int
    before_height: int
    after_width: int
    after_height: int

    @model_validator(mode="after")
    def _check_counts(self) -> DiffResult:
        if self.changed_pixels > self.total_pixels:
            raise ValueError("changed_pixels cannot exceed total_pixels")
        if self.total_pixels != self.width * self.height:
            raise ValueError("total_pixels must equal width * height")
        if self.diff_image.size != (self.width, self.height):
            raise ValueError("diff_image must match the canvas dimensions")
        return self
