from .codec import decode_image, encode_data_uri, encode_png, encode_result
from .engine import DiffEngine, generate_diff, generate_diff_batch
from .errors import DiffError, InvalidImage, ProcessingFailed
from .types import Canvas, DiffOptions, DiffResult, EngineState, PixelClass, RasterImage

__all__ = (
    "Canvas",
    "DiffEngine",
    "DiffError",
    "DiffOptions",
    "DiffResult",
    "EngineState",
    "InvalidImage",
    "PixelClass",
    "ProcessingFailed",
    "RasterImage",
    "decode_image",
    "encode_data_uri",
    "encode_png",
    "encode_result",
    "generate_diff",
    "generate_diff_batch",
)
