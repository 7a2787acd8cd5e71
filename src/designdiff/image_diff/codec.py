from __future__ import annotations

import base64
import binascii
import io
import logging
import re
from typing import Any, Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import InvalidImage
from .types import DiffResult, RasterImage

logger = logging.getLogger(__name__)

ImageSource = Union[bytes, bytearray, memoryview, str, Image.Image, RasterImage]

DATA_URI_PREFIX = "data:image/png;base64,"

_DECODE_ERRORS = (
    UnidentifiedImageError,
    Image.DecompressionBombError,
    OSError,
    SyntaxError,
    ValueError,
)
_DATA_URI_RE = re.compile(r"^data:image/[\w.+-]+;base64,", re.IGNORECASE)


def _decode_base64(value: str) -> bytes:
    payload = _DATA_URI_RE.sub("", value.strip(), count=1)
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidImage("image string is not valid base64") from e


def _open(data: bytes) -> Image.Image:
    img = Image.open(io.BytesIO(data))
    try:
        img.load()
    except Exception:
        img.close()
        raise
    return img


def _from_pil(img: Image.Image) -> RasterImage:
    width, height = img.size
    if width < 1 or height < 1:
        raise InvalidImage(f"image has zero dimensions ({width}x{height})")
    rgba = img if img.mode == "RGBA" else img.convert("RGBA")
    try:
        pixels = np.array(rgba, dtype=np.uint8)
    finally:
        if rgba is not img:
            rgba.close()
    pixels.flags.writeable = False
    return RasterImage(pixels)


def decode_image(source: ImageSource, label: str = "image") -> RasterImage:
    """
    Decode ``source`` into a RasterImage.

    Accepts encoded bytes, a base64 string (optionally a ``data:image/...;base64,``
    URI), an already opened Pillow image, or a RasterImage, which is returned as is.
    Raises InvalidImage for anything that does not decode to a non-empty bitmap.
    """
    if isinstance(source, RasterImage):
        return source
    if isinstance(source, Image.Image):
        try:
            source.load()
            return _from_pil(source)
        except _DECODE_ERRORS as e:
            logger.info(
                "Failed to load %s",
                label,
                extra={"label": label, "format": source.format, "error": str(e)},
            )
            raise InvalidImage(f"{label} could not be decoded") from e

    if isinstance(source, str):
        data = _decode_base64(source)
    elif isinstance(source, (bytes, bytearray, memoryview)):
        data = bytes(source)
    else:
        raise InvalidImage(f"unsupported {label} type: {type(source).__name__}")

    if not data:
        raise InvalidImage(f"{label} is empty")

    try:
        img = _open(data)
    except _DECODE_ERRORS as e:
        logger.info(
            "Failed to decode %s",
            label,
            extra={"label": label, "num_bytes": len(data), "error": str(e)},
        )
        raise InvalidImage(f"{label} could not be decoded") from e

    try:
        return _from_pil(img)
    finally:
        img.close()


def to_pil(image: RasterImage) -> Image.Image:
    return Image.fromarray(np.ascontiguousarray(image.pixels))


def encode_png(image: RasterImage) -> bytes:
    buf = io.BytesIO()
    with to_pil(image) as img:
        img.save(buf, format="PNG")
    return buf.getvalue()


def encode_data_uri(image: RasterImage) -> str:
    return DATA_URI_PREFIX + base64.b64encode(encode_png(image)).decode("ascii")


def as_data_uri(source: ImageSource) -> str:
    if isinstance(source, str) and _DATA_URI_RE.match(source.strip()):
        return source.strip()
    return encode_data_uri(decode_image(source))


def encode_result(result: DiffResult) -> dict[str, Any]:
    return {
        "diffImage": encode_data_uri(result.diff_image),
        "diffPercentage": result.diff_percentage,
        "changedPixels": result.changed_pixels,
        "totalPixels": result.total_pixels,
    }
