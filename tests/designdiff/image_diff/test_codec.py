from __future__ import annotations

import base64
import io

import numpy as np
import pytest
from PIL import Image

from designdiff.image_diff.codec import as_data_uri, decode_image, encode_data_uri, encode_png
from designdiff.image_diff.errors import InvalidImage
from designdiff.image_diff.types import RasterImage


def _png(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


class TestDecodeImage:
    def test_png_bytes(self):
        img = Image.new("RGBA", (3, 2), (1, 2, 3, 4))
        raster = decode_image(_png(img))
        assert raster.size == (3, 2)
        assert tuple(raster.pixels[1, 2]) == (1, 2, 3, 4)

    def test_rgb_gets_opaque_alpha(self):
        raster = decode_image(_png(Image.new("RGB", (2, 2), (9, 8, 7))))
        assert tuple(raster.pixels[0, 0]) == (9, 8, 7, 255)

    def test_data_uri_and_bare_base64(self):
        data = _png(Image.new("RGBA", (2, 2), (5, 5, 5, 255)))
        encoded = base64.b64encode(data).decode()
        assert decode_image(f"data:image/png;base64,{encoded}") == decode_image(data)
        assert decode_image(encoded) == decode_image(data)

    def test_raster_passes_through(self):
        raster = RasterImage.filled(1, 1, (0, 0, 0, 255))
        assert decode_image(raster) is raster

    @pytest.mark.parametrize("source", [b"", b"not an image", "not base64!", 42])
    def test_invalid(self, source):
        with pytest.raises(InvalidImage):
            decode_image(source)


class TestEncode:
    def test_png_decodes_back(self):
        raster = RasterImage.filled(4, 3, (10, 20, 30, 40))
        with Image.open(io.BytesIO(encode_png(raster))) as img:
            assert img.format == "PNG"
            assert img.size == (4, 3)
            assert img.getpixel((0, 0)) == (10, 20, 30, 40)

    def test_data_uri(self):
        uri = encode_data_uri(RasterImage.filled(1, 1, (0, 0, 0, 255)))
        assert uri.startswith("data:image/png;base64,")
        assert as_data_uri(uri) == uri


class TestRasterImage:
    def test_read_only(self):
        raster = RasterImage.filled(2, 2, (0, 0, 0, 255))
        with pytest.raises(ValueError):
            raster.pixels[0, 0] = (1, 1, 1, 1)

    def test_buffer_length_must_match(self):
        with pytest.raises(ValueError):
            RasterImage.from_buffer(2, 2, b"\x00" * 15)
        raster = RasterImage.from_buffer(2, 2, bytes(range(16)))
        assert raster.tobytes() == bytes(range(16))

    def test_copies_writable_input(self):
        pixels = np.zeros((2, 2, 4), dtype=np.uint8)
        raster = RasterImage(pixels)
        pixels[0, 0] = (9, 9, 9, 9)
        assert tuple(raster.pixels[0, 0]) == (0, 0, 0, 0)
        assert pixels.flags.writeable

    def test_rejects_empty(self):
        with pytest.raises(ValueError):
            RasterImage(np.zeros((0, 4, 4), dtype=np.uint8))
