"""Shared fixtures: an in-memory rasterizer so pipeline tests need no codec."""

import struct

import numpy as np
import pytest

from webpkit.exceptions import DecodeError, EncodeError
from webpkit.io.rasterizer import PixelBuffer, Rasterizer
from webpkit.io.raw_file import RawFile

_MAGIC = b"RAW0"


def encode_raw(pixels: np.ndarray) -> bytes:
    """Serialize an RGBA uint8 array into the fake rasterizer's format."""
    height, width = pixels.shape[:2]
    return _MAGIC + struct.pack("<II", width, height) + pixels.astype(np.uint8).tobytes()


def make_image(width: int, height: int, color=(200, 100, 50, 255)) -> np.ndarray:
    pixels = np.zeros((height, width, 4), dtype=np.uint8)
    pixels[...] = color
    return pixels


def raw_file(name: str, width: int = 4, height: int = 4, color=(200, 100, 50, 255)) -> RawFile:
    return RawFile.from_bytes(name, encode_raw(make_image(width, height, color)))


class FakeRasterizer(Rasterizer):
    """Decodes ``encode_raw`` payloads and records every call."""

    def __init__(self, fail_encode: bool = False) -> None:
        self.fail_encode = fail_encode
        self.decoded: list[str] = []
        self.resampled: list[tuple[int, int, int, int]] = []
        self.encoded: list[dict] = []

    def decode(self, data: bytes, name_hint: str = "") -> PixelBuffer:
        if not data.startswith(_MAGIC) or len(data) < 12:
            raise DecodeError(f"Failed to decode {name_hint}")
        width, height = struct.unpack("<II", data[4:12])
        body = data[12:]
        if len(body) != width * height * 4:
            raise DecodeError(f"Truncated image data in {name_hint}")
        self.decoded.append(name_hint)
        pixels = np.frombuffer(body, dtype=np.uint8).reshape((height, width, 4)).copy()
        return PixelBuffer(pixels)

    def resample(self, buffer: PixelBuffer, width: int, height: int) -> PixelBuffer:
        self.resampled.append((buffer.width, buffer.height, width, height))
        rows = np.arange(height) * buffer.height // height
        cols = np.arange(width) * buffer.width // width
        return PixelBuffer(np.ascontiguousarray(buffer.pixels[rows][:, cols]))

    def encode(
        self, buffer: PixelBuffer, fmt: str, quality: float, lossless: bool = False
    ) -> bytes:
        self.encoded.append(
            {
                "format": fmt,
                "quality": quality,
                "lossless": lossless,
                "width": buffer.width,
                "height": buffer.height,
                "pixels": buffer.pixels.copy(),
            }
        )
        if self.fail_encode:
            raise EncodeError(f"{fmt} encoder produced no output")
        return b"ENC:" + encode_raw(buffer.pixels)


@pytest.fixture
def rasterizer() -> FakeRasterizer:
    return FakeRasterizer()
