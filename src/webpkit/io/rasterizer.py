"""Decoding, resampling and encoding of pixel buffers."""

import logging
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from webpkit import constants
from webpkit.exceptions import ContextUnavailableError, DecodeError, EncodeError
from webpkit.processing.scaler import ImageScaler

logger = logging.getLogger(__name__)


@dataclass
class PixelBuffer:
    """RGBA, 8 bits per channel, row-major pixel grid."""

    pixels: np.ndarray  # (height, width, 4) uint8

    def __post_init__(self) -> None:
        if self.pixels.ndim != 3 or self.pixels.shape[2] != 4:
            raise ValueError(f"Expected an (H, W, 4) array, got shape {self.pixels.shape}")
        if self.pixels.dtype != np.uint8:
            raise ValueError(f"Expected uint8 pixels, got {self.pixels.dtype}")

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @classmethod
    def from_array(cls, array: np.ndarray) -> "PixelBuffer":
        """Build an RGBA buffer from a grey, grey+alpha, RGB or RGBA uint8 array."""
        array = np.asarray(array, dtype=np.uint8)
        if array.ndim == 2:
            array = array[..., np.newaxis]

        channels = array.shape[2]
        height, width = array.shape[:2]
        opaque = np.full((height, width, 1), 255, dtype=np.uint8)

        if channels == 1:
            rgba = np.concatenate([array, array, array, opaque], axis=2)
        elif channels == 2:
            grey = array[..., :1]
            rgba = np.concatenate([grey, grey, grey, array[..., 1:2]], axis=2)
        elif channels == 3:
            rgba = np.concatenate([array, opaque], axis=2)
        else:
            rgba = array[..., :4]

        return cls(np.ascontiguousarray(rgba))


class Rasterizer(ABC):
    """Backend that turns encoded bytes into pixels and back."""

    @abstractmethod
    def decode(self, data: bytes, name_hint: str = "") -> PixelBuffer:
        """Decode image bytes. Raises DecodeError on corrupt or unsupported data."""
        pass

    @abstractmethod
    def resample(self, buffer: PixelBuffer, width: int, height: int) -> PixelBuffer:
        """Resample to the target size in a single high-quality pass."""
        pass

    @abstractmethod
    def encode(
        self, buffer: PixelBuffer, fmt: str, quality: float, lossless: bool = False
    ) -> bytes:
        """Encode to ``fmt`` with quality in 0..1. Raises EncodeError on failure."""
        pass


class OIIORasterizer(Rasterizer):
    """Rasterizer backed by OpenImageIO.

    OIIO picks codecs by file extension, so every call goes through files in
    a private temporary directory that is removed when the call returns.
    """

    def __init__(self, filter_name: str = constants.DEFAULT_RESIZE_FILTER) -> None:
        self.filter_name = filter_name

    @staticmethod
    def _oiio():
        try:
            import OpenImageIO as oiio
        except ImportError as e:
            raise ContextUnavailableError("OpenImageIO library not available.") from e
        return oiio

    def decode(self, data: bytes, name_hint: str = "") -> PixelBuffer:
        oiio = self._oiio()
        if not data:
            raise DecodeError(f"No image data for {name_hint or 'input'}")

        suffix = Path(name_hint).suffix or ".img"
        with tempfile.TemporaryDirectory(prefix="webpkit-") as tmp_dir:
            src_path = Path(tmp_dir) / f"source{suffix.lower()}"
            src_path.write_bytes(data)

            # Keep straight (unassociated) alpha; OIIO premultiplies by default
            config = oiio.ImageSpec()
            config.attribute("oiio:UnassociatedAlpha", 1)
            buf = oiio.ImageBuf(str(src_path), 0, 0, config)
            # Force the pixels into memory before the temp file goes away
            if not buf.read(0, 0, True, oiio.UINT8) or buf.has_error:
                raise DecodeError(f"Failed to decode {name_hint or 'image'}: {buf.geterror()}")

            spec = buf.spec()
            width, height, channels = spec.width, spec.height, spec.nchannels
            if width <= 0 or height <= 0 or channels <= 0:
                raise DecodeError(f"Decoded {name_hint or 'image'} has no pixels")

            pixels = buf.get_pixels(oiio.UINT8)
            if pixels is None:
                raise ContextUnavailableError(f"Pixel access failed: {buf.geterror()}")

        array = np.asarray(pixels, dtype=np.uint8).reshape((height, width, channels))
        logger.debug(f"Decoded {name_hint or 'image'}: {width}x{height}, {channels} channels")
        return PixelBuffer.from_array(array)

    def resample(self, buffer: PixelBuffer, width: int, height: int) -> PixelBuffer:
        scaled = ImageScaler.scale_image(buffer.pixels, width, height, self.filter_name)
        return PixelBuffer(np.ascontiguousarray(scaled, dtype=np.uint8))

    def encode(
        self, buffer: PixelBuffer, fmt: str, quality: float, lossless: bool = False
    ) -> bytes:
        oiio = self._oiio()
        fmt = fmt.lower()
        extension = constants.OUTPUT_FORMAT_EXTENSIONS.get(fmt)
        if extension is None:
            raise EncodeError(f"No encoder for output format: {fmt}")

        # JPEG has no alpha channel
        pixels = buffer.pixels[..., :3] if extension == "jpg" else buffer.pixels
        spec = oiio.ImageSpec(buffer.width, buffer.height, pixels.shape[2], oiio.UINT8)
        spec.attribute("oiio:UnassociatedAlpha", 1)
        codec = constants.QUALITY_CODECS.get(fmt)
        if codec is not None:
            if lossless and codec == "webp":
                spec.attribute("compression", "lossless")
            else:
                level = max(1, min(100, int(round(quality * 100))))
                spec.attribute("compression", f"{codec}:{level}")

        with tempfile.TemporaryDirectory(prefix="webpkit-") as tmp_dir:
            out_path = Path(tmp_dir) / f"output.{extension}"
            buf = oiio.ImageBuf(spec)
            if not buf.set_pixels(oiio.ROI(), np.ascontiguousarray(pixels)):
                raise ContextUnavailableError(f"Pixel upload failed: {buf.geterror()}")

            if not buf.write(str(out_path)) or not out_path.exists():
                raise EncodeError(f"{fmt} encoder failed: {buf.geterror() or oiio.geterror()}")

            data = out_path.read_bytes()

        if not data:
            raise EncodeError(f"{fmt} encoder produced no output")
        return data
