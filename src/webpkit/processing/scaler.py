"""Image scaling utilities using OpenImageIO (OIIO)."""

import logging

import numpy as np

from webpkit.constants import DEFAULT_RESIZE_FILTER
from webpkit.exceptions import ContextUnavailableError

logger = logging.getLogger(__name__)


class ImageScaler:
    """Utility class for image scaling using OpenImageIO."""

    @staticmethod
    def scale_image(
        image: np.ndarray,
        width: int,
        height: int,
        filter_name: str = DEFAULT_RESIZE_FILTER,
    ) -> np.ndarray:
        """Resample an image to exactly ``width`` x ``height`` in one pass.

        The whole source resolution feeds the filter directly; there is no
        intermediate downscaling step.

        Args:
            image: Input image array (H, W, C), uint8
            width: Target width
            height: Target height
            filter_name: OIIO filter name (e.g., 'lanczos3', 'mitchell', 'catmull-rom')

        Returns:
            Scaled uint8 image array (height, width, C)

        Raises:
            ContextUnavailableError: If OIIO is missing or the resize fails
        """
        try:
            import OpenImageIO as oiio
        except ImportError as e:
            raise ContextUnavailableError("OpenImageIO library not available.") from e

        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid target size {width}x{height}")

        h, w = image.shape[:2]
        channels = image.shape[2] if image.ndim == 3 else 1

        if width == w and height == h:
            return image

        src_buf = oiio.ImageBuf(oiio.ImageSpec(w, h, channels, oiio.UINT8))
        src_buf.set_pixels(oiio.ROI(), np.ascontiguousarray(image))

        dst_buf = oiio.ImageBuf(oiio.ImageSpec(width, height, channels, oiio.UINT8))
        if not oiio.ImageBufAlgo.resize(dst_buf, src_buf, filtername=filter_name):
            raise ContextUnavailableError(f"OIIO resize failed: {oiio.geterror()}")

        scaled = np.asarray(dst_buf.get_pixels(oiio.UINT8), dtype=np.uint8)
        logger.debug(f"Resampled {w}x{h} -> {width}x{height} ({filter_name})")
        return scaled.reshape((height, width, channels))
