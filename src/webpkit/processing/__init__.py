"""Processing modules for luminance filtering and scaling."""

from webpkit.processing.luminance import LuminanceProcessor
from webpkit.processing.scaler import ImageScaler

__all__ = [
    "ImageScaler",
    "LuminanceProcessor",
]
